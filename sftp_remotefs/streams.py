"""
Byte streams over an open paramiko SFTPFile.

RemoteReadStream hands out a file as a lazy, finite sequence of chunks,
either pulled (``read()`` / iteration) or pushed to ``data`` listeners in
flowing mode with pause/resume. RemoteWriteStream buffers writes and blocks
the producer while a saturated buffer is flushed to the channel.

Both streams emit events to listeners registered with ``on()``. Listeners
run synchronously, in registration order, on the thread driving the stream.
"""

import logging
from collections import defaultdict
from collections.abc import Callable, Iterator

import paramiko

from .errors import RemoteFSError, RemoteOperationFailed

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 32768
DEFAULT_HIGH_WATER_MARK = 65535

# Errors the channel can raise mid-transfer
TRANSPORT_ERRORS = (OSError, EOFError, paramiko.SSHException)


class _EventSource:
    """Minimal synchronous listener registry shared by both stream types."""

    EVENTS: tuple[str, ...] = ()

    def __init__(self):
        self._listeners: dict[str, list[Callable]] = defaultdict(list)

    def on(self, event: str, callback: Callable):
        """Register callback for event. Returns self for chaining."""
        if event not in self.EVENTS:
            raise ValueError(
                f"Unknown event '{event}' for {type(self).__name__}, "
                f"expected one of: {', '.join(self.EVENTS)}"
            )
        self._listeners[event].append(callback)
        return self

    def off(self, event: str, callback: Callable):
        """Remove a previously registered callback. Returns self."""
        try:
            self._listeners[event].remove(callback)
        except ValueError:
            pass
        return self

    def listener_count(self, event: str) -> int:
        return len(self._listeners[event])

    def _emit(self, event: str, *args) -> None:
        for callback in list(self._listeners[event]):
            callback(*args)


class RemoteReadStream(_EventSource):
    """
    Readable stream over a remote file opened for reading.

    Events:
        data(chunk): A chunk was delivered in flowing mode.
        end(): The file was read to the end.
        error(exc): A read failed; exc is a RemoteOperationFailed.
        close(): The underlying handle was closed.
    """

    EVENTS = ("data", "end", "error", "close")

    def __init__(self, handle: paramiko.SFTPFile, path: str, chunk_size: int = DEFAULT_CHUNK_SIZE):
        super().__init__()
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self._handle = handle
        self.path = path
        self.chunk_size = chunk_size
        self.bytes_read = 0
        self.ended = False
        self.closed = False
        self._paused = True
        self._pumping = False

    def _read_chunk(self) -> bytes:
        try:
            return self._handle.read(self.chunk_size)
        except TRANSPORT_ERRORS as e:
            err = RemoteOperationFailed(
                f"Failed to read file '{self.path}': {e}", action="read", path=self.path
            )
            logger.error("%s", err)
            self.destroy(err)
            raise err from e

    def read(self) -> bytes:
        """
        Pull the next chunk.

        Returns:
            Up to chunk_size bytes, or b"" once the file is exhausted.

        Raises:
            RemoteOperationFailed: If the channel fails. The error is also
                emitted to ``error`` listeners before being raised.
        """
        if self.ended or self.closed:
            return b""

        chunk = self._read_chunk()
        if not chunk:
            self._finish()
            return b""

        self.bytes_read += len(chunk)
        return chunk

    def __iter__(self) -> Iterator[bytes]:
        while True:
            chunk = self.read()
            if not chunk:
                return
            yield chunk

    def pause(self) -> "RemoteReadStream":
        """Stop delivering ``data`` events after the current chunk."""
        self._paused = True
        return self

    def resume(self) -> "RemoteReadStream":
        """
        Switch to flowing mode and deliver chunks until paused or finished.

        Delivery picks up at the offset where it stopped; the channel stays
        open while paused. Calling resume() from a ``data`` listener while
        already flowing only clears the pause flag.
        """
        self._paused = False
        if self._pumping:
            return self

        self._pumping = True
        try:
            while not self._paused and not self.ended and not self.closed:
                chunk = self.read()
                if chunk:
                    self._emit("data", chunk)
        finally:
            self._pumping = False
        return self

    def is_paused(self) -> bool:
        return self._paused

    def pipe(self, destination: "RemoteWriteStream") -> "RemoteWriteStream":
        """
        Copy the rest of this stream into destination and end it.

        A read failure destroys destination with the same error before it is
        raised; a write failure closes this stream.
        """
        try:
            for chunk in self:
                destination.write(chunk)
        except RemoteFSError as e:
            if not destination.closed:
                destination.destroy(e)
            self.destroy()
            raise
        destination.end()
        return destination

    def _finish(self) -> None:
        self.ended = True
        logger.debug("Read %d bytes from '%s'", self.bytes_read, self.path)
        self._emit("end")
        self.destroy()

    def destroy(self, error: BaseException | None = None) -> None:
        """Close the handle. With an error, emit ``error`` before ``close``."""
        if self.closed:
            return
        self.closed = True
        try:
            self._handle.close()
        except TRANSPORT_ERRORS as e:
            logger.debug("Error closing read handle for '%s': %s", self.path, e)
        if error is not None:
            self._emit("error", error)
        self._emit("close")

    def close(self) -> None:
        self.destroy()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.destroy()
        return False


class RemoteWriteStream(_EventSource):
    """
    Writable stream over a remote file opened for writing.

    Events:
        drain(): A saturated buffer was flushed to the channel.
        finish(): end() flushed everything and closed the handle.
        error(exc): The stream failed or was destroyed with exc.
        close(): The underlying handle was closed.
    """

    EVENTS = ("drain", "finish", "error", "close")

    def __init__(
        self,
        handle: paramiko.SFTPFile,
        path: str,
        high_water_mark: int = DEFAULT_HIGH_WATER_MARK,
    ):
        super().__init__()
        if high_water_mark <= 0:
            raise ValueError(f"high_water_mark must be positive, got {high_water_mark}")
        self._handle = handle
        self.path = path
        self.high_water_mark = high_water_mark
        self.bytes_written = 0
        self.closed = False
        self.error: BaseException | None = None
        self._buffer = bytearray()
        self._ending = False

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    def write(self, data: bytes) -> bool:
        """
        Buffer data for the remote file.

        When the buffer reaches high_water_mark the call blocks while it is
        flushed to the channel.

        Returns:
            True if the data was only buffered, False if the buffer was
            saturated and had to drain (a ``drain`` event was emitted).

        Raises:
            RemoteOperationFailed: If the stream has ended or the flush fails.
        """
        if self._ending or self.closed:
            raise RemoteOperationFailed(
                f"Cannot write to file '{self.path}': the stream has already ended",
                action="write",
                path=self.path,
            )

        self._buffer += data
        if len(self._buffer) < self.high_water_mark:
            return True

        self._flush()
        self._emit("drain")
        return False

    def _flush(self) -> None:
        if not self._buffer:
            return
        try:
            self._handle.write(bytes(self._buffer))
        except TRANSPORT_ERRORS as e:
            self._fail(e)
        self.bytes_written += len(self._buffer)
        self._buffer.clear()

    def _fail(self, cause: BaseException) -> None:
        err = RemoteOperationFailed(
            f"Failed to write to file '{self.path}': {cause}", action="write", path=self.path
        )
        logger.error("%s", err)
        self.destroy(err)
        raise err from cause

    def end(self, data: bytes | None = None) -> None:
        """Write optional final data, flush, close the handle, emit finish and close."""
        if self.closed:
            return
        if data:
            self.write(data)
        self._ending = True
        self._flush()
        try:
            self._handle.close()
        except TRANSPORT_ERRORS as e:
            self._fail(e)
        self.closed = True
        logger.debug("Wrote %d bytes to '%s'", self.bytes_written, self.path)
        self._emit("finish")
        self._emit("close")

    def destroy(self, error: BaseException | None = None) -> None:
        """
        Abort the stream without flushing buffered data.

        When error is given it is emitted on ``error`` before ``close`` fires,
        and kept on the ``error`` attribute.
        """
        if self.closed:
            return
        self.closed = True
        self._ending = True
        self._buffer.clear()
        try:
            self._handle.close()
        except TRANSPORT_ERRORS as e:
            logger.debug("Error closing write handle for '%s': %s", self.path, e)
        if error is not None:
            self.error = error
            self._emit("error", error)
        self._emit("close")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_val is not None:
            self.destroy(exc_val)
        else:
            self.end()
        return False
