"""
SFTP client built on paramiko.

RemoteFileClient wraps one SSH connection and its SFTP channel. It gates
every call on the connection lifecycle and turns transport errors into
descriptive, path-scoped exceptions. Directory trees, moves and transfers are
composed from single-request primitives (stat, listdir, mkdir, remove,
rmdir, rename, chmod, open).
"""

import io
import logging
import posixpath
import threading
from pathlib import Path

import paramiko

from .config import AppConfig, ConnectionConfig, TransferConfig
from .errors import (
    ConnectionFailed,
    DirectoryNotEmpty,
    IsADirectory,
    MissingCredentials,
    MissingParent,
    NoSuchDirectory,
    NoSuchPath,
    NotADirectory,
    NotARegularFileOrLink,
    PathAlreadyExists,
    RemoteFSError,
    RemoteOperationFailed,
    SourceNotFound,
    TargetAlreadyExists,
    TargetNotFound,
    is_not_found,
)
from .lifecycle import ConnectionLifecycle, ConnectionState
from .permissions import ModeBits
from .stats import DirectoryEntry, EntryMetadata
from .streams import TRANSPORT_ERRORS, RemoteReadStream, RemoteWriteStream

logger = logging.getLogger(__name__)

# Key types tried, in order, when key material is given as text
KEY_CLASSES = (paramiko.Ed25519Key, paramiko.ECDSAKey, paramiko.RSAKey)


class TrustOnFirstUsePolicy(paramiko.MissingHostKeyPolicy):
    """
    Trust-on-first-use host key policy (same model as OpenSSH).

    - Unknown host: accept and save key to ~/.ssh/known_hosts
    - Known host, same key: accept
    - Known host, CHANGED key: reject (possible MITM attack)
    """

    def __init__(self, known_hosts_path: Path | None = None):
        self._known_hosts_path = known_hosts_path or Path.home() / ".ssh" / "known_hosts"

    def missing_host_key(self, client, hostname, key):
        host_keys = client.get_host_keys()
        existing = host_keys.lookup(hostname)

        if existing is not None:
            existing_key = existing.get(key.get_name())
            if existing_key is not None and existing_key != key:
                raise paramiko.SSHException(
                    f"Host key for {hostname} has CHANGED. "
                    f"This could indicate a man-in-the-middle attack. "
                    f"If the server key was legitimately changed, remove the old "
                    f"entry from {self._known_hosts_path} and try again."
                )

        logger.info("Adding host key for %s to known_hosts", hostname)
        host_keys.add(hostname, key.get_name(), key)

        try:
            self._known_hosts_path.parent.mkdir(parents=True, exist_ok=True)
            host_keys.save(str(self._known_hosts_path))
        except OSError as e:
            logger.warning("Could not save known_hosts: %s", e)


def _has_value(value) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, bytes)):
        return bool(value)
    return True


def load_private_key(key, passphrase: str | None = None) -> paramiko.PKey:
    """
    Turn key material into a paramiko key.

    Args:
        key: A paramiko.PKey, or private key text (PEM or OpenSSH format).
        passphrase: Passphrase for an encrypted key.

    Raises:
        paramiko.SSHException: If the text is not a supported private key.
    """
    if isinstance(key, paramiko.PKey):
        return key
    if isinstance(key, bytes):
        key = key.decode("utf-8")

    last_error: Exception | None = None
    for key_class in KEY_CLASSES:
        try:
            return key_class.from_private_key(io.StringIO(key), password=passphrase)
        except (paramiko.SSHException, ValueError) as e:
            last_error = e
    raise paramiko.SSHException(f"Unsupported or invalid private key: {last_error}")


class RemoteFileClient:
    """
    High-level SFTP client with lifecycle gating and tree operations.

    A client connects once. After end() or a failed connect() every call
    raises NotConnectedError; build a new client to reconnect. Request/
    response primitives are serialized by an internal lock, so one client
    never has two of them in flight.

    Example:
        with RemoteFileClient().connect("example.org", 22, "me", password="pw") as client:
            client.create_directory("/upload/a/b", recursive=True)
            client.put_file("/upload/a/b/hello.txt", b"hello")
    """

    def __init__(
        self,
        conn_config: ConnectionConfig | None = None,
        transfer_config: TransferConfig | None = None,
    ):
        self.conn_config = conn_config or ConnectionConfig()
        self.transfer_config = transfer_config or TransferConfig()
        self._lifecycle = ConnectionLifecycle()
        self._ssh: paramiko.SSHClient | None = None
        self._sftp: paramiko.SFTPClient | None = None
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: AppConfig) -> "RemoteFileClient":
        """
        Build a client from an AppConfig and connect it.

        A configured key file wins over a password.
        """
        client = cls(config.connection, config.transfer)
        ssh = config.ssh

        private_key = None
        password = ssh.password
        if ssh.key_file:
            private_key = Path(ssh.key_file).expanduser().read_text(encoding="utf-8")
            password = None

        return client.connect(
            hostname=ssh.host,
            port=ssh.port,
            username=ssh.username,
            password=password,
            private_key=private_key,
            passphrase=ssh.key_passphrase,
        )

    # Lifecycle

    @property
    def state(self) -> ConnectionState:
        return self._lifecycle.state

    def is_connected(self) -> bool:
        return self._lifecycle.is_connected()

    def connect(
        self,
        hostname: str = "localhost",
        port: int = 22,
        username: str = "anonymous",
        password: str | None = None,
        private_key=None,
        passphrase: str | None = None,
    ) -> "RemoteFileClient":
        """
        Open the SSH connection and the SFTP channel.

        Args:
            hostname: Server host name.
            port: Server port.
            username: Login name.
            password: Password, mutually exclusive with private_key.
            private_key: paramiko.PKey or private key text.
            passphrase: Passphrase for an encrypted private key.

        Returns:
            self, connected.

        Raises:
            MissingCredentials: Unless exactly one of password/private_key is set.
            InvalidStateTransition: If connect() was already called.
            ConnectionFailed: If the handshake, authentication or channel
                setup fails. The client is then in the FAILED state.
        """
        if _has_value(password) == _has_value(private_key):
            raise self._error(
                MissingCredentials,
                "Cannot connect to the SFTP server: provide either a password "
                "or a private key, not both or neither!",
                "connect",
            )

        self._lifecycle.transition(ConnectionState.CONNECTING)
        logger.debug("Connecting to SFTP server %s:%d as %s", hostname, port, username)

        try:
            connect_kwargs: dict = {
                "hostname": hostname,
                "port": port,
                "username": username,
                "timeout": self.conn_config.timeout_seconds,
                "allow_agent": False,
                "look_for_keys": False,
            }
            if _has_value(private_key):
                connect_kwargs["pkey"] = load_private_key(private_key, passphrase)
            else:
                connect_kwargs["password"] = password

            self._ssh = paramiko.SSHClient()
            self._ssh.load_system_host_keys()
            try:
                self._ssh.load_host_keys(str(Path.home() / ".ssh" / "known_hosts"))
            except FileNotFoundError:
                pass
            self._ssh.set_missing_host_key_policy(TrustOnFirstUsePolicy())

            self._ssh.connect(**connect_kwargs)
            logger.info("Connected to the SFTP server %s:%d", hostname, port)

            transport = self._ssh.get_transport()
            if transport is not None and self.conn_config.keepalive_interval_seconds:
                transport.set_keepalive(self.conn_config.keepalive_interval_seconds)

            self._sftp = self._ssh.open_sftp()

        except (paramiko.SSHException, OSError, EOFError, ValueError) as e:
            self._lifecycle.transition(ConnectionState.FAILED)
            self._cleanup_connections()
            if isinstance(e, paramiko.AuthenticationException):
                reason = f"authentication failed: {e}"
            else:
                reason = str(e) or type(e).__name__
            raise self._error(
                ConnectionFailed,
                f"The SSH client failed to connect to {hostname}:{port}: {reason}",
                "connect",
            ) from e

        self._lifecycle.transition(ConnectionState.CONNECTED)
        logger.info("SFTP client connected")
        return self

    def end(self) -> "RemoteFileClient":
        """Close the SFTP channel and the SSH connection."""
        self._lifecycle.require_connected("end")
        self._lifecycle.transition(ConnectionState.ENDED)
        with self._lock:
            self._cleanup_connections()
        logger.info("SFTP client ended")
        return self

    def _cleanup_connections(self) -> None:
        """Close SFTP and SSH, logging but not raising close errors."""
        if self._sftp:
            try:
                self._sftp.close()
            except TRANSPORT_ERRORS as e:
                logger.debug("Error closing SFTP channel: %s", e)
            self._sftp = None
        if self._ssh:
            try:
                self._ssh.close()
            except TRANSPORT_ERRORS as e:
                logger.debug("Error closing SSH connection: %s", e)
            self._ssh = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.is_connected():
            self.end()
        return False

    # Helpers

    def _normalize_path(self, path: str) -> str:
        """Use forward slashes and drop trailing slashes. Relative paths stay relative."""
        path = path.replace("\\", "/")
        if not path:
            return "."
        stripped = path.rstrip("/")
        return stripped or "/"

    def _parent_of(self, path: str) -> str:
        return posixpath.dirname(path) or "."

    def _run(self, func, *args):
        """Issue one primitive on the SFTP channel. Only one runs at a time."""
        with self._lock:
            return func(*args)

    def _error(self, cls, message: str, action: str, path: str | None = None) -> RemoteFSError:
        err = cls(message, action=action, path=path)
        logger.error("%s", err)
        return err

    def _translate_io_error(
        self,
        error: BaseException,
        action: str,
        path: str,
        prefix: str,
        not_found_cls=None,
        not_found_reason: str = "no such file!",
    ) -> RemoteFSError:
        """
        Turn a transport error into a client exception.

        ENOENT maps to not_found_cls when one is given; everything else
        becomes RemoteOperationFailed with the original message appended.
        """
        if not_found_cls is not None and is_not_found(error):
            err = not_found_cls(f"{prefix}: {not_found_reason}", action=action, path=path)
            # Not-found is routine for existence probes
            logger.debug("%s", err)
            return err
        return self._error(RemoteOperationFailed, f"{prefix}: {error}", action, path)

    # Metadata

    def _stat_attributes(self, action: str, path: str, follow_links: bool = True):
        """Fetch raw SFTPAttributes for an already normalized path."""
        func = self._sftp.stat if follow_links else self._sftp.lstat
        try:
            return self._run(func, path)
        except TRANSPORT_ERRORS as e:
            raise self._translate_io_error(
                e, action, path, f"Failed to stat file '{path}'", NoSuchPath
            ) from e

    def stat(self, path: str) -> EntryMetadata:
        """
        Get metadata for a remote path, following symlinks.

        Raises:
            NoSuchPath: If the path does not exist.
            RemoteOperationFailed: For any other transport error.
        """
        self._lifecycle.require_connected("stat")
        path = self._normalize_path(path)

        attrs = self._stat_attributes("stat", path)
        logger.debug("Stated file '%s'", path)
        return EntryMetadata.from_attributes(attrs)

    def lstat(self, path: str) -> EntryMetadata:
        """Like stat(), but describes a symlink itself rather than its target."""
        self._lifecycle.require_connected("lstat")
        path = self._normalize_path(path)

        attrs = self._stat_attributes("lstat", path, follow_links=False)
        logger.debug("Lstated file '%s'", path)
        return EntryMetadata.from_attributes(attrs)

    def exists(self, path: str) -> bool:
        """
        Return True if path exists. Errors other than not-found propagate.

        Only the raw attributes are fetched, so an entry whose mode the server
        leaves out still counts as existing.
        """
        self._lifecycle.require_connected("exists")
        path = self._normalize_path(path)

        try:
            self._stat_attributes("exists", path)
        except NoSuchPath:
            logger.debug("Path '%s' exists: False", path)
            return False

        logger.debug("Path '%s' exists: True", path)
        return True

    def list_dir(self, path: str, detailed: bool = False) -> list[str] | list[DirectoryEntry]:
        """
        List the entries of a directory in one round trip.

        Args:
            path: Remote directory.
            detailed: Return DirectoryEntry(filename, stats) rows instead of names.

        Raises:
            NoSuchDirectory: If the directory does not exist.
            RemoteOperationFailed: For any other transport error.
        """
        self._lifecycle.require_connected("list_dir")
        path = self._normalize_path(path)

        try:
            if detailed:
                listing = self._run(self._sftp.listdir_attr, path)
            else:
                listing = self._run(self._sftp.listdir, path)
        except TRANSPORT_ERRORS as e:
            raise self._translate_io_error(
                e,
                "list_dir",
                path,
                f"Failed to read directory '{path}'",
                NoSuchDirectory,
                "no such directory!",
            ) from e

        if detailed:
            results = [
                DirectoryEntry(attr.filename, EntryMetadata.from_attributes(attr))
                for attr in listing
                if attr.filename not in (".", "..")
            ]
        else:
            results = [name for name in listing if name not in (".", "..")]

        logger.debug("Read directory '%s' with %d entries", path, len(results))
        return results

    def set_permissions(self, path: str, permissions: ModeBits | int) -> "RemoteFileClient":
        """
        Change the permission bits of a remote path.

        Raises:
            TargetNotFound: If the path does not exist.
            RemoteOperationFailed: If chmod fails.
        """
        self._lifecycle.require_connected("set_permissions")
        path = self._normalize_path(path)
        mode = int(permissions)

        if not self.exists(path):
            raise self._error(
                TargetNotFound,
                f"Cannot set permissions on path '{path}': path does not exist!",
                "set_permissions",
                path,
            )

        try:
            self._run(self._sftp.chmod, path, mode)
        except TRANSPORT_ERRORS as e:
            raise self._translate_io_error(
                e, "set_permissions", path, f"Failed to set permissions on path '{path}'"
            ) from e

        logger.info("Set permissions on path '%s' to %s", path, ModeBits(mode))
        return self

    # Tree operations

    def create_directory(self, path: str, recursive: bool = False) -> "RemoteFileClient":
        """
        Create a directory, optionally creating missing parents first.

        Parents are created before children, one round trip at a time.

        Raises:
            PathAlreadyExists: If path already exists.
            MissingParent: If the parent is missing and recursive is False.
            RemoteOperationFailed: If mkdir fails (e.g. permission denied).
        """
        self._lifecycle.require_connected("create_directory")
        path = self._normalize_path(path)

        if self.exists(path):
            raise self._error(
                PathAlreadyExists,
                f"Cannot create directory '{path}', the path does already exist!",
                "create_directory",
                path,
            )

        parent = self._parent_of(path)
        if not self.exists(parent):
            if not recursive or parent == path:
                raise self._error(
                    MissingParent,
                    f"Cannot create directory '{path}', "
                    f"the parent directory '{parent}' does not exist!",
                    "create_directory",
                    path,
                )
            self.create_directory(parent, recursive=True)

        try:
            self._run(self._sftp.mkdir, path)
        except TRANSPORT_ERRORS as e:
            raise self._translate_io_error(
                e, "create_directory", path, f"Failed to create directory '{path}'"
            ) from e

        logger.info("Created directory '%s'", path)
        return self

    def delete_directory(self, path: str, recursive: bool = False) -> "RemoteFileClient":
        """
        Delete a directory, optionally with everything below it.

        Children are removed one after another, depth first, and the
        directory itself last. A failure part way leaves earlier siblings
        deleted and later ones untouched; nothing is rolled back. The path is
        checked with lstat, so a symlink to a directory is refused rather
        than emptied through.

        Raises:
            NoSuchPath: If path does not exist.
            NotADirectory: If path is not a directory (symlinks included).
            DirectoryNotEmpty: If it has entries and recursive is False.
            RemoteOperationFailed: If a primitive fails.
        """
        self._lifecycle.require_connected("delete_directory")
        path = self._normalize_path(path)

        try:
            stats = self.lstat(path)
        except NoSuchPath as e:
            raise self._error(
                NoSuchPath,
                f"Cannot delete directory '{path}': it does not exist!",
                "delete_directory",
                path,
            ) from e

        if not stats.is_directory():
            raise self._error(
                NotADirectory,
                f"Cannot delete directory '{path}': path is not a directory!",
                "delete_directory",
                path,
            )

        entries = self.list_dir(path, detailed=True)
        if entries and not recursive:
            raise self._error(
                DirectoryNotEmpty,
                f"Cannot delete directory '{path}': it contains files!",
                "delete_directory",
                path,
            )

        for entry in entries:
            child = posixpath.join(path, entry.filename)
            if entry.stats.is_directory():
                self.delete_directory(child, recursive)
            else:
                self.delete_file(child)

        try:
            self._run(self._sftp.rmdir, path)
        except TRANSPORT_ERRORS as e:
            raise self._translate_io_error(
                e, "delete_directory", path, f"Failed to delete directory '{path}'"
            ) from e

        logger.info("Deleted directory '%s'", path)
        return self

    def delete_file(self, path: str) -> "RemoteFileClient":
        """
        Delete a regular file or a symbolic link.

        Raises:
            NoSuchPath: If path does not exist.
            IsADirectory: If path is a directory.
            NotARegularFileOrLink: If path is a device, FIFO or socket.
            RemoteOperationFailed: If the unlink fails.
        """
        self._lifecycle.require_connected("delete_file")
        path = self._normalize_path(path)

        try:
            stats = self.lstat(path)
        except NoSuchPath as e:
            raise self._error(
                NoSuchPath,
                f"Cannot delete file '{path}': it does not exist!",
                "delete_file",
                path,
            ) from e

        if stats.is_directory():
            raise self._error(
                IsADirectory,
                f"Cannot delete file '{path}': path is a directory!",
                "delete_file",
                path,
            )
        if not stats.is_file() and not stats.is_symbolic_link():
            raise self._error(
                NotARegularFileOrLink,
                f"Cannot delete file '{path}': path is not a file!",
                "delete_file",
                path,
            )

        try:
            self._run(self._sftp.remove, path)
        except TRANSPORT_ERRORS as e:
            raise self._translate_io_error(
                e, "delete_file", path, f"Failed to delete file '{path}'"
            ) from e

        logger.info("Deleted file '%s'", path)
        return self

    def move(self, source: str, target: str) -> "RemoteFileClient":
        """
        Rename source to target. Never overwrites an existing target.

        Raises:
            SourceNotFound: If source does not exist.
            TargetAlreadyExists: If target exists.
            RemoteOperationFailed: If the rename fails.
        """
        self._lifecycle.require_connected("move")
        source = self._normalize_path(source)
        target = self._normalize_path(target)
        paths = f"{source} -> {target}"

        if not self.exists(source):
            raise self._error(
                SourceNotFound,
                f"Cannot move path '{source}': it does not exist!",
                "move",
                paths,
            )
        if self.exists(target):
            raise self._error(
                TargetAlreadyExists,
                f"Cannot move path '{source}': target path '{target}' exists already!",
                "move",
                paths,
            )

        try:
            self._run(self._sftp.rename, source, target)
        except TRANSPORT_ERRORS as e:
            raise self._translate_io_error(
                e, "move", paths, f"Failed to move path '{source}'"
            ) from e

        logger.info("Moved path '%s' to '%s'", source, target)
        return self

    # Transfers

    def create_read_stream(self, path: str, chunk_size: int | None = None) -> RemoteReadStream:
        """
        Open a remote file for streamed reading.

        Raises:
            NoSuchPath: If the file does not exist.
            RemoteOperationFailed: If the file cannot be opened.
        """
        self._lifecycle.require_connected("create_read_stream")
        path = self._normalize_path(path)

        try:
            self.stat(path)
        except NoSuchPath as e:
            raise self._error(
                NoSuchPath,
                f"Failed to create stream for file '{path}': no such file!",
                "create_read_stream",
                path,
            ) from e

        try:
            handle = self._run(self._sftp.open, path, "rb")
        except TRANSPORT_ERRORS as e:
            raise self._translate_io_error(
                e, "create_read_stream", path, f"Failed to create stream for file '{path}'"
            ) from e

        logger.info("Created read stream for file '%s'", path)
        return RemoteReadStream(handle, path, chunk_size or self.transfer_config.chunk_size)

    def create_write_stream(
        self, path: str, high_water_mark: int | None = None
    ) -> RemoteWriteStream:
        """
        Open (create or truncate) a remote file for streamed writing.

        Raises:
            RemoteOperationFailed: If the file cannot be opened.
        """
        self._lifecycle.require_connected("create_write_stream")
        path = self._normalize_path(path)

        try:
            handle = self._run(self._sftp.open, path, "wb")
        except TRANSPORT_ERRORS as e:
            raise self._translate_io_error(
                e,
                "create_write_stream",
                path,
                f"Failed to create a write stream for the file '{path}'",
            ) from e
        handle.set_pipelined(True)

        logger.info("Created write stream for file '%s'", path)
        return RemoteWriteStream(
            handle, path, high_water_mark or self.transfer_config.high_water_mark
        )

    def get_file(self, path: str) -> bytes:
        """Download a whole remote file into memory."""
        self._lifecycle.require_connected("get_file")
        stream = self.create_read_stream(path)

        buffer = bytearray()
        try:
            for chunk in stream:
                logger.debug("Received %d bytes of data", len(chunk))
                buffer += chunk
        except RemoteFSError as e:
            raise self._error(
                RemoteOperationFailed,
                f"Failed to download file '{stream.path}': {e}",
                "get_file",
                stream.path,
            ) from e
        except BaseException as e:
            stream.destroy(e)
            raise

        logger.info("Downloaded file '%s' with %d bytes", stream.path, len(buffer))
        return bytes(buffer)

    def put_file(self, path: str, data: bytes) -> "RemoteFileClient":
        """Upload data as the full contents of a remote file."""
        self._lifecycle.require_connected("put_file")
        stream = self.create_write_stream(path)

        step = stream.high_water_mark
        try:
            view = memoryview(data)
            for offset in range(0, len(view), step):
                stream.write(view[offset : offset + step])
            stream.end()
        except RemoteFSError as e:
            raise self._error(
                RemoteOperationFailed,
                f"Failed to write file '{stream.path}': {e}",
                "put_file",
                stream.path,
            ) from e
        except BaseException as e:
            stream.destroy(e)
            raise

        logger.info("Wrote file '%s' with %d bytes", stream.path, len(data))
        return self
