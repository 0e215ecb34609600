"""
Exception hierarchy for sftp-remotefs.

Every error derives from RemoteFSError and from the closest built-in
exception, so callers can catch either ``NoSuchPath`` or a plain
``FileNotFoundError``.
"""

import errno


class RemoteFSError(Exception):
    """Base class for all errors raised by the client.

    Attributes:
        action: Name of the client operation that failed, if known.
        path: Remote path (or "source -> target" pair) involved, if any.
    """

    def __init__(self, message: str, action: str | None = None, path: str | None = None):
        super().__init__(message)
        self.message = message
        self.action = action
        self.path = path

    def __str__(self) -> str:
        return self.message


# Lifecycle


class InvalidStateTransition(RemoteFSError, RuntimeError):
    pass


class NotConnectedError(RemoteFSError, RuntimeError):
    pass


class MissingCredentials(RemoteFSError, ValueError):
    pass


class ConnectionFailed(RemoteFSError, ConnectionError):
    pass


# Paths


class NoSuchPath(RemoteFSError, FileNotFoundError):
    pass


class NoSuchDirectory(NoSuchPath):
    pass


class MissingParent(NoSuchPath):
    pass


class SourceNotFound(NoSuchPath):
    pass


class TargetNotFound(NoSuchPath):
    pass


class PathAlreadyExists(RemoteFSError, FileExistsError):
    pass


class TargetAlreadyExists(PathAlreadyExists):
    pass


class NotADirectory(RemoteFSError, NotADirectoryError):
    pass


class IsADirectory(RemoteFSError, IsADirectoryError):
    pass


class DirectoryNotEmpty(RemoteFSError, OSError):
    pass


class NotARegularFileOrLink(RemoteFSError, OSError):
    pass


# Transport


class RemoteOperationFailed(RemoteFSError, OSError):
    pass


class UnrecognizedEntryKind(RemoteFSError, TypeError):
    pass


def is_not_found(error: BaseException) -> bool:
    """Return True if a transport error means the remote path does not exist."""
    return isinstance(error, FileNotFoundError) or getattr(error, "errno", None) == errno.ENOENT
