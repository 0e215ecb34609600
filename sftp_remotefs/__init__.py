__version__ = "0.3.0"

# Public API exports
from .config import (
    AppConfig,
    ConnectionConfig,
    LogConfig,
    SSHConfig,
    TransferConfig,
    load_config,
)
from .errors import (
    ConnectionFailed,
    DirectoryNotEmpty,
    InvalidStateTransition,
    IsADirectory,
    MissingCredentials,
    MissingParent,
    NoSuchDirectory,
    NoSuchPath,
    NotADirectory,
    NotARegularFileOrLink,
    NotConnectedError,
    PathAlreadyExists,
    RemoteFSError,
    RemoteOperationFailed,
    SourceNotFound,
    TargetAlreadyExists,
    TargetNotFound,
    UnrecognizedEntryKind,
)
from .lifecycle import ConnectionLifecycle, ConnectionState
from .permissions import ModeBits, Permission, Principal
from .sftp_client import RemoteFileClient, TrustOnFirstUsePolicy
from .stats import DirectoryEntry, EntryKind, EntryMetadata
from .streams import RemoteReadStream, RemoteWriteStream

__all__ = [
    "__version__",
    # Configuration
    "AppConfig",
    "SSHConfig",
    "ConnectionConfig",
    "TransferConfig",
    "LogConfig",
    "load_config",
    # Client
    "RemoteFileClient",
    "TrustOnFirstUsePolicy",
    "ConnectionLifecycle",
    "ConnectionState",
    # Metadata
    "ModeBits",
    "Principal",
    "Permission",
    "EntryMetadata",
    "EntryKind",
    "DirectoryEntry",
    # Streams
    "RemoteReadStream",
    "RemoteWriteStream",
    # Errors
    "RemoteFSError",
    "InvalidStateTransition",
    "NotConnectedError",
    "MissingCredentials",
    "ConnectionFailed",
    "NoSuchPath",
    "NoSuchDirectory",
    "MissingParent",
    "SourceNotFound",
    "TargetNotFound",
    "PathAlreadyExists",
    "TargetAlreadyExists",
    "NotADirectory",
    "IsADirectory",
    "DirectoryNotEmpty",
    "NotARegularFileOrLink",
    "RemoteOperationFailed",
    "UnrecognizedEntryKind",
]
