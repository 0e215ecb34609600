"""
Shared pytest fixtures for sftp-remotefs tests.
"""

import errno
import posixpath
import stat as stat_module
from collections.abc import Generator
from pathlib import Path
from unittest.mock import MagicMock

import paramiko
import pytest

from sftp_remotefs.config import ConnectionConfig, SSHConfig, TransferConfig
from sftp_remotefs.lifecycle import ConnectionState
from sftp_remotefs.sftp_client import RemoteFileClient


class FakeFile:
    """In-memory stand-in for paramiko.SFTPFile."""

    def __init__(self, node: dict, path: str, mode: str, calls: list):
        self.node = node
        self.path = path
        self.mode = mode
        self.calls = calls
        self.position = 0
        self.closed = False
        self.pipelined = False
        self.read_error: Exception | None = None
        self.write_error: Exception | None = None

    def read(self, size: int) -> bytes:
        if self.read_error is not None:
            raise self.read_error
        data = bytes(self.node["data"][self.position : self.position + size])
        self.position += len(data)
        self.calls.append(("read", self.path, len(data)))
        return data

    def write(self, data: bytes) -> None:
        if self.write_error is not None:
            raise self.write_error
        self.node["data"] += data
        self.calls.append(("write", self.path, len(data)))

    def set_pipelined(self, pipelined: bool = True) -> None:
        self.pipelined = pipelined

    def close(self) -> None:
        self.closed = True
        self.calls.append(("close", self.path))


class FakeSFTP:
    """
    In-memory SFTP channel that records every primitive in call order.

    Nodes are keyed by absolute path. Errors mimic paramiko: IOError with an
    errno, so ENOENT arrives as FileNotFoundError.
    """

    def __init__(self):
        self.nodes: dict[str, dict] = {"/": self._node(stat_module.S_IFDIR | 0o755)}
        self.calls: list[tuple] = []
        self.failures: dict[tuple[str, str], Exception] = {}
        self.files: list[FakeFile] = []

    @staticmethod
    def _node(mode: int, data: bytes = b"") -> dict:
        return {"mode": mode, "data": bytearray(data), "uid": 1000, "gid": 1000}

    # Test setup helpers

    def add_dir(self, path: str, mode: int = 0o755) -> None:
        self.nodes[path] = self._node(stat_module.S_IFDIR | mode)

    def add_file(self, path: str, data: bytes = b"", mode: int = 0o644) -> None:
        self.nodes[path] = self._node(stat_module.S_IFREG | mode, data)

    def add_node(self, path: str, type_bits: int, mode: int = 0o644) -> None:
        self.nodes[path] = self._node(type_bits | mode)

    def fail(self, op: str, path: str, error: Exception) -> None:
        self.failures[(op, path)] = error

    def primitive_calls(self, *ops: str) -> list[tuple]:
        return [call for call in self.calls if call[0] in ops]

    # Internals

    def _record(self, op: str, *args) -> None:
        self.calls.append((op, *args))
        failure = self.failures.get((op, args[0]))
        if failure is not None:
            raise failure

    def _lookup(self, path: str) -> dict:
        node = self.nodes.get(path)
        if node is None:
            raise IOError(errno.ENOENT, "No such file")
        return node

    def _children(self, path: str) -> list[str]:
        return sorted(
            name for name in self.nodes if name != path and posixpath.dirname(name) == path
        )

    def _attributes(self, path: str) -> paramiko.SFTPAttributes:
        node = self._lookup(path)
        attrs = paramiko.SFTPAttributes()
        attrs.filename = posixpath.basename(path)
        attrs.st_mode = node["mode"]
        attrs.st_size = len(node["data"])
        attrs.st_uid = node["uid"]
        attrs.st_gid = node["gid"]
        attrs.st_atime = 1700000000
        attrs.st_mtime = 1700000100
        return attrs

    # paramiko.SFTPClient surface

    def stat(self, path):
        self._record("stat", path)
        return self._attributes(path)

    def lstat(self, path):
        self._record("lstat", path)
        return self._attributes(path)

    def listdir(self, path):
        self._record("listdir", path)
        self._lookup(path)
        return [posixpath.basename(child) for child in self._children(path)]

    def listdir_attr(self, path):
        self._record("listdir_attr", path)
        self._lookup(path)
        return [self._attributes(child) for child in self._children(path)]

    def mkdir(self, path, mode=0o777):
        self._record("mkdir", path)
        if path in self.nodes:
            raise IOError(errno.EEXIST, "File exists")
        self._lookup(posixpath.dirname(path))
        self.add_dir(path)

    def remove(self, path):
        self._record("remove", path)
        self._lookup(path)
        del self.nodes[path]

    def rmdir(self, path):
        self._record("rmdir", path)
        self._lookup(path)
        if self._children(path):
            raise IOError(errno.ENOTEMPTY, "Directory not empty")
        del self.nodes[path]

    def rename(self, oldpath, newpath):
        self._record("rename", oldpath, newpath)
        self._lookup(oldpath)
        for name in [oldpath, *self._descendants(oldpath)]:
            self.nodes[newpath + name[len(oldpath) :]] = self.nodes.pop(name)

    def _descendants(self, path: str) -> list[str]:
        return [name for name in self.nodes if name.startswith(path + "/")]

    def chmod(self, path, mode):
        self._record("chmod", path, mode)
        node = self._lookup(path)
        node["mode"] = stat_module.S_IFMT(node["mode"]) | mode

    def open(self, path, mode="r"):
        self._record("open", path, mode)
        if "w" in mode:
            self.add_file(path)
        node = self._lookup(path)
        handle = FakeFile(node, path, mode, self.calls)
        self.files.append(handle)
        return handle

    def close(self):
        self.calls.append(("close_channel",))


@pytest.fixture
def tmp_config_file(tmp_path: Path) -> Generator[Path, None, None]:
    """
    Creates a temporary INI configuration file for config tests.

    Returns:
        Path to the temporary config file.
    """
    config_content = """[ssh]
host = testserver.local
port = 2222
username = testuser
password = testpass

[connection]
timeout_seconds = 45
keepalive_interval_seconds = 90

[transfer]
chunk_size = 1024
high_water_mark = 4096

[logging]
level = DEBUG
file = test.log
console = false
"""
    config_path = tmp_path / "test_config.ini"
    config_path.write_text(config_content, encoding="utf-8")
    yield config_path


@pytest.fixture
def minimal_config_file(tmp_path: Path) -> Generator[Path, None, None]:
    """
    Creates a minimal INI configuration file with only required fields.

    Returns:
        Path to the temporary config file.
    """
    config_path = tmp_path / "minimal_config.ini"
    config_path.write_text("[ssh]\nhost = minimal.server.com\n", encoding="utf-8")
    yield config_path


@pytest.fixture
def ssh_config() -> SSHConfig:
    """Creates a standard SSHConfig with password auth."""
    return SSHConfig(
        host="test.ssh.local",
        port=22,
        username="testuser",
        password="testpass",
    )


@pytest.fixture
def conn_config() -> ConnectionConfig:
    return ConnectionConfig(timeout_seconds=30, keepalive_interval_seconds=60)


@pytest.fixture
def transfer_config() -> TransferConfig:
    """Small sizes so streams need several chunks in tests."""
    return TransferConfig(chunk_size=4, high_water_mark=8)


@pytest.fixture
def fake_sftp() -> FakeSFTP:
    return FakeSFTP()


@pytest.fixture
def client(conn_config, transfer_config, fake_sftp) -> Generator[RemoteFileClient, None, None]:
    """
    Creates a connected RemoteFileClient backed by the in-memory FakeSFTP.

    The lifecycle jumps straight from CONSTRUCTED to CONNECTED, which the
    rank ordering allows.
    """
    client = RemoteFileClient(conn_config, transfer_config)
    client._ssh = MagicMock(spec=paramiko.SSHClient)
    client._sftp = fake_sftp
    client._lifecycle.transition(ConnectionState.CONNECTED)
    yield client


@pytest.fixture
def mock_sftp() -> MagicMock:
    """Creates a mocked paramiko.SFTPClient."""
    return MagicMock(spec=paramiko.SFTPClient)


@pytest.fixture
def mock_client(conn_config, transfer_config, mock_sftp) -> Generator[RemoteFileClient, None, None]:
    """Creates a connected RemoteFileClient over a MagicMock SFTP channel."""
    client = RemoteFileClient(conn_config, transfer_config)
    client._ssh = MagicMock(spec=paramiko.SSHClient)
    client._sftp = mock_sftp
    client._lifecycle.transition(ConnectionState.CONNECTED)
    yield client
