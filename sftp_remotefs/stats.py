"""
Metadata for a single remote entry.

Wraps a paramiko SFTPAttributes object (from stat, lstat or a directory
listing) into an immutable EntryMetadata with normalized timestamps. Permission
bits are handed out as a fresh ModeBits on every access.
"""

from __future__ import annotations

import stat
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import NamedTuple

import paramiko

from .errors import UnrecognizedEntryKind
from .permissions import ModeBits


class EntryKind(Enum):
    """Type of a filesystem node, valued by its ``ls -l`` glyph."""

    DIRECTORY = "d"
    FILE = "-"
    BLOCK_DEVICE = "b"
    CHARACTER_DEVICE = "c"
    SYMLINK = "l"
    FIFO = "p"
    SOCKET = "s"

    @property
    def glyph(self) -> str:
        return self.value

    @classmethod
    def from_mode(cls, mode: int) -> EntryKind:
        """
        Classify a raw st_mode.

        Raises:
            UnrecognizedEntryKind: If the type bits match no known kind.
        """
        if stat.S_ISDIR(mode):
            return cls.DIRECTORY
        if stat.S_ISREG(mode):
            return cls.FILE
        if stat.S_ISBLK(mode):
            return cls.BLOCK_DEVICE
        if stat.S_ISCHR(mode):
            return cls.CHARACTER_DEVICE
        if stat.S_ISLNK(mode):
            return cls.SYMLINK
        if stat.S_ISFIFO(mode):
            return cls.FIFO
        if stat.S_ISSOCK(mode):
            return cls.SOCKET
        raise UnrecognizedEntryKind(f"Unexpected file type in mode {mode:#o}")


@dataclass(frozen=True)
class EntryMetadata:
    """Read-only stat result. Times are milliseconds since the epoch."""

    uid: int
    gid: int
    size: int
    atime: int
    mtime: int
    mode: int
    kind: EntryKind

    @classmethod
    def from_attributes(cls, attrs: paramiko.SFTPAttributes) -> EntryMetadata:
        """
        Build metadata from a paramiko SFTPAttributes.

        Missing numeric fields default to 0. The protocol reports times in
        seconds; they are stored as milliseconds.

        Raises:
            UnrecognizedEntryKind: If st_mode carries no recognizable type.
        """
        mode = attrs.st_mode or 0
        return cls(
            uid=attrs.st_uid or 0,
            gid=attrs.st_gid or 0,
            size=max(attrs.st_size or 0, 0),
            atime=int((attrs.st_atime or 0) * 1000),
            mtime=int((attrs.st_mtime or 0) * 1000),
            mode=mode,
            kind=EntryKind.from_mode(mode),
        )

    @property
    def permissions(self) -> ModeBits:
        """A fresh ModeBits for this entry. Changing it does not touch the metadata."""
        return ModeBits(self.mode)

    def is_directory(self) -> bool:
        return self.kind is EntryKind.DIRECTORY

    def is_file(self) -> bool:
        return self.kind is EntryKind.FILE

    def is_block_device(self) -> bool:
        return self.kind is EntryKind.BLOCK_DEVICE

    def is_character_device(self) -> bool:
        return self.kind is EntryKind.CHARACTER_DEVICE

    def is_symbolic_link(self) -> bool:
        return self.kind is EntryKind.SYMLINK

    def is_fifo(self) -> bool:
        return self.kind is EntryKind.FIFO

    def is_socket(self) -> bool:
        return self.kind is EntryKind.SOCKET

    @property
    def accessed_at(self) -> datetime:
        return datetime.fromtimestamp(self.atime / 1000)

    @property
    def modified_at(self) -> datetime:
        return datetime.fromtimestamp(self.mtime / 1000)

    def render(self) -> str:
        """Render as the 10-character mode column of ``ls -l``, e.g. ``drwxr-xr-x``."""
        return self.kind.glyph + self.permissions.render()

    def __str__(self) -> str:
        return self.render()


class DirectoryEntry(NamedTuple):
    """One row of a detailed directory listing."""

    filename: str
    stats: EntryMetadata
