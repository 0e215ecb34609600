"""
POSIX permission bits.

ModeBits wraps the 12-bit mode of a remote entry (9 rwx bits plus
setuid/setgid/sticky) and renders it the way ``ls -l`` does.
"""

from __future__ import annotations

from enum import Enum

S_ISUID = 0o4000
S_ISGID = 0o2000
S_ISVTX = 0o1000

MODE_MASK = 0o7777


class Principal(Enum):
    """Permission subject, valued by its bit multiplier."""

    OWNER = 64
    GROUP = 8
    OTHER = 1


class Permission(Enum):
    """Permission kind, valued by its base bit."""

    READ = 4
    WRITE = 2
    EXECUTE = 1


# (principal, permission) -> mask, e.g. (OWNER, READ) -> 0o400
PERMISSION_MASKS: dict[tuple[Principal, Permission], int] = {
    (principal, permission): principal.value * permission.value
    for principal in Principal
    for permission in Permission
}

# Special bit and the substitute characters for its execute slot (set, unset)
_SPECIAL_BITS: dict[Principal, tuple[int, str, str]] = {
    Principal.OWNER: (S_ISUID, "s", "S"),
    Principal.GROUP: (S_ISGID, "s", "S"),
    Principal.OTHER: (S_ISVTX, "t", "T"),
}


class ModeBits:
    """
    Mutable view over a 12-bit permission value.

    Every flag is read straight from ``mode`` and every setter flips exactly
    one bit, so the boolean view and the integer can never disagree.

    Example:
        >>> bits = ModeBits(0o644)
        >>> bits.owner_execute = True
        >>> bits.render()
        'rwxr--r--'
        >>> oct(bits.to_integer())
        '0o744'
    """

    __slots__ = ("_mode",)

    def __init__(self, mode: int = 0):
        self._mode = (mode or 0) & MODE_MASK

    @classmethod
    def from_integer(cls, mode: int) -> ModeBits:
        return cls(mode)

    @classmethod
    def from_string(cls, text: str) -> ModeBits:
        """
        Parse a 9-character rendering such as ``rwsr-xr-t`` back into bits.

        Raises:
            ValueError: If text is not a valid rendering.
        """
        if len(text) != 9:
            raise ValueError(f"Invalid permission string '{text}': expected 9 characters")

        bits = cls()
        for index, principal in enumerate(Principal):
            triplet = text[index * 3 : index * 3 + 3]
            special_mask, set_char, unset_char = _SPECIAL_BITS[principal]

            if triplet[0] not in "r-" or triplet[1] not in "w-":
                raise ValueError(f"Invalid permission string '{text}'")
            bits.set(principal, Permission.READ, triplet[0] == "r")
            bits.set(principal, Permission.WRITE, triplet[1] == "w")

            execute = triplet[2]
            if execute == set_char:
                bits.set(principal, Permission.EXECUTE, True)
                bits._set_mask(special_mask, True)
            elif execute == unset_char:
                bits._set_mask(special_mask, True)
            elif execute == "x":
                bits.set(principal, Permission.EXECUTE, True)
            elif execute != "-":
                raise ValueError(f"Invalid permission string '{text}'")
        return bits

    @property
    def mode(self) -> int:
        return self._mode

    def to_integer(self) -> int:
        return self._mode

    def __int__(self) -> int:
        return self._mode

    def _get_mask(self, mask: int) -> bool:
        return bool(self._mode & mask)

    def _set_mask(self, mask: int, value: bool) -> None:
        if value:
            self._mode |= mask
        else:
            self._mode &= ~mask

    def get(self, principal: Principal, permission: Permission) -> bool:
        return self._get_mask(PERMISSION_MASKS[(principal, permission)])

    def set(self, principal: Principal, permission: Permission, value: bool) -> None:
        self._set_mask(PERMISSION_MASKS[(principal, permission)], value)

    # Owner

    @property
    def owner_read(self) -> bool:
        return self.get(Principal.OWNER, Permission.READ)

    @owner_read.setter
    def owner_read(self, value: bool) -> None:
        self.set(Principal.OWNER, Permission.READ, value)

    @property
    def owner_write(self) -> bool:
        return self.get(Principal.OWNER, Permission.WRITE)

    @owner_write.setter
    def owner_write(self, value: bool) -> None:
        self.set(Principal.OWNER, Permission.WRITE, value)

    @property
    def owner_execute(self) -> bool:
        return self.get(Principal.OWNER, Permission.EXECUTE)

    @owner_execute.setter
    def owner_execute(self, value: bool) -> None:
        self.set(Principal.OWNER, Permission.EXECUTE, value)

    # Group

    @property
    def group_read(self) -> bool:
        return self.get(Principal.GROUP, Permission.READ)

    @group_read.setter
    def group_read(self, value: bool) -> None:
        self.set(Principal.GROUP, Permission.READ, value)

    @property
    def group_write(self) -> bool:
        return self.get(Principal.GROUP, Permission.WRITE)

    @group_write.setter
    def group_write(self, value: bool) -> None:
        self.set(Principal.GROUP, Permission.WRITE, value)

    @property
    def group_execute(self) -> bool:
        return self.get(Principal.GROUP, Permission.EXECUTE)

    @group_execute.setter
    def group_execute(self, value: bool) -> None:
        self.set(Principal.GROUP, Permission.EXECUTE, value)

    # Other

    @property
    def other_read(self) -> bool:
        return self.get(Principal.OTHER, Permission.READ)

    @other_read.setter
    def other_read(self, value: bool) -> None:
        self.set(Principal.OTHER, Permission.READ, value)

    @property
    def other_write(self) -> bool:
        return self.get(Principal.OTHER, Permission.WRITE)

    @other_write.setter
    def other_write(self, value: bool) -> None:
        self.set(Principal.OTHER, Permission.WRITE, value)

    @property
    def other_execute(self) -> bool:
        return self.get(Principal.OTHER, Permission.EXECUTE)

    @other_execute.setter
    def other_execute(self, value: bool) -> None:
        self.set(Principal.OTHER, Permission.EXECUTE, value)

    # Special bits

    @property
    def setuid(self) -> bool:
        return self._get_mask(S_ISUID)

    @setuid.setter
    def setuid(self, value: bool) -> None:
        self._set_mask(S_ISUID, value)

    @property
    def setgid(self) -> bool:
        return self._get_mask(S_ISGID)

    @setgid.setter
    def setgid(self, value: bool) -> None:
        self._set_mask(S_ISGID, value)

    @property
    def sticky(self) -> bool:
        return self._get_mask(S_ISVTX)

    @sticky.setter
    def sticky(self, value: bool) -> None:
        self._set_mask(S_ISVTX, value)

    def render(self) -> str:
        """Render as the 9-character rwx string used by ``ls -l``."""
        chars = []
        for principal in Principal:
            chars.append("r" if self.get(principal, Permission.READ) else "-")
            chars.append("w" if self.get(principal, Permission.WRITE) else "-")

            execute = self.get(principal, Permission.EXECUTE)
            special_mask, set_char, unset_char = _SPECIAL_BITS[principal]
            if self._get_mask(special_mask):
                chars.append(set_char if execute else unset_char)
            else:
                chars.append("x" if execute else "-")
        return "".join(chars)

    def __str__(self) -> str:
        return self.render()

    def __repr__(self) -> str:
        return f"ModeBits({self._mode:#o})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ModeBits):
            return self._mode == other._mode
        return NotImplemented
