from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dissect.amcache.helpers.regutil import RegistryKey, ValueType


def value_data(value: ValueType | None) -> str:
    """Return the textual representation of registry value data.

    Integers are rendered as decimal strings, multi-strings are joined by a space and binary data is
    rendered as a hexadecimal string.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bytes):
        return value.hex()
    if isinstance(value, list):
        return " ".join(value_data(item) for item in value)
    return str(value)


def to_int(value: ValueType | None) -> int | None:
    """Parse integer value data, either a real integer or a decimal or ``0x`` prefixed hexadecimal string.

    Raises:
        ValueError: If the value data is not a number.
    """
    if value is None:
        return None
    if isinstance(value, int):
        return value

    data = value_data(value).strip()
    if not data:
        return None
    if data[:2].lower() == "0x":
        return int(data[2:], 16)
    return int(data)


def to_flag(value: ValueType | None) -> bool:
    """Only the value data ``1`` is true."""
    return value_data(value).strip() == "1"


def to_sha1(value: ValueType | None) -> str:
    """Strip the ``0000`` prefix from an Amcache SHA-1 value."""
    data = value_data(value).strip()
    if len(data) <= 4:
        return ""
    return data[4:].lower()


def to_bytes(value: ValueType | None) -> bytes:
    if value is None:
        return b""
    if isinstance(value, bytes):
        return value
    return value_data(value).encode()


def live_subkeys(key: RegistryKey) -> list[RegistryKey]:
    """Return the subkeys of ``key`` that are not tombstones."""
    return [subkey for subkey in key.subkeys() if not subkey.tombstone]
