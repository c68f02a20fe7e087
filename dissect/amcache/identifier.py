from __future__ import annotations

from typing import NamedTuple


class FileReference(NamedTuple):
    entry: int
    sequence: int


def decode_file_reference(name: str) -> FileReference:
    """Decode the MFT entry and sequence number from the key name of a legacy Amcache file entry.

    The key name is the file reference in hexadecimal, with the sequence number in the upper 16 bits
    of the lower 32 bits. Trailing zeroes of the sequence number digits are dropped before parsing,
    which is known to be wrong for sequence numbers that legitimately end in a zero nibble.

    Example:
        ``1F`` is padded to ``0000001F``, which decodes to entry ``31`` and sequence ``0``.

    Raises:
        ValueError: If ``name`` is not a hexadecimal string.
    """
    padded = name.rjust(8, "0")

    sequence = padded[:4].rstrip("0") or "0"
    return FileReference(entry=int(padded[4:], 16), sequence=int(sequence, 16))
