"""Conversion of the timestamp encodings found in Amcache hives to timezone aware UTC datetimes.

Three encodings occur:

- Unix epoch seconds, for the install dates of legacy programs, the link date of legacy files and the
  timestamp of modern driver binaries.
- Windows FILETIME, for the created and modified timestamps of legacy files.
- Date/time strings such as ``07/21/2021 10:50:31``, for the modern inventory. These are written with the
  invariant culture, so ambiguous dates are month first.

A value that is empty, zero or cannot be converted results in ``None``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Union

from dateutil import parser as dateutil
from dissect.util.ts import from_unix, wintimestamp

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

RawTimestamp = Union[int, str, bytes, None]


def _to_int64(value: RawTimestamp) -> int | None:
    if value is None:
        return None

    if isinstance(value, bytes):
        if len(value) not in (4, 8):
            return None
        value = int.from_bytes(value, "little", signed=True)

    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        try:
            value = int(value, 0) if value.lower().startswith("0x") else int(value)
        except ValueError:
            return None

    if not isinstance(value, int) or not INT64_MIN <= value <= INT64_MAX:
        return None

    return value


def normalize(value: datetime | None) -> datetime | None:
    """Return ``value`` as a UTC datetime. Naive datetimes are interpreted as UTC."""
    if value is None:
        return None

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)

    return value.astimezone(timezone.utc)


def from_unix_seconds(value: RawTimestamp) -> datetime | None:
    """Convert a Unix epoch seconds value. Values of zero or less are treated as absent."""
    value = _to_int64(value)
    if value is None or value <= 0:
        return None

    try:
        return normalize(from_unix(value))
    except (OverflowError, ValueError, OSError):
        return None


def from_filetime(value: RawTimestamp) -> datetime | None:
    """Convert a Windows FILETIME value (100 nanosecond intervals since 1601-01-01 UTC)."""
    value = _to_int64(value)
    if value is None:
        return None

    try:
        return normalize(wintimestamp(value))
    except (OverflowError, ValueError, OSError):
        return None


def from_datetime_string(value: str | None) -> datetime | None:
    """Convert a date/time string such as ``07/21/2021 10:50:31``. Ambiguous dates are read month first."""
    if not value or not isinstance(value, str) or not value.strip():
        return None

    try:
        return normalize(dateutil.parse(value.strip()))
    except (ValueError, OverflowError):
        return None
