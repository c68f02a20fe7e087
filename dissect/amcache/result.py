from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Generic, Optional, TypeVar

from dissect.amcache.exceptions import DecodeError

if TYPE_CHECKING:
    import logging
    from collections.abc import Iterable, Iterator

    from dissect.amcache.helpers.regutil import RegistryKey

T = TypeVar("T")


class Generation(enum.Enum):
    """The Amcache schema generation of a hive."""

    LEGACY = "legacy"
    MODERN = "modern"


@dataclass(frozen=True)
class DecodeResult(Generic[T]):
    """The outcome of decoding a single registry key.

    Either ``record`` or ``error`` is set. When neither is set, the key was intentionally dropped.
    """

    path: str
    record: Optional[T] = None
    error: Optional[DecodeError] = None

    @property
    def dropped(self) -> bool:
        return self.record is None and self.error is None


def decode_key(key: RegistryKey, decoder: Callable[[RegistryKey], Optional[T]]) -> DecodeResult[T]:
    """Decode ``key`` with ``decoder``, capturing any failure in the result instead of raising it."""
    try:
        return DecodeResult(key.path, record=decoder(key))
    except DecodeError as e:
        e.path = e.path or key.path
        return DecodeResult(key.path, error=e)
    except Exception as e:
        return DecodeResult(key.path, error=DecodeError(f"Error decoding {key.path}: {e}", cause=e, path=key.path))


def collect(
    results: Iterable[DecodeResult[T]],
    errors: list[DecodeError],
    log: logging.Logger | logging.LoggerAdapter,
) -> Iterator[T]:
    """Yield the decoded records from ``results``, logging and collecting the errors."""
    for result in results:
        if result.error is not None:
            log.warning("Failed to decode %s: %s", result.path, result.error)
            log.debug("", exc_info=result.error)
            errors.append(result.error)
        elif result.record is not None:
            yield result.record
