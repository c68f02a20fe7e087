from __future__ import annotations

import io
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

from dissect.regf.exceptions import Error as RegfError

from dissect.amcache.exceptions import DirtyHiveNoLogsError, HiveError, LockedFileAccessDeniedError
from dissect.amcache.helpers.logging import HiveLogAdapter, get_logger
from dissect.amcache.helpers.regutil import RegfHive
from dissect.amcache.hive import HiveImage
from dissect.amcache.legacy import FILE_KEY, PROGRAMS_KEY, LegacyDecoder, LegacyResult
from dissect.amcache.modern import APPLICATION_KEY, ModernDecoder, ModernResult
from dissect.amcache.rawcopy import is_elevated, is_sharing_violation, raw_copy
from dissect.amcache.result import Generation

if TYPE_CHECKING:
    from collections.abc import Iterator

    from dissect.amcache.helpers.regutil import RegistryHive

log = get_logger(__name__)

Logger = Union[logging.Logger, logging.LoggerAdapter]


def find_transaction_logs(path: Path) -> list[Path]:
    """Return the transaction logs of the hive at ``path`` (``<name>.LOG``, ``<name>.LOG1``, ...), sorted by name."""
    prefix = f"{path.name}.log".lower()
    return sorted(
        (entry for entry in path.parent.iterdir() if entry.is_file() and entry.name.lower().startswith(prefix)),
        key=lambda entry: entry.name.lower(),
    )


def read_files(paths: list[Path], log: Logger = log) -> list[tuple[str, bytes]]:
    """Read the given files, falling back to a raw copy from the volume if they are locked.

    Raises:
        LockedFileAccessDeniedError: If a file is locked and the process is not elevated.
        HiveError: If a file could not be read for any other reason.
    """
    try:
        return [(path.name, path.read_bytes()) for path in paths]
    except PermissionError as e:
        if not is_sharing_violation(e):
            raise HiveError(f"Unable to read {e.filename}", cause=e)

        if not is_elevated():
            raise LockedFileAccessDeniedError(
                f"{e.filename} is locked by another process, retry with administrative privileges", cause=e
            )

        log.info("%s is locked by another process, copying from the raw volume", e.filename)
        try:
            return raw_copy([str(path.absolute()) for path in paths])
        except PermissionError as raw_e:
            raise LockedFileAccessDeniedError(f"Unable to raw copy {e.filename}", cause=raw_e)
    except OSError as e:
        raise HiveError(f"Unable to read {e.filename}", cause=e)


@contextmanager
def open_hive(
    path: Union[Path, str],
    recover_deleted: bool = False,
    skip_transaction_logs: bool = False,
    log: Logger = log,
) -> Iterator[RegistryHive]:
    """Open an Amcache hive, replaying its transaction logs first if the hive is dirty.

    Args:
        path: The path to the hive file.
        recover_deleted: Also return keys recovered from unallocated hive space, if the backend supports it.
        skip_transaction_logs: Parse a dirty hive as is if its transaction logs can not recover it.
        log: The logger to report recovery progress to.

    Raises:
        DirtyHiveNoLogsError: If the hive is dirty, no transaction log recovers it and ``skip_transaction_logs``
            is not set.
        LockedFileAccessDeniedError: If the hive is locked and can not be copied.
        TransactionLogError: If a transaction log could not be replayed.
        HiveError: If the hive can not be read or parsed.
    """
    path = Path(path)

    if recover_deleted:
        log.info("Recovery of deleted keys is not supported by the regf backend, only allocated keys are parsed")

    ((_, data),) = read_files([path], log)
    image = HiveImage(data)

    if image.dirty:
        log.info(
            "Hive is dirty (primary sequence number %d, secondary sequence number %d)",
            image.primary_sequence_number,
            image.secondary_sequence_number,
        )

        log_paths = find_transaction_logs(path)
        recovered = 0
        if log_paths:
            image, recovered = image.process_transaction_logs(read_files(log_paths, log), strict=True, log=log)
            log.info("Recovered %d dirty pages from %d transaction log(s)", recovered, len(log_paths))

        if not recovered or image.dirty:
            reason = "its transaction logs hold nothing to replay" if log_paths else "has no transaction logs"
            if not skip_transaction_logs:
                raise DirtyHiveNoLogsError(f"Hive is dirty and {reason} ({path.name}.LOG* in {path.parent})")
            log.warning("Hive is dirty and %s, data may be incomplete", reason)

    fh = io.BytesIO(image.data)
    try:
        try:
            hive = RegfHive(fh, str(path))
        except (RegfError, EOFError) as e:
            raise HiveError(f"Unable to parse hive {path}", cause=e)

        yield hive
    finally:
        fh.close()


def detect_generation(hive: RegistryHive) -> Optional[Generation]:
    """Return the Amcache schema generation of ``hive``, or ``None`` if it holds neither schema."""
    if hive.has_key(APPLICATION_KEY):
        return Generation.MODERN

    if hive.has_key(PROGRAMS_KEY) or hive.has_key(FILE_KEY):
        return Generation.LEGACY

    return None


def parse(
    path: Union[Path, str],
    recover_deleted: bool = False,
    skip_transaction_logs: bool = False,
    log: Optional[Logger] = None,
) -> Union[LegacyResult, ModernResult]:
    """Parse the programs, files, devices and drivers of an Amcache hive.

    Args:
        path: The path to the hive file.
        recover_deleted: Also decode keys recovered from unallocated hive space, if the backend supports it.
        skip_transaction_logs: Parse a dirty hive as is if its transaction logs can not recover it.
        log: The logger to report to, messages are prefixed with the hive path.

    Returns:
        A :class:`LegacyResult` or :class:`ModernResult`, depending on the schema of the hive.
    """
    log = HiveLogAdapter(log or get_logger("dissect.amcache"), {"hive": str(path)})

    with open_hive(path, recover_deleted, skip_transaction_logs, log) as hive:
        generation = detect_generation(hive)

        if generation is Generation.MODERN:
            log.debug("Detected modern Amcache schema")
            return ModernDecoder(hive, log).decode()

        if generation is Generation.LEGACY:
            log.debug("Detected legacy Amcache schema")
            return LegacyDecoder(hive, log).decode()

        log.warning("Hive contains neither a legacy nor a modern Amcache inventory")
        return LegacyResult()
