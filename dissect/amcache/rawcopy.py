"""Reading of files that are locked by another process.

A live ``Amcache.hve`` is held open by the system without read sharing. An elevated process can still read
it by parsing the NTFS volume it lives on directly.
"""

from __future__ import annotations

import ctypes
import ntpath
import os
import sys
from contextlib import ExitStack
from typing import TYPE_CHECKING

from dissect.ntfs import NTFS
from dissect.ntfs.exceptions import Error as NtfsError
from dissect.util.stream import BufferedStream

from dissect.amcache.helpers.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable

log = get_logger(__name__)

ERROR_SHARING_VIOLATION = 32
ERROR_LOCK_VIOLATION = 33


def is_sharing_violation(exc: BaseException) -> bool:
    """Return whether ``exc`` was raised because another process holds the file open."""
    return isinstance(exc, PermissionError) and getattr(exc, "winerror", None) in (
        ERROR_SHARING_VIOLATION,
        ERROR_LOCK_VIOLATION,
    )


def is_elevated() -> bool:
    """Return whether the current process runs with administrative privileges."""
    if sys.platform == "win32":
        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError):
            return False

    return os.geteuid() == 0


def raw_copy(paths: Iterable[str]) -> list[tuple[str, bytes]]:
    """Read the given files from the raw NTFS volume they are stored on.

    The volume devices are closed again once all files are read, or when reading fails.

    Args:
        paths: Absolute Windows paths including a drive letter, e.g. ``C:\\Windows\\AppCompat\\Programs\\Amcache.hve``.

    Returns:
        ``(name, data)`` tuples, where ``name`` is the file name of each path.

    Raises:
        PermissionError: If a volume could not be opened or a file could not be read from it.
    """
    volumes: dict[str, NTFS] = {}
    result = []

    with ExitStack() as stack:
        for path in paths:
            drive, rest = ntpath.splitdrive(path)
            if not drive:
                raise PermissionError(f"Cannot raw copy {path}, it has no drive letter")

            drive = drive.upper()
            if drive not in volumes:
                device = f"\\\\.\\{drive}"
                log.debug("Opening volume %s", device)
                try:
                    fh = stack.enter_context(open(device, "rb"))
                    volumes[drive] = NTFS(stack.enter_context(BufferedStream(fh)))
                except (OSError, NtfsError) as e:
                    raise PermissionError(f"Unable to open volume {device}: {e}") from e

            log.trace("Reading %s from the MFT of %s", rest, drive)
            try:
                record = volumes[drive].mft.get(rest.replace("\\", "/"))
                data = record.open().read()
            except NtfsError as e:
                raise PermissionError(f"Unable to read {path} from volume {drive}: {e}") from e

            log.info("Raw copied %s (%d bytes)", path, len(data))
            result.append((ntpath.basename(path), data))

    return result
