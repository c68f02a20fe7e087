"""Primary hive images and their recovery from transaction logs.

A hive that was not cleanly written to disk has mismatching sequence numbers in its base block. The pending
writes live in the transaction logs next to the hive (``.LOG``, ``.LOG1``, ``.LOG2``). They are replayed by
``regipy``, which works on files, so the hive and its logs are staged in a temporary directory first.
"""

from __future__ import annotations

import logging
from pathlib import Path
from tempfile import TemporaryDirectory
from typing import TYPE_CHECKING, Union

from dissect.regf.c_regf import c_regf
from regipy.recovery import apply_transaction_logs

from dissect.amcache.exceptions import HiveError, TransactionLogError
from dissect.amcache.helpers.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable

log = get_logger(__name__)

Logger = Union[logging.Logger, logging.LoggerAdapter]

REGF_SIGNATURE = b"regf"
BASE_BLOCK_SIZE = len(c_regf.HBASE_BLOCK)
LOG_BASE_BLOCK_SIZE = 512

# regipy replays a primary and an optional secondary log
MAX_REPLAYED_LOGS = 2


def read_base_block(data: bytes) -> c_regf.HBASE_BLOCK:
    """Parse the base block at the start of a hive or transaction log.

    A log only stores the first 512 bytes of a base block, the remainder is read as zeroes.
    """
    return c_regf.HBASE_BLOCK(data[:BASE_BLOCK_SIZE].ljust(BASE_BLOCK_SIZE, b"\x00"))


def is_transaction_log(data: bytes) -> bool:
    """Return whether ``data`` holds a log base block followed by anything to replay.

    Windows leaves empty or zeroed logs behind after a clean flush.
    """
    return data[:4] == REGF_SIGNATURE and bool(data[LOG_BASE_BLOCK_SIZE:].strip(b"\x00"))


class HiveImage:
    """The raw contents of a primary hive file.

    Args:
        data: The raw contents of the primary hive file.

    Raises:
        HiveError: If ``data`` does not start with a registry base block.
    """

    def __init__(self, data: bytes):
        if len(data) < BASE_BLOCK_SIZE or data[:4] != REGF_SIGNATURE:
            raise HiveError("Not a registry hive, invalid base block")

        self.data = bytes(data)
        self.header = read_base_block(self.data)

    def __repr__(self) -> str:
        return (
            f"<HiveImage sequence1={self.primary_sequence_number} sequence2={self.secondary_sequence_number}"
            f" size={len(self.data)}>"
        )

    @property
    def primary_sequence_number(self) -> int:
        return self.header.Sequence1

    @property
    def secondary_sequence_number(self) -> int:
        return self.header.Sequence2

    @property
    def dirty(self) -> bool:
        """Whether the last write to the hive did not complete."""
        return self.header.Sequence1 != self.header.Sequence2

    def process_transaction_logs(
        self, logs: Iterable[tuple[str, bytes]], strict: bool = True, log: Logger = log
    ) -> tuple[HiveImage, int]:
        """Replay the given transaction logs against this image.

        Logs without anything to replay are skipped. The remaining logs are replayed in the given order, the
        first as the primary log and the second as the secondary log. Only the last two logs are replayed.

        Args:
            logs: ``(name, data)`` tuples of the transaction logs, in filename order.
            strict: Raise if the logs can not be replayed, instead of logging a warning.
            log: The logger to report skipped logs to.

        Returns:
            The recovered image and the number of dirty pages written to it. If no log could be replayed,
            this image itself and ``0``.

        Raises:
            TransactionLogError: If a log could not be replayed and ``strict`` is set.
        """
        replayable = []
        for name, data in logs:
            if not is_transaction_log(data):
                log.debug("Skipping empty transaction log %s", name)
                continue

            replayable.append((Path(name).name, data))

        if not replayable:
            return self, 0

        if len(replayable) > MAX_REPLAYED_LOGS:
            skipped = replayable[:-MAX_REPLAYED_LOGS]
            replayable = replayable[-MAX_REPLAYED_LOGS:]
            log.warning(
                "Skipping transaction logs %s, only the last two are replayed", ", ".join(name for name, _ in skipped)
            )

        names = ", ".join(name for name, _ in replayable)

        with TemporaryDirectory(prefix="amcache-") as tmp_dir:
            staging = Path(tmp_dir)

            hive_path = staging.joinpath("primary.hve")
            hive_path.write_bytes(self.data)

            log_paths = []
            for name, data in replayable:
                log_path = staging.joinpath(name)
                log_path.write_bytes(data)
                log_paths.append(str(log_path))

            try:
                restored_path, recovered = apply_transaction_logs(
                    str(hive_path),
                    primary_log_path=log_paths[0],
                    secondary_log_path=log_paths[1] if len(log_paths) > 1 else None,
                    restored_hive_path=str(staging.joinpath("restored.hve")),
                )
                image = HiveImage(Path(restored_path).read_bytes())
            except Exception as e:
                if strict:
                    raise TransactionLogError(f"Unable to replay transaction logs {names}", cause=e)
                log.warning("Unable to replay transaction logs %s: %s", names, e)
                return self, 0

        log.debug("Replayed %s, %d dirty pages recovered", names, recovered)
        return image, recovered
