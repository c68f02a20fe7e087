#!/usr/bin/env python
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Union

from flow.record import RecordPrinter, RecordStreamWriter, RecordWriter

from dissect.amcache.engine import parse
from dissect.amcache.exceptions import HiveError
from dissect.amcache.helpers import config
from dissect.amcache.legacy import LegacyResult
from dissect.amcache.rawcopy import is_elevated
from dissect.amcache.records import iter_records
from dissect.amcache.tools.utils import (
    catch_sigpipe,
    configure_generic_arguments,
    process_generic_arguments,
    read_hash_list,
)

if TYPE_CHECKING:
    from flow.record.adapter import AbstractWriter

    from dissect.amcache.modern import ModernResult

log = logging.getLogger(__name__)
logging.lastResort = None
logging.raiseExceptions = False


def record_output(strings: bool = False, json: bool = False) -> AbstractWriter:
    if json:
        return RecordWriter("jsonfile://-")

    fp = sys.stdout.buffer

    if strings or fp.isatty():
        return RecordPrinter(fp)

    return RecordStreamWriter(fp)


def setting(flag: Any, default: Any) -> Any:
    """Command line flags override the config file, ``None`` means the flag was not given."""
    return default if flag is None else flag


def log_summary(result: Union[LegacyResult, ModernResult], shown: int) -> None:
    associated = sum(len(program.file_entries) for program in result.programs)
    unassociated = len(result.unassociated_files)

    log.info(
        "Found %d program entries and %d file entries (%d associated, %d unassociated)",
        len(result.programs),
        result.total_file_records,
        associated,
        unassociated,
    )

    if result.total_file_records:
        log.info("Unassociated file entries: %.2f%%", unassociated / result.total_file_records * 100)

    if not isinstance(result, LegacyResult):
        log.info(
            "Found %d shortcuts, %d device containers, %d PnP devices, %d driver binaries and %d driver packages",
            len(result.shortcuts),
            len(result.device_containers),
            len(result.device_pnps),
            len(result.driver_binaries),
            len(result.driver_packages),
        )

    if result.errors:
        log.warning("%d registry keys could not be decoded", len(result.errors))

    log.info("Wrote %d records", shown)


@catch_sigpipe
def main() -> int:
    help_formatter = argparse.ArgumentDefaultsHelpFormatter
    parser = argparse.ArgumentParser(
        description="Parse the programs, files, devices and drivers in an Amcache.hve registry hive",
        fromfile_prefix_chars="@",
        formatter_class=help_formatter,
    )
    parser.add_argument("hive", metavar="HIVE", type=Path, help="path to the Amcache.hve hive")
    parser.add_argument(
        "--recover-deleted", action="store_true", default=None, help="recover deleted registry keys and values"
    )
    parser.add_argument(
        "--nl",
        "--no-transaction-logs",
        dest="skip_transaction_logs",
        action="store_true",
        default=None,
        help="parse a dirty hive without transaction logs, the results may be incomplete",
    )
    parser.add_argument(
        "-i",
        "--include-associated",
        action="store_true",
        default=None,
        help="also output the file entries that are associated with a program",
    )
    parser.add_argument("-w", "--allowlist", type=Path, help="file with SHA-1 hashes to include, one per line")
    parser.add_argument(
        "-b", "--denylist", type=Path, help="file with SHA-1 hashes to exclude, one per line (overrides -w)"
    )
    parser.add_argument("-o", "--output", help="write records to the given flow.record URI, e.g. csvfile://out.csv")
    parser.add_argument("-s", "--strings", action="store_true", help="print records as strings")
    parser.add_argument("-j", "--json", action="store_true", help="output records as JSON")
    configure_generic_arguments(parser)

    args = parser.parse_args()
    process_generic_arguments(args)

    cfg = config.load(args.hive)

    if not is_elevated():
        log.warning("Not running with administrative privileges, a hive that is in use can not be read")

    try:
        allowlist = read_hash_list(setting(args.allowlist, cfg.ALLOWLIST))
        denylist = read_hash_list(setting(args.denylist, cfg.DENYLIST))
    except OSError as e:
        log.error("Unable to read hash list: %s", e)  # noqa: TRY400
        return 1

    if denylist is not None:
        log.info("Excluding %d SHA-1 hashes", len(denylist))
    elif allowlist is not None:
        log.info("Including only %d SHA-1 hashes", len(allowlist))

    try:
        result = parse(
            args.hive,
            recover_deleted=setting(args.recover_deleted, cfg.RECOVER_DELETED),
            skip_transaction_logs=setting(args.skip_transaction_logs, cfg.SKIP_TRANSACTION_LOGS),
            log=log,
        )
    except HiveError as e:
        log.error(e)  # noqa: TRY400
        log.debug("", exc_info=e)
        return 1

    rs = RecordWriter(args.output) if args.output else record_output(args.strings, args.json)

    count = 0
    try:
        for record in iter_records(
            result,
            include_associated=setting(args.include_associated, cfg.INCLUDE_ASSOCIATED),
            allowlist=allowlist,
            denylist=denylist,
        ):
            rs.write(record)
            count += 1
    finally:
        if args.output:
            rs.close()
        else:
            rs.flush()

    log_summary(result, count)
    return 0


if __name__ == "__main__":
    sys.exit(main())
