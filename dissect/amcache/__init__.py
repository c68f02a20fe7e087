from dissect.amcache.engine import detect_generation, open_hive, parse
from dissect.amcache.exceptions import (
    DecodeError,
    DirtyHiveNoLogsError,
    Error,
    HiveError,
    LockedFileAccessDeniedError,
    TransactionLogError,
)
from dissect.amcache.legacy import LegacyFile, LegacyProgram, LegacyResult
from dissect.amcache.modern import (
    DeviceContainer,
    DevicePnp,
    DriverBinary,
    DriverPackage,
    ModernFile,
    ModernProgram,
    ModernResult,
    Shortcut,
)
from dissect.amcache.result import Generation

__all__ = [
    "DecodeError",
    "DeviceContainer",
    "DevicePnp",
    "DirtyHiveNoLogsError",
    "DriverBinary",
    "DriverPackage",
    "Error",
    "Generation",
    "HiveError",
    "LegacyFile",
    "LegacyProgram",
    "LegacyResult",
    "LockedFileAccessDeniedError",
    "ModernFile",
    "ModernProgram",
    "ModernResult",
    "Shortcut",
    "TransactionLogError",
    "detect_generation",
    "open_hive",
    "parse",
]
