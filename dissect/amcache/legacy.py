"""Decoder for the legacy Amcache schema (Windows 7 and early Windows 8).

Programs are stored under ``Root\\Programs``, one subkey per program. Files are stored under
``Root\\File\\<volume guid>\\<file reference>``. Both use short value names that only make sense with a
lookup table: programs use numeric strings, files use hexadecimal numbers.

References:
    - https://www.swiftforensics.com/2013/12/amcachehve-in-windows-8-goldmine-for.html
    - https://binaryforay.blogspot.com/2015/07/amcachehve-in-windows-10-and-fresh-way.html
"""

from __future__ import annotations

import logging
import ntpath
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Optional

from dissect.amcache.associate import associate
from dissect.amcache.exceptions import DecodeError, RegistryKeyNotFoundError
from dissect.amcache.helpers.utils import live_subkeys, to_bytes, to_int, to_sha1, value_data
from dissect.amcache.identifier import decode_file_reference
from dissect.amcache.result import Generation, collect, decode_key
from dissect.amcache.timestamps import from_filetime, from_unix_seconds

if TYPE_CHECKING:
    from collections.abc import Iterator

    from dissect.amcache.helpers.regutil import RegistryHive, RegistryKey, ValueType

PROGRAMS_KEY = "Root\\Programs"
FILE_KEY = "Root\\File"


def parse_file_links(value: ValueType) -> list[tuple[str, str]]:
    """Parse the ``Files`` value of a program into ``(volume guid, file reference)`` tuples.

    Example:
        ``0000f519feec486de87ed73cb92d3cac802400000000@3f2``
    """
    chunks = value if isinstance(value, list) else value_data(value).split()

    links = []
    for chunk in chunks:
        chunk = chunk.strip()
        if not chunk:
            continue

        volume, sep, reference = chunk.partition("@")
        if not sep:
            raise ValueError(f"Invalid file link: {chunk!r}")
        links.append((volume, reference))

    return links


# Lowercase value name -> (field name, converter)
PROGRAM_FIELDS: dict[str, tuple[str, Callable[[ValueType], Any]]] = {
    "0": ("name", value_data),
    "1": ("version", value_data),
    "2": ("publisher", value_data),
    "3": ("language_code", value_data),
    "5": ("unknown_dword_5", to_int),
    "6": ("install_source", value_data),
    "7": ("uninstall_key", value_data),
    "a": ("install_date_a", from_unix_seconds),
    "b": ("install_date_b", from_unix_seconds),
    "d": ("path_list", value_data),
    "f": ("product_code", value_data),
    "10": ("package_code", value_data),
    "11": ("msi_product_code", value_data),
    "12": ("msi_package_code", value_data),
    "13": ("unknown_dword_13", to_int),
    "14": ("unknown_dword_14", to_int),
    "15": ("unknown_dword_15", to_int),
    "16": ("unknown_bytes", to_bytes),
    "17": ("unknown_qword_17", to_int),
    "18": ("unknown_dword_18", to_int),
    "files": ("file_links", parse_file_links),
}

FILE_FIELDS: dict[int, tuple[str, Callable[[ValueType], Any]]] = {
    0x0: ("product_name", value_data),
    0x1: ("company_name", value_data),
    0x2: ("file_version_number", value_data),
    0x3: ("language_code", to_int),
    0x4: ("switchback_context", value_data),
    0x5: ("file_version_string", value_data),
    0x6: ("file_size", to_int),
    0x7: ("pe_size_of_image", to_int),
    0x8: ("pe_header_hash", value_data),
    0x9: ("pe_header_checksum", to_int),
    0xA: ("bin_product_version", to_int),
    0xB: ("bin_file_version", to_int),
    0xC: ("file_description", value_data),
    0xD: ("linker_version", to_int),
    0xF: ("link_date", from_unix_seconds),
    0x10: ("binary_type", to_int),
    0x11: ("last_modified", from_filetime),
    0x12: ("created", from_filetime),
    0x15: ("full_path", value_data),
    0x16: ("is_local", to_int),
    0x17: ("last_modified_store", from_filetime),
    0x100: ("program_id", value_data),
    0x101: ("sha1", to_sha1),
    0x106: ("guess_program_id", value_data),
}


@dataclass(frozen=True)
class LegacyProgram:
    """A program from ``Root\\Programs``. The program id is the name of its subkey."""

    program_id: str
    last_write: Optional[datetime] = None
    name: str = ""
    version: str = ""
    publisher: str = ""
    language_code: str = ""
    install_source: str = ""
    uninstall_key: str = ""
    install_date_a: Optional[datetime] = None
    install_date_b: Optional[datetime] = None
    path_list: str = ""
    product_code: str = ""
    package_code: str = ""
    msi_product_code: str = ""
    msi_package_code: str = ""
    unknown_dword_5: Optional[int] = None
    unknown_dword_13: Optional[int] = None
    unknown_dword_14: Optional[int] = None
    unknown_dword_15: Optional[int] = None
    unknown_qword_17: Optional[int] = None
    unknown_dword_18: Optional[int] = None
    unknown_bytes: bytes = b""
    file_links: list[tuple[str, str]] = field(default_factory=list)
    file_entries: list[LegacyFile] = field(default_factory=list, compare=False, repr=False)

    @property
    def install_date(self) -> Optional[datetime]:
        return self.install_date_a or self.install_date_b


@dataclass(frozen=True)
class LegacyFile:
    """A file from ``Root\\File\\<volume guid>\\<file reference>``."""

    volume_id: str
    file_id: str
    volume_last_write: Optional[datetime] = None
    file_last_write: Optional[datetime] = None
    mft_entry_number: Optional[int] = None
    mft_sequence_number: Optional[int] = None
    full_path: str = ""
    product_name: str = ""
    company_name: str = ""
    file_version_number: str = ""
    file_version_string: str = ""
    file_description: str = ""
    language_code: Optional[int] = None
    switchback_context: str = ""
    file_size: Optional[int] = None
    pe_size_of_image: Optional[int] = None
    pe_header_hash: str = ""
    pe_header_checksum: Optional[int] = None
    bin_product_version: Optional[int] = None
    bin_file_version: Optional[int] = None
    linker_version: Optional[int] = None
    binary_type: Optional[int] = None
    is_local: Optional[int] = None
    guess_program_id: str = ""
    link_date: Optional[datetime] = None
    created: Optional[datetime] = None
    last_modified: Optional[datetime] = None
    last_modified_store: Optional[datetime] = None
    program_id: str = ""
    sha1: str = ""
    application_name: str = ""

    @property
    def file_extension(self) -> str:
        return ntpath.splitext(self.full_path)[1]


@dataclass(frozen=True)
class LegacyResult:
    """The programs and files of a legacy Amcache hive."""

    generation: ClassVar[Generation] = Generation.LEGACY

    programs: list[LegacyProgram] = field(default_factory=list)
    unassociated_files: list[LegacyFile] = field(default_factory=list)
    total_file_records: int = 0
    errors: list[DecodeError] = field(default_factory=list)


class LegacyDecoder:
    """Decode the programs and files of a legacy Amcache hive.

    Args:
        hive: The Amcache hive.
        log: The logger to report unknown values and undecodable keys to.
    """

    def __init__(self, hive: RegistryHive, log: logging.Logger | logging.LoggerAdapter | None = None):
        self.hive = hive
        self.log = log or logging.getLogger(__name__)
        self.errors: list[DecodeError] = []

    def decode(self) -> LegacyResult:
        programs = list(self.programs())
        files = list(self.files())

        unassociated = associate(programs, files)

        return LegacyResult(
            programs=programs,
            unassociated_files=unassociated,
            total_file_records=len(files),
            errors=self.errors,
        )

    def read_key_subkeys(self, key: str) -> list[RegistryKey]:
        try:
            return live_subkeys(self.hive.key(key))
        except RegistryKeyNotFoundError:
            self.log.warning('Could not find registry key "%s"', key)
            return []

    def programs(self) -> Iterator[LegacyProgram]:
        seen = set()

        def decode(key: RegistryKey) -> LegacyProgram:
            if key.name in seen:
                raise DecodeError(f"Duplicate program id {key.name}", path=key.path)
            program = self.decode_program(key)
            seen.add(program.program_id)
            return program

        results = (decode_key(key, decode) for key in self.read_key_subkeys(PROGRAMS_KEY))
        yield from collect(results, self.errors, self.log)

    def files(self) -> Iterator[LegacyFile]:
        for volume in self.read_key_subkeys(FILE_KEY):
            results = (decode_key(key, lambda key: self.decode_file(key, volume)) for key in live_subkeys(volume))
            yield from collect(results, self.errors, self.log)

    def decode_program(self, key: RegistryKey) -> LegacyProgram:
        fields = {}

        for value in key.values():
            if value.tombstone:
                continue

            try:
                name, converter = PROGRAM_FIELDS[value.name.lower()]
            except KeyError:
                self.log.warning("Unknown value name in program at %s: %s", key.path, value.name)
                continue

            fields[name] = converter(value.value)

        return LegacyProgram(program_id=key.name, last_write=key.timestamp, **fields)

    def decode_file(self, key: RegistryKey, volume: RegistryKey) -> Optional[LegacyFile]:
        """Decode a file entry, or return ``None`` if it has no full path."""
        fields = {}

        for value in key.values():
            if value.tombstone:
                continue

            try:
                name, converter = FILE_FIELDS[int(value.name, 16)]
            except (KeyError, ValueError):
                self.log.warning("Unknown value name in file entry at %s: %s", key.path, value.name)
                continue

            fields[name] = converter(value.value)

        if not fields.get("full_path"):
            return None

        reference = decode_file_reference(key.name)

        return LegacyFile(
            volume_id=volume.name,
            file_id=key.name,
            volume_last_write=volume.timestamp,
            file_last_write=key.timestamp,
            mft_entry_number=reference.entry,
            mft_sequence_number=reference.sequence,
            **fields,
        )
