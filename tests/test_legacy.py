from __future__ import annotations

import logging
from datetime import datetime, timezone

import pytest

from dissect.amcache.associate import UNASSOCIATED
from dissect.amcache.helpers.regutil import VirtualHive, VirtualKey, VirtualValue
from dissect.amcache.legacy import LegacyDecoder, parse_file_links
from dissect.amcache.result import Generation
from tests._utils import TS, make_key

VOLUME = "{c3a1d8d6-3a4f-11e3-8253-806e6f6e6963}"
PROGRAM_ID = "0000f519feec486de87ed73cb92d3cac802400000000"


def test_legacy_decoder(legacy_hive: VirtualHive) -> None:
    result = LegacyDecoder(legacy_hive).decode()

    assert result.generation == Generation.LEGACY
    assert result.errors == []
    assert len(result.programs) == 2
    assert result.total_file_records == 4

    program = result.programs[0]
    assert program.program_id == PROGRAM_ID
    assert program.last_write == TS
    assert program.name == "7-Zip 9.20"
    assert program.version == "9.20.00.0"
    assert program.publisher == "Igor Pavlov"
    assert program.language_code == "1033"
    assert program.install_source == "AddRemoveProgram"
    assert program.uninstall_key.endswith("\\Uninstall\\7-Zip")
    assert program.install_date_a == datetime(2010, 10, 25, tzinfo=timezone.utc)
    assert program.install_date_b is None
    assert program.install_date == program.install_date_a
    assert program.path_list == "C:\\Program Files\\7-Zip"
    assert program.product_code == ""
    assert program.file_links == [(PROGRAM_ID, "1a")]

    assert [entry.full_path for entry in program.file_entries] == [
        "C:\\Program Files\\7-Zip\\7zFM.exe",
        "C:\\Program Files\\7-Zip\\7z.exe",
    ]

    entry = program.file_entries[0]
    assert entry.volume_id == VOLUME
    assert entry.file_id == "1"
    assert entry.volume_last_write == TS
    assert entry.file_last_write == TS
    assert entry.mft_entry_number == 1
    assert entry.mft_sequence_number == 0
    assert entry.product_name == "7-Zip"
    assert entry.company_name == "Igor Pavlov"
    assert entry.file_size == 587776
    assert entry.last_modified_store == datetime(2021, 7, 21, 10, 50, 31, tzinfo=timezone.utc)
    assert entry.created is None
    assert entry.sha1 == "c71bc6ac1c7f24896c7ab2ef6e6a2d0d2c1a4b7a"
    assert entry.program_id == PROGRAM_ID
    assert entry.application_name == "7-Zip 9.20"
    assert entry.file_extension == ".exe"

    assert program.file_entries[1].mft_entry_number == 2
    assert program.file_entries[1].mft_sequence_number == 1

    assert result.programs[1].name == "Notepad++"
    assert result.programs[1].file_entries == []


def test_legacy_file_without_program_id_is_unassociated(legacy_hive: VirtualHive) -> None:
    result = LegacyDecoder(legacy_hive).decode()

    assert [entry.full_path for entry in result.unassociated_files] == ["C:\\a.exe", "C:\\Windows\\b.exe"]
    assert all(entry.application_name == UNASSOCIATED for entry in result.unassociated_files)
    assert result.unassociated_files[0].program_id == ""


def test_legacy_file_without_full_path_is_dropped(legacy_hive: VirtualHive) -> None:
    make_key(legacy_hive, f"Root\\File\\{VOLUME}\\5", {"0": "No path", "100": PROGRAM_ID})

    result = LegacyDecoder(legacy_hive).decode()

    assert result.total_file_records == 4
    assert result.errors == []
    assert "No path" not in [entry.product_name for entry in result.unassociated_files]
    assert "No path" not in [entry.product_name for entry in result.programs[0].file_entries]


def test_legacy_counters(legacy_hive: VirtualHive) -> None:
    result = LegacyDecoder(legacy_hive).decode()

    associated = sum(len(program.file_entries) for program in result.programs)
    assert result.total_file_records == associated + len(result.unassociated_files)


def test_legacy_unknown_value_name(legacy_hive: VirtualHive, caplog: pytest.LogCaptureFixture) -> None:
    make_key(legacy_hive, f"Root\\File\\{VOLUME}\\6", {"15": "C:\\c.exe", "fff": "?", "zz": "?"})
    legacy_hive.key(f"Root\\Programs\\{PROGRAM_ID}").add_value("99", "?")

    with caplog.at_level(logging.WARNING):
        result = LegacyDecoder(legacy_hive).decode()

    assert result.total_file_records == 5
    assert result.errors == []
    assert f"Unknown value name in file entry at Root\\File\\{VOLUME}\\6: fff" in caplog.text
    assert f"Unknown value name in file entry at Root\\File\\{VOLUME}\\6: zz" in caplog.text
    assert f"Unknown value name in program at Root\\Programs\\{PROGRAM_ID}: 99" in caplog.text


def test_legacy_malformed_record_is_skipped(legacy_hive: VirtualHive, caplog: pytest.LogCaptureFixture) -> None:
    make_key(legacy_hive, f"Root\\File\\{VOLUME}\\7", {"15": "C:\\broken.exe", "6": "not a size"})
    make_key(legacy_hive, "Root\\Programs\\broken", {"0": "Broken", "Files": "no-separator"})

    with caplog.at_level(logging.WARNING):
        result = LegacyDecoder(legacy_hive).decode()

    assert len(result.programs) == 2
    assert result.total_file_records == 4
    assert sorted(error.path for error in result.errors) == [
        f"Root\\File\\{VOLUME}\\7",
        "Root\\Programs\\broken",
    ]
    assert f"Failed to decode Root\\File\\{VOLUME}\\7" in caplog.text
    assert "Failed to decode Root\\Programs\\broken" in caplog.text


def test_legacy_tombstones_are_skipped(legacy_hive: VirtualHive) -> None:
    make_key(legacy_hive, f"Root\\File\\{VOLUME}\\8", {"15": "C:\\deleted.exe"}, tombstone=True)

    key = VirtualKey(legacy_hive, f"Root\\File\\{VOLUME}\\9")
    key.add_value("15", VirtualValue(legacy_hive, "15", "C:\\tombstone.exe", tombstone=True))
    legacy_hive.map_key(key.path, key)

    result = LegacyDecoder(legacy_hive).decode()

    assert result.total_file_records == 4
    assert result.errors == []


def test_legacy_duplicate_program_id(hive: VirtualHive) -> None:
    make_key(hive, "Root\\Programs\\a", {"0": "First"})
    duplicate = VirtualKey(hive, "Root\\Programs\\a")
    hive.key("Root\\Programs").add_subkey("a-duplicate", duplicate)

    result = LegacyDecoder(hive).decode()

    assert [program.name for program in result.programs] == ["First"]
    assert len(result.errors) == 1
    assert "Duplicate program id" in str(result.errors[0])


def test_legacy_same_program_id_keeps_encounter_order(hive: VirtualHive) -> None:
    make_key(hive, "Root\\Programs\\p1", {"0": "Program"})
    for name in ("3", "1", "2"):
        make_key(hive, f"Root\\File\\{VOLUME}\\{name}", {"15": f"C:\\{name}.exe", "100": "p1"})

    result = LegacyDecoder(hive).decode()

    assert [entry.full_path for entry in result.programs[0].file_entries] == ["C:\\3.exe", "C:\\1.exe", "C:\\2.exe"]
    assert result.unassociated_files == []


def test_legacy_missing_keys(hive: VirtualHive, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        result = LegacyDecoder(hive).decode()

    assert result.programs == []
    assert result.unassociated_files == []
    assert result.total_file_records == 0
    assert 'Could not find registry key "Root\\Programs"' in caplog.text
    assert 'Could not find registry key "Root\\File"' in caplog.text


def test_legacy_injected_logger(legacy_hive: VirtualHive) -> None:
    log = logging.getLogger("tests.legacy")
    decoder = LegacyDecoder(legacy_hive, log)

    assert decoder.log is log


@pytest.mark.parametrize(
    "value, expected",
    [
        (f"{PROGRAM_ID}@1a", [(PROGRAM_ID, "1a")]),
        (f"{PROGRAM_ID}@1a {PROGRAM_ID}@3f2", [(PROGRAM_ID, "1a"), (PROGRAM_ID, "3f2")]),
        ([f"{PROGRAM_ID}@1a", "", f"{PROGRAM_ID}@2"], [(PROGRAM_ID, "1a"), (PROGRAM_ID, "2")]),
        ("", []),
    ],
)
def test_parse_file_links(value: str | list[str], expected: list[tuple[str, str]]) -> None:
    assert parse_file_links(value) == expected


def test_parse_file_links_invalid() -> None:
    with pytest.raises(ValueError):
        parse_file_links("no-separator")
