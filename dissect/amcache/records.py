"""Export of parse results as ``flow.record`` records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Union

from flow.record import RecordDescriptor
from flow.record.fieldtypes import path

from dissect.amcache.legacy import LegacyResult

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from flow.record import Record

    from dissect.amcache.legacy import LegacyFile
    from dissect.amcache.modern import ModernFile, ModernResult

LEGACY_PROGRAM_FIELDS = [
    ("datetime", "mtime_regf"),
    ("datetime", "install_date"),
    ("datetime", "install_date_a"),
    ("datetime", "install_date_b"),
    ("string", "program_id"),
    ("wstring", "name"),
    ("string", "version"),
    ("wstring", "publisher"),
    ("string", "language_code"),
    ("string", "install_source"),
    ("string", "uninstall_key"),
    ("string", "path_list"),
    ("string", "product_code"),
    ("string", "package_code"),
    ("string", "msi_product_code"),
    ("string", "msi_package_code"),
    ("varint", "unknown_dword_5"),
    ("varint", "unknown_dword_13"),
    ("varint", "unknown_dword_14"),
    ("varint", "unknown_dword_15"),
    ("varint", "unknown_qword_17"),
    ("varint", "unknown_dword_18"),
    ("bytes", "unknown_bytes"),
    ("string[]", "file_links"),
]

LEGACY_FILE_FIELDS = [
    ("datetime", "mtime_regf"),
    ("datetime", "volume_mtime_regf"),
    ("datetime", "created"),
    ("datetime", "last_modified"),
    ("datetime", "last_modified_store"),
    ("datetime", "link_date"),
    ("string", "application_name"),
    ("string", "program_id"),
    ("string", "volume_id"),
    ("string", "file_id"),
    ("varint", "mft_entry_number"),
    ("varint", "mft_sequence_number"),
    ("path", "full_path"),
    ("string", "file_extension"),
    ("string", "sha1"),
    ("wstring", "product_name"),
    ("wstring", "company_name"),
    ("string", "file_version_number"),
    ("string", "file_version_string"),
    ("wstring", "file_description"),
    ("varint", "language_code"),
    ("string", "switchback_context"),
    ("filesize", "file_size"),
    ("varint", "pe_size_of_image"),
    ("string", "pe_header_hash"),
    ("varint", "pe_header_checksum"),
    ("varint", "bin_product_version"),
    ("varint", "bin_file_version"),
    ("varint", "linker_version"),
    ("varint", "binary_type"),
    ("varint", "is_local"),
    ("string", "guess_program_id"),
]

APPLICATION_FIELDS = [
    ("datetime", "mtime_regf"),
    ("datetime", "install_date"),
    ("datetime", "install_date_arp_last_modified"),
    ("datetime[]", "install_date_from_link_file"),
    ("datetime", "install_date_msi"),
    ("string", "key_name"),
    ("string", "program_id"),
    ("wstring", "name"),
    ("string", "version"),
    ("wstring", "publisher"),
    ("varint", "language"),
    ("string", "source"),
    ("string", "type"),
    ("string", "bundle_manifest_path"),
    ("string", "manifest_path"),
    ("boolean", "hidden_arp"),
    ("boolean", "inbox_modern_app"),
    ("string", "msi_package_code"),
    ("string", "msi_product_code"),
    ("string", "os_version_at_install_time"),
    ("string", "package_full_name"),
    ("string", "program_instance_id"),
    ("string", "registry_key_path"),
    ("path", "root_dir_path"),
    ("string", "store_app_type"),
    ("string", "uninstall_string"),
]

APPLICATION_FILE_FIELDS = [
    ("datetime", "mtime_regf"),
    ("datetime", "link_date"),
    ("string", "key_name"),
    ("string", "application_name"),
    ("string", "program_id"),
    ("path", "full_path"),
    ("wstring", "name"),
    ("wstring", "original_file_name"),
    ("string", "sha1"),
    ("filesize", "size"),
    ("varint", "language"),
    ("string", "long_path_hash"),
    ("string", "binary_type"),
    ("string", "bin_file_version"),
    ("string", "bin_product_version"),
    ("wstring", "product_name"),
    ("string", "product_version"),
    ("wstring", "publisher"),
    ("string", "version"),
    ("boolean", "is_os_component"),
    ("boolean", "is_pe_file"),
    ("string", "appx_package_full_name"),
    ("string", "appx_package_relative_id"),
    ("varint", "usn"),
]

SHORTCUT_FIELDS = [
    ("datetime", "mtime_regf"),
    ("string", "key_name"),
    ("path", "path"),
]

DEVICE_CONTAINER_FIELDS = [
    ("datetime", "mtime_regf"),
    ("string", "key_name"),
    ("string", "categories"),
    ("string", "discovery_method"),
    ("wstring", "friendly_name"),
    ("string", "icon"),
    ("boolean", "is_active"),
    ("boolean", "is_connected"),
    ("boolean", "is_machine_container"),
    ("boolean", "is_networked"),
    ("boolean", "is_paired"),
    ("wstring", "manufacturer"),
    ("string", "model_id"),
    ("wstring", "model_name"),
    ("string", "model_number"),
    ("string", "primary_category"),
    ("string", "state"),
]

DEVICE_PNP_FIELDS = [
    ("datetime", "mtime_regf"),
    ("string", "key_name"),
    ("wstring", "bus_reported_description"),
    ("string", "device_class"),
    ("string", "class_guid"),
    ("string", "compid"),
    ("string", "container_id"),
    ("wstring", "description"),
    ("string", "device_state"),
    ("string", "driver_id"),
    ("string", "driver_name"),
    ("string", "driver_package_strong_name"),
    ("string", "driver_ver_date"),
    ("string", "driver_ver_version"),
    ("string", "enumerator"),
    ("string", "hwid"),
    ("string", "inf"),
    ("string", "install_state"),
    ("wstring", "manufacturer"),
    ("string", "matching_id"),
    ("wstring", "model"),
    ("string", "parent_id"),
    ("string", "problem_code"),
    ("wstring", "provider"),
    ("string", "service"),
    ("string", "stackid"),
]

DRIVER_BINARY_FIELDS = [
    ("datetime", "mtime_regf"),
    ("datetime", "driver_last_write_time"),
    ("datetime", "driver_timestamp"),
    ("string", "key_name"),
    ("varint", "driver_checksum"),
    ("wstring", "driver_company"),
    ("string", "driver_id"),
    ("boolean", "driver_in_box"),
    ("boolean", "driver_is_kernel_mode"),
    ("path", "driver_name"),
    ("string", "driver_package_strong_name"),
    ("boolean", "driver_signed"),
    ("string", "driver_type"),
    ("string", "driver_version"),
    ("filesize", "image_size"),
    ("string", "inf"),
    ("wstring", "product"),
    ("string", "product_version"),
    ("string", "service"),
    ("string", "wdf_version"),
]

DRIVER_PACKAGE_FIELDS = [
    ("datetime", "mtime_regf"),
    ("datetime", "date"),
    ("string", "key_name"),
    ("string", "package_class"),
    ("string", "class_guid"),
    ("path", "directory"),
    ("boolean", "driver_in_box"),
    ("string", "hwids"),
    ("string", "inf"),
    ("wstring", "provider"),
    ("string", "submission_id"),
    ("string", "sysfile"),
    ("string", "version"),
]

LegacyProgramRecord = RecordDescriptor("windows/amcache/legacy/program", LEGACY_PROGRAM_FIELDS)
LegacyFileRecord = RecordDescriptor("windows/amcache/legacy/file", LEGACY_FILE_FIELDS)
ApplicationRecord = RecordDescriptor("windows/amcache/application", APPLICATION_FIELDS)
ApplicationFileRecord = RecordDescriptor("windows/amcache/application_file", APPLICATION_FILE_FIELDS)
ShortcutRecord = RecordDescriptor("windows/amcache/application_shortcut", SHORTCUT_FIELDS)
DeviceContainerRecord = RecordDescriptor("windows/amcache/device_container", DEVICE_CONTAINER_FIELDS)
DevicePnpRecord = RecordDescriptor("windows/amcache/device_pnp", DEVICE_PNP_FIELDS)
DriverBinaryRecord = RecordDescriptor("windows/amcache/driver_binary", DRIVER_BINARY_FIELDS)
DriverPackageRecord = RecordDescriptor("windows/amcache/driver_package", DRIVER_PACKAGE_FIELDS)


def _convert(field_type: str, value: Any) -> Any:
    if field_type == "path":
        return path.from_windows(value) if value else None
    if field_type == "string[]":
        return [f"{volume}@{reference}" for volume, reference in value]
    return value


def to_record(descriptor: RecordDescriptor, fields: list[tuple[str, str]], entry: Any, **kwargs) -> Record:
    """Create a record of ``descriptor`` from the attributes of ``entry`` with the same names as ``fields``.

    The last write timestamp of the registry key is exported as ``mtime_regf``.
    """
    values = {}
    for field_type, name in fields:
        if name in kwargs:
            continue
        attr = "last_write" if name == "mtime_regf" else name
        values[name] = _convert(field_type, getattr(entry, attr))

    values.update(kwargs)
    return descriptor(**values)


def hash_filter(
    allowlist: Optional[Iterable[str]] = None,
    denylist: Optional[Iterable[str]] = None,
) -> Any:
    """Return a predicate for file records on their SHA-1 hash. A denylist overrides an allowlist."""
    if denylist is not None:
        deny = {sha1.strip().lower() for sha1 in denylist}
        return lambda entry: entry.sha1 not in deny

    if allowlist is not None:
        allow = {sha1.strip().lower() for sha1 in allowlist}
        return lambda entry: entry.sha1 in allow

    return lambda entry: True


def iter_records(
    result: Union[LegacyResult, ModernResult],
    include_associated: bool = True,
    allowlist: Optional[Iterable[str]] = None,
    denylist: Optional[Iterable[str]] = None,
) -> Iterator[Record]:
    """Yield the records of a parse result.

    Args:
        result: The result of :func:`dissect.amcache.parse`.
        include_associated: Also yield the files associated with a program, after the program itself.
        allowlist: Only yield files with one of these SHA-1 hashes.
        denylist: Do not yield files with one of these SHA-1 hashes. Overrides ``allowlist``.
    """
    keep = hash_filter(allowlist, denylist)

    if isinstance(result, LegacyResult):
        program_record = (LegacyProgramRecord, LEGACY_PROGRAM_FIELDS)

        def file_record(entry: LegacyFile) -> Record:
            return to_record(
                LegacyFileRecord,
                LEGACY_FILE_FIELDS,
                entry,
                mtime_regf=entry.file_last_write,
                volume_mtime_regf=entry.volume_last_write,
            )

    else:
        program_record = (ApplicationRecord, APPLICATION_FIELDS)

        def file_record(entry: ModernFile) -> Record:
            return to_record(ApplicationFileRecord, APPLICATION_FILE_FIELDS, entry)

    for program in result.programs:
        yield to_record(*program_record, program)

        if include_associated:
            yield from (file_record(entry) for entry in program.file_entries if keep(entry))

    yield from (file_record(entry) for entry in result.unassociated_files if keep(entry))

    if isinstance(result, LegacyResult):
        return

    for descriptor, fields, entries in (
        (ShortcutRecord, SHORTCUT_FIELDS, result.shortcuts),
        (DeviceContainerRecord, DEVICE_CONTAINER_FIELDS, result.device_containers),
        (DevicePnpRecord, DEVICE_PNP_FIELDS, result.device_pnps),
        (DriverBinaryRecord, DRIVER_BINARY_FIELDS, result.driver_binaries),
        (DriverPackageRecord, DRIVER_PACKAGE_FIELDS, result.driver_packages),
    ):
        for entry in entries:
            yield to_record(descriptor, fields, entry)