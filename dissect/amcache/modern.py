"""Decoder for the modern Amcache schema (Windows 10 and later, and updated Windows 7/8 systems).

The inventory is spread over a number of independent keys below ``Root``, each holding one subkey per
entry with self-describing value names. Flags are stored as ``1``/``0`` and dates as culture invariant
strings like ``07/21/2021 10:50:31``.

References:
    - https://docs.microsoft.com/en-us/windows/privacy/required-windows-diagnostic-data-events-and-fields-2004
    - https://binaryforay.blogspot.com/2017/10/amcache-still-rules-everything-around.html
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Optional

from dissect.amcache.associate import associate
from dissect.amcache.exceptions import DecodeError, RegistryKeyNotFoundError
from dissect.amcache.helpers.utils import live_subkeys, to_flag, to_int, to_sha1, value_data
from dissect.amcache.result import Generation, collect, decode_key
from dissect.amcache.timestamps import from_datetime_string, from_unix_seconds

if TYPE_CHECKING:
    from collections.abc import Iterator

    from dissect.amcache.helpers.regutil import RegistryHive, RegistryKey, ValueType

APPLICATION_KEY = "Root\\InventoryApplication"
APPLICATION_FILE_KEY = "Root\\InventoryApplicationFile"
SHORTCUT_KEY = "Root\\InventoryApplicationShortcut"
DEVICE_CONTAINER_KEY = "Root\\InventoryDeviceContainer"
DEVICE_PNP_KEY = "Root\\InventoryDevicePnp"
DRIVER_BINARY_KEY = "Root\\InventoryDriverBinary"
DRIVER_PACKAGE_KEY = "Root\\InventoryDriverPackage"


def to_datetime(value: ValueType) -> Optional[datetime]:
    if isinstance(value, list):
        value = value[0] if value else ""
    return from_datetime_string(value_data(value))


def to_datetime_list(value: ValueType) -> list[datetime]:
    values = value if isinstance(value, list) else [value]
    return [dt for dt in map(to_datetime, values) if dt is not None]


FieldMap = dict[str, Optional[tuple[str, Callable[[Any], Any]]]]


def _field_map(mapping: FieldMap) -> FieldMap:
    # Registry value names are case insensitive
    return {name.lower(): value for name, value in mapping.items()}


# Value name -> (field name, converter), or None for values that are known but not decoded
APPLICATION_FIELDS: FieldMap = _field_map(
    {
        "BundleManifestPath": ("bundle_manifest_path", value_data),
        "HiddenArp": ("hidden_arp", to_flag),
        "InboxModernApp": ("inbox_modern_app", to_flag),
        "InstallDate": ("install_date", to_datetime),
        "InstallDateArpLastModified": ("install_date_arp_last_modified", to_datetime),
        "InstallDateFromLinkFile": ("install_date_from_link_file", to_datetime_list),
        "InstallDateMsi": ("install_date_msi", to_datetime),
        "Language": ("language", to_int),
        "ManifestPath": ("manifest_path", value_data),
        "MsiPackageCode": ("msi_package_code", value_data),
        "MsiProductCode": ("msi_product_code", value_data),
        "Name": ("name", value_data),
        "OSVersionAtInstallTime": ("os_version_at_install_time", value_data),
        "PackageFullName": ("package_full_name", value_data),
        "ProgramId": ("program_id", value_data),
        "ProgramInstanceId": ("program_instance_id", value_data),
        "Publisher": ("publisher", value_data),
        "RegistryKeyPath": ("registry_key_path", value_data),
        "RootDirPath": ("root_dir_path", value_data),
        "SentDetailedInv": None,
        "Source": ("source", value_data),
        "StoreAppType": ("store_app_type", value_data),
        "Type": ("type", value_data),
        "UninstallString": ("uninstall_string", value_data),
        "Version": ("version", value_data),
    }
)

APPLICATION_FILE_FIELDS: FieldMap = _field_map(
    {
        "AppxPackageFullName": ("appx_package_full_name", value_data),
        "AppxPackageRelativeId": ("appx_package_relative_id", value_data),
        "BinaryType": ("binary_type", value_data),
        "BinFileVersion": ("bin_file_version", value_data),
        "BinProductVersion": ("bin_product_version", value_data),
        "FileId": ("sha1", to_sha1),
        "IsOsComponent": ("is_os_component", to_flag),
        "IsPeFile": ("is_pe_file", to_flag),
        "Language": ("language", to_int),
        "LinkDate": ("link_date", to_datetime),
        "LongPathHash": ("long_path_hash", value_data),
        "LowerCaseLongPath": ("full_path", value_data),
        "Name": ("name", value_data),
        "OriginalFileName": ("original_file_name", value_data),
        "ProductName": ("product_name", value_data),
        "ProductVersion": ("product_version", value_data),
        "ProgramId": ("program_id", value_data),
        "Publisher": ("publisher", value_data),
        "Size": ("size", to_int),
        "Usn": ("usn", to_int),
        "Version": ("version", value_data),
    }
)

DEVICE_CONTAINER_FIELDS: FieldMap = _field_map(
    {
        "Categories": ("categories", value_data),
        "DiscoveryMethod": ("discovery_method", value_data),
        "FriendlyName": ("friendly_name", value_data),
        "Icon": ("icon", value_data),
        "IsActive": ("is_active", to_flag),
        "IsConnected": ("is_connected", to_flag),
        "IsMachineContainer": ("is_machine_container", to_flag),
        "IsNetworked": ("is_networked", to_flag),
        "IsPaired": ("is_paired", to_flag),
        "Manufacturer": ("manufacturer", value_data),
        "ModelId": ("model_id", value_data),
        "ModelName": ("model_name", value_data),
        "ModelNumber": ("model_number", value_data),
        "PrimaryCategory": ("primary_category", value_data),
        "State": ("state", value_data),
    }
)

DEVICE_PNP_FIELDS: FieldMap = _field_map(
    {
        "BusReportedDescription": ("bus_reported_description", value_data),
        "Class": ("device_class", value_data),
        "ClassGuid": ("class_guid", value_data),
        "COMPID": ("compid", value_data),
        "ContainerId": ("container_id", value_data),
        "Description": ("description", value_data),
        "DeviceState": ("device_state", value_data),
        "DriverId": ("driver_id", value_data),
        "DriverName": ("driver_name", value_data),
        "DriverPackageStrongName": ("driver_package_strong_name", value_data),
        "DriverVerDate": ("driver_ver_date", value_data),
        "DriverVerVersion": ("driver_ver_version", value_data),
        "Enumerator": ("enumerator", value_data),
        "HWID": ("hwid", value_data),
        "Inf": ("inf", value_data),
        "InstallState": ("install_state", value_data),
        "LowerClassFilters": None,
        "LowerFilters": None,
        "Manufacturer": ("manufacturer", value_data),
        "MatchingID": ("matching_id", value_data),
        "Model": ("model", value_data),
        "ParentId": ("parent_id", value_data),
        "ProblemCode": ("problem_code", value_data),
        "Provider": ("provider", value_data),
        "Service": ("service", value_data),
        "STACKID": ("stackid", value_data),
        "UpperClassFilters": None,
        "UpperFilters": None,
    }
)

DRIVER_BINARY_FIELDS: FieldMap = _field_map(
    {
        "DriverCheckSum": ("driver_checksum", to_int),
        "DriverCompany": ("driver_company", value_data),
        "DriverId": ("driver_id", value_data),
        "DriverInBox": ("driver_in_box", to_flag),
        "DriverIsKernelMode": ("driver_is_kernel_mode", to_flag),
        "DriverLastWriteTime": ("driver_last_write_time", to_datetime),
        "DriverName": ("driver_name", value_data),
        "DriverPackageStrongName": ("driver_package_strong_name", value_data),
        "DriverSigned": ("driver_signed", to_flag),
        "DriverTimeStamp": ("driver_timestamp", from_unix_seconds),
        "DriverType": ("driver_type", value_data),
        "DriverVersion": ("driver_version", value_data),
        "ImageSize": ("image_size", to_int),
        "Inf": ("inf", value_data),
        "Product": ("product", value_data),
        "ProductVersion": ("product_version", value_data),
        "Service": ("service", value_data),
        "WdfVersion": ("wdf_version", value_data),
    }
)

DRIVER_PACKAGE_FIELDS: FieldMap = _field_map(
    {
        "Class": ("package_class", value_data),
        "ClassGuid": ("class_guid", value_data),
        "Date": ("date", to_datetime),
        "Directory": ("directory", value_data),
        "DriverInBox": ("driver_in_box", to_flag),
        "Hwids": ("hwids", value_data),
        "Inf": ("inf", value_data),
        "Provider": ("provider", value_data),
        "SubmissionId": ("submission_id", value_data),
        "SYSFILE": ("sysfile", value_data),
        "Version": ("version", value_data),
    }
)


@dataclass(frozen=True)
class ModernProgram:
    """An application from ``Root\\InventoryApplication``."""

    key_name: str
    program_id: str
    last_write: Optional[datetime] = None
    name: str = ""
    version: str = ""
    publisher: str = ""
    language: Optional[int] = None
    install_date: Optional[datetime] = None
    install_date_arp_last_modified: Optional[datetime] = None
    install_date_from_link_file: list[datetime] = field(default_factory=list)
    install_date_msi: Optional[datetime] = None
    source: str = ""
    type: str = ""
    bundle_manifest_path: str = ""
    manifest_path: str = ""
    hidden_arp: bool = False
    inbox_modern_app: bool = False
    msi_package_code: str = ""
    msi_product_code: str = ""
    os_version_at_install_time: str = ""
    package_full_name: str = ""
    program_instance_id: str = ""
    registry_key_path: str = ""
    root_dir_path: str = ""
    store_app_type: str = ""
    uninstall_string: str = ""
    file_entries: list[ModernFile] = field(default_factory=list, compare=False, repr=False)


@dataclass(frozen=True)
class ModernFile:
    """A file from ``Root\\InventoryApplicationFile``."""

    key_name: str
    last_write: Optional[datetime] = None
    full_path: str = ""
    name: str = ""
    original_file_name: str = ""
    sha1: str = ""
    size: Optional[int] = None
    language: Optional[int] = None
    link_date: Optional[datetime] = None
    long_path_hash: str = ""
    binary_type: str = ""
    bin_file_version: str = ""
    bin_product_version: str = ""
    product_name: str = ""
    product_version: str = ""
    publisher: str = ""
    version: str = ""
    is_os_component: bool = False
    is_pe_file: bool = False
    appx_package_full_name: str = ""
    appx_package_relative_id: str = ""
    usn: Optional[int] = None
    program_id: str = ""
    application_name: str = ""


@dataclass(frozen=True)
class Shortcut:
    key_name: str
    last_write: Optional[datetime] = None
    path: str = ""


@dataclass(frozen=True)
class DeviceContainer:
    key_name: str
    last_write: Optional[datetime] = None
    categories: str = ""
    discovery_method: str = ""
    friendly_name: str = ""
    icon: str = ""
    is_active: bool = False
    is_connected: bool = False
    is_machine_container: bool = False
    is_networked: bool = False
    is_paired: bool = False
    manufacturer: str = ""
    model_id: str = ""
    model_name: str = ""
    model_number: str = ""
    primary_category: str = ""
    state: str = ""


@dataclass(frozen=True)
class DevicePnp:
    key_name: str
    last_write: Optional[datetime] = None
    bus_reported_description: str = ""
    device_class: str = ""
    class_guid: str = ""
    compid: str = ""
    container_id: str = ""
    description: str = ""
    device_state: str = ""
    driver_id: str = ""
    driver_name: str = ""
    driver_package_strong_name: str = ""
    driver_ver_date: str = ""
    driver_ver_version: str = ""
    enumerator: str = ""
    hwid: str = ""
    inf: str = ""
    install_state: str = ""
    manufacturer: str = ""
    matching_id: str = ""
    model: str = ""
    parent_id: str = ""
    problem_code: str = ""
    provider: str = ""
    service: str = ""
    stackid: str = ""


@dataclass(frozen=True)
class DriverBinary:
    key_name: str
    last_write: Optional[datetime] = None
    driver_checksum: Optional[int] = None
    driver_company: str = ""
    driver_id: str = ""
    driver_in_box: bool = False
    driver_is_kernel_mode: bool = False
    driver_last_write_time: Optional[datetime] = None
    driver_name: str = ""
    driver_package_strong_name: str = ""
    driver_signed: bool = False
    driver_timestamp: Optional[datetime] = None
    driver_type: str = ""
    driver_version: str = ""
    image_size: Optional[int] = None
    inf: str = ""
    product: str = ""
    product_version: str = ""
    service: str = ""
    wdf_version: str = ""


@dataclass(frozen=True)
class DriverPackage:
    key_name: str
    last_write: Optional[datetime] = None
    package_class: str = ""
    class_guid: str = ""
    date: Optional[datetime] = None
    directory: str = ""
    driver_in_box: bool = False
    hwids: str = ""
    inf: str = ""
    provider: str = ""
    submission_id: str = ""
    sysfile: str = ""
    version: str = ""


@dataclass(frozen=True)
class ModernResult:
    """The inventory of a modern Amcache hive."""

    generation: ClassVar[Generation] = Generation.MODERN

    programs: list[ModernProgram] = field(default_factory=list)
    unassociated_files: list[ModernFile] = field(default_factory=list)
    total_file_records: int = 0
    shortcuts: list[Shortcut] = field(default_factory=list)
    device_containers: list[DeviceContainer] = field(default_factory=list)
    device_pnps: list[DevicePnp] = field(default_factory=list)
    driver_binaries: list[DriverBinary] = field(default_factory=list)
    driver_packages: list[DriverPackage] = field(default_factory=list)
    errors: list[DecodeError] = field(default_factory=list)


class ModernDecoder:
    """Decode the inventory of a modern Amcache hive.

    Args:
        hive: The Amcache hive.
        log: The logger to report unknown values, missing keys and undecodable keys to.
    """

    def __init__(self, hive: RegistryHive, log: logging.Logger | logging.LoggerAdapter | None = None):
        self.hive = hive
        self.log = log or logging.getLogger(__name__)
        self.errors: list[DecodeError] = []

    def decode(self) -> ModernResult:
        programs = list(self.programs())
        files = list(self.files())

        unassociated = associate(programs, files)

        return ModernResult(
            programs=programs,
            unassociated_files=unassociated,
            total_file_records=len(files),
            shortcuts=list(self.shortcuts()),
            device_containers=list(self._walk(DEVICE_CONTAINER_KEY, DeviceContainer, DEVICE_CONTAINER_FIELDS)),
            device_pnps=list(self._walk(DEVICE_PNP_KEY, DevicePnp, DEVICE_PNP_FIELDS)),
            driver_binaries=list(self._walk(DRIVER_BINARY_KEY, DriverBinary, DRIVER_BINARY_FIELDS)),
            driver_packages=list(self._walk(DRIVER_PACKAGE_KEY, DriverPackage, DRIVER_PACKAGE_FIELDS)),
            errors=self.errors,
        )

    def read_key_subkeys(self, key: str, warn: bool = False) -> list[RegistryKey]:
        try:
            return live_subkeys(self.hive.key(key))
        except RegistryKeyNotFoundError:
            if warn:
                self.log.warning('Could not find registry key "%s"', key)
            else:
                self.log.debug('Could not find registry key "%s"', key)
            return []

    def programs(self) -> Iterator[ModernProgram]:
        seen = set()

        def decode(key: RegistryKey) -> ModernProgram:
            fields = self.decode_fields(key, APPLICATION_FIELDS)
            program_id = fields.pop("program_id", "") or key.name

            if program_id in seen:
                raise DecodeError(f"Duplicate program id {program_id}", path=key.path)
            seen.add(program_id)

            return ModernProgram(key_name=key.name, program_id=program_id, last_write=key.timestamp, **fields)

        results = (decode_key(key, decode) for key in self.read_key_subkeys(APPLICATION_KEY, warn=True))
        yield from collect(results, self.errors, self.log)

    def files(self) -> Iterator[ModernFile]:
        def decode(key: RegistryKey) -> ModernFile:
            fields = self.decode_fields(key, APPLICATION_FILE_FIELDS)
            return ModernFile(key_name=key.name, last_write=key.timestamp, **fields)

        results = (decode_key(key, decode) for key in self.read_key_subkeys(APPLICATION_FILE_KEY, warn=True))
        yield from collect(results, self.errors, self.log)

    def shortcuts(self) -> Iterator[Shortcut]:
        def decode(key: RegistryKey) -> Shortcut:
            values = [value for value in key.values() if not value.tombstone]
            if not values:
                raise DecodeError(f"Shortcut {key.name} has no values", path=key.path)

            by_name = {value.name.lower(): value for value in values}
            value = by_name.get("shortcutpath", values[0])
            return Shortcut(key_name=key.name, last_write=key.timestamp, path=value_data(value.value))

        results = (decode_key(key, decode) for key in self.read_key_subkeys(SHORTCUT_KEY))
        yield from collect(results, self.errors, self.log)

    def _walk(self, key: str, record: type, fields: FieldMap) -> Iterator[Any]:
        def decode(subkey: RegistryKey) -> Any:
            return record(key_name=subkey.name, last_write=subkey.timestamp, **self.decode_fields(subkey, fields))

        results = (decode_key(subkey, decode) for subkey in self.read_key_subkeys(key))
        yield from collect(results, self.errors, self.log)

    def decode_fields(self, key: RegistryKey, fields: FieldMap) -> dict[str, Any]:
        """Map the values of ``key`` to record fields using the ``fields`` table."""
        result = {}

        for value in key.values():
            if value.tombstone:
                continue

            try:
                mapping = fields[value.name.lower()]
            except KeyError:
                self.log.warning("Unknown value name at %s: %s", key.path, value.name)
                continue

            if mapping is None:
                continue

            name, converter = mapping
            result[name] = converter(value.value)

        return result
