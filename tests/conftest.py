from __future__ import annotations

import pytest

from dissect.amcache.helpers.regutil import VirtualHive
from tests._utils import make_key


@pytest.fixture
def hive() -> VirtualHive:
    return VirtualHive()


@pytest.fixture
def legacy_hive(hive: VirtualHive) -> VirtualHive:
    """A legacy Amcache hive with two programs and four files on one volume.

    Files ``1`` and ``2`` belong to the first program, ``3`` has no program id and ``4`` points to an unknown
    program.
    """
    make_key(
        hive,
        "Root\\Programs\\0000f519feec486de87ed73cb92d3cac802400000000",
        {
            "0": "7-Zip 9.20",
            "1": "9.20.00.0",
            "2": "Igor Pavlov",
            "3": 1033,
            "6": "AddRemoveProgram",
            "7": "HKEY_LOCAL_MACHINE\\Software\\Microsoft\\Windows\\CurrentVersion\\Uninstall\\7-Zip",
            "a": 1287964800,
            "b": 0,
            "d": ["C:\\Program Files\\7-Zip"],
            "f": "",
            "Files": ["0000f519feec486de87ed73cb92d3cac802400000000@1a"],
        },
    )
    make_key(
        hive,
        "Root\\Programs\\00004a4e2c1b1d1db6d1e1b2b3c3d3e3f3f300000000",
        {"0": "Notepad++", "1": "6.5.1", "2": "Notepad++ Team"},
    )

    volume = "Root\\File\\{c3a1d8d6-3a4f-11e3-8253-806e6f6e6963}"
    make_key(hive, volume)
    make_key(
        hive,
        f"{volume}\\1",
        {
            "0": "7-Zip",
            "1": "Igor Pavlov",
            "6": 587776,
            "15": "C:\\Program Files\\7-Zip\\7zFM.exe",
            "17": 132713382310000000,
            "100": "0000f519feec486de87ed73cb92d3cac802400000000",
            "101": "0000c71bc6ac1c7f24896c7ab2ef6e6a2d0d2c1a4b7a",
        },
    )
    make_key(
        hive,
        f"{volume}\\10002",
        {
            "15": "C:\\Program Files\\7-Zip\\7z.exe",
            "100": "0000f519feec486de87ed73cb92d3cac802400000000",
        },
    )
    make_key(hive, f"{volume}\\3", {"15": "C:\\a.exe"})
    make_key(
        hive,
        f"{volume}\\4",
        {"15": "C:\\Windows\\b.exe", "100": "0000ffffffffffffffffffffffffffffffff00000000"},
    )

    return hive


@pytest.fixture
def modern_hive(hive: VirtualHive) -> VirtualHive:
    """A modern Amcache hive with one application, two files, a shortcut and one entry of every device kind."""
    make_key(
        hive,
        "Root\\InventoryApplication\\000002f1bc1777c6cb2bc117ab9cbd6d92780000ffff",
        {
            "BundleManifestPath": "",
            "HiddenArp": 0,
            "InboxModernApp": 0,
            "InstallDate": "07/21/2021 10:50:31",
            "Language": 65535,
            "Name": "Shadow Tactics: Blades of the Shogun Demo",
            "OSVersionAtInstallTime": "10.0.0.19043",
            "ProgramId": "000002f1bc1777c6cb2bc117ab9cbd6d92780000ffff",
            "Publisher": "Mimimi Games",
            "RootDirPath": "C:\\Program Files (x86)\\Steam\\steamapps\\common\\Shadow Tactics",
            "SentDetailedInv": 0,
            "Source": "Steam",
            "Type": "Application",
        },
    )

    make_key(
        hive,
        "Root\\InventoryApplicationFile\\shadow tactics|7a2d2bb2c7e34a4b",
        {
            "BinaryType": "pe64_amd64",
            "FileId": "0000a2f7b1c2d3e4f5a6b7c8d9e0f1a2b3c4d5e6f7a8",
            "IsOsComponent": "0",
            "IsPeFile": "1",
            "LinkDate": "03/13/2017 12:49:14",
            "LowerCaseLongPath": "c:\\games\\shadow tactics\\shadow tactics.exe",
            "Name": "Shadow Tactics.exe",
            "ProgramId": "000002f1bc1777c6cb2bc117ab9cbd6d92780000ffff",
            "Size": "0x1543a8",
        },
    )
    make_key(
        hive,
        "Root\\InventoryApplicationFile\\cmd.exe|4a8b1cf8cf8d5e1e",
        {
            "FileId": "0000ded8fd7f36417f66eb6ada10e06c8b5b8d7a7ab8",
            "LowerCaseLongPath": "c:\\windows\\system32\\cmd.exe",
            "Name": "cmd.exe",
            "ProgramId": "",
            "Size": "289792",
        },
    )

    make_key(
        hive,
        "Root\\InventoryApplicationShortcut\\0000a2b1",
        {"ShortCutPath": "C:\\ProgramData\\Microsoft\\Windows\\Start Menu\\Programs\\7-Zip\\7-Zip File Manager.lnk"},
    )

    make_key(
        hive,
        "Root\\InventoryDeviceContainer\\{00000000-0000-0000-ffff-ffffffffffff}",
        {
            "Categories": "Computer",
            "FriendlyName": "DESKTOP-1",
            "IsActive": "1",
            "IsConnected": "1",
            "IsMachineContainer": "1",
            "IsNetworked": "0",
            "IsPaired": "0",
        },
    )
    make_key(
        hive,
        "Root\\InventoryDevicePnp\\acpi/pnp0a08/0",
        {
            "Class": "system",
            "ClassGuid": "{4d36e97d-e325-11ce-bfc1-08002be10318}",
            "Description": "PCI Express Root Complex",
            "LowerClassFilters": "",
            "UpperFilters": "",
        },
    )
    make_key(
        hive,
        "Root\\InventoryDriverBinary\\c:/windows/system32/drivers/acpi.sys",
        {
            "DriverCompany": "Microsoft Corporation",
            "DriverInBox": "1",
            "DriverIsKernelMode": "1",
            "DriverName": "acpi.sys",
            "DriverSigned": "1",
            "DriverTimeStamp": 1572565618,
            "ImageSize": "0xc2000",
        },
    )
    make_key(
        hive,
        "Root\\InventoryDriverPackage\\acpi.inf_amd64_f8b59f8c8fef5bf4",
        {
            "Class": "System",
            "Date": "06/21/2006",
            "Inf": "acpi.inf",
            "Provider": "Microsoft",
            "Version": "10.0.19041.1",
        },
    )

    return hive

