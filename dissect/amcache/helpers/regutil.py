""" Registry abstractions the Amcache decoders walk """
from __future__ import annotations

from datetime import datetime
from typing import BinaryIO, Optional, Union

from dissect.regf import regf

from dissect.amcache.exceptions import RegistryKeyNotFoundError

ValueType = Union[int, str, bytes, list[str]]
"""The decoded data of a registry value, as returned by ``dissect.regf``."""


class RegistryHive:
    """A hive the decoders can look keys up in by their backslash separated path."""

    def key(self, key: str) -> RegistryKey:
        """Return the key at ``key``, relative to the root of the hive.

        Raises:
            RegistryKeyNotFoundError: If there is no key at the given path.
        """
        raise NotImplementedError()

    def has_key(self, key: str) -> bool:
        try:
            self.key(key)
        except RegistryKeyNotFoundError:
            return False
        return True


class RegistryKey:
    def __init__(self, hive: Optional[RegistryHive] = None):
        self.hive = hive

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.path}>"

    @property
    def name(self) -> str:
        raise NotImplementedError()

    @property
    def path(self) -> str:
        raise NotImplementedError()

    @property
    def timestamp(self) -> datetime:
        """The last write time of the key."""
        raise NotImplementedError()

    @property
    def tombstone(self) -> bool:
        """Whether the key only marks a deletion and holds no data of its own."""
        return False

    def subkeys(self) -> list[RegistryKey]:
        """Return the subkeys of this key, in the order they are stored in the hive."""
        raise NotImplementedError()

    def values(self) -> list[RegistryValue]:
        raise NotImplementedError()


class RegistryValue:
    def __init__(self, hive: Optional[RegistryHive] = None):
        self.hive = hive

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}={self.value!r}>"

    @property
    def name(self) -> str:
        raise NotImplementedError()

    @property
    def value(self) -> ValueType:
        raise NotImplementedError()

    @property
    def tombstone(self) -> bool:
        return False


class VirtualHive(RegistryHive):
    """An in-memory hive, keys are created on demand by :meth:`make_keys` and :meth:`map_key`.

    Lookups are case-insensitive, like in a real hive.
    """

    def __init__(self):
        self._root = VirtualKey(self, "")

    def __repr__(self) -> str:
        return "<VirtualHive>"

    def make_keys(self, path: str) -> VirtualKey:
        """Return the key at ``path``, creating it and any missing parent keys."""
        key = self._root
        parts = [part for part in path.strip("\\").split("\\") if part]

        for i, part in enumerate(parts):
            if part not in key:
                key.add_subkey(part, VirtualKey(self, "\\".join(parts[: i + 1])))
            key = key.subkey(part)

        return key

    def map_key(self, path: str, key: RegistryKey) -> None:
        """Place ``key`` at ``path``, replacing a key with the same name."""
        parent, _, name = path.strip("\\").rpartition("\\")
        self.make_keys(parent).add_subkey(name, key)

    def key(self, key: str) -> RegistryKey:
        vkey = self._root
        for part in key.strip("\\").split("\\"):
            if part:
                vkey = vkey.subkey(part)
        return vkey


class VirtualKey(RegistryKey):
    """A key of a :class:`VirtualHive`. Its timestamp and tombstone marker are set by the caller."""

    def __init__(
        self,
        hive: RegistryHive,
        path: str,
        timestamp: Optional[datetime] = None,
        tombstone: bool = False,
    ):
        super().__init__(hive=hive)
        self._path = path
        self._name = path.rpartition("\\")[2] if path.strip("\\") else "VROOT"
        self._timestamp = timestamp
        self._tombstone = tombstone
        self._values: dict[str, RegistryValue] = {}
        self._subkeys: dict[str, RegistryKey] = {}

    def __contains__(self, key: str) -> bool:
        return key.lower() in self._subkeys

    def add_subkey(self, name: str, key: RegistryKey) -> None:
        self._subkeys[name.lower()] = key

    def add_value(self, name: str, value: Union[ValueType, RegistryValue]) -> None:
        """Add a value, plain data is wrapped in a :class:`VirtualValue`."""
        if not isinstance(value, RegistryValue):
            value = VirtualValue(self.hive, name, value)
        self._values[name.lower()] = value

    @property
    def name(self) -> str:
        return self._name

    @property
    def path(self) -> str:
        return self._path

    @property
    def timestamp(self) -> datetime:
        return self._timestamp

    @timestamp.setter
    def timestamp(self, value: datetime) -> None:
        self._timestamp = value

    @property
    def tombstone(self) -> bool:
        return self._tombstone

    def subkey(self, subkey: str) -> RegistryKey:
        try:
            return self._subkeys[subkey.lower()]
        except KeyError:
            raise RegistryKeyNotFoundError(subkey)

    def subkeys(self) -> list[RegistryKey]:
        return list(self._subkeys.values())

    def values(self) -> list[RegistryValue]:
        return list(self._values.values())


class VirtualValue(RegistryValue):
    def __init__(self, hive: RegistryHive, name: str, value: ValueType, tombstone: bool = False):
        super().__init__(hive=hive)
        self._name = name
        self._value = value
        self._tombstone = tombstone

    @property
    def name(self) -> str:
        return self._name

    @property
    def value(self) -> ValueType:
        return self._value

    @property
    def tombstone(self) -> bool:
        return self._tombstone


class RegfHive(RegistryHive):
    """A hive backed by ``dissect.regf``.

    Args:
        fh: A file-like object of the primary hive file, with any transaction logs already applied.
        filepath: The path the hive was read from, only used in ``repr``.
    """

    def __init__(self, fh: BinaryIO, filepath: Optional[str] = None):
        self.hive = regf.RegistryHive(fh)
        self.filepath = filepath

    def __repr__(self) -> str:
        return f"<RegfHive {self.filepath}>"

    def key(self, key: str) -> RegistryKey:
        try:
            return RegfKey(self, self.hive.open(key))
        except regf.RegistryKeyNotFoundError as e:
            raise RegistryKeyNotFoundError(key, cause=e)


class RegfKey(RegistryKey):
    def __init__(self, hive: RegistryHive, key: regf.KeyNode):
        super().__init__(hive=hive)
        self.key = key

    @property
    def name(self) -> str:
        return self.key.name

    @property
    def path(self) -> str:
        return self.key.path

    @property
    def timestamp(self) -> datetime:
        return self.key.timestamp

    def subkeys(self) -> list[RegistryKey]:
        return [RegfKey(self.hive, subkey) for subkey in self.key.subkeys()]

    def values(self) -> list[RegistryValue]:
        return [RegfValue(self.hive, kv) for kv in self.key.values()]


class RegfValue(RegistryValue):
    def __init__(self, hive: RegistryHive, kv: regf.KeyValue):
        super().__init__(hive=hive)
        self.kv = kv

    @property
    def name(self) -> str:
        return self.kv.name

    @property
    def value(self) -> ValueType:
        return self.kv.value
