# Registry data model.
#
# Hive is the fixed set of registry roots a caller can ask for, KeyRecord is
# the one descriptor emitted per matched key. Records are frozen: they are
# produced once by the walker and only read afterwards.

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

KEY_SEPARATOR = "\\"


class Hive(str, Enum):
    """Registry hive selector."""

    CLASSES_ROOT = "ClassesRoot"
    CURRENT_USER = "CurrentUser"
    LOCAL_MACHINE = "LocalMachine"
    USERS = "Users"
    PERFORMANCE_DATA = "PerformanceData"
    CURRENT_CONFIG = "CurrentConfig"
    DYN_DATA = "DynData"

    @classmethod
    def parse(cls, text: str) -> "Hive":
        """
        Resolve a hive from user input.

        Accepts the enum value ("LocalMachine"), the long Win32 name
        ("HKEY_LOCAL_MACHINE") or the usual abbreviation ("HKLM"),
        case-insensitively.

        Raises:
            ValueError: If the text names no known hive
        """
        if isinstance(text, cls):
            return text
        needle = (text or "").strip().rstrip(":").upper()
        for hive in cls:
            if needle in (hive.value.upper(), hive.long_name, hive.short_name):
                return hive
        raise ValueError(f"Unknown registry hive: {text!r}")

    @property
    def long_name(self) -> str:
        return _LONG_NAMES[self]

    @property
    def short_name(self) -> str:
        return _SHORT_NAMES[self]


_LONG_NAMES = {
    Hive.CLASSES_ROOT: "HKEY_CLASSES_ROOT",
    Hive.CURRENT_USER: "HKEY_CURRENT_USER",
    Hive.LOCAL_MACHINE: "HKEY_LOCAL_MACHINE",
    Hive.USERS: "HKEY_USERS",
    Hive.PERFORMANCE_DATA: "HKEY_PERFORMANCE_DATA",
    Hive.CURRENT_CONFIG: "HKEY_CURRENT_CONFIG",
    Hive.DYN_DATA: "HKEY_DYN_DATA",
}

_SHORT_NAMES = {
    Hive.CLASSES_ROOT: "HKCR",
    Hive.CURRENT_USER: "HKCU",
    Hive.LOCAL_MACHINE: "HKLM",
    Hive.USERS: "HKU",
    Hive.PERFORMANCE_DATA: "HKPD",
    Hive.CURRENT_CONFIG: "HKCC",
    Hive.DYN_DATA: "HKDD",
}


def normalize_key_path(path: str) -> str:
    """Strip surrounding separators and collapse forward slashes."""
    if not path:
        return ""
    return path.replace("/", KEY_SEPARATOR).strip(KEY_SEPARATOR)


def join_key(parent: str, child: str) -> str:
    # Hive root has an empty path; its children are addressed by name alone
    if not parent:
        return child
    return parent + KEY_SEPARATOR + child


@dataclass(frozen=True)
class KeyRecord:
    """
    Descriptor for one matched registry key.

    Attributes:
        computer_name: Host the key was read from
        hive: Hive the key lives under
        key: Full key path relative to the hive (parent + "\\" + name)
        subkey_count: Number of immediate subkeys
        value_count: Number of immediate named values
    """

    computer_name: str
    hive: Hive
    key: str
    subkey_count: int
    value_count: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON/CSV export."""
        return {
            "ComputerName": self.computer_name,
            "Hive": self.hive.value,
            "Key": self.key,
            "SubKeyCount": self.subkey_count,
            "ValueCount": self.value_count,
        }
