# Data models for RegHound.
#
# This package contains dataclasses and type definitions for
# structured data used throughout the application.

from .diagnostic import Diagnostic, DiagnosticLog
from .registry import KEY_SEPARATOR, Hive, KeyRecord, join_key, normalize_key_path

__all__ = [
    "Diagnostic",
    "DiagnosticLog",
    "Hive",
    "KeyRecord",
    "KEY_SEPARATOR",
    "join_key",
    "normalize_key_path",
]
