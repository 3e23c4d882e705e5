"""
Pytest configuration and shared fixtures for RegHound tests.
"""

import os

import pytest
from fakes import FakeConnection, tree

from reghound.utils import console, logging


@pytest.fixture(autouse=True)
def reset_verbosity():
    """Keep verbosity flags (and REGHOUND_DEBUG) from leaking between tests."""
    os.environ.pop("REGHOUND_DEBUG", None)
    yield
    logging.set_verbosity(False, False)
    console.set_verbosity(False, False)
    os.environ.pop("REGHOUND_DEBUG", None)


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    """Captured output is not a terminal; keep Rich from wrapping tables at 80 columns."""
    monkeypatch.setattr(console.console, "width", 200)


@pytest.fixture
def vendor_tree():
    """SOFTWARE\\Vendor with App1 (2 subkeys, 0 values) and App2 (0 subkeys, 3 values)."""
    return tree({
        "SOFTWARE": {
            "Vendor": {
                "App1": {"Settings": {"_values": 4}, "Plugins": {"Core": {}}},
                "App2": {"_values": 3},
                "Tools": {"_values": 1},
            },
            "Other": {},
        },
        "SYSTEM": {"CurrentControlSet": {}},
    })


@pytest.fixture
def vendor_conn(vendor_tree):
    return FakeConnection(vendor_tree)
