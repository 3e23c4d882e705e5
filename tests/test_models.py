# Tests for registry and diagnostic data models.

import dataclasses
import threading

import pytest

from reghound.models import (
    KEY_SEPARATOR,
    Diagnostic,
    DiagnosticLog,
    Hive,
    KeyRecord,
    join_key,
    normalize_key_path,
)
from reghound.models.diagnostic import ERROR, WARNING


class TestHive:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("LocalMachine", Hive.LOCAL_MACHINE),
            ("localmachine", Hive.LOCAL_MACHINE),
            ("HKLM", Hive.LOCAL_MACHINE),
            ("hklm:", Hive.LOCAL_MACHINE),
            ("HKEY_LOCAL_MACHINE", Hive.LOCAL_MACHINE),
            ("HKCU", Hive.CURRENT_USER),
            ("Users", Hive.USERS),
            ("HKU", Hive.USERS),
            ("ClassesRoot", Hive.CLASSES_ROOT),
            ("HKCC", Hive.CURRENT_CONFIG),
            ("PerformanceData", Hive.PERFORMANCE_DATA),
            ("DynData", Hive.DYN_DATA),
        ],
    )
    def test_parse(self, text, expected):
        assert Hive.parse(text) is expected

    def test_parse_passes_enum_through(self):
        assert Hive.parse(Hive.USERS) is Hive.USERS

    @pytest.mark.parametrize("text", ["", "HKXX", "Machine", None])
    def test_parse_rejects_unknown(self, text):
        with pytest.raises(ValueError, match="Unknown registry hive"):
            Hive.parse(text)

    def test_every_hive_has_names(self):
        for hive in Hive:
            assert hive.long_name.startswith("HKEY_")
            assert hive.short_name.startswith("HK")

    def test_seven_hives(self):
        assert len(list(Hive)) == 7


class TestKeyPaths:
    def test_separator(self):
        assert KEY_SEPARATOR == "\\"

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("SOFTWARE\\Vendor", "SOFTWARE\\Vendor"),
            ("\\SOFTWARE\\Vendor\\", "SOFTWARE\\Vendor"),
            ("SOFTWARE/Vendor", "SOFTWARE\\Vendor"),
            ("", ""),
            (None, ""),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_key_path(raw) == expected

    def test_join(self):
        assert join_key("SOFTWARE\\Vendor", "App1") == "SOFTWARE\\Vendor\\App1"

    def test_join_at_hive_root(self):
        assert join_key("", "SOFTWARE") == "SOFTWARE"


class TestKeyRecord:
    def test_to_dict_uses_table_column_names(self):
        rec = KeyRecord("HOST1", Hive.LOCAL_MACHINE, "SOFTWARE\\Vendor\\App1", 2, 0)
        assert rec.to_dict() == {
            "ComputerName": "HOST1",
            "Hive": "LocalMachine",
            "Key": "SOFTWARE\\Vendor\\App1",
            "SubKeyCount": 2,
            "ValueCount": 0,
        }

    def test_is_immutable(self):
        rec = KeyRecord("HOST1", Hive.LOCAL_MACHINE, "A", 0, 0)
        with pytest.raises(dataclasses.FrozenInstanceError):
            rec.key = "B"

    def test_equality_by_value(self):
        a = KeyRecord("H", Hive.USERS, "S-1-5-18", 1, 2)
        b = KeyRecord("H", Hive.USERS, "S-1-5-18", 1, 2)
        assert a == b
        assert len({a, b}) == 1


class TestDiagnosticLog:
    def test_warn_and_error_levels(self):
        log = DiagnosticLog()
        w = log.warn("H1", "unreachable", "no answer")
        e = log.error("H2", "connection", "refused", path="SOFTWARE")

        assert w.level == WARNING and not w.is_error
        assert e.level == ERROR and e.is_error
        assert len(log) == 2
        assert log.errors() == [e]
        assert log.warnings() == [w]

    def test_for_host_and_hosts_with_errors(self):
        log = DiagnosticLog()
        log.error("H1", "access_denied", "a", path="X")
        log.error("H1", "access_denied", "b", path="Y")
        log.warn("H2", "unreachable", "c")
        log.error("H3", "connection", "d")

        assert [d.message for d in log.for_host("H1")] == ["a", "b"]
        assert log.hosts_with_errors() == ["H1", "H3"]

    def test_listener_called_for_each_entry(self):
        seen = []
        log = DiagnosticLog(listener=seen.append)
        log.warn("H1", "unreachable", "x")
        log.extend([Diagnostic("H2", ERROR, "failed", "y")])
        assert [d.host for d in seen] == ["H1", "H2"]

    def test_iteration_is_a_snapshot(self):
        log = DiagnosticLog()
        log.warn("H1", "unreachable", "x")
        it = iter(log)
        log.warn("H2", "unreachable", "y")
        assert len(list(it)) == 1

    def test_to_dict(self):
        d = Diagnostic("H1", ERROR, "not_found", "Key not found: A", path="A")
        assert d.to_dict() == {
            "host": "H1",
            "level": "error",
            "kind": "not_found",
            "message": "Key not found: A",
            "path": "A",
        }

    def test_thread_safe_adds(self):
        log = DiagnosticLog()

        def worker(n):
            for i in range(200):
                log.warn(f"H{n}", "unreachable", str(i))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(log) == 1600
