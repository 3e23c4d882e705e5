# Tests for the multi-host loop and its failure isolation.

import threading
from unittest.mock import MagicMock

import pytest
from fakes import FakeConnector, tree

from reghound.engine.hosts import HostResult, ScanRequest, enumerate_hosts, scan_host
from reghound.exceptions import RegConnectionError
from reghound.models.diagnostic import DiagnosticLog
from reghound.models.registry import Hive

VENDOR = "SOFTWARE\\Vendor"


def _always_up(host):
    return True


@pytest.fixture
def two_hosts(vendor_tree):
    return FakeConnector({"H1": vendor_tree, "H2": vendor_tree})


class TestHostIsolation:
    def test_unreachable_host_yields_single_diagnostic(self, vendor_tree):
        connector = FakeConnector({"H2": vendor_tree}, unreachable={"H1"})
        log = DiagnosticLog()

        records = list(
            enumerate_hosts(["H1", "H2"], Hive.LOCAL_MACHINE, VENDOR, "App*", diagnostics=log, connector=connector)
        )

        assert [(r.computer_name, r.key) for r in records] == [
            ("H2", "SOFTWARE\\Vendor\\App1"),
            ("H2", "SOFTWARE\\Vendor\\App2"),
        ]
        assert len(log) == 1
        diag = list(log)[0]
        assert diag.host == "H1"
        assert diag.kind == "connection"
        assert diag.is_error

    def test_ping_failure_is_a_warning_and_skips_connect(self, two_hosts):
        log = DiagnosticLog()

        records = list(
            enumerate_hosts(
                ["H1", "H2"], "HKLM", VENDOR, ping=True, diagnostics=log,
                connector=two_hosts, pinger=lambda h: h != "H1",
            )
        )

        assert {r.computer_name for r in records} == {"H2"}
        assert two_hosts.calls == ["H2"]
        assert [(d.host, d.kind, d.is_error) for d in log] == [("H1", "unreachable", False)]

    def test_ping_not_called_when_disabled(self, two_hosts):
        pinger = MagicMock(return_value=False)
        records = list(enumerate_hosts(["H1"], Hive.LOCAL_MACHINE, VENDOR, connector=two_hosts, pinger=pinger))
        assert records
        pinger.assert_not_called()

    def test_missing_start_key_reported_and_next_host_continues(self, vendor_tree):
        other = tree({"SOFTWARE": {"Vendor": {"Only": {}}}})
        connector = FakeConnector({"H1": tree({"SOFTWARE": {}}), "H2": other})
        log = DiagnosticLog()

        records = list(enumerate_hosts(["H1", "H2"], Hive.LOCAL_MACHINE, VENDOR, diagnostics=log, connector=connector))

        assert [r.key for r in records] == ["SOFTWARE\\Vendor\\Only"]
        errors = log.errors()
        assert len(errors) == 1
        assert errors[0].host == "H1"
        assert errors[0].kind == "not_found"
        assert errors[0].path == VENDOR

    def test_denied_subtree_reported_with_host_and_path(self, vendor_tree):
        connector = FakeConnector({"H1": vendor_tree}, denied={"SOFTWARE\\Vendor\\App1"})
        log = DiagnosticLog()

        records = list(enumerate_hosts(["H1"], Hive.LOCAL_MACHINE, VENDOR, recurse=True, diagnostics=log, connector=connector))

        assert [r.key for r in records] == ["SOFTWARE\\Vendor\\App2", "SOFTWARE\\Vendor\\Tools"]
        assert [(d.host, d.kind, d.path) for d in log] == [("H1", "access_denied", "SOFTWARE\\Vendor\\App1")]

    def test_unexpected_exception_becomes_diagnostic(self, vendor_tree):
        broken = MagicMock()
        broken.open_key.side_effect = RuntimeError("boom")
        good = FakeConnector({"H2": vendor_tree})

        def connector(host, hive, auth=None, start_service=True):
            return broken if host == "H1" else good(host, hive, auth, start_service=start_service)

        log = DiagnosticLog()
        records = list(enumerate_hosts(["H1", "H2"], Hive.LOCAL_MACHINE, VENDOR, diagnostics=log, connector=connector))

        assert {r.computer_name for r in records} == {"H2"}
        assert [(d.host, d.kind) for d in log] == [("H1", "failed")]
        assert "boom" in list(log)[0].message
        broken.close.assert_called_once()

    def test_records_for_each_host_are_contiguous(self, two_hosts):
        records = list(enumerate_hosts(["H1", "H2"], Hive.LOCAL_MACHINE, VENDOR, recurse=True, connector=two_hosts))
        hosts = [r.computer_name for r in records]
        assert hosts == sorted(hosts)
        assert hosts.count("H1") == hosts.count("H2") == 6


class TestConnectionLifecycle:
    def test_each_connection_closed_exactly_once(self, two_hosts):
        list(enumerate_hosts(["H1", "H2"], Hive.LOCAL_MACHINE, VENDOR, recurse=True, connector=two_hosts))
        for conn in two_hosts.connections.values():
            assert conn.close_calls == 1
            assert conn.balanced

    def test_connection_closed_when_start_key_missing(self, two_hosts):
        list(enumerate_hosts(["H1"], Hive.LOCAL_MACHINE, "SOFTWARE\\Nope", connector=two_hosts))
        assert two_hosts.connections["H1"].close_calls == 1

    def test_connection_closed_when_consumer_stops_early(self, two_hosts):
        gen = enumerate_hosts(["H1", "H2"], Hive.LOCAL_MACHINE, VENDOR, recurse=True, connector=two_hosts)
        next(gen)
        gen.close()

        conn = two_hosts.connections["H1"]
        assert conn.close_calls == 1
        assert conn.balanced
        assert "H2" not in two_hosts.calls

    def test_enumeration_is_lazy(self, two_hosts):
        gen = enumerate_hosts(["H1"], Hive.LOCAL_MACHINE, VENDOR, connector=two_hosts)
        assert two_hosts.calls == []
        list(gen)
        assert two_hosts.calls == ["H1"]

    def test_hive_and_service_flag_passed_to_connector(self):
        connector = MagicMock(side_effect=RegConnectionError("nope"))
        list(enumerate_hosts(["H1"], "HKCU", "", start_service=False, connector=connector))
        connector.assert_called_once_with("H1", Hive.CURRENT_USER, None, start_service=False)


class TestLocalHost:
    def test_empty_host_resolves_to_local_machine(self, vendor_tree, mocker):
        mocker.patch("reghound.utils.helpers.local_host_name", return_value="WS01")
        connector = FakeConnector({"WS01": vendor_tree})

        records = list(enumerate_hosts([""], Hive.LOCAL_MACHINE, VENDOR, "Tools", connector=connector))

        assert connector.calls == ["WS01"]
        assert [r.computer_name for r in records] == ["WS01"]


class TestCancellation:
    def test_cancel_before_start_connects_nothing(self, two_hosts):
        cancel = threading.Event()
        cancel.set()
        log = DiagnosticLog()

        records = list(enumerate_hosts(["H1", "H2"], Hive.LOCAL_MACHINE, VENDOR, diagnostics=log, cancel=cancel, connector=two_hosts))

        assert records == []
        assert two_hosts.calls == []
        assert [(d.host, d.kind) for d in log] == [("H1", "cancelled")]

    def test_cancel_during_walk_stops_remaining_hosts(self, vendor_tree):
        cancel = threading.Event()

        def on_open(path):
            if path.endswith("App2"):
                cancel.set()

        connector = FakeConnector({"H1": vendor_tree, "H2": vendor_tree}, on_open=on_open)
        log = DiagnosticLog()

        records = list(
            enumerate_hosts(["H1", "H2"], Hive.LOCAL_MACHINE, VENDOR, diagnostics=log, cancel=cancel, connector=connector)
        )

        assert [r.key for r in records] == ["SOFTWARE\\Vendor\\App1", "SOFTWARE\\Vendor\\App2"]
        assert connector.calls == ["H1"]
        assert connector.connections["H1"].close_calls == 1
        assert connector.connections["H1"].balanced
        assert [(d.host, d.kind, d.is_error) for d in log] == [("H1", "cancelled", False)]


class TestScanHost:
    def test_success(self, two_hosts):
        result = scan_host("H1", ScanRequest(path=VENDOR, pattern="App*"), connector=two_hosts, pinger=_always_up)

        assert isinstance(result, HostResult)
        assert result.host == "H1"
        assert result.success is True
        assert result.error is None
        assert [r.key for r in result.records] == ["SOFTWARE\\Vendor\\App1", "SOFTWARE\\Vendor\\App2"]
        assert result.diagnostics == []
        assert result.elapsed_ms >= 0

    def test_connection_failure(self, vendor_tree):
        connector = FakeConnector({}, unreachable={"H1"})
        result = scan_host("H1", ScanRequest(path=VENDOR), connector=connector)

        assert result.success is False
        assert "connection refused" in result.error
        assert result.records == []
        assert [d.kind for d in result.diagnostics] == ["connection"]

    def test_unreachable_ping_is_not_success(self, two_hosts):
        result = scan_host("H1", ScanRequest(path=VENDOR, ping=True), connector=two_hosts, pinger=lambda h: False)
        assert result.success is False
        assert two_hosts.calls == []

    def test_partial_failure_keeps_records(self, vendor_tree):
        connector = FakeConnector({"H1": vendor_tree}, denied={"SOFTWARE\\Vendor\\Tools"})
        result = scan_host("H1", ScanRequest(path=VENDOR), connector=connector)

        assert [r.key for r in result.records] == ["SOFTWARE\\Vendor\\App1", "SOFTWARE\\Vendor\\App2"]
        assert result.success is False
        assert result.error == "Access denied: SOFTWARE\\Vendor\\Tools"

    def test_cancelled_before_start(self, two_hosts):
        cancel = threading.Event()
        cancel.set()
        result = scan_host("H1", ScanRequest(path=VENDOR), cancel=cancel, connector=two_hosts)
        assert result.success is False
        assert [d.kind for d in result.diagnostics] == ["cancelled"]
        assert two_hosts.calls == []
