"""Tests for record printing, file writers and the host summary."""

import csv
import json

import pytest

from reghound.engine.hosts import HostResult
from reghound.models.diagnostic import Diagnostic, DiagnosticLog
from reghound.models.registry import Hive, KeyRecord
from reghound.output.printer import RECORD_COLUMNS, build_record_table, print_diagnostic, print_records
from reghound.output.summary import _clean_failure_reason, print_summary_table, summarize_results
from reghound.output.writer import CSV_FIELDS, write_csv, write_json
from reghound.utils import logging as log_utils


@pytest.fixture
def records():
    return [
        KeyRecord("H1", Hive.LOCAL_MACHINE, "SOFTWARE\\Vendor\\App1", 2, 0),
        KeyRecord("H1", Hive.LOCAL_MACHINE, "SOFTWARE\\Vendor\\App2", 0, 3),
    ]


class TestPrinter:
    def test_table_columns(self, records):
        table = build_record_table(records, title="Keys")
        assert [c.header for c in table.columns] == RECORD_COLUMNS
        assert table.row_count == 2
        assert table.title == "Keys"

    def test_print_records(self, records, capsys):
        print_records(records)
        out = capsys.readouterr().out
        assert "SOFTWARE\\Vendor\\App1" in out
        assert "LocalMachine" in out

    def test_print_no_records(self, capsys):
        print_records([])
        assert "No matching keys found" in capsys.readouterr().out

    def test_error_diagnostic_always_printed(self, capsys):
        print_diagnostic(Diagnostic("H1", "error", "access_denied", "Access denied: SAM", path="SAM"))
        assert "H1 [SAM]: Access denied: SAM" in capsys.readouterr().out

    def test_unreachable_warning_verbose_only(self, capsys):
        d = Diagnostic("H1", "warning", "unreachable", "Host did not respond")
        print_diagnostic(d)
        assert capsys.readouterr().out == ""

        log_utils.set_verbosity(True, False)
        print_diagnostic(d)
        assert "H1: Host did not respond" in capsys.readouterr().out

    def test_cancelled_warning_printed(self, capsys):
        print_diagnostic(Diagnostic("H1", "warning", "cancelled", "Enumeration cancelled"))
        assert "Enumeration cancelled" in capsys.readouterr().out


class TestWriter:
    def test_json_plain_list(self, records, tmp_path):
        path = tmp_path / "out.json"
        write_json(str(path), records, silent=True)

        data = json.loads(path.read_text())
        assert data[0] == {
            "ComputerName": "H1",
            "Hive": "LocalMachine",
            "Key": "SOFTWARE\\Vendor\\App1",
            "SubKeyCount": 2,
            "ValueCount": 0,
        }

    def test_json_with_diagnostics(self, records, tmp_path):
        log = DiagnosticLog()
        log.error("H2", "connection", "Failed to open HKEY_LOCAL_MACHINE: refused")
        path = tmp_path / "out.json"

        write_json(str(path), records, diagnostics=list(log), silent=True)

        data = json.loads(path.read_text())
        assert len(data["records"]) == 2
        assert data["diagnostics"] == [
            {
                "host": "H2",
                "level": "error",
                "kind": "connection",
                "message": "Failed to open HKEY_LOCAL_MACHINE: refused",
                "path": None,
            }
        ]

    def test_csv(self, records, tmp_path):
        path = tmp_path / "out.csv"
        write_csv(str(path), records)

        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert list(rows[0].keys()) == CSV_FIELDS
        assert rows[1]["Key"] == "SOFTWARE\\Vendor\\App2"
        assert rows[1]["ValueCount"] == "3"

    def test_csv_empty_has_header(self, tmp_path):
        path = tmp_path / "out.csv"
        write_csv(str(path), [])
        assert path.read_text().strip() == ",".join(CSV_FIELDS)


class TestFailureReason:
    @pytest.mark.parametrize(
        "reason,expected",
        [
            ("", "Unknown error"),
            ("Failed to open HKEY_LOCAL_MACHINE: [Errno 111] Connection refused", "Connection refused"),
            ("Failed to open HKEY_LOCAL_MACHINE: timed out", "Connection timed out"),
            ("[Errno -2] Name or service not known", "DNS resolution failed"),
            ("Host did not respond to reachability check", "Host unreachable"),
            ("SMB SessionError: STATUS_LOGON_FAILURE(...)", "Authentication failed"),
            ("STATUS_ACCOUNT_LOCKED_OUT", "Account locked out"),
            ("Access denied: SOFTWARE\\Secret", "Access denied"),
            ("RemoteRegistry service is stopped (service start disabled)", "RemoteRegistry stopped"),
            ("Key not found: SOFTWARE\\Nope", "Key not found"),
            ("Enumeration cancelled before host was processed", "Cancelled"),
            ("Unexpected error: boom", "Unexpected error"),
            ("something odd", "something odd"),
        ],
    )
    def test_reasons(self, reason, expected):
        assert _clean_failure_reason(reason) == expected


class TestSummary:
    def _results(self, records):
        ok = HostResult(host="H1", success=True, records=records)
        partial = HostResult(
            host="H2",
            success=False,
            records=records[:1],
            diagnostics=[Diagnostic("H2", "error", "access_denied", "Access denied: X", path="X")],
            error="Access denied: X",
        )
        down = HostResult(host="H3", error="Failed to open HKEY_LOCAL_MACHINE: connection refused")
        return [ok, partial, down]

    def test_summarize(self, records):
        stats = summarize_results(self._results(records))
        assert stats["H1"] == {"keys": 2, "errors": 0, "status": "[+]", "failure_reason": ""}
        assert stats["H2"]["keys"] == 1
        assert stats["H2"]["errors"] == 1
        assert stats["H2"]["failure_reason"] == "Access denied"
        assert stats["H3"]["status"] == "[-]"
        assert stats["H3"]["failure_reason"] == "Connection refused"

    def test_print_summary(self, records, capsys):
        print_summary_table(self._results(records))
        out = capsys.readouterr().out
        assert "HOST SUMMARY" in out
        assert "FAILED HOSTS" in out
        assert "Connection refused" in out

    def test_print_summary_empty(self, capsys):
        print_summary_table([])
        assert capsys.readouterr().out == ""
