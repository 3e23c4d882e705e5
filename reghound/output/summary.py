from typing import Dict, List

from rich.panel import Panel
from rich.table import Table

from ..engine.hosts import HostResult
from ..utils.console import _output_lock, console


def _clean_failure_reason(reason: str) -> str:
    """
    Clean up verbose error messages for summary display.

    Converts technical error strings into human-readable summaries.
    """
    if not reason:
        return "Unknown error"

    reason_lower = reason.lower()

    # Connection errors
    if "connection refused" in reason_lower or "errno 111" in reason_lower or "errno 61" in reason_lower:
        return "Connection refused"
    if "connection timed out" in reason_lower or "timed out" in reason_lower:
        return "Connection timed out"
    if "name or service not known" in reason_lower or "getaddrinfo failed" in reason_lower:
        return "DNS resolution failed"
    if "network unreachable" in reason_lower:
        return "Network unreachable"
    if "no route to host" in reason_lower:
        return "No route to host"
    if "reachability check" in reason_lower:
        return "Host unreachable"

    # SMB/Auth errors
    if "status_logon_failure" in reason_lower or "0xc000006d" in reason_lower:
        return "Authentication failed"
    if "status_account_disabled" in reason_lower or "0xc0000072" in reason_lower:
        return "Account disabled"
    if "status_account_locked_out" in reason_lower:
        return "Account locked out"
    if "status_password_expired" in reason_lower:
        return "Password expired"
    if "status_access_denied" in reason_lower or "access denied" in reason_lower:
        return "Access denied"

    # Registry errors
    if "remoteregistry" in reason_lower and "stopped" in reason_lower:
        return "RemoteRegistry stopped"
    if "key not found" in reason_lower:
        return "Key not found"
    if "cancelled" in reason_lower:
        return "Cancelled"

    if ": " in reason:
        # Take the first meaningful part before technical details
        parts = reason.split(": ", 1)
        if len(parts[0]) < 40:
            return parts[0]

    return reason


def summarize_results(results: List[HostResult]) -> Dict[str, Dict]:
    """Per-host stats: key count, status marker and cleaned failure reason."""
    stats: Dict[str, Dict] = {}
    for r in results:
        entry = stats.setdefault(r.host, {"keys": 0, "errors": 0, "status": "[+]", "failure_reason": ""})
        entry["keys"] += len(r.records)
        entry["errors"] += sum(1 for d in r.diagnostics if d.is_error)
        if not r.success:
            entry["status"] = "[-]"
            entry["failure_reason"] = _clean_failure_reason(r.error or "")
    return stats


def print_summary_table(results: List[HostResult]) -> None:
    """Print succeeded and failed hosts as two Rich panels."""
    stats = summarize_results(results)
    if not stats:
        return

    ok_table = Table(show_header=True, header_style="bold white", box=None)
    ok_table.add_column("Hostname", style="white")
    ok_table.add_column("Keys", style="green", justify="right")
    ok_table.add_column("Skipped", style="yellow", justify="right")

    failed_table = Table(show_header=True, header_style="bold white", box=None)
    failed_table.add_column("Hostname", style="white")
    failed_table.add_column("Error", style="red")

    failed = 0
    for host, entry in stats.items():
        if entry["status"] == "[+]":
            ok_table.add_row(host, str(entry["keys"]), str(entry["errors"]))
        else:
            failed += 1
            failed_table.add_row(host, entry["failure_reason"])

    with _output_lock:
        console.print()
        if len(stats) > failed:
            console.print(Panel(ok_table, title="[bold]HOST SUMMARY[/]", border_style="cyan"))
        if failed:
            console.print(Panel(failed_table, title="[bold]FAILED HOSTS[/]", border_style="red"))
