# Multi-host enumeration with per-host failure isolation.
#
# Each host gets its own connection and its own walk. Anything that goes
# wrong for one host (ping failure, login failure, missing start key,
# unexpected exception) is written to the DiagnosticLog and the loop moves
# on to the next host. The connection is closed exactly once per host.

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, List, Optional

from ..auth import AuthContext
from ..exceptions import OperationCancelled, RegistryError, error_kind
from ..models.diagnostic import Diagnostic, DiagnosticLog
from ..models.registry import Hive, KeyRecord, normalize_key_path
from ..smb.remote_registry import connect
from ..utils.helpers import resolve_host
from ..utils.logging import debug, good, info
from ..utils.network import is_reachable
from .filter import MATCH_ALL
from .walker import WalkContext, walk


@dataclass
class ScanRequest:
    """What to enumerate on every host."""

    hive: Hive = Hive.LOCAL_MACHINE
    path: str = ""
    pattern: str = MATCH_ALL
    recurse: bool = False
    ping: bool = False
    start_service: bool = True


@dataclass
class HostResult:
    """Result from scanning a single host."""

    host: str
    """Resolved host name (local machine name for empty targets)."""

    success: bool = False
    """True if the walk ran to completion."""

    records: List[KeyRecord] = field(default_factory=list)
    """Records produced for this host, in walk order."""

    diagnostics: List[Diagnostic] = field(default_factory=list)
    """Warnings and errors reported for this host."""

    error: Optional[str] = None
    """Message of the failure that stopped this host, if any."""

    elapsed_ms: float = 0.0
    """Processing time in milliseconds."""


def _host_records(
    host: str,
    request: ScanRequest,
    auth: Optional[AuthContext],
    diagnostics: DiagnosticLog,
    cancel: Optional[threading.Event],
    connector: Callable,
    pinger: Callable[[str], bool],
) -> Iterator[KeyRecord]:
    """Records for one already-resolved host; failures become diagnostics."""
    if request.ping and not pinger(host):
        diagnostics.warn(host, "unreachable", "Host did not respond to reachability check")
        return

    try:
        conn = connector(host, request.hive, auth, start_service=request.start_service)
    except RegistryError as e:
        diagnostics.error(host, error_kind(e), str(e))
        return

    def report(h, path, exc):
        diagnostics.error(h, error_kind(exc), str(exc), path=path)

    context = WalkContext(
        host=host,
        hive=request.hive,
        pattern=request.pattern or MATCH_ALL,
        recurse=request.recurse,
        cancel=cancel,
    )
    records = walk(conn, request.path, context, report=report)
    count = 0
    try:
        for record in records:
            count += 1
            yield record
        good(f"{host}: {count} keys under {request.hive.short_name}\\{request.path}")
    except OperationCancelled:
        raise
    except RegistryError as e:
        diagnostics.error(host, error_kind(e), str(e), path=e.path if e.path is not None else request.path)
    except Exception as e:  # noqa: BLE001 - one host must never abort the batch
        debug(f"{host}: unexpected failure", exc_info=True)
        diagnostics.error(host, "failed", f"Unexpected error: {e}", path=request.path)
    finally:
        # Release key handles before the connection that owns them
        records.close()
        conn.close()


def enumerate_hosts(
    hosts: Iterable[str],
    hive=Hive.LOCAL_MACHINE,
    path: str = "",
    pattern: str = MATCH_ALL,
    recurse: bool = False,
    ping: bool = False,
    *,
    auth: Optional[AuthContext] = None,
    diagnostics: Optional[DiagnosticLog] = None,
    cancel: Optional[threading.Event] = None,
    start_service: bool = True,
    connector: Callable = connect,
    pinger: Callable[[str], bool] = is_reachable,
) -> Iterator[KeyRecord]:
    """
    Enumerate `path` on every host and yield one combined record stream.

    Hosts are processed sequentially in input order, so each host's records
    are contiguous. Per-host failures never abort the stream; they are
    recorded in `diagnostics`.

    Args:
        hosts: Target hosts ("" means the local machine)
        hive: Hive enum member or name accepted by Hive.parse()
        path: Starting key path relative to the hive
        pattern: Wildcard filter applied to every child name
        recurse: Descend into every child regardless of filter match
        ping: Skip hosts that fail a reachability check
        auth: Credentials for the remote registry connection
        diagnostics: Out-of-band channel for warnings and errors
        cancel: Set to stop the enumeration at the next key or host
        start_service: Allow starting a stopped RemoteRegistry service
        connector: Connection factory (host, hive, auth, start_service=...)
        pinger: Reachability check (host) -> bool

    Yields:
        KeyRecord for every matching key across all hosts
    """
    request = ScanRequest(
        hive=Hive.parse(hive),
        path=normalize_key_path(path),
        pattern=pattern or MATCH_ALL,
        recurse=recurse,
        ping=ping,
        start_service=start_service,
    )
    diagnostics = diagnostics if diagnostics is not None else DiagnosticLog()

    for target in hosts:
        host = resolve_host(target)
        if cancel is not None and cancel.is_set():
            diagnostics.warn(host, "cancelled", "Enumeration cancelled before host was processed")
            return
        info(f"{host}: enumerating {request.hive.short_name}\\{request.path}")
        try:
            yield from _host_records(host, request, auth, diagnostics, cancel, connector, pinger)
        except OperationCancelled as e:
            diagnostics.warn(host, "cancelled", str(e), path=e.path)
            return


def scan_host(
    target: str,
    request: ScanRequest,
    *,
    auth: Optional[AuthContext] = None,
    cancel: Optional[threading.Event] = None,
    connector: Callable = connect,
    pinger: Callable[[str], bool] = is_reachable,
) -> HostResult:
    """
    Scan one host and buffer its records (used by the parallel runner).

    Returns:
        HostResult; success is False when any error diagnostic was raised
        for the host or the scan was cancelled
    """
    host = resolve_host(target)
    start = time.perf_counter()
    diagnostics = DiagnosticLog()
    result = HostResult(host=host)

    if cancel is not None and cancel.is_set():
        diagnostics.warn(host, "cancelled", "Enumeration cancelled before host was processed")
    else:
        try:
            result.records = list(_host_records(host, request, auth, diagnostics, cancel, connector, pinger))
        except OperationCancelled as e:
            diagnostics.warn(host, "cancelled", str(e), path=e.path)

    result.diagnostics = list(diagnostics)
    failures = [d for d in result.diagnostics if d.is_error or d.kind in ("unreachable", "cancelled")]
    result.success = not failures
    if failures:
        result.error = failures[0].message
    result.elapsed_ms = (time.perf_counter() - start) * 1000
    return result
