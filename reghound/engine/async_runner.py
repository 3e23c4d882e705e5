# Parallel processing for multi-host registry scans.
#
# ThreadPoolExecutor-based fan-out over hosts. Uses threading (not asyncio)
# because SMB/RPC operations are blocking I/O.
#
# Thread-safety considerations:
# - Each worker owns its connection and its DiagnosticLog
# - Rich console handles thread-safe output
# - Results are returned in input order regardless of completion order, so
#   each host's records stay contiguous in the combined stream

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional

from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)

from ..auth import AuthContext
from ..models.diagnostic import DiagnosticLog
from ..models.registry import KeyRecord
from ..smb.remote_registry import connect
from ..utils.console import console, info, print_scan_complete, warn
from ..utils.network import is_reachable
from .hosts import HostResult, ScanRequest, scan_host


@dataclass
class ScanConfig:
    """Configuration for parallel processing."""

    workers: int = 10
    """Number of concurrent worker threads."""

    rate_limit: Optional[float] = None
    """Maximum hosts started per second. None = unlimited."""

    show_progress: bool = True
    """Show progress bar during processing."""


def _progress_bar() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold cyan]Scanning[/]"),
        BarColumn(bar_width=40),
        TaskProgressColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        TextColumn("│"),
        TimeRemainingColumn(),
        TextColumn("[dim]{task.fields[status]}[/]"),
        console=console,
        transient=False,
    )


def _status_text(result: HostResult) -> str:
    if result.success:
        return f"[green][+][/] {result.host} ({len(result.records)} keys)"
    error_short = (result.error or "Error")[:30]
    return f"[red][-][/] {result.host}: {error_short}"


class ParallelScanner:
    """
    Parallel registry scanner using ThreadPoolExecutor.

    Usage:
        scanner = ParallelScanner(ScanConfig(workers=20), auth=auth)
        results = scanner.run(hosts, ScanRequest(path="SOFTWARE", recurse=True))
    """

    def __init__(
        self,
        config: Optional[ScanConfig] = None,
        auth: Optional[AuthContext] = None,
        cancel: Optional[threading.Event] = None,
        connector: Callable = connect,
        pinger: Callable[[str], bool] = is_reachable,
    ):
        self.config = config or ScanConfig()
        self.auth = auth
        self.cancel = cancel
        self.connector = connector
        self.pinger = pinger

        self._rate_semaphore: Optional[threading.Semaphore] = None
        self._rate_thread: Optional[threading.Thread] = None
        self._stop_rate_limiter = threading.Event()

        # Statistics
        self._succeeded = 0
        self._failed = 0
        self._lock = threading.Lock()

        self._progress: Optional[Progress] = None
        self._task_id = None

    def _start_rate_limiter(self) -> None:
        """Start background thread that releases rate limiter tokens."""
        if self.config.rate_limit is None or self.config.rate_limit <= 0:
            return

        # Semaphore starts empty; background thread adds tokens at rate_limit/sec
        self._rate_semaphore = threading.Semaphore(0)
        self._stop_rate_limiter.clear()

        def token_generator():
            interval = 1.0 / self.config.rate_limit
            while not self._stop_rate_limiter.is_set():
                self._rate_semaphore.release()
                time.sleep(interval)

        self._rate_thread = threading.Thread(target=token_generator, daemon=True)
        self._rate_thread.start()

    def _stop_rate_limiter_thread(self) -> None:
        if self._rate_thread:
            self._stop_rate_limiter.set()
            self._rate_thread.join(timeout=1.0)
            self._rate_thread = None
            self._rate_semaphore = None

    def _acquire_rate_token(self) -> None:
        if self._rate_semaphore:
            self._rate_semaphore.acquire()

    def _scan_one(self, target: str, request: ScanRequest) -> HostResult:
        """Scan a single host with rate limiting and progress accounting."""
        self._acquire_rate_token()

        try:
            result = scan_host(
                target,
                request,
                auth=self.auth,
                cancel=self.cancel,
                connector=self.connector,
                pinger=self.pinger,
            )
        except Exception as e:
            # scan_host isolates registry failures; this is a programming error
            warn(f"{target or 'localhost'}: Processing failed: {e}")
            result = HostResult(host=target, success=False, error=f"Unexpected error: {e}")

        with self._lock:
            if result.success:
                self._succeeded += 1
            else:
                self._failed += 1

        if self._progress is not None and self._task_id is not None:
            self._progress.update(self._task_id, advance=1, status=_status_text(result))

        return result

    def run(self, targets: List[str], request: ScanRequest) -> List[HostResult]:
        """
        Scan every target and return one HostResult per target.

        Args:
            targets: Hosts to scan ("" means the local machine)
            request: Hive, path, filter and recurse settings

        Returns:
            List of HostResult objects in input order
        """
        if not targets:
            return []

        self._succeeded = 0
        self._failed = 0
        start_time = time.perf_counter()

        if self.config.workers <= 1:
            info(f"Sequential scan: {len(targets)} targets")
        else:
            info(f"Starting parallel scan: {len(targets)} targets, {self.config.workers} workers")
        if self.config.rate_limit:
            info(f"Rate limit: {self.config.rate_limit} targets/second")

        self._start_rate_limiter()
        progress = _progress_bar() if self.config.show_progress else None

        try:
            if progress is not None:
                progress.start()
                self._progress = progress
                self._task_id = progress.add_task("Scanning", total=len(targets), status="")

            if self.config.workers <= 1:
                results = [self._scan_one(t, request) for t in targets]
            else:
                with ThreadPoolExecutor(max_workers=self.config.workers) as executor:
                    futures = [executor.submit(self._scan_one, t, request) for t in targets]
                    try:
                        results = [f.result() for f in futures]
                    except KeyboardInterrupt:
                        # Let running workers unwind instead of blocking shutdown
                        if self.cancel is not None:
                            self.cancel.set()
                        for f in futures:
                            f.cancel()
                        raise
        finally:
            if progress is not None:
                progress.stop()
            self._progress = None
            self._task_id = None
            self._stop_rate_limiter_thread()

        if self.config.show_progress:
            total_time = time.perf_counter() - start_time
            avg_time = (total_time / len(targets)) * 1000
            print_scan_complete(
                self._succeeded,
                self._failed,
                total_time,
                avg_time,
                records=sum(len(r.records) for r in results),
            )

        return results


def iter_records(results: List[HostResult]) -> Iterator[KeyRecord]:
    """Flatten per-host results into one record stream, host by host."""
    for result in results:
        yield from result.records


def collect_diagnostics(results: List[HostResult], log: Optional[DiagnosticLog] = None) -> DiagnosticLog:
    """Merge per-host diagnostics into a single log (in input order)."""
    log = log if log is not None else DiagnosticLog()
    for result in results:
        log.extend(result.diagnostics)
    return log
