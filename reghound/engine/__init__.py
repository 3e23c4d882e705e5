# Engine package for registry enumeration.
#
# Filter, depth-first walker, the sequential multi-host loop and the
# threaded runner built on top of it.

from .async_runner import ParallelScanner, ScanConfig, collect_diagnostics, iter_records
from .filter import MATCH_ALL, compile_pattern, matches
from .hosts import HostResult, ScanRequest, enumerate_hosts, scan_host
from .walker import WalkContext, walk

__all__ = [
    "MATCH_ALL",
    "compile_pattern",
    "matches",
    "WalkContext",
    "walk",
    "ScanRequest",
    "HostResult",
    "enumerate_hosts",
    "scan_host",
    "ScanConfig",
    "ParallelScanner",
    "iter_records",
    "collect_diagnostics",
]
