# Out-of-band diagnostics for registry enumeration.
#
# The record stream only ever carries successful KeyRecords. Anything that
# went wrong (unreachable host, failed login, missing key, denied subtree)
# lands here instead, tagged with the host it belongs to. The CLI attaches a
# listener that prints each entry as it arrives.

import threading
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional

WARNING = "warning"
ERROR = "error"


@dataclass(frozen=True)
class Diagnostic:
    """One non-fatal problem reported during enumeration."""

    host: str
    level: str
    kind: str
    message: str
    path: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.level == ERROR

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class DiagnosticLog:
    """
    Thread-safe collector for Diagnostic entries.

    Usage:
        diagnostics = DiagnosticLog(listener=print_diagnostic)
        records = list(enumerate_hosts(hosts, ..., diagnostics=diagnostics))
        for d in diagnostics.errors():
            ...
    """

    def __init__(self, listener: Optional[Callable[[Diagnostic], None]] = None):
        self._entries: List[Diagnostic] = []
        self._lock = threading.Lock()
        self.listener = listener

    def add(self, diagnostic: Diagnostic) -> Diagnostic:
        with self._lock:
            self._entries.append(diagnostic)
        if self.listener is not None:
            self.listener(diagnostic)
        return diagnostic

    def warn(self, host: str, kind: str, message: str, path: Optional[str] = None) -> Diagnostic:
        return self.add(Diagnostic(host=host, level=WARNING, kind=kind, message=message, path=path))

    def error(self, host: str, kind: str, message: str, path: Optional[str] = None) -> Diagnostic:
        return self.add(Diagnostic(host=host, level=ERROR, kind=kind, message=message, path=path))

    def extend(self, diagnostics) -> None:
        for d in diagnostics:
            self.add(d)

    def for_host(self, host: str) -> List[Diagnostic]:
        with self._lock:
            return [d for d in self._entries if d.host == host]

    def errors(self) -> List[Diagnostic]:
        with self._lock:
            return [d for d in self._entries if d.is_error]

    def warnings(self) -> List[Diagnostic]:
        with self._lock:
            return [d for d in self._entries if not d.is_error]

    def hosts_with_errors(self) -> List[str]:
        seen: List[str] = []
        for d in self.errors():
            if d.host not in seen:
                seen.append(d.host)
        return seen

    def __iter__(self) -> Iterator[Diagnostic]:
        with self._lock:
            return iter(list(self._entries))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
