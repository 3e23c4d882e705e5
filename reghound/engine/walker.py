# Depth-first registry key walker.
#
# Walks the key hierarchy under a starting path and yields one KeyRecord per
# child whose name matches the filter. With `recurse`, every child is
# descended into whether or not it matched, so the filter is applied
# independently at every level.
#
# The walk keeps an explicit stack of open frames instead of recursing, so
# deep hierarchies don't run into the interpreter's recursion limit. Each
# frame owns the handle of the key whose children it is iterating; the
# handle is closed when the frame is popped, or by the finally block if the
# walk fails, is cancelled, or the consumer stops iterating early.

import threading
from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, Optional

from ..exceptions import KeyAccessError, OperationCancelled
from ..models.registry import Hive, KeyRecord, join_key, normalize_key_path
from ..utils.logging import debug
from .filter import MATCH_ALL, matches

# report(host, path, error) - called for every child that could not be read
ErrorReporter = Callable[[str, str, KeyAccessError], None]


@dataclass(frozen=True)
class WalkContext:
    """Immutable parameters shared by every level of one walk."""

    host: str
    hive: Hive
    pattern: str = MATCH_ALL
    recurse: bool = False
    cancel: Optional[threading.Event] = None

    def check_cancelled(self, path: str = "") -> None:
        if self.cancel is not None and self.cancel.is_set():
            raise OperationCancelled("Enumeration cancelled", host=self.host, path=path)


@dataclass
class _Frame:
    path: str
    handle: Any
    children: Iterator[str]


def walk(conn, path: str, context: WalkContext, report: Optional[ErrorReporter] = None) -> Iterator[KeyRecord]:
    """
    Lazily enumerate the keys under `path`.

    Args:
        conn: Open RegistryConnection (or anything with the same key API)
        path: Starting key, relative to the hive root ("" for the root)
        context: Host, hive, filter, recurse flag and cancel event
        report: Called for each child that could not be opened or queried

    Yields:
        KeyRecord for every matching child, parents before their descendants

    Raises:
        KeyNotFoundError / AccessDeniedError: `path` itself cannot be opened
        OperationCancelled: context.cancel was set mid-walk
    """
    path = normalize_key_path(path)
    context.check_cancelled(path)

    # Failure to open or list the starting key propagates to the caller
    root = conn.open_key(path)
    try:
        names = conn.subkey_names(root, path)
    except BaseException:
        conn.close_key(root)
        raise

    stack: List[_Frame] = [_Frame(path, root, iter(names))]
    try:
        while stack:
            frame = stack[-1]
            name = next(frame.children, None)
            if name is None:
                stack.pop()
                conn.close_key(frame.handle)
                continue

            context.check_cancelled(frame.path)
            child_path = join_key(frame.path, name)
            matched = matches(name, context.pattern)
            if not matched and not context.recurse:
                continue

            try:
                record, child_frame, listing_error = _visit(conn, child_path, matched, context)
            except KeyAccessError as e:
                _report(context, report, child_path, e)
                continue

            # The key itself was described; only its subtree is skipped
            if listing_error is not None:
                _report(context, report, child_path, listing_error)

            # Push before yielding so an abandoned generator still closes it
            if child_frame is not None:
                stack.append(child_frame)
            if record is not None:
                yield record
    finally:
        while stack:
            conn.close_key(stack.pop().handle)


def _report(context: WalkContext, report: Optional[ErrorReporter], path: str, error: KeyAccessError) -> None:
    debug(f"{context.host}: skipping {path}: {error}")
    if report is not None:
        report(context.host, path, error)


def _visit(conn, child_path: str, matched: bool, context: WalkContext):
    """Open one child, describe it if it matched, and prepare its frame."""
    handle = conn.open_key(child_path)
    try:
        record = None
        if matched:
            subkeys, values = conn.query_info(handle, child_path)
            record = KeyRecord(
                computer_name=context.host,
                hive=context.hive,
                key=child_path,
                subkey_count=subkeys,
                value_count=values,
            )
        if not context.recurse:
            conn.close_key(handle)
            return record, None, None
        try:
            names = conn.subkey_names(handle, child_path)
        except KeyAccessError as e:
            conn.close_key(handle)
            return record, None, e
    except BaseException:
        conn.close_key(handle)
        raise
    return record, _Frame(child_path, handle, iter(names)), None
