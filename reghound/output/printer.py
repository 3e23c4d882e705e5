from typing import Iterable, List

from rich import box
from rich.markup import escape
from rich.table import Table

from ..models.diagnostic import Diagnostic
from ..models.registry import KeyRecord
from ..utils import logging as log_utils
from ..utils.console import _output_lock, console
from . import COLORS

RECORD_COLUMNS = ["ComputerName", "Hive", "Key", "SubKeyCount", "ValueCount"]


def build_record_table(records: Iterable[KeyRecord], title: str = None) -> Table:
    """
    Build a Rich table of key records.

    Args:
        records: Records in the order they should be listed
        title: Optional table title

    Returns:
        Rich Table object
    """
    table = Table(
        title=title,
        box=box.SIMPLE_HEAVY,
        header_style=COLORS["header"],
        border_style=COLORS["border"],
        expand=False,
    )
    table.add_column("ComputerName", style=COLORS["host"], no_wrap=True)
    table.add_column("Hive", style=COLORS["hive"], no_wrap=True)
    table.add_column("Key", style=COLORS["key"], overflow="fold")
    table.add_column("SubKeyCount", style=COLORS["count"], justify="right")
    table.add_column("ValueCount", style=COLORS["count"], justify="right")

    for rec in records:
        table.add_row(
            escape(rec.computer_name),
            rec.hive.value,
            escape(rec.key),
            str(rec.subkey_count),
            str(rec.value_count),
        )
    return table


def print_records(records: List[KeyRecord], title: str = None) -> None:
    """Print records as one table; prints a notice instead of an empty table."""
    if not records:
        log_utils.warn("No matching keys found")
        return
    with _output_lock:
        console.print(build_record_table(records, title=title))


def print_diagnostic(diagnostic: Diagnostic) -> None:
    """Listener for DiagnosticLog: print each entry as it is reported."""
    where = f" \\[{escape(diagnostic.path)}]" if diagnostic.path else ""
    msg = f"{escape(diagnostic.host)}{where}: {escape(diagnostic.message)}"
    if diagnostic.is_error:
        log_utils.error(msg)
    elif diagnostic.kind == "cancelled":
        log_utils.warn(msg)
    else:
        # Unreachable hosts are expected noise on large target lists
        log_utils.warn(msg, verbose_only=True)
