# Rich-based console for thread-safe, colored terminal output.
#
# This module provides a centralized console for all RegHound output,
# with proper handling for multi-threaded host scanning.
#
# Features:
# - Thread-safe output (no interleaving)
# - Colored status messages
# - Rich panels for summary output

import os
import threading
from typing import Optional

from rich.console import Console
from rich.panel import Panel

# Global console instance - thread-safe by default
console = Console(highlight=False)

# Lock for complex multi-line output
_output_lock = threading.RLock()


# =============================================================================
# Banner
# =============================================================================

REGHOUND_TEAL = "#14B8A6"

BANNER_ART = f"""
[bold {REGHOUND_TEAL}]RRRR  EEEEE  GGG  H   H  OOO  U   U N   N DDDD[/]
[bold {REGHOUND_TEAL}]R   R E     G     H   H O   O U   U NN  N D   D[/]
[bold {REGHOUND_TEAL}]RRRR  EEEE  G  GG HHHHH O   O U   U N N N D   D[/]
[bold {REGHOUND_TEAL}]R  R  E     G   G H   H O   O U   U N  NN D   D[/]
[bold {REGHOUND_TEAL}]R   R EEEEE  GGG  H   H  OOO   UUU  N   N DDDD[/]
"""


def print_banner():
    """Print the colored RegHound banner."""
    console.print(BANNER_ART)


# =============================================================================
# Status Messages (thread-safe)
# =============================================================================

def status(msg: str):
    """Print a status message (always visible). Thread-safe."""
    with _output_lock:
        console.print(msg)


def good(msg: str, verbose_only: bool = False):
    """Print a success message in green. Thread-safe."""
    if verbose_only and not _is_verbose():
        return
    with _output_lock:
        console.print(f"[green][+][/] {msg}")


def warn(msg: str, verbose_only: bool = False):
    """Print a warning message in yellow. Thread-safe.

    Args:
        msg: Message to print
        verbose_only: If True, only print in verbose mode
    """
    if verbose_only and not _is_verbose():
        return
    with _output_lock:
        console.print(f"[yellow][!][/] {msg}")


def error(msg: str):
    """Print an error message in red. Thread-safe."""
    with _output_lock:
        console.print(f"[red][-][/] {msg}")


def info(msg: str, verbose_only: bool = False):
    """Print an info message in blue. Thread-safe."""
    if verbose_only and not _is_verbose():
        return
    with _output_lock:
        console.print(f"[blue][*][/] {msg}")


def debug(msg: str, exc_info: bool = False):
    """Print a debug message in dim text. Thread-safe."""
    if not _is_debug():
        return
    with _output_lock:
        console.print(f"[dim][DEBUG][/] {msg}")
        if exc_info:
            console.print_exception()


# =============================================================================
# Verbosity Control
# =============================================================================

_VERBOSE = False
_DEBUG = False


def set_verbosity(verbose: bool, debug: bool):
    """Set verbosity levels."""
    global _VERBOSE, _DEBUG
    _VERBOSE = verbose
    _DEBUG = debug


def _is_verbose() -> bool:
    return _VERBOSE or _DEBUG


def _is_debug() -> bool:
    return _DEBUG or bool(os.getenv("REGHOUND_DEBUG"))


# =============================================================================
# Scan Complete Summary
# =============================================================================

def print_scan_complete(
    succeeded: int,
    failed: int,
    total_time: float,
    avg_time_ms: float,
    records: Optional[int] = None,
):
    """Print scan completion summary."""
    console.print()

    content_lines = [
        f"  [green][+][/] Succeeded: [bold]{succeeded}[/]",
        f"  [red][-][/] Failed: [bold]{failed}[/]",
    ]
    if records is not None:
        content_lines.append(f"  [cyan][*][/] Keys: [bold]{records}[/]")

    content_lines.extend([
        f"  [dim]Total time: {total_time:.2f}s[/]",
        f"  [dim]Avg per host: {avg_time_ms:.0f}ms[/]",
    ])

    console.print(
        Panel(
            "\n".join(content_lines),
            title="[bold]SCAN COMPLETE[/]",
            border_style="green" if failed == 0 else "yellow",
        )
    )
