# Logging utilities - delegates to rich console.
#
# Library modules import their message helpers from here so verbosity is
# decided in one place. Status and warnings are always shown; good/info only
# with --verbose; debug only with --debug or REGHOUND_DEBUG=1.

import os

from . import console as _console

_VERBOSE = False
_DEBUG = False


def set_verbosity(verbose: bool, debug_flag: bool):
    """Set verbosity levels for both this module and the console."""
    global _VERBOSE, _DEBUG
    _VERBOSE = verbose
    _DEBUG = debug_flag
    _console.set_verbosity(verbose, debug_flag)

    if debug_flag:
        os.environ["REGHOUND_DEBUG"] = "1"


def status(msg: str):
    """Always print status message (concise output)."""
    _console.status(msg)


def good(msg: str):
    """Print success message (verbose/debug only)."""
    if _VERBOSE or _DEBUG:
        _console.good(msg)


def warn(msg: str, verbose_only: bool = False):
    """Print warning message.

    Args:
        msg: Message to print
        verbose_only: If True, only print in verbose mode
    """
    _console.warn(msg, verbose_only=verbose_only)


def error(msg: str):
    """Print error message."""
    _console.error(msg)


def info(msg: str):
    """Print info message (verbose/debug only)."""
    if _VERBOSE or _DEBUG:
        _console.info(msg)


def debug(msg: str, exc_info: bool = False):
    """Debug logging - only prints if DEBUG flag is enabled."""
    if _DEBUG or os.getenv("REGHOUND_DEBUG"):
        _console.debug(msg, exc_info=exc_info)
