# Registry enumeration exceptions.
#
# Failures are split by scope so the host loop can tell a dead host from a
# single unreadable key without parsing error strings:
#   - RegConnectionError: the whole host is unusable
#   - KeyAccessError (KeyNotFoundError, AccessDeniedError): one key/subtree
#   - MalformedPatternError: bad wildcard, treated as "matches nothing"
#   - OperationCancelled: the caller's cancel event was set

from typing import Optional

# =============================================================================
# Exceptions
# =============================================================================


class RegistryError(Exception):
    """Base exception for remote registry operations"""

    def __init__(
        self,
        message: str,
        host: Optional[str] = None,
        path: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.host = host
        self.path = path
        self.cause = cause


class RegConnectionError(RegistryError):
    """Host unreachable, login failed or hive could not be opened"""

    pass


class KeyAccessError(RegistryError):
    """A single key could not be opened, enumerated or queried"""

    pass


class KeyNotFoundError(KeyAccessError):
    """Key does not exist (or vanished before it was opened)"""

    pass


class AccessDeniedError(KeyAccessError):
    """Caller lacks read access on the key"""

    pass


class MalformedPatternError(RegistryError, ValueError):
    """Wildcard pattern could not be compiled"""

    pass


class OperationCancelled(RegistryError):
    """Enumeration stopped because the cancel event was set"""

    pass


# =============================================================================
# WIN32 status codes returned by the remote registry service
# =============================================================================

ERROR_FILE_NOT_FOUND = 0x00000002
ERROR_ACCESS_DENIED = 0x00000005
ERROR_NO_MORE_ITEMS = 0x00000103


def error_kind(exc: BaseException) -> str:
    """Map an exception to the diagnostic kind reported for it."""
    if isinstance(exc, OperationCancelled):
        return "cancelled"
    if isinstance(exc, RegConnectionError):
        return "connection"
    if isinstance(exc, KeyNotFoundError):
        return "not_found"
    if isinstance(exc, AccessDeniedError):
        return "access_denied"
    return "failed"
