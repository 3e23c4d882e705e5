# Authentication context and utilities.
#
# This module provides a centralized AuthContext dataclass that bundles
# all authentication-related parameters for SMB/RPC connections.

from .context import AuthContext

__all__ = ["AuthContext"]
