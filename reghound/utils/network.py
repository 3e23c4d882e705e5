# Reachability probing.
#
# A cheap TCP connect to the SMB port stands in for ICMP ping: raw sockets
# need root, and a host that answers ping but not on 445 is useless to the
# remote registry anyway.

import socket

from .logging import debug

SMB_PORT = 445


def is_reachable(host: str, port: int = SMB_PORT, timeout: float = 3.0) -> bool:
    """
    Check whether `host` accepts TCP connections on `port`.

    Args:
        host: Hostname or IP address
        port: TCP port to check (default: 445/SMB)
        timeout: Connect timeout in seconds

    Returns:
        True if the connection was accepted, False otherwise
    """
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except (OSError, socket.timeout) as e:
        debug(f"{host}: check on port {port} failed: {e}")
        return False
