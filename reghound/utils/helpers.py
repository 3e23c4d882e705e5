# Small helpers used across the codebase.
#
# Target normalization and credential string parsing shared by the CLI and
# the SMB layer.

import socket
from typing import List, Optional, Tuple


def is_ipv4(host: str) -> bool:
    # Fast, permissive IPv4 string check (no regex).
    #
    # Accepts dotted-quad notation and ensures each octet is in 0-255.
    parts = host.strip().split(".")
    if len(parts) != 4:
        return False
    try:
        return all(0 <= int(p) <= 255 for p in parts)
    except ValueError:
        return False


def parse_ntlm_hashes(hashes: Optional[str]) -> Tuple[str, str]:
    """
    Parse NTLM hashes from string format.

    Args:
        hashes: Hash string in "LM:NT" or "NT" format, or None/empty

    Returns:
        Tuple of (lmhash, nthash) - empty strings if not provided
    """
    if not hashes:
        return "", ""

    if ":" in hashes:
        lmhash, nthash = hashes.split(":", 1)
        return lmhash, nthash
    else:
        return "", hashes


def local_host_name() -> str:
    """Name of the machine we are running on (used for empty host targets)."""
    return socket.gethostname() or "localhost"


def resolve_host(host: Optional[str]) -> str:
    """Substitute the local machine name for an empty host target."""
    host = (host or "").strip()
    return host or local_host_name()


def normalize_targets(targets: List[str], domain: Optional[str] = None) -> List[str]:
    """Normalize a list of targets: keep IPs, append domain for short hostnames.

    Args:
        targets: List of target strings (IPs, hostnames or FQDNs)
        domain: Domain to append to short hostnames (skipped when None)

    Returns:
        Normalized list of targets in input order, duplicates removed

    Empty strings are kept as-is: they stand for the local machine and are
    resolved at scan time.
    """
    out: List[str] = []
    for t in targets:
        t = t.strip()
        if not t or is_ipv4(t):
            pass
        elif domain and "." not in t and t.lower() != "localhost":
            t = f"{t}.{domain}"
        if t not in out:
            out.append(t)
    return out


def parse_target_list(value: Optional[str]) -> List[str]:
    """Split a comma-separated target option into a list."""
    if not value:
        return []
    return [t.strip() for t in value.split(",") if t.strip()]
