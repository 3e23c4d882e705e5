# Authentication context dataclass.
#
# Bundles the credential parameters every remote registry connection needs
# so the host loop and parallel runner can pass one object around.
#
# Usage:
#     auth = AuthContext(
#         username="admin",
#         password="secret",
#         domain="CORP",
#     )
#     records = enumerate_hosts(hosts, hive, path, auth=auth, ...)

from dataclasses import dataclass
from typing import Optional

from ..utils.helpers import parse_ntlm_hashes


@dataclass
class AuthContext:
    """
    Bundles all authentication-related parameters for RegHound operations.

    Attributes:
        username: Username for SMB authentication
        password: Cleartext password (mutually exclusive with hashes for auth)
        domain: Domain name ("." for local accounts)
        hashes: NTLM hashes in LMHASH:NTHASH or NTHASH format
        aes_key: Kerberos AES key (implies Kerberos)
        kerberos: Use Kerberos authentication instead of NTLM
        dc_ip: KDC address for Kerberos
        timeout: Connection timeout in seconds
    """

    username: str = ""
    password: Optional[str] = None
    domain: str = ""
    hashes: Optional[str] = None
    aes_key: Optional[str] = None  # AES key for Kerberos (128-bit or 256-bit)
    kerberos: bool = False
    dc_ip: Optional[str] = None
    timeout: int = 60

    @property
    def use_kerberos(self) -> bool:
        # AES key implies Kerberos authentication
        return self.kerberos or bool(self.aes_key)

    def get_lm_hash(self) -> str:
        """Extract LM hash from hashes string."""
        return parse_ntlm_hashes(self.hashes)[0]

    def get_nt_hash(self) -> str:
        """Extract NT hash from hashes string."""
        return parse_ntlm_hashes(self.hashes)[1]

    def __repr__(self) -> str:
        """Safe repr that doesn't expose credentials."""
        return (
            f"AuthContext(username={self.username!r}, domain={self.domain!r}, "
            f"kerberos={self.use_kerberos}, dc_ip={self.dc_ip!r}, "
            f"has_password={self.password is not None}, "
            f"has_hashes={self.hashes is not None}, "
            f"has_aes_key={self.aes_key is not None})"
        )
