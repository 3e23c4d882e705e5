# SMB connection helpers.
#
# Small wrapper around Impacket's SMBConnection to handle cleartext
# passwords, NTLM hashes (LM:NT or NT-only), and optional Kerberos
# authentication. The remote registry pipe rides on this session.

from impacket.smbconnection import SMBConnection

from ..auth import AuthContext


def smb_connect(target: str, auth: AuthContext) -> SMBConnection:
    """
    Create and authenticate an SMBConnection to `target`.

    Hashes take precedence over the cleartext password. Kerberos is used when
    requested explicitly or when an AES key is supplied.

    Args:
        target: Target IP or hostname
        auth: Credentials and connection timeout

    Returns:
        Authenticated SMBConnection
    """
    smb = SMBConnection(remoteName=target, remoteHost=target, sess_port=445, timeout=auth.timeout)

    lmhash, nthash = auth.get_lm_hash(), auth.get_nt_hash()

    if auth.use_kerberos:
        smb.kerberosLogin(
            user=auth.username,
            password=auth.password or "",
            domain=auth.domain,
            lmhash=lmhash,
            nthash=nthash,
            aesKey=auth.aes_key or "",
            TGT=None,
            TGS=None,
            kdcHost=auth.dc_ip,
        )
    elif lmhash or nthash:
        # When presenting hashes to SMB, the cleartext password is empty
        smb.login(auth.username, "", auth.domain, lmhash=lmhash, nthash=nthash)
    else:
        smb.login(auth.username, auth.password or "", auth.domain)
    return smb
