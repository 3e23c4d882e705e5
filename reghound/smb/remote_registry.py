# Remote registry connection provider.
#
# Opens a hive root on a remote Windows host through Impacket's rrp module
# (MS-RRP over \pipe\winreg) and exposes the handful of key operations the
# traversal engine needs: open, list subkeys, query counts, close.
#
# Follows Impacket's RemoteOperations pattern from secretsdump.py and reg.py:
# - Connects to SCM via \pipe\svcctl
# - Checks RemoteRegistry service status
# - Starts service if stopped, enables if disabled
# - Performs registry operations via \pipe\winreg
# - Restores service to original state on close

import contextlib
import time
from typing import Any, List, Optional, Tuple

from impacket.dcerpc.v5 import rrp, scmr, transport
from impacket.dcerpc.v5.rpcrt import DCERPCException
from impacket.smbconnection import SessionError

from ..auth import AuthContext
from ..exceptions import (
    ERROR_ACCESS_DENIED,
    ERROR_FILE_NOT_FOUND,
    ERROR_NO_MORE_ITEMS,
    AccessDeniedError,
    KeyAccessError,
    KeyNotFoundError,
    RegConnectionError,
)
from ..models.registry import Hive
from ..utils.helpers import resolve_host
from ..utils.logging import debug as log_debug
from .connection import smb_connect

# rrp helper used to open each hive root. DynData only ever existed on
# Windows 9x and has no MS-RRP opnum.
HIVE_OPENERS = {
    Hive.CLASSES_ROOT: "hOpenClassesRoot",
    Hive.CURRENT_USER: "hOpenCurrentUser",
    Hive.LOCAL_MACHINE: "hOpenLocalMachine",
    Hive.USERS: "hOpenUsers",
    Hive.PERFORMANCE_DATA: "hOpenPerformanceData",
    Hive.CURRENT_CONFIG: "hOpenCurrentConfig",
    Hive.DYN_DATA: None,
}


def rpc_error_code(exc: BaseException) -> Optional[int]:
    """Extract the WIN32 status code from an Impacket DCE/RPC error."""
    getter = getattr(exc, "get_error_code", None)
    if getter is None:
        return None
    try:
        return getter()
    except Exception:  # noqa: BLE001 - malformed error objects carry no code
        return None


def translate_rpc_error(exc: BaseException, host: str, path: str) -> KeyAccessError:
    """Turn an rrp session error into the matching KeyAccessError subclass."""
    code = rpc_error_code(exc)
    display = path or "<hive root>"
    if code == ERROR_FILE_NOT_FOUND:
        return KeyNotFoundError(f"Key not found: {display}", host=host, path=path, cause=exc)
    if code == ERROR_ACCESS_DENIED:
        return AccessDeniedError(f"Access denied: {display}", host=host, path=path, cause=exc)
    return KeyAccessError(f"{display}: {exc}", host=host, path=path, cause=exc)


class RemoteRegistryOps:
    """
    Manages Remote Registry service lifecycle for registry operations.
    Follows Impacket's RemoteOperations pattern from secretsdump.py/reg.py.
    """

    SERVICE_NAME = "RemoteRegistry"
    WINREG_BINDING = r"ncacn_np:445[\pipe\winreg]"
    SVCCTL_BINDING = r"ncacn_np:445[\pipe\svcctl]"

    def __init__(self, smb_conn, host: str, start_service: bool = True):
        self._smb_conn = smb_conn
        self._host = host
        self._start_service = start_service

        # SCM/service state
        self._scmr = None
        self._sc_manager_handle = None
        self._service_handle = None
        self._should_stop = False  # True if we started service that was stopped
        self._disabled = False  # True if we enabled service that was disabled

        # WinReg state
        self._rrp = None

    def _connect_svc_ctl(self):
        """Connect to the Service Control Manager via \\pipe\\svcctl"""
        rpc = transport.DCERPCTransportFactory(self.SVCCTL_BINDING)
        rpc.set_smb_connection(self._smb_conn)
        self._scmr = rpc.get_dce_rpc()
        self._scmr.connect()
        self._scmr.bind(scmr.MSRPC_UUID_SCMR)
        log_debug(f"{self._host}: connected to SCM (\\pipe\\svcctl)")

    def _connect_win_reg(self):
        """Connect to the Remote Registry via \\pipe\\winreg"""
        rpc = transport.DCERPCTransportFactory(self.WINREG_BINDING)
        rpc.set_smb_connection(self._smb_conn)
        self._rrp = rpc.get_dce_rpc()
        self._rrp.connect()
        self._rrp.bind(rrp.MSRPC_UUID_RRP)
        log_debug(f"{self._host}: connected to Remote Registry (\\pipe\\winreg)")

    def _check_service_status(self):
        """
        Check RemoteRegistry service status, enable/start if needed.
        Tracks original state to restore later.
        """
        ans = scmr.hROpenSCManagerW(self._scmr)
        self._sc_manager_handle = ans["lpScHandle"]

        ans = scmr.hROpenServiceW(
            self._scmr,
            self._sc_manager_handle,
            self.SERVICE_NAME + "\x00",
            scmr.SERVICE_START | scmr.SERVICE_STOP | scmr.SERVICE_CHANGE_CONFIG | scmr.SERVICE_QUERY_CONFIG | scmr.SERVICE_QUERY_STATUS,
        )
        self._service_handle = ans["lpServiceHandle"]

        ans = scmr.hRQueryServiceStatus(self._scmr, self._service_handle)
        state = ans["lpServiceStatus"]["dwCurrentState"]

        if state == scmr.SERVICE_STOPPED:
            if not self._start_service:
                raise RegConnectionError(
                    f"{self.SERVICE_NAME} service is stopped (service start disabled)", host=self._host
                )
            log_debug(f"{self._host}: RemoteRegistry service is stopped")
            self._should_stop = True

            ans = scmr.hRQueryServiceConfigW(self._scmr, self._service_handle)
            if ans["lpServiceConfig"]["dwStartType"] == 0x4:  # SERVICE_DISABLED
                log_debug(f"{self._host}: RemoteRegistry is disabled, enabling it")
                self._disabled = True
                scmr.hRChangeServiceConfigW(self._scmr, self._service_handle, dwStartType=0x3)  # SERVICE_DEMAND_START

            log_debug(f"{self._host}: starting RemoteRegistry service")
            scmr.hRStartServiceW(self._scmr, self._service_handle)
            time.sleep(1)  # Give service time to start

        elif state == scmr.SERVICE_RUNNING:
            log_debug(f"{self._host}: RemoteRegistry service already running")
            self._should_stop = False
        else:
            raise RegConnectionError(f"Unknown RemoteRegistry service state: 0x{state:x}", host=self._host)

    def _restore(self):
        """Restore RemoteRegistry service to original state"""
        try:
            if self._should_stop and self._service_handle:
                log_debug(f"{self._host}: stopping RemoteRegistry service")
                scmr.hRControlService(self._scmr, self._service_handle, scmr.SERVICE_CONTROL_STOP)

            if self._disabled and self._service_handle:
                log_debug(f"{self._host}: disabling RemoteRegistry service")
                scmr.hRChangeServiceConfigW(self._scmr, self._service_handle, dwStartType=0x4)  # SERVICE_DISABLED
        except Exception as e:  # noqa: BLE001 - best effort during teardown
            log_debug(f"{self._host}: error restoring service state: {e}")

    def enable_registry(self):
        """Enable remote registry access (start service if needed)"""
        self._connect_svc_ctl()
        self._check_service_status()
        self._connect_win_reg()

    def get_rrp(self):
        """Get the RRP DCE connection for registry operations"""
        return self._rrp

    def finish(self):
        """Cleanup: restore service state and disconnect"""
        self._restore()
        for dce in (self._rrp, self._scmr):
            if dce is not None:
                with contextlib.suppress(Exception):
                    dce.disconnect()
        self._rrp = None
        self._scmr = None


class RegistryConnection:
    """
    An open hive root on one host.

    Handles returned by open_key() belong to the caller, who must hand each
    one back to close_key() exactly once. close() releases the hive root and
    the underlying sessions; it is safe to call more than once.
    """

    def __init__(
        self,
        host: str,
        hive: Hive,
        dce: Any,
        root_handle: Any,
        remote_ops: Optional[RemoteRegistryOps] = None,
        smb: Any = None,
    ):
        self.host = host
        self.hive = hive
        self._dce = dce
        self._root = root_handle
        self._remote_ops = remote_ops
        self._smb = smb
        self._closed = False

    def _call(self, path: str, fn, *args, **kwargs):
        try:
            return fn(self._dce, *args, **kwargs)
        except DCERPCException as e:
            raise translate_rpc_error(e, self.host, path) from e
        except (OSError, SessionError) as e:
            raise RegConnectionError(f"Lost connection while reading {path or '<hive root>'}: {e}", host=self.host, path=path, cause=e) from e

    def open_key(self, path: str):
        """Open `path` (relative to the hive root) for reading."""
        ans = self._call(path, rrp.hBaseRegOpenKey, self._root, path, samDesired=rrp.KEY_READ)
        return ans["phkResult"]

    def query_info(self, handle, path: str = "") -> Tuple[int, int]:
        """Return (subkey_count, value_count) for an open key."""
        ans = self._call(path, rrp.hBaseRegQueryInfoKey, handle)
        return int(ans["lpcSubKeys"]), int(ans["lpcValues"])

    def subkey_names(self, handle, path: str = "") -> List[str]:
        """List the immediate subkey names of an open key, in store order."""
        count, _ = self.query_info(handle, path)
        names: List[str] = []
        for index in range(count):
            try:
                ans = rrp.hBaseRegEnumKey(self._dce, handle, index)
            except DCERPCException as e:
                # Subkeys removed between the count query and enumeration
                if rpc_error_code(e) == ERROR_NO_MORE_ITEMS:
                    break
                raise translate_rpc_error(e, self.host, path) from e
            except (OSError, SessionError) as e:
                raise RegConnectionError(f"Lost connection while listing {path}: {e}", host=self.host, path=path, cause=e) from e
            names.append(str(ans["lpNameOut"]).rstrip("\x00"))
        return names

    def close_key(self, handle) -> None:
        try:
            rrp.hBaseRegCloseKey(self._dce, handle)
        except Exception as e:  # noqa: BLE001 - a failed close must not mask the walk result
            log_debug(f"{self.host}: close key failed: {e}")

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._root is not None:
            self.close_key(self._root)
        if self._remote_ops is not None:
            self._remote_ops.finish()
        if self._smb is not None:
            with contextlib.suppress(Exception):
                self._smb.close()
        log_debug(f"{self.host}: registry connection closed")

    def __enter__(self) -> "RegistryConnection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def connect(
    host: str,
    hive,
    auth: Optional[AuthContext] = None,
    start_service: bool = True,
) -> RegistryConnection:
    """
    Open the root of `hive` on `host` over the remote registry protocol.

    Args:
        host: Target hostname or IP ("" means the local machine)
        hive: Hive enum member or any name Hive.parse() accepts
        auth: Credentials; anonymous when omitted
        start_service: Start RemoteRegistry if it is stopped

    Returns:
        RegistryConnection; the caller must close() it

    Raises:
        RegConnectionError: Host unreachable, login failed, service
            unavailable or the hive could not be opened
    """
    host = resolve_host(host)
    hive = Hive.parse(hive)
    auth = auth or AuthContext()

    opener = HIVE_OPENERS.get(hive)
    if opener is None:
        raise RegConnectionError(
            f"{hive.long_name} cannot be opened over the remote registry protocol", host=host
        )

    smb = None
    remote_ops = None
    try:
        smb = smb_connect(host, auth)
        remote_ops = RemoteRegistryOps(smb, host, start_service=start_service)
        remote_ops.enable_registry()
        dce = remote_ops.get_rrp()
        root = getattr(rrp, opener)(dce)["phKey"]
    except Exception as e:  # noqa: BLE001 - SMB, Kerberos and DCE/RPC all raise their own types
        if remote_ops is not None:
            remote_ops.finish()
        if smb is not None:
            with contextlib.suppress(Exception):
                smb.close()
        if isinstance(e, RegConnectionError):
            raise
        raise RegConnectionError(f"Failed to open {hive.long_name}: {e}", host=host, cause=e) from e

    log_debug(f"{host}: opened {hive.long_name}")
    return RegistryConnection(host, hive, dce, root, remote_ops=remote_ops, smb=smb)
