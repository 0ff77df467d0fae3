"""
Platform adapter: local certificate store and WinRM listener CRUD.

PowerShellPlatform runs fixed PowerShell scripts on the local host.
Script text is constant; any parameters travel as JSON on stdin and are
read back with ConvertFrom-Json, so no command line is ever assembled
from certificate or host data.
"""

import json
import logging
import os
import socket
import subprocess
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from ._types import Certificate, Listener, now_utc
from .certificates import certificates_from_raw_data
from .exceptions import ListenerProvisioningError, PlatformError

logger = logging.getLogger(__name__)


class PlatformAdapter(Protocol):
    """Operations the reconciler needs from the host."""

    def get_local_machine_certificates(self) -> List[Certificate]: ...

    def get_https_listener(self) -> Optional[Listener]: ...

    def delete_https_listener(self) -> None: ...

    def create_https_listener(self, hostname: str, thumbprint: str) -> None: ...

    def get_host_fqdn(self) -> str: ...

    def get_computer_name(self) -> str: ...

    def now(self) -> datetime: ...


# =============================================================================
# PowerShell scripts
# =============================================================================

LIST_CERTIFICATES_SCRIPT = r'''
$ErrorActionPreference = 'Stop'
$raw = @(Get-ChildItem -Path 'Cert:\LocalMachine\My' |
    Where-Object { $_ -is [System.Security.Cryptography.X509Certificates.X509Certificate2] } |
    ForEach-Object { [Convert]::ToBase64String($_.RawData) })
ConvertTo-Json -InputObject $raw -Compress
'''

GET_LISTENER_SCRIPT = r'''
$ErrorActionPreference = 'Stop'
$listener = Get-WSManInstance -ResourceURI winrm/config/Listener -Enumerate |
    Where-Object { $_.Transport -eq 'HTTPS' -and $_.Address -eq '*' } |
    Select-Object -First 1
if ($null -eq $listener) {
    'null'
} else {
    @{
        Hostname = $listener.Hostname
        CertificateThumbprint = $listener.CertificateThumbprint
        Port = $listener.Port
        Enabled = $listener.Enabled
    } | ConvertTo-Json -Compress
}
'''

DELETE_LISTENER_SCRIPT = r'''
$ErrorActionPreference = 'Stop'
Remove-WSManInstance -ResourceURI winrm/config/Listener -SelectorSet @{ Address = '*'; Transport = 'HTTPS' }
'''

CREATE_LISTENER_SCRIPT = r'''
$ErrorActionPreference = 'Stop'
$params = [Console]::In.ReadToEnd() | ConvertFrom-Json
New-WSManInstance -ResourceURI winrm/config/Listener `
    -SelectorSet @{ Address = '*'; Transport = 'HTTPS' } `
    -ValueSet @{ Hostname = [string]$params.hostname; CertificateThumbprint = [string]$params.thumbprint } |
    Out-Null
'''


class PowerShellPlatform:
    """
    Local Windows platform driven through Windows PowerShell.

    All calls are blocking and carry no timeout; a hung WSMan call hangs
    the run.
    """

    def __init__(self, powershell_executable: str = "powershell.exe"):
        self.powershell_executable = powershell_executable

    def _command(self, script: str) -> List[str]:
        return [
            self.powershell_executable,
            "-NoProfile",
            "-NonInteractive",
            "-ExecutionPolicy", "Bypass",
            "-Command", script,
        ]

    def _run(
        self,
        operation: str,
        script: str,
        params: Optional[Dict[str, Any]] = None,
        error_cls: type = PlatformError,
    ) -> str:
        """Run a script and return its stdout, raising error_cls on failure."""
        cmd = self._command(script)
        stdin = json.dumps(params) if params is not None else ""

        logger.debug(f"Running PowerShell operation: {operation}")

        try:
            result = subprocess.run(
                cmd,
                input=stdin,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise error_cls(operation, f"could not start PowerShell: {e}", cmd=cmd) from e

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            raise error_cls(
                operation,
                stderr or f"exit code {result.returncode}",
                cmd=cmd,
                exit_code=result.returncode,
                stdout=result.stdout or "",
                stderr=result.stderr or "",
            )

        return (result.stdout or "").strip()

    def _run_json(self, operation: str, script: str) -> Any:
        output = self._run(operation, script)
        try:
            return json.loads(output) if output else None
        except json.JSONDecodeError as e:
            raise PlatformError(operation, f"unparseable output: {e}", stdout=output) from e

    def get_local_machine_certificates(self) -> List[Certificate]:
        raw = self._run_json("list certificates", LIST_CERTIFICATES_SCRIPT)
        if raw is None:
            return []
        if isinstance(raw, str):
            raw = [raw]
        certificates = certificates_from_raw_data(raw)
        logger.info(f"Read {len(certificates)} certificates from LocalMachine\\My")
        return certificates

    def get_https_listener(self) -> Optional[Listener]:
        data = self._run_json("query HTTPS listener", GET_LISTENER_SCRIPT)
        if not data:
            return None

        port = data.get("Port")
        return Listener(
            hostname=data.get("Hostname") or "",
            certificate_thumbprint=data.get("CertificateThumbprint") or None,
            port=int(port) if port else None,
            enabled=str(data.get("Enabled", "true")).lower() == "true",
        )

    def delete_https_listener(self) -> None:
        self._run(
            "delete HTTPS listener",
            DELETE_LISTENER_SCRIPT,
            error_cls=ListenerProvisioningError,
        )
        logger.info("Deleted HTTPS listener")

    def create_https_listener(self, hostname: str, thumbprint: str) -> None:
        self._run(
            "create HTTPS listener",
            CREATE_LISTENER_SCRIPT,
            params={"hostname": hostname, "thumbprint": thumbprint},
            error_cls=ListenerProvisioningError,
        )
        logger.info(f"Created HTTPS listener for {hostname} ({thumbprint})")

    def get_host_fqdn(self) -> str:
        return socket.getfqdn()

    def get_computer_name(self) -> str:
        name = os.environ.get("COMPUTERNAME")
        if name:
            return name
        return socket.gethostname().split(".")[0]

    def now(self) -> datetime:
        return now_utc()
