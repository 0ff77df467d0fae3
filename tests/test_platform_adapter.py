"""Tests for the PowerShell platform adapter (platform_adapter.py).

subprocess.run is patched; the tests check what gets sent to PowerShell
and how its output is interpreted.
"""

import base64
import json
import subprocess
from unittest.mock import patch

import pytest

from winrm_cert_agent.exceptions import ListenerProvisioningError, PlatformError
from winrm_cert_agent.platform_adapter import (
    CREATE_LISTENER_SCRIPT,
    PowerShellPlatform,
)

from conftest import build_der


def completed(stdout="", stderr="", returncode=0):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def platform():
    return PowerShellPlatform(powershell_executable="powershell.exe")


class TestListener:

    def test_listener_present(self, platform):
        output = json.dumps({
            "Hostname": "host01.corp.example.com",
            "CertificateThumbprint": "ab cd ef 01",
            "Port": "5986",
            "Enabled": "true",
        })
        with patch("winrm_cert_agent.platform_adapter.subprocess.run", return_value=completed(output)):
            listener = platform.get_https_listener()

        assert listener.hostname == "host01.corp.example.com"
        assert listener.certificate_thumbprint == "ABCDEF01"
        assert listener.port == 5986
        assert listener.enabled is True
        assert listener.transport == "HTTPS"
        assert listener.address == "*"

    def test_listener_absent(self, platform):
        with patch("winrm_cert_agent.platform_adapter.subprocess.run", return_value=completed("null")):
            assert platform.get_https_listener() is None

    def test_listener_query_failure(self, platform):
        with patch(
            "winrm_cert_agent.platform_adapter.subprocess.run",
            return_value=completed(stderr="WinRM service not running", returncode=1),
        ):
            with pytest.raises(PlatformError) as exc_info:
                platform.get_https_listener()

        assert not isinstance(exc_info.value, ListenerProvisioningError)
        assert exc_info.value.exit_code == 1
        assert "WinRM service not running" in str(exc_info.value)

    def test_unparseable_output(self, platform):
        with patch("winrm_cert_agent.platform_adapter.subprocess.run", return_value=completed("{oops")):
            with pytest.raises(PlatformError, match="unparseable"):
                platform.get_https_listener()


class TestCertificates:

    def test_reads_store(self, platform):
        raw = [base64.b64encode(build_der()).decode(), base64.b64encode(build_der()).decode()]
        with patch("winrm_cert_agent.platform_adapter.subprocess.run", return_value=completed(json.dumps(raw))):
            certs = platform.get_local_machine_certificates()

        assert len(certs) == 2

    def test_single_entry_unwrapped(self, platform):
        raw = base64.b64encode(build_der()).decode()
        with patch("winrm_cert_agent.platform_adapter.subprocess.run", return_value=completed(json.dumps(raw))):
            certs = platform.get_local_machine_certificates()

        assert len(certs) == 1

    def test_empty_store(self, platform):
        with patch("winrm_cert_agent.platform_adapter.subprocess.run", return_value=completed("[]")):
            assert platform.get_local_machine_certificates() == []


class TestMutations:

    def test_create_passes_parameters_on_stdin(self, platform):
        with patch(
            "winrm_cert_agent.platform_adapter.subprocess.run", return_value=completed()
        ) as mock_run:
            platform.create_https_listener("host01.corp.example.com", "ABCDEF01")

        args, kwargs = mock_run.call_args
        cmd = args[0]
        assert cmd[0] == "powershell.exe"
        assert "-NonInteractive" in cmd
        assert cmd[-1] == CREATE_LISTENER_SCRIPT
        assert json.loads(kwargs["input"]) == {
            "hostname": "host01.corp.example.com",
            "thumbprint": "ABCDEF01",
        }

    def test_create_never_interpolates_into_script(self, platform):
        hostile = "x'; Remove-Item C:\\ -Recurse; '"
        with patch(
            "winrm_cert_agent.platform_adapter.subprocess.run", return_value=completed()
        ) as mock_run:
            platform.create_https_listener(hostile, "ABCDEF01")

        cmd = mock_run.call_args[0][0]
        assert all(hostile not in part for part in cmd)

    def test_create_failure(self, platform):
        with patch(
            "winrm_cert_agent.platform_adapter.subprocess.run",
            return_value=completed(stderr="Cannot find the certificate", returncode=1),
        ):
            with pytest.raises(ListenerProvisioningError) as exc_info:
                platform.create_https_listener("host01", "ABCDEF01")

        assert exc_info.value.detail == "Cannot find the certificate"
        assert exc_info.value.operation == "create HTTPS listener"

    def test_delete_failure(self, platform):
        with patch(
            "winrm_cert_agent.platform_adapter.subprocess.run",
            return_value=completed(returncode=1),
        ):
            with pytest.raises(ListenerProvisioningError, match="exit code 1"):
                platform.delete_https_listener()

    def test_powershell_missing(self, platform):
        with patch(
            "winrm_cert_agent.platform_adapter.subprocess.run",
            side_effect=FileNotFoundError("powershell.exe"),
        ):
            with pytest.raises(ListenerProvisioningError, match="could not start PowerShell"):
                platform.create_https_listener("host01", "ABCDEF01")


class TestHostIdentity:

    def test_computer_name_from_environment(self, platform, monkeypatch):
        monkeypatch.setenv("COMPUTERNAME", "HOST01")
        assert platform.get_computer_name() == "HOST01"

    def test_computer_name_falls_back_to_hostname(self, platform, monkeypatch):
        monkeypatch.delenv("COMPUTERNAME", raising=False)
        with patch("winrm_cert_agent.platform_adapter.socket.gethostname", return_value="host01.corp.example.com"):
            assert platform.get_computer_name() == "host01"

    def test_fqdn(self, platform):
        with patch("winrm_cert_agent.platform_adapter.socket.getfqdn", return_value="host01.corp.example.com"):
            assert platform.get_host_fqdn() == "host01.corp.example.com"

    def test_now_is_aware(self, platform):
        assert platform.now().tzinfo is not None
