"""
Exception hierarchy for winrm-cert-agent.

Certificate-selection failures are not exceptions; they are decision
outcomes (see _types.DecisionOutcome). Exceptions here cover the platform
and the ambient stack.
"""

from typing import Optional, Sequence


class AgentError(Exception):
    """Base class for all agent errors."""


class ConfigError(AgentError):
    """Configuration file or override is invalid."""


class LoggingSinkUnavailable(AgentError):
    """A configured outcome sink could not be opened or registered."""

    def __init__(self, sink: str, reason: str):
        self.sink = sink
        self.reason = reason
        super().__init__(f"Logging sink '{sink}' unavailable: {reason}")


class PlatformError(AgentError):
    """A platform call (PowerShell / WSMan / certificate store) failed."""

    def __init__(
        self,
        operation: str,
        detail: str,
        cmd: Optional[Sequence[str]] = None,
        exit_code: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
    ):
        self.operation = operation
        self.detail = detail
        self.cmd = list(cmd) if cmd else []
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(f"{operation} failed: {detail}")


class ListenerProvisioningError(PlatformError):
    """Creating or deleting the HTTPS listener failed."""
