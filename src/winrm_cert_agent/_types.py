"""
Single source of truth for shared types in winrm-cert-agent.

Usage:
    from winrm_cert_agent._types import (
        Certificate, Listener, ReconcileResult,
        DecisionOutcome, Severity,
        now_utc  # Use instead of datetime.utcnow()
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import FrozenSet, Optional


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def now_utc() -> datetime:
    """
    Get current UTC time with timezone info.

    Use this instead of datetime.utcnow() which is deprecated.
    """
    return datetime.now(timezone.utc)


def normalize_thumbprint(thumbprint: Optional[str]) -> Optional[str]:
    """Upper-case a thumbprint and strip the separators certmgr copies along."""
    if thumbprint is None:
        return None
    cleaned = "".join(ch for ch in thumbprint if ch.isalnum()).upper()
    return cleaned or None


# =============================================================================
# ENUMS
# =============================================================================


class Severity(str, Enum):
    """Outcome record severity (CMTrace type codes 1/2/3)."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def type_code(self) -> int:
        return {Severity.INFO: 1, Severity.WARNING: 2, Severity.ERROR: 3}[self]


class DecisionOutcome(str, Enum):
    """Terminal state of one reconciliation pass."""
    NOOP_ALREADY_OPTIMAL = "noop_already_optimal"
    UPGRADED_EXISTING_LISTENER = "upgraded_existing_listener"
    CREATED_NEW_LISTENER = "created_new_listener"
    ERROR_NO_ELIGIBLE_CERTIFICATE = "error_no_eligible_certificate"
    ERROR_CERTIFICATE_EXPIRED = "error_certificate_expired"
    ERROR_PROVISIONING_FAILED = "error_provisioning_failed"

    @property
    def is_success(self) -> bool:
        return self in (
            DecisionOutcome.NOOP_ALREADY_OPTIMAL,
            DecisionOutcome.UPGRADED_EXISTING_LISTENER,
            DecisionOutcome.CREATED_NEW_LISTENER,
        )

    @property
    def severity(self) -> Severity:
        return Severity.INFO if self.is_success else Severity.ERROR


# Process exit codes consumed by the calling orchestration layer.
EXIT_SUCCESS = 0
EXIT_INVALID_OR_EXPIRED = 1
EXIT_FATAL = 2
EXIT_NO_CERTIFICATE_NO_LISTENER = 3
EXIT_PROVISIONING_FAILED = 4


# =============================================================================
# DATA MODELS
# =============================================================================


@dataclass(frozen=True)
class Certificate:
    """A certificate from the LocalMachine\\My store. Read-only."""
    thumbprint: str
    subject: str
    issuer: str
    not_after: datetime
    enhanced_key_usage: FrozenSet[str] = field(default_factory=frozenset)
    not_before: Optional[datetime] = None

    def __post_init__(self):
        object.__setattr__(self, "thumbprint", normalize_thumbprint(self.thumbprint) or "")
        object.__setattr__(self, "enhanced_key_usage", frozenset(self.enhanced_key_usage))


@dataclass(frozen=True)
class Listener:
    """The HTTPS listener on the wildcard address."""
    hostname: str
    certificate_thumbprint: Optional[str]
    address: str = "*"
    transport: str = "HTTPS"
    port: Optional[int] = None
    enabled: bool = True

    def __post_init__(self):
        object.__setattr__(
            self, "certificate_thumbprint", normalize_thumbprint(self.certificate_thumbprint)
        )


@dataclass
class ReconcileResult:
    """Result of one reconciliation pass."""
    outcome: DecisionOutcome
    exit_code: int
    message: str
    previous_thumbprint: Optional[str] = None
    selected_thumbprint: Optional[str] = None
    dry_run: bool = False
    timestamp: str = ""

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = now_utc().isoformat()

    @property
    def success(self) -> bool:
        return self.outcome.is_success

    def to_dict(self) -> dict:
        return {
            "outcome": self.outcome.value,
            "exit_code": self.exit_code,
            "message": self.message,
            "previous_thumbprint": self.previous_thumbprint,
            "selected_thumbprint": self.selected_thumbprint,
            "dry_run": self.dry_run,
            "timestamp": self.timestamp,
        }
