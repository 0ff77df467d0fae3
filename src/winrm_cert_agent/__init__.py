"""WinRM Cert Agent - binds the WinRM HTTPS listener to the best server certificate"""

__version__ = "0.1.0"

from ._types import Certificate, Listener, DecisionOutcome, ReconcileResult, Severity
from .selector import CertificateSelector, is_expired
from .reconciler import ListenerReconciler
from .platform_adapter import PlatformAdapter, PowerShellPlatform
from .log_sinks import OutcomeLog, configure_outcome_log
from .config import AgentConfig, load_config

__all__ = [
    # Version
    "__version__",

    # Data model
    "Certificate",
    "Listener",
    "DecisionOutcome",
    "ReconcileResult",
    "Severity",

    # Selection
    "CertificateSelector",
    "is_expired",

    # Reconciliation
    "ListenerReconciler",

    # Platform
    "PlatformAdapter",
    "PowerShellPlatform",

    # Logging
    "OutcomeLog",
    "configure_outcome_log",

    # Config
    "AgentConfig",
    "load_config",
]
