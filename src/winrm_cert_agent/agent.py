"""
Entry point: one reconciliation pass, then exit.

Meant to be launched by machine startup / logon policy. The process exit
code is the contract with the caller:

    0  already optimal, upgraded, or created
    1  existing listener has no valid replacement / best cert expired
    2  fatal abort (config, logging sink, platform query failure)
    3  no listener and no eligible certificate
    4  listener creation failed

Overlapping runs are not serialized here; the caller is expected to launch
one run per startup/logon event.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from ._types import EXIT_FATAL, ReconcileResult, Severity
from .config import AgentConfig, load_config
from .exceptions import ConfigError, LoggingSinkUnavailable, PlatformError
from .log_sinks import OutcomeLog, configure_outcome_log
from .platform_adapter import PlatformAdapter, PowerShellPlatform
from .reconciler import COMPONENT, ListenerReconciler
from .selector import CertificateSelector

logger = logging.getLogger(__name__)


def run(
    config: AgentConfig,
    outcome_log: OutcomeLog,
    platform: Optional[PlatformAdapter] = None,
) -> ReconcileResult:
    """
    Resolve host identity and run one reconciliation pass.

    Raises:
        PlatformError: If a platform query fails
    """
    platform = platform or PowerShellPlatform(config.powershell_executable)

    computer_name = platform.get_computer_name()
    host_fqdn = platform.get_host_fqdn()
    logger.info(f"Host identity: computer_name={computer_name} fqdn={host_fqdn}")

    reconciler = ListenerReconciler(
        platform=platform,
        selector=CertificateSelector(computer_name),
        host_fqdn=host_fqdn,
        outcome_log=outcome_log,
        dry_run=config.dry_run,
    )
    return reconciler.reconcile()


def main(
    argv: Optional[Sequence[str]] = None,
    platform: Optional[PlatformAdapter] = None,
) -> int:
    """Main entry point. Returns the process exit code."""
    parser = argparse.ArgumentParser(
        description="Bind the WinRM HTTPS listener to the best local server certificate"
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to YAML configuration file (optional)"
    )
    args = parser.parse_args(argv)

    try:
        config = load_config(Path(args.config) if args.config else None)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_FATAL

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%dT%H:%M:%S%z'
    )

    try:
        outcome_log = configure_outcome_log(config)
    except LoggingSinkUnavailable as e:
        logger.error(f"Aborting before reconciliation: {e}")
        return EXIT_FATAL

    try:
        result = run(config, outcome_log, platform)
    except PlatformError as e:
        logger.error(f"Platform call failed: {e}", exc_info=True)
        outcome_log.log(Severity.ERROR, f"Aborted: {e}", COMPONENT)
        return EXIT_FATAL
    except Exception as e:
        logger.exception(f"Unexpected error during reconciliation: {e}")
        outcome_log.log(Severity.ERROR, f"Aborted: unexpected error: {e}", COMPONENT)
        return EXIT_FATAL

    logger.info(f"Outcome: {result.outcome.value} (exit {result.exit_code})")
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
