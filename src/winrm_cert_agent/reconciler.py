"""
WinRM HTTPS listener reconciliation.

One pass converges the HTTPS listener on the best eligible certificate:

    listener present:
        no eligible cert        -> ERROR_NO_ELIGIBLE_CERTIFICATE (exit 1)
        best == bound cert      -> NOOP_ALREADY_OPTIMAL          (exit 0)
        best != bound cert      -> delete + create               (exit 0)
    listener absent:
        no eligible cert        -> ERROR_NO_ELIGIBLE_CERTIFICATE (exit 3)
        best cert expired       -> ERROR_CERTIFICATE_EXPIRED     (exit 1)
        create fails            -> ERROR_PROVISIONING_FAILED     (exit 4)
        create succeeds         -> CREATED_NEW_LISTENER          (exit 0)

Upgrades always delete and recreate the listener so the hostname binding
is rebuilt from the current FQDN. A failed create after the delete is not
rolled back; the next run creates the listener from scratch.

Exit codes 1 and 3 for "no eligible certificate" are distinct on purpose:
the orchestration layer tells an invalidated existing listener apart from
a host that cannot bootstrap one.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from ._types import (
    Certificate,
    DecisionOutcome,
    Listener,
    ReconcileResult,
    EXIT_SUCCESS,
    EXIT_INVALID_OR_EXPIRED,
    EXIT_NO_CERTIFICATE_NO_LISTENER,
    EXIT_PROVISIONING_FAILED,
)
from .exceptions import ListenerProvisioningError
from .log_sinks import OutcomeLog
from .platform_adapter import PlatformAdapter
from .selector import CertificateSelector, is_expired

logger = logging.getLogger(__name__)

COMPONENT = "WinRMHttpsListener"


class ListenerReconciler:
    """Drives the HTTPS listener to the selector's pick."""

    def __init__(
        self,
        platform: PlatformAdapter,
        selector: CertificateSelector,
        host_fqdn: str,
        outcome_log: OutcomeLog,
        clock: Optional[Callable[[], datetime]] = None,
        dry_run: bool = False,
    ):
        """
        Args:
            platform: Certificate store and listener operations
            selector: Selector bound to this host's computer name
            host_fqdn: Hostname the listener advertises
            outcome_log: Receives exactly one record per pass
            clock: Returns the current time (default: platform.now)
            dry_run: Decide but skip delete/create
        """
        if not host_fqdn:
            raise ValueError("host_fqdn is required")

        self.platform = platform
        self.selector = selector
        self.host_fqdn = host_fqdn
        self.outcome_log = outcome_log
        self.clock = clock or platform.now
        self.dry_run = dry_run

    def reconcile(self) -> ReconcileResult:
        """
        Run one reconciliation pass.

        Raises:
            PlatformError: If querying the listener or the store fails
        """
        listener = self.platform.get_https_listener()

        if listener is not None:
            logger.info(
                f"HTTPS listener present (hostname={listener.hostname!r}, "
                f"thumbprint={listener.certificate_thumbprint})"
            )
            return self._reconcile_existing(listener)

        logger.info("No HTTPS listener present")
        return self._reconcile_missing()

    def _select(self) -> Optional[Certificate]:
        best = self.selector.select_best(self.platform.get_local_machine_certificates())
        if best is not None:
            logger.info(f"Best certificate: {best.thumbprint} (expires {best.not_after.isoformat()})")
        return best

    def _reconcile_existing(self, listener: Listener) -> ReconcileResult:
        bound = listener.certificate_thumbprint
        best = self._select()

        if best is None:
            return self._finish(ReconcileResult(
                outcome=DecisionOutcome.ERROR_NO_ELIGIBLE_CERTIFICATE,
                exit_code=EXIT_INVALID_OR_EXPIRED,
                message=(
                    f"HTTPS listener is bound to {bound} but no eligible replacement "
                    f"certificate exists for {self.selector.computer_name}"
                ),
                previous_thumbprint=bound,
            ))

        if best.thumbprint == bound:
            return self._finish(ReconcileResult(
                outcome=DecisionOutcome.NOOP_ALREADY_OPTIMAL,
                exit_code=EXIT_SUCCESS,
                message=f"HTTPS listener already bound to best certificate {bound}",
                previous_thumbprint=bound,
                selected_thumbprint=best.thumbprint,
            ))

        try:
            if not self.dry_run:
                self.platform.delete_https_listener()
                self.platform.create_https_listener(self.host_fqdn, best.thumbprint)
        except ListenerProvisioningError as e:
            return self._finish(ReconcileResult(
                outcome=DecisionOutcome.ERROR_PROVISIONING_FAILED,
                exit_code=EXIT_PROVISIONING_FAILED,
                message=(
                    f"Replacing HTTPS listener certificate {bound} with "
                    f"{best.thumbprint} failed: {e.detail}"
                ),
                previous_thumbprint=bound,
                selected_thumbprint=best.thumbprint,
            ))

        return self._finish(ReconcileResult(
            outcome=DecisionOutcome.UPGRADED_EXISTING_LISTENER,
            exit_code=EXIT_SUCCESS,
            message=(
                f"Recreated HTTPS listener for {self.host_fqdn} with certificate "
                f"{best.thumbprint} (was {bound})"
            ),
            previous_thumbprint=bound,
            selected_thumbprint=best.thumbprint,
        ))

    def _reconcile_missing(self) -> ReconcileResult:
        best = self._select()

        if best is None:
            return self._finish(ReconcileResult(
                outcome=DecisionOutcome.ERROR_NO_ELIGIBLE_CERTIFICATE,
                exit_code=EXIT_NO_CERTIFICATE_NO_LISTENER,
                message=(
                    f"No HTTPS listener and no eligible certificate for "
                    f"{self.selector.computer_name}"
                ),
            ))

        if is_expired(best, self.clock()):
            return self._finish(ReconcileResult(
                outcome=DecisionOutcome.ERROR_CERTIFICATE_EXPIRED,
                exit_code=EXIT_INVALID_OR_EXPIRED,
                message=(
                    f"Best certificate {best.thumbprint} expired on "
                    f"{best.not_after.isoformat()}"
                ),
                selected_thumbprint=best.thumbprint,
            ))

        try:
            if not self.dry_run:
                self.platform.create_https_listener(self.host_fqdn, best.thumbprint)
        except ListenerProvisioningError as e:
            return self._finish(ReconcileResult(
                outcome=DecisionOutcome.ERROR_PROVISIONING_FAILED,
                exit_code=EXIT_PROVISIONING_FAILED,
                message=f"Creating HTTPS listener with {best.thumbprint} failed: {e.detail}",
                selected_thumbprint=best.thumbprint,
            ))

        return self._finish(ReconcileResult(
            outcome=DecisionOutcome.CREATED_NEW_LISTENER,
            exit_code=EXIT_SUCCESS,
            message=f"Created HTTPS listener for {self.host_fqdn} with certificate {best.thumbprint}",
            selected_thumbprint=best.thumbprint,
        ))

    def _finish(self, result: ReconcileResult) -> ReconcileResult:
        result.dry_run = self.dry_run
        message = f"[dry-run] {result.message}" if self.dry_run else result.message
        self.outcome_log.log(result.outcome.severity, message, COMPONENT)
        return result
