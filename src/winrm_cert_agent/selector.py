"""
Certificate selection for the WinRM HTTPS listener.

A certificate is eligible when:
- its EKU carries Server Authentication (exact OID, not a "Server" substring
  match, which would admit client-auth certificates)
- its subject contains the host's short computer name
- its issuer does not contain the host's short computer name

The issuer test is a heuristic for excluding self-issued certificates, not
a true self-signed check.

Among eligible certificates the one with the latest not_after wins; ties
go to the lowest thumbprint so repeated runs pick the same certificate.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional

from ._types import Certificate
from .certificates import SERVER_AUTH_OID

logger = logging.getLogger(__name__)


def is_expired(cert: Certificate, now: datetime) -> bool:
    """True once now has reached the certificate's not_after."""
    return cert.not_after <= now


class CertificateSelector:
    """Ranks store certificates for a given host identity."""

    def __init__(self, computer_name: str):
        """
        Args:
            computer_name: Short (NetBIOS) computer name, e.g. HOST01
        """
        if not computer_name:
            raise ValueError("computer_name is required")
        self.computer_name = computer_name

    def _contains_host(self, distinguished_name: str) -> bool:
        return self.computer_name.casefold() in (distinguished_name or "").casefold()

    def is_eligible(self, cert: Certificate) -> bool:
        if SERVER_AUTH_OID not in cert.enhanced_key_usage:
            return False
        if not self._contains_host(cert.subject):
            return False
        if self._contains_host(cert.issuer):
            return False
        return True

    def eligible(self, certificates: Iterable[Certificate]) -> List[Certificate]:
        """Eligible certificates, best first."""
        candidates = [c for c in certificates if self.is_eligible(c)]
        # Two stable sorts: thumbprint ascending, then not_after descending
        candidates.sort(key=lambda c: c.thumbprint)
        candidates.sort(key=lambda c: c.not_after, reverse=True)
        return candidates

    def select_best(self, certificates: Iterable[Certificate]) -> Optional[Certificate]:
        """
        Return the eligible certificate with the longest remaining validity.

        Returns:
            The winning Certificate, or None if nothing is eligible
        """
        certificates = list(certificates)
        ranked = self.eligible(certificates)

        logger.debug(
            f"{len(ranked)} of {len(certificates)} store certificates eligible "
            f"for {self.computer_name}"
        )

        if not ranked:
            return None
        return ranked[0]
