"""
Certificate parsing for the LocalMachine\\My store.

The platform adapter hands over the raw DER bytes of each store entry;
everything the selector needs (subject, issuer, EKU, expiry, thumbprint)
is read here with the cryptography package.
"""

import base64
import logging
from typing import Iterable, List

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.x509.oid import ExtendedKeyUsageOID

from ._types import Certificate

logger = logging.getLogger(__name__)

# Server Authentication (1.3.6.1.5.5.7.3.1)
SERVER_AUTH_OID = ExtendedKeyUsageOID.SERVER_AUTH.dotted_string


def certificate_from_der(der: bytes) -> Certificate:
    """
    Build a Certificate from DER bytes.

    The thumbprint is the SHA-1 of the DER encoding, which is what
    Windows reports as Thumbprint.

    Raises:
        ValueError: If the bytes are not a parseable X.509 certificate
    """
    cert = x509.load_der_x509_certificate(der)

    try:
        eku_ext = cert.extensions.get_extension_for_class(x509.ExtendedKeyUsage)
        eku = frozenset(oid.dotted_string for oid in eku_ext.value)
    except x509.ExtensionNotFound:
        eku = frozenset()

    return Certificate(
        thumbprint=cert.fingerprint(hashes.SHA1()).hex(),
        subject=cert.subject.rfc4514_string(),
        issuer=cert.issuer.rfc4514_string(),
        not_after=cert.not_valid_after_utc,
        not_before=cert.not_valid_before_utc,
        enhanced_key_usage=eku,
    )


def certificates_from_raw_data(raw_entries: Iterable[str]) -> List[Certificate]:
    """
    Parse base64 RawData entries as emitted by Get-ChildItem Cert:\\.

    Entries that fail to decode or parse are skipped with a warning; a certificate
    we cannot read can never be eligible.
    """
    certificates = []
    for index, entry in enumerate(raw_entries):
        try:
            der = base64.b64decode(entry, validate=True)
            certificates.append(certificate_from_der(der))
        except Exception as e:
            logger.warning(f"Skipping unreadable store entry #{index}: {e}")
    return certificates
