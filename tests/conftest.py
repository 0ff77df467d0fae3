"""Shared fixtures: synthetic certificates and a recording outcome log."""

from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from winrm_cert_agent._types import Certificate
from winrm_cert_agent.certificates import SERVER_AUTH_OID

CLIENT_AUTH_OID = "1.3.6.1.5.5.7.3.2"

HOST = "HOST01"
FQDN = "host01.corp.example.com"


def make_cert(
    thumbprint: str,
    not_after: datetime,
    subject: str = f"CN={FQDN}",
    issuer: str = "CN=Corp Issuing CA 01,DC=corp,DC=example,DC=com",
    eku=(SERVER_AUTH_OID,),
) -> Certificate:
    return Certificate(
        thumbprint=thumbprint,
        subject=subject,
        issuer=issuer,
        not_after=not_after,
        enhanced_key_usage=frozenset(eku),
    )


def utc(year, month, day) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


class RecordingOutcomeLog:
    """Stands in for OutcomeLog; keeps every call."""

    def __init__(self):
        self.records = []

    def log(self, severity, message, component):
        self.records.append((severity, message, component))


@pytest.fixture
def outcome_log():
    return RecordingOutcomeLog()


def build_der(
    common_name: str = "host01.corp.example.com",
    issuer_cn: str = "Corp Issuing CA 01",
    eku=(ExtendedKeyUsageOID.SERVER_AUTH,),
    days_valid: int = 365,
) -> bytes:
    """A real DER certificate signed by a throwaway EC key."""
    key = ec.generate_private_key(ec.SECP256R1())
    now = datetime.now(timezone.utc)

    builder = (
        x509.CertificateBuilder()
        .subject_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)]))
        .issuer_name(x509.Name([
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Corp"),
            x509.NameAttribute(NameOID.COMMON_NAME, issuer_cn),
        ]))
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=days_valid))
    )
    if eku:
        builder = builder.add_extension(x509.ExtendedKeyUsage(list(eku)), critical=False)

    cert = builder.sign(key, hashes.SHA256())
    return cert.public_bytes(serialization.Encoding.DER)
