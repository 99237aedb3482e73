"""Global pytest configuration and fixtures for all tests."""

import ipaddress
import os
from datetime import UTC, datetime, timedelta

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID


@pytest.fixture(scope="session", autouse=True)
def set_test_env_vars():
    """
    Set environment variables for testing.

    Keeps test logs quiet and points vendor HTTP clients at predictable
    endpoints. These are NOT real endpoints or credentials.
    """
    # Store original values to restore after tests
    original_env = {}

    test_env_vars = {
        "LOG_LEVEL": "DEBUG",
        "HTTP_TIMEOUT_SECONDS": "5",
        "FLYIO_API_BASE_URL": "https://api.machines.dev/v1",
        "AWS_CLOUDFRONT_ACM_REGION": "us-east-1",
    }

    # Set test environment variables
    for key, value in test_env_vars.items():
        original_env[key] = os.environ.get(key)
        os.environ[key] = value

    yield

    # Restore original environment after all tests
    for key, original_value in original_env.items():
        if original_value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = original_value


def generate_certificate(
    dns_names: list[str],
    ip_addresses: list[str] | None = None,
    common_name: str = "certdeploy test",
    issuer: tuple[x509.Certificate, ec.EllipticCurvePrivateKey] | None = None,
) -> tuple[x509.Certificate, ec.EllipticCurvePrivateKey]:
    """Build a short-lived certificate, self-signed unless an issuer is given."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])

    san_entries: list[x509.GeneralName] = [x509.DNSName(name) for name in dns_names]
    san_entries += [
        x509.IPAddress(ipaddress.ip_address(address))
        for address in ip_addresses or []
    ]

    issuer_name = issuer[0].subject if issuer else subject
    signing_key = issuer[1] if issuer else private_key

    now = datetime.now(UTC)
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer_name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(minutes=5))
        .not_valid_after(now + timedelta(days=90))
    )
    if san_entries:
        builder = builder.add_extension(
            x509.SubjectAlternativeName(san_entries), critical=False
        )

    certificate = builder.sign(signing_key, hashes.SHA256())
    return certificate, private_key


def to_pem(certificate: x509.Certificate) -> str:
    return certificate.public_bytes(serialization.Encoding.PEM).decode()


def key_to_pem(private_key: ec.EllipticCurvePrivateKey) -> str:
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture(scope="session")
def certificate_pair() -> tuple[str, str]:
    """Leaf + intermediate chain for ``*.example.com`` and its private key (PEM)."""
    intermediate = generate_certificate([], common_name="certdeploy test CA")
    leaf, leaf_key = generate_certificate(
        ["*.example.com", "example.com"],
        ip_addresses=["192.0.2.10"],
        issuer=intermediate,
    )
    return to_pem(leaf) + to_pem(intermediate[0]), key_to_pem(leaf_key)


@pytest.fixture(scope="session")
def certificate_pem(certificate_pair: tuple[str, str]) -> str:
    return certificate_pair[0]


@pytest.fixture(scope="session")
def private_key_pem(certificate_pair: tuple[str, str]) -> str:
    return certificate_pair[1]


@pytest.fixture(scope="session")
def make_certificate_pem():
    """Factory fixture: PEM of a self-signed certificate for the given SANs."""

    def _make(dns_names: list[str], ip_addresses: list[str] | None = None) -> str:
        certificate, _ = generate_certificate(dns_names, ip_addresses=ip_addresses)
        return to_pem(certificate)

    return _make
