"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator  # noqa: TC003
from datetime import UTC, datetime, timedelta
from pathlib import Path  # noqa: TC003

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import (
    BestAvailableEncryption,
    pkcs12,
)
from cryptography.x509.oid import NameOID

from digipost_api_client.digipost import DigipostClient
from digipost_api_client.security import Signer


BASE_URL = "http://digipost.test"
SENDER_ID = 123456
P12_PASSPHRASE = "correct horse battery staple"
FIXED_NOW = datetime(2024, 1, 15, 10, 30, tzinfo=UTC)


# ---------------------------------------------------------------------------
# Key Material
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    """RSA key shared by the whole test session (generation is slow)."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def certificate(rsa_private_key: rsa.RSAPrivateKey) -> x509.Certificate:
    """Self-signed certificate for the session key."""
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "Test Sender")])
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(rsa_private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(FIXED_NOW)
        .not_valid_after(FIXED_NOW + timedelta(days=365))
        .sign(rsa_private_key, hashes.SHA256())
    )


@pytest.fixture(scope="session")
def p12_bytes(
    rsa_private_key: rsa.RSAPrivateKey,
    certificate: x509.Certificate,
) -> bytes:
    """PKCS#12 container holding the session key and certificate."""
    return pkcs12.serialize_key_and_certificates(
        b"digipost",
        rsa_private_key,
        certificate,
        None,
        BestAvailableEncryption(P12_PASSPHRASE.encode("utf-8")),
    )


@pytest.fixture
def p12_file(tmp_path: Path, p12_bytes: bytes) -> Path:
    """PKCS#12 container written to disk."""
    path = tmp_path / "certificate.p12"
    path.write_bytes(p12_bytes)
    return path


@pytest.fixture
def signer(rsa_private_key: rsa.RSAPrivateKey) -> Signer:
    """Signer using the session key."""
    return Signer(rsa_private_key)


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


@pytest.fixture
async def client(signer: Signer) -> AsyncGenerator[DigipostClient, None]:
    """Client against the test base URL with a fixed clock."""
    async with DigipostClient(
        SENDER_ID,
        signer,
        base_url=BASE_URL,
        clock=lambda: FIXED_NOW,
    ) as c:
        yield c


@pytest.fixture
def base_url() -> str:
    """Base URL for the test client."""
    return BASE_URL


@pytest.fixture
def sender_id() -> int:
    """Sender id for the test client."""
    return SENDER_ID


@pytest.fixture
def fixed_now() -> datetime:
    """Time returned by the test client's clock."""
    return FIXED_NOW


@pytest.fixture
def p12_passphrase() -> str:
    """Passphrase protecting the test PKCS#12 container."""
    return P12_PASSPHRASE
