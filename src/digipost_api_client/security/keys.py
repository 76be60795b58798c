"""PKCS#12 key material loading.

Extracts the RSA private key used for request signing from a PKCS#12
container. Uses the cryptography library for all parsing; every failure
is normalized into :class:`KeyLoadError`.
"""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.hazmat.primitives.serialization import pkcs12

from digipost_api_client.observability import get_logger
from digipost_api_client.security.exceptions import KeyLoadError


__all__ = [
    "load_private_key",
    "load_private_key_from_file",
]

logger = get_logger(__name__)


def _read_container(certificate: bytes | bytearray | BinaryIO) -> bytes:
    if isinstance(certificate, bytes | bytearray):
        return bytes(certificate)
    try:
        data = certificate.read()
    except (OSError, ValueError) as exc:
        msg = "Could not read the certificate container"
        raise KeyLoadError(msg) from exc
    if not isinstance(data, bytes):
        msg = "Certificate container must be read as bytes"
        raise KeyLoadError(msg)
    return data


def load_private_key(
    certificate: bytes | bytearray | BinaryIO,
    passphrase: str,
) -> RSAPrivateKey:
    """Load the RSA private key from a PKCS#12 container.

    The container is expected to hold a single key entry. When it holds
    more than one, the key returned by the PKCS#12 parser (the first key
    bag in the container) is used.

    The stream is read to the end but not closed; the caller owns it.

    Args:
        certificate: PKCS#12 bytes or a readable binary stream.
        passphrase: Passphrase protecting the container.

    Returns:
        The RSA private key.

    Raises:
        KeyLoadError: If the container cannot be parsed, the passphrase is
            wrong, no key is present, or the key is not an RSA key.
    """
    data = _read_container(certificate)
    if not data:
        msg = "Certificate container is empty"
        raise KeyLoadError(msg)

    try:
        key, cert, _additional = pkcs12.load_key_and_certificates(
            data,
            passphrase.encode("utf-8"),
        )
    except (ValueError, TypeError):
        # Parser messages are not propagated.
        msg = "Could not load the certificate container (corrupt data or wrong passphrase)"
        raise KeyLoadError(msg) from None

    if key is None:
        msg = "The certificate container holds no private key"
        raise KeyLoadError(msg)

    if not isinstance(key, RSAPrivateKey):
        msg = f"Unsupported key type {type(key).__name__}, expected an RSA key"
        raise KeyLoadError(msg)

    logger.debug(
        "private_key_loaded",
        key_size=key.key_size,
        subject=cert.subject.rfc4514_string() if cert is not None else None,
    )
    return key


def load_private_key_from_file(path: Path | str, passphrase: str) -> RSAPrivateKey:
    """Load the RSA private key from a PKCS#12 file on disk.

    Args:
        path: Path to the ``.p12``/``.pfx`` file.
        passphrase: Passphrase protecting the container.

    Returns:
        The RSA private key.

    Raises:
        KeyLoadError: If the file cannot be opened or the key cannot be loaded.
    """
    file_path = Path(path)
    try:
        with file_path.open("rb") as f:
            return load_private_key(f, passphrase)
    except OSError as exc:
        msg = f"Could not open certificate file: {file_path}"
        raise KeyLoadError(msg) from exc
