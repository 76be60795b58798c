"""RSA-SHA256 request signer."""

from __future__ import annotations

from pathlib import Path  # noqa: TC003
from typing import BinaryIO

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from digipost_api_client.security.exceptions import SigningError
from digipost_api_client.security.keys import (
    load_private_key,
    load_private_key_from_file,
)


__all__ = ["SIGNATURE_ALGORITHM", "Signer"]

SIGNATURE_ALGORITHM = "SHA256withRSA"


class Signer:
    """Signs canonical request representations with a private RSA key.

    The signer is stateless after construction: signing does not mutate
    the key, so one instance can be shared by concurrent requests.

    Example:
        ```python
        with open("certificate.p12", "rb") as f:
            signer = Signer.from_pkcs12(f, "passphrase")
        signature = signer.sign(b"hello")
        ```
    """

    __slots__ = ("_private_key",)

    def __init__(self, private_key: RSAPrivateKey) -> None:
        """Initialize the signer.

        Args:
            private_key: The sender's RSA private key.
        """
        self._private_key = private_key

    def __repr__(self) -> str:
        """Return a representation that never exposes the key."""
        return f"Signer(algorithm={SIGNATURE_ALGORITHM!r}, key_size={self.key_size})"

    @classmethod
    def from_pkcs12(
        cls,
        certificate: bytes | bytearray | BinaryIO,
        passphrase: str,
    ) -> Signer:
        """Create a signer from a PKCS#12 container.

        Raises:
            KeyLoadError: If the key cannot be loaded.
        """
        return cls(load_private_key(certificate, passphrase))

    @classmethod
    def from_pkcs12_file(cls, path: Path | str, passphrase: str) -> Signer:
        """Create a signer from a PKCS#12 file on disk.

        Raises:
            KeyLoadError: If the key cannot be loaded.
        """
        return cls(load_private_key_from_file(path, passphrase))

    @property
    def key_size(self) -> int:
        """Size of the signing key in bits."""
        return self._private_key.key_size

    def sign(self, message: bytes | str) -> bytes:
        """Sign a message with RSA PKCS#1 v1.5 over a SHA-256 digest.

        Args:
            message: The exact bytes to sign. Strings are encoded as UTF-8.

        Returns:
            The raw signature bytes.

        Raises:
            SigningError: If the key or input is rejected by the primitive.
        """
        data = message.encode("utf-8") if isinstance(message, str) else message
        try:
            return self._private_key.sign(data, padding.PKCS1v15(), hashes.SHA256())
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            msg = f"Could not sign request with {SIGNATURE_ALGORITHM}"
            raise SigningError(msg) from exc
