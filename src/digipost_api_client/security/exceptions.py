"""Exceptions raised while loading key material or signing requests."""

from __future__ import annotations


__all__ = [
    "KeyLoadError",
    "SecurityError",
    "SigningError",
]


class SecurityError(Exception):
    """Base exception for key loading and signing failures.

    Messages never include key material or passphrases.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
        """
        super().__init__(message)
        self.message = message


class KeyLoadError(SecurityError):
    """Raised when a private key cannot be extracted from a certificate.

    Covers unparseable containers, wrong passphrases, containers without
    a private key, and keys that cannot be used for RSA-SHA256 signing.
    Not retryable: the input has to be fixed.
    """


class SigningError(SecurityError):
    """Raised when the signature primitive rejects the key or the input.

    Fatal for the request being signed. The signer holds no per-request
    state, so subsequent requests are unaffected.
    """
