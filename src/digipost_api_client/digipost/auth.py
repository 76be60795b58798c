"""Request signing for httpx.

:class:`SignatureAuth` adds the freshness, content-digest and signature
headers to every request sent through a client it is installed on.
"""

from __future__ import annotations

import base64
import hashlib
from datetime import UTC, datetime
from email.utils import format_datetime
from typing import TYPE_CHECKING

import httpx

from digipost_api_client.observability import get_logger
from digipost_api_client.security import canonical_request


if TYPE_CHECKING:
    from collections.abc import Callable, Generator

    from digipost_api_client.security import Signer


__all__ = [
    "DATE",
    "X_CONTENT_SHA256",
    "X_DIGIPOST_SIGNATURE",
    "X_DIGIPOST_USER_ID",
    "SignatureAuth",
    "content_sha256",
]

DATE = "Date"
X_CONTENT_SHA256 = "X-Content-SHA256"
X_DIGIPOST_SIGNATURE = "X-Digipost-Signature"
X_DIGIPOST_USER_ID = "X-Digipost-UserId"

logger = get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


def content_sha256(body: bytes) -> str:
    """Return the base64-encoded SHA-256 digest of a request body."""
    return base64.b64encode(hashlib.sha256(body).digest()).decode("ascii")


class SignatureAuth(httpx.Auth):
    """httpx auth flow signing requests with the sender's private key.

    For each request:

    1. ``Date`` is set to the current time (RFC 1123, GMT).
    2. ``X-Content-SHA256`` is set when the request has a body.
    3. ``X-Digipost-Signature`` is set to the base64 signature of the
       canonical request representation.

    The request body is read before signing, so streamed multipart
    content is consumed here.
    """

    requires_request_body = True

    def __init__(
        self,
        signer: Signer,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the auth flow.

        Args:
            signer: Signer holding the sender's private key.
            clock: Returns the current time as an aware UTC datetime.
        """
        self._signer = signer
        self._clock = clock or _utc_now

    def auth_flow(
        self,
        request: httpx.Request,
    ) -> Generator[httpx.Request, httpx.Response, None]:
        """Sign the request and send it once."""
        request.headers[DATE] = format_datetime(self._clock(), usegmt=True)

        body = request.content
        if body:
            request.headers[X_CONTENT_SHA256] = content_sha256(body)

        canonical = canonical_request(
            request.method,
            request.url.path,
            request.headers,
            request.url.query.decode("ascii"),
        )
        logger.debug("canonical_request", canonical=canonical)

        signature = self._signer.sign(canonical)
        request.headers[X_DIGIPOST_SIGNATURE] = base64.b64encode(signature).decode(
            "ascii"
        )
        yield request
