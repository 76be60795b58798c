"""Authenticated async HTTP transport for the Digipost API."""

from __future__ import annotations

import contextlib
from collections.abc import AsyncIterator  # noqa: TC003
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, Self

import httpx
import structlog

from digipost_api_client import __version__
from digipost_api_client.digipost.auth import X_DIGIPOST_USER_ID, SignatureAuth
from digipost_api_client.digipost.exceptions import (
    DigipostAuthenticationError,
    DigipostConflictError,
    DigipostConnectionError,
    DigipostNotFoundError,
    DigipostServerError,
    DigipostValidationError,
    TransportError,
)
from digipost_api_client.digipost.models import ErrorMessage, SenderId


if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import datetime

    from digipost_api_client.security import Signer


__all__ = [
    "DIGIPOST_MEDIA_TYPE",
    "USER_AGENT",
    "DigipostTransport",
]

DIGIPOST_MEDIA_TYPE = "application/vnd.digipost-v8+json"
USER_AGENT = f"digipost-api-client-python/{__version__}"


class DigipostTransport:
    """Signed request/response exchange with the Digipost API.

    Owns one ``httpx.AsyncClient`` with :class:`SignatureAuth` installed,
    so every request (including streamed downloads) is signed. Maps
    failures to typed :class:`TransportError` subclasses. Requests that
    reached the server are never re-sent.

    Attributes:
        base_url: The base URL of the Digipost API.
        sender_id: The sender (organisation or broker) issuing requests.
        timeout: Default timeout for requests.
    """

    DEFAULT_BASE_URL = "https://api.digipost.no"
    DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)
    DEFAULT_CONNECT_RETRIES = 1

    def __init__(  # noqa: PLR0913
        self,
        sender_id: SenderId | int | str,
        signer: Signer,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: httpx.Timeout | None = None,
        connect_retries: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            sender_id: Sender id sent in ``X-Digipost-UserId``.
            signer: Signer holding the sender's private key.
            base_url: Base URL of the Digipost API.
            timeout: Optional custom timeout configuration.
            connect_retries: TCP connect retries (default: 1). Only failed
                connection attempts are retried.
            transport: Optional custom transport for testing or advanced config.
            clock: Optional clock for the ``Date`` header.
        """
        self.base_url = base_url.rstrip("/")
        self.sender_id = SenderId.of(sender_id)
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self.connect_retries = (
            connect_retries
            if connect_retries is not None
            else self.DEFAULT_CONNECT_RETRIES
        )
        self._auth = SignatureAuth(signer, clock=clock)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._logger = structlog.get_logger(__name__)

    @property
    def _headers(self) -> dict[str, str]:
        """Default headers for API requests."""
        return {
            "Accept": DIGIPOST_MEDIA_TYPE,
            "User-Agent": USER_AGENT,
            X_DIGIPOST_USER_ID: str(self.sender_id),
        }

    async def __aenter__(self) -> Self:
        """Enter async context and create HTTP client."""
        await self._ensure_client()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Exit async context and close HTTP client."""
        await self.close()

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure the HTTP client is initialized."""
        if self._client is None or self._client.is_closed:
            transport = self._transport or httpx.AsyncHTTPTransport(
                retries=self.connect_retries,
            )
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers,
                timeout=self.timeout,
                transport=transport,
                auth=self._auth,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def sender_path(self, sender_id: SenderId | int | None, *segments: str) -> str:
        """Build an API path scoped to a sender.

        Args:
            sender_id: Sender acted on behalf of; defaults to this client's sender.
            *segments: Path segments after the sender id.

        Returns:
            A path like ``/123456/archives``.
        """
        sender = SenderId.of(sender_id) if sender_id is not None else self.sender_id
        return "/".join(["", str(sender), *segments])

    def _target(self, url: str) -> str:
        if httpx.URL(url).is_absolute_url:
            return url
        return f"{self.base_url}{url}"

    # -------------------------------------------------------------------------
    # Core Request Methods
    # -------------------------------------------------------------------------

    async def request(  # noqa: PLR0913
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any | None = None,  # noqa: ANN401
        files: Sequence[tuple[str, Any]] | None = None,
        timeout: httpx.Timeout | None = None,  # noqa: ASYNC109
    ) -> httpx.Response:
        """Execute one signed HTTP request.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE).
            url: API path or absolute URI from a server link.
            params: Query parameters.
            json: JSON body data.
            files: Multipart parts as ``(name, (filename, content, type))``.
            timeout: Override default timeout.

        Returns:
            The HTTP response (body read).

        Raises:
            DigipostAuthenticationError: For 401/403 responses.
            DigipostNotFoundError: For 404 responses.
            DigipostConflictError: For 409 responses.
            DigipostValidationError: For 400/422 responses.
            DigipostServerError: For 5xx responses.
            DigipostConnectionError: For connection failures and timeouts.
            SigningError: If the request could not be signed.
        """
        client = await self._ensure_client()
        target = self._target(url)
        log = self._logger.bind(method=method, url=target)
        log.debug("api_request")

        try:
            response = await client.request(
                method,
                url,
                params=params,
                json=json,
                files=files,
                timeout=timeout or self.timeout,
            )
        except httpx.TimeoutException as exc:
            log.warning("timeout_error", error=str(exc))
            raise DigipostConnectionError(
                message="Request timed out",
                uri=target,
                cause=exc,
            ) from exc
        except httpx.TransportError as exc:
            log.warning("connection_error", error=str(exc))
            raise DigipostConnectionError(uri=target, cause=exc) from exc

        log.debug(
            "api_response",
            status_code=response.status_code,
            elapsed_ms=response.elapsed.total_seconds() * 1000,
        )
        if not response.is_success:
            log.warning("api_error", status_code=response.status_code)
        self.raise_for_status(response, uri=target)
        return response

    @asynccontextmanager
    async def stream(
        self,
        method: str,
        url: str,
    ) -> AsyncIterator[httpx.Response]:
        """Execute one signed request and yield the unread streaming response.

        The connection is released when the context exits.

        Raises:
            TransportError: Subclasses as for :meth:`request`.
        """
        client = await self._ensure_client()
        target = self._target(url)
        self._logger.debug("api_stream_request", method=method, url=target)

        try:
            async with client.stream(method, url) as response:
                if not response.is_success:
                    await response.aread()
                self.raise_for_status(response, uri=target)
                yield response
        except httpx.TimeoutException as exc:
            raise DigipostConnectionError(
                message="Request timed out",
                uri=target,
                cause=exc,
            ) from exc
        except httpx.TransportError as exc:
            raise DigipostConnectionError(uri=target, cause=exc) from exc

    @staticmethod
    def _parse_error_message(response: httpx.Response) -> ErrorMessage | None:
        """Parse the server's error body, if it has one."""
        with contextlib.suppress(Exception):
            data = response.json()
            if isinstance(data, dict):
                return ErrorMessage.model_validate(data)
        return None

    def raise_for_status(self, response: httpx.Response, *, uri: str) -> None:
        """Raise the typed error matching an unsuccessful status code."""
        if response.is_success:
            return

        status = response.status_code
        error_message = self._parse_error_message(response)
        kwargs: dict[str, Any] = {
            "uri": uri,
            "response": response,
            "error_message": error_message,
        }

        if status in {401, 403}:
            raise DigipostAuthenticationError("Authentication failed", **kwargs)  # noqa: EM101

        if status == 404:  # noqa: PLR2004
            raise DigipostNotFoundError("Resource not found", **kwargs)  # noqa: EM101

        if status == 409:  # noqa: PLR2004
            raise DigipostConflictError("Conflict with resource state", **kwargs)  # noqa: EM101

        if status in {400, 422}:
            raise DigipostValidationError("Request rejected", **kwargs)  # noqa: EM101

        if status >= 500:  # noqa: PLR2004
            raise DigipostServerError(f"Server error: {status}", **kwargs)  # noqa: EM102

        raise TransportError(f"Unexpected response: {status}", **kwargs)  # noqa: EM102
