"""Custom exceptions for the Digipost API client."""

from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from uuid import UUID

    import httpx

    from digipost_api_client.digipost.models import BatchStatus, ErrorMessage


__all__ = [
    "ArchiveBuilderStateError",
    "ArchiveSendError",
    "DigipostAuthenticationError",
    "DigipostConflictError",
    "DigipostConnectionError",
    "DigipostError",
    "DigipostNotFoundError",
    "DigipostServerError",
    "DigipostValidationError",
    "DuplicateBatchError",
    "InvalidBatchStateError",
    "TransportError",
]


class DigipostError(Exception):
    """Base exception for all Digipost client errors.

    Attributes:
        message: Human-readable error description.
        response: The HTTP response that caused this error, if available.
    """

    def __init__(
        self,
        message: str,
        *,
        response: httpx.Response | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            response: The HTTP response that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.response = response

    def __str__(self) -> str:
        """Return string representation with status code if available."""
        if self.response is not None:
            return f"{self.message} (status={self.response.status_code})"
        return self.message


class TransportError(DigipostError):
    """Raised when an HTTP exchange with Digipost fails.

    Carries enough context to tell client-side from server-side failures.

    Attributes:
        uri: The target URI of the failed request, if known.
        status_code: Response status, or None when no response was received.
        error_message: Error body returned by the server, if it could be parsed.
    """

    def __init__(
        self,
        message: str,
        *,
        uri: str | None = None,
        response: httpx.Response | None = None,
        error_message: ErrorMessage | None = None,
    ) -> None:
        """Initialize the transport error.

        Args:
            message: Human-readable error description.
            uri: The target URI of the failed request.
            response: The HTTP response that caused this error.
            error_message: Parsed server error body.
        """
        super().__init__(message, response=response)
        self.uri = uri
        self.status_code = response.status_code if response is not None else None
        self.error_message = error_message

    def __str__(self) -> str:
        """Return string representation with target and server error code."""
        text = super().__str__()
        if self.uri is not None:
            text = f"{text} [{self.uri}]"
        if self.error_message is not None and self.error_message.error_code:
            text = f"{text} error_code={self.error_message.error_code}"
        return text


class DigipostConnectionError(TransportError):
    """Raised when the connection to Digipost fails.

    This includes network errors, DNS failures, cancelled requests, and
    timeouts. No response was received.
    """

    def __init__(
        self,
        message: str = "Failed to connect to Digipost",
        *,
        uri: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize the connection error.

        Args:
            message: Human-readable error description.
            uri: The target URI of the failed request.
            cause: The underlying exception that caused this error.
        """
        super().__init__(message, uri=uri)
        self.__cause__ = cause


class DigipostAuthenticationError(TransportError):
    """Raised for authentication failures (401/403).

    Usually a rejected signature, an unknown sender id, or a revoked
    certificate. Not retryable without fixing the configuration.
    """


class DigipostNotFoundError(TransportError):
    """Raised when a resource is not found (404)."""


class DigipostConflictError(TransportError):
    """Raised when the request conflicts with the resource state (409)."""


class DigipostServerError(TransportError):
    """Raised for server errors (5xx)."""


class DigipostValidationError(TransportError):
    """Raised when Digipost rejects the request content (400/422)."""


class ArchiveSendError(DigipostError):
    """Raised when committing an archive fails.

    The builder that raised it is spent; build a new one to retry.

    Attributes:
        archive_name: Name of the archive being sent (None for the default).
        reference_ids: Reference ids of the documents in the failed commit.
    """

    def __init__(
        self,
        message: str,
        *,
        archive_name: str | None = None,
        reference_ids: list[str] | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize the archive send error.

        Args:
            message: Human-readable error description.
            archive_name: Name of the archive being sent.
            reference_ids: Reference ids of the documents being sent.
            cause: The transport or decoding error that caused this failure.
        """
        super().__init__(
            message,
            response=cause.response if isinstance(cause, DigipostError) else None,
        )
        self.archive_name = archive_name
        self.reference_ids = reference_ids or []
        self.__cause__ = cause


class ArchiveBuilderStateError(DigipostError):
    """Raised when an archive builder is used after it has been sent."""


class DuplicateBatchError(DigipostError):
    """Raised when creating a batch whose UUID already exists.

    Attributes:
        batch_uuid: The colliding batch UUID.
    """

    def __init__(
        self,
        batch_uuid: UUID,
        *,
        response: httpx.Response | None = None,
    ) -> None:
        """Initialize the duplicate batch error.

        Args:
            batch_uuid: The colliding batch UUID.
            response: The HTTP response that reported the collision.
        """
        super().__init__(f"Batch {batch_uuid} already exists", response=response)
        self.batch_uuid = batch_uuid


class InvalidBatchStateError(DigipostError):
    """Raised when completing or cancelling a batch in a terminal state.

    Attributes:
        batch_uuid: The batch UUID.
        status: The batch status known when the transition was refused.
    """

    def __init__(
        self,
        batch_uuid: UUID | str,
        operation: str,
        *,
        status: BatchStatus | None = None,
        response: httpx.Response | None = None,
    ) -> None:
        """Initialize the invalid batch state error.

        Args:
            batch_uuid: The batch UUID.
            operation: The refused transition (e.g. "complete").
            status: The batch status known locally, if any.
            response: The HTTP response that refused the transition.
        """
        state = f" in state {status}" if status is not None else ""
        message = f"Cannot {operation} batch {batch_uuid}{state}"
        super().__init__(message, response=response)
        self.batch_uuid = batch_uuid
        self.operation = operation
        self.status = status
