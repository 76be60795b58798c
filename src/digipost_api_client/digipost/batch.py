"""Batch lifecycle operations.

A batch is created with a caller-chosen UUID and ends either completed or
cancelled. Both end states are terminal; transitions from them are refused
locally when the status is known, and by the server otherwise.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from digipost_api_client.digipost.exceptions import (
    DigipostConflictError,
    DuplicateBatchError,
    InvalidBatchStateError,
)
from digipost_api_client.digipost.models import Batch, BatchStatus
from digipost_api_client.observability import get_logger


if TYPE_CHECKING:
    from uuid import UUID

    from digipost_api_client.digipost.transport import DigipostTransport


__all__ = ["BatchApi"]

logger = get_logger(__name__)


class BatchApi:
    """Create, inspect, complete, and cancel batches.

    The caller serializes transitions on a given batch; concurrent
    transitions from different processes are arbitrated by the server.
    """

    def __init__(self, transport: DigipostTransport) -> None:
        self._transport = transport

    def _batch_path(self, batch_uuid: UUID, *segments: str) -> str:
        return self._transport.sender_path(None, "batches", str(batch_uuid), *segments)

    async def create_batch(self, batch_uuid: UUID) -> Batch:
        """Create a batch.

        Args:
            batch_uuid: Caller-generated batch identifier.

        Returns:
            The created batch.

        Raises:
            DuplicateBatchError: If a batch with this UUID already exists.
        """
        try:
            response = await self._transport.request(
                "POST",
                self._batch_path(batch_uuid),
                json={"uuid": str(batch_uuid)},
            )
        except DigipostConflictError as exc:
            raise DuplicateBatchError(batch_uuid, response=exc.response) from exc

        batch = Batch.model_validate(response.json())
        logger.info("batch_created", batch_uuid=str(batch.uuid), status=batch.status)
        return batch

    async def get_batch_information(self, batch_uuid: UUID) -> Batch:
        """Fetch the current state of a batch. Valid in any state."""
        response = await self._transport.request("GET", self._batch_path(batch_uuid))
        return Batch.model_validate(response.json())

    async def complete_batch(self, batch: Batch) -> Batch:
        """Complete an open batch.

        Args:
            batch: The batch, as last returned by the server.

        Returns:
            The completed batch.

        Raises:
            InvalidBatchStateError: If the batch is in a terminal state.
        """
        if not batch.is_open:
            raise InvalidBatchStateError(batch.uuid, "complete", status=batch.status)

        uri = batch.complete_uri or self._batch_path(batch.uuid, "complete")
        try:
            response = await self._transport.request("POST", uri)
        except DigipostConflictError as exc:
            raise InvalidBatchStateError(
                batch.uuid,
                "complete",
                status=batch.status,
                response=exc.response,
            ) from exc

        completed = Batch.model_validate(response.json())
        logger.info(
            "batch_completed",
            batch_uuid=str(completed.uuid),
            status=completed.status,
        )
        return completed

    async def cancel_batch(self, batch: Batch) -> None:
        """Cancel an open batch.

        On success ``batch.status`` is set to ``CANCELLED``.

        Args:
            batch: The batch, as last returned by the server.

        Raises:
            InvalidBatchStateError: If the batch is in a terminal state.
        """
        if not batch.is_open:
            raise InvalidBatchStateError(batch.uuid, "cancel", status=batch.status)

        uri = batch.cancel_uri or self._batch_path(batch.uuid)
        try:
            await self._transport.request("DELETE", uri)
        except DigipostConflictError as exc:
            raise InvalidBatchStateError(
                batch.uuid,
                "cancel",
                status=batch.status,
                response=exc.response,
            ) from exc

        batch.status = BatchStatus.CANCELLED
        logger.info("batch_cancelled", batch_uuid=str(batch.uuid))
