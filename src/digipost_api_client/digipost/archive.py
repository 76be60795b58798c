"""Archive capabilities: building, lookup, and mutation.

The three capabilities are separate classes composed by
:class:`~digipost_api_client.digipost.client.DigipostClient`:

- :class:`ArchiveBuilder` accumulates documents with their content and
  commits them as one multipart request. It is single-use.
- :class:`ArchiveReader` fetches archives, documents, and content.
- :class:`ArchiveMutator` deletes, updates, and re-identifies documents.
"""

from __future__ import annotations

import io
import json
from contextlib import ExitStack, asynccontextmanager, closing
from enum import StrEnum
from typing import TYPE_CHECKING, BinaryIO, Self
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from digipost_api_client.digipost.exceptions import (
    ArchiveBuilderStateError,
    ArchiveSendError,
    DigipostError,
    DigipostNotFoundError,
)
from digipost_api_client.digipost.models import (
    Archive,
    ArchiveDocument,
    ArchiveDocumentContent,
    Archives,
)
from digipost_api_client.digipost.transport import DIGIPOST_MEDIA_TYPE
from digipost_api_client.observability import get_logger


if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from uuid import UUID

    from digipost_api_client.digipost.models import SenderId
    from digipost_api_client.digipost.transport import DigipostTransport


__all__ = [
    "DEFAULT_CONTENT_TYPE",
    "ArchiveBuilder",
    "ArchiveBuilderState",
    "ArchiveMutator",
    "ArchiveReader",
]

DEFAULT_CONTENT_TYPE = "application/octet-stream"

logger = get_logger(__name__)


def _dump(model: Archive | ArchiveDocument) -> dict[str, object]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def _send_failure_message(name: str | None, reference_ids: list[str]) -> str:
    message = f"Failed to send archive {(name or 'default archive')!r}"
    if reference_ids:
        message = f"{message} (reference ids: {', '.join(reference_ids)})"
    return message


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class ArchiveBuilderState(StrEnum):
    """Lifecycle of an :class:`ArchiveBuilder`."""

    BUILDING = "building"
    SENT = "sent"


class ArchiveBuilder:
    """Accumulates archive documents and commits them in one request.

    A builder starts in ``BUILDING`` and moves to ``SENT`` when
    :meth:`send` is called, whether or not the send succeeds. A sent
    builder rejects further use; build a new one to retry.

    Not safe for concurrent use.

    Example:
        ```python
        archive = await (
            client.archive_documents(Archive.named_archive("invoices"))
            .add_file(document, pdf_bytes)
            .send()
        )
        ```
    """

    UPLOAD_TIMEOUT = httpx.Timeout(300.0, connect=10.0)

    def __init__(self, transport: DigipostTransport, archive: Archive) -> None:
        """Initialize the builder.

        Args:
            transport: Authenticated transport used by :meth:`send`.
            archive: Archive template (name and sender). Documents already
                on the template are ignored; add them with :meth:`add_file`.
        """
        self._transport = transport
        self._archive = archive
        self._entries: dict[UUID, tuple[ArchiveDocument, BinaryIO]] = {}
        self._state = ArchiveBuilderState.BUILDING

    @property
    def state(self) -> ArchiveBuilderState:
        """Current builder state."""
        return self._state

    @property
    def documents(self) -> list[ArchiveDocument]:
        """Documents added so far, in insertion order."""
        return [document for document, _ in self._entries.values()]

    def _require_building(self, operation: str) -> None:
        if self._state is not ArchiveBuilderState.BUILDING:
            msg = f"Cannot {operation}: archive builder has already been sent"
            raise ArchiveBuilderStateError(msg)

    def add_file(
        self,
        document: ArchiveDocument,
        content: bytes | bytearray | memoryview | BinaryIO,
    ) -> Self:
        """Pair a document with its content.

        Args:
            document: Document metadata.
            content: A bytes-like buffer (copied) or a readable binary stream.
                The stream is owned by the builder from now on and closed
                by :meth:`send`.

        Returns:
            This builder, for chaining.

        Raises:
            ArchiveBuilderStateError: If the builder has been sent.
            ValueError: If a document with the same UUID was already added.
        """
        self._require_building("add file")
        if document.uuid in self._entries:
            msg = f"Document {document.uuid} has already been added"
            raise ValueError(msg)

        stream = (
            io.BytesIO(bytes(content))
            if isinstance(content, bytes | bytearray | memoryview)
            else content
        )
        self._entries[document.uuid] = (document, stream)
        return self

    def _payload(self) -> Archive:
        return self._archive.model_copy(update={"documents": self.documents})

    async def send(self) -> Archive:
        """Commit the archive and all added documents.

        Returns:
            The created archive, carrying its server-assigned links.

        Raises:
            ArchiveBuilderStateError: If the builder has already been sent.
            ArchiveSendError: If the request fails or is rejected.
            SigningError: If the request could not be signed.
        """
        self._require_building("send")
        self._state = ArchiveBuilderState.SENT

        archive = self._payload()
        reference_ids = [
            document.reference_id
            for document in archive.documents
            if document.reference_id is not None
        ]
        log = logger.bind(
            archive_name=archive.name,
            document_count=len(archive.documents),
        )

        with ExitStack() as stack:
            files: list[tuple[str, tuple[str | None, object, str]]] = [
                (
                    "archive",
                    (
                        None,
                        json.dumps(_dump(archive)).encode("utf-8"),
                        DIGIPOST_MEDIA_TYPE,
                    ),
                ),
            ]
            for document, stream in self._entries.values():
                stack.enter_context(closing(stream))
                files.append(
                    (
                        "application",
                        (
                            str(document.uuid),
                            stream,
                            document.content_type or DEFAULT_CONTENT_TYPE,
                        ),
                    ),
                )

            log.info("archive_send_started")
            try:
                response = await self._transport.request(
                    "POST",
                    self._transport.sender_path(archive.sender_id, "archives"),
                    files=files,
                    timeout=self.UPLOAD_TIMEOUT,
                )
                created = Archive.model_validate(response.json())
            except (
                DigipostError,
                ValidationError,
                ValueError,
                OSError,
                httpx.StreamError,
            ) as exc:
                log.warning("archive_send_failed", error=str(exc))
                raise ArchiveSendError(
                    _send_failure_message(archive.name, reference_ids),
                    archive_name=archive.name,
                    reference_ids=reference_ids,
                    cause=exc,
                ) from exc

        log.info("archive_send_completed", archive_uri=created.self_uri)
        return created


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


class ArchiveReader:
    """Read operations on submitted archives."""

    def __init__(self, transport: DigipostTransport) -> None:
        self._transport = transport

    async def get_archives(self, sender_id: SenderId | int | None = None) -> Archives:
        """List the sender's archives."""
        response = await self._transport.request(
            "GET",
            self._transport.sender_path(sender_id, "archives"),
        )
        return Archives.model_validate(response.json())

    async def get_archive_documents(self, uri: str) -> Archive:
        """Fetch an archive (or a page of its documents) by URI.

        Args:
            uri: A server-provided URI, such as
                :meth:`Archive.next_documents_uri`.

        Returns:
            The archive with the documents at that URI.
        """
        response = await self._transport.request("GET", uri)
        return Archive.model_validate(response.json())

    async def get_archive_document_by_uuid(
        self,
        uuid: UUID,
        sender_id: SenderId | int | None = None,
    ) -> Archive:
        """Fetch the archive containing the document with the given UUID.

        Raises:
            DigipostNotFoundError: If no such document exists.
        """
        response = await self._transport.request(
            "GET",
            self._transport.sender_path(
                sender_id, "archives", "documents", "uuid", str(uuid)
            ),
        )
        return Archive.model_validate(response.json())

    async def get_archive_documents_by_reference_id(
        self,
        reference_id: str,
        sender_id: SenderId | int | None = None,
    ) -> Archives:
        """Fetch every archive holding documents with the given reference id."""
        response = await self._transport.request(
            "GET",
            self._transport.sender_path(
                sender_id,
                "archives",
                "documents",
                "referenceid",
                quote(reference_id, safe=""),
            ),
        )
        return Archives.model_validate(response.json())

    async def get_archive_document_content(self, uri: str) -> ArchiveDocumentContent:
        """Fetch the content descriptor for a document.

        Args:
            uri: The document's ``content_uri``.
        """
        response = await self._transport.request("GET", uri)
        return ArchiveDocumentContent.model_validate(response.json())

    @asynccontextmanager
    async def stream_archive_document_content(
        self,
        uri: str,
    ) -> AsyncIterator[httpx.Response]:
        """Stream a document's bytes.

        The connection is held until the context exits.

        Args:
            uri: The document's ``content_stream_uri``.

        Yields:
            The streaming response; read it with ``aiter_bytes()``.

        Example:
            ```python
            async with reader.stream_archive_document_content(uri) as response:
                async for chunk in response.aiter_bytes():
                    out.write(chunk)
            ```
        """
        async with self._transport.stream("GET", uri) as response:
            yield response


# ---------------------------------------------------------------------------
# Mutation
# ---------------------------------------------------------------------------


class ArchiveMutator:
    """Write operations on submitted archive documents."""

    def __init__(self, transport: DigipostTransport) -> None:
        self._transport = transport

    async def add_unique_uuid_to_archive_document(
        self,
        uuid: UUID,
        new_uuid: UUID,
        sender_id: SenderId | int | None = None,
    ) -> Archive:
        """Reference an archived document under a second UUID.

        Args:
            uuid: UUID of the existing document.
            new_uuid: Additional UUID to attach.
            sender_id: Sender acted on behalf of.

        Returns:
            The archive containing the updated document.
        """
        response = await self._transport.request(
            "POST",
            self._transport.sender_path(
                sender_id,
                "archives",
                "documents",
                "uuid",
                str(uuid),
                "add_uuid",
                str(new_uuid),
            ),
        )
        return Archive.model_validate(response.json())

    async def delete_archive_document(self, delete_uri: str) -> None:
        """Delete a document.

        Deleting a document that does not exist is not an error.

        Args:
            delete_uri: The document's ``delete_uri``.
        """
        try:
            await self._transport.request("DELETE", delete_uri)
        except DigipostNotFoundError:
            logger.debug("archive_document_already_deleted", uri=delete_uri)
            return
        logger.debug("archive_document_deleted", uri=delete_uri)

    async def update_archive_document(
        self,
        document: ArchiveDocument,
        update_uri: str,
    ) -> ArchiveDocument:
        """Replace a document's metadata.

        Args:
            document: The new metadata.
            update_uri: The document's ``update_uri``.

        Returns:
            The document as stored by the server.
        """
        response = await self._transport.request(
            "PUT",
            update_uri,
            json=_dump(document),
        )
        return ArchiveDocument.model_validate(response.json())
