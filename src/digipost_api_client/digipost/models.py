"""Pydantic models for Digipost API representations.

Only the fields the client needs are modelled; unknown fields returned by
the API are ignored. Wire names are hyphenated and mapped through aliases.
"""

from __future__ import annotations

import base64
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import TYPE_CHECKING, Self
from uuid import UUID, uuid4

import httpx
from pydantic import BaseModel, ConfigDict, Field, PositiveInt


if TYPE_CHECKING:
    from collections.abc import Mapping


__all__ = [
    "Archive",
    "ArchiveDocument",
    "ArchiveDocumentAttribute",
    "ArchiveDocumentContent",
    "Archives",
    "Batch",
    "BatchStatus",
    "ContentHash",
    "ErrorMessage",
    "Link",
    "Relation",
    "Representation",
    "SenderId",
    "SenderOrganization",
]


class Relation(StrEnum):
    """Link relations used by the archive and batch resources.

    The API publishes relations as URIs; only the last path segment is
    significant (``https://api.digipost.no/relations/complete_batch``).
    """

    SELF = "self"
    SELF_UPDATE = "self_update"
    SELF_DELETE = "self_delete"
    NEXT_DOCUMENTS = "next_documents"
    GET_ARCHIVE_DOCUMENT_BY_UUID = "get_archive_document_by_uuid"
    GET_ARCHIVE_DOCUMENT_CONTENT = "get_archive_document_content"
    GET_ARCHIVE_DOCUMENT_CONTENT_STREAM = "get_archive_document_content_stream"
    ADD_UNIQUE_UUID = "add_unique_uuid"
    COMPLETE_BATCH = "complete_batch"


class BatchStatus(StrEnum):
    """Lifecycle states of a batch.

    ``CREATED`` and ``NOT_COMMITTED`` are open; the others are terminal.
    """

    CREATED = "CREATED"
    NOT_COMMITTED = "NOT_COMMITTED"
    COMMITTED = "COMMITTED"
    DONE = "DONE"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        """Whether no further transition is allowed from this state."""
        return self in {BatchStatus.COMMITTED, BatchStatus.DONE, BatchStatus.CANCELLED}


class DigipostBaseModel(BaseModel):
    """Base model with common configuration for all Digipost models."""

    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        frozen=False,
        extra="ignore",  # Ignore unknown fields from API
    )


class SenderId(DigipostBaseModel):
    """Identifies the organisation or broker on whose behalf requests are made."""

    model_config = ConfigDict(frozen=True)

    id: PositiveInt

    def __str__(self) -> str:
        """Return the id as sent on the wire."""
        return str(self.id)

    @classmethod
    def of(cls, value: SenderId | int | str) -> SenderId:
        """Normalize an int, numeric string or SenderId into a SenderId."""
        if isinstance(value, SenderId):
            return value
        return cls(id=int(value))


class SenderOrganization(DigipostBaseModel):
    """Sender identified by organisation number instead of sender id."""

    organization_id: str = Field(alias="organization-id")
    part_id: str | None = Field(default=None, alias="part-id")


class Link(DigipostBaseModel):
    """A hypermedia link returned by the API."""

    rel: str
    uri: str
    media_type: str | None = Field(default=None, alias="media-type")

    @property
    def relation_name(self) -> str:
        """The significant part of ``rel`` (its last path segment)."""
        return self.rel.rstrip("/").rsplit("/", 1)[-1].lower()


class Representation(DigipostBaseModel):
    """Base for representations that carry links."""

    links: list[Link] = Field(default_factory=list, alias="link")

    def link(self, relation: Relation) -> Link | None:
        """Return the first link with the given relation, if any."""
        for link in self.links:
            if link.relation_name == relation.value:
                return link
        return None

    def link_uri(self, relation: Relation) -> str | None:
        """Return the URI of the first link with the given relation, if any."""
        link = self.link(relation)
        return link.uri if link is not None else None


class ErrorMessage(DigipostBaseModel):
    """Error body returned by the API for rejected requests."""

    error_code: str | None = Field(default=None, alias="error-code")
    error_message: str | None = Field(default=None, alias="error-message")
    error_type: str | None = Field(default=None, alias="error-type")


# ---------------------------------------------------------------------------
# Archive
# ---------------------------------------------------------------------------


class ContentHash(DigipostBaseModel):
    """Hash of an archived document's content, computed by the server."""

    hash_algorithm: str = Field(alias="hash-algorithm")
    value: str


class ArchiveDocumentAttribute(DigipostBaseModel):
    """Searchable key/value attribute on an archive document."""

    key: str
    value: str


class ArchiveDocument(Representation):
    """Metadata for one file in an archive.

    Holds no content; bytes are paired with the document by ``uuid`` when
    the archive is built.
    """

    uuid: UUID
    file_name: str = Field(alias="file-name")
    file_type: str = Field(alias="file-type")
    reference_id: str | None = Field(default=None, alias="referenceid")
    content_type: str | None = Field(default=None, alias="content-type")
    content_hash: ContentHash | None = Field(default=None, alias="content-hash")
    attributes: list[ArchiveDocumentAttribute] = Field(default_factory=list)
    archived_time: datetime | None = Field(default=None, alias="archived-time")
    deletion_time: datetime | None = Field(default=None, alias="deletion-time")

    def with_attribute(self, key: str, value: str) -> Self:
        """Set an attribute, overwriting an existing value for the same key."""
        for attribute in self.attributes:
            if attribute.key == key:
                attribute.value = value
                return self
        self.attributes.append(ArchiveDocumentAttribute(key=key, value=value))
        return self

    def with_attributes(self, attributes: Mapping[str, str]) -> Self:
        """Set several attributes."""
        for key, value in attributes.items():
            self.with_attribute(key, value)
        return self

    def with_reference_id(self, reference_id: str) -> Self:
        """Set the caller's reference id."""
        self.reference_id = reference_id
        return self

    def with_deletion_time(self, deletion_time: datetime) -> Self:
        """Set when the server should delete the document."""
        self.deletion_time = deletion_time
        return self

    def with_delete_after(
        self,
        duration: timedelta,
        *,
        now: datetime | None = None,
    ) -> Self:
        """Set the deletion time relative to ``now`` (default: current UTC time)."""
        self.deletion_time = (now or datetime.now(UTC)) + duration
        return self

    def with_new_uuid(self, new_uuid: UUID | None = None) -> ArchiveDocument:
        """Return a copy of this document's metadata under another UUID.

        Server-assigned fields and links are not copied.
        """
        return self.model_copy(
            update={
                "uuid": new_uuid or uuid4(),
                "links": [],
                "content_hash": None,
                "archived_time": None,
            },
            deep=True,
        )

    @property
    def delete_uri(self) -> str | None:
        """URI for deleting this document."""
        return self.link_uri(Relation.SELF_DELETE)

    @property
    def update_uri(self) -> str | None:
        """URI for updating this document's metadata."""
        return self.link_uri(Relation.SELF_UPDATE)

    @property
    def content_uri(self) -> str | None:
        """URI for the materialized content descriptor."""
        return self.link_uri(Relation.GET_ARCHIVE_DOCUMENT_CONTENT)

    @property
    def content_stream_uri(self) -> str | None:
        """URI for streaming the document bytes."""
        return self.link_uri(Relation.GET_ARCHIVE_DOCUMENT_CONTENT_STREAM)

    @property
    def document_by_uuid_uri(self) -> str | None:
        """URI for fetching this document by UUID."""
        return self.link_uri(Relation.GET_ARCHIVE_DOCUMENT_BY_UUID)


def _b64(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


class Archive(Representation):
    """A named collection of archive documents.

    ``name`` None denotes the sender's default archive. Before it has been
    sent an archive has no ``self`` link; afterwards the link is its
    server-assigned identity.
    """

    sender_organization: SenderOrganization | None = Field(
        default=None,
        alias="sender-organization",
    )
    sender_id: int | None = Field(default=None, alias="sender-id")
    name: str | None = None
    documents: list[ArchiveDocument] = Field(default_factory=list)

    @classmethod
    def default_archive(cls, *, sender_id: SenderId | int | None = None) -> Archive:
        """Create a template for the sender's default archive."""
        return cls(sender_id=_sender_id_value(sender_id))

    @classmethod
    def named_archive(
        cls,
        name: str,
        *,
        sender_id: SenderId | int | None = None,
    ) -> Archive:
        """Create a template for a named archive."""
        return cls(name=name, sender_id=_sender_id_value(sender_id))

    @property
    def self_uri(self) -> str | None:
        """Server-assigned URI, present once the archive has been sent."""
        return self.link_uri(Relation.SELF)

    def next_documents_uri(
        self,
        attributes: Mapping[str, str] | None = None,
        *,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
    ) -> str | None:
        """URI of the next page of documents, optionally filtered.

        Filter values are sent base64-encoded: attributes as a comma
        separated ``key,value,key,value`` list and dates in ISO 8601.

        Returns:
            The URI, or None when there are no more documents.
        """
        uri = self.link_uri(Relation.NEXT_DOCUMENTS)
        if uri is None:
            return None

        params: dict[str, str] = {}
        if attributes:
            flattened = ",".join(f"{k},{v}" for k, v in attributes.items())
            params["attributes"] = _b64(flattened)
        if from_date is not None:
            params["fromDate"] = _b64(from_date.isoformat())
        if to_date is not None:
            params["toDate"] = _b64(to_date.isoformat())

        if not params:
            return uri
        return str(httpx.URL(uri).copy_merge_params(params))


def _sender_id_value(sender_id: SenderId | int | None) -> int | None:
    if sender_id is None:
        return None
    return SenderId.of(sender_id).id


class Archives(Representation):
    """A list of archives."""

    archives: list[Archive] = Field(default_factory=list, alias="archive")

    def find_default(self) -> Archive | None:
        """Return the sender's default (unnamed) archive, if listed."""
        return next((a for a in self.archives if a.name is None), None)


class ArchiveDocumentContent(DigipostBaseModel):
    """Descriptor of an archived document's content.

    The bytes are fetched separately from ``uri``.
    """

    content_type: str = Field(alias="content-type")
    uri: str


# ---------------------------------------------------------------------------
# Batch
# ---------------------------------------------------------------------------


class Batch(Representation):
    """A caller-identified grouping of deliveries with a lifecycle."""

    uuid: UUID
    status: BatchStatus | None = None
    count_digipost: int | None = Field(default=None, alias="count-digipost")
    count_print: int | None = Field(default=None, alias="count-print")

    @property
    def is_open(self) -> bool:
        """Whether the batch still accepts completion or cancellation."""
        return self.status is None or not self.status.is_terminal

    @property
    def complete_uri(self) -> str | None:
        """URI for completing the batch, if the server provided one."""
        return self.link_uri(Relation.COMPLETE_BATCH)

    @property
    def cancel_uri(self) -> str | None:
        """URI for cancelling the batch, if the server provided one."""
        return self.link_uri(Relation.SELF_DELETE)
