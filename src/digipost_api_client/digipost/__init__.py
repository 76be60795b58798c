"""Digipost API client module.

This module provides an async HTTP client for the Digipost archive and
batch APIs. Every request is signed with the sender's private key.

Example:
    ```python
    from uuid import uuid4

    from digipost_api_client.digipost import (
        Archive,
        ArchiveDocument,
        DigipostClient,
    )
    from digipost_api_client.security import Signer

    signer = Signer.from_pkcs12_file("certificate.p12", passphrase)

    async with DigipostClient(sender_id=123456, signer=signer) as client:
        document = ArchiveDocument(
            uuid=uuid4(),
            file_name="invoice.pdf",
            file_type="pdf",
            content_type="application/pdf",
        ).with_reference_id("invoice-2024-001")

        archive = await (
            client.archive_documents(Archive.named_archive("invoices"))
            .add_file(document, pdf_bytes)
            .send()
        )

        # Later: find it again by reference id
        found = await client.archive_lookup.get_archive_documents_by_reference_id(
            "invoice-2024-001",
        )
    ```
"""

from __future__ import annotations

from digipost_api_client.digipost.archive import (
    ArchiveBuilder,
    ArchiveBuilderState,
    ArchiveMutator,
    ArchiveReader,
)
from digipost_api_client.digipost.auth import SignatureAuth
from digipost_api_client.digipost.batch import BatchApi
from digipost_api_client.digipost.client import DigipostClient
from digipost_api_client.digipost.exceptions import (
    ArchiveBuilderStateError,
    ArchiveSendError,
    DigipostAuthenticationError,
    DigipostConflictError,
    DigipostConnectionError,
    DigipostError,
    DigipostNotFoundError,
    DigipostServerError,
    DigipostValidationError,
    DuplicateBatchError,
    InvalidBatchStateError,
    TransportError,
)
from digipost_api_client.digipost.models import (
    Archive,
    ArchiveDocument,
    ArchiveDocumentAttribute,
    ArchiveDocumentContent,
    Archives,
    Batch,
    BatchStatus,
    ContentHash,
    ErrorMessage,
    Link,
    Relation,
    SenderId,
    SenderOrganization,
)
from digipost_api_client.digipost.transport import DigipostTransport


__all__ = [
    "Archive",
    "ArchiveBuilder",
    "ArchiveBuilderState",
    "ArchiveBuilderStateError",
    "ArchiveDocument",
    "ArchiveDocumentAttribute",
    "ArchiveDocumentContent",
    "ArchiveMutator",
    "ArchiveReader",
    "ArchiveSendError",
    "Archives",
    "Batch",
    "BatchApi",
    "BatchStatus",
    "ContentHash",
    "DigipostAuthenticationError",
    "DigipostClient",
    "DigipostConflictError",
    "DigipostConnectionError",
    "DigipostError",
    "DigipostNotFoundError",
    "DigipostServerError",
    "DigipostTransport",
    "DigipostValidationError",
    "DuplicateBatchError",
    "ErrorMessage",
    "InvalidBatchStateError",
    "Link",
    "Relation",
    "SenderId",
    "SenderOrganization",
    "SignatureAuth",
    "TransportError",
]
