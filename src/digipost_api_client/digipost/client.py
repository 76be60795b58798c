"""Async client for the Digipost API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Self

import httpx

from digipost_api_client.config import ConfigurationValidationError
from digipost_api_client.digipost.archive import (
    ArchiveBuilder,
    ArchiveMutator,
    ArchiveReader,
)
from digipost_api_client.digipost.batch import BatchApi
from digipost_api_client.digipost.transport import DigipostTransport
from digipost_api_client.security import Signer


if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from digipost_api_client.config import Settings
    from digipost_api_client.digipost.models import Archive, SenderId


__all__ = ["DigipostClient"]


class DigipostClient:
    """Async client for archives and batches in Digipost.

    Every request is signed with the sender's private key. The client
    composes one capability object per resource lifecycle, all sharing
    one authenticated transport:

    - :meth:`archive_documents` returns a single-use :class:`ArchiveBuilder`
    - :attr:`archive_lookup` reads archives, documents, and content
    - :attr:`archive_mutation` deletes, updates, and re-identifies documents
    - :attr:`batches` creates, completes, and cancels batches

    Example:
        ```python
        signer = Signer.from_pkcs12_file("certificate.p12", passphrase)
        async with DigipostClient(sender_id=123456, signer=signer) as client:
            archive = await (
                client.archive_documents(Archive.named_archive("invoices"))
                .add_file(document, pdf_bytes)
                .send()
            )
            batch = await client.batches.create_batch(uuid4())
        ```

    Attributes:
        archive_lookup: Read capability for submitted archives.
        archive_mutation: Mutation capability for archived documents.
        batches: Batch lifecycle capability.
    """

    def __init__(  # noqa: PLR0913
        self,
        sender_id: SenderId | int | str,
        signer: Signer,
        *,
        base_url: str = DigipostTransport.DEFAULT_BASE_URL,
        timeout: httpx.Timeout | None = None,
        connect_retries: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            sender_id: Organisation or broker id issuing requests.
            signer: Signer holding the sender's private key.
            base_url: Base URL of the Digipost API.
            timeout: Optional custom timeout configuration.
            connect_retries: Retries for failed TCP connection attempts.
            transport: Optional custom transport for testing or advanced config.
            clock: Optional clock for the ``Date`` header.
        """
        self._transport = DigipostTransport(
            sender_id,
            signer,
            base_url=base_url,
            timeout=timeout,
            connect_retries=connect_retries,
            transport=transport,
            clock=clock,
        )
        self.archive_lookup = ArchiveReader(self._transport)
        self.archive_mutation = ArchiveMutator(self._transport)
        self.batches = BatchApi(self._transport)

    @classmethod
    def from_settings(cls, settings: Settings) -> DigipostClient:
        """Create a client from configuration.

        Loads the private key from ``digipost.certificate_path``.

        Args:
            settings: Loaded settings.

        Returns:
            A configured client.

        Raises:
            ConfigurationValidationError: If the sender id, certificate, or
                passphrase is not configured.
            KeyLoadError: If the certificate cannot be loaded.
        """
        config = settings.digipost
        sender_id = config.sender_id
        certificate_path = config.certificate_path
        passphrase = config.passphrase
        if sender_id is None or certificate_path is None or passphrase is None:
            missing = [
                name
                for name, value in (
                    ("digipost.sender_id", sender_id),
                    ("digipost.certificate_path", certificate_path),
                    ("digipost.passphrase", passphrase),
                )
                if value is None
            ]
            raise ConfigurationValidationError.missing_settings(missing)

        signer = Signer.from_pkcs12_file(
            certificate_path,
            passphrase.get_secret_value(),
        )
        return cls(
            sender_id,
            signer,
            base_url=config.api_url,
            timeout=httpx.Timeout(
                config.timeout_seconds,
                connect=config.connect_timeout_seconds,
            ),
            connect_retries=config.connect_retries,
        )

    @property
    def sender_id(self) -> SenderId:
        """The sender issuing requests."""
        return self._transport.sender_id

    @property
    def base_url(self) -> str:
        """Base URL of the Digipost API."""
        return self._transport.base_url

    async def __aenter__(self) -> Self:
        """Enter async context and open the HTTP connection pool."""
        await self._transport.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Exit async context and close the HTTP connection pool."""
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        await self._transport.close()

    def archive_documents(self, archive: Archive) -> ArchiveBuilder:
        """Start building an archive upload.

        Args:
            archive: Archive template, e.g. ``Archive.named_archive("invoices")``.

        Returns:
            A new builder in the ``BUILDING`` state.
        """
        return ArchiveBuilder(self._transport, archive)
