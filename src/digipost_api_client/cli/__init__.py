"""CLI module for digipost-api-client."""

from __future__ import annotations

import asyncio
import mimetypes
from contextlib import ExitStack
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar
from uuid import UUID, uuid4

import typer

from digipost_api_client import __version__
from digipost_api_client.config import (
    PASSPHRASE_ENV_VAR,
    ConfigurationError,
    LogFormat,
    Settings,
    load_settings,
)
from digipost_api_client.digipost import (
    Archive,
    ArchiveDocument,
    DigipostClient,
    DigipostError,
)
from digipost_api_client.observability import (
    LogLevel,
    configure_logging,
    set_request_id,
)
from digipost_api_client.security import SecurityError, Signer


T = TypeVar("T")

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from digipost_api_client.digipost import Batch


app = typer.Typer(
    name="digipost-client",
    help="Signed-request client for the Digipost archive and batch APIs.",
    no_args_is_help=True,
)
archive_app = typer.Typer(help="Archive operations.", no_args_is_help=True)
batch_app = typer.Typer(help="Batch lifecycle operations.", no_args_is_help=True)
app.add_typer(archive_app, name="archive")
app.add_typer(batch_app, name="batch")


def version_callback(value: bool) -> None:  # noqa: FBT001
    """Print version and exit."""
    if value:
        typer.echo(f"digipost-client version {__version__}")
        raise typer.Exit


def _fail(message: str) -> typer.Exit:
    typer.echo(f"Error: {message}", err=True)
    return typer.Exit(1)


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(  # noqa: FBT001
        False,  # noqa: FBT003
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(  # noqa: FBT001
        False,  # noqa: FBT003
        "--verbose",
        "-V",
        help="Enable verbose (debug) logging.",
    ),
    quiet: bool = typer.Option(  # noqa: FBT001
        False,  # noqa: FBT003
        "--quiet",
        "-q",
        help="Only show warnings and errors.",
    ),
    config_file: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file.",
    ),
) -> None:
    """digipost-api-client CLI."""
    del version  # Handled by callback

    # Determine log level from flags
    if verbose and quiet:
        typer.echo("Error: --verbose and --quiet are mutually exclusive.", err=True)
        raise typer.Exit(1)

    level: LogLevel | None = None
    if verbose:
        level = LogLevel.DEBUG
    elif quiet:
        level = LogLevel.WARNING

    configure_logging(level=level or LogLevel.INFO)
    ctx.obj = {"config_file": config_file, "level": level}


def _settings(ctx: typer.Context) -> Settings:
    """Load settings and apply their logging section unless overridden by flags."""
    config_file: Path | None = ctx.obj["config_file"]
    try:
        settings = load_settings(
            config_file,
            require_config_file=config_file is not None,
        )
    except ConfigurationError as exc:
        raise _fail(exc.message) from exc

    logging_config = settings.observability.logging
    configure_logging(
        level=ctx.obj["level"] or logging_config.level.value,
        force_colors=logging_config.format is LogFormat.CONSOLE,
    )
    return settings


def _run(
    ctx: typer.Context,
    operation: Callable[[DigipostClient], Awaitable[T]],
) -> T:
    """Run one operation against a client built from settings."""
    settings = _settings(ctx)
    set_request_id()

    async def runner() -> T:
        async with DigipostClient.from_settings(settings) as client:
            return await operation(client)

    try:
        return asyncio.run(runner())
    except (ConfigurationError, SecurityError) as exc:
        raise _fail(exc.message) from exc
    except DigipostError as exc:
        raise _fail(str(exc)) from exc
    except OSError as exc:
        raise _fail(f"{exc.strerror}: {exc.filename}") from exc


def _echo_batch(batch: Batch) -> None:
    typer.echo(f"Batch {batch.uuid}: {batch.status or 'UNKNOWN'}")
    if batch.count_digipost is not None or batch.count_print is not None:
        typer.echo(
            f"  digipost={batch.count_digipost or 0} print={batch.count_print or 0}",
        )


# ---------------------------------------------------------------------------
# Key Commands
# ---------------------------------------------------------------------------


@app.command(name="check-key")
def check_key(
    certificate: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        help="PKCS#12 certificate file.",
    ),
    passphrase: str = typer.Option(
        ...,
        "--passphrase",
        prompt=True,
        hide_input=True,
        envvar=PASSPHRASE_ENV_VAR,
        help="Certificate passphrase.",
    ),
) -> None:
    """Check that the signing key can be loaded from a certificate."""
    try:
        signer = Signer.from_pkcs12_file(certificate, passphrase)
    except SecurityError as exc:
        raise _fail(exc.message) from exc

    typer.echo(f"Key loaded: RSA {signer.key_size} bits")


# ---------------------------------------------------------------------------
# Archive Commands
# ---------------------------------------------------------------------------


def _archive_document(path: Path, reference_id: str | None) -> ArchiveDocument:
    content_type, _ = mimetypes.guess_type(path.name)
    document = ArchiveDocument(
        uuid=uuid4(),
        file_name=path.name,
        file_type=path.suffix.lstrip(".").lower() or "bin",
        content_type=content_type,
    )
    if reference_id is not None:
        document.with_reference_id(reference_id)
    return document


@archive_app.command("upload")
def archive_upload(
    ctx: typer.Context,
    files: list[Path] = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        help="Files to archive.",
    ),
    name: str | None = typer.Option(
        None,
        "--name",
        "-n",
        help="Archive name (default archive if omitted).",
    ),
    reference_id: str | None = typer.Option(
        None,
        "--reference-id",
        "-r",
        help="Reference id set on every uploaded document.",
    ),
) -> None:
    """Upload files to an archive in one request."""

    async def upload(client: DigipostClient) -> Archive:
        template = (
            Archive.named_archive(name) if name else Archive.default_archive()
        )
        builder = client.archive_documents(template)
        with ExitStack() as stack:
            for path in files:
                builder.add_file(
                    _archive_document(path, reference_id),
                    stack.enter_context(path.open("rb")),
                )
            return await builder.send()

    archive = _run(ctx, upload)
    typer.echo(f"Archive: {archive.self_uri or archive.name or 'default'}")
    for document in archive.documents:
        typer.echo(f"  {document.uuid}  {document.file_name}")


# ---------------------------------------------------------------------------
# Batch Commands
# ---------------------------------------------------------------------------


@batch_app.command("create")
def batch_create(
    ctx: typer.Context,
    batch_uuid: UUID = typer.Argument(..., help="Caller-generated batch UUID."),
) -> None:
    """Create a batch."""
    _echo_batch(_run(ctx, lambda client: client.batches.create_batch(batch_uuid)))


@batch_app.command("info")
def batch_info(
    ctx: typer.Context,
    batch_uuid: UUID = typer.Argument(..., help="Batch UUID."),
) -> None:
    """Show the current state of a batch."""
    _echo_batch(
        _run(ctx, lambda client: client.batches.get_batch_information(batch_uuid)),
    )


@batch_app.command("complete")
def batch_complete(
    ctx: typer.Context,
    batch_uuid: UUID = typer.Argument(..., help="Batch UUID."),
) -> None:
    """Complete an open batch."""

    async def complete(client: DigipostClient) -> Batch:
        batch = await client.batches.get_batch_information(batch_uuid)
        return await client.batches.complete_batch(batch)

    _echo_batch(_run(ctx, complete))


@batch_app.command("cancel")
def batch_cancel(
    ctx: typer.Context,
    batch_uuid: UUID = typer.Argument(..., help="Batch UUID."),
) -> None:
    """Cancel an open batch."""

    async def cancel(client: DigipostClient) -> Batch:
        batch = await client.batches.get_batch_information(batch_uuid)
        await client.batches.cancel_batch(batch)
        return batch

    _echo_batch(_run(ctx, cancel))


__all__ = ["app"]
