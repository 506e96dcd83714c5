"""CLI entry point for ledgerlink."""

import logging
import sys
import uuid
from datetime import datetime
from pathlib import Path

import click

from .adapters.llm import create_extraction_adapter
from .adapters.persistence import SqlAlchemyRepository, create_repository
from .adapters.quickbooks import QuickBooksClientFactory
from .adapters.rasterizer import Pdf2ImageAdapter
from .adapters.storage import create_storage_adapter
from .config import Settings, load_settings
from .domain.errors import DocumentNotFound, LedgerSyncError
from .domain.models import DocumentKind
from .domain.preprocessing import MIME_TYPES, DocumentPreprocessor
from .domain.services import LedgerSyncService
from .domain.validator import PayloadValidator
from .ports.storage import StoragePort

logger = logging.getLogger(__name__)

SOURCE_TYPES = {"pdf": "application/pdf", **MIME_TYPES}


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_sync_service(
    settings: Settings,
    repository: SqlAlchemyRepository,
    storage: StoragePort,
) -> LedgerSyncService:
    """Wire adapters into a sync service."""
    preprocessor = DocumentPreprocessor(
        storage,
        Pdf2ImageAdapter(),
        processed_dir=settings.storage.processed_dir,
        max_workers=settings.storage.max_workers,
        upload_timeout=settings.storage.upload_timeout,
    )
    validator = PayloadValidator(
        tolerance=settings.validation.amount_tolerance,
        warn_on_mismatch=settings.validation.warn_on_amount_mismatch,
    )
    return LedgerSyncService(
        repository=repository,
        preprocessor=preprocessor,
        extractor=create_extraction_adapter(settings.extraction, storage),
        clients=QuickBooksClientFactory(
            settings.quickbooks, on_refresh=repository.save_credential
        ),
        validator=validator,
        accounts_for=settings.accounts.for_tenant,
    )


def source_key(source_dir: str, file: Path) -> str:
    """Object key for an uploaded source file."""
    return f"{source_dir}/{uuid.uuid4()}{file.suffix.lower()}"


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("-c", "--config", type=click.Path(exists=True), help="Config file path")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config: str | None) -> None:
    """Ledgerlink - sync invoices and receipts to QuickBooks Online."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config) if config else None


@cli.command("init-db")
@click.pass_context
def init_db(ctx: click.Context) -> None:
    """Create database tables."""
    settings = load_settings(ctx.obj["config_path"])
    create_repository(settings.database)
    click.echo(f"Initialized database: {settings.database.url}")


@cli.command()
@click.argument("tenant_id", type=int)
@click.option("--realm-id", required=True, help="QuickBooks company id")
@click.option("--refresh-token", required=True, help="OAuth refresh token")
@click.option("--access-token", default="", help="OAuth access token, if still valid")
@click.option(
    "--expires-at",
    type=click.DateTime(),
    default=None,
    help="Access token expiry (UTC)",
)
@click.pass_context
def connect(
    ctx: click.Context,
    tenant_id: int,
    realm_id: str,
    refresh_token: str,
    access_token: str,
    expires_at: datetime | None,
) -> None:
    """Store QuickBooks credentials for a tenant."""
    settings = load_settings(ctx.obj["config_path"])
    repository = create_repository(settings.database)
    credential = repository.add_credential(
        tenant_id,
        realm_id=realm_id,
        access_token=access_token,
        refresh_token=refresh_token,
        expires_at=expires_at,
    )
    click.echo(f"Connected tenant {tenant_id} to realm {realm_id} (integration {credential.id})")


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--tenant", "tenant_id", type=int, required=True, help="Tenant id")
@click.option("--user", "user_id", type=int, default=None, help="Acting user id")
@click.option(
    "--kind",
    type=click.Choice([k.value for k in DocumentKind]),
    default=DocumentKind.INVOICE.value,
    help="Document kind",
)
@click.option("--sync/--no-sync", default=False, help="Run the pipeline right away")
@click.pass_context
def ingest(
    ctx: click.Context,
    file: Path,
    tenant_id: int,
    user_id: int | None,
    kind: str,
    sync: bool,
) -> None:
    """Upload a document and register it for processing."""
    settings = load_settings(ctx.obj["config_path"])
    extension = file.suffix.lower().lstrip(".")
    if extension not in SOURCE_TYPES:
        raise click.BadParameter(f"Unsupported file type: {file.suffix}", param_hint="FILE")

    storage = create_storage_adapter(settings.storage)
    repository = create_repository(settings.database)

    location = storage.upload(
        file.read_bytes(),
        source_key(settings.storage.source_dir, file),
        SOURCE_TYPES[extension],
    )
    document = repository.create_document(tenant_id, user_id, DocumentKind(kind), location)
    click.echo(f"document: {document.id}")
    click.echo(f"file: {location}")

    if sync:
        ctx.invoke(sync_document, document_id=document.id)


@cli.command("sync")
@click.argument("document_id", type=int)
@click.pass_context
def sync_document(ctx: click.Context, document_id: int) -> None:
    """Run the sync pipeline for a document."""
    settings = load_settings(ctx.obj["config_path"])
    storage = create_storage_adapter(settings.storage)
    repository = create_repository(settings.database)
    service = create_sync_service(settings, repository, storage)

    try:
        result = service.process(document_id)
    except DocumentNotFound as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except LedgerSyncError as e:
        document = repository.get_document(document_id)
        click.echo(f"status: {document.status.value}", err=True)
        click.echo(f"error: {e}", err=True)
        sys.exit(1)
    finally:
        service.clients.close()

    click.echo(f"status: {result.status.value}")
    click.echo(f"external_id: {result.external_id}")
    if result.already_synced:
        click.echo("already synced")
    for warning in result.warnings:
        click.echo(f"warning: {warning}")


@cli.command()
@click.argument("document_id", type=int)
@click.pass_context
def status(ctx: click.Context, document_id: int) -> None:
    """Show a document's pipeline status."""
    settings = load_settings(ctx.obj["config_path"])
    repository = create_repository(settings.database)
    try:
        document = repository.get_document(document_id)
    except LedgerSyncError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"kind: {document.kind.value}")
    click.echo(f"status: {document.status.value}")
    click.echo(f"file: {document.file_path}")
    if document.error_message:
        click.echo(f"error: {document.error_message}")


if __name__ == "__main__":
    cli()
