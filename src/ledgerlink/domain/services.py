"""Domain services - orchestrate the ledger sync pipeline."""

import logging
from dataclasses import dataclass
from typing import Any, Callable

from ..ports.accounting import AccountingClientFactory, AccountingPort
from ..ports.extraction import ExtractionPort
from ..ports.repository import RepositoryPort
from .errors import (
    ExternalTransportError,
    ExternalValidationFault,
    IntegrationMissing,
    MappingNotFound,
    ValidationError,
)
from .identity import IdentityMapper
from .models import (
    Document,
    DocumentKind,
    DocumentStatus,
    EntityMapping,
    EntityType,
    ExtractedRecord,
    IntegrationCredential,
    InvoiceExtraction,
    LineItem,
    LocalEntity,
    LocalTransaction,
    MappingContext,
    ReceiptExtraction,
    SyncResult,
)
from .normalizer import normalize
from .preprocessing import DocumentPreprocessor
from .transformer import (
    AccountRefs,
    payment_type,
    resolve_line,
    to_external_payload,
    with_party_reference,
)
from .validator import PayloadValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusPolicy:
    """Per-kind mapping of pipeline outcomes to document status."""

    party_type: EntityType
    transaction_type: EntityType
    success: DocumentStatus
    invalid: DocumentStatus
    missing_mapping: DocumentStatus


STATUS_POLICIES = {
    DocumentKind.INVOICE: StatusPolicy(
        party_type=EntityType.CUSTOMER,
        transaction_type=EntityType.INVOICE,
        success=DocumentStatus.PROCESSED,
        invalid=DocumentStatus.VALIDATION_ERROR,
        missing_mapping=DocumentStatus.ERROR,
    ),
    DocumentKind.RECEIPT: StatusPolicy(
        party_type=EntityType.VENDOR,
        transaction_type=EntityType.RECEIPT,
        success=DocumentStatus.READY,
        invalid=DocumentStatus.MISSING_DATA,
        missing_mapping=DocumentStatus.MISSING_DATA,
    ),
}


class LedgerSyncService:
    """Drives one document from extraction to the external ledger.

    Pipeline:
        1. Mark document as Extraction
        2. Preprocess images and extract structured data
        3. Find-or-create local party and transaction
        4. Resolve the party's external identity
        5. Transform, inject party reference, validate
        6. Submit and map the external transaction

    Every failure persists the document status before re-raising. Nothing
    is retried here; re-running the same document id is safe.
    """

    def __init__(
        self,
        repository: RepositoryPort,
        preprocessor: DocumentPreprocessor,
        extractor: ExtractionPort,
        clients: AccountingClientFactory,
        validator: PayloadValidator | None = None,
        accounts_for: Callable[[int], AccountRefs] | None = None,
    ) -> None:
        self.repository = repository
        self.preprocessor = preprocessor
        self.extractor = extractor
        self.clients = clients
        self.validator = validator or PayloadValidator()
        self.accounts_for = accounts_for or (lambda tenant_id: AccountRefs())
        self.identity = IdentityMapper(repository)

    def process(self, document_id: int) -> SyncResult:
        """Run the full pipeline for a document."""
        document = self.repository.get_document(document_id)
        policy = STATUS_POLICIES[document.kind]
        logger.info(f"Processing {document.kind.value} document {document.id}")

        document.status = DocumentStatus.EXTRACTION
        document.error_message = None
        self.repository.save_document(document)

        try:
            return self._run(document, policy)
        except ValidationError as e:
            self._fail(document, policy.invalid, str(e))
            raise
        except MappingNotFound as e:
            self._fail(document, policy.missing_mapping, str(e))
            raise
        except ExternalValidationFault as e:
            self._fail(document, DocumentStatus.VALIDATION_ERROR, e.detail)
            raise
        except Exception as e:
            logger.exception(f"Processing failed: {e}")
            self._fail(document, DocumentStatus.ERROR, str(e) or type(e).__name__)
            raise

    def _run(self, document: Document, policy: StatusPolicy) -> SyncResult:
        # 1. Preprocess and extract
        images = self.preprocessor.process_file(document.file_path)
        document.processed_image_file_paths = images
        self.repository.save_document(document)

        raw = self.extractor.extract(images, document.kind)
        record = normalize(raw, document.kind)
        document.processed_data = {"processed_json": raw}
        self.repository.save_document(document)

        # 2. Local durable state before any external write
        accounts = self.accounts_for(document.tenant_id)
        party, transaction = self._find_or_create_transaction(document, record, accounts)

        # 3. External identity of the party
        credential = self._require_integration(document.tenant_id)
        client = self.clients.client_for(credential)
        context = MappingContext(integration_id=credential.id, user_id=document.user_id)
        self.identity.resolve_or_create_external(
            document.tenant_id, policy.party_type, party, client, context
        )

        synced = self.repository.find_mapping(
            document.tenant_id, policy.transaction_type, transaction.id
        )
        if synced:
            logger.info(
                f"{policy.transaction_type.value} {transaction.id} already synced "
                f"as {synced.external_id}"
            )
            self._succeed(document, policy)
            return SyncResult(
                document_id=document.id,
                status=policy.success,
                local_id=transaction.id,
                external_id=synced.external_id,
                already_synced=True,
            )

        # 4. Transform, then merge the party reference
        payload = to_external_payload(record, accounts)
        party_mapping = self.identity.require_mapping(
            document.tenant_id, policy.party_type, party.id
        )
        payload = with_party_reference(payload, document.kind, party_mapping.external_id)

        warnings = self.validator.validate(payload, document.kind)

        # 5. Submit
        credential = self._require_integration(document.tenant_id)
        client = self.clients.client_for(credential)
        external_id = self._submit(client, document.kind, payload)

        self.repository.create_mapping(
            EntityMapping(
                tenant_id=document.tenant_id,
                entity_type=policy.transaction_type,
                local_id=transaction.id,
                external_id=external_id,
                integration_id=credential.id,
                user_id=document.user_id,
            )
        )
        self._succeed(document, policy)
        logger.info(
            f"Synced document {document.id} as {policy.transaction_type.value} {external_id}"
        )

        return SyncResult(
            document_id=document.id,
            status=policy.success,
            local_id=transaction.id,
            external_id=external_id,
            warnings=warnings,
        )

    def _require_integration(self, tenant_id: int) -> IntegrationCredential:
        credential = self.repository.get_active_credential(tenant_id)
        if credential is None:
            raise IntegrationMissing(tenant_id)
        return credential

    def _find_or_create_party(
        self, document: Document, record: ExtractedRecord
    ) -> LocalEntity:
        if isinstance(record, InvoiceExtraction):
            return self.repository.find_or_create_customer(
                document.tenant_id, document.user_id, record.customer
            )
        return self.repository.find_or_create_vendor(
            document.tenant_id, document.user_id, record.vendor
        )

    def _find_or_create_transaction(
        self,
        document: Document,
        record: ExtractedRecord,
        accounts: AccountRefs,
    ) -> tuple[LocalEntity, LocalTransaction]:
        """Return the party and local transaction for a document.

        A reused transaction keeps the party it was created with, even when a
        later extraction reads a different name.
        """
        policy = STATUS_POLICIES[document.kind]
        existing = self.repository.find_transaction(document.id, policy.transaction_type)
        if existing:
            logger.info(f"Reusing local {policy.transaction_type.value} {existing.id}")
            return self.repository.get_party(policy.party_type, existing.party_id), existing

        party = self._find_or_create_party(document, record)
        transaction = build_local_transaction(document, record, party, accounts)
        transaction = self.repository.create_transaction(transaction)
        logger.info(
            f"Created local {transaction.entity_type.value} {transaction.id} "
            f"with {len(transaction.lines)} lines"
        )
        return party, transaction

    def _submit(
        self, client: AccountingPort, kind: DocumentKind, payload: dict[str, Any]
    ) -> str:
        if kind == DocumentKind.INVOICE:
            created = client.create_invoice(payload)
        else:
            created = client.create_purchase(payload)

        if not created or "Id" not in created:
            raise ExternalTransportError("Create response has no Id")
        return str(created["Id"])

    def _succeed(self, document: Document, policy: StatusPolicy) -> None:
        document.status = policy.success
        document.error_message = None
        self.repository.save_document(document)

    def _fail(self, document: Document, status: DocumentStatus, message: str) -> None:
        logger.error(f"Document {document.id} -> {status.value}: {message}")
        document.status = status
        document.error_message = message
        self.repository.save_document(document)


def build_local_transaction(
    document: Document,
    record: ExtractedRecord,
    party: LocalEntity,
    accounts: AccountRefs,
) -> LocalTransaction:
    """Build the local Invoice/Purchase for a normalized record."""
    if isinstance(record, InvoiceExtraction):
        lines = []
        for item in record.items:
            quantity, unit_price, amount = resolve_line(item)
            lines.append(
                LineItem(
                    description=item.description,
                    quantity=quantity,
                    unit_price=unit_price,
                    amount=amount,
                )
            )
        return LocalTransaction(
            entity_type=EntityType.INVOICE,
            tenant_id=document.tenant_id,
            document_id=document.id,
            party_id=party.id,
            user_id=document.user_id,
            number=record.invoice_number,
            txn_date=record.invoice_date,
            due_date=record.due_date,
            currency=record.currency,
            subtotal=record.subtotal,
            total_amount=record.total_amount,
            discount_total=record.discount_total,
            notes=record.notes,
            lines=lines,
        )

    if not isinstance(record, ReceiptExtraction):
        raise TypeError(f"Unsupported record type: {type(record).__name__}")
    return LocalTransaction(
        entity_type=EntityType.RECEIPT,
        tenant_id=document.tenant_id,
        document_id=document.id,
        party_id=party.id,
        user_id=document.user_id,
        txn_date=record.transaction_date,
        currency=record.currency,
        total_amount=record.total_amount,
        payment_type=payment_type(record.payment_type, accounts),
        account_ref=accounts.payment_account,
        lines=[
            LineItem(
                description=line.description,
                amount=line.amount or 0.0,
                account_ref=accounts.expense_account,
            )
            for line in record.lines
        ],
    )
