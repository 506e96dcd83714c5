"""Repository adapter using SQLAlchemy."""

import logging
from dataclasses import asdict
from datetime import datetime
from typing import Any

from sqlalchemy import create_engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ...domain.errors import DocumentNotFound
from ...domain.models import (
    Address,
    CustomerDetails,
    Document,
    DocumentKind,
    DocumentStatus,
    EntityMapping,
    EntityType,
    IntegrationCredential,
    LineItem,
    LocalEntity,
    LocalTransaction,
    VendorDetails,
)
from ...ports.repository import RepositoryPort
from .tables import (
    Base,
    CustomerRow,
    DocumentRow,
    EntityMappingRow,
    IntegrationRow,
    InvoiceLineRow,
    InvoiceRow,
    PurchaseLineRow,
    PurchaseRow,
    VendorRow,
)

logger = logging.getLogger(__name__)

CONNECTED = "Connected"


def _connect_args(url: str) -> dict[str, Any]:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


def _address_json(address: Address | None) -> dict[str, Any] | None:
    return asdict(address) if address else None


def _address(data: dict[str, Any] | None) -> Address | None:
    return Address(**data) if data else None


class SqlAlchemyRepository(RepositoryPort):
    """Relational store for documents, parties, transactions and mappings.

    Each operation runs in its own session and commits immediately, so local
    state is durable before any external call that follows it.
    """

    def __init__(self, url: str) -> None:
        kwargs: dict[str, Any] = {"connect_args": _connect_args(url)}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # Share the single in-memory database across sessions
            kwargs["poolclass"] = StaticPool
        self.engine = create_engine(url, **kwargs)
        self.Session = sessionmaker(bind=self.engine, expire_on_commit=False)

    def init_schema(self) -> None:
        Base.metadata.create_all(self.engine)

    # Documents

    def create_document(
        self, tenant_id: int, user_id: int | None, kind: DocumentKind, file_path: str
    ) -> Document:
        with self.Session() as session:
            row = DocumentRow(
                tenant_id=tenant_id,
                user_id=user_id,
                kind=kind.value,
                file_path=file_path,
                status=DocumentStatus.NEW.value,
                processed_image_file_paths=[],
            )
            session.add(row)
            session.commit()
            return self._document(row)

    def get_document(self, document_id: int) -> Document:
        with self.Session() as session:
            row = session.get(DocumentRow, document_id)
            if row is None:
                raise DocumentNotFound(f"Document not found: {document_id}")
            return self._document(row)

    def save_document(self, document: Document) -> None:
        with self.Session() as session:
            row = session.get(DocumentRow, document.id)
            if row is None:
                raise DocumentNotFound(f"Document not found: {document.id}")
            row.status = document.status.value
            row.error_message = document.error_message
            row.processed_data = document.processed_data
            row.processed_image_file_paths = list(document.processed_image_file_paths)
            session.commit()

    # Parties

    def find_or_create_customer(
        self, tenant_id: int, user_id: int | None, details: CustomerDetails
    ) -> LocalEntity:
        row = self._find_or_create(
            CustomerRow,
            tenant_id,
            details.company_name,
            user_id=user_id,
            email=details.email or "",
            phone=details.phone or "",
            billing_address=_address_json(details.billing_address),
            shipping_address=_address_json(details.shipping_address),
        )
        return self._customer(row)

    def find_or_create_vendor(
        self, tenant_id: int, user_id: int | None, details: VendorDetails
    ) -> LocalEntity:
        row = self._find_or_create(
            VendorRow,
            tenant_id,
            details.name,
            user_id=user_id,
            email=details.email or "",
            phone=details.phone or "",
            address=_address_json(details.address),
        )
        return self._vendor(row)

    def get_party(self, entity_type: EntityType, party_id: int) -> LocalEntity:
        if entity_type == EntityType.CUSTOMER:
            row_type, convert = CustomerRow, self._customer
        elif entity_type == EntityType.VENDOR:
            row_type, convert = VendorRow, self._vendor
        else:
            raise ValueError(f"Not a party type: {entity_type.value}")
        with self.Session() as session:
            row = session.get(row_type, party_id)
            if row is None:
                raise LookupError(f"{entity_type.value} not found: {party_id}")
            return convert(row)

    def _find_or_create(self, row_type, tenant_id: int, name: str, **defaults: Any):
        query = select(row_type).where(row_type.tenant_id == tenant_id, row_type.name == name)
        with self.Session() as session:
            row = session.scalars(query).first()
            if row is not None:
                return row

            row = row_type(tenant_id=tenant_id, name=name, **defaults)
            session.add(row)
            try:
                session.commit()
                logger.info(f"Created {row_type.__tablename__[:-1]} '{name}' for tenant {tenant_id}")
            except IntegrityError:
                # Lost a race with another document for the same name
                session.rollback()
                row = session.scalars(query).one()
            return row

    # Transactions

    def find_transaction(
        self, document_id: int, entity_type: EntityType
    ) -> LocalTransaction | None:
        with self.Session() as session:
            if entity_type == EntityType.INVOICE:
                invoice = session.scalars(
                    select(InvoiceRow).where(InvoiceRow.document_id == document_id).order_by(InvoiceRow.id)
                ).first()
                return self._invoice(invoice) if invoice else None
            if entity_type == EntityType.RECEIPT:
                purchase = session.scalars(
                    select(PurchaseRow).where(PurchaseRow.document_id == document_id).order_by(PurchaseRow.id)
                ).first()
                return self._purchase(purchase) if purchase else None
            raise ValueError(f"Not a transaction type: {entity_type.value}")

    def create_transaction(self, transaction: LocalTransaction) -> LocalTransaction:
        with self.Session() as session:
            if transaction.entity_type == EntityType.INVOICE:
                row = InvoiceRow(
                    tenant_id=transaction.tenant_id,
                    user_id=transaction.user_id,
                    document_id=transaction.document_id,
                    customer_id=transaction.party_id,
                    invoice_number=transaction.number,
                    invoice_date=transaction.txn_date,
                    due_date=transaction.due_date,
                    currency=transaction.currency,
                    subtotal=transaction.subtotal,
                    total_amount=transaction.total_amount,
                    balance_due=transaction.total_amount,
                    discount_total=transaction.discount_total,
                    notes=transaction.notes,
                    lines=[
                        InvoiceLineRow(
                            position=position,
                            description=line.description,
                            quantity=line.quantity,
                            unit_price=line.unit_price,
                            total_amount=line.amount,
                        )
                        for position, line in enumerate(transaction.lines)
                    ],
                )
                session.add(row)
                session.commit()
                return self._invoice(row)

            if transaction.entity_type == EntityType.RECEIPT:
                row = PurchaseRow(
                    tenant_id=transaction.tenant_id,
                    user_id=transaction.user_id,
                    document_id=transaction.document_id,
                    vendor_id=transaction.party_id,
                    txn_date=transaction.txn_date,
                    currency=transaction.currency,
                    total_amount=transaction.total_amount,
                    payment_type=transaction.payment_type,
                    account_ref=transaction.account_ref,
                    lines=[
                        PurchaseLineRow(
                            position=position,
                            description=line.description,
                            amount=line.amount,
                            account_ref=line.account_ref,
                        )
                        for position, line in enumerate(transaction.lines)
                    ],
                )
                session.add(row)
                session.commit()
                return self._purchase(row)

            raise ValueError(f"Not a transaction type: {transaction.entity_type.value}")

    # Mappings

    def find_mapping(
        self, tenant_id: int, entity_type: EntityType, local_id: int
    ) -> EntityMapping | None:
        with self.Session() as session:
            row = self._mapping_row(session, tenant_id, entity_type, local_id)
            return self._mapping(row) if row else None

    def create_mapping(self, mapping: EntityMapping) -> EntityMapping:
        with self.Session() as session:
            row = EntityMappingRow(
                tenant_id=mapping.tenant_id,
                entity_type=mapping.entity_type.value,
                local_id=mapping.local_id,
                external_id=mapping.external_id,
                integration_id=mapping.integration_id,
                user_id=mapping.user_id,
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                row = self._mapping_row(
                    session, mapping.tenant_id, mapping.entity_type, mapping.local_id
                )
                logger.warning(
                    f"{mapping.entity_type.value} {mapping.local_id} was already mapped "
                    f"to {row.external_id}"
                )
            return self._mapping(row)

    def _mapping_row(
        self, session: Session, tenant_id: int, entity_type: EntityType, local_id: int
    ) -> EntityMappingRow | None:
        return session.scalars(
            select(EntityMappingRow).where(
                EntityMappingRow.tenant_id == tenant_id,
                EntityMappingRow.entity_type == entity_type.value,
                EntityMappingRow.local_id == local_id,
            )
        ).first()

    # Credentials

    def add_credential(
        self,
        tenant_id: int,
        realm_id: str,
        access_token: str,
        refresh_token: str,
        expires_at: datetime | None = None,
    ) -> IntegrationCredential:
        """Store a new connected credential, disconnecting earlier ones."""
        with self.Session() as session:
            for previous in session.scalars(
                select(IntegrationRow).where(
                    IntegrationRow.tenant_id == tenant_id, IntegrationRow.status == CONNECTED
                )
            ):
                previous.status = "Disconnected"

            row = IntegrationRow(
                tenant_id=tenant_id,
                status=CONNECTED,
                realm_id=realm_id,
                access_token=access_token,
                refresh_token=refresh_token,
                expires_at=expires_at,
            )
            session.add(row)
            session.commit()
            return self._credential(row)

    def get_active_credential(self, tenant_id: int) -> IntegrationCredential | None:
        with self.Session() as session:
            row = session.scalars(
                select(IntegrationRow)
                .where(IntegrationRow.tenant_id == tenant_id, IntegrationRow.status == CONNECTED)
                .order_by(IntegrationRow.id.desc())
            ).first()
            return self._credential(row) if row else None

    def save_credential(self, credential: IntegrationCredential) -> None:
        with self.Session() as session:
            row = session.get(IntegrationRow, credential.id)
            if row is None:
                raise LookupError(f"Integration not found: {credential.id}")
            row.access_token = credential.access_token
            row.refresh_token = credential.refresh_token
            row.expires_at = credential.expires_at
            session.commit()

    # Row conversion

    def _document(self, row: DocumentRow) -> Document:
        return Document(
            id=row.id,
            tenant_id=row.tenant_id,
            user_id=row.user_id,
            kind=DocumentKind(row.kind),
            file_path=row.file_path,
            status=DocumentStatus(row.status),
            processed_data=row.processed_data,
            processed_image_file_paths=list(row.processed_image_file_paths or []),
            error_message=row.error_message,
        )

    def _customer(self, row: CustomerRow) -> LocalEntity:
        return LocalEntity(
            id=row.id,
            tenant_id=row.tenant_id,
            entity_type=EntityType.CUSTOMER,
            name=row.name,
            email=row.email or None,
            phone=row.phone or None,
            billing_address=_address(row.billing_address),
            shipping_address=_address(row.shipping_address),
        )

    def _vendor(self, row: VendorRow) -> LocalEntity:
        return LocalEntity(
            id=row.id,
            tenant_id=row.tenant_id,
            entity_type=EntityType.VENDOR,
            name=row.name,
            email=row.email or None,
            phone=row.phone or None,
            billing_address=_address(row.address),
        )

    def _invoice(self, row: InvoiceRow) -> LocalTransaction:
        return LocalTransaction(
            entity_type=EntityType.INVOICE,
            id=row.id,
            tenant_id=row.tenant_id,
            user_id=row.user_id,
            document_id=row.document_id,
            party_id=row.customer_id,
            number=row.invoice_number,
            txn_date=row.invoice_date,
            due_date=row.due_date,
            currency=row.currency,
            subtotal=row.subtotal,
            total_amount=row.total_amount,
            discount_total=row.discount_total,
            notes=row.notes,
            lines=[
                LineItem(
                    description=line.description,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    amount=line.total_amount,
                )
                for line in row.lines
            ],
        )

    def _purchase(self, row: PurchaseRow) -> LocalTransaction:
        return LocalTransaction(
            entity_type=EntityType.RECEIPT,
            id=row.id,
            tenant_id=row.tenant_id,
            user_id=row.user_id,
            document_id=row.document_id,
            party_id=row.vendor_id,
            txn_date=row.txn_date,
            currency=row.currency,
            total_amount=row.total_amount,
            payment_type=row.payment_type,
            account_ref=row.account_ref,
            lines=[
                LineItem(
                    description=line.description,
                    amount=line.amount,
                    account_ref=line.account_ref,
                )
                for line in row.lines
            ],
        )

    def _mapping(self, row: EntityMappingRow) -> EntityMapping:
        return EntityMapping(
            id=row.id,
            tenant_id=row.tenant_id,
            entity_type=EntityType(row.entity_type),
            local_id=row.local_id,
            external_id=row.external_id,
            integration_id=row.integration_id,
            user_id=row.user_id,
        )

    def _credential(self, row: IntegrationRow) -> IntegrationCredential:
        return IntegrationCredential(
            id=row.id,
            tenant_id=row.tenant_id,
            realm_id=row.realm_id,
            access_token=row.access_token,
            refresh_token=row.refresh_token,
            expires_at=row.expires_at,
            status=row.status,
        )
