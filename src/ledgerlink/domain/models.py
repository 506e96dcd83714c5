"""Domain models."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, ClassVar


class DocumentKind(str, Enum):
    """Extraction target schema for an ingested document."""

    INVOICE = "invoice"
    RECEIPT = "receipt"


class DocumentStatus(str, Enum):
    """Lifecycle status of a Document."""

    NEW = "New"
    EXTRACTION = "Extraction"
    READY = "Ready"
    MISSING_DATA = "MissingData"
    PROCESSED = "Processed"
    VALIDATION_ERROR = "ValidationError"
    ERROR = "Error"


class EntityType(str, Enum):
    """Entity types that can be mapped to the accounting platform."""

    CUSTOMER = "Customer"
    VENDOR = "Vendor"
    INVOICE = "Invoice"
    RECEIPT = "Receipt"


@dataclass
class Address:
    line1: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    country: str | None = None

    @property
    def is_empty(self) -> bool:
        return not any((self.line1, self.city, self.state, self.zip_code, self.country))


@dataclass
class Document:
    """One ingested file and its pipeline state."""

    id: int
    tenant_id: int
    user_id: int | None
    kind: DocumentKind
    file_path: str  # Storage location URL
    status: DocumentStatus = DocumentStatus.NEW
    processed_data: dict[str, Any] | None = None
    processed_image_file_paths: list[str] = field(default_factory=list)
    error_message: str | None = None


@dataclass
class CustomerDetails:
    company_name: str
    email: str | None = None
    phone: str | None = None
    billing_address: Address | None = None
    shipping_address: Address | None = None


@dataclass
class VendorDetails:
    name: str
    email: str | None = None
    phone: str | None = None
    address: Address | None = None


@dataclass
class InvoiceItem:
    description: str = ""
    quantity: float | None = None
    unit_price: float | None = None
    total_amount: float | None = None


@dataclass
class PurchaseLine:
    amount: float | None = None
    description: str = ""


@dataclass
class InvoiceExtraction:
    """Normalized invoice extraction."""

    kind: ClassVar[DocumentKind] = DocumentKind.INVOICE

    customer: CustomerDetails
    items: list[InvoiceItem]
    invoice_number: str | None = None
    invoice_date: date | None = None
    due_date: date | None = None
    currency: str | None = None
    payment_terms: str | None = None
    subtotal: float | None = None
    total_amount: float | None = None
    discount_total: float | None = None
    notes: str | None = None
    billing_address: Address | None = None
    shipping_address: Address | None = None


@dataclass
class ReceiptExtraction:
    """Normalized receipt (purchase) extraction."""

    kind: ClassVar[DocumentKind] = DocumentKind.RECEIPT

    vendor: VendorDetails
    lines: list[PurchaseLine]
    transaction_date: date | None = None
    total_amount: float | None = None
    payment_type: str | None = None
    currency: str | None = None


ExtractedRecord = InvoiceExtraction | ReceiptExtraction


@dataclass
class LocalEntity:
    """Tenant-scoped Customer or Vendor, unique by (tenant, name)."""

    id: int
    tenant_id: int
    entity_type: EntityType
    name: str
    email: str | None = None
    phone: str | None = None
    billing_address: Address | None = None
    shipping_address: Address | None = None


@dataclass
class LineItem:
    description: str = ""
    quantity: float | None = None
    unit_price: float | None = None
    amount: float = 0.0
    account_ref: str | None = None


@dataclass
class LocalTransaction:
    """Local Invoice or Purchase with its ordered line items."""

    entity_type: EntityType
    tenant_id: int
    document_id: int
    party_id: int  # Customer id for invoices, Vendor id for receipts
    user_id: int | None = None
    id: int | None = None
    number: str | None = None
    txn_date: date | None = None
    due_date: date | None = None
    currency: str | None = None
    subtotal: float | None = None
    total_amount: float | None = None
    discount_total: float | None = None
    payment_type: str | None = None
    account_ref: str | None = None
    notes: str | None = None
    lines: list[LineItem] = field(default_factory=list)


@dataclass
class IntegrationCredential:
    """Per-tenant connection to the accounting platform."""

    id: int
    tenant_id: int
    realm_id: str
    access_token: str
    refresh_token: str
    expires_at: datetime | None = None
    status: str = "Connected"


@dataclass
class EntityMapping:
    """Local id to external id correspondence, unique per (tenant, type, local id)."""

    tenant_id: int
    entity_type: EntityType
    local_id: int
    external_id: str
    integration_id: int | None = None
    user_id: int | None = None
    id: int | None = None


@dataclass
class MappingContext:
    """Integration and acting user recorded alongside new mappings."""

    integration_id: int
    user_id: int | None = None


@dataclass
class SyncResult:
    """Result of a ledger sync run."""

    document_id: int
    status: DocumentStatus
    local_id: int | None = None
    external_id: str | None = None
    warnings: list[str] = field(default_factory=list)
    already_synced: bool = False

    @property
    def success(self) -> bool:
        return self.status in (DocumentStatus.PROCESSED, DocumentStatus.READY)
