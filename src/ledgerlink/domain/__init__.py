"""Domain layer - core business logic."""

from .models import (
    Document,
    DocumentKind,
    DocumentStatus,
    EntityMapping,
    EntityType,
    ExtractedRecord,
    InvoiceExtraction,
    ReceiptExtraction,
    SyncResult,
)

__all__ = [
    "Document",
    "DocumentKind",
    "DocumentStatus",
    "EntityMapping",
    "EntityType",
    "ExtractedRecord",
    "InvoiceExtraction",
    "ReceiptExtraction",
    "SyncResult",
]
