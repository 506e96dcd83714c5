"""Extraction normalizer - coerce raw extraction JSON into typed records.

Only the shape is coerced here; business rules live in the transformer and
validator. Field names follow the extraction schemas in
``adapters/llm/schemas.py``.
"""

import logging
import re
from datetime import date
from typing import Any

from .errors import SchemaMismatch
from .models import (
    Address,
    CustomerDetails,
    DocumentKind,
    ExtractedRecord,
    InvoiceExtraction,
    InvoiceItem,
    PurchaseLine,
    ReceiptExtraction,
    VendorDetails,
)

logger = logging.getLogger(__name__)

UNKNOWN_CUSTOMER = "Unknown Customer"
UNKNOWN_VENDOR = "Unknown Vendor"

_NUMBER_NOISE = re.compile(r"[^\d.,\-]")
# "1,234" and "1,234.50"
_THOUSANDS_COMMA = re.compile(r"-?\d{1,3}(,\d{3})+(\.\d+)?")
# "12,50" and "1.234,50"
_DECIMAL_COMMA = re.compile(r"-?(\d+|\d{1,3}(\.\d{3})+),\d{1,2}")


def normalize(raw: Any, kind: DocumentKind) -> ExtractedRecord:
    """Normalize a raw extraction result for the requested schema."""
    if not isinstance(raw, dict):
        raise SchemaMismatch(f"Extraction result is not an object: {type(raw).__name__}")

    if kind == DocumentKind.INVOICE:
        return normalize_invoice(raw)
    if kind == DocumentKind.RECEIPT:
        return normalize_receipt(raw)
    raise ValueError(f"Unknown document kind: {kind}")


def normalize_invoice(raw: dict[str, Any]) -> InvoiceExtraction:
    items = _require_list(raw, "Items")
    customer_raw = _as_dict(raw.get("CustomerDetails"))

    billing = _to_address(customer_raw.get("BillingAddress"))
    shipping = _to_address(customer_raw.get("ShippingAddress"))
    customer = CustomerDetails(
        company_name=_to_text(customer_raw.get("CompanyName")) or UNKNOWN_CUSTOMER,
        email=_to_text(customer_raw.get("Email")),
        phone=_to_text(customer_raw.get("Phone")),
        billing_address=billing,
        shipping_address=shipping,
    )

    subtotal = _to_number(raw.get("Subtotal"), "Subtotal")
    total = _to_number(raw.get("TotalAmount"), "TotalAmount")
    if total is None:
        total = subtotal

    return InvoiceExtraction(
        customer=customer,
        items=[_to_invoice_item(item) for item in items if isinstance(item, dict)],
        invoice_number=_to_text(raw.get("InvoiceNumber")),
        invoice_date=_to_date(raw.get("Date")),
        due_date=_to_date(raw.get("DueDate")),
        currency=_to_text(raw.get("Currency")),
        payment_terms=_to_text(raw.get("PaymentTerms")),
        subtotal=subtotal,
        total_amount=total,
        discount_total=_to_number(raw.get("DiscountTotal"), "DiscountTotal"),
        notes=_to_text(raw.get("Notes")),
        billing_address=_to_address(raw.get("BillingAddress")) or billing,
        shipping_address=_to_address(raw.get("ShippingAddress")) or shipping,
    )


def normalize_receipt(raw: dict[str, Any]) -> ReceiptExtraction:
    lines = [
        PurchaseLine(
            amount=_to_number(line.get("Amount"), "PurchaseLines.Amount"),
            description=_to_text(line.get("Description")) or "",
        )
        for line in _require_list(raw, "PurchaseLines")
        if isinstance(line, dict)
    ]

    vendor_raw = _as_dict(raw.get("VendorDetails"))
    vendor = VendorDetails(
        name=_to_text(vendor_raw.get("Name")) or UNKNOWN_VENDOR,
        email=_to_text(vendor_raw.get("Email")),
        phone=_to_text(vendor_raw.get("PhoneNumber")),
        address=_to_address(vendor_raw.get("Address")),
    )

    total = _to_number(raw.get("TotalAmount"), "TotalAmount")
    if total is None and lines:
        total = round(sum(line.amount or 0.0 for line in lines), 2)

    return ReceiptExtraction(
        vendor=vendor,
        lines=lines,
        transaction_date=_to_date(raw.get("TransactionDate")),
        total_amount=total,
        payment_type=_to_text(raw.get("PaymentType")),
        currency=_to_text(raw.get("Currency")),
    )


def _require_list(raw: dict[str, Any], key: str) -> list[Any]:
    value = raw.get(key)
    if not isinstance(value, list):
        raise SchemaMismatch(f"Extraction result is missing the '{key}' array")
    return value


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _to_number(value: Any, field_name: str) -> float | None:
    """Coerce ints, floats and strings like "$1,234.50" or "12,50" to float.

    Commas are thousands separators only in full groups of three; a comma
    followed by one or two digits is a decimal separator. Anything else with
    a comma is ambiguous and rejected.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        cleaned = _NUMBER_NOISE.sub("", value)
        if not cleaned:
            return None
        if "," in cleaned:
            if _THOUSANDS_COMMA.fullmatch(cleaned):
                cleaned = cleaned.replace(",", "")
            elif _DECIMAL_COMMA.fullmatch(cleaned):
                cleaned = cleaned.replace(".", "").replace(",", ".")
            else:
                cleaned = ""
        try:
            return float(cleaned)
        except ValueError:
            pass
    logger.warning(f"Invalid number for {field_name}: {value!r}")
    return None


def _to_date(value: Any) -> date | None:
    if not value or not isinstance(value, str):
        return None
    if value.lower() in ("null", "unknown", "none"):
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        logger.warning(f"Invalid date format: {value}")
        return None


def _to_address(value: Any) -> Address | None:
    if not isinstance(value, dict):
        return None
    address = Address(
        line1=_to_text(value.get("Line1")),
        city=_to_text(value.get("City")),
        state=_to_text(value.get("State")),
        zip_code=_to_text(value.get("ZipCode")),
        country=_to_text(value.get("Country")),
    )
    return None if address.is_empty else address


def _to_invoice_item(item: dict[str, Any]) -> InvoiceItem:
    return InvoiceItem(
        description=_to_text(item.get("Description")) or "",
        quantity=_to_number(item.get("Quantity"), "Items.Quantity"),
        unit_price=_to_number(item.get("UnitPrice"), "Items.UnitPrice"),
        total_amount=_to_number(item.get("TotalAmount"), "Items.TotalAmount"),
    )
