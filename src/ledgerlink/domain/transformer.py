"""Transaction transformer - build accounting platform payloads.

Derivation rules for invoice lines:
    amount     = TotalAmount, else Quantity x UnitPrice
    quantity   = Quantity, else 1
    unit price = UnitPrice, else TotalAmount, else 0

Missing values are treated the way the extraction service reports them:
zero counts as absent.
"""

import copy
from dataclasses import dataclass
from typing import Any

from .models import (
    Address,
    DocumentKind,
    ExtractedRecord,
    InvoiceExtraction,
    InvoiceItem,
    ReceiptExtraction,
)

DEFAULT_CURRENCY = "USD"
DOC_NUMBER_MAX_LENGTH = 20
PAYMENT_TYPES = ("Cash", "Check", "CreditCard")

SALES_LINE = "SalesItemLineDetail"
DISCOUNT_LINE = "DiscountLineDetail"
EXPENSE_LINE = "AccountBasedExpenseLineDetail"


@dataclass(frozen=True)
class AccountRefs:
    """Tenant-level account references resolved at transform time."""

    payment_account: str = "93"
    expense_account: str = "92"
    tax_code: str = "NON"
    payment_type: str = "Cash"


def resolve_line(item: InvoiceItem) -> tuple[float, float, float]:
    """Return (quantity, unit_price, amount) for an invoice item."""
    quantity = item.quantity or 1
    unit_price = item.unit_price or item.total_amount or 0
    amount = item.total_amount or quantity * unit_price
    return quantity, unit_price, round(amount, 2)


def to_external_payload(
    record: ExtractedRecord,
    accounts: AccountRefs | None = None,
    party_ref: str | None = None,
) -> dict[str, Any]:
    """Transform a normalized record into the platform payload."""
    accounts = accounts or AccountRefs()

    if isinstance(record, InvoiceExtraction):
        payload = invoice_payload(record, accounts)
    elif isinstance(record, ReceiptExtraction):
        payload = purchase_payload(record, accounts)
    else:
        raise TypeError(f"Unsupported record: {type(record).__name__}")

    if party_ref is not None:
        payload = with_party_reference(payload, record.kind, party_ref)
    return payload


def with_party_reference(
    payload: dict[str, Any], kind: DocumentKind, external_id: str
) -> dict[str, Any]:
    """Return a copy of payload carrying the customer or vendor reference."""
    payload = copy.deepcopy(payload)
    if kind == DocumentKind.INVOICE:
        payload["CustomerRef"] = {"value": external_id}
    else:
        payload["EntityRef"] = {"value": external_id, "type": "Vendor"}
    return payload


def invoice_payload(record: InvoiceExtraction, accounts: AccountRefs) -> dict[str, Any]:
    lines = []
    for item in record.items:
        quantity, unit_price, amount = resolve_line(item)
        lines.append(
            {
                "Description": item.description,
                "DetailType": SALES_LINE,
                SALES_LINE: {
                    "TaxCodeRef": {"value": accounts.tax_code},
                    "Qty": quantity,
                    "UnitPrice": unit_price,
                },
                "Amount": amount,
            }
        )

    # Discount line is always present, even when zero
    lines.append(
        {
            "DetailType": DISCOUNT_LINE,
            "Amount": record.discount_total or 0,
            DISCOUNT_LINE: {"PercentBased": False},
        }
    )

    payload: dict[str, Any] = {
        "Line": lines,
        "TxnTaxDetail": {"TotalTax": 0},
        "CurrencyRef": {"value": record.currency or DEFAULT_CURRENCY},
        "DocNumber": (record.invoice_number or "")[-DOC_NUMBER_MAX_LENGTH:],
        "BillAddr": address_payload(record.billing_address),
        "ShipAddr": address_payload(record.shipping_address),
        "SalesTermRef": {"value": record.payment_terms or ""},
        "CustomerMemo": {"value": record.notes or ""},
    }
    if record.invoice_date:
        payload["TxnDate"] = record.invoice_date.isoformat()
    if record.due_date:
        payload["DueDate"] = record.due_date.isoformat()
    return payload


def purchase_payload(record: ReceiptExtraction, accounts: AccountRefs) -> dict[str, Any]:
    lines = [
        {
            "DetailType": EXPENSE_LINE,
            "Amount": line.amount or 0,
            "Description": line.description,
            EXPENSE_LINE: {
                "AccountRef": {"value": accounts.expense_account},
                "BillableStatus": "NotBillable",
                "TaxCodeRef": {"value": accounts.tax_code},
            },
        }
        for line in record.lines
    ]

    total = record.total_amount
    if total is None:
        total = round(sum(line["Amount"] for line in lines), 2)

    payload: dict[str, Any] = {
        "PaymentType": payment_type(record.payment_type, accounts),
        "AccountRef": {"value": accounts.payment_account},
        "TotalAmt": total,
        "CurrencyRef": {"value": record.currency or DEFAULT_CURRENCY},
        "Line": lines,
    }
    if record.transaction_date:
        payload["TxnDate"] = record.transaction_date.isoformat()
    return payload


def payment_type(extracted: str | None, accounts: AccountRefs) -> str:
    """Match an extracted payment type to the platform's enum."""
    if extracted:
        key = extracted.replace(" ", "").replace("_", "").lower()
        for candidate in PAYMENT_TYPES:
            if candidate.lower() == key:
                return candidate
    return accounts.payment_type


def address_payload(address: Address | None) -> dict[str, str]:
    if address is None:
        return {}
    fields = {
        "Line1": address.line1,
        "City": address.city,
        "CountrySubDivisionCode": address.state,
        "PostalCode": address.zip_code,
        "Country": address.country,
    }
    return {key: value for key, value in fields.items() if value}
