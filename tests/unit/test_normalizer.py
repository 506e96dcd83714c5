"""Unit tests for the extraction normalizer."""

from datetime import date

import pytest

from ledgerlink.domain.errors import SchemaMismatch
from ledgerlink.domain.models import DocumentKind, InvoiceExtraction, ReceiptExtraction
from ledgerlink.domain.normalizer import (
    UNKNOWN_CUSTOMER,
    UNKNOWN_VENDOR,
    _to_date,
    _to_number,
    normalize,
)


class TestNormalizeInvoice:
    def test_full_invoice(self, raw_invoice: dict) -> None:
        record = normalize(raw_invoice, DocumentKind.INVOICE)

        assert isinstance(record, InvoiceExtraction)
        assert record.invoice_number == "INV-1001"
        assert record.invoice_date == date(2024, 3, 15)
        assert record.due_date == date(2024, 4, 14)
        assert record.customer.company_name == "Acme Corp"
        assert record.customer.email == "billing@acme.example"
        assert record.total_amount == 175.0
        assert [item.description for item in record.items] == ["Widgets", "Setup fee"]
        assert record.items[1].quantity is None

    def test_billing_address_falls_back_to_customer(self, raw_invoice: dict) -> None:
        record = normalize(raw_invoice, DocumentKind.INVOICE)
        assert record.billing_address is not None
        assert record.billing_address.city == "Springfield"
        assert record.billing_address.state == "IL"
        assert record.shipping_address is None

    def test_missing_company_name(self, raw_invoice: dict) -> None:
        del raw_invoice["CustomerDetails"]
        record = normalize(raw_invoice, DocumentKind.INVOICE)
        assert record.customer.company_name == UNKNOWN_CUSTOMER

    def test_total_falls_back_to_subtotal(self, raw_invoice: dict) -> None:
        del raw_invoice["TotalAmount"]
        raw_invoice["Subtotal"] = "160.00"
        record = normalize(raw_invoice, DocumentKind.INVOICE)
        assert record.total_amount == 160.0

    def test_missing_items_array(self, raw_invoice: dict) -> None:
        del raw_invoice["Items"]
        with pytest.raises(SchemaMismatch, match="Items"):
            normalize(raw_invoice, DocumentKind.INVOICE)

    def test_items_not_a_list(self, raw_invoice: dict) -> None:
        raw_invoice["Items"] = {"Description": "Widgets"}
        with pytest.raises(SchemaMismatch):
            normalize(raw_invoice, DocumentKind.INVOICE)

    def test_empty_items_allowed(self, raw_invoice: dict) -> None:
        raw_invoice["Items"] = []
        record = normalize(raw_invoice, DocumentKind.INVOICE)
        assert record.items == []


class TestNormalizeReceipt:
    def test_full_receipt(self, raw_receipt: dict) -> None:
        record = normalize(raw_receipt, DocumentKind.RECEIPT)

        assert isinstance(record, ReceiptExtraction)
        assert record.vendor.name == "Corner Hardware"
        assert record.vendor.phone == "555-0199"
        assert record.vendor.address is not None
        assert record.vendor.address.line1 == "9 Elm St"
        assert record.transaction_date == date(2024, 3, 20)
        assert [line.amount for line in record.lines] == [12.5, 30.0]
        assert record.total_amount == 42.5

    def test_missing_vendor_name(self, raw_receipt: dict) -> None:
        raw_receipt["VendorDetails"] = {}
        record = normalize(raw_receipt, DocumentKind.RECEIPT)
        assert record.vendor.name == UNKNOWN_VENDOR

    def test_total_falls_back_to_line_sum(self, raw_receipt: dict) -> None:
        del raw_receipt["TotalAmount"]
        record = normalize(raw_receipt, DocumentKind.RECEIPT)
        assert record.total_amount == 42.5

    def test_decimal_comma_amounts(self, raw_receipt: dict) -> None:
        raw_receipt["PurchaseLines"] = [{"Amount": "12,50", "Description": "Nails"}]
        raw_receipt["TotalAmount"] = "12,50"
        record = normalize(raw_receipt, DocumentKind.RECEIPT)
        assert record.lines[0].amount == 12.5
        assert record.total_amount == 12.5

    def test_missing_purchase_lines(self, raw_receipt: dict) -> None:
        del raw_receipt["PurchaseLines"]
        with pytest.raises(SchemaMismatch, match="PurchaseLines"):
            normalize(raw_receipt, DocumentKind.RECEIPT)


def test_non_object_rejected() -> None:
    with pytest.raises(SchemaMismatch):
        normalize(["not", "an", "object"], DocumentKind.INVOICE)


class TestToNumber:
    def test_numbers_pass_through(self) -> None:
        assert _to_number(3, "x") == 3.0
        assert _to_number(2.5, "x") == 2.5

    def test_currency_string(self) -> None:
        assert _to_number("$1,234.50", "x") == 1234.5

    def test_decimal_comma(self) -> None:
        assert _to_number("12,50", "x") == 12.5
        assert _to_number("1.234,50", "x") == 1234.5
        assert _to_number("EUR 1234,5", "x") == 1234.5

    def test_thousands_without_decimals(self) -> None:
        assert _to_number("1,234", "x") == 1234.0
        assert _to_number("1,234,567.89", "x") == 1234567.89

    def test_ambiguous_comma_rejected(self, caplog: pytest.LogCaptureFixture) -> None:
        assert _to_number("1,2345", "Amount") is None
        assert _to_number("12,50,1", "Amount") is None
        assert "Invalid number for Amount" in caplog.text

    def test_negative_string(self) -> None:
        assert _to_number("-12.00", "x") == -12.0

    def test_none_and_bool(self) -> None:
        assert _to_number(None, "x") is None
        assert _to_number(True, "x") is None

    def test_garbage_logs_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        assert _to_number("1.2.3", "Amount") is None
        assert "Invalid number for Amount" in caplog.text


class TestToDate:
    def test_iso_date(self) -> None:
        assert _to_date("2024-03-15") == date(2024, 3, 15)

    def test_datetime_string_truncated(self) -> None:
        assert _to_date("2024-03-15T10:30:00Z") == date(2024, 3, 15)

    def test_placeholders(self) -> None:
        assert _to_date("null") is None
        assert _to_date("Unknown") is None
        assert _to_date("") is None
        assert _to_date(None) is None

    def test_invalid_date(self) -> None:
        assert _to_date("15/03/2024") is None
