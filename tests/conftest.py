"""Shared test fixtures."""

from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import MagicMock

import pytest

from ledgerlink.adapters.persistence import SqlAlchemyRepository
from ledgerlink.domain.models import IntegrationCredential
from ledgerlink.ports.accounting import AccountingClientFactory, AccountingPort
from ledgerlink.ports.extraction import ExtractionPort
from ledgerlink.ports.rasterizer import RasterizerPort
from ledgerlink.ports.storage import StoragePort


@pytest.fixture
def raw_invoice() -> dict[str, Any]:
    """Extraction output for a two-line invoice."""
    return {
        "InvoiceNumber": "INV-1001",
        "Date": "2024-03-15",
        "DueDate": "2024-04-14",
        "Currency": "USD",
        "PaymentTerms": "Net 30",
        "CustomerDetails": {
            "CompanyName": "Acme Corp",
            "Email": "billing@acme.example",
            "Phone": "555-0100",
            "BillingAddress": {
                "Line1": "1 Main St",
                "City": "Springfield",
                "State": "IL",
                "ZipCode": "62701",
                "Country": "US",
            },
        },
        "Items": [
            {"Description": "Widgets", "Quantity": 2, "UnitPrice": 50, "TotalAmount": 100},
            {"Description": "Setup fee", "TotalAmount": 75},
        ],
        "Subtotal": 175,
        "TotalAmount": 175,
        "DiscountTotal": 0,
        "Notes": "Thank you",
    }


@pytest.fixture
def raw_receipt() -> dict[str, Any]:
    """Extraction output for a two-line receipt."""
    return {
        "VendorDetails": {
            "Name": "Corner Hardware",
            "PhoneNumber": "555-0199",
            "Address": {"Line1": "9 Elm St", "City": "Springfield"},
        },
        "TransactionDate": "2024-03-20",
        "PaymentType": "Credit Card",
        "Currency": "USD",
        "PurchaseLines": [
            {"Description": "Screws", "Amount": 12.5},
            {"Description": "Paint", "Amount": 30},
        ],
        "TotalAmount": 42.5,
    }


@pytest.fixture
def repository() -> SqlAlchemyRepository:
    """Repository backed by an in-memory SQLite database."""
    repo = SqlAlchemyRepository("sqlite://")
    repo.init_schema()
    return repo


@pytest.fixture
def credential() -> IntegrationCredential:
    return IntegrationCredential(
        id=1,
        tenant_id=7,
        realm_id="9130350000000001",
        access_token="access-1",
        refresh_token="refresh-1",
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
    )


@pytest.fixture
def mock_storage() -> MagicMock:
    """Mock storage port."""
    mock = MagicMock(spec=StoragePort)
    mock.download.return_value = b"%PDF-1.4 test content"
    mock.upload.side_effect = (
        lambda data, key, mime_type: f"https://s3.example.com/ledgerlink/{key}"
    )
    return mock


@pytest.fixture
def mock_rasterizer() -> MagicMock:
    """Mock rasterizer port."""
    mock = MagicMock(spec=RasterizerPort)
    mock.to_images.return_value = [b"page-1", b"page-2"]
    return mock


@pytest.fixture
def mock_extractor() -> MagicMock:
    """Mock extraction port."""
    return MagicMock(spec=ExtractionPort)


@pytest.fixture
def mock_accounting() -> MagicMock:
    """Mock accounting client with nothing matching by name."""
    mock = MagicMock(spec=AccountingPort)
    mock.find_customer_by_name.return_value = None
    mock.find_vendor_by_name.return_value = None
    mock.create_customer.return_value = {"Id": "58"}
    mock.create_vendor.return_value = {"Id": "61"}
    mock.create_invoice.return_value = {"Id": "130"}
    mock.create_purchase.return_value = {"Id": "245"}
    return mock


@pytest.fixture
def mock_clients(mock_accounting: MagicMock) -> MagicMock:
    """Mock client factory handing out the mock accounting client."""
    mock = MagicMock(spec=AccountingClientFactory)
    mock.client_for.return_value = mock_accounting
    return mock
