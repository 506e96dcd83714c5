"""Unit tests for the QuickBooks Online adapter."""

import threading
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs

import httpx
import pytest

from ledgerlink.adapters.quickbooks import QuickBooksClient, QuickBooksClientFactory
from ledgerlink.adapters.quickbooks.client import quote
from ledgerlink.adapters.quickbooks.oauth import is_expired
from ledgerlink.config import QuickBooksConfig
from ledgerlink.domain.errors import ExternalTransportError, ExternalValidationFault
from ledgerlink.domain.models import IntegrationCredential

TOKEN_URL = "https://oauth.example.com/tokens"


class FakeQuickBooks:
    """Records requests and answers like the QuickBooks API."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.token_calls = 0
        self.responses: dict[str, httpx.Response] = {}
        self._lock = threading.Lock()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
        if str(request.url) == TOKEN_URL:
            with self._lock:
                self.token_calls += 1
            return httpx.Response(
                200,
                json={"access_token": "fresh", "refresh_token": "refresh-2", "expires_in": 3600},
            )
        path = request.url.path.rsplit("/", 1)[-1]
        if path in self.responses:
            return self.responses[path]
        return httpx.Response(200, json={"QueryResponse": {}})

    def query(self, index: int = -1) -> str:
        return parse_qs(self.requests[index].url.query.decode())["query"][0]


@pytest.fixture
def config() -> QuickBooksConfig:
    return QuickBooksConfig(client_id="id", client_secret="secret", token_url=TOKEN_URL)


@pytest.fixture
def fake() -> FakeQuickBooks:
    return FakeQuickBooks()


@pytest.fixture
def client(
    credential: IntegrationCredential, config: QuickBooksConfig, fake: FakeQuickBooks
) -> QuickBooksClient:
    return QuickBooksClient(credential, config, transport=httpx.MockTransport(fake))


def test_quote_escapes() -> None:
    assert quote("O'Brien") == "'O\\'Brien'"
    assert quote("a\\b") == "'a\\\\b'"


class TestRequests:
    def test_find_by_name(self, client: QuickBooksClient, fake: FakeQuickBooks) -> None:
        fake.responses["query"] = httpx.Response(
            200, json={"QueryResponse": {"Customer": [{"Id": "58", "DisplayName": "O'Brien"}]}}
        )

        found = client.find_customer_by_name("O'Brien")

        assert found == {"Id": "58", "DisplayName": "O'Brien"}
        request = fake.requests[-1]
        assert request.url.path == "/v3/company/9130350000000001/query"
        assert request.url.params["minorversion"] == "70"
        assert request.headers["Authorization"] == "Bearer access-1"
        assert fake.query() == "SELECT * FROM Customer WHERE DisplayName = 'O\\'Brien'"

    def test_find_by_name_no_match(self, client: QuickBooksClient) -> None:
        assert client.find_vendor_by_name("Nobody") is None

    def test_create_invoice(self, client: QuickBooksClient, fake: FakeQuickBooks) -> None:
        fake.responses["invoice"] = httpx.Response(200, json={"Invoice": {"Id": "130"}})

        created = client.create_invoice({"Line": []})

        assert created == {"Id": "130"}
        assert fake.requests[-1].method == "POST"
        assert fake.requests[-1].url.path.endswith("/invoice")

    def test_create_purchase(self, client: QuickBooksClient, fake: FakeQuickBooks) -> None:
        fake.responses["purchase"] = httpx.Response(200, json={"Purchase": {"Id": "245"}})
        assert client.create_purchase({"Line": []}) == {"Id": "245"}

    def test_list_entities_pages(self, client: QuickBooksClient, fake: FakeQuickBooks) -> None:
        fake.responses["query"] = httpx.Response(
            200, json={"QueryResponse": {"Vendor": [{"Id": "1"}, {"Id": "2"}]}}
        )

        vendors = client.list_entities("Vendor", page=2, page_size=10)

        assert [v["Id"] for v in vendors] == ["1", "2"]
        assert fake.query() == "SELECT * FROM Vendor STARTPOSITION 11 MAXRESULTS 10"

    def test_list_entities_rejects_bad_page(self, client: QuickBooksClient) -> None:
        with pytest.raises(ValueError):
            client.list_entities("Vendor", page=0)

    def test_count(self, client: QuickBooksClient, fake: FakeQuickBooks) -> None:
        fake.responses["query"] = httpx.Response(200, json={"QueryResponse": {"totalCount": 42}})
        assert client.count("Invoice") == 42
        assert fake.query() == "SELECT COUNT(*) FROM Invoice"


class TestFaults:
    def test_validation_fault(self, client: QuickBooksClient, fake: FakeQuickBooks) -> None:
        fake.responses["invoice"] = httpx.Response(
            400,
            json={
                "Fault": {
                    "Error": [
                        {
                            "Message": "A business validation error has occurred",
                            "Detail": "Business Validation Error: Select a customer",
                        }
                    ],
                    "type": "ValidationFault",
                }
            },
        )

        with pytest.raises(ExternalValidationFault) as exc_info:
            client.create_invoice({"Line": []})

        assert exc_info.value.detail == "Business Validation Error: Select a customer"
        assert str(exc_info.value).startswith("QuickBooks Validation Error: ")

    def test_server_error(self, client: QuickBooksClient, fake: FakeQuickBooks) -> None:
        fake.responses["purchase"] = httpx.Response(503, text="unavailable")

        with pytest.raises(ExternalTransportError) as exc_info:
            client.create_purchase({"Line": []})

        assert exc_info.value.status_code == 503

    @pytest.mark.parametrize("body", [["unexpected"], "unexpected", {"Fault": ["x"]}])
    def test_error_body_not_an_object(
        self, client: QuickBooksClient, fake: FakeQuickBooks, body
    ) -> None:
        fake.responses["purchase"] = httpx.Response(400, json=body)

        with pytest.raises(ExternalTransportError) as exc_info:
            client.create_purchase({"Line": []})

        assert exc_info.value.status_code == 400

    def test_ok_body_not_an_object(self, client: QuickBooksClient, fake: FakeQuickBooks) -> None:
        fake.responses["purchase"] = httpx.Response(200, json=["unexpected"])

        with pytest.raises(ExternalTransportError, match="unexpected body"):
            client.create_purchase({"Line": []})

    def test_fault_in_ok_response(self, client: QuickBooksClient, fake: FakeQuickBooks) -> None:
        fake.responses["query"] = httpx.Response(
            200,
            json={"Fault": {"Error": [{"Message": "Bad query"}], "type": "QueryParserError"}},
        )
        with pytest.raises(ExternalTransportError, match="Bad query"):
            client.count("Invoice")

    def test_missing_entity_in_response(
        self, client: QuickBooksClient, fake: FakeQuickBooks
    ) -> None:
        fake.responses["vendor"] = httpx.Response(200, json={"time": "now"})
        with pytest.raises(ExternalTransportError):
            client.create_vendor({"DisplayName": "Corner Hardware"})


class TestTokenRefresh:
    def test_is_expired(self, credential: IntegrationCredential) -> None:
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert is_expired(replace(credential, expires_at=now + timedelta(hours=1)), now) is False
        assert is_expired(replace(credential, expires_at=now + timedelta(seconds=30)), now) is True
        assert is_expired(replace(credential, expires_at=None), now) is True
        assert is_expired(replace(credential, access_token=""), now) is True

    def test_naive_expiry_is_utc(self, credential: IntegrationCredential) -> None:
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        naive = datetime(2024, 1, 1, 2, 0)
        assert is_expired(replace(credential, expires_at=naive), now) is False

    def test_refreshes_expired_token(
        self, credential: IntegrationCredential, config: QuickBooksConfig, fake: FakeQuickBooks
    ) -> None:
        saved: list[IntegrationCredential] = []
        client = QuickBooksClient(
            replace(credential, expires_at=None),
            config,
            on_refresh=saved.append,
            transport=httpx.MockTransport(fake),
        )

        client.count("Invoice")

        assert fake.token_calls == 1
        assert fake.requests[-1].headers["Authorization"] == "Bearer fresh"
        assert len(saved) == 1
        assert saved[0].refresh_token == "refresh-2"
        assert saved[0].expires_at > datetime.now(timezone.utc)

    def test_refresh_failure(
        self, credential: IntegrationCredential, config: QuickBooksConfig
    ) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(401, text="invalid_grant"))
        client = QuickBooksClient(
            replace(credential, expires_at=None), config, transport=transport
        )

        with pytest.raises(ExternalTransportError, match="Token refresh failed"):
            client.count("Invoice")

    def test_concurrent_callers_refresh_once(
        self, credential: IntegrationCredential, config: QuickBooksConfig, fake: FakeQuickBooks
    ) -> None:
        client = QuickBooksClient(
            replace(credential, expires_at=None), config, transport=httpx.MockTransport(fake)
        )

        threads = [threading.Thread(target=client.count, args=("Invoice",)) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert fake.token_calls == 1


class TestClientFactory:
    def test_one_client_per_tenant(
        self, credential: IntegrationCredential, config: QuickBooksConfig
    ) -> None:
        factory = QuickBooksClientFactory(config)

        first = factory.client_for(credential)
        again = factory.client_for(credential)
        other = factory.client_for(replace(credential, tenant_id=8))

        assert first is again
        assert other is not first
        factory.close()

    def test_new_credential_replaces_client(
        self, credential: IntegrationCredential, config: QuickBooksConfig
    ) -> None:
        factory = QuickBooksClientFactory(config)

        first = factory.client_for(credential)
        second = factory.client_for(replace(credential, id=2, realm_id="other-realm"))

        assert second is not first
        assert second.credential.realm_id == "other-realm"
        factory.close()
