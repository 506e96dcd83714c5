"""QuickBooks Online API client."""

import logging
import threading
from typing import Any, Callable

import httpx

from ...config import QuickBooksConfig
from ...domain.errors import ExternalTransportError, ExternalValidationFault
from ...domain.models import IntegrationCredential
from ...ports.accounting import AccountingPort
from .oauth import is_expired, refresh_credential

logger = logging.getLogger(__name__)


def quote(value: str) -> str:
    """Quote a string literal for the QuickBooks query language."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def fault_error(response: httpx.Response) -> Exception:
    """Translate an error response into the pipeline's error types."""
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    fault = body.get("Fault") or body.get("fault")
    if not isinstance(fault, dict):
        fault = {}
    errors = fault.get("Error")
    detail = ""
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        detail = errors[0].get("Detail") or errors[0].get("Message") or ""

    if fault.get("type") == "ValidationFault":
        return ExternalValidationFault(detail)

    message = detail or response.text[:200]
    return ExternalTransportError(
        f"QuickBooks request failed ({response.status_code}): {message}",
        status_code=response.status_code,
    )


class QuickBooksClient(AccountingPort):
    """Accounting client bound to one tenant's credential.

    Holds its own token state. Refresh is single-flight: concurrent callers
    wait on the lock and re-check expiry, so only one refresh call is made.
    """

    def __init__(
        self,
        credential: IntegrationCredential,
        config: QuickBooksConfig,
        on_refresh: Callable[[IntegrationCredential], None] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.credential = credential
        self.config = config
        self.on_refresh = on_refresh
        self._lock = threading.Lock()
        self.http = httpx.Client(
            base_url=f"{config.api_url}/v3/company/{credential.realm_id}",
            timeout=config.timeout,
            transport=transport,
        )

    def close(self) -> None:
        self.http.close()

    # Customers

    def find_customer_by_name(self, name: str) -> dict[str, Any] | None:
        return self._find_by_name("Customer", name)

    def create_customer(self, payload: dict[str, Any]) -> dict[str, Any]:
        return self._create("Customer", payload)

    # Vendors

    def find_vendor_by_name(self, name: str) -> dict[str, Any] | None:
        return self._find_by_name("Vendor", name)

    def create_vendor(self, payload: dict[str, Any]) -> dict[str, Any]:
        return self._create("Vendor", payload)

    # Transactions

    def create_invoice(self, payload: dict[str, Any]) -> dict[str, Any]:
        return self._create("Invoice", payload)

    def create_purchase(self, payload: dict[str, Any]) -> dict[str, Any]:
        return self._create("Purchase", payload)

    # Queries

    def list_entities(
        self, entity: str, page: int = 1, page_size: int = 10
    ) -> list[dict[str, Any]]:
        if page < 1 or page_size < 1:
            raise ValueError("page and page_size must be positive")
        start = (page - 1) * page_size + 1
        result = self.query(
            f"SELECT * FROM {entity} STARTPOSITION {start} MAXRESULTS {page_size}"
        )
        return result.get(entity, [])

    def count(self, entity: str) -> int:
        result = self.query(f"SELECT COUNT(*) FROM {entity}")
        return int(result.get("totalCount", 0))

    def query(self, statement: str) -> dict[str, Any]:
        logger.debug(f"QuickBooks query: {statement}")
        body = self._request("GET", "/query", params={"query": statement})
        return body.get("QueryResponse", {})

    def _find_by_name(self, entity: str, name: str) -> dict[str, Any] | None:
        result = self.query(f"SELECT * FROM {entity} WHERE DisplayName = {quote(name)}")
        matches = result.get(entity) or []
        return matches[0] if matches else None

    def _create(self, entity: str, payload: dict[str, Any]) -> dict[str, Any]:
        logger.info(f"Creating QuickBooks {entity}")
        body = self._request("POST", f"/{entity.lower()}", json=payload)
        if entity not in body:
            raise ExternalTransportError(f"QuickBooks response has no {entity}")
        return body[entity]

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        token = self._access_token()
        params = {**(params or {}), "minorversion": self.config.minor_version}

        try:
            response = self.http.request(
                method,
                path,
                params=params,
                json=json,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Accept": "application/json",
                },
            )
        except httpx.HTTPError as e:
            raise ExternalTransportError(f"QuickBooks request failed: {e}") from e

        if response.status_code >= 400:
            raise fault_error(response)

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            raise ExternalTransportError(
                f"QuickBooks returned an unexpected body: {response.text[:200]}",
                status_code=response.status_code,
            )
        if "Fault" in body:
            raise fault_error(response)
        return body

    def _access_token(self) -> str:
        with self._lock:
            if is_expired(self.credential):
                self.credential = refresh_credential(
                    self.http,
                    self.config.token_url,
                    self.config.client_id,
                    self.config.client_secret,
                    self.credential,
                )
                if self.on_refresh:
                    self.on_refresh(self.credential)
            return self.credential.access_token
