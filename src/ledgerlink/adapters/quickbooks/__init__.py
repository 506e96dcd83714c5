"""QuickBooks Online adapters."""

import threading
from typing import Callable

import httpx

from ...config import QuickBooksConfig
from ...domain.models import IntegrationCredential
from ...ports.accounting import AccountingClientFactory
from .client import QuickBooksClient

__all__ = ["QuickBooksClient", "QuickBooksClientFactory"]


class QuickBooksClientFactory(AccountingClientFactory):
    """Hands out one client per tenant so token state is never shared."""

    def __init__(
        self,
        config: QuickBooksConfig,
        on_refresh: Callable[[IntegrationCredential], None] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = config
        self.on_refresh = on_refresh
        self.transport = transport
        self._clients: dict[int, QuickBooksClient] = {}
        self._lock = threading.Lock()

    def client_for(self, credential: IntegrationCredential) -> QuickBooksClient:
        with self._lock:
            client = self._clients.get(credential.tenant_id)
            if client is None or (
                client.credential.id != credential.id
                or client.credential.realm_id != credential.realm_id
            ):
                if client is not None:
                    client.close()
                client = QuickBooksClient(
                    credential,
                    self.config,
                    on_refresh=self.on_refresh,
                    transport=self.transport,
                )
                self._clients[credential.tenant_id] = client
            return client

    def close(self) -> None:
        with self._lock:
            for client in self._clients.values():
                client.close()
            self._clients.clear()
