"""Accounting port - interface for the external accounting platform."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..domain.models import IntegrationCredential


class AccountingPort(ABC):
    """Per-tenant accounting platform client.

    Create methods return the created entity (with its ``Id``).
    """

    @abstractmethod
    def find_customer_by_name(self, name: str) -> dict[str, Any] | None:
        pass

    @abstractmethod
    def create_customer(self, payload: dict[str, Any]) -> dict[str, Any]:
        pass

    @abstractmethod
    def find_vendor_by_name(self, name: str) -> dict[str, Any] | None:
        pass

    @abstractmethod
    def create_vendor(self, payload: dict[str, Any]) -> dict[str, Any]:
        pass

    @abstractmethod
    def create_invoice(self, payload: dict[str, Any]) -> dict[str, Any]:
        pass

    @abstractmethod
    def create_purchase(self, payload: dict[str, Any]) -> dict[str, Any]:
        pass

    @abstractmethod
    def list_entities(
        self, entity: str, page: int = 1, page_size: int = 10
    ) -> list[dict[str, Any]]:
        """List entities one page at a time (pages start at 1)."""
        pass

    @abstractmethod
    def count(self, entity: str) -> int:
        pass


class AccountingClientFactory(ABC):
    """Builds accounting clients from a tenant's credential."""

    @abstractmethod
    def client_for(self, credential: "IntegrationCredential") -> AccountingPort:
        pass

    def close(self) -> None:
        """Release any clients held by the factory."""
        pass
