"""Repository port - interface for local persistence."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..domain.models import (
        CustomerDetails,
        Document,
        DocumentKind,
        EntityMapping,
        EntityType,
        IntegrationCredential,
        LocalEntity,
        LocalTransaction,
        VendorDetails,
    )


class RepositoryPort(ABC):
    """Interface for the local relational store."""

    @abstractmethod
    def create_document(
        self, tenant_id: int, user_id: int | None, kind: "DocumentKind", file_path: str
    ) -> "Document":
        pass

    @abstractmethod
    def get_document(self, document_id: int) -> "Document":
        """Raises DocumentNotFound."""
        pass

    @abstractmethod
    def save_document(self, document: "Document") -> None:
        """Persist status, error message and processed data."""
        pass

    @abstractmethod
    def find_or_create_customer(
        self, tenant_id: int, user_id: int | None, details: "CustomerDetails"
    ) -> "LocalEntity":
        """Find by (tenant, name); create only on miss, never update on hit."""
        pass

    @abstractmethod
    def find_or_create_vendor(
        self, tenant_id: int, user_id: int | None, details: "VendorDetails"
    ) -> "LocalEntity":
        """Find by (tenant, name); create only on miss, never update on hit."""
        pass

    @abstractmethod
    def get_party(self, entity_type: "EntityType", party_id: int) -> "LocalEntity":
        """Load a Customer or Vendor by local id. Raises LookupError."""
        pass

    @abstractmethod
    def find_transaction(
        self, document_id: int, entity_type: "EntityType"
    ) -> "LocalTransaction | None":
        pass

    @abstractmethod
    def create_transaction(self, transaction: "LocalTransaction") -> "LocalTransaction":
        """Create an Invoice or Purchase with its line items."""
        pass

    @abstractmethod
    def find_mapping(
        self, tenant_id: int, entity_type: "EntityType", local_id: int
    ) -> "EntityMapping | None":
        pass

    @abstractmethod
    def create_mapping(self, mapping: "EntityMapping") -> "EntityMapping":
        """Create a mapping; an existing row for the same key wins."""
        pass

    @abstractmethod
    def get_active_credential(self, tenant_id: int) -> "IntegrationCredential | None":
        pass

    @abstractmethod
    def save_credential(self, credential: "IntegrationCredential") -> None:
        """Persist refreshed tokens."""
        pass
