"""Identity mapper - local to external entity correspondence."""

import logging
from typing import Any, Callable

from ..ports.accounting import AccountingPort
from ..ports.repository import RepositoryPort
from .errors import ExternalTransportError, MappingNotFound
from .models import Address, EntityMapping, EntityType, LocalEntity, MappingContext

logger = logging.getLogger(__name__)


def _address(address: Address | None) -> dict[str, str]:
    # The platform schema requires every key, so absent values are sent as ""
    address = address or Address()
    return {
        "Line1": address.line1 or "",
        "City": address.city or "",
        "CountrySubDivisionCode": address.state or "",
        "PostalCode": address.zip_code or "",
        "Country": address.country or "",
    }


def customer_payload(entity: LocalEntity) -> dict[str, Any]:
    return {
        "DisplayName": entity.name,
        "FullyQualifiedName": entity.name,
        "CompanyName": entity.name,
        "GivenName": "",
        "PrimaryEmailAddr": {"Address": entity.email or ""},
        "PrimaryPhone": {"FreeFormNumber": entity.phone or ""},
        "BillAddr": _address(entity.billing_address),
        "ShipAddr": _address(entity.shipping_address),
    }


def vendor_payload(entity: LocalEntity) -> dict[str, Any]:
    return {
        "DisplayName": entity.name,
        "CompanyName": entity.name,
        "PrimaryEmailAddr": {"Address": entity.email or ""},
        "PrimaryPhone": {"FreeFormNumber": entity.phone or ""},
        "Mobile": {"FreeFormNumber": entity.phone or ""},
        "BillAddr": _address(entity.billing_address),
    }


class IdentityMapper:
    """Resolves local Customers/Vendors to their external counterparts.

    Resolution order, which keeps the platform free of duplicates:
        1. existing EntityMapping for (tenant, type, local id)
        2. external lookup by name
        3. external creation
    A mapping is persisted as soon as the external id is known.
    """

    def __init__(self, repository: RepositoryPort) -> None:
        self.repository = repository

    def resolve_or_create_external(
        self,
        tenant_id: int,
        entity_type: EntityType,
        entity: LocalEntity,
        client: AccountingPort,
        context: MappingContext,
    ) -> str:
        mapping = self.repository.find_mapping(tenant_id, entity_type, entity.id)
        if mapping:
            logger.debug(
                f"{entity_type.value} {entity.id} already mapped: {mapping.external_id}"
            )
            return mapping.external_id

        find, create, build_payload = self._operations(entity_type, client)

        existing = find(entity.name)
        if existing:
            external_id = str(existing["Id"])
            logger.info(f"Matched existing {entity_type.value} '{entity.name}': {external_id}")
        else:
            created = create(build_payload(entity))
            if not created or "Id" not in created:
                raise ExternalTransportError(
                    f"{entity_type.value} create response has no Id"
                )
            external_id = str(created["Id"])
            logger.info(f"Created {entity_type.value} '{entity.name}': {external_id}")

        mapping = self.repository.create_mapping(
            EntityMapping(
                tenant_id=tenant_id,
                entity_type=entity_type,
                local_id=entity.id,
                external_id=external_id,
                integration_id=context.integration_id,
                user_id=context.user_id,
            )
        )
        return mapping.external_id

    def require_mapping(
        self, tenant_id: int, entity_type: EntityType, local_id: int
    ) -> EntityMapping:
        """Return an existing mapping; never creates one."""
        mapping = self.repository.find_mapping(tenant_id, entity_type, local_id)
        if mapping is None:
            raise MappingNotFound(f"{entity_type.value} mapping not found")
        return mapping

    def _operations(
        self, entity_type: EntityType, client: AccountingPort
    ) -> tuple[Callable, Callable, Callable]:
        if entity_type == EntityType.CUSTOMER:
            return client.find_customer_by_name, client.create_customer, customer_payload
        if entity_type == EntityType.VENDOR:
            return client.find_vendor_by_name, client.create_vendor, vendor_payload
        raise ValueError(f"Cannot resolve {entity_type.value} by name")
