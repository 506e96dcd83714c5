"""Error taxonomy for the ledger sync pipeline."""


class LedgerSyncError(Exception):
    """Base class for pipeline errors."""


class DocumentNotFound(LedgerSyncError):
    pass


class StorageError(LedgerSyncError):
    """Object storage I/O failure."""


class SchemaMismatch(LedgerSyncError):
    """Extraction output lacks its mandatory top-level shape."""


class MappingNotFound(LedgerSyncError):
    """A prerequisite identity mapping is missing at submission time."""


class IntegrationMissing(LedgerSyncError):
    """No active accounting integration for the tenant."""

    def __init__(self, tenant_id: int) -> None:
        self.tenant_id = tenant_id
        super().__init__(
            "No active QuickBooks integration found. "
            "Please connect to QuickBooks first."
        )


class ValidationError(LedgerSyncError):
    """Aggregated local validation failure."""

    def __init__(self, reasons: list[str], subject: str = "Payload") -> None:
        self.reasons = list(reasons)
        super().__init__(f"{subject} validation failed: {', '.join(self.reasons)}")


class ExternalValidationFault(LedgerSyncError):
    """The accounting platform rejected a payload."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"QuickBooks Validation Error: {detail}")


class ExternalTransportError(LedgerSyncError):
    """Network, auth or unexpected response failure against the platform."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
