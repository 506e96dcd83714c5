"""Configuration management using pydantic-settings."""

import tomllib
from enum import Enum
from pathlib import Path
from typing import Self

from pydantic import BaseModel, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .domain.transformer import AccountRefs

DEFAULT_DATABASE_URL = "sqlite:///ledgerlink.db"
DEFAULT_BUCKET = "ledgerlink"
DEFAULT_STORAGE_BASE = "~/.local/share/ledgerlink/objects"
CONFIG_PATH = Path("~/.config/ledgerlink/config.toml").expanduser()

QUICKBOOKS_API_URLS = {
    "sandbox": "https://sandbox-quickbooks.api.intuit.com",
    "production": "https://quickbooks.api.intuit.com",
}


class ExtractionProvider(str, Enum):
    """Available document understanding providers."""

    CLAUDE_API = "claude-api"
    OLLAMA = "ollama"


class StorageBackend(str, Enum):
    S3 = "s3"
    FILESYSTEM = "filesystem"


class QuickBooksConfig(BaseSettings):
    """QuickBooks Online connection settings."""

    model_config = SettingsConfigDict(env_prefix="LEDGERLINK_QUICKBOOKS_")

    client_id: str = ""
    client_secret: str = ""
    environment: str = "sandbox"
    minor_version: int = 70
    token_url: str = "https://oauth.platform.intuit.com/oauth2/v1/tokens/bearer"
    timeout: float = 30.0

    @field_validator("environment")
    @classmethod
    def check_environment(cls, v: str) -> str:
        if v not in QUICKBOOKS_API_URLS:
            raise ValueError(f"Unknown QuickBooks environment: {v}")
        return v

    @property
    def api_url(self) -> str:
        return QUICKBOOKS_API_URLS[self.environment]


class StorageConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LEDGERLINK_STORAGE_")

    backend: StorageBackend = StorageBackend.S3
    bucket: str = DEFAULT_BUCKET
    endpoint_url: str | None = None
    region: str | None = None
    source_dir: str = "source"
    processed_dir: str = "processed"
    base_path: Path = Path(DEFAULT_STORAGE_BASE)
    max_workers: int = 4
    upload_timeout: float | None = 300.0

    @field_validator("base_path", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        return Path(v).expanduser()


class ExtractionConfig(BaseSettings):
    """Document understanding provider configuration."""

    model_config = SettingsConfigDict(env_prefix="LEDGERLINK_EXTRACTION_")

    provider: ExtractionProvider = ExtractionProvider.CLAUDE_API
    model: str = "claude-sonnet-4-20250514"
    ollama_url: str = "http://localhost:11434"


class DatabaseConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LEDGERLINK_DATABASE_")

    url: str = DEFAULT_DATABASE_URL


class ValidationConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LEDGERLINK_VALIDATION_")

    amount_tolerance: float = 0.01
    warn_on_amount_mismatch: bool = True


class TenantAccounts(BaseModel):
    """Per-tenant overrides; unset fields fall back to the global defaults."""

    payment_account: str | None = None
    expense_account: str | None = None
    tax_code: str | None = None
    payment_type: str | None = None


class AccountsConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LEDGERLINK_ACCOUNTS_")

    payment_account: str = "93"
    expense_account: str = "92"
    tax_code: str = "NON"
    payment_type: str = "Cash"
    tenants: dict[str, TenantAccounts] = {}

    def for_tenant(self, tenant_id: int) -> AccountRefs:
        """Resolve account references for a tenant."""
        override = self.tenants.get(str(tenant_id)) or TenantAccounts()
        return AccountRefs(
            payment_account=override.payment_account or self.payment_account,
            expense_account=override.expense_account or self.expense_account,
            tax_code=override.tax_code or self.tax_code,
            payment_type=override.payment_type or self.payment_type,
        )


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LEDGERLINK_")

    quickbooks: QuickBooksConfig = QuickBooksConfig()
    storage: StorageConfig = StorageConfig()
    extraction: ExtractionConfig = ExtractionConfig()
    database: DatabaseConfig = DatabaseConfig()
    validation: ValidationConfig = ValidationConfig()
    accounts: AccountsConfig = AccountsConfig()

    @model_validator(mode="after")
    def ensure_dirs(self) -> Self:
        if self.storage.backend == StorageBackend.FILESYSTEM:
            self.storage.base_path.mkdir(parents=True, exist_ok=True)
        return self


def load_settings(config_path: Path | None = None) -> Settings:
    """Load settings from TOML file, falling back to defaults."""
    path = config_path or CONFIG_PATH

    if path.exists():
        with open(path, "rb") as f:
            data = tomllib.load(f)

        quickbooks = QuickBooksConfig(**data.get("quickbooks", {}))
        storage = StorageConfig(**data.get("storage", {}))
        extraction = ExtractionConfig(**data.get("extraction", {}))
        database = DatabaseConfig(**data.get("database", {}))
        validation = ValidationConfig(**data.get("validation", {}))
        accounts = AccountsConfig(**data.get("accounts", {}))
        return Settings(
            quickbooks=quickbooks,
            storage=storage,
            extraction=extraction,
            database=database,
            validation=validation,
            accounts=accounts,
        )

    return Settings()
