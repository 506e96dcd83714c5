"""Persistence adapters."""

from ...config import DatabaseConfig
from .repository import SqlAlchemyRepository

__all__ = ["SqlAlchemyRepository", "create_repository"]


def create_repository(config: DatabaseConfig) -> SqlAlchemyRepository:
    """Create repository and make sure the schema exists."""
    repository = SqlAlchemyRepository(config.url)
    repository.init_schema()
    return repository
