"""Ports - interfaces for external dependencies."""

from .accounting import AccountingClientFactory, AccountingPort
from .extraction import ExtractionPort
from .rasterizer import RasterizerPort
from .repository import RepositoryPort
from .storage import StorageKey, StoragePort

__all__ = [
    "AccountingClientFactory",
    "AccountingPort",
    "ExtractionPort",
    "RasterizerPort",
    "RepositoryPort",
    "StorageKey",
    "StoragePort",
]
