"""Extraction port - interface for document understanding."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..domain.models import DocumentKind


class ExtractionPort(ABC):
    """Interface for structured data extraction from document images."""

    @abstractmethod
    def extract(self, images: list[str], kind: "DocumentKind") -> dict[str, Any]:
        """Extract raw structured data from image locations.

        The kind selects the invoice or purchase schema. Field completeness
        is not guaranteed.
        """
        pass
