"""Rasterizer port - interface for PDF to image conversion."""

from abc import ABC, abstractmethod


class RasterizerPort(ABC):
    """Interface for PDF rasterization."""

    @abstractmethod
    def to_images(self, pdf: bytes) -> list[bytes]:
        """Convert a PDF into JPEG page images, ordered by page number."""
        pass
