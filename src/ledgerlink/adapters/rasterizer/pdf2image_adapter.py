"""Rasterizer adapter using pdf2image (poppler)."""

import io
import logging

from pdf2image import convert_from_bytes

from ...ports.rasterizer import RasterizerPort

logger = logging.getLogger(__name__)


class Pdf2ImageAdapter(RasterizerPort):
    """PDF rasterization using pdf2image.

    Pages are rendered at ``dpi`` and scaled to ``height`` pixels,
    preserving the aspect ratio.
    """

    def __init__(self, dpi: int = 100, height: int = 1600, quality: int = 100) -> None:
        self.dpi = dpi
        self.height = height
        self.quality = quality

    def to_images(self, pdf: bytes) -> list[bytes]:
        logger.info("Converting PDF to images")

        pages = convert_from_bytes(
            pdf,
            dpi=self.dpi,
            fmt="jpeg",
            size=(None, self.height),
        )

        images = []
        for page in pages:
            buffer = io.BytesIO()
            page.convert("RGB").save(buffer, format="JPEG", quality=self.quality)
            images.append(buffer.getvalue())

        logger.info(f"Converted PDF to {len(images)} images")
        return images
