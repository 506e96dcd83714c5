"""Rasterizer adapters."""

from .pdf2image_adapter import Pdf2ImageAdapter

__all__ = ["Pdf2ImageAdapter"]
