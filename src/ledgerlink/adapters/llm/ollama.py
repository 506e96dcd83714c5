"""Extraction adapter using Ollama."""

import base64
import json
import logging
from typing import Any
from urllib.parse import urlparse

import httpx

from ...domain.errors import SchemaMismatch
from ...domain.models import DocumentKind
from ...ports.extraction import ExtractionPort
from ...ports.storage import StoragePort
from .prompts import PROMPTS
from .schemas import SCHEMAS

logger = logging.getLogger(__name__)


class OllamaAdapter(ExtractionPort):
    """Extraction implementation using a local vision model in Ollama."""

    def __init__(
        self,
        storage: StoragePort,
        model: str = "gemma3:4b",
        base_url: str = "http://localhost:11434",
        client: httpx.Client | None = None,
    ) -> None:
        parsed = urlparse(base_url)
        if parsed.scheme not in ("http", "https"):
            raise ValueError(f"Invalid ollama_url scheme: {parsed.scheme}")
        self.storage = storage
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.Client(timeout=300.0)

    def extract(self, images: list[str], kind: DocumentKind) -> dict[str, Any]:
        logger.info(f"Extracting {kind.value} with Ollama ({self.model})")

        encoded = [
            base64.standard_b64encode(self.storage.download(location)).decode("ascii")
            for location in images
        ]

        response = self.client.post(
            f"{self.base_url}/api/chat",
            json={
                "model": self.model,
                "messages": [
                    {"role": "user", "content": PROMPTS[kind], "images": encoded},
                ],
                "stream": False,
                "format": SCHEMAS[kind],
            },
        )
        response.raise_for_status()

        content = response.json()["message"]["content"]
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON response: {content[:200]}")
            raise SchemaMismatch("Extraction response is not valid JSON") from e

        if not isinstance(data, dict):
            raise SchemaMismatch("Extraction response is not a JSON object")
        return data
