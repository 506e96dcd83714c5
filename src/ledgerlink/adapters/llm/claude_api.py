"""Extraction adapter using Claude API."""

import base64
import logging
from typing import Any

from ...domain.errors import SchemaMismatch
from ...domain.models import DocumentKind
from ...domain.preprocessing import JPEG, MIME_TYPES
from ...ports.extraction import ExtractionPort
from ...ports.storage import StorageKey, StoragePort
from .prompts import PROMPTS
from .schemas import SCHEMAS

logger = logging.getLogger(__name__)

TOOL_NAME = "record_document_data"


class ClaudeAPIAdapter(ExtractionPort):
    """Extraction implementation using Claude vision with a forced tool call."""

    def __init__(
        self,
        storage: StoragePort,
        model: str = "claude-sonnet-4-20250514",
        client=None,
    ) -> None:
        if client is None:
            import anthropic

            client = anthropic.Anthropic()
        self.client = client
        self.storage = storage
        self.model = model

    def extract(self, images: list[str], kind: DocumentKind) -> dict[str, Any]:
        logger.info(f"Extracting {kind.value} from {len(images)} images with Claude API")

        content: list[dict[str, Any]] = [self._image_block(location) for location in images]
        content.append({"type": "text", "text": PROMPTS[kind]})

        response = self.client.messages.create(
            model=self.model,
            max_tokens=4096,
            tools=[
                {
                    "name": TOOL_NAME,
                    "description": f"Record the structured {kind.value} data",
                    "input_schema": SCHEMAS[kind],
                }
            ],
            tool_choice={"type": "tool", "name": TOOL_NAME},
            messages=[{"role": "user", "content": content}],
        )

        for block in response.content:
            if block.type == "tool_use":
                return dict(block.input)

        raise SchemaMismatch("Claude returned no structured output")

    def _image_block(self, location: str) -> dict[str, Any]:
        extension = StorageKey.from_url(location).extension
        data = self.storage.download(location)
        return {
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": MIME_TYPES.get(extension, JPEG),
                "data": base64.standard_b64encode(data).decode("ascii"),
            },
        }
