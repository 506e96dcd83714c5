"""Extraction adapters."""

from ...config import ExtractionConfig, ExtractionProvider
from ...ports.extraction import ExtractionPort
from ...ports.storage import StoragePort
from .claude_api import ClaudeAPIAdapter
from .ollama import OllamaAdapter

__all__ = ["ClaudeAPIAdapter", "OllamaAdapter", "create_extraction_adapter"]


def create_extraction_adapter(config: ExtractionConfig, storage: StoragePort) -> ExtractionPort:
    """Create extraction adapter based on configuration."""
    if config.provider == ExtractionProvider.OLLAMA:
        return OllamaAdapter(storage, model=config.model, base_url=config.ollama_url)
    elif config.provider == ExtractionProvider.CLAUDE_API:
        return ClaudeAPIAdapter(storage, model=config.model)
    else:
        raise ValueError(f"Unknown extraction provider: {config.provider}")
