"""Storage adapter using local filesystem."""

import logging
import re
from pathlib import Path
from urllib.parse import unquote, urlparse

from ...domain.errors import StorageError
from ...ports.storage import StoragePort

logger = logging.getLogger(__name__)


def sanitize_key(key: str) -> str:
    """Normalize an object key into a safe relative path."""
    # Remove null bytes
    key = key.replace("\x00", "")
    # Replace path traversal attempts
    key = key.replace("..", "_")
    # Replace problematic characters, keeping "/" as separator
    key = re.sub(r'[<>:"\\|?*]', "_", key)
    # Collapse repeated separators
    key = re.sub(r"/+", "/", key)
    return key.strip("/ ")


class FilesystemAdapter(StoragePort):
    """Storage implementation using local filesystem.

    Objects live at ``base_path/bucket/key`` and are addressed by
    ``file://`` URLs, so the usual ``bucket/baseDir/name.ext`` parsing
    applies to the path tail.
    """

    def __init__(self, base_path: Path, bucket: str = "ledgerlink") -> None:
        self.base_path = base_path
        self.bucket = bucket

    def upload(self, data: bytes, key: str, mime_type: str) -> str:
        dest = self.base_path / self.bucket / sanitize_key(key)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Upload failed for {key}: {e}") from e

        logger.info(f"Stored: {dest.relative_to(self.base_path)} ({mime_type})")
        return dest.resolve().as_uri()

    def download(self, location: str) -> bytes:
        parsed = urlparse(location)
        if parsed.scheme != "file":
            raise StorageError(f"Not a local storage location: {location}")

        path = Path(unquote(parsed.path))
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError(f"Download failed for {path}: {e}") from e
