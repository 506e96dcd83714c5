"""Storage port - interface for object storage."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import PurePosixPath
from urllib.parse import unquote, urlparse


@dataclass(frozen=True)
class StorageKey:
    """Object location parsed from a storage URL.

    URLs are path-style: ``{scheme}://{host}/{bucket}/{baseDir}/{fileName}.{ext}``.
    """

    bucket: str
    base_dir: str
    file_name: str
    extension: str

    @classmethod
    def from_url(cls, url: str) -> "StorageKey":
        parts = [p for p in urlparse(url).path.split("/") if p]
        if len(parts) < 2:
            raise ValueError(f"Not a storage object URL: {url}")

        path = PurePosixPath(unquote(parts[-1]))
        file_name = path.stem
        extension = path.suffix.lstrip(".").lower()
        bucket = parts[0]
        base_dir = "/".join(parts[1:-1])
        return cls(
            bucket=bucket, base_dir=base_dir, file_name=file_name, extension=extension
        )

    @property
    def object_key(self) -> str:
        name = f"{self.file_name}.{self.extension}" if self.extension else self.file_name
        return f"{self.base_dir}/{name}" if self.base_dir else name

    @property
    def is_pdf(self) -> bool:
        return self.extension == "pdf"


class StoragePort(ABC):
    """Interface for object storage."""

    @abstractmethod
    def upload(self, data: bytes, key: str, mime_type: str) -> str:
        """Upload bytes under key.

        Returns the location URL of the stored object.
        """
        pass

    @abstractmethod
    def download(self, location: str) -> bytes:
        """Download the object at a location URL."""
        pass
