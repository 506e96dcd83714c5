"""Storage adapters."""

from ...config import StorageBackend, StorageConfig
from ...ports.storage import StoragePort
from .filesystem import FilesystemAdapter
from .s3 import S3Adapter

__all__ = ["FilesystemAdapter", "S3Adapter", "create_storage_adapter"]


def create_storage_adapter(config: StorageConfig) -> StoragePort:
    """Create storage adapter based on configuration."""
    if config.backend == StorageBackend.S3:
        return S3Adapter(
            bucket=config.bucket,
            endpoint_url=config.endpoint_url,
            region=config.region,
        )
    elif config.backend == StorageBackend.FILESYSTEM:
        return FilesystemAdapter(config.base_path, bucket=config.bucket)
    else:
        raise ValueError(f"Unknown storage backend: {config.backend}")
