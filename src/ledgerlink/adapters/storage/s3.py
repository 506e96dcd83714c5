"""Storage adapter using S3-compatible object storage."""

import logging

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ...domain.errors import StorageError
from ...ports.storage import StorageKey, StoragePort

logger = logging.getLogger(__name__)


class S3Adapter(StoragePort):
    """Storage implementation using boto3 with path-style addressing."""

    def __init__(
        self,
        bucket: str,
        endpoint_url: str | None = None,
        region: str | None = None,
        client=None,
    ) -> None:
        self.bucket = bucket
        default_endpoint = f"https://s3.{region or 'us-east-1'}.amazonaws.com"
        self.endpoint_url = (endpoint_url or default_endpoint).rstrip("/")
        self.client = client or boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            region_name=region,
            config=Config(
                s3={"addressing_style": "path"},
                connect_timeout=60,
                read_timeout=300,
            ),
        )

    def upload(self, data: bytes, key: str, mime_type: str) -> str:
        logger.info(f"Starting upload: {key}")
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=mime_type,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Upload failed for {key}: {e}") from e

        logger.info(f"Upload complete: {key}")
        return f"{self.endpoint_url}/{self.bucket}/{key}"

    def download(self, location: str) -> bytes:
        key = StorageKey.from_url(location)
        logger.info(f"Downloading: {key.object_key}")
        try:
            response = self.client.get_object(Bucket=key.bucket, Key=key.object_key)
            return response["Body"].read()
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Download failed for {key.object_key}: {e}") from e
