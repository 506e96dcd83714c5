"""Unit tests for storage keys and adapters."""

import io
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from ledgerlink.adapters.storage.filesystem import FilesystemAdapter, sanitize_key
from ledgerlink.adapters.storage.s3 import S3Adapter
from ledgerlink.domain.errors import StorageError
from ledgerlink.ports.storage import StorageKey


class TestStorageKey:
    def test_parses_path_style_url(self) -> None:
        key = StorageKey.from_url("https://s3.example.com/ledgerlink/source/acme-invoice.PDF")

        assert key.bucket == "ledgerlink"
        assert key.base_dir == "source"
        assert key.file_name == "acme-invoice"
        assert key.extension == "pdf"
        assert key.is_pdf is True
        assert key.object_key == "source/acme-invoice.pdf"

    def test_nested_base_dir(self) -> None:
        key = StorageKey.from_url("https://s3.example.com/bucket/a/b/scan.jpeg")
        assert key.base_dir == "a/b"
        assert key.object_key == "a/b/scan.jpeg"
        assert key.is_pdf is False

    def test_percent_encoded_name(self) -> None:
        key = StorageKey.from_url("https://s3.example.com/bucket/source/my%20receipt.png")
        assert key.file_name == "my receipt"

    def test_object_in_bucket_root(self) -> None:
        key = StorageKey.from_url("https://s3.example.com/bucket/scan.png")
        assert key.base_dir == ""
        assert key.object_key == "scan.png"

    def test_rejects_url_without_key(self) -> None:
        with pytest.raises(ValueError):
            StorageKey.from_url("https://s3.example.com/bucket")


class TestSanitizeKey:
    def test_normal_key_unchanged(self) -> None:
        assert sanitize_key("processed/scan_page_1.jpeg") == "processed/scan_page_1.jpeg"

    def test_removes_traversal(self) -> None:
        assert ".." not in sanitize_key("../../etc/passwd")

    def test_strips_leading_slash(self) -> None:
        assert sanitize_key("//source//a.pdf") == "source/a.pdf"

    def test_replaces_problematic_chars(self) -> None:
        assert sanitize_key('a<b>:"|?*.pdf') == "a_b______.pdf"


class TestFilesystemAdapter:
    def test_upload_then_download(self, tmp_path: Path) -> None:
        storage = FilesystemAdapter(tmp_path)

        location = storage.upload(b"image-bytes", "processed/scan_page_1.jpeg", "image/jpeg")

        assert location.startswith("file://")
        assert (tmp_path / "ledgerlink" / "processed" / "scan_page_1.jpeg").read_bytes() == (
            b"image-bytes"
        )
        assert storage.download(location) == b"image-bytes"

    def test_location_parses_as_storage_key(self, tmp_path: Path) -> None:
        storage = FilesystemAdapter(tmp_path)
        location = storage.upload(b"%PDF", "source/receipt.pdf", "application/pdf")
        key = StorageKey.from_url(location)
        assert key.file_name == "receipt"
        assert key.is_pdf is True

    def test_download_rejects_remote_url(self, tmp_path: Path) -> None:
        with pytest.raises(StorageError):
            FilesystemAdapter(tmp_path).download("https://s3.example.com/bucket/a.pdf")

    def test_download_missing_file(self, tmp_path: Path) -> None:
        missing = (tmp_path / "missing.pdf").as_uri()
        with pytest.raises(StorageError):
            FilesystemAdapter(tmp_path).download(missing)


class TestS3Adapter:
    def test_upload(self) -> None:
        client = MagicMock()
        storage = S3Adapter("ledgerlink", endpoint_url="https://s3.example.com/", client=client)

        location = storage.upload(b"data", "processed/scan.jpeg", "image/jpeg")

        assert location == "https://s3.example.com/ledgerlink/processed/scan.jpeg"
        client.put_object.assert_called_once_with(
            Bucket="ledgerlink",
            Key="processed/scan.jpeg",
            Body=b"data",
            ContentType="image/jpeg",
        )

    def test_default_endpoint(self) -> None:
        storage = S3Adapter("ledgerlink", region="eu-west-1", client=MagicMock())
        assert storage.endpoint_url == "https://s3.eu-west-1.amazonaws.com"

    def test_download(self) -> None:
        client = MagicMock()
        client.get_object.return_value = {"Body": io.BytesIO(b"pdf-bytes")}
        storage = S3Adapter("ledgerlink", client=client)

        data = storage.download("https://s3.example.com/ledgerlink/source/acme.pdf")

        assert data == b"pdf-bytes"
        client.get_object.assert_called_once_with(Bucket="ledgerlink", Key="source/acme.pdf")

    def test_client_error_wrapped(self) -> None:
        client = MagicMock()
        client.get_object.side_effect = ClientError(
            {"Error": {"Code": "NoSuchKey", "Message": "Not found"}}, "GetObject"
        )
        storage = S3Adapter("ledgerlink", client=client)

        with pytest.raises(StorageError, match="Download failed"):
            storage.download("https://s3.example.com/ledgerlink/source/acme.pdf")
