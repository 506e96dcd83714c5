"""Document preprocessing - rasterize and stage page images for extraction."""

import logging
from concurrent.futures import ThreadPoolExecutor

from ..ports.rasterizer import RasterizerPort
from ..ports.storage import StorageKey, StoragePort

logger = logging.getLogger(__name__)

JPEG = "image/jpeg"

MIME_TYPES = {
    "jpg": JPEG,
    "jpeg": JPEG,
    "png": "image/png",
    "webp": "image/webp",
    "gif": "image/gif",
}


class DocumentPreprocessor:
    """Downloads a source document and uploads extraction-ready images.

    PDFs are rasterized to one JPEG per page. Pages are uploaded
    concurrently; the returned locations are always in page order.
    """

    def __init__(
        self,
        storage: StoragePort,
        rasterizer: RasterizerPort,
        processed_dir: str = "processed",
        max_workers: int = 4,
        upload_timeout: float | None = None,
    ) -> None:
        self.storage = storage
        self.rasterizer = rasterizer
        self.processed_dir = processed_dir.strip("/")
        self.max_workers = max_workers
        self.upload_timeout = upload_timeout

    def process_file(self, location: str) -> list[str]:
        """Return the locations of the processed images for a source file."""
        key = StorageKey.from_url(location)
        logger.info(f"Downloading source: {key.object_key}")
        data = self.storage.download(location)

        if not key.is_pdf:
            processed_key = f"{self.processed_dir}/{key.file_name}.{key.extension}"
            mime_type = MIME_TYPES.get(key.extension, JPEG)
            return [self.storage.upload(data, processed_key, mime_type)]

        pages = self.rasterizer.to_images(data)
        logger.info(f"Rasterized {key.file_name}.pdf into {len(pages)} pages")
        if not pages:
            return []

        uploads = [
            (page, f"{self.processed_dir}/{key.file_name}_page_{number}.jpeg")
            for number, page in enumerate(pages, start=1)
        ]
        pool = ThreadPoolExecutor(max_workers=min(self.max_workers, len(uploads)))
        wait = True
        try:
            # map() yields results in submission (page) order
            locations = list(
                pool.map(
                    lambda upload: self.storage.upload(upload[0], upload[1], JPEG),
                    uploads,
                    timeout=self.upload_timeout,
                )
            )
        except TimeoutError:
            logger.error(f"Page uploads for {key.file_name} exceeded {self.upload_timeout}s")
            wait = False
            raise
        finally:
            # Do not block on uploads still in flight after a timeout
            pool.shutdown(wait=wait, cancel_futures=not wait)

        logger.info(f"Uploaded {len(locations)} processed pages")
        return locations
