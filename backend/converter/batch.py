"""Run a batch of uploads through the converter and track what it produced."""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from converter.config import MAX_WORKERS
from converter.conversion.models import ConversionRequest, ConversionResult, UploadedImage
from converter.conversion.service import ConversionService
from converter.storage import OutputStore

logger = logging.getLogger("converter.batch")


class BatchCoordinator:
    """Converts every file of one request and records outputs in the store."""

    def __init__(self, service: ConversionService, store: OutputStore, max_workers: int = MAX_WORKERS):
        self.service = service
        self.store = store
        self.max_workers = max(1, max_workers)

    def run(self, uploads: list[UploadedImage], request: ConversionRequest) -> list[ConversionResult]:
        """
        Convert uploads in parallel and return results in upload order.
        Successful outputs are tracked even if another file fails; the first
        failure is then re-raised and no results are returned.
        """
        if not uploads:
            return []
        workers = min(self.max_workers, len(uploads))
        results: list[ConversionResult] = []
        first_error: Optional[Exception] = None
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self.service.convert, upload, request) for upload in uploads]
            for upload, future in zip(uploads, futures):
                try:
                    result = future.result()
                except Exception as e:
                    logger.error("Conversion failed for %s: %s", upload.filename, e)
                    if first_error is None:
                        first_error = e
                    continue
                if self.store.track(result.name):
                    logger.debug("Tracking %s", result.name)
                results.append(result)
        if first_error is not None:
            raise first_error
        logger.info("Batch converted %s files to %s", len(results), request.convert_to)
        return results
