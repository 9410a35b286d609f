"""Zip every tracked output into one archive."""
import logging
import tempfile
import zipfile
from typing import BinaryIO

from converter.errors import EmptyExportError
from converter.storage import OutputStore

logger = logging.getLogger("converter.archive")

ARCHIVE_NAME = "converted_images.zip"
# Archives stay in memory up to this size, then spill to disk
SPOOL_MAX_BYTES = 32 * 1024 * 1024


class ArchiveExporter:
    def __init__(self, store: OutputStore):
        self.store = store

    def write(self, fileobj: BinaryIO) -> list[str]:
        """Write the zip to fileobj. Returns the names that were included."""
        names = self.store.list_tracked_files()
        if not names:
            raise EmptyExportError("No files to download")
        included: list[str] = []
        with zipfile.ZipFile(fileobj, "w", zipfile.ZIP_DEFLATED, compresslevel=9) as zf:
            for name in names:
                path = self.store.path_for(name)
                if not path.is_file():
                    logger.debug("Skipping missing output %s", name)
                    continue
                zf.write(path, name)
                included.append(name)
        logger.info("Created %s with %s of %s tracked files", ARCHIVE_NAME, len(included), len(names))
        return included

    def open_stream(self) -> BinaryIO:
        """Build the archive in a spooled temp file and return it rewound."""
        buf = tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_BYTES)
        try:
            self.write(buf)
        except Exception:
            buf.close()
            raise
        buf.seek(0)
        return buf
