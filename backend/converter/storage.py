"""Output directory and the record of which outputs are eligible for export."""
import logging
import threading
from pathlib import Path
from typing import Iterator, Optional

from converter.config import OUTPUT_DIR
from converter.errors import FilesystemError

logger = logging.getLogger("converter.storage")


class TrackedOutputs:
    """Insertion-ordered set of output filenames, safe to share across threads."""

    def __init__(self):
        self.lock = threading.RLock()
        self._names: dict[str, None] = {}

    def add(self, name: str) -> bool:
        """Track name; returns False if it was already tracked."""
        with self.lock:
            if name in self._names:
                return False
            self._names[name] = None
            return True

    def clear(self) -> None:
        with self.lock:
            self._names = {}

    def snapshot(self) -> list[str]:
        with self.lock:
            return list(self._names)

    def __contains__(self, name: object) -> bool:
        with self.lock:
            return name in self._names

    def __len__(self) -> int:
        with self.lock:
            return len(self._names)

    def __iter__(self) -> Iterator[str]:
        return iter(self.snapshot())


class OutputStore:
    """Filesystem directory holding converted outputs."""

    def __init__(self, directory: Optional[Path] = None, tracked: Optional[TrackedOutputs] = None):
        self.directory = Path(directory or OUTPUT_DIR)
        self.tracked = tracked if tracked is not None else TrackedOutputs()

    def ensure_directory(self) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(str(e)) from e

    def path_for(self, name: str) -> Path:
        return self.directory / Path(name).name

    def track(self, name: str) -> bool:
        return self.tracked.add(name)

    def list_tracked_files(self) -> list[str]:
        return self.tracked.snapshot()

    def delete_all(self) -> int:
        """
        Delete every file in the output directory, tracked or not, then forget
        all tracked names. Files that fail to delete are logged and skipped;
        an unreadable directory raises FilesystemError and tracking is kept.
        """
        with self.tracked.lock:
            try:
                entries = list(self.directory.iterdir())
            except OSError as e:
                raise FilesystemError(str(e)) from e
            deleted = 0
            for path in entries:
                if not path.is_file():
                    continue
                try:
                    path.unlink()
                    deleted += 1
                except OSError as e:
                    logger.warning("Could not delete output file %s: %s", path, e)
            self.tracked.clear()
        logger.info("Cleared %s output files from %s", deleted, self.directory)
        return deleted


# Singleton
_output_store: Optional[OutputStore] = None


def get_output_store() -> OutputStore:
    global _output_store
    if _output_store is None:
        _output_store = OutputStore()
    return _output_store
