# product_research/storage/file_storage.py

"""Stores captured artifacts, reports and batch exports on disk."""

import csv
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from product_research.config.settings import Settings
from product_research.storage.record_store import RecordStore

logger = logging.getLogger("product_research.storage")


@dataclass
class StoredFile:
    """Handle for a file written by :class:`FileStorage`."""

    name: str
    path: Path

    @property
    def url(self) -> str:
        """Retrievable URL of the stored file."""
        return self.path.resolve().as_uri()


class FileStorage:
    """Writes named blobs into the configured folder or the default root."""

    def __init__(self, folder: Path | None = None) -> None:
        if folder is None:
            folder = (
                Path(Settings.STORAGE_FOLDER)
                if Settings.STORAGE_FOLDER
                else Settings.OUTPUT_DIR
            )
        self.folder: Path = folder
        self.folder.mkdir(parents=True, exist_ok=True)
        logger.debug("FileStorage initialised, folder=%s", self.folder)

    def _free_path(self, name: str) -> Path:
        """Return a path for *name* that does not clobber an existing file."""
        path = self.folder / name
        counter = 1
        while path.exists():
            path = self.folder / f"{Path(name).stem}_{counter}{Path(name).suffix}"
            counter += 1
        return path

    def save(self, name: str, data: bytes) -> StoredFile:
        """Store a binary blob and return its handle."""
        path = self._free_path(_safe_name(name))
        path.write_bytes(data)
        logger.info("Stored %s (%d bytes)", path, len(data))
        return StoredFile(name=path.name, path=path)

    def export_csv(self, store: RecordStore, batch_name: str) -> StoredFile:
        """Write every column of a batch to a CSV file, header first."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        path = self._free_path(_safe_name(f"{batch_name}_{timestamp}.csv"))
        header = store.header()

        with open(path, "w", newline="", encoding="utf-8-sig") as f:
            writer = csv.writer(f)
            writer.writerow(header)
            for _row, values in store.data_rows():
                writer.writerow([values.get(name, "") for name in header])

        logger.info(
            "Exported %d rows of '%s' to %s",
            store.row_count(),
            batch_name,
            path,
        )
        return StoredFile(name=path.name, path=path)


def _safe_name(name: str) -> str:
    """Replace path separators and spaces in a file name."""
    return name.replace("/", "_").replace("\\", "_").replace(" ", "_")
