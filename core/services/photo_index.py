"""In-memory metadata index mirroring the persisted JSON snapshot.

The index is loaded once, read through copies, and changed only by
`commit`, which persists the complete new record list before swapping it
in. A failed save therefore leaves both the file and memory unchanged.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import replace

from loguru import logger

from core.models import PhotoRecord
from core.services.interfaces import IPhotoRepository


class PhotoIndex:
    """Owned store of `PhotoRecord` entries in append order."""

    def __init__(self, repo: IPhotoRepository, path: str) -> None:
        """Load the snapshot at `path` through `repo`.

        Args:
            repo: Repository with `load(path)` and `save(path, records)` methods.
            path: Location of the JSON snapshot.
        """
        self._repo = repo
        self._path = path
        self._records: list[PhotoRecord] = list(repo.load(path))
        logger.info("Index loaded: {} ({} records)", path, len(self._records))

    @property
    def path(self) -> str:
        return self._path

    def __len__(self) -> int:
        return len(self._records)

    def records(self) -> list[PhotoRecord]:
        """Return copies of all records in index order."""
        return [replace(r) for r in self._records]

    def find(self, filename: str) -> PhotoRecord | None:
        """Return a copy of the record named `filename`, or None."""
        for record in self._records:
            if record.filename == filename:
                return replace(record)
        return None

    def filenames(self) -> set[str]:
        return {r.filename for r in self._records}

    def count_by_album(self) -> Counter[str]:
        """Number of records per album name in a single pass."""
        return Counter(r.album for r in self._records)

    def with_appended(self, new_records: list[PhotoRecord]) -> list[PhotoRecord]:
        """Record list with `new_records` appended, for a following `commit`."""
        return self.records() + [replace(r) for r in new_records]

    def with_replaced(self, filename: str, record: PhotoRecord) -> list[PhotoRecord]:
        """Record list where the entry named `filename` is swapped for `record`."""
        return [replace(record) if r.filename == filename else replace(r) for r in self._records]

    def with_removed(self, filename: str) -> list[PhotoRecord]:
        """Record list without the entry named `filename`."""
        return [replace(r) for r in self._records if r.filename != filename]

    def commit(self, records: list[PhotoRecord]) -> None:
        """Persist `records` in full, then make them the current state.

        Raises:
            OSError: If the snapshot could not be written; memory is unchanged.
        """
        self._repo.save(self._path, records)
        self._records = records
