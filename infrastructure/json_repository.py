"""JSON persistence for the photo metadata index.

The index is a single JSON array of photo objects, pretty-printed with a
2-space indent and rewritten in full on every save. Saves go through a
temporary file and `os.replace` so readers never see a half-written file.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
import json
import os
from pathlib import Path
import time

from loguru import logger

from core.models import PhotoRecord


class JsonPhotoRepository:
    """Load and save photo records in JSON format."""

    def load(self, path: str) -> Iterator[PhotoRecord]:
        """Yield `PhotoRecord` from the JSON index at `path`.

        A missing file yields nothing. A file that is not a JSON array is
        renamed aside and the index starts empty; malformed entries are skipped.

        Raises:
            OSError: If the file cannot be read or set aside.
        """
        index_path = Path(path)
        if not index_path.exists():
            return
        try:
            with index_path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except ValueError as ex:
            self._set_aside(index_path, f"invalid JSON: {ex}")
            return

        if not isinstance(data, list):
            self._set_aside(index_path, "not a JSON array")
            return

        for entry in data:
            if not isinstance(entry, dict):
                logger.error("Index entry skipped (not an object): {}", entry)
                continue
            try:
                yield PhotoRecord.from_dict(entry)
            except (KeyError, ValueError, TypeError) as ex:
                logger.error("Index entry error: {} | entry={}", ex, entry)
                continue

    def save(self, path: str, records: Iterable[PhotoRecord]) -> None:
        """Write all `records` to `path` as a pretty-printed JSON array."""
        index_path = Path(path)
        index_path.parent.mkdir(parents=True, exist_ok=True)
        payload = [record.to_dict() for record in records]
        tmp_path = index_path.with_name(index_path.name + ".tmp")
        try:
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
                f.write("\n")
            os.replace(tmp_path, index_path)
        except OSError:
            try:
                tmp_path.unlink()
            except OSError:
                pass
            raise
        logger.debug("Index saved: {} ({} records)", index_path, len(payload))

    def _set_aside(self, index_path: Path, problem: str) -> None:
        """Rename a damaged index so the next save cannot overwrite it."""
        stamp = time.strftime("%Y%m%dT%H%M%SZ", time.gmtime())
        target = index_path.with_name(f"{index_path.name}.corrupt-{stamp}")
        os.replace(index_path, target)
        logger.error("Index unreadable ({}), moved to {}; starting empty", problem, target)
