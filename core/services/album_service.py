"""Album lifecycle over the blob store's directories.

An album has no record of its own: it is a directory under the library
root, and its photo count is derived from the index.
"""

from __future__ import annotations

import threading

from loguru import logger

from core.models import DEFAULT_ALBUM, AlbumSummary
from core.services.filename_policy import is_safe_segment, sanitize_album_name
from core.services.interfaces import ErrorKind, IBlobStore, OpResult
from core.services.photo_index import PhotoIndex


class AlbumService:
    """List, create and delete albums; resolve album names for photo operations."""

    def __init__(self, store: IBlobStore, index: PhotoIndex, lock: threading.RLock) -> None:
        self._store = store
        self._index = index
        self._lock = lock

    def list_albums(self) -> list[AlbumSummary]:
        """Album directories with record counts, sorted by name."""
        with self._lock:
            counts = self._index.count_by_album()
            return [
                AlbumSummary(
                    name=name, photo_count=counts.get(name, 0), is_default=name == DEFAULT_ALBUM
                )
                for name in self._store.list_albums()
            ]

    def create_album(self, name: str) -> OpResult[AlbumSummary]:
        """Create an empty album from a free-form display name."""
        album = sanitize_album_name(name)
        if not album:
            logger.warning("Create album rejected, empty name after sanitizing: {!r}", name)
            return OpResult.failure(ErrorKind.INVALID_INPUT, f"Album name is empty: {name!r}")
        with self._lock:
            if self._store.album_exists(album):
                logger.warning("Create album rejected, already exists: {}", album)
                return OpResult.failure(ErrorKind.CONFLICT, f"Album already exists: {album}")
            try:
                self._store.make_dir(album)
            except FileExistsError:
                return OpResult.failure(ErrorKind.CONFLICT, f"Album already exists: {album}")
            except OSError as ex:
                logger.error("Create album failed: {} ({})", album, ex)
                return OpResult.failure(ErrorKind.IO_FAILURE, f"Cannot create album {album}: {ex}")
            logger.info("Album created: {}", album)
            return OpResult.success(
                AlbumSummary(name=album, photo_count=0, is_default=album == DEFAULT_ALBUM)
            )

    def delete_album(self, name: str) -> OpResult[str]:
        """Remove an album directory that no record and no file uses."""
        with self._lock:
            if name == DEFAULT_ALBUM:
                logger.warning("Delete album rejected, default album")
                return OpResult.failure(
                    ErrorKind.PRECONDITION_FAILED, "Cannot delete the default album"
                )
            if not is_safe_segment(name) or not self._store.album_exists(name):
                return OpResult.failure(ErrorKind.NOT_FOUND, f"Album not found: {name}")
            count = self._index.count_by_album().get(name, 0)
            if count:
                logger.warning("Delete album rejected, {} has {} photo(s)", name, count)
                return OpResult.failure(
                    ErrorKind.PRECONDITION_FAILED, f"Album {name} has photos ({count})"
                )
            try:
                leftovers = self._store.list_dir(name)
            except OSError as ex:
                logger.error("Cannot list album {}: {}", name, ex)
                return OpResult.failure(ErrorKind.IO_FAILURE, f"Cannot read album {name}: {ex}")
            if leftovers:
                logger.warning("Delete album rejected, {} holds {} file(s)", name, len(leftovers))
                return OpResult.failure(
                    ErrorKind.PRECONDITION_FAILED, f"Album directory is not empty: {name}"
                )
            try:
                self._store.remove_dir(name)
            except OSError as ex:
                logger.error("Delete album failed: {} ({})", name, ex)
                return OpResult.failure(ErrorKind.IO_FAILURE, f"Cannot delete album {name}: {ex}")
            logger.info("Album deleted: {}", name)
            return OpResult.success(name)

    def resolve(self, requested: str | None) -> OpResult[str]:
        """Map a requested album name to its directory name; empty means default."""
        if requested is None or not str(requested).strip():
            return OpResult.success(DEFAULT_ALBUM)
        album = sanitize_album_name(str(requested))
        if not album:
            return OpResult.failure(
                ErrorKind.INVALID_INPUT, f"Album name is empty: {requested!r}"
            )
        return OpResult.success(album)

    def ensure(self, album: str) -> OpResult[str]:
        """Create the album directory if missing."""
        try:
            self._store.ensure_dir(album)
        except OSError as ex:
            logger.error("Cannot create album directory {}: {}", album, ex)
            return OpResult.failure(ErrorKind.IO_FAILURE, f"Cannot create album {album}: {ex}")
        return OpResult.success(album)
