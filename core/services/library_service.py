"""Consistency engine keeping the metadata index and the photo files in step.

Every mutating operation follows the same order: validate against the
current index, apply the filesystem change, and only then commit a new
index snapshot. When the commit fails, the filesystem change is reverted
so that the snapshot on disk always matches the last fully applied change.
All operations run under one library-wide lock.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import replace
import threading
from typing import Any

from loguru import logger

from core.models import (
    BACKUP_SUFFIX,
    DEFAULT_ALBUM,
    EDITABLE_FIELDS,
    AlbumSummary,
    BackupRef,
    CropRect,
    PhotoRecord,
)
from core.services.album_service import AlbumService
from core.services.filename_policy import (
    DELETE_SUFFIX,
    TEMP_SUFFIX,
    TokenMinter,
    derive_filename,
    extract_token,
    file_extension,
    is_valid_date,
    staged_delete_name,
    temp_name,
)
from core.services.interfaces import (
    ErrorKind,
    HealthReport,
    IBlobStore,
    IImageProcessor,
    ImageProcessingError,
    IngestItem,
    IngestResult,
    OpResult,
    UpdateResult,
    UploadFile,
)
from core.services.photo_index import PhotoIndex
from infrastructure.utils import guess_mimetype, today_iso, utc_timestamp


def _text(value: Any) -> str:
    return "" if value is None else str(value)


class PhotoLibrary:
    """Photo operations over a blob store, a metadata index and an image processor."""

    def __init__(
        self,
        store: IBlobStore,
        index: PhotoIndex,
        processor: IImageProcessor,
        minter: TokenMinter | None = None,
    ) -> None:
        """Create the library and make sure the default album exists.

        Args:
            store: Blob storage addressed by (album, name).
            index: Loaded metadata index; the library is its only writer.
            processor: Image normalizer/cropper.
            minter: Token source for new filenames (defaults to epoch millis).
        """
        self._store = store
        self._index = index
        self._processor = processor
        self._minter = minter or TokenMinter()
        self._lock = threading.RLock()
        self.albums = AlbumService(store, index, self._lock)
        self._store.ensure_dir(DEFAULT_ALBUM)

    # Reads
    def list_photos(self) -> list[PhotoRecord]:
        """Copies of all records in upload order."""
        with self._lock:
            return self._index.records()

    def get_photo(self, filename: str) -> OpResult[PhotoRecord]:
        with self._lock:
            record = self._index.find(filename)
        if record is None:
            return OpResult.failure(ErrorKind.NOT_FOUND, f"Photo not found: {filename}")
        return OpResult.success(record)

    def has_backup(self, filename: str) -> bool:
        """True if the indexed photo `filename` has a crop sidecar beside it."""
        with self._lock:
            record = self._index.find(filename)
            if record is None:
                return False
            return self._store.exists(record.album, BackupRef(record.album, filename).name)

    # Albums
    def list_albums(self) -> list[AlbumSummary]:
        return self.albums.list_albums()

    def create_album(self, name: str) -> OpResult[AlbumSummary]:
        return self.albums.create_album(name)

    def delete_album(self, name: str) -> OpResult[str]:
        return self.albums.delete_album(name)

    # Ingest
    def ingest(
        self, files: Sequence[UploadFile], fields: Mapping[str, Any] | None = None
    ) -> OpResult[IngestResult]:
        """Store uploaded files and append one record per stored file.

        Files are processed independently; a normalization failure degrades
        that file to its raw bytes and a write failure skips only that file.
        The index is committed once after the whole batch.
        """
        fields = dict(fields or {})
        if not files:
            return OpResult.failure(ErrorKind.INVALID_INPUT, "No files uploaded")
        date = _text(fields.get("date")) or today_iso()
        if not is_valid_date(date):
            return OpResult.failure(ErrorKind.INVALID_INPUT, f"Invalid date: {date!r}")

        with self._lock:
            resolved = self.albums.resolve(fields.get("album"))
            if not resolved.ok:
                return OpResult.failure(resolved.error, resolved.reason)
            ensured = self.albums.ensure(resolved.value)
            if not ensured.ok:
                return OpResult.failure(ensured.error, ensured.reason)
            album = resolved.value

            result = IngestResult()
            new_records: list[PhotoRecord] = []
            taken = self._index.filenames()
            for upload in files:
                item, record = self._store_upload(upload, album, date, fields, taken)
                result.items.append(item)
                if record is not None:
                    new_records.append(record)
                    taken.add(record.filename)

            if new_records:
                try:
                    self._index.commit(self._index.with_appended(new_records))
                except OSError as ex:
                    logger.error("Index commit failed after upload, removing files: {}", ex)
                    for record in new_records:
                        self._discard(record.album, record.filename)
                    return OpResult.failure(ErrorKind.IO_FAILURE, f"Cannot save index: {ex}")

            result.photos = [replace(r) for r in new_records]
            logger.info(
                "Uploaded {} of {} file(s) into album {}",
                result.success_count,
                len(files),
                album,
            )
            return OpResult.success(result)

    def _store_upload(
        self,
        upload: UploadFile,
        album: str,
        date: str,
        fields: Mapping[str, Any],
        taken: set[str],
    ) -> tuple[IngestItem, PhotoRecord | None]:
        title = _text(fields.get("title"))
        original_name = upload.original_name or ""
        try:
            data = self._processor.normalize(upload.data)
            extension = ""
            mimetype = "image/jpeg"
            degraded = False
        except ImageProcessingError as ex:
            logger.warning(
                "Processing failed for {}, keeping original bytes: {}", original_name, ex
            )
            data = upload.data
            extension = file_extension(original_name)
            mimetype = upload.mimetype or guess_mimetype(original_name)
            degraded = True

        filename = derive_filename(date, title, self._minter.next(), extension)
        while filename in taken or self._store.exists(album, filename):
            filename = derive_filename(date, title, self._minter.next(), extension)

        try:
            self._store.write_file(album, filename, data)
        except OSError as ex:
            logger.error("Write failed for {} -> {}/{}: {}", original_name, album, filename, ex)
            self._discard(album, filename)
            return IngestItem(original_name=original_name, error=f"Write failed: {ex}"), None

        record = PhotoRecord(
            filename=filename,
            original_name=original_name,
            title=title,
            date=date,
            location=_text(fields.get("location")),
            tags=_text(fields.get("tags")),
            description=_text(fields.get("description")),
            album=album,
            uploaded_at=utc_timestamp(),
            size=len(data),
            mimetype=mimetype,
        )
        item = IngestItem(original_name=original_name, filename=filename, degraded=degraded)
        return item, record

    # Metadata
    def update_photo(self, filename: str, fields: Mapping[str, Any]) -> OpResult[UpdateResult]:
        """Overwrite the editable fields present in `fields`.

        A changed date renames the file in place, keeping the filename token
        and extension. The rename happens first; if it fails nothing changes.
        """
        changes = {k: _text(v) for k, v in (fields or {}).items() if k in EDITABLE_FIELDS}
        with self._lock:
            record = self._index.find(filename)
            if record is None:
                return OpResult.failure(ErrorKind.NOT_FOUND, f"Photo not found: {filename}")

            new_filename = record.filename
            date_changed = "date" in changes and changes["date"] != record.date
            if date_changed:
                if not is_valid_date(changes["date"]):
                    return OpResult.failure(
                        ErrorKind.INVALID_INPUT, f"Invalid date: {changes['date']!r}"
                    )
                new_filename = self._filename_for_date(record, changes["date"])
                if new_filename != record.filename:
                    moved = self._relocate(record, record.album, new_filename)
                    if not moved.ok:
                        return OpResult.failure(moved.error, moved.reason)

            updated = replace(record, filename=new_filename, **changes)
            try:
                self._index.commit(self._index.with_replaced(record.filename, updated))
            except OSError as ex:
                logger.error("Index commit failed after edit of {}: {}", filename, ex)
                if new_filename != record.filename:
                    self._undo_relocate(record, record.album, new_filename)
                return OpResult.failure(ErrorKind.IO_FAILURE, f"Cannot save index: {ex}")

            if new_filename != record.filename:
                logger.info("Photo renamed on date change: {} -> {}", filename, new_filename)
            logger.info("Photo updated: {} ({})", new_filename, ", ".join(sorted(changes)))
            return OpResult.success(UpdateResult(photo=replace(updated), new_filename=new_filename))

    def _filename_for_date(self, record: PhotoRecord, date: str) -> str:
        token = extract_token(record.filename)
        if token is None:
            token = self._minter.next()
        extension = file_extension(record.filename)
        return derive_filename(date, record.title, token, extension)

    # Albums membership
    def move_photo(self, filename: str, target_album: str) -> OpResult[PhotoRecord]:
        """Move a photo (and its sidecar) into another album directory."""
        with self._lock:
            record = self._index.find(filename)
            if record is None:
                return OpResult.failure(ErrorKind.NOT_FOUND, f"Photo not found: {filename}")
            if not target_album or not str(target_album).strip():
                return OpResult.failure(ErrorKind.INVALID_INPUT, "Target album is required")
            resolved = self.albums.resolve(target_album)
            if not resolved.ok:
                return OpResult.failure(resolved.error, resolved.reason)
            album = resolved.value
            if album == record.album:
                return OpResult.failure(
                    ErrorKind.PRECONDITION_FAILED, f"Photo {filename} is already in album {album}"
                )
            ensured = self.albums.ensure(album)
            if not ensured.ok:
                return OpResult.failure(ensured.error, ensured.reason)

            moved = self._relocate(record, album, record.filename)
            if not moved.ok:
                return OpResult.failure(moved.error, moved.reason)

            updated = replace(record, album=album)
            try:
                self._index.commit(self._index.with_replaced(record.filename, updated))
            except OSError as ex:
                logger.error("Index commit failed after move of {}: {}", filename, ex)
                self._undo_relocate(record, album, record.filename)
                return OpResult.failure(ErrorKind.IO_FAILURE, f"Cannot save index: {ex}")

            logger.info("Photo moved: {} {} -> {}", filename, record.album, album)
            return OpResult.success(replace(updated))

    def _relocate(self, record: PhotoRecord, dst_album: str, dst_name: str) -> OpResult[None]:
        """Move the photo file and its sidecar, if any, to (dst_album, dst_name)."""
        src_album, src_name = record.album, record.filename
        if self._store.exists(dst_album, dst_name):
            logger.warning("Name collision at {}/{}", dst_album, dst_name)
            return OpResult.failure(
                ErrorKind.CONFLICT, f"A file named {dst_name} already exists in album {dst_album}"
            )
        if not self._store.exists(src_album, src_name):
            logger.error("Photo file missing: {}/{}", src_album, src_name)
            return OpResult.failure(
                ErrorKind.IO_FAILURE, f"Photo file missing: {src_album}/{src_name}"
            )
        try:
            self._store.move_file(src_album, src_name, dst_album, dst_name)
        except OSError as ex:
            logger.error(
                "Rename failed {}/{} -> {}/{}: {}", src_album, src_name, dst_album, dst_name, ex
            )
            return OpResult.failure(ErrorKind.IO_FAILURE, f"Failed to rename file: {ex}")

        src_backup = BackupRef(src_album, src_name)
        if self._store.exists(src_album, src_backup.name):
            dst_backup = BackupRef(dst_album, dst_name)
            try:
                self._store.move_file(src_album, src_backup.name, dst_album, dst_backup.name)
            except OSError as ex:
                logger.error("Backup move failed for {}: {}", src_name, ex)
                self._move_back(dst_album, dst_name, src_album, src_name)
                return OpResult.failure(ErrorKind.IO_FAILURE, f"Failed to move backup: {ex}")
        return OpResult.success()

    def _undo_relocate(self, record: PhotoRecord, dst_album: str, dst_name: str) -> None:
        self._move_back(dst_album, dst_name, record.album, record.filename)
        dst_backup = BackupRef(dst_album, dst_name)
        if self._store.exists(dst_album, dst_backup.name):
            src_backup = BackupRef(record.album, record.filename)
            self._move_back(dst_album, dst_backup.name, src_backup.album, src_backup.name)

    def _move_back(self, src_album: str, src_name: str, dst_album: str, dst_name: str) -> None:
        try:
            self._store.move_file(src_album, src_name, dst_album, dst_name)
        except OSError as ex:
            logger.error(
                "Could not revert {}/{} -> {}/{}: {}", src_album, src_name, dst_album, dst_name, ex
            )

    # Crop / restore
    def crop_photo(
        self, filename: str, rect: CropRect | Mapping[str, Any] | None
    ) -> OpResult[PhotoRecord]:
        """Crop a photo in place, keeping its pre-first-crop bytes as a sidecar."""
        with self._lock:
            record = self._index.find(filename)
            if record is None:
                return OpResult.failure(ErrorKind.NOT_FOUND, f"Photo not found: {filename}")
            try:
                crop = rect if isinstance(rect, CropRect) else CropRect.from_mapping(rect or {})
                crop.validate()
            except ValueError as ex:
                return OpResult.failure(ErrorKind.INVALID_INPUT, f"Invalid crop rectangle: {ex}")

            album, name = record.album, record.filename
            if not self._store.exists(album, name):
                return OpResult.failure(
                    ErrorKind.IO_FAILURE, f"Photo file missing: {album}/{name}"
                )
            try:
                data = self._store.read_file(album, name)
                width, height = self._processor.dimensions(data)
            except (OSError, ImageProcessingError) as ex:
                logger.error("Cannot read {}/{} for crop: {}", album, name, ex)
                return OpResult.failure(ErrorKind.IO_FAILURE, f"Cannot read photo: {ex}")
            if not crop.fits_within(width, height):
                return OpResult.failure(
                    ErrorKind.INVALID_INPUT,
                    f"Crop rectangle {crop.box} exceeds image size {width}x{height}",
                )

            backup = BackupRef(album, name)
            created_backup = False
            if not self._store.exists(album, backup.name):
                try:
                    self._store.copy_file(album, name, album, backup.name)
                except OSError as ex:
                    logger.error("Backup failed for {}/{}: {}", album, name, ex)
                    self._discard(album, backup.name)
                    return OpResult.failure(ErrorKind.IO_FAILURE, f"Cannot create backup: {ex}")
                created_backup = True

            tmp = temp_name(name)
            try:
                cropped = self._processor.crop(data, crop.box)
                self._store.write_file(album, tmp, cropped)
                self._store.replace_file(album, tmp, name)
            except (OSError, ImageProcessingError) as ex:
                logger.error("Crop failed for {}/{}: {}", album, name, ex)
                self._discard(album, tmp)
                if created_backup:
                    self._discard(album, backup.name)
                return OpResult.failure(ErrorKind.IO_FAILURE, f"Crop failed: {ex}")

            logger.info("Photo cropped: {}/{} to {}", album, name, crop.box)
            return OpResult.success(record)

    def restore_photo(self, filename: str) -> OpResult[PhotoRecord]:
        """Put the sidecar bytes back and drop the sidecar (single-level undo)."""
        with self._lock:
            record = self._index.find(filename)
            if record is None:
                return OpResult.failure(ErrorKind.NOT_FOUND, f"Photo not found: {filename}")
            album, name = record.album, record.filename
            backup = BackupRef(album, name)
            if not self._store.exists(album, backup.name):
                return OpResult.failure(
                    ErrorKind.PRECONDITION_FAILED, f"No backup available for {filename}"
                )
            tmp = temp_name(name)
            try:
                self._store.copy_file(album, backup.name, album, tmp)
                self._store.replace_file(album, tmp, name)
            except OSError as ex:
                logger.error("Restore failed for {}/{}: {}", album, name, ex)
                self._discard(album, tmp)
                return OpResult.failure(ErrorKind.IO_FAILURE, f"Restore failed: {ex}")
            try:
                self._store.delete_file(album, backup.name)
            except OSError as ex:
                logger.warning("Restored {} but backup was not removed: {}", filename, ex)

            logger.info("Photo restored from backup: {}/{}", album, name)
            return OpResult.success(record)

    # Deletion
    def delete_photo(self, filename: str) -> OpResult[PhotoRecord]:
        """Remove the photo file and its record; a missing file is tolerated."""
        with self._lock:
            record = self._index.find(filename)
            if record is None:
                return OpResult.failure(ErrorKind.NOT_FOUND, f"Photo not found: {filename}")
            album, name = record.album, record.filename
            staged = staged_delete_name(name)
            had_file = self._store.exists(album, name)
            if had_file:
                try:
                    self._store.delete_file(album, staged)
                    self._store.move_file(album, name, album, staged)
                except OSError as ex:
                    logger.error("Delete failed for {}/{}: {}", album, name, ex)
                    return OpResult.failure(ErrorKind.IO_FAILURE, f"Cannot delete file: {ex}")
            else:
                logger.warning("Deleting record without file: {}/{}", album, name)

            try:
                self._index.commit(self._index.with_removed(name))
            except OSError as ex:
                logger.error("Index commit failed after delete of {}: {}", name, ex)
                if had_file:
                    self._move_back(album, staged, album, name)
                return OpResult.failure(ErrorKind.IO_FAILURE, f"Cannot save index: {ex}")

            if had_file:
                try:
                    self._store.delete_file(album, staged)
                except OSError as ex:
                    logger.error("Staged file left behind {}/{}: {}", album, staged, ex)
            logger.info("Photo deleted: {}/{}", album, name)
            return OpResult.success(record)

    # Diagnostics
    def check_health(self) -> HealthReport:
        """Compare index and files without changing either."""
        with self._lock:
            report = HealthReport()
            known: set[tuple[str, str]] = set()
            for record in self._index.records():
                known.add((record.album, record.filename))
                if not self._store.exists(record.album, record.filename):
                    report.dangling_records.append(record.filename)

            for album in self._store.list_albums():
                for name in self._store.list_dir(album):
                    if name.endswith(BACKUP_SUFFIX):
                        if (album, name[: -len(BACKUP_SUFFIX)]) not in known:
                            report.orphan_backups.append((album, name))
                    elif name.endswith((TEMP_SUFFIX, DELETE_SUFFIX)):
                        report.stale_temp_files.append((album, name))
                    elif (album, name) not in known:
                        report.orphan_files.append((album, name))

            if not report.is_healthy:
                logger.warning(
                    "Health check: {} dangling, {} orphan files, {} orphan backups, {} temp",
                    len(report.dangling_records),
                    len(report.orphan_files),
                    len(report.orphan_backups),
                    len(report.stale_temp_files),
                )
            return report

    def _discard(self, album: str, name: str) -> None:
        """Best-effort removal of a file this library just wrote."""
        try:
            self._store.delete_file(album, name)
        except OSError as ex:
            logger.error("Cleanup failed for {}/{}: {}", album, name, ex)
