"""Core service interfaces and shared result structures.

This module defines the outcome type returned by every library operation,
the result payloads of the multi-file operations, and the narrow protocols
the consistency engine depends on (blob storage, image processing, index
persistence) so that the engine can run against fakes in tests.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, Protocol, TypeVar

from core.models import PhotoRecord

T = TypeVar("T")


class ErrorKind(Enum):
    """Failure categories surfaced to callers."""

    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID_INPUT = "invalid_input"
    PRECONDITION_FAILED = "precondition_failed"
    IO_FAILURE = "io_failure"


@dataclass
class OpResult(Generic[T]):
    """Discriminated outcome of a library operation.

    Attributes:
        ok: True when the operation was fully applied.
        value: Operation payload on success.
        error: Failure category when `ok` is False.
        reason: Human readable detail naming the photo/album and the
            precondition that failed.
    """

    ok: bool
    value: T | None = None
    error: ErrorKind | None = None
    reason: str = ""

    @classmethod
    def success(cls, value: T | None = None) -> OpResult[T]:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: ErrorKind, reason: str) -> OpResult[T]:
        return cls(ok=False, error=error, reason=reason)


@dataclass
class UploadFile:
    """Raw uploaded file as handed over by the transport layer."""

    data: bytes
    original_name: str = ""
    mimetype: str = ""


@dataclass
class IngestItem:
    """Per-file outcome of an ingest batch.

    Attributes:
        original_name: Name the file was uploaded with.
        filename: Stored filename, or None if the file could not be stored.
        degraded: True if normalization failed and the raw bytes were kept.
        error: Failure reason when `filename` is None.
    """

    original_name: str
    filename: str | None = None
    degraded: bool = False
    error: str | None = None


@dataclass
class IngestResult:
    """Outcome of an ingest batch."""

    items: list[IngestItem] = field(default_factory=list)
    photos: list[PhotoRecord] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for item in self.items if item.filename)

    @property
    def filenames(self) -> list[str]:
        return [item.filename for item in self.items if item.filename]

    @property
    def message(self) -> str:
        return f"{self.success_count} photo(s) uploaded successfully"


@dataclass
class UpdateResult:
    """Outcome of a metadata edit; `new_filename` differs after a date rename."""

    photo: PhotoRecord
    new_filename: str


@dataclass
class HealthReport:
    """Read-only comparison of the index against the files on disk.

    Attributes:
        dangling_records: Filenames of records whose file is missing.
        orphan_files: (album, name) of files no record references.
        orphan_backups: (album, name) of sidecars without an owning record.
        stale_temp_files: (album, name) of leftover in-flight files.
    """

    dangling_records: list[str] = field(default_factory=list)
    orphan_files: list[tuple[str, str]] = field(default_factory=list)
    orphan_backups: list[tuple[str, str]] = field(default_factory=list)
    stale_temp_files: list[tuple[str, str]] = field(default_factory=list)

    @property
    def is_healthy(self) -> bool:
        return not (
            self.dangling_records
            or self.orphan_files
            or self.orphan_backups
            or self.stale_temp_files
        )


class ImageProcessingError(Exception):
    """Raised when image bytes cannot be decoded, transformed or encoded."""


class IBlobStore(Protocol):
    """Key-value-by-path storage of photo bytes, keyed by (album, name)."""

    def ensure_dir(self, album: str) -> None:
        """Create the album directory if it does not exist."""
        ...

    def make_dir(self, album: str) -> None:
        """Create the album directory; raise `FileExistsError` if it exists."""
        ...

    def album_exists(self, album: str) -> bool:
        """True if the album directory exists."""
        ...

    def list_albums(self) -> list[str]:
        """Return album directory names."""
        ...

    def list_dir(self, album: str) -> list[str]:
        """Return names of regular files inside the album directory."""
        ...

    def remove_dir(self, album: str) -> None:
        """Remove an empty album directory."""
        ...

    def exists(self, album: str, name: str) -> bool:
        """True if the file exists."""
        ...

    def read_file(self, album: str, name: str) -> bytes:
        """Return the file's bytes."""
        ...

    def write_file(self, album: str, name: str, data: bytes) -> None:
        """Create or overwrite the file."""
        ...

    def copy_file(self, src_album: str, src_name: str, dst_album: str, dst_name: str) -> None:
        """Copy bytes, overwriting the destination."""
        ...

    def move_file(self, src_album: str, src_name: str, dst_album: str, dst_name: str) -> None:
        """Rename a file, possibly across album directories."""
        ...

    def replace_file(self, album: str, src_name: str, dst_name: str) -> None:
        """Atomically replace `dst_name` with `src_name` inside one album."""
        ...

    def delete_file(self, album: str, name: str, missing_ok: bool = True) -> None:
        """Remove the file."""
        ...


class IImageProcessor(Protocol):
    """Image transformations used by ingest and crop.

    Every method raises `ImageProcessingError` on failure.
    """

    def normalize(self, data: bytes) -> bytes:
        """Return JPEG bytes with EXIF orientation applied."""
        ...

    def dimensions(self, data: bytes) -> tuple[int, int]:
        """Return (width, height) of the stored image."""
        ...

    def crop(self, data: bytes, box: tuple[int, int, int, int]) -> bytes:
        """Return the cropped image encoded in the source format."""
        ...


class IPhotoRepository(Protocol):
    """Snapshot persistence of the metadata index."""

    def load(self, path: str) -> Iterator[PhotoRecord]:
        """Yield records stored at `path`."""
        ...

    def save(self, path: str, records: Iterable[PhotoRecord]) -> None:
        """Write all records to `path`, replacing its content."""
        ...
