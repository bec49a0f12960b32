"""Core domain models for photo records, albums, crops and backups."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

DEFAULT_ALBUM = "default"
BACKUP_SUFFIX = ".backup"

EDITABLE_FIELDS = ("title", "date", "location", "tags", "description")


def _size(value: Any) -> int:
    try:
        return max(0, int(value or 0))
    except (TypeError, ValueError, OverflowError):
        return 0


@dataclass
class PhotoRecord:
    """A single photo entry of the metadata index."""

    filename: str
    original_name: str = ""
    title: str = ""
    date: str = ""
    location: str = ""
    tags: str = ""
    description: str = ""
    album: str = DEFAULT_ALBUM
    uploaded_at: str = ""
    size: int = 0
    mimetype: str = "image/jpeg"

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON representation using the index field names."""
        return {
            "filename": self.filename,
            "originalName": self.original_name,
            "title": self.title,
            "date": self.date,
            "location": self.location,
            "tags": self.tags,
            "description": self.description,
            "album": self.album,
            "uploadedAt": self.uploaded_at,
            "size": self.size,
            "mimetype": self.mimetype,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PhotoRecord:
        """Build a record from an index entry.

        A `size` that cannot be read as an integer becomes 0.

        Raises:
            KeyError: If `filename` is missing.
            ValueError: If `filename` is empty.
        """
        filename = str(data["filename"])
        if not filename:
            raise ValueError("empty filename")
        return cls(
            filename=filename,
            original_name=str(data.get("originalName") or ""),
            title=str(data.get("title") or ""),
            date=str(data.get("date") or ""),
            location=str(data.get("location") or ""),
            tags=str(data.get("tags") or ""),
            description=str(data.get("description") or ""),
            album=str(data.get("album") or DEFAULT_ALBUM),
            uploaded_at=str(data.get("uploadedAt") or ""),
            size=_size(data.get("size")),
            mimetype=str(data.get("mimetype") or "image/jpeg"),
        )


@dataclass
class AlbumSummary:
    """Derived view of an album directory."""

    name: str
    photo_count: int
    is_default: bool

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "photoCount": self.photo_count, "isDefault": self.is_default}


@dataclass(frozen=True)
class CropRect:
    """Crop rectangle in stored-image pixel coordinates."""

    x: int
    y: int
    width: int
    height: int

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> CropRect:
        """Parse a rectangle from a request-like mapping.

        All four keys are required. Values may be ints or integral strings/floats.

        Raises:
            ValueError: If a key is missing or a value is not an integer.
        """
        values: dict[str, int] = {}
        for key in ("x", "y", "width", "height"):
            raw = data.get(key)
            if raw is None or raw == "" or isinstance(raw, bool):
                raise ValueError(f"missing crop value: {key}")
            try:
                number = float(raw)
            except (TypeError, ValueError) as ex:
                raise ValueError(f"crop value {key} is not a number: {raw!r}") from ex
            if not number.is_integer():
                raise ValueError(f"crop value {key} is not an integer: {raw!r}")
            values[key] = int(number)
        return cls(**values)

    def validate(self) -> None:
        """Check sign constraints; bounds are checked against the image later."""
        if self.x < 0 or self.y < 0:
            raise ValueError("crop origin must not be negative")
        if self.width <= 0 or self.height <= 0:
            raise ValueError("crop width and height must be positive")

    def fits_within(self, width: int, height: int) -> bool:
        """True if the rectangle lies fully inside an image of the given size."""
        return self.x + self.width <= width and self.y + self.height <= height

    @property
    def box(self) -> tuple[int, int, int, int]:
        """(left, upper, right, lower) box as used by Pillow."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)


@dataclass(frozen=True)
class BackupRef:
    """The single pre-crop sidecar belonging to a photo."""

    album: str
    filename: str

    @property
    def name(self) -> str:
        """On-disk sidecar file name, stored beside the photo."""
        return self.filename + BACKUP_SUFFIX
