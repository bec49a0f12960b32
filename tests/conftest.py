from __future__ import annotations

import pytest

from core.services.filename_policy import TokenMinter
from core.services.interfaces import UploadFile
from core.services.library_service import PhotoLibrary
from core.services.photo_index import PhotoIndex
from fakes import FakeImageProcessor, InMemoryBlobStore, MemoryRepository, fake_image
from infrastructure.blob_store import LocalBlobStore
from infrastructure.image_service import ImageService
from infrastructure.json_repository import JsonPhotoRepository

FIXED_CLOCK = 1_700_000_000.0


@pytest.fixture
def store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def repo() -> MemoryRepository:
    return MemoryRepository()


@pytest.fixture
def processor() -> FakeImageProcessor:
    return FakeImageProcessor()


@pytest.fixture
def library(store, repo, processor) -> PhotoLibrary:
    index = PhotoIndex(repo, "metadata.json")
    return PhotoLibrary(store, index, processor, minter=TokenMinter(clock=lambda: FIXED_CLOCK))


@pytest.fixture
def upload_one(library):
    """Upload a single fake image and return its record."""

    def _upload(album: str | None = None, title: str = "Lake Trip", date: str = "2024-01-05"):
        fields = {"title": title, "date": date}
        if album is not None:
            fields["album"] = album
        result = library.ingest([UploadFile(fake_image(100, 80), "lake.png", "image/png")], fields)
        assert result.ok, result.reason
        return result.value.photos[0]

    return _upload


@pytest.fixture
def disk_library(tmp_path) -> PhotoLibrary:
    """Library on a real directory with the JSON index and Pillow processing."""
    root = tmp_path / "photos"
    store = LocalBlobStore(root)
    index = PhotoIndex(JsonPhotoRepository(), str(root / "metadata.json"))
    return PhotoLibrary(store, index, ImageService())
