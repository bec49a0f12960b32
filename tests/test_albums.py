from __future__ import annotations

from core.services.interfaces import ErrorKind


def test_default_album_exists_from_the_start(library):
    albums = library.list_albums()
    assert [a.to_dict() for a in albums] == [
        {"name": "default", "photoCount": 0, "isDefault": True}
    ]


def test_list_albums_counts_records(library, upload_one):
    upload_one()
    upload_one(album="trip")
    upload_one(album="trip")
    library.create_album("Empty One")

    summary = {a.name: (a.photo_count, a.is_default) for a in library.list_albums()}

    assert summary == {
        "default": (1, True),
        "empty-one": (0, False),
        "trip": (2, False),
    }
    assert [a.name for a in library.list_albums()] == ["default", "empty-one", "trip"]


def test_create_album_sanitizes_name(library, store):
    result = library.create_album("Summer 2024!")

    assert result.ok
    assert result.value.name == "summer-2024"
    assert result.value.photo_count == 0
    assert store.album_exists("summer-2024")


def test_create_album_twice_is_a_conflict(library):
    library.create_album("trip")
    assert library.create_album("Trip").error is ErrorKind.CONFLICT


def test_create_album_with_unusable_name_is_invalid(library):
    assert library.create_album("***").error is ErrorKind.INVALID_INPUT


def test_create_album_io_failure(library, store):
    store.failing.add("make_dir")
    assert library.create_album("trip").error is ErrorKind.IO_FAILURE


def test_default_album_cannot_be_deleted(library, store):
    result = library.delete_album("default")
    assert result.error is ErrorKind.PRECONDITION_FAILED
    assert store.album_exists("default")


def test_delete_missing_album_is_not_found(library):
    assert library.delete_album("nowhere").error is ErrorKind.NOT_FOUND
    assert library.delete_album("../etc").error is ErrorKind.NOT_FOUND


def test_album_with_photos_is_not_deleted(library, store, upload_one):
    photo = upload_one(album="vacation")

    result = library.delete_album("vacation")

    assert result.error is ErrorKind.PRECONDITION_FAILED
    assert "has photos" in result.reason
    assert store.list_dir("vacation") == [photo.filename]


def test_album_with_stray_files_is_not_deleted(library, store):
    library.create_album("trip")
    store.write_file("trip", "notes.txt", b"hello")

    result = library.delete_album("trip")

    assert result.error is ErrorKind.PRECONDITION_FAILED
    assert store.exists("trip", "notes.txt")


def test_delete_empty_album(library, store):
    library.create_album("trip")

    result = library.delete_album("trip")

    assert result.ok
    assert result.value == "trip"
    assert not store.album_exists("trip")
    assert [a.name for a in library.list_albums()] == ["default"]


def test_album_emptied_by_moves_can_be_deleted(library, upload_one):
    photo = upload_one(album="trip")
    library.move_photo(photo.filename, "default")

    assert library.delete_album("trip").ok
