from __future__ import annotations

from core.services.interfaces import ErrorKind


def test_move_relocates_file_and_updates_album(library, store, upload_one):
    photo = upload_one()

    result = library.move_photo(photo.filename, "Road Trip")

    assert result.ok
    assert result.value.album == "road-trip"
    assert result.value.filename == photo.filename
    assert store.exists("road-trip", photo.filename)
    assert not store.exists("default", photo.filename)
    assert library.get_photo(photo.filename).value.album == "road-trip"


def test_move_unknown_photo_is_not_found(library):
    assert library.move_photo("nope.jpg", "trip").error is ErrorKind.NOT_FOUND


def test_move_to_empty_album_is_invalid(library, upload_one):
    photo = upload_one()
    assert library.move_photo(photo.filename, "  ").error is ErrorKind.INVALID_INPUT


def test_move_to_same_album_is_rejected(library, repo, upload_one):
    photo = upload_one(album="trip")
    saves = repo.save_count

    result = library.move_photo(photo.filename, "trip")

    assert result.error is ErrorKind.PRECONDITION_FAILED
    assert repo.save_count == saves


def test_move_collision_leaves_everything_in_place(library, store, upload_one):
    photo = upload_one()
    store.ensure_dir("trip")
    store.write_file("trip", photo.filename, b"someone else")

    result = library.move_photo(photo.filename, "trip")

    assert result.error is ErrorKind.CONFLICT
    assert store.exists("default", photo.filename)
    assert store.read_file("trip", photo.filename) == b"someone else"
    assert library.get_photo(photo.filename).value.album == "default"


def test_move_with_missing_file_fails(library, store, upload_one):
    photo = upload_one()
    store.delete_file("default", photo.filename)

    result = library.move_photo(photo.filename, "trip")

    assert result.error is ErrorKind.IO_FAILURE
    assert library.get_photo(photo.filename).value.album == "default"


def test_index_failure_moves_file_back(library, store, repo, upload_one):
    photo = upload_one()
    repo.fail_saves = True

    result = library.move_photo(photo.filename, "trip")

    assert result.error is ErrorKind.IO_FAILURE
    assert store.exists("default", photo.filename)
    assert store.list_dir("trip") == []
    assert library.get_photo(photo.filename).value.album == "default"


def test_backup_moves_with_photo(library, store, upload_one):
    photo = upload_one()
    library.crop_photo(photo.filename, {"x": 0, "y": 0, "width": 50, "height": 40})

    assert library.move_photo(photo.filename, "trip").ok

    assert store.list_dir("trip") == [photo.filename, photo.filename + ".backup"]
    assert store.list_dir("default") == []
    assert library.has_backup(photo.filename)


def test_backup_move_failure_rolls_back_photo(library, store, upload_one, monkeypatch):
    photo = upload_one()
    library.crop_photo(photo.filename, {"x": 0, "y": 0, "width": 50, "height": 40})
    original_move = store.move_file

    def move_photo_only(src_album, src_name, dst_album, dst_name):
        if src_name.endswith(".backup"):
            raise OSError("backup locked")
        original_move(src_album, src_name, dst_album, dst_name)

    monkeypatch.setattr(store, "move_file", move_photo_only)

    result = library.move_photo(photo.filename, "trip")

    assert result.error is ErrorKind.IO_FAILURE
    assert store.list_dir("default") == [photo.filename, photo.filename + ".backup"]
    assert store.list_dir("trip") == []
