from __future__ import annotations

from core.services.interfaces import ErrorKind, UploadFile
from fakes import make_jpeg


def test_delete_removes_file_and_record(library, store, upload_one):
    photo = upload_one()

    result = library.delete_photo(photo.filename)

    assert result.ok
    assert result.value.filename == photo.filename
    assert store.list_dir(photo.album) == []
    assert library.list_photos() == []


def test_delete_tolerates_missing_file(library, store, upload_one):
    photo = upload_one()
    store.delete_file(photo.album, photo.filename)

    assert library.delete_photo(photo.filename).ok
    assert library.get_photo(photo.filename).error is ErrorKind.NOT_FOUND


def test_delete_unknown_photo_is_not_found(library):
    assert library.delete_photo("nope.jpg").error is ErrorKind.NOT_FOUND


def test_index_failure_restores_the_file(library, store, repo, upload_one):
    photo = upload_one()
    original = store.read_file(photo.album, photo.filename)
    repo.fail_saves = True

    result = library.delete_photo(photo.filename)

    assert result.error is ErrorKind.IO_FAILURE
    assert store.list_dir(photo.album) == [photo.filename]
    assert store.read_file(photo.album, photo.filename) == original
    assert library.get_photo(photo.filename).ok


def test_staging_failure_keeps_record(library, store, upload_one):
    photo = upload_one()
    store.failing.add("move_file")

    result = library.delete_photo(photo.filename)

    assert result.error is ErrorKind.IO_FAILURE
    assert library.get_photo(photo.filename).ok
    assert store.exists(photo.album, photo.filename)


def test_delete_leaves_backup_behind(library, store, upload_one):
    photo = upload_one()
    library.crop_photo(photo.filename, {"x": 0, "y": 0, "width": 10, "height": 10})

    assert library.delete_photo(photo.filename).ok

    assert store.list_dir(photo.album) == [photo.filename + ".backup"]
    assert library.check_health().orphan_backups == [(photo.album, photo.filename + ".backup")]


def test_delete_in_other_album(library, store, upload_one):
    keep = upload_one()
    gone = upload_one(album="trip")

    library.delete_photo(gone.filename)

    assert [p.filename for p in library.list_photos()] == [keep.filename]
    assert store.list_dir("trip") == []


def test_delete_on_disk(disk_library, tmp_path):
    photo = disk_library.ingest([UploadFile(make_jpeg(), "x.jpg")], {}).value.photos[0]

    assert disk_library.delete_photo(photo.filename).ok

    assert list((tmp_path / "photos" / "default").iterdir()) == []
