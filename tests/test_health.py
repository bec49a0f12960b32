from __future__ import annotations


def test_fresh_library_is_healthy(library, upload_one):
    upload_one()
    report = library.check_health()
    assert report.is_healthy


def test_reports_dangling_and_orphan_entries(library, store, upload_one):
    photo = upload_one()
    kept = upload_one(album="trip")
    store.delete_file(photo.album, photo.filename)
    store.write_file("trip", "stray.jpg", b"x")
    store.write_file("trip", "gone.jpg.backup", b"x")
    store.write_file("trip", kept.filename + ".tmp", b"x")
    store.write_file("default", "old.jpg.deleting", b"x")

    report = library.check_health()

    assert not report.is_healthy
    assert report.dangling_records == [photo.filename]
    assert report.orphan_files == [("trip", "stray.jpg")]
    assert report.orphan_backups == [("trip", "gone.jpg.backup")]
    assert sorted(report.stale_temp_files) == [
        ("default", "old.jpg.deleting"),
        ("trip", kept.filename + ".tmp"),
    ]


def test_backup_of_known_photo_is_not_an_orphan(library, upload_one):
    photo = upload_one()
    library.crop_photo(photo.filename, {"x": 0, "y": 0, "width": 10, "height": 10})
    assert library.check_health().is_healthy


def test_check_changes_nothing(library, store, repo, upload_one):
    upload_one()
    store.write_file("default", "stray.jpg", b"x")
    saves = repo.save_count

    library.check_health()

    assert repo.save_count == saves
    assert store.exists("default", "stray.jpg")
