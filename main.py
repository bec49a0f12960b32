from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

from loguru import logger

from core.models import AlbumSummary, PhotoRecord
from core.services.interfaces import HealthReport, IngestResult, OpResult, UpdateResult, UploadFile
from core.services.library_service import PhotoLibrary
from core.services.photo_index import PhotoIndex
from infrastructure.blob_store import LocalBlobStore
from infrastructure.image_service import ImageService
from infrastructure.json_repository import JsonPhotoRepository
from infrastructure.logging import init_logging
from infrastructure.settings import JsonSettings
from infrastructure.utils import guess_mimetype

BASE_DIR = Path(__file__).parent


def build_library(settings: JsonSettings) -> PhotoLibrary:
    """Wire the library from settings: local storage, JSON index, Pillow processing."""
    root = settings.get_path("library.root", "photos")
    index_file = Path(str(settings.get("library.index_file", "metadata.json")))
    index_path = index_file if index_file.is_absolute() else root / index_file
    store = LocalBlobStore(root, use_recycle_bin=settings.get_bool("delete.use_recycle_bin"))
    index = PhotoIndex(JsonPhotoRepository(), str(index_path))
    return PhotoLibrary(store, index, ImageService(settings))


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, (PhotoRecord, AlbumSummary)):
        return value.to_dict()
    if isinstance(value, IngestResult):
        return {
            "message": value.message,
            "successCount": value.success_count,
            "files": value.filenames,
            "items": [
                {
                    "originalName": it.original_name,
                    "filename": it.filename,
                    "degraded": it.degraded,
                    "error": it.error,
                }
                for it in value.items
            ],
        }
    if isinstance(value, UpdateResult):
        return {"photo": value.photo.to_dict(), "newFilename": value.new_filename}
    if isinstance(value, HealthReport):
        return {
            "healthy": value.is_healthy,
            "danglingRecords": value.dangling_records,
            "orphanFiles": [list(p) for p in value.orphan_files],
            "orphanBackups": [list(p) for p in value.orphan_backups],
            "staleTempFiles": [list(p) for p in value.stale_temp_files],
        }
    if isinstance(value, list):
        return [_to_jsonable(v) for v in value]
    return value


def _emit(result: Any) -> int:
    """Print `result` as JSON and return the process exit code."""
    if isinstance(result, OpResult):
        if result.ok:
            payload = {"success": True, "result": _to_jsonable(result.value)}
        else:
            payload = {"success": False, "error": result.error.value, "reason": result.reason}
        print(json.dumps(payload, indent=2))
        return 0 if result.ok else 1
    print(json.dumps(_to_jsonable(result), indent=2))
    return 0


def _metadata_fields(args: argparse.Namespace) -> dict[str, str]:
    names = ("title", "date", "location", "tags", "description", "album")
    return {n: getattr(args, n) for n in names if getattr(args, n, None) is not None}


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="photo-library", description="Manage a photo library.")
    parser.add_argument("--settings", default=str(BASE_DIR / "settings.json"))
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("photos", help="list all photos")
    show = sub.add_parser("show", help="show one photo")
    show.add_argument("filename")
    sub.add_parser("albums", help="list albums")
    sub.add_parser("check", help="compare index and files")

    upload = sub.add_parser("upload", help="upload image files")
    upload.add_argument("files", nargs="+")
    edit = sub.add_parser("edit", help="edit photo metadata")
    edit.add_argument("filename")
    for p in (upload, edit):
        for field in ("title", "date", "location", "tags", "description"):
            p.add_argument(f"--{field}")
    upload.add_argument("--album")

    move = sub.add_parser("move", help="move a photo to another album")
    move.add_argument("filename")
    move.add_argument("album")

    crop = sub.add_parser("crop", help="crop a photo, keeping a backup")
    crop.add_argument("filename")
    for dim in ("x", "y", "width", "height"):
        crop.add_argument(dim, type=int)

    for name, help_text in (
        ("restore", "undo crops"),
        ("has-backup", "report whether a crop backup exists"),
        ("delete", "delete a photo"),
    ):
        sub.add_parser(name, help=help_text).add_argument("filename")

    sub.add_parser("create-album", help="create an album").add_argument("name")
    sub.add_parser("delete-album", help="delete an empty album").add_argument("name")
    return parser


def run(library: PhotoLibrary, args: argparse.Namespace) -> int:
    """Dispatch a parsed command to the library."""
    cmd = args.command
    if cmd == "photos":
        return _emit(library.list_photos())
    if cmd == "show":
        return _emit(library.get_photo(args.filename))
    if cmd == "albums":
        return _emit(library.list_albums())
    if cmd == "check":
        report = library.check_health()
        _emit(report)
        return 0 if report.is_healthy else 1
    if cmd == "upload":
        files = []
        for name in args.files:
            path = Path(name)
            files.append(
                UploadFile(
                    data=path.read_bytes(),
                    original_name=path.name,
                    mimetype=guess_mimetype(path.name),
                )
            )
        return _emit(library.ingest(files, _metadata_fields(args)))
    if cmd == "edit":
        return _emit(library.update_photo(args.filename, _metadata_fields(args)))
    if cmd == "move":
        return _emit(library.move_photo(args.filename, args.album))
    if cmd == "crop":
        rect = {"x": args.x, "y": args.y, "width": args.width, "height": args.height}
        return _emit(library.crop_photo(args.filename, rect))
    if cmd == "restore":
        return _emit(library.restore_photo(args.filename))
    if cmd == "has-backup":
        return _emit({"hasBackup": library.has_backup(args.filename)})
    if cmd == "delete":
        return _emit(library.delete_photo(args.filename))
    if cmd == "create-album":
        return _emit(library.create_album(args.name))
    if cmd == "delete-album":
        return _emit(library.delete_album(args.name))
    raise ValueError(f"Unknown command: {cmd}")


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    settings_path = Path(args.settings)
    settings = JsonSettings(settings_path) if settings_path.exists() else JsonSettings.defaults()
    log_dir = settings.get_path("logging.dir")
    init_logging(
        str(log_dir) if log_dir else None, settings.get("logging.level", "INFO"), console=True
    )
    try:
        return run(build_library(settings), args)
    except OSError as ex:
        logger.error("Command {} failed: {}", args.command, ex)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
