"""Filesystem storage of photo bytes, one directory per album.

Every path is addressed as (album, name) relative to the library root and
both components are validated as single path segments, so callers cannot
reach outside the root. Deletes either unlink or send the file to the
recycle bin.
"""

from __future__ import annotations

import os
from pathlib import Path
import shutil

from loguru import logger
from send2trash import send2trash

from core.services.filename_policy import is_safe_segment


class LocalBlobStore:
    """Photo storage rooted at a directory on the local filesystem."""

    def __init__(self, root: str | Path, use_recycle_bin: bool = False) -> None:
        self._root = Path(root)
        self._use_recycle_bin = use_recycle_bin
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def _album_path(self, album: str) -> Path:
        if not is_safe_segment(album):
            raise ValueError(f"Invalid album name: {album!r}")
        return self._root / album

    def _path(self, album: str, name: str) -> Path:
        if not is_safe_segment(name):
            raise ValueError(f"Invalid file name: {name!r}")
        return self._album_path(album) / name

    # Directories
    def ensure_dir(self, album: str) -> None:
        """Create the album directory if missing."""
        self._album_path(album).mkdir(parents=True, exist_ok=True)

    def make_dir(self, album: str) -> None:
        """Create the album directory; raises `FileExistsError` if present."""
        self._album_path(album).mkdir()

    def album_exists(self, album: str) -> bool:
        try:
            return self._album_path(album).is_dir()
        except ValueError:
            return False

    def list_albums(self) -> list[str]:
        """Names of the album directories under the root, sorted."""
        return sorted(p.name for p in self._root.iterdir() if p.is_dir())

    def list_dir(self, album: str) -> list[str]:
        """Names of regular files in the album directory, sorted."""
        path = self._album_path(album)
        return sorted(p.name for p in path.iterdir() if p.is_file())

    def remove_dir(self, album: str) -> None:
        """Remove an empty album directory (`OSError` if not empty)."""
        self._album_path(album).rmdir()

    # Files
    def exists(self, album: str, name: str) -> bool:
        try:
            return self._path(album, name).is_file()
        except ValueError:
            return False

    def read_file(self, album: str, name: str) -> bytes:
        return self._path(album, name).read_bytes()

    def write_file(self, album: str, name: str, data: bytes) -> None:
        self._path(album, name).write_bytes(data)

    def copy_file(self, src_album: str, src_name: str, dst_album: str, dst_name: str) -> None:
        """Copy bytes and file metadata, overwriting the destination."""
        shutil.copy2(self._path(src_album, src_name), self._path(dst_album, dst_name))

    def move_file(self, src_album: str, src_name: str, dst_album: str, dst_name: str) -> None:
        """Rename `src` to `dst`; refuses to overwrite an existing destination."""
        src = self._path(src_album, src_name)
        dst = self._path(dst_album, dst_name)
        if dst.exists():
            raise FileExistsError(f"Destination exists: {dst}")
        os.rename(src, dst)

    def replace_file(self, album: str, src_name: str, dst_name: str) -> None:
        """Atomically replace `dst_name` with `src_name` in the same directory."""
        os.replace(self._path(album, src_name), self._path(album, dst_name))

    def delete_file(self, album: str, name: str, missing_ok: bool = True) -> None:
        """Remove a file, via the recycle bin when configured."""
        path = self._path(album, name)
        if not path.exists():
            if missing_ok:
                return
            raise FileNotFoundError(f"File does not exist: {path}")
        if self._use_recycle_bin:
            try:
                send2trash(os.path.normpath(str(path)))
                return
            except OSError as ex:
                logger.warning("Recycle bin unavailable for {}, unlinking: {}", path, ex)
        path.unlink()
