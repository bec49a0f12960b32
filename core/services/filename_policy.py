"""Canonical naming of photo files and album directories.

Photo files are named `{date}_{title-slug}_{token}{ext}`. The token is an
integer minted once per photo at ingest (milliseconds since epoch) and kept
across later renames, so a photo's identity survives date edits. Album
directory names are restricted to `[a-z0-9-]`.
"""

from __future__ import annotations

import re
import threading
import time

from core.models import BACKUP_SUFFIX

DEFAULT_EXTENSION = ".jpg"
TEMP_SUFFIX = ".tmp"
DELETE_SUFFIX = ".deleting"

_TITLE_DISALLOWED = re.compile(r"[^a-z0-9]")
_ALBUM_WHITESPACE = re.compile(r"\s+")
_ALBUM_DISALLOWED = re.compile(r"[^a-z0-9-]")
_TOKEN = re.compile(r"_(\d+)(\.[^._]*)?$")
_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_EXTENSION = re.compile(r"(?<=[^./\\])\.[A-Za-z0-9]{1,10}$")


def slugify_title(title: str | None) -> str:
    """Lower-case `title` and map every char outside [a-z0-9] to '-'.

    Empty titles become 'untitled'.
    """
    if not title:
        return "untitled"
    return _TITLE_DISALLOWED.sub("-", title.lower())


def derive_filename(date: str, title: str | None, token: int, extension: str = "") -> str:
    """Return the canonical filename for the given date, title and token."""
    ext = extension or DEFAULT_EXTENSION
    return f"{date}_{slugify_title(title)}_{token}{ext}"


def extract_token(filename: str) -> int | None:
    """Recover the token embedded in a canonical filename, if any."""
    match = _TOKEN.search(filename)
    if not match:
        return None
    return int(match.group(1))


def file_extension(filename: str) -> str:
    """Extension of `filename` including the dot, or '' when it has no usable one."""
    match = _EXTENSION.search(filename or "")
    return match.group(0) if match else ""


def is_valid_date(value: str) -> bool:
    """True for `YYYY-MM-DD` strings naming a real calendar day."""
    if not _DATE.match(value or ""):
        return False
    try:
        time.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def sanitize_album_name(name: str | None) -> str:
    """Lower-case, whitespace runs -> '-', drop anything outside [a-z0-9-]."""
    if not name:
        return ""
    lowered = _ALBUM_WHITESPACE.sub("-", name.strip().lower())
    return _ALBUM_DISALLOWED.sub("", lowered)


def is_safe_segment(name: str | None) -> bool:
    """True if `name` can be used as a single path component under the root."""
    if not name or name in {".", ".."}:
        return False
    return "/" not in name and "\\" not in name and "\x00" not in name


def backup_name(filename: str) -> str:
    return filename + BACKUP_SUFFIX


def temp_name(filename: str) -> str:
    return filename + TEMP_SUFFIX


def staged_delete_name(filename: str) -> str:
    return filename + DELETE_SUFFIX


def is_reserved_name(name: str) -> bool:
    """True for sidecar and in-flight files that are not photos."""
    return name.endswith((BACKUP_SUFFIX, TEMP_SUFFIX, DELETE_SUFFIX))


class TokenMinter:
    """Mint filename tokens: epoch milliseconds, strictly increasing."""

    def __init__(self, clock=time.time) -> None:
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            token = max(int(self._clock() * 1000), self._last + 1)
            self._last = token
            return token
