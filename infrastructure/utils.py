"""Utilities for timestamps, default dates and mimetype lookup.

Centralizes the formats written to the index so the rest of the library
depends on a single behavior.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
import mimetypes

INDEX_DATE_FMT = "%Y-%m-%d"


def today_iso() -> str:
    """Local calendar date as `YYYY-MM-DD`, the default photo date."""
    return date.today().strftime(INDEX_DATE_FMT)


def utc_timestamp(now: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a `Z` suffix."""
    dt = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def guess_mimetype(filename: str, default: str = "application/octet-stream") -> str:
    """Best-effort mimetype from the file name."""
    guessed, _ = mimetypes.guess_type(filename or "")
    return guessed or default
