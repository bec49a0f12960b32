"""Settings access helpers for JSON-based configuration."""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any

DEFAULTS: dict[str, Any] = {
    "library": {"root": "photos", "index_file": "metadata.json"},
    "image": {"jpeg_quality": 90},
    "delete": {"use_recycle_bin": False},
    "logging": {"dir": None, "level": "INFO"},
}


def _merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Recursively overlay `overlay` on `base` (both left untouched)."""
    merged = copy.deepcopy(base)
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class JsonSettings:
    """JSON settings reader with dotted-key access over built-in defaults."""

    def __init__(self, settings_path: str | Path) -> None:
        self._path = Path(settings_path)
        if not self._path.exists():
            raise FileNotFoundError(f"settings.json not found: {self._path}")
        with self._path.open("r", encoding="utf-8") as f:
            loaded = json.load(f)
        if not isinstance(loaded, dict):
            raise ValueError(f"settings.json must contain an object: {self._path}")
        self._data = _merge(DEFAULTS, loaded)
        self._base_dir = self._path.parent

    @classmethod
    def defaults(cls, base_dir: str | Path = ".") -> JsonSettings:
        """Settings made of the built-in defaults only."""
        inst = cls.__new__(cls)
        inst._path = Path(base_dir) / "settings.json"
        inst._data = copy.deepcopy(DEFAULTS)
        inst._base_dir = Path(base_dir)
        return inst

    def get(self, key: str, default: Any | None = None) -> Any:
        """Return value for dotted `key`, or `default` if not present."""
        parts = key.split(".")
        node: Any = self._data
        for part in parts:
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key, default)
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)

    def get_path(self, key: str, default: str | None = None) -> Path | None:
        """Return `key` as a path, resolved against the settings file directory."""
        value = self.get(key, default)
        if not value:
            return None
        path = Path(str(value)).expanduser()
        if not path.is_absolute():
            path = self._base_dir / path
        return path
