from __future__ import annotations

import pytest

from infrastructure.settings import JsonSettings


def test_dotted_keys_fall_back_to_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text('{"image": {"jpeg_quality": 80}}', encoding="utf-8")

    settings = JsonSettings(path)

    assert settings.get("image.jpeg_quality") == 80
    assert settings.get("library.index_file") == "metadata.json"
    assert settings.get("missing.key", "fallback") == "fallback"


def test_get_bool_accepts_strings(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text('{"delete": {"use_recycle_bin": "yes"}}', encoding="utf-8")
    assert JsonSettings(path).get_bool("delete.use_recycle_bin")
    assert not JsonSettings.defaults().get_bool("delete.use_recycle_bin")


def test_relative_paths_resolve_against_settings_dir(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text('{"library": {"root": "pics"}}', encoding="utf-8")

    settings = JsonSettings(path)

    assert settings.get_path("library.root") == tmp_path / "pics"
    assert settings.get_path("logging.dir") is None


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        JsonSettings(tmp_path / "nope.json")


def test_non_object_raises(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        JsonSettings(path)
