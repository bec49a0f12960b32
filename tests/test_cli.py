from __future__ import annotations

import json

import pytest

from fakes import make_jpeg
from infrastructure.settings import JsonSettings
from main import _parser, build_library, run


@pytest.fixture
def cli(tmp_path, capsys):
    settings_file = tmp_path / "settings.json"
    settings_file.write_text('{"library": {"root": "lib"}}', encoding="utf-8")
    library = build_library(JsonSettings(settings_file))

    def _run(*argv):
        code = run(library, _parser().parse_args(list(argv)))
        return code, json.loads(capsys.readouterr().out)

    return _run


def test_upload_then_list(cli, tmp_path):
    image = tmp_path / "red.jpg"
    image.write_bytes(make_jpeg())

    code, out = cli("upload", str(image), "--title", "Red", "--date", "2024-01-05")

    assert code == 0
    assert out["success"]
    assert out["result"]["message"] == "1 photo(s) uploaded successfully"
    filename = out["result"]["files"][0]
    assert (tmp_path / "lib" / "default" / filename).is_file()
    assert (tmp_path / "lib" / "metadata.json").is_file()

    code, photos = cli("photos")
    assert code == 0
    assert photos[0]["filename"] == filename
    assert photos[0]["originalName"] == "red.jpg"


def test_failure_is_reported_with_exit_code(cli):
    code, out = cli("delete", "nope.jpg")

    assert code == 1
    assert out == {"success": False, "error": "not_found", "reason": "Photo not found: nope.jpg"}


def test_album_commands(cli):
    assert cli("create-album", "Road Trip")[1]["result"]["name"] == "road-trip"

    code, albums = cli("albums")
    assert code == 0
    assert [a["name"] for a in albums] == ["default", "road-trip"]

    assert cli("delete-album", "road-trip")[0] == 0


def test_check_on_clean_library(cli):
    code, out = cli("check")
    assert code == 0
    assert out["healthy"]
