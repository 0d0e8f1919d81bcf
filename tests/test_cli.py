"""CLI tests for decoding commands."""

from __future__ import annotations

import json
import os
from datetime import datetime
from pathlib import Path

import pytest
from click.testing import CliRunner
from rich.console import Console

from photodb import cli as cli_module
from photodb.catalogue import models
from photodb.cli import cli
from photodb.decoding import TimestampRangeError, decode_timestamp


def _env_with_home(tmp_path: Path) -> dict[str, str]:
    env = {key: value for key, value in os.environ.items() if not key.startswith("PHOTODB__")}
    env["HOME"] = str(tmp_path / "home")
    return env


def test_cli_help_displays_commands() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "Photo Database" in result.output
    for command in ("images", "albums", "records", "config"):
        assert command in result.output


def test_images_json_output(tmp_path: Path, database_file: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(
        cli, ["images", str(database_file), "--json"], env=_env_with_home(tmp_path)
    )

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert [image["image_id"] for image in payload["images"]] == [100, 101]
    first = payload["images"][0]
    assert first["filename"] == "/DCIM/IMG_0100.JPG"
    assert first["file_size_human_readable"] == "2.00 MB"
    assert first["thumbnails"][0]["filename"] == "/Thumbs/F1019_1.ithmb"
    assert payload["errors"] == []


def test_images_table_output(tmp_path: Path, database_file: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ["images", str(database_file)], env=_env_with_home(tmp_path))

    assert result.exit_code == 0
    assert "Images in Photo Database" in result.output
    assert "2 image(s) decoded." in result.output


def test_json_default_from_config(tmp_path: Path, database_file: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    env["PHOTODB__CLI__JSON_DEFAULT"] = "true"

    result = runner.invoke(cli, ["albums", str(database_file)], env=env)

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert [album["name"] for album in payload["albums"]] == ["Library", "Holiday"]
    assert payload["albums"][1]["image_ids"] == [101]


def test_albums_table_output(tmp_path: Path, database_file: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ["albums", str(database_file)], env=_env_with_home(tmp_path))

    assert result.exit_code == 0
    assert "Library" in result.output
    assert "Holiday" in result.output


def test_records_lists_tree(tmp_path: Path, database_file: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ["records", str(database_file)], env=_env_with_home(tmp_path))

    assert result.exit_code == 0
    assert "mhfd (Data file) @ 0x00000000" in result.output
    assert "type=File name" in result.output
    assert "record(s) in" in result.output


def test_truncated_file_reports_offset(tmp_path: Path, library_buffer: bytes) -> None:
    path = tmp_path / "broken"
    path.write_bytes(library_buffer[:-8])
    runner = CliRunner()

    result = runner.invoke(cli, ["images", str(path), "--json"], env=_env_with_home(tmp_path))

    assert result.exit_code == 1
    payload = json.loads(result.output)
    assert payload["error"]["code"] == "record_error"
    assert payload["error"]["details"] == {"offset": 0, "tag": "mhfd"}


def test_truncated_file_text_error(tmp_path: Path, library_buffer: bytes) -> None:
    path = tmp_path / "broken"
    path.write_bytes(library_buffer[:-8])
    runner = CliRunner()

    result = runner.invoke(cli, ["records", str(path)], env=_env_with_home(tmp_path))

    assert result.exit_code == 1
    assert "Stopped after 0 record(s)" in result.output


def test_empty_file_is_a_decode_error(tmp_path: Path) -> None:
    path = tmp_path / "empty"
    path.write_bytes(b"")
    runner = CliRunner()

    result = runner.invoke(cli, ["images", str(path), "--json"], env=_env_with_home(tmp_path))

    assert result.exit_code == 1
    payload = json.loads(result.output)
    assert payload["error"]["code"] == "record_error"
    assert payload["error"]["details"]["offset"] == 0


def _reject_original_epoch(monkeypatch: pytest.MonkeyPatch, rejected: int) -> None:
    real = models.decode_timestamp

    def _decode(epoch: int) -> datetime:
        if epoch == rejected:
            raise TimestampRangeError(epoch)
        return real(epoch)

    monkeypatch.setattr(models, "decode_timestamp", _decode)


def test_images_lenient_records_field_errors(
    tmp_path: Path, database_file: Path, factory, monkeypatch: pytest.MonkeyPatch
) -> None:
    _reject_original_epoch(monkeypatch, factory.ORIGINAL_EPOCH)
    env = _env_with_home(tmp_path)
    # keep the field warning off stderr so the output stays valid JSON
    env["PHOTODB__LOGGING__LEVEL"] = "ERROR"
    runner = CliRunner()

    result = runner.invoke(cli, ["images", str(database_file), "--json", "--lenient"], env=env)

    assert result.exit_code == 0
    payload = json.loads(result.output)
    first = payload["images"][0]
    assert first["original_date_epoch"] == 0
    assert first["digitized_date_epoch"] == factory.DIGITIZED_EPOCH
    assert len(payload["errors"]) == 1
    assert "image 100" in payload["errors"][0]
    assert "original_date" in payload["errors"][0]


def test_images_strict_by_default(
    tmp_path: Path, database_file: Path, factory, monkeypatch: pytest.MonkeyPatch
) -> None:
    _reject_original_epoch(monkeypatch, factory.ORIGINAL_EPOCH)
    runner = CliRunner()

    result = runner.invoke(
        cli, ["images", str(database_file), "--json"], env=_env_with_home(tmp_path)
    )

    assert result.exit_code == 1
    assert json.loads(result.output)["error"]["code"] == "decode_error"


def test_strict_timestamps_from_environment(
    tmp_path: Path, database_file: Path, factory, monkeypatch: pytest.MonkeyPatch
) -> None:
    _reject_original_epoch(monkeypatch, factory.ORIGINAL_EPOCH)
    env = _env_with_home(tmp_path)
    env["PHOTODB__DECODING__STRICT_TIMESTAMPS"] = "false"
    runner = CliRunner()

    result = runner.invoke(cli, ["images", str(database_file)], env=env)

    assert result.exit_code == 0
    assert "1 field(s) could not be decoded" in result.output
    assert "2 image(s) decoded." in result.output


def test_images_table_shows_each_known_date(
    tmp_path: Path, factory, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(cli_module, "console", Console(width=200))
    path = tmp_path / "Photo Database"
    path.write_bytes(factory.images_only(factory.image(1, size=10_000, digitized=0)))
    runner = CliRunner()

    result = runner.invoke(cli, ["images", str(path)], env=_env_with_home(tmp_path))

    assert result.exit_code == 0
    row = next(line for line in result.output.splitlines() if "10.00 KB" in line)
    expected = decode_timestamp(factory.ORIGINAL_EPOCH).strftime("%Y-%m-%d %H:%M:%S")
    assert expected in row
    assert "-" in row.split(expected, 1)[1]
