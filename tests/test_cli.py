"""Tests for the storyline command line."""

from unittest.mock import patch

import pytest

from storyline import cli
from storyline.domain.library import Catalog


@pytest.fixture
def config_path(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("STORYLINE_DATABASE_PATH", str(tmp_path / "library.db"))
    return tmp_path / "config.toml"


def run_main(argv):
    with pytest.raises(SystemExit) as exc:
        cli.main(argv)
    return exc.value.code


@pytest.mark.parametrize(
    "argv,command,args",
    [
        (["toggle"], "toggle", []),
        (["seek", "1800"], "seek", ["1800"]),
        (["rate", "1.5"], "rate", ["1.5"]),
        (["sleep", "chapter"], "sleep", ["chapter"]),
        (["cancel-sleep"], "cancel-sleep", []),
        (["restart"], "restart", []),
        (["finish"], "finish", []),
        (["favorite"], "favorite", []),
        (["cycle-rate"], "cycle-rate", []),
        (["now-playing"], "now-playing", []),
    ],
)
def test_ipc_subcommands(argv, command, args):
    with patch("storyline.ipc.send_command", return_value=(True, "ok")) as send:
        assert run_main(argv) == 0
    send.assert_called_once_with(command, args)


def test_ipc_failure_exit_code():
    with patch("storyline.ipc.send_command", return_value=(False, "Storyline is not running")):
        assert run_main(["play"]) == 1


def test_no_subcommand_prints_help(capsys):
    assert run_main([]) == 1
    assert "audiobook player" in capsys.readouterr().out


def test_add_then_list(tmp_path, config_path, capsys):
    audio = tmp_path / "Jane Austen - Emma.m4b"
    audio.write_bytes(b"\x00")
    metadata = {"title": "Emma", "author": "Jane Austen", "narrator": None, "duration": 4000.0}

    with patch.object(cli, "extract_title_metadata", return_value=metadata):
        code = run_main(["--config", str(config_path), "add", str(audio), "--tag", "Fiction"])
    assert code == 0

    [title] = Catalog(tmp_path / "library.db").query()
    assert title.title == "Emma"
    assert title.tags == {"Fiction"}
    assert title.resource_locator == str(audio.resolve())

    capsys.readouterr()
    assert run_main(["--config", str(config_path), "list", "--sort", "title"]) == 0
    assert "Emma" in capsys.readouterr().out


def test_add_rejects_unsupported_format(tmp_path, config_path):
    cover = tmp_path / "cover.jpg"
    cover.write_bytes(b"\x00")
    assert run_main(["--config", str(config_path), "add", str(cover)]) == 1


def test_add_missing_file(tmp_path, config_path):
    assert run_main(["--config", str(config_path), "add", str(tmp_path / "nope.mp3")]) == 1
