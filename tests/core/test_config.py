"""Tests for configuration loading."""

import pytest

from storyline.core import config as config_module
from storyline.core.config import (
    Config,
    PlaybackConfig,
    get_database_path,
    get_log_file_path,
    load_config,
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point XDG dirs at tmp and clear Storyline overrides."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("STORYLINE_DATABASE_PATH", raising=False)
    monkeypatch.delenv("STORYLINE_MPV_SOCKET", raising=False)


def write_config(tmp_path, text: str):
    path = tmp_path / "config.toml"
    path.write_text(text, encoding="utf-8")
    return path


def test_missing_file_creates_default(tmp_path):
    path = tmp_path / "fresh" / "config.toml"

    cfg = load_config(path)

    assert path.exists()
    assert cfg == Config()
    # The generated file parses back to the same defaults
    assert load_config(path) == Config()


def test_values_read_from_toml(tmp_path):
    path = write_config(
        tmp_path,
        """
[playback]
skip_interval = 30
default_rate = 1.5
autosave_interval = 10

[player]
volume = 70

[logging]
level = "debug"
log_file = "~/logs/storyline.log"
""",
    )

    cfg = load_config(path)

    assert cfg.playback.skip_interval == 30.0
    assert cfg.playback.default_rate == 1.5
    assert cfg.playback.autosave_interval == 10.0
    assert cfg.playback.tick_interval == PlaybackConfig().tick_interval
    assert cfg.player.volume == 70
    assert cfg.logging.level == "DEBUG"
    assert not cfg.logging.log_file.startswith("~")


def test_invalid_playback_section_falls_back(tmp_path, capsys):
    path = write_config(tmp_path, "[playback]\ndefault_rate = 1.3\n")

    cfg = load_config(path)

    assert cfg.playback == PlaybackConfig()
    assert "Invalid playback configuration" in capsys.readouterr().out


def test_broken_toml_uses_defaults(tmp_path):
    path = write_config(tmp_path, "[playback\nskip_interval = ")
    assert load_config(path) == Config()


def test_env_overrides(tmp_path, monkeypatch):
    path = write_config(tmp_path, '[library]\ndatabase_path = "/srv/books.db"\n')
    monkeypatch.setenv("STORYLINE_DATABASE_PATH", str(tmp_path / "override.db"))
    monkeypatch.setenv("STORYLINE_MPV_SOCKET", "/run/mpv.sock")

    cfg = load_config(path)

    assert cfg.library.database_path == str(tmp_path / "override.db")
    assert cfg.player.mpv_socket_path == "/run/mpv.sock"


def test_dotenv_in_config_dir(tmp_path, monkeypatch):
    env_dir = tmp_path / "config" / "storyline"
    env_dir.mkdir(parents=True)
    (env_dir / ".env").write_text("STORYLINE_MPV_SOCKET=/tmp/from-dotenv.sock\n")
    path = write_config(tmp_path, "")
    # load_dotenv writes into os.environ; let monkeypatch restore it
    monkeypatch.setenv("STORYLINE_MPV_SOCKET", "")
    monkeypatch.delenv("STORYLINE_MPV_SOCKET")

    cfg = load_config(path)

    assert cfg.player.mpv_socket_path == "/tmp/from-dotenv.sock"


def test_paths_default_to_data_dir(tmp_path):
    data_dir = config_module.get_data_dir()
    assert data_dir == tmp_path / "data" / "storyline"
    assert get_database_path() == data_dir / "storyline.db"
    assert get_log_file_path() == data_dir / "storyline.log"


def test_paths_from_config():
    cfg = Config()
    cfg.library.database_path = "/srv/books.db"
    cfg.logging.log_file = "/var/log/storyline.log"
    assert str(get_database_path(cfg)) == "/srv/books.db"
    assert str(get_log_file_path(cfg)) == "/var/log/storyline.log"


def test_playback_validate():
    with pytest.raises(ValueError):
        PlaybackConfig(skip_interval=0).validate()
    with pytest.raises(ValueError):
        PlaybackConfig(finished_threshold=-1).validate()
    PlaybackConfig(default_rate=2.5).validate()
