"""
Configuration management for Storyline
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

# Playback speeds offered to the user and accepted from remote controls
SUPPORTED_RATES: tuple[float, ...] = (0.5, 0.75, 1.0, 1.25, 1.5, 2.0, 2.5)

DEFAULT_RATE = 1.0


@dataclass
class LibraryConfig:
    """Configuration for the audiobook library."""

    database_path: Optional[str] = None  # Default: <data dir>/storyline.db
    supported_formats: List[str] = field(
        default_factory=lambda: [".m4a", ".m4b", ".mp3", ".wav", ".aac", ".flac"]
    )


@dataclass
class PlayerConfig:
    """Configuration for the mpv media engine."""

    mpv_executable: str = "mpv"
    mpv_socket_path: Optional[str] = None
    volume: int = 100
    load_timeout: float = 5.0  # Seconds to wait for mpv to report a duration


@dataclass
class PlaybackConfig:
    """Configuration for the playback coordinator."""

    skip_interval: float = 15.0
    default_rate: float = DEFAULT_RATE
    tick_interval: float = 0.5  # Engine position report cadence
    autosave_interval: float = 5.0  # Elapsed playback between persisted writes
    finished_threshold: float = 10.0  # Seconds before the end that count as finished
    sleep_poll_interval: float = 1.0
    sleep_timer_options: List[int] = field(default_factory=lambda: [5, 10, 15, 30, 60])

    def validate(self) -> None:
        """Validate playback configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if self.default_rate not in SUPPORTED_RATES:
            raise ValueError(
                f"Invalid default rate: {self.default_rate}. "
                f"Valid rates are: {list(SUPPORTED_RATES)}"
            )
        for name in ("skip_interval", "tick_interval", "autosave_interval"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.finished_threshold < 0:
            raise ValueError("finished_threshold must not be negative")


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = None  # Default: <data dir>/storyline.log
    max_file_size_mb: int = 10
    backup_count: int = 5
    console_output: bool = False


@dataclass
class IPCConfig:
    """Configuration for the remote control socket."""

    enabled: bool = True


@dataclass
class NotificationsConfig:
    """Configuration for desktop notifications."""

    enabled: bool = True


@dataclass
class Config:
    """Main configuration object."""

    library: LibraryConfig = field(default_factory=LibraryConfig)
    player: PlayerConfig = field(default_factory=PlayerConfig)
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    ipc: IPCConfig = field(default_factory=IPCConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "storyline"
    return Path.home() / ".config" / "storyline"


def _find_project_config() -> Optional[Path]:
    """Find config.toml in project root by looking for pyproject.toml.

    Returns:
        Path to config.toml in project root, or None if not found
    """
    current = Path(__file__).resolve().parent
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            config_path = parent / "config.toml"
            return config_path if config_path.exists() else None
    return None


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. Project root (detected via pyproject.toml) - for development
    2. Current working directory
    3. XDG_CONFIG_HOME/storyline (or ~/.config/storyline)
    """
    project_config = _find_project_config()
    if project_config:
        return project_config

    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config

    return get_config_dir() / "config.toml"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "storyline"
    return Path.home() / ".local" / "share" / "storyline"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# Storyline Configuration

[library]
# SQLite database location (default: ~/.local/share/storyline/storyline.db)
# database_path = "~/Audiobooks/storyline.db"

# Audio formats accepted by `storyline add`
supported_formats = [".m4a", ".m4b", ".mp3", ".wav", ".aac", ".flac"]

[player]
# mpv binary used as the media engine
mpv_executable = "mpv"

# Path for mpv socket (auto-detected if not specified)
# mpv_socket_path = "/tmp/storyline-mpv.sock"

# Output volume (0-100)
volume = 100

# Seconds to wait for mpv to report the duration of a new file
load_timeout = 5.0

[playback]
# Seconds jumped by skip forward / skip backward
skip_interval = 15.0

# Initial playback speed (0.5, 0.75, 1.0, 1.25, 1.5, 2.0, 2.5)
default_rate = 1.0

# Engine position report cadence in seconds
tick_interval = 0.5

# Seconds of playback between automatic position saves
autosave_interval = 5.0

# Titles within this many seconds of the end count as finished
finished_threshold = 10.0

# Seconds between sleep timer deadline checks
sleep_poll_interval = 1.0

# Sleep timer choices in minutes
sleep_timer_options = [5, 10, 15, 30, 60]

[logging]
# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
level = "INFO"

# Custom log file path (default: ~/.local/share/storyline/storyline.log)
# log_file = "/path/to/storyline.log"

# Maximum log file size in MB before rotation
max_file_size_mb = 10

# Number of rotated log files to keep
backup_count = 5

# Also output logs to stderr (useful for debugging)
console_output = false

[ipc]
# Accept remote control commands on a Unix socket
enabled = true

[notifications]
# Desktop notification when the sleep timer pauses playback
enabled = true
""".strip()


def _parse_config(toml_data: dict) -> Config:
    """Build a Config from parsed TOML, keeping defaults for missing keys."""
    config = Config()

    if "library" in toml_data:
        library_data = toml_data["library"]
        database_path = library_data.get("database_path")
        if database_path:
            database_path = str(Path(database_path).expanduser())
        config.library = LibraryConfig(
            database_path=database_path,
            supported_formats=library_data.get(
                "supported_formats", config.library.supported_formats
            ),
        )

    if "player" in toml_data:
        player_data = toml_data["player"]
        config.player = PlayerConfig(
            mpv_executable=player_data.get(
                "mpv_executable", config.player.mpv_executable
            ),
            mpv_socket_path=player_data.get("mpv_socket_path"),
            volume=player_data.get("volume", config.player.volume),
            load_timeout=player_data.get("load_timeout", config.player.load_timeout),
        )

    if "playback" in toml_data:
        playback_data = toml_data["playback"]
        defaults = PlaybackConfig()
        config.playback = PlaybackConfig(
            skip_interval=float(
                playback_data.get("skip_interval", defaults.skip_interval)
            ),
            default_rate=float(playback_data.get("default_rate", defaults.default_rate)),
            tick_interval=float(
                playback_data.get("tick_interval", defaults.tick_interval)
            ),
            autosave_interval=float(
                playback_data.get("autosave_interval", defaults.autosave_interval)
            ),
            finished_threshold=float(
                playback_data.get("finished_threshold", defaults.finished_threshold)
            ),
            sleep_poll_interval=float(
                playback_data.get("sleep_poll_interval", defaults.sleep_poll_interval)
            ),
            sleep_timer_options=playback_data.get(
                "sleep_timer_options", defaults.sleep_timer_options
            ),
        )
        try:
            config.playback.validate()
        except ValueError as e:
            print(f"Warning: Invalid playback configuration: {e}")
            print("Using default playback configuration.")
            config.playback = PlaybackConfig()

    if "logging" in toml_data:
        logging_data = toml_data["logging"]
        log_file = logging_data.get("log_file")
        if log_file:
            log_file = str(Path(log_file).expanduser())
        config.logging = LoggingConfig(
            level=logging_data.get("level", config.logging.level).upper(),
            log_file=log_file,
            max_file_size_mb=logging_data.get(
                "max_file_size_mb", config.logging.max_file_size_mb
            ),
            backup_count=logging_data.get("backup_count", config.logging.backup_count),
            console_output=logging_data.get(
                "console_output", config.logging.console_output
            ),
        )

    if "ipc" in toml_data:
        config.ipc = IPCConfig(
            enabled=toml_data["ipc"].get("enabled", config.ipc.enabled)
        )

    if "notifications" in toml_data:
        config.notifications = NotificationsConfig(
            enabled=toml_data["notifications"].get(
                "enabled", config.notifications.enabled
            )
        )

    return config


def _apply_env_overrides(config: Config) -> Config:
    """Environment variables override TOML values."""
    database_path = os.environ.get("STORYLINE_DATABASE_PATH")
    mpv_socket = os.environ.get("STORYLINE_MPV_SOCKET")

    if database_path:
        config.library.database_path = str(Path(database_path).expanduser())
    if mpv_socket:
        config.player.mpv_socket_path = mpv_socket

    return config


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values:
    - STORYLINE_DATABASE_PATH
    - STORYLINE_MPV_SOCKET
    """
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    config_path = config_path or get_config_path()

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
        print(f"Created default configuration at: {config_path}")
        return _apply_env_overrides(Config())

    try:
        with open(config_path, "rb") as f:
            toml_data = tomllib.load(f)
        return _apply_env_overrides(_parse_config(toml_data))

    except (OSError, tomllib.TOMLDecodeError) as e:
        print(f"Error loading configuration from {config_path}: {e}")
        print("Using default configuration.")
        return _apply_env_overrides(Config())


def get_database_path(config: Optional[Config] = None) -> Path:
    """Resolve the SQLite database path from config or the data dir."""
    if config and config.library.database_path:
        return Path(config.library.database_path)
    return get_data_dir() / "storyline.db"


def get_log_file_path(config: Optional[Config] = None) -> Path:
    """Resolve the log file path from config or the data dir."""
    if config and config.logging.log_file:
        return Path(config.logging.log_file)
    return get_data_dir() / "storyline.log"


def ensure_directories() -> None:
    """Ensure all necessary directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    get_data_dir().mkdir(parents=True, exist_ok=True)
