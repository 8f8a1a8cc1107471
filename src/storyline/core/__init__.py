"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML)
- Database connection and schema (SQLite)
- Logging setup (Loguru)
- Console management (Rich)
"""

from .config import (
    Config,
    PlaybackConfig,
    PlayerConfig,
    SUPPORTED_RATES,
    DEFAULT_RATE,
    load_config,
    get_config_dir,
    get_config_path,
    get_data_dir,
    get_log_file_path,
    create_default_config,
    ensure_directories,
)
from .database import (
    get_database_path,
    get_db_connection,
    init_database,
)
from .output import setup_loguru

__all__ = [
    # Config
    "Config",
    "PlaybackConfig",
    "PlayerConfig",
    "SUPPORTED_RATES",
    "DEFAULT_RATE",
    "load_config",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "get_log_file_path",
    "create_default_config",
    "ensure_directories",
    # Database
    "get_database_path",
    "get_db_connection",
    "init_database",
    # Logging
    "setup_loguru",
]
