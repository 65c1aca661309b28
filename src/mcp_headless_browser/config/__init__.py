"""Configuration management for the browser server."""

from .environment import get_env_config

from .paths import (
    setup_directories,
    session_snapshot_path,
    log_file_path,
    chromedriver_log_path,
)

__all__ = [
    "get_env_config",
    "setup_directories",
    "session_snapshot_path",
    "log_file_path",
    "chromedriver_log_path",
]
