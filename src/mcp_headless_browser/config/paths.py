"""Path utilities for the server's working directories."""

import os
from pathlib import Path
from typing import Optional

from .environment import get_env_config


def setup_directories(config: Optional[dict] = None, include_logs: bool = False) -> dict:
    """
    Create the sessions (and optionally logs) directories.

    A `.gitignore` containing `*` is dropped into the base directory so a
    project-local HBT_DIR never ends up in version control.

    Returns:
        The configuration dict that was used
    """
    if config is None:
        config = get_env_config()

    Path(config["sessions_dir"]).mkdir(parents=True, exist_ok=True)
    if include_logs:
        Path(config["logs_dir"]).mkdir(parents=True, exist_ok=True)

    base = Path(config["base_dir"])
    base.mkdir(parents=True, exist_ok=True)
    gitignore = base / ".gitignore"
    if not gitignore.exists():
        gitignore.write_text("*\n")
    return config


def session_snapshot_path(sessions_dir: str, session_id: str) -> str:
    """Path of the snapshot file for one session id."""
    return os.path.join(sessions_dir, f"{session_id}.json")


def log_file_path(config: Optional[dict] = None) -> str:
    """Per-process log file used when stdout is reserved for the protocol."""
    if config is None:
        config = get_env_config()
    return os.path.join(config["logs_dir"], f"{os.getpid()}.log")


def chromedriver_log_path(config: Optional[dict] = None) -> Optional[str]:
    """chromedriver log next to the server log, or None when the logs dir does not exist."""
    if config is None:
        config = get_env_config()
    logs_dir = config.get("logs_dir")
    if not logs_dir or not os.path.isdir(logs_dir):
        return None
    return os.path.join(logs_dir, f"chromedriver_{os.getpid()}.log")


__all__ = [
    "setup_directories",
    "session_snapshot_path",
    "log_file_path",
    "chromedriver_log_path",
]
