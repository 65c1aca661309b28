"""Environment configuration and validation."""

import os
from pathlib import Path
from typing import Optional

import logging
logger = logging.getLogger(__name__)

from .. import constants


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def get_env_config() -> dict:
    """
    Read environment variables into a plain configuration dict.

    Optional:   HBT_HEADLESS (default '1')
                HBT_CHROME_PATH
                HBT_DIR (default '~/.hbt')
                HBT_SESSIONS_DIR (default '$HBT_DIR/sessions')
                HBT_LOGS_DIR (default '$HBT_DIR/logs')
                HBT_TRANSPORT (default 'stdio')

    Numeric limits (timeouts, capacities) come from `constants` so that every
    module sees the same values; they are copied here for diagnostics.
    """
    base_dir = (os.getenv("HBT_DIR") or "").strip() or str(Path.home() / ".hbt")
    sessions_dir = (os.getenv("HBT_SESSIONS_DIR") or "").strip() or os.path.join(base_dir, "sessions")
    logs_dir = (os.getenv("HBT_LOGS_DIR") or "").strip() or os.path.join(base_dir, "logs")

    chrome_path = (os.getenv("HBT_CHROME_PATH") or "").strip() or None
    if chrome_path and not Path(chrome_path).exists():
        logger.warning(f"HBT_CHROME_PATH does not exist: {chrome_path}")

    transport = (os.getenv("HBT_TRANSPORT") or "stdio").strip() or "stdio"
    if transport not in ("stdio", "sse", "streamable-http"):
        raise EnvironmentError(f"Unsupported HBT_TRANSPORT: {transport}")

    return {
        "headless": _flag(os.getenv("HBT_HEADLESS"), True),
        "chrome_path": chrome_path,
        "base_dir": base_dir,
        "sessions_dir": sessions_dir,
        "logs_dir": logs_dir,
        "transport": transport,
        "cdp_enabled": constants.CDP_ENABLED,
        "cdp_timeout": constants.CDP_TIMEOUT_SECS,
        "max_sessions": constants.MAX_SESSIONS,
        "session_timeout": constants.SESSION_TIMEOUT_SECS,
        "cleanup_interval": constants.CLEANUP_INTERVAL_SECS,
        "context_max_age": constants.CONTEXT_MAX_AGE_SECS,
    }
