"""
Global constants and configuration defaults.
No dependencies - safe to import from anywhere.

Values are read once from the environment at import time. A `.env` file in
the working directory (or any parent) is honoured.
"""

import os

from dotenv import load_dotenv, find_dotenv

load_dotenv(find_dotenv(filename=".env", usecwd=True), override=False)


def _env_flag(name: str, default: str) -> bool:
    return (os.getenv(name, default) or "").strip().lower() in ("1", "true", "yes", "on")


# ============================================================================
# Script Execution Configuration
# ============================================================================

CDP_TIMEOUT_SECS = int(os.getenv("HBT_CDP_TIMEOUT", "30"))
"""Timeout for a single script evaluation in seconds."""

COMMAND_TIMEOUT_SECS = float(os.getenv("HBT_COMMAND_TIMEOUT", "10"))
"""Timeout for any other DevTools command in seconds."""

CONTEXT_MAX_AGE_SECS = int(os.getenv("HBT_CONTEXT_MAX_AGE", "3600"))
"""Cached execution contexts older than this are recreated."""

EXECUTION_RETRY_BUDGET = 3
"""Attempts made for context-related failures before giving up."""

SCRIPT_SOURCE_URL = os.getenv("HBT_SCRIPT_SOURCE_URL", "app.js")
"""Value of the `//# sourceURL=` annotation appended to every script."""

WRAP_SCRIPTS = _env_flag("HBT_WRAP_SCRIPTS", "0")
"""Wrap scripts in an IIFE before evaluation."""

ISOLATED_WORLD_PREFIX = os.getenv("HBT_ISOLATED_WORLD_PREFIX", "hbt_iso")
"""Prefix of generated isolated world names."""

CDP_DEBUG = _env_flag("HBT_CDP_DEBUG", "false")
"""Verbose [CDP] debug logging."""

CDP_ENABLED = _env_flag("HBT_CDP_ENABLED", "1")
"""Attempt DevTools setup for new browser sessions."""


# ============================================================================
# Session Pool Configuration
# ============================================================================

MAX_SESSIONS = int(os.getenv("HBT_MAX_SESSIONS", "10"))
"""Maximum number of live browser sessions."""

SESSION_TIMEOUT_SECS = int(os.getenv("HBT_SESSION_TIMEOUT", str(30 * 60)))
"""Sessions idle for longer than this are closed by the sweeper."""

CLEANUP_INTERVAL_SECS = int(os.getenv("HBT_CLEANUP_INTERVAL", "60"))
"""How often the idle sweep runs."""

SESSION_ID_PATTERN = r"\A[A-Za-z0-9_\-]{1,64}\Z"
"""Allowed client session identifiers."""


# ============================================================================
# Snapshot Configuration
# ============================================================================

BLANK_URLS = ("about:blank", "data:,")
"""URLs that carry no restorable state."""


__all__ = [
    "CDP_TIMEOUT_SECS",
    "COMMAND_TIMEOUT_SECS",
    "CONTEXT_MAX_AGE_SECS",
    "EXECUTION_RETRY_BUDGET",
    "SCRIPT_SOURCE_URL",
    "WRAP_SCRIPTS",
    "ISOLATED_WORLD_PREFIX",
    "CDP_DEBUG",
    "CDP_ENABLED",
    "MAX_SESSIONS",
    "SESSION_TIMEOUT_SECS",
    "CLEANUP_INTERVAL_SECS",
    "SESSION_ID_PATTERN",
    "BLANK_URLS",
]
