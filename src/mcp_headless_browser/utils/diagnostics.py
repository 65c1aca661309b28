"""Diagnostics and debugging information utility functions."""

import os
import sys
import platform
from typing import Optional

import psutil
import selenium

from ..browser.driver import get_chromedriver_capability_version
from ..context import get_context


def _process_memory_mb() -> Optional[float]:
    try:
        return round(psutil.Process(os.getpid()).memory_info().rss / (1024 * 1024), 1)
    except psutil.Error:
        return None


def _chrome_processes() -> int:
    count = 0
    for proc in psutil.process_iter(["name"]):
        name = (proc.info.get("name") or "").lower()
        if "chrome" in name or "chromium" in name:
            count += 1
    return count


def describe_session(session) -> dict:
    """Driver and CDP state of one BrowserSession."""
    info = {
        "session_id": session.session_id,
        "closed": session.closed,
        "cdp": session.controller.describe(),
    }
    if not session.closed:
        cap = getattr(session.driver, "capabilities", None) or {}
        info["browser_version"] = cap.get("browserVersion") or "<unknown>"
        info["driver_version"] = get_chromedriver_capability_version(session.driver) or "<unknown>"
        info["debugger_address"] = (cap.get("goog:chromeOptions") or {}).get("debuggerAddress")
    return info


def collect_diagnostics(session=None, exc: Optional[Exception] = None, config: Optional[dict] = None) -> dict:
    """
    Collect diagnostic information about the environment, the pool and
    optionally one session.

    Args:
        session: BrowserSession to describe (optional)
        exc: Exception that occurred (can be None)
        config: Configuration dictionary (if None, will get from context)
    """
    ctx = get_context()
    if config is None:
        config = ctx.config

    diag = {
        "os": f"{platform.system()} {platform.release()}",
        "python": sys.version.split()[0],
        "selenium": getattr(selenium, "__version__", "?"),
        "process": {
            "pid": os.getpid(),
            "rss_mb": _process_memory_mb(),
            "chrome_processes": _chrome_processes(),
        },
        "config": {
            "headless": config.get("headless"),
            "chrome_path": config.get("chrome_path") or "<default>",
            "sessions_dir": config.get("sessions_dir"),
            "logs_dir": config.get("logs_dir"),
            "transport": config.get("transport"),
            "cdp_enabled": config.get("cdp_enabled"),
            "max_sessions": config.get("max_sessions"),
            "session_timeout": config.get("session_timeout"),
        },
        "pool": ctx.pool.info() if ctx.has_pool() else None,
    }

    if session is not None:
        diag["session"] = describe_session(session)

    if exc is not None:
        diag["error"] = {"type": type(exc).__name__, "message": str(exc)}

    return diag


__all__ = ["collect_diagnostics", "describe_session"]
