# mcp_headless_browser/decorators/envelope.py
"""
Uniform JSON replies for MCP tools.

Every failure a client sees has the same shape:

    {"ok": false,
     "summary": "ScriptError: Script error: x is not defined",
     "error": {"code": "script_error", "type": "ScriptError", "message": "..."},
     "timestamp": "2025-01-01T00:00:00+00:00"}

`error.code` is stable: package errors carry it as `error_code`
(see `errors.py`), WebDriver failures map to `webdriver_error`, anything else
is `internal_error` and also carries a traceback unless
HBT_TOOL_ERRORS_TRACEBACK=0.
"""

import os
import json
import asyncio
import inspect
import datetime
import functools
import traceback
from typing import Any, Callable, Optional

from selenium.common.exceptions import WebDriverException

from ..errors import BrowserToolError, ScriptError

import logging
logger = logging.getLogger(__name__)

INTERNAL_ERROR = "internal_error"
WEBDRIVER_ERROR = "webdriver_error"


def _tracebacks_enabled() -> bool:
    return os.getenv("HBT_TOOL_ERRORS_TRACEBACK", "1").strip().lower() not in ("0", "false", "no", "off")


def error_code_for(err: BaseException) -> str:
    if isinstance(err, BrowserToolError):
        return err.error_code
    if isinstance(err, WebDriverException):
        return WEBDRIVER_ERROR
    return INTERNAL_ERROR


def error_response(err: BaseException, tb: Optional[str] = None) -> str:
    """JSON error reply for `err`. `tb` is attached as error.traceback when given."""
    error = {
        "code": error_code_for(err),
        "type": type(err).__name__,
        "message": err.text if isinstance(err, ScriptError) else str(err),
    }
    if tb:
        error["traceback"] = tb
    return json.dumps({
        "ok": False,
        "summary": f"{type(err).__name__}: {err}",
        "error": error,
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
    }, ensure_ascii=False)


def _handle_failure(tool_name: str, err: Exception) -> str:
    code = error_code_for(err)
    if code == INTERNAL_ERROR:
        logger.exception(f"Tool {tool_name} failed unexpectedly")
        return error_response(err, traceback.format_exc() if _tracebacks_enabled() else None)
    logger.warning(f"Tool {tool_name} failed: [{code}] {err}")
    return error_response(err)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bytes):
        return value.decode("utf-8", "replace")
    try:
        return json.dumps(value, ensure_ascii=False, default=lambda o: getattr(o, "__dict__", repr(o)))
    except (TypeError, ValueError):
        return str(value)


def tool_envelope(func: Callable):
    """
    Make an MCP tool always answer with a string.

    Results that are not strings are JSON encoded. Exceptions become an
    `error_response`; cancellation of async tools still propagates.
    """
    name = getattr(func, "__name__", "tool")

    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            try:
                return _as_text(await func(*args, **kwargs))
            except asyncio.CancelledError:
                raise
            except Exception as e:
                return _handle_failure(name, e)
        return async_wrapper

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return _as_text(func(*args, **kwargs))
        except Exception as e:
            return _handle_failure(name, e)
    return wrapper


__all__ = [
    "tool_envelope",
    "error_response",
    "error_code_for",
]
