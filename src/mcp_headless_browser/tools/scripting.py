"""JavaScript tool implementations."""

import datetime
import json
import time

from ..decorators import error_response, with_session
from ..errors import ScriptError


@with_session
def evaluate_script(session, javascript_code: str) -> str:
    """Evaluate an expression and return its value. A throwing script is reported, not raised."""
    try:
        value, channel = session.evaluate_with_channel(javascript_code)
    except ScriptError as e:
        return error_response(e)
    return json.dumps({"ok": True, "result": value, "via": channel}, default=str)


@with_session
def execute_script(session, javascript_code: str) -> str:
    started = time.monotonic()
    try:
        session.execute(javascript_code)
    except ScriptError as e:
        return error_response(e)
    return json.dumps({
        "ok": True,
        "status": "executed",
        "execution_time": round(time.monotonic() - started, 4),
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
    })


__all__ = ["evaluate_script", "execute_script"]
