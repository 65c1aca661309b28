"""Debugging and diagnostic tool implementations."""

import json
from typing import Optional

from ..context import get_context
from ..decorators import error_response
from ..errors import InvalidIdentifier
from ..sessions.pool import valid_session_id
from ..utils.diagnostics import collect_diagnostics


def get_debug_info(session_id: Optional[str] = None) -> str:
    """
    Diagnostics for the process and pool, plus one session if `session_id`
    names a live one. Never starts a browser.
    """
    session = None
    if session_id:
        if not valid_session_id(session_id):
            return error_response(InvalidIdentifier(session_id))
        session = get_context().pool.get(session_id)
    return json.dumps({"ok": True, "diagnostics": collect_diagnostics(session)}, default=str)


__all__ = ["get_debug_info"]
