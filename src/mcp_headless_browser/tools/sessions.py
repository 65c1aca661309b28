"""Session management tool implementations."""

import json

from ..context import get_context
from ..decorators import error_response, with_session
from ..errors import InvalidIdentifier, PersistenceDisabled
from ..sessions.pool import valid_session_id


def get_session_info() -> str:
    return json.dumps({"ok": True, **get_context().pool.info()}, default=str)


@with_session
def save_session(session) -> str:
    ctx = get_context()
    if ctx.persistence is None:
        return error_response(PersistenceDisabled("Session snapshots are disabled"))
    saved = ctx.persistence.save(session.session_id, session)
    return json.dumps({
        "ok": saved,
        "session_id": session.session_id,
        "path": ctx.persistence.path_for(session.session_id),
    })


def close_session(session_id: str) -> str:
    """Persist and close a session. Closing an unknown id is not an error."""
    if not valid_session_id(session_id):
        return error_response(InvalidIdentifier(session_id))
    closed = get_context().pool.close(session_id)
    return json.dumps({"ok": True, "session_id": session_id, "closed": closed})


__all__ = ["get_session_info", "save_session", "close_session"]
