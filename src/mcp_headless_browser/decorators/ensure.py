# mcp_headless_browser/decorators/ensure.py
import inspect
import functools

from ..context import get_context
from ..errors import InvalidIdentifier
from ..sessions.pool import valid_session_id
from .envelope import error_response


def _invalid_session_payload(session_id) -> str:
    return error_response(InvalidIdentifier(session_id))


def with_session(fn):
    """
    Resolve the `session_id` argument to a pooled BrowserSession.

    The wrapped function receives the session as its first argument in place
    of the id. A malformed id is answered with an `invalid_session_id` error
    reply before any browser is started.
    """
    if inspect.iscoroutinefunction(fn):
        @functools.wraps(fn)
        async def wrapper(session_id, *args, **kwargs):
            if not valid_session_id(session_id):
                return _invalid_session_payload(session_id)
            session = get_context().pool.get_or_create(session_id)
            return await fn(session, *args, **kwargs)
        return wrapper
    else:
        @functools.wraps(fn)
        def wrapper(session_id, *args, **kwargs):
            if not valid_session_id(session_id):
                return _invalid_session_payload(session_id)
            session = get_context().pool.get_or_create(session_id)
            return fn(session, *args, **kwargs)
        return wrapper
