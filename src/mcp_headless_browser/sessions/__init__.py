"""Session pool and snapshot persistence."""

from .pool import SessionPool, SessionRecord, valid_session_id
from .persistence import SessionPersistence

__all__ = [
    "SessionPool",
    "SessionRecord",
    "valid_session_id",
    "SessionPersistence",
]
