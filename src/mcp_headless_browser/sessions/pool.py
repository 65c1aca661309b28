"""
Pool of per-client browser sessions.

Maps client-chosen session ids to live `BrowserSession` handles with a
capacity bound (least recently used handle evicted), an idle timeout enforced
by a background sweeper thread, and snapshot persistence around creation and
release.

Thread Safety:
    Every membership change (create, evict, drop, close, sweep) happens under
    one re-entrant lock per pool. Sessions leaving through `close` or the
    sweeper are persisted and quit after the lock is released; evicted
    sessions are released under the lock so capacity is never exceeded.
"""

import re
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import logging
logger = logging.getLogger(__name__)

from ..constants import (
    CLEANUP_INTERVAL_SECS,
    MAX_SESSIONS,
    SESSION_ID_PATTERN,
    SESSION_TIMEOUT_SECS,
)
from ..errors import InvalidIdentifier

_SESSION_ID_RE = re.compile(SESSION_ID_PATTERN)


def valid_session_id(session_id) -> bool:
    return isinstance(session_id, str) and _SESSION_ID_RE.match(session_id) is not None


@dataclass
class SessionRecord:
    """Bookkeeping for one session id, with or without a live handle."""

    created_at: float
    last_activity: float
    persisted: bool = False

    def idle_time(self, now: float) -> float:
        return now - self.last_activity


class SessionPool:
    def __init__(
        self,
        factory: Callable[[str], object],
        persistence=None,
        *,
        max_sessions: int = MAX_SESSIONS,
        idle_timeout: float = SESSION_TIMEOUT_SECS,
        sweep_interval: float = CLEANUP_INTERVAL_SECS,
        clock: Callable[[], float] = time.time,
    ):
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self.max_sessions = max_sessions
        self.idle_timeout = idle_timeout
        self.sweep_interval = sweep_interval
        self._factory = factory
        self._persistence = persistence
        self._clock = clock
        self._lock = threading.RLock()
        self._sessions: Dict[str, object] = {}
        self._records: Dict[str, SessionRecord] = {}
        self._stop = threading.Event()
        self._sweeper: Optional[threading.Thread] = None
        self._load_persisted()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id) -> bool:
        with self._lock:
            return session_id in self._sessions

    def get(self, session_id: str):
        """Live handle for `session_id` or None. Does not create or refresh."""
        with self._lock:
            return self._sessions.get(session_id)

    def get_or_create(self, session_id: str):
        """
        Return the live handle for `session_id`, creating it if needed.

        Raises:
            InvalidIdentifier: malformed id; nothing is allocated
        """
        if not valid_session_id(session_id):
            raise InvalidIdentifier(session_id)

        with self._lock:
            now = self._clock()
            record = self._records.get(session_id)
            is_new_record = record is None
            if record is None:
                record = self._records[session_id] = SessionRecord(created_at=now, last_activity=now)
            record.last_activity = now

            session = self._sessions.get(session_id)
            if session is not None and not self._is_alive(session):
                logger.info(f"Session {session_id} browser window closed, creating new session")
                del self._sessions[session_id]
                self._quit(session_id, session)
                session = None

            if session is not None:
                return session

            if len(self._sessions) >= self.max_sessions:
                self._evict_lru()

            try:
                session = self._build(session_id)
            except Exception:
                if is_new_record:
                    self._records.pop(session_id, None)
                raise
            self._sessions[session_id] = session
            return session

    def close(self, session_id: str) -> bool:
        """Persist and release `session_id`. Returns whether a live handle existed."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
            self._records.pop(session_id, None)
        if session is None:
            return False
        self._release(session_id, session)
        return True

    def info(self) -> dict:
        with self._lock:
            now = self._clock()
            data = {
                "active_sessions": list(self._sessions),
                "session_count": len(self._sessions),
                "max_sessions": self.max_sessions,
                "idle_timeout": self.idle_timeout,
                "session_data": {
                    sid: {
                        "created_at": rec.created_at,
                        "last_activity": rec.last_activity,
                        "idle_time": rec.idle_time(now),
                        "persisted": rec.persisted,
                    }
                    for sid, rec in self._records.items()
                },
            }
        if self._persistence is not None:
            data["persisted_sessions"] = [s["session_id"] for s in self._persistence.list_sessions()]
        else:
            data["persisted_sessions"] = []
        return data

    def save_all(self) -> int:
        """Persist every live session without closing it. Returns the number saved."""
        if self._persistence is None:
            return 0
        with self._lock:
            items = list(self._sessions.items())
        return sum(1 for sid, session in items if self._persistence.save(sid, session))

    # Idle sweep

    def sweep_idle(self) -> List[str]:
        """
        Drop every record idle for longer than the timeout and close its browser
        if one is live. Snapshots on disk are kept. Returns the dropped ids.
        """
        with self._lock:
            now = self._clock()
            idle = [sid for sid, rec in self._records.items() if rec.idle_time(now) > self.idle_timeout]
            leaving = []
            for sid in idle:
                rec = self._records.pop(sid)
                logger.info(f"Cleaning up idle session: {sid} (idle for {int(rec.idle_time(now))}s)")
                # Records restored from disk or left by a failed build have no browser
                session = self._sessions.pop(sid, None)
                if session is not None:
                    leaving.append((sid, session))

        for sid, session in leaving:
            self._release(sid, session)
        return idle

    def start(self) -> None:
        """Run `sweep_idle` every `sweep_interval` seconds on a daemon thread."""
        with self._lock:
            if self._sweeper is not None and self._sweeper.is_alive():
                return
            self._stop.clear()
            self._sweeper = threading.Thread(target=self._sweep_loop, name="session-sweeper", daemon=True)
            self._sweeper.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        sweeper, self._sweeper = self._sweeper, None
        if sweeper is not None and sweeper is not threading.current_thread():
            sweeper.join(timeout)

    def _sweep_loop(self) -> None:
        while not self._stop.wait(self.sweep_interval):
            try:
                self.sweep_idle()
            except Exception as e:
                logger.error(f"Error during idle session cleanup: {e}", exc_info=True)

    def shutdown(self) -> None:
        """Stop the sweeper, then persist and release every session."""
        self.stop()
        with self._lock:
            items = list(self._sessions.items())
            self._sessions.clear()
            self._records.clear()
        if items:
            logger.info(f"Shutting down {len(items)} browser session(s)")
        for sid, session in items:
            self._release(sid, session)

    # Internals

    def _build(self, session_id: str):
        session = self._factory(session_id)
        if self._persistence is not None:
            try:
                self._persistence.restore(session_id, session)
            except Exception as e:
                logger.info(f"Error restoring session {session_id}: {e}")
        return session

    def _evict_lru(self) -> None:
        victim = min(self._sessions, key=lambda sid: self._records[sid].last_activity)
        logger.info(f"Closing least recently used session: {victim}")
        session = self._sessions.pop(victim)
        self._records.pop(victim, None)
        self._release(victim, session)

    def _release(self, session_id: str, session) -> None:
        if self._persistence is not None:
            try:
                self._persistence.save(session_id, session)
            except Exception as e:
                logger.info(f"Error saving session {session_id}: {e}")
        self._quit(session_id, session)

    @staticmethod
    def _quit(session_id: str, session) -> None:
        try:
            session.quit()
        except Exception as e:
            logger.info(f"Error closing session {session_id}: {e}")

    @staticmethod
    def _is_alive(session) -> bool:
        try:
            return session.is_alive()
        except Exception as e:
            logger.debug(f"Liveness check failed: {e}")
            return False

    def _load_persisted(self) -> None:
        if self._persistence is None:
            return
        now = self._clock()
        for summary in self._persistence.list_sessions():
            sid = summary["session_id"]
            if not valid_session_id(sid):
                continue
            self._records.setdefault(sid, SessionRecord(created_at=now, last_activity=now, persisted=True))
            logger.info(f"Found persisted session: {sid}")


__all__ = ["SessionPool", "SessionRecord", "valid_session_id"]
