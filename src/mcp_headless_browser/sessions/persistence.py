"""Session snapshots: URL, cookies, web storage and window size on disk."""

import datetime
import glob
import json
import os
import tempfile
from typing import Any, List, Optional

import logging
logger = logging.getLogger(__name__)

from ..config.paths import session_snapshot_path
from ..constants import BLANK_URLS

_STORAGE_READ = """
const items = {};
for (let i = 0; i < %(storage)s.length; i++) {
  const key = %(storage)s.key(i);
  items[key] = %(storage)s.getItem(key);
}
return items;
"""

# Fields that WebDriver reports but refuses on add_cookie
_UNSETTABLE_COOKIE_FIELDS = ("sameSite", "httpOnly", "same_site", "http_only")


def _has_storage(url: Optional[str]) -> bool:
    return bool(url) and url not in BLANK_URLS and not url.startswith("data:")


class SessionPersistence:
    """Reads and writes `<sessions_dir>/<session_id>.json`."""

    def __init__(self, sessions_dir: str):
        self.sessions_dir = sessions_dir

    def path_for(self, session_id: str) -> str:
        return session_snapshot_path(self.sessions_dir, session_id)

    def exists(self, session_id: str) -> bool:
        return os.path.exists(self.path_for(session_id))

    def delete(self, session_id: str) -> None:
        try:
            os.remove(self.path_for(session_id))
        except FileNotFoundError:
            pass

    def list_sessions(self) -> List[dict]:
        """Summaries of every readable snapshot: session_id, saved_at, current_url."""
        found = []
        for path in sorted(glob.glob(os.path.join(self.sessions_dir, "*.json"))):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    state = json.load(f)
                found.append({
                    "session_id": state["session_id"],
                    "saved_at": state.get("saved_at"),
                    "current_url": state.get("current_url"),
                })
            except (OSError, ValueError, KeyError, TypeError) as e:
                logger.info(f"Error loading persisted session from {path}: {e}")
        return found

    # Save

    def save(self, session_id: str, session) -> bool:
        """Write a snapshot of `session`. Failures are logged and reported as False."""
        if not session_id or session is None:
            return False
        try:
            current_url = session.driver.current_url
            state = {
                "session_id": session_id,
                "saved_at": datetime.datetime.now(datetime.timezone.utc).isoformat(),
                "current_url": current_url,
                "cookies": self._extract_cookies(session),
                "local_storage": self._extract_storage(session, "localStorage", current_url),
                "session_storage": self._extract_storage(session, "sessionStorage", current_url),
                "window_size": self._extract_window_size(session),
            }
            self._write(self.path_for(session_id), state)
        except Exception as e:
            logger.info(f"Error saving session {session_id}: {e}")
            return False
        logger.debug(f"Saved session snapshot: {session_id}")
        return True

    def _write(self, path: str, state: dict) -> None:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=".snapshot-", suffix=".json", dir=os.path.dirname(path) or ".")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state, f, indent=2, default=str)
            os.replace(tmp, path)
        except BaseException:
            try:
                os.remove(tmp)
            except OSError:
                pass
            raise

    @staticmethod
    def _extract_cookies(session) -> List[dict]:
        try:
            return list(session.driver.get_cookies() or [])
        except Exception as e:
            logger.info(f"Error extracting cookies: {e}")
            return []

    @staticmethod
    def _extract_storage(session, storage_type: str, current_url: Optional[str]) -> dict:
        if not _has_storage(current_url):
            return {}
        try:
            items = session.driver.execute_script(_STORAGE_READ % {"storage": storage_type})
            return dict(items or {})
        except Exception as e:
            logger.info(f"Error extracting {storage_type}: {e}")
            return {}

    @staticmethod
    def _extract_window_size(session) -> Optional[dict]:
        try:
            size = session.driver.get_window_size()
            return {"width": size["width"], "height": size["height"]}
        except Exception as e:
            logger.info(f"Error extracting window size: {e}")
            return None

    # Restore

    def restore(self, session_id: str, session) -> bool:
        """
        Apply the saved snapshot to a fresh session.

        Returns False when there is no snapshot or it is unusable; an
        unusable snapshot file is deleted.
        """
        path = self.path_for(session_id)
        if not os.path.exists(path):
            return False

        try:
            with open(path, "r", encoding="utf-8") as f:
                state = json.load(f)

            url = state.get("current_url")
            # Cookies and storage belong to the origin, so go there first
            if url and url not in BLANK_URLS:
                session.driver.get(url)

            if state.get("cookies"):
                self._restore_cookies(session, state["cookies"])
            if state.get("local_storage"):
                self._restore_storage(session, "localStorage", state["local_storage"])
            if state.get("session_storage"):
                self._restore_storage(session, "sessionStorage", state["session_storage"])

            size = state.get("window_size")
            if size:
                session.driver.set_window_size(size["width"], size["height"])
        except Exception as e:
            logger.info(f"Error restoring session {session_id}: {e}")
            self.delete(session_id)
            return False

        logger.info(f"Restored session snapshot: {session_id}")
        return True

    @staticmethod
    def _restore_cookies(session, cookies: List[dict]) -> None:
        for cookie in cookies:
            cleaned = {k: v for k, v in cookie.items() if k not in _UNSETTABLE_COOKIE_FIELDS}
            try:
                session.driver.add_cookie(cleaned)
            except Exception as e:
                logger.info(f"Error restoring cookie {cookie.get('name')!r}: {e}")

    @staticmethod
    def _restore_storage(session, storage_type: str, data: Any) -> None:
        try:
            current_url = session.driver.current_url
        except Exception as e:
            logger.info(f"Error restoring {storage_type}: {e}")
            return
        if not _has_storage(current_url):
            return
        try:
            for key, value in dict(data).items():
                session.driver.execute_script(
                    f"{storage_type}.setItem(arguments[0], arguments[1]);", key, value
                )
        except Exception as e:
            logger.info(f"Error restoring {storage_type}: {e}")


__all__ = ["SessionPersistence"]
