"""Navigation tool implementations."""

import json

from selenium.webdriver.support.ui import WebDriverWait

from ..decorators import with_session
from ..utils.retry import retry_op

import logging
logger = logging.getLogger(__name__)


@with_session
def visit(session, url: str, wait_for: str = "load", timeout_sec: int = 30) -> str:
    """
    Navigate to a URL and return JSON with the resulting URL and title.
    """
    final_url = retry_op(lambda: session.navigate(url))

    if (wait_for or "load").lower() == "complete":
        try:
            WebDriverWait(session.driver, timeout_sec).until(
                lambda d: d.execute_script("return document.readyState") == "complete"
            )
        except Exception as e:
            logger.debug(f"Page did not reach readyState=complete: {e}")

    return json.dumps({
        "ok": True,
        "action": "visit",
        "url": url,
        "current_url": final_url,
        "title": session.title,
    })


@with_session
def get_current_url(session) -> str:
    return json.dumps({"ok": True, "current_url": session.current_url})


__all__ = ["visit", "get_current_url"]
