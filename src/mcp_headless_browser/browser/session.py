"""A pooled browser: one Selenium driver plus its DevTools controller."""

from typing import Any, Optional, Tuple

from selenium.common.exceptions import (
    InvalidSessionIdException,
    JavascriptException,
    NoSuchWindowException,
    SessionNotCreatedException,
)

import logging
logger = logging.getLogger(__name__)

from ..cdp.bridge import SupportsRemoteDebugging
from ..cdp.connection import CdpConnection
from ..cdp.controller import CdpController
from ..constants import CDP_ENABLED, CDP_TIMEOUT_SECS, COMMAND_TIMEOUT_SECS, CONTEXT_MAX_AGE_SECS
from ..errors import BrowserToolError, ScriptError, SessionClosed
from .devtools import resolve_page_websocket_url
from .driver import create_webdriver

# Raised by the driver once the browser window or process has gone away
DEAD_BROWSER_ERRORS = (NoSuchWindowException, InvalidSessionIdException, SessionNotCreatedException)

CHANNEL_CDP = "cdp"
CHANNEL_WEBDRIVER = "webdriver"


class BrowserSession(SupportsRemoteDebugging):
    """
    Handle of one live browser.

    `evaluate` and `execute` prefer the DevTools path (isolated world and main
    world respectively) and fall back to WebDriver `execute_script` whenever
    that path is unavailable or fails for reasons other than the script
    itself.

    Not thread-safe; callers serialize use of one session.
    """

    def __init__(self, session_id: str, driver, *, cdp_enabled: bool = CDP_ENABLED, controller: Optional[CdpController] = None):
        self.session_id = session_id
        self.driver = driver
        self.cdp_enabled = cdp_enabled
        self.controller = controller if controller is not None else CdpController(session_id)
        self.closed = False

    def __repr__(self) -> str:
        return f"BrowserSession({self.session_id!r}, cdp={self.controller.state.value})"

    # DevTools

    def open_devtools(self) -> CdpConnection:
        url = resolve_page_websocket_url(self.driver)
        logger.debug(f"[CDP] Connecting to {url}")
        return CdpConnection.open(url, timeout=COMMAND_TIMEOUT_SECS, name=f"cdp-{self.session_id}")

    def setup_cdp(self) -> bool:
        if not self.cdp_enabled:
            logger.debug(f"[CDP] Disabled for session {self.session_id}")
            return False
        return self.controller.setup(self)

    def cdp_available(self) -> bool:
        return not self.closed and self.controller.cdp_available()

    def run_isolated(self, script: str) -> Any:
        self._check_open()
        return self.controller.run_isolated(script)

    def run_main(self, script: str) -> Any:
        self._check_open()
        return self.controller.run_main(script)

    # Script execution

    def evaluate(self, script: str) -> Any:
        """Evaluate an expression and return its value."""
        return self.evaluate_with_channel(script)[0]

    def evaluate_with_channel(self, script: str) -> Tuple[Any, str]:
        """
        Like `evaluate`, plus the path that produced the value
        (CHANNEL_CDP or CHANNEL_WEBDRIVER).
        """
        self._check_open()
        if self.cdp_available():
            try:
                return self.controller.run_isolated(script), CHANNEL_CDP
            except ScriptError:
                raise
            except BrowserToolError as e:
                logger.warning(f"[CDP] Isolated execution failed, falling back to WebDriver: {e}")
        return self._execute_via_driver("return " + script.strip()), CHANNEL_WEBDRIVER

    def execute(self, script: str) -> None:
        """Run statements in the page's own world for their side effects."""
        self._check_open()
        if self.cdp_available():
            try:
                self.controller.run_main(script)
                return None
            except ScriptError:
                raise
            except BrowserToolError as e:
                logger.warning(f"[CDP] Main world execution failed, falling back to WebDriver: {e}")
        self._execute_via_driver(script)
        return None

    def _execute_via_driver(self, script: str) -> Any:
        try:
            return self.driver.execute_script(script)
        except JavascriptException as e:
            raise ScriptError(getattr(e, "msg", None) or str(e)) from e

    # Navigation

    def navigate(self, url: str) -> str:
        self._check_open()
        self.driver.get(url)
        return self.driver.current_url

    @property
    def current_url(self) -> str:
        self._check_open()
        return self.driver.current_url

    @property
    def title(self) -> str:
        self._check_open()
        return self.driver.title

    def is_alive(self) -> bool:
        """False once the browser window is gone."""
        if self.closed:
            return False
        try:
            self.driver.current_url
        except DEAD_BROWSER_ERRORS:
            return False
        return True

    # Lifecycle

    def quit(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.controller.teardown()
        try:
            self.driver.quit()
        except Exception as e:
            logger.info(f"Error quitting browser for session {self.session_id}: {e}")

    def _check_open(self) -> None:
        if self.closed:
            raise SessionClosed(f"Session {self.session_id} is closed")


def create_browser_session(session_id: str, config: dict) -> BrowserSession:
    """Launch Chrome for `session_id` and bring up DevTools if enabled."""
    logger.info(f"Creating new browser session: {session_id} (headless: {config.get('headless', True)})")
    driver = create_webdriver(config)
    session = BrowserSession(
        session_id,
        driver,
        cdp_enabled=config.get("cdp_enabled", CDP_ENABLED),
        controller=CdpController(
            session_id,
            timeout=config.get("cdp_timeout", CDP_TIMEOUT_SECS),
            context_max_age=config.get("context_max_age", CONTEXT_MAX_AGE_SECS),
        ),
    )
    session.setup_cdp()
    return session


__all__ = [
    "BrowserSession",
    "create_browser_session",
    "DEAD_BROWSER_ERRORS",
    "CHANNEL_CDP",
    "CHANNEL_WEBDRIVER",
]
