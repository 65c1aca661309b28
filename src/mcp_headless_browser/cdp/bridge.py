"""The one DevTools connection of a browser instance.

`ProtocolBridge` owns the connection, turns the required protocol domains
on, runs commands and registers event handlers. It also remembers the
default (main world) execution context of every frame from the Runtime
events, which is how main-world contexts are resolved against stock Chrome.
"""

import abc
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import logging
logger = logging.getLogger(__name__)

from ..constants import CDP_DEBUG, COMMAND_TIMEOUT_SECS
from ..errors import BrowserToolError, FrameUnavailable, ProtocolUnavailable
from .connection import CdpConnection, Subscription


class SupportsRemoteDebugging(abc.ABC):
    """Capability of a driver adapter that can hand out a DevTools connection."""

    @abc.abstractmethod
    def open_devtools(self) -> CdpConnection:
        """Open a DevTools connection to the adapter's current page."""


@dataclass(frozen=True)
class StepOutcome:
    """Result of one best-effort setup step."""

    step: str
    ok: bool
    error: Optional[str] = None


class ProtocolBridge:
    """Connection holder, command dispatcher and event registry."""

    DOMAINS = ("Page", "Runtime", "Network")

    def __init__(self, command_timeout: float = COMMAND_TIMEOUT_SECS):
        self.command_timeout = command_timeout
        self.connection: Optional[CdpConnection] = None
        self._subscriptions: List[Subscription] = []
        self._default_contexts: Dict[str, int] = {}
        self._contexts_lock = threading.Lock()

    @property
    def connected(self) -> bool:
        return self.connection is not None and not self.connection.closed

    def connect(self, browser) -> CdpConnection:
        """
        Obtain the DevTools channel of `browser`.

        Raises:
            ProtocolUnavailable: the browser does not support remote debugging
                or the channel could not be opened. Callers run without CDP.
        """
        if not isinstance(browser, SupportsRemoteDebugging):
            raise ProtocolUnavailable(f"{type(browser).__name__} does not support remote debugging")
        try:
            connection = browser.open_devtools()
        except ProtocolUnavailable:
            raise
        except Exception as e:
            raise ProtocolUnavailable(f"DevTools not available: {e}") from e

        self.connection = connection
        # Runtime.enable replays executionContextCreated for existing contexts,
        # so these must be in place before enable_domains().
        self.on_event("Runtime.executionContextCreated", self._on_context_created)
        self.on_event("Runtime.executionContextDestroyed", self._on_context_destroyed)
        self.on_event("Runtime.executionContextsCleared", self._on_contexts_cleared)
        return connection

    def enable_domains(self) -> List[StepOutcome]:
        """Turn on Page, Runtime and Network. Failures are logged, not raised."""
        outcomes = []
        for domain in self.DOMAINS:
            method = f"{domain}.enable"
            try:
                self.send_command(method)
                outcomes.append(StepOutcome(method, True))
            except BrowserToolError as e:
                logger.warning(f"[CDP] Failed to enable {domain} domain: {e}")
                outcomes.append(StepOutcome(method, False, str(e)))
        return outcomes

    def send_command(self, method: str, params: Optional[dict] = None, timeout: Optional[float] = None) -> dict:
        """
        One synchronous round trip.

        Raises:
            ProtocolUnavailable: not connected
            CommandFailed: the browser answered with an error
            CommandTimeout: no answer within `timeout` seconds
        """
        connection = self.connection
        if connection is None:
            raise ProtocolUnavailable("DevTools connection not established")
        if CDP_DEBUG:
            logger.debug(f"[CDP] -> {method}")
        return connection.send(method, params, timeout=self.command_timeout if timeout is None else timeout)

    def on_event(self, event_name: str, handler: Callable[[dict], None]) -> Optional[Subscription]:
        """Register `handler` for `event_name`. Returns None if registration failed."""
        connection = self.connection
        if connection is None:
            logger.warning(f"[CDP] Cannot register {event_name} handler: not connected")
            return None
        try:
            sub = connection.subscribe(event_name, handler)
        except Exception as e:
            logger.warning(f"[CDP] Failed to register {event_name} handler: {e}")
            return None
        self._subscriptions.append(sub)
        return sub

    def fetch_main_frame_id(self) -> str:
        """Id of the top-level frame from Page.getFrameTree."""
        try:
            tree = self.send_command("Page.getFrameTree")
        except BrowserToolError as e:
            raise FrameUnavailable(f"Failed to get main frame ID: {e}") from e
        frame_id = ((tree.get("frameTree") or {}).get("frame") or {}).get("id")
        if not frame_id:
            raise FrameUnavailable("Failed to get main frame ID: empty frame tree")
        return frame_id

    def default_context_for(self, frame_id: str) -> Optional[int]:
        """Main-world execution context id last announced for `frame_id`."""
        with self._contexts_lock:
            return self._default_contexts.get(frame_id)

    def close(self) -> None:
        for sub in self._subscriptions:
            sub.cancel()
        self._subscriptions.clear()
        connection, self.connection = self.connection, None
        if connection is not None:
            connection.close()
        with self._contexts_lock:
            self._default_contexts.clear()

    # Runtime context tracking

    def _on_context_created(self, params: dict) -> None:
        context = params.get("context") or {}
        aux = context.get("auxData") or {}
        if aux.get("isDefault") and aux.get("frameId") and context.get("id") is not None:
            with self._contexts_lock:
                self._default_contexts[aux["frameId"]] = context["id"]

    def _on_context_destroyed(self, params: dict) -> None:
        context_id = params.get("executionContextId")
        with self._contexts_lock:
            for frame_id, known in list(self._default_contexts.items()):
                if known == context_id:
                    del self._default_contexts[frame_id]

    def _on_contexts_cleared(self, params: dict) -> None:
        with self._contexts_lock:
            self._default_contexts.clear()


__all__ = ["ProtocolBridge", "SupportsRemoteDebugging", "StepOutcome"]
