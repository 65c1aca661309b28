"""DevTools websocket transport.

One `CdpConnection` per page target. Two daemon threads serve it:

- the reader receives every frame, resolves the future of the matching
  command and pushes events onto a queue;
- the dispatcher pops events and calls the subscribed handlers.

Handlers therefore run off the reader thread and may issue commands of their
own without deadlocking the connection.
"""

import json
import queue
import itertools
import threading
from concurrent.futures import Future, TimeoutError as FutureTimeout
from contextlib import suppress
from typing import Callable, Dict, List, Optional, Tuple

import websocket

import logging
logger = logging.getLogger(__name__)

from ..constants import COMMAND_TIMEOUT_SECS
from ..errors import CommandFailed, CommandTimeout, ProtocolUnavailable

EventHandler = Callable[[dict], None]

_READ_POLL_SECS = 0.5


class Subscription:
    """Handle returned by `CdpConnection.subscribe`. Call `cancel()` to stop delivery."""

    def __init__(self, connection: "CdpConnection", event_name: str, handler: EventHandler):
        self.event_name = event_name
        self.handler = handler
        self._connection = connection
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self.active = False
            self._connection._unsubscribe(self)

    def __repr__(self) -> str:
        return f"Subscription({self.event_name!r}, active={self.active})"


class CdpConnection:
    """Synchronous command/response plus event fan-out over one websocket."""

    def __init__(self, ws, *, timeout: float = COMMAND_TIMEOUT_SECS, name: str = "cdp"):
        self.timeout = timeout
        self._ws = ws
        self._ids = itertools.count(1)
        self._pending: Dict[int, Tuple[str, Future]] = {}
        self._pending_lock = threading.Lock()
        self._send_lock = threading.Lock()
        self._handlers: Dict[str, List[Subscription]] = {}
        self._handlers_lock = threading.Lock()
        self._events: "queue.Queue[Optional[dict]]" = queue.Queue()
        self._closed = threading.Event()

        with suppress(Exception):
            self._ws.settimeout(_READ_POLL_SECS)

        self._reader = threading.Thread(target=self._read_loop, name=f"{name}-reader", daemon=True)
        self._dispatcher = threading.Thread(target=self._dispatch_loop, name=f"{name}-events", daemon=True)
        self._reader.start()
        self._dispatcher.start()

    @classmethod
    def open(cls, ws_url: str, timeout: float = COMMAND_TIMEOUT_SECS, name: str = "cdp") -> "CdpConnection":
        """Connect to a DevTools websocket URL."""
        try:
            # Chrome rejects foreign Origin headers unless --remote-allow-origins is set
            ws = websocket.create_connection(ws_url, timeout=timeout, suppress_origin=True)
        except Exception as e:
            raise ProtocolUnavailable(f"Could not open DevTools websocket {ws_url}: {e}") from e
        logger.debug(f"[CDP] Connected to {ws_url}")
        return cls(ws, timeout=timeout, name=name)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def send(self, method: str, params: Optional[dict] = None, timeout: Optional[float] = None) -> dict:
        """Send one command and block until its response arrives."""
        if self._closed.is_set():
            raise CommandFailed(method, "connection closed")

        msg_id = next(self._ids)
        future: Future = Future()
        with self._pending_lock:
            self._pending[msg_id] = (method, future)

        payload = {"id": msg_id, "method": method, "params": params or {}}
        try:
            with self._send_lock:
                self._ws.send(json.dumps(payload))
        except Exception as e:
            self._forget(msg_id)
            raise CommandFailed(method, f"send failed: {e}") from e

        wait = self.timeout if timeout is None else timeout
        try:
            return future.result(timeout=wait)
        except FutureTimeout:
            self._forget(msg_id)
            raise CommandTimeout(method, wait) from None

    def _forget(self, msg_id: int) -> None:
        with self._pending_lock:
            self._pending.pop(msg_id, None)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def subscribe(self, event_name: str, handler: EventHandler) -> Subscription:
        """Call `handler(params)` for every `event_name` event until cancelled."""
        if self._closed.is_set():
            raise CommandFailed(event_name, "connection closed")
        sub = Subscription(self, event_name, handler)
        with self._handlers_lock:
            self._handlers.setdefault(event_name, []).append(sub)
        return sub

    def _unsubscribe(self, sub: Subscription) -> None:
        with self._handlers_lock:
            subs = self._handlers.get(sub.event_name) or []
            if sub in subs:
                subs.remove(sub)
            if not subs:
                self._handlers.pop(sub.event_name, None)

    # ------------------------------------------------------------------
    # Threads
    # ------------------------------------------------------------------

    def _read_loop(self) -> None:
        reason = "reader stopped"
        while not self._closed.is_set():
            try:
                raw = self._ws.recv()
            except websocket.WebSocketTimeoutException:
                continue
            except Exception as e:
                reason = f"websocket closed: {e}"
                break
            if not raw:
                if not getattr(self._ws, "connected", True):
                    reason = "websocket closed by peer"
                    break
                continue
            try:
                message = json.loads(raw)
            except ValueError:
                logger.debug("[CDP] Dropping non-JSON frame")
                continue
            if isinstance(message, dict):
                self._route(message)

        if not self._closed.is_set():
            logger.info(f"[CDP] Connection lost: {reason}")
        self._shutdown(reason)

    def _route(self, message: dict) -> None:
        if "id" in message:
            with self._pending_lock:
                entry = self._pending.pop(message["id"], None)
            if entry is None:
                return
            method, future = entry
            error = message.get("error")
            if error:
                future.set_exception(CommandFailed(method, error.get("message", "unknown error"), error.get("code")))
            else:
                future.set_result(message.get("result") or {})
        elif isinstance(message.get("method"), str):
            self._events.put(message)

    def _dispatch_loop(self) -> None:
        while True:
            event = self._events.get()
            if event is None:
                return
            name = event["method"]
            params = event.get("params") or {}
            with self._handlers_lock:
                subs = list(self._handlers.get(name) or [])
            for sub in subs:
                if not sub.active:
                    continue
                try:
                    sub.handler(params)
                except Exception as e:
                    logger.warning(f"[CDP] Handler for {name} failed: {e}")

    def _shutdown(self, reason: str) -> None:
        self._closed.set()
        with self._pending_lock:
            pending = list(self._pending.values())
            self._pending.clear()
        for method, future in pending:
            if not future.done():
                future.set_exception(CommandFailed(method, reason))
        self._events.put(None)

    def close(self) -> None:
        """Close the socket and fail anything still waiting."""
        if self._closed.is_set():
            return
        self._closed.set()
        # abort() wakes a reader blocked in recv(); close() alone can hang
        with suppress(Exception):
            self._ws.abort()
        with suppress(Exception):
            self._ws.close(timeout=1)
        with self._handlers_lock:
            self._handlers.clear()
        self._shutdown("connection closed")


__all__ = ["CdpConnection", "Subscription", "EventHandler"]
