# tests/test_connection.py
import threading
import time

import pytest

from mcp_headless_browser.cdp.connection import CdpConnection
from mcp_headless_browser.errors import CommandFailed, CommandTimeout

from _utils import FakeWebSocket


def echo_responder(message):
    return {"id": message["id"], "result": {"echo": message["method"], "params": message["params"]}}


def wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


class TestCdpConnectionCommands:

    def setup_method(self):
        self.ws = FakeWebSocket(responder=echo_responder)
        self.conn = CdpConnection(self.ws, timeout=1.0, name="test")

    def teardown_method(self):
        self.conn.close()

    def test_send_returns_result_of_matching_id(self):
        result = self.conn.send("Page.enable", {"a": 1})
        assert result == {"echo": "Page.enable", "params": {"a": 1}}
        assert self.ws.sent[0]["method"] == "Page.enable"

    def test_ids_are_unique_per_command(self):
        self.conn.send("A.one")
        self.conn.send("A.two")
        ids = [m["id"] for m in self.ws.sent]
        assert len(set(ids)) == 2

    def test_error_response_raises_command_failed_with_code(self):
        self.ws.responder = lambda m: {"id": m["id"], "error": {"code": -32000, "message": "No frame"}}
        with pytest.raises(CommandFailed) as ei:
            self.conn.send("Page.createIsolatedWorld")
        assert ei.value.code == -32000
        assert ei.value.message == "No frame"
        assert ei.value.method == "Page.createIsolatedWorld"

    def test_no_response_raises_command_timeout(self):
        self.ws.responder = None
        with pytest.raises(CommandTimeout):
            self.conn.send("Runtime.evaluate", timeout=0.1)

    def test_timeout_is_a_command_failure(self):
        assert issubclass(CommandTimeout, CommandFailed)

    def test_concurrent_commands_get_their_own_results(self):
        results = {}

        def worker(n):
            results[n] = self.conn.send("Echo.n", {"n": n})["params"]["n"]

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(2)
        assert results == {n: n for n in range(8)}


class TestCdpConnectionEvents:

    def setup_method(self):
        self.ws = FakeWebSocket(responder=echo_responder)
        self.conn = CdpConnection(self.ws, timeout=1.0, name="test")

    def teardown_method(self):
        self.conn.close()

    def test_event_reaches_subscriber(self):
        seen = []
        self.conn.subscribe("Page.frameNavigated", seen.append)
        self.ws.push({"method": "Page.frameNavigated", "params": {"frame": {"id": "F"}}})
        assert wait_until(lambda: seen)
        assert seen[0] == {"frame": {"id": "F"}}

    def test_cancelled_subscription_stops_delivery(self):
        seen = []
        sub = self.conn.subscribe("Page.loadEventFired", seen.append)
        sub.cancel()
        assert not sub.active
        self.ws.push({"method": "Page.loadEventFired", "params": {}})
        marker = []
        self.conn.subscribe("Marker.done", marker.append)
        self.ws.push({"method": "Marker.done", "params": {}})
        assert wait_until(lambda: marker)
        assert seen == []

    def test_failing_handler_does_not_stop_dispatch(self):
        seen = []

        def broken(params):
            raise RuntimeError("boom")

        self.conn.subscribe("X.event", broken)
        self.conn.subscribe("X.event", seen.append)
        self.ws.push({"method": "X.event", "params": {"n": 1}})
        self.ws.push({"method": "X.event", "params": {"n": 2}})
        assert wait_until(lambda: len(seen) == 2)

    def test_handler_may_send_commands(self):
        replies = []
        self.conn.subscribe("Page.frameNavigated", lambda p: replies.append(self.conn.send("Page.getFrameTree")))
        self.ws.push({"method": "Page.frameNavigated", "params": {}})
        assert wait_until(lambda: replies)
        assert replies[0]["echo"] == "Page.getFrameTree"


class TestCdpConnectionShutdown:

    def test_peer_disconnect_fails_pending_and_marks_closed(self):
        ws = FakeWebSocket(responder=None)
        conn = CdpConnection(ws, timeout=5.0, name="test")
        errors = []

        def waiter():
            try:
                conn.send("Runtime.evaluate")
            except CommandFailed as e:
                errors.append(e)

        t = threading.Thread(target=waiter)
        t.start()
        assert wait_until(lambda: ws.sent)
        ws.drop()
        t.join(2)
        assert errors and not isinstance(errors[0], CommandTimeout)
        assert wait_until(lambda: conn.closed)

    def test_send_after_close_fails_fast(self):
        ws = FakeWebSocket(responder=echo_responder)
        conn = CdpConnection(ws, timeout=1.0, name="test")
        conn.close()
        assert conn.closed
        assert ws.aborted
        with pytest.raises(CommandFailed):
            conn.send("Page.enable")

    def test_close_is_idempotent(self):
        conn = CdpConnection(FakeWebSocket(), timeout=1.0, name="test")
        conn.close()
        conn.close()
        assert conn.closed
