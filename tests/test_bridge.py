# tests/test_bridge.py
import pytest

from mcp_headless_browser.cdp.bridge import ProtocolBridge, StepOutcome
from mcp_headless_browser.errors import CommandFailed, FrameUnavailable, ProtocolUnavailable

from _utils import FakeBrowser, FakeConnection, MAIN_CONTEXT, MAIN_FRAME


class TestProtocolBridgeConnect:

    def setup_method(self):
        self.bridge = ProtocolBridge(command_timeout=1.0)

    def test_connect_uses_browser_devtools(self):
        browser = FakeBrowser()
        self.bridge.connect(browser)
        assert self.bridge.connected
        assert browser.opened == 1

    def test_object_without_capability_is_protocol_unavailable(self):
        with pytest.raises(ProtocolUnavailable):
            self.bridge.connect(object())
        assert not self.bridge.connected

    def test_open_failure_becomes_protocol_unavailable(self):
        with pytest.raises(ProtocolUnavailable):
            self.bridge.connect(FakeBrowser(error=OSError("refused")))

    def test_send_before_connect_is_protocol_unavailable(self):
        with pytest.raises(ProtocolUnavailable):
            self.bridge.send_command("Page.enable")


class TestProtocolBridgeDomains:

    def setup_method(self):
        self.conn = FakeConnection()
        self.bridge = ProtocolBridge(command_timeout=1.0)
        self.bridge.connect(FakeBrowser(self.conn))

    def test_enables_page_runtime_network(self):
        outcomes = self.bridge.enable_domains()
        assert [o.step for o in outcomes] == ["Page.enable", "Runtime.enable", "Network.enable"]
        assert all(o.ok for o in outcomes)

    def test_domain_failure_is_reported_not_raised(self):
        self.conn.overrides["Network.enable"] = CommandFailed("Network.enable", "not supported")
        outcomes = self.bridge.enable_domains()
        assert outcomes[-1] == StepOutcome("Network.enable", False, "Network.enable: not supported")
        assert outcomes[0].ok and outcomes[1].ok

    def test_fetch_main_frame_id(self):
        assert self.bridge.fetch_main_frame_id() == MAIN_FRAME

    def test_empty_frame_tree_is_frame_unavailable(self):
        self.conn.overrides["Page.getFrameTree"] = {"frameTree": {}}
        with pytest.raises(FrameUnavailable):
            self.bridge.fetch_main_frame_id()

    def test_frame_tree_error_is_frame_unavailable(self):
        self.conn.overrides["Page.getFrameTree"] = CommandFailed("Page.getFrameTree", "gone")
        with pytest.raises(FrameUnavailable):
            self.bridge.fetch_main_frame_id()


class TestProtocolBridgeContextTracking:

    def setup_method(self):
        self.conn = FakeConnection()
        self.bridge = ProtocolBridge(command_timeout=1.0)
        self.bridge.connect(FakeBrowser(self.conn))
        self.bridge.enable_domains()

    def test_default_context_learned_from_runtime_enable(self):
        assert self.bridge.default_context_for(MAIN_FRAME) == MAIN_CONTEXT

    def test_non_default_contexts_are_ignored(self):
        self.conn.emit("Runtime.executionContextCreated", {
            "context": {"id": 55, "auxData": {"isDefault": False, "frameId": MAIN_FRAME}},
        })
        assert self.bridge.default_context_for(MAIN_FRAME) == MAIN_CONTEXT

    def test_destroyed_context_is_forgotten(self):
        self.conn.emit("Runtime.executionContextDestroyed", {"executionContextId": MAIN_CONTEXT})
        assert self.bridge.default_context_for(MAIN_FRAME) is None

    def test_contexts_cleared_forgets_everything(self):
        self.conn.emit("Runtime.executionContextsCleared", {})
        assert self.bridge.default_context_for(MAIN_FRAME) is None

    def test_on_event_returns_cancellable_subscription(self):
        seen = []
        sub = self.bridge.on_event("Page.loadEventFired", seen.append)
        self.conn.emit("Page.loadEventFired", {"n": 1})
        sub.cancel()
        self.conn.emit("Page.loadEventFired", {"n": 2})
        assert seen == [{"n": 1}]

    def test_close_closes_connection(self):
        self.bridge.close()
        assert self.conn.closed
        assert not self.bridge.connected
        assert self.bridge.on_event("Page.loadEventFired", print) is None
