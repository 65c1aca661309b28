# tests/test_controller.py
import pytest

from mcp_headless_browser.cdp.controller import CdpController, CdpState
from mcp_headless_browser.cdp.scripts import BASELINE_SCRIPTS, BaselineScript
from mcp_headless_browser.errors import CommandFailed, ProtocolUnavailable

from _utils import FakeBrowser, FakeConnection, MAIN_FRAME


class TestControllerSetup:

    def setup_method(self):
        self.conn = FakeConnection()
        self.browser = FakeBrowser(self.conn)
        self.controller = CdpController("owner", timeout=5)

    def test_setup_reaches_ready(self):
        assert self.controller.setup(self.browser) is True
        assert self.controller.state is CdpState.READY
        assert self.controller.cdp_available()
        assert self.controller.main_frame_id == MAIN_FRAME

    def test_setup_registers_every_baseline_script(self):
        self.controller.setup(self.browser)
        added = self.conn.params_of("Page.addScriptToEvaluateOnNewDocument")
        assert len(added) == len(BASELINE_SCRIPTS) == 5
        assert all(p["runImmediately"] is True for p in added)
        assert "webdriver" in added[0]["source"]

    def test_browser_without_devtools_degrades(self):
        assert self.controller.setup(object()) is False
        assert self.controller.state is CdpState.DEGRADED
        assert not self.controller.cdp_available()

    def test_missing_frame_degrades(self):
        self.conn.overrides["Page.getFrameTree"] = CommandFailed("Page.getFrameTree", "no page")
        assert self.controller.setup(self.browser) is False
        assert self.controller.state is CdpState.DEGRADED
        assert self.conn.closed

    def test_one_failing_script_does_not_stop_the_others(self):
        state = {"n": 0}

        def second_fails(params):
            state["n"] += 1
            if state["n"] == 2:
                raise CommandFailed("Page.addScriptToEvaluateOnNewDocument", "bad script")
            return {"identifier": str(state["n"])}

        self.conn.overrides["Page.addScriptToEvaluateOnNewDocument"] = second_fails
        assert self.controller.setup(self.browser) is True
        injected = [o for o in self.controller.setup_outcomes if o.step.startswith("inject:")]
        assert [o.ok for o in injected] == [True, False, True, True, True]

    def test_domain_failure_is_soft(self):
        self.conn.overrides["Network.enable"] = CommandFailed("Network.enable", "nope")
        assert self.controller.setup(self.browser) is True
        assert not [o for o in self.controller.setup_outcomes if o.step == "Network.enable"][0].ok

    def test_run_when_degraded_is_protocol_unavailable(self):
        self.controller.setup(object())
        with pytest.raises(ProtocolUnavailable):
            self.controller.run_isolated("1")
        with pytest.raises(ProtocolUnavailable):
            self.controller.run_main("1")

    def test_run_isolated_and_main(self):
        self.controller.setup(self.browser)
        assert self.controller.run_isolated("x") == "ok"
        assert self.controller.run_main("x") == "ok"


class TestNavigationLifecycle:

    def setup_method(self):
        self.conn = FakeConnection()
        self.controller = CdpController("owner", timeout=5)
        self.controller.setup(FakeBrowser(self.conn))

    def navigate(self, frame):
        self.conn.emit("Page.frameNavigated", {"frame": frame})

    def test_main_frame_navigation_clears_contexts(self):
        self.controller.run_isolated("x")
        assert self.controller.contexts.entries()
        self.navigate({"id": MAIN_FRAME, "url": "https://example.com"})
        assert self.controller.contexts.entries() == []
        self.controller.run_isolated("x")
        assert self.conn.count("Page.createIsolatedWorld") == 2

    def test_main_frame_navigation_reinjects_without_duplicates(self):
        self.navigate({"id": MAIN_FRAME})
        removed = self.conn.params_of("Page.removeScriptToEvaluateOnNewDocument")
        assert [p["identifier"] for p in removed] == ["1", "2", "3", "4", "5"]
        assert self.conn.count("Page.addScriptToEvaluateOnNewDocument") == 10

    def test_subframe_navigation_is_ignored(self):
        self.controller.run_isolated("x")
        self.navigate({"id": "CHILD", "parentId": MAIN_FRAME})
        assert len(self.controller.contexts.entries()) == 1
        assert self.conn.count("Page.addScriptToEvaluateOnNewDocument") == 5

    def test_other_frame_id_is_ignored(self):
        self.controller.run_isolated("x")
        self.navigate({"id": "SOMETHING-ELSE"})
        assert len(self.controller.contexts.entries()) == 1

    def test_teardown_stops_processing(self):
        self.controller.teardown()
        assert self.controller.state is CdpState.CLOSED
        assert self.conn.closed
        assert not self.controller.cdp_available()
        self.navigate({"id": MAIN_FRAME})
        assert self.conn.count("Page.addScriptToEvaluateOnNewDocument") == 5
        assert self.controller.setup(FakeBrowser(FakeConnection())) is False

    def test_describe(self):
        self.controller.run_isolated("x")
        info = self.controller.describe()
        assert info["state"] == "ready"
        assert info["available"] is True
        assert info["injected_scripts"] == sorted(s.name for s in BASELINE_SCRIPTS)
        assert info["contexts"][0]["world"] == "isolated"


class TestCustomScripts:

    def test_only_given_scripts_are_injected(self):
        conn = FakeConnection()
        controller = CdpController("o", scripts=[BaselineScript("only", "window.x = 1;")])
        controller.setup(FakeBrowser(conn))
        assert [p["source"] for p in conn.params_of("Page.addScriptToEvaluateOnNewDocument")] == ["window.x = 1;"]
