# tests/test_persistence.py
import json
import os

from mcp_headless_browser.sessions.persistence import SessionPersistence

from _utils import FakeDriver, FakeSession


class TestSessionPersistenceSave:

    def setup_method(self):
        self.driver = FakeDriver("https://shop.example.com/cart")
        self.driver.cookies = [{
            "name": "sid", "value": "123", "domain": "shop.example.com", "path": "/",
            "sameSite": "Lax", "httpOnly": True, "secure": True,
        }]
        self.driver.local_storage = {"theme": "dark"}
        self.driver.session_storage = {"step": "2"}
        self.driver.window_size = {"width": 1280, "height": 800}
        self.session = FakeSession("shop", self.driver)

    def test_writes_all_fields(self, tmp_path):
        store = SessionPersistence(str(tmp_path))
        assert store.save("shop", self.session) is True

        with open(tmp_path / "shop.json") as f:
            state = json.load(f)
        assert state["session_id"] == "shop"
        assert state["current_url"] == "https://shop.example.com/cart"
        assert state["cookies"][0]["name"] == "sid"
        assert state["local_storage"] == {"theme": "dark"}
        assert state["session_storage"] == {"step": "2"}
        assert state["window_size"] == {"width": 1280, "height": 800}
        assert "T" in state["saved_at"]

    def test_blank_page_has_no_storage(self, tmp_path):
        self.driver.current_url = "about:blank"
        store = SessionPersistence(str(tmp_path))
        store.save("shop", self.session)
        state = json.loads((tmp_path / "shop.json").read_text())
        assert state["local_storage"] == {}
        assert state["session_storage"] == {}
        assert not any("localStorage" in s for s, _ in self.driver.scripts)

    def test_extraction_failure_yields_empty_value(self, tmp_path):
        def broken_cookies():
            raise RuntimeError("no cookies for you")

        self.driver.get_cookies = broken_cookies
        store = SessionPersistence(str(tmp_path))
        assert store.save("shop", self.session) is True
        state = json.loads((tmp_path / "shop.json").read_text())
        assert state["cookies"] == []
        assert state["local_storage"] == {"theme": "dark"}

    def test_creates_missing_directory(self, tmp_path):
        store = SessionPersistence(str(tmp_path / "deep" / "sessions"))
        assert store.save("shop", self.session)
        assert store.exists("shop")

    def test_no_temp_files_left_behind(self, tmp_path):
        store = SessionPersistence(str(tmp_path))
        store.save("shop", self.session)
        store.save("shop", self.session)
        assert os.listdir(tmp_path) == ["shop.json"]


class TestSessionPersistenceRestore:

    def setup_method(self):
        source = FakeDriver("https://shop.example.com/cart")
        source.cookies = [{"name": "sid", "value": "123", "sameSite": "Lax", "httpOnly": True}]
        source.local_storage = {"theme": "dark"}
        source.window_size = {"width": 1024, "height": 700}
        self.source = FakeSession("shop", source)

    def test_round_trip_into_fresh_browser(self, tmp_path):
        store = SessionPersistence(str(tmp_path))
        store.save("shop", self.source)

        target = FakeSession("shop")
        assert store.restore("shop", target) is True
        assert target.driver.current_url == "https://shop.example.com/cart"
        assert target.driver.cookies == [{"name": "sid", "value": "123"}]
        assert target.driver.local_storage == {"theme": "dark"}
        assert target.driver.window_size == {"width": 1024, "height": 700}

    def test_missing_snapshot(self, tmp_path):
        assert SessionPersistence(str(tmp_path)).restore("nobody", FakeSession("nobody")) is False

    def test_blank_url_is_not_visited(self, tmp_path):
        (tmp_path / "blank.json").write_text(json.dumps({
            "session_id": "blank", "current_url": "data:,", "cookies": [], "window_size": None,
        }))
        target = FakeSession("blank", FakeDriver("about:blank"))
        assert SessionPersistence(str(tmp_path)).restore("blank", target) is True
        assert target.driver.current_url == "about:blank"

    def test_corrupt_snapshot_is_deleted(self, tmp_path):
        (tmp_path / "bad.json").write_text("{not json")
        store = SessionPersistence(str(tmp_path))
        assert store.restore("bad", FakeSession("bad")) is False
        assert not store.exists("bad")

    def test_list_and_delete(self, tmp_path):
        store = SessionPersistence(str(tmp_path))
        store.save("one", FakeSession("one"))
        store.save("two", FakeSession("two"))
        (tmp_path / "junk.json").write_text("[]")
        assert [s["session_id"] for s in store.list_sessions()] == ["one", "two"]
        store.delete("one")
        store.delete("one")
        assert [s["session_id"] for s in store.list_sessions()] == ["two"]
