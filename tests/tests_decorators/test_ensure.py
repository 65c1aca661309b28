# tests/tests_decorators/test_ensure.py
import json
import pytest

from mcp_headless_browser.context import ServerContext, set_context
from mcp_headless_browser.decorators import with_session
from mcp_headless_browser.sessions.pool import SessionPool

from _utils import FakeSession

## We DO NOT want to use pytest-asyncio.
## Instead, use event_loop.run_until_complete()! (fixture in tests/conftest.py)


@pytest.fixture
def fake_pool(tmp_path):
    created = []

    def factory(session_id):
        session = FakeSession(session_id)
        created.append(session)
        return session

    pool = SessionPool(factory)
    set_context(ServerContext(config={"sessions_dir": str(tmp_path)}, _pool=pool))
    pool.created = created
    return pool


def test_with_session_passes_pooled_session(fake_pool):
    @with_session
    def tool(session, value):
        return f"{session.session_id}:{value}"

    assert tool("abc", 5) == "abc:5"
    assert tool("abc", 6) == "abc:6"
    assert len(fake_pool.created) == 1


@pytest.mark.parametrize("bad", ["", "white space", "x" * 65, None])
def test_with_session_rejects_malformed_ids(fake_pool, bad):
    calls = []

    @with_session
    def tool(session):
        calls.append(session)
        return "never"

    payload = json.loads(tool(bad))
    assert payload["ok"] is False
    assert payload["error"]["code"] == "invalid_session_id"
    assert payload["error"]["type"] == "InvalidIdentifier"
    assert "traceback" not in payload["error"]
    assert calls == []
    assert fake_pool.created == []


def test_with_session_async(fake_pool, event_loop):
    @with_session
    async def tool(session):
        return session.session_id

    assert event_loop.run_until_complete(tool("async-1")) == "async-1"
    payload = json.loads(event_loop.run_until_complete(tool("bad id")))
    assert payload["error"]["code"] == "invalid_session_id"
