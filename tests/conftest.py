# tests/conftest.py
import asyncio
import pytest

from mcp_headless_browser.context import reset_context

## We DO NOT want to use pytest-asyncio.
## Instead, use event_loop.run_until_complete()!


@pytest.fixture(scope="function")
def event_loop():
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    yield loop
    loop.close()


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch, tmp_path):
    """Keep every test away from ~/.hbt and from a global server context."""
    monkeypatch.setenv("HBT_DIR", str(tmp_path / "hbt"))
    monkeypatch.delenv("HBT_SESSIONS_DIR", raising=False)
    monkeypatch.delenv("HBT_LOGS_DIR", raising=False)
    monkeypatch.delenv("HBT_TRANSPORT", raising=False)
    reset_context()
    yield
    reset_context()
