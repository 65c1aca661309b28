#region Overview
"""
## Sessions

Every tool that touches a browser takes a `session_id`. The first call with a
new id starts a headless Chrome for it; later calls with the same id reuse
that browser. Ids are 1-64 characters from [A-Za-z0-9_-].

At most HBT_MAX_SESSIONS browsers live at once. Opening one more closes the
least recently used session. Sessions idle for HBT_SESSION_TIMEOUT seconds
are closed in the background. A closed session's URL, cookies, web storage
and window size are saved under HBT_SESSIONS_DIR and restored when the same
id is used again.

## Script Execution

`evaluate_script` runs in an isolated world of the page: it sees the DOM but
not the page's own JavaScript globals, and the page cannot observe it.
`execute_script` runs in the page's main world. Both fall back to plain
WebDriver execution when the DevTools connection is unavailable.
"""
#endregion

#region Imports
import asyncio
import atexit
import logging
from typing import Optional
from mcp.server.fastmcp import FastMCP
#endregion

#region Import from your package
from mcp_headless_browser.config import get_env_config, setup_directories
from mcp_headless_browser.context import get_context
from mcp_headless_browser.decorators import tool_envelope
from mcp_headless_browser.tools import navigation, scripting, sessions, debugging
from mcp_headless_browser.utils.logs import configure_logging
#endregion

#region Logger
logger = logging.getLogger(__name__)
#endregion

#region FastMCP Initialization
mcp = FastMCP("mcp_headless_browser")
#endregion

#region Tools -- Navigation
@mcp.tool()
@tool_envelope
async def visit(session_id: str, url: str, wait_for: str = "load", timeout_sec: int = 30) -> str:
    """
    Navigate the session's browser to a URL.

    Args:
        session_id: Your session identifier (1-64 chars, [A-Za-z0-9_-])
        url: The URL to navigate to
        wait_for: "load" (default) or "complete" to also wait for document.readyState
        timeout_sec: Maximum wait for "complete"

    Returns:
        JSON with the final URL and page title
    """
    return await asyncio.to_thread(navigation.visit, session_id, url, wait_for, timeout_sec)


@mcp.tool()
@tool_envelope
async def get_current_url(session_id: str) -> str:
    """Return the URL the session's browser is on."""
    return await asyncio.to_thread(navigation.get_current_url, session_id)
#endregion

#region Tools -- Scripting
@mcp.tool()
@tool_envelope
async def evaluate_script(session_id: str, javascript_code: str) -> str:
    """
    Run JavaScript and return the result.

    The code runs in an isolated world: full DOM access, invisible to the
    page's own scripts. Promises are awaited.

    Args:
        session_id: Your session identifier
        javascript_code: An expression, e.g. "document.title"
    """
    return await asyncio.to_thread(scripting.evaluate_script, session_id, javascript_code)


@mcp.tool()
@tool_envelope
async def execute_script(session_id: str, javascript_code: str) -> str:
    """
    Run JavaScript in the page's own context without returning a value.

    Args:
        session_id: Your session identifier
        javascript_code: Statements to run
    """
    return await asyncio.to_thread(scripting.execute_script, session_id, javascript_code)
#endregion

#region Tools -- Session management
@mcp.tool()
@tool_envelope
async def get_session_info() -> str:
    """List live sessions with their creation time, last activity and idle time."""
    return await asyncio.to_thread(sessions.get_session_info)


@mcp.tool()
@tool_envelope
async def save_session(session_id: str) -> str:
    """Save the session's URL, cookies, storage and window size to disk now."""
    return await asyncio.to_thread(sessions.save_session, session_id)


@mcp.tool()
@tool_envelope
async def close_session(session_id: str) -> str:
    """
    Save and close a session's browser.
    The next call with the same session_id starts a fresh browser and restores the saved state.
    """
    return await asyncio.to_thread(sessions.close_session, session_id)
#endregion

#region Tools -- Debugging
@mcp.tool()
@tool_envelope
async def get_debug_info(session_id: Optional[str] = None) -> str:
    """
    Return platform, Selenium version, process memory, pool state and, for a
    live session, its browser/driver versions and DevTools state.
    """
    return await asyncio.to_thread(debugging.get_debug_info, session_id)
#endregion

#region Entry point
def main() -> None:
    config = get_env_config()
    transport = config["transport"]
    setup_directories(config, include_logs=(transport == "stdio"))
    configure_logging(transport, config)

    ctx = get_context()
    pool = ctx.pool
    pool.start()
    atexit.register(pool.shutdown)

    logger.info(f"Starting mcp_headless_browser (transport: {transport}, max sessions: {pool.max_sessions})")
    mcp.run(transport=transport)


if __name__ == "__main__":
    main()
#endregion
