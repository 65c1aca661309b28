# mcp_headless_browser/tools/__init__.py
"""
MCP tool implementations - synchronous functions that return JSON responses.

Each tool resolves its browser through the session pool (`with_session`),
does one thing, and returns a JSON string. The server runs them in worker
threads.
"""

from .navigation import (
    visit,
    get_current_url,
)

from .scripting import (
    evaluate_script,
    execute_script,
)

from .sessions import (
    get_session_info,
    save_session,
    close_session,
)

from .debugging import (
    get_debug_info,
)

__all__ = [
    # Navigation
    'visit',
    'get_current_url',
    # Scripting
    'evaluate_script',
    'execute_script',
    # Sessions
    'get_session_info',
    'save_session',
    'close_session',
    # Debugging
    'get_debug_info',
]
