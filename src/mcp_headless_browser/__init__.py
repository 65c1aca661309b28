"""
Headless Chrome for MCP clients, one browser per client session.

Each client picks a session id; the server keeps a bounded pool of Chrome
instances keyed by those ids, closes idle ones, and snapshots their state
to disk so a session can be resumed after it was closed.

Scripts run through the Chrome DevTools Protocol inside isolated worlds when
possible, with plain WebDriver execution as the fallback.
"""

from .errors import BrowserToolError

__all__ = ["BrowserToolError"]
