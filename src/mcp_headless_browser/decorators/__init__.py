# mcp_headless_browser/decorators/__init__.py
#
# Re-exports decorators from their respective modules.

from .ensure import with_session
from .envelope import tool_envelope, error_response

__all__ = [
    "with_session",
    "tool_envelope",
    "error_response",
]
