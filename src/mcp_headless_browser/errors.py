"""Error taxonomy shared by the session pool and the DevTools stack."""

from typing import Optional


class BrowserToolError(Exception):
    """Base class for every error raised by this package."""

    # Stable identifier reported to MCP clients in error payloads
    error_code = "browser_error"


class InvalidIdentifier(BrowserToolError, ValueError):
    """A client session id is malformed. Raised before anything is allocated."""

    error_code = "invalid_session_id"

    def __init__(self, session_id):
        self.session_id = session_id
        super().__init__(f"Invalid session ID: {session_id!r}")


class ResourceExhausted(BrowserToolError):
    """Capacity reached. The pool handles this by eviction and never raises it."""

    error_code = "resource_exhausted"


class SessionClosed(BrowserToolError):
    """A browser session handle was used after it was released."""

    error_code = "session_closed"


class ProtocolUnavailable(BrowserToolError):
    """The DevTools channel could not be obtained; run without CDP."""

    error_code = "protocol_unavailable"


class CommandFailed(BrowserToolError):
    """A DevTools command returned an error or the channel broke."""

    error_code = "command_failed"

    def __init__(self, method: str, message: str, code: Optional[int] = None):
        self.method = method
        self.code = code
        self.message = message
        detail = f"{method}: {message}"
        if code is not None:
            detail = f"{detail} (code {code})"
        super().__init__(detail)


class CommandTimeout(CommandFailed):
    """A DevTools command did not answer within its timeout."""

    error_code = "command_timeout"

    def __init__(self, method: str, timeout: float):
        self.timeout = timeout
        super().__init__(method, f"timed out after {timeout:.1f}s")


class FrameUnavailable(BrowserToolError):
    """The frame tree did not contain a main frame."""

    error_code = "frame_unavailable"


class ContextCreationFailure(BrowserToolError):
    """An execution context could not be created or acquired."""

    error_code = "context_creation_failed"

    def __init__(self, world_kind, reason: str):
        self.world_kind = world_kind
        super().__init__(f"Failed to create {getattr(world_kind, 'value', world_kind)} world: {reason}")


class ExecutionFailed(BrowserToolError):
    """A script could not be run to completion."""

    error_code = "execution_failed"


class ScriptError(ExecutionFailed):
    """The script itself threw. Never retried."""

    error_code = "script_error"

    def __init__(self, text: str, details: Optional[dict] = None):
        self.text = text
        self.details = details or {}
        super().__init__(f"Script error: {text}")


class PersistenceDisabled(BrowserToolError):
    """Snapshots were requested but the server runs without a sessions directory."""

    error_code = "persistence_disabled"


__all__ = [
    "BrowserToolError",
    "InvalidIdentifier",
    "ResourceExhausted",
    "SessionClosed",
    "ProtocolUnavailable",
    "CommandFailed",
    "CommandTimeout",
    "FrameUnavailable",
    "ContextCreationFailure",
    "ExecutionFailed",
    "ScriptError",
    "PersistenceDisabled",
]
