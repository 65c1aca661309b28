"""
Process-wide server state.

One `ServerContext` per process owns the configuration, the snapshot store
and the session pool. Collaborators receive it from `get_context()` instead
of reaching for module-level globals.

Usage:
    from mcp_headless_browser.context import get_context

    ctx = get_context()
    session = ctx.pool.get_or_create("my-session")
"""

import functools
import threading
from dataclasses import dataclass, field
from typing import Optional

from .browser.session import create_browser_session
from .config.environment import get_env_config
from .sessions.persistence import SessionPersistence
from .sessions.pool import SessionPool


@dataclass
class ServerContext:
    """
    Attributes:
        config: environment configuration dict (see config.get_env_config)
        persistence: snapshot store under config["sessions_dir"]
        pool: the session pool, built on first access
    """

    config: dict = field(default_factory=dict)
    persistence: Optional[SessionPersistence] = None
    _pool: Optional[SessionPool] = None

    @property
    def pool(self) -> SessionPool:
        if self._pool is None:
            with _context_lock:
                if self._pool is None:
                    self._pool = build_pool(self.config, self.persistence)
        return self._pool

    def has_pool(self) -> bool:
        return self._pool is not None

    def close(self) -> None:
        """Shut the pool down, persisting every session."""
        if self._pool is not None:
            self._pool.shutdown()


def build_pool(config: dict, persistence: Optional[SessionPersistence]) -> SessionPool:
    return SessionPool(
        factory=functools.partial(_create_session, config),
        persistence=persistence,
        max_sessions=config.get("max_sessions", 10),
        idle_timeout=config.get("session_timeout", 1800),
        sweep_interval=config.get("cleanup_interval", 60),
    )


def _create_session(config: dict, session_id: str):
    return create_browser_session(session_id, config)


# ============================================================================
# Global Context Management
# ============================================================================

_global_context: Optional[ServerContext] = None
# Guards creation of the global context and of its pool
_context_lock = threading.RLock()


def get_context() -> ServerContext:
    """
    Get or create the global server context.

    All calls return the same instance; reset_context() clears it (tests).
    """
    global _global_context

    if _global_context is None:
        with _context_lock:
            if _global_context is None:
                config = get_env_config()
                _global_context = ServerContext(
                    config=config,
                    persistence=SessionPersistence(config["sessions_dir"]),
                )

    return _global_context


def set_context(ctx: Optional[ServerContext]) -> None:
    """Install a prepared context, e.g. one with a fake pool."""
    global _global_context
    with _context_lock:
        _global_context = ctx


def reset_context() -> None:
    """
    Reset the global context.

    Primarily for testing. Live sessions are NOT shut down; call
    `get_context().close()` first if that matters.
    """
    global _global_context
    with _context_lock:
        _global_context = None


__all__ = [
    "ServerContext",
    "build_pool",
    "get_context",
    "set_context",
    "reset_context",
]
