"""Run scripts inside a chosen execution world."""

import time
from typing import Any

import logging
logger = logging.getLogger(__name__)

from ..constants import (
    CDP_DEBUG,
    CDP_TIMEOUT_SECS,
    EXECUTION_RETRY_BUDGET,
    SCRIPT_SOURCE_URL,
    WRAP_SCRIPTS,
)
from ..errors import (
    CommandFailed,
    ContextCreationFailure,
    ExecutionFailed,
    FrameUnavailable,
    ScriptError,
)
from .contexts import ExecutionContextCache, WorldKind

# Failures of the context or the channel, as opposed to the script itself.
# CommandTimeout is a CommandFailed.
RETRYABLE_ERRORS = (ContextCreationFailure, CommandFailed, FrameUnavailable)


def wrap_with_source_url(script: str, source_url: str = SCRIPT_SOURCE_URL, wrap: bool = WRAP_SCRIPTS) -> str:
    """Append a sourceURL annotation, optionally inside an IIFE."""
    wrapped = f"{script}\n//# sourceURL={source_url}"
    if wrap:
        wrapped = f"(function(){{{wrapped}\n}})()"
    return wrapped


def decode_result(response: dict) -> Any:
    """
    Turn a Runtime.evaluate response into a plain value.

    - exceptionDetails -> ScriptError
    - undefined -> None
    - value -> the value
    - unserializableValue (NaN, Infinity, -0, bigint) -> its string form
    - anything else (DOM nodes, functions) -> its description
    """
    details = response.get("exceptionDetails")
    if details:
        exception = details.get("exception") or {}
        text = exception.get("description") or details.get("text") or "Unknown error"
        raise ScriptError(text, details)

    result = response.get("result")
    if not result:
        return None
    if result.get("type") == "undefined":
        return None
    if "value" in result:
        return result["value"]
    if "unserializableValue" in result:
        return result["unserializableValue"]
    return result.get("description") or result.get("className") or result.get("type")


class ScriptExecutor:
    """
    Evaluates scripts through a `ProtocolBridge` in contexts from an
    `ExecutionContextCache`.

    Context and channel failures are retried; every failure drops the cached
    contexts so the next attempt starts from fresh ones. If the isolated
    world cannot be created at all, execution falls back once to the main
    world. A script that throws is reported immediately.
    """

    def __init__(self, bridge, contexts: ExecutionContextCache, timeout: float = CDP_TIMEOUT_SECS, retry_delay: float = 0.0):
        self.timeout = timeout
        self.retry_delay = retry_delay
        self._bridge = bridge
        self._contexts = contexts

    def run(self, script: str, world_kind=WorldKind.ISOLATED, retry_budget: int = EXECUTION_RETRY_BUDGET) -> Any:
        """
        Run `script` in `world_kind` and return its decoded result.

        Raises:
            ScriptError: the script threw
            ExecutionFailed: no context could be used within the retry budget
        """
        world_kind = WorldKind(world_kind)
        attempts = max(1, int(retry_budget))
        last_error = None

        for attempt in range(1, attempts + 1):
            try:
                return self._run_once(script, world_kind)
            except ScriptError:
                raise
            except RETRYABLE_ERRORS as e:
                last_error = e
                self._log_debug(f"CDP execution failed (attempt {attempt}/{attempts}): {e}")
                self._contexts.invalidate_stale(max_age=0)
                if attempt < attempts and self.retry_delay:
                    time.sleep(self.retry_delay)

        if world_kind is WorldKind.ISOLATED and isinstance(last_error, ContextCreationFailure):
            logger.info("[CDP] Falling back to main world execution due to isolated world failure")
            return self.run(script, WorldKind.MAIN, retry_budget=1)

        raise ExecutionFailed(f"Failed after {attempts} attempts: {last_error}") from last_error

    def _run_once(self, script: str, world_kind: WorldKind) -> Any:
        context_id = self._contexts.get_or_create(world_kind)
        self._log_debug(f"Executing script in {world_kind.value} context {context_id}")
        response = self._bridge.send_command(
            "Runtime.evaluate",
            {
                "expression": wrap_with_source_url(script),
                "contextId": context_id,
                "returnByValue": True,
                "awaitPromise": True,
                "timeout": int(self.timeout * 1000),
            },
            # leave the browser-side timeout room to report first
            timeout=self.timeout + 1.0,
        )
        return decode_result(response)

    @staticmethod
    def _log_debug(message: str) -> None:
        if CDP_DEBUG:
            logger.debug(f"[CDP] {message}")


__all__ = ["ScriptExecutor", "decode_result", "wrap_with_source_url", "RETRYABLE_ERRORS"]
