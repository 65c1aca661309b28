"""Per-browser DevTools lifecycle: setup, navigation handling, teardown.

    UNINITIALIZED --setup()--> READY     (domains on, frame known, handler
                                          registered, baseline scripts in)
                  --setup()--> DEGRADED  (connect or frame lookup failed)
    any           --teardown()--> CLOSED

While READY, a navigation of the tracked main frame drops every cached
execution context (isolated worlds do not survive navigation) and
re-registers the baseline scripts.
"""

import enum
import threading
from typing import Any, Dict, List, Optional, Sequence

import logging
logger = logging.getLogger(__name__)

from ..constants import CDP_DEBUG, CDP_TIMEOUT_SECS, CONTEXT_MAX_AGE_SECS
from ..errors import BrowserToolError, ProtocolUnavailable
from .bridge import ProtocolBridge, StepOutcome
from .contexts import ExecutionContextCache, WorldKind
from .executor import ScriptExecutor
from .scripts import BASELINE_SCRIPTS, BaselineScript


class CdpState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    DEGRADED = "degraded"
    CLOSED = "closed"


class CdpController:
    """Bridge, context cache and executor of one browser, exposed as a unit."""

    def __init__(
        self,
        owner_key: str,
        *,
        timeout: float = CDP_TIMEOUT_SECS,
        context_max_age: float = CONTEXT_MAX_AGE_SECS,
        scripts: Sequence[BaselineScript] = BASELINE_SCRIPTS,
        bridge_factory=ProtocolBridge,
    ):
        self.owner_key = owner_key
        self.timeout = timeout
        self.context_max_age = context_max_age
        self.state = CdpState.UNINITIALIZED
        self.bridge: Optional[ProtocolBridge] = None
        self.contexts: Optional[ExecutionContextCache] = None
        self.executor: Optional[ScriptExecutor] = None
        self.main_frame_id: Optional[str] = None
        self.setup_outcomes: List[StepOutcome] = []
        self._scripts = tuple(scripts)
        self._bridge_factory = bridge_factory
        self._injected: Dict[str, str] = {}
        self._inject_lock = threading.Lock()

    def setup(self, browser) -> bool:
        """Bring the DevTools stack up for `browser`. Returns False when degraded."""
        if self.state is CdpState.CLOSED:
            return False
        logger.debug("[CDP] Starting CDP setup...")
        bridge = self._bridge_factory()

        try:
            bridge.connect(browser)
        except ProtocolUnavailable as e:
            logger.warning(f"[CDP] CDP features will be disabled, using plain WebDriver execution: {e}")
            self._degrade(bridge)
            return False

        try:
            self.bridge = bridge
            self.contexts = ExecutionContextCache(bridge, self.owner_key, max_age=self.context_max_age)
            self.executor = ScriptExecutor(bridge, self.contexts, timeout=self.timeout)

            outcomes = bridge.enable_domains()
            self.main_frame_id = bridge.fetch_main_frame_id()
            outcomes.append(self._register_navigation_handler())
            outcomes.extend(self.inject_baseline_scripts())
        except Exception as e:
            logger.error(f"[CDP] Failed to setup CDP: {e}")
            self._degrade(bridge)
            return False

        self.setup_outcomes = outcomes
        failed = [o.step for o in outcomes if not o.ok]
        if failed:
            logger.info(f"[CDP] Setup finished with soft failures: {', '.join(failed)}")
        self.state = CdpState.READY
        logger.debug("[CDP] CDP initialized successfully")
        return True

    def cdp_available(self) -> bool:
        return (
            self.state is CdpState.READY
            and self.bridge is not None
            and self.bridge.connected
            and self.executor is not None
        )

    def run_isolated(self, script: str) -> Any:
        return self._run(script, WorldKind.ISOLATED)

    def run_main(self, script: str) -> Any:
        return self._run(script, WorldKind.MAIN)

    def _run(self, script: str, world_kind: WorldKind) -> Any:
        executor = self.executor
        if executor is None or not self.cdp_available():
            raise ProtocolUnavailable("CDP not initialized")
        if CDP_DEBUG:
            logger.debug(f"[CDP] run_{world_kind.value} called")
        return executor.run(script, world_kind)

    # Navigation lifecycle

    def _register_navigation_handler(self) -> StepOutcome:
        sub = self.bridge.on_event("Page.frameNavigated", self._on_frame_navigated)
        if sub is None:
            return StepOutcome("subscribe:Page.frameNavigated", False, "registration failed")
        return StepOutcome("subscribe:Page.frameNavigated", True)

    def _on_frame_navigated(self, params: dict) -> None:
        if self.state is CdpState.CLOSED:
            return
        frame = params.get("frame") or {}
        if frame.get("parentId") or frame.get("id") != self.main_frame_id:
            return
        logger.debug("[CDP] Main frame navigated, clearing contexts and re-injecting scripts")
        self.handle_main_frame_navigation()

    def handle_main_frame_navigation(self) -> List[StepOutcome]:
        contexts = self.contexts
        if contexts is not None:
            contexts.clear_all()
        return self.inject_baseline_scripts()

    def inject_baseline_scripts(self) -> List[StepOutcome]:
        """(Re)register every baseline script. One failure never stops the rest."""
        bridge = self.bridge
        if bridge is None:
            return []
        with self._inject_lock:
            return [self._inject_one(bridge, script) for script in self._scripts]

    def _inject_one(self, bridge: ProtocolBridge, script: BaselineScript) -> StepOutcome:
        step = f"inject:{script.name}"
        previous = self._injected.pop(script.name, None)
        if previous is not None:
            try:
                bridge.send_command("Page.removeScriptToEvaluateOnNewDocument", {"identifier": previous})
            except BrowserToolError as e:
                logger.debug(f"[CDP] Could not remove previous {script.name} script: {e}")

        try:
            response = bridge.send_command(
                "Page.addScriptToEvaluateOnNewDocument",
                {"source": script.source, "runImmediately": True},
            )
        except BrowserToolError as e:
            logger.warning(f"[CDP] Failed to inject {script.name} script: {e}")
            return StepOutcome(step, False, str(e))

        identifier = response.get("identifier")
        if identifier:
            self._injected[script.name] = identifier
        logger.debug(f"[CDP] Injected {script.name} script into main world")
        return StepOutcome(step, True)

    # Teardown

    def teardown(self) -> None:
        """Close the connection. No further events are processed."""
        self.state = CdpState.CLOSED
        bridge, self.bridge = self.bridge, None
        self.executor = None
        if self.contexts is not None:
            self.contexts.clear_all()
        self.contexts = None
        self._injected.clear()
        if bridge is not None:
            try:
                bridge.close()
            except Exception as e:
                logger.debug(f"[CDP] Error closing DevTools connection: {e}")

    def _degrade(self, bridge: ProtocolBridge) -> None:
        try:
            bridge.close()
        except Exception as e:
            logger.debug(f"[CDP] Error closing DevTools connection: {e}")
        self.bridge = None
        self.contexts = None
        self.executor = None
        self.main_frame_id = None
        self.state = CdpState.DEGRADED

    def describe(self) -> dict:
        """Read-only state summary for diagnostics."""
        contexts = self.contexts
        return {
            "state": self.state.value,
            "available": self.cdp_available(),
            "main_frame_id": self.main_frame_id,
            "contexts": [
                {"world": c.world_kind.value, "context_id": c.context_id, "world_name": c.world_name}
                for c in (contexts.entries() if contexts is not None else [])
            ],
            "injected_scripts": sorted(self._injected),
        }


__all__ = ["CdpController", "CdpState"]
