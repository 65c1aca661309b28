"""Cache of JavaScript execution contexts, one per world kind of a browser."""

import enum
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

import logging
logger = logging.getLogger(__name__)

from ..constants import CONTEXT_MAX_AGE_SECS, ISOLATED_WORLD_PREFIX
from ..errors import BrowserToolError, ContextCreationFailure


class WorldKind(str, enum.Enum):
    MAIN = "main"
    ISOLATED = "isolated"


@dataclass(frozen=True)
class ExecutionContext:
    context_id: int
    world_kind: WorldKind
    created_at: float
    owner_key: str
    world_name: Optional[str] = None

    def age(self, now: float) -> float:
        return now - self.created_at


class ExecutionContextCache:
    """
    Maps (owner, world kind) to a live execution context id.

    Thread Safety:
        Every membership change happens under one lock per cache. Context
        creation runs under that lock too, so two callers asking for the
        same world never create two contexts. Liveness probes of a cached
        entry run outside the lock.
    """

    def __init__(
        self,
        bridge,
        owner_key: str,
        max_age: float = CONTEXT_MAX_AGE_SECS,
        clock: Callable[[], float] = time.monotonic,
        world_prefix: str = ISOLATED_WORLD_PREFIX,
    ):
        self.owner_key = owner_key
        self.max_age = max_age
        self._bridge = bridge
        self._clock = clock
        self._world_prefix = world_prefix
        self._lock = threading.Lock()
        self._entries: Dict[Tuple[str, WorldKind], ExecutionContext] = {}

    def get_or_create(self, world_kind=WorldKind.ISOLATED) -> int:
        """
        Return a valid context id for `world_kind`, creating one if needed.

        Raises:
            ContextCreationFailure: the context could not be created
        """
        world_kind = WorldKind(world_kind)
        key = (self.owner_key, world_kind)

        with self._lock:
            cached = self._entries.get(key)

        if cached is not None and self.is_valid(cached):
            return cached.context_id

        with self._lock:
            current = self._entries.get(key)
            if current is not None and current is not cached:
                # Another caller replaced the entry while we were probing
                return current.context_id
            if current is not None:
                logger.debug(f"[CDP] Dropping invalid {world_kind.value} context {current.context_id}")
                del self._entries[key]
            entry = self._create(world_kind)
            self._entries[key] = entry
            return entry.context_id

    def is_valid(self, entry: ExecutionContext) -> bool:
        """Younger than the max age and answering a liveness probe."""
        if entry.age(self._clock()) > self.max_age:
            return False
        return self._alive(entry.context_id)

    def invalidate_stale(self, max_age: Optional[float] = None) -> List[WorldKind]:
        """Drop entries older than `max_age` or failing the liveness probe."""
        max_age = self.max_age if max_age is None else max_age
        with self._lock:
            snapshot = list(self._entries.items())

        now = self._clock()
        stale = [
            (key, entry) for key, entry in snapshot
            if entry.age(now) > max_age or not self._alive(entry.context_id)
        ]

        removed = []
        with self._lock:
            for key, entry in stale:
                if self._entries.get(key) is entry:
                    logger.debug(f"[CDP] Cleaning stale context: {key[0]}_{key[1].value}")
                    del self._entries[key]
                    removed.append(key[1])
        return removed

    def clear_all(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        return count

    def entries(self) -> List[ExecutionContext]:
        with self._lock:
            return list(self._entries.values())

    # Creation

    def _create(self, world_kind: WorldKind) -> ExecutionContext:
        try:
            if world_kind is WorldKind.MAIN:
                context_id, world_name = self._acquire_main_world(), None
            else:
                context_id, world_name = self._create_isolated_world()
        except ContextCreationFailure as e:
            logger.warning(f"[CDP] Failed to get/create context: {e}")
            raise
        except BrowserToolError as e:
            logger.warning(f"[CDP] Failed to get/create context: {e}")
            raise ContextCreationFailure(world_kind, str(e)) from e

        logger.debug(f"[CDP] Created {world_kind.value} context {context_id} for {self.owner_key}")
        return ExecutionContext(
            context_id=context_id,
            world_kind=world_kind,
            created_at=self._clock(),
            owner_key=self.owner_key,
            world_name=world_name,
        )

    def _acquire_main_world(self) -> int:
        response = self._bridge.send_command("Runtime.evaluate", {"expression": "1", "returnByValue": True})
        context_id = response.get("executionContextId")
        if context_id is None:
            context_id = (response.get("result") or {}).get("executionContextId")
        if context_id is None:
            # Stock Chrome does not echo the context id; use the one announced for the frame
            context_id = self._bridge.default_context_for(self._bridge.fetch_main_frame_id())
        if context_id is None:
            raise ContextCreationFailure(WorldKind.MAIN, "no executionContextId for the main world")
        return context_id

    def _create_isolated_world(self) -> Tuple[int, str]:
        frame_id = self._bridge.fetch_main_frame_id()
        world_name = f"{self._world_prefix}_{self.owner_key}_{secrets.token_hex(8)}"
        response = self._bridge.send_command(
            "Page.createIsolatedWorld",
            {
                "frameId": frame_id,
                "worldName": world_name,
                # The protocol itself spells the parameter this way
                "grantUniveralAccess": True,
            },
        )
        context_id = response.get("executionContextId")
        if context_id is None:
            raise ContextCreationFailure(WorldKind.ISOLATED, "no executionContextId in response")
        return context_id, world_name

    def _alive(self, context_id: int) -> bool:
        try:
            self._bridge.send_command(
                "Runtime.evaluate",
                {"expression": "true", "contextId": context_id, "returnByValue": True},
            )
            return True
        except Exception as e:
            logger.debug(f"[CDP] Context {context_id} failed liveness probe: {e}")
            return False


__all__ = ["WorldKind", "ExecutionContext", "ExecutionContextCache"]
