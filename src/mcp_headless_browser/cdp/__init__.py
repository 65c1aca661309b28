"""Chrome DevTools Protocol stack: transport, bridge, context cache, executor."""

from .connection import CdpConnection, Subscription
from .bridge import ProtocolBridge, SupportsRemoteDebugging, StepOutcome
from .contexts import ExecutionContext, ExecutionContextCache, WorldKind
from .executor import ScriptExecutor, decode_result, wrap_with_source_url
from .controller import CdpController, CdpState
from .scripts import BASELINE_SCRIPTS, BaselineScript

__all__ = [
    "CdpConnection",
    "Subscription",
    "ProtocolBridge",
    "SupportsRemoteDebugging",
    "StepOutcome",
    "ExecutionContext",
    "ExecutionContextCache",
    "WorldKind",
    "ScriptExecutor",
    "decode_result",
    "wrap_with_source_url",
    "CdpController",
    "CdpState",
    "BASELINE_SCRIPTS",
    "BaselineScript",
]
