"""DevTools endpoint discovery for a running Selenium-driven Chrome."""

import json
import urllib.request
from typing import List, Optional

import logging
logger = logging.getLogger(__name__)

from ..errors import ProtocolUnavailable


def debugger_address(driver) -> Optional[str]:
    """host:port of the DevTools HTTP endpoint chromedriver attached to."""
    try:
        caps = driver.capabilities or {}
    except Exception:
        return None
    opts = caps.get("goog:chromeOptions") or {}
    addr = opts.get("debuggerAddress")
    return addr or None


def list_targets(address: str, timeout: float = 3.0) -> List[dict]:
    """Targets reported by /json/list."""
    try:
        with urllib.request.urlopen(f"http://{address}/json/list", timeout=timeout) as resp:
            data = json.load(resp)
    except Exception as e:
        raise ProtocolUnavailable(f"Cannot list DevTools targets at {address}: {e}") from e
    return data if isinstance(data, list) else []


def current_target_id(driver) -> Optional[str]:
    """
    Target id of the driver's current window.

    Prefers Target.getTargetInfo; the Selenium handle of a page ends with its
    targetId, which serves as the fallback.
    """
    try:
        info = driver.execute_cdp_cmd("Target.getTargetInfo", {}) or {}
        tid = (info.get("targetInfo") or {}).get("targetId") or info.get("targetId")
        if tid:
            return tid
    except Exception as e:
        logger.debug(f"Target.getTargetInfo failed: {e}")

    try:
        handle = driver.current_window_handle
    except Exception:
        return None
    if handle and handle.startswith("CDwindow-"):
        return handle[len("CDwindow-"):]
    return handle or None


def resolve_page_websocket_url(driver, timeout: float = 3.0) -> str:
    """
    webSocketDebuggerUrl of the page the driver is on.

    Raises:
        ProtocolUnavailable: no debugger address or no matching page target
    """
    address = debugger_address(driver)
    if not address:
        raise ProtocolUnavailable("Driver exposes no debuggerAddress capability")

    pages = [t for t in list_targets(address, timeout=timeout) if t.get("type") == "page"]
    if not pages:
        raise ProtocolUnavailable(f"No page targets at {address}")

    target_id = current_target_id(driver)
    for t in pages:
        tid = t.get("id")
        if target_id and tid and (tid == target_id or target_id.endswith(tid)):
            url = t.get("webSocketDebuggerUrl")
            if url:
                return url

    if len(pages) == 1 and pages[0].get("webSocketDebuggerUrl"):
        return pages[0]["webSocketDebuggerUrl"]

    raise ProtocolUnavailable(f"No page target matches {target_id!r} at {address}")


__all__ = [
    "debugger_address",
    "list_targets",
    "current_target_id",
    "resolve_page_websocket_url",
]
