"""Logging setup for the server process."""

import logging
import sys
from typing import Optional

from ..config.environment import get_env_config
from ..config.paths import log_file_path
from ..constants import CDP_DEBUG

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(transport: str = "stdio", config: Optional[dict] = None) -> logging.Handler:
    """
    Attach one handler to the root logger.

    In stdio mode stdout carries the protocol, so records go to
    `<logs_dir>/<pid>.log`; otherwise they go to stderr.
    """
    if config is None:
        config = get_env_config()

    if transport == "stdio":
        handler: logging.Handler = logging.FileHandler(log_file_path(config), encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if getattr(existing, "_hbt_handler", False):
            root.removeHandler(existing)
            existing.close()
    handler._hbt_handler = True
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if CDP_DEBUG else logging.INFO)

    # websocket-client is chatty at DEBUG
    logging.getLogger("websocket").setLevel(logging.WARNING)
    return handler


__all__ = ["configure_logging", "LOG_FORMAT"]
