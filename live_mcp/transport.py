"""
Ableton graph MCP — transport configuration and logging setup.

Environment:
    MCP_TRANSPORT   stdio (default; the client spawns the server) or sse
    MCP_LOG_LEVEL   DEBUG, INFO (default), WARNING or ERROR

Logs always go to stderr: under stdio the client reads JSON-RPC from
stdout, and a stray log line there breaks the session.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Literal

TransportMode = Literal["stdio", "sse"]

ENV_TRANSPORT = "MCP_TRANSPORT"
ENV_LOG_LEVEL = "MCP_LOG_LEVEL"

_LOG_FORMAT = "%(asctime)s.%(msecs)03d [%(name)s] %(levelname)s %(message)s"
_LOG_DATE_FORMAT = "%H:%M:%S"

# websocket-client logs every frame at DEBUG
_NOISY_LOGGERS: tuple[str, ...] = ("websocket", "httpx", "httpcore", "uvicorn")

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def get_log_level() -> int:
    """Level named by MCP_LOG_LEVEL; INFO when unset or unknown."""
    name = os.getenv(ENV_LOG_LEVEL, "INFO").strip().upper()
    return _LEVELS.get(name, logging.INFO)


def configure_logging(level: int | None = None) -> None:
    """
    Point the root logger at stderr, replacing any existing handlers.

    Call before the MCP server starts.

    Args:
        level: Logging level; MCP_LOG_LEVEL when omitted
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt=_LOG_FORMAT, datefmt=_LOG_DATE_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(get_log_level() if level is None else level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_transport_mode() -> TransportMode:
    """``"sse"`` when MCP_TRANSPORT says so (any case), else ``"stdio"``."""
    mode = os.getenv(ENV_TRANSPORT, "stdio").strip().lower()
    if mode == "sse":
        return "sse"
    if mode != "stdio":
        logging.getLogger(__name__).warning("Unknown %s=%r, using stdio", ENV_TRANSPORT, mode)
    return "stdio"
