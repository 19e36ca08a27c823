"""ingestion/live_bridge.py — WebSocket implementation of the LiveGraph protocol.

This module is the I/O boundary between Python and Ableton Live.  All network
calls live here; core/ stays pure and only sees the :class:`LiveGraph`
protocol.

Architecture
────────────
::

    Ableton Live
        └── Listener (M4L device, port 11005)
                │   WebSocket (ws://localhost:11005)
                ▼
    ingestion/live_bridge.py (this module)
        │
        └── LOMCommand → JSON → {"type": "result", "value": ...}
                                {"type": "error",  "message": ...}

Connection model
────────────────
Resolving one path takes several round trips, so ``LiveBridge`` keeps one
connection open for its lifetime (opened lazily, closed by :meth:`close` or
by leaving a ``with`` block).  A failed send or read drops the connection;
the next command reconnects.  Commands are strictly sequential, one in
flight at a time.  Nothing is cached: every call reads live state.

Dependency
──────────
Requires ``websocket-client``.  Deferred import so core/ and the tests work
without it installed.

Error handling
──────────────
``ConnectionError`` when Live or the listener is unreachable or silent.
:class:`LiveGraphError` when the listener answers with an error (the host
rejected the command).
"""

from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any

from dotenv import load_dotenv

from core.ableton.errors import LiveGraphError
from core.ableton.graph import as_id_ref
from core.ableton.types import LOMCommand
from core.config import DEFAULT_CONFIG, BridgeConfig

logger = logging.getLogger(__name__)

# Listener may interleave notifications with replies
_MAX_SKIPPED_MESSAGES: int = 10
_PING_TIMEOUT: float = 2.0  # seconds


def load_bridge_config() -> BridgeConfig:
    """Read :class:`BridgeConfig` from ``.env`` and the process environment."""
    load_dotenv()
    return BridgeConfig.from_env(os.environ)


@dataclass
class LiveBridge:
    """WebSocket client that answers :class:`LiveGraph` calls via the listener.

    Usage::

        with LiveBridge(load_bridge_config()) as bridge:
            target = resolve_target(bridge, "t1/d0/pC1/c0")
            print(read_node(target))
    """

    config: BridgeConfig = DEFAULT_CONFIG

    _ws: Any = field(default=None, init=False, repr=False)

    @property
    def ws_url(self) -> str:
        """WebSocket URL for the listener."""
        return self.config.url

    # ── Connection ──────────────────────────────────────────────────────────

    def _open(self) -> Any:
        """Open a WebSocket connection to the listener.

        Returns:
            ``websocket.WebSocket`` instance (from ``websocket-client``).

        Raises:
            ConnectionError: If Ableton / the listener is not reachable.
            ImportError:     If ``websocket-client`` is not installed.
        """
        try:
            import websocket  # type: ignore[import]
        except ImportError as exc:
            raise ImportError(
                "websocket-client is required for the Live bridge. "
                "Install with: pip install websocket-client"
            ) from exc

        try:
            ws = websocket.WebSocket()
            ws.settimeout(self.config.connect_timeout)
            ws.connect(self.ws_url)
            logger.debug("Connected to listener at %s", self.ws_url)
            return ws
        except OSError as exc:
            raise ConnectionError(
                f"Cannot connect to the Live listener at {self.ws_url}. "
                "Make sure Ableton is open and the listener M4L device is loaded. "
                f"({exc})"
            ) from exc

    def _connection(self) -> Any:
        if self._ws is None:
            self._ws = self._open()
        return self._ws

    def close(self) -> None:
        """Close the connection if open.  Safe to call twice."""
        ws, self._ws = self._ws, None
        if ws is not None:
            try:
                ws.close()
            except OSError:
                logger.debug("Ignoring error while closing listener socket", exc_info=True)

    def __enter__(self) -> LiveBridge:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _recv_json(self, ws: Any, timeout: float | None = None) -> dict[str, Any]:
        """Receive and parse the next JSON message from the WebSocket.

        Raises:
            ConnectionError: On timeout, socket error or unparsable payload.
        """
        import websocket  # type: ignore[import]

        try:
            ws.settimeout(timeout if timeout is not None else self.config.read_timeout)
            raw = ws.recv()
            return json.loads(raw)
        except websocket.WebSocketTimeoutException as exc:
            raise ConnectionError(
                f"Live listener did not respond within {timeout or self.config.read_timeout}s"
            ) from exc
        except (websocket.WebSocketException, OSError, ValueError) as exc:
            raise ConnectionError(f"WebSocket read error: {exc}") from exc

    # ── Commands ────────────────────────────────────────────────────────────

    def execute(self, command: LOMCommand) -> Any:
        """Send one command and return the listener's ``value``.

        Raises:
            ConnectionError: Listener unreachable or silent.
            LiveGraphError:  Listener reported an error for this command.
        """
        import websocket  # type: ignore[import]

        ws = self._connection()
        try:
            ws.send(json.dumps(command.to_dict()))
            for _ in range(_MAX_SKIPPED_MESSAGES):
                msg = self._recv_json(ws)
                kind = msg.get("type")
                if kind == "result":
                    return msg.get("value")
                if kind == "error":
                    raise LiveGraphError(
                        f"Live rejected {command.type} on '{command.ref}': {msg.get('message', 'unknown error')}"
                    )
                logger.debug("Skipping listener message of type %r", kind)
        except ConnectionError:
            self.close()
            raise
        except (websocket.WebSocketException, OSError) as exc:
            self.close()
            raise ConnectionError(f"WebSocket send error: {exc}") from exc
        self.close()
        raise ConnectionError(f"Live listener sent no reply to {command.type} on '{command.ref}'")

    # ── LiveGraph protocol ──────────────────────────────────────────────────

    def exists(self, ref: str) -> bool:
        return bool(self.execute(LOMCommand("exists", ref)))

    def id_of(self, ref: str) -> str:
        return str(self.execute(LOMCommand("id", ref)))

    def path_of(self, ref: str) -> str:
        return str(self.execute(LOMCommand("path", ref)))

    def type_of(self, ref: str) -> str:
        return str(self.execute(LOMCommand("type", ref)))

    def get(self, ref: str, prop: str) -> Any:
        return self.execute(LOMCommand("get", ref, property=prop))

    def set(self, ref: str, prop: str, value: Any) -> None:
        self.execute(LOMCommand("set", ref, property=prop, value=value))

    def call(self, ref: str, method: str, *args: Any) -> Any:
        return self.execute(LOMCommand("call", ref, property=method, args=tuple(args)))

    def children(self, ref: str, kind: str) -> list[str]:
        ids = self.execute(LOMCommand("children", ref, property=kind)) or []
        return [as_id_ref(i) for i in ids]

    # ── Health ──────────────────────────────────────────────────────────────

    def ping(self) -> float:
        """Check connectivity and measure round-trip latency to the listener.

        Returns:
            Round-trip latency in milliseconds.

        Raises:
            ConnectionError: If Ableton is unreachable.
        """
        ws = self._connection()
        try:
            t0 = time.perf_counter()
            ws.send(json.dumps({"type": "ping"}))
            msg = self._recv_json(ws, timeout=_PING_TIMEOUT)
            latency_ms = (time.perf_counter() - t0) * 1000
        except ConnectionError:
            self.close()
            raise
        if msg.get("type") != "pong":
            raise ConnectionError(f"Expected pong, got {msg.get('type')!r}")
        return latency_ms
