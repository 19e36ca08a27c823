"""
Configuration dataclasses for the Live bridge and the graph tools.

These immutable config objects decouple connection and read settings from
function signatures. core/ never reads the environment on import:
BridgeConfig.from_env() takes the mapping to read from, and the I/O layer
(ingestion/live_bridge.py) decides when to load .env and pass os.environ.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

ENV_HOST = "ABLETON_BRIDGE_HOST"
ENV_PORT = "ABLETON_BRIDGE_PORT"
ENV_CONNECT_TIMEOUT = "ABLETON_BRIDGE_CONNECT_TIMEOUT"
ENV_READ_TIMEOUT = "ABLETON_BRIDGE_READ_TIMEOUT"
ENV_MAX_DEPTH = "ABLETON_READ_MAX_DEPTH"


@dataclass(frozen=True)
class BridgeConfig:
    """
    Configuration for talking to the Live-side listener.

    Attributes:
        host: Host the listener device binds to. Defaults to "localhost".
        port: WebSocket port of the listener. Defaults to 11005.
        connect_timeout: Seconds to wait for the socket to open.
        read_timeout: Seconds to wait for one command's reply.
        max_auto_containers: Upper bound on rack containers an insertion
            path may create implicitly.
        default_max_depth: Read depth used when a caller gives none.

    Example:
        >>> config = BridgeConfig(port=11006, read_timeout=10.0)
        >>> bridge = LiveBridge(config=config)
    """

    host: str = "localhost"
    port: int = 11005
    connect_timeout: float = 3.0
    read_timeout: float = 5.0
    max_auto_containers: int = 16
    default_max_depth: int = 0

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if not self.host:
            raise ValueError("host must be a non-empty string")
        if not 0 < self.port < 65536:
            raise ValueError(f"port must be in 1-65535, got {self.port}")
        if self.connect_timeout <= 0:
            raise ValueError(f"connect_timeout must be positive, got {self.connect_timeout}")
        if self.read_timeout <= 0:
            raise ValueError(f"read_timeout must be positive, got {self.read_timeout}")
        if self.max_auto_containers < 0:
            raise ValueError(
                f"max_auto_containers must be non-negative, got {self.max_auto_containers}"
            )
        if self.default_max_depth < 0:
            raise ValueError(f"default_max_depth must be non-negative, got {self.default_max_depth}")

    @property
    def url(self) -> str:
        return f"ws://{self.host}:{self.port}"

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> BridgeConfig:
        """
        Build a config from environment-style variables.

        Unset or blank variables keep their defaults.

        Raises:
            ValueError: If a numeric variable does not parse.
        """

        def _get(name: str) -> str | None:
            value = environ.get(name)
            return value.strip() if value and value.strip() else None

        kwargs: dict[str, object] = {}
        if (host := _get(ENV_HOST)) is not None:
            kwargs["host"] = host
        if (port := _get(ENV_PORT)) is not None:
            kwargs["port"] = _parse(ENV_PORT, port, int)
        if (connect := _get(ENV_CONNECT_TIMEOUT)) is not None:
            kwargs["connect_timeout"] = _parse(ENV_CONNECT_TIMEOUT, connect, float)
        if (read := _get(ENV_READ_TIMEOUT)) is not None:
            kwargs["read_timeout"] = _parse(ENV_READ_TIMEOUT, read, float)
        if (depth := _get(ENV_MAX_DEPTH)) is not None:
            kwargs["default_max_depth"] = _parse(ENV_MAX_DEPTH, depth, int)
        return cls(**kwargs)  # type: ignore[arg-type]


def _parse(name: str, raw: str, kind: type) -> int | float:
    try:
        return kind(raw)
    except ValueError:
        raise ValueError(f"{name} must be a {kind.__name__}, got {raw!r}") from None


DEFAULT_CONFIG = BridgeConfig()
"""Default configuration: localhost:11005, 3 s connect, 5 s read, depth 0."""
