"""
Base class for the Live graph tools.

A LiveTool declares its inputs as ToolParameter entries, checks them before
doing anything, opens one graph per call and answers with a ToolResult.
The registry discovers LiveTool subclasses and the MCP handlers run them.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from core.ableton.errors import LiveGraphError
from core.ableton.graph import LiveGraph

logger = logging.getLogger(__name__)

GraphFactory = Callable[[], LiveGraph]


@dataclass(frozen=True)
class ToolParameter:
    """
    One input a tool accepts.

    ``type`` may be a tuple when several are fine, e.g. ``params`` takes a
    JSON string or an already decoded dict.
    """

    name: str
    type: type | tuple[type, ...]
    description: str
    required: bool = True
    default: Any = None

    @property
    def type_name(self) -> str:
        accepted = self.type if isinstance(self.type, tuple) else (self.type,)
        return " | ".join(t.__name__ for t in accepted)

    def validate(self, value: Any) -> tuple[bool, str | None]:
        """``(True, None)`` when ``value`` is acceptable, else ``(False, message)``."""
        if value is None:
            if self.required:
                return False, f"Required parameter '{self.name}' is missing"
            return True, None

        accepted = self.type if isinstance(self.type, tuple) else (self.type,)
        # bool is an int subclass; True is not a macro count
        if isinstance(value, bool) and bool not in accepted:
            return False, f"Parameter '{self.name}' must be {self.type_name}, got bool"
        if not isinstance(value, accepted):
            return False, f"Parameter '{self.name}' must be {self.type_name}, got {type(value).__name__}"
        return True, None


@dataclass(frozen=True)
class ToolResult:
    """
    Outcome of one tool call.

    ``data`` is the JSON-ready payload: one object for a single target, a
    list otherwise.  ``error`` is set exactly when ``success`` is False.
    """

    success: bool
    data: Any = None
    error: str | None = None
    metadata: dict[str, Any] | None = None


def default_graph_factory() -> LiveGraph:
    """Open a bridge to Live using .env / environment settings."""
    from ingestion.live_bridge import LiveBridge, load_bridge_config

    return LiveBridge(load_bridge_config())


class LiveTool(ABC):
    """
    Abstract base for tools that address the Live graph by id or compact path.

    The graph comes from ``graph_factory``; without one each call opens a
    WebSocket bridge.  Tests pass a factory returning the in-memory graph.

    Subclasses provide ``name``, ``description``, ``parameters`` and
    ``execute()``, and use ``with self.graph() as graph:`` inside execute.
    """

    def __init__(self, graph_factory: GraphFactory | None = None) -> None:
        self._graph_factory = graph_factory

    @property
    @abstractmethod
    def name(self) -> str:
        """Tool name as clients see it, e.g. ``read_device``."""

    @property
    @abstractmethod
    def description(self) -> str:
        """What the tool addresses and what it returns."""

    @property
    @abstractmethod
    def parameters(self) -> list[ToolParameter]:
        """Accepted inputs, in the order clients should list them."""

    @abstractmethod
    def execute(self, **kwargs) -> ToolResult:
        """Do the work; inputs have already passed ``validate_inputs``."""

    @contextmanager
    def graph(self) -> Iterator[LiveGraph]:
        """Graph for one call; closed afterwards when it supports ``close()``."""
        graph = (self._graph_factory or default_graph_factory)()
        try:
            yield graph
        finally:
            close = getattr(graph, "close", None)
            if callable(close):
                close()

    def validate_inputs(self, **kwargs) -> tuple[bool, str | None]:
        """First failing parameter check, or ``(True, None)``."""
        for param in self.parameters:
            is_valid, error = param.validate(kwargs.get(param.name))
            if not is_valid:
                return False, error
        return True, None

    def __call__(self, **kwargs) -> ToolResult:
        """
        Validate, then execute.

        Graph errors and connection failures become error results with their
        message unchanged; anything else is logged with its traceback and
        reported as a tool failure.
        """
        is_valid, error = self.validate_inputs(**kwargs)
        if not is_valid:
            return ToolResult(success=False, error=error)

        try:
            return self.execute(**kwargs)
        except (LiveGraphError, ConnectionError) as exc:
            logger.warning("%s failed: %s", self.name, exc)
            return ToolResult(success=False, error=str(exc))
        except Exception as exc:
            logger.exception("%s crashed", self.name)
            return ToolResult(success=False, error=f"Tool execution failed: {exc}")

    def to_dict(self) -> dict[str, Any]:
        """Name, description and parameter list, for tool listings."""
        params = [
            {
                "name": p.name,
                "type": p.type_name,
                "description": p.description,
                "required": p.required,
                "default": p.default,
            }
            for p in self.parameters
        ]
        return {"name": self.name, "description": self.description, "parameters": params}
