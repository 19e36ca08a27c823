"""
Tool registry — finds LiveTool subclasses and hands them out by name.

Every concrete LiveTool defined under the scanned package is built once,
with the registry's graph factory, so a test can point all of them at an
in-memory graph while the MCP server lets them open the WebSocket bridge.
"""

from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil
from collections.abc import Iterator

from tools.base import GraphFactory, LiveTool, ToolResult

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Name → LiveTool lookup filled by package scanning.

    Usage:
        registry = ToolRegistry()
        registry.discover("tools.live")
        result = registry.call("read_device", path="t1/d0", include="params")
    """

    def __init__(self, graph_factory: GraphFactory | None = None):
        self._graph_factory = graph_factory
        self._tools: dict[str, LiveTool] = {}

    def register(self, tool: LiveTool) -> None:
        """Add ``tool``; a second tool with the same name is a ValueError."""
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool
        logger.debug("Registered tool %s", tool.name)

    def get(self, name: str) -> LiveTool | None:
        return self._tools.get(name)

    def call(self, name: str, **kwargs) -> ToolResult:
        """Run a tool by name; unknown names give an error result."""
        tool = self._tools.get(name)
        if tool is None:
            return ToolResult(success=False, error=f"Unknown tool '{name}'")
        return tool(**kwargs)

    def names(self) -> list[str]:
        return list(self._tools)

    def list_tools(self) -> list[dict]:
        """Serialized tools (name, description, parameters) in registration order."""
        return [tool.to_dict() for tool in self._tools.values()]

    def discover(self, package_name: str = "tools.live") -> int:
        """
        Import every module below ``package_name`` and register its tools.

        Only classes defined in the module itself count, so a tool imported
        elsewhere is not registered twice.  Modules that fail to import are
        logged and skipped.

        Returns:
            Number of tools registered by this scan
        """
        try:
            package = importlib.import_module(package_name)
        except ImportError:
            return 0
        search_path = getattr(package, "__path__", None)
        if search_path is None:
            return 0

        found = 0
        for _finder, module_name, _is_pkg in pkgutil.walk_packages(list(search_path), prefix=f"{package_name}."):
            try:
                module = importlib.import_module(module_name)
            except ImportError as exc:
                logger.warning("Skipping tool module %s: %s", module_name, exc)
                continue

            for _attr, cls in inspect.getmembers(module, inspect.isclass):
                if cls.__module__ != module.__name__ or not issubclass(cls, LiveTool):
                    continue
                if inspect.isabstract(cls):
                    continue
                self.register(cls(self._graph_factory))
                found += 1

        return found

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[LiveTool]:
        return iter(self._tools.values())


_registry: ToolRegistry | None = None


def get_registry() -> ToolRegistry:
    """Process-wide registry of the Live tools, discovered on first use."""
    global _registry
    if _registry is None:
        _registry = ToolRegistry()
        _registry.discover()
    return _registry
