"""read_device tool — Read devices, rack containers and drum pads.

Targets are stable ids or compact paths (``t1/d0``, ``t1/d0/c2``,
``t1/d0/pC1/c0``), comma-separated for batches.  One hit returns the bare
object, several return a list, none return ``[]``.

Use when the user asks:
  - "What's inside the drum rack on track 2?"
  - "Show me the filter settings on the first device"
  - "Which pads in that kit have no instrument?"
"""

from __future__ import annotations

from typing import Any

from core.ableton.reader import ReadOptions, read_targets
from tools.base import LiveTool, ToolParameter, ToolResult


class ReadDevice(LiveTool):
    """Read one or more graph nodes into a JSON tree."""

    @property
    def name(self) -> str:
        return "read_device"

    @property
    def description(self) -> str:
        return (
            "Read Ableton Live devices, rack containers and drum pads by id or compact path "
            "(t=track, rt=return track, mt=master, d=device, c=container, rc=return container, "
            "p<note>=drum pad, p*=catch-all pad). Returns type, name, state and, on request, "
            "containers, pads, parameters with display values, and a drum map."
        )

    @property
    def parameters(self) -> list[ToolParameter]:
        return [
            ToolParameter(
                name="ids",
                type=str,
                description="Comma-separated object ids. Use either ids or path.",
                required=False,
            ),
            ToolParameter(
                name="path",
                type=str,
                description="Comma-separated compact paths such as 't1/d0' or 't1/d0/pC1/c0'.",
                required=False,
            ),
            ToolParameter(
                name="include",
                type=str,
                description=(
                    "Comma-separated extras: containers, return-containers, pads, params, "
                    "param-values, drum-map, or * for everything."
                ),
                required=False,
                default="",
            ),
            ToolParameter(
                name="max_depth",
                type=int,
                description="How many levels of nested devices to expand (default 0).",
                required=False,
            ),
            ToolParameter(
                name="param_search",
                type=str,
                description="Only list parameters whose name contains this text (case-insensitive).",
                required=False,
            ),
        ]

    def execute(self, **kwargs: Any) -> ToolResult:
        """Resolve the targets and read each one."""
        max_depth = kwargs.get("max_depth")
        if max_depth is None:
            from ingestion.live_bridge import load_bridge_config

            max_depth = load_bridge_config().default_max_depth

        options = ReadOptions.from_include(
            kwargs.get("include") or None,
            max_depth=max_depth,
            param_search=kwargs.get("param_search"),
        )

        with self.graph() as graph:
            data = read_targets(graph, ids=kwargs.get("ids"), paths=kwargs.get("path"), options=options)

        count = len(data) if isinstance(data, list) else 1
        return ToolResult(success=True, data=data, metadata={"target_count": count})
