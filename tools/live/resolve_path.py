"""resolve_path tool — Explain what a compact path points at.

Pure translation: no round trip to Live unless ``check_exists`` is set.
Handy for checking a path before an update, or for debugging why a path
matches nothing.
"""

from __future__ import annotations

from typing import Any

from core.ableton.batch import unwrap_single
from core.ableton.errors import MalformedInputError
from core.ableton.paths import split_items
from core.ableton.resolver import locate, resolve_path
from tools.base import LiveTool, ToolParameter, ToolResult


class ResolvePath(LiveTool):
    """Translate compact paths into LOM addresses and target kinds."""

    @property
    def name(self) -> str:
        return "resolve_path"

    @property
    def description(self) -> str:
        return (
            "Translate Ableton compact paths (e.g. 't1/d0/c2', 't1/d0/pC1/c0', 'mt/d0') into "
            "the Live Object Model address and target kind. Optionally checks that the "
            "node exists and returns its id."
        )

    @property
    def parameters(self) -> list[ToolParameter]:
        return [
            ToolParameter("path", str, "Comma-separated compact paths."),
            ToolParameter(
                "check_exists",
                bool,
                "Also look the paths up in Live and report id and existence.",
                required=False,
                default=False,
            ),
        ]

    def execute(self, **kwargs: Any) -> ToolResult:
        """Resolve each path; malformed paths fail the whole call."""
        items = split_items(kwargs.get("path"))
        if not items:
            raise MalformedInputError("Path must be a non-empty string")

        resolved = [(item, resolve_path(item)) for item in items]
        payloads: list[dict[str, Any]] = [{"path": item, **r.to_dict()} for item, r in resolved]

        if kwargs.get("check_exists"):
            with self.graph() as graph:
                for payload, (item, r) in zip(payloads, resolved):
                    target = locate(graph, r, item)
                    payload["exists"] = target is not None
                    if target is not None:
                        payload["id"] = target.id
                        payload["type"] = target.kind.value

        return ToolResult(success=True, data=unwrap_single(payloads))
