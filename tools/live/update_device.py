"""update_device tool — Change, move or wrap devices, containers and drum pads.

Every property is optional and applies to each target in turn.  Properties
that make no sense for a target (e.g. ``color`` on a pad) are skipped for
that target while the others still apply.

Use when the user asks:
  - "Set the reverb decay to 2.5 s and dry/wet to 30 %"
  - "Move the kick to C#1"
  - "Put these two effects in a rack"
  - "Mute the snare layer"
"""

from __future__ import annotations

from typing import Any

from core.ableton.update import UpdateRequest, update_targets
from tools.base import LiveTool, ToolParameter, ToolResult

_REQUEST_FIELDS: tuple[str, ...] = (
    "to_path",
    "name",
    "params",
    "mute",
    "solo",
    "color",
    "choke_group",
    "mapped_pitch",
    "collapsed",
    "macro_variation",
    "macro_variation_index",
    "macro_count",
    "ab_compare",
)


class UpdateDevice(LiveTool):
    """Apply property updates to one or more graph nodes."""

    @property
    def name(self) -> str:
        return "update_device"

    @property
    def description(self) -> str:
        return (
            "Update Ableton Live devices, rack containers and drum pads by id or compact path. "
            "Set parameters in display units (note names, pan -1..1, divisions like '1/8', "
            "enum labels, or the device's own display values), rename, mute/solo, recolor, "
            "move devices or drum pads (to_path), manage macro variations and A/B compare, "
            "or wrap several devices in a new rack."
        )

    @property
    def parameters(self) -> list[ToolParameter]:
        return [
            ToolParameter("ids", str, "Comma-separated object ids. Use either ids or path.", required=False),
            ToolParameter("path", str, "Comma-separated compact paths.", required=False),
            ToolParameter(
                "to_path",
                str,
                "Destination: insertion path for devices ('t0/d2', 't0/d0/c1/d0') or pad path for "
                "drum pads and drum containers ('t0/d0/pD1').",
                required=False,
            ),
            ToolParameter("name", str, "New name (devices and containers).", required=False),
            ToolParameter(
                "params",
                (str, dict),
                'JSON object of parameter -> value, keyed by id, index or name, e.g. {"Cutoff": "2.5 kHz"}.',
                required=False,
            ),
            ToolParameter("mute", bool, "Mute containers or pads.", required=False),
            ToolParameter("solo", bool, "Solo containers or pads.", required=False),
            ToolParameter("color", str, "Container color as #RRGGBB.", required=False),
            ToolParameter("choke_group", int, "Drum container choke group 0-16 (0 = none).", required=False),
            ToolParameter("mapped_pitch", str, "Note a drum container sends, e.g. 'C1'.", required=False),
            ToolParameter("collapsed", bool, "Collapse or expand the device view.", required=False),
            ToolParameter(
                "macro_variation",
                str,
                "Rack macro variation action: create, load, delete, revert or randomize.",
                required=False,
            ),
            ToolParameter(
                "macro_variation_index", int, "Variation index for load/delete.", required=False
            ),
            ToolParameter("macro_count", int, "Visible macro count on racks, 0-16.", required=False),
            ToolParameter("ab_compare", str, "A/B compare: a, b or save.", required=False),
            ToolParameter(
                "wrap_in_rack",
                bool,
                "Wrap all targeted devices in one new rack (uses to_path and name for the rack).",
                required=False,
                default=False,
            ),
        ]

    def execute(self, **kwargs: Any) -> ToolResult:
        """Build the request, then update every target."""
        request = UpdateRequest(
            **{key: kwargs.get(key) for key in _REQUEST_FIELDS},
            wrap_in_rack=bool(kwargs.get("wrap_in_rack", False)),
        )

        with self.graph() as graph:
            data = update_targets(graph, ids=kwargs.get("ids"), path=kwargs.get("path"), request=request)

        return ToolResult(success=True, data=data)
