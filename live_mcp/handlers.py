"""
Ableton graph MCP — tool handlers.

Each handler is registered with the FastMCP instance in server.py.
Handlers are thin: collect inputs → look the LiveTool up in the registry →
run it in a worker thread → return the payload as JSON text.  The bridge is
blocking, so tools never run on the event loop.

Every call emits one structured McpCallLog (see schemas.py).
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any

from mcp.server.fastmcp import FastMCP

from live_mcp.schemas import make_call_log
from tools.registry import get_registry

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Call logging
# ---------------------------------------------------------------------------


def _log_call(
    tool_name: str,
    inputs: dict[str, Any],
    latency_ms: float,
    data: Any = None,
    error: str | None = None,
) -> None:
    """Emit one McpCallLog; failures at error level."""
    record = make_call_log(tool_name, inputs, latency_ms, data=data, error=error)
    if record.success:
        logger.info("%s", record)
    else:
        logger.error("%s", record)


async def _run_tool(name: str, inputs: dict[str, Any]) -> str:
    """Run the named tool off the event loop and render its result for the client."""
    tool = get_registry().get(name)
    if tool is None:
        return f"✗ Unknown tool: {name}"
    t_start = time.perf_counter()
    kwargs = {k: v for k, v in inputs.items() if v is not None}

    try:
        result = await asyncio.to_thread(tool, **kwargs)
    except Exception as exc:
        _log_call(name, inputs, (time.perf_counter() - t_start) * 1000, error=str(exc))
        return f"✗ Unexpected error: {exc}"

    latency_ms = (time.perf_counter() - t_start) * 1000
    if not result.success:
        _log_call(name, inputs, latency_ms, error=result.error or "unknown error")
        return f"✗ {name} failed: {result.error}"

    _log_call(name, inputs, latency_ms, data=result.data)
    return json.dumps(result.data, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Handler registration — called from server.py with the FastMCP instance
# ---------------------------------------------------------------------------


def register_all(mcp: FastMCP) -> None:
    """
    Register all tools onto the FastMCP instance.

    Args:
        mcp: FastMCP server instance to attach handlers to
    """
    _register_tools(mcp)
    logger.info("All MCP handlers registered")


def _register_tools(mcp: FastMCP) -> None:
    """Register the Live graph tools."""

    # ------------------------------------------------------------------
    # read_device
    # ------------------------------------------------------------------

    @mcp.tool()
    async def read_device(
        ids: str | None = None,
        path: str | None = None,
        include: str = "",
        max_depth: int | None = None,
        param_search: str | None = None,
    ) -> str:
        """
        Read Ableton Live devices, rack containers and drum pads.

        Address targets by stable id or by compact path:
        t=track, rt=return track, mt=master, d=device, c=container,
        rc=return container, p<note>=drum pad (pC1 = MIDI 36), p*=catch-all.

        Args:
            ids: Comma-separated object ids (use either ids or path)
            path: Comma-separated compact paths, e.g. "t1/d0,t1/d0/pC1/c0"
            include: Comma list of containers, return-containers, pads,
                params, param-values, drum-map, or * for everything
            max_depth: How many levels of nested devices to expand
            param_search: Only list parameters whose name contains this text

        Returns:
            JSON: one object for a single hit, a list otherwise
        """
        return await _run_tool(
            "read_device",
            {
                "ids": ids,
                "path": path,
                "include": include,
                "max_depth": max_depth,
                "param_search": param_search,
            },
        )

    # ------------------------------------------------------------------
    # update_device
    # ------------------------------------------------------------------

    @mcp.tool()
    async def update_device(
        ids: str | None = None,
        path: str | None = None,
        to_path: str | None = None,
        name: str | None = None,
        params: str | None = None,
        mute: bool | None = None,
        solo: bool | None = None,
        color: str | None = None,
        choke_group: int | None = None,
        mapped_pitch: str | None = None,
        collapsed: bool | None = None,
        macro_variation: str | None = None,
        macro_variation_index: int | None = None,
        macro_count: int | None = None,
        ab_compare: str | None = None,
        wrap_in_rack: bool = False,
    ) -> str:
        """
        Update Ableton Live devices, rack containers and drum pads.

        Properties that do not apply to a target are skipped for that target;
        the others still apply.

        Args:
            ids: Comma-separated object ids (use either ids or path)
            path: Comma-separated compact paths
            to_path: Move destination ("t0/d2", "t0/d0/c1/d0", or a pad "t0/d0/pD1")
            name: New name for devices and containers
            params: JSON object of parameter -> value in display units,
                e.g. '{"Cutoff": "2.5 kHz", "Pan": -0.5, "Rate": "1/8"}'
            mute: Mute containers or pads
            solo: Solo containers or pads
            color: Container color "#RRGGBB"
            choke_group: Drum container choke group 0-16
            mapped_pitch: Note a drum container sends, e.g. "C1"
            collapsed: Collapse or expand the device view
            macro_variation: create, load, delete, revert or randomize
            macro_variation_index: Variation index for load/delete
            macro_count: Visible macros on a rack, 0-16 (rounded up to even)
            ab_compare: a, b or save
            wrap_in_rack: Wrap the targeted devices in one new rack

        Returns:
            JSON: {"id": ...} per updated target, or the new rack when wrapping
        """
        return await _run_tool(
            "update_device",
            {
                "ids": ids,
                "path": path,
                "to_path": to_path,
                "name": name,
                "params": params,
                "mute": mute,
                "solo": solo,
                "color": color,
                "choke_group": choke_group,
                "mapped_pitch": mapped_pitch,
                "collapsed": collapsed,
                "macro_variation": macro_variation,
                "macro_variation_index": macro_variation_index,
                "macro_count": macro_count,
                "ab_compare": ab_compare,
                "wrap_in_rack": wrap_in_rack,
            },
        )

    # ------------------------------------------------------------------
    # resolve_path
    # ------------------------------------------------------------------

    @mcp.tool()
    async def resolve_path(path: str, check_exists: bool = False) -> str:
        """
        Explain what compact paths point at.

        Args:
            path: Comma-separated compact paths, e.g. "t1/d0/c2,t1/d0/pC1"
            check_exists: Also look the paths up in Live and report their ids

        Returns:
            JSON with nativeAddress and targetKind per path
        """
        return await _run_tool("resolve_path", {"path": path, "check_exists": check_exists})
