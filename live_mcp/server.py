"""
Ableton graph MCP server — entrypoint.

Importing this module sets up stderr logging, builds the FastMCP instance
and attaches the read_device / update_device / resolve_path handlers;
``main()`` then serves over stdio, or SSE with MCP_TRANSPORT=sse.

    python -m live_mcp.server
    ableton-graph-mcp                      # installed console script
    MCP_TRANSPORT=sse ableton-graph-mcp

A client entry looks like:

    "ableton-graph": {
        "command": "/path/to/.venv/bin/ableton-graph-mcp",
        "env": {"ABLETON_BRIDGE_HOST": "localhost", "ABLETON_BRIDGE_PORT": "11005"}
    }

Live itself must be running with the listener device loaded; the bridge
connects on the first tool call, not at startup.
"""

from __future__ import annotations

import logging

from mcp.server.fastmcp import FastMCP

from live_mcp.handlers import register_all
from live_mcp.transport import configure_logging, get_transport_mode

# ---------------------------------------------------------------------------
# Logging — configure FIRST
# ---------------------------------------------------------------------------

configure_logging()
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# FastMCP server instance
# ---------------------------------------------------------------------------

_SERVER_NAME = "ableton-graph"
_SERVER_VERSION = "0.1.0"

mcp = FastMCP(
    _SERVER_NAME,
    instructions=(
        "Ableton Live graph server — read and edit devices, rack containers and drum "
        "pads in the running Live set. Address nodes by id or compact path "
        "(t1/d0, t1/d0/c2, t1/d0/pC1/c0). Use read_device before update_device to "
        "learn ids, parameter names and display units. Use resolve_path to check "
        "what a path means."
    ),
)

register_all(mcp)

logger.info(
    "Ableton graph MCP Server v%s initialized — %d tools registered",
    _SERVER_VERSION,
    len(mcp._tool_manager._tools),  # type: ignore[attr-defined]
)

# ---------------------------------------------------------------------------
# Main entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    """Serve until the client disconnects (stdio) or the process is stopped (SSE)."""
    transport = get_transport_mode()
    logger.info("Starting Ableton graph MCP Server (transport=%s)", transport)
    mcp.run(transport=transport)


if __name__ == "__main__":
    main()
