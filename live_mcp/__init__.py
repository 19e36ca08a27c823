"""
Ableton graph MCP server package.

Exposes the Live graph tools (read_device, update_device, resolve_path)
via the Model Context Protocol, so any MCP client can inspect and edit the
devices, racks and drum pads of a running Live set.

Architecture:
    server.py    — FastMCP instance + startup entrypoint
    handlers.py  — Tool handler implementations
    schemas.py   — Structured call-log types
    transport.py — Transport configuration (stdio / SSE) + logging setup
"""
