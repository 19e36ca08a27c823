"""
Ableton graph MCP — structured call-log types.

One McpCallLog per tool call: which tool, with what (sanitized) inputs,
how many graph targets came back and under which ids, how long it took.
Payloads themselves never reach the log; a full drum rack read can run to
thousands of parameters.

Pure module — no I/O, no side effects.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any

# Longest input string kept verbatim; ``params`` JSON can be large
MAX_LOGGED_INPUT_CHARS = 120


@dataclass(frozen=True)
class McpCallLog:
    """
    Structured log record for a single MCP tool call.

    Attributes:
        tool_name:    Name of the tool invoked
        inputs:       Sanitized input parameters
        success:      Whether the tool returned a payload
        latency_ms:   Wall-clock duration in milliseconds
        target_count: Number of nodes in the payload
        target_ids:   Ids of those nodes, where the payload carries them
        error:        Error text when success is False
        call_id:      Short random id (8 chars)
        timestamp:    Unix time at completion
    """

    tool_name: str
    inputs: dict[str, Any]
    success: bool
    latency_ms: float
    target_count: int = 0
    target_ids: tuple[str, ...] = ()
    error: str | None = None
    call_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "call_id": self.call_id,
            "tool_name": self.tool_name,
            "inputs": self.inputs,
            "targets": {"count": self.target_count, "ids": list(self.target_ids)},
            "success": self.success,
            "error": self.error,
            "latency_ms": round(self.latency_ms, 2),
            "timestamp": self.timestamp,
        }

    def __str__(self) -> str:
        if not self.success:
            return f"[{self.call_id}] {self.tool_name} ERR:{self.error} {self.latency_ms:.1f}ms"
        noun = "target" if self.target_count == 1 else "targets"
        return f"[{self.call_id}] {self.tool_name} OK {self.target_count} {noun} {self.latency_ms:.1f}ms"


def sanitize_inputs(inputs: dict[str, Any]) -> dict[str, Any]:
    """Drop unset inputs and shorten long strings."""
    clean: dict[str, Any] = {}
    for key, value in inputs.items():
        if value is None:
            continue
        if isinstance(value, str) and len(value) > MAX_LOGGED_INPUT_CHARS:
            value = value[:MAX_LOGGED_INPUT_CHARS] + "…"
        clean[key] = value
    return clean


def summarize_output(data: Any) -> tuple[int, tuple[str, ...]]:
    """``(count, ids)`` for a tool payload: one object or a list of them."""
    items = data if isinstance(data, list) else [data]
    ids = tuple(str(item["id"]) for item in items if isinstance(item, dict) and "id" in item)
    return len(items), ids


def make_call_log(
    tool_name: str,
    inputs: dict[str, Any],
    latency_ms: float,
    data: Any = None,
    error: str | None = None,
) -> McpCallLog:
    """
    Build the McpCallLog for a finished call.

    A call with ``error`` set failed and reports no targets; otherwise
    ``data`` is the payload returned to the client.
    """
    if error is not None:
        return McpCallLog(
            tool_name=tool_name,
            inputs=sanitize_inputs(inputs),
            success=False,
            latency_ms=latency_ms,
            error=error,
        )
    count, ids = summarize_output(data)
    return McpCallLog(
        tool_name=tool_name,
        inputs=sanitize_inputs(inputs),
        success=True,
        latency_ms=latency_ms,
        target_count=count,
        target_ids=ids,
    )
