"""core/ableton/graph.py — Capability interface onto the live object graph.

Everything in ``core.ableton`` talks to Live through :class:`LiveGraph`, a
small protocol with eight operations.  ``ingestion/live_bridge.py`` implements
it over WebSocket; the test suite implements it in memory.

References
──────────
A *ref* is either a positional LOM path (``"live_set tracks 1 devices 0"``)
or a stable id reference (``"id 42"``).  Ids survive moves; paths do not.

Values
──────
``get`` returns a plain scalar (or a list for list-valued properties such as
``value_items``).  ``children`` returns the ids of a child list in order,
each already in ``"id N"`` form.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class LiveGraph(Protocol):
    """Minimal host capabilities required by the resolver, codec and reader."""

    def exists(self, ref: str) -> bool: ...

    def id_of(self, ref: str) -> str:
        """Stable id of the node (without the ``"id "`` prefix)."""
        ...

    def path_of(self, ref: str) -> str:
        """Current positional LOM path of the node."""
        ...

    def type_of(self, ref: str) -> str:
        """LOM class name: ``Track``, ``Device``, ``RackDevice``, ``Chain`` …"""
        ...

    def get(self, ref: str, prop: str) -> Any: ...

    def set(self, ref: str, prop: str, value: Any) -> None: ...

    def call(self, ref: str, method: str, *args: Any) -> Any: ...

    def children(self, ref: str, kind: str) -> list[str]: ...


def as_id_ref(value: str | int) -> str:
    """``"42"`` / ``42`` / ``"id 42"`` → ``"id 42"``."""
    text = str(value).strip()
    return text if text.startswith("id ") else f"id {text}"


@dataclass(frozen=True)
class LiveObject:
    """Handle on one graph node.

    Holds no state beyond the ref; every property read goes to the graph so
    results always reflect the session at call time.
    """

    graph: LiveGraph
    ref: str

    # ── Identity ────────────────────────────────────────────────────────────

    def exists(self) -> bool:
        return self.graph.exists(self.ref)

    @property
    def id(self) -> str:
        return self.graph.id_of(self.ref)

    @property
    def id_ref(self) -> str:
        return as_id_ref(self.id)

    @property
    def path(self) -> str:
        return self.graph.path_of(self.ref)

    @property
    def type(self) -> str:
        return self.graph.type_of(self.ref)

    # ── Properties and actions ──────────────────────────────────────────────

    def get(self, prop: str) -> Any:
        return self.graph.get(self.ref, prop)

    def get_int(self, prop: str, default: int = 0) -> int:
        """Integer property; ``default`` when the host returns nothing."""
        value = self.graph.get(self.ref, prop)
        if value is None or value == "":
            return default
        return int(value)

    def get_bool(self, prop: str) -> bool:
        return self.get_int(prop) > 0

    def set(self, prop: str, value: Any) -> None:
        self.graph.set(self.ref, prop, value)

    def call(self, method: str, *args: Any) -> Any:
        return self.graph.call(self.ref, method, *args)

    # ── Navigation ──────────────────────────────────────────────────────────

    def children(self, kind: str) -> list[LiveObject]:
        return [LiveObject(self.graph, ref) for ref in self.graph.children(self.ref, kind)]

    def child(self, kind: str, index: int) -> LiveObject:
        """Positional child, e.g. ``child("chains", 2)``; may not exist."""
        return LiveObject(self.graph, f"{self.path} {kind} {index}")

    def sub(self, name: str) -> LiveObject:
        """Named sub-object such as ``view``."""
        return LiveObject(self.graph, f"{self.path} {name}")

    @classmethod
    def from_id(cls, graph: LiveGraph, value: str | int) -> LiveObject:
        return cls(graph, as_id_ref(value))
