"""core/ableton/batch.py — Best-effort expansion of comma-separated targets.

Every item resolves on its own.  A missing item is logged and recorded as an
:class:`ItemResult` with ``error`` set; the rest of the batch continues and
input order is preserved.  Only malformed input raises.

Result shaping (:func:`unwrap_single`) is deliberately asymmetric:

    0 successes  →  []
    1 success    →  the bare payload
    2+ successes →  list of payloads, input order
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from core.ableton.errors import LiveGraphError, MalformedInputError
from core.ableton.graph import LiveGraph
from core.ableton.paths import split_items
from core.ableton.resolver import resolve_id, resolve_target
from core.ableton.types import Target

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ItemResult(Generic[T]):
    """Outcome for one batch item: a value or an error message, never both."""

    item: str
    """The id or path exactly as the caller wrote it (trimmed)."""

    value: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def expand_batch(
    graph: LiveGraph,
    ids: str | None = None,
    paths: str | None = None,
) -> list[ItemResult[Target]]:
    """Resolve each id or path of a comma list, in input order.

    Args:
        graph: Host graph to resolve against.
        ids:   Comma-separated stable ids.
        paths: Comma-separated compact paths.

    Returns:
        One :class:`ItemResult` per item; missing nodes carry an error.

    Raises:
        MalformedInputError: If both or neither of ``ids``/``paths`` are
            given, or any path does not parse.
    """
    id_items = split_items(ids)
    path_items = split_items(paths)
    if id_items and path_items:
        raise MalformedInputError("Provide either ids or path, not both")
    if not id_items and not path_items:
        raise MalformedInputError("Either ids or path is required")

    results: list[ItemResult[Target]] = []
    if id_items:
        for item in id_items:
            target = resolve_id(graph, item)
            if target is None:
                logger.warning("Skipping id %s: no such object", item)
                results.append(ItemResult(item, error=f'Object with id "{item}" does not exist'))
            else:
                results.append(ItemResult(item, value=target))
        return results

    for item in path_items:
        target = resolve_target(graph, item)
        if target is None:
            logger.warning("Skipping path %s: nothing at that address", item)
            results.append(ItemResult(item, error=f'Nothing found at path "{item}"'))
        else:
            results.append(ItemResult(item, value=target))
    return results


def apply_each(
    items: Iterable[ItemResult[Target]],
    fn: Callable[[Target], T],
) -> list[ItemResult[T]]:
    """Run ``fn`` on every resolved item; host errors become per-item errors.

    :class:`MalformedInputError` is still raised, since it means the whole
    call is wrong rather than one item.
    """
    out: list[ItemResult[T]] = []
    for result in items:
        if not result.ok:
            out.append(ItemResult(result.item, error=result.error))
            continue
        try:
            out.append(ItemResult(result.item, value=fn(result.value)))  # type: ignore[arg-type]
        except MalformedInputError:
            raise
        except LiveGraphError as exc:
            logger.warning("Skipping %s: %s", result.item, exc)
            out.append(ItemResult(result.item, error=str(exc)))
    return out


def collect_payloads(results: Iterable[ItemResult[T]]) -> list[T]:
    """Successful values only, input order kept."""
    return [r.value for r in results if r.ok]  # type: ignore[misc]


def unwrap_single(payloads: list[Any]) -> Any:
    """``[]`` → ``[]``; ``[x]`` → ``x``; otherwise the list unchanged."""
    if len(payloads) == 1:
        return payloads[0]
    return payloads
