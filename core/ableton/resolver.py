"""core/ableton/resolver.py — Turn ids and compact paths into graph targets.

Two stages:

1. :func:`resolve_path` — pure.  Parses the path and translates positional
   segments into a LOM address.  Pad segments stop the translation: the
   address is the Drum Rack and the rest is kept as ``remaining_segments``.
2. :func:`resolve_target` — walks the graph.  Pad segments are looked up by
   pitch (see :mod:`core.ableton.pads`), everything else by position.

Malformed paths raise :class:`MalformedInputError`.  Paths that parse but
point at nothing return ``None`` so batch callers can record and continue.

Resolved targets hold id-based handles, so they stay valid while a batch
moves things around.
"""

from __future__ import annotations

import logging
import re

from core.ableton.errors import LiveGraphError, NotApplicableError, NotFoundError
from core.ableton.graph import LiveGraph, LiveObject
from core.ableton.pads import (
    is_drum_rack,
    pad_containers,
    position_in_pad,
    rack_of,
    resolve_pad_target,
)
from core.ableton.paths import format_path, pad_label, parse_path, segment_to_native
from core.ableton.types import (
    Domain,
    InsertionPoint,
    NodeKind,
    ResolvedPath,
    Segment,
    Target,
    TargetKind,
)

logger = logging.getLogger(__name__)

MAX_AUTO_CONTAINERS: int = 16
"""Upper bound on containers created implicitly by one insertion path."""

_LAST_DOMAIN_KIND: dict[Domain, TargetKind] = {
    Domain.DEVICE: TargetKind.DEVICE,
    Domain.CONTAINER: TargetKind.CONTAINER,
    Domain.RETURN_CONTAINER: TargetKind.RETURN_CONTAINER,
}

_TRAILING_PAD_RE = re.compile(r" drum_pads \d+$")


# ---------------------------------------------------------------------------
# Pure translation
# ---------------------------------------------------------------------------


def resolve_path(path: str) -> ResolvedPath:
    """Translate a compact path into a LOM address and target classification.

    Raises:
        MalformedInputError: If the path does not parse.
    """
    segments = parse_path(path)
    native = ["live_set"]
    for i, segment in enumerate(segments):
        if segment.domain is Domain.PAD:
            remaining = segments[i + 1:]
            return ResolvedPath(
                native_address=" ".join(native),
                target_kind=TargetKind.PAD,
                pad_pitch=segment.pad_pitch,
                remaining_segments=remaining,
                whole_pad=not remaining,
            )
        native.append(segment_to_native(segment))

    return ResolvedPath(
        native_address=" ".join(native),
        target_kind=_LAST_DOMAIN_KIND[segments[-1].domain],
    )


def _pad_segment(pitch: int) -> Segment:
    if pitch < 0:
        return Segment(Domain.PAD, wildcard=True)
    return Segment(Domain.PAD, pitch=pitch)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def classify(obj: LiveObject) -> NodeKind:
    """Node kind from the LOM class name (and path, for return containers)."""
    type_name = obj.type
    if type_name == "Track":
        return NodeKind.TRACK
    if type_name == "DrumPad":
        return NodeKind.PAD
    if type_name in ("Chain", "DrumChain"):
        if " return_chains " in f"{obj.path} ":
            return NodeKind.RETURN_CONTAINER
        return NodeKind.DRUM_CONTAINER if type_name == "DrumChain" else NodeKind.CONTAINER
    if type_name.endswith("Device"):
        return NodeKind.DEVICE
    if type_name == "DeviceParameter":
        return NodeKind.PARAMETER
    return NodeKind.OTHER


def _stable(obj: LiveObject) -> LiveObject:
    return LiveObject.from_id(obj.graph, obj.id)


def _walk(start: LiveObject, segments: tuple[Segment, ...]) -> Target | None:
    """Follow ``segments`` from ``start``; ``None`` as soon as a node is missing."""
    current = start
    rack: LiveObject | None = None
    pad_pitch: int | None = None
    i = 0
    while i < len(segments):
        segment = segments[i]
        if segment.domain is Domain.PAD:
            if i + 1 == len(segments):
                return resolve_pad_target(current, segment.pad_pitch)  # type: ignore[arg-type]
            found = resolve_pad_target(current, segment.pad_pitch, segments[i + 1].index)  # type: ignore[arg-type]
            if found is None:
                return None
            current, rack, pad_pitch = found.obj, found.rack, found.pad_pitch
            i += 2
            continue

        current = current.child(segment.domain.lom_key, segment.index)  # type: ignore[arg-type]
        if not current.exists():
            return None
        rack = pad_pitch = None
        i += 1

    kind = classify(current)
    if kind is NodeKind.DRUM_CONTAINER and rack is None:
        rack = rack_of(current)
        pad_pitch = current.get_int("in_note", -1)
    return Target(
        obj=_stable(current),
        kind=kind,
        rack=_stable(rack) if rack is not None else None,
        pad_pitch=pad_pitch,
    )


# ---------------------------------------------------------------------------
# Graph resolution
# ---------------------------------------------------------------------------


def locate(graph: LiveGraph, resolved: ResolvedPath, path: str | None = None) -> Target | None:
    """Find the node a :class:`ResolvedPath` points at, or ``None``."""
    base = LiveObject(graph, resolved.native_address)
    if not base.exists():
        return None

    segments: tuple[Segment, ...] = ()
    if resolved.target_kind is TargetKind.PAD:
        segments = (_pad_segment(resolved.pad_pitch), *resolved.remaining_segments)  # type: ignore[arg-type]

    target = _walk(base, segments)
    if target is None:
        return None
    return Target(
        obj=target.obj,
        kind=target.kind,
        path=path,
        rack=target.rack,
        pad_pitch=target.pad_pitch,
        whole_pad=target.whole_pad,
    )


def resolve_target(graph: LiveGraph, path: str) -> Target | None:
    """Resolve a compact path against the graph.

    Returns:
        The target with its canonical compact path, or ``None`` when nothing
        exists there.

    Raises:
        MalformedInputError: If the path does not parse.
    """
    resolved = resolve_path(path)
    return locate(graph, resolved, format_path(parse_path(path)))


def resolve_id(graph: LiveGraph, value: str | int) -> Target | None:
    """Resolve a stable id (``"42"`` or ``"id 42"``); ``None`` if absent."""
    obj = LiveObject.from_id(graph, value)
    if not obj.exists():
        return None

    kind = classify(obj)
    rack: LiveObject | None = None
    pad_pitch: int | None = None
    whole_pad = False
    if kind is NodeKind.PAD:
        rack = _stable(LiveObject(graph, _TRAILING_PAD_RE.sub("", obj.path)))
        pad_pitch = obj.get_int("note", -1)
        whole_pad = True
    elif kind is NodeKind.DRUM_CONTAINER:
        rack = _stable(rack_of(obj))
        pad_pitch = obj.get_int("in_note", -1)

    return Target(
        obj=obj,
        kind=kind,
        path=compact_path_of(obj),
        rack=rack,
        pad_pitch=pad_pitch,
        whole_pad=whole_pad,
    )


def compact_path_of(obj: LiveObject) -> str | None:
    """Compact path of an existing node, with drum containers spelled by pitch.

    ``None`` for nodes the grammar cannot address (parameters, views, …).
    """
    graph = obj.graph
    native = obj.path
    if obj.type == "DrumPad":
        rack_path = compact_path_of(LiveObject(graph, _TRAILING_PAD_RE.sub("", native)))
        if rack_path is None:
            return None
        return f"{rack_path}/p{pad_label(obj.get_int('note', -1))}"

    words = native.split()
    if len(words) < 2 or words[0] != "live_set":
        return None

    parts: list[str] = []
    current = "live_set"
    i = 1
    if words[1] == "master_track":
        parts.append("mt")
        current = "live_set master_track"
        i = 2

    while i < len(words):
        key = words[i]
        if i + 1 >= len(words) or not words[i + 1].isdigit():
            return None
        index = int(words[i + 1])
        if key == "tracks" and not parts:
            parts.append(f"t{index}")
        elif key == "return_tracks" and not parts:
            parts.append(f"rt{index}")
        elif key == "devices" and parts:
            parts.append(f"d{index}")
        elif key == "return_chains" and parts:
            parts.append(f"rc{index}")
        elif key == "chains" and parts:
            device = LiveObject(graph, current)
            if is_drum_rack(device):
                pitch, within = position_in_pad(LiveObject(graph, f"{current} chains {index}"), device)
                parts.append(f"p{pad_label(pitch)}")
                parts.append(f"c{within}")
            else:
                parts.append(f"c{index}")
        else:
            return None
        current = f"{current} {key} {index}"
        i += 2

    return "/".join(parts) if parts else None


# ---------------------------------------------------------------------------
# Insertion paths
# ---------------------------------------------------------------------------


def _ensure_container(device: LiveObject, index: int, path: str, limit: int) -> LiveObject:
    container = device.child("chains", index)
    if container.exists():
        return container

    if is_drum_rack(device):
        raise NotApplicableError("Auto-creating chains in Drum Racks is not supported")
    if not device.get_bool("can_have_chains"):
        raise NotApplicableError(f'Device in path "{path}" does not support chains')

    needed = index + 1 - len(device.children("chains"))
    if needed > limit:
        raise NotApplicableError(f"Cannot auto-create {needed} chains (max: {limit})")

    for n in range(needed):
        device.call("insert_chain")
        logger.info("Auto-created chain %d/%d on %s", n + 1, needed, device.path)

    container = device.child("chains", index)
    if not container.exists():
        raise LiveGraphError(f"Failed to create chain {index} on device in path \"{path}\"")
    return container


def _ensure_pad_container(device: LiveObject, pitch: int, index: int, limit: int) -> LiveObject:
    group = pad_containers(device, pitch)
    needed = index + 1 - len(group)
    if needed > limit:
        raise NotApplicableError(f"Cannot auto-create {needed} drum pad chains (max: {limit})")

    for _ in range(needed):
        device.call("insert_chain")
        device.children("chains")[-1].set("in_note", pitch)
        logger.info("Auto-created drum chain for pitch %s on %s", pitch, device.path)

    return pad_containers(device, pitch)[index]


def resolve_insertion_path(
    graph: LiveGraph, path: str, *, max_auto_containers: int = MAX_AUTO_CONTAINERS
) -> InsertionPoint:
    """Resolve where a device should be inserted or moved to.

    A trailing device segment is the position within its container; any
    other ending means "no position".  Missing rack containers up to the
    requested index are created on the way.

    Raises:
        MalformedInputError: If the path does not parse.
        NotFoundError:       If a track, device or return container is missing.
        NotApplicableError:  If a container cannot be auto-created there.
    """
    segments = parse_path(path, allow_track_only=True)
    position: int | None = None
    if segments[-1].domain is Domain.DEVICE:
        position = segments[-1].index
        segments = segments[:-1]

    current = LiveObject(graph, f"live_set {segment_to_native(segments[0])}")
    if not current.exists():
        raise NotFoundError(f'Track in path "{path}" does not exist')

    i = 1
    while i < len(segments):
        segment = segments[i]
        if segment.domain is Domain.DEVICE:
            current = current.child("devices", segment.index)  # type: ignore[arg-type]
            if not current.exists():
                raise NotFoundError(f'Device in path "{path}" does not exist')
        elif segment.domain is Domain.CONTAINER:
            current = _ensure_container(current, segment.index, path, max_auto_containers)  # type: ignore[arg-type]
        elif segment.domain is Domain.RETURN_CONTAINER:
            current = current.child("return_chains", segment.index)  # type: ignore[arg-type]
            if not current.exists():
                raise NotFoundError(f'Return chain in path "{path}" does not exist')
        else:
            if not is_drum_rack(current):
                raise NotApplicableError(f'Device in path "{path}" is not a Drum Rack')
            index = 0
            if i + 1 < len(segments):
                index = segments[i + 1].index  # type: ignore[assignment]
                i += 1
            current = _ensure_pad_container(
                current, segment.pad_pitch, index, max_auto_containers  # type: ignore[arg-type]
            )
        i += 1

    return InsertionPoint(container=_stable(current), position=position)
