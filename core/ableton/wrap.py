"""core/ableton/wrap.py — Wrap devices in a new rack, one container per device.

Effects are straightforward: insert the rack where the first device sits,
make sure it has enough containers, then move each device into its own
container in order.

Instruments need a detour.  Live refuses to insert an Instrument Rack on a
track that already holds an instrument, so the instruments are parked on a
temporary MIDI track first:

    1. create temp track             (temporary_track)
    2. move every instrument there   (each to position 0 → reversed order)
    3. insert Instrument Rack at the original spot
    4. move temp device 0 into container N-1, N-2, … 0
    5. delete temp track             (also on failure; cleanup errors logged)
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from core.ableton.errors import IncompatibleDevicesError, LiveGraphError, MalformedInputError
from core.ableton.graph import LiveGraph, LiveObject, as_id_ref
from core.ableton.resolver import MAX_AUTO_CONTAINERS, resolve_insertion_path
from core.ableton.types import DeviceRole, InsertionPoint

logger = logging.getLogger(__name__)

RACK_INSTRUMENT = "instrument-rack"
RACK_AUDIO_EFFECT = "audio-effect-rack"
RACK_MIDI_EFFECT = "midi-effect-rack"

RACK_DEVICE_NAMES: dict[str, str] = {
    RACK_AUDIO_EFFECT: "Audio Effect Rack",
    RACK_MIDI_EFFECT: "MIDI Effect Rack",
    RACK_INSTRUMENT: "Instrument Rack",
}

_TRAILING_DEVICE_RE = re.compile(r" devices (\d+)$")
_TRACK_INDEX_RE = re.compile(r"^live_set tracks (\d+)")


def _ref_from_result(value: Any) -> str:
    """Host calls return ``"id N"``, ``N`` or ``["id", N]``."""
    if isinstance(value, (list, tuple)):
        value = value[-1]
    return as_id_ref(value)


def determine_rack_type(devices: list[LiveObject]) -> str:
    """Pick the rack kind that can hold every device.

    Raises:
        IncompatibleDevicesError: Audio and MIDI effects mixed, or no device
            with a known role.
    """
    roles = {d.get_int("type") for d in devices}
    if DeviceRole.INSTRUMENT in roles:
        return RACK_INSTRUMENT
    if DeviceRole.AUDIO_EFFECT in roles and DeviceRole.MIDI_EFFECT in roles:
        raise IncompatibleDevicesError("Cannot mix MIDI and audio effects in one rack")
    if DeviceRole.AUDIO_EFFECT in roles:
        return RACK_AUDIO_EFFECT
    if DeviceRole.MIDI_EFFECT in roles:
        return RACK_MIDI_EFFECT
    raise IncompatibleDevicesError("No instrument or effect devices to wrap")


def device_location(device: LiveObject) -> InsertionPoint:
    """Container holding ``device`` and its position there."""
    path = device.path
    match = _TRAILING_DEVICE_RE.search(path)
    position = int(match.group(1)) if match else 0
    container = LiveObject(device.graph, _TRAILING_DEVICE_RE.sub("", path))
    return InsertionPoint(container=LiveObject.from_id(device.graph, container.id), position=position)


@contextmanager
def temporary_track(graph: LiveGraph) -> Iterator[LiveObject]:
    """Create a MIDI track for the duration of the block, then delete it.

    The track is deleted on every exit path.  A failing delete is logged and
    never replaces an exception already propagating from the block.
    """
    live_set = LiveObject(graph, "live_set")
    track = LiveObject.from_id(graph, _ref_from_result(live_set.call("create_midi_track", -1)))
    match = _TRACK_INDEX_RE.match(track.path)
    if match is None:
        raise LiveGraphError(f"Temporary track has unexpected path {track.path!r}")
    index = int(match.group(1))
    logger.debug("Created temporary track %d", index)
    try:
        yield track
    finally:
        try:
            live_set.call("delete_track", index)
            logger.debug("Deleted temporary track %d", index)
        except Exception:
            logger.warning("Failed to delete temporary track %d", index, exc_info=True)


def _insert_rack(container: LiveObject, rack_type: str, position: int | None, name: str | None) -> LiveObject:
    rack_ref = _ref_from_result(container.call("insert_device", RACK_DEVICE_NAMES[rack_type], position or 0))
    rack = LiveObject(container.graph, rack_ref)
    if name:
        rack.set("name", name)
    return rack


def _move(graph: LiveGraph, device: LiveObject, container: LiveObject, position: int = 0) -> None:
    LiveObject(graph, "live_set").call("move_device", device.id_ref, container.id_ref, position)


def _target_point(graph: LiveGraph, to_path: str | None, fallback: InsertionPoint, limit: int) -> InsertionPoint:
    if to_path:
        return resolve_insertion_path(graph, to_path, max_auto_containers=limit)
    return fallback


def _wrap_effects(
    graph: LiveGraph,
    devices: list[LiveObject],
    rack_type: str,
    to_path: str | None,
    name: str | None,
    limit: int,
) -> LiveObject:
    point = _target_point(graph, to_path, device_location(devices[0]), limit)
    rack = _insert_rack(point.container, rack_type, point.position, name)  # type: ignore[arg-type]

    for i, device in enumerate(devices):
        # Reuse existing containers before creating more
        missing = i + 1 - len(rack.children("chains"))
        for _ in range(missing):
            rack.call("insert_chain")
        _move(graph, device, rack.children("chains")[i])
    return rack


def _wrap_instruments(
    graph: LiveGraph,
    devices: list[LiveObject],
    to_path: str | None,
    name: str | None,
    limit: int,
) -> LiveObject:
    origin = device_location(devices[0])
    with temporary_track(graph) as temp:
        for device in devices:
            _move(graph, device, temp)

        point = _target_point(graph, to_path, origin, limit)
        rack = _insert_rack(point.container, RACK_INSTRUMENT, point.position, name)  # type: ignore[arg-type]

        for _ in devices:
            rack.call("insert_chain")
        containers = rack.children("chains")
        # Parked devices are in reverse order; position 0 is always the last one
        for i in reversed(range(len(devices))):
            _move(graph, temp.children("devices")[0], containers[i])
    return rack


def wrap_in_rack(
    graph: LiveGraph,
    devices: list[LiveObject],
    to_path: str | None = None,
    name: str | None = None,
    *,
    max_auto_containers: int = MAX_AUTO_CONTAINERS,
) -> dict[str, Any]:
    """Wrap ``devices`` in a new rack, preserving their left-to-right order.

    Args:
        graph:     Host graph.
        devices:   Devices to wrap, in order.
        to_path:   Where to create the rack; defaults to the first device's spot.
        name:      Optional rack name.

    Returns:
        ``{"id": rack id, "type": rack kind, "deviceCount": n}``.

    Raises:
        MalformedInputError:      No devices given.
        IncompatibleDevicesError: Devices cannot share one rack.
    """
    if not devices:
        raise MalformedInputError("No devices to wrap")

    rack_type = determine_rack_type(devices)
    if rack_type == RACK_INSTRUMENT:
        rack = _wrap_instruments(graph, devices, to_path, name, max_auto_containers)
    else:
        rack = _wrap_effects(graph, devices, rack_type, to_path, name, max_auto_containers)

    logger.info("Wrapped %d device(s) in %s %s", len(devices), rack_type, rack.id)
    return {"id": rack.id, "type": rack_type, "deviceCount": len(devices)}
