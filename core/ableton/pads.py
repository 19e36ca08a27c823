"""core/ableton/pads.py — Pitch-keyed pad lookup and drum container moves.

A Drum Rack exposes two views of the same data:

* ``drum_pads`` — 128 DrumPad objects, one per MIDI note, always present.
* ``chains``    — the DrumChain containers, each with an ``in_note`` property
  saying which pad it plays from (``-1`` = catch-all).

Several containers may share one ``in_note`` (layering).  The compact path
``pC1/c1`` means "the second container whose ``in_note`` is 36", counted in
the rack's chain order, and a pad is considered populated when at least one
container plays from it.

Moving a pad never moves a device: it rewrites ``in_note`` on the containers.
"""

from __future__ import annotations

import logging
import re

from core.ableton.errors import NotApplicableError
from core.ableton.graph import LiveObject
from core.ableton.paths import parse_path
from core.ableton.types import Domain, NodeKind, Target

logger = logging.getLogger(__name__)

_TRAILING_CHAIN_RE = re.compile(r" chains \d+$")


def is_drum_rack(device: LiveObject) -> bool:
    return device.get_bool("can_have_drum_pads")


def find_pad(device: LiveObject, pitch: int) -> LiveObject | None:
    """Return the DrumPad of ``device`` whose note is ``pitch``, or ``None``."""
    for pad in device.children("drum_pads"):
        if pad.get_int("note", -1) == pitch:
            return pad
    return None


def pad_groups(device: LiveObject) -> dict[int, list[LiveObject]]:
    """Group a Drum Rack's containers by ``in_note``, preserving chain order."""
    groups: dict[int, list[LiveObject]] = {}
    for container in device.children("chains"):
        groups.setdefault(container.get_int("in_note", -1), []).append(container)
    return groups


def pad_containers(device: LiveObject, pitch: int) -> list[LiveObject]:
    """Containers of ``device`` playing from ``pitch`` (``-1`` for catch-all)."""
    return [c for c in device.children("chains") if c.get_int("in_note", -1) == pitch]


def rack_of(container: LiveObject) -> LiveObject:
    """Owning rack of a container, derived from its positional path."""
    return LiveObject(container.graph, _TRAILING_CHAIN_RE.sub("", container.path))


def position_in_pad(container: LiveObject, rack: LiveObject) -> tuple[int, int]:
    """``(in_note, index within that note's group)`` of a drum container."""
    pitch = container.get_int("in_note", -1)
    container_id = container.id
    for index, sibling in enumerate(pad_containers(rack, pitch)):
        if sibling.id == container_id:
            return pitch, index
    raise NotApplicableError(f"Container {container_id} does not belong to rack {rack.id}")


def resolve_pad_target(device: LiveObject, pitch: int, container_index: int | None = None) -> Target | None:
    """Resolve a pad segment (and optional container index) on ``device``.

    Without ``container_index`` the result is a whole-pad target: ``obj`` is
    the DrumPad for a real pitch, or the first catch-all container for
    ``-1``.  A pad nothing plays from counts as absent.

    Returns:
        The target with id-based handles, or ``None`` when ``device`` is not a
        Drum Rack or nothing matches.
    """
    if not is_drum_rack(device):
        logger.debug("Pad lookup on non-drum device %s", device.path)
        return None

    group = pad_containers(device, pitch)
    rack = LiveObject.from_id(device.graph, device.id)
    if container_index is None:
        if not group:
            return None
        pad = find_pad(device, pitch) if pitch >= 0 else None
        obj = pad if pad is not None else group[0]
        return Target(
            obj=LiveObject.from_id(obj.graph, obj.id),
            kind=NodeKind.PAD,
            rack=rack,
            pad_pitch=pitch,
            whole_pad=True,
        )

    if container_index >= len(group):
        return None
    container = group[container_index]
    return Target(
        obj=LiveObject.from_id(container.graph, container.id),
        kind=NodeKind.DRUM_CONTAINER,
        rack=rack,
        pad_pitch=pitch,
    )


# ---------------------------------------------------------------------------
# Moves
# ---------------------------------------------------------------------------


def destination_pad_pitch(to_path: str) -> int:
    """Pitch of the pad a move should land on (``-1`` for ``p*``).

    Raises:
        MalformedInputError: ``to_path`` does not parse (including bad pitch names).
        NotApplicableError:  ``to_path`` has no pad segment.
    """
    pads = [s for s in parse_path(to_path, allow_track_only=True) if s.domain is Domain.PAD]
    if not pads:
        raise NotApplicableError(f'toPath "{to_path}" is not a drum pad path')
    return pads[-1].pad_pitch  # type: ignore[return-value]


def move_drum_container(target: Target, to_path: str) -> list[LiveObject]:
    """Reassign a pad or a single drum container to the pad named in ``to_path``.

    Whole-pad targets move every container of the rack sharing the source
    pitch; a specific container moves alone.  Containers on other pitches
    are never touched.

    Returns:
        The containers whose ``in_note`` was rewritten.
    """
    if target.kind not in (NodeKind.PAD, NodeKind.DRUM_CONTAINER):
        raise NotApplicableError(f"Cannot move a {target.kind.value} to a drum pad")
    destination = destination_pad_pitch(to_path)

    if target.whole_pad:
        rack = target.rack if target.rack is not None else rack_of(target.obj)
        containers = pad_containers(rack, target.pad_pitch)  # type: ignore[arg-type]
    else:
        containers = [target.obj]

    for container in containers:
        container.set("in_note", destination)

    logger.debug(
        "Moved %d drum container(s) from pitch %s to %s", len(containers), target.pad_pitch, destination
    )
    return containers
