"""core/ableton/types.py — Immutable value objects for Live graph addressing.

Hierarchy mirroring the Live Object Model (LOM):

    live_set
    └── Track (tracks N / return_tracks N / master_track)
        └── Device (devices N)
            ├── Chain (chains N)            ← rack container
            │   └── Device …                (recursive)
            ├── Chain (return_chains N)     ← rack return container
            ├── DrumChain (chains N)        ← drum container, keyed by in_note
            ├── DrumPad (drum_pads N)       ← 128 pitch slots of a Drum Rack
            └── DeviceParameter (parameters N)

Compact path format
───────────────────
The compact form addresses the same nodes with one short segment per level:

    t1/d0            live_set tracks 1 devices 0
    rt0/d2/c1        live_set return_tracks 0 devices 2 chains 1
    mt/d0/rc0        live_set master_track devices 0 return_chains 0
    t1/d0/pC1/c0     first drum container whose in_note is 36 (C1)
    t1/d0/p*         every catch-all drum container (in_note -1)

Pads are addressed by pitch, never by position.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from core.ableton.pitch import UNASSIGNED_PITCH, number_to_pitch_name

if TYPE_CHECKING:
    from core.ableton.graph import LiveObject

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Domain(str, Enum):
    """Kind of node a compact path segment selects."""

    TRACK = "track"
    RETURN_TRACK = "return-track"
    MASTER_TRACK = "master-track"
    DEVICE = "device"
    CONTAINER = "container"
    RETURN_CONTAINER = "return-container"
    PAD = "pad"

    @property
    def prefix(self) -> str:
        """Segment prefix used in compact paths (``"t"``, ``"rc"``, …)."""
        return _DOMAIN_PREFIX[self]

    @property
    def lom_key(self) -> str:
        """LOM child-list name for positional domains (``"tracks"``, ``"chains"``, …)."""
        return _DOMAIN_LOM_KEY[self]

    @property
    def is_track(self) -> bool:
        return self in (Domain.TRACK, Domain.RETURN_TRACK, Domain.MASTER_TRACK)


_DOMAIN_PREFIX: dict[Domain, str] = {
    Domain.TRACK: "t",
    Domain.RETURN_TRACK: "rt",
    Domain.MASTER_TRACK: "mt",
    Domain.DEVICE: "d",
    Domain.CONTAINER: "c",
    Domain.RETURN_CONTAINER: "rc",
    Domain.PAD: "p",
}

_DOMAIN_LOM_KEY: dict[Domain, str] = {
    Domain.TRACK: "tracks",
    Domain.RETURN_TRACK: "return_tracks",
    Domain.MASTER_TRACK: "master_track",
    Domain.DEVICE: "devices",
    Domain.CONTAINER: "chains",
    Domain.RETURN_CONTAINER: "return_chains",
    Domain.PAD: "drum_pads",
}


class TargetKind(str, Enum):
    """Classification of a resolved path before touching the graph."""

    DEVICE = "device"
    CONTAINER = "container"
    RETURN_CONTAINER = "return-container"
    PAD = "pad"


class NodeKind(str, Enum):
    """Classification of an existing graph node."""

    TRACK = "track"
    DEVICE = "device"
    CONTAINER = "container"
    RETURN_CONTAINER = "return-container"
    DRUM_CONTAINER = "drum-container"
    PAD = "pad"
    PARAMETER = "parameter"
    OTHER = "other"


class DeviceRole(int, Enum):
    """Device roles as returned by the LOM ``device.type`` property."""

    UNDEFINED = 0
    INSTRUMENT = 1
    AUDIO_EFFECT = 2
    MIDI_EFFECT = 4


class ValueKind(str, Enum):
    """Display semantics inferred for a parameter, in classification order."""

    ENUM = "enum"
    PITCH = "pitch"
    PAN = "pan"
    DIVISION = "division"
    NUMERIC = "numeric"


# ---------------------------------------------------------------------------
# Segment
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Segment:
    """One token of a compact path.

    Pad segments carry ``pitch`` (a MIDI number) or ``wildcard=True``; every
    other domain carries ``index`` (``None`` only for the master track).
    """

    domain: Domain
    index: int | None = None
    pitch: int | None = None
    wildcard: bool = False

    @property
    def pad_pitch(self) -> int | None:
        """Pitch as stored in a drum container's ``in_note`` (-1 for ``p*``)."""
        if self.domain is not Domain.PAD:
            return None
        return UNASSIGNED_PITCH if self.wildcard else self.pitch

    def __str__(self) -> str:
        if self.domain is Domain.MASTER_TRACK:
            return "mt"
        if self.domain is Domain.PAD:
            if self.wildcard:
                return "p*"
            return f"p{number_to_pitch_name(self.pitch)}"  # type: ignore[arg-type]
        return f"{self.domain.prefix}{self.index}"


# ---------------------------------------------------------------------------
# Resolution results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ResolvedPath:
    """A compact path translated into LOM terms, without consulting the graph.

    For pad paths positional translation stops at the drum rack:
    ``native_address`` is the rack, ``pad_pitch`` is the requested pitch and
    ``remaining_segments`` holds whatever followed the pad segment.
    """

    native_address: str
    """LOM path of the target, or of the owning drum rack for pad paths."""

    target_kind: TargetKind

    pad_pitch: int | None = None
    """MIDI pitch of the pad segment; ``-1`` for the ``p*`` wildcard."""

    remaining_segments: tuple[Segment, ...] = ()
    """Segments after the pad segment, resolved later against the rack."""

    whole_pad: bool = False
    """True when the pad segment has no explicit container index after it."""

    @property
    def pad_wildcard(self) -> bool:
        return self.pad_pitch == UNASSIGNED_PITCH

    def to_dict(self) -> dict[str, Any]:
        """Serialise for tool output."""
        data: dict[str, Any] = {
            "nativeAddress": self.native_address,
            "targetKind": self.target_kind.value,
        }
        if self.target_kind is TargetKind.PAD:
            data["padPitch"] = (
                "*" if self.pad_wildcard else number_to_pitch_name(self.pad_pitch)  # type: ignore[arg-type]
            )
            data["remainingSegments"] = [str(s) for s in self.remaining_segments]
            data["wholePad"] = self.whole_pad
        return data


@dataclass(frozen=True)
class Target:
    """An existing graph node located by id or compact path."""

    obj: LiveObject
    """Handle on the node itself (for pads: the DrumPad, or the first catch-all container)."""

    kind: NodeKind

    path: str | None = None
    """Compact path the node can be re-addressed with."""

    rack: LiveObject | None = None
    """Owning Drum Rack, set for pads and drum containers."""

    pad_pitch: int | None = None
    """Pad pitch (``-1`` for catch-all), set for pads and drum containers."""

    whole_pad: bool = False
    """Pad addressed without a container index: moves apply to every layer."""

    @property
    def id(self) -> str:
        return self.obj.id


@dataclass(frozen=True)
class InsertionPoint:
    """Where a device can be inserted or moved to.

    ``position`` is ``None`` when the path ends at a track or container,
    meaning "append at the start" for host calls that require a number.
    """

    container: LiveObject | None
    position: int | None = None


# ---------------------------------------------------------------------------
# LOM Command  (wire format used by ingestion/live_bridge.py)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LOMCommand:
    """A single graph operation forwarded to the Live-side listener.

    The WebSocket protocol sends commands as JSON::

        {
            "type": "set",
            "ref": "live_set tracks 2 devices 1 parameters 5",
            "property": "value",
            "value": 0.72
        }

    ``type`` is one of ``exists``, ``id``, ``path``, ``type``, ``get``,
    ``set``, ``call`` or ``children``.
    """

    type: str
    ref: str
    property: str = ""
    value: Any = None
    args: tuple[Any, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the WebSocket wire format."""
        payload: dict[str, Any] = {"type": self.type, "ref": self.ref}
        if self.property:
            payload["property"] = self.property
        if self.type == "set":
            payload["value"] = self.value
        if self.args:
            payload["args"] = list(self.args)
        return payload
