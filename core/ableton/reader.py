"""core/ableton/reader.py — Serialisable snapshots of devices, containers and pads.

Every node in the output carries its own compact ``path``, built from the
parent's path plus one segment, so any piece of a result can be addressed
again without resolving from the root.

Inclusion flags
───────────────
    containers         rack containers (and the containers inside pads)
    return-containers  rack return containers
    pads               Drum Rack pads, grouped by input pitch
    params             parameter ids and names
    param-values       full parameter descriptions (implies params)
    drum-map           {pitch: pad name} for the first Drum Rack found
    *                  all of the above

Depth
─────
The target sits at depth 0.  A device expands its children only while
``depth <= max_depth``; deeper devices are listed with ``id``, ``path``,
``type`` and ``name`` only.

Default suppression: flags that are false, states that are ``active`` and
names equal to the class name are left out.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from core.ableton.batch import apply_each, collect_payloads, expand_batch, unwrap_single
from core.ableton.errors import MalformedInputError, NotApplicableError
from core.ableton.graph import LiveGraph, LiveObject
from core.ableton.pads import find_pad, pad_groups
from core.ableton.params import describe_parameter, describe_parameter_basic
from core.ableton.paths import build_container_path, build_pad_path, build_return_container_path, pad_label
from core.ableton.pitch import UNASSIGNED_PITCH, number_to_pitch_name
from core.ableton.types import DeviceRole, NodeKind, Target

logger = logging.getLogger(__name__)

INCLUDE_TOKENS: frozenset[str] = frozenset(
    {"containers", "return-containers", "pads", "params", "param-values", "drum-map", "*"}
)

STATE_ACTIVE = "active"
STATE_SOLOED = "soloed"
STATE_MUTED = "muted"
STATE_MUTED_VIA_SOLO = "muted-via-solo"
STATE_MUTED_ALSO_VIA_SOLO = "muted-also-via-solo"

_RACK_CLASS_NAMES: dict[str, str] = {
    "instrument-rack": "Instrument Rack",
    "drum-rack": "Drum Rack",
    "audio-effect-rack": "Audio Effect Rack",
    "midi-effect-rack": "MIDI Effect Rack",
}


@dataclass(frozen=True)
class ReadOptions:
    """What to include when reading a node."""

    containers: bool = False
    return_containers: bool = False
    pads: bool = False
    params: bool = False
    param_values: bool = False
    drum_map: bool = False
    max_depth: int = 0
    param_search: str | None = None

    def __post_init__(self) -> None:
        if self.max_depth < 0:
            raise MalformedInputError(f"max_depth must be >= 0, got {self.max_depth}")

    @classmethod
    def from_include(
        cls,
        include: str | list[str] | tuple[str, ...] | None = None,
        max_depth: int | None = None,
        param_search: str | None = None,
    ) -> ReadOptions:
        """Build options from a comma list or sequence of include tokens.

        Raises:
            MalformedInputError: On an unknown token or negative depth.
        """
        if include is None:
            tokens: list[str] = []
        elif isinstance(include, str):
            tokens = [t.strip() for t in include.split(",") if t.strip()]
        else:
            tokens = [str(t).strip() for t in include if str(t).strip()]

        unknown = sorted(set(tokens) - INCLUDE_TOKENS)
        if unknown:
            raise MalformedInputError(
                f"Unknown include value(s): {', '.join(unknown)} "
                f"(expected {', '.join(sorted(INCLUDE_TOKENS))})"
            )

        every = "*" in tokens
        param_values = every or "param-values" in tokens
        return cls(
            containers=every or "containers" in tokens,
            return_containers=every or "return-containers" in tokens,
            pads=every or "pads" in tokens,
            params=param_values or "params" in tokens,
            param_values=param_values,
            drum_map=every or "drum-map" in tokens,
            max_depth=0 if max_depth is None else int(max_depth),
            param_search=param_search.strip() if param_search and param_search.strip() else None,
        )


# ---------------------------------------------------------------------------
# Small helpers
# ---------------------------------------------------------------------------


def compute_state(obj: LiveObject) -> str:
    """Mixer state of a container from its mute/solo flags."""
    muted = obj.get_bool("mute")
    if obj.get_bool("solo"):
        return STATE_SOLOED
    if muted and obj.get_bool("muted_via_solo"):
        return STATE_MUTED_ALSO_VIA_SOLO
    if obj.get_bool("muted_via_solo"):
        return STATE_MUTED_VIA_SOLO
    if muted:
        return STATE_MUTED
    return STATE_ACTIVE


def device_type_label(device: LiveObject) -> str:
    """``instrument`` / ``drum-rack`` / ``audio-effect-rack`` … from role and rack flags."""
    role = device.get_int("type")
    chains = device.get_bool("can_have_chains")
    if role == DeviceRole.INSTRUMENT:
        if device.get_bool("can_have_drum_pads"):
            return "drum-rack"
        return "instrument-rack" if chains else "instrument"
    if role == DeviceRole.AUDIO_EFFECT:
        return "audio-effect-rack" if chains else "audio-effect"
    if role == DeviceRole.MIDI_EFFECT:
        return "midi-effect-rack" if chains else "midi-effect"
    return "unknown"


def has_instrument(devices: list[LiveObject]) -> bool:
    """True if any device, or any device nested in its containers, is an instrument."""
    for device in devices:
        if device.get_int("type") == DeviceRole.INSTRUMENT:
            return True
        for container in device.children("chains"):
            if has_instrument(container.children("devices")):
                return True
    return False


def _pitch_text(pitch: int) -> str:
    if pitch == UNASSIGNED_PITCH:
        return "*"
    return number_to_pitch_name(pitch) or "*"


def _pad_sort_key(pitch: int) -> tuple[int, int]:
    # Catch-all last
    return (1, 0) if pitch == UNASSIGNED_PITCH else (0, pitch)


def _read_params(device: LiveObject, options: ReadOptions) -> list[dict[str, Any]]:
    params = device.children("parameters")
    if options.param_search:
        needle = options.param_search.lower()
        params = [p for p in params if needle in str(p.get("name") or "").lower()]
    describe = describe_parameter if options.param_values else describe_parameter_basic
    return [describe(p) for p in params]


# ---------------------------------------------------------------------------
# Node readers
# ---------------------------------------------------------------------------


class _Reader:
    """Walks the graph for one read call."""

    def __init__(self, options: ReadOptions) -> None:
        self.options = options

    # ── Devices ─────────────────────────────────────────────────────────────

    def device(self, device: LiveObject, path: str | None, depth: int) -> dict[str, Any]:
        type_label = device_type_label(device)
        class_name = str(device.get("class_display_name") or "")
        info: dict[str, Any] = {"id": device.id}
        if path:
            info["path"] = path
        info["type"] = type_label if _RACK_CLASS_NAMES.get(type_label) == class_name else f"{type_label}: {class_name}"
        name = device.get("name")
        if name is not None and str(name) != class_name:
            info["name"] = name

        if depth > self.options.max_depth:
            return info

        if not device.get_bool("is_active"):
            info["deactivated"] = True
        view = device.sub("view")
        if view.exists() and view.get_bool("is_collapsed"):
            info["collapsed"] = True
        info.update(self._rack_info(device))
        if device.get_bool("can_compare_ab"):
            info["abCompare"] = "b" if device.get_bool("is_using_compare_preset_b") else "a"

        if device.get_bool("can_have_drum_pads"):
            if self.options.pads:
                info["pads"] = self.pads(device, path, depth)
        elif device.get_bool("can_have_chains"):
            containers = device.children("chains")
            if self.options.containers:
                info["containers"] = [
                    self.container(c, build_container_path(path, i) if path else None, depth + 1, NodeKind.CONTAINER)
                    for i, c in enumerate(containers)
                ]
            if any(c.get_bool("solo") for c in containers):
                info["hasSoloedContainer"] = True

        if self.options.return_containers and device.get_bool("can_have_chains"):
            returns = device.children("return_chains")
            if returns:
                info["returnContainers"] = [
                    self.container(
                        c,
                        build_return_container_path(path, i) if path else None,
                        depth + 1,
                        NodeKind.RETURN_CONTAINER,
                    )
                    for i, c in enumerate(returns)
                ]

        if self.options.params:
            info["parameters"] = _read_params(device, self.options)
        return info

    def _rack_info(self, device: LiveObject) -> dict[str, Any]:
        if not device.get_bool("can_have_chains"):
            return {}
        out: dict[str, Any] = {}
        variation_count = device.get_int("variation_count")
        if variation_count:
            out["variations"] = {
                "count": variation_count,
                "selected": device.get_int("selected_variation_index", -1),
            }
        macro_count = device.get_int("visible_macro_count")
        if macro_count > 0:
            out["macros"] = {"count": macro_count, "hasMappings": device.get_bool("has_macro_mappings")}
        return out

    # ── Containers ──────────────────────────────────────────────────────────

    def container(self, container: LiveObject, path: str | None, depth: int, kind: NodeKind) -> dict[str, Any]:
        """Containers do not add depth: their devices sit at ``depth``."""
        info: dict[str, Any] = {"id": container.id}
        if path:
            info["path"] = path
        info["type"] = kind.value
        info["name"] = container.get("name")
        state = compute_state(container)
        if state != STATE_ACTIVE:
            info["state"] = state
        if kind is NodeKind.DRUM_CONTAINER:
            info["inputPitch"] = _pitch_text(container.get_int("in_note", UNASSIGNED_PITCH))
            out_note = container.get("out_note")
            if out_note is not None:
                info["mappedPitch"] = _pitch_text(int(out_note))
            choke = container.get_int("choke_group")
            if choke:
                info["chokeGroup"] = choke
        info["devices"] = [
            self.device(d, f"{path}/d{i}" if path else None, depth)
            for i, d in enumerate(container.children("devices"))
        ]
        return info

    # ── Pads ────────────────────────────────────────────────────────────────

    def pad(
        self,
        rack: LiveObject,
        pitch: int,
        containers: list[LiveObject],
        rack_path: str | None,
        depth: int,
        with_containers: bool,
    ) -> dict[str, Any]:
        pad_path = build_pad_path(rack_path, pitch) if rack_path else None
        info: dict[str, Any] = {}
        drum_pad = find_pad(rack, pitch) if pitch != UNASSIGNED_PITCH else None
        if drum_pad is not None:
            info["id"] = drum_pad.id
        if pad_path:
            info["path"] = pad_path
        info["type"] = NodeKind.PAD.value
        info["pitch"] = pad_label(pitch)
        info["name"] = containers[0].get("name") if containers else None

        states = {compute_state(c) for c in containers}
        if STATE_SOLOED in states:
            info["state"] = STATE_SOLOED
        elif STATE_MUTED in states:
            info["state"] = STATE_MUTED
        if not has_instrument([d for c in containers for d in c.children("devices")]):
            info["hasInstrument"] = False

        if with_containers:
            info["containers"] = [
                self.container(
                    c,
                    build_pad_path(rack_path, pitch, i) if rack_path else None,
                    depth,
                    NodeKind.DRUM_CONTAINER,
                )
                for i, c in enumerate(containers)
            ]
        return info

    def pads(self, rack: LiveObject, rack_path: str | None, depth: int) -> list[dict[str, Any]]:
        groups = pad_groups(rack)
        pads = [
            self.pad(rack, pitch, groups[pitch], rack_path, depth + 1, self.options.containers)
            for pitch in sorted(groups, key=_pad_sort_key)
        ]
        apply_solo_propagation(pads)
        return pads


def apply_solo_propagation(pads: list[dict[str, Any]]) -> None:
    """Mark the other pads as muted via solo when any pad is soloed."""
    if not any(p.get("state") == STATE_SOLOED for p in pads):
        return
    for pad in pads:
        state = pad.get("state")
        if state == STATE_MUTED:
            pad["state"] = STATE_MUTED_ALSO_VIA_SOLO
        elif state is None:
            pad["state"] = STATE_MUTED_VIA_SOLO


def _first_drum_rack(devices: list[LiveObject]) -> LiveObject | None:
    for device in devices:
        if device.get_bool("can_have_drum_pads"):
            return device
        for container in device.children("chains"):
            found = _first_drum_rack(container.children("devices"))
            if found is not None:
                return found
    return None


def drum_map(rack: LiveObject) -> dict[str, Any]:
    """``{pitch name: pad name}`` for note-specific pads holding an instrument."""
    out: dict[str, Any] = {}
    groups = pad_groups(rack)
    for pitch in sorted(p for p in groups if p != UNASSIGNED_PITCH):
        containers = groups[pitch]
        if has_instrument([d for c in containers for d in c.children("devices")]):
            out[_pitch_text(pitch)] = containers[0].get("name")
    return out


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def read_node(target: Target, options: ReadOptions | None = None) -> dict[str, Any]:
    """Read one resolved target into a JSON-ready tree.

    Raises:
        NotApplicableError: For node kinds this reader does not cover.
    """
    options = options or ReadOptions()
    reader = _Reader(options)
    obj = target.obj

    if target.kind is NodeKind.DEVICE:
        result = reader.device(obj, target.path, 0)
        if options.drum_map:
            rack = _first_drum_rack([obj])
            if rack is not None:
                result["drumMap"] = drum_map(rack)
        return result

    if target.kind in (NodeKind.CONTAINER, NodeKind.RETURN_CONTAINER, NodeKind.DRUM_CONTAINER):
        return reader.container(obj, target.path, 0, target.kind)

    if target.kind is NodeKind.PAD:
        rack = target.rack
        if rack is None:
            raise NotApplicableError(f"Pad {target.id} has no owning Drum Rack")
        pitch = UNASSIGNED_PITCH if target.pad_pitch is None else target.pad_pitch
        rack_path = target.path.rsplit("/", 1)[0] if target.path else None
        containers = pad_groups(rack).get(pitch, [])
        return reader.pad(rack, pitch, containers, rack_path, 0, with_containers=True)

    raise NotApplicableError(f"Cannot read a {target.kind.value} node with this reader")


def read_targets(
    graph: LiveGraph,
    ids: str | None = None,
    paths: str | None = None,
    options: ReadOptions | None = None,
) -> Any:
    """Read every target of a batch; shaped by :func:`unwrap_single`."""
    results = apply_each(expand_batch(graph, ids=ids, paths=paths), lambda t: read_node(t, options))
    return unwrap_single(collect_payloads(results))
