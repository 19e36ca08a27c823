"""core/ableton/update.py — Apply property updates to a batch of targets.

Each target is updated in input order.  Within one target every property is
applied on its own: a property that does not fit the node kind (or fails on
the host) is logged and skipped, and the remaining properties still apply.
Malformed requests (bad JSON, out-of-range numbers, unknown actions) are
rejected up front before anything is touched.

Which property works where:

    ─────────────────────  ──────────────────────────────────────────────
    to_path                devices (move), pads and drum containers (in_note)
    name                   devices and containers (pads are read-only)
    params                 devices
    mute / solo            containers, drum containers, pads
    color                  containers and drum containers
    choke_group            drum containers
    mapped_pitch           drum containers
    collapsed              devices
    macro_variation(_idx)  rack devices
    macro_count            rack devices
    ab_compare             devices with A/B compare
    ─────────────────────  ──────────────────────────────────────────────
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from core.ableton.batch import apply_each, collect_payloads, expand_batch, unwrap_single
from core.ableton.errors import LiveGraphError, MalformedInputError, NotApplicableError
from core.ableton.graph import LiveGraph, LiveObject, as_id_ref
from core.ableton.pads import move_drum_container, pad_containers
from core.ableton.params import ParameterWrite, set_parameter_value
from core.ableton.pitch import pitch_name_to_number
from core.ableton.resolver import MAX_AUTO_CONTAINERS, resolve_insertion_path
from core.ableton.types import NodeKind, Target
from core.ableton.wrap import wrap_in_rack

logger = logging.getLogger(__name__)

MACRO_VARIATION_ACTIONS: frozenset[str] = frozenset({"create", "load", "delete", "revert", "randomize"})
AB_COMPARE_ACTIONS: frozenset[str] = frozenset({"a", "b", "save"})
MAX_MACROS = 16
MAX_CHOKE_GROUP = 16

_COLOR_RE = re.compile(r"^#([0-9A-Fa-f]{6})$")
_PARAM_SUFFIX_RE = re.compile(r"parameters (\d+)$")

_CONTAINER_KINDS = (NodeKind.CONTAINER, NodeKind.RETURN_CONTAINER, NodeKind.DRUM_CONTAINER)


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UpdateRequest:
    """Properties to apply to every target of a batch; ``None`` = leave alone."""

    to_path: str | None = None
    name: str | None = None
    params: str | dict[str, Any] | None = None
    """JSON object (or dict) mapping parameter keys to caller values."""

    mute: bool | None = None
    solo: bool | None = None
    color: str | None = None
    choke_group: int | None = None
    mapped_pitch: str | None = None
    collapsed: bool | None = None
    macro_variation: str | None = None
    macro_variation_index: int | None = None
    macro_count: int | None = None
    ab_compare: str | None = None
    wrap_in_rack: bool = False

    param_values: dict[str, Any] | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "param_values", _parse_params(self.params))
        if self.color is not None and not _COLOR_RE.match(self.color):
            raise MalformedInputError(f'color must be "#RRGGBB", got "{self.color}"')
        if self.choke_group is not None and not 0 <= self.choke_group <= MAX_CHOKE_GROUP:
            raise MalformedInputError(f"choke_group must be 0-{MAX_CHOKE_GROUP}, got {self.choke_group}")
        if self.macro_count is not None and not 0 <= self.macro_count <= MAX_MACROS:
            raise MalformedInputError(f"macro_count must be 0-{MAX_MACROS}, got {self.macro_count}")
        if self.macro_variation is not None and self.macro_variation not in MACRO_VARIATION_ACTIONS:
            raise MalformedInputError(
                f'macro_variation must be one of {", ".join(sorted(MACRO_VARIATION_ACTIONS))}'
            )
        if self.macro_variation_index is not None and self.macro_variation_index < 0:
            raise MalformedInputError("macro_variation_index must be >= 0")
        if self.ab_compare is not None and self.ab_compare not in AB_COMPARE_ACTIONS:
            raise MalformedInputError(f'ab_compare must be one of {", ".join(sorted(AB_COMPARE_ACTIONS))}')
        if self.mapped_pitch is not None and pitch_name_to_number(self.mapped_pitch) is None:
            raise MalformedInputError(f'Invalid note name "{self.mapped_pitch}" for mapped_pitch')


def _parse_params(params: str | dict[str, Any] | None) -> dict[str, Any] | None:
    if params is None or isinstance(params, dict):
        return params
    try:
        parsed = json.loads(params)
    except json.JSONDecodeError as exc:
        raise MalformedInputError(f"params is not valid JSON: {exc.msg}") from exc
    if not isinstance(parsed, dict):
        raise MalformedInputError("params must be a JSON object mapping parameters to values")
    return parsed


# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------


def resolve_param(device: LiveObject, key: str | int) -> LiveObject | None:
    """Find one of ``device``'s parameters by id, index, suffix or name."""
    params = device.children("parameters")
    text = str(key).strip()

    suffix = _PARAM_SUFFIX_RE.search(text)
    if suffix:
        index = int(suffix.group(1))
        return params[index] if index < len(params) else None

    if text.startswith("id "):
        obj = LiveObject(device.graph, as_id_ref(text))
        return obj if obj.exists() else None

    if text.isdigit():
        for param in params:
            if param.id == text:
                return param
        index = int(text)
        return params[index] if index < len(params) else None

    lowered = text.lower()
    for param in params:
        if str(param.get("name") or "").lower() == lowered:
            return param
    return None


def set_param_values(device: LiveObject, values: dict[str, Any]) -> list[ParameterWrite]:
    """Write each ``{key: value}`` through the value codec; unknown keys are skipped."""
    writes: list[ParameterWrite] = []
    for key, value in values.items():
        param = resolve_param(device, key)
        if param is None:
            logger.warning('Parameter "%s" not found on device %s', key, device.id)
            continue
        writes.append(set_parameter_value(param, value))
    return writes


# ---------------------------------------------------------------------------
# Moves
# ---------------------------------------------------------------------------


def move_device_to_path(
    graph: LiveGraph,
    device: LiveObject,
    to_path: str,
    *,
    max_auto_containers: int = MAX_AUTO_CONTAINERS,
) -> None:
    """Move ``device`` to the insertion point named by ``to_path``."""
    point = resolve_insertion_path(graph, to_path, max_auto_containers=max_auto_containers)
    LiveObject(graph, "live_set").call(
        "move_device", device.id_ref, point.container.id_ref, point.position or 0  # type: ignore[union-attr]
    )
    logger.debug("Moved device %s to %s", device.id, to_path)


# ---------------------------------------------------------------------------
# Per-property handlers
# ---------------------------------------------------------------------------


def _require(target: Target, prop: str, *kinds: NodeKind) -> None:
    if target.kind not in kinds:
        raise NotApplicableError(f"'{prop}' does not apply to a {target.kind.value}")


def _require_rack(target: Target, prop: str) -> None:
    _require(target, prop, NodeKind.DEVICE)
    if not target.obj.get_bool("can_have_chains"):
        raise NotApplicableError(f"'{prop}' is only available on rack devices")


def _apply_to_path(graph: LiveGraph, target: Target, request: UpdateRequest) -> None:
    # A bad destination skips the move only; the other properties still apply
    try:
        if target.kind is NodeKind.DEVICE:
            move_device_to_path(graph, target.obj, request.to_path)  # type: ignore[arg-type]
        elif target.kind in (NodeKind.PAD, NodeKind.DRUM_CONTAINER):
            move_drum_container(target, request.to_path)  # type: ignore[arg-type]
        else:
            raise NotApplicableError(f"Cannot move a {target.kind.value}")
    except MalformedInputError as exc:
        raise NotApplicableError(f'Cannot move to "{request.to_path}": {exc}') from exc


def _apply_name(graph: LiveGraph, target: Target, request: UpdateRequest) -> None:
    if target.kind is NodeKind.PAD:
        raise NotApplicableError("'name' is read-only for drum pads")
    _require(target, "name", NodeKind.DEVICE, *_CONTAINER_KINDS)
    target.obj.set("name", request.name)


def _apply_params(graph: LiveGraph, target: Target, request: UpdateRequest) -> None:
    _require(target, "params", NodeKind.DEVICE)
    set_param_values(target.obj, request.param_values or {})


def _mixer_objects(target: Target) -> list[LiveObject]:
    # A catch-all pad has no DrumPad; its flags live on the containers
    if target.kind is NodeKind.PAD and target.obj.type != "DrumPad" and target.rack is not None:
        return pad_containers(target.rack, target.pad_pitch)  # type: ignore[arg-type]
    return [target.obj]


def _apply_mute(graph: LiveGraph, target: Target, request: UpdateRequest) -> None:
    _require(target, "mute", NodeKind.PAD, *_CONTAINER_KINDS)
    for obj in _mixer_objects(target):
        obj.set("mute", int(bool(request.mute)))


def _apply_solo(graph: LiveGraph, target: Target, request: UpdateRequest) -> None:
    _require(target, "solo", NodeKind.PAD, *_CONTAINER_KINDS)
    for obj in _mixer_objects(target):
        obj.set("solo", int(bool(request.solo)))


def _apply_color(graph: LiveGraph, target: Target, request: UpdateRequest) -> None:
    _require(target, "color", *_CONTAINER_KINDS)
    target.obj.set("color", int(request.color[1:], 16))  # type: ignore[index]


def _apply_choke_group(graph: LiveGraph, target: Target, request: UpdateRequest) -> None:
    _require(target, "choke_group", NodeKind.DRUM_CONTAINER)
    target.obj.set("choke_group", request.choke_group)


def _apply_mapped_pitch(graph: LiveGraph, target: Target, request: UpdateRequest) -> None:
    _require(target, "mapped_pitch", NodeKind.DRUM_CONTAINER)
    target.obj.set("out_note", pitch_name_to_number(request.mapped_pitch))  # type: ignore[arg-type]


def _apply_collapsed(graph: LiveGraph, target: Target, request: UpdateRequest) -> None:
    _require(target, "collapsed", NodeKind.DEVICE)
    view = target.obj.sub("view")
    if view.exists():
        view.set("is_collapsed", int(bool(request.collapsed)))


_VARIATION_CALLS: dict[str, str] = {
    "create": "store_variation",
    "load": "recall_selected_variation",
    "revert": "recall_last_used_variation",
    "delete": "delete_selected_variation",
    "randomize": "randomize_macros",
}


def _apply_macro_variation(graph: LiveGraph, target: Target, request: UpdateRequest) -> None:
    _require_rack(target, "macro_variation")
    action, index = request.macro_variation, request.macro_variation_index
    if action is None:
        raise NotApplicableError("macro_variation_index requires macro_variation 'load' or 'delete'")
    if action in ("load", "delete"):
        if index is None:
            raise NotApplicableError(f"macro_variation '{action}' requires macro_variation_index")
        count = target.obj.get_int("variation_count")
        if index >= count:
            raise NotApplicableError(f"Variation index {index} out of range ({count} available)")
        target.obj.set("selected_variation_index", index)
    elif index is not None:
        logger.warning("macro_variation_index ignored for '%s'", action)
    target.obj.call(_VARIATION_CALLS[action])


def _apply_macro_count(graph: LiveGraph, target: Target, request: UpdateRequest) -> None:
    _require_rack(target, "macro_count")
    wanted = request.macro_count
    if wanted % 2:  # type: ignore[operator]
        rounded = min(wanted + 1, MAX_MACROS)  # type: ignore[operator]
        logger.warning("Macro count rounded from %d to %d (macros come in pairs)", wanted, rounded)
        wanted = rounded
    diff = wanted - target.obj.get_int("visible_macro_count")  # type: ignore[operator]
    method = "add_macro" if diff > 0 else "remove_macro"
    for _ in range(abs(diff) // 2):
        target.obj.call(method)


def _apply_ab_compare(graph: LiveGraph, target: Target, request: UpdateRequest) -> None:
    _require(target, "ab_compare", NodeKind.DEVICE)
    if not target.obj.get_bool("can_compare_ab"):
        raise NotApplicableError("A/B compare is not available on this device")
    if request.ab_compare == "save":
        target.obj.call("save_preset_to_compare_ab_slot")
    else:
        target.obj.set("is_using_compare_preset_b", 1 if request.ab_compare == "b" else 0)


# Order matters: moves first, then everything else
_HANDLERS: tuple[tuple[str, Callable[[LiveGraph, Target, UpdateRequest], None]], ...] = (
    ("to_path", _apply_to_path),
    ("name", _apply_name),
    ("params", _apply_params),
    ("mute", _apply_mute),
    ("solo", _apply_solo),
    ("color", _apply_color),
    ("choke_group", _apply_choke_group),
    ("mapped_pitch", _apply_mapped_pitch),
    ("collapsed", _apply_collapsed),
    ("macro_variation", _apply_macro_variation),
    ("macro_count", _apply_macro_count),
    ("ab_compare", _apply_ab_compare),
)


def _is_requested(request: UpdateRequest, prop: str) -> bool:
    if prop == "macro_variation":
        return request.macro_variation is not None or request.macro_variation_index is not None
    return getattr(request, prop) is not None


def update_target(graph: LiveGraph, target: Target, request: UpdateRequest) -> dict[str, Any]:
    """Apply ``request`` to one target; returns ``{"id": ...}``."""
    for prop, handler in _HANDLERS:
        if not _is_requested(request, prop):
            continue
        try:
            handler(graph, target, request)
        except MalformedInputError:
            raise
        except LiveGraphError as exc:
            logger.warning("Skipping '%s' on %s: %s", prop, target.path or target.id, exc)
    return {"id": target.id}


def update_targets(
    graph: LiveGraph,
    ids: str | None = None,
    path: str | None = None,
    request: UpdateRequest | None = None,
) -> Any:
    """Update every target of a batch.

    With ``wrap_in_rack`` the resolved devices are wrapped together instead
    and the rack description is returned.

    Returns:
        Shaped by :func:`unwrap_single`.

    Raises:
        MalformedInputError: On a malformed path or id list.
    """
    request = request or UpdateRequest()
    resolved = expand_batch(graph, ids=ids, paths=path)

    if request.wrap_in_rack:
        devices: list[LiveObject] = []
        for item in resolved:
            if not item.ok:
                continue
            if item.value.kind is NodeKind.DEVICE:  # type: ignore[union-attr]
                devices.append(item.value.obj)  # type: ignore[union-attr]
            else:
                logger.warning('Skipping "%s": not a device', item.item)
        return wrap_in_rack(graph, devices, request.to_path, request.name)

    results = apply_each(resolved, lambda target: update_target(graph, target, request))
    return unwrap_single(collect_payloads(results))
