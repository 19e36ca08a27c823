"""
Shared fixtures for the test suite.

FakeLiveGraph is an in-memory implementation of the LiveGraph protocol:
tracks, return tracks, master, devices, racks, chains, return chains, drum
pads and parameters, plus the host calls the code relies on (move_device,
insert_device, insert_chain, create_midi_track, delete_track, macro and
variation calls).  Every set and call is recorded for assertions.
"""

from __future__ import annotations

import itertools
from collections.abc import Callable
from types import SimpleNamespace
from typing import Any

import pytest

from core.ableton.errors import LiveGraphError
from core.ableton.pitch import number_to_pitch_name
from core.ableton.types import DeviceRole

# ---------------------------------------------------------------------------
# Fake host graph
# ---------------------------------------------------------------------------

_RACKS_BY_NAME: dict[str, tuple[DeviceRole, bool]] = {
    "Instrument Rack": (DeviceRole.INSTRUMENT, False),
    "Audio Effect Rack": (DeviceRole.AUDIO_EFFECT, False),
    "MIDI Effect Rack": (DeviceRole.MIDI_EFFECT, False),
    "Drum Rack": (DeviceRole.INSTRUMENT, True),
}


class FakeNode:
    """One object in the fake graph, attached under a list or a named slot."""

    def __init__(
        self,
        graph: FakeLiveGraph,
        type_name: str,
        props: dict[str, Any] | None = None,
        str_for_value: Callable[[float], str] | None = None,
    ) -> None:
        self.graph = graph
        self.id = next(graph._ids)
        self.type = type_name
        self.props: dict[str, Any] = dict(props or {})
        self.lists: dict[str, list[FakeNode]] = {}
        self.singles: dict[str, FakeNode] = {}
        self.parent: FakeNode | None = None
        self.key: str | None = None
        self.str_for_value = str_for_value
        graph.nodes[self.id] = self

    @property
    def ref(self) -> str:
        return f"id {self.id}"

    def add(self, key: str, child: FakeNode, index: int | None = None) -> FakeNode:
        items = self.lists.setdefault(key, [])
        if index is None or index < 0 or index > len(items):
            items.append(child)
        else:
            items.insert(index, child)
        child.parent, child.key = self, key
        return child

    def put(self, key: str, child: FakeNode) -> FakeNode:
        self.singles[key] = child
        child.parent, child.key = self, key
        return child

    def detach(self) -> None:
        if self.parent is not None and self.key in self.parent.lists:
            self.parent.lists[self.key].remove(self)
        self.parent = self.key = None

    @property
    def attached(self) -> bool:
        node: FakeNode | None = self
        while node is not None:
            if node is self.graph.live_set:
                return True
            node = node.parent
        return False

    @property
    def path(self) -> str:
        if self.parent is None:
            return "live_set"
        if self.key in self.parent.singles:
            return f"{self.parent.path} {self.key}"
        return f"{self.parent.path} {self.key} {self.parent.lists[self.key].index(self)}"

    def children(self, key: str) -> list[FakeNode]:
        return self.lists.get(key, [])


class FakeLiveGraph:
    """In-memory LiveGraph with builder helpers for tests."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self.nodes: dict[int, FakeNode] = {}
        self.sets: list[tuple[int, str, Any]] = []
        self.calls: list[tuple[int, str, tuple[Any, ...]]] = []
        self.failing_calls: set[str] = set()
        self.call_errors: dict[str, Exception] = {}
        self.live_set = FakeNode(self, "Song")
        self.master = self.live_set.put("master_track", FakeNode(self, "Track", {"name": "Master"}))

    # ── Ref resolution ──────────────────────────────────────────────────────

    def lookup(self, ref: str) -> FakeNode | None:
        ref = ref.strip()
        if ref.startswith("id "):
            try:
                node = self.nodes.get(int(ref[3:]))
            except ValueError:
                return None
            return node if node is not None and node.attached else None

        words = ref.split()
        if not words or words[0] != "live_set":
            return None
        node = self.live_set
        i = 1
        while i < len(words):
            key = words[i]
            if key in node.singles:
                node = node.singles[key]
                i += 1
                continue
            if i + 1 >= len(words) or not words[i + 1].isdigit():
                return None
            items = node.lists.get(key, [])
            index = int(words[i + 1])
            if index >= len(items):
                return None
            node = items[index]
            i += 2
        return node

    def _node(self, ref: str) -> FakeNode:
        node = self.lookup(ref)
        if node is None:
            raise LiveGraphError(f"Invalid object reference '{ref}'")
        return node

    # ── LiveGraph protocol ──────────────────────────────────────────────────

    def exists(self, ref: str) -> bool:
        return self.lookup(ref) is not None

    def id_of(self, ref: str) -> str:
        return str(self._node(ref).id)

    def path_of(self, ref: str) -> str:
        return self._node(ref).path

    def type_of(self, ref: str) -> str:
        return self._node(ref).type

    def get(self, ref: str, prop: str) -> Any:
        return self._node(ref).props.get(prop)

    def set(self, ref: str, prop: str, value: Any) -> None:
        node = self._node(ref)
        self.sets.append((node.id, prop, value))
        node.props[prop] = value

    def call(self, ref: str, method: str, *args: Any) -> Any:
        node = self._node(ref)
        self.calls.append((node.id, method, args))
        if method in self.failing_calls:
            raise LiveGraphError(f"{method} failed")
        if method in self.call_errors:
            raise self.call_errors[method]
        handler = getattr(self, f"_call_{method}", None)
        if handler is None:
            return None
        return handler(node, *args)

    def children(self, ref: str, kind: str) -> list[str]:
        return [child.ref for child in self._node(ref).children(kind)]

    # ── Host calls ──────────────────────────────────────────────────────────

    def _call_str_for_value(self, node: FakeNode, value: float) -> str:
        if node.str_for_value is None:
            return str(value)
        return node.str_for_value(value)

    def _call_move_device(self, node: FakeNode, device_ref: str, container_ref: str, position: int) -> None:
        device = self._node(device_ref)
        container = self._node(container_ref)
        device.detach()
        container.add("devices", device, position)

    def _call_create_midi_track(self, node: FakeNode, index: int) -> str:
        track = FakeNode(self, "Track", {"name": "MIDI"})
        self.live_set.add("tracks", track, index)
        return track.ref

    def _call_delete_track(self, node: FakeNode, index: int) -> None:
        self.live_set.lists["tracks"][index].detach()

    def _call_insert_device(self, node: FakeNode, name: str, position: int = 0) -> str:
        role, drum = _RACKS_BY_NAME.get(name, (DeviceRole.AUDIO_EFFECT, False))
        if role is DeviceRole.INSTRUMENT and node.type == "Track":
            if any(d.props.get("type") == DeviceRole.INSTRUMENT for d in node.children("devices")):
                raise LiveGraphError("Cannot insert an instrument on a track that already has one")
        device = self.add_device(node, name, role=role, rack=name in _RACKS_BY_NAME, drum=drum, position=position)
        return device.ref

    def _call_insert_chain(self, node: FakeNode) -> None:
        if node.props.get("can_have_drum_pads"):
            self.add_chain(node, "Chain", in_note=-1)
        else:
            self.add_chain(node, "Chain")

    def _call_add_macro(self, node: FakeNode) -> None:
        node.props["visible_macro_count"] = node.props.get("visible_macro_count", 0) + 2

    def _call_remove_macro(self, node: FakeNode) -> None:
        node.props["visible_macro_count"] = node.props.get("visible_macro_count", 0) - 2

    def _call_store_variation(self, node: FakeNode) -> None:
        node.props["variation_count"] = node.props.get("variation_count", 0) + 1

    def _call_delete_selected_variation(self, node: FakeNode) -> None:
        node.props["variation_count"] = node.props.get("variation_count", 0) - 1

    # ── Builders ────────────────────────────────────────────────────────────

    def add_track(self, name: str = "", *, return_track: bool = False) -> FakeNode:
        key = "return_tracks" if return_track else "tracks"
        return self.live_set.add(key, FakeNode(self, "Track", {"name": name}))

    def add_device(
        self,
        parent: FakeNode,
        class_name: str,
        *,
        role: DeviceRole = DeviceRole.AUDIO_EFFECT,
        rack: bool = False,
        drum: bool = False,
        name: str | None = None,
        position: int | None = None,
        **props: Any,
    ) -> FakeNode:
        rack = rack or drum
        type_name = "DrumGroupDevice" if drum else "RackDevice" if rack else "Device"
        base: dict[str, Any] = {
            "name": name if name is not None else class_name,
            "class_display_name": class_name,
            "type": int(role),
            "can_have_chains": int(rack),
            "can_have_drum_pads": int(drum),
            "is_active": 1,
            "can_compare_ab": 0,
        }
        if rack:
            base.update(visible_macro_count=0, variation_count=0, selected_variation_index=-1)
        base.update(props)
        device = parent.add("devices", FakeNode(self, type_name, base), position)
        device.put("view", FakeNode(self, "View", {"is_collapsed": 0}))
        if drum:
            for note in range(128):
                device.add("drum_pads", FakeNode(self, "DrumPad", {"note": note, "name": "", "mute": 0, "solo": 0}))
        return device

    def add_chain(
        self,
        rack: FakeNode,
        name: str = "Chain",
        *,
        in_note: int | None = None,
        return_chain: bool = False,
        **props: Any,
    ) -> FakeNode:
        base: dict[str, Any] = {"name": name, "mute": 0, "solo": 0, "muted_via_solo": 0, "color": 0}
        type_name = "Chain"
        if in_note is not None:
            type_name = "DrumChain"
            base.update(in_note=in_note, out_note=in_note if in_note >= 0 else 60, choke_group=0)
        base.update(props)
        key = "return_chains" if return_chain else "chains"
        return rack.add(key, FakeNode(self, type_name, base))

    def add_parameter(
        self,
        device: FakeNode,
        name: str,
        *,
        value: float = 0.0,
        min: float = 0.0,
        max: float = 1.0,
        labels: Callable[[float], str] | None = None,
        items: tuple[str, ...] | None = None,
        **props: Any,
    ) -> FakeNode:
        base: dict[str, Any] = {
            "name": name,
            "original_name": name,
            "value": value,
            "min": min,
            "max": max,
            "is_quantized": int(items is not None),
            "value_items": list(items) if items is not None else [],
            "is_enabled": 1,
            "state": 0,
            "automation_state": 0,
        }
        base.update(props)
        if labels is None and items is not None:
            labels = lambda v: items[int(v)]  # noqa: E731
        return device.add("parameters", FakeNode(self, "DeviceParameter", base, str_for_value=labels))

    # ── Assertion helpers ───────────────────────────────────────────────────

    def sets_on(self, node: FakeNode) -> list[tuple[str, Any]]:
        return [(prop, value) for node_id, prop, value in self.sets if node_id == node.id]

    def calls_named(self, method: str) -> list[tuple[int, tuple[Any, ...]]]:
        return [(node_id, args) for node_id, name, args in self.calls if name == method]


# ---------------------------------------------------------------------------
# Parameter label functions (what str_for_value would print)
# ---------------------------------------------------------------------------


def pan_label(value: float) -> str:
    amount = round(abs(value) * 50)
    if amount == 0:
        return "C"
    return f"{amount}{'L' if value < 0 else 'R'}"


def frequency_label(value: float) -> str:
    hz = 20 + value * 19980
    return f"{hz / 1000:.1f} kHz" if hz >= 1000 else f"{hz:.0f} Hz"


def volume_label(value: float) -> str:
    if value <= 0:
        return "-inf dB"
    return f"{(value - 1) * 70:.1f} dB"


DIVISIONS: tuple[str, ...] = ("1/64", "1/32", "1/16", "1/8", "1/4", "1/2", "1")


def division_label(value: float) -> str:
    return DIVISIONS[int(round(value))]


def percent_label(value: float) -> str:
    return f"{value * 100:.0f} %"


def note_label(value: float) -> str:
    return number_to_pitch_name(int(value)) or "?"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def graph() -> FakeLiveGraph:
    """Empty Live set (master track only)."""
    return FakeLiveGraph()


@pytest.fixture
def live_set(graph: FakeLiveGraph) -> SimpleNamespace:
    """
    A small but complete Live set:

        t0 "Drums"   d0 Drum Rack "Kit"
                        chains: Kick (C1), Snare (D1), Kick Layer (C1), Catch (*)
                     d1 Reverb (audio effect)
        t1 "Synth"   d0 Wavetable (instrument, with parameters)
                     d1 Audio Effect Rack "FX"
                        c0 [EQ Eight], c1 [], rc0 [Delay]
                     d2 Auto Filter (audio effect, A/B compare)
        rt0 "A-Reverb"  d0 Reverb
        mt           d0 Limiter
    """
    drums = graph.add_track("Drums")
    kit = graph.add_device(drums, "Drum Rack", role=DeviceRole.INSTRUMENT, drum=True, name="Kit")
    kick = graph.add_chain(kit, "Kick", in_note=36)
    kick_sampler = graph.add_device(kick, "Simpler", role=DeviceRole.INSTRUMENT, name="Kick")
    snare = graph.add_chain(kit, "Snare", in_note=38)
    graph.add_device(snare, "Simpler", role=DeviceRole.INSTRUMENT, name="Snare")
    kick_layer = graph.add_chain(kit, "Kick Layer", in_note=36)
    graph.add_device(kick_layer, "Operator", role=DeviceRole.INSTRUMENT)
    catch = graph.add_chain(kit, "Catch", in_note=-1)
    drum_reverb = graph.add_device(drums, "Reverb")

    synth = graph.add_track("Synth")
    wavetable = graph.add_device(synth, "Wavetable", role=DeviceRole.INSTRUMENT)
    cutoff = graph.add_parameter(wavetable, "Filter Freq", value=0.5, labels=frequency_label)
    pan = graph.add_parameter(wavetable, "Pan", value=0.5, min=-1.0, max=1.0, labels=pan_label)
    mode = graph.add_parameter(wavetable, "Filter Type", value=1, min=0, max=2, items=("Low", "High", "Band"))
    rate = graph.add_parameter(wavetable, "LFO Rate", value=3, min=0, max=6, labels=division_label)
    volume = graph.add_parameter(wavetable, "Volume", value=0.5, labels=volume_label)
    root = graph.add_parameter(wavetable, "Root", value=60, min=0, max=127, labels=note_label)
    amount = graph.add_parameter(wavetable, "Amount", value=64, min=0, max=127, labels=lambda v: str(int(v)))
    fx = graph.add_device(synth, "Audio Effect Rack", rack=True, name="FX")
    fx_c0 = graph.add_chain(fx, "Low")
    eq = graph.add_device(fx_c0, "EQ Eight")
    fx_c1 = graph.add_chain(fx, "High")
    fx_rc0 = graph.add_chain(fx, "Send A", return_chain=True)
    delay = graph.add_device(fx_rc0, "Delay")
    auto_filter = graph.add_device(synth, "Auto Filter", can_compare_ab=1, is_using_compare_preset_b=0)
    dry_wet = graph.add_parameter(auto_filter, "Dry/Wet", value=0.5, labels=percent_label)

    returns = graph.add_track("A-Reverb", return_track=True)
    return_reverb = graph.add_device(returns, "Reverb")
    limiter = graph.add_device(graph.master, "Limiter")

    return SimpleNamespace(
        graph=graph,
        drums=drums,
        kit=kit,
        kick=kick,
        kick_sampler=kick_sampler,
        snare=snare,
        kick_layer=kick_layer,
        catch=catch,
        drum_reverb=drum_reverb,
        synth=synth,
        wavetable=wavetable,
        cutoff=cutoff,
        pan=pan,
        mode=mode,
        rate=rate,
        volume=volume,
        root=root,
        amount=amount,
        fx=fx,
        fx_c0=fx_c0,
        eq=eq,
        fx_c1=fx_c1,
        fx_rc0=fx_rc0,
        delay=delay,
        auto_filter=auto_filter,
        dry_wet=dry_wet,
        returns=returns,
        return_reverb=return_reverb,
        limiter=limiter,
    )
