"""
Tests for core.ableton.reader — device, container and pad snapshots.
"""

import pytest

from core.ableton.errors import MalformedInputError
from core.ableton.graph import LiveObject
from core.ableton.reader import (
    ReadOptions,
    apply_solo_propagation,
    compute_state,
    device_type_label,
    read_targets,
)
from core.ableton.resolver import resolve_target
from core.ableton.types import DeviceRole


def _read(live_set, path: str, include=None, **kwargs):
    options = ReadOptions.from_include(include, **kwargs)
    return read_targets(live_set.graph, paths=path, options=options)


class TestReadOptions:
    """Include token parsing."""

    def test_defaults(self) -> None:
        options = ReadOptions.from_include(None)
        assert not options.containers
        assert not options.params
        assert options.max_depth == 0

    def test_comma_string(self) -> None:
        options = ReadOptions.from_include("containers, pads")
        assert options.containers
        assert options.pads
        assert not options.return_containers

    def test_param_values_implies_params(self) -> None:
        options = ReadOptions.from_include(["param-values"])
        assert options.params
        assert options.param_values

    def test_star_includes_everything(self) -> None:
        options = ReadOptions.from_include("*")
        assert all(
            [options.containers, options.return_containers, options.pads, options.params, options.drum_map]
        )

    def test_unknown_token(self) -> None:
        with pytest.raises(MalformedInputError, match="chains"):
            ReadOptions.from_include("containers,chains")

    def test_negative_depth(self) -> None:
        with pytest.raises(MalformedInputError):
            ReadOptions.from_include(None, max_depth=-1)

    def test_blank_param_search_ignored(self) -> None:
        assert ReadOptions.from_include(None, param_search="  ").param_search is None


class TestHelpers:
    """Type labels and mixer states."""

    def test_device_type_labels(self, live_set) -> None:
        graph = live_set.graph
        arp = graph.add_device(live_set.synth, "Arpeggiator", role=DeviceRole.MIDI_EFFECT)
        odd = graph.add_device(live_set.synth, "Mystery", role=DeviceRole.UNDEFINED)
        labels = [
            device_type_label(LiveObject(graph, node.ref))
            for node in (live_set.kit, live_set.wavetable, live_set.fx, live_set.eq, arp, odd)
        ]
        assert labels == ["drum-rack", "instrument", "audio-effect-rack", "audio-effect", "midi-effect", "unknown"]

    @pytest.mark.parametrize(
        "flags,state",
        [
            ({}, "active"),
            ({"mute": 1}, "muted"),
            ({"solo": 1, "mute": 1}, "soloed"),
            ({"muted_via_solo": 1}, "muted-via-solo"),
            ({"mute": 1, "muted_via_solo": 1}, "muted-also-via-solo"),
        ],
    )
    def test_compute_state(self, live_set, flags, state) -> None:
        live_set.fx_c0.props.update(flags)
        assert compute_state(LiveObject(live_set.graph, live_set.fx_c0.ref)) == state

    def test_solo_propagation(self) -> None:
        pads = [{"state": "soloed"}, {}, {"state": "muted"}]
        apply_solo_propagation(pads)
        assert [p["state"] for p in pads] == ["soloed", "muted-via-solo", "muted-also-via-solo"]

    def test_no_solo_no_change(self) -> None:
        pads = [{}, {"state": "muted"}]
        apply_solo_propagation(pads)
        assert pads == [{}, {"state": "muted"}]


class TestReadDevice:
    """Plain devices and racks."""

    def test_instrument_defaults_suppressed(self, live_set) -> None:
        assert _read(live_set, "t1/d0") == {
            "id": str(live_set.wavetable.id),
            "path": "t1/d0",
            "type": "instrument: Wavetable",
        }

    def test_renamed_rack(self, live_set) -> None:
        result = _read(live_set, "t1/d1")
        assert result["type"] == "audio-effect-rack"
        assert result["name"] == "FX"
        assert "containers" not in result

    def test_flags(self, live_set) -> None:
        live_set.wavetable.props["is_active"] = 0
        live_set.wavetable.singles["view"].props["is_collapsed"] = 1
        result = _read(live_set, "t1/d0")
        assert result["deactivated"] is True
        assert result["collapsed"] is True

    def test_ab_compare(self, live_set) -> None:
        assert _read(live_set, "t1/d2")["abCompare"] == "a"
        live_set.auto_filter.props["is_using_compare_preset_b"] = 1
        assert _read(live_set, "t1/d2")["abCompare"] == "b"

    def test_rack_macros_and_variations(self, live_set) -> None:
        live_set.fx.props.update(
            visible_macro_count=4, has_macro_mappings=1, variation_count=2, selected_variation_index=1
        )
        result = _read(live_set, "t1/d1")
        assert result["macros"] == {"count": 4, "hasMappings": True}
        assert result["variations"] == {"count": 2, "selected": 1}

    def test_containers(self, live_set) -> None:
        result = _read(live_set, "t1/d1", "containers")
        low, high = result["containers"]
        assert low == {
            "id": str(live_set.fx_c0.id),
            "path": "t1/d1/c0",
            "type": "container",
            "name": "Low",
            "devices": [{"id": str(live_set.eq.id), "path": "t1/d1/c0/d0", "type": "audio-effect: EQ Eight"}],
        }
        assert high["devices"] == []

    def test_soloed_container_flagged_without_containers(self, live_set) -> None:
        live_set.fx_c1.props["solo"] = 1
        assert _read(live_set, "t1/d1")["hasSoloedContainer"] is True

    def test_return_containers(self, live_set) -> None:
        result = _read(live_set, "t1/d1", "return-containers")
        (send,) = result["returnContainers"]
        assert send["path"] == "t1/d1/rc0"
        assert send["type"] == "return-container"
        assert send["devices"][0]["path"] == "t1/d1/rc0/d0"

    def test_master_track_device(self, live_set) -> None:
        assert _read(live_set, "mt/d0")["type"] == "audio-effect: Limiter"


class TestDepth:
    """Containers do not add depth; nested devices do."""

    def test_nested_devices_listed_only(self, live_set) -> None:
        live_set.eq.props["is_active"] = 0
        result = _read(live_set, "t1/d1", "containers")
        assert "deactivated" not in result["containers"][0]["devices"][0]

    def test_nested_devices_expanded_with_depth(self, live_set) -> None:
        live_set.eq.props["is_active"] = 0
        result = _read(live_set, "t1/d1", "containers", max_depth=1)
        assert result["containers"][0]["devices"][0]["deactivated"] is True

    def test_container_target_devices_at_depth_zero(self, live_set) -> None:
        live_set.eq.props["is_active"] = 0
        result = _read(live_set, "t1/d1/c0")
        assert result["devices"][0]["deactivated"] is True


class TestParameters:
    """params / param-values / param_search."""

    def test_params_basic(self, live_set) -> None:
        result = _read(live_set, "t1/d2", "params")
        assert result["parameters"] == [{"id": str(live_set.dry_wet.id), "name": "Dry/Wet"}]

    def test_param_values(self, live_set) -> None:
        (param,) = _read(live_set, "t1/d2", "param-values")["parameters"]
        assert (param["value"], param["unit"]) == (50, "%")

    def test_param_search(self, live_set) -> None:
        result = _read(live_set, "t1/d0", "params", param_search="FILTER")
        assert [p["name"] for p in result["parameters"]] == ["Filter Freq", "Filter Type"]


class TestPads:
    """Drum Rack pads, grouped by pitch."""

    def test_pads_sorted_catch_all_last(self, live_set) -> None:
        pads = _read(live_set, "t0/d0", "pads")["pads"]
        assert [p["pitch"] for p in pads] == ["C1", "D1", "*"]
        assert pads[0] == {
            "id": str(live_set.kit.lists["drum_pads"][36].id),
            "path": "t0/d0/pC1",
            "type": "pad",
            "pitch": "C1",
            "name": "Kick",
        }

    def test_catch_all_pad_has_no_id(self, live_set) -> None:
        catch = _read(live_set, "t0/d0", "pads")["pads"][-1]
        assert "id" not in catch
        assert catch["path"] == "t0/d0/p*"
        assert catch["hasInstrument"] is False

    def test_pads_with_containers(self, live_set) -> None:
        kick = _read(live_set, "t0/d0", "pads,containers")["pads"][0]
        assert [c["path"] for c in kick["containers"]] == ["t0/d0/pC1/c0", "t0/d0/pC1/c1"]
        assert kick["containers"][1]["devices"][0]["path"] == "t0/d0/pC1/c1/d0"

    def test_containers_alone_do_not_list_drum_chains(self, live_set) -> None:
        result = _read(live_set, "t0/d0", "containers")
        assert "containers" not in result
        assert "pads" not in result

    def test_solo_propagates(self, live_set) -> None:
        live_set.snare.props["solo"] = 1
        live_set.kick.props["mute"] = 1
        pads = _read(live_set, "t0/d0", "pads")["pads"]
        assert [p["state"] for p in pads] == ["muted-also-via-solo", "soloed", "muted-via-solo"]

    def test_drum_map(self, live_set) -> None:
        result = _read(live_set, "t0/d0", "drum-map")
        assert result["drumMap"] == {"C1": "Kick", "D1": "Snare"}

    def test_drum_map_absent_without_drum_rack(self, live_set) -> None:
        assert "drumMap" not in _read(live_set, "t1/d1", "drum-map")


class TestReadPadTargets:
    """Reading a pad or drum container directly."""

    def test_pad(self, live_set) -> None:
        result = _read(live_set, "t0/d0/pD1")
        assert result["id"] == str(live_set.kit.lists["drum_pads"][38].id)
        assert result["name"] == "Snare"
        (container,) = result["containers"]
        assert container["path"] == "t0/d0/pD1/c0"
        assert container["type"] == "drum-container"

    def test_catch_all_pad(self, live_set) -> None:
        result = _read(live_set, "t0/d0/p*")
        assert result["path"] == "t0/d0/p*"
        assert result["pitch"] == "*"
        assert result["containers"][0]["inputPitch"] == "*"

    def test_drum_container(self, live_set) -> None:
        live_set.kick_layer.props.update(out_note=48, choke_group=2)
        result = _read(live_set, "t0/d0/pC1/c1")
        assert result["type"] == "drum-container"
        assert result["name"] == "Kick Layer"
        assert result["inputPitch"] == "C1"
        assert result["mappedPitch"] == "C2"
        assert result["chokeGroup"] == 2
        assert result["devices"][0]["type"] == "instrument: Operator"


class TestBatchShape:
    """Zero / one / many."""

    def test_many(self, live_set) -> None:
        result = _read(live_set, "t1/d0, t1/d2")
        assert [r["path"] for r in result] == ["t1/d0", "t1/d2"]

    def test_missing_items_dropped(self, live_set) -> None:
        result = _read(live_set, "t1/d0,t9/d0")
        assert isinstance(result, dict)
        assert result["path"] == "t1/d0"

    def test_nothing_found(self, live_set) -> None:
        assert _read(live_set, "t9/d0") == []

    def test_by_id_carries_compact_path(self, live_set) -> None:
        result = read_targets(live_set.graph, ids=str(live_set.eq.id))
        assert result["path"] == "t1/d1/c0/d0"

    def test_track_ids_are_skipped(self, live_set) -> None:
        assert read_targets(live_set.graph, ids=str(live_set.synth.id)) == []


def _addressed_nodes(node):
    """Every dict carrying a ``path`` in a read result, depth first."""
    if isinstance(node, list):
        for item in node:
            yield from _addressed_nodes(item)
    elif isinstance(node, dict):
        if "path" in node:
            yield node
        for value in node.values():
            if isinstance(value, (list, dict)):
                yield from _addressed_nodes(value)


class TestReAddressing:
    """Paths returned by a read lead back to the same nodes."""

    def test_every_returned_path_resolves_to_its_node(self, live_set) -> None:
        result = _read(live_set, "t0/d0, t1/d1", "pads,containers,return-containers", max_depth=2)
        nodes = list(_addressed_nodes(result))
        assert len(nodes) > 6

        for node in nodes:
            target = resolve_target(live_set.graph, node["path"])
            assert target is not None, node["path"]
            assert target.path == node["path"]
            if "id" in node:
                assert target.id == node["id"]

    def test_pad_container_path_round_trip(self, live_set) -> None:
        kick = _read(live_set, "t0/d0", "pads,containers")["pads"][0]
        layer = kick["containers"][1]
        again = _read(live_set, layer["path"])
        assert again["id"] == str(live_set.kick_layer.id)
        assert again["path"] == "t0/d0/pC1/c1"
        assert again["type"] == "drum-container"
