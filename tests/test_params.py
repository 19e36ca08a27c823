"""
Tests for core.ableton.params — label parsing, write strategies and
parameter descriptions.
"""

import pytest

from core.ableton.graph import LiveObject
from core.ableton.params import (
    DB_FLOOR,
    ParameterState,
    WRITE_STRATEGIES,
    classify_write,
    describe_parameter,
    find_division_raw_value,
    format_param_name,
    normalize_pan,
    pan_range,
    parse_label,
    set_parameter_value,
)
from core.ableton.types import ValueKind


def _param(live_set, node) -> LiveObject:
    return LiveObject(live_set.graph, node.ref)


class TestParseLabel:
    """Display label → value and unit."""

    @pytest.mark.parametrize(
        "label,value,unit",
        [
            ("2.5 kHz", 2500, "Hz"),
            ("440 Hz", 440, "Hz"),
            ("1.2 s", 1200, "ms"),
            ("300 ms", 300, "ms"),
            ("-6.0 dB", -6, "dB"),
            ("-inf dB", DB_FLOOR, "dB"),
            ("12 %", 12, "%"),
            ("+7 st", 7, "semitones"),
            ("E3", "E3", "note"),
            ("C", 0, "pan"),
            ("3.5 x", 3.5, None),
            ("abc", None, None),
            ("", None, None),
            (None, None, None),
        ],
    )
    def test_patterns(self, label, value, unit) -> None:
        parsed = parse_label(label)
        assert parsed.value == value
        assert parsed.unit == unit

    def test_pan_direction(self) -> None:
        parsed = parse_label("12L")
        assert (parsed.value, parsed.unit, parsed.direction) == (12, "pan", "L")

    def test_whole_numbers_become_int(self) -> None:
        assert isinstance(parse_label("2.0 kHz").value, int)


class TestPanHelpers:
    """Pan label normalisation."""

    def test_normalize(self) -> None:
        assert normalize_pan("25L", 50) == -0.5
        assert normalize_pan("50R", 50) == 1
        assert normalize_pan("C", 50) == 0

    def test_range(self) -> None:
        assert pan_range("50R", "50L") == 50
        assert pan_range("100L") == 100
        assert pan_range("C") == 50


class TestParameterState:
    """Probing a parameter."""

    def test_probe_labels(self, live_set) -> None:
        state = ParameterState.probe(_param(live_set, live_set.pan))
        assert (state.raw, state.raw_min, state.raw_max) == (0.5, -1.0, 1.0)
        assert (state.label, state.min_label, state.max_label) == ("25R", "50L", "50R")
        assert state.is_pan
        assert not state.is_division

    def test_division_detection(self, live_set) -> None:
        state = ParameterState.probe(_param(live_set, live_set.rate))
        assert state.is_division
        assert list(state.int_range) == [0, 1, 2, 3, 4, 5, 6]

    def test_quantized_items(self, live_set) -> None:
        state = ParameterState.probe(_param(live_set, live_set.mode))
        assert state.quantized
        assert state.items == ("Low", "High", "Band")

    def test_find_division_raw_value(self, live_set) -> None:
        param = _param(live_set, live_set.rate)
        state = ParameterState.probe(param)
        assert find_division_raw_value(param, state, "1/16") == 2
        assert find_division_raw_value(param, state, "1/3") is None


class TestClassifyWrite:
    """Strategy order: enum, pitch, pan, division, numeric."""

    def test_order(self) -> None:
        assert [s.kind for s in WRITE_STRATEGIES] == [
            ValueKind.ENUM,
            ValueKind.PITCH,
            ValueKind.PAN,
            ValueKind.DIVISION,
            ValueKind.NUMERIC,
        ]

    def test_string_on_quantized_is_enum(self, live_set) -> None:
        state = ParameterState.probe(_param(live_set, live_set.mode))
        assert classify_write(state, "C3").kind is ValueKind.ENUM

    def test_number_on_quantized_is_numeric(self, live_set) -> None:
        state = ParameterState.probe(_param(live_set, live_set.mode))
        assert classify_write(state, 1).kind is ValueKind.NUMERIC

    def test_note_name_is_pitch(self, live_set) -> None:
        state = ParameterState.probe(_param(live_set, live_set.root))
        assert classify_write(state, "D3").kind is ValueKind.PITCH


class TestSetParameterValue:
    """Writing display values."""

    def test_enum(self, live_set) -> None:
        result = set_parameter_value(_param(live_set, live_set.mode), "Band")
        assert result.ok
        assert live_set.mode.props["value"] == 2

    def test_enum_miss_leaves_value(self, live_set) -> None:
        result = set_parameter_value(_param(live_set, live_set.mode), "Notch")
        assert not result.ok
        assert "Options: Low, High, Band" in result.error
        assert live_set.graph.sets_on(live_set.mode) == []

    def test_pitch(self, live_set) -> None:
        set_parameter_value(_param(live_set, live_set.root), "D3")
        assert live_set.root.props["value"] == 62

    def test_pan(self, live_set) -> None:
        result = set_parameter_value(_param(live_set, live_set.pan), -0.5)
        assert result.kind is ValueKind.PAN
        assert live_set.pan.props["value"] == pytest.approx(-0.5)

    @pytest.mark.parametrize("value", [2, -1.5, "left"])
    def test_pan_rejects_out_of_range(self, live_set, value) -> None:
        result = set_parameter_value(_param(live_set, live_set.pan), value)
        assert not result.ok
        assert live_set.graph.sets_on(live_set.pan) == []

    def test_division(self, live_set) -> None:
        set_parameter_value(_param(live_set, live_set.rate), "1/4")
        assert live_set.rate.props["value"] == 4

    def test_division_whole_bar(self, live_set) -> None:
        set_parameter_value(_param(live_set, live_set.rate), "1")
        assert live_set.rate.props["value"] == 6

    @pytest.mark.parametrize("label", ["1/64", "1/32", "1/16", "1/8", "1/4", "1/2", "1"])
    def test_division_reads_back(self, live_set, label) -> None:
        param = _param(live_set, live_set.rate)
        assert set_parameter_value(param, label).ok
        assert describe_parameter(param)["value"] == label

    @pytest.mark.parametrize("value,raw", [(-1, 0), (0, 64), (1, 128), (0.5, 96)])
    def test_pan_spans_raw_range(self, live_set, value, raw) -> None:
        node = live_set.graph.add_parameter(
            live_set.wavetable,
            "Osc Pan",
            value=64,
            min=0,
            max=128,
            labels=wide_pan_label,
        )
        result = set_parameter_value(_param(live_set, node), value)
        assert result.kind is ValueKind.PAN
        assert node.props["value"] == pytest.approx(raw)

    def test_division_miss(self, live_set) -> None:
        result = set_parameter_value(_param(live_set, live_set.rate), "1/3")
        assert not result.ok
        assert live_set.rate.props["value"] == 3

    def test_numeric_goes_through_display_value(self, live_set) -> None:
        result = set_parameter_value(_param(live_set, live_set.cutoff), 5000)
        assert result.property == "display_value"
        assert live_set.graph.sets_on(live_set.cutoff) == [("display_value", 5000)]


class TestDescribeParameter:
    """Reading parameters in display units."""

    def test_frequency(self, live_set) -> None:
        assert describe_parameter(_param(live_set, live_set.cutoff)) == {
            "id": str(live_set.cutoff.id),
            "name": "Filter Freq",
            "value": 10000,
            "min": 20,
            "max": 20000,
            "unit": "Hz",
        }

    def test_pan(self, live_set) -> None:
        desc = describe_parameter(_param(live_set, live_set.pan))
        assert (desc["value"], desc["min"], desc["max"], desc["unit"]) == (0.5, -1, 1, "pan")

    def test_quantized(self, live_set) -> None:
        desc = describe_parameter(_param(live_set, live_set.mode))
        assert desc["value"] == 1
        assert desc["displayValue"] == "High"
        assert desc["options"] == ["Low", "High", "Band"]
        assert "min" not in desc

    def test_division(self, live_set) -> None:
        desc = describe_parameter(_param(live_set, live_set.rate))
        assert desc["value"] == "1/8"
        assert desc["options"] == ["1/64", "1/32", "1/16", "1/8", "1/4", "1/2", "1"]

    def test_decibels_with_floor(self, live_set) -> None:
        desc = describe_parameter(_param(live_set, live_set.volume))
        assert (desc["value"], desc["min"], desc["max"], desc["unit"]) == (-35, -70, 0, "dB")

    def test_note(self, live_set) -> None:
        desc = describe_parameter(_param(live_set, live_set.root))
        assert (desc["value"], desc["min"], desc["max"], desc["unit"]) == ("C3", "C-2", "G8", "note")

    def test_plain_number_has_no_display_value(self, live_set) -> None:
        desc = describe_parameter(_param(live_set, live_set.amount))
        assert desc["value"] == 64
        assert "displayValue" not in desc
        assert "unit" not in desc

    def test_percent(self, live_set) -> None:
        desc = describe_parameter(_param(live_set, live_set.dry_wet))
        assert (desc["value"], desc["unit"]) == (50, "%")

    def test_text_label_kept_as_display_value(self, live_set) -> None:
        node = live_set.graph.add_parameter(
            live_set.auto_filter, "Mode", value=0, min=0, max=4, labels=lambda v: "Off" if v == 0 else str(int(v))
        )
        desc = describe_parameter(_param(live_set, node))
        assert desc["value"] == 0
        assert desc["displayValue"] == "Off"

    def test_state_flags(self, live_set) -> None:
        node = live_set.graph.add_parameter(
            live_set.auto_filter, "Env", labels=percent_label_stub, is_enabled=0, state=2, automation_state=1
        )
        desc = describe_parameter(_param(live_set, node))
        assert desc["enabled"] is False
        assert desc["state"] == "disabled"
        assert desc["automation"] == "active"

    def test_defaults_suppressed(self, live_set) -> None:
        desc = describe_parameter(_param(live_set, live_set.cutoff))
        assert "enabled" not in desc
        assert "state" not in desc
        assert "automation" not in desc


class TestFormatParamName:
    """Macro naming."""

    def test_renamed_macro(self, live_set) -> None:
        node = live_set.graph.add_parameter(live_set.fx, "Brightness", original_name="Macro 1")
        assert format_param_name(_param(live_set, node)) == "Brightness (Macro 1)"

    def test_plain(self, live_set) -> None:
        assert format_param_name(_param(live_set, live_set.cutoff)) == "Filter Freq"


def percent_label_stub(value: float) -> str:
    return f"{value * 100:.0f} %"


def wide_pan_label(value: float) -> str:
    """Pan over raw 0..128, centred on 64, printed like Live's 50L..50R."""
    amount = round(abs(value - 64) / 64 * 50)
    if amount == 0:
        return "C"
    return f"{amount}{'L' if value < 64 else 'R'}"
