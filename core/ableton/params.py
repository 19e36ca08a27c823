"""core/ableton/params.py — Parameter value codec: raw ↔ display units.

Live exposes no "parameter type".  What a parameter means is inferred by
probing the device's own ``str_for_value`` conversion and looking at the
labels it produces:

    ────────────  ─────────────────────────────────────  ─────────────────────
    Kind          Detected by                            Caller value
    ────────────  ─────────────────────────────────────  ─────────────────────
    enum          is_quantized + string input            option label
    pitch         string input that is a note name       "C3", "F#-1"
    pan           current label is "C" / "50L" / "12R"   -1.0 … 1.0
    division      current or min label is "1/N"          "1/8", "1"
    numeric       anything else                          display value
    ────────────  ─────────────────────────────────────  ─────────────────────

The write side is an ordered tuple of :class:`ValueStrategy` objects
(:data:`WRITE_STRATEGIES`); the first whose ``matches`` accepts wins.  Labels
are probed afresh on every call and never cached, on the assumption that
``str_for_value`` is a pure function of the raw value.

Writes never partially mutate: the raw value is encoded first and a single
``set`` is issued only if encoding succeeded.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from core.ableton.errors import ValueNotMatchedError
from core.ableton.graph import LiveObject
from core.ableton.pitch import is_valid_pitch_name, pitch_name_to_number
from core.ableton.types import ValueKind

logger = logging.getLogger(__name__)

DB_FLOOR: float = -70.0
"""Value reported for ``-inf dB`` labels (the fader floor, not literal -inf)."""

DEFAULT_PAN_RANGE: int = 50

PARAM_STATE_MAP: dict[int, str] = {0: "active", 1: "inactive", 2: "disabled"}
AUTOMATION_STATE_MAP: dict[int, str] = {0: "none", 1: "active", 2: "overridden"}

_PAN_LABEL_RE = re.compile(r"^(\d+[LR]|C)$")
_PAN_SIDE_RE = re.compile(r"^(\d+)([LR])$")
_DIVISION_LABEL_RE = re.compile(r"^1/\d+$")
_LEADING_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)")


# ---------------------------------------------------------------------------
# Label parsing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParsedLabel:
    """Magnitude and unit extracted from a display label."""

    value: float | int | str | None
    unit: str | None
    direction: str | None = None


@dataclass(frozen=True)
class _LabelPattern:
    regex: re.Pattern[str]
    unit: str
    multiplier: float = 1.0
    fixed_value: float | None = None
    note: bool = False
    pan: bool = False


# More specific patterns first
_LABEL_PATTERNS: tuple[_LabelPattern, ...] = (
    _LabelPattern(re.compile(r"^([\d.]+)\s*kHz$"), "Hz", multiplier=1000),
    _LabelPattern(re.compile(r"^([\d.]+)\s*Hz$"), "Hz"),
    _LabelPattern(re.compile(r"^([\d.]+)\s*s$"), "ms", multiplier=1000),
    _LabelPattern(re.compile(r"^([\d.]+)\s*ms$"), "ms"),
    _LabelPattern(re.compile(r"^([\d.-]+)\s*dB$"), "dB"),
    _LabelPattern(re.compile(r"^(-?inf)\s*dB$"), "dB", fixed_value=DB_FLOOR),
    _LabelPattern(re.compile(r"^([\d.-]+)\s*%$"), "%"),
    _LabelPattern(re.compile(r"^([+-]?\d+)\s*st$"), "semitones"),
    _LabelPattern(re.compile(r"^([A-G][#b]?-?\d+)$"), "note", note=True),
    _LabelPattern(re.compile(r"^(\d+)([LR])$"), "pan", pan=True),
    _LabelPattern(re.compile(r"^(C)$"), "pan", fixed_value=0),
)


def _leading_number(text: str) -> float | None:
    match = _LEADING_NUMBER_RE.match(text)
    return float(match.group(0)) if match else None


def _tidy(value: float) -> float | int:
    """Round float noise away and drop a ``.0`` on whole numbers."""
    value = round(float(value), 6)
    return int(value) if value.is_integer() else value


def as_label(value: Any) -> str:
    """String form used when comparing against labels (``8.0`` → ``"8"``)."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_label(label: Any) -> ParsedLabel:
    """Split a display label into value and unit.

    ``"2.5 kHz"`` → ``2500 Hz``; ``"-inf dB"`` → :data:`DB_FLOOR` dB;
    ``"E3"`` → note ``"E3"``; ``"12L"`` → ``12`` pan left.  Labels with no
    recognised unit yield their leading number, or nothing.
    """
    if not isinstance(label, str) or not label:
        return ParsedLabel(None, None)

    for pattern in _LABEL_PATTERNS:
        match = pattern.regex.match(label)
        if not match:
            continue
        if pattern.fixed_value is not None:
            return ParsedLabel(_tidy(pattern.fixed_value), pattern.unit)
        if pattern.note:
            return ParsedLabel(match.group(1), "note")
        if pattern.pan:
            return ParsedLabel(int(match.group(1)), "pan", direction=match.group(2))
        number = _leading_number(match.group(1))
        if number is None:
            continue
        return ParsedLabel(_tidy(number * pattern.multiplier), pattern.unit)

    number = _leading_number(label)
    if number is not None:
        return ParsedLabel(_tidy(number), None)
    return ParsedLabel(None, None)


def is_pan_label(label: Any) -> bool:
    return isinstance(label, str) and bool(_PAN_LABEL_RE.match(label))


def is_division_label(label: Any) -> bool:
    return isinstance(label, str) and bool(_DIVISION_LABEL_RE.match(label))


def pan_range(*labels: str) -> int:
    """Largest pan magnitude named by the given labels (``"50R"`` → 50)."""
    for label in labels:
        match = _PAN_SIDE_RE.match(label or "")
        if match and int(match.group(1)) > 0:
            return int(match.group(1))
    return DEFAULT_PAN_RANGE


def normalize_pan(label: str, max_pan: int) -> float | int:
    """``"25L"`` with range 50 → ``-0.5``; ``"C"`` → ``0``."""
    match = _PAN_SIDE_RE.match(label or "")
    if not match:
        return 0
    magnitude = int(match.group(1)) / max_pan
    return _tidy(-magnitude if match.group(2) == "L" else magnitude)


# ---------------------------------------------------------------------------
# Probe snapshot
# ---------------------------------------------------------------------------


def _stringify(param: LiveObject, raw: Any) -> str:
    label = param.call("str_for_value", raw)
    return "" if label is None else as_label(label)


@dataclass(frozen=True)
class ParameterState:
    """Everything the classifier needs, read from the host in one go."""

    raw: float
    raw_min: float
    raw_max: float
    quantized: bool
    items: tuple[str, ...]

    label: str
    """``str_for_value(raw)``."""

    min_label: str
    max_label: str

    @classmethod
    def probe(cls, param: LiveObject) -> ParameterState:
        raw = float(param.get("value") or 0)
        raw_min = float(param.get("min") or 0)
        raw_max = float(param.get("max") or 0)
        quantized = param.get_bool("is_quantized")
        items = tuple(str(i) for i in (param.get("value_items") or ())) if quantized else ()
        return cls(
            raw=raw,
            raw_min=raw_min,
            raw_max=raw_max,
            quantized=quantized,
            items=items,
            label=_stringify(param, raw),
            min_label=_stringify(param, raw_min),
            max_label=_stringify(param, raw_max),
        )

    @property
    def int_range(self) -> range:
        """Every whole raw value between min and max, inclusive."""
        low = math.ceil(min(self.raw_min, self.raw_max))
        high = math.floor(max(self.raw_min, self.raw_max))
        return range(low, high + 1)

    @property
    def is_pan(self) -> bool:
        return is_pan_label(self.label)

    @property
    def is_division(self) -> bool:
        return is_division_label(self.label) or is_division_label(self.min_label)


def find_division_raw_value(param: LiveObject, state: ParameterState, value: Any) -> int | None:
    """Linear scan for the whole raw value whose label equals ``value``.

    Bounded by the parameter range, so it always terminates; the first
    match wins.
    """
    wanted = as_label(value)
    for raw in state.int_range:
        if _stringify(param, raw) == wanted:
            return raw
    return None


# ---------------------------------------------------------------------------
# Write strategies
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ValueStrategy:
    """One classification rule: when it applies and how to encode a value.

    ``encode`` returns ``(property, value)`` for a single host ``set`` and
    raises :class:`ValueNotMatchedError` when the input cannot be encoded.
    """

    kind: ValueKind
    matches: Callable[[ParameterState, Any], bool]
    encode: Callable[[LiveObject, ParameterState, Any], tuple[str, Any]]


def _encode_enum(param: LiveObject, state: ParameterState, value: Any) -> tuple[str, Any]:
    if value not in state.items:
        raise ValueNotMatchedError(f'"{value}" is not valid. Options: {", ".join(state.items)}')
    return "value", state.items.index(value)


def _encode_pitch(param: LiveObject, state: ParameterState, value: Any) -> tuple[str, Any]:
    midi = pitch_name_to_number(value)
    if midi is None:
        raise ValueNotMatchedError(f'Invalid note name "{value}"')
    return "value", midi


def _encode_pan(param: LiveObject, state: ParameterState, value: Any) -> tuple[str, Any]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueNotMatchedError(f'Pan value must be a number from -1 to 1, got "{value}"') from None
    if not -1.0 <= number <= 1.0:
        raise ValueNotMatchedError(f"Pan value must be between -1 and 1, got {as_label(number)}")
    return "value", ((number + 1) / 2) * (state.raw_max - state.raw_min) + state.raw_min


def _encode_division(param: LiveObject, state: ParameterState, value: Any) -> tuple[str, Any]:
    raw = find_division_raw_value(param, state, value)
    if raw is None:
        raise ValueNotMatchedError(f'"{value}" is not a valid division option')
    return "value", raw


def _encode_numeric(param: LiveObject, state: ParameterState, value: Any) -> tuple[str, Any]:
    return "display_value", value


WRITE_STRATEGIES: tuple[ValueStrategy, ...] = (
    ValueStrategy(
        ValueKind.ENUM,
        lambda state, value: state.quantized and isinstance(value, str),
        _encode_enum,
    ),
    ValueStrategy(
        ValueKind.PITCH,
        lambda state, value: isinstance(value, str) and is_valid_pitch_name(value),
        _encode_pitch,
    ),
    ValueStrategy(ValueKind.PAN, lambda state, value: state.is_pan, _encode_pan),
    ValueStrategy(ValueKind.DIVISION, lambda state, value: state.is_division, _encode_division),
    ValueStrategy(ValueKind.NUMERIC, lambda state, value: True, _encode_numeric),
)


def classify_write(state: ParameterState, value: Any) -> ValueStrategy:
    """First strategy accepting ``value`` for this parameter."""
    for strategy in WRITE_STRATEGIES:
        if strategy.matches(state, value):
            return strategy
    raise AssertionError("numeric strategy always matches")


@dataclass(frozen=True)
class ParameterWrite:
    """Outcome of :func:`set_parameter_value`."""

    kind: ValueKind
    ok: bool
    property: str | None = None
    value: Any = None
    error: str | None = None


def set_parameter_value(param: LiveObject, value: Any) -> ParameterWrite:
    """Write a caller value to ``param`` in display units.

    Never raises for unmatched values: the failure is logged, returned, and
    the parameter is left untouched.
    """
    state = ParameterState.probe(param)
    strategy = classify_write(state, value)
    try:
        prop, encoded = strategy.encode(param, state, value)
    except ValueNotMatchedError as exc:
        logger.warning("Parameter %s unchanged: %s", param.ref, exc)
        return ParameterWrite(kind=strategy.kind, ok=False, error=str(exc))

    param.set(prop, encoded)
    logger.debug("Set %s %s=%r via %s", param.ref, prop, encoded, strategy.kind.value)
    return ParameterWrite(kind=strategy.kind, ok=True, property=prop, value=encoded)


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------


def format_param_name(param: LiveObject) -> str:
    """``"Cutoff (Macro 1)"`` for renamed macros, else the plain name."""
    name = str(param.get("name") or "")
    original = param.get("original_name")
    if original is not None and str(original) != name:
        return f"{name} ({original})"
    return name


def describe_parameter_basic(param: LiveObject) -> dict[str, Any]:
    return {"id": param.id, "name": format_param_name(param)}


def _add_state_flags(result: dict[str, Any], param: LiveObject) -> None:
    enabled = param.get("is_enabled")
    if enabled is not None and int(enabled) == 0:
        result["enabled"] = False
    state = PARAM_STATE_MAP.get(param.get_int("state"))
    if state and state != "active":
        result["state"] = state
    automation = AUTOMATION_STATE_MAP.get(param.get_int("automation_state"))
    if automation and automation != "none":
        result["automation"] = automation


def describe_parameter(param: LiveObject) -> dict[str, Any]:
    """Full read of one parameter in display units.

    Defaults are suppressed: no ``state`` when active, no ``automation`` when
    none, no ``min``/``max`` for quantized parameters (``options`` instead),
    and no ``displayValue`` that merely repeats the raw value.
    """
    result = describe_parameter_basic(param)
    state = ParameterState.probe(param)

    if state.quantized:
        index = int(state.raw)
        result["value"] = index
        if 0 <= index < len(state.items):
            result["displayValue"] = state.items[index]
        result["options"] = list(state.items)
    elif state.is_division:
        result["value"] = state.label
        result["options"] = [_stringify(param, raw) for raw in state.int_range]
    else:
        parsed = parse_label(state.label)
        parsed_min = parse_label(state.min_label)
        parsed_max = parse_label(state.max_label)
        unit = parsed.unit or parsed_min.unit or parsed_max.unit
        if unit == "pan":
            max_pan = pan_range(state.max_label, state.min_label)
            result.update(value=normalize_pan(state.label, max_pan), min=-1, max=1, unit="pan")
        else:
            raw = _tidy(state.raw)
            result["value"] = parsed.value if parsed.value is not None else raw
            if parsed.value is None and state.label and state.label != as_label(raw):
                result["displayValue"] = state.label
            result["min"] = parsed_min.value if parsed_min.value is not None else _tidy(state.raw_min)
            result["max"] = parsed_max.value if parsed_max.value is not None else _tidy(state.raw_max)
            if unit:
                result["unit"] = unit

    _add_state_flags(result, param)
    return result
