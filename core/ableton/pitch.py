"""core/ableton/pitch.py — Pitch name ↔ MIDI note number conversion.

Live names notes with middle C as ``C3`` (MIDI 60), so octave ``n`` starts at
MIDI ``(n + NOTE_OCTAVE_OFFSET) * 12``:

    C-2 →   0
    C1  →  36   (first Drum Rack pad)
    C3  →  60
    G8  → 127

Input accepts sharps and flats with a case-insensitive letter (``"c#3"``,
``"Bb-1"``).  Output always uses sharps.  Invalid names and out-of-range
numbers return ``None``; nothing here raises.
"""

from __future__ import annotations

import re

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

NOTE_OCTAVE_OFFSET: int = 2
"""Octave ``-NOTE_OCTAVE_OFFSET`` starts at MIDI 0 (C3 = 60, Live's convention)."""

MIDI_MIN: int = 0
MIDI_MAX: int = 127

UNASSIGNED_PITCH: int = -1
"""Drum chain ``in_note`` value meaning "catch-all" (the ``p*`` pad)."""

_OCTAVE = 12

# Pitch class name (lowercase) → semitone offset from C
_PITCH_CLASS_SEMITONES: dict[str, int] = {
    "c": 0,
    "c#": 1,
    "db": 1,
    "d": 2,
    "d#": 3,
    "eb": 3,
    "e": 4,
    "f": 5,
    "f#": 6,
    "gb": 6,
    "g": 7,
    "g#": 8,
    "ab": 8,
    "a": 9,
    "a#": 10,
    "bb": 10,
    "b": 11,
}

_SHARP_NAMES: tuple[str, ...] = (
    "C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B",
)  # fmt: skip

_PITCH_RE = re.compile(r"^([A-Ga-g])([#b]?)(-?\d+)$")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def pitch_class_to_number(name: str) -> int | None:
    """Return the semitone offset (0–11) of a pitch class such as ``"F#"``."""
    if not isinstance(name, str):
        return None
    return _PITCH_CLASS_SEMITONES.get(name.lower())


def pitch_name_to_number(name: str) -> int | None:
    """Convert a pitch name to its MIDI note number.

    Args:
        name: Pitch name, e.g. ``"C3"``, ``"F#-1"``, ``"bb0"``.

    Returns:
        MIDI note number in 0–127, or ``None`` when the name is malformed or
        falls outside the MIDI range.
    """
    if not isinstance(name, str):
        return None
    match = _PITCH_RE.match(name.strip())
    if match is None:
        return None

    letter, accidental, octave = match.groups()
    semitone = _PITCH_CLASS_SEMITONES.get(f"{letter}{accidental}".lower())
    if semitone is None:
        return None

    number = (int(octave) + NOTE_OCTAVE_OFFSET) * _OCTAVE + semitone
    if not MIDI_MIN <= number <= MIDI_MAX:
        return None
    return number


def number_to_pitch_name(number: int) -> str | None:
    """Convert a MIDI note number to its sharp-spelled pitch name (60 → ``"C3"``)."""
    if isinstance(number, bool) or not isinstance(number, int):
        return None
    if not MIDI_MIN <= number <= MIDI_MAX:
        return None
    octave = number // _OCTAVE - NOTE_OCTAVE_OFFSET
    return f"{_SHARP_NAMES[number % _OCTAVE]}{octave}"


def is_valid_pitch_name(name: str) -> bool:
    """True when ``name`` parses to a MIDI note in range."""
    return pitch_name_to_number(name) is not None


def normalize_pitch_name(name: str) -> str | None:
    """Canonical spelling of a pitch name (``"db3"`` → ``"C#3"``), or ``None``."""
    number = pitch_name_to_number(name)
    if number is None:
        return None
    return number_to_pitch_name(number)
