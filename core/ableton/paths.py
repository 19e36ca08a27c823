"""core/ableton/paths.py — Compact path tokenizer, formatter and builders.

Grammar
───────
::

    path        := track-seg ('/' device-seg ('/' container-or-pad-seg)*)?
    track-seg   := 't' INDEX | 'rt' INDEX | 'mt'
    device-seg  := 'd' INDEX
    container-or-pad-seg := 'c' INDEX | 'rc' INDEX | 'p' PITCH | 'p*'

After a device comes a container (``c``/``rc``) or a pad (``p``).  After a
container comes a device.  After a pad comes a container index within that
pad.  Segment order is enforced here so that the resolver only ever sees
well-formed sequences.

All syntax errors raise :class:`MalformedInputError` with a message naming
the offending segment.
"""

from __future__ import annotations

import re

from core.ableton.errors import MalformedInputError
from core.ableton.pitch import UNASSIGNED_PITCH, normalize_pitch_name, number_to_pitch_name, pitch_name_to_number
from core.ableton.types import Domain, Segment

_INDEX_RE = re.compile(r"^\d+$")

# Domains allowed to follow each domain
_NEXT_ALLOWED: dict[Domain, frozenset[Domain]] = {
    Domain.TRACK: frozenset({Domain.DEVICE}),
    Domain.RETURN_TRACK: frozenset({Domain.DEVICE}),
    Domain.MASTER_TRACK: frozenset({Domain.DEVICE}),
    Domain.DEVICE: frozenset({Domain.CONTAINER, Domain.RETURN_CONTAINER, Domain.PAD}),
    Domain.CONTAINER: frozenset({Domain.DEVICE}),
    Domain.RETURN_CONTAINER: frozenset({Domain.DEVICE}),
    Domain.PAD: frozenset({Domain.CONTAINER}),
}

# LOM child-list name → compact domain, for native → compact translation
_LOM_KEY_DOMAIN: dict[str, Domain] = {
    "tracks": Domain.TRACK,
    "return_tracks": Domain.RETURN_TRACK,
    "devices": Domain.DEVICE,
    "chains": Domain.CONTAINER,
    "return_chains": Domain.RETURN_CONTAINER,
}


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------


def _parse_index(token: str, prefix: str, label: str) -> int:
    digits = token[len(prefix):]
    if not _INDEX_RE.match(digits):
        raise MalformedInputError(f"Invalid {label} index in segment '{token}'")
    return int(digits)


def _parse_track_segment(token: str) -> Segment:
    if token == "mt":
        return Segment(Domain.MASTER_TRACK)
    if token.startswith("rt"):
        return Segment(Domain.RETURN_TRACK, index=_parse_index(token, "rt", "return track"))
    if token.startswith("t"):
        return Segment(Domain.TRACK, index=_parse_index(token, "t", "track"))
    raise MalformedInputError(f"Invalid track segment '{token}' (expected tN, rtN or mt)")


def _parse_pad_segment(token: str) -> Segment:
    note = token[1:]
    if note == "*":
        return Segment(Domain.PAD, wildcard=True)
    pitch = pitch_name_to_number(note)
    if pitch is None:
        raise MalformedInputError(f"Invalid drum pad note in segment '{token}'")
    return Segment(Domain.PAD, pitch=pitch)


def _parse_inner_segment(token: str) -> Segment:
    # "rc" must be checked before "c"
    if token.startswith("rc"):
        return Segment(Domain.RETURN_CONTAINER, index=_parse_index(token, "rc", "return chain"))
    if token.startswith("c"):
        return Segment(Domain.CONTAINER, index=_parse_index(token, "c", "chain"))
    if token.startswith("d"):
        return Segment(Domain.DEVICE, index=_parse_index(token, "d", "device"))
    if token.startswith("p"):
        return _parse_pad_segment(token)
    raise MalformedInputError(f"Invalid path segment '{token}'")


def parse_path(path: str, *, allow_track_only: bool = False) -> tuple[Segment, ...]:
    """Split a compact path into validated segments.

    Args:
        path:             Compact path such as ``"t1/d0/pC1/c0"``.
        allow_track_only: Accept a bare track segment (``"t0"``), used for
                          insertion targets.

    Returns:
        Tuple of segments, first one always a track domain.

    Raises:
        MalformedInputError: On any syntax or ordering error.
    """
    if not isinstance(path, str) or not path.strip():
        raise MalformedInputError("Path must be a non-empty string")

    tokens = [t.strip() for t in path.strip().split("/")]
    if any(not t for t in tokens):
        raise MalformedInputError(f"Empty segment in path '{path}'")

    segments = [_parse_track_segment(tokens[0])]
    if len(tokens) == 1 and not allow_track_only:
        raise MalformedInputError(f"Path must include at least a device index: '{path}'")

    for token in tokens[1:]:
        segment = _parse_inner_segment(token)
        previous = segments[-1]
        if segment.domain not in _NEXT_ALLOWED[previous.domain]:
            expected = " or ".join(sorted(d.prefix for d in _NEXT_ALLOWED[previous.domain]))
            raise MalformedInputError(
                f"Unexpected segment '{token}' after '{previous}' in path '{path}' "
                f"(expected {expected})"
            )
        segments.append(segment)

    return tuple(segments)


def format_path(segments: tuple[Segment, ...] | list[Segment]) -> str:
    """Join segments back into canonical compact form (sharp-spelled pads)."""
    return "/".join(str(s) for s in segments)


def normalize_path(path: str) -> str:
    """Canonical spelling of a compact path (``"t1/d0/pDb1"`` → ``"t1/d0/pC#1"``)."""
    return format_path(parse_path(path, allow_track_only=True))


def split_items(value: str | None) -> list[str]:
    """Split a comma-separated id/path list, trimming blanks and dropping empties."""
    if value is None:
        return []
    return [item.strip() for item in str(value).split(",") if item.strip()]


# ---------------------------------------------------------------------------
# Native (LOM) ↔ compact translation
# ---------------------------------------------------------------------------


def segment_to_native(segment: Segment) -> str:
    """LOM path fragment for a positional segment (``c2`` → ``"chains 2"``)."""
    if segment.domain is Domain.PAD:
        raise MalformedInputError("Pad segments have no positional LOM address")
    if segment.domain is Domain.MASTER_TRACK:
        return "master_track"
    return f"{segment.domain.lom_key} {segment.index}"


def native_to_compact(native_path: str) -> str | None:
    """Translate a positional LOM path into compact form.

    ``"live_set tracks 2 devices 0 chains 1 devices 2"`` → ``"t2/d0/c1/d2"``.
    Chains are translated positionally; drum containers need the graph to be
    expressed by pitch (see :func:`core.ableton.resolver.compact_path_of`).

    Returns:
        Compact path, or ``None`` when the path has no track prefix or
        contains a list this grammar cannot express.
    """
    if not native_path:
        return None
    words = native_path.split()
    if not words or words[0] != "live_set" or len(words) < 2:
        return None

    parts: list[str] = []
    i = 1
    while i < len(words):
        key = words[i]
        if key == "master_track" and not parts:
            parts.append("mt")
            i += 1
            continue
        domain = _LOM_KEY_DOMAIN.get(key)
        if domain is None or i + 1 >= len(words) or not _INDEX_RE.match(words[i + 1]):
            return None
        if domain.is_track != (not parts):
            return None
        parts.append(f"{domain.prefix}{words[i + 1]}")
        i += 2

    return "/".join(parts) if parts else None


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def build_container_path(device_path: str, index: int) -> str:
    """``build_container_path("t1/d0", 2)`` → ``"t1/d0/c2"``."""
    return f"{device_path}/c{index}"


def build_return_container_path(device_path: str, index: int) -> str:
    """``build_return_container_path("t1/d0", 0)`` → ``"t1/d0/rc0"``."""
    return f"{device_path}/rc{index}"


def pad_label(pitch: int | str) -> str:
    """Pad selector text: MIDI number or pitch name → ``"C1"``; -1 or ``"*"`` → ``"*"``."""
    if pitch == "*" or pitch == UNASSIGNED_PITCH:
        return "*"
    if isinstance(pitch, int):
        name = number_to_pitch_name(pitch)
        if name is None:
            raise MalformedInputError(f"Invalid drum pad pitch {pitch}")
        return name
    name = normalize_pitch_name(pitch)
    if name is None:
        raise MalformedInputError(f'Invalid drum pad note "{pitch}"')
    return name


def build_pad_path(device_path: str, pitch: int | str, container_index: int | None = None) -> str:
    """Build a pad path, optionally down to one of its containers.

    ``build_pad_path("t1/d0", "C1", 1)`` → ``"t1/d0/pC1/c1"``;
    ``build_pad_path("t1/d0", "*")`` → ``"t1/d0/p*"``.
    """
    path = f"{device_path}/p{pad_label(pitch)}"
    if container_index is not None:
        path = f"{path}/c{container_index}"
    return path
