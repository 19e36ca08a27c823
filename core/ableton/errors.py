"""core/ableton/errors.py — Typed failures for graph addressing and value codecs.

Taxonomy
────────
``MalformedInputError``
    The caller sent something syntactically wrong (bad path, bad pitch name,
    invalid JSON).  Always raised; the call is aborted.

``NotFoundError``
    Valid syntax, nothing at that address.  Batch operations never raise this;
    they record it per item and continue.

``NotApplicableError``
    The property exists in general but means nothing for this node kind
    (e.g. colour on a pad).  The property is skipped, the others still apply.

``ValueNotMatchedError``
    A caller value could not be mapped onto the parameter (enum label not in
    the option list, division label not produced by any raw step).  The raw
    value is left unchanged.

``IncompatibleDevicesError``
    Rack wrapping was asked to mix audio and MIDI effects.
"""

from __future__ import annotations


class LiveGraphError(Exception):
    """Base class for every failure raised by ``core.ableton``."""


class MalformedInputError(LiveGraphError, ValueError):
    """Bad path, pitch or JSON syntax supplied by the caller."""


class NotFoundError(LiveGraphError, LookupError):
    """No node exists at a syntactically valid address."""


class NotApplicableError(LiveGraphError):
    """Property is meaningless for the target's node kind."""


class ValueNotMatchedError(LiveGraphError, ValueError):
    """A caller value could not be encoded for the parameter."""


class IncompatibleDevicesError(NotApplicableError):
    """Devices with incompatible roles cannot share one rack."""
