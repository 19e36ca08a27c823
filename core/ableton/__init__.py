"""core/ableton — Addressing and editing the Live object graph.

Everything here talks to Live only through the ``LiveGraph`` protocol in
graph.py, so the whole package runs against the in-memory fake in tests.

    pitch     pitch names ↔ MIDI note numbers
    paths     compact path grammar (t1/d0/pC1/c0)
    resolver  ids and paths → targets, insertion points
    pads      drum pad lookup and whole-pad moves
    batch     comma-separated targets, best effort
    params    parameter values in display units
    reader    JSON snapshots of devices, containers and pads
    wrap      grouping devices into a new rack
    update    property updates, moves and wraps for a batch

The WebSocket implementation of ``LiveGraph`` lives in ingestion/live_bridge.py.
"""
