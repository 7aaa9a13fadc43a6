"""
Structure engine.

Turns a user's decision/result events into Arcs and Phases, hashes the
resulting structure, and records a snapshot plus minimal pulses only when
the hash changes. Work is driven by a debounced job queue.
"""

__version__ = "0.1.0"
