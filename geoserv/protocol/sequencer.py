"""Packet sequence tracking and generation of handshake sequence bytes."""

from __future__ import annotations

import random

CHAR_MAX = 253
"""Largest value a single encoded EO char can hold, plus one."""

_SEQUENCE_WINDOW = 10

_rng = random.Random()


class Sequencer:
    """Tracks the expected sequence number of incoming packets.

    The sequence is ``start + counter`` where the counter cycles from 0 to 9.
    """

    def __init__(self) -> None:
        self._start = 0
        self._counter = 0

    def next_sequence(self) -> int:
        """Return the next expected sequence value and advance the counter."""
        result = self._start + self._counter
        self._counter = (self._counter + 1) % _SEQUENCE_WINDOW
        return result

    def peek_next_sequence(self) -> int:
        """Return the next sequence value without advancing the counter."""
        return self._start + self._counter

    def peek_next_sequence_with_start(self, start: int) -> int:
        """Return the next sequence value for ``start`` without changing state."""
        return start + self._counter

    def set_start(self, start: int) -> None:
        """Set the sequence start; the counter is left untouched."""
        self._start = start

    def reset(self, start: int) -> None:
        """Set the sequence start and restart the counter at zero."""
        self._start = start
        self._counter = 0

    def start(self) -> int:
        """Return the current sequence start."""
        return self._start


def generate_init_sequence_bytes() -> tuple[int, int, int]:
    """Return ``(seq1, seq2, start)`` for the init handshake.

    The client decodes the start as ``seq1 * 7 + seq2 - 13``.
    """
    value = _rng.randrange(CHAR_MAX - 9)
    seq1_max = (value + 13) // 7
    seq1_min = max(0, int((value - (CHAR_MAX - 1) + 13 + 6) / 7))

    diff = seq1_max - seq1_min
    if diff <= 0:
        diff = 1
    seq1 = _rng.randrange(diff) + seq1_min
    seq2 = value - seq1 * 7 + 13
    return seq1, seq2, value


def generate_ping_sequence_bytes() -> tuple[int, int, int]:
    """Return ``(seq1, seq2, start)`` for a ping packet.

    The client decodes the start as ``seq1 - seq2``.
    """
    value = _rng.randrange(CHAR_MAX - 9)
    seq1 = value + _rng.randrange(CHAR_MAX - 1)
    seq2 = seq1 - value
    return seq1, seq2, value


def generate_swap_multiple_value() -> int:
    """Return a random encryption multiple in the range 6 to 12 inclusive."""
    return _rng.randint(6, 12)