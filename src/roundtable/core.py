"""Shared constants and arithmetic for the roundtable programme.

A roundtable always runs over a fixed grid: ten candidate topics, ten
sessions, eight topics surviving the vote.  Sessions 1 and 10 are the
introduction and conclusion slots and never carry a topic; sessions 2-9 carry
the finalised topics.
"""

from __future__ import annotations

TOPIC_COUNT = 10
SESSION_COUNT = 10
SELECTION_SIZE = 8

INTRO_SESSION = 1
CLOSING_SESSION = SESSION_COUNT
TOPIC_SESSIONS = tuple(range(INTRO_SESSION + 1, CLOSING_SESSION))


def percentage(part: int, whole: int) -> int:
    """Return ``part / whole`` as a whole percentage, halves rounded up.

    Integer arithmetic keeps ``1/8 -> 13`` exact where ``round()`` would
    produce banker's rounding on a float.
    """

    if whole <= 0:
        return 0
    return (200 * part + whole) // (2 * whole)

