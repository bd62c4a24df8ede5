"""Simultaneous-note detection.

Marks notes that share a timestamp with other notes anywhere in the chart so
the renderer can cue the player to hit them together.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Tuple, Union

from ..types import Chart, JudgeLine, Note

logger = logging.getLogger(__name__)


def time_tally(orders: Iterable[List[Note]]) -> Dict[float, Tuple[int, int]]:
    """timestamp -> (total notes, non-fake notes) over every line."""
    counts: Dict[float, List[int]] = defaultdict(lambda: [0, 0])
    for order in orders:
        for note in order:
            c = counts[note.time]
            c[0] += 1
            if not note.fake:
                c[1] += 1
    return {t: (c[0], c[1]) for t, c in counts.items()}


def annotate_multiple_hints(chart: Union[Chart, List[JudgeLine]]) -> int:
    """Set ``multiple_hint`` on every note of the chart; returns how many were flagged.

    A timestamp shared by two or more notes flags its fake notes, and flags
    its real notes only when at least two of the notes there are real. One
    real note next to fakes therefore stays unflagged while the fakes are.
    """
    lines = chart.lines if isinstance(chart, Chart) else list(chart)
    orders = [line.sorted_notes() for line in lines]
    tally = time_tally(orders)

    flagged = 0
    for order in orders:
        for note in order:
            total, real = tally[note.time]
            hint = total >= 2 and (real >= 2 or note.fake)
            note.multiple_hint = hint
            flagged += hint

    if isinstance(chart, Chart):
        chart.hints_annotated = True
    logger.debug(
        "multi-hint: %d of %d notes flagged at %d shared timestamps",
        flagged,
        sum(len(o) for o in orders),
        sum(1 for total, _real in tally.values() if total >= 2),
    )
    return flagged
