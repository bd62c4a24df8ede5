"""Chart playback session.

A ChartSession owns one JudgeLineRuntime per line of a compiled chart and
drives them frame by frame: ``update(t)`` advances every curve, ``render``
emits draw primitives to a canvas. Sessions share nothing, so several charts
can play side by side.
"""

from __future__ import annotations

import heapq
import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple

import numpy as np

from ..config.schema import RenderConfig
from ..engine.line_runtime import JudgeLineRuntime
from ..errors import RuntimeInvariantViolation
from ..math.transform import ScopedTransformStack, rotation, transform_point, translation
from ..types import Chart, Note


class ChartSession:
    def __init__(self, chart: Chart, config: Optional[RenderConfig] = None):
        if not chart.hints_annotated:
            raise RuntimeInvariantViolation("chart has not been through the multi-hint pass")
        self.chart = chart
        self.config = config or RenderConfig()
        self.runtimes: List[JudgeLineRuntime] = [
            JudgeLineRuntime(line, self.config, i) for i, line in enumerate(chart.lines)
        ]
        self.time: Optional[float] = None
        self._logger = logging.getLogger(self.__class__.__name__)
        self._logger.info("session: %d lines, %d notes", len(self.runtimes), chart.note_count())

    def update(self, t: float) -> None:
        for rt in self.runtimes:
            rt.update(t)
        self.time = t

    def placements(self) -> List[np.ndarray]:
        """World translation+rotation of every line with fathers composed in."""
        lines = self.chart.lines
        out: Dict[int, np.ndarray] = {}
        visiting = set()

        def place(i: int) -> np.ndarray:
            if i in out:
                return out[i]
            if i in visiting:
                raise RuntimeInvariantViolation(f"father cycle through line {i}")
            visiting.add(i)
            line = lines[i]
            own = line.object.now()
            f = line.father
            if f < 0:
                m = own
            elif f >= len(lines):
                raise RuntimeInvariantViolation(f"line {i} has father {f} out of range")
            else:
                parent = place(f)
                if line.rotate_with_father:
                    m = parent @ own
                else:
                    x, y = transform_point(parent, *line.object.now_translation)
                    m = translation(x, y) @ rotation(line.object.now_rotation)
            visiting.discard(i)
            out[i] = m
            return m

        return [place(i) for i in range(len(lines))]

    def render(self, canvas: Any, stack: Optional[ScopedTransformStack] = None) -> None:
        if self.time is None:
            raise RuntimeInvariantViolation("render called before update")
        stack = stack or ScopedTransformStack()
        depth = stack.depth
        for rt, placement in zip(self.runtimes, self.placements()):
            rt.render(canvas, stack, placement)
        if stack.depth != depth:
            raise RuntimeInvariantViolation(f"transform stack depth {stack.depth} after render, expected {depth}")

    def note_stream(self, lid: int) -> List[Note]:
        """Notes of one line in time order."""
        return self.runtimes[lid].line.sorted_notes()

    def judge_stream(self, real_only: bool = False) -> Iterator[Tuple[int, Note]]:
        """Notes of every line as ``(line index, note)``, merged by time.

        Ties keep line order, then parse order within a line.
        """
        streams = [
            [(lid, n) for n in self.note_stream(lid) if not (real_only and n.fake)]
            for lid in range(len(self.runtimes))
        ]
        return heapq.merge(*streams, key=lambda item: item[1].time)
