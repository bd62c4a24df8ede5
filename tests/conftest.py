from __future__ import annotations

import json
import os

import pytest

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

from phic_chart.engine.multi_hint import annotate_multiple_hints
from phic_chart.types import Chart, ChartFormat, JudgeLine, Note, NoteKind


@pytest.fixture
def rpe_text():
    """RPE chart at 120 BPM: beat 1 is 0.5 s."""

    def make(notes=None, layer=None, lines=None, bpm=120.0, offset=0, **line_extra):
        if layer is None:
            layer = {
                "speedEvents": [{"startTime": [0, 0, 1], "endTime": [1, 0, 1], "start": 10.0, "end": 10.0}],
            }
        if notes is None:
            notes = [{"type": 1, "startTime": [1, 0, 1], "endTime": [1, 0, 1], "positionX": 0.0, "above": 1, "isFake": 0}]
        if lines is None:
            line = {"eventLayers": [layer], "notes": notes}
            line.update(line_extra)
            lines = [line]
        doc = {
            "META": {"offset": offset},
            "BPMList": [{"startTime": [0, 0, 1], "bpm": bpm}],
            "judgeLineList": lines,
        }
        return json.dumps(doc)

    return make


@pytest.fixture
def pgr_text():
    """Official chart at 120 BPM: 32 time units are 0.5 s."""

    def make(above=None, below=None, version=3, bpm=120.0, **line_extra):
        if above is None:
            above = [{"type": 1, "time": 32, "positionX": 0.0, "holdTime": 0.0, "speed": 1.0, "floorPosition": 0.0}]
        line = {
            "bpm": bpm,
            "notesAbove": above,
            "notesBelow": below or [],
            "speedEvents": [{"startTime": 0.0, "endTime": 1000000.0, "value": 1.0}],
            "judgeLineMoveEvents": [],
            "judgeLineRotateEvents": [],
            "judgeLineDisappearEvents": [],
        }
        line.update(line_extra)
        return json.dumps({"formatVersion": version, "offset": 0.0, "judgeLineList": [line]})

    return make


@pytest.fixture
def pec_text():
    def make(*body, offset="0", bpm="bp 0.000 120.000"):
        return "\n".join([offset, bpm, *body]) + "\n"

    return make


@pytest.fixture
def make_chart():
    """Chart from ``{line index: [Note, ...]}``, already annotated."""

    def make(notes_per_line, annotate=True):
        lines = [JudgeLine(notes_above=list(notes)) for notes in notes_per_line]
        chart = Chart(format=ChartFormat.RPE, lines=lines)
        if annotate:
            annotate_multiple_hints(chart)
        return chart

    return make


def tap(t, fake=False, **kw):
    return Note(kind=NoteKind.TAP, time=t, fake=fake, **kw)


@pytest.fixture
def note():
    return tap
