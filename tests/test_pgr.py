import math

import pytest

from phic_chart.errors import CompileError
from phic_chart.formats.pgr_impl import PGR_HEIGHT_UNIT, PGR_X_UNIT, official_unit_sec, parse_pgr
from phic_chart.types import ChartFormat, NoteKind

UNIT = official_unit_sec(120.0)


def test_minimal_chart(pgr_text):
    chart = parse_pgr(pgr_text())
    assert chart.format == ChartFormat.PGR
    (note,) = chart.lines[0].notes_above
    assert note.kind == NoteKind.TAP
    assert note.time == pytest.approx(0.5)
    assert note.height == pytest.approx(0.5 * PGR_HEIGHT_UNIT)


def test_note_types_position_and_sides(pgr_text):
    above = [
        {"type": 2, "time": 0, "positionX": 2.0},
        {"type": 4, "time": 64, "positionX": -1.0},
    ]
    below = [{"type": 1, "time": 16}]
    line = parse_pgr(pgr_text(above=above, below=below)).lines[0]
    drag, flick = line.notes_above
    assert drag.kind == NoteKind.DRAG
    assert flick.kind == NoteKind.FLICK
    assert drag.object.now_translation == pytest.approx((2.0 * PGR_X_UNIT, 0.0))
    assert flick.object.now_translation[0] == pytest.approx(-PGR_X_UNIT)
    assert [n.time for n in line.notes_below] == [pytest.approx(16 * UNIT)]


def test_hold_height_uses_its_own_speed(pgr_text):
    above = [{"type": 3, "time": 32, "holdTime": 32, "speed": 2.0}]
    (hold,) = parse_pgr(pgr_text(above=above)).lines[0].notes_above
    assert hold.is_hold
    assert hold.end_time == pytest.approx(1.0)
    assert hold.speed == 1.0
    assert hold.end_height - hold.height == pytest.approx(2.0 * 0.5 * PGR_HEIGHT_UNIT)


def test_version_3_events(pgr_text):
    chart = parse_pgr(
        pgr_text(
            judgeLineMoveEvents=[{"startTime": 0, "endTime": 64, "start": 0.5, "end": 1.0, "start2": 0.5, "end2": 0.0}],
            judgeLineRotateEvents=[{"startTime": 0, "endTime": 64, "start": 0.0, "end": 90.0}],
            judgeLineDisappearEvents=[{"startTime": 0, "endTime": 64, "start": 0.0, "end": 1.0}],
            speedEvents=[
                {"startTime": 0, "endTime": 32, "value": 1.0},
                {"startTime": 32, "endTime": 1000000, "value": 3.0},
            ],
        )
    )
    line = chart.lines[0]
    line.object.set_time(0.5)
    assert line.object.now_translation == pytest.approx((0.5, -0.5))
    assert line.object.now_rotation == pytest.approx(math.pi / 4)
    assert line.object.now_alpha == pytest.approx(0.5)
    assert line.height.evaluate(1.0) == pytest.approx((0.5 + 3.0 * 0.5) * PGR_HEIGHT_UNIT)


def test_version_1_packs_positions(pgr_text):
    packed = 440 * 1000 + 390
    chart = parse_pgr(
        pgr_text(version=1, judgeLineMoveEvents=[{"startTime": 0, "endTime": 10, "start": packed, "end": packed}])
    )
    obj = chart.lines[0].object
    obj.set_time(0.0)
    assert obj.now_translation == pytest.approx((0.0, 0.5))


def test_overlapping_speed_events_cut_the_running_one(pgr_text):
    chart = parse_pgr(
        pgr_text(
            speedEvents=[
                {"startTime": 0, "endTime": 64, "value": 1.0},
                {"startTime": 32, "endTime": 1000000, "value": 3.0},
            ]
        )
    )
    height = chart.lines[0].height
    assert height.evaluate(0.5) == pytest.approx(0.5 * PGR_HEIGHT_UNIT)
    assert height.evaluate(1.0) == pytest.approx((0.5 + 3.0 * 0.5) * PGR_HEIGHT_UNIT)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"version": 2},
        {"bpm": 0},
        {"above": [{"type": 7, "time": 0}]},
        {"above": [{"type": 3, "time": 0, "holdTime": -1}]},
        {"speedEvents": [{"startTime": 10, "endTime": 5, "value": 1}]},
        {"judgeLineMoveEvents": [{"startTime": 0, "endTime": 1, "start": 0.5}]},
    ],
)
def test_bad_charts_fail(pgr_text, kwargs):
    with pytest.raises(CompileError):
        parse_pgr(pgr_text(**kwargs))


def test_missing_line_list():
    with pytest.raises(CompileError, match="judgeLineList"):
        parse_pgr('{"formatVersion": 3}')
