import math

import pytest

from phic_chart.errors import CompileError
from phic_chart.formats.pec_impl import PEC_SPEED_SCALE, parse_pec
from phic_chart.types import ChartFormat, NoteKind


def test_minimal_chart(pec_text):
    chart = parse_pec(pec_text("n1 0 1.000 512.000 1 0", "# 1.00", "& 1.00", offset="250"))
    assert chart.format == ChartFormat.PEC
    assert chart.offset == pytest.approx(0.25)
    (note,) = chart.lines[0].notes_above
    assert note.kind == NoteKind.TAP
    assert note.time == pytest.approx(0.5)
    assert note.object.now_translation == pytest.approx((0.5, 0.0))
    # no cv: speed 1.0
    assert note.height == pytest.approx(PEC_SPEED_SCALE * 0.5)


def test_note_kinds_sides_and_modifiers(pec_text):
    chart = parse_pec(
        pec_text(
            "n2 0 1 2 0 1 0",
            "# 2.5",
            "n3 0 1 0 2 1",
            "& 1.5",
            "n4 1 3 -1024 1 0",
        )
    )
    hold, flick = chart.lines[0].notes_above + chart.lines[0].notes_below
    assert hold.kind == NoteKind.HOLD
    assert hold.end_time == pytest.approx(1.0)
    assert hold.speed == 2.5
    assert flick.kind == NoteKind.FLICK
    assert flick.fake
    assert flick in chart.lines[0].notes_below
    assert flick.object.now_scale_xy == (1.5, 1.0)
    (drag,) = chart.lines[1].notes_above
    assert drag.kind == NoteKind.DRAG
    assert drag.object.now_translation[0] == pytest.approx(-1.0)


def test_instant_and_timed_events(pec_text):
    chart = parse_pec(
        pec_text(
            "cp 0 0 1024 700",
            "cd 0 0 90",
            "ca 0 0 0",
            "cm 0 1 2 2048 1400 1",
            "cf 0 1 2 255",
            "cr 0 1 2 0 1",
        )
    )
    obj = chart.lines[0].object
    obj.set_time(0.25)
    assert obj.now_translation == pytest.approx((0.0, 0.0))
    assert obj.now_rotation == pytest.approx(-math.pi / 2)
    assert obj.now_alpha == 0.0
    obj.set_time(0.75)
    assert obj.now_translation == pytest.approx((0.5, 0.5))
    assert obj.now_alpha == pytest.approx(0.5)
    assert obj.now_rotation == pytest.approx(-math.pi / 4)
    obj.set_time(5.0)
    assert obj.now_translation == pytest.approx((1.0, 1.0))


def test_speed_changes_move_the_floor(pec_text):
    chart = parse_pec(pec_text("cv 0 0 2", "cv 0 1 4", "n1 0 2 0 1 0"))
    (note,) = chart.lines[0].notes_above
    # 0.5 s at speed 2, then 0.5 s at speed 4
    assert note.height == pytest.approx((2 * 0.5 + 4 * 0.5) * PEC_SPEED_SCALE)


def test_events_are_applied_in_beat_order(pec_text):
    chart = parse_pec(pec_text("cp 0 2 2048 700", "cp 0 0 0 700"))
    obj = chart.lines[0].object
    obj.set_time(0.5)
    assert obj.now_translation[0] == pytest.approx(-1.0)
    obj.set_time(1.0)
    assert obj.now_translation[0] == pytest.approx(1.0)


def test_snap_during_a_running_motion(pec_text):
    chart = parse_pec(pec_text("cm 0 0 4 2048 1400 1", "cp 0 2 1024 700", "n1 0 1 0 1 0"))
    obj = chart.lines[0].object
    obj.set_time(0.5)
    assert obj.now_translation == pytest.approx((0.25, 0.25))
    obj.set_time(1.0)
    assert obj.now_translation == pytest.approx((0.0, 0.0))
    obj.set_time(3.0)
    assert obj.now_translation == pytest.approx((0.0, 0.0))


def test_chained_motions_start_where_the_line_is(pec_text):
    chart = parse_pec(pec_text("cm 0 0 4 2048 1400 1", "cm 0 2 6 0 0 1"))
    obj = chart.lines[0].object
    obj.set_time(1.0)
    assert obj.now_translation == pytest.approx((0.5, 0.5))
    obj.set_time(2.0)
    assert obj.now_translation == pytest.approx((-0.25, -0.25))
    obj.set_time(4.0)
    assert obj.now_translation == pytest.approx((-1.0, -1.0))


def test_bpm_changes(pec_text):
    chart = parse_pec(pec_text("bp 4 60", "n1 0 5 0 1 0"))
    assert chart.lines[0].notes_above[0].time == pytest.approx(3.0)


@pytest.mark.parametrize(
    "body",
    [
        ("# 2.0",),
        ("& 2.0",),
        ("xx 0 1",),
        ("cp 0 0 1",),
        ("n1 0 1 0 1",),
        ("n1 -1 1 0 1 0",),
        ("n2 0 2 1 0 1 0",),
        ("cm 0 0 1 0 0 99",),
        ("n1 0 1 0 1 0", "# fast"),
    ],
)
def test_bad_commands_fail(pec_text, body):
    with pytest.raises(CompileError):
        parse_pec(pec_text(*body))


def test_bad_headers_fail(pec_text):
    with pytest.raises(CompileError, match="empty"):
        parse_pec("")
    with pytest.raises(CompileError, match="offset"):
        parse_pec(pec_text(offset="0 1"))
    with pytest.raises(CompileError, match="BPM"):
        parse_pec("0\nn1 0 1 0 1 0\n")
