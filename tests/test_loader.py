import pytest

from phic_chart.errors import CompileError
from phic_chart.io import chart_loader_impl
from phic_chart.io.chart_info import load_chart_info
from phic_chart.io.chart_loader_impl import chart_summary, compile_chart, decode_chart_text
from phic_chart.types import ChartFormat


def test_same_chart_in_every_format(rpe_text, pec_text, pgr_text):
    charts = [
        compile_chart(rpe_text(), "rpe"),
        compile_chart(pec_text("n1 0 1 0 1 0"), ChartFormat.PEC),
        compile_chart(pgr_text(), "PGR"),
    ]
    for chart in charts:
        assert chart.hints_annotated
        (note,) = [n for line in chart.lines for n in line.all_notes()]
        assert note.time == pytest.approx(0.5)
        assert note.fake is False
        assert note.multiple_hint is False


def test_bytes_with_bom_are_accepted(pec_text):
    raw = b"\xef\xbb\xbf" + pec_text("n1 0 1 0 1 0", "n1 0 1 0 1 0").encode("utf-8")
    chart = compile_chart(raw, "pec")
    assert [n.multiple_hint for n in chart.lines[0].notes_above] == [True, True]
    assert decode_chart_text("\ufeff0") == "0"


def test_format_is_never_guessed(rpe_text):
    with pytest.raises(CompileError, match="unknown chart format"):
        compile_chart(rpe_text(), "json")


def test_undecodable_bytes():
    with pytest.raises(CompileError, match="UTF-8"):
        compile_chart(b"\xff\xfe\x00", "pec")


def test_stray_parser_errors_become_compile_errors(monkeypatch):
    def broken(text, **kw):
        return {}["judgeLineList"]

    monkeypatch.setitem(chart_loader_impl.PARSERS, ChartFormat.RPE, broken)
    with pytest.raises(CompileError) as info:
        compile_chart("{}", "rpe")
    assert isinstance(info.value.__cause__, KeyError)
    assert info.value.fmt == "rpe"


def test_summary(pgr_text):
    above = [{"type": 1, "time": 32}, {"type": 3, "time": 32, "holdTime": 64}]
    s = chart_summary(compile_chart(pgr_text(above=above), "pgr"))
    assert s["format"] == "pgr"
    assert s["lines"] == 1
    assert s["notes"] == 2
    assert s["multiple_hint"] == 2
    assert s["last_time"] == pytest.approx(1.5)


def test_format_from_chart_info(pec_text):
    info = load_chart_info("name: demo\nchart: chart.pec\nformat: pec\n")
    chart = compile_chart(pec_text("n1 0 1 0 1 0"), info.chart_format())
    assert chart.format == ChartFormat.PEC
