import pytest

from phic_chart.errors import CompileError
from phic_chart.io.chart_info import ChartInfo, load_chart_info, parse_info_yml
from phic_chart.types import ChartFormat

INFO = """\
# chart folder metadata
name: "Spasmodic"   # quoted
level: IN Lv.15
charter: someone
chart: chart.pec
format: pec
aspect-ratio: 1.5
intro:
tags: [hard, "stream"]
"""


def test_defaults():
    info = ChartInfo()
    assert info.name == "UK"
    assert info.level == "UK Lv.?"
    assert info.chart == "chart.json"
    assert info.music == "song.mp3"
    assert info.illustration == "background.png"
    assert info.aspect_ratio == pytest.approx(16 / 9)
    assert info.tags == []


def test_load_info():
    info = load_chart_info(INFO)
    assert info.name == "Spasmodic"
    assert info.level == "IN Lv.15"
    assert info.chart == "chart.pec"
    assert info.chart_format() == ChartFormat.PEC
    assert info.aspect_ratio == 1.5
    assert info.intro == ""
    assert info.composer == "UK"
    assert info.tags == ["hard", "stream"]


def test_block_lists_and_unknown_keys():
    info = load_chart_info("tags:\n  - a\n  - 3\nsomething-else: 1\n")
    assert info.tags == ["a", "3"]


def test_scalar_parsing():
    data = parse_info_yml("a: true\nb: 2\nc: 2.5\nd: 'x # y'\ne: ~\n")
    assert data == {"a": True, "b": 2, "c": 2.5, "d": "x # y", "e": None}


def test_format_is_required_to_load_the_chart():
    with pytest.raises(CompileError, match="format"):
        load_chart_info("name: x\n").chart_format()
    with pytest.raises(CompileError):
        load_chart_info("format: osu\n")


@pytest.mark.parametrize("text", ["- stray\n", "just words\n", "aspect-ratio: wide\n"])
def test_malformed_info(text):
    with pytest.raises(CompileError):
        load_chart_info(text)
