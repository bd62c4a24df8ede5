from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Optional, Union

from ..config.schema import CompileConfig
from ..engine.multi_hint import annotate_multiple_hints
from ..errors import CompileError
from ..formats.pec_impl import parse_pec
from ..formats.pgr_impl import parse_pgr
from ..formats.rpe_impl import AssetResolver, parse_rpe
from ..types import Chart, ChartFormat

logger = logging.getLogger(__name__)

PARSERS: Dict[ChartFormat, Callable[..., Chart]] = {
    ChartFormat.RPE: parse_rpe,
    ChartFormat.PEC: parse_pec,
    ChartFormat.PGR: parse_pgr,
}


def decode_chart_text(source: Union[str, bytes, bytearray]) -> str:
    if isinstance(source, (bytes, bytearray)):
        try:
            return bytes(source).decode("utf-8-sig")
        except UnicodeDecodeError as err:
            raise CompileError(f"chart is not UTF-8: {err}") from err
    return str(source).lstrip("\ufeff")


def compile_chart(
    source: Union[str, bytes, bytearray],
    fmt: Union[ChartFormat, str],
    *,
    config: Optional[CompileConfig] = None,
    assets: Optional[AssetResolver] = None,
) -> Chart:
    """Parse one chart and annotate it; the result is ready for a ChartSession.

    The format is never guessed: read it from the chart folder's info.yml with
    ``io.chart_info.load_chart_info(text).chart_format()``. Any failure raises
    CompileError and nothing is returned. Hosts call
    ``logging_setup.setup_logging()`` once to see the loader's log lines.
    """
    try:
        fmt = ChartFormat.parse(fmt)
    except ValueError as err:
        raise CompileError(str(err)) from None

    text = decode_chart_text(source)
    parser = PARSERS[fmt]
    try:
        chart = parser(text, config=config or CompileConfig(), assets=assets)
    except CompileError:
        raise
    except (ValueError, KeyError, TypeError, IndexError, json.JSONDecodeError) as err:
        raise CompileError(f"malformed chart: {err!r}", fmt=fmt.value) from err

    flagged = annotate_multiple_hints(chart)
    logger.info(
        "compiled %s chart: %d lines, %d notes (%d multi-hint)",
        fmt.value,
        len(chart.lines),
        chart.note_count(),
        flagged,
    )
    return chart


def chart_summary(chart: Chart) -> Dict[str, Any]:
    notes = [n for ln in chart.lines for n in ln.all_notes()]
    return {
        "format": chart.format.value,
        "offset": chart.offset,
        "lines": len(chart.lines),
        "notes": len(notes),
        "fake": sum(1 for n in notes if n.fake),
        "multiple_hint": sum(1 for n in notes if n.multiple_hint),
        "last_time": max((n.finish_time for n in notes), default=0.0),
    }
