from __future__ import annotations

import json
import logging
import math
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..config.schema import CompileConfig
from ..errors import CompileError
from ..math.curves import AnimFloat, AnimVector, KeyframeBuilder
from ..math.easing import LINEAR
from ..types import AnimatedObject, Chart, ChartFormat, JudgeLine, Note, NoteKind
from .timing import check_keys, check_list, integer, integrate_speed, num

logger = logging.getLogger(__name__)

FMT = ChartFormat.PGR.value

SUPPORTED_VERSIONS = (1, 3)
# one floorPosition unit is 0.6 of the screen height; the screen is 2 units tall
PGR_HEIGHT_UNIT = 1.2
# positionX unit is 0.05625 of the screen width; the screen is 2 units wide
PGR_X_UNIT = 0.1125

_NOTE_KINDS = {1: NoteKind.TAP, 2: NoteKind.DRAG, 3: NoteKind.HOLD, 4: NoteKind.FLICK}


def official_unit_sec(bpm: float) -> float:
    return 1.875 / bpm


def _events(jl: Dict[str, Any], key: str, where: str) -> List[Dict[str, Any]]:
    evs = []
    for k, e in enumerate(check_list(jl.get(key), key, fmt=FMT, where=where)):
        w = f"{where}.{key}[{k}]"
        check_keys(e, "event", fmt=FMT, where=w)
        for field in ("startTime", "endTime"):
            if field not in e:
                raise CompileError(f"event needs {field}", fmt=FMT, where=w)
        evs.append((num(e["startTime"], "startTime", fmt=FMT, where=w), k, e, w))
    # stable: same start keeps file order
    evs.sort(key=lambda x: x[0])
    return [(e, w) for _s, _k, e, w in evs]


def _linear_curve(
    evs,
    unit: float,
    *,
    initial: float,
    value: Callable[[Dict[str, Any], str, str], float],
    what: str,
) -> AnimFloat:
    b = KeyframeBuilder(initial, fmt=FMT, what=what)
    for e, w in evs:
        b.what = w
        t0 = num(e["startTime"], "startTime", fmt=FMT, where=w) * unit
        t1 = num(e["endTime"], "endTime", fmt=FMT, where=w) * unit
        b.ramp(t0, t1, value(e, "start", w), value(e, "end", w), LINEAR)
    return b.build()


def _field(conv: Callable[[float], float]):
    def get(e: Dict[str, Any], key: str, w: str) -> float:
        if key not in e:
            raise CompileError(f"event needs {key}", fmt=FMT, where=w)
        return conv(num(e[key], key, fmt=FMT, where=w))
    return get


def _unpack_v1(v: float) -> Tuple[float, float]:
    # formatVersion 1 packs x * 880 and y * 520 into one number as xxxyyy
    return (v // 1000) / 880.0, (v % 1000) / 520.0


def _move_curves(evs, unit: float, fmt_ver: int, where: str) -> AnimVector:
    if fmt_ver == 3:
        x = _field(lambda v: v * 2.0 - 1.0)
        y = _field(lambda v: v * 2.0 - 1.0)
        xs = _linear_curve(evs, unit, initial=0.0, value=x, what=f"{where} x")
        ys = _linear_curve(evs, unit, initial=0.0, value=lambda e, key, w: y(e, key + "2", w), what=f"{where} y")
        return AnimVector(xs, ys)

    def packed(axis: int):
        def get(e, key, w):
            if key not in e:
                raise CompileError(f"event needs {key}", fmt=FMT, where=w)
            return _unpack_v1(num(e[key], key, fmt=FMT, where=w))[axis] * 2.0 - 1.0
        return get

    xs = _linear_curve(evs, unit, initial=0.0, value=packed(0), what=f"{where} x")
    ys = _linear_curve(evs, unit, initial=0.0, value=packed(1), what=f"{where} y")
    return AnimVector(xs, ys)


def _speed_points(evs, unit: float) -> List[Tuple[float, float]]:
    pts: List[Tuple[float, float]] = []
    for e, w in evs:
        t0 = num(e["startTime"], "startTime", fmt=FMT, where=w) * unit
        t1 = num(e["endTime"], "endTime", fmt=FMT, where=w) * unit
        if t1 < t0:
            raise CompileError("speed event ends before it starts", fmt=FMT, where=w)
        if pts and t0 < pts[-1][0]:
            # a speed event that starts early cuts the running one short
            while pts and pts[-1][0] > t0:
                pts.pop()
            if pts and pts[-1][0] < t0:
                pts.append((t0, pts[-1][1]))
        v = num(e.get("value"), "value", fmt=FMT, where=w)
        pts.append((t0, v))
        pts.append((t1, v))
    return pts


def _parse_note(n: Any, unit: float, height: AnimFloat, where: str) -> Note:
    check_keys(n, "note", fmt=FMT, where=where)
    tp = integer(n.get("type"), "note type", fmt=FMT, where=where)
    kind = _NOTE_KINDS.get(tp)
    if kind is None:
        raise CompileError(f"unknown note type {tp}", fmt=FMT, where=where)
    t = num(n.get("time"), "time", fmt=FMT, where=where) * unit
    x = num(n.get("positionX", 0.0), "positionX", fmt=FMT, where=where) * PGR_X_UNIT
    speed = num(n.get("speed", 1.0), "speed", fmt=FMT, where=where)
    h = height.evaluate(t)

    end_time = end_height = None
    if kind == NoteKind.HOLD:
        hold = num(n.get("holdTime", 0.0), "holdTime", fmt=FMT, where=where)
        if hold < 0:
            raise CompileError(f"negative holdTime {hold}", fmt=FMT, where=where)
        end_time = t + hold * unit
        # a hold's speed is the speed of its own tail; the head follows the line
        end_height = h + speed * (end_time - t) * PGR_HEIGHT_UNIT
        speed = 1.0

    return Note(
        kind=kind,
        time=t,
        height=h,
        speed=speed,
        end_time=end_time,
        end_height=end_height,
        object=AnimatedObject(translation=AnimVector.constant(x, 0.0)),
    )


def _parse_line(jl: Any, lid: int, fmt_ver: int, config: CompileConfig) -> JudgeLine:
    where = f"judgeLineList[{lid}]"
    check_keys(jl, "judge line", fmt=FMT, where=where)
    bpm = num(jl.get("bpm"), "bpm", fmt=FMT, where=where)
    if bpm <= 0:
        raise CompileError(f"bpm must be positive, got {bpm}", fmt=FMT, where=where)
    unit = official_unit_sec(bpm)

    translation = _move_curves(_events(jl, "judgeLineMoveEvents", where), unit, fmt_ver, f"{where}.judgeLineMoveEvents")
    rotation = _linear_curve(
        _events(jl, "judgeLineRotateEvents", where), unit,
        initial=0.0, value=_field(math.radians), what=f"{where}.judgeLineRotateEvents",
    )
    alpha = _linear_curve(
        _events(jl, "judgeLineDisappearEvents", where), unit,
        initial=1.0, value=_field(float), what=f"{where}.judgeLineDisappearEvents",
    )
    height = integrate_speed(
        _speed_points(_events(jl, "speedEvents", where), unit),
        scale=PGR_HEIGHT_UNIT,
        subdivisions=config.height_subdivisions,
    )

    line = JudgeLine(
        object=AnimatedObject(translation=translation, rotation=rotation, alpha=alpha),
        height=height,
    )
    for key, dst in (("notesAbove", line.notes_above), ("notesBelow", line.notes_below)):
        for k, n in enumerate(check_list(jl.get(key), key, fmt=FMT, where=where)):
            dst.append(_parse_note(n, unit, height, f"{where}.{key}[{k}]"))
    return line


def parse_pgr(text: str, *, config: Optional[CompileConfig] = None, assets: Any = None) -> Chart:
    """Compile an official Phigros JSON chart (formatVersion 1 or 3)."""
    config = config or CompileConfig()
    try:
        data = json.loads(text)
    except json.JSONDecodeError as err:
        raise CompileError(f"invalid JSON: {err}", fmt=FMT) from err
    check_keys(data, "chart root", fmt=FMT)

    fmt_ver = integer(data.get("formatVersion", 3), "formatVersion", fmt=FMT)
    if fmt_ver not in SUPPORTED_VERSIONS:
        raise CompileError(f"unsupported formatVersion {fmt_ver}", fmt=FMT)
    offset = num(data.get("offset", 0.0), "offset", fmt=FMT)

    if "judgeLineList" not in data:
        raise CompileError("missing judgeLineList", fmt=FMT)
    jls = check_list(data["judgeLineList"], "judgeLineList", fmt=FMT)
    lines = [_parse_line(jl, i, fmt_ver, config) for i, jl in enumerate(jls)]

    chart = Chart(format=ChartFormat.PGR, lines=lines, offset=offset)
    logger.debug("PGR chart v%d: %d lines, %d notes, offset=%.3fs", fmt_ver, len(lines), chart.note_count(), offset)
    return chart
