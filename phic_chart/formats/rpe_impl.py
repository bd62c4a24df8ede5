from __future__ import annotations

import json
import logging
import math
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..config.schema import CompileConfig
from ..errors import CompileError
from ..math.curves import (
    AnimColor,
    AnimFloat,
    AnimText,
    AnimVector,
    KeyframeBuilder,
    SumCurve,
)
from ..math.easing import (
    BezierTween,
    ClampedTween,
    Tween,
    TweenMajor as M,
    TweenMinor as m,
    easing_id as e,
    remap,
)
from ..math.util import rgb255_to_unit
from ..types import (
    RPE_HEIGHT,
    RPE_WIDTH,
    AnimatedObject,
    Chart,
    ChartFormat,
    DynamicText,
    JudgeLine,
    LineKind,
    Normal,
    Note,
    NoteKind,
    TextureAsset,
    TexturedSprite,
)
from .timing import (
    BpmMap,
    beat_to_value,
    check_keys,
    check_list,
    integer,
    integrate_speed,
    num,
    sum_speed_points,
)

logger = logging.getLogger(__name__)

FMT = ChartFormat.RPE.value

# speed 1.0 moves notes 120 px/s on the 900 px tall canvas
RPE_SPEED_SCALE = 120.0 / (RPE_HEIGHT / 2.0)
DEFAULT_TEXTURE = "line.png"

AssetResolver = Callable[[str], Optional[TextureAsset]]

# RPE easingType -> easing id. Codes 0 and 1 both mean linear.
RPE_TWEEN_MAP: Tuple[int, ...] = (
    e(M.LINEAR, m.IN_OUT), e(M.LINEAR, m.IN_OUT),
    e(M.SINE, m.OUT), e(M.SINE, m.IN),
    e(M.QUAD, m.OUT), e(M.QUAD, m.IN),
    e(M.SINE, m.IN_OUT), e(M.QUAD, m.IN_OUT),
    e(M.CUBIC, m.OUT), e(M.CUBIC, m.IN),
    e(M.QUART, m.OUT), e(M.QUART, m.IN),
    e(M.CUBIC, m.IN_OUT), e(M.QUART, m.IN_OUT),
    e(M.QUINT, m.OUT), e(M.QUINT, m.IN),
    e(M.EXPO, m.OUT), e(M.EXPO, m.IN),
    e(M.CIRC, m.OUT), e(M.CIRC, m.IN),
    e(M.BACK, m.OUT), e(M.BACK, m.IN),
    e(M.CIRC, m.IN_OUT), e(M.BACK, m.IN_OUT),
    e(M.ELASTIC, m.OUT), e(M.ELASTIC, m.IN),
    e(M.BOUNCE, m.OUT), e(M.BOUNCE, m.IN),
    e(M.BOUNCE, m.IN_OUT), e(M.ELASTIC, m.IN_OUT),
)

# RPE note type -> kind
_NOTE_KINDS = {1: NoteKind.TAP, 2: NoteKind.HOLD, 3: NoteKind.FLICK, 4: NoteKind.DRAG}


def rpe_tween(ev: Dict[str, Any], shift: int, where: str) -> Tween:
    if integer(ev.get("bezier", 0) or 0, "bezier", fmt=FMT, where=where) == 1:
        pts = ev.get("bezierPoints")
        if not isinstance(pts, list) or len(pts) != 4:
            raise CompileError("bezier event needs 4 bezierPoints", fmt=FMT, where=where)
        x1, y1, x2, y2 = (num(p, "bezier point", fmt=FMT, where=where) for p in pts)
        return BezierTween(x1, y1, x2, y2)

    code = integer(ev.get("easingType", 1), "easingType", fmt=FMT, where=where) + int(shift)
    tid = remap(RPE_TWEEN_MAP, code, fmt=FMT)
    left = num(ev.get("easingLeft", 0.0), "easingLeft", fmt=FMT, where=where)
    right = num(ev.get("easingRight", 1.0), "easingRight", fmt=FMT, where=where)
    if left == 0.0 and right == 1.0:
        return tid
    try:
        return ClampedTween(tid, left, right)
    except CompileError as err:
        raise CompileError(err.message, fmt=FMT, where=where) from None


def build_event_curve(
    events: Sequence[Any],
    bpm_map: BpmMap,
    bpmfactor: float,
    *,
    initial: Any,
    convert: Callable[[Any, str], Any],
    cls=AnimFloat,
    shift: int = 0,
    where: str = "",
    eased: bool = True,
):
    spans = []
    for k, ev in enumerate(events):
        w = f"{where}[{k}]"
        check_keys(ev, "event", fmt=FMT, where=w)
        if "startTime" not in ev or "endTime" not in ev:
            raise CompileError("event needs startTime and endTime", fmt=FMT, where=w)
        t0 = bpm_map.beat_to_sec(beat_to_value(ev["startTime"], fmt=FMT, where=w), bpmfactor)
        t1 = bpm_map.beat_to_sec(beat_to_value(ev["endTime"], fmt=FMT, where=w), bpmfactor)
        if "start" not in ev:
            raise CompileError("event needs a start value", fmt=FMT, where=w)
        v0 = convert(ev["start"], w)
        v1 = convert(ev.get("end", ev["start"]), w)
        tween = rpe_tween(ev, shift, w) if eased else e(M.LINEAR, m.IN_OUT)
        spans.append((t0, t1, v0, v1, tween, w))

    # stable: events on the same start keep file order
    spans.sort(key=lambda s: s[0])
    b = KeyframeBuilder(initial, cls=cls, fmt=FMT, what=where)
    for t0, t1, v0, v1, tween, w in spans:
        b.what = w
        b.ramp(t0, t1, v0, v1, tween)
    return b.build()


def _scalar(factor: float = 1.0, offset: float = 0.0):
    def conv(v: Any, where: str) -> float:
        return num(v, "event value", fmt=FMT, where=where) * factor + offset
    return conv


def _rgba(v: Any, where: str):
    if not isinstance(v, (list, tuple)) or len(v) < 3:
        raise CompileError(f"color must be [r, g, b], got {v!r}", fmt=FMT, where=where)
    r, g, b = (num(c, "color channel", fmt=FMT, where=where) for c in v[:3])
    return rgb255_to_unit(r, g, b)


def _text(v: Any, where: str) -> str:
    if v is None:
        return ""
    return str(v)


def _resolve_kind(
    jl: Dict[str, Any],
    ext: Dict[str, Any],
    bpm_map: BpmMap,
    bpmfactor: float,
    assets: Optional[AssetResolver],
    config: CompileConfig,
    where: str,
) -> LineKind:
    text_events = check_list(ext.get("textEvents"), "textEvents", fmt=FMT, where=where)
    if text_events:
        text = build_event_curve(
            text_events, bpm_map, bpmfactor,
            initial="", convert=_text, cls=AnimText,
            shift=config.rpe_easing_shift, where=f"{where}.extended.textEvents",
        )
        return DynamicText(text)

    tex = jl.get("Texture", DEFAULT_TEXTURE)
    tex = "" if tex is None else str(tex)
    if not tex or tex == DEFAULT_TEXTURE:
        return Normal()
    asset = None
    if assets is not None:
        asset = assets(tex)
        if asset is None and config.require_assets:
            raise CompileError(f"texture {tex!r} not found", fmt=FMT, where=where)
    return TexturedSprite(tex, asset)


def _check_fathers(fathers: List[int]) -> None:
    n = len(fathers)
    for lid, f in enumerate(fathers):
        if f < -1 or f >= n:
            raise CompileError(f"father {f} does not exist", fmt=FMT, where=f"judgeLineList[{lid}]")
    state = [0] * n  # 0=unvisited, 1=visiting, 2=done
    for start in range(n):
        path = []
        cur = start
        while cur >= 0 and state[cur] != 2:
            if state[cur] == 1:
                raise CompileError(f"father cycle through line {cur}", fmt=FMT, where=f"judgeLineList[{start}]")
            state[cur] = 1
            path.append(cur)
            cur = fathers[cur]
        for lid in path:
            state[lid] = 2


def _parse_note(
    n: Any,
    height: AnimFloat,
    bpm_map: BpmMap,
    bpmfactor: float,
    where: str,
) -> Tuple[Note, bool]:
    check_keys(n, "note", fmt=FMT, where=where)
    rpe_type = integer(n.get("type", 1), "note type", fmt=FMT, where=where)
    kind = _NOTE_KINDS.get(rpe_type)
    if kind is None:
        raise CompileError(f"unknown note type {rpe_type}", fmt=FMT, where=where)
    if "startTime" not in n:
        raise CompileError("note needs startTime", fmt=FMT, where=where)

    t_hit = bpm_map.beat_to_sec(beat_to_value(n["startTime"], fmt=FMT, where=where), bpmfactor)
    t_end = bpm_map.beat_to_sec(beat_to_value(n.get("endTime", n["startTime"]), fmt=FMT, where=where), bpmfactor)
    if kind == NoteKind.HOLD and t_end < t_hit:
        raise CompileError("hold ends before it starts", fmt=FMT, where=where)

    # above == 1 is the front side; anything else (0, and 2 for some holds) the back
    above = integer(n.get("above", 1), "above", fmt=FMT, where=where) == 1
    fake = integer(n.get("isFake", 0), "isFake", fmt=FMT, where=where) == 1

    x = num(n.get("positionX", 0.0), "positionX", fmt=FMT, where=where) / (RPE_WIDTH / 2.0)
    y_off = num(n.get("yOffset", 0.0), "yOffset", fmt=FMT, where=where) / (RPE_HEIGHT / 2.0)
    size = num(n.get("size", 1.0), "size", fmt=FMT, where=where)
    speed = num(n.get("speed", 1.0), "speed", fmt=FMT, where=where)
    alpha = num(n.get("alpha", 255), "alpha", fmt=FMT, where=where)
    if not (0.0 <= alpha <= 255.0):
        raise CompileError(f"note alpha {alpha} outside 0..255", fmt=FMT, where=where)
    visible = num(n.get("visibleTime", 999999.0), "visibleTime", fmt=FMT, where=where)
    if visible <= 0:
        raise CompileError(f"visibleTime must be positive, got {visible}", fmt=FMT, where=where)
    if visible >= 999999.0:
        visible = math.inf

    hs = n.get("hitsound")
    note = Note(
        kind=kind,
        time=t_hit,
        height=height.evaluate(t_hit),
        speed=speed,
        fake=fake,
        end_time=t_end if kind == NoteKind.HOLD else None,
        end_height=height.evaluate(t_end) if kind == NoteKind.HOLD else None,
        object=AnimatedObject(
            translation=AnimVector.constant(x, y_off),
            scale=AnimVector.constant(size, 1.0),
            alpha=AnimFloat.constant(alpha / 255.0),
        ),
        visible_time=visible,
        hitsound=str(hs) if hs else None,
    )
    return note, above


def _parse_line(
    jl: Any,
    lid: int,
    bpm_map: BpmMap,
    config: CompileConfig,
    assets: Optional[AssetResolver],
) -> JudgeLine:
    where = f"judgeLineList[{lid}]"
    check_keys(jl, "judge line", fmt=FMT, where=where)
    bpmfactor = num(jl.get("bpmfactor", 1.0), "bpmfactor", fmt=FMT, where=where)
    if bpmfactor <= 0:
        raise CompileError(f"bpmfactor must be positive, got {bpmfactor}", fmt=FMT, where=where)
    shift = config.rpe_easing_shift

    def curve(events, what, **kw):
        return build_event_curve(events, bpm_map, bpmfactor, shift=shift, where=f"{where}.{what}", **kw)

    xs: List[AnimFloat] = []
    ys: List[AnimFloat] = []
    rots: List[AnimFloat] = []
    alphas: List[AnimFloat] = []
    speeds: List[AnimFloat] = []
    for k, layer in enumerate(check_list(jl.get("eventLayers"), "eventLayers", fmt=FMT, where=where)):
        if layer is None:
            continue
        lw = f"eventLayers[{k}]"
        check_keys(layer, "event layer", fmt=FMT, where=f"{where}.{lw}")

        def events(key):
            return check_list(layer.get(key), key, fmt=FMT, where=f"{where}.{lw}")

        xs.append(curve(events("moveXEvents"), f"{lw}.moveXEvents", initial=0.0, convert=_scalar(1.0 / (RPE_WIDTH / 2.0))))
        ys.append(curve(events("moveYEvents"), f"{lw}.moveYEvents", initial=0.0, convert=_scalar(1.0 / (RPE_HEIGHT / 2.0))))
        # clockwise degrees on screen -> counter-clockwise radians
        rots.append(curve(events("rotateEvents"), f"{lw}.rotateEvents", initial=0.0, convert=_scalar(-math.pi / 180.0)))
        alphas.append(curve(events("alphaEvents"), f"{lw}.alphaEvents", initial=0.0, convert=_scalar(1.0 / 255.0)))
        speeds.append(curve(events("speedEvents"), f"{lw}.speedEvents", initial=0.0, convert=_scalar(), eased=False))

    # some exporters keep speed events on the line instead of inside eventLayers
    if not any(len(s) for s in speeds):
        jl_speed = check_list(jl.get("speedEvents"), "speedEvents", fmt=FMT, where=where)
        if jl_speed:
            speeds = [curve(jl_speed, "speedEvents", initial=0.0, convert=_scalar(), eased=False)]

    def layered(curves: List[AnimFloat], default: float) -> SumCurve:
        return SumCurve([c for c in curves if len(c)], default=default)

    ext = jl.get("extended") or {}
    check_keys(ext, "extended", fmt=FMT, where=where)

    def ext_curve(key, **kw):
        evs = check_list(ext.get(key), key, fmt=FMT, where=f"{where}.extended")
        return curve(evs, f"extended.{key}", **kw) if evs else None

    scale_x = ext_curve("scaleXEvents", initial=1.0, convert=_scalar())
    scale_y = ext_curve("scaleYEvents", initial=1.0, convert=_scalar())
    color = ext_curve("colorEvents", initial=(1.0, 1.0, 1.0, 1.0), convert=_rgba, cls=AnimColor)

    height = integrate_speed(
        sum_speed_points([s for s in speeds if len(s)]),
        scale=RPE_SPEED_SCALE,
        subdivisions=config.height_subdivisions,
    )

    line = JudgeLine(
        object=AnimatedObject(
            translation=AnimVector(layered(xs, 0.0), layered(ys, 0.0)),
            rotation=layered(rots, 0.0),
            scale=AnimVector(scale_x, scale_y, default=(1.0, 1.0)),
            color=color,
            alpha=layered(alphas, 1.0),
        ),
        height=height,
        kind=_resolve_kind(jl, ext, bpm_map, bpmfactor, assets, config, where),
        name=str(jl.get("name", "") or ""),
        father=integer(jl.get("father", -1), "father", fmt=FMT, where=where),
        rotate_with_father=bool(jl.get("rotateWithFather", True)),
    )

    for k, n in enumerate(check_list(jl.get("notes"), "notes", fmt=FMT, where=where)):
        note, above = _parse_note(n, height, bpm_map, bpmfactor, f"{where}.notes[{k}]")
        (line.notes_above if above else line.notes_below).append(note)
    return line


def parse_rpe(
    text: str,
    *,
    config: Optional[CompileConfig] = None,
    assets: Optional[AssetResolver] = None,
) -> Chart:
    """Compile an RPE (Re:PhiEdit) JSON chart."""
    config = config or CompileConfig()
    try:
        data = json.loads(text)
    except json.JSONDecodeError as err:
        raise CompileError(f"invalid JSON: {err}", fmt=FMT) from err
    check_keys(data, "chart root", fmt=FMT)

    meta = data.get("META") or {}
    check_keys(meta, "META", fmt=FMT)
    offset = num(meta.get("offset", 0.0), "META.offset", fmt=FMT) / 1000.0

    bpm_items = []
    for k, b in enumerate(check_list(data.get("BPMList"), "BPMList", fmt=FMT)):
        w = f"BPMList[{k}]"
        check_keys(b, "BPM entry", fmt=FMT, where=w)
        if "startTime" not in b or "bpm" not in b:
            raise CompileError("BPM entry needs startTime and bpm", fmt=FMT, where=w)
        bpm_items.append((beat_to_value(b["startTime"], fmt=FMT, where=w), num(b["bpm"], "bpm", fmt=FMT, where=w)))
    bpm_map = BpmMap.build(bpm_items, fmt=FMT)

    if "judgeLineList" not in data:
        raise CompileError("missing judgeLineList", fmt=FMT)
    jls = check_list(data["judgeLineList"], "judgeLineList", fmt=FMT)
    lines = [_parse_line(jl, i, bpm_map, config, assets) for i, jl in enumerate(jls)]
    _check_fathers([ln.father for ln in lines])

    chart = Chart(format=ChartFormat.RPE, lines=lines, offset=offset)
    logger.debug("RPE chart: %d lines, %d notes, offset=%.3fs", len(lines), chart.note_count(), offset)
    return chart
