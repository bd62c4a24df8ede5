from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from ..config.schema import CompileConfig
from ..errors import CompileError
from ..math.curves import AnimVector, KeyframeBuilder
from ..math.easing import remap
from ..math.util import clamp
from ..types import AnimatedObject, Chart, ChartFormat, JudgeLine, Note, NoteKind
from .rpe_impl import RPE_SPEED_SCALE, RPE_TWEEN_MAP
from .timing import BpmMap, integer, integrate_speed, num, speed_points_of

logger = logging.getLogger(__name__)

FMT = ChartFormat.PEC.value

# PEC canvas: 2048 x 1400, origin bottom-left
PEC_WIDTH = 2048.0
PEC_HEIGHT = 1400.0
PEC_SPEED_SCALE = RPE_SPEED_SCALE
PEC_DEFAULT_SPEED = 1.0

_NOTE_KINDS = {1: NoteKind.TAP, 2: NoteKind.HOLD, 3: NoteKind.FLICK, 4: NoteKind.DRAG}

# command -> number of arguments after the line index
_EVENT_ARITY = {
    "cv": (2, 2),
    "cp": (3, 3),
    "cd": (2, 2),
    "ca": (2, 2),
    "cm": (5, 5),
    "cr": (4, 4),
    "cf": (3, 4),
}


class _LineEvents:
    def __init__(self, lid: int):
        self.lid = lid
        self.x = KeyframeBuilder(0.0, fmt=FMT, what=f"line {lid} x")
        self.y = KeyframeBuilder(0.0, fmt=FMT, what=f"line {lid} y")
        self.rot = KeyframeBuilder(0.0, fmt=FMT, what=f"line {lid} rotation")
        self.alpha = KeyframeBuilder(1.0, fmt=FMT, what=f"line {lid} alpha")
        self.speed = KeyframeBuilder(PEC_DEFAULT_SPEED, fmt=FMT, what=f"line {lid} speed")


def _x(v: float) -> float:
    return v / (PEC_WIDTH / 2.0) - 1.0


def _y(v: float) -> float:
    return v / (PEC_HEIGHT / 2.0) - 1.0


def _rot(deg: float) -> float:
    # clockwise degrees on screen -> counter-clockwise radians
    return -deg * math.pi / 180.0


def _alpha(v: float) -> float:
    return clamp(v, 0.0, 255.0) / 255.0


def _tokenize(text: str) -> List[Tuple[int, List[str]]]:
    out = []
    for no, raw in enumerate((text or "").splitlines(), start=1):
        ln = raw.strip()
        if not ln or ln.startswith("//"):
            continue
        out.append((no, ln.split()))
    return out


def _apply_event(ev: _LineEvents, head: str, t0: float, args: List[float], bpm_map: BpmMap, where: str) -> None:
    if head == "cp":
        ev.x.jump(t0, _x(args[0]))
        ev.y.jump(t0, _y(args[1]))
    elif head == "cd":
        ev.rot.jump(t0, _rot(args[0]))
    elif head == "ca":
        ev.alpha.jump(t0, _alpha(args[0]))
    elif head == "cv":
        ev.speed.jump(t0, args[0])
    else:
        t1 = bpm_map.beat_to_sec(args[0])
        if head == "cm":
            tween = remap(RPE_TWEEN_MAP, integer(args[3], "easing", fmt=FMT, where=where), fmt=FMT)
            ev.x.move_to(t0, t1, _x(args[1]), tween)
            ev.y.move_to(t0, t1, _y(args[2]), tween)
        elif head == "cr":
            ev.rot.move_to(t0, t1, _rot(args[1]), remap(RPE_TWEEN_MAP, integer(args[2], "easing", fmt=FMT, where=where), fmt=FMT))
        elif head == "cf":
            tween = remap(RPE_TWEEN_MAP, integer(args[2], "easing", fmt=FMT, where=where), fmt=FMT) if len(args) > 2 else RPE_TWEEN_MAP[1]
            ev.alpha.move_to(t0, t1, _alpha(args[1]), tween)


def parse_pec(text: str, *, config: Optional[CompileConfig] = None, assets: Any = None) -> Chart:
    """Compile a PEC (PhiEditer) text chart.

    PEC lines never reference assets; ``assets`` is accepted for a uniform signature.
    """
    config = config or CompileConfig()
    rows = _tokenize(text)
    if not rows:
        raise CompileError("empty chart", fmt=FMT)

    no, first = rows[0]
    if len(first) != 1:
        raise CompileError("first line must be the offset in milliseconds", fmt=FMT, where=f"line {no}")
    offset = num(first[0], "offset", fmt=FMT, where=f"line {no}") / 1000.0

    bpm_items: List[Tuple[float, float]] = []
    events: List[Tuple[float, int, str, int, List[float]]] = []
    note_rows: List[Tuple[int, str, List[str]]] = []
    max_line = -1

    for no, parts in rows[1:]:
        head, rest = parts[0], parts[1:]
        where = f"line {no}"
        if head == "bp":
            if len(rest) != 2:
                raise CompileError("bp needs <beat> <bpm>", fmt=FMT, where=where)
            bpm_items.append((num(rest[0], "beat", fmt=FMT, where=where), num(rest[1], "bpm", fmt=FMT, where=where)))
        elif head in _EVENT_ARITY:
            lo, hi = _EVENT_ARITY[head]
            if not (lo + 1 <= len(rest) <= hi + 1):
                raise CompileError(f"{head} takes {lo + 1} arguments, got {len(rest)}", fmt=FMT, where=where)
            lid = integer(rest[0], "line index", fmt=FMT, where=where)
            if lid < 0:
                raise CompileError(f"negative line index {lid}", fmt=FMT, where=where)
            max_line = max(max_line, lid)
            beat = num(rest[1], "beat", fmt=FMT, where=where)
            args = [num(a, "argument", fmt=FMT, where=where) for a in rest[2:]]
            events.append((beat, no, head, lid, args))
        elif head in {"n1", "n2", "n3", "n4", "#", "&"}:
            note_rows.append((no, head, rest))
        else:
            raise CompileError(f"unknown command {head!r}", fmt=FMT, where=where)

    bpm_map = BpmMap.build(bpm_items, fmt=FMT)

    notes: List[Tuple[int, Note, bool]] = []
    pending: Optional[Dict[str, Any]] = None

    def flush():
        nonlocal pending
        if pending is not None:
            notes.append((pending["line"], pending["note"], pending["above"]))
        pending = None

    for no, head, rest in note_rows:
        where = f"line {no}"
        if head in {"#", "&"}:
            if pending is None:
                raise CompileError(f"{head!r} does not follow a note", fmt=FMT, where=where)
            if len(rest) != 1:
                raise CompileError(f"{head!r} takes one value", fmt=FMT, where=where)
            v = num(rest[0], "speed" if head == "#" else "size", fmt=FMT, where=where)
            note = pending["note"]
            if head == "#":
                note.speed = v
            else:
                note.object = AnimatedObject(
                    translation=note.object.translation,
                    scale=AnimVector.constant(v, 1.0),
                )
            continue

        flush()
        kind = _NOTE_KINDS[int(head[1:])]
        want = 6 if kind == NoteKind.HOLD else 5
        if len(rest) != want:
            raise CompileError(f"{head} takes {want} arguments, got {len(rest)}", fmt=FMT, where=where)
        lid = integer(rest[0], "line index", fmt=FMT, where=where)
        if lid < 0:
            raise CompileError(f"negative line index {lid}", fmt=FMT, where=where)
        max_line = max(max_line, lid)
        b0 = num(rest[1], "beat", fmt=FMT, where=where)
        if kind == NoteKind.HOLD:
            b1 = num(rest[2], "end beat", fmt=FMT, where=where)
            if b1 < b0:
                raise CompileError("hold ends before it starts", fmt=FMT, where=where)
            rest = rest[:2] + rest[3:]
        x = num(rest[2], "x", fmt=FMT, where=where)
        above = integer(rest[3], "above", fmt=FMT, where=where) == 1
        fake = integer(rest[4], "fake", fmt=FMT, where=where) == 1

        t_hit = bpm_map.beat_to_sec(b0)
        pending = {
            "line": lid,
            "above": above,
            "note": Note(
                kind=kind,
                time=t_hit,
                fake=fake,
                end_time=bpm_map.beat_to_sec(b1) if kind == NoteKind.HOLD else None,
                object=AnimatedObject(translation=AnimVector.constant(x / (PEC_WIDTH / 2.0), 0.0)),
            ),
        }
    flush()

    per_line = {lid: _LineEvents(lid) for lid in range(max_line + 1)}
    # stable: commands on the same beat keep file order
    events.sort(key=lambda ev: ev[0])
    for beat, no, head, lid, args in events:
        _apply_event(per_line[lid], head, bpm_map.beat_to_sec(beat), args, bpm_map, f"line {no}")

    lines: List[JudgeLine] = []
    for lid in range(max_line + 1):
        ev = per_line[lid]
        speed = ev.speed.build()
        height = integrate_speed(
            speed_points_of(speed),
            scale=PEC_SPEED_SCALE,
            subdivisions=config.height_subdivisions,
            default_speed=PEC_DEFAULT_SPEED,
        )
        lines.append(
            JudgeLine(
                object=AnimatedObject(
                    translation=AnimVector(ev.x.build(), ev.y.build()),
                    rotation=ev.rot.build(),
                    alpha=ev.alpha.build(),
                ),
                height=height,
            )
        )

    for lid, note, above in notes:
        height = lines[lid].height
        note.height = height.evaluate(note.time)
        if note.is_hold:
            note.end_height = height.evaluate(note.end_time)
        (lines[lid].notes_above if above else lines[lid].notes_below).append(note)

    chart = Chart(format=ChartFormat.PEC, lines=lines, offset=offset)
    logger.debug("PEC chart: %d lines, %d notes, offset=%.3fs", len(lines), chart.note_count(), offset)
    return chart
