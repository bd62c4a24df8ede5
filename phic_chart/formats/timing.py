from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..errors import CompileError
from ..math.curves import AnimFloat, Keyframe

# Height keeps growing at the last speed for this long after the last speed key.
HEIGHT_TAIL = 1e6


def num(v: Any, what: str, *, fmt: str, where: Optional[str] = None) -> float:
    if isinstance(v, bool):
        raise CompileError(f"{what} must be a number, got {v!r}", fmt=fmt, where=where)
    try:
        f = float(v)
    except (TypeError, ValueError):
        raise CompileError(f"{what} must be a number, got {v!r}", fmt=fmt, where=where) from None
    if not math.isfinite(f):
        raise CompileError(f"{what} is not finite ({v!r})", fmt=fmt, where=where)
    return f


def integer(v: Any, what: str, *, fmt: str, where: Optional[str] = None) -> int:
    f = num(v, what, fmt=fmt, where=where)
    if f != int(f):
        raise CompileError(f"{what} must be an integer, got {v!r}", fmt=fmt, where=where)
    return int(f)


def beat_to_value(b: Any, *, fmt: str, where: Optional[str] = None) -> float:
    # [bar, num, den] triples, or a plain number
    if isinstance(b, (list, tuple)):
        if len(b) != 3:
            raise CompileError(f"beat must be [bar, num, den], got {b!r}", fmt=fmt, where=where)
        a = num(b[0], "beat bar", fmt=fmt, where=where)
        n = num(b[1], "beat numerator", fmt=fmt, where=where)
        d = num(b[2], "beat denominator", fmt=fmt, where=where)
        if d == 0:
            raise CompileError(f"beat denominator is zero in {b!r}", fmt=fmt, where=where)
        return a + n / d
    return num(b, "beat", fmt=fmt, where=where)


@dataclass
class BpmSeg:
    beat0: float
    bpm: float
    sec_prefix: float


class BpmMap:
    def __init__(self, segs: List[BpmSeg]):
        self.segs = segs

    @staticmethod
    def build(items: Iterable[Tuple[float, float]], *, fmt: str) -> "BpmMap":
        arr = list(items)
        if not arr:
            raise CompileError("chart declares no BPM", fmt=fmt)
        for b, bpm in arr:
            if not math.isfinite(b):
                raise CompileError(f"BPM change at non-finite beat {b!r}", fmt=fmt)
            if not (math.isfinite(bpm) and bpm > 0):
                raise CompileError(f"BPM must be positive, got {bpm!r}", fmt=fmt)
        # stable: of two changes on one beat the later one wins
        arr.sort(key=lambda x: x[0])
        segs: List[BpmSeg] = []
        sec_prefix = 0.0
        for i, (b0, bpm) in enumerate(arr):
            segs.append(BpmSeg(b0, bpm, sec_prefix))
            if i + 1 < len(arr):
                b1 = arr[i + 1][0]
                sec_prefix += (b1 - b0) * 60.0 / bpm
        return BpmMap(segs)

    def beat_to_sec(self, beat: float, bpmfactor: float = 1.0) -> float:
        # effective bpm = bpm / bpmfactor
        segs = self.segs
        lo, hi = 0, len(segs)
        while lo + 1 < hi:
            mid = (lo + hi) // 2
            if segs[mid].beat0 <= beat:
                lo = mid
            else:
                hi = mid
        s = segs[lo]
        return (s.sec_prefix + (beat - s.beat0) * 60.0 / s.bpm) * bpmfactor


def speed_points_of(curve: AnimFloat) -> List[Tuple[float, float]]:
    """Breakpoints of a speed curve whose keyframes are all linear."""
    return [(float(k.time), float(k.value)) for k in curve.keyframes]


def sum_speed_points(layers: Sequence[AnimFloat]) -> List[Tuple[float, float]]:
    """Breakpoints of the sum of several piecewise-linear speed curves.

    Each layer is linear between the union of all breakpoints, so the sum is
    described exactly by its right value at each breakpoint and its left limit
    at the next one (recovered from the midpoint).
    """
    layers = [ly for ly in layers if len(ly)]
    if not layers:
        return []
    times = sorted({float(k.time) for ly in layers for k in ly.keyframes})
    if len(times) == 1:
        t = times[0]
        return [(t, sum(ly.evaluate(t) for ly in layers))]
    out: List[Tuple[float, float]] = []
    for a, b in zip(times, times[1:]):
        va = sum(ly.evaluate(a) for ly in layers)
        vm = sum(ly.evaluate((a + b) * 0.5) for ly in layers)
        out.append((a, va))
        out.append((b, 2.0 * vm - va))
    last = times[-1]
    out.append((last, sum(ly.evaluate(last) for ly in layers)))
    return out


def integrate_speed(
    points: Sequence[Tuple[float, float]],
    *,
    scale: float,
    subdivisions: int,
    default_speed: float = 0.0,
) -> AnimFloat:
    """Floor position (integral of speed from the chart start) as a curve.

    ``points`` describe a piecewise-linear speed with non-decreasing times;
    repeated times are jumps. Speed is constant before the first and after
    the last point. Segments with changing speed get ``subdivisions``
    keyframes, each exact.
    """
    pts = [(float(t), float(v) * scale) for t, v in points]
    if not pts:
        pts = [(0.0, default_speed * scale)]

    start = min(0.0, pts[0][0])
    if pts[0][0] > start:
        pts.insert(0, (start, pts[0][1]))
    end = pts[-1][0] + HEIGHT_TAIL
    pts.append((end, pts[-1][1]))

    h = 0.0
    frames: List[Keyframe] = [Keyframe(start, 0.0)]
    for (ta, va), (tb, vb) in zip(pts, pts[1:]):
        dt = tb - ta
        if dt <= 0.0:
            continue
        if va == vb:
            h += va * dt
            frames.append(Keyframe(tb, h))
            continue
        acc = (vb - va) / dt
        for k in range(1, subdivisions):
            u = dt * k / subdivisions
            frames.append(Keyframe(ta + u, h + va * u + 0.5 * acc * u * u))
        h += 0.5 * (va + vb) * dt
        frames.append(Keyframe(tb, h))
    return AnimFloat(frames)


def check_keys(obj: Any, what: str, *, fmt: str, where: Optional[str] = None) -> Dict[str, Any]:
    if not isinstance(obj, dict):
        raise CompileError(f"{what} must be an object, got {type(obj).__name__}", fmt=fmt, where=where)
    return obj


def check_list(obj: Any, what: str, *, fmt: str, where: Optional[str] = None) -> List[Any]:
    if obj is None:
        return []
    if not isinstance(obj, list):
        raise CompileError(f"{what} must be a list, got {type(obj).__name__}", fmt=fmt, where=where)
    return obj
