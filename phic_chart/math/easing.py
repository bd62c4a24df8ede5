from __future__ import annotations

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Optional, Sequence, Tuple, Union

from ..errors import CompileError


class TweenMajor(IntEnum):
    LINEAR = 0
    SINE = 1
    QUAD = 2
    CUBIC = 3
    QUART = 4
    QUINT = 5
    EXPO = 6
    CIRC = 7
    BACK = 8
    ELASTIC = 9
    BOUNCE = 10


class TweenMinor(IntEnum):
    IN = 0
    OUT = 1
    IN_OUT = 2


def easing_id(major: TweenMajor, minor: TweenMinor) -> int:
    return int(major) * 3 + int(minor)


# "In" shapes; Out and InOut are derived from them below.

def _linear(t):  return t
def _sine(t):    return 1 - math.cos(math.pi * t / 2)
def _quad(t):    return t * t
def _cubic(t):   return t ** 3
def _quart(t):   return t ** 4
def _quint(t):   return t ** 5
def _expo(t):    return 0.0 if t == 0 else 2 ** (10 * t - 10)
def _circ(t):    return 1 - (1 - t * t) ** 0.5
def _back(t):    return 2.70158 * (t ** 3) - 1.70158 * (t ** 2)

def _elastic(t):
    if t == 0: return 0.0
    if t == 1: return 1.0
    return -2 ** (10 * t - 10) * math.sin((t * 10 - 10.75) * (2 * math.pi / 3))

def _bounce_out(t):
    if t < 1 / 2.75: return 7.5625 * t * t
    if t < 2 / 2.75: x = t - 1.5 / 2.75;   return 7.5625 * x * x + 0.75
    if t < 2.5 / 2.75: x = t - 2.25 / 2.75; return 7.5625 * x * x + 0.9375
    x = t - 2.625 / 2.75; return 7.5625 * x * x + 0.984375

def _bounce(t):  return 1 - _bounce_out(1 - t)


_IN_SHAPES: Tuple[Callable[[float], float], ...] = (
    _linear, _sine, _quad, _cubic, _quart, _quint, _expo, _circ, _back, _elastic, _bounce,
)


def _to_out(f: Callable[[float], float]) -> Callable[[float], float]:
    return lambda t: 1 - f(1 - t)


def _to_in_out(f: Callable[[float], float]) -> Callable[[float], float]:
    return lambda t: f(2 * t) / 2 if t < 0.5 else 1 - f(2 - 2 * t) / 2


def _build_catalog() -> Tuple[Callable[[float], float], ...]:
    out = []
    for f in _IN_SHAPES:
        out.append(f)
        out.append(_to_out(f))
        out.append(_to_in_out(f))
    return tuple(out)


# Index = easing_id(major, minor). Immutable after import, safe to share.
EASINGS: Tuple[Callable[[float], float], ...] = _build_catalog()

LINEAR = easing_id(TweenMajor.LINEAR, TweenMinor.IN_OUT)


def easing_fn(tween_id: int) -> Callable[[float], float]:
    if isinstance(tween_id, bool) or not isinstance(tween_id, int):
        raise CompileError(f"easing id must be an integer, got {tween_id!r}")
    if tween_id < 0 or tween_id >= len(EASINGS):
        raise CompileError(f"unknown easing id {tween_id}")
    return EASINGS[tween_id]


def cubic_bezier_y_for_x(x1, y1, x2, y2, x, iters=18):
    # Solve u s.t. Bx(u)=x by binary search, then return By(u).
    # Control points: (0,0), (x1,y1), (x2,y2), (1,1)
    def bx(u):
        a = 1 - u
        return 3 * a * a * u * x1 + 3 * a * u * u * x2 + u * u * u

    def by(u):
        a = 1 - u
        return 3 * a * a * u * y1 + 3 * a * u * u * y2 + u * u * u

    lo, hi = 0.0, 1.0
    for _ in range(iters):
        mid = (lo + hi) * 0.5
        if bx(mid) < x:
            lo = mid
        else:
            hi = mid
    return by((lo + hi) * 0.5)


@dataclass(frozen=True)
class ClampedTween:
    """Runs only the [left, right] slice of an easing, rescaled to 0..1."""

    tween_id: int
    left: float = 0.0
    right: float = 1.0

    def __post_init__(self):
        easing_fn(self.tween_id)
        if not (0.0 <= self.left < self.right <= 1.0):
            raise CompileError(f"easing clip range [{self.left}, {self.right}] is not inside [0, 1]")

    def __call__(self, p: float) -> float:
        f = EASINGS[self.tween_id]
        y0 = f(self.left)
        y1 = f(self.right)
        if abs(y1 - y0) < 1e-12:
            return p
        return (f(self.left + (self.right - self.left) * p) - y0) / (y1 - y0)


@dataclass(frozen=True)
class BezierTween:
    x1: float
    y1: float
    x2: float
    y2: float

    def __post_init__(self):
        # x control points outside [0,1] make Bx non-monotonic
        if not (0.0 <= self.x1 <= 1.0 and 0.0 <= self.x2 <= 1.0):
            raise CompileError(f"bezier x control points must lie in [0, 1], got {self.x1}, {self.x2}")

    def __call__(self, p: float) -> float:
        if p <= 0.0:
            return 0.0
        if p >= 1.0:
            return 1.0
        return cubic_bezier_y_for_x(self.x1, self.y1, self.x2, self.y2, p)


@dataclass(frozen=True)
class TruncatedTween:
    """The first ``right`` of another tween, rescaled so it still ends at 1.

    Used when a later event cuts a running one short.
    """

    inner: Any
    right: float

    def __post_init__(self):
        check_tween(self.inner)
        if not (0.0 < self.right <= 1.0):
            raise CompileError(f"tween cut point {self.right} is not inside (0, 1]")

    def __call__(self, p: float) -> float:
        end = ease(self.inner, self.right)
        if abs(end) < 1e-12:
            return p
        return ease(self.inner, self.right * p) / end


Tween = Union[int, ClampedTween, BezierTween, TruncatedTween]


def check_tween(tween: Tween) -> Tween:
    if isinstance(tween, (ClampedTween, BezierTween, TruncatedTween)):
        return tween
    easing_fn(tween)
    return tween


def ease(tween: Tween, p: float) -> float:
    if isinstance(tween, int):
        return EASINGS[tween](p)
    return tween(p)


def remap(table: Sequence[int], code: int, *, fmt: Optional[str] = None) -> int:
    """Look a native easing code up in a format's fixed table."""
    if code < 0 or code >= len(table):
        raise CompileError(f"easing code {code} is outside the {len(table)}-entry table", fmt=fmt)
    return table[code]
