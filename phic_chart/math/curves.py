"""Keyframe animation curves.

Every animated property in a compiled chart is one of these. A curve is an
immutable keyframe tuple plus a ``cursor`` that only remembers which segment
the previous query landed in; the value returned for a given time never
depends on it.
"""

from __future__ import annotations

import bisect
import math
from dataclasses import dataclass, replace
from typing import Any, Generic, List, Optional, Sequence, Tuple, TypeVar

from ..errors import CompileError, RuntimeInvariantViolation
from .easing import LINEAR, TruncatedTween, Tween, check_tween, ease
from .util import lerp, lerp_seq

V = TypeVar("V")

RGBA = Tuple[float, float, float, float]
WHITE: RGBA = (1.0, 1.0, 1.0, 1.0)


@dataclass(frozen=True)
class Keyframe(Generic[V]):
    time: float
    value: V
    tween: Tween = LINEAR


class AnimationCurve(Generic[V]):
    default: Any = None

    def __init__(self, keyframes: Sequence[Keyframe] = (), default: Optional[V] = None):
        self.keyframes: Tuple[Keyframe, ...] = tuple(keyframes)
        self._times: List[float] = [float(k.time) for k in self.keyframes]
        if default is not None:
            self.default = default
        prev = -math.inf
        for k, t in zip(self.keyframes, self._times):
            if not math.isfinite(t):
                raise RuntimeInvariantViolation(f"keyframe time {t!r} is not finite")
            if t < prev:
                raise RuntimeInvariantViolation(f"keyframe times go backwards ({prev} -> {t})")
            check_tween(k.tween)
            prev = t
        # segment hint for the next query
        self.cursor = 0

    @classmethod
    def constant(cls, value: V):
        return cls([Keyframe(0.0, value)], default=value)

    def __len__(self) -> int:
        return len(self.keyframes)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({len(self.keyframes)} keyframes)"

    def interpolate(self, a: V, b: V, e: float) -> V:
        raise NotImplementedError

    def _seek(self, t: float) -> int:
        times = self._times
        n = len(times)
        i = self.cursor
        if i < n and times[i] <= t and (i + 1 == n or t < times[i + 1]):
            return i
        j = i + 1
        if j < n and times[j] <= t and (j + 1 == n or t < times[j + 1]):
            self.cursor = j
            return j
        i = max(0, bisect.bisect_right(times, t) - 1)
        self.cursor = i
        return i

    def evaluate(self, t: float) -> V:
        kfs = self.keyframes
        if not kfs:
            return self.default
        if math.isnan(t):
            raise RuntimeInvariantViolation("curve evaluated at NaN")
        if len(kfs) == 1 or t < self._times[0]:
            return kfs[0].value
        i = self._seek(t)
        if i + 1 >= len(kfs):
            return kfs[-1].value
        a, b = kfs[i], kfs[i + 1]
        span = b.time - a.time
        p = (t - a.time) / span
        return self.interpolate(a.value, b.value, ease(a.tween, p))


class AnimFloat(AnimationCurve[float]):
    default = 0.0

    def interpolate(self, a, b, e):
        return lerp(a, b, e)


class AnimColor(AnimationCurve[RGBA]):
    default = WHITE

    def interpolate(self, a, b, e):
        return lerp_seq(a, b, e)


class AnimText(AnimationCurve[str]):
    default = ""

    def interpolate(self, a, b, e):
        return a


class SumCurve:
    """Layers stacked on top of each other (RPE event layers add up)."""

    def __init__(self, layers: Sequence[Any], default: float = 0.0):
        self.layers = list(layers)
        self.default = default

    def evaluate(self, t: float) -> float:
        if not self.layers:
            return self.default
        return sum(layer.evaluate(t) for layer in self.layers)


class AnimVector:
    """Two independently keyed axes."""

    def __init__(self, x: Any = None, y: Any = None, default: Tuple[float, float] = (0.0, 0.0)):
        self.x = x if x is not None else AnimFloat(default=default[0])
        self.y = y if y is not None else AnimFloat(default=default[1])

    @classmethod
    def constant(cls, x: float, y: float) -> "AnimVector":
        return cls(AnimFloat.constant(x), AnimFloat.constant(y))

    def evaluate(self, t: float) -> Tuple[float, float]:
        return (self.x.evaluate(t), self.y.evaluate(t))


class KeyframeBuilder:
    """Turns timed events into a keyframe list.

    ``ramp`` animates from ``v0`` to ``v1`` over ``[t0, t1]``; between ramps the
    previous end value is held, and a ramp that starts at a different value
    jumps at its start time. ``jump`` is a zero-length ramp from the current value.

    An event that starts while an earlier one is still running cuts the earlier
    one short: its curve is kept up to the new start time and the rest dropped.
    """

    def __init__(self, initial: Any, *, cls=None, fmt: Optional[str] = None, what: str = ""):
        self.initial = initial
        self.current = initial
        self.frames: List[Keyframe] = []
        self.cls = cls or AnimFloat
        self.fmt = fmt
        self.what = what

    def _cut(self, t: float) -> None:
        frames = self.frames
        value = self.cls(frames).evaluate(t)
        n = bisect.bisect_right([k.time for k in frames], t)
        if 0 < n < len(frames) and frames[n - 1].time < t:
            a, b = frames[n - 1], frames[n]
            p = (t - a.time) / (b.time - a.time)
            del frames[n:]
            frames[-1] = replace(a, tween=TruncatedTween(a.tween, p))
            frames.append(Keyframe(t, value, LINEAR))
        else:
            del frames[n:]
        self.current = value

    def ramp(self, t0: float, t1: float, v0: Any, v1: Any, tween: Tween = LINEAR) -> None:
        if not (math.isfinite(t0) and math.isfinite(t1)):
            raise CompileError("event time is not finite", fmt=self.fmt, where=self.what or None)
        if t1 < t0:
            raise CompileError(f"event ends ({t1:.6g}s) before it starts ({t0:.6g}s)", fmt=self.fmt, where=self.what or None)
        frames = self.frames
        if frames and t0 < frames[-1].time:
            self._cut(t0)
        if frames:
            last = frames[-1]
            if last.time < t0 and last.value != v0:
                frames.append(Keyframe(t0, last.value, LINEAR))
            if frames[-1].time == t0 and frames[-1].value == v0:
                frames[-1] = replace(frames[-1], tween=tween)
            else:
                frames.append(Keyframe(t0, v0, tween))
        else:
            frames.append(Keyframe(t0, v0, tween))
        frames.append(Keyframe(t1, v1, LINEAR))
        self.current = v1

    def _settle(self, t: float) -> None:
        # the current value at t, once anything still running is cut there
        if self.frames and t < self.frames[-1].time:
            self._cut(t)

    def jump(self, t: float, v: Any) -> None:
        self._settle(t)
        self.ramp(t, t, self.current, v)

    def move_to(self, t0: float, t1: float, v1: Any, tween: Tween = LINEAR) -> None:
        self._settle(t0)
        self.ramp(t0, t1, self.current, v1, tween)

    def build(self, cls=None):
        return (cls or self.cls)(self.frames, default=self.initial)
