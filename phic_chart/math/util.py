from __future__ import annotations

from typing import Sequence, Tuple


def clamp(x, a, b):
    return a if x < a else b if x > b else x


def lerp(a, b, t):
    return a + (b - a) * t


def lerp_seq(a: Sequence[float], b: Sequence[float], t: float) -> Tuple[float, ...]:
    return tuple(x + (y - x) * t for x, y in zip(a, b))


def rgb255_to_unit(r, g, b, a=255) -> Tuple[float, float, float, float]:
    return (
        clamp(float(r), 0.0, 255.0) / 255.0,
        clamp(float(g), 0.0, 255.0) / 255.0,
        clamp(float(b), 0.0, 255.0) / 255.0,
        clamp(float(a), 0.0, 255.0) / 255.0,
    )
