"""2D affine transforms and the scoped stack used while rendering.

Transforms are 3x3 numpy matrices acting on column vectors ``(x, y, 1)``.
A child transform composes as ``parent @ child``, so a point given in the
child's frame maps to world space through every enclosing scope.
"""

from __future__ import annotations

import math
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Tuple, TypeVar

import numpy as np

R = TypeVar("R")


def identity() -> np.ndarray:
    return np.identity(3, dtype=np.float64)


def translation(x: float, y: float) -> np.ndarray:
    m = identity()
    m[0, 2] = x
    m[1, 2] = y
    return m


def rotation(rad: float) -> np.ndarray:
    c, s = math.cos(rad), math.sin(rad)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]], dtype=np.float64)


def scaling(sx: float, sy: float) -> np.ndarray:
    return np.diag([float(sx), float(sy), 1.0])


FLIP_Y = scaling(1.0, -1.0)
FLIP_Y.setflags(write=False)


def transform_point(m: np.ndarray, x: float, y: float) -> Tuple[float, float]:
    v = m @ np.array([x, y, 1.0])
    return float(v[0]), float(v[1])


def matrix_angle(m: np.ndarray) -> float:
    """Rotation of the matrix's local x axis, in radians."""
    return math.atan2(float(m[1, 0]), float(m[0, 0]))


def matrix_scale(m: np.ndarray) -> Tuple[float, float]:
    """Lengths of the transformed unit axes (sign of y kept for flips)."""
    sx = math.hypot(float(m[0, 0]), float(m[1, 0]))
    sy = math.hypot(float(m[0, 1]), float(m[1, 1]))
    det = float(m[0, 0] * m[1, 1] - m[0, 1] * m[1, 0])
    return sx, (sy if det >= 0 else -sy)


class ScopedTransformStack:
    """Cumulative transform with guaranteed restoration.

    ``apply(transform, body)`` runs ``body`` with ``transform`` composed onto the
    current frame and puts the previous frame back however ``body`` exits.
    """

    def __init__(self, base: Any = None):
        self._current = identity() if base is None else np.array(base, dtype=np.float64)
        self._current.setflags(write=False)
        self.depth = 0

    @property
    def current(self) -> np.ndarray:
        return self._current

    @contextmanager
    def scope(self, transform: np.ndarray) -> Iterator[np.ndarray]:
        prev = self._current
        composed = prev @ transform
        composed.setflags(write=False)
        self._current = composed
        self.depth += 1
        try:
            yield composed
        finally:
            self._current = prev
            self.depth -= 1

    def apply(self, transform: np.ndarray, body: Callable[[], R]) -> R:
        with self.scope(transform):
            return body()

    def map_point(self, x: float, y: float) -> Tuple[float, float]:
        return transform_point(self._current, x, y)
