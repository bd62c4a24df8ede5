"""Draw primitives handed to the rendering collaborator.

Every primitive carries the world matrix of the frame it was drawn in plus its
geometry already mapped to world space, so consumers never see the transform
stack.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Tuple, Type, TypeVar

import numpy as np

from ..math.curves import RGBA
from ..types import Note, NoteKind, TextureAsset

Point = Tuple[float, float]
P = TypeVar("P")


@dataclass(frozen=True)
class LinePrimitive:
    line_index: int
    start: Point
    end: Point
    width: float
    color: RGBA
    matrix: np.ndarray


@dataclass(frozen=True)
class QuadPrimitive:
    line_index: int
    texture_name: str
    texture: Optional[TextureAsset]
    # world corners in local order: (-x,-y), (+x,-y), (+x,+y), (-x,+y); None when the size is unknown
    corners: Optional[Tuple[Point, Point, Point, Point]]
    color: RGBA
    # texture rows run opposite to the frame's y axis (image data is y-down)
    flip_y: bool
    matrix: np.ndarray


@dataclass(frozen=True)
class TextPrimitive:
    line_index: int
    text: str
    center: Point
    size: float
    color: RGBA
    matrix: np.ndarray


@dataclass(frozen=True)
class NotePrimitive:
    line_index: int
    note: Note
    kind: NoteKind
    above: bool
    head: Point
    tail: Optional[Point]
    width: float
    alpha: float
    multiple_hint: bool
    matrix: np.ndarray


class DrawList:
    """Canvas that only records what was emitted."""

    def __init__(self):
        self.items: List[Any] = []

    def emit(self, primitive: Any) -> None:
        self.items.append(primitive)

    def clear(self) -> None:
        self.items.clear()

    def of_type(self, cls: Type[P]) -> List[P]:
        return [p for p in self.items if isinstance(p, cls)]

    def __iter__(self) -> Iterator[Any]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)
