from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, List, Optional, Tuple, Union

import numpy as np

from .math.curves import RGBA, WHITE, AnimColor, AnimFloat, AnimText, AnimVector
from .math.transform import rotation, scaling, translation


class ChartFormat(str, Enum):
    RPE = "rpe"
    PEC = "pec"
    PGR = "pgr"

    @classmethod
    def parse(cls, v: Any) -> "ChartFormat":
        if isinstance(v, ChartFormat):
            return v
        s = str(v).strip().lower()
        for f in cls:
            if f.value == s:
                return f
        raise ValueError(f"unknown chart format: {v!r}")


class NoteKind(IntEnum):
    TAP = 1
    DRAG = 2
    HOLD = 3
    FLICK = 4


class AnimatedObject:
    """Transform, color and opacity of a line or note, each an animation curve.

    ``set_time`` evaluates every curve once and keeps the results; the ``now*``
    accessors only read those results.
    """

    def __init__(
        self,
        translation: Optional[AnimVector] = None,
        rotation: Optional[Any] = None,
        scale: Optional[AnimVector] = None,
        color: Optional[AnimColor] = None,
        alpha: Optional[Any] = None,
    ):
        self.translation = translation if translation is not None else AnimVector()
        self.rotation = rotation if rotation is not None else AnimFloat()
        self.scale = scale if scale is not None else AnimVector(default=(1.0, 1.0))
        self.color = color if color is not None else AnimColor()
        self.alpha = alpha if alpha is not None else AnimFloat(default=1.0)

        self.time = 0.0
        self.now_translation: Tuple[float, float] = (0.0, 0.0)
        self.now_rotation = 0.0
        self.now_scale_xy: Tuple[float, float] = (1.0, 1.0)
        self.now_rgba: RGBA = WHITE
        self.now_alpha = 1.0
        self.set_time(0.0)

    def set_time(self, t: float) -> None:
        self.time = t
        self.now_translation = self.translation.evaluate(t)
        self.now_rotation = float(self.rotation.evaluate(t))
        self.now_scale_xy = self.scale.evaluate(t)
        self.now_rgba = self.color.evaluate(t)
        self.now_alpha = float(self.alpha.evaluate(t))

    def now(self) -> np.ndarray:
        x, y = self.now_translation
        return translation(x, y) @ rotation(self.now_rotation)

    def now_scale(self) -> np.ndarray:
        return scaling(*self.now_scale_xy)

    def now_color(self) -> RGBA:
        r, g, b, a = self.now_rgba
        return (r, g, b, a * self.now_alpha)

    def snapshot(self) -> Tuple[Any, ...]:
        return (self.now_translation, self.now_rotation, self.now_scale_xy, self.now_rgba, self.now_alpha)


@dataclass
class Note:
    kind: NoteKind
    time: float
    height: float = 0.0
    speed: float = 1.0
    fake: bool = False
    end_time: Optional[float] = None
    end_height: Optional[float] = None
    object: AnimatedObject = field(default_factory=AnimatedObject)
    visible_time: float = math.inf
    hitsound: Optional[str] = None
    # set by the multi-hint pass only
    multiple_hint: bool = False

    @property
    def is_hold(self) -> bool:
        return self.kind == NoteKind.HOLD

    @property
    def finish_time(self) -> float:
        return self.end_time if self.end_time is not None else self.time


# RPE canvas in pixels; line textures are sized against it
RPE_WIDTH = 1350.0
RPE_HEIGHT = 900.0


@dataclass(frozen=True)
class TextureAsset:
    name: str
    width: float
    height: float
    handle: Any = None

    def half_extent(self) -> Tuple[float, float]:
        """Half width and half height in world units."""
        return self.width / RPE_WIDTH, self.height / RPE_HEIGHT


@dataclass(frozen=True)
class Normal:
    pass


@dataclass(frozen=True)
class TexturedSprite:
    texture_name: str
    texture: Optional[TextureAsset] = None


@dataclass(frozen=True)
class DynamicText:
    text: AnimText


LineKind = Union[Normal, TexturedSprite, DynamicText]


@dataclass
class JudgeLine:
    object: AnimatedObject = field(default_factory=AnimatedObject)
    height: Any = field(default_factory=AnimFloat)
    kind: LineKind = field(default_factory=Normal)
    notes_above: List[Note] = field(default_factory=list)
    notes_below: List[Note] = field(default_factory=list)
    name: str = ""
    father: int = -1
    rotate_with_father: bool = True

    def all_notes(self) -> List[Note]:
        return self.notes_above + self.notes_below

    def sorted_notes(self) -> List[Note]:
        # sorted() is stable: ties keep parse order
        return sorted(self.all_notes(), key=lambda n: n.time)


@dataclass
class Chart:
    format: ChartFormat
    lines: List[JudgeLine] = field(default_factory=list)
    offset: float = 0.0
    hints_annotated: bool = False

    def note_count(self) -> int:
        return sum(len(ln.notes_above) + len(ln.notes_below) for ln in self.lines)
