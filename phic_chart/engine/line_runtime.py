from __future__ import annotations

from typing import Any, Optional, Tuple

import numpy as np

from ..config.schema import RenderConfig
from ..errors import RuntimeInvariantViolation
from ..math.curves import RGBA
from ..math.transform import FLIP_Y, ScopedTransformStack, rotation, scaling, translation
from ..math.util import clamp
from ..render.primitives import LinePrimitive, NotePrimitive, QuadPrimitive, TextPrimitive
from ..types import DynamicText, JudgeLine, Normal, Note, TexturedSprite


# notes this far behind the line count as already passed
BEHIND_EPS = 1e-3


class JudgeLineRuntime:
    """Per-frame driver of one judge line.

    ``update(t)`` evaluates every curve the line owns; ``render`` only reads
    what ``update`` stored, so it can be called any number of times per frame.
    """

    def __init__(self, line: JudgeLine, config: Optional[RenderConfig] = None, index: int = 0):
        self.line = line
        self.config = config or RenderConfig()
        self.index = index
        self.time: Optional[float] = None
        self.now_height = 0.0
        self.now_text = ""

    def update(self, t: float) -> None:
        line = self.line
        for note in line.notes_above:
            note.object.set_time(t)
        for note in line.notes_below:
            note.object.set_time(t)
        line.object.set_time(t)
        if isinstance(line.kind, DynamicText):
            self.now_text = str(line.kind.text.evaluate(t))
        self.now_height = float(line.height.evaluate(t))
        self.time = t

    def snapshot(self) -> Tuple[Any, ...]:
        """Everything the last ``update`` produced, for comparisons."""
        notes = tuple(n.object.snapshot() for n in self.line.all_notes())
        return (self.time, self.line.object.snapshot(), self.now_text, self.now_height, notes)

    def line_color(self) -> RGBA:
        r, g, b, a = self.line.object.now_color()
        forced = self.config.force_line_alpha01
        if forced is not None:
            a = clamp(float(forced), 0.0, 1.0)
        return (r, g, b, a)

    def render(self, canvas: Any, stack: ScopedTransformStack, placement: Optional[np.ndarray] = None) -> None:
        """Emit this line's primitives.

        ``placement`` replaces the line's own translation and rotation; the
        session passes it for lines attached to a father.
        """
        if self.time is None:
            raise RuntimeInvariantViolation(f"line {self.index} rendered before update")
        obj = self.line.object
        frame = obj.now() if placement is None else placement
        with stack.scope(frame):
            with stack.scope(obj.now_scale()):
                self._render_kind(canvas, stack)
            height = self.now_height
            for note in self.line.notes_above:
                self._render_note(canvas, stack, note, height, True)
            with stack.scope(FLIP_Y):
                for note in self.line.notes_below:
                    self._render_note(canvas, stack, note, height, False)

    def _render_kind(self, canvas: Any, stack: ScopedTransformStack) -> None:
        kind = self.line.kind
        color = self.line_color()
        if isinstance(kind, Normal):
            r, g, b = self.config.judge_line_rgb
            half = self.config.line_half_length
            canvas.emit(
                LinePrimitive(
                    line_index=self.index,
                    start=stack.map_point(-half, 0.0),
                    end=stack.map_point(half, 0.0),
                    width=self.config.line_width,
                    color=(r, g, b, color[3]),
                    matrix=stack.current,
                )
            )
        elif isinstance(kind, TexturedSprite):
            corners = None
            if kind.texture is not None:
                hw, hh = kind.texture.half_extent()
                corners = (
                    stack.map_point(-hw, -hh),
                    stack.map_point(hw, -hh),
                    stack.map_point(hw, hh),
                    stack.map_point(-hw, hh),
                )
            canvas.emit(
                QuadPrimitive(
                    line_index=self.index,
                    texture_name=kind.texture_name,
                    texture=kind.texture,
                    corners=corners,
                    color=color,
                    flip_y=True,
                    matrix=stack.current,
                )
            )
        elif isinstance(kind, DynamicText):
            # text is laid out y-down
            with stack.scope(FLIP_Y):
                canvas.emit(
                    TextPrimitive(
                        line_index=self.index,
                        text=self.now_text,
                        center=stack.map_point(0.0, 0.0),
                        size=self.config.text_size,
                        color=color,
                        matrix=stack.current,
                    )
                )
        else:
            raise RuntimeInvariantViolation(f"line {self.index} has unknown kind {type(kind).__name__}")

    def _render_note(self, canvas: Any, stack: ScopedTransformStack, note: Note, line_height: float, above: bool) -> None:
        t = self.time
        if note.is_hold:
            if t > note.finish_time:
                return
        elif t > note.time:
            return
        if note.time - t > note.visible_time:
            return

        spd = note.speed * self.config.note_flow_speed_multiplier
        head_y = (note.height - line_height) * spd
        tail_y = None
        if note.is_hold:
            end_height = note.end_height if note.end_height is not None else note.height
            tail_y = (end_height - line_height) * spd
            # the head stays on the line while the hold is pressed
            head_y = max(head_y, 0.0)
        elif head_y < -BEHIND_EPS:
            return

        obj = note.object
        ox, oy = obj.now_translation
        sx, _sy = obj.now_scale_xy
        with stack.scope(translation(ox, oy)):
            head = stack.map_point(0.0, head_y)
            tail = stack.map_point(0.0, tail_y) if tail_y is not None else None
            local = translation(0.0, head_y) @ rotation(obj.now_rotation) @ scaling(sx, 1.0)
            with stack.scope(local):
                canvas.emit(
                    NotePrimitive(
                        line_index=self.index,
                        note=note,
                        kind=note.kind,
                        above=above,
                        head=head,
                        tail=tail,
                        width=sx,
                        alpha=obj.now_color()[3],
                        multiple_hint=note.multiple_hint,
                        matrix=stack.current,
                    )
                )
