from __future__ import annotations

import math
from typing import Any, Dict, Optional, Tuple

import pygame

from ...math.transform import matrix_angle, matrix_scale
from ...math.util import clamp
from ...render.primitives import LinePrimitive, NotePrimitive, QuadPrimitive, TextPrimitive
from ...types import NoteKind

NOTE_RGB: Dict[NoteKind, Tuple[int, int, int]] = {
    NoteKind.TAP: (10, 195, 255),
    NoteKind.DRAG: (240, 237, 105),
    NoteKind.HOLD: (10, 195, 255),
    NoteKind.FLICK: (254, 67, 101),
}
MULTI_HINT_RGB = (255, 215, 0)


def rgba255(color) -> Tuple[int, int, int, int]:
    return tuple(int(round(clamp(float(c), 0.0, 1.0) * 255)) for c in color)


class PygameCanvas:
    """Draws primitives onto a pygame Surface.

    World x in [-1, 1] spans the surface width, world y in [-1, 1] spans its
    height bottom to top.
    """

    def __init__(self, surface: pygame.Surface, *, font_path: Optional[str] = None, note_size: Tuple[float, float] = (0.2, 0.02)):
        self.surface = surface
        self.font_path = font_path
        self.note_size = note_size
        self._fonts: Dict[int, Any] = {}

    @property
    def size(self) -> Tuple[int, int]:
        return self.surface.get_size()

    def to_screen(self, p) -> Tuple[float, float]:
        w, h = self.size
        return (p[0] + 1.0) * 0.5 * w, (1.0 - p[1]) * 0.5 * h

    def emit(self, prim: Any) -> None:
        if isinstance(prim, LinePrimitive):
            self._draw_line(prim)
        elif isinstance(prim, QuadPrimitive):
            self._draw_quad(prim)
        elif isinstance(prim, TextPrimitive):
            self._draw_text(prim)
        elif isinstance(prim, NotePrimitive):
            self._draw_note(prim)
        else:
            raise TypeError(f"cannot draw {type(prim).__name__}")

    def _draw_line(self, p: LinePrimitive) -> None:
        rgba = rgba255(p.color)
        if rgba[3] <= 0:
            return
        _w, h = self.size
        width = max(1, int(round(p.width * abs(matrix_scale(p.matrix)[1]) * h * 0.5)))
        pygame.draw.line(self.surface, rgba, self.to_screen(p.start), self.to_screen(p.end), width)

    def _draw_quad(self, p: QuadPrimitive) -> None:
        rgba = rgba255(p.color)
        if p.corners is None or rgba[3] <= 0:
            return
        pts = [self.to_screen(c) for c in p.corners]
        handle = p.texture.handle if p.texture is not None else None
        if handle is None:
            pygame.draw.polygon(self.surface, rgba, pts)
            return

        out_w = max(1, int(round(math.dist(pts[0], pts[1]))))
        out_h = max(1, int(round(math.dist(pts[1], pts[2]))))
        img = pygame.transform.smoothscale(handle, (out_w, out_h))
        # image rows run top-down; flip_y marks a texture whose rows oppose the frame's y
        if (matrix_scale(p.matrix)[1] < 0) == p.flip_y:
            img = pygame.transform.flip(img, False, True)
        tint = pygame.Surface(img.get_size(), pygame.SRCALPHA)
        tint.fill(rgba)
        img.blit(tint, (0, 0), special_flags=pygame.BLEND_RGBA_MULT)
        self._blit_rotated(img, math.degrees(matrix_angle(p.matrix)), pts)

    def _blit_rotated(self, img: pygame.Surface, deg: float, pts) -> None:
        spr = pygame.transform.rotozoom(img, deg, 1.0)
        cx = sum(x for x, _y in pts) / len(pts)
        cy = sum(y for _x, y in pts) / len(pts)
        self.surface.blit(spr, spr.get_rect(center=(cx, cy)).topleft)

    def _font(self, px: int):
        font = self._fonts.get(px)
        if font is None:
            if not pygame.font.get_init():
                pygame.font.init()
            font = pygame.font.Font(self.font_path, px)
            self._fonts[px] = font
        return font

    def _draw_text(self, p: TextPrimitive) -> None:
        rgba = rgba255(p.color)
        if not p.text or rgba[3] <= 0:
            return
        _w, h = self.size
        px = max(1, int(round(p.size * abs(matrix_scale(p.matrix)[1]) * h * 0.5)))
        img = self._font(px).render(p.text, True, rgba[:3])
        img.set_alpha(rgba[3])
        # text frames are y-flipped, so the matrix angle is measured against a mirrored axis
        self._blit_rotated(img, math.degrees(matrix_angle(p.matrix)), [self.to_screen(p.center)])

    def _draw_note(self, p: NotePrimitive) -> None:
        a = int(round(clamp(p.alpha, 0.0, 1.0) * 255))
        if a <= 0:
            return
        rgb = MULTI_HINT_RGB if p.multiple_hint else NOTE_RGB[p.kind]
        w, h = self.size
        ang = matrix_angle(p.matrix)
        # along-line axis in screen space (y down)
        ux, uy = math.cos(ang), -math.sin(ang)
        half_w = self.note_size[0] * p.width * 0.5 * w * 0.5
        half_h = self.note_size[1] * 0.5 * h * 0.5
        hx, hy = self.to_screen(p.head)
        if p.tail is not None:
            tx, ty = self.to_screen(p.tail)
            pts = [
                (hx - ux * half_w, hy - uy * half_w),
                (hx + ux * half_w, hy + uy * half_w),
                (tx + ux * half_w, ty + uy * half_w),
                (tx - ux * half_w, ty - uy * half_w),
            ]
        else:
            nx, ny = -uy, ux
            pts = [
                (hx - ux * half_w - nx * half_h, hy - uy * half_w - ny * half_h),
                (hx + ux * half_w - nx * half_h, hy + uy * half_w - ny * half_h),
                (hx + ux * half_w + nx * half_h, hy + uy * half_w + ny * half_h),
                (hx - ux * half_w + nx * half_h, hy - uy * half_w + ny * half_h),
            ]
        pygame.draw.polygon(self.surface, (*rgb, a), pts)
