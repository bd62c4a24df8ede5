"""Pygame drawing backend."""

from .canvas import PygameCanvas

__all__ = ["PygameCanvas"]
