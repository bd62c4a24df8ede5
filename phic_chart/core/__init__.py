from __future__ import annotations

from .session import ChartSession

__all__ = ["ChartSession"]
