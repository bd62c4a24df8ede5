from __future__ import annotations

from typing import Optional


class ChartError(Exception):
    """Base class for every error raised by phic_chart."""


class CompileError(ChartError):
    """A chart could not be compiled into the canonical model.

    Fatal for that chart: no partially built Chart is ever returned.
    """

    def __init__(self, message: str, *, fmt: Optional[str] = None, where: Optional[str] = None):
        self.fmt = fmt
        self.where = where
        prefix = ""
        if fmt:
            prefix += f"[{fmt}] "
        if where:
            prefix += f"{where}: "
        super().__init__(prefix + message)
        self.message = message


class RuntimeInvariantViolation(ChartError):
    """An invariant that compilation should have guaranteed was broken at evaluation time."""
