"""Immutable configuration objects.

Passed explicitly to the loader and the session instead of living in
module-level globals, so several charts can be compiled or played side by side.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompileConfig:
    """Settings that change how native charts are compiled.

    rpe_easing_shift: added to every RPE ``easingType`` before the table lookup
        (some exporters write 0-based codes).
    height_subdivisions: keyframes per speed segment whose speed changes over
        time; the floor position between them is linear.
    require_assets: fail compilation when a texture cannot be resolved.
    """

    rpe_easing_shift: int = 0
    height_subdivisions: int = 16
    require_assets: bool = True

    def __post_init__(self):
        if self.height_subdivisions < 1:
            raise ValueError("height_subdivisions must be >= 1")


@dataclass(frozen=True)
class RenderConfig:
    """Settings read by the per-frame runtime."""

    note_flow_speed_multiplier: float = 1.0
    force_line_alpha01: Optional[float] = None
    judge_line_rgb: Tuple[float, float, float] = (0xFE / 255.0, 0xFF / 255.0, 0xA9 / 255.0)
    line_half_length: float = 6.0
    line_width: float = 0.01
    text_size: float = 0.08


def _pick(cls, data: Mapping[str, Any]):
    names = {f.name for f in fields(cls)}
    kwargs = {k: v for k, v in data.items() if k in names}
    for k, v in kwargs.items():
        if k == "judge_line_rgb" and v is not None:
            kwargs[k] = tuple(float(c) for c in v)
    return cls(**kwargs)


def config_from_mapping(data: Optional[Mapping[str, Any]]) -> Tuple[CompileConfig, RenderConfig]:
    """Build both configs from ``{"compile": {...}, "render": {...}}`` or a flat dict.

    Unknown keys are ignored.
    """
    data = dict(data or {})
    compile_sec = data.get("compile")
    render_sec = data.get("render")
    if not isinstance(compile_sec, dict):
        compile_sec = data
    if not isinstance(render_sec, dict):
        render_sec = data

    cc = _pick(CompileConfig, compile_sec)
    rc = _pick(RenderConfig, render_sec)
    logger.debug("config: %s %s", cc, rc)
    return cc, rc


def config_to_dict(compile_config: CompileConfig, render_config: RenderConfig) -> Dict[str, Dict[str, Any]]:
    return {
        "compile": {f.name: getattr(compile_config, f.name) for f in fields(CompileConfig)},
        "render": {f.name: getattr(render_config, f.name) for f in fields(RenderConfig)},
    }
