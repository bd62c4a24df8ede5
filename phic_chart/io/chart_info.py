"""Chart metadata read from a chart folder's ``info.yml``."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

from ..errors import CompileError
from ..types import ChartFormat

logger = logging.getLogger(__name__)


@dataclass
class ChartInfo:
    id: Optional[str] = None

    name: str = "UK"
    level: str = "UK Lv.?"
    charter: str = "UK"
    composer: str = "UK"
    illustrator: str = "UK"

    chart: str = "chart.json"
    format: Optional[ChartFormat] = None
    music: str = "song.mp3"
    illustration: str = "background.png"

    aspect_ratio: float = 16.0 / 9.0

    intro: str = ""
    tags: List[str] = field(default_factory=list)

    def chart_format(self) -> ChartFormat:
        """The declared format; charts are never sniffed."""
        if self.format is None:
            raise CompileError(f"{self.name}: info.yml does not declare a chart format")
        return self.format


def _strip_inline_comment(s: str) -> str:
    in_sq = False
    in_dq = False
    buf = []
    for ch in s:
        if ch == "'" and not in_dq:
            in_sq = not in_sq
        elif ch == '"' and not in_sq:
            in_dq = not in_dq
        if not in_sq and not in_dq and ch == "#":
            break
        buf.append(ch)
    return "".join(buf).rstrip()


def _scalar(v: str) -> Any:
    if len(v) >= 2 and v[0] == v[-1] and v[0] in "\"'":
        return v[1:-1]
    if v.lower() in ("true", "false"):
        return v.lower() == "true"
    if v.lower() in ("null", "~", ""):
        return None
    for conv in (int, float):
        try:
            return conv(v)
        except ValueError:
            pass
    return v


def parse_info_yml(text: str) -> Dict[str, Any]:
    """Flat ``key: value`` YAML with inline ``[a, b]`` lists and ``- item`` block lists."""
    out: Dict[str, Any] = {}
    block_key: Optional[str] = None
    for raw in (text or "").splitlines():
        line = _strip_inline_comment(raw).strip()
        if not line:
            continue
        if line.startswith("- ") or line == "-":
            if block_key is None:
                raise CompileError(f"list item outside a key: {raw!r}", where="info.yml")
            out[block_key].append(_scalar(line[1:].strip()))
            continue
        if ":" not in line:
            raise CompileError(f"expected 'key: value', got {raw!r}", where="info.yml")
        k, v = line.split(":", 1)
        k, v = k.strip(), v.strip()
        if not v:
            # a bare key opens a block list
            out[k] = []
            block_key = k
            continue
        block_key = None
        if v.startswith("[") and v.endswith("]"):
            inside = v[1:-1].strip()
            out[k] = [_scalar(p.strip()) for p in inside.split(",")] if inside else []
        else:
            out[k] = _scalar(v)
    return out


def chart_info_from_mapping(data: Dict[str, Any]) -> ChartInfo:
    names = {f.name for f in fields(ChartInfo)}
    kwargs: Dict[str, Any] = {}
    for key, value in data.items():
        name = str(key).replace("-", "_")
        if name not in names:
            logger.debug("info.yml: ignoring unknown key %r", key)
            continue
        kwargs[name] = value

    if kwargs.get("format") == []:
        kwargs["format"] = None
    if kwargs.get("format") is not None:
        try:
            kwargs["format"] = ChartFormat.parse(kwargs["format"])
        except ValueError as err:
            raise CompileError(str(err), where="info.yml") from None
    if "aspect_ratio" in kwargs:
        try:
            kwargs["aspect_ratio"] = float(kwargs["aspect_ratio"])
        except (TypeError, ValueError):
            raise CompileError(f"aspect-ratio must be a number, got {kwargs['aspect_ratio']!r}", where="info.yml") from None
    if "tags" in kwargs:
        tags = kwargs["tags"]
        kwargs["tags"] = [str(t) for t in tags] if isinstance(tags, list) else [str(tags)]
    for name in ("id", "name", "level", "charter", "composer", "illustrator", "chart", "music", "illustration", "intro"):
        if kwargs.get(name) == []:
            # "key:" with nothing after it
            kwargs[name] = None if name == "id" else ""
        elif kwargs.get(name) is not None:
            kwargs[name] = str(kwargs[name])
        elif name in kwargs and name != "id":
            del kwargs[name]
    return ChartInfo(**kwargs)


def load_chart_info(text: str) -> ChartInfo:
    return chart_info_from_mapping(parse_info_yml(text))
