"""Chart evaluation: the multi-hint pass and the per-frame judge line runtime."""

from .line_runtime import JudgeLineRuntime
from .multi_hint import annotate_multiple_hints

__all__ = ["JudgeLineRuntime", "annotate_multiple_hints"]
