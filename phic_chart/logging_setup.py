from __future__ import annotations

import logging
import os
from typing import Any, Mapping, Optional

ENV_VAR = "PHIC_CHART_LOG_LEVEL"

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
    "NOTSET": logging.NOTSET,
}


def parse_level(s: Optional[str]) -> Optional[int]:
    if not s:
        return None
    return _LEVELS.get(str(s).strip().upper())


def _flag(args: Any, key: str) -> bool:
    if args is None:
        return False
    if isinstance(args, Mapping):
        return bool(args.get(key, False))
    return bool(getattr(args, key, False))


def resolve_level(args: Any = None) -> int:
    """Pick the log level.

    Priority (highest first):
    - env PHIC_CHART_LOG_LEVEL
    - ``quiet`` / ``basic_debug`` on args (attribute or mapping key)
    - default: INFO
    """
    env_level = parse_level(os.environ.get(ENV_VAR))
    if env_level is not None:
        return env_level
    if _flag(args, "basic_debug"):
        return logging.DEBUG
    if _flag(args, "quiet"):
        return logging.WARNING
    return logging.INFO


def setup_logging(args: Any = None, *, name: str = "phic_chart") -> bool:
    """Configure the root logger once; the host wins if it already did.

    Returns whether this call installed the handler.
    """
    level = resolve_level(args)
    # level of our own loggers follows the request even when the host owns the root
    logging.getLogger(name).setLevel(level)

    root = logging.getLogger()
    if root.handlers:
        return False

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger(name).debug("logging initialized (level=%s)", logging.getLevelName(level))
    return True
