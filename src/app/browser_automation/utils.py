"""Utility helpers used across the browser automation stack."""
from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def clamp(v: float, lo: float, hi: float) -> float:
    """Clamp a number to [lo, hi]."""
    return max(lo, min(hi, v))


def parse_bool(s: str | None, default: bool = False) -> bool:
    if s is None:
        return default
    return s.strip().lower() in {"1", "true", "yes", "y", "on"}


def parse_optional_int(s: str | None) -> int | None:
    """Parse an integer env value; blank or non-numeric means 'not set'."""
    if s is None or not s.strip():
        return None
    try:
        return int(s.strip())
    except ValueError:
        return None


def configure_logging(level: str = "INFO") -> None:
    """Install a single console handler on the root logger (apps only, not library code)."""
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
