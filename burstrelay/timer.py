"""Wall-clock helper."""

from __future__ import annotations

import time
from datetime import timedelta

__all__ = ["get_timer"]


def get_timer() -> timedelta:
    """Return the time elapsed since the Unix epoch."""
    nanos = time.time_ns()
    if nanos < 0:
        raise RuntimeError("Time went backwards")
    return timedelta(microseconds=nanos // 1000)