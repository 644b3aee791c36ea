"""Utility functions for te_dynamics.

General-purpose helpers: time formatting, timing.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Generator

logger = logging.getLogger(__name__)


def format_timestamp(epoch_seconds: float) -> str:
    """ctime-style local timestamp, e.g. 'Mon Oct 19 14:03:07 2026'."""
    return time.ctime(epoch_seconds)


def format_elapsed(seconds: float) -> str:
    """Wall time as 'HHh MMm SSs' (hours are not wrapped at 24)."""
    total = int(round(max(seconds, 0.0)))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}h {minutes:02d}m {secs:02d}s"


@contextmanager
def timer(label: str = "") -> Generator[None, None, None]:
    """Simple context-manager timer. Logs elapsed time at DEBUG on exit."""
    start = time.perf_counter()
    yield
    elapsed = time.perf_counter() - start
    if label:
        logger.debug("[%s] %.3fs", label, elapsed)
    else:
        logger.debug("Elapsed: %.3fs", elapsed)
