"""Monotonic clock port, system adapter, and elapsed-time sampling.

Provides ClockPort (Protocol), SystemClock, and :func:`elapsed`,
which turns two instants into a :class:`~hotlap._duration.Duration`.

**Why monotonic?** time.monotonic() is immune to NTP adjustments and
manual system-clock changes, so a running lap can never jump
backwards.  The epoch is arbitrary — only *differences* between now()
calls are meaningful (PEP 418).
"""

from __future__ import annotations

import logging
import math
import time
from typing import Protocol, runtime_checkable

from hotlap._duration import ZERO, Duration

logger = logging.getLogger(__name__)


@runtime_checkable
class ClockPort(Protocol):
    """Monotonic clock for timing measurements.

    The default implementation wraps ``time.monotonic()``. Tests
    inject a deterministic fake clock for reproducible timing.
    """

    def now(self) -> float:
        """Return monotonic time in seconds.

        Returns:
            A float representing seconds from an arbitrary epoch.
            Only the *difference* between two calls is meaningful.
        """
        ...


class SystemClock:
    """Production clock wrapping ``time.monotonic()``.

    Satisfies :class:`ClockPort` via structural subtyping — no
    base-class inheritance required (PEP 544).
    """

    def now(self) -> float:
        """Return monotonic time in seconds."""
        return time.monotonic()


def elapsed(start: float, now: float) -> Duration:
    """Return the time between two monotonic instants.

    Never fails.  When *now* is earlier than *start* (a clock anomaly,
    e.g. instants taken from two different clocks) the result is
    clamped to zero.

    Args:
        start: Instant the run started, in monotonic seconds.
        now: Current instant, in monotonic seconds.

    Returns:
        The elapsed :class:`Duration`, truncated to whole milliseconds.
    """
    if now < start:
        logger.debug("Clock anomaly: now=%.6f < start=%.6f, clamping", now, start)
        return ZERO
    # round() first so 9.8 s stored as 9.7999999 still yields 9800 ms
    return Duration(math.floor(round((now - start) * 1000, 6)))
