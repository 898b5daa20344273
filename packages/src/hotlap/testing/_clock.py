"""Deterministic fake clock for testing.

Satisfies ClockPort (PEP 544 structural subtyping) with a manually
controllable time value — no real time dependency.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class FakeClock:
    """Test double for ClockPort.

    Attributes:
        _time: The current "now" value returned by ``now()``.
            Set directly, via the constructor, or with
            :meth:`advance` / :meth:`set`.

    Example::

        clock = FakeClock()
        clock.advance(9.8)
        assert clock.now() == 9.8
    """

    _time: float = 0.0

    def now(self) -> float:
        """Return the manually set time value."""
        return self._time

    def set(self, seconds: float) -> None:
        """Jump to an absolute time."""
        self._time = seconds

    def advance(self, seconds: float) -> None:
        """Move time forward by *seconds*."""
        self._time += seconds
