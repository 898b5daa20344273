"""Duration value type.

A :class:`Duration` is a non-negative millisecond count.  The
``(hours, minutes, seconds, milliseconds)`` tuple is only a *view* of
that count — arithmetic (deltas, comparisons) always goes through
``total_ms`` so nothing is lost to the view's wrapping.

**Hours wrap modulo 24.**  A session longer than a day shows
``00:..`` again.  The persisted format stores the view, so such a
reference loses whole days on save.  Kept as-is: hotlaps are minutes
long, and changing the view would change the on-disk format.
"""

from __future__ import annotations

from dataclasses import dataclass

MS_PER_SECOND = 1_000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE


@dataclass(frozen=True, slots=True, order=True)
class Duration:
    """Immutable elapsed time backed by a millisecond count.

    Example::

        d = Duration(9_800)
        assert d.as_tuple() == (0, 0, 9, 800)
        assert d.to_seconds() == 9.8
    """

    total_ms: int = 0

    def __post_init__(self) -> None:
        if self.total_ms < 0:
            msg = f"Duration cannot be negative, got {self.total_ms} ms"
            raise ValueError(msg)

    @classmethod
    def from_parts(
        cls,
        hours: int = 0,
        minutes: int = 0,
        seconds: int = 0,
        milliseconds: int = 0,
    ) -> Duration:
        """Build a Duration from its decomposed parts."""
        return cls(
            hours * MS_PER_HOUR
            + minutes * MS_PER_MINUTE
            + seconds * MS_PER_SECOND
            + milliseconds
        )

    @property
    def hours(self) -> int:
        return (self.total_ms // MS_PER_HOUR) % 24

    @property
    def minutes(self) -> int:
        return (self.total_ms // MS_PER_MINUTE) % 60

    @property
    def seconds(self) -> int:
        return (self.total_ms // MS_PER_SECOND) % 60

    @property
    def milliseconds(self) -> int:
        return self.total_ms % MS_PER_SECOND

    def as_tuple(self) -> tuple[int, int, int, int]:
        """Return ``(hours, minutes, seconds, milliseconds)``."""
        return (self.hours, self.minutes, self.seconds, self.milliseconds)

    def to_seconds(self) -> float:
        """Return the full duration in seconds (not wrapped)."""
        return self.total_ms / MS_PER_SECOND


ZERO = Duration(0)
