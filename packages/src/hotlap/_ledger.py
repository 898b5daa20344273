"""Milestone ledger — the ordered checkpoints and the run cursor.

The ledger owns the only mutable timing state besides the start
instant: the milestone list, the index of the milestone the runner is
heading to (``cursor``), and whether a run is active.

Invariants:

- ``cursor is None`` whenever no run is active.  During a run it
  indexes a milestone, except for a run over an empty ledger, which is
  a plain stopwatch with no cursor.
- Length and order of the milestones never change during a run.  Only
  the milestone at ``cursor`` is replaced, then the cursor moves by one
  or the run ends.
- During a run, deltas exist only left of the cursor, and all of them
  come from that run.

Every precondition failure raises :class:`InvalidTransition` *before*
anything is mutated, so a rejected call leaves the ledger untouched.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

from hotlap._duration import ZERO, Duration
from hotlap._errors import Condition, InvalidTransition

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Milestone:
    """A named checkpoint.

    Attributes:
        name: Display name, fixed at load time.
        reference_time: Cumulative time to beat at this checkpoint.
        delta: Seconds gained (negative) or lost (positive) against the
            previous reference, or ``None`` if not passed this run.
    """

    name: str
    reference_time: Duration = ZERO
    delta: float | None = None


class AdvanceResult(StrEnum):
    """What happened after a milestone was recorded."""

    CONTINUED = "continued"
    FINISHED = "finished"


@dataclass(frozen=True, slots=True)
class LedgerSnapshot:
    """Read-only view of a :class:`Ledger`."""

    milestones: tuple[Milestone, ...]
    current_index: int | None
    running: bool


def default_milestones(count: int) -> list[Milestone]:
    """Create *count* zero-time milestones named ``Milestone 1..N``."""
    return [Milestone(name=f"Milestone {i}") for i in range(1, count + 1)]


def _clean(records: Iterable[Milestone]) -> list[Milestone]:
    """Copy *records* keeping only name and reference time."""
    return [Milestone(name=r.name, reference_time=r.reference_time) for r in records]


class Ledger:
    """Ordered milestones plus the active-run cursor.

    Build one with :meth:`load`; the constructor is equivalent.
    """

    def __init__(self, records: Iterable[Milestone] = ()) -> None:
        self._milestones: list[Milestone] = _clean(records)
        self._cursor: int | None = None
        self._run_active = False

    @classmethod
    def load(cls, records: Iterable[Milestone]) -> Ledger:
        """Create an idle ledger from persisted records.

        Deltas in *records* are dropped.  An empty iterable yields an
        empty ledger ("no data"), which is a valid state.
        """
        return cls(records)

    # --- Queries -------------------------------------------------------------

    @property
    def milestones(self) -> tuple[Milestone, ...]:
        return tuple(self._milestones)

    @property
    def cursor(self) -> int | None:
        return self._cursor

    @property
    def run_active(self) -> bool:
        return self._run_active

    def __len__(self) -> int:
        return len(self._milestones)

    def snapshot(self) -> LedgerSnapshot:
        """Return a read-only view of the current state."""
        return LedgerSnapshot(
            milestones=tuple(self._milestones),
            current_index=self._cursor,
            running=self._run_active,
        )

    # --- Commands ------------------------------------------------------------

    def start_run(self) -> None:
        """Begin a run at the first milestone.

        Deltas left over from the previous run are cleared.

        Raises:
            InvalidTransition: If a run is already active.
        """
        if self._run_active:
            raise InvalidTransition(Condition.RUN_ACTIVE)
        self._milestones = [dataclasses.replace(m, delta=None) for m in self._milestones]
        self._run_active = True
        self._cursor = 0 if self._milestones else None
        logger.debug("Run started (%d milestones)", len(self._milestones))

    def advance(self, measured: Duration) -> AdvanceResult:
        """Record *measured* at the current milestone and move on.

        The new delta is computed against the milestone's reference
        time *before* it is overwritten by *measured*.

        Raises:
            InvalidTransition: If no run is active, or the run has no
                milestone to record (empty ledger).
        """
        if not self._run_active:
            raise InvalidTransition(Condition.NO_ACTIVE_RUN)
        if self._cursor is None:
            raise InvalidTransition(Condition.NO_ACTIVE_MILESTONE)

        index = self._cursor
        old = self._milestones[index]
        delta = (measured.total_ms - old.reference_time.total_ms) / 1000
        self._milestones[index] = dataclasses.replace(
            old,
            reference_time=measured,
            delta=delta,
        )
        logger.info(
            "Milestone '%s' at %.3fs (delta %+.3fs)",
            old.name,
            measured.to_seconds(),
            delta,
        )

        if index + 1 < len(self._milestones):
            self._cursor = index + 1
            return AdvanceResult.CONTINUED

        self._run_active = False
        self._cursor = None
        logger.info("Run finished")
        return AdvanceResult.FINISHED

    def reset(self, records: Iterable[Milestone]) -> None:
        """Replace all milestones with *records*, clearing deltas.

        Raises:
            InvalidTransition: If a run is active.  The caller must let
                the run finish (or quit) first.
        """
        if self._run_active:
            raise InvalidTransition(Condition.RUN_ACTIVE, "finish the run before resetting")
        self._milestones = _clean(records)
        self._cursor = None
