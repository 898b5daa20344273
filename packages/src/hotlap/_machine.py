"""Timing state machine — turns input events into ledger mutations.

State diagram::

    IDLE ──ADVANCE──▶ RUNNING ──ADVANCE (last)──▶ FINISHED ──snapshot()──▶ IDLE
                        │  ▲
                        └──┘ ADVANCE (more milestones) / TICK

    any ──QUIT──▶ TERMINATED

``FINISHED`` is a one-frame pulse: it lasts until the next
:meth:`TimingStateMachine.snapshot` call, so a presenter can show the
finished run once before the machine folds back to ``IDLE``.

``RESET`` and ``SAVE_REFERENCE`` are refused while a run is active.
Refusals never raise: :meth:`TimingStateMachine.handle` always returns
an :class:`Outcome`, naming the :class:`~hotlap._errors.Condition`
when the event was rejected.  The ledger is only touched by accepted
events.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from hotlap._clock import ClockPort, elapsed
from hotlap._duration import ZERO, Duration
from hotlap._errors import (
    Condition,
    HotlapError,
    InvalidTransition,
    Notice,
    PersistenceError,
    build_notice,
)
from hotlap._ledger import AdvanceResult, Ledger
from hotlap._persistence import PersistenceGateway

logger = logging.getLogger(__name__)


class Event(StrEnum):
    """Inputs understood by the state machine."""

    ADVANCE = "advance"
    RESET = "reset"
    SAVE_REFERENCE = "save_reference"
    QUIT = "quit"
    TICK = "tick"


class State(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    FINISHED = "finished"
    TERMINATED = "terminated"


@dataclass(frozen=True, slots=True)
class Outcome:
    """Result of handling one event.

    Attributes:
        event: The event that was handled.
        accepted: ``False`` when the event was rejected.
        condition: Why it was rejected, ``None`` when accepted.
        message: Human-readable description (empty for ticks).
    """

    event: Event
    accepted: bool = True
    condition: Condition | None = None
    message: str = ""


@dataclass(frozen=True, slots=True)
class Row:
    """One milestone line as the presenter should show it."""

    name: str
    delta: float | None
    reference_time: Duration


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Everything a presenter needs to draw one frame."""

    elapsed: Duration
    running: bool
    rows: tuple[Row, ...]


class TimingStateMachine:
    """Drives a :class:`Ledger` from input events and a clock.

    Args:
        ledger: The milestones to time against.  Owned by the machine
            from here on.
        clock: Monotonic time source.
        gateway: Where ``RESET`` reloads from and ``SAVE_REFERENCE``
            writes to.
    """

    def __init__(
        self,
        ledger: Ledger,
        clock: ClockPort,
        gateway: PersistenceGateway,
    ) -> None:
        self._ledger = ledger
        self._clock = clock
        self._gateway = gateway
        self._state = State.IDLE
        self._start_instant: float | None = None
        self._elapsed: Duration = ZERO
        self._notice: Notice | None = None

    @property
    def state(self) -> State:
        return self._state

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def elapsed(self) -> Duration:
        """The currently displayed elapsed time."""
        return self._elapsed

    @property
    def notice(self) -> Notice | None:
        """The latest message for the user, if any."""
        return self._notice

    @property
    def terminated(self) -> bool:
        return self._state is State.TERMINATED

    def show(self, notice: Notice) -> None:
        """Replace the current notice (e.g. with a startup warning)."""
        self._notice = notice

    # --- Event dispatch --------------------------------------------------------

    def handle(self, event: Event) -> Outcome:
        """Apply *event* and report what happened.

        Never raises for domain failures; see :class:`Outcome`.
        """
        if self._state is State.TERMINATED:
            return self._reject(event, InvalidTransition(Condition.TERMINATED))

        handler = {
            Event.ADVANCE: self._on_advance,
            Event.RESET: self._on_reset,
            Event.SAVE_REFERENCE: self._on_save,
            Event.QUIT: self._on_quit,
            Event.TICK: self._on_tick,
        }[event]

        try:
            return handler()
        except InvalidTransition as exc:
            return self._reject(event, exc)
        except PersistenceError as exc:
            return self._reject(event, exc, Condition.PERSISTENCE_FAILED)

    def snapshot(self) -> Snapshot:
        """Return the render-ready view, folding ``FINISHED`` into ``IDLE``."""
        ledger_view = self._ledger.snapshot()
        snap = Snapshot(
            elapsed=self._elapsed,
            running=ledger_view.running,
            rows=tuple(
                Row(name=m.name, delta=m.delta, reference_time=m.reference_time)
                for m in ledger_view.milestones
            ),
        )
        if self._state is State.FINISHED:
            self._state = State.IDLE
        return snap

    # --- Transitions -----------------------------------------------------------

    def _on_advance(self) -> Outcome:
        if self._state is State.RUNNING:
            return self._record_split()

        self._ledger.start_run()
        self._start_instant = self._clock.now()
        self._elapsed = ZERO
        self._state = State.RUNNING
        logger.info("Run started")
        return self._accept(Event.ADVANCE, "Run started")

    def _record_split(self) -> Outcome:
        assert self._start_instant is not None
        measured = elapsed(self._start_instant, self._clock.now())
        # Ledger raises before mutating, so a rejected split leaves the
        # displayed time and the run untouched.
        result = self._ledger.advance(measured)
        self._elapsed = measured
        if result is AdvanceResult.FINISHED:
            self._start_instant = None
            self._state = State.FINISHED
            return self._accept(Event.ADVANCE, "Run finished")
        return self._accept(Event.ADVANCE)

    def _on_tick(self) -> Outcome:
        if self._state is State.RUNNING and self._start_instant is not None:
            self._elapsed = elapsed(self._start_instant, self._clock.now())
        return Outcome(event=Event.TICK)

    def _on_reset(self) -> Outcome:
        if self._ledger.run_active:
            raise InvalidTransition(Condition.RUN_ACTIVE, "finish the run before resetting")
        records = self._gateway.load()
        self._ledger.reset(records)
        self._elapsed = ZERO
        self._state = State.IDLE
        logger.info("Ledger reset (%d milestones)", len(records))
        return self._accept(Event.RESET, f"Reloaded {len(records)} milestones")

    def _on_save(self) -> Outcome:
        if self._ledger.run_active:
            raise InvalidTransition(Condition.RUN_ACTIVE, "finish the run before saving")
        milestones = self._ledger.milestones
        self._gateway.save(milestones)
        return self._accept(Event.SAVE_REFERENCE, f"Saved {len(milestones)} milestones")

    def _on_quit(self) -> Outcome:
        if self._ledger.run_active:
            logger.info("Quitting with a run in progress")
        self._state = State.TERMINATED
        self._start_instant = None
        return Outcome(event=Event.QUIT)

    # --- Helpers ---------------------------------------------------------------

    def _accept(self, event: Event, message: str = "") -> Outcome:
        if message:
            self._notice = Notice(level="info", message=message)
        return Outcome(event=event, message=message)

    def _reject(
        self,
        event: Event,
        error: HotlapError,
        condition: Condition | None = None,
    ) -> Outcome:
        if condition is None and isinstance(error, InvalidTransition):
            condition = error.condition
        notice = build_notice(error)
        if isinstance(error, PersistenceError):
            logger.error("%s failed: %s", event, error)
        else:
            logger.warning("Rejected %s: %s", event, error)
        self._notice = notice
        return Outcome(
            event=event,
            accepted=False,
            condition=condition,
            message=notice.message,
        )
