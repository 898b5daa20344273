"""Error taxonomy and user-facing notices.

Two kinds of failure exist in a hotlap session:

- :class:`InvalidTransition` — an event arrived in a state that does
  not allow it (save while running, advance with no milestones, ...).
  Raised by the ledger, caught by the state machine, and reported back
  as a named :class:`Condition`.  Never fatal.
- :class:`PersistenceError` — the reference file could not be read or
  written.  Reported the same way; the ledger keeps its prior state.

Clock anomalies are not errors: :func:`hotlap._clock.elapsed` clamps
them to zero.

Exceptions are turned into a :class:`Notice` for display via
:func:`build_notice`.  Consumers can pass their own ``level_map`` to
change how a given exception class is presented; unmapped exceptions
fall back to ``"error"``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Literal, TypeAlias

NoticeLevel: TypeAlias = Literal["info", "warning", "error"]


class Condition(StrEnum):
    """Machine-readable reason an event was rejected."""

    RUN_ACTIVE = "run_active"
    NO_ACTIVE_RUN = "no_active_run"
    NO_ACTIVE_MILESTONE = "no_active_milestone"
    PERSISTENCE_FAILED = "persistence_failed"
    TERMINATED = "terminated"


_CONDITION_MESSAGES: dict[Condition, str] = {
    Condition.RUN_ACTIVE: "A run is in progress",
    Condition.NO_ACTIVE_RUN: "No run is active",
    Condition.NO_ACTIVE_MILESTONE: "No milestone to record",
    Condition.PERSISTENCE_FAILED: "Reference file error",
    Condition.TERMINATED: "Session has ended",
}


class HotlapError(Exception):
    """Base class for all hotlap errors."""


class InvalidTransition(HotlapError):
    """An operation was attempted in a state that does not allow it.

    Args:
        condition: Why the operation was rejected.
        detail: Optional extra context appended to the message.
    """

    def __init__(self, condition: Condition, detail: str = "") -> None:
        self.condition = condition
        message = _CONDITION_MESSAGES[condition]
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class PersistenceError(HotlapError):
    """Loading or saving the reference file failed.

    Args:
        path: The file involved.
        reason: Short description of what went wrong.
    """

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class TerminalError(HotlapError):
    """The terminal could not be switched into key-at-a-time mode."""


@dataclass(frozen=True, slots=True)
class Notice:
    """A one-line message for the user, shown next to the timer."""

    level: NoticeLevel
    message: str


_DEFAULT_LEVELS: dict[type[Exception], NoticeLevel] = {
    InvalidTransition: "warning",
    PersistenceError: "error",
}


def build_notice(
    error: Exception,
    *,
    level_map: dict[type[Exception], NoticeLevel] | None = None,
) -> Notice:
    """Convert an exception into a :class:`Notice`.

    Looks up the exact class of the exception; subclasses are not matched.

    Args:
        error: The exception to convert.
        level_map: Optional mapping from exception types to notice
            levels.  Defaults to ``warning`` for rejected transitions
            and ``error`` for persistence failures.

    Returns:
        A frozen notice ready for display.
    """
    resolved_map = level_map if level_map is not None else _DEFAULT_LEVELS
    return Notice(level=resolved_map.get(type(error), "error"), message=str(error))
