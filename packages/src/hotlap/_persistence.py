"""Persistence gateway — load and save the reference milestones.

Provides PersistenceGateway (Protocol) and JsonFileGateway.

On-disk format is a JSON array::

    [
        {
            "name": "Hairpin",
            "reference_time": {"h": 0, "m": 1, "s": 12, "ms": 345},
            "delta": -0.25
        }
    ]

``delta`` is optional and dropped on load unless asked for with
``keep_delta=True`` (a loaded ledger always starts clean); it is
written on save as an audit trail of the last run.  Files written by older versions used ``time`` and ``result``
instead of ``reference_time`` and ``delta``; both spellings are
accepted on load.

Saves are atomic in the common case: the payload goes to a temporary
file in the target's directory, is fsynced, then renamed over the
target with :func:`os.replace`.  A concurrent reader sees either the
old file or the new one, never a partial write.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Annotated, Protocol, runtime_checkable

from pydantic import AliasChoices, BaseModel, Field, TypeAdapter, ValidationError

from hotlap._duration import Duration
from hotlap._errors import PersistenceError
from hotlap._ledger import Milestone

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Wire models
# ---------------------------------------------------------------------------


class TimeRecord(BaseModel):
    """Decomposed duration as stored on disk."""

    h: Annotated[int, Field(ge=0)] = 0
    m: Annotated[int, Field(ge=0, lt=60)] = 0
    s: Annotated[int, Field(ge=0, lt=60)] = 0
    ms: Annotated[int, Field(ge=0, lt=1000)] = 0

    @classmethod
    def from_duration(cls, duration: Duration) -> TimeRecord:
        h, m, s, ms = duration.as_tuple()
        return cls(h=h, m=m, s=s, ms=ms)

    def to_duration(self) -> Duration:
        return Duration.from_parts(self.h, self.m, self.s, self.ms)


class MilestoneRecord(BaseModel):
    """One milestone as stored on disk."""

    name: str
    reference_time: TimeRecord = Field(
        default_factory=TimeRecord,
        validation_alias=AliasChoices("reference_time", "time"),
    )
    delta: float | None = Field(
        default=None,
        validation_alias=AliasChoices("delta", "result"),
    )

    @classmethod
    def from_milestone(cls, milestone: Milestone) -> MilestoneRecord:
        return cls(
            name=milestone.name,
            reference_time=TimeRecord.from_duration(milestone.reference_time),
            delta=milestone.delta,
        )

    def to_milestone(self, *, keep_delta: bool = False) -> Milestone:
        return Milestone(
            name=self.name,
            reference_time=self.reference_time.to_duration(),
            delta=self.delta if keep_delta else None,
        )


_RECORDS = TypeAdapter(list[MilestoneRecord])

# ---------------------------------------------------------------------------
# Port (Protocol)
# ---------------------------------------------------------------------------


@runtime_checkable
class PersistenceGateway(Protocol):
    """Port contract for reference-milestone storage."""

    def load(self) -> list[Milestone]:
        """Return the stored milestones in order.

        Raises:
            PersistenceError: If storage is missing or unreadable.
        """
        ...

    def save(self, milestones: Sequence[Milestone]) -> None:
        """Replace the stored milestones with *milestones*.

        Raises:
            PersistenceError: If writing fails.  Storage is left as it
                was before the call.
        """
        ...


# ---------------------------------------------------------------------------
# JSON file adapter
# ---------------------------------------------------------------------------


class JsonFileGateway:
    """Store milestones in a JSON file at a caller-supplied path."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self, *, keep_delta: bool = False) -> list[Milestone]:
        """Read the file.

        Args:
            keep_delta: Also return the deltas saved with the last run.
                The timer never asks for them; ``hotlap show`` does.
        """
        try:
            raw = self._path.read_bytes()
        except OSError as exc:
            raise PersistenceError(self._path, exc.strerror or str(exc)) from exc
        try:
            records = _RECORDS.validate_json(raw)
        except ValidationError as exc:
            raise PersistenceError(
                self._path,
                f"invalid reference data ({exc.error_count()} errors)",
            ) from exc
        logger.info("Loaded %d milestones from %s", len(records), self._path)
        return [r.to_milestone(keep_delta=keep_delta) for r in records]

    def save(self, milestones: Sequence[Milestone]) -> None:
        payload = _RECORDS.dump_json(
            [MilestoneRecord.from_milestone(m) for m in milestones],
            indent=2,
        )
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._write_atomic(payload)
        except OSError as exc:
            raise PersistenceError(self._path, exc.strerror or str(exc)) from exc
        logger.info("Saved %d milestones to %s", len(milestones), self._path)

    def _write_atomic(self, payload: bytes) -> None:
        """Write *payload* to a sibling temp file, then rename it over the target."""
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent,
            prefix=f".{self._path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self._path)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise
