"""Rich-based presentation of timer snapshots.

:func:`build_view` turns a :class:`~hotlap._machine.Snapshot` into a
rich renderable; :class:`RichDisplay` keeps it on screen with
:class:`rich.live.Live`.  Layout::

    ┌ time ─────────┐┌ milestones ─────────────────────────┐
    │ 00:01:23.456  ││ Hairpin      -0.250   00:00:41.200  │
    └───────────────┘│ Chicane      +0.120   00:01:02.870  │
    ┌ hotlap ───────┐│ Finish                00:01:30.000  │
    │ <space>: ...  ││                                     │
    └───────────────┘└─────────────────────────────────────┘

Positive deltas (slower) are red, negative (faster) green.
"""

from __future__ import annotations

from types import TracebackType
from typing import Self

from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from hotlap._duration import Duration
from hotlap._errors import Notice
from hotlap._machine import Snapshot
from hotlap._settings import KeySettings

_NOTICE_STYLES = {"info": "cyan", "warning": "yellow", "error": "bold red"}


def format_duration(duration: Duration) -> str:
    """Return ``HH:MM:SS.mmm``."""
    h, m, s, ms = duration.as_tuple()
    return f"{h:02d}:{m:02d}:{s:02d}.{ms:03d}"


def format_delta(delta: float | None) -> str:
    """Return a signed three-decimal delta, or ``""`` when unset."""
    if delta is None:
        return ""
    return f"{delta:+.3f}"


def delta_style(delta: float | None) -> str:
    if delta is None or delta == 0:
        return ""
    return "red" if delta > 0 else "green"


def _key_label(key: str) -> str:
    return "<space>" if key == " " else key


def _title(text: str) -> Text:
    return Text(f" {text} ", style="bold")


def build_view(
    snapshot: Snapshot,
    keys: KeySettings,
    notice: Notice | None = None,
) -> RenderableType:
    """Build the full screen for one frame."""
    timer = Panel(Text(format_duration(snapshot.elapsed)), title=_title("time"))

    help_lines = [
        f"{_key_label(keys.advance)}: start/next",
        f"{_key_label(keys.save)}: save best",
        f"{_key_label(keys.reset)}: reset",
        f"{_key_label(keys.quit)}: quit",
    ]
    left: list[RenderableType] = [
        timer,
        Panel(Text("\n".join(help_lines)), title=_title("hotlap")),
    ]
    if notice is not None:
        left.append(Text(notice.message, style=_NOTICE_STYLES[notice.level]))

    if snapshot.rows:
        table = Table.grid(expand=True, padding=(0, 1))
        table.add_column(ratio=50)
        table.add_column(ratio=15, justify="right")
        table.add_column(ratio=35, justify="right")
        for row in snapshot.rows:
            table.add_row(
                Text(row.name, style="bold italic"),
                Text(format_delta(row.delta), style=delta_style(row.delta)),
                Text(format_duration(row.reference_time)),
            )
        milestones: RenderableType = table
    else:
        milestones = Text("No data")

    layout = Table.grid(expand=True)
    layout.add_column(ratio=30)
    layout.add_column(ratio=70)
    layout.add_row(Group(*left), Panel(milestones, title=_title("milestones")))
    return layout


class RichDisplay:
    """Live terminal display.

    Satisfies :class:`~hotlap._session.DisplayPort`.  Use as a context
    manager.

    Args:
        keys: Key bindings shown in the help panel.
        console: Console to draw on.  Defaults to a new stdout console.
        refresh_per_second: Upper bound on redraws.
        transient: Clear the screen area on exit instead of leaving
            the last frame behind.
    """

    def __init__(
        self,
        keys: KeySettings,
        *,
        console: Console | None = None,
        refresh_per_second: float = 30.0,
        transient: bool = True,
    ) -> None:
        self._keys = keys
        self._live = Live(
            console=console,
            refresh_per_second=refresh_per_second,
            transient=transient,
        )

    def __enter__(self) -> Self:
        self._live.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self._live.stop()

    def render(self, snapshot: Snapshot, notice: Notice | None = None) -> None:
        self._live.update(build_view(snapshot, self._keys, notice))
