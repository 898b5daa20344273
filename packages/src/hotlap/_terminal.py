"""Terminal key source — single keypresses from stdin.

:class:`TerminalKeys` is a context manager.  On enter it saves the
terminal attributes and switches stdin to cbreak mode (no line
buffering, no echo, output processing untouched so the live display
still renders correctly).  On exit — normal, error, or Ctrl-C — the
saved attributes are restored before control returns to the caller.

POSIX only (``termios``).
"""

from __future__ import annotations

import codecs
import logging
import os
import select
import sys
import termios
import tty
from types import TracebackType
from typing import IO, Any, Self

from hotlap._errors import TerminalError

logger = logging.getLogger(__name__)


class TerminalKeys:
    """Read one key at a time from a terminal.

    Satisfies :class:`~hotlap._session.KeySource`.

    Args:
        stream: The terminal input.  Defaults to ``sys.stdin``.
    """

    def __init__(self, stream: IO[str] | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdin
        self._fd: int | None = None
        self._saved: list[Any] | None = None
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def __enter__(self) -> Self:
        try:
            fd = self._stream.fileno()
            self._saved = termios.tcgetattr(fd)
            tty.setcbreak(fd)
        except (OSError, ValueError, termios.error) as exc:
            msg = f"cannot switch input to key-at-a-time mode: {exc}"
            raise TerminalError(msg) from exc
        self._fd = fd
        logger.debug("Terminal in cbreak mode (fd=%d)", fd)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.restore()

    def restore(self) -> None:
        """Put the terminal back the way :meth:`__enter__` found it."""
        if self._fd is None or self._saved is None:
            return
        termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved)
        logger.debug("Terminal mode restored")
        self._fd = None
        self._saved = None

    def poll(self, timeout: float) -> str | None:
        """Wait up to *timeout* seconds for a key.

        Raises:
            EOFError: The terminal was closed.
            TerminalError: Called outside the ``with`` block.
        """
        if self._fd is None:
            msg = "TerminalKeys.poll() called outside its context"
            raise TerminalError(msg)
        ready, _, _ = select.select([self._fd], [], [], timeout)
        if not ready:
            return None
        data = os.read(self._fd, 1)
        if not data:
            raise EOFError
        # Multi-byte characters arrive one byte per call
        return self._decoder.decode(data) or None
