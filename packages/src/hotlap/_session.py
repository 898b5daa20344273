"""Session event loop — one producer, one consumer, one queue.

The producer task polls the :class:`KeySource` in a worker thread
(``asyncio.to_thread``), blocking at most until the next tick is due.
Keys are mapped to :class:`~hotlap._machine.Event` values; a ``TICK``
is queued whenever the tick interval has passed, whether or not a key
arrived.  UI staleness is therefore bounded by one tick interval
without busy-waiting.

The consumer — :func:`run_session` itself — takes one event at a
time, hands it to the state machine, then renders a fresh snapshot.
Only the consumer touches the machine and its ledger, so no locks are
needed.

The loop ends on ``QUIT`` or when the key source reports end of input
(``EOFError``), which closes the channel with a ``None`` sentinel.
On the way out, a poll still running in its worker thread is waited
for, so no key is read after the terminal mode is restored.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Protocol, runtime_checkable

from hotlap._errors import Notice
from hotlap._machine import Event, Snapshot, TimingStateMachine
from hotlap._settings import KeySettings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Ports (Protocol)
# ---------------------------------------------------------------------------


@runtime_checkable
class KeySource(Protocol):
    """Port contract for keyboard input."""

    def poll(self, timeout: float) -> str | None:
        """Wait up to *timeout* seconds for one key.

        Returns:
            The key pressed, or ``None`` if none arrived in time.

        Raises:
            EOFError: The input is closed for good.
        """
        ...


@runtime_checkable
class DisplayPort(Protocol):
    """Port contract for the presentation layer."""

    def render(self, snapshot: Snapshot, notice: Notice | None = None) -> None: ...


# ---------------------------------------------------------------------------
# Keymap
# ---------------------------------------------------------------------------


def build_keymap(keys: KeySettings) -> dict[str, Event]:
    """Map each configured key to the event it triggers."""
    return {
        keys.advance: Event.ADVANCE,
        keys.reset: Event.RESET,
        keys.save: Event.SAVE_REFERENCE,
        keys.quit: Event.QUIT,
    }


# ---------------------------------------------------------------------------
# Loop
# ---------------------------------------------------------------------------


async def _settle(poll: asyncio.Future[str | None]) -> None:
    """Wait for a poll that is already running in a worker thread.

    Cancelling the producer does not stop the thread.  The session
    returns, and the terminal is restored, only after its read is over.
    Whatever it produces is discarded.
    """
    try:
        key = await poll
    except Exception as exc:
        logger.debug("Discarding poll failure during shutdown: %r", exc)
    else:
        if key is not None:
            logger.debug("Discarding key %r read during shutdown", key)


async def _produce(
    keys: KeySource,
    queue: asyncio.Queue[Event | None],
    keymap: dict[str, Event],
    tick_interval: float,
) -> None:
    """Feed key events and ticks into *queue* until input closes."""
    loop = asyncio.get_running_loop()
    last_tick = loop.time()
    try:
        while True:
            timeout = max(0.0, tick_interval - (loop.time() - last_tick))
            poll = asyncio.ensure_future(asyncio.to_thread(keys.poll, timeout))
            try:
                key = await asyncio.shield(poll)
            except EOFError:
                logger.info("Input closed")
                return
            except asyncio.CancelledError:
                await _settle(poll)
                raise

            if key is not None:
                event = keymap.get(key)
                if event is None:
                    logger.debug("Ignoring unmapped key %r", key)
                else:
                    queue.put_nowait(event)

            if loop.time() - last_tick >= tick_interval:
                queue.put_nowait(Event.TICK)
                last_tick = loop.time()
    finally:
        queue.put_nowait(None)


async def run_session(
    machine: TimingStateMachine,
    keys: KeySource,
    display: DisplayPort,
    *,
    keymap: dict[str, Event],
    tick_interval: float,
) -> None:
    """Run the timer until the user quits or input closes.

    Args:
        machine: State machine to drive.
        keys: Where key presses come from.
        display: Where each frame is rendered.
        keymap: Key to event mapping (see :func:`build_keymap`).
        tick_interval: Seconds between ticks.

    Raises:
        Exception: Whatever the key source raised other than
            ``EOFError``; the channel is closed first.
    """
    queue: asyncio.Queue[Event | None] = asyncio.Queue()
    producer = asyncio.create_task(_produce(keys, queue, keymap, tick_interval))
    try:
        display.render(machine.snapshot(), machine.notice)
        while True:
            event = await queue.get()
            if event is None:
                logger.info("Event channel closed")
                break
            machine.handle(event)
            display.render(machine.snapshot(), machine.notice)
            if machine.terminated:
                break
    finally:
        producer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await producer
