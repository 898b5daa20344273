"""Unit tests for hotlap._session — the producer/consumer event loop.

Test Techniques Used:
    - Integration Testing: scripted keys drive a real state machine
    - Behavioural Testing: one rendered frame per handled event
    - Error Condition Testing: closed input ends the loop, other
      key-source failures propagate
    - Protocol Conformance: test doubles satisfy the ports
"""

from __future__ import annotations

import threading
import time

import pytest

from hotlap._machine import Event, State, TimingStateMachine
from hotlap._session import DisplayPort, KeySource, build_keymap, run_session
from hotlap._settings import KeySettings
from hotlap.testing import RecordingDisplay, ScriptedKeys

KEYMAP = build_keymap(KeySettings())


async def _run(machine: TimingStateMachine, *script: str | None) -> RecordingDisplay:
    display = RecordingDisplay()
    await run_session(
        machine,
        ScriptedKeys(*script),
        display,
        keymap=KEYMAP,
        tick_interval=0.001,
    )
    return display


class TestKeymap:
    """Technique: Specification-based Testing."""

    def test_default_bindings(self) -> None:
        assert KEYMAP == {
            " ": Event.ADVANCE,
            "r": Event.RESET,
            "s": Event.SAVE_REFERENCE,
            "q": Event.QUIT,
        }

    def test_custom_bindings(self) -> None:
        keymap = build_keymap(KeySettings(advance="n", quit="x"))
        assert keymap["n"] is Event.ADVANCE
        assert keymap["x"] is Event.QUIT


class TestPorts:
    """Technique: Protocol Conformance."""

    def test_scripted_keys_is_key_source(self) -> None:
        assert isinstance(ScriptedKeys(), KeySource)

    def test_recording_display_is_display_port(self) -> None:
        assert isinstance(RecordingDisplay(), DisplayPort)


class TestRunSession:
    """Technique: Integration Testing with scripted input."""

    async def test_full_lap_then_quit(self, machine: TimingStateMachine) -> None:
        display = await _run(machine, " ", " ", " ", "q")

        assert machine.terminated
        deltas = [row.delta for row in display.last.rows]
        assert deltas == [pytest.approx(-10.0), pytest.approx(-25.0)]

    async def test_renders_initial_frame(self, machine: TimingStateMachine) -> None:
        display = await _run(machine, "q")
        assert len(display.frames) >= 2
        assert display.frames[0][0].running is False

    async def test_quit_stops_consuming(self, machine: TimingStateMachine) -> None:
        """Keys after quit are never handled."""
        await _run(machine, "q", " ")
        assert machine.ledger.run_active is False

    async def test_closed_input_ends_session(self, machine: TimingStateMachine) -> None:
        await _run(machine, " ")
        assert not machine.terminated
        assert machine.state is State.RUNNING

    async def test_unmapped_keys_ignored(self, machine: TimingStateMachine) -> None:
        await _run(machine, "x", "\x1b", "q")
        assert machine.ledger.run_active is False
        assert machine.terminated

    async def test_rejection_reaches_display(self, machine: TimingStateMachine) -> None:
        display = await _run(machine, " ", "s", "q")
        notices = [n for _, n in display.frames if n is not None]
        assert any(n.level == "warning" for n in notices)

    async def test_ticks_emitted_without_keys(self, machine: TimingStateMachine) -> None:
        """A poll that times out still produces a tick frame."""

        class IdleThenQuit:
            def __init__(self) -> None:
                self.remaining = 3

            def poll(self, timeout: float) -> str | None:
                if self.remaining == 0:
                    return "q"
                self.remaining -= 1
                time.sleep(timeout)
                return None

        display = RecordingDisplay()
        await run_session(
            machine,
            IdleThenQuit(),
            display,
            keymap=KEYMAP,
            tick_interval=0.002,
        )

        # initial frame + >= 3 ticks + quit
        assert len(display.frames) >= 5

    async def test_key_source_failure_propagates(
        self, machine: TimingStateMachine
    ) -> None:
        class BrokenKeys:
            def poll(self, timeout: float) -> str | None:
                raise OSError("terminal went away")

        with pytest.raises(OSError, match="terminal went away"):
            await run_session(
                machine,
                BrokenKeys(),
                RecordingDisplay(),
                keymap=KEYMAP,
                tick_interval=0.001,
            )

    async def test_returns_after_pending_poll_finishes(
        self, machine: TimingStateMachine
    ) -> None:
        """A poll already running when the session ends is waited for."""

        class SlowAfterQuit:
            def __init__(self) -> None:
                self.calls = 0
                self.finished = threading.Event()

            def poll(self, timeout: float) -> str | None:
                self.calls += 1
                if self.calls == 1:
                    return "q"
                time.sleep(0.05)
                self.finished.set()
                return " "

        keys = SlowAfterQuit()
        display = RecordingDisplay()
        await run_session(
            machine,
            keys,
            display,
            keymap=KEYMAP,
            tick_interval=0.001,
        )

        assert keys.calls == 2
        assert keys.finished.is_set()
        assert machine.state is State.TERMINATED

    async def test_late_poll_failure_is_discarded(
        self, machine: TimingStateMachine
    ) -> None:
        class FailAfterQuit:
            def __init__(self) -> None:
                self.calls = 0

            def poll(self, timeout: float) -> str | None:
                self.calls += 1
                if self.calls == 1:
                    return "q"
                time.sleep(0.02)
                raise OSError("terminal restored")

        await run_session(
            machine,
            FailAfterQuit(),
            RecordingDisplay(),
            keymap=KEYMAP,
            tick_interval=0.001,
        )

        assert machine.terminated
