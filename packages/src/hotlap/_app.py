"""Application orchestrator for the hotlap timer.

:class:`HotlapApp` is the composition root.  It loads settings,
configures logging, loads the reference milestones, wires the state
machine to a key source and a display, and runs the session loop.

Typical usage::

    from hotlap import HotlapApp

    HotlapApp().run()

Every collaborator can be injected, which is how tests run a full
session without a terminal::

    HotlapApp().run(
        settings=make_settings(),
        keys=ScriptedKeys(" ", " ", "q"),
        display=RecordingDisplay(),
        clock=FakeClock(),
        gateway=MemoryGateway(),
    )
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from hotlap._clock import ClockPort, SystemClock
from hotlap._display import RichDisplay
from hotlap._errors import PersistenceError, build_notice
from hotlap._ledger import Ledger
from hotlap._logging import configure_logging
from hotlap._machine import TimingStateMachine
from hotlap._persistence import JsonFileGateway, PersistenceGateway
from hotlap._session import DisplayPort, KeySource, build_keymap, run_session
from hotlap._settings import Settings
from hotlap._terminal import TerminalKeys

logger = logging.getLogger(__name__)


def load_initial_ledger(gateway: PersistenceGateway) -> tuple[Ledger, PersistenceError | None]:
    """Load the startup ledger, falling back to an empty one.

    Returns:
        The ledger, plus the load error when the fallback was used.
    """
    try:
        return Ledger.load(gateway.load()), None
    except PersistenceError as exc:
        logger.error("Could not load reference milestones: %s", exc)
        return Ledger.load([]), exc


class HotlapApp:
    """Central composition root.

    Args:
        name: Application name, used as the logging ``service``.
        version: Application version string.
        settings_class: Settings subclass to instantiate at startup.
    """

    def __init__(
        self,
        name: str = "hotlap",
        version: str = "0.0.0",
        *,
        settings_class: type[Settings] = Settings,
    ) -> None:
        self._name = name
        self._version = version
        self._settings_class = settings_class

    @property
    def name(self) -> str:
        return self._name

    @property
    def version(self) -> str:
        return self._version

    def run(
        self,
        *,
        settings: Settings | None = None,
        keys: KeySource | None = None,
        display: DisplayPort | None = None,
        clock: ClockPort | None = None,
        gateway: PersistenceGateway | None = None,
    ) -> TimingStateMachine:
        """Run the timer (blocking, synchronous entrypoint).

        Wraps :meth:`_run_async` in :func:`asyncio.run`.  All
        parameters are optional and intended for programmatic or test
        use.

        Args:
            settings: Override settings (skip env-file loading).
            keys: Override key source (default: the terminal).
            display: Override display (default: live rich screen).
            clock: Override clock (e.g. ``FakeClock`` for tests).
            gateway: Override persistence (default: JSON file from
                ``settings.reference_file``).

        Returns:
            The state machine as it was when the session ended.
        """
        return asyncio.run(
            self._run_async(
                settings=settings,
                keys=keys,
                display=display,
                clock=clock,
                gateway=gateway,
            ),
        )

    def cli(self) -> None:
        """Start the application with CLI argument parsing.

        For programmatic use without CLI parsing, prefer :meth:`run`.
        """
        from hotlap._cli import build_cli

        cli = build_cli(self)
        cli(standalone_mode=True)

    async def _run_async(
        self,
        *,
        settings: Settings | None = None,
        keys: KeySource | None = None,
        display: DisplayPort | None = None,
        clock: ClockPort | None = None,
        gateway: PersistenceGateway | None = None,
    ) -> TimingStateMachine:
        """Bootstrap, run the session, tear down.

        Terminal resources entered here are exited — and the terminal
        mode restored — before this coroutine returns or raises.
        """
        # --- Bootstrap ---
        resolved_settings = settings if settings is not None else self._settings_class()
        configure_logging(
            resolved_settings.logging,
            service=self._name,
            version=self._version,
        )
        resolved_gateway = (
            gateway if gateway is not None else JsonFileGateway(resolved_settings.reference_file)
        )
        resolved_clock = clock if clock is not None else SystemClock()

        ledger, load_error = load_initial_ledger(resolved_gateway)
        machine = TimingStateMachine(ledger, resolved_clock, resolved_gateway)
        if load_error is not None:
            machine.show(build_notice(load_error))

        # --- Run ---
        with contextlib.ExitStack() as stack:
            if keys is None:
                keys = stack.enter_context(TerminalKeys())
            if display is None:
                display = stack.enter_context(RichDisplay(resolved_settings.keys))

            await run_session(
                machine,
                keys,
                display,
                keymap=build_keymap(resolved_settings.keys),
                tick_interval=resolved_settings.tick_interval,
            )

        logger.info("Session ended")
        return machine
