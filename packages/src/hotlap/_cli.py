"""CLI for the hotlap timer (Typer-based).

Provides :func:`build_cli`, which constructs a Typer app with:

- the default command — run the interactive timer;
- ``show`` — print the stored reference milestones;
- ``init`` — create a fresh reference file.

Global options (``--file``, ``--tick-ms``, ``--log-level``,
``--log-format``, ``--env-file``) override the values loaded from the
environment and apply to every command.
"""

from __future__ import annotations

import contextlib
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, get_args

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from hotlap._display import format_delta, format_duration
from hotlap._errors import PersistenceError
from hotlap._ledger import Milestone, default_milestones
from hotlap._persistence import JsonFileGateway
from hotlap._settings import LoggingSettings

if TYPE_CHECKING:
    from hotlap._app import HotlapApp
    from hotlap._settings import Settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_RUNTIME_ERROR = 3
EXIT_PERSISTENCE_ERROR = 4

# ---------------------------------------------------------------------------
# Allowed values (extracted from LoggingSettings Literal types)
# ---------------------------------------------------------------------------

_VALID_LOG_LEVELS: tuple[str, ...] = get_args(
    LoggingSettings.model_fields["level"].annotation,
)
_VALID_LOG_FORMATS: tuple[str, ...] = get_args(
    LoggingSettings.model_fields["format"].annotation,
)


def _milestone_table(milestones: list[Milestone]) -> Table:
    table = Table(title="Reference milestones")
    table.add_column("#", justify="right")
    table.add_column("Milestone", style="bold")
    table.add_column("Time", justify="right")
    table.add_column("Last delta", justify="right")
    for i, m in enumerate(milestones, start=1):
        table.add_row(str(i), m.name, format_duration(m.reference_time), format_delta(m.delta))
    return table


def build_cli(app: HotlapApp) -> typer.Typer:
    """Construct a Typer CLI from a :class:`HotlapApp` instance.

    Args:
        app: The application to wrap.

    Returns:
        A configured :class:`typer.Typer` ready to invoke.
    """
    name = app.name
    version = app.version

    cli = typer.Typer(
        help=f"{name} v{version} — terminal hotlap timer with milestone deltas",
    )

    # -- main command -------------------------------------------------------

    @cli.callback(invoke_without_command=True)
    def main(
        ctx: typer.Context,
        version_flag: Annotated[
            bool | None,
            typer.Option(
                "--version",
                is_eager=True,
                help="Show version and exit.",
            ),
        ] = None,
        reference_file: Annotated[
            Path | None,
            typer.Option("--file", "-f", help="Reference milestones file."),
        ] = None,
        tick_ms: Annotated[
            int | None,
            typer.Option("--tick-ms", min=1, max=20, help="Tick interval in milliseconds."),
        ] = None,
        log_level: Annotated[
            str | None,
            typer.Option("--log-level", help="Override log level."),
        ] = None,
        log_format: Annotated[
            str | None,
            typer.Option("--log-format", help="Override log format."),
        ] = None,
        env_file: Annotated[
            str,
            typer.Option("--env-file", help="Path to .env file."),
        ] = ".env",
    ) -> None:
        # -- version ---------------------------------------------------------
        if version_flag:
            typer.echo(f"{name} v{version}")
            raise typer.Exit()

        # -- validate enum-like options -------------------------------------
        if log_level is not None and log_level.upper() not in _VALID_LOG_LEVELS:
            raise typer.BadParameter(
                f"Invalid log level '{log_level}'. "
                f"Choose from: {', '.join(_VALID_LOG_LEVELS)}",
                param_hint="'--log-level'",
            )

        if log_format is not None and log_format.lower() not in _VALID_LOG_FORMATS:
            raise typer.BadParameter(
                f"Invalid log format '{log_format}'. "
                f"Choose from: {', '.join(_VALID_LOG_FORMATS)}",
                param_hint="'--log-format'",
            )

        # -- build settings -------------------------------------------------
        try:
            settings: Settings = app._settings_class(_env_file=env_file)  # type: ignore[call-arg]
        except ValidationError as exc:
            logger.error("Configuration error: %s", exc)
            raise SystemExit(EXIT_CONFIG_ERROR) from exc

        # -- apply CLI overrides --------------------------------------------
        if reference_file is not None:
            settings.reference_file = reference_file

        if tick_ms is not None:
            settings.tick_interval_ms = tick_ms

        if log_level is not None:
            settings.logging = settings.logging.model_copy(
                update={"level": log_level.upper()},
            )

        if log_format is not None:
            settings.logging = settings.logging.model_copy(
                update={"format": log_format.lower()},
            )

        ctx.obj = settings
        if ctx.invoked_subcommand is not None:
            return

        # -- run the interactive timer --------------------------------------
        try:
            with contextlib.suppress(KeyboardInterrupt):
                app.run(settings=settings)
        except SystemExit:
            raise
        except Exception as exc:
            logger.error("Runtime error: %s", exc)
            sys.exit(EXIT_RUNTIME_ERROR)

    # -- show ---------------------------------------------------------------

    @cli.command()
    def show(ctx: typer.Context) -> None:
        """Print the stored reference milestones."""
        settings: Settings = ctx.obj
        try:
            milestones = JsonFileGateway(settings.reference_file).load(keep_delta=True)
        except PersistenceError as exc:
            typer.echo(f"Cannot read reference file: {exc}", err=True)
            raise typer.Exit(EXIT_PERSISTENCE_ERROR) from exc

        if not milestones:
            typer.echo("No data")
            return
        Console().print(_milestone_table(milestones))

    # -- init ---------------------------------------------------------------

    @cli.command()
    def init(
        ctx: typer.Context,
        names: Annotated[
            list[str] | None,
            typer.Argument(help="Milestone names, in order."),
        ] = None,
        count: Annotated[
            int | None,
            typer.Option("--count", "-n", min=1, help="Create N default-named milestones."),
        ] = None,
        force: Annotated[
            bool,
            typer.Option("--force", help="Overwrite an existing file."),
        ] = False,
    ) -> None:
        """Create a reference file with zero-time milestones."""
        settings: Settings = ctx.obj
        if names and count is not None:
            raise typer.BadParameter("Give milestone names or --count, not both.")
        if names:
            milestones = [Milestone(name=n) for n in names]
        elif count is not None:
            milestones = default_milestones(count)
        else:
            raise typer.BadParameter("Give milestone names or --count.")

        path = settings.reference_file
        if path.exists() and not force:
            typer.echo(f"{path} already exists (use --force to overwrite)", err=True)
            raise typer.Exit(EXIT_PERSISTENCE_ERROR)

        try:
            JsonFileGateway(path).save(milestones)
        except PersistenceError as exc:
            typer.echo(f"Cannot write reference file: {exc}", err=True)
            raise typer.Exit(EXIT_PERSISTENCE_ERROR) from exc
        typer.echo(f"Wrote {len(milestones)} milestones to {path}")

    return cli


def main() -> None:
    """Console-script entrypoint."""
    from hotlap import __version__
    from hotlap._app import HotlapApp

    HotlapApp(version=__version__).cli()
