"""hotlap.

A terminal hotlap timer: record milestone splits against a stored
reference run and see how much time you gained or lost at each one.
"""

from importlib.metadata import PackageNotFoundError, version

from hotlap._app import HotlapApp
from hotlap._clock import ClockPort, SystemClock, elapsed
from hotlap._display import RichDisplay, build_view, format_delta, format_duration
from hotlap._duration import Duration
from hotlap._errors import (
    Condition,
    HotlapError,
    InvalidTransition,
    Notice,
    PersistenceError,
    TerminalError,
    build_notice,
)
from hotlap._ledger import AdvanceResult, Ledger, LedgerSnapshot, Milestone, default_milestones
from hotlap._logging import JsonFormatter, configure_logging
from hotlap._machine import Event, Outcome, Row, Snapshot, State, TimingStateMachine
from hotlap._persistence import JsonFileGateway, PersistenceGateway
from hotlap._session import DisplayPort, KeySource, build_keymap, run_session
from hotlap._settings import KeySettings, LoggingSettings, Settings
from hotlap._terminal import TerminalKeys

try:
    __version__ = version("hotlap")
except PackageNotFoundError:
    # Last resort fallback for source checkouts without metadata
    __version__ = "0.0.0+unknown"

__all__ = [
    # Version
    "__version__",
    # App
    "HotlapApp",
    # Clock
    "ClockPort",
    "Duration",
    "SystemClock",
    "elapsed",
    # Ledger
    "AdvanceResult",
    "Ledger",
    "LedgerSnapshot",
    "Milestone",
    "default_milestones",
    # State machine
    "Event",
    "Outcome",
    "Row",
    "Snapshot",
    "State",
    "TimingStateMachine",
    # Persistence
    "JsonFileGateway",
    "PersistenceGateway",
    # Session
    "DisplayPort",
    "KeySource",
    "RichDisplay",
    "TerminalKeys",
    "build_keymap",
    "build_view",
    "format_delta",
    "format_duration",
    "run_session",
    # Errors
    "Condition",
    "HotlapError",
    "InvalidTransition",
    "Notice",
    "PersistenceError",
    "TerminalError",
    "build_notice",
    # Logging
    "JsonFormatter",
    "configure_logging",
    # Settings
    "KeySettings",
    "LoggingSettings",
    "Settings",
]
