"""Unit tests for the hotlap top-level public API surface.

Test Techniques Used:
    - Specification-based Testing: ``__all__`` completeness against the
      documented public API contract.
    - Importability: Every name in ``__all__`` resolves to a real object
      via ``getattr``.
"""

from __future__ import annotations

import hotlap


class TestHotlapPublicAPI:
    """All expected symbols are importable and listed in ``__all__``."""

    EXPECTED_NAMES = {
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
    }

    def test_all_contains_expected_symbols(self) -> None:
        """``__all__`` matches the documented public API exactly.

        Technique: Specification-based — verifying module contract.
        """
        assert set(hotlap.__all__) == self.EXPECTED_NAMES

    def test_all_symbols_importable(self) -> None:
        """Every name in ``__all__`` resolves to an attribute on the module.

        Technique: Specification-based — importability check.
        """
        for name in hotlap.__all__:
            obj = getattr(hotlap, name, None)
            assert obj is not None, f"{name!r} listed in __all__ but not importable"
