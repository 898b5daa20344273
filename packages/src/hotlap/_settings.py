"""Application configuration via pydantic-settings.

Configuration is loaded from environment variables and/or ``.env``
files, all prefixed with ``HOTLAP_``.  Nested models use ``__`` as the
delimiter in env var names, e.g. ``HOTLAP_KEYS__ADVANCE=n``.

Example ``.env``::

    HOTLAP_REFERENCE_FILE=~/laps/nordschleife.json
    HOTLAP_TICK_INTERVAL_MS=5
    HOTLAP_KEYS__SAVE=w
    HOTLAP_LOGGING__LEVEL=DEBUG
    HOTLAP_LOGGING__FILE=hotlap.log
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal, Self

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# -------------------------------------------------------------------
# Sub-models (BaseModel, NOT BaseSettings — nested via composition)
# -------------------------------------------------------------------

_Key = Annotated[str, Field(min_length=1, max_length=1)]


class KeySettings(BaseModel):
    """Keyboard bindings, one character per action.

    Environment variables (with ``__`` nesting)::

        HOTLAP_KEYS__ADVANCE=" "
        HOTLAP_KEYS__RESET=r
        HOTLAP_KEYS__SAVE=s
        HOTLAP_KEYS__QUIT=q
    """

    advance: _Key = Field(default=" ", description="Start the run / record the next milestone.")
    reset: _Key = Field(default="r", description="Reload the reference milestones.")
    save: _Key = Field(default="s", description="Save the current run as the new reference.")
    quit: _Key = Field(default="q", description="Leave the timer.")

    @model_validator(mode="after")
    def _check_distinct(self) -> Self:
        keys = [self.advance, self.reset, self.save, self.quit]
        if len(set(keys)) != len(keys):
            msg = f"key bindings must be distinct, got {keys!r}"
            raise ValueError(msg)
        return self


class LoggingSettings(BaseModel):
    """Logging configuration.

    When ``file`` is set, logs are also written to a rotating file
    (size-based rotation, ``backup_count`` generations kept).  When
    ``None``, logs go to stderr only.

    The ``format`` field selects the output format:

    - ``"text"`` (default) — human-readable timestamped lines.
    - ``"json"`` — structured JSON lines, handy when a log file is
      shipped somewhere for analysis.
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Root log level.",
    )
    format: Literal["json", "text"] = Field(
        default="text",
        description="Log output format.",
    )
    file: str | None = Field(
        default=None,
        description="Optional log file path. ``None`` means stderr only.",
    )
    max_file_size_mb: Annotated[int, Field(ge=1)] = Field(
        default=10,
        description=(
            "Maximum log file size in megabytes before rotation. "
            "Only applies when ``file`` is set."
        ),
    )
    backup_count: Annotated[int, Field(ge=0)] = Field(
        default=3,
        description="Number of rotated log files to keep.",
    )


# -------------------------------------------------------------------
# Root settings
# -------------------------------------------------------------------


class Settings(BaseSettings):
    """Root settings for the hotlap timer.

    Loaded from ``HOTLAP_``-prefixed environment variables with the
    nested delimiter ``__`` and an optional ``.env`` file in the
    working directory.
    """

    model_config = SettingsConfigDict(
        env_prefix="HOTLAP_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    reference_file: Path = Field(
        default=Path("hotlap.json"),
        description="JSON file holding the reference milestones.",
    )
    tick_interval_ms: Annotated[int, Field(ge=1, le=20)] = Field(
        default=10,
        description="Milliseconds between display refreshes while idle on input.",
    )
    keys: KeySettings = Field(
        default_factory=KeySettings,
        description="Keyboard bindings.",
    )
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration.",
    )

    @property
    def tick_interval(self) -> float:
        """Tick interval in seconds."""
        return self.tick_interval_ms / 1000
