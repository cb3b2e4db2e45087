"""Centralized configuration using Pydantic Settings (v2).

This module exposes a single, cached `settings` instance that reads from:
- Real environment variables (highest precedence)
- `.env` files in the working directory: .env, .env.local

The only value the state engine itself needs is the snapshot location
(`MPVSTATE_STATE_FILE`); everything else configures the mpv host adapter,
trace dumps and logging.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevelName = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

#: Name of the package logger every module logger hangs off.
ROOT_LOGGER = "mpvstate"


class Settings(BaseSettings):
    """Typed configuration loaded from env and `.env` files.

    Attributes
    ----------
    log_level : LogLevelName
        Global log level string; maps from `LOG_LEVEL`.
    state_file : Path | None
        Snapshot location; maps from `MPVSTATE_STATE_FILE`. When unset the
        CLI refuses to run a session since there is nowhere to persist.
    mpv_binary : str
        Executable launched by the IPC host; maps from `MPVSTATE_MPV_BINARY`.
    mpv_args : list[str]
        Extra command-line arguments for mpv (JSON list in the env var).
    trace_dir : Path | None
        Directory for session trace dumps; maps from `MPVSTATE_TRACE_DIR`.
    connect_attempts : int
        How many times the IPC host polls for mpv's socket at startup.
    """

    log_level: LogLevelName = Field(default="INFO", alias="LOG_LEVEL")
    state_file: Path | None = Field(default=None, alias="MPVSTATE_STATE_FILE")
    mpv_binary: str = Field(default="mpv", alias="MPVSTATE_MPV_BINARY")
    mpv_args: list[str] = Field(default_factory=list, alias="MPVSTATE_MPV_ARGS")
    trace_dir: Path | None = Field(default=None, alias="MPVSTATE_TRACE_DIR")
    connect_attempts: int = Field(default=50, ge=1, alias="MPVSTATE_CONNECT_ATTEMPTS")

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    def log_level_numeric(self) -> int:
        """Return the numeric logging level corresponding to `self.log_level`."""
        return getattr(logging, self.log_level, logging.INFO)


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Create and cache a `Settings` instance.

    We keep this behind an LRU cache so tests can force a rebuild via
    `load_settings.cache_clear()` after mutating `os.environ`.
    """
    return Settings()


# Export a ready-to-use singleton (import-time read of env / .env files).
settings: Settings = load_settings()


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Return a logger under the `mpvstate` hierarchy.

    The package logger carries the only handler; module loggers such as
    ``mpvstate.core.store`` propagate to it. The level follows the most
    recently loaded settings.
    """
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        )
        root.addHandler(handler)
        root.propagate = False
    root.setLevel(load_settings().log_level_numeric())
    if name == ROOT_LOGGER:
        return root
    if not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
