"""Centralized application configuration using Pydantic Settings (v2).

This module exposes a single, cached `settings` instance that reads from:
- Real environment variables (highest precedence)
- `.env` files at the repository root: .env, .env.local, .env.dev/.env.test/.env.prod
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["dev", "test", "prod"]
LogLevelName = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """Typed application configuration loaded from env and `.env` files.

    Attributes
    ----------
    environment : EnvName
        Runtime environment flag; maps from `TRACEREPLAY_ENV`.
    log_level : LogLevelName
        Global log level string; maps from `LOG_LEVEL`.
    trace_root : Optional[Path]
        Base directory used to resolve relative trace identifiers. Maps from
        `TRACEREPLAY_TRACE_ROOT`; when unset, relative ids resolve against the
        working directory.
    session_ttl_seconds : float
        How long a viewer session stays alive after its last request.
    gc_interval_seconds : float
        Period of the background pass that evicts traces of dead sessions.
    """

    environment: EnvName = Field(default="dev", alias="TRACEREPLAY_ENV")
    log_level: LogLevelName = Field(default="INFO", alias="LOG_LEVEL")
    trace_root: Path | None = Field(default=None, alias="TRACEREPLAY_TRACE_ROOT")
    session_ttl_seconds: float = Field(default=300.0, gt=0, alias="TRACEREPLAY_SESSION_TTL")
    gc_interval_seconds: float = Field(default=60.0, gt=0, alias="TRACEREPLAY_GC_INTERVAL")
    host: str = Field(default="127.0.0.1", alias="TRACEREPLAY_HOST")
    port: int = Field(default=9323, alias="TRACEREPLAY_PORT")

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local", ".env.dev", ".env.test", ".env.prod"),
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
    os.environ.setdefault("TRACEREPLAY_ENV", "dev")
    return Settings()


# Export a ready-to-use singleton (import-time read of env / .env files).
settings: Settings = load_settings()


def get_logger(name: str = "tracereplay") -> logging.Logger:
    """Return a process-global logger configured to the current log level."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        )
        logger.addHandler(handler)
    logger.setLevel(load_settings().log_level_numeric())
    logger.propagate = False
    return logger
