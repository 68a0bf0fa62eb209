"""Centralised application settings loaded from environment / .env file."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


def _resolve_db_dir() -> Path:
    """Return (and create) the directory that holds the SQLite file."""
    d = _PROJECT_ROOT / "data"
    d.mkdir(parents=True, exist_ok=True)
    return d


_DEFAULT_DB_URL = f"sqlite+aiosqlite:///{_resolve_db_dir() / 'stress_monitor.db'}"


class Settings(BaseSettings):
    """All runtime configuration for the stress monitor.

    Values are read from environment variables first, then from a *.env* file
    located at the project root.  Every variable lives in the flat
    ``STRESS_MONITOR_`` namespace (stripped automatically by
    *pydantic-settings*).
    """

    model_config = SettingsConfigDict(
        env_prefix="STRESS_MONITOR_",
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )

    # ── Sampling ──────────────────────────────────────────────
    window_size: int = 30  # samples per classification window
    bpm_min: float = 40.0  # exclusive lower bound
    bpm_max: float = 180.0  # exclusive upper bound
    queue_maxsize: int = 10_000

    # ── History ───────────────────────────────────────────────
    history_capacity: int = 30

    # ── Model ─────────────────────────────────────────────────
    model_path: str = ""  # JSON weights file or "module:attribute"

    # ── Sync / database ───────────────────────────────────────
    sync_enabled: bool = True
    database_url: str = _DEFAULT_DB_URL

    # ── API server ────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # ── Logging ───────────────────────────────────────────────
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Return a cached :class:`Settings` singleton."""
    return Settings()
