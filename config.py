"""
Lily Collection configuration. All environment variables are read here.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Settings:
    """Application settings from environment variables."""

    def __init__(self) -> None:
        # Backend selection: "local" (SQLite + covers directory) or "remote"
        self.BACKEND: str = os.environ.get("LILY_BACKEND", "local").strip().lower()

        # Hosted table / bucket
        self.SUPABASE_URL: str = os.environ.get("SUPABASE_URL", "").rstrip("/")
        self.SUPABASE_KEY: str = os.environ.get("SUPABASE_KEY", "")
        self.TABLE: str = os.environ.get("LILY_TABLE", "items")
        self.BUCKET: str = os.environ.get("LILY_BUCKET", "covers")
        self.HTTP_TIMEOUT: float = float(os.environ.get("LILY_HTTP_TIMEOUT", "15"))

        # Local files
        self.DATA_DIR: Path = Path(
            os.environ.get("LILY_DATA_DIR", str(Path.home() / ".lily_collection"))
        ).expanduser()

        self.LOG_LEVEL: str = os.environ.get("LILY_LOG_LEVEL", "INFO").upper()

    @property
    def db_path(self) -> Path:
        return self.DATA_DIR / "collection.db"

    @property
    def covers_dir(self) -> Path:
        return self.DATA_DIR / "covers"

    @property
    def prefs_path(self) -> Path:
        return self.DATA_DIR / "prefs.json"

    @property
    def is_remote(self) -> bool:
        return self.BACKEND == "remote"


def get_settings() -> Settings:
    if not hasattr(get_settings, "_instance"):
        get_settings._instance = Settings()
    return get_settings._instance  # type: ignore[attr-defined]


def configure_logging(level: Optional[str] = None) -> None:
    """Install a basic handler for the command-line, desktop and server entry points."""
    name = (level or get_settings().LOG_LEVEL).upper()
    logging.basicConfig(level=getattr(logging, name, logging.INFO), format=LOG_FORMAT)
