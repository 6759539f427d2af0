"""
Process configuration and backend selection.

Values are read from the environment, after loading an optional .env file in
the land-sales-platform directory:

- SUPABASE_URL / SUPABASE_KEY: when both are set, the Supabase backend is used
- LAND_DB_PATH: SQLite file used otherwise (default: data/land_system.db)
- LOG_LEVEL: logging level for the API and scripts (default: INFO)
- CORS_ORIGINS: comma-separated allowed origins (default: *)

Missing Supabase values are not an error; they select the local SQLite file.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv

from repositories.store import LandStore

logger = logging.getLogger(__name__)

# Look for .env in the land-sales-platform directory
PROJECT_ROOT = Path(__file__).parent.parent
ENV_PATH = PROJECT_ROOT / ".env"
DEFAULT_DB_PATH = PROJECT_ROOT / "data" / "land_system.db"


@dataclass(frozen=True, slots=True)
class Settings:
    supabase_url: str | None = None
    supabase_key: str | None = None
    db_path: Path = DEFAULT_DB_PATH
    log_level: str = "INFO"
    cors_origins: Tuple[str, ...] = ("*",)

    @property
    def use_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


def _split_origins(raw: str | None) -> Tuple[str, ...]:
    if not raw:
        return ("*",)
    origins = tuple(part.strip() for part in raw.split(",") if part.strip())
    return origins or ("*",)


def load_settings(env_path: Path | None = ENV_PATH) -> Settings:
    """Load .env (if present) and read settings from the environment."""

    if env_path is not None:
        load_dotenv(dotenv_path=env_path)

    db_path = os.getenv("LAND_DB_PATH")
    return Settings(
        supabase_url=os.getenv("SUPABASE_URL") or None,
        supabase_key=os.getenv("SUPABASE_KEY") or None,
        db_path=Path(db_path) if db_path else DEFAULT_DB_PATH,
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        cors_origins=_split_origins(os.getenv("CORS_ORIGINS")),
    )


def create_store(settings: Settings) -> LandStore:
    """
    Build (but do not initialize) the store for these settings.

    Supabase when both credentials are configured, SQLite otherwise.
    """

    if settings.use_supabase:
        from repositories.client import create_supabase_client
        from repositories.supabase_store import SupabaseLandStore

        logger.info("Using Supabase backend at %s", settings.supabase_url)
        return SupabaseLandStore(
            create_supabase_client(settings.supabase_url or "", settings.supabase_key or "")
        )

    from repositories.sqlite_store import SQLiteLandStore

    logger.info("Using SQLite backend at %s", settings.db_path)
    return SQLiteLandStore(settings.db_path)


__all__ = ["Settings", "load_settings", "create_store", "DEFAULT_DB_PATH"]
