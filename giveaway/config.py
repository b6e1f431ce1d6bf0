"""Environment-driven settings for the giveaway service."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .db.utils import resolve_sqlite_url

# Project root directory (repo root)
ROOT_DIR = Path(__file__).resolve().parents[1]
DEFAULT_DB_URL = "sqlite:///./dev.db"

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


def _env_list(name: str) -> tuple[str, ...]:
    raw = os.getenv(name, "")
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    """Runtime configuration.

    Attributes
    ----------
    database_url : str
        SQLAlchemy URL. Relative SQLite paths are resolved against the repo root.
    snapshot_pool_on_draw : bool
        When ``True`` the winner is selected against the pool size recorded
        when the draw was issued, ignoring applicants added while the draw was
        pending. Off by default, in which case the live pool is used.
    reject_pending_draws : bool
        When ``True`` a second draw for a campaign with an outstanding request
        is rejected with :class:`~giveaway.exceptions.StateError`.
    admins : tuple[str, ...]
        Caller identifiers allowed by :class:`~giveaway.policy.StaticAccessPolicy`.
    log_level : str
        Level name passed to :func:`logging.basicConfig` by the scripts.
    randomness_base_fqdn : Optional[str]
        Host of the remote randomness provider.
    randomness_callback_url : Optional[str]
        URL the remote provider should call back with the random value.
    randomness_timeout : int
        HTTP timeout in seconds for the remote provider.
    """

    database_url: str = DEFAULT_DB_URL
    snapshot_pool_on_draw: bool = False
    reject_pending_draws: bool = False
    admins: tuple[str, ...] = field(default_factory=tuple)
    log_level: str = "INFO"
    randomness_base_fqdn: Optional[str] = None
    randomness_callback_url: Optional[str] = None
    randomness_timeout: int = 30


def load_settings() -> Settings:
    """Build :class:`Settings` from the process environment and ``.env``."""
    load_dotenv()
    return Settings(
        database_url=resolve_sqlite_url(
            os.getenv("DB_URL", DEFAULT_DB_URL), ROOT_DIR
        ),
        snapshot_pool_on_draw=_env_flag("GIVEAWAY_SNAPSHOT_POOL"),
        reject_pending_draws=_env_flag("GIVEAWAY_REJECT_PENDING_DRAWS"),
        admins=_env_list("GIVEAWAY_ADMINS"),
        log_level=os.getenv("GIVEAWAY_LOG_LEVEL", "INFO").upper(),
        randomness_base_fqdn=os.getenv("RANDOMNESS_BASE_FQDN") or None,
        randomness_callback_url=os.getenv("RANDOMNESS_CALLBACK_URL") or None,
        randomness_timeout=int(os.getenv("RANDOMNESS_TIMEOUT", "30")),
    )


__all__ = ["Settings", "load_settings", "ROOT_DIR", "DEFAULT_DB_URL"]
