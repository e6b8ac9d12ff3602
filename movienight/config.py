"""Runtime settings, read from the environment (and a local .env file)."""

import os
from dataclasses import dataclass
from typing import Self

from dotenv import load_dotenv

ENV_PREFIX = "MOVIENIGHT_"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}")


def _env_str(name: str) -> str | None:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None:
        return None
    return raw.strip() or None


@dataclass
class Settings:
    """Tunables for the ranking engine and the external service adapters.

    Attributes:
        grace_period_seconds: How long a detected reorder is held back
        breaker_open_seconds: How long a circuit stays open after a failure
        breaker_recent_seconds: Window in which a failure is still reported
        request_timeout_seconds: Timeout for outbound metadata requests
        rating_cache_capacity: Max entries in the rating lookup cache
        ledger_base_url: Base URL of the vote store API
        tautulli_url: Tautulli base URL (watch history)
        tautulli_api_key: Tautulli API key
        tmdb_api_key: TMDB API key (ratings)
    """
    grace_period_seconds: float = 5.0
    breaker_open_seconds: float = 300.0
    breaker_recent_seconds: float = 60.0
    request_timeout_seconds: float = 3.0
    rating_cache_capacity: int = 512
    ledger_base_url: str | None = None
    tautulli_url: str | None = None
    tautulli_api_key: str | None = None
    tmdb_api_key: str | None = None

    def __post_init__(self):
        if self.grace_period_seconds < 0:
            raise ValueError("grace_period_seconds cannot be negative")
        if self.rating_cache_capacity < 1:
            raise ValueError("rating_cache_capacity must be at least 1")

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> Self:
        """Load settings from MOVIENIGHT_* environment variables.

        Values in a .env file are loaded first but never override variables
        that are already set in the process environment.
        """
        load_dotenv(dotenv_path)
        return cls(
            grace_period_seconds=_env_float("GRACE_PERIOD_SECONDS", 5.0),
            breaker_open_seconds=_env_float("BREAKER_OPEN_SECONDS", 300.0),
            breaker_recent_seconds=_env_float("BREAKER_RECENT_SECONDS", 60.0),
            request_timeout_seconds=_env_float("REQUEST_TIMEOUT_SECONDS", 3.0),
            rating_cache_capacity=int(_env_float("RATING_CACHE_CAPACITY", 512)),
            ledger_base_url=_env_str("LEDGER_BASE_URL"),
            tautulli_url=_env_str("TAUTULLI_URL"),
            tautulli_api_key=_env_str("TAUTULLI_API_KEY"),
            tmdb_api_key=_env_str("TMDB_API_KEY"),
        )
