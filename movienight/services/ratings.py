"""Audience rating lookups against TMDB, with a bounded cache."""

from collections.abc import Iterable

import httpx

from movienight.config import Settings
from movienight.log import get_logger
from movienight.models import Candidate
from movienight.services import register_service
from movienight.services.base import ExternalService, ExternalServiceError
from movienight.services.cache import BoundedCache
from movienight.services.circuit_breaker import CircuitBreaker

log = get_logger(__name__)

TMDB_BASE_URL = "https://api.themoviedb.org/3"


def cache_key(tmdb_id: int | None, title: str | None, year: int | None) -> str:
    """Key a rating by TMDB id when known, otherwise by title and year."""
    if tmdb_id:
        return f"tmdb:{tmdb_id}"
    return f"title:{title}:{year or ''}"


@register_service
class RatingService(ExternalService):
    """Looks up TMDB ``vote_average`` ratings for nominations.

    Found ratings are kept in a capacity-bounded LRU cache owned by the
    service. Misses and failures are not cached, so they are retried on the
    next lookup (unless the circuit is open).

    Args:
        cache: Cache to use; one sized from settings is created if omitted
    """

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient,
        breaker: CircuitBreaker | None = None,
        cache: BoundedCache | None = None,
    ):
        super().__init__(settings, client, breaker)
        self.cache = cache or BoundedCache(settings.rating_cache_capacity)

    @property
    def name(self) -> str:
        return "tmdb"

    @property
    def display_name(self) -> str:
        return "TMDB"

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.tmdb_api_key)

    async def _check_reachable(self) -> None:
        await self._get_json(
            f"{TMDB_BASE_URL}/configuration",
            params={"api_key": self.settings.tmdb_api_key},
        )

    async def get_rating(self, tmdb_id: int) -> float | None:
        """Rating of a movie by TMDB id, or None if unknown/unavailable."""
        key = cache_key(tmdb_id, None, None)
        if key in self.cache:
            return self.cache.get(key)
        try:
            movie = await self._get_json(
                f"{TMDB_BASE_URL}/movie/{tmdb_id}",
                params={"api_key": self.settings.tmdb_api_key},
            )
        except ExternalServiceError as e:
            log.debug(f"Rating lookup for tmdb:{tmdb_id} skipped: {e}")
            return None
        return self._remember(key, movie.get("vote_average"))

    async def find_rating(self, title: str, year: int | None = None) -> float | None:
        """Rating of the best title search match, or None."""
        key = cache_key(None, title, year)
        if key in self.cache:
            return self.cache.get(key)
        params = {
            "api_key": self.settings.tmdb_api_key,
            "query": title,
            "include_adult": "false",
        }
        if year:
            params["year"] = str(year)
        try:
            data = await self._get_json(f"{TMDB_BASE_URL}/search/movie", params=params)
        except ExternalServiceError as e:
            log.debug(f"Rating search for {title!r} skipped: {e}")
            return None
        results = data.get("results") or []
        if not results:
            return None
        return self._remember(key, results[0].get("vote_average"))

    async def ratings_for(self, candidates: Iterable[Candidate]) -> dict[int, float]:
        """Map candidate id -> rating for every candidate that has one."""
        ratings = {}
        for c in candidates:
            if c.tmdb_id:
                rating = await self.get_rating(c.tmdb_id)
            elif c.title:
                rating = await self.find_rating(c.title, c.year)
            else:
                continue
            if rating:
                ratings[c.id] = rating
        return ratings

    def _remember(self, key: str, rating: float | None) -> float | None:
        if rating:
            self.cache.put(key, rating)
        return rating or None
