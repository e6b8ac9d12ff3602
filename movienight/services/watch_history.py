"""Watch history lookups against a Tautulli server."""

from typing import Any

from movienight.log import get_logger
from movienight.services import register_service
from movienight.services.base import ExternalService, ExternalServiceError, ServiceUnavailable

log = get_logger(__name__)

HISTORY_LENGTH = 1000


@register_service
class WatchHistoryService(ExternalService):
    """Answers "has this member already seen this movie?".

    Lookups are best-effort: if Tautulli is down, unconfigured or cooling
    down, the answer is simply "no" and voting carries on.
    """

    @property
    def name(self) -> str:
        return "tautulli"

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.tautulli_url and self.settings.tautulli_api_key)

    def _unwrap(self, data: Any) -> Any:
        response = data.get("response") if isinstance(data, dict) else None
        if not response or response.get("result") != "success":
            message = (response or {}).get("message") or "Unknown error"
            raise ServiceUnavailable(self.display_name, message)
        return response.get("data")

    async def _command(self, cmd: str, **params: Any) -> Any:
        url = self.settings.tautulli_url.rstrip("/") + "/api/v2"
        query = {"apikey": self.settings.tautulli_api_key, "cmd": cmd}
        query.update({k: str(v) for k, v in params.items()})
        return await self._get_json(url, params=query)

    async def _check_reachable(self) -> None:
        await self._command("arnold")

    async def has_user_watched(
        self, user_id: str | int, rating_key: str | None, title: str | None
    ) -> bool:
        """Check a member's movie history for a rating key or title match.

        Args:
            user_id: The member's id on the media server
            rating_key: Media server key of the movie, if known
            title: Movie title, compared case-insensitively

        Returns:
            True if a matching history entry exists, False otherwise
            (including when the service cannot be reached)
        """
        try:
            history = await self._command(
                "get_history",
                user_id=user_id,
                media_type="movie",
                length=HISTORY_LENGTH,
            )
        except ExternalServiceError as e:
            log.debug(f"Watch history unavailable for user {user_id}: {e}")
            return False

        for item in (history or {}).get("data") or []:
            if rating_key and str(item.get("rating_key")) == str(rating_key):
                return True
            item_title = item.get("title")
            if title and item_title and item_title.lower() == title.lower():
                return True
        return False
