"""Vote ledger client for the store's HTTP API."""

import httpx

from movienight.config import Settings
from movienight.ledger.base import (
    CandidateBlocked,
    CandidateNotFound,
    NetworkFailure,
    NothingToRetract,
    PermissionDenied,
    QuotaExceeded,
    RequestRejected,
    VoteLedger,
    VoteLedgerError,
    VotingClosed,
)
from movienight.log import get_logger
from movienight.models import SessionSnapshot

log = get_logger(__name__)

ERROR_CODES: dict[str, type[VoteLedgerError]] = {
    "quota_exceeded": QuotaExceeded,
    "nothing_to_retract": NothingToRetract,
    "voting_closed": VotingClosed,
    "candidate_blocked": CandidateBlocked,
    "not_found": CandidateNotFound,
    "forbidden": PermissionDenied,
}

# The store itself answers with a bare {"error": message}
ERROR_MESSAGES: dict[str, type[VoteLedgerError]] = {
    "You have used all your votes for this movie night": QuotaExceeded,
    "No votes to remove": NothingToRetract,
    "Voting is closed for this movie night": VotingClosed,
    "Voting is closed": VotingClosed,
    "This movie night is locked": VotingClosed,
    "This movie has been blocked": CandidateBlocked,
    "Cannot pick a blocked movie as winner": CandidateBlocked,
    "Nomination not found": CandidateNotFound,
    "Movie night not found": CandidateNotFound,
    "Invalid nomination": CandidateNotFound,
}

ERROR_STATUSES: dict[int, type[VoteLedgerError]] = {
    403: PermissionDenied,
    404: CandidateNotFound,
}


def make_client(settings: Settings, **kwargs) -> httpx.AsyncClient:
    """Create a client for the vote store at ``settings.ledger_base_url``.

    Extra keyword arguments (cookies, headers, transport) go to httpx.
    """
    if not settings.ledger_base_url:
        raise ValueError("ledger_base_url is not set (MOVIENIGHT_LEDGER_BASE_URL)")
    return httpx.AsyncClient(
        base_url=settings.ledger_base_url,
        timeout=settings.request_timeout_seconds,
        **kwargs,
    )


class HttpVoteLedger(VoteLedger):
    """VoteLedger backed by the store's REST endpoints.

    The caller is identified by the session cookie or token that the injected
    client carries, so ``caller_id`` is not sent on the wire.

    Args:
        client: An ``httpx.AsyncClient`` with ``base_url`` and auth set up.
            The ledger does not own it and never closes it.
    """

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    async def get_snapshot(self, session_id: int, caller_id: int) -> SessionSnapshot:
        data = await self._request("GET", f"/votes/movie-night/{session_id}")
        return SessionSnapshot.from_dict(data)

    async def cast_vote(self, session_id: int, candidate_id: int, caller_id: int) -> None:
        """Mark the caller attending, then send the vote.

        The store keeps attendance separately from votes, so both requests
        are made. Attendance is best-effort: a failure there is logged and
        the vote still goes out.
        """
        try:
            await self._request(
                "POST",
                f"/schedules/movie-nights/{session_id}/attendance",
                json={"status": "attending"},
            )
        except VoteLedgerError as e:
            log.warning(f"[{session_id}] Could not mark attendance: {e}")
        await self._request("POST", "/votes/vote", json={"nominationId": candidate_id})

    async def retract_vote(self, session_id: int, candidate_id: int, caller_id: int) -> None:
        await self._request("DELETE", f"/votes/vote/{candidate_id}")

    async def decide_winner(
        self, session_id: int, candidate_id: int | None, caller_id: int
    ) -> None:
        if candidate_id is None:
            await self._request("POST", f"/votes/movie-night/{session_id}/undecide")
        else:
            await self._request(
                "POST",
                f"/votes/movie-night/{session_id}/decide",
                json={"nominationId": candidate_id},
            )

    async def _request(self, method: str, path: str, json: dict | None = None) -> dict:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.TimeoutException as e:
            raise NetworkFailure(f"Request to {path} timed out") from e
        except httpx.RequestError as e:
            raise NetworkFailure(f"Error contacting vote store: {e}") from e

        if response.is_success:
            if not response.content:
                return {}
            try:
                return response.json()
            except ValueError as e:
                raise NetworkFailure(f"Invalid JSON from {path}") from e

        raise self._error_for(response)

    @staticmethod
    def _error_for(response: httpx.Response) -> VoteLedgerError:
        """Map an error response to the voting error taxonomy.

        An explicit ``code`` wins, then the store's known messages, then the
        status. Unrecognised 4xx answers are rejections, not transport
        failures.
        """
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        message = body.get("error") or f"HTTP {response.status_code}"
        error_class = ERROR_CODES.get(body.get("code", "")) or ERROR_MESSAGES.get(message)
        if error_class is None:
            error_class = ERROR_STATUSES.get(response.status_code)
        if error_class is None:
            error_class = RequestRejected if response.is_client_error else NetworkFailure
        log.debug(f"Ledger error {response.status_code}: {message} -> {error_class.__name__}")
        return error_class(message)
