"""Core data models for nominations, session snapshots and standings."""

from dataclasses import dataclass, field, replace
from typing import Any, Self


@dataclass(frozen=True)
class Candidate:
    """A nomination that members of a session can vote on.

    Attributes:
        id: Stable identifier, unique within a voting session
        title: Display title (opaque to the ranking logic)
        year: Release year, if known
        vote_count: Aggregate votes across all members (never negative)
        user_vote_count: The acting member's own votes on this candidate
        is_blocked: True once the nomination has been vetoed
        media_type: Provenance tag, e.g. "plex" or "tmdb"
        rating_key: Media server key, if the candidate came from one
        tmdb_id: TMDB id, if known
        poster_url: Poster image URL, if any

    Example:
        >>> c = Candidate(id=1, title="Alien", vote_count=2)
        >>> c.with_vote(+1).vote_count
        3
    """
    id: int
    title: str = ""
    year: int | None = None
    vote_count: int = 0
    user_vote_count: int = 0
    is_blocked: bool = False
    media_type: str = "plex"
    rating_key: str | None = None
    tmdb_id: int | None = None
    poster_url: str | None = None

    @property
    def user_has_voted(self) -> bool:
        return self.user_vote_count > 0

    def with_vote(self, direction: int) -> Self:
        """Return a copy with one vote added (+1) or removed (-1).

        Removing clamps both counters at zero.
        """
        if direction not in (1, -1):
            raise ValueError(f"direction must be +1 or -1, got {direction}")
        if direction > 0:
            return replace(
                self,
                vote_count=self.vote_count + 1,
                user_vote_count=self.user_vote_count + 1,
            )
        return replace(
            self,
            vote_count=max(0, self.vote_count - 1),
            user_vote_count=max(0, self.user_vote_count - 1),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "year": self.year,
            "voteCount": self.vote_count,
            "userVoteCount": self.user_vote_count,
            "userHasVoted": self.user_has_voted,
            "isBlocked": self.is_blocked,
            "mediaType": self.media_type,
            "ratingKey": self.rating_key,
            "tmdbId": self.tmdb_id,
            "posterUrl": self.poster_url,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Build a Candidate from the store's camelCase nomination shape."""
        return cls(
            id=int(data["id"]),
            title=data.get("title") or "",
            year=data.get("year"),
            vote_count=max(0, int(data.get("voteCount") or 0)),
            user_vote_count=max(0, int(data.get("userVoteCount") or 0)),
            is_blocked=bool(data.get("isBlocked", False)),
            media_type=data.get("mediaType") or "plex",
            rating_key=data.get("ratingKey"),
            tmdb_id=data.get("tmdbId"),
            poster_url=data.get("posterUrl"),
        )


@dataclass
class SessionSnapshot:
    """Authoritative view of one voting session, as seen by one member.

    Attributes:
        candidates: All nominations with their current tallies
        user_remaining_votes: Votes the member can still cast
        max_votes_per_user: Session-wide vote budget per member
        winner_id: Decided winner, pinned to the top of the standings
        can_vote: False once the session is locked, archived or cancelled
    """
    candidates: list[Candidate]
    user_remaining_votes: int
    max_votes_per_user: int
    winner_id: int | None = None
    can_vote: bool = True

    def get_candidate(self, candidate_id: int) -> Candidate | None:
        for c in self.candidates:
            if c.id == candidate_id:
                return c
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "nominations": [c.to_dict() for c in self.candidates],
            "userRemainingVotes": self.user_remaining_votes,
            "maxVotesPerUser": self.max_votes_per_user,
            "winnerId": self.winner_id,
            "canVote": self.can_vote,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Parse a snapshot response body.

        The winner may arrive either as ``winnerId`` or as a nested
        ``winner`` nomination object.
        """
        winner_id = data.get("winnerId")
        if winner_id is None and data.get("winner"):
            winner_id = data["winner"].get("id")
        return cls(
            candidates=[Candidate.from_dict(n) for n in data.get("nominations", [])],
            user_remaining_votes=int(data.get("userRemainingVotes", 0)),
            max_votes_per_user=int(data.get("maxVotesPerUser", 0)),
            winner_id=winner_id,
            can_vote=bool(data.get("canVote", True)),
        )


@dataclass
class ReconcileResult:
    """Outcome of merging a snapshot into the displayed standings.

    Attributes:
        displayed: Candidates in the order they should be shown right now
        order_changed: True if the snapshot implies a different order that
            is being held back by the grace period
    """
    displayed: list[Candidate]
    order_changed: bool
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def displayed_ids(self) -> list[int]:
        return [c.id for c in self.displayed]
