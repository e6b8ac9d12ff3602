"""Shared test helpers."""

from faker import Faker

from movienight.models import Candidate, SessionSnapshot

SEED = 20261018

fake = Faker()
Faker.seed(SEED)


def make_candidates(tallies: dict[int, int], user_votes: dict[int, int] | None = None) -> list[Candidate]:
    """Build candidates from a compact tally table.

    Args:
        tallies: {candidate_id: vote_count}
        user_votes: {candidate_id: user_vote_count} for the acting member

    Returns:
        Candidates in the table's order, with generated titles.
    """
    user_votes = user_votes or {}
    return [
        Candidate(
            id=candidate_id,
            title=fake.catch_phrase(),
            year=int(fake.year()),
            vote_count=count,
            user_vote_count=user_votes.get(candidate_id, 0),
        )
        for candidate_id, count in tallies.items()
    ]


def make_snapshot(
    tallies: dict[int, int],
    max_votes: int = 3,
    user_votes: dict[int, int] | None = None,
    winner_id: int | None = None,
    can_vote: bool = True,
) -> SessionSnapshot:
    user_votes = user_votes or {}
    return SessionSnapshot(
        candidates=make_candidates(tallies, user_votes),
        user_remaining_votes=max_votes - sum(user_votes.values()),
        max_votes_per_user=max_votes,
        winner_id=winner_id,
        can_vote=can_vote,
    )


def ids(candidates: list[Candidate]) -> list[int]:
    return [c.id for c in candidates]
