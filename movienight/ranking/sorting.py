"""Deterministic ordering of candidates by tally."""

from collections.abc import Iterable

from movienight.models import Candidate


def sort_candidates(candidates: Iterable[Candidate], winner_id: int | None = None) -> list[int]:
    """Order candidate ids for display.

    The decided winner (if any) always comes first regardless of its tally.
    Everyone else is ordered by vote count, highest first, with ties broken
    by ascending id so that the result is a total order: the same input
    always yields the same output.

    Args:
        candidates: Candidates to order
        winner_id: Id of the decided winner, or None

    Returns:
        Candidate ids from first to last place
    """
    ordered = sorted(
        candidates,
        key=lambda c: (c.id != winner_id, -c.vote_count, c.id),
    )
    return [c.id for c in ordered]


def leading_ids(candidates: Iterable[Candidate], winner_id: int | None = None) -> set[int]:
    """Ids of the candidates sharing the top tally.

    Nobody leads once a winner is decided or while no votes have been cast.
    """
    if winner_id is not None:
        return set()
    candidates = list(candidates)
    top = max((c.vote_count for c in candidates), default=0)
    if top <= 0:
        return set()
    return {c.id for c in candidates if c.vote_count == top}
