"""Merge authoritative snapshots and optimistic edits into stable standings.

Re-sorting on every tally change makes the list jump around while people are
voting. The reconciler instead keeps showing the current order with fresh
counts, and only moves candidates once a grace period passes without being
cancelled. A newer order-changing snapshot restarts the grace period; the
order applied when it fires is computed from whatever snapshot is latest at
that moment.
"""

import asyncio
from collections.abc import Callable, Iterable

from movienight.log import get_logger
from movienight.models import Candidate, ReconcileResult
from movienight.ranking.sorting import sort_candidates

log = get_logger(__name__)

DEFAULT_GRACE_PERIOD = 5.0


class RankingReconciler:
    """Owns the displayed order of one session's candidates.

    Must be driven from a single asyncio event loop. Every method runs
    synchronously; the only deferred work is the grace-period callback,
    scheduled with ``loop.call_later``.

    Args:
        grace_period: Seconds a detected reorder is held back
        on_commit: Called with the newly ordered candidates whenever a held
            back order is applied
        loop: Event loop for the timer; defaults to the running loop
        name: Label used in log messages
    """

    def __init__(
        self,
        grace_period: float = DEFAULT_GRACE_PERIOD,
        on_commit: Callable[[list[Candidate]], None] | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        name: str = "ranking",
    ):
        if grace_period < 0:
            raise ValueError("grace_period cannot be negative")
        self.grace_period = grace_period
        self.name = name
        self._on_commit = on_commit
        self._loop = loop

        self._displayed_order: list[int] = []
        self._view: list[Candidate] = []
        self._latest: list[Candidate] = []
        self._winner_id: int | None = None

        self._handle: asyncio.TimerHandle | None = None
        self._deadline: float | None = None

    # ------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------

    @property
    def displayed_order(self) -> list[int]:
        return list(self._displayed_order)

    @property
    def displayed(self) -> list[Candidate]:
        """Candidates as they should be shown, counts included."""
        return list(self._view)

    @property
    def latest_snapshot(self) -> list[Candidate]:
        return list(self._latest)

    @property
    def winner_id(self) -> int | None:
        return self._winner_id

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def seconds_remaining(self) -> float:
        """Seconds until the held back order is applied (0 if none)."""
        if self._handle is None or self._deadline is None:
            return 0.0
        return max(0.0, self._deadline - self._get_loop().time())

    def get(self, candidate_id: int) -> Candidate | None:
        for c in self._view:
            if c.id == candidate_id:
                return c
        return None

    # ------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------

    def load(self, candidates: Iterable[Candidate], winner_id: int | None = None) -> list[Candidate]:
        """Replace all state with a fresh snapshot, sorted immediately."""
        self.cancel_pending_reorder()
        self._latest = list(candidates)
        self._winner_id = winner_id
        self._displayed_order = sort_candidates(self._latest, winner_id)
        self._view = self._in_order(self._displayed_order, self._latest)
        return self.displayed

    def apply_optimistic_vote(self, candidate_id: int, direction: int) -> Candidate:
        """Move the acting member's vote on a candidate by one, in place.

        Only counts change; the displayed order is left alone.

        Raises:
            KeyError: If the candidate is not currently displayed
        """
        for i, c in enumerate(self._view):
            if c.id == candidate_id:
                updated = c.with_vote(direction)
                self._view[i] = updated
                return updated
        raise KeyError(candidate_id)

    def reconcile(
        self, new_candidates: Iterable[Candidate], winner_id: int | None = None
    ) -> ReconcileResult:
        """Merge a snapshot into the standings.

        Args:
            new_candidates: Full candidate set from the ledger
            winner_id: Decided winner in that snapshot, or None

        Returns:
            ReconcileResult whose ``displayed`` list keeps the current order
            with refreshed counts, and whose ``order_changed`` flag says
            whether a different order is now being held back.
        """
        new_candidates = list(new_candidates)
        new_order = sort_candidates(new_candidates, winner_id)

        common = min(len(new_order), len(self._displayed_order))
        order_changed = any(
            new_order[i] != self._displayed_order[i] for i in range(common)
        )

        if self._displayed_order:
            view = self._merge_into_current(new_candidates, new_order)
        else:
            view = self._in_order(new_order, new_candidates)

        self._latest = new_candidates
        self._winner_id = winner_id
        self._view = view

        restarted = False
        if order_changed:
            restarted = self.pending
            self._schedule_commit()
            log.debug(
                f"[{self.name}] Order change detected "
                f"({'restarting' if restarted else 'starting'} {self.grace_period}s grace period)"
            )
        else:
            self._displayed_order = new_order

        return ReconcileResult(
            displayed=list(view),
            order_changed=order_changed,
            details={"new_order": new_order, "restarted": restarted},
        )

    def commit_pending_order(self) -> list[Candidate]:
        """Apply the order implied by the latest snapshot and stop waiting."""
        self._clear_timer()
        self._displayed_order = sort_candidates(self._latest, self._winner_id)
        self._view = self._in_order(self._displayed_order, self._latest)
        log.info(f"[{self.name}] Standings reordered: {self._displayed_order}")
        if self._on_commit is not None:
            self._on_commit(self.displayed)
        return self.displayed

    def cancel_pending_reorder(self) -> None:
        """Drop the pending reorder without applying it.

        The displayed order stays frozen until a later ``reconcile`` detects
        the change again.
        """
        if self._handle is not None:
            log.debug(f"[{self.name}] Pending reorder cancelled")
        self._clear_timer()

    def set_winner(self, winner_id: int | None) -> list[Candidate]:
        """Pin (or unpin) a winner and re-sort the current view right away."""
        self._clear_timer()
        self._winner_id = winner_id
        self._displayed_order = sort_candidates(self._view, winner_id)
        self._view = self._in_order(self._displayed_order, self._view)
        return self.displayed

    # ------------------------------------------------------------

    def _merge_into_current(
        self, new_candidates: list[Candidate], new_order: list[int]
    ) -> list[Candidate]:
        """Walk the current order, swapping in fresh data.

        Candidates missing from the snapshot are dropped; new ones are
        appended in their sorted order.
        """
        fresh = {c.id: c for c in new_candidates}
        shown = set(self._displayed_order)
        view = [fresh[i] for i in self._displayed_order if i in fresh]
        view.extend(fresh[i] for i in new_order if i not in shown)
        return view

    @staticmethod
    def _in_order(order: list[int], candidates: Iterable[Candidate]) -> list[Candidate]:
        by_id = {c.id: c for c in candidates}
        return [by_id[i] for i in order]

    def _schedule_commit(self) -> None:
        # One timer per reconciler: replace, never queue.
        self._clear_timer()
        loop = self._get_loop()
        self._deadline = loop.time() + self.grace_period
        self._handle = loop.call_later(self.grace_period, self._on_grace_elapsed)

    def _on_grace_elapsed(self) -> None:
        self._handle = None
        self._deadline = None
        self.commit_pending_order()

    def _clear_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._deadline = None

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop
