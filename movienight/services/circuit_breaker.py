"""Time-windowed failure gate for an external dependency."""

import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from movienight.log import get_logger

log = get_logger(__name__)

OPEN_SECONDS = 5 * 60
RECENT_FAILURE_SECONDS = 60


@dataclass
class BreakerStatus:
    """User-facing health of one dependency.

    Attributes:
        configured: False if the dependency is not set up at all
        failed: True while the circuit is open or a failure is recent
        error: Last failure reason, if failed
        circuit_open: True while calls are being short-circuited
        remaining_minutes: Whole minutes (rounded up) until the circuit closes
    """
    configured: bool
    failed: bool = False
    error: str | None = None
    circuit_open: bool = False
    remaining_minutes: int | None = None

    def to_dict(self) -> dict[str, Any]:
        if not self.configured:
            return {"configured": False}
        data: dict[str, Any] = {"configured": True, "failed": self.failed}
        if self.failed:
            data["error"] = self.error
        if self.circuit_open:
            data["circuitOpen"] = True
            data["remainingMinutes"] = self.remaining_minutes
        return data


class CircuitBreaker:
    """Two-state (closed/open) circuit breaker with lazy expiry.

    A single failure opens the circuit for ``open_seconds``. There is no
    background timer: the circuit closes the next time ``is_open`` is asked
    after the window has passed. A success clears the remembered failure but
    does not shorten an open window.

    Args:
        name: Dependency name, for logs
        open_seconds: How long the circuit stays open after a failure
        recent_seconds: How long a failure is still reported once closed
        clock: Returns the current time in seconds
    """

    def __init__(
        self,
        name: str,
        open_seconds: float = OPEN_SECONDS,
        recent_seconds: float = RECENT_FAILURE_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.name = name
        self.open_seconds = open_seconds
        self.recent_seconds = recent_seconds
        self._clock = clock
        self.last_failure_reason: str | None = None
        self.last_failure_at: float | None = None
        self.open_until: float | None = None

    def is_open(self) -> bool:
        if self.open_until is None:
            return False
        if self._clock() >= self.open_until:
            self.open_until = None
            log.info(f"[{self.name}] Circuit closed after cool-down")
            return False
        return True

    def record_failure(self, reason: str) -> None:
        now = self._clock()
        self.last_failure_reason = reason
        self.last_failure_at = now
        self.open_until = now + self.open_seconds
        log.warning(f"[{self.name}] Circuit opened for {self.open_seconds:.0f}s: {reason}")

    def record_success(self) -> None:
        self.last_failure_reason = None
        self.last_failure_at = None

    def reset(self) -> None:
        if self.open_until is not None or self.last_failure_reason is not None:
            log.info(f"[{self.name}] Circuit reset")
        self.open_until = None
        self.last_failure_reason = None
        self.last_failure_at = None

    def get_status(self, configured: bool) -> BreakerStatus:
        """Describe the breaker for user-facing messages. Does not mutate."""
        if not configured:
            return BreakerStatus(configured=False)

        now = self._clock()
        if self.open_until is not None and now < self.open_until:
            return BreakerStatus(
                configured=True,
                failed=True,
                error=self.last_failure_reason,
                circuit_open=True,
                remaining_minutes=math.ceil((self.open_until - now) / 60),
            )

        if (
            self.last_failure_reason is not None
            and self.last_failure_at is not None
            and now - self.last_failure_at < self.recent_seconds
        ):
            return BreakerStatus(configured=True, failed=True, error=self.last_failure_reason)

        return BreakerStatus(configured=True)
