"""Rate limit budget tracking.

GitHub reports the remaining GraphQL budget with every query. Responses from
worker threads can arrive out of order, so the stored value only ever goes
down during a run.
"""

import logging
import threading

from ghupvotes.upvotes.models import RateLimit

logger = logging.getLogger(__name__)

# Credits kept in hand so a halted run can still finish its writes
DEFAULT_RESERVE = 10


class RateLimitGovernor:
    """Tracks the remaining API budget and decides when to stop early."""

    def __init__(self, reserve: int = DEFAULT_RESERVE):
        self.reserve = reserve
        self._lock = threading.Lock()
        self._remaining: int | None = None
        self._initial: int | None = None
        self._reported_cost = 0

    @property
    def remaining(self) -> int | None:
        """Last known remaining budget, None until a response has been observed."""
        with self._lock:
            return self._remaining

    @property
    def reported_cost(self) -> int:
        """Sum of the query costs reported so far."""
        with self._lock:
            return self._reported_cost

    def observe(self, rate_limit: RateLimit | None) -> None:
        """Record the budget reported by a query response."""
        if rate_limit is None:
            return

        with self._lock:
            self._reported_cost += rate_limit.cost
            if self._initial is None:
                self._initial = rate_limit.remaining
            if self._remaining is None or rate_limit.remaining < self._remaining:
                self._remaining = rate_limit.remaining

    def record_mutation(self) -> None:
        """Charge one credit for a mutation, which does not report its cost."""
        with self._lock:
            if self._remaining is not None:
                self._remaining -= 1

    def should_halt(self, pending: int = 0) -> bool:
        """True when the budget cannot cover the reserve for ``pending`` items.

        Each pending item may still need a mutation and a re-query, so twice
        the pending count is held back, and never less than the reserve.
        """
        with self._lock:
            remaining = self._remaining
            if remaining is None:
                return False
            threshold = max(self.reserve, 2 * pending)
            halt = remaining < threshold

        if halt:
            logger.info(
                "Rate limit budget low: %d remaining, %d required", remaining, threshold
            )
        return halt

    def spent(self) -> int:
        """Budget consumed since the first observed response."""
        with self._lock:
            if self._initial is None or self._remaining is None:
                return 0
            return self._initial - self._remaining
