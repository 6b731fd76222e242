"""Per-run fetch state shared by fetch workers."""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

import structlog

from curator.fetch.robots import RobotsRules


logger = structlog.get_logger()


@dataclass
class DomainState:
    """Mutable state for one domain.

    ``lock`` guards ``next_slot_at``; the session lock guards the rest.
    ``request_lock`` is held for the whole of one article request.
    """

    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    request_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    next_slot_at: float | None = None
    failures: int = 0
    robots: RobotsRules | None = None


class FetchSession:
    """Domain failure counters, robots cache and request slots for one run.

    A session is built fresh for every fetch batch. Times come from an
    injectable monotonic clock.
    """

    def __init__(
        self,
        max_failures_per_domain: int = 3,
        failure_reset_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the session.

        Args:
            max_failures_per_domain: Failures after which a domain is skipped.
            failure_reset_seconds: Interval after which counters reset.
            clock: Monotonic time source in seconds.
        """
        self._max_failures = max_failures_per_domain
        self._reset_interval = failure_reset_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._domains: dict[str, DomainState] = {}
        self._last_reset = clock()
        self._log = logger.bind(component="fetch_session")

    def _domain(self, host: str) -> DomainState:
        with self._lock:
            state = self._domains.get(host)
            if state is None:
                state = DomainState()
                self._domains[host] = state
            return state

    def reset_failures_if_due(self) -> bool:
        """Clear all failure counters once the reset interval has elapsed.

        Returns:
            True if the counters were reset.
        """
        now = self._clock()
        with self._lock:
            if now - self._last_reset < self._reset_interval:
                return False
            for state in self._domains.values():
                state.failures = 0
            self._last_reset = now
        self._log.info("domain_failures_reset")
        return True

    def is_blocked(self, host: str) -> bool:
        """Check if a domain has exhausted its failure budget."""
        self.reset_failures_if_due()
        state = self._domain(host)
        with self._lock:
            return state.failures >= self._max_failures

    def record_failure(self, host: str) -> int:
        """Increment a domain's failure counter.

        Returns:
            The new failure count.
        """
        state = self._domain(host)
        with self._lock:
            state.failures += 1
            count = state.failures
        if count == self._max_failures:
            self._log.warning("domain_blocked", domain=host, failures=count)
        return count

    def failure_count(self, host: str) -> int:
        """Current failure count for a domain."""
        state = self._domain(host)
        with self._lock:
            return state.failures

    def cached_robots(self, host: str) -> RobotsRules | None:
        """Cached robots rules for a domain, if fetched this run."""
        state = self._domain(host)
        with self._lock:
            return state.robots

    def cache_robots(self, host: str, rules: RobotsRules) -> None:
        """Cache robots rules for a domain."""
        state = self._domain(host)
        with self._lock:
            state.robots = rules

    def reserve_slot(
        self, host: str, gap_seconds: float, deadline: float
    ) -> float | None:
        """Reserve the next request slot for a domain.

        Slots for one domain are at least ``gap_seconds`` apart. The
        reservation is made under the domain lock; the caller sleeps for the
        returned wait outside it.

        Args:
            host: Domain key.
            gap_seconds: Minimum gap between requests to the domain.
            deadline: Clock value the request must start before.

        Returns:
            Seconds to wait before sending, or None if the slot would start
            after the deadline (nothing is reserved then).
        """
        state = self._domain(host)
        with state.lock:
            now = self._clock()
            slot = now if state.next_slot_at is None else max(now, state.next_slot_at)
            if slot > deadline:
                return None
            state.next_slot_at = slot + gap_seconds
            return slot - now

    def request_lock(self, host: str) -> threading.Lock:
        """Lock serializing article requests to one domain.

        Workers check the failure budget and charge failures while holding
        it, so a domain never receives more failing requests than its
        budget allows.
        """
        return self._domain(host).request_lock
