"""Token-bucket rate limiter for search API calls."""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field


@dataclass
class TokenBucketRateLimiter:
    """Token bucket rate limiter for API QPS control.

    Tokens are replenished continuously at ``max_qps``. The bucket starts
    full, so the first ``bucket_capacity`` requests go out immediately.

    Attributes:
        max_qps: Maximum queries per second.
        bucket_capacity: Burst capacity; defaults to ``max_qps`` (at least 1).
        clock: Monotonic time source.
        sleep: Sleep function used while waiting for tokens.
    """

    max_qps: float
    bucket_capacity: float = 0.0
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    _tokens: float = field(init=False, default=0.0)
    _last_refill: float = field(init=False, default=0.0)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _rate_limited_count: int = field(init=False, default=0)

    def __post_init__(self) -> None:
        """Initialize the bucket state."""
        if self.max_qps <= 0:
            msg = f"max_qps must be positive, got {self.max_qps}"
            raise ValueError(msg)
        if self.bucket_capacity <= 0:
            self.bucket_capacity = max(self.max_qps, 1.0)
        self._tokens = self.bucket_capacity
        self._last_refill = self.clock()

    def _refill(self) -> None:
        """Refill tokens based on elapsed time. Caller holds the lock."""
        now = self.clock()
        elapsed = now - self._last_refill
        self._tokens = min(self.bucket_capacity, self._tokens + elapsed * self.max_qps)
        self._last_refill = now

    def acquire(self, tokens: int = 1) -> None:
        """Acquire tokens, blocking until available."""
        while True:
            with self._lock:
                self._refill()
                if self._tokens >= tokens:
                    self._tokens -= tokens
                    return
                wait_time = (tokens - self._tokens) / self.max_qps
                self._rate_limited_count += 1

            self.sleep(wait_time)

    def try_acquire(self, tokens: int = 1) -> bool:
        """Try to acquire tokens without blocking.

        Returns:
            True if tokens were acquired, False otherwise.
        """
        with self._lock:
            self._refill()
            if self._tokens >= tokens:
                self._tokens -= tokens
                return True
            self._rate_limited_count += 1
            return False

    @property
    def rate_limited_count(self) -> int:
        """Number of times a caller had to wait or was refused."""
        with self._lock:
            return self._rate_limited_count
