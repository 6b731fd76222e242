"""Shared, deterministic timestamps for tests."""

from datetime import UTC, datetime


# Fixed run time; every relative timestamp in the tests derives from it.
FIXED_NOW = datetime(2024, 3, 12, 8, 0, 0, tzinfo=UTC)


class FakeClock:
    """Monotonic clock whose sleep advances time instead of blocking."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds
