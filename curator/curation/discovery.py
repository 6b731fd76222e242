"""Per-interest discovery statistics."""

from datetime import datetime

from curator.store.models import DiscoveryUpdate, Interest


def incremental_mean(previous_mean: float, previous_count: int, sample: float) -> float:
    """Fold one sample into an arithmetic mean over ``previous_count`` samples.

    Raises:
        ValueError: If previous_count is negative.
    """
    if previous_count < 0:
        msg = f"previous_count must be non-negative, got {previous_count}"
        raise ValueError(msg)
    return (previous_mean * previous_count + sample) / (previous_count + 1)


def next_discovery_stats(
    interest: Interest,
    now: datetime,
    first_discovery_seed_seconds: float,
) -> DiscoveryUpdate:
    """Compute an interest's statistics after a run that found new articles.

    The first-ever discovery seeds the average with
    ``first_discovery_seed_seconds``. Later discoveries fold the interval
    since the previous discovery into the running mean; a non-positive
    interval (clock skew, same-instant runs) leaves the average unchanged.

    Args:
        interest: Interest with its current statistics.
        now: Time of this discovery.
        first_discovery_seed_seconds: Average assigned on first discovery.

    Returns:
        The statistics to persist.
    """
    new_count = interest.discovery_count + 1
    previous = interest.last_new_article_at

    if previous is not None and interest.discovery_count > 0:
        interval = (now - previous).total_seconds()
        if interval > 0:
            new_avg = incremental_mean(
                interest.avg_discovery_interval_seconds,
                interest.discovery_count,
                interval,
            )
        else:
            new_avg = interest.avg_discovery_interval_seconds
    else:
        new_avg = first_discovery_seed_seconds

    return DiscoveryUpdate(
        interest_id=interest.id,
        last_new_article_at=now,
        discovery_count=new_count,
        avg_discovery_interval_seconds=new_avg,
    )
