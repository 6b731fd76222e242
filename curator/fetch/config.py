"""Configuration model for the article fetch layer."""

from typing import Annotated

from pydantic import Field

from curator.data_model import StrictBaseModel
from curator.fetch.constants import (
    DEFAULT_MAX_RESPONSE_SIZE_BYTES,
    DEFAULT_ROBOTS_AGENT_TOKEN,
    DEFAULT_USER_AGENT,
    FALLBACK_TEXT_CHARS,
)


class FetchConfig(StrictBaseModel):
    """Limits for prioritized article fetching.

    Attributes:
        max_articles_per_cluster: Articles fetched from each cluster.
        max_failures_per_domain: Failures after which a domain is skipped.
        failure_reset_seconds: Interval after which failure counters reset.
        default_crawl_delay_seconds: Minimum gap between requests to one
            domain when robots.txt sets no crawl-delay.
        max_crawl_delay_seconds: Upper bound on a robots crawl-delay.
        robots_timeout_seconds: Timeout for fetching robots.txt.
        request_timeout_seconds: Timeout for the article request.
        article_timeout_seconds: Overall deadline per article, covering the
            robots check, the domain gap and the request.
        batch_timeout_seconds: Wall-clock ceiling for the whole batch.
        max_workers: Concurrent fetch threads.
    """

    user_agent: Annotated[str, Field(min_length=1, max_length=500)] = DEFAULT_USER_AGENT
    robots_agent_token: Annotated[str, Field(min_length=1)] = DEFAULT_ROBOTS_AGENT_TOKEN
    max_articles_per_cluster: Annotated[int, Field(ge=1, le=20)] = 3
    max_failures_per_domain: Annotated[int, Field(ge=1, le=100)] = 3
    failure_reset_seconds: Annotated[float, Field(gt=0.0)] = 3600.0
    default_crawl_delay_seconds: Annotated[float, Field(ge=0.0, le=60.0)] = 0.05
    max_crawl_delay_seconds: Annotated[float, Field(ge=0.0, le=300.0)] = 10.0
    robots_timeout_seconds: Annotated[float, Field(gt=0.0, le=60.0)] = 3.0
    request_timeout_seconds: Annotated[float, Field(gt=0.0, le=300.0)] = 10.0
    article_timeout_seconds: Annotated[float, Field(gt=0.0, le=600.0)] = 30.0
    batch_timeout_seconds: Annotated[float, Field(gt=0.0, le=3600.0)] = 300.0
    max_workers: Annotated[int, Field(ge=1, le=64)] = 8
    max_response_size_bytes: Annotated[int, Field(ge=1024, le=100 * 1024 * 1024)] = (
        DEFAULT_MAX_RESPONSE_SIZE_BYTES
    )
    fallback_text_chars: Annotated[int, Field(ge=100)] = FALLBACK_TEXT_CHARS
