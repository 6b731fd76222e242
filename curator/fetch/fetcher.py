"""Single-article fetch: robots check, domain gap, request and extraction."""

import time
from collections.abc import Callable
from io import BytesIO
from urllib.parse import urlparse

import httpx
import structlog

from curator.fetch.config import FetchConfig
from curator.fetch.constants import (
    DEFAULT_CHUNK_SIZE,
    HTML_CONTENT_TYPES,
    HTTP_STATUS_OK_MAX,
    HTTP_STATUS_OK_MIN,
)
from curator.fetch.extractor import extract_content
from curator.fetch.metrics import FetchMetrics
from curator.fetch.models import (
    DOMAIN_FAILURE_REASONS,
    FetchCandidate,
    FetchFailureReason,
    FetchOutcome,
)
from curator.fetch.robots import RobotsRules
from curator.fetch.session import FetchSession


logger = structlog.get_logger()


class _FetchAbortedError(Exception):
    """Internal signal carrying a failure reason out of the request path."""

    def __init__(
        self,
        reason: FetchFailureReason,
        message: str,
        status_code: int | None = None,
        charged: bool = False,
    ) -> None:
        self.reason = reason
        self.status_code = status_code
        self.charged = charged
        super().__init__(message)


class ArticleFetcher:
    """Fetches one article politely and never raises.

    Every step runs under a per-article deadline: the robots.txt check,
    the wait for the domain's next request slot, and the request itself.
    Network, HTTP and timeout failures count against the domain. Requests
    to one domain are sent one at a time, and the domain's failure budget
    is checked again right before each request.
    """

    def __init__(
        self,
        client: httpx.Client,
        session: FetchSession,
        config: FetchConfig,
        run_id: str = "",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the fetcher.

        Args:
            client: Shared HTTP client.
            session: Per-run domain state.
            config: Fetch limits.
            run_id: Run identifier for logging.
            clock: Monotonic time source, shared with the session.
            sleep: Sleep function used for the domain gap.
        """
        self._client = client
        self._session = session
        self._config = config
        self._clock = clock
        self._sleep = sleep
        self._metrics = FetchMetrics.get_instance()
        self._log = logger.bind(component="fetch", run_id=run_id)

    def fetch(self, candidate: FetchCandidate, batch_deadline: float) -> FetchOutcome:
        """Fetch and extract one candidate.

        Args:
            candidate: Article to fetch.
            batch_deadline: Clock value after which no new work may start.

        Returns:
            Success with extracted content, or a failure with its reason.
        """
        start = self._clock()
        self._metrics.record_attempt()
        host = (urlparse(candidate.url).hostname or "").lower()
        log = self._log.bind(
            article_id=candidate.article_id,
            domain=host,
            cluster_id=candidate.cluster_id,
        )

        if start >= batch_deadline:
            return self._failure(
                candidate,
                FetchFailureReason.BATCH_TIMEOUT,
                "batch ceiling reached",
                start,
            )
        if not host or urlparse(candidate.url).scheme not in ("http", "https"):
            return self._failure(
                candidate,
                FetchFailureReason.INVALID_URL,
                "URL has no http(s) host",
                start,
            )
        if self._session.is_blocked(host):
            log.debug("domain_skipped", failures=self._session.failure_count(host))
            return self._failure(
                candidate,
                FetchFailureReason.SKIPPED,
                "domain failure limit reached",
                start,
            )

        deadline = min(start + self._config.article_timeout_seconds, batch_deadline)

        try:
            rules = self._robots_for(candidate.url, host, deadline)
            if not rules.is_allowed(candidate.url, self._config.robots_agent_token):
                raise _FetchAbortedError(
                    FetchFailureReason.ROBOTS_DISALLOWED, "disallowed by robots.txt"
                )

            self._wait_for_slot(host, rules, deadline)
            html, size, status_code = self._send(candidate.url, host, deadline)
            content = extract_content(html, self._config.fallback_text_chars)

        except _FetchAbortedError as e:
            if e.reason in DOMAIN_FAILURE_REASONS and not e.charged:
                self._session.record_failure(host)
            log.info("article_fetch_failed", reason=e.reason.value, error=str(e))
            return self._failure(candidate, e.reason, str(e), start, e.status_code)

        except Exception as e:  # noqa: BLE001
            self._session.record_failure(host)
            log.warning(
                "article_fetch_error", error=str(e), error_type=type(e).__name__
            )
            return self._failure(
                candidate,
                FetchFailureReason.NETWORK_ERROR,
                f"Unexpected error: {e}",
                start,
            )

        duration_ms = (self._clock() - start) * 1000
        self._metrics.record_success(size, duration_ms)
        log.info(
            "article_fetched",
            bytes=size,
            text_chars=len(content.text),
            used_fallback=content.used_fallback,
            duration_ms=round(duration_ms, 2),
        )
        return FetchOutcome(
            article_id=candidate.article_id,
            url=candidate.url,
            cluster_id=candidate.cluster_id,
            content=content,
            status_code=status_code,
            duration_ms=duration_ms,
        )

    def _failure(
        self,
        candidate: FetchCandidate,
        reason: FetchFailureReason,
        message: str,
        start: float,
        status_code: int | None = None,
    ) -> FetchOutcome:
        self._metrics.record_failure(reason)
        return FetchOutcome(
            article_id=candidate.article_id,
            url=candidate.url,
            cluster_id=candidate.cluster_id,
            reason=reason,
            message=message,
            status_code=status_code,
            duration_ms=(self._clock() - start) * 1000,
        )

    def _remaining(self, deadline: float) -> float:
        remaining = deadline - self._clock()
        if remaining <= 0:
            raise _FetchAbortedError(
                FetchFailureReason.TIMEOUT, "per-article deadline expired"
            )
        return remaining

    def _robots_for(self, url: str, host: str, deadline: float) -> RobotsRules:
        """Cached robots rules for the host; any fetch failure allows all."""
        cached = self._session.cached_robots(host)
        if cached is not None:
            self._metrics.record_robots_cache_hit()
            return cached

        parsed = urlparse(url)
        robots_url = f"{parsed.scheme}://{parsed.netloc}/robots.txt"
        timeout = min(self._config.robots_timeout_seconds, self._remaining(deadline))
        self._metrics.record_robots_fetch()

        try:
            response = self._client.get(
                robots_url,
                headers={"User-Agent": self._config.user_agent},
                timeout=timeout,
            )
        except httpx.HTTPError as e:
            self._log.debug("robots_unavailable", domain=host, error=str(e))
            rules = RobotsRules.allow_all()
        else:
            if HTTP_STATUS_OK_MIN <= response.status_code < HTTP_STATUS_OK_MAX:
                rules = RobotsRules.parse(response.text)
            else:
                rules = RobotsRules.allow_all()

        self._session.cache_robots(host, rules)
        return rules

    def _wait_for_slot(self, host: str, rules: RobotsRules, deadline: float) -> None:
        delay = rules.crawl_delay(self._config.robots_agent_token)
        gap = self._config.default_crawl_delay_seconds if delay is None else delay
        gap = min(gap, self._config.max_crawl_delay_seconds)

        wait = self._session.reserve_slot(host, gap, deadline)
        if wait is None:
            raise _FetchAbortedError(
                FetchFailureReason.TIMEOUT, "domain gap exceeds per-article deadline"
            )
        if wait > 0:
            self._sleep(wait)

    def _send(self, url: str, host: str, deadline: float) -> tuple[str, int, int]:
        """Send the article request while holding the domain's request lock.

        Raises:
            _FetchAbortedError: With ``charged`` set when the failure was
                already counted against the domain.
        """
        lock = self._session.request_lock(host)
        if not lock.acquire(timeout=self._remaining(deadline)):
            raise _FetchAbortedError(
                FetchFailureReason.TIMEOUT,
                "domain busy past per-article deadline",
                charged=True,
            )
        try:
            if self._session.is_blocked(host):
                raise _FetchAbortedError(
                    FetchFailureReason.SKIPPED, "domain failure limit reached"
                )
            try:
                return self._request(url, deadline)
            except _FetchAbortedError as e:
                if e.reason in DOMAIN_FAILURE_REASONS:
                    self._session.record_failure(host)
                    e.charged = True
                raise
            except Exception as e:
                self._session.record_failure(host)
                raise _FetchAbortedError(
                    FetchFailureReason.NETWORK_ERROR,
                    f"Unexpected error: {e}",
                    charged=True,
                ) from e
        finally:
            lock.release()

    def _request(self, url: str, deadline: float) -> tuple[str, int, int]:
        """GET the article with size, type and deadline enforcement."""
        timeout = min(self._config.request_timeout_seconds, self._remaining(deadline))
        max_size = self._config.max_response_size_bytes

        try:
            with self._client.stream(
                "GET",
                url,
                headers={
                    "User-Agent": self._config.user_agent,
                    "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.5",
                },
                timeout=timeout,
            ) as response:
                status = response.status_code
                if not HTTP_STATUS_OK_MIN <= status < HTTP_STATUS_OK_MAX:
                    raise _FetchAbortedError(
                        FetchFailureReason.HTTP_ERROR, f"HTTP {status}", status
                    )

                raw_type = response.headers.get("content-type", "")
                content_type = raw_type.split(";")[0].strip().lower()
                if content_type and content_type not in HTML_CONTENT_TYPES:
                    raise _FetchAbortedError(
                        FetchFailureReason.UNSUPPORTED_CONTENT,
                        f"Unsupported content type {content_type}",
                        status,
                    )

                content_length = response.headers.get("content-length")
                if content_length and content_length.isdigit():
                    if int(content_length) > max_size:
                        raise _FetchAbortedError(
                            FetchFailureReason.TOO_LARGE,
                            f"Response size {content_length} exceeds limit {max_size}",
                            status,
                        )

                buffer = BytesIO()
                total_read = 0
                for chunk in response.iter_bytes(chunk_size=DEFAULT_CHUNK_SIZE):
                    total_read += len(chunk)
                    if total_read > max_size:
                        raise _FetchAbortedError(
                            FetchFailureReason.TOO_LARGE,
                            f"Response exceeded limit of {max_size} bytes",
                            status,
                        )
                    self._remaining(deadline)
                    buffer.write(chunk)

                encoding = response.encoding or "utf-8"
                html = buffer.getvalue().decode(encoding, errors="replace")
                return html, total_read, status

        except httpx.TimeoutException as e:
            raise _FetchAbortedError(
                FetchFailureReason.TIMEOUT, f"Request timed out: {e}"
            ) from e
        except httpx.HTTPError as e:
            raise _FetchAbortedError(
                FetchFailureReason.NETWORK_ERROR, f"Request failed: {e}"
            ) from e
