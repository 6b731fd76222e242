"""URL canonicalization used as the article deduplication key."""

from urllib.parse import parse_qs, urlencode, urlparse, urlunparse


# Tracking parameters stripped by default
DEFAULT_STRIP_PARAMS: list[str] = [
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    "utm_id",
    "fbclid",
    "gclid",
    "msclkid",
    "twclid",
    "igshid",
    "_ga",
    "_gl",
    "mc_cid",
    "mc_eid",
    "mkt_tok",
    "ocid",
    "cmpid",
    "smid",
]


def canonicalize_url(url: str, strip_params: list[str] | None = None) -> str:
    """Canonicalize an article URL for deduplication.

    Canonicalization includes:
    - Trimming surrounding whitespace
    - Lowercasing the scheme and host
    - Removing trailing slashes (except for the root path)
    - Stripping tracking query parameters
    - Dropping fragments

    Args:
        url: The URL to canonicalize.
        strip_params: Query parameters to strip. If None, uses defaults.

    Returns:
        Canonical URL string, or the stripped input when it has no scheme.
    """
    url = url.strip()
    if not url:
        return url

    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return url

    path = parsed.path
    if path != "/" and path.endswith("/"):
        path = path.rstrip("/")

    params_to_strip = strip_params if strip_params is not None else DEFAULT_STRIP_PARAMS
    query = _filter_query_params(parsed.query, params_to_strip)

    return urlunparse(
        (
            parsed.scheme.lower(),
            parsed.netloc.lower(),
            path,
            parsed.params,
            query,
            "",
        )
    )


def _filter_query_params(query: str, strip_params: list[str]) -> str:
    """Filter tracking parameters out of a query string.

    Args:
        query: Original query string.
        strip_params: Parameter names to remove (case-insensitive).

    Returns:
        Filtered query string with keys in their original order.
    """
    if not query:
        return ""

    params = parse_qs(query, keep_blank_values=True)
    strip_set = {p.lower() for p in strip_params}
    filtered = {
        key: value for key, value in params.items() if key.lower() not in strip_set
    }
    if not filtered:
        return ""

    return urlencode(filtered, doseq=True, safe="")


def url_hostname(url: str) -> str:
    """Return the lowercased hostname of a URL, without a leading ``www.``.

    Args:
        url: Absolute URL.

    Returns:
        Hostname, or an empty string when the URL has none.
    """
    host = (urlparse(url).hostname or "").lower()
    return host.removeprefix("www.")
