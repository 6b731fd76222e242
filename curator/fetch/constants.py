"""Constants for the article fetch layer."""

# HTTP status code ranges
HTTP_STATUS_OK_MIN = 200
HTTP_STATUS_OK_MAX = 300
HTTP_STATUS_BAD_REQUEST = 400

# Identity sent to publishers and matched against robots.txt groups
DEFAULT_USER_AGENT = "NewsCurator/1.0 (+https://github.com/news-curator/news-curator)"
DEFAULT_ROBOTS_AGENT_TOKEN = "newscurator"

# Response size limit
DEFAULT_MAX_RESPONSE_SIZE_BYTES = 5 * 1024 * 1024  # 5 MB

# Chunk size for streaming reads
DEFAULT_CHUNK_SIZE = 8192

# Characters kept when no content container is found
FALLBACK_TEXT_CHARS = 1000

# Content types treated as HTML
HTML_CONTENT_TYPES: frozenset[str] = frozenset(
    {"text/html", "application/xhtml+xml", "application/xml", "text/xml"}
)

# How often the worker pool checks running fetches against their deadlines
POOL_POLL_INTERVAL_SECONDS = 0.25
