from __future__ import annotations

from typing import Iterable, Optional


DEFAULT_DEV_ORIGINS: frozenset[str] = frozenset(
    {
        "http://localhost:8080",
        "http://localhost:3000",
        "https://localhost:8080",
        "https://localhost:3000",
    }
)

# Substrings that mark a loopback origin regardless of scheme/port.
_LOOPBACK_MARKERS = ("localhost", "127.0.0.1")

ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type, x-user-token"
ALLOW_METHODS = "GET, POST, PUT, PATCH, DELETE, OPTIONS"
MAX_AGE_SECONDS = 86400


def is_dev_origin(origin: Optional[str], dev_origins: Iterable[str] = DEFAULT_DEV_ORIGINS) -> bool:
    if not origin:
        return False
    if origin in frozenset(dev_origins):
        return True
    return any(marker in origin for marker in _LOOPBACK_MARKERS)


def cors_headers(origin: Optional[str], dev_origins: Iterable[str] = DEFAULT_DEV_ORIGINS) -> dict[str, str]:
    """CORS headers for a request origin.

    Development origins are echoed back so that credentialed requests from local
    tooling work; every other origin (including a missing one) gets ``*``.
    """
    headers = {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Headers": ALLOW_HEADERS,
        "Access-Control-Allow-Methods": ALLOW_METHODS,
        "Access-Control-Max-Age": str(MAX_AGE_SECONDS),
    }
    if is_dev_origin(origin, dev_origins):
        headers["Access-Control-Allow-Origin"] = origin  # type: ignore[assignment]
        headers["Vary"] = "Origin"
    return headers
