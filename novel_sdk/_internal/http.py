"""Shared HTTP client configuration."""

import httpx

from novel_sdk._version import __version__

DEFAULT_TIMEOUT = 30.0
DEFAULT_BASE_URL = "http://localhost:8080"
USER_AGENT = f"novel-sdk/{__version__}"


def base_headers() -> dict[str, str]:
    """Headers sent with every request unless overridden per call."""
    return {
        "Content-Type": "application/json",
        "User-Agent": USER_AGENT,
    }


def create_http_client(
    *,
    timeout: float | httpx.Timeout = DEFAULT_TIMEOUT,
) -> httpx.AsyncClient:
    """Create configured async HTTP client.

    Args:
        timeout: Request timeout in seconds, or an httpx.Timeout.

    Returns:
        Configured httpx.AsyncClient instance.
    """
    return httpx.AsyncClient(
        timeout=timeout,
        headers={"User-Agent": USER_AGENT},
    )
