"""Shared outbound HTTP client for entropy sources."""

import logging

import httpx

from quorum.config import VERSION

logger = logging.getLogger(__name__)

USER_AGENT = f"quorum/{VERSION}"


def create_http_client(transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    """
    Build the client used by every source.

    Per-call deadlines are enforced by the sources themselves; the client
    timeout only bounds connection setup.
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(30.0, connect=5.0),
        headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        transport=transport,
    )


# =============================================================================
# Module-level client factory
# =============================================================================


_default_client: httpx.AsyncClient | None = None


async def get_http_client() -> httpx.AsyncClient:
    """Get the default HTTP client instance."""
    global _default_client
    if _default_client is None:
        _default_client = create_http_client()
        logger.debug("HTTP client created")
    return _default_client


async def close_http_client() -> None:
    """Close the default HTTP client."""
    global _default_client
    if _default_client:
        await _default_client.aclose()
        _default_client = None
