"""Entropy sources."""

import httpx

from quorum.config import Settings, get_settings
from quorum.sources.base import EntropySource, HttpEntropySource, SourceConfig
from quorum.sources.csrng import CsrngSource
from quorum.sources.qrng import AnuQrngSource
from quorum.sources.random_org import RandomOrgSource

__all__ = [
    "AnuQrngSource",
    "CsrngSource",
    "EntropySource",
    "HttpEntropySource",
    "RandomOrgSource",
    "SourceConfig",
    "create_sources",
]


def create_sources(
    client: httpx.AsyncClient,
    settings: Settings | None = None,
) -> list[EntropySource]:
    """
    Build every configured source, in snapshot order.

    Args:
        client: Shared HTTP client
        settings: Settings providing timeouts and credentials

    Returns:
        List of sources
    """
    settings = settings or get_settings()
    return [
        CsrngSource(client, timeout=settings.csrng_timeout),
        AnuQrngSource(client, timeout=settings.qrng_timeout),
        RandomOrgSource(
            client,
            api_key=settings.random_org_api_key if settings.has_random_org_key else "",
            timeout=settings.random_org_timeout,
        ),
    ]
