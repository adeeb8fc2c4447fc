"""CSRNG - public cryptographically secure RNG service."""

import httpx

from quorum.sources.base import HttpEntropySource, SourceConfig


class CsrngSource(HttpEntropySource):
    """
    csrng.net integer endpoint.

    Responds with ``[{"status": "success", "min": 0, "max": 9, "random": 7}]``.
    """

    def __init__(self, client: httpx.AsyncClient, timeout: float = 5.0):
        super().__init__(
            SourceConfig(
                name="CSRNG",
                codename="csrng",
                url="https://csrng.net/csrng/csrng.php?min=0&max=9",
                field_path=(0, "random"),
                timeout=timeout,
                description="Integer in 0-9 from csrng.net",
            ),
            client,
        )
