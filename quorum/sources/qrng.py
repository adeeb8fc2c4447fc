"""ANU QRNG - quantum vacuum fluctuation RNG."""

import httpx

from quorum.sources.base import HttpEntropySource, SourceConfig


class AnuQrngSource(HttpEntropySource):
    """
    ANU quantum random numbers, one uint8 reduced modulo 10.

    Responds with ``{"type": "uint8", "length": 1, "data": [183], "success": true}``.
    The service answers with an HTML page when rate limited; that surfaces as
    a parse failure.
    """

    def __init__(self, client: httpx.AsyncClient, timeout: float = 5.0):
        super().__init__(
            SourceConfig(
                name="ANU QRNG",
                codename="qrng",
                url="https://qrng.anu.edu.au/API/jsonI.php?length=1&type=uint8",
                field_path=("data", 0),
                timeout=timeout,
                modulo=10,
                description="uint8 from qrng.anu.edu.au, modulo 10",
            ),
            client,
        )
