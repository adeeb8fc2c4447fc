"""random.org - atmospheric noise RNG over JSON-RPC."""

from typing import Any

import httpx

from quorum.lib.exceptions import SourceNotConfiguredError, SourceResponseParseError
from quorum.sources.base import HttpEntropySource, SourceConfig


class RandomOrgSource(HttpEntropySource):
    """
    random.org ``generateIntegers`` (JSON-RPC 2.0, API v4).

    Needs an API key; without one the source is disabled and every fetch is
    absent without touching the network.
    """

    def __init__(self, client: httpx.AsyncClient, api_key: str = "", timeout: float = 8.0):
        super().__init__(
            SourceConfig(
                name="random.org",
                codename="random_org",
                url="https://api.random.org/json-rpc/4/invoke",
                method="POST",
                field_path=("result", "random", "data", 0),
                timeout=timeout,
                description="Integer in 0-9 from random.org",
            ),
            client,
        )
        self.api_key = api_key
        self._request_id = 0

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def build_payload(self) -> dict[str, Any]:
        self._request_id += 1
        return {
            "jsonrpc": "2.0",
            "method": "generateIntegers",
            "params": {
                "apiKey": self.api_key,
                "n": 1,
                "min": 0,
                "max": 9,
                "replacement": True,
            },
            "id": self._request_id,
        }

    async def _request(self) -> int:
        if not self.enabled:
            raise SourceNotConfiguredError(
                "random.org API key not configured", source=self.codename
            )
        return await super()._request()

    def check_body(self, body: Any, raw: str) -> None:
        # JSON-RPC errors come back with HTTP 200
        if isinstance(body, dict) and body.get("error"):
            error = body["error"]
            message = error.get("message", "unknown error") if isinstance(error, dict) else error
            raise SourceResponseParseError(
                f"random.org error: {message}", raw_response=raw, source=self.codename
            )
