"""Abstract base class for entropy sources.

Defines the contract that all sources must implement: yield one digit 0-9
within a deadline, or report an absent reading. ``fetch`` never raises.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Literal

import httpx

from quorum.lib.exceptions import (
    SourceConnectionError,
    SourceError,
    SourceNotConfiguredError,
    SourceResponseParseError,
    SourceTimeoutError,
)
from quorum.lib.models import SourceReading, is_digit
from quorum.lib.utils import coerce_int, safe_get

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass
class SourceConfig:
    """Configuration for an entropy source."""

    name: str  # Display name (e.g., "ANU QRNG")
    codename: str  # Short identifier used as the snapshot key (e.g., "qrng")
    url: str  # Endpoint
    field_path: tuple[str | int, ...]  # Where the number lives in the JSON body
    timeout: float = 5.0  # Per-call timeout in seconds
    method: Literal["GET", "POST"] = "GET"
    modulo: int | None = None  # Reduce wider integers into 0-9
    description: str = ""


# =============================================================================
# Base Source
# =============================================================================


class EntropySource(ABC):
    """
    Base class for all entropy sources.

    Subclasses implement ``_request``, which may raise; ``fetch`` turns every
    failure into an absent reading.
    """

    def __init__(self, config: SourceConfig):
        self.config = config

    @property
    def codename(self) -> str:
        return self.config.codename

    @property
    def timeout(self) -> float:
        return self.config.timeout

    @property
    def enabled(self) -> bool:
        """Whether the source can be called at all."""
        return True

    async def fetch(self, deadline: float | None = None) -> SourceReading:
        """
        Fetch one digit.

        Args:
            deadline: Seconds to wait before abandoning the call.
                Defaults to the configured timeout.

        Returns:
            A digit 0-9, or None on any failure.
        """
        try:
            return await self.fetch_strict(deadline)
        except SourceNotConfiguredError as e:
            logger.debug(f"Source {self.codename} skipped: {e.message}")
        except SourceResponseParseError as e:
            raw = (e.raw_response or "")[:200]
            logger.warning(f"Source {self.codename} failed: {e.message} (raw: {raw!r})")
        except SourceError as e:
            logger.warning(f"Source {self.codename} failed: {e.message}")
        except Exception as e:
            logger.warning(f"Source {self.codename} failed unexpectedly: {e!r}")
        return None

    async def fetch_strict(self, deadline: float | None = None) -> int:
        """
        Fetch one digit, raising on failure.

        Raises:
            SourceTimeoutError: No answer within the deadline
            SourceResponseParseError: The answer is not a digit 0-9
            SourceError: Any other source-level failure
        """
        deadline = self.timeout if deadline is None else deadline
        try:
            digit = await asyncio.wait_for(self._request(), timeout=deadline)
        except asyncio.TimeoutError:
            raise SourceTimeoutError(
                f"No answer within {deadline}s", deadline=deadline, source=self.codename
            )

        if not is_digit(digit):
            raise SourceResponseParseError(
                f"Out-of-range value {digit!r}", raw_response=repr(digit), source=self.codename
            )
        return digit

    @abstractmethod
    async def _request(self) -> int:
        """Perform the backend call and return a digit. May raise."""
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.codename}>"


# =============================================================================
# HTTP Source
# =============================================================================


class HttpEntropySource(EntropySource):
    """
    Source backed by a JSON HTTP endpoint.

    The digit is read from ``config.field_path`` and optionally reduced with
    ``config.modulo``.
    """

    def __init__(self, config: SourceConfig, client: httpx.AsyncClient):
        super().__init__(config)
        self.client = client

    def build_payload(self) -> dict[str, Any] | None:
        """JSON body for POST sources."""
        return None

    async def _request(self) -> int:
        try:
            response = await self.client.request(
                self.config.method,
                self.config.url,
                json=self.build_payload(),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise SourceConnectionError(
                f"HTTP {e.response.status_code} from {self.config.name}",
                source=self.codename,
            )
        except httpx.RequestError as e:
            raise SourceConnectionError(
                f"{self.config.name} connection error: {e!r}", source=self.codename
            )

        text = response.text
        try:
            body = json.loads(text)
        except json.JSONDecodeError as e:
            raise SourceResponseParseError(
                f"Invalid JSON from {self.config.name}: {e}",
                raw_response=text,
                source=self.codename,
            )

        return self.extract_digit(body, text)

    def extract_digit(self, body: Any, raw: str = "") -> int:
        """Pull the digit out of a decoded response body."""
        self.check_body(body, raw)

        value = coerce_int(safe_get(body, *self.config.field_path))
        if value is None:
            raise SourceResponseParseError(
                f"No integer at {list(self.config.field_path)} in {self.config.name} response",
                raw_response=raw,
                source=self.codename,
            )
        if self.config.modulo:
            value %= self.config.modulo
        return value

    def check_body(self, body: Any, raw: str) -> None:
        """Hook for provider-level error payloads."""
        pass
