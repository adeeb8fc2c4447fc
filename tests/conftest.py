"""Shared fixtures and fakes for Quorum tests."""

import asyncio
import random
from datetime import datetime, timezone

import pytest

from quorum.config import Settings, reset_settings
from quorum.lib.persistence import RoundStore
from quorum.lib.streaming import RoundEventBus, reset_event_bus
from quorum.sources.base import EntropySource, SourceConfig


class FakeSource(EntropySource):
    """
    In-memory source.

    Returns ``value``, raises ``error``, or waits ``delay`` seconds (or for
    ``gate`` to be set) before answering. Counts calls.
    """

    def __init__(
        self,
        codename: str,
        value: int | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
        gate: asyncio.Event | None = None,
        timeout: float = 5.0,
    ):
        super().__init__(
            SourceConfig(
                name=codename.upper(),
                codename=codename,
                url=f"memory://{codename}",
                field_path=(),
                timeout=timeout,
            )
        )
        self.value = value
        self.error = error
        self.delay = delay
        self.gate = gate
        self.calls = 0

    async def _request(self) -> int:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


def at(second: int, minute: int = 0) -> datetime:
    """A UTC instant at the given second of 2024-01-01 12:<minute>."""
    return datetime(2024, 1, 1, 12, minute, second, 250000, tzinfo=timezone.utc)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        prepare_offset=25,
        finalize_offset=30,
        tick_interval=0.5,
        fetch_deadline=1.0,
        random_org_api_key="",
        state_file=None,
        history_size=5,
    )


@pytest.fixture
def store(settings) -> RoundStore:
    return RoundStore(settings)


@pytest.fixture
def event_bus() -> RoundEventBus:
    return RoundEventBus()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture(autouse=True)
def fresh_singletons():
    """Drop module-level settings and event bus after each test."""
    yield
    reset_settings()
    reset_event_bus()
