"""Orchestrator package - schedules, aggregates and decides rounds."""

import random

import httpx

from quorum.config import Settings, get_settings
from quorum.lib.persistence import RoundStore
from quorum.lib.streaming import RoundEventBus
from quorum.orchestrator.aggregator import Aggregator
from quorum.orchestrator.clock import RoundClock
from quorum.orchestrator.decision import DecisionEngine
from quorum.sources import create_sources

__all__ = [
    # Aggregation
    "Aggregator",
    # Scheduling
    "RoundClock",
    # Decision
    "DecisionEngine",
    # Factory
    "create_round_clock",
]


def create_round_clock(
    store: RoundStore,
    client: httpx.AsyncClient,
    settings: Settings | None = None,
    event_bus: RoundEventBus | None = None,
    rng: random.Random | None = None,
) -> RoundClock:
    """
    Wire sources, aggregator and decision engine into a RoundClock.

    Args:
        store: Owner of the round state
        client: Shared HTTP client for sources
        settings: Application settings
        event_bus: Optional bus for round events
        rng: Optional random source for the decision engine

    Returns:
        Configured RoundClock (not started)
    """
    settings = settings or get_settings()
    sources = create_sources(client, settings)
    aggregator = Aggregator(sources, store, settings=settings, event_bus=event_bus)
    decision_engine = DecisionEngine(rng=rng, event_bus=event_bus)
    return RoundClock(aggregator, decision_engine, store, settings=settings)
