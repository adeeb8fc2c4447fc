"""Fan-out to entropy sources and snapshot freezing."""

import asyncio
import logging
from datetime import datetime

from quorum.config import Settings, get_settings
from quorum.lib.exceptions import AggregationError
from quorum.lib.models import Snapshot, SourceReading
from quorum.lib.persistence import RoundStore
from quorum.lib.streaming import RoundEventBus
from quorum.lib.utils import round_key
from quorum.sources.base import EntropySource

logger = logging.getLogger(__name__)


class Aggregator:
    """
    Prepares rounds by polling every source once.

    Sources run concurrently and settle independently: a slow or failing
    source never delays the others past its own deadline and never cancels
    them.
    """

    def __init__(
        self,
        sources: list[EntropySource],
        store: RoundStore,
        settings: Settings | None = None,
        event_bus: RoundEventBus | None = None,
    ):
        """
        Initialize aggregator.

        Args:
            sources: Sources polled each round, in snapshot order
            store: Owner of the round state
            settings: Settings providing the prepare window
            event_bus: Optional bus receiving round_prepared events
        """
        self.sources = sources
        self.store = store
        self.settings = settings or get_settings()
        self.event_bus = event_bus

    @property
    def source_names(self) -> list[str]:
        return [source.codename for source in self.sources]

    async def prepare(self, now: datetime) -> Snapshot | None:
        """
        Freeze a snapshot for the round containing ``now``.

        At most one prepare runs per round key; later calls in the same
        round return None without touching any source.

        Returns:
            The installed snapshot, or None if the round was already prepared
        """
        key = round_key(now)
        if self.store.last_prepared_key == key:
            return None

        async with self.store.write_lock:
            if self.store.last_prepared_key == key:
                return None

            try:
                readings = await self.collect(key)
                snapshot = Snapshot(round_key=key, readings=readings)
            except Exception:
                logger.exception(f"Aggregation failed for {key}, recording all sources absent")
                snapshot = Snapshot.all_absent(key, self.source_names)

            self.store.install_snapshot(snapshot)

        logger.info(f"Prepared snapshot for {key}: {dict(snapshot.readings)}")
        if self.event_bus:
            self.event_bus.round_prepared(snapshot)
        return snapshot

    async def collect(self, key: str = "") -> dict[str, SourceReading]:
        """Poll every source concurrently and wait for all of them to settle."""
        if not self.sources:
            raise AggregationError("No entropy sources configured", round_key=key)

        tasks = []
        try:
            for source in self.sources:
                tasks.append(source.fetch(self.settings.effective_deadline(source.timeout)))
        except Exception as e:
            for task in tasks:
                task.close()
            raise AggregationError(f"Could not start source calls: {e}", round_key=key) from e

        results = await asyncio.gather(*tasks, return_exceptions=True)

        readings: dict[str, SourceReading] = {}
        for source, result in zip(self.sources, results):
            if isinstance(result, BaseException):
                logger.error(f"Source {source.codename} escaped its own error handling: {result!r}")
                readings[source.codename] = None
            else:
                readings[source.codename] = result
        return readings
