"""Wall-clock round scheduler.

Wakes up every ``tick_interval`` seconds and fires prepare or finalize when
the second-within-minute matches the configured trigger offsets. Both actions
are idempotent, so several wake-ups inside the same trigger second are
harmless. The tick period must be shorter than one second and than the gap
between the two offsets (enforced by Settings) so no trigger second is missed.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Literal

from quorum.config import Settings, get_settings
from quorum.lib.exceptions import SchedulerError
from quorum.lib.models import utc_now
from quorum.lib.persistence import RoundStore
from quorum.lib.utils import round_key, round_offset
from quorum.orchestrator.aggregator import Aggregator
from quorum.orchestrator.decision import DecisionEngine

logger = logging.getLogger(__name__)

Action = Literal["prepare", "finalize"]


class RoundClock:
    """
    Drives prepare and finalize from a repeating tick.

    The loop awaits each action before sleeping again, so prepare and
    finalize never overlap. Exceptions raised by an action are logged and
    the loop keeps ticking.
    """

    def __init__(
        self,
        aggregator: Aggregator,
        decision_engine: DecisionEngine,
        store: RoundStore,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize round clock.

        Args:
            aggregator: Performs prepare
            decision_engine: Performs finalize
            store: Owner of the round state
            settings: Trigger offsets and tick interval
            clock: Current time provider (UTC)
        """
        self.aggregator = aggregator
        self.decision_engine = decision_engine
        self.store = store
        self.settings = settings or get_settings()
        self.clock = clock
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def due_action(self, now: datetime) -> Action | None:
        """Which action the trigger offsets call for at ``now``."""
        offset = round_offset(now)
        if offset == self.settings.prepare_offset:
            return "prepare"
        if offset == self.settings.finalize_offset:
            return "finalize"
        return None

    async def tick(self, now: datetime | None = None) -> Action | None:
        """
        Run whichever action is due. Never raises.

        Returns:
            The action attempted, or None if nothing was due
        """
        now = now or self.clock()
        action = self.due_action(now)
        if action is None:
            return None

        try:
            if action == "prepare":
                await self.aggregator.prepare(now)
            else:
                await self.decision_engine.finalize(self.store)
        except Exception:
            logger.exception(f"Scheduler {action} failed at {round_key(now)}")
        return action

    async def run(self) -> None:
        """Tick until stopped."""
        logger.info(
            f"Round clock started: prepare at :{self.settings.prepare_offset:02d}, "
            f"finalize at :{self.settings.finalize_offset:02d}, "
            f"tick {self.settings.tick_interval}s"
        )
        while not self._stopping.is_set():
            try:
                await self.tick()
            except Exception:
                logger.exception("Scheduler loop error")
            try:
                await asyncio.wait_for(
                    self._stopping.wait(), timeout=self.settings.tick_interval
                )
            except asyncio.TimeoutError:
                pass
        logger.info("Round clock stopped")

    def start(self) -> asyncio.Task[None]:
        """Start the loop as a background task."""
        if self.running:
            raise SchedulerError("Round clock already running")
        self._stopping.clear()
        self._task = asyncio.create_task(self.run(), name="round-clock")
        return self._task

    async def stop(self) -> None:
        """Stop the loop, cancelling any in-flight action."""
        if self._task is None:
            return
        self._stopping.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
