"""Round state ownership and optional file persistence.

The store holds the single RoundState. Writers are the scheduled prepare and
finalize actions; readers get a point-in-time RoundResult without locking.
"""

import asyncio
import logging
from collections import deque
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from quorum.config import Settings, get_settings
from quorum.lib.exceptions import StatePersistenceError
from quorum.lib.models import (
    FinalizedRound,
    PersistedState,
    RoundResult,
    RoundState,
    Snapshot,
)

logger = logging.getLogger(__name__)


class RoundStore:
    """
    Owner of the shared round state.

    Features:
    - Lock-free reads of an immutable snapshot reference
    - Single-step writes (no await inside a mutation)
    - Bounded history of finalized rounds
    - Optional JSON state file for outcomes and history
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.state = RoundState()
        self.write_lock = asyncio.Lock()
        self._history: deque[FinalizedRound] = deque(maxlen=self.settings.history_size)

    # =========================================================================
    # Reads
    # =========================================================================

    def read(self) -> RoundResult:
        """Current state for clients. Never mutates, never blocks."""
        state = self.state
        snapshot = state.snapshot
        return RoundResult(
            previous=state.previous_outcome,
            final=state.final_outcome,
            sources=dict(snapshot.readings) if snapshot else None,
            round_key=snapshot.round_key if snapshot else None,
        )

    @property
    def snapshot(self) -> Snapshot | None:
        return self.state.snapshot

    @property
    def last_prepared_key(self) -> str | None:
        return self.state.last_prepared_key

    def history(self, limit: int | None = None) -> list[FinalizedRound]:
        """Finalized rounds, newest first."""
        rounds = list(reversed(self._history))
        return rounds[:limit] if limit is not None else rounds

    # =========================================================================
    # Writes
    # =========================================================================

    def install_snapshot(self, snapshot: Snapshot) -> None:
        """Freeze a snapshot and mark its round prepared."""
        self.state.snapshot = snapshot
        self.state.last_prepared_key = snapshot.round_key

    def publish_outcome(self, finalized: FinalizedRound) -> None:
        """Rotate final into previous, set the new final, consume the snapshot."""
        state = self.state
        state.previous_outcome, state.final_outcome, state.snapshot = (
            state.final_outcome,
            finalized.outcome,
            None,
        )
        self._history.append(finalized)

    def restore(self, persisted: PersistedState) -> None:
        """Load outcomes and history saved by a previous process."""
        self.state.final_outcome = persisted.final_outcome
        self.state.previous_outcome = persisted.previous_outcome
        self._history.clear()
        # Stored newest first
        for finalized in reversed(persisted.history):
            self._history.append(finalized)

    # =========================================================================
    # Persistence
    # =========================================================================

    @property
    def path(self) -> Path | None:
        return self.settings.state_file

    def to_persisted(self) -> PersistedState:
        return PersistedState(
            final_outcome=self.state.final_outcome,
            previous_outcome=self.state.previous_outcome,
            history=self.history(),
        )

    async def load(self) -> bool:
        """
        Restore state from the state file.

        Returns:
            True if state was restored
        """
        path = self.path
        if path is None or not path.exists():
            return False

        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                content = await f.read()
            persisted = PersistedState.model_validate_json(content)
        except Exception as e:
            logger.error(f"Failed to read round state from {path}: {e}")
            return False

        self.restore(persisted)
        logger.info(
            f"Restored round state from {path}: final={persisted.final_outcome!r}, "
            f"{len(persisted.history)} rounds of history"
        )
        return True

    async def save(self) -> None:
        """Write outcomes and history to the state file, if configured."""
        path = self.path
        if path is None:
            return

        content = self.to_persisted().model_dump_json(indent=2)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(content)
            await aiofiles.os.replace(tmp_path, path)
            logger.debug(f"Round state written to {path}")
        except Exception as e:
            logger.error(f"Failed to write round state to {path}: {e}")
            raise StatePersistenceError(f"Failed to persist round state: {e}")

    async def shutdown(self) -> None:
        """Flush state on shutdown."""
        try:
            await self.save()
        except StatePersistenceError:
            logger.warning("Round state not flushed on shutdown")
        logger.info("Round store shut down")

    def get_stats(self) -> dict[str, Any]:
        """Get store statistics."""
        return {
            "last_prepared_key": self.state.last_prepared_key,
            "snapshot_pending": self.state.snapshot is not None,
            "history_size": len(self._history),
            "state_file": str(self.path) if self.path else None,
        }


# =============================================================================
# Module-level store instance
# =============================================================================


_default_store: RoundStore | None = None


async def get_round_store() -> RoundStore:
    """Get the default round store instance."""
    global _default_store
    if _default_store is None:
        _default_store = RoundStore()
        await _default_store.load()
    return _default_store


async def close_round_store() -> None:
    """Close the default round store."""
    global _default_store
    if _default_store:
        await _default_store.shutdown()
        _default_store = None
