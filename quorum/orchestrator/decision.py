"""Voting rule that turns a round's digits into its published outcome."""

import logging
import random
from collections import Counter

from quorum.lib.exceptions import StatePersistenceError
from quorum.lib.models import (
    Decision,
    DecisionRule,
    FinalizedRound,
    Label,
    Snapshot,
    label_for,
)
from quorum.lib.persistence import RoundStore
from quorum.lib.streaming import RoundEventBus

logger = logging.getLogger(__name__)


class DecisionEngine:
    """
    Decides round outcomes and publishes them to the RoundStore.

    Rules, first match wins:
    1. No valid digits: uniformly random digit (fallback)
    2. Exactly three digits, all BIG or all SMALL: that label (unanimous)
    3. More BIG than SMALL votes or vice versa: that label (majority)
    4. Otherwise the most frequent digit (frequency), with ties between
       equally frequent digits broken uniformly at random (tiebreak)
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        event_bus: RoundEventBus | None = None,
    ):
        """
        Initialize decision engine.

        Args:
            rng: Random source for the fallback digit and tie-breaks.
                Pass a seeded ``random.Random`` for reproducible decisions.
            event_bus: Optional bus receiving round_finalized events
        """
        self.rng = rng or random.SystemRandom()
        self.event_bus = event_bus

    def decide(self, digits: list[int]) -> Decision:
        """Apply the voting rule to a list of valid digits."""
        if not digits:
            return Decision(outcome=self.rng.randrange(10), rule=DecisionRule.FALLBACK)

        big = sum(1 for d in digits if label_for(d) is Label.BIG)
        small = len(digits) - big

        if len(digits) == 3 and (big == 3 or small == 3):
            outcome = Label.BIG if big == 3 else Label.SMALL
            return Decision(outcome=outcome, rule=DecisionRule.UNANIMOUS, digits=digits)

        if big != small:
            outcome = Label.BIG if big > small else Label.SMALL
            return Decision(outcome=outcome, rule=DecisionRule.MAJORITY, digits=digits)

        counts = Counter(digits)
        top = max(counts.values())
        candidates = sorted(d for d, n in counts.items() if n == top)
        if len(candidates) == 1:
            return Decision(outcome=candidates[0], rule=DecisionRule.FREQUENCY, digits=digits)

        return Decision(
            outcome=self.rng.choice(candidates),
            rule=DecisionRule.TIEBREAK,
            digits=digits,
        )

    async def finalize(self, store: RoundStore) -> FinalizedRound | None:
        """
        Consume the pending snapshot and publish its outcome.

        No-op when no snapshot is pending, so repeated calls within the
        finalize window are harmless.

        Returns:
            The finalized round, or None if there was nothing to finalize
        """
        async with store.write_lock:
            snapshot = store.snapshot
            if snapshot is None:
                return None

            finalized = self._finalize_snapshot(snapshot)
            store.publish_outcome(finalized)

        if self.event_bus:
            self.event_bus.round_finalized(finalized)

        try:
            await store.save()
        except StatePersistenceError:
            logger.warning(f"Round {finalized.round_key} finalized but not persisted")

        return finalized

    def _finalize_snapshot(self, snapshot: Snapshot) -> FinalizedRound:
        digits = snapshot.valid_digits
        decision = self.decide(digits)

        if decision.rule == DecisionRule.FALLBACK:
            logger.warning(
                f"All sources failed for {snapshot.round_key}, "
                f"fallback digit {decision.outcome}"
            )
        else:
            logger.info(
                f"Finalized {snapshot.round_key}: digits={digits} -> "
                f"{_display(decision.outcome)} ({decision.rule.value})"
            )

        return FinalizedRound(
            round_key=snapshot.round_key,
            outcome=decision.outcome,
            rule=decision.rule,
            digits=decision.digits,
            readings=dict(snapshot.readings),
        )


def _display(outcome: Label | int) -> str:
    return outcome.value if isinstance(outcome, Label) else str(outcome)
