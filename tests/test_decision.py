"""
DecisionEngine tests - voting rule and finalize semantics.

Run with: python -m pytest tests/test_decision.py
"""

import random
from collections import Counter

import pytest

from quorum.config import Settings
from quorum.lib.models import DecisionRule, Label, Snapshot
from quorum.lib.persistence import RoundStore
from quorum.orchestrator.decision import DecisionEngine


# =============================================================================
# Voting Rule
# =============================================================================


@pytest.mark.parametrize(
    "digits, outcome, rule",
    [
        ([7, 8, 9], Label.BIG, DecisionRule.UNANIMOUS),
        ([0, 1, 2], Label.SMALL, DecisionRule.UNANIMOUS),
        ([5, 5, 1], Label.BIG, DecisionRule.MAJORITY),
        ([4, 4, 9], Label.SMALL, DecisionRule.MAJORITY),
        ([5, 6, 7, 8], Label.BIG, DecisionRule.MAJORITY),
        ([3], Label.SMALL, DecisionRule.MAJORITY),
        ([3, 3, 7, 8], 3, DecisionRule.FREQUENCY),
        ([9, 9, 0, 1], 9, DecisionRule.FREQUENCY),
    ],
)
def test_decide_deterministic_rules(digits, outcome, rule, rng):
    decision = DecisionEngine(rng=rng).decide(digits)

    assert decision.outcome == outcome
    assert decision.rule == rule
    assert decision.digits == digits


def test_tied_votes_and_tied_frequency_pick_a_candidate():
    engine = DecisionEngine(rng=random.Random(7))

    seen = set()
    for _ in range(200):
        decision = engine.decide([5, 1])
        assert decision.rule == DecisionRule.TIEBREAK
        assert decision.outcome in {5, 1}
        seen.add(decision.outcome)

    assert seen == {5, 1}, "tie-break should reach every candidate"


def test_tiebreak_is_reproducible_with_seeded_rng():
    first = [DecisionEngine(rng=random.Random(42)).decide([2, 8]).outcome for _ in range(5)]
    second = [DecisionEngine(rng=random.Random(42)).decide([2, 8]).outcome for _ in range(5)]

    assert first == second


def test_no_digits_falls_back_to_uniform_random_digit():
    engine = DecisionEngine(rng=random.Random(2024))
    trials = 20000

    counts = Counter()
    for _ in range(trials):
        decision = engine.decide([])
        assert decision.rule == DecisionRule.FALLBACK
        assert decision.digits == []
        counts[decision.outcome] += 1

    assert set(counts) == set(range(10))
    expected = trials / 10
    chi_square = sum((counts[d] - expected) ** 2 / expected for d in range(10))
    # 9 degrees of freedom, p = 0.001
    assert chi_square < 27.88, f"fallback digits look non-uniform: {dict(counts)}"


# =============================================================================
# Finalize
# =============================================================================


async def test_finalize_without_snapshot_is_noop(store, rng):
    engine = DecisionEngine(rng=rng)

    assert await engine.finalize(store) is None
    assert store.read().final is None
    assert store.history() == []


async def test_finalize_publishes_and_clears_snapshot(store, rng):
    engine = DecisionEngine(rng=rng)
    store.install_snapshot(
        Snapshot(round_key="2024-01-01 12:00", readings={"a": 7, "b": 8, "c": 9})
    )

    finalized = await engine.finalize(store)

    assert finalized is not None
    assert finalized.outcome == Label.BIG
    assert finalized.rule == DecisionRule.UNANIMOUS
    result = store.read()
    assert result.final == Label.BIG
    assert result.previous is None
    assert result.sources is None
    assert store.last_prepared_key == "2024-01-01 12:00", "finalize must not reset the round key"


async def test_second_finalize_is_noop(store, rng):
    engine = DecisionEngine(rng=rng)
    store.install_snapshot(Snapshot(round_key="k1", readings={"a": 0, "b": 1, "c": 2}))

    await engine.finalize(store)
    state_after_first = store.state.model_copy()
    again = await engine.finalize(store)

    assert again is None
    assert store.state == state_after_first
    assert len(store.history()) == 1


async def test_previous_outcome_tracks_prior_round(store, rng):
    engine = DecisionEngine(rng=rng)

    store.install_snapshot(Snapshot(round_key="k1", readings={"a": 7, "b": 8, "c": 9}))
    await engine.finalize(store)
    store.install_snapshot(Snapshot(round_key="k2", readings={"a": 0, "b": 1, "c": 2}))
    await engine.finalize(store)

    result = store.read()
    assert result.previous == Label.BIG
    assert result.final == Label.SMALL
    assert [r.round_key for r in store.history()] == ["k2", "k1"]


async def test_absent_readings_are_dropped_before_voting(store, rng):
    engine = DecisionEngine(rng=rng)
    store.install_snapshot(Snapshot(round_key="k1", readings={"a": 5, "b": None, "c": 1}))

    finalized = await engine.finalize(store)

    assert finalized.digits == [5, 1]
    assert finalized.rule == DecisionRule.TIEBREAK
    assert finalized.outcome in {5, 1}
    assert finalized.readings == {"a": 5, "b": None, "c": 1}


async def test_all_absent_snapshot_uses_fallback(store, rng):
    engine = DecisionEngine(rng=rng)
    store.install_snapshot(Snapshot.all_absent("k1", ["a", "b", "c"]))

    finalized = await engine.finalize(store)

    assert finalized.rule == DecisionRule.FALLBACK
    assert finalized.outcome in range(10)
    assert store.read().final == finalized.outcome


async def test_finalize_emits_event(store, rng, event_bus):
    engine = DecisionEngine(rng=rng, event_bus=event_bus)
    queue = event_bus.subscribe()
    store.install_snapshot(Snapshot(round_key="k1", readings={"a": 7, "b": 8, "c": 9}))

    await engine.finalize(store)

    event = queue.get_nowait()
    assert event.event_type == "round_finalized"
    assert event.data["outcome"] == "BIG"
    assert event.data["round_key"] == "k1"


async def test_unwritable_state_file_does_not_block_round(tmp_path, rng, caplog):
    state_dir = tmp_path / "rounds"
    state_dir.mkdir()
    store = RoundStore(Settings(_env_file=None, state_file=state_dir))
    engine = DecisionEngine(rng=rng)
    store.install_snapshot(Snapshot(round_key="k1", readings={"a": 7, "b": 8, "c": 9}))

    finalized = await engine.finalize(store)

    assert finalized.outcome == Label.BIG
    assert store.read().final == Label.BIG
    assert store.snapshot is None
    assert "finalized but not persisted" in caplog.text
