"""Pydantic models for Quorum."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field

from quorum.config import VERSION

# =============================================================================
# Readings and Outcomes
# =============================================================================

DIGITS = range(10)

# A digit 0-9, or None when the source failed or timed out
SourceReading = Union[int, None]


class Label(str, Enum):
    """Coarse outcome label."""

    BIG = "BIG"  # 5-9
    SMALL = "SMALL"  # 0-4


Outcome = Union[Label, int]


class DecisionRule(str, Enum):
    """Voting step that produced an outcome."""

    UNANIMOUS = "unanimous"
    MAJORITY = "majority"
    FREQUENCY = "frequency"
    TIEBREAK = "tiebreak"
    FALLBACK = "fallback"


def utc_now() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def is_digit(value: Any) -> bool:
    """True for an int in 0..9 (bools excluded)."""
    return isinstance(value, int) and not isinstance(value, bool) and value in DIGITS


def label_for(digit: int) -> Label:
    """Map a digit to its BIG/SMALL label."""
    return Label.BIG if digit >= 5 else Label.SMALL


# =============================================================================
# Round Models
# =============================================================================


class Snapshot(BaseModel):
    """Frozen per-source readings for one round."""

    model_config = ConfigDict(frozen=True)

    round_key: str = Field(description="Minute bucket that produced this snapshot")
    readings: dict[str, SourceReading] = Field(
        default_factory=dict, description="Source codename to digit (None when absent)"
    )
    taken_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def all_absent(cls, round_key: str, sources: list[str]) -> "Snapshot":
        """Snapshot recording every source as failed."""
        return cls(round_key=round_key, readings={name: None for name in sources})

    @property
    def valid_digits(self) -> list[int]:
        """Digits from sources that answered, in source order."""
        return [v for v in self.readings.values() if is_digit(v)]


class Decision(BaseModel):
    """Outcome of the voting algorithm."""

    model_config = ConfigDict(frozen=True)

    outcome: Outcome
    rule: DecisionRule
    digits: list[int] = Field(default_factory=list)


class FinalizedRound(BaseModel):
    """A completed round as kept in history."""

    round_key: str
    outcome: Outcome
    rule: DecisionRule
    digits: list[int] = Field(default_factory=list)
    readings: dict[str, SourceReading] = Field(default_factory=dict)
    finalized_at: datetime = Field(default_factory=utc_now)


class RoundState(BaseModel):
    """The single shared round record."""

    snapshot: Snapshot | None = Field(default=None)
    final_outcome: Outcome | None = Field(default=None)
    previous_outcome: Outcome | None = Field(default=None)
    last_prepared_key: str | None = Field(default=None)


class PersistedState(BaseModel):
    """What survives a restart."""

    final_outcome: Outcome | None = None
    previous_outcome: Outcome | None = None
    history: list[FinalizedRound] = Field(default_factory=list)
    saved_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# API Response Models
# =============================================================================


class RoundResult(BaseModel):
    """Current round state as served to clients."""

    previous: Outcome | None = None
    final: Outcome | None = None
    sources: dict[str, SourceReading] | None = None
    round_key: str | None = Field(default=None, description="Round of the pending snapshot")
    server_time: datetime = Field(default_factory=utc_now)


class HistoryResponse(BaseModel):
    """Finalized rounds, newest first."""

    rounds: list[FinalizedRound] = Field(default_factory=list)


class SourceInfo(BaseModel):
    """Public description of a configured source."""

    codename: str
    name: str
    timeout: float
    enabled: bool = True
    description: str = ""


class ConfigResponse(BaseModel):
    """Effective schedule and sources."""

    prepare_offset: int
    finalize_offset: int
    tick_interval: float
    fetch_deadline: float
    sources: list[SourceInfo] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = VERSION
    time: datetime = Field(default_factory=utc_now)


class RoundEvent(BaseModel):
    """A streamed round lifecycle event."""

    event_id: str
    sequence: int
    event_type: str
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utc_now)
