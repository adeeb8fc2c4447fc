"""Custom exceptions for Quorum."""

from typing import Any


class QuorumError(Exception):
    """Base exception for all Quorum errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# =============================================================================
# Source Errors
# =============================================================================


class SourceError(QuorumError):
    """Base exception for entropy source errors."""

    def __init__(self, message: str, source: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.source = source


class SourceConnectionError(SourceError):
    """Raised when a source cannot be reached or answers with an error status."""

    pass


class SourceTimeoutError(SourceError):
    """Raised when a source does not answer within its deadline."""

    def __init__(
        self,
        message: str = "Source deadline exceeded",
        deadline: float | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.deadline = deadline


class SourceResponseParseError(SourceError):
    """Raised when a source response does not contain a usable digit."""

    def __init__(
        self,
        message: str = "Failed to parse source response",
        raw_response: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.raw_response = raw_response


class SourceNotConfiguredError(SourceError):
    """Raised when a source is missing credentials or configuration."""

    pass


# =============================================================================
# Orchestration Errors
# =============================================================================


class AggregationError(QuorumError):
    """Raised when the fan-out to sources cannot be orchestrated."""

    def __init__(self, message: str, round_key: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.round_key = round_key


class SchedulerError(QuorumError):
    """Raised when the round clock is driven into an invalid state."""

    pass


# =============================================================================
# State Errors
# =============================================================================


class StatePersistenceError(QuorumError):
    """Raised when unable to persist round state."""

    pass
