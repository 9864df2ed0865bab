"""Exception taxonomy for the parlay edge engine.

Only :class:`ConfigurationError` ever reaches a caller of the public entry
points.  The others describe data conditions that the services absorb
locally (skip, log, return empty or truncated results).
"""

from __future__ import annotations


class ParlayEngineError(Exception):
    """Base class for every error raised by this package."""


class InvalidLegError(ParlayEngineError, ValueError):
    """A single leg carries malformed odds, probability or market shape.

    The Edge Scorer skips the leg and keeps going.
    """

    def __init__(self, message: str, leg_id: str | None = None) -> None:
        super().__init__(message)
        self.leg_id = leg_id


class InsufficientDataError(ParlayEngineError):
    """Fewer than two eligible legs or matches for the requested mode.

    Used to describe the condition in logs; the engine returns an empty
    contribution instead of raising it.
    """


class ConfigurationError(ParlayEngineError, ValueError):
    """Conflicting or out-of-range configuration supplied by the caller."""


class ComputationBudgetExceededError(ParlayEngineError):
    """The combination search used up its work-unit allowance.

    Raised and caught inside the search so the candidate pool is truncated;
    never propagated to the caller.
    """

    def __init__(self, budget: int) -> None:
        super().__init__(f"combination budget of {budget} evaluations exhausted")
        self.budget = budget
