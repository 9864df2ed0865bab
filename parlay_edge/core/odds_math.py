"""Fundamental odds mathematics — the single source of truth.

Every function here is **pure**: no I/O, no logging, no side effects.
Import from this module; never reimplement locally in services.

The three pillars exposed are:

1. **Odds conversion** — decimal → implied probability, decimal → American
   for display.
2. **Edge** — consensus probability minus market-implied probability.
3. **Vig removal** — proportional normalisation for n-way markets
   (1X2 closing lines for CLV).

Design decisions
----------------
* The catalog stores **decimal** odds (best available book price), so
  decimal is the working format everywhere.  American odds appear only on
  printed tickets.
* Decimal odds of exactly 1.0 pay nothing and imply certainty; they are
  rejected alongside anything smaller.  A leg priced at 1.0 can never carry
  positive expected value and would divide by zero in the Kelly formula.
* Proportional normalisation is used for three-way football markets.  The
  Shin insider model has no closed two-step form for n > 2 outcomes and the
  favourite-longshot correction it buys is small on 1X2 closing prices.

Run tests with::

    pytest tests/test_odds_math.py -v
"""

from __future__ import annotations

import math
from typing import Final, Iterable, Sequence

# ---------------------------------------------------------------------------
# Module-level constants
# ---------------------------------------------------------------------------

#: Decimal odds must be strictly greater than this to carry any payout.
MIN_DECIMAL_ODDS: Final[float] = 1.0


# ---------------------------------------------------------------------------
# Odds conversion
# ---------------------------------------------------------------------------


def decimal_to_american(decimal_odds: float) -> int:
    """Convert decimal odds to the nearest American integer.

    Use the result for display and logging, not for further arithmetic.

    Raises:
        ValueError: If ``decimal_odds ≤ 1.0``.
    """
    validate_decimal_odds(decimal_odds)
    if decimal_odds >= 2.0:
        return round((decimal_odds - 1.0) * 100)
    # Favourite: decimal < 2.0 → negative American
    return round(-100.0 / (decimal_odds - 1.0))


def validate_decimal_odds(decimal_odds: float) -> None:
    """Raise ``ValueError`` unless ``decimal_odds`` is a finite price > 1.0."""
    if not isinstance(decimal_odds, (int, float)) or math.isnan(decimal_odds):
        raise ValueError(f"Decimal odds must be a number, got {decimal_odds!r}.")
    if math.isinf(decimal_odds) or decimal_odds <= MIN_DECIMAL_ODDS:
        raise ValueError(
            f"Decimal odds {decimal_odds!r} must be finite and > 1.0."
        )


def validate_probability(prob: float, name: str = "probability") -> None:
    """Raise ``ValueError`` unless ``prob`` lies in the open interval (0, 1)."""
    if not isinstance(prob, (int, float)) or math.isnan(prob):
        raise ValueError(f"{name} must be a number, got {prob!r}.")
    if not (0.0 < prob < 1.0):
        raise ValueError(f"{name} must be in (0, 1), got {prob!r}.")


def implied_prob(decimal_odds: float) -> float:
    """Raw implied probability from decimal odds (vig-inclusive).

    Examples::

        implied_prob(2.00)   → 0.5000
        implied_prob(1.909)  → 0.5238
    """
    validate_decimal_odds(decimal_odds)
    return 1.0 / decimal_odds


# ---------------------------------------------------------------------------
# Edge and parlay pricing
# ---------------------------------------------------------------------------


def leg_edge(consensus_prob: float, decimal_odds: float) -> float:
    """Statistical edge of a single outcome as a ratio.

    ``edge = consensus_prob − 1 / decimal_odds``.  Positive means the model
    rates the outcome more likely than the price does.

    Example::

        leg_edge(0.55, 2.00) → 0.05
    """
    validate_probability(consensus_prob, "consensus_prob")
    return consensus_prob - implied_prob(decimal_odds)


def combine_decimal_odds(decimal_odds: Iterable[float]) -> float:
    """Parlay payout multiplier: product of every leg's decimal odds."""
    product = 1.0
    for odds in decimal_odds:
        product *= odds
    return product


def expected_return(win_prob: float, decimal_odds: float) -> float:
    """Expected profit per unit staked: ``p · d − 1``."""
    return win_prob * decimal_odds - 1.0


# ---------------------------------------------------------------------------
# Vig removal
# ---------------------------------------------------------------------------


def remove_vig_proportional(decimal_odds: Sequence[float]) -> tuple[float, ...]:
    """No-vig probabilities for an n-way market by proportional scaling.

    Each raw implied probability is divided by the overround (their sum),
    so the result sums to 1.0.

    Example::

        remove_vig_proportional([2.10, 3.40, 3.60])
        → (0.4545, 0.2807, 0.2651)   (overround ≈ 1.0474)

    Raises:
        ValueError: If fewer than two prices are given or any price is
            not a valid decimal price.
    """
    if len(decimal_odds) < 2:
        raise ValueError("Vig removal needs at least two outcomes.")
    raw = [implied_prob(odds) for odds in decimal_odds]
    overround = sum(raw)
    return tuple(p / overround for p in raw)
