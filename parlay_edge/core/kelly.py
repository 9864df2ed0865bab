"""Kelly criterion sizing — the single source of truth for bet sizing math.

All functions here are **pure**: no I/O, no database, no logging.
Import from this module; never reimplement Kelly locally in services.

The sizing chain for one bet is::

    full_kelly  →  fractional_kelly  →  capped_stake_pct  →  stake / EV

Design decisions
----------------
* **Half Kelly by default.**  Consensus probabilities are model estimates,
  and overbetting an uncertain edge is punished far harder than
  underbetting it.  The fraction is a parameter so callers can go lower.
* **The stake cap is absolute.**  :func:`capped_stake_pct` is the only way
  a stake percentage leaves this module, and it always applies
  ``max_stake_pct``.  No edge, however large, sizes a bet above the cap.
* **Negative Kelly clamps to zero.**  A bet the model does not rate as +EV
  is never shorted or hedged; the recommendation is simply no stake.

Run tests with::

    pytest tests/test_kelly.py -v
"""

from __future__ import annotations

from typing import Final

from parlay_edge.core.odds_math import validate_decimal_odds, validate_probability

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: Default multiplier applied to full Kelly ("half Kelly").
DEFAULT_KELLY_FRACTION: Final[float] = 0.5

#: Default hard ceiling on any recommended stake, as a fraction of bankroll.
DEFAULT_MAX_STAKE_PCT: Final[float] = 0.05


# ---------------------------------------------------------------------------
# Kelly sizing
# ---------------------------------------------------------------------------


def full_kelly(win_prob: float, decimal_odds: float) -> float:
    """Full Kelly fraction for a simple win/loss bet.

    Solves ``max_f E[log(1 + f·X)]`` for a bet paying ``b = d − 1`` per unit
    with probability ``p``::

        f*  =  (p · d − 1) / (d − 1)

    clamped to ``≥ 0``.

    Examples::

        full_kelly(0.55, 2.00)  →  0.10
        full_kelly(0.45, 2.00)  →  0.00   (negative EV → no bet)

    Raises:
        ValueError: If ``win_prob`` is not in ``(0, 1)`` or
            ``decimal_odds ≤ 1.0``.
    """
    validate_probability(win_prob, "win_prob")
    validate_decimal_odds(decimal_odds)

    kelly = (win_prob * decimal_odds - 1.0) / (decimal_odds - 1.0)
    return max(kelly, 0.0)


def fractional_kelly(full: float, kelly_fraction: float = DEFAULT_KELLY_FRACTION) -> float:
    """Scale a full Kelly fraction by ``kelly_fraction`` (0.5 = half Kelly).

    Raises:
        ValueError: If ``kelly_fraction`` is outside ``(0, 1]``.
    """
    if not (0.0 < kelly_fraction <= 1.0):
        raise ValueError(f"kelly_fraction must be in (0, 1], got {kelly_fraction!r}.")
    return full * kelly_fraction


def capped_stake_pct(fractional: float, max_stake_pct: float = DEFAULT_MAX_STAKE_PCT) -> float:
    """Recommended stake percentage: ``min(fractional, max_stake_pct)``.

    Raises:
        ValueError: If ``max_stake_pct`` is outside ``(0, 1]``.
    """
    if not (0.0 < max_stake_pct <= 1.0):
        raise ValueError(f"max_stake_pct must be in (0, 1], got {max_stake_pct!r}.")
    return min(max(fractional, 0.0), max_stake_pct)


def bankroll_stake(bankroll: float, stake_pct: float) -> float:
    """Dollar stake for a percentage of bankroll.

    Raises:
        ValueError: If ``bankroll`` is negative.
    """
    if bankroll < 0.0:
        raise ValueError(f"bankroll must be ≥ 0, got {bankroll!r}.")
    return bankroll * stake_pct


def stake_expected_value(stake: float, win_prob: float, decimal_odds: float) -> float:
    """Expected profit of staking ``stake``: ``stake · (p · d − 1)``."""
    return stake * (win_prob * decimal_odds - 1.0)


# ---------------------------------------------------------------------------
# Utility — unit conversion
# ---------------------------------------------------------------------------


def kelly_to_units(kelly_fraction_val: float) -> float:
    """Convert a bankroll fraction to units (1 unit = 1% of bankroll).

    Examples::

        kelly_to_units(0.025) → 2.5
    """
    return kelly_fraction_val * 100.0
