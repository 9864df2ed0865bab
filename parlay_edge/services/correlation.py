"""
Correlation penalty for candidate leg sets.

Multiplying leg probabilities assumes independence.  Legs on the same match
are anything but independent (a home win and over 2.5 goals both ride on
the home side scoring freely), so the naive product overstates how often
the parlay lands.  The penalty discounts it:

    penalty = base ** (leg_count − 1)

with ``base`` = ``single_game_base_penalty`` (0.90) when every leg shares
one match, and ``multi_game_base_penalty`` (0.97) when legs come from
different matches, where shared macro factors are small.

Optionally a further ``correlated_pair_penalty`` is applied once when the
set contains a known positively-correlated same-match pair:

    - home win  +  over 2.5 goals (or higher line)
    - home win  +  both teams to score
    - over 2.5  +  both teams to score

"Home win" covers 1X2 HOME, draw-no-bet HOME and double chance 1X.

These are business safety margins, not an estimated covariance matrix.
"""

import itertools
from typing import Sequence

from parlay_edge.core.engine_config import GenerationConfig
from parlay_edge.core.markets import (
    BothTeamsScore,
    DoubleChance,
    DoubleChanceSide,
    DrawNoBet,
    DrawNoBetSide,
    MarketLeg,
    MatchResult,
    ResultOutcome,
    Totals,
    TotalsSide,
    YesNo,
)

# Totals line from which an OVER counts as a "goals" leg.
HIGH_SCORING_LINE = 2.5


def _is_home_win(leg: MarketLeg) -> bool:
    sel = leg.selection
    return (
        (isinstance(sel, MatchResult) and sel.outcome is ResultOutcome.HOME)
        or (isinstance(sel, DrawNoBet) and sel.side is DrawNoBetSide.HOME)
        or (isinstance(sel, DoubleChance) and sel.side is DoubleChanceSide.HOME_OR_DRAW)
    )


def _is_high_over(leg: MarketLeg) -> bool:
    sel = leg.selection
    return isinstance(sel, Totals) and sel.side is TotalsSide.OVER and sel.line >= HIGH_SCORING_LINE


def _is_btts_yes(leg: MarketLeg) -> bool:
    sel = leg.selection
    return isinstance(sel, BothTeamsScore) and sel.outcome is YesNo.YES


def legs_correlated(a: MarketLeg, b: MarketLeg) -> bool:
    """True when two legs form a known positively-correlated same-match pair."""
    if a.match_id != b.match_id:
        return False
    for first, second in ((a, b), (b, a)):
        if _is_home_win(first) and (_is_high_over(second) or _is_btts_yes(second)):
            return True
        if _is_high_over(first) and _is_btts_yes(second):
            return True
    return False


def has_correlated_pair(legs: Sequence[MarketLeg]) -> bool:
    return any(legs_correlated(a, b) for a, b in itertools.combinations(legs, 2))


def correlation_penalty(legs: Sequence[MarketLeg], config: GenerationConfig) -> float:
    """
    Multiplicative discount in (0, 1] for the joint probability of ``legs``.

    A single leg carries no penalty.  Single-game sets (one distinct match)
    use the single-game base; anything spanning matches uses the multi-game
    base.
    """
    leg_count = len(legs)
    if leg_count < 2:
        return 1.0

    single_game = len({leg.match_id for leg in legs}) == 1
    base = config.single_game_base_penalty if single_game else config.multi_game_base_penalty
    penalty = base ** (leg_count - 1)

    if config.correlated_pair_penalty < 1.0 and has_correlated_pair(legs):
        penalty *= config.correlated_pair_penalty
    return penalty
