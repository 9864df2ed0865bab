"""
Combination search — enumerates legal parlays from edge-scored legs.

Single-game parlays
    For each match with at least two eligible legs, every subset of
    2..min(max_leg_count, legs) of its best ``max_legs_per_match`` legs,
    excluding subsets where two legs share a market type (HOME and AWAY of
    the same 1X2 market can't both land; two totals lines double-count
    the same signal).

Multi-game parlays
    One leg per match (that match's highest-edge leg), matches ranked by
    that edge and cut to the top ``top_k_matches``, then every subset of
    2..max_leg_count of those legs.  Taking only the best leg per match
    prunes combinations that are trivially dominated, and the top-K cut
    bounds growth at C(K, leg_count).

Every evaluated subset costs one work unit against ``max_combinations``.
Each mode enumerates under its own allowance and catches its own
exhaustion, so one mode running dry never starves the other.  In ``both``
mode single-game runs first and may spend at most half the cap; whatever
it leaves over goes to multi-game.  Multi-game enumerates by ascending
leg count, so its truncation drops the largest, least likely tickets
first.
Exhausting an allowance truncates the pool; it is never an error for the
caller.
"""

import itertools
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

from parlay_edge.core import odds_math
from parlay_edge.core.engine_config import (
    PARLAY_TYPE_MULTI_GAME,
    PARLAY_TYPE_SINGLE_GAME,
    GenerationConfig,
)
from parlay_edge.core.errors import ComputationBudgetExceededError, InsufficientDataError
from parlay_edge.core.markets import MarketLeg
from parlay_edge.services.correlation import correlation_penalty, has_correlated_pair
from parlay_edge.services.edge_scorer import leg_sort_key

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ParlayCandidate:
    """A priced leg set that has not yet been filtered, tiered or ranked."""

    legs: Tuple[MarketLeg, ...]
    parlay_type: str
    combined_prob: float        # Naive product, assumes independence
    correlation_penalty: float  # (0, 1]
    adjusted_prob: float        # combined_prob × correlation_penalty
    implied_odds: float         # 1 / adjusted_prob (fair price)
    parlay_decimal_odds: float  # Product of leg prices (what the book pays)
    parlay_edge: float          # adjusted_prob × parlay_decimal_odds − 1
    has_correlated_legs: bool

    @property
    def leg_count(self) -> int:
        return len(self.legs)

    @property
    def match_ids(self) -> Tuple[str, ...]:
        return tuple(sorted({leg.match_id for leg in self.legs}))

    @property
    def is_multi_game(self) -> bool:
        return len(self.match_ids) > 1


@dataclass
class SearchResult:
    candidates: List[ParlayCandidate] = field(default_factory=list)
    evaluated: int = 0
    truncated: bool = False


class WorkBudget:
    """Counts evaluated subsets and stops the search at ``limit``."""

    def __init__(self, limit: int):
        self.limit = limit
        self.used = 0

    def charge(self) -> None:
        if self.used >= self.limit:
            raise ComputationBudgetExceededError(self.limit)
        self.used += 1


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------

def price_candidate(
    legs: Sequence[MarketLeg],
    parlay_type: str,
    config: GenerationConfig,
) -> ParlayCandidate:
    """
    Price one leg set.

    ``parlay_edge`` is the expected profit per unit staked on the whole
    ticket: the correlation-adjusted hit rate times the book's payout,
    minus the stake.  Equivalently ``adjusted_prob / Π implied_prob − 1``.
    """
    combined_prob = 1.0
    for leg in legs:
        combined_prob *= leg.consensus_prob

    penalty = correlation_penalty(legs, config)
    adjusted_prob = combined_prob * penalty
    parlay_odds = odds_math.combine_decimal_odds(leg.decimal_odds for leg in legs)

    return ParlayCandidate(
        legs=tuple(legs),
        parlay_type=parlay_type,
        combined_prob=combined_prob,
        correlation_penalty=penalty,
        adjusted_prob=adjusted_prob,
        implied_odds=1.0 / adjusted_prob,
        parlay_decimal_odds=parlay_odds,
        parlay_edge=odds_math.expected_return(adjusted_prob, parlay_odds),
        has_correlated_legs=has_correlated_pair(legs),
    )


# ---------------------------------------------------------------------------
# Enumeration
# ---------------------------------------------------------------------------

def _distinct_market_types(legs: Sequence[MarketLeg]) -> bool:
    return len({leg.market_type for leg in legs}) == len(legs)


def _single_game(
    grouped: Dict[str, List[MarketLeg]],
    config: GenerationConfig,
    budget: WorkBudget,
    out: List[ParlayCandidate],
) -> None:
    eligible = {m: legs for m, legs in grouped.items() if len(legs) >= 2}
    if not eligible:
        raise InsufficientDataError("no match has two or more eligible legs")

    for match_id, legs in eligible.items():
        pool = legs[: config.max_legs_per_match]
        max_size = min(config.max_leg_count, len(pool))
        before = len(out)
        for size in range(2, max_size + 1):
            for combo in itertools.combinations(pool, size):
                if not _distinct_market_types(combo):
                    continue
                budget.charge()
                out.append(price_candidate(combo, PARLAY_TYPE_SINGLE_GAME, config))
        logger.debug("Match %s: %d single-game candidates from %d legs", match_id, len(out) - before, len(pool))


def best_leg_per_match(
    grouped: Dict[str, List[MarketLeg]],
    top_k: int,
) -> List[MarketLeg]:
    """Each match's top leg, best matches first, cut to ``top_k``."""
    tops = [legs[0] for legs in grouped.values() if legs]
    tops.sort(key=lambda leg: (leg_sort_key(leg), leg.match_id))
    return tops[:top_k]


def _multi_game(
    grouped: Dict[str, List[MarketLeg]],
    config: GenerationConfig,
    budget: WorkBudget,
    out: List[ParlayCandidate],
) -> None:
    if len(grouped) < 2:
        raise InsufficientDataError(f"{len(grouped)} eligible match(es); multi-game needs 2+")

    pool = best_leg_per_match(grouped, config.top_k_matches)
    if len(grouped) > len(pool):
        logger.info("Multi-game pool cut to top %d of %d matches by edge", len(pool), len(grouped))

    for size in range(2, min(config.max_leg_count, len(pool)) + 1):
        for combo in itertools.combinations(pool, size):
            budget.charge()
            out.append(price_candidate(combo, PARLAY_TYPE_MULTI_GAME, config))


def search_combinations(
    grouped: Dict[str, List[MarketLeg]],
    config: GenerationConfig,
) -> SearchResult:
    """
    Enumerate and price every legal candidate for the configured mode(s).

    Args:
        grouped: Edge-scored legs by match, as returned by
            :func:`~parlay_edge.services.edge_scorer.score_legs`.
        config: Resolved generation config.

    Returns:
        ``SearchResult`` with the priced candidates in enumeration order,
        the number of subsets evaluated and whether a work allowance cut
        the search short.
    """
    result = SearchResult()

    modes = []
    if config.wants_single_game:
        modes.append((PARLAY_TYPE_SINGLE_GAME, _single_game))
    if config.wants_multi_game:
        modes.append((PARLAY_TYPE_MULTI_GAME, _multi_game))

    used = 0
    for index, (mode, enumerate_mode) in enumerate(modes):
        remaining = config.max_combinations - used
        # Single-game may spend at most half when multi-game still has to run
        limit = remaining // 2 if index < len(modes) - 1 else remaining
        budget = WorkBudget(limit)
        try:
            enumerate_mode(grouped, config, budget, result.candidates)
        except InsufficientDataError as exc:
            logger.info("No %s parlays: %s", mode, exc)
        except ComputationBudgetExceededError as exc:
            result.truncated = True
            logger.warning(
                "%s search truncated: %s (%d candidates so far)", mode, exc, len(result.candidates),
            )
        used += budget.used

    result.evaluated = used
    return result
