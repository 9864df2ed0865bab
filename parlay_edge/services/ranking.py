"""
Ranking & selection — from raw candidates to the final parlay list.

Pipeline:

    1. Threshold filter  — adjusted_prob ≥ min_combined_prob and
                           parlay_edge ≥ min_parlay_edge.
    2. Total ordering    — parlay_edge desc, adjusted_prob desc,
                           leg_count asc (simpler bet wins a tie), then the
                           legs' logical keys so equal scores never fall
                           back on input order.
    3. Dedup             — leg sets equal by (match, type, subtype, line)
                           collapse to the first in that order, i.e. the one
                           with the higher parlay_edge.
    4. Tiering           — confidence tier from the threshold table, plus
                           risk level and quality score for display.
    5. Truncation        — first ``max_results``.
"""

import logging
import math
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional, Sequence, Tuple

from parlay_edge.core.engine_config import GenerationConfig, TierThreshold
from parlay_edge.core.markets import MarketLeg
from parlay_edge.services.combination_search import ParlayCandidate

logger = logging.getLogger(__name__)

# Display weights per confidence tier for the quality score.
TIER_QUALITY_WEIGHTS = {
    "very_high": 1.0,
    "high": 1.0,
    "medium": 0.7,
    "low": 0.4,
}


# ---------------------------------------------------------------------------
# Output container
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ParlayCombination:
    """A fully-priced, tiered parlay ready for persistence or display."""

    match_ids: Tuple[str, ...]
    legs: Tuple[MarketLeg, ...]
    leg_count: int
    combined_prob: float
    correlation_penalty: float
    adjusted_prob: float
    implied_odds: float
    parlay_decimal_odds: float
    parlay_edge: float
    confidence_tier: str
    parlay_type: str
    is_multi_game: bool
    has_correlated_legs: bool
    risk_level: str
    quality_score: float

    @classmethod
    def from_candidate(
        cls,
        candidate: ParlayCandidate,
        tier_table: Sequence[TierThreshold],
    ) -> "ParlayCombination":
        tier = assign_confidence_tier(candidate.parlay_edge, candidate.adjusted_prob, tier_table)
        return cls(
            match_ids=candidate.match_ids,
            legs=candidate.legs,
            leg_count=candidate.leg_count,
            combined_prob=candidate.combined_prob,
            correlation_penalty=candidate.correlation_penalty,
            adjusted_prob=candidate.adjusted_prob,
            implied_odds=candidate.implied_odds,
            parlay_decimal_odds=candidate.parlay_decimal_odds,
            parlay_edge=candidate.parlay_edge,
            confidence_tier=tier,
            parlay_type=candidate.parlay_type,
            is_multi_game=candidate.is_multi_game,
            has_correlated_legs=candidate.has_correlated_legs,
            risk_level=risk_level(candidate.adjusted_prob),
            quality_score=quality_score(candidate.parlay_edge, candidate.adjusted_prob, tier),
        )


# ---------------------------------------------------------------------------
# Tiering and display scores
# ---------------------------------------------------------------------------

def assign_confidence_tier(
    parlay_edge: float,
    adjusted_prob: float,
    tier_table: Sequence[TierThreshold],
) -> str:
    """
    First tier in ``tier_table`` whose edge and probability floors are met.

    The table's last row accepts everything (validated by
    ``GenerationConfig``), so every combination gets exactly one tier.
    """
    for row in tier_table:
        if parlay_edge >= row.min_edge and adjusted_prob >= row.min_prob:
            return row.tier
    # Unreachable with a validated table
    return tier_table[-1].tier


def risk_level(adjusted_prob: float) -> str:
    """Variance bucket from the hit probability alone."""
    if adjusted_prob >= 0.20:
        return "low"
    if adjusted_prob >= 0.10:
        return "medium"
    if adjusted_prob >= 0.05:
        return "high"
    return "very_high"


def quality_score(parlay_edge: float, adjusted_prob: float, tier: str) -> float:
    """
    Composite display score, higher is better.

    edge (percent, capped at 50) × 0.4 + probability (percent × 0.3) × 0.3
    + tier weight × 30 × 0.3.
    """
    edge_score = min(max(parlay_edge * 100.0, 0.0), 50.0)
    prob_score = min(max(adjusted_prob * 100.0, 0.0), 100.0) * 0.3
    confidence_score = TIER_QUALITY_WEIGHTS.get(tier, TIER_QUALITY_WEIGHTS["low"]) * 30.0
    return edge_score * 0.4 + prob_score * 0.3 + confidence_score * 0.3


# ---------------------------------------------------------------------------
# Ordering and dedup
# ---------------------------------------------------------------------------

def _leg_identity(leg: MarketLeg) -> Tuple[str, str, str, float]:
    line = leg.line if leg.line is not None else -math.inf
    return (leg.match_id, leg.market_type, leg.market_subtype, line)


def dedup_key(legs: Iterable[MarketLeg]) -> FrozenSet[Tuple]:
    """Order-independent identity of a leg set."""
    return frozenset(leg.logical_key for leg in legs)


def ranking_key(candidate: ParlayCandidate) -> Tuple:
    return (
        -candidate.parlay_edge,
        -candidate.adjusted_prob,
        candidate.leg_count,
        tuple(sorted(_leg_identity(leg) for leg in candidate.legs)),
        tuple(sorted(leg.leg_id for leg in candidate.legs)),
    )


def passes_thresholds(candidate: ParlayCandidate, config: GenerationConfig) -> bool:
    return (
        candidate.adjusted_prob >= config.min_combined_prob
        and candidate.parlay_edge >= config.min_parlay_edge
    )


def rank_and_select(
    candidates: Iterable[ParlayCandidate],
    config: GenerationConfig,
    limit: Optional[int] = None,
) -> List[ParlayCombination]:
    """
    Filter, order, dedup, tier and truncate candidates.

    Args:
        candidates: Priced candidates in any order.
        config: Resolved generation config.
        limit: Overrides ``config.max_results`` when given.

    Returns:
        At most ``limit`` combinations, best first.  Identical inputs give
        identical output order.
    """
    limit = config.max_results if limit is None else limit
    pool = list(candidates)
    passing = [c for c in pool if passes_thresholds(c, config)]
    passing.sort(key=ranking_key)

    selected: List[ParlayCombination] = []
    seen = set()
    duplicates = 0
    for candidate in passing:
        key = dedup_key(candidate.legs)
        if key in seen:
            duplicates += 1
            continue
        seen.add(key)
        selected.append(ParlayCombination.from_candidate(candidate, config.tier_thresholds))
        if len(selected) >= limit:
            break

    logger.info(
        "Ranking: %d candidates, %d passed thresholds (edge >= %.1f%%, prob >= %.1f%%), "
        "%d duplicates skipped, returning %d",
        len(pool), len(passing), config.min_parlay_edge * 100, config.min_combined_prob * 100,
        duplicates, len(selected),
    )
    return selected
