"""
Best-parlay generator.

Builds ranked single-game and multi-game parlays from the current leg
catalog:

    catalog → edge scorer → combination search → ranking & selection

The engine is a pure batch computation over a snapshot: no state survives
between calls and nothing shared is mutated, so concurrent calls are safe.
Persisting the result (and deduplicating against previously stored
parlays) belongs to the storage layer.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from parlay_edge.core.engine_config import GenerationConfig, resolve_generation_config
from parlay_edge.core.odds_math import decimal_to_american
from parlay_edge.schemas import ParlayCombinationOut
from parlay_edge.services.combination_search import search_combinations
from parlay_edge.services.edge_scorer import score_legs
from parlay_edge.services.leg_catalog import LegCatalog, default_catalog
from parlay_edge.services.ranking import ParlayCombination, rank_and_select

logger = logging.getLogger(__name__)


def generate_best_parlays(
    config: Union[GenerationConfig, Mapping[str, Any], None] = None,
    catalog: Optional[LegCatalog] = None,
) -> List[ParlayCombination]:
    """
    Generate the best parlays available from the current catalog.

    Args:
        config: ``None`` for defaults, a ``GenerationConfig``, or a partial
            mapping of overrides (snake_case or camelCase keys).  Merged
            with defaults exactly once, here.
        catalog: Leg source.  Defaults to the SQL catalog bound to
            ``DATABASE_URL``.

    Returns:
        Up to ``max_results`` combinations, best first.  Empty when the
        catalog has too few eligible legs or matches.

    Raises:
        ConfigurationError: Out-of-range or unknown config values.
    """
    cfg = resolve_generation_config(config)
    catalog = catalog if catalog is not None else default_catalog()

    logger.info(
        "Generating parlays (type=%s, max_legs=%d, min_leg_edge=%.2f%%, max_results=%d)",
        cfg.parlay_type, cfg.max_leg_count, cfg.min_leg_edge * 100, cfg.max_results,
    )

    records = catalog.fetch_legs()
    if not records:
        logger.info("Leg catalog is empty, no parlays generated")
        return []

    grouped = score_legs(records, min_leg_edge=cfg.min_leg_edge)
    search = search_combinations(grouped, cfg)
    parlays = rank_and_select(search.candidates, cfg)

    logger.info(
        "Generated %d parlays from %d candidates (%d evaluated%s, best edge: %.4f)",
        len(parlays), len(search.candidates), search.evaluated,
        ", truncated by work cap" if search.truncated else "",
        parlays[0].parlay_edge if parlays else 0.0,
    )
    return parlays


def parlays_to_payload(parlays: List[ParlayCombination]) -> List[Dict[str, Any]]:
    """Serialise parlays for the persistence layer."""
    return [
        ParlayCombinationOut.model_validate(parlay, from_attributes=True).model_dump()
        for parlay in parlays
    ]


def format_parlay_ticket(parlay: ParlayCombination) -> str:
    """
    Format a parlay for human-readable display.

    Args:
        parlay: Combination from generate_best_parlays()

    Returns:
        Formatted multi-line string
    """
    kind = "Multi-Game" if parlay.is_multi_game else "Same-Game"
    lines = []
    lines.append(
        f"{parlay.leg_count}-Leg {kind} Parlay @ {parlay.parlay_decimal_odds:.2f} "
        f"({decimal_to_american(parlay.parlay_decimal_odds):+d})"
    )
    for leg in parlay.legs:
        lines.append(f"   - {leg.label} @ {leg.decimal_odds:.2f} (edge {leg.edge:+.2%})")
    lines.append(
        f"   Hit Prob: {parlay.adjusted_prob:.2%} "
        f"(naive {parlay.combined_prob:.2%} x penalty {parlay.correlation_penalty:.3f})"
    )
    lines.append(f"   Fair Odds: {parlay.implied_odds:.2f}")
    lines.append(f"   Edge: {parlay.parlay_edge:+.2%}")
    lines.append(f"   Confidence: {parlay.confidence_tier} | Risk: {parlay.risk_level}")

    return "\n".join(lines)
