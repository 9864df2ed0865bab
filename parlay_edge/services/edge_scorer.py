"""
Edge scoring for candidate legs.

Turns loosely-typed catalog records into validated ``MarketLeg`` objects,
recomputing ``edge = consensus_prob − 1/decimal_odds`` from the pair every
time (the catalog's stored edge is ignored; it is only as fresh as the last
sync).  Malformed legs are skipped, never fatal.
"""

import logging
from typing import Dict, Iterable, List, Tuple

from parlay_edge.core.errors import InvalidLegError
from parlay_edge.core.markets import MarketLeg, parse_selection
from parlay_edge.schemas import LegRecord

logger = logging.getLogger(__name__)


def to_market_leg(record: LegRecord) -> MarketLeg:
    """
    Build a validated leg from a catalog record.

    Raises:
        InvalidLegError: Missing price or probability, ``decimal_odds ≤ 1.0``,
            ``consensus_prob`` outside (0, 1), or an unknown market shape.
    """
    if record.consensus_prob is None:
        raise InvalidLegError("consensus_prob is missing", leg_id=record.id)
    decimal_odds = record.best_price()
    if decimal_odds is None:
        raise InvalidLegError("no decimal odds or book prices available", leg_id=record.id)

    try:
        selection = parse_selection(record.market_type, record.market_subtype, record.line)
    except InvalidLegError as exc:
        raise InvalidLegError(str(exc), leg_id=record.id) from exc

    return MarketLeg(
        leg_id=record.id,
        match_id=record.match_id,
        selection=selection,
        consensus_prob=record.consensus_prob,
        decimal_odds=decimal_odds,
        book_odds=dict(record.book_odds),
        model_agreement=record.model_agreement,
    )


def leg_sort_key(leg: MarketLeg) -> Tuple[float, float, str]:
    """Best leg first: edge desc, consensus prob desc, leg id asc."""
    return (-leg.edge, -leg.consensus_prob, leg.leg_id)


def score_legs(
    records: Iterable[LegRecord],
    min_leg_edge: float = 0.0,
) -> Dict[str, List[MarketLeg]]:
    """
    Validate, edge-score and filter catalog records.

    Args:
        records: Raw catalog rows.
        min_leg_edge: Legs with ``edge < min_leg_edge`` are dropped.

    Returns:
        Legs grouped by ``match_id``.  Matches appear in ascending id order;
        legs within a match are ordered by :func:`leg_sort_key`.  Matches
        with no surviving legs are absent.
    """
    by_match: Dict[str, List[MarketLeg]] = {}
    total = skipped = below_edge = 0

    for record in records:
        total += 1
        try:
            leg = to_market_leg(record)
        except InvalidLegError as exc:
            skipped += 1
            logger.warning("Skipping invalid leg %s (match %s): %s", exc.leg_id, record.match_id, exc)
            continue

        if leg.edge < min_leg_edge:
            below_edge += 1
            continue
        by_match.setdefault(leg.match_id, []).append(leg)

    grouped = {
        match_id: sorted(by_match[match_id], key=leg_sort_key)
        for match_id in sorted(by_match)
    }

    logger.info(
        "Scored %d legs: %d kept across %d matches, %d below edge %.2f%%, %d invalid",
        total,
        sum(len(legs) for legs in grouped.values()),
        len(grouped),
        below_edge,
        min_leg_edge * 100,
        skipped,
    )
    return grouped
