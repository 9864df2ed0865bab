"""
Betting intelligence — stake sizing and closing-line value for one bet.

Display-facing, so it never raises on bad data: a leg with unusable odds
or probability yields ``BettingIntelligence(available=False, reason=...)``
and the page shows "not available".  Caller mistakes in the sizing
parameters (a Kelly fraction of 3, a negative stake cap) are still
``ConfigurationError``.

Sizing chain (see ``parlay_edge.core.kelly``):

    full_kelly            = max(0, (p·d − 1) / (d − 1))
    fractional_kelly      = full_kelly × kelly_fraction        (default ½)
    recommended_stake_pct = min(fractional_kelly, max_stake_pct)  (hard cap)
    bankroll_stake        = bankroll × recommended_stake_pct
    expected_value        = bankroll_stake × (p·d − 1)

CLV per 1X2 outcome = consensus probability − market-implied probability
at the close.  Positive CLV sustained over many bets is the long-run skill
signal, independent of whether individual bets won.

Recommendation labels:

    edge ≥ strong_bet_edge (5%)  → STRONG BET
    edge ≥ value_bet_edge  (2%)  → VALUE BET
    otherwise                    → PASS
"""

import logging
from dataclasses import dataclass, replace
from typing import Dict, Mapping, Optional, Union

from parlay_edge.core import kelly, odds_math
from parlay_edge.core.engine_config import IntelligenceConfig
from parlay_edge.core.errors import InvalidLegError
from parlay_edge.core.markets import MarketLeg, MatchResult, ResultOutcome
from parlay_edge.schemas import LegRecord

logger = logging.getLogger(__name__)

RECOMMENDATION_STRONG = "STRONG BET"
RECOMMENDATION_VALUE = "VALUE BET"
RECOMMENDATION_PASS = "PASS"

#: 1X2 outcome keys, in display order.
OUTCOMES = ("home", "draw", "away")


# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ThreeWayMarket:
    """Consensus and prices for a match's 1X2 market, keyed home/draw/away."""

    match_id: str
    consensus: Mapping[str, float]
    decimal_odds: Mapping[str, float]
    closing_odds: Optional[Mapping[str, float]] = None


@dataclass(frozen=True)
class BettingIntelligence:
    """Sizing guidance and CLV for a single bet."""

    available: bool
    reason: Optional[str]
    pick: Optional[str]
    edge: Optional[float]
    recommendation: str
    full_kelly: float
    fractional_kelly: float
    recommended_stake_pct: float
    max_stake_pct: float
    bankroll_stake: float
    expected_value: float
    recommended_units: float
    clv: Optional[Dict[str, float]] = None

    @classmethod
    def unavailable(cls, reason: str, max_stake_pct: float) -> "BettingIntelligence":
        return cls(
            available=False,
            reason=reason,
            pick=None,
            edge=None,
            recommendation=RECOMMENDATION_PASS,
            full_kelly=0.0,
            fractional_kelly=0.0,
            recommended_stake_pct=0.0,
            max_stake_pct=max_stake_pct,
            bankroll_stake=0.0,
            expected_value=0.0,
            recommended_units=0.0,
        )


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------

def recommendation_for_edge(edge: float, config: IntelligenceConfig) -> str:
    if edge >= config.strong_bet_edge:
        return RECOMMENDATION_STRONG
    if edge >= config.value_bet_edge:
        return RECOMMENDATION_VALUE
    return RECOMMENDATION_PASS


def closing_line_value(
    consensus: Mapping[str, float],
    closing_odds: Mapping[str, float],
    devig: bool = False,
) -> Dict[str, float]:
    """
    Signed CLV for each 1X2 outcome.

    Args:
        consensus: Model probability per outcome (home/draw/away).
        closing_odds: Decimal closing price per outcome.
        devig: Compare against proportional no-vig closing probabilities
            instead of raw ``1 / odds``.

    Raises:
        ValueError: Missing outcome, or a price/probability out of range.
    """
    missing = [o for o in OUTCOMES if o not in consensus or o not in closing_odds]
    if missing:
        raise ValueError(f"CLV needs home/draw/away; missing {', '.join(missing)}")

    prices = [closing_odds[o] for o in OUTCOMES]
    if devig:
        close_probs = odds_math.remove_vig_proportional(prices)
    else:
        close_probs = tuple(odds_math.implied_prob(p) for p in prices)

    clv: Dict[str, float] = {}
    for outcome, close_prob in zip(OUTCOMES, close_probs):
        odds_math.validate_probability(consensus[outcome], f"consensus[{outcome}]")
        clv[outcome] = consensus[outcome] - close_prob
    return clv


def _resolve_config(
    config: Optional[IntelligenceConfig],
    kelly_fraction: Optional[float],
    max_stake_pct: Optional[float],
) -> IntelligenceConfig:
    cfg = config if config is not None else IntelligenceConfig.from_env()
    overrides = {}
    if kelly_fraction is not None:
        overrides["kelly_fraction"] = kelly_fraction
    if max_stake_pct is not None:
        overrides["max_stake_pct"] = max_stake_pct
    return replace(cfg, **overrides) if overrides else cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def compute_betting_intelligence(
    leg: Union[MarketLeg, LegRecord],
    bankroll: float,
    kelly_fraction: Optional[float] = None,
    max_stake_pct: Optional[float] = None,
    closing: Optional[ThreeWayMarket] = None,
    config: Optional[IntelligenceConfig] = None,
) -> BettingIntelligence:
    """
    Stake-sizing guidance for one leg.

    Args:
        leg: A validated ``MarketLeg`` or a raw catalog ``LegRecord``.
        bankroll: Current bankroll in dollars.
        kelly_fraction: Overrides ``config.kelly_fraction``.
        max_stake_pct: Overrides ``config.max_stake_pct``.
        closing: The match's 1X2 market with ``closing_odds`` set, for CLV.
        config: Sizing and label thresholds.  When omitted, defaults with
            ``KELLY_FRACTION`` / ``MAX_STAKE_PCT`` from the environment.

    Returns:
        ``BettingIntelligence``; ``available=False`` for unusable input.

    Raises:
        ConfigurationError: ``kelly_fraction`` or ``max_stake_pct`` out of
            range.
    """
    cfg = _resolve_config(config, kelly_fraction, max_stake_pct)

    if isinstance(leg, LegRecord):
        prob, odds, pick = leg.consensus_prob, leg.best_price(), leg.market_subtype
    else:
        prob, odds, pick = leg.consensus_prob, leg.decimal_odds, leg.market_subtype

    if prob is None or odds is None:
        return BettingIntelligence.unavailable("missing probability or odds", cfg.max_stake_pct)

    try:
        edge = odds_math.leg_edge(prob, odds)
        full = kelly.full_kelly(prob, odds)
        fractional = kelly.fractional_kelly(full, cfg.kelly_fraction)
        stake_pct = kelly.capped_stake_pct(fractional, cfg.max_stake_pct)
        stake = kelly.bankroll_stake(bankroll, stake_pct)
    except ValueError as exc:
        logger.info("Betting intelligence not available for %s: %s", pick, exc)
        return BettingIntelligence.unavailable(str(exc), cfg.max_stake_pct)

    clv = None
    if closing is not None and closing.closing_odds:
        try:
            clv = closing_line_value(closing.consensus, closing.closing_odds, cfg.devig_closing_line)
        except ValueError as exc:
            logger.warning("CLV unavailable for match %s: %s", closing.match_id, exc)

    return BettingIntelligence(
        available=True,
        reason=None,
        pick=pick,
        edge=edge,
        recommendation=recommendation_for_edge(edge, cfg),
        full_kelly=full,
        fractional_kelly=fractional,
        recommended_stake_pct=stake_pct,
        max_stake_pct=cfg.max_stake_pct,
        bankroll_stake=stake,
        expected_value=kelly.stake_expected_value(stake, prob, odds),
        recommended_units=round(kelly.kelly_to_units(stake_pct), 2),
        clv=clv,
    )


def compute_match_intelligence(
    market: ThreeWayMarket,
    bankroll: float,
    kelly_fraction: Optional[float] = None,
    max_stake_pct: Optional[float] = None,
    config: Optional[IntelligenceConfig] = None,
) -> BettingIntelligence:
    """
    Best 1X2 bet for a match plus CLV on all three outcomes.

    The pick is the outcome with the highest edge among those with a usable
    price and probability (home, draw, away order breaks ties).
    """
    cfg = _resolve_config(config, kelly_fraction, max_stake_pct)

    best: Optional[MarketLeg] = None
    for outcome in OUTCOMES:
        prob = market.consensus.get(outcome)
        odds = market.decimal_odds.get(outcome)
        if prob is None or odds is None:
            continue
        try:
            leg = MarketLeg(
                leg_id=f"{market.match_id}:1X2:{outcome.upper()}",
                match_id=market.match_id,
                selection=MatchResult(ResultOutcome(outcome.upper())),
                consensus_prob=prob,
                decimal_odds=odds,
            )
        except InvalidLegError as exc:
            logger.debug("Match %s outcome %s unusable: %s", market.match_id, outcome, exc)
            continue
        if best is None or leg.edge > best.edge:
            best = leg

    if best is None:
        return BettingIntelligence.unavailable("no priced 1X2 outcome", cfg.max_stake_pct)

    return compute_betting_intelligence(best, bankroll, closing=market, config=cfg)
