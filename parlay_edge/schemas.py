"""
Pydantic schemas at the engine's two seams.

Inbound: :class:`LegRecord` is one catalog row exactly as the storage
collaborator hands it over (``Decimal`` numerics, ``None`` gaps, a possibly
stale ``edge_consensus`` column).  Validating here keeps loose types out of
the scoring code.

Outbound: :class:`ParlayCombinationOut` and :class:`BettingIntelligenceOut`
are the payloads the persistence and presentation layers consume.  Both
are built from engine dataclasses with ``from_attributes``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _to_float(value: Any) -> Any:
    """Numeric DB columns arrive as Decimal; feeds sometimes send strings."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, str):
        stripped = value.strip()
        return float(stripped) if stripped else None
    return value


# ---------------------------------------------------------------------------
# Inbound: leg catalog rows
# ---------------------------------------------------------------------------

class LegRecord(BaseModel):
    """
    One candidate leg as delivered by the leg catalog.

    Nothing about odds or probability ranges is enforced here: a bad price
    on one row must not abort the whole batch.  Range checks happen when
    the Edge Scorer turns the record into a ``MarketLeg``.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Catalog row identifier")
    match_id: str = Field(..., description="Opaque match identifier")
    market_type: str = Field(..., description='e.g. "1X2", "TOTALS"')
    market_subtype: Optional[str] = Field(None, description='e.g. "HOME", "OVER"')
    line: Optional[float] = Field(None, description="Totals line, if any")

    consensus_prob: Optional[float] = None
    decimal_odds: Optional[float] = Field(None, description="Best available decimal price")
    book_odds: Dict[str, float] = Field(default_factory=dict, description="Decimal price per book")
    model_agreement: Optional[float] = None

    # Stored at the last sync; never trusted, the scorer recomputes edge.
    edge_consensus: Optional[float] = None

    @field_validator("id", "match_id", mode="before")
    @classmethod
    def _stringify_ids(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator(
        "line", "consensus_prob", "decimal_odds", "model_agreement", "edge_consensus",
        mode="before",
    )
    @classmethod
    def _coerce_numeric(cls, v: Any) -> Any:
        return _to_float(v)

    @field_validator("book_odds", mode="before")
    @classmethod
    def _coerce_book_odds(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, dict):
            return {str(book): _to_float(price) for book, price in v.items() if price is not None}
        return v

    def best_price(self) -> Optional[float]:
        """Explicit ``decimal_odds`` if set, else the best of ``book_odds``."""
        if self.decimal_odds is not None:
            return self.decimal_odds
        if self.book_odds:
            return max(self.book_odds.values())
        return None


# ---------------------------------------------------------------------------
# Outbound: parlays
# ---------------------------------------------------------------------------

class ParlayLegOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    leg_id: str
    match_id: str
    market_type: str
    market_subtype: str
    line: Optional[float] = None
    consensus_prob: float
    decimal_odds: float
    market_implied_prob: float
    edge: float


class ParlayCombinationOut(BaseModel):
    """
    Payload handed to the persistence layer.

    The storage collaborator assigns its own identifier and deduplicates
    against history; nothing here is an id.
    """

    model_config = ConfigDict(from_attributes=True)

    match_ids: List[str]
    legs: List[ParlayLegOut]
    leg_count: int = Field(..., ge=2)
    combined_prob: float = Field(..., gt=0.0, lt=1.0)
    correlation_penalty: float = Field(..., gt=0.0, le=1.0)
    adjusted_prob: float = Field(..., gt=0.0, lt=1.0)
    implied_odds: float = Field(..., gt=1.0)
    parlay_decimal_odds: float
    parlay_edge: float
    confidence_tier: str
    parlay_type: Literal["single_game", "multi_game"]
    is_multi_game: bool
    has_correlated_legs: bool
    risk_level: Literal["low", "medium", "high", "very_high"]
    quality_score: float


# ---------------------------------------------------------------------------
# Outbound: betting intelligence
# ---------------------------------------------------------------------------

class ClvOut(BaseModel):
    home: Optional[float] = None
    draw: Optional[float] = None
    away: Optional[float] = None


class BestBetOut(BaseModel):
    pick: Optional[str] = None
    edge: Optional[float] = None
    recommendation: str = "PASS"


class KellySizingOut(BaseModel):
    full_kelly: float = 0.0
    fractional_kelly: float = 0.0
    recommended_stake_pct: float = 0.0
    max_stake_pct: float
    bankroll_stake: float = 0.0
    expected_value: float = 0.0
    recommended_units: float = 0.0


class BettingIntelligenceOut(BaseModel):
    """
    Display payload, grouped the way the match page renders it.

    ``available=False`` carries a ``reason`` and zeroed sizing so the UI can
    show "not available" without special-casing missing keys.
    """

    available: bool
    reason: Optional[str] = None
    clv: ClvOut
    best_bet: BestBetOut
    kelly_sizing: KellySizingOut

    @classmethod
    def from_result(cls, result: Any) -> "BettingIntelligenceOut":
        """Build from a ``BettingIntelligence`` dataclass."""
        clv = result.clv or {}
        return cls(
            available=result.available,
            reason=result.reason,
            clv=ClvOut(**clv),
            best_bet=BestBetOut(
                pick=result.pick,
                edge=result.edge,
                recommendation=result.recommendation,
            ),
            kelly_sizing=KellySizingOut(
                full_kelly=result.full_kelly,
                fractional_kelly=result.fractional_kelly,
                recommended_stake_pct=result.recommended_stake_pct,
                max_stake_pct=result.max_stake_pct,
                bankroll_stake=result.bankroll_stake,
                expected_value=result.expected_value,
                recommended_units=result.recommended_units,
            ),
        )
