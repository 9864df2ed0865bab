"""Market selections and the ``MarketLeg`` value object.

A selection is a closed tagged variant: one frozen dataclass per market
type, each carrying an enum of the subtypes that market actually offers.
``Totals(side=TotalsSide.OVER, line=2.5)`` is constructible;
``Totals`` with a ``HOME`` side is not, so a whole class of runtime checks
on ad-hoc subtype strings disappears.

Loose catalog strings are turned into variants exactly once, in
:func:`parse_selection`.  Adding a market means writing one more variant
class and registering it in :data:`SELECTION_TYPES`.

Typical usage::

    from parlay_edge.core.markets import MarketLeg, parse_selection

    leg = MarketLeg(
        leg_id="m1-home",
        match_id="M1",
        selection=parse_selection("1X2", "HOME"),
        consensus_prob=0.55,
        decimal_odds=2.00,
    )
    leg.edge  # 0.05
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import ClassVar, Dict, Mapping, Optional, Tuple, Type, Union

from parlay_edge.core import odds_math
from parlay_edge.core.errors import InvalidLegError


# ---------------------------------------------------------------------------
# Subtype enums
# ---------------------------------------------------------------------------


class ResultOutcome(str, enum.Enum):
    HOME = "HOME"
    DRAW = "DRAW"
    AWAY = "AWAY"


class TotalsSide(str, enum.Enum):
    OVER = "OVER"
    UNDER = "UNDER"


class YesNo(str, enum.Enum):
    YES = "YES"
    NO = "NO"


class DrawNoBetSide(str, enum.Enum):
    HOME = "HOME"
    AWAY = "AWAY"


class DoubleChanceSide(str, enum.Enum):
    HOME_OR_DRAW = "1X"
    DRAW_OR_AWAY = "X2"
    HOME_OR_AWAY = "12"


# ---------------------------------------------------------------------------
# Selection variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MatchResult:
    """Full-time 1X2 result."""

    MARKET_TYPE: ClassVar[str] = "1X2"
    outcome: ResultOutcome

    @property
    def subtype(self) -> str:
        return self.outcome.value

    @property
    def line(self) -> Optional[float]:
        return None


@dataclass(frozen=True)
class Totals:
    """Total goals over/under a line (2.5, 3.5, ...)."""

    MARKET_TYPE: ClassVar[str] = "TOTALS"
    side: TotalsSide
    line: float

    def __post_init__(self) -> None:
        if not isinstance(self.line, (int, float)) or not math.isfinite(self.line):
            raise InvalidLegError(f"TOTALS needs a finite numeric line, got {self.line!r}")

    @property
    def subtype(self) -> str:
        return self.side.value


@dataclass(frozen=True)
class BothTeamsScore:
    MARKET_TYPE: ClassVar[str] = "BTTS"
    outcome: YesNo

    @property
    def subtype(self) -> str:
        return self.outcome.value

    @property
    def line(self) -> Optional[float]:
        return None


@dataclass(frozen=True)
class DrawNoBet:
    """Stake returned on a draw."""

    MARKET_TYPE: ClassVar[str] = "DNB"
    side: DrawNoBetSide

    @property
    def subtype(self) -> str:
        return self.side.value

    @property
    def line(self) -> Optional[float]:
        return None


@dataclass(frozen=True)
class DoubleChance:
    MARKET_TYPE: ClassVar[str] = "DOUBLE_CHANCE"
    side: DoubleChanceSide

    @property
    def subtype(self) -> str:
        return self.side.value

    @property
    def line(self) -> Optional[float]:
        return None


MarketSelection = Union[MatchResult, Totals, BothTeamsScore, DrawNoBet, DoubleChance]

#: Registry of market type → (variant class, subtype enum).
SELECTION_TYPES: Dict[str, Tuple[Type, Type[enum.Enum]]] = {
    MatchResult.MARKET_TYPE: (MatchResult, ResultOutcome),
    Totals.MARKET_TYPE: (Totals, TotalsSide),
    BothTeamsScore.MARKET_TYPE: (BothTeamsScore, YesNo),
    DrawNoBet.MARKET_TYPE: (DrawNoBet, DrawNoBetSide),
    DoubleChance.MARKET_TYPE: (DoubleChance, DoubleChanceSide),
}


def parse_selection(
    market_type: str,
    subtype: Optional[str],
    line: Optional[float] = None,
) -> MarketSelection:
    """Build a selection variant from catalog strings.

    Matching is case-insensitive on both type and subtype.  ``line`` is
    required for ``TOTALS`` and ignored elsewhere.

    Raises:
        InvalidLegError: Unknown market type, a subtype the market does not
            offer, or a totals selection without a line.
    """
    key = (market_type or "").strip().upper()
    if key not in SELECTION_TYPES:
        raise InvalidLegError(f"Unknown market type {market_type!r}")
    variant_cls, subtype_enum = SELECTION_TYPES[key]

    try:
        member = subtype_enum((subtype or "").strip().upper())
    except ValueError:
        valid = ", ".join(m.value for m in subtype_enum)
        raise InvalidLegError(
            f"Subtype {subtype!r} is not valid for {key} (expected one of: {valid})"
        ) from None

    if variant_cls is Totals:
        if line is None:
            raise InvalidLegError("TOTALS selection requires a line")
        return Totals(side=member, line=float(line))
    return variant_cls(member)


# ---------------------------------------------------------------------------
# MarketLeg
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MarketLeg:
    """One tradable outcome for one match.

    ``market_implied_prob`` and ``edge`` are properties recomputed from
    ``(consensus_prob, decimal_odds)`` on every access, so they can never go
    stale relative to the price they describe.

    Raises:
        InvalidLegError: On construction, if ``decimal_odds ≤ 1.0`` or
            ``consensus_prob`` is outside ``(0, 1)``.
    """

    leg_id: str
    match_id: str
    selection: MarketSelection
    consensus_prob: float
    decimal_odds: float
    book_odds: Mapping[str, float] = field(default_factory=dict, compare=False, hash=False)
    model_agreement: Optional[float] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        try:
            odds_math.validate_probability(self.consensus_prob, "consensus_prob")
            odds_math.validate_decimal_odds(self.decimal_odds)
        except ValueError as exc:
            raise InvalidLegError(str(exc), leg_id=self.leg_id) from exc
        if self.model_agreement is not None and not (0.0 <= self.model_agreement <= 1.0):
            raise InvalidLegError(
                f"model_agreement must be in [0, 1], got {self.model_agreement!r}",
                leg_id=self.leg_id,
            )

    @property
    def market_type(self) -> str:
        return self.selection.MARKET_TYPE

    @property
    def market_subtype(self) -> str:
        return self.selection.subtype

    @property
    def line(self) -> Optional[float]:
        return self.selection.line

    @property
    def market_implied_prob(self) -> float:
        return 1.0 / self.decimal_odds

    @property
    def edge(self) -> float:
        return self.consensus_prob - self.market_implied_prob

    @property
    def logical_key(self) -> Tuple[str, str, str, Optional[float]]:
        """Identity used for dedup: the same bet regardless of leg id."""
        return (self.match_id, self.market_type, self.market_subtype, self.line)

    @property
    def label(self) -> str:
        """Short human-readable description, e.g. ``M1 TOTALS OVER 2.5``."""
        parts = [self.match_id, self.market_type, self.market_subtype]
        if self.line is not None:
            parts.append(f"{self.line:g}")
        return " ".join(parts)
