"""Engine configuration — every tunable threshold in one place.

Nowhere else in the codebase should edge floors, correlation penalties,
tier thresholds or stake caps be hard-coded.

Architecture
------------
:class:`GenerationConfig` and :class:`IntelligenceConfig` are frozen
dataclasses whose fields all carry a documented default.  Construction
validates every field and raises :class:`ConfigurationError` on misuse, so
an instance that exists is always usable.

Defaults are merged exactly once, at the entry point, by
:func:`resolve_generation_config`::

    dataclass defaults  →  PARLAY_* environment variables  →  caller overrides

Callers may override with a ready-made ``GenerationConfig`` or with a
partial mapping using either the snake_case field names or the camelCase
names the admin tooling sends (``minLegEdge``, ``maxLegCount``, ...).

Typical usage::

    from parlay_edge.core.engine_config import resolve_generation_config

    cfg = resolve_generation_config({"maxLegCount": 3, "parlayType": "multi_game"})

    # Tweak a single constant for an experiment:
    from dataclasses import replace
    strict = replace(cfg, min_parlay_edge=0.10)

The correlation penalties and tier thresholds encode a business judgement
about safety margin, not a measured covariance; they are exposed here so
they can be recalibrated against real catalog data without code changes.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Callable, Dict, Final, Mapping, Optional, Tuple, Union

from dotenv import load_dotenv

from parlay_edge.core.errors import ConfigurationError
from parlay_edge.core.kelly import DEFAULT_KELLY_FRACTION, DEFAULT_MAX_STAKE_PCT

#: Parlay type identifiers used in config and on every combination.
PARLAY_TYPE_SINGLE_GAME: Final[str] = "single_game"
PARLAY_TYPE_MULTI_GAME: Final[str] = "multi_game"
PARLAY_TYPE_BOTH: Final[str] = "both"
_PARLAY_TYPES: Final[Tuple[str, ...]] = (
    PARLAY_TYPE_SINGLE_GAME,
    PARLAY_TYPE_MULTI_GAME,
    PARLAY_TYPE_BOTH,
)

#: Prefix for environment overrides, e.g. ``PARLAY_MAX_LEG_COUNT=4``.
ENV_PREFIX: Final[str] = "PARLAY_"

# Fields that must be plain ints, not floats or bools.
_INT_FIELDS: Final[Tuple[str, ...]] = (
    "max_leg_count",
    "max_results",
    "top_k_matches",
    "max_legs_per_match",
    "max_combinations",
)


# ---------------------------------------------------------------------------
# Confidence tiers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TierThreshold:
    """One row of the confidence-tier table.

    A combination earns ``tier`` when ``parlay_edge ≥ min_edge`` **and**
    ``adjusted_prob ≥ min_prob``.
    """

    tier: str
    min_edge: float
    min_prob: float


#: Evaluated top-down; the first satisfied row wins.  The final row accepts
#: everything, so every combination maps to exactly one tier.
DEFAULT_TIER_THRESHOLDS: Final[Tuple[TierThreshold, ...]] = (
    TierThreshold("very_high", min_edge=0.25, min_prob=0.30),
    TierThreshold("high", min_edge=0.15, min_prob=0.20),
    TierThreshold("medium", min_edge=0.08, min_prob=0.10),
    TierThreshold("low", min_edge=-math.inf, min_prob=0.0),
)


# ---------------------------------------------------------------------------
# Generation config
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GenerationConfig:
    """Immutable input to one parlay generation run.

    Attributes:
        min_leg_edge: Legs with ``edge`` below this are discarded before
            any combination is built.
        min_parlay_edge: Combinations with ``parlay_edge`` below this are
            dropped during ranking.
        min_combined_prob: Floor on ``adjusted_prob`` (after the
            correlation penalty).
        max_leg_count: Largest parlay to build.  At least 2.
        max_results: Length of the returned list.  At least 1.
        parlay_type: ``single_game``, ``multi_game`` or ``both``.

        --- Correlation model ---
        single_game_base_penalty: Multiplier applied once per leg beyond
            the first when all legs share one match.
        multi_game_base_penalty: Same, for legs on distinct matches.
            Milder because cross-match outcomes are close to independent.
        correlated_pair_penalty: Extra multiplier applied once when the
            leg set contains a known correlated same-match pair (home win
            with over 2.5, and so on).  1.0 disables it.

        --- Search bounds ---
        top_k_matches: Multi-game mode only considers the best K matches
            by single-leg edge.  Work grows as C(K, leg_count).
        max_legs_per_match: Single-game mode only considers the best N
            legs of each match.
        max_combinations: Work-unit cap for one run.  Each evaluated
            subset costs one unit; once spent, the candidate pool is
            truncated.

        --- Ranking ---
        tier_thresholds: Confidence-tier table, see :class:`TierThreshold`.
    """

    min_leg_edge: float = 0.0
    min_parlay_edge: float = 0.05
    min_combined_prob: float = 0.15
    max_leg_count: int = 5
    max_results: int = 20
    parlay_type: str = PARLAY_TYPE_BOTH

    single_game_base_penalty: float = 0.90
    multi_game_base_penalty: float = 0.97
    correlated_pair_penalty: float = 1.0

    top_k_matches: int = 20
    max_legs_per_match: int = 10
    max_combinations: int = 10_000

    tier_thresholds: Tuple[TierThreshold, ...] = field(default=DEFAULT_TIER_THRESHOLDS)

    def __post_init__(self) -> None:
        for name in _INT_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{name} must be an integer, got {value!r}")
        if self.max_leg_count < 2:
            raise ConfigurationError(
                f"max_leg_count must be ≥ 2 (a parlay needs two legs), got {self.max_leg_count!r}"
            )
        if self.max_results < 1:
            raise ConfigurationError(f"max_results must be ≥ 1, got {self.max_results!r}")
        if self.parlay_type not in _PARLAY_TYPES:
            raise ConfigurationError(
                f"parlay_type must be one of {', '.join(_PARLAY_TYPES)}, got {self.parlay_type!r}"
            )
        if not (0.0 <= self.min_combined_prob < 1.0):
            raise ConfigurationError(
                f"min_combined_prob must be in [0, 1), got {self.min_combined_prob!r}"
            )
        if not (-1.0 <= self.min_leg_edge < 1.0):
            raise ConfigurationError(f"min_leg_edge must be in [-1, 1), got {self.min_leg_edge!r}")
        if self.min_parlay_edge < -1.0 or math.isnan(self.min_parlay_edge):
            raise ConfigurationError(
                f"min_parlay_edge must be ≥ -1 (a total loss), got {self.min_parlay_edge!r}"
            )
        for name in ("single_game_base_penalty", "multi_game_base_penalty", "correlated_pair_penalty"):
            value = getattr(self, name)
            if not (0.0 < value <= 1.0):
                raise ConfigurationError(f"{name} must be in (0, 1], got {value!r}")
        if self.top_k_matches < 2:
            raise ConfigurationError(f"top_k_matches must be ≥ 2, got {self.top_k_matches!r}")
        if self.max_legs_per_match < 2:
            raise ConfigurationError(
                f"max_legs_per_match must be ≥ 2, got {self.max_legs_per_match!r}"
            )
        if self.max_combinations < 1:
            raise ConfigurationError(
                f"max_combinations must be ≥ 1, got {self.max_combinations!r}"
            )
        _validate_tier_table(self.tier_thresholds)

    @property
    def wants_single_game(self) -> bool:
        return self.parlay_type in (PARLAY_TYPE_SINGLE_GAME, PARLAY_TYPE_BOTH)

    @property
    def wants_multi_game(self) -> bool:
        return self.parlay_type in (PARLAY_TYPE_MULTI_GAME, PARLAY_TYPE_BOTH)

    @classmethod
    def from_env(cls, base: Optional["GenerationConfig"] = None) -> "GenerationConfig":
        """Apply ``PARLAY_*`` environment variables on top of ``base``.

        Reads ``.env`` first.  Unset variables leave the base value alone.
        """
        load_dotenv()
        base = base or cls()
        overrides: Dict[str, Any] = {}
        for name, parse in _ENV_PARSERS.items():
            raw = os.getenv(ENV_PREFIX + name.upper())
            if raw is None or raw.strip() == "":
                continue
            try:
                overrides[name] = parse(raw.strip())
            except ValueError as exc:
                raise ConfigurationError(
                    f"Environment variable {ENV_PREFIX + name.upper()}={raw!r} is invalid: {exc}"
                ) from exc
        return replace(base, **overrides) if overrides else base


def _validate_tier_table(table: Tuple[TierThreshold, ...]) -> None:
    if not table:
        raise ConfigurationError("tier_thresholds must contain at least one row")
    last = table[-1]
    if last.min_edge != -math.inf or last.min_prob > 0.0:
        raise ConfigurationError(
            "The last tier threshold must accept every combination "
            "(min_edge=-inf, min_prob=0) so tier assignment is total"
        )


_ENV_PARSERS: Dict[str, Callable[[str], Any]] = {
    "min_leg_edge": float,
    "min_parlay_edge": float,
    "min_combined_prob": float,
    "max_leg_count": int,
    "max_results": int,
    "parlay_type": str.lower,
    "single_game_base_penalty": float,
    "multi_game_base_penalty": float,
    "correlated_pair_penalty": float,
    "top_k_matches": int,
    "max_legs_per_match": int,
    "max_combinations": int,
}

#: camelCase names sent by the admin generator → dataclass field names.
_CAMEL_ALIASES: Dict[str, str] = {
    "minLegEdge": "min_leg_edge",
    "minParlayEdge": "min_parlay_edge",
    "minCombinedProb": "min_combined_prob",
    "maxLegCount": "max_leg_count",
    "maxResults": "max_results",
    "parlayType": "parlay_type",
    "singleGameBasePenalty": "single_game_base_penalty",
    "multiGameBasePenalty": "multi_game_base_penalty",
    "correlatedPairPenalty": "correlated_pair_penalty",
    "topKMatches": "top_k_matches",
    "maxLegsPerMatch": "max_legs_per_match",
    "maxCombinations": "max_combinations",
    "tierThresholds": "tier_thresholds",
}


def resolve_generation_config(
    overrides: Union[GenerationConfig, Mapping[str, Any], None] = None,
    *,
    use_env: bool = True,
) -> GenerationConfig:
    """The single defaults merge step for a generation run.

    Args:
        overrides: ``None`` for defaults, a complete ``GenerationConfig``
            (returned as-is), or a partial mapping.  ``None`` values in the
            mapping mean "use the default".
        use_env: Layer ``PARLAY_*`` environment variables between the
            dataclass defaults and the mapping.

    Raises:
        ConfigurationError: Unknown keys or out-of-range values.
    """
    if isinstance(overrides, GenerationConfig):
        return overrides

    base = GenerationConfig.from_env() if use_env else GenerationConfig()
    if not overrides:
        return base

    known = {f.name for f in fields(GenerationConfig)}
    normalised: Dict[str, Any] = {}
    for key, value in overrides.items():
        name = _CAMEL_ALIASES.get(key, key)
        if name not in known:
            raise ConfigurationError(f"Unknown generation config option {key!r}")
        if value is None:
            continue
        normalised[name] = value
    if "tier_thresholds" in normalised:
        normalised["tier_thresholds"] = tuple(normalised["tier_thresholds"])
    try:
        return replace(base, **normalised)
    except TypeError as exc:
        raise ConfigurationError(f"Invalid generation config: {exc}") from exc


# ---------------------------------------------------------------------------
# Betting intelligence config
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IntelligenceConfig:
    """Sizing and labelling constants for single-bet guidance.

    Attributes:
        kelly_fraction: Multiplier on full Kelly.  0.5 = half Kelly.
        max_stake_pct: Hard ceiling on the recommended stake as a fraction
            of bankroll.  Never bypassed.
        strong_bet_edge: Edge at or above which a bet is ``STRONG BET``.
        value_bet_edge: Edge at or above which a bet is ``VALUE BET``;
            anything lower is ``PASS``.
        devig_closing_line: Compare against no-vig closing probabilities
            instead of raw ``1 / odds`` when computing CLV.
    """

    kelly_fraction: float = DEFAULT_KELLY_FRACTION
    max_stake_pct: float = DEFAULT_MAX_STAKE_PCT
    strong_bet_edge: float = 0.05
    value_bet_edge: float = 0.02
    devig_closing_line: bool = False

    def __post_init__(self) -> None:
        if not (0.0 < self.kelly_fraction <= 1.0):
            raise ConfigurationError(f"kelly_fraction must be in (0, 1], got {self.kelly_fraction!r}")
        if not (0.0 < self.max_stake_pct <= 1.0):
            raise ConfigurationError(f"max_stake_pct must be in (0, 1], got {self.max_stake_pct!r}")
        if self.strong_bet_edge < self.value_bet_edge:
            raise ConfigurationError(
                "strong_bet_edge must be ≥ value_bet_edge "
                f"(got {self.strong_bet_edge!r} < {self.value_bet_edge!r})"
            )

    @classmethod
    def from_env(cls) -> "IntelligenceConfig":
        """Read ``KELLY_FRACTION`` / ``MAX_STAKE_PCT`` overrides from the environment."""
        load_dotenv()
        overrides: Dict[str, Any] = {}
        for name in ("kelly_fraction", "max_stake_pct"):
            raw = os.getenv(name.upper())
            if raw:
                try:
                    overrides[name] = float(raw)
                except ValueError as exc:
                    raise ConfigurationError(f"{name.upper()}={raw!r} is not a number") from exc
        return cls(**overrides)
