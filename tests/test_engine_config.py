"""
Tests for core/engine_config.py

Run with: pytest tests/test_engine_config.py -v
"""

import math
from dataclasses import replace

import pytest

from parlay_edge.core.engine_config import (
    DEFAULT_TIER_THRESHOLDS,
    GenerationConfig,
    IntelligenceConfig,
    TierThreshold,
    resolve_generation_config,
)
from parlay_edge.core.errors import ConfigurationError

_ENV_VARS = [
    "PARLAY_MIN_LEG_EDGE", "PARLAY_MIN_PARLAY_EDGE", "PARLAY_MIN_COMBINED_PROB",
    "PARLAY_MAX_LEG_COUNT", "PARLAY_MAX_RESULTS", "PARLAY_PARLAY_TYPE",
    "PARLAY_SINGLE_GAME_BASE_PENALTY", "PARLAY_MULTI_GAME_BASE_PENALTY",
    "PARLAY_CORRELATED_PAIR_PENALTY", "PARLAY_TOP_K_MATCHES",
    "PARLAY_MAX_LEGS_PER_MATCH", "PARLAY_MAX_COMBINATIONS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestDefaults:

    def test_documented_defaults(self):
        cfg = GenerationConfig()
        assert cfg.min_leg_edge == 0.0
        assert cfg.min_parlay_edge == 0.05
        assert cfg.min_combined_prob == 0.15
        assert cfg.max_leg_count == 5
        assert cfg.max_results == 20
        assert cfg.parlay_type == "both"
        assert cfg.single_game_base_penalty == 0.90
        assert cfg.multi_game_base_penalty == 0.97
        assert cfg.tier_thresholds == DEFAULT_TIER_THRESHOLDS

    def test_both_modes_enabled_by_default(self):
        cfg = GenerationConfig()
        assert cfg.wants_single_game and cfg.wants_multi_game

    def test_single_mode_flags(self):
        cfg = GenerationConfig(parlay_type="multi_game")
        assert cfg.wants_multi_game and not cfg.wants_single_game


class TestValidation:

    @pytest.mark.parametrize("overrides", [
        {"max_leg_count": 1},
        {"max_results": 0},
        {"parlay_type": "teasers"},
        {"min_combined_prob": 1.0},
        {"single_game_base_penalty": 0.0},
        {"multi_game_base_penalty": 1.2},
        {"top_k_matches": 1},
        {"max_combinations": 0},
        {"max_leg_count": 3.0},
        {"max_results": True},
        {"top_k_matches": "20"},
        {"max_legs_per_match": 2.5},
        {"max_combinations": 1e4},
    ])
    def test_out_of_range_fails_fast(self, overrides):
        with pytest.raises(ConfigurationError):
            GenerationConfig(**overrides)

    def test_tier_table_must_be_total(self):
        gappy = (TierThreshold("high", 0.15, 0.20), TierThreshold("low", 0.0, 0.0))
        with pytest.raises(ConfigurationError):
            GenerationConfig(tier_thresholds=gappy)

    def test_replace_revalidates(self):
        with pytest.raises(ConfigurationError):
            replace(GenerationConfig(), max_leg_count=1)


class TestResolve:

    def test_none_gives_defaults(self):
        assert resolve_generation_config(None) == GenerationConfig()

    def test_instance_returned_as_is(self):
        cfg = GenerationConfig(max_results=3)
        assert resolve_generation_config(cfg) is cfg

    def test_float_count_from_mapping_rejected(self):
        with pytest.raises(ConfigurationError, match="max_leg_count must be an integer"):
            resolve_generation_config({"maxLegCount": 3.0})

    def test_camel_case_partial_mapping(self):
        cfg = resolve_generation_config({"maxLegCount": 3, "parlayType": "single_game", "minParlayEdge": 0.1})
        assert cfg.max_leg_count == 3
        assert cfg.parlay_type == "single_game"
        assert cfg.min_parlay_edge == 0.1
        assert cfg.max_results == 20  # untouched default

    def test_none_values_take_defaults(self):
        cfg = resolve_generation_config({"max_results": None, "min_leg_edge": 0.02})
        assert cfg.max_results == 20
        assert cfg.min_leg_edge == 0.02

    def test_unknown_key_rejected(self):
        with pytest.raises(ConfigurationError, match="minModelAgreemnt"):
            resolve_generation_config({"minModelAgreemnt": 0.7})

    def test_invalid_value_rejected(self):
        with pytest.raises(ConfigurationError):
            resolve_generation_config({"maxLegCount": 1})

    def test_tier_thresholds_list_accepted(self):
        rows = [TierThreshold("high", 0.1, 0.1), TierThreshold("low", -math.inf, 0.0)]
        cfg = resolve_generation_config({"tier_thresholds": rows})
        assert cfg.tier_thresholds == tuple(rows)


class TestEnvironment:

    def test_env_overrides_defaults(self, monkeypatch):
        monkeypatch.setenv("PARLAY_MAX_LEG_COUNT", "3")
        monkeypatch.setenv("PARLAY_PARLAY_TYPE", "MULTI_GAME")
        cfg = resolve_generation_config(None)
        assert cfg.max_leg_count == 3
        assert cfg.parlay_type == "multi_game"

    def test_caller_overrides_env(self, monkeypatch):
        monkeypatch.setenv("PARLAY_MAX_RESULTS", "7")
        cfg = resolve_generation_config({"maxResults": 4})
        assert cfg.max_results == 4

    def test_env_ignored_when_disabled(self, monkeypatch):
        monkeypatch.setenv("PARLAY_MAX_RESULTS", "7")
        assert resolve_generation_config(None, use_env=False).max_results == 20

    def test_bad_env_value(self, monkeypatch):
        monkeypatch.setenv("PARLAY_MAX_LEG_COUNT", "three")
        with pytest.raises(ConfigurationError, match="PARLAY_MAX_LEG_COUNT"):
            resolve_generation_config(None)


class TestIntelligenceConfig:

    def test_defaults(self):
        cfg = IntelligenceConfig()
        assert cfg.kelly_fraction == 0.5
        assert cfg.max_stake_pct == 0.05

    @pytest.mark.parametrize("overrides", [
        {"kelly_fraction": 0.0},
        {"kelly_fraction": 1.5},
        {"max_stake_pct": 0.0},
        {"strong_bet_edge": 0.01, "value_bet_edge": 0.02},
    ])
    def test_invalid(self, overrides):
        with pytest.raises(ConfigurationError):
            IntelligenceConfig(**overrides)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("KELLY_FRACTION", "0.25")
        monkeypatch.delenv("MAX_STAKE_PCT", raising=False)
        cfg = IntelligenceConfig.from_env()
        assert cfg.kelly_fraction == 0.25
        assert cfg.max_stake_pct == 0.05
