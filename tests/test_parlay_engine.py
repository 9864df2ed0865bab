"""
Tests for parlay_engine.py

Run with: pytest tests/test_parlay_engine.py -v
"""

from unittest.mock import MagicMock

import pytest

from parlay_edge.core.errors import ConfigurationError
from parlay_edge.services.leg_catalog import InMemoryLegCatalog
from parlay_edge.services.parlay_engine import (
    format_parlay_ticket,
    generate_best_parlays,
    parlays_to_payload,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("PARLAY_MIN_PARLAY_EDGE", "PARLAY_MIN_COMBINED_PROB", "PARLAY_MAX_LEG_COUNT",
                 "PARLAY_MAX_RESULTS", "PARLAY_PARLAY_TYPE", "PARLAY_MIN_LEG_EDGE",
                 "PARLAY_MAX_COMBINATIONS", "PARLAY_TOP_K_MATCHES"):
        monkeypatch.delenv(name, raising=False)


def _row(leg_id, match_id, market_type, subtype, prob, odds, line=None):
    return {
        "id": leg_id,
        "match_id": match_id,
        "market_type": market_type,
        "market_subtype": subtype,
        "line": line,
        "consensus_prob": prob,
        "decimal_odds": odds,
        "model_agreement": 0.8,
    }


SLATE = [
    _row("m1-home", "M1", "1X2", "HOME", 0.60, 2.00),              # edge .10
    _row("m1-over", "M1", "TOTALS", "OVER", 0.62, 1.85, 2.5),      # edge .0795
    _row("m1-btts", "M1", "BTTS", "YES", 0.58, 1.90),              # edge .0537
    _row("m1-away", "M1", "1X2", "AWAY", 0.20, 4.50),              # edge -.022
    _row("m2-home", "M2", "1X2", "HOME", 0.55, 2.00),              # edge .05
    _row("m2-under", "M2", "TOTALS", "UNDER", 0.52, 2.05, 2.5),    # edge .0322
    _row("m3-dnb", "M3", "DNB", "HOME", 0.70, 1.55),               # edge .0548
    _row("m4-btts", "M4", "BTTS", "NO", 0.50, 2.10),               # edge .0238
    _row("m5-bad", "M5", "1X2", "HOME", 0.55, 1.00),               # invalid price
]


@pytest.fixture
def catalog():
    return InMemoryLegCatalog(SLATE)


class TestGenerateBestParlays:

    def test_best_parlay_is_three_match_ticket(self, catalog):
        """M1 HOME + M2 HOME + M3 DNB: 0.231 × 0.97² × 6.20 − 1."""
        parlays = generate_best_parlays(catalog=catalog)
        best = parlays[0]

        assert best.match_ids == ("M1", "M2", "M3")
        assert best.parlay_type == "multi_game"
        assert best.combined_prob == pytest.approx(0.231)
        assert best.correlation_penalty == pytest.approx(0.97 ** 2)
        assert best.adjusted_prob == pytest.approx(0.2173479)
        assert best.parlay_decimal_odds == pytest.approx(6.20)
        assert best.parlay_edge == pytest.approx(0.347557, abs=1e-5)
        assert best.confidence_tier == "high"
        assert best.risk_level == "low"

        assert parlays[1].match_ids == ("M1", "M2", "M4")
        assert parlays[1].parlay_edge == pytest.approx(0.30409, abs=1e-4)

    def test_single_game_only(self, catalog):
        """Best same-game pair on M1 is HOME + OVER 2.5 at a 0.90 penalty."""
        parlays = generate_best_parlays({"parlay_type": "single_game", "max_leg_count": 2}, catalog)
        best = parlays[0]
        assert {leg.leg_id for leg in best.legs} == {"m1-home", "m1-over"}
        assert best.correlation_penalty == pytest.approx(0.90)
        assert best.parlay_edge == pytest.approx(0.372 * 0.90 * 3.70 - 1.0)
        assert best.has_correlated_legs
        assert all(p.parlay_type == "single_game" for p in parlays)

    def test_output_invariants(self, catalog):
        parlays = generate_best_parlays(
            {"min_parlay_edge": -1.0, "min_combined_prob": 0.0, "max_results": 100}, catalog,
        )
        assert parlays
        for p in parlays:
            assert p.leg_count == len(p.legs) >= 2
            assert p.adjusted_prob == pytest.approx(p.combined_prob * p.correlation_penalty)
            assert p.adjusted_prob <= p.combined_prob
            assert p.implied_odds == pytest.approx(1.0 / p.adjusted_prob)
            assert len({(leg.match_id, leg.market_type) for leg in p.legs}) == p.leg_count
            if p.parlay_type == "single_game":
                assert len({leg.match_id for leg in p.legs}) == 1
            else:
                assert len({leg.match_id for leg in p.legs}) == p.leg_count
            assert all(leg.leg_id not in ("m1-away", "m5-bad") for leg in p.legs)
        # 5 same-game + C(4,2)+C(4,3)+C(4,4) cross-match tickets
        assert len(parlays) == 5 + 11

    def test_results_sorted_and_deduplicated(self, catalog):
        parlays = generate_best_parlays({"min_parlay_edge": 0.0}, catalog)
        edges = [p.parlay_edge for p in parlays]
        assert edges == sorted(edges, reverse=True)
        keys = [frozenset(leg.logical_key for leg in p.legs) for p in parlays]
        assert len(keys) == len(set(keys))

    def test_thresholds_respected(self, catalog):
        parlays = generate_best_parlays({"minParlayEdge": 0.25, "minCombinedProb": 0.20}, catalog)
        assert parlays
        assert all(p.parlay_edge >= 0.25 and p.adjusted_prob >= 0.20 for p in parlays)

    def test_max_results(self, catalog):
        assert len(generate_best_parlays({"max_results": 3}, catalog)) == 3

    def test_reproducible(self, catalog):
        first = generate_best_parlays(catalog=catalog)
        second = generate_best_parlays(catalog=InMemoryLegCatalog(list(reversed(SLATE))))
        assert [[l.leg_id for l in p.legs] for p in first] == [[l.leg_id for l in p.legs] for p in second]

    def test_catalog_queried_once(self):
        """The engine reads one snapshot per run."""
        catalog = MagicMock()
        catalog.fetch_legs.return_value = InMemoryLegCatalog(SLATE).fetch_legs()

        parlays = generate_best_parlays(catalog=catalog)

        catalog.fetch_legs.assert_called_once_with()
        assert parlays

    def test_empty_catalog(self):
        assert generate_best_parlays(catalog=InMemoryLegCatalog([])) == []

    def test_single_match_single_leg_gives_nothing(self):
        catalog = InMemoryLegCatalog([SLATE[0]])
        assert generate_best_parlays(catalog=catalog) == []

    def test_invalid_config_raises(self, catalog):
        with pytest.raises(ConfigurationError):
            generate_best_parlays({"maxLegCount": 1}, catalog)
        with pytest.raises(ConfigurationError):
            generate_best_parlays({"not_an_option": 3}, catalog)
        with pytest.raises(ConfigurationError):
            generate_best_parlays({"maxLegCount": 3.0}, catalog)

    def test_env_overrides_defaults_but_not_caller(self, catalog, monkeypatch):
        monkeypatch.setenv("PARLAY_MAX_RESULTS", "2")
        assert len(generate_best_parlays(catalog=catalog)) == 2
        assert len(generate_best_parlays({"max_results": 4}, catalog)) == 4


class TestPayload:

    def test_payload_fields(self, catalog):
        payload = parlays_to_payload(generate_best_parlays({"max_results": 2}, catalog))
        assert len(payload) == 2
        first = payload[0]
        assert first["match_ids"] == ["M1", "M2", "M3"]
        assert first["leg_count"] == 3
        assert first["legs"][0]["edge"] == pytest.approx(0.10)
        assert first["legs"][0]["market_implied_prob"] == pytest.approx(0.50)
        assert first["parlay_type"] == "multi_game"
        assert "id" not in first

    def test_empty_payload(self):
        assert parlays_to_payload([]) == []


class TestFormatParlayTicket:

    def test_format_multi_game_ticket(self, catalog):
        """Ticket shows the price, every leg and the hit probability."""
        output = format_parlay_ticket(generate_best_parlays(catalog=catalog)[0])

        assert "3-Leg Multi-Game Parlay @ 6.20 (+520)" in output
        assert "M1 1X2 HOME @ 2.00" in output
        assert "M3 DNB HOME @ 1.55" in output
        assert "Hit Prob: 21.73%" in output
        assert "Confidence: high | Risk: low" in output

    def test_format_same_game_ticket_shows_line(self, catalog):
        parlay = generate_best_parlays({"parlay_type": "single_game", "max_leg_count": 2}, catalog)[0]
        output = format_parlay_ticket(parlay)
        assert "2-Leg Same-Game Parlay" in output
        assert "M1 TOTALS OVER 2.5" in output
