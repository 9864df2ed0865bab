"""
Tests for core/odds_math.py

Run with: pytest tests/test_odds_math.py -v
"""

import pytest

from parlay_edge.core.odds_math import (
    combine_decimal_odds,
    decimal_to_american,
    expected_return,
    implied_prob,
    leg_edge,
    remove_vig_proportional,
)


class TestOddsConversion:

    def test_decimal_to_american(self):
        assert decimal_to_american(2.5) == 150
        assert decimal_to_american(1.5) == -200
        assert decimal_to_american(2.0) == 100

    @pytest.mark.parametrize("bad", [1.0, 0.5, 0.0, -2.0, float("nan"), float("inf")])
    def test_invalid_decimal_rejected(self, bad):
        with pytest.raises(ValueError):
            implied_prob(bad)

    def test_implied_prob(self):
        assert implied_prob(2.0) == pytest.approx(0.5)
        assert implied_prob(4.0) == pytest.approx(0.25)


class TestEdge:

    def test_even_money_edge(self):
        # 55% model probability at 2.00 → 5% edge
        assert leg_edge(0.55, 2.00) == pytest.approx(0.05)

    def test_negative_edge(self):
        assert leg_edge(0.40, 2.00) == pytest.approx(-0.10)

    @pytest.mark.parametrize("prob", [0.0, 1.0, 1.2, -0.1])
    def test_probability_out_of_range(self, prob):
        with pytest.raises(ValueError):
            leg_edge(prob, 2.0)

    def test_combine_and_expected_return(self):
        odds = combine_decimal_odds([2.0, 1.5, 3.0])
        assert odds == pytest.approx(9.0)
        assert expected_return(0.12, odds) == pytest.approx(0.08)


class TestVigRemoval:

    def test_three_way_sums_to_one(self):
        probs = remove_vig_proportional([2.10, 3.40, 3.60])
        assert sum(probs) == pytest.approx(1.0)
        assert probs[0] > probs[1] > probs[2]

    def test_fair_market_unchanged(self):
        probs = remove_vig_proportional([2.0, 2.0])
        assert probs == pytest.approx((0.5, 0.5))

    def test_needs_two_outcomes(self):
        with pytest.raises(ValueError):
            remove_vig_proportional([2.0])
