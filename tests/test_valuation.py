"""
Tests for equity valuation models
Run with: pytest tests/test_valuation.py -v
"""

import logging
import math

import pytest

from quant_engine.core.errors import InvalidInputs
from quant_engine.services.valuation import (
    CompositeValuation,
    StockForScreening,
    composite_valuation,
    cost_of_equity,
    dcf,
    dcf_fair_value,
    dividend_discount_value,
    dupont_analysis,
    future_value,
    graham_analysis,
    graham_fair_value,
    graham_number,
    investment_rating,
    is_net_net,
    margin_of_safety,
    modified_graham_value,
    ncav,
    owner_earnings_value,
    pbv_valuation,
    pe_fair_value,
    peg_ratio,
    present_value,
    reverse_dcf,
    screen_defensive_stocks,
    sustainable_growth_rate,
    upside_potential,
    valuation_confidence,
    valuation_rating,
    wacc,
)


class TestTimeValue:

    def test_present_value(self):
        assert present_value(110.0, 10.0, 1) == pytest.approx(100.0)

    def test_future_value(self):
        assert future_value(100.0, 10.0, 2) == pytest.approx(121.0)

    def test_wacc_percent(self):
        # 60% × 10 + 40% × 5 × (1 − 0.25)
        assert wacc(60, 40, 10, 5, 25) == pytest.approx(7.5)

    def test_cost_of_equity(self):
        assert cost_of_equity(3.0, 1.2, 8.0) == pytest.approx(9.0)

    def test_sustainable_growth(self):
        assert sustainable_growth_rate(20.0, 60.0) == pytest.approx(12.0)


class TestDCF:
    """Discounted cash flow with Gordon terminal value"""

    def setup_method(self):
        self.result = dcf(100_000_000, 10.0, 3.0, 10.0, 5, 10_000_000)

    def test_first_year_projection(self):
        first = self.result.projected_cash_flows[0]
        assert first.year == 1
        assert first.cash_flow == pytest.approx(110_000_000)
        assert first.present_value == pytest.approx(100_000_000)

    def test_projection_count_and_growth(self):
        flows = [p.cash_flow for p in self.result.projected_cash_flows]
        assert len(flows) == 5
        assert flows == sorted(flows)

    def test_terminal_value(self):
        last = self.result.projected_cash_flows[-1].cash_flow
        assert self.result.terminal_value == pytest.approx(last * 1.03 / 0.07)

    def test_totals_add_up(self):
        r = self.result
        assert r.intrinsic_value == pytest.approx(r.pv_cash_flows + r.pv_terminal)
        assert r.per_share_value == pytest.approx(r.intrinsic_value / 10_000_000)

    def test_discount_equal_to_terminal_growth_raises(self):
        with pytest.raises(InvalidInputs) as exc:
            dcf(1_000_000, 5.0, 8.0, 8.0, 5, 1_000)
        assert exc.value.field == "discount_rate"

    def test_discount_below_terminal_growth_raises(self):
        with pytest.raises(InvalidInputs):
            dcf(1_000_000, 5.0, 4.0, 3.0, 5, 1_000)

    def test_negative_years_raises(self):
        with pytest.raises(InvalidInputs):
            dcf(1_000_000, 5.0, 3.0, 10.0, -1, 1_000)

    def test_zero_years_is_terminal_only(self):
        r = dcf(1_000.0, 5.0, 2.0, 10.0, 0, 10)
        assert r.projected_cash_flows == []
        assert r.intrinsic_value == pytest.approx(1_000.0 * 1.02 / 0.08)

    def test_zero_shares(self):
        assert dcf(1_000.0, 5.0, 2.0, 10.0, 3, 0).per_share_value == 0.0

    def test_invalid_inputs_is_a_value_error(self):
        with pytest.raises(ValueError):
            dcf(1_000.0, 5.0, 12.0, 10.0, 3, 10)


class TestReverseDCF:

    def test_recovers_growth_rate(self):
        target = dcf(100_000_000, 10.0, 3.0, 10.0, 5, 10_000_000).per_share_value
        implied = reverse_dcf(target, 10_000_000, 100_000_000, 10.0, 3.0, 5)
        assert implied == pytest.approx(10.0, abs=0.5)

    def test_pins_to_upper_bracket(self):
        implied = reverse_dcf(1e12, 1_000, 1_000.0, 10.0, 3.0, 5)
        assert implied == pytest.approx(50.0, abs=0.01)

    def test_invalid_discount_raises(self):
        with pytest.raises(InvalidInputs):
            reverse_dcf(10.0, 1_000, 1_000.0, 3.0, 3.0, 5)


class TestOwnerEarnings:

    def test_positive_value(self):
        assert owner_earnings_value(1_000.0, 5.0, 10.0, 10) > 0

    def test_growth_equal_to_discount_is_finite(self):
        # each explicit year discounts back to 1000; terminal PV is 1000 × 1.03 / 0.07
        value = owner_earnings_value(1_000.0, 10.0, 10.0, 10)
        assert math.isfinite(value)
        assert value == pytest.approx(10_000.0 + 1_030.0 / 0.07)

    def test_growth_above_discount_is_finite(self):
        assert owner_earnings_value(1_000.0, 15.0, 10.0, 5) > owner_earnings_value(1_000.0, 10.0, 10.0, 5)

    def test_discount_not_above_perpetual_rate_raises(self):
        with pytest.raises(InvalidInputs):
            owner_earnings_value(1_000.0, 2.0, 3.0, 10)


class TestGraham:
    """Graham Number, revised formula and investor screens"""

    def test_graham_number(self):
        assert graham_number(2.0, 20.0) == pytest.approx(30.0)

    @pytest.mark.parametrize("eps, bv", [(0.0, 20.0), (-1.0, 20.0), (2.0, 0.0)])
    def test_graham_number_non_positive(self, eps, bv):
        assert graham_number(eps, bv) == 0.0

    def test_modified_value(self):
        assert modified_graham_value(2.0, 5.0) == pytest.approx(37.0)

    def test_modified_value_high_yield(self):
        assert modified_graham_value(2.0, 5.0, aaa_yield=8.8) == pytest.approx(18.5)

    def test_modified_value_floored(self):
        assert modified_graham_value(2.0, -10.0) == 0.0

    def test_modified_value_bad_yield_defaults(self):
        assert modified_graham_value(2.0, 5.0, aaa_yield=0.0) == pytest.approx(37.0)

    def test_analysis(self):
        r = graham_analysis(2.0, 20.0, 20.0, growth_rate=5.0)
        assert r.intrinsic_value == pytest.approx(37.0)
        assert r.pe_ratio == pytest.approx(10.0)
        assert r.pb_ratio == pytest.approx(1.0)
        assert r.peg == pytest.approx(2.0)
        assert r.margin_of_safety == pytest.approx(45.95, abs=0.01)
        assert r.rating == "undervalued"
        assert r.is_defensive
        assert r.is_enterprising

    def test_analysis_negative_eps(self):
        r = graham_analysis(-1.0, 20.0, 20.0)
        assert r.pe_ratio == 0.0
        assert r.peg is None
        assert not r.is_defensive
        assert r.intrinsic_value == 0.0
        assert r.margin_of_safety == 0.0

    def test_expensive_stock_fails_screens(self):
        r = graham_analysis(1.0, 5.0, 30.0)
        assert not r.is_defensive
        assert not r.is_enterprising
        assert r.rating == "overvalued"

    def test_screen_defensive(self):
        stocks = [
            StockForScreening("AAA", 2.0, 20.0, 20.0),
            StockForScreening("BBB", 1.0, 10.0, 30.0),
            StockForScreening("CCC", -1.0, 10.0, 5.0),
            StockForScreening("DDD", 2.0, 10.0, 14.0),
        ]
        assert screen_defensive_stocks(stocks) == ["AAA", "DDD"]

    def test_ncav(self):
        r = ncav(500.0, 200.0, 100)
        assert r.ncav == pytest.approx(300.0)
        assert r.ncav_per_share == pytest.approx(3.0)

    def test_net_net(self):
        assert is_net_net(500.0, 200.0, 150.0)
        assert not is_net_net(500.0, 200.0, 250.0)


class TestRatingBands:

    @pytest.mark.parametrize("mos, rating", [
        (45.0, "undervalued"),
        (30.0, "undervalued"),
        (29.9, "fair_value"),
        (-10.0, "fair_value"),
        (-10.1, "overvalued"),
    ])
    def test_graham_bands(self, mos, rating):
        assert valuation_rating(mos) == rating

    @pytest.mark.parametrize("upside, rating", [
        (30.0, "Strong Buy"),
        (15.0, "Buy"),
        (14.9, "Hold"),
        (-5.0, "Hold"),
        (-5.1, "Sell"),
        (-15.0, "Sell"),
        (-15.1, "Strong Sell"),
    ])
    def test_investment_bands(self, upside, rating):
        assert investment_rating(upside) == rating

    def test_margin_of_safety_zero_intrinsic(self):
        assert margin_of_safety(0.0, 10.0) == 0.0

    def test_upside_zero_price(self):
        assert upside_potential(10.0, 0.0) == 0.0


class TestFairValueRecords:

    @pytest.mark.parametrize("method, volume, cap, expected", [
        ("DCF", 2_000_000, 20_000_000_000, 80.0),
        ("Graham", 2_000_000, 20_000_000_000, 85.0),
        ("P/E", 0, 5_000_000_000, 60.0),
        ("P/E", 0, 0, 50.0),
    ])
    def test_confidence(self, method, volume, cap, expected):
        assert valuation_confidence(method, volume, cap) == pytest.approx(expected)

    def test_pe_fair_value(self):
        r = pe_fair_value(100.0, 5.0, 24.0)
        assert r.method == "P/E"
        assert r.fair_value == pytest.approx(120.0)
        assert r.upside_percent == pytest.approx(20.0)
        assert r.rating == "Buy"

    def test_graham_fair_value(self):
        r = graham_fair_value(20.0, 2.0, 20.0, volume=2_000_000, market_cap=20_000_000_000)
        assert r.fair_value == pytest.approx(30.0)
        assert r.upside_percent == pytest.approx(50.0)
        assert r.rating == "Strong Buy"
        assert r.confidence == pytest.approx(85.0)

    def test_graham_fair_value_requires_positive_inputs(self):
        with pytest.raises(InvalidInputs) as exc:
            graham_fair_value(20.0, 0.0, 20.0)
        assert exc.value.field == "eps"

    def test_dcf_fair_value(self):
        r = dcf_fair_value(10.0, 100_000_000, 10.0, 10.0, 5, 10_000_000)
        expected = dcf(100_000_000, 10.0, 3.0, 10.0, 5, 10_000_000).per_share_value
        assert r.method == "DCF"
        assert r.fair_value == pytest.approx(expected)

    def test_pbv_valuation(self):
        assert pbv_valuation(12.0, 1.5) == pytest.approx(18.0)


class TestDividendDiscount:

    def test_gordon_growth(self):
        # D1 = 2.10, r − g = 5%
        assert dividend_discount_value(2.0, 5.0, 10.0) == pytest.approx(42.0)

    def test_zero_growth_is_a_perpetuity(self):
        assert dividend_discount_value(3.0, 0.0, 6.0) == pytest.approx(50.0)

    @pytest.mark.parametrize("growth", [10.0, 12.0])
    def test_required_not_above_growth_is_zero(self, growth, caplog):
        with caplog.at_level(logging.WARNING):
            assert dividend_discount_value(2.0, growth, 10.0) == 0.0
        assert "DDM undefined" in caplog.text


class TestPegAndDuPont:

    def test_peg(self):
        assert peg_ratio(20.0, 2.0, 5.0) == pytest.approx(2.0)

    @pytest.mark.parametrize("eps, growth", [(0.0, 5.0), (2.0, 0.0)])
    def test_peg_degenerate(self, eps, growth):
        assert peg_ratio(20.0, eps, growth) == 0.0

    def test_dupont(self):
        r = dupont_analysis(10.0, 100.0, 200.0, 50.0)
        assert r.net_profit_margin == pytest.approx(10.0)
        assert r.asset_turnover == pytest.approx(0.5)
        assert r.equity_multiplier == pytest.approx(4.0)
        assert r.roe == pytest.approx(20.0)

    def test_dupont_matches_direct_roe(self):
        r = dupont_analysis(15.0, 120.0, 300.0, 75.0)
        assert r.roe == pytest.approx(15.0 / 75.0 * 100)

    def test_dupont_without_revenue(self):
        r = dupont_analysis(10.0, 0.0, 200.0, 50.0)
        assert r.net_profit_margin == 0.0
        assert r.asset_turnover == 0.0
        assert r.roe == 0.0


class TestCompositeValuation:

    def test_default_weights(self):
        r = composite_valuation(100.0, 80.0, 120.0, 90.0, current_price=60.0)
        assert isinstance(r, CompositeValuation)
        # 30 + 20 + 30 + 18
        assert r.composite_value == pytest.approx(98.0)
        assert r.margin_of_safety == pytest.approx(38 / 98 * 100)
        assert r.upside_percent == pytest.approx(38 / 60 * 100)
        assert r.rating == "undervalued"

    def test_partial_weight_override(self):
        r = composite_valuation(
            200.0, 100.0, 100.0, 100.0, current_price=100.0,
            weights={"dcf": 0.0, "graham": 0.55},
        )
        # 0 + 55 + 25 + 20
        assert r.composite_value == pytest.approx(100.0)
        assert r.margin_of_safety == pytest.approx(0.0)
        assert r.rating == "fair_value"

    def test_overvalued(self):
        r = composite_valuation(50.0, 50.0, 50.0, 50.0, current_price=100.0)
        assert r.margin_of_safety == pytest.approx(-100.0)
        assert r.rating == "overvalued"

    def test_unknown_weight_raises(self):
        with pytest.raises(InvalidInputs) as exc:
            composite_valuation(1.0, 1.0, 1.0, 1.0, 1.0, weights={"ev_ebitda": 0.5})
        assert exc.value.field == "weights"

    def test_zero_price_has_no_upside(self):
        assert composite_valuation(100.0, 80.0, 120.0, 90.0, current_price=0.0).upside_percent == 0.0
