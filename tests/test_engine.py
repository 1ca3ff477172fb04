"""
Tests for the config-bound AnalyticsEngine facade
Run with: pytest tests/test_engine.py -v
"""

from dataclasses import replace

import pytest

from quant_engine.core.engine_config import EngineConfig
from quant_engine.engine import AnalyticsEngine
from quant_engine.services.elo import MatchResult
from quant_engine.services.kelly_engine import ValueSelection
from quant_engine.services.poisson import MatchInputs


class TestConstruction:

    def test_default_config(self):
        assert AnalyticsEngine().config == EngineConfig.default()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("QE_ELO_K_FACTOR", "24")
        engine = AnalyticsEngine.from_env(dotenv=False)
        assert engine.config.elo_k_factor == 24.0

    def test_repr(self):
        assert repr(AnalyticsEngine()).startswith("AnalyticsEngine(EngineConfig(")


class TestConfigDrivenCalls:
    """Every configured constant reaches the service it belongs to"""

    def setup_method(self):
        self.cfg = EngineConfig.default()

    def test_k_factor(self):
        engine = AnalyticsEngine(replace(self.cfg, elo_k_factor=16.0))
        upd = engine.update_ratings(1500, 1500, 1, 0, neutral=True)
        assert upd.home.rating == 1508

    def test_neutral_flag(self):
        upd = AnalyticsEngine().update_ratings(1500, 1500, 1, 1, neutral=True)
        assert upd.home.change == 0

    def test_neutral_site_config(self):
        engine = AnalyticsEngine(self.cfg.neutral_site())
        upd = engine.update_ratings(1500, 1500, 1, 1)
        assert upd.home.change == 0

    def test_home_advantage_applies_by_default(self):
        upd = AnalyticsEngine().update_ratings(1500, 1500, 1, 1)
        assert upd.home.change == -4

    def test_season_base_rating(self):
        engine = AnalyticsEngine(replace(self.cfg, base_elo=1200.0))
        final = engine.simulate_season({}, [MatchResult("A", "B", 0, 0)])
        assert set(final) == {"A", "B"}
        assert final["A"] + final["B"] == pytest.approx(2400.0, abs=1)

    def test_team_rating(self):
        engine = AnalyticsEngine(replace(self.cfg, base_elo=1300.0))
        assert engine.team_rating({}, "Hull") == 1300.0

    def test_draw_factor(self):
        engine = AnalyticsEngine(replace(self.cfg, elo_draw_factor=0.30))
        probs = engine.match_probabilities(1500, 1500, neutral=True)
        assert probs.draw == pytest.approx(30.0)

    def test_poisson_limits(self):
        engine = AnalyticsEngine(replace(self.cfg, top_scorelines=3))
        pred = engine.predict_match(MatchInputs(1.5, 1.2, 1.3, 1.4))
        assert len(pred.most_likely_scores) == 3

    def test_value_threshold(self):
        engine = AnalyticsEngine(replace(self.cfg, value_threshold_pct=2.0))
        assert engine.detect_value_bet(55.0, 2.0).recommendation == "bet"
        assert AnalyticsEngine().detect_value_bet(55.0, 2.0).recommendation == "skip"

    def test_explicit_threshold_wins(self):
        assert AnalyticsEngine().detect_value_bet(55.0, 2.0, threshold=1.0).is_value_bet

    def test_scan(self):
        found = AnalyticsEngine().scan_value_bets([ValueSelection("X", 60.0, 2.0)])
        assert len(found) == 1

    def test_kelly_and_arbitrage_passthrough(self):
        engine = AnalyticsEngine()
        assert engine.kelly_stake(60.0, 2.0, 1000.0).stake == pytest.approx(200.0)
        assert engine.find_arbitrage([2.5], [4.0], [4.0]).is_arbitrage

    def test_aaa_yield(self):
        engine = AnalyticsEngine(replace(self.cfg, aaa_yield_pct=8.8))
        r = engine.graham_analysis(2.0, 20.0, 20.0, growth_rate=5.0)
        assert r.modified_graham_value == pytest.approx(18.5)

    def test_reverse_dcf(self):
        implied = AnalyticsEngine().reverse_dcf(50.0, 1_000_000, 3_000_000, 10.0, 3.0, 5)
        assert 0.0 <= implied <= 50.0

    def test_mc_simulations(self):
        engine = AnalyticsEngine(replace(self.cfg, mc_simulations=200))
        r = engine.simulate_portfolio(7.0, 15.0, seed=4)
        assert r.simulations == 200
        assert r.probability_of_loss + r.probability_of_gain == pytest.approx(100.0)

    def test_mc_betting_defaults(self):
        engine = AnalyticsEngine(replace(self.cfg, mc_simulations=100, mc_num_bets=10,
                                         mc_stake_pct=10.0, mc_initial_bankroll=1_000.0))
        r = engine.simulate_betting(100.0, 2.0, seed=4)
        assert r.simulations == 100
        assert r.avg_final_bankroll == pytest.approx(1_000 * 1.1 ** 10, abs=0.01)

    def test_risk_report(self):
        report = AnalyticsEngine().risk_report([1.0, -1.0, 2.0])
        assert report["periods"] == 3
