"""
Tests for the Poisson goal model
Run with: pytest tests/test_poisson.py -v
"""

import math

import pytest

from quant_engine.services.poisson import (
    MatchInputs,
    exact_score_probability,
    expected_goals,
    goal_probabilities,
    over_goals_probability,
    poisson_distribution,
    poisson_probability,
    predict_match,
    score_matrix,
    under_goals_probability,
)


class TestPoissonProbability:
    """Single-outcome PMF with degenerate-rate handling"""

    def test_known_value(self):
        # 2^3 · e^-2 / 3! ≈ 0.180447
        assert poisson_probability(2.0, 3) == pytest.approx(0.180447, abs=1e-6)

    def test_zero_rate_zero_goals(self):
        assert poisson_probability(0.0, 0) == 1.0

    def test_zero_rate_positive_goals(self):
        assert poisson_probability(0.0, 2) == 0.0

    def test_negative_rate(self):
        assert poisson_probability(-1.0, 0) == 0.0

    def test_negative_k(self):
        assert poisson_probability(1.5, -1) == 0.0

    @pytest.mark.parametrize("lam", [0.3, 1.0, 2.75, 6.0])
    def test_mass_sums_to_one(self, lam):
        total = sum(poisson_probability(lam, k) for k in range(51))
        assert total == pytest.approx(1.0, abs=1e-9)

    def test_distribution_vector(self):
        dist = poisson_distribution(1.2, 10)
        assert len(dist) == 11
        assert dist[2] == pytest.approx(poisson_probability(1.2, 2))

    def test_distribution_zero_rate(self):
        dist = poisson_distribution(0.0, 4)
        assert list(dist) == [1.0, 0.0, 0.0, 0.0, 0.0]

    def test_distribution_negative_rate(self):
        assert poisson_distribution(-0.5, 3).sum() == 0.0


class TestExpectedGoals:

    def test_league_average_teams(self):
        inputs = MatchInputs(1.375, 1.375, 1.375, 1.375, league_avg_goals=2.75)
        home, away = expected_goals(inputs)
        assert home == pytest.approx(1.375)
        assert away == pytest.approx(1.375)

    def test_strong_attack_weak_defence(self):
        # home attack 2.0 × away defence 1.6 × 1.25 = 4.0
        inputs = MatchInputs(2.5, 1.0, 1.0, 2.0, league_avg_goals=2.5)
        home, away = expected_goals(inputs)
        assert home == pytest.approx(2.5 * 2.0 / 1.25)
        assert away == pytest.approx(1.0 * 1.0 / 1.25)

    @pytest.mark.parametrize("league_avg", [None, 0.0, -1.0])
    def test_missing_league_average_defaults(self, league_avg):
        default = expected_goals(MatchInputs(1.5, 1.2, 1.3, 1.4, 2.75))
        fallback = expected_goals(MatchInputs(1.5, 1.2, 1.3, 1.4, league_avg))
        assert fallback == pytest.approx(default)


class TestPredictMatch:
    """Full fixture prediction from scoring averages"""

    def setup_method(self):
        self.pred = predict_match(MatchInputs(1.5, 1.2, 1.3, 1.4, league_avg_goals=2.75))

    def test_one_x_two_sums_to_hundred(self):
        total = self.pred.home_win_prob + self.pred.draw_prob + self.pred.away_win_prob
        assert total == pytest.approx(100.0, abs=1.0)

    def test_over_under_complement(self):
        assert self.pred.over_25_prob + self.pred.under_25_prob == pytest.approx(100.0)

    def test_btts_in_range(self):
        assert 0.0 < self.pred.btts_prob < 100.0

    def test_top_ten_scorelines(self):
        scores = self.pred.most_likely_scores
        assert len(scores) == 10
        assert all(s.home_goals <= 5 and s.away_goals <= 5 for s in scores)

    def test_scorelines_sorted_descending(self):
        probs = [s.probability for s in self.pred.most_likely_scores]
        assert probs == sorted(probs, reverse=True)

    def test_stronger_home_side_favoured(self):
        pred = predict_match(MatchInputs(2.2, 0.8, 0.9, 1.8))
        assert pred.home_win_prob > pred.away_win_prob

    def test_symmetric_ties_keep_matrix_order(self):
        pred = predict_match(MatchInputs(1.375, 1.375, 1.375, 1.375))
        order = [(s.home_goals, s.away_goals) for s in pred.most_likely_scores]
        assert order[0] == (1, 1)
        assert order.index((0, 1)) < order.index((1, 0))
        assert pred.home_win_prob == pytest.approx(pred.away_win_prob)

    def test_zero_strengths_do_not_produce_nan(self):
        pred = predict_match(MatchInputs(0.0, 0.0, 0.0, 0.0))
        assert pred.draw_prob == pytest.approx(100.0)
        assert pred.home_win_prob == 0.0
        assert pred.most_likely_scores[0].home_goals == 0
        assert pred.most_likely_scores[0].away_goals == 0

    def test_negative_strengths_degrade_to_zero(self):
        pred = predict_match(MatchInputs(-1.0, 1.0, 1.0, 1.0))
        values = [
            pred.home_win_prob, pred.draw_prob, pred.away_win_prob,
            pred.over_25_prob, pred.under_25_prob, pred.btts_prob,
        ]
        assert all(math.isfinite(v) for v in values)
        assert pred.home_win_prob == 0.0
        assert pred.btts_prob == 0.0

    def test_paired_negatives_do_not_cancel(self):
        inputs = MatchInputs(-1.5, 1.0, 1.0, -1.5)
        home, away = expected_goals(inputs)
        assert home == 0.0
        assert away == pytest.approx(1.0 / 1.375)

        pred = predict_match(inputs)
        assert pred.home_win_prob == 0.0
        assert pred.btts_prob == 0.0
        assert pred.away_win_prob > 0.0

    def test_to_dict_rounds(self):
        d = self.pred.to_dict()
        assert set(d) >= {"home_win_prob", "draw_prob", "away_win_prob", "most_likely_scores"}
        assert len(d["most_likely_scores"]) == 10


class TestMarketHelpers:

    def test_goal_probabilities_are_fractions(self):
        m = goal_probabilities(1.5, 1.1)
        assert m.home_win + m.draw + m.away_win == pytest.approx(1.0, abs=1e-3)
        assert m.over_25 + m.under_25 == pytest.approx(1.0)

    def test_score_matrix_shape(self):
        assert score_matrix(1.2, 0.8).shape == (11, 11)

    def test_over_under_single_rate(self):
        under = under_goals_probability(2.5, 2)
        assert under + over_goals_probability(2.5, 2) == pytest.approx(1.0)
        # P(X ≤ 2 | λ = 2.5) = e^-2.5 (1 + 2.5 + 3.125)
        assert under == pytest.approx(math.exp(-2.5) * 6.625)

    def test_under_negative_threshold(self):
        assert under_goals_probability(1.0, -1) == 0.0

    def test_exact_score(self):
        assert exact_score_probability(1.0, 1.0, 0, 0) == pytest.approx(math.exp(-2.0))
