"""
Poisson goal model for association football.

Each side's goal count is modelled as an independent Poisson variable whose
rate comes from attack / defence strengths relative to the league scoring
rate:

    attack_strength  = goals_scored_avg   / (league_avg / 2)
    defense_strength = goals_conceded_avg / (league_avg / 2)

    λ_home = home_attack × away_defense × league_avg / 2
    λ_away = away_attack × home_defense × league_avg / 2

The joint score distribution is the outer product of the two marginal
PMFs over 0..10 goals.  Summing regions of that matrix gives the 1X2,
Over/Under 2.5 and both-teams-to-score markets.

All public market probabilities from :func:`predict_match` are
**percentages**; the lower-level helpers return fractions.

Usage::

    inputs = MatchInputs(1.8, 0.9, 1.2, 1.4, league_avg_goals=2.75)
    pred = predict_match(inputs)
    print(pred.home_win_prob, pred.most_likely_scores[0])
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
from scipy.stats import poisson

logger = logging.getLogger(__name__)

DEFAULT_LEAGUE_AVG_GOALS = 2.75
MAX_GOALS = 10
SCORELINE_MAX_GOALS = 5
TOP_SCORELINES = 10
OVER_UNDER_LINE = 2.5


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MatchInputs:
    """Per-game scoring and conceding averages for both sides.

    ``league_avg_goals`` is the combined (both teams) goals per game.  A
    missing or non-positive value falls back to 2.75.
    """
    home_goals_avg: float
    home_conceded_avg: float
    away_goals_avg: float
    away_conceded_avg: float
    league_avg_goals: Optional[float] = None


@dataclass(frozen=True)
class ScoreProbability:
    home_goals: int
    away_goals: int
    probability: float  # percent


@dataclass(frozen=True)
class MarketProbabilities:
    """1X2, Over/Under and BTTS block derived from a score matrix (fractions)."""
    home_win: float
    draw: float
    away_win: float
    over_25: float
    under_25: float
    btts: float


@dataclass(frozen=True)
class PoissonPrediction:
    expected_home_goals: float
    expected_away_goals: float
    home_win_prob: float
    draw_prob: float
    away_win_prob: float
    over_25_prob: float
    under_25_prob: float
    btts_prob: float
    most_likely_scores: List[ScoreProbability] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "expected_home_goals": round(self.expected_home_goals, 3),
            "expected_away_goals": round(self.expected_away_goals, 3),
            "home_win_prob": round(self.home_win_prob, 2),
            "draw_prob": round(self.draw_prob, 2),
            "away_win_prob": round(self.away_win_prob, 2),
            "over_25_prob": round(self.over_25_prob, 2),
            "under_25_prob": round(self.under_25_prob, 2),
            "btts_prob": round(self.btts_prob, 2),
            "most_likely_scores": [
                {
                    "home_goals": s.home_goals,
                    "away_goals": s.away_goals,
                    "probability": round(s.probability, 2),
                }
                for s in self.most_likely_scores
            ],
        }


# ---------------------------------------------------------------------------
# Single-variable PMF helpers
# ---------------------------------------------------------------------------

def poisson_probability(lam: float, k: int) -> float:
    """P(X = k) for X ~ Poisson(lam).

    Degenerate rates never raise: a negative rate or negative ``k`` gives
    0, and a zero rate puts all mass on ``k == 0``.
    """
    if k < 0 or lam < 0:
        return 0.0
    if lam == 0:
        return 1.0 if k == 0 else 0.0
    return float(poisson.pmf(k, lam))


def poisson_distribution(lam: float, max_goals: int = MAX_GOALS) -> np.ndarray:
    """Vector of P(X = k) for k in 0..max_goals."""
    if lam < 0:
        return np.zeros(max_goals + 1)
    if lam == 0:
        probs = np.zeros(max_goals + 1)
        probs[0] = 1.0
        return probs
    return poisson.pmf(np.arange(max_goals + 1), lam)


def score_matrix(
    home_xg: float,
    away_xg: float,
    max_goals: int = MAX_GOALS,
) -> np.ndarray:
    """Joint probability matrix; row ``i`` = home goals, column ``j`` = away goals."""
    return np.outer(
        poisson_distribution(home_xg, max_goals),
        poisson_distribution(away_xg, max_goals),
    )


def _market_block(matrix: np.ndarray) -> MarketProbabilities:
    n = matrix.shape[0]
    totals = np.add.outer(np.arange(n), np.arange(matrix.shape[1]))
    over = float(matrix[totals > OVER_UNDER_LINE].sum())
    return MarketProbabilities(
        home_win=float(np.tril(matrix, -1).sum()),
        draw=float(np.trace(matrix)),
        away_win=float(np.triu(matrix, 1).sum()),
        over_25=over,
        under_25=1.0 - over,
        btts=float(matrix[1:, 1:].sum()),
    )


def goal_probabilities(
    home_xg: float,
    away_xg: float,
    max_goals: int = MAX_GOALS,
) -> MarketProbabilities:
    """Market block (fractions) straight from already-known expected goals."""
    return _market_block(score_matrix(home_xg, away_xg, max_goals))


def under_goals_probability(xg: float, threshold: int) -> float:
    """P(X ≤ threshold) for one team (or a match total) with rate ``xg``.

    ``threshold=2`` prices "Under 2.5".
    """
    if threshold < 0:
        return 0.0
    return float(sum(poisson_probability(xg, k) for k in range(threshold + 1)))


def over_goals_probability(xg: float, threshold: int) -> float:
    """P(X > threshold); complement of :func:`under_goals_probability`."""
    return 1.0 - under_goals_probability(xg, threshold)


def exact_score_probability(
    home_xg: float,
    away_xg: float,
    home_goals: int,
    away_goals: int,
) -> float:
    """Probability (fraction) of one exact final score."""
    return poisson_probability(home_xg, home_goals) * poisson_probability(away_xg, away_goals)


# ---------------------------------------------------------------------------
# Match prediction
# ---------------------------------------------------------------------------

def expected_goals(inputs: MatchInputs, default_league_avg: float = DEFAULT_LEAGUE_AVG_GOALS):
    """Return ``(λ_home, λ_away)`` from scoring / conceding averages."""
    league_avg = inputs.league_avg_goals
    if league_avg is None or league_avg <= 0:
        league_avg = default_league_avg if default_league_avg > 0 else DEFAULT_LEAGUE_AVG_GOALS
    half_avg = league_avg / 2.0

    # Strengths are clamped individually so two negatives cannot multiply
    # into a positive rate.
    home_attack = max(0.0, inputs.home_goals_avg / half_avg)
    home_defense = max(0.0, inputs.home_conceded_avg / half_avg)
    away_attack = max(0.0, inputs.away_goals_avg / half_avg)
    away_defense = max(0.0, inputs.away_conceded_avg / half_avg)

    return (
        home_attack * away_defense * half_avg,
        away_attack * home_defense * half_avg,
    )


def predict_match(
    inputs: MatchInputs,
    *,
    max_goals: int = MAX_GOALS,
    scoreline_max_goals: int = SCORELINE_MAX_GOALS,
    top_n: int = TOP_SCORELINES,
    default_league_avg: float = DEFAULT_LEAGUE_AVG_GOALS,
) -> PoissonPrediction:
    """
    Full Poisson prediction for one fixture.

    Returns market probabilities as percentages and the ``top_n`` most
    likely scorelines with at most ``scoreline_max_goals`` goals per side.
    Scorelines are ordered by probability descending; ties keep matrix
    order (home goals, then away goals) because the sort is stable.

    Negative rates degrade to zero probability mass rather than raising, so
    every field is always a finite number.
    """
    home_xg, away_xg = expected_goals(inputs, default_league_avg)
    if home_xg <= 0 or away_xg <= 0:
        logger.warning(
            "Non-positive expected goals (home=%.3f, away=%.3f); "
            "probabilities will collapse toward 0-0",
            home_xg, away_xg,
        )

    matrix = score_matrix(home_xg, away_xg, max_goals)
    markets = _market_block(matrix)

    candidates = [
        ScoreProbability(i, j, float(matrix[i, j]) * 100.0)
        for i in range(min(scoreline_max_goals, max_goals) + 1)
        for j in range(min(scoreline_max_goals, max_goals) + 1)
    ]
    candidates.sort(key=lambda s: s.probability, reverse=True)

    logger.debug(
        "Poisson prediction: xG %.2f-%.2f → H %.1f%% D %.1f%% A %.1f%%",
        home_xg, away_xg,
        markets.home_win * 100, markets.draw * 100, markets.away_win * 100,
    )

    return PoissonPrediction(
        expected_home_goals=home_xg,
        expected_away_goals=away_xg,
        home_win_prob=markets.home_win * 100.0,
        draw_prob=markets.draw * 100.0,
        away_win_prob=markets.away_win * 100.0,
        over_25_prob=markets.over_25 * 100.0,
        under_25_prob=markets.under_25 * 100.0,
        btts_prob=markets.btts * 100.0,
        most_likely_scores=candidates[:top_n],
    )
