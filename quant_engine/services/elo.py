"""
ELO rating engine for head-to-head team sports.

Ratings are owned by the caller.  Every function here takes plain numbers
or a ratings snapshot and returns new values; nothing is mutated in place,
so concurrent callers only need to serialise writes to their own store.

Update rule (per match)::

    E_home = 1 / (1 + 10^((R_away − (R_home + HA)) / 400))
    R'     = R + K × M × (S − E)

where ``S`` ∈ {1, 0.5, 0} and ``M`` is the goal-margin multiplier
(1 for a one-goal game, 1.5 for two goals, (11 + diff) / 8 beyond that).
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional

from quant_engine.core.stats import round_half_away

logger = logging.getLogger(__name__)

BASE_ELO = 1500
K_FACTOR = 32.0
HOME_ADVANTAGE = 100.0
DRAW_FACTOR = 0.26
FORM_WEIGHT = 0.1

# (floor, label), highest first
_TIERS = (
    (2000, "Elite"),
    (1800, "Strong"),
    (1600, "Above Average"),
    (1400, "Average"),
    (1200, "Below Average"),
)


@dataclass(frozen=True)
class EloRating:
    rating: int
    change: int


@dataclass(frozen=True)
class EloUpdate:
    home: EloRating
    away: EloRating


@dataclass(frozen=True)
class MatchResult:
    home_team: str
    away_team: str
    home_score: int
    away_score: int


@dataclass(frozen=True)
class MatchProbabilities:
    """Home / draw / away probabilities in percent (sum to 100)."""
    home_win: float
    draw: float
    away_win: float


def initial_rating() -> int:
    return BASE_ELO


def expected_score(rating_a: float, rating_b: float) -> float:
    """Probability that A beats B under the logistic ELO curve."""
    return 1.0 / (1.0 + 10.0 ** ((rating_b - rating_a) / 400.0))


def new_rating(
    rating: float,
    expected: float,
    actual: float,
    k_factor: float = K_FACTOR,
) -> float:
    return rating + k_factor * (actual - expected)


def goal_margin_multiplier(home_score: int, away_score: int) -> float:
    diff = abs(home_score - away_score)
    if diff == 2:
        return 1.5
    if diff > 2:
        return (11.0 + diff) / 8.0
    return 1.0


def update_ratings(
    home_rating: float,
    away_rating: float,
    home_score: int,
    away_score: int,
    k_factor: float = K_FACTOR,
    home_advantage: float = HOME_ADVANTAGE,
) -> EloUpdate:
    """
    Apply one match result to both ratings.

    Home advantage only shifts the expectation; the stored rating is the
    unadjusted one.  Pass ``home_advantage=0`` for a neutral venue.

    New ratings are rounded half away from zero and ``change`` is the
    difference of the *rounded* values, so ``old + change == new`` holds
    exactly for integer inputs.
    """
    expected_home = expected_score(home_rating + home_advantage, away_rating)
    expected_away = 1.0 - expected_home

    if home_score > away_score:
        actual_home, actual_away = 1.0, 0.0
    elif home_score < away_score:
        actual_home, actual_away = 0.0, 1.0
    else:
        actual_home = actual_away = 0.5

    k = k_factor * goal_margin_multiplier(home_score, away_score)
    new_home = new_rating(home_rating, expected_home, actual_home, k)
    new_away = new_rating(away_rating, expected_away, actual_away, k)

    home_rounded = round_half_away(new_home)
    away_rounded = round_half_away(new_away)
    return EloUpdate(
        home=EloRating(home_rounded, home_rounded - round_half_away(home_rating)),
        away=EloRating(away_rounded, away_rounded - round_half_away(away_rating)),
    )


def simulate_season(
    initial_ratings: Mapping[str, float],
    matches: Iterable[MatchResult],
    k_factor: float = K_FACTOR,
    home_advantage: float = HOME_ADVANTAGE,
    base_rating: float = BASE_ELO,
) -> Dict[str, float]:
    """
    Replay ``matches`` in order and return the final ratings.

    The result depends on match order.  Teams missing from
    ``initial_ratings`` enter at ``base_rating``.  The input mapping is
    copied, never mutated.
    """
    ratings: Dict[str, float] = dict(initial_ratings)
    n = 0
    for match in matches:
        home = ratings.get(match.home_team, base_rating)
        away = ratings.get(match.away_team, base_rating)
        update = update_ratings(
            home, away, match.home_score, match.away_score,
            k_factor=k_factor, home_advantage=home_advantage,
        )
        ratings[match.home_team] = float(update.home.rating)
        ratings[match.away_team] = float(update.away.rating)
        n += 1
    logger.debug("Simulated %d matches across %d teams", n, len(ratings))
    return ratings


def match_probabilities(
    home_rating: float,
    away_rating: float,
    home_advantage: float = HOME_ADVANTAGE,
    draw_factor: float = DRAW_FACTOR,
) -> MatchProbabilities:
    """
    1X2 probabilities (percent) from two ratings.

    The fixed draw share scales both win components by ``1 − draw_factor``
    before the three outcomes are renormalised to 100.
    """
    expected_home = expected_score(home_rating + home_advantage, away_rating)
    expected_away = 1.0 - expected_home

    home_win = expected_home * (1.0 - draw_factor)
    away_win = expected_away * (1.0 - draw_factor)
    draw = draw_factor
    total = home_win + draw + away_win
    if total <= 0:
        logger.warning("Degenerate draw factor %.3f; returning even split", draw_factor)
        return MatchProbabilities(100.0 / 3, 100.0 / 3, 100.0 / 3)

    return MatchProbabilities(
        home_win=home_win / total * 100.0,
        draw=draw / total * 100.0,
        away_win=away_win / total * 100.0,
    )


def predict_match_outcome(
    home_elo: float,
    away_elo: float,
    home_form: float = 0.5,
    away_form: float = 0.5,
    home_advantage: float = HOME_ADVANTAGE,
    form_weight: float = FORM_WEIGHT,
) -> MatchProbabilities:
    """
    Form-adjusted 1X2 probabilities.

    ``*_form`` is recent form on a 0–1 scale (1 = won every recent game).
    Ratings are scaled by ``1 + form_weight × (form − 0.5)`` so neutral
    form leaves them unchanged.
    """
    adjusted_home = home_elo * (1.0 + form_weight * (home_form - 0.5))
    adjusted_away = away_elo * (1.0 + form_weight * (away_form - 0.5))
    return match_probabilities(adjusted_home, adjusted_away, home_advantage)


def rating_to_tier(rating: float) -> str:
    for floor, label in _TIERS:
        if rating >= floor:
            return label
    return "Weak"


def rating_for(ratings: Mapping[str, float], team: str, base_rating: Optional[float] = None) -> float:
    """Look up ``team`` in a snapshot, defaulting to the base rating."""
    return ratings.get(team, BASE_ELO if base_rating is None else base_rating)
