"""
Config-injected facade over the analytics services.

The service modules are plain functions with keyword defaults that mirror
:meth:`EngineConfig.default`.  :class:`AnalyticsEngine` binds one
:class:`EngineConfig` and threads its constants into every call, so a
deployment recalibrates the whole engine by changing configuration rather
than call sites.

Usage::

    engine = AnalyticsEngine.from_env()
    pred = engine.predict_match(MatchInputs(1.8, 0.9, 1.2, 1.4))
    stake = engine.kelly_stake(55.0, 2.10, bankroll=1000)
"""

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np

from quant_engine.core.engine_config import EngineConfig
from quant_engine.services import elo, kelly_engine, monte_carlo, poisson, risk_metrics, valuation

logger = logging.getLogger(__name__)


class AnalyticsEngine:
    """Stateless calculator bound to one configuration."""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig.default()

    @classmethod
    def from_env(cls, *, dotenv: bool = True) -> "AnalyticsEngine":
        return cls(EngineConfig.from_env(dotenv=dotenv))

    def __repr__(self) -> str:
        return f"AnalyticsEngine({self.config!r})"

    # ------------------------------------------------------------------ #
    #  Poisson                                                             #
    # ------------------------------------------------------------------ #

    def predict_match(self, inputs: poisson.MatchInputs) -> poisson.PoissonPrediction:
        cfg = self.config
        return poisson.predict_match(
            inputs,
            max_goals=cfg.max_goals,
            scoreline_max_goals=cfg.scoreline_max_goals,
            top_n=cfg.top_scorelines,
            default_league_avg=cfg.league_avg_goals,
        )

    # ------------------------------------------------------------------ #
    #  ELO                                                                 #
    # ------------------------------------------------------------------ #

    def update_ratings(
        self,
        home_rating: float,
        away_rating: float,
        home_score: int,
        away_score: int,
        *,
        neutral: bool = False,
    ) -> elo.EloUpdate:
        return elo.update_ratings(
            home_rating, away_rating, home_score, away_score,
            k_factor=self.config.elo_k_factor,
            home_advantage=0.0 if neutral else self.config.elo_home_advantage,
        )

    def simulate_season(
        self,
        initial_ratings: Mapping[str, float],
        matches: Iterable[elo.MatchResult],
    ) -> Dict[str, float]:
        return elo.simulate_season(
            initial_ratings, matches,
            k_factor=self.config.elo_k_factor,
            home_advantage=self.config.elo_home_advantage,
            base_rating=self.config.base_elo,
        )

    def match_probabilities(
        self,
        home_rating: float,
        away_rating: float,
        *,
        neutral: bool = False,
    ) -> elo.MatchProbabilities:
        return elo.match_probabilities(
            home_rating, away_rating,
            home_advantage=0.0 if neutral else self.config.elo_home_advantage,
            draw_factor=self.config.elo_draw_factor,
        )

    def team_rating(self, ratings: Mapping[str, float], team: str) -> float:
        return elo.rating_for(ratings, team, self.config.base_elo)

    # ------------------------------------------------------------------ #
    #  Kelly / value                                                       #
    # ------------------------------------------------------------------ #

    def kelly_stake(
        self,
        probability: float,
        odds: float,
        bankroll: float,
        fractional_multiplier: float = 1.0,
    ) -> kelly_engine.KellyResult:
        return kelly_engine.kelly_stake(probability, odds, bankroll, fractional_multiplier)

    def detect_value_bet(
        self,
        true_probability: float,
        bookmaker_odds: float,
        threshold: Optional[float] = None,
    ) -> kelly_engine.ValueBetResult:
        if threshold is None:
            threshold = self.config.value_threshold_pct
        return kelly_engine.detect_value_bet(
            true_probability, bookmaker_odds, threshold, self.config.strong_value_pct,
        )

    def scan_value_bets(
        self,
        selections: Sequence[kelly_engine.ValueSelection],
        threshold: Optional[float] = None,
    ) -> List[kelly_engine.ScannedValueBet]:
        if threshold is None:
            threshold = self.config.value_threshold_pct
        return kelly_engine.scan_value_bets(selections, threshold, self.config.strong_value_pct)

    def find_arbitrage(
        self,
        home_odds: Sequence[float],
        draw_odds: Sequence[float],
        away_odds: Sequence[float],
    ) -> kelly_engine.ArbitrageResult:
        return kelly_engine.find_arbitrage(home_odds, draw_odds, away_odds)

    # ------------------------------------------------------------------ #
    #  Valuation                                                           #
    # ------------------------------------------------------------------ #

    def graham_analysis(
        self,
        eps: float,
        book_value: float,
        current_price: float,
        growth_rate: float = 0.0,
    ) -> valuation.GrahamResult:
        return valuation.graham_analysis(
            eps, book_value, current_price, growth_rate, self.config.aaa_yield_pct,
        )

    def reverse_dcf(
        self,
        target_per_share: float,
        shares_outstanding: float,
        free_cash_flow: float,
        discount_rate: float,
        terminal_growth_rate: float,
        years: int,
    ) -> float:
        return valuation.reverse_dcf(
            target_per_share, shares_outstanding, free_cash_flow,
            discount_rate, terminal_growth_rate, years,
            tolerance=self.config.reverse_dcf_tolerance,
            max_iterations=self.config.reverse_dcf_max_iter,
        )

    # ------------------------------------------------------------------ #
    #  Monte Carlo                                                         #
    # ------------------------------------------------------------------ #

    def simulate_portfolio(
        self,
        expected_return: float,
        volatility: float,
        horizon_years: float = 1.0,
        *,
        simulations: Optional[int] = None,
        initial_value: Optional[float] = None,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> monte_carlo.SimulationResult:
        cfg = self.config
        return monte_carlo.simulate_portfolio(
            simulations if simulations is not None else cfg.mc_simulations,
            initial_value or cfg.mc_initial_value,
            expected_return, volatility, horizon_years,
            seed=seed, rng=rng,
            default_simulations=cfg.mc_simulations,
        )

    def simulate_betting(
        self,
        win_probability: float,
        average_odds: float,
        *,
        simulations: Optional[int] = None,
        initial_bankroll: Optional[float] = None,
        num_bets: Optional[int] = None,
        stake_percent: Optional[float] = None,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> monte_carlo.BettingSimulationResult:
        cfg = self.config
        return monte_carlo.simulate_betting(
            simulations if simulations is not None else cfg.mc_simulations,
            initial_bankroll or cfg.mc_initial_bankroll,
            num_bets or cfg.mc_num_bets,
            win_probability, average_odds,
            stake_percent or cfg.mc_stake_pct,
            seed=seed, rng=rng,
            default_simulations=cfg.mc_simulations,
        )

    # ------------------------------------------------------------------ #
    #  Risk                                                                #
    # ------------------------------------------------------------------ #

    def risk_report(
        self,
        returns: Sequence[float],
        values: Optional[Sequence[float]] = None,
        benchmark: Optional[Sequence[float]] = None,
        risk_free_rate: float = 0.0,
    ) -> Dict:
        return risk_metrics.risk_report(returns, values, benchmark, risk_free_rate)
