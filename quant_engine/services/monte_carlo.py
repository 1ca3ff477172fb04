"""
Monte Carlo engine for portfolio growth and betting bankrolls.

Two simulators share one summary format (:class:`SimulationResult`):

* :func:`simulate_portfolio` draws one standard normal per trial and
  applies single-step geometric Brownian motion::

      S_T = S_0 · exp((μ − σ²/2)·T + σ·√T·Z)

* :func:`simulate_betting` plays ``num_bets`` sequential Bernoulli bets per
  trial with a flat stake of ``stake_percent`` of the *current* bankroll.
  Trials are vectorised across the simulation axis; a ruined trial stops
  betting.

Randomness
----------
Every call builds its own ``numpy.random.Generator``.  A non-zero ``seed``
makes the run reproducible; ``seed`` of 0 or None draws fresh OS entropy.
Negative seeds are folded into the unsigned 64-bit range numpy accepts.
Callers that need a specific stream (tests, common random numbers across
scenarios) pass ``rng`` directly, which takes precedence over ``seed``.
No module-level generator exists, so concurrent calls never share state.
"""

import logging
from dataclasses import asdict, dataclass
from typing import List, Optional

import numpy as np

from quant_engine.core import stats
from quant_engine.core.odds_math import pct_to_prob

logger = logging.getLogger(__name__)

DEFAULT_SIMULATIONS = 10_000
DEFAULT_INITIAL_VALUE = 100_000.0
DEFAULT_HORIZON_YEARS = 1.0
DEFAULT_BANKROLL = 1_000.0
DEFAULT_NUM_BETS = 100
DEFAULT_STAKE_PERCENT = 2.0

_SEED_MASK = 0xFFFFFFFFFFFFFFFF


@dataclass(frozen=True)
class SimulationResult:
    mean: float
    median: float
    std_dev: float
    percentile_5: float
    percentile_25: float
    percentile_75: float
    percentile_95: float
    min_value: float
    max_value: float
    probability_of_loss: float   # percent
    probability_of_gain: float   # percent
    simulations: int
    distribution: List[float]

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class BettingSimulationResult(SimulationResult):
    avg_final_bankroll: float
    avg_max_drawdown: float
    ruin_probability: float      # percent
    double_probability: float    # percent


def make_rng(seed: Optional[int] = None, rng: Optional[np.random.Generator] = None) -> np.random.Generator:
    """Resolve the random source for one simulation call."""
    if rng is not None:
        return rng
    if seed:
        return np.random.default_rng(seed & _SEED_MASK)
    return np.random.default_rng()


def _resolve_simulations(simulations: Optional[int], default: int) -> int:
    if simulations is None or simulations <= 0:
        if simulations is not None:
            logger.warning("Non-positive simulation count %s; using %d", simulations, default)
        return default
    return int(simulations)


def _summarise(
    sorted_values: np.ndarray,
    loss_count: int,
    gain_count: int,
) -> dict:
    n = len(sorted_values)
    return dict(
        mean=stats.mean(sorted_values),
        median=stats.median(sorted_values),
        std_dev=stats.sample_std(sorted_values),
        percentile_5=stats.percentile(sorted_values, 5),
        percentile_25=stats.percentile(sorted_values, 25),
        percentile_75=stats.percentile(sorted_values, 75),
        percentile_95=stats.percentile(sorted_values, 95),
        min_value=float(sorted_values[0]),
        max_value=float(sorted_values[-1]),
        probability_of_loss=loss_count / n * 100.0,
        probability_of_gain=gain_count / n * 100.0,
        simulations=n,
        distribution=stats.sample_distribution(sorted_values),
    )


def simulate_portfolio(
    simulations: Optional[int] = DEFAULT_SIMULATIONS,
    initial_value: float = DEFAULT_INITIAL_VALUE,
    expected_return: float = 0.0,
    volatility: float = 0.0,
    horizon_years: float = DEFAULT_HORIZON_YEARS,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    *,
    default_simulations: int = DEFAULT_SIMULATIONS,
) -> SimulationResult:
    """
    Terminal-value distribution of a GBM portfolio.

    Args:
        simulations: Number of trials (non-positive → ``default_simulations``).
        initial_value: Starting value (0 → 100,000).
        expected_return: Annual drift μ in percent.
        volatility: Annual volatility σ in percent.
        horizon_years: Horizon T in years (0 → 1).
        seed: Reproducibility seed; 0 / None for fresh entropy.
        rng: Explicit generator, overrides ``seed``.

    ``probability_of_loss`` counts trials ending below ``initial_value``;
    every other trial counts as a gain.
    """
    n = _resolve_simulations(simulations, default_simulations)
    s0 = initial_value or DEFAULT_INITIAL_VALUE
    t = horizon_years or DEFAULT_HORIZON_YEARS
    mu = pct_to_prob(expected_return)
    sigma = pct_to_prob(volatility)

    gen = make_rng(seed, rng)
    z = gen.standard_normal(n)
    finals = s0 * np.exp((mu - 0.5 * sigma ** 2) * t + sigma * np.sqrt(t) * z)

    loss_count = int(np.count_nonzero(finals < s0))
    finals.sort()

    logger.debug(
        "Portfolio MC: %d sims, μ=%.2f%% σ=%.2f%% T=%.2fy, seed=%s",
        n, expected_return, volatility, t, seed,
    )
    return SimulationResult(**_summarise(finals, loss_count, n - loss_count))


def simulate_betting(
    simulations: Optional[int] = DEFAULT_SIMULATIONS,
    initial_bankroll: float = DEFAULT_BANKROLL,
    num_bets: int = DEFAULT_NUM_BETS,
    win_probability: float = 50.0,
    average_odds: float = 2.0,
    stake_percent: float = DEFAULT_STAKE_PERCENT,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    *,
    default_simulations: int = DEFAULT_SIMULATIONS,
) -> BettingSimulationResult:
    """
    Flat-percentage staking over ``num_bets`` bets, ``simulations`` times.

    Args:
        win_probability: Per-bet win probability in percent.
        average_odds: Decimal odds of every bet.
        stake_percent: Stake as a percentage of the current bankroll
            (0 → 2%).

    A trial is ruined once its bankroll reaches 0 and doubles when it ends
    at or above twice the starting bankroll.  Loss and gain probabilities
    count trials ending strictly below / above the start; break-even trials
    count as neither.
    """
    n = _resolve_simulations(simulations, default_simulations)
    b0 = initial_bankroll or DEFAULT_BANKROLL
    bets = num_bets or DEFAULT_NUM_BETS
    stake_frac = pct_to_prob(stake_percent or DEFAULT_STAKE_PERCENT)
    p = pct_to_prob(win_probability)
    profit_per_unit = average_odds - 1.0

    gen = make_rng(seed, rng)
    bankroll = np.full(n, b0, dtype=float)
    peak = bankroll.copy()
    max_dd = np.zeros(n)

    for _ in range(bets):
        active = bankroll > 0
        if not active.any():
            break
        stake = bankroll * stake_frac
        won = gen.random(n) < p
        delta = np.where(won, stake * profit_per_unit, -stake)
        bankroll = np.where(active, bankroll + delta, bankroll)

        peak = np.maximum(peak, bankroll)
        dd = np.divide(
            (peak - bankroll) * 100.0, peak,
            out=np.zeros(n), where=peak > 0,
        )
        max_dd = np.where(active, np.maximum(max_dd, dd), max_dd)

    ruin_count = int(np.count_nonzero(bankroll <= 0))
    double_count = int(np.count_nonzero(bankroll >= 2 * b0))
    loss_count = int(np.count_nonzero(bankroll < b0))
    gain_count = int(np.count_nonzero(bankroll > b0))

    finals = np.sort(bankroll)
    summary = _summarise(finals, loss_count, gain_count)

    logger.debug(
        "Betting MC: %d sims × %d bets, p=%.1f%% odds=%.2f stake=%.1f%%, ruin=%d",
        n, bets, win_probability, average_odds, stake_frac * 100, ruin_count,
    )
    return BettingSimulationResult(
        **summary,
        avg_final_bankroll=summary["mean"],
        avg_max_drawdown=stats.mean(max_dd),
        ruin_probability=ruin_count / n * 100.0,
        double_probability=double_count / n * 100.0,
    )
