"""
Risk-adjusted performance statistics over return and value series.

Conventions
-----------
* ``returns`` are per-period returns in percent; ``values`` are equity or
  bankroll levels.  Inputs are never modified.
* Degenerate input (too few points, zero dispersion, mismatched series)
  returns a neutral value instead of raising: 0 for ratios, 1.0 for beta,
  an empty list for drawdown episodes.
* Sharpe uses the sample standard deviation (``n − 1``); tracking error in
  the information ratio and the semi-deviations use the population form.

These feed the dashboard's performance panel via :func:`risk_report`, and
can equally be run over Monte Carlo output.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np
from scipy.stats import norm

from quant_engine.core import stats

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 95.0
PERIODS_PER_YEAR = 252


@dataclass(frozen=True)
class DrawdownPeriod:
    start_index: int
    end_index: int
    duration: int
    depth: float  # percent below the peak at its worst


# ---------------------------------------------------------------------------
# Volatility-based ratios
# ---------------------------------------------------------------------------

def sharpe_ratio(returns: Sequence[float], risk_free_rate: float = 0.0) -> float:
    """(mean − risk-free) / sample SD; 0 for < 2 points or zero SD."""
    if len(returns) < 2:
        return 0.0
    sd = stats.sample_std(returns)
    if sd == 0:
        return 0.0
    return (stats.mean(returns) - risk_free_rate) / sd


def downside_deviation(returns: Sequence[float], target_return: float = 0.0) -> float:
    """RMS shortfall below target, averaged over the below-target points only."""
    below = [r - target_return for r in returns if r < target_return]
    if not below:
        return 0.0
    return math.sqrt(sum(d * d for d in below) / len(below))


def upside_deviation(returns: Sequence[float], target_return: float = 0.0) -> float:
    above = [r - target_return for r in returns if r > target_return]
    if not above:
        return 0.0
    return math.sqrt(sum(d * d for d in above) / len(above))


def sortino_ratio(returns: Sequence[float], target_return: float = 0.0) -> float:
    """(mean − target) / downside deviation; 0 when nothing falls below target."""
    if len(returns) == 0:
        return 0.0
    dd = downside_deviation(returns, target_return)
    if dd == 0:
        return 0.0
    return (stats.mean(returns) - target_return) / dd


def omega_ratio(returns: Sequence[float], threshold: float = 0.0) -> float:
    """Sum of gains above ``threshold`` over sum of shortfalls at or below it."""
    gains = sum(r - threshold for r in returns if r > threshold)
    losses = sum(threshold - r for r in returns if r <= threshold)
    if losses == 0:
        return 0.0
    return gains / losses


def annualized_volatility(returns: Sequence[float], periods_per_year: int = PERIODS_PER_YEAR) -> float:
    """Population SD scaled by √periods_per_year."""
    if len(returns) == 0:
        return 0.0
    return stats.population_std(returns) * math.sqrt(periods_per_year)


# ---------------------------------------------------------------------------
# Drawdown
# ---------------------------------------------------------------------------

def max_drawdown(values: Sequence[float]) -> float:
    """Largest percentage decline from a running peak to any later point."""
    if len(values) == 0:
        return 0.0
    peak = values[0]
    worst = 0.0
    for v in values:
        if v > peak:
            peak = v
        if peak > 0:
            worst = max(worst, (peak - v) / peak * 100.0)
    return worst


def drawdown_durations(values: Sequence[float]) -> List[DrawdownPeriod]:
    """
    Split a value series into peak-to-recovery drawdown episodes.

    An episode starts at the last peak index before the first lower value
    and ends at the index before a new high is set.  An episode still open
    at the end of the series closes at the last index.  ``duration`` counts
    indices inclusively.
    """
    periods: List[DrawdownPeriod] = []
    if len(values) == 0:
        return periods

    peak = values[0]
    peak_index = 0
    start: Optional[int] = None
    depth = 0.0

    for i, v in enumerate(values):
        if v > peak:
            if start is not None:
                periods.append(DrawdownPeriod(start, i - 1, i - start, depth))
                start = None
            peak = v
            peak_index = i
        elif v < peak:
            if start is None:
                start = peak_index
                depth = 0.0
            if peak > 0:
                depth = max(depth, (peak - v) / peak * 100.0)

    if start is not None:
        end = len(values) - 1
        periods.append(DrawdownPeriod(start, end, end - start + 1, depth))
    return periods


def recovery_time(values: Sequence[float]) -> int:
    """Length (in periods) of the longest drawdown episode."""
    return max((p.duration for p in drawdown_durations(values)), default=0)


def calmar_ratio(annual_return: float, max_dd: float) -> float:
    if max_dd == 0:
        return 0.0
    return annual_return / max_dd


# ---------------------------------------------------------------------------
# Tail risk
# ---------------------------------------------------------------------------

def value_at_risk(returns: Sequence[float], confidence: float = DEFAULT_CONFIDENCE) -> float:
    """Historical VaR: the (100 − confidence)th percentile of returns."""
    if len(returns) == 0:
        return 0.0
    return stats.percentile(sorted(returns), 100.0 - confidence)


def conditional_var(returns: Sequence[float], confidence: float = DEFAULT_CONFIDENCE) -> float:
    """Mean of the returns at or below the historical VaR."""
    if len(returns) == 0:
        return 0.0
    var = value_at_risk(returns, confidence)
    tail = [r for r in returns if r <= var]
    return stats.mean(tail)


def parametric_var(
    position_value: float,
    volatility: float,
    confidence: float = DEFAULT_CONFIDENCE,
) -> float:
    """
    Normal-distribution VaR of a position.

    ``volatility`` is a fraction (0.2 = 20%) over the VaR horizon;
    ``confidence`` is in percent.  95% gives z ≈ 1.645.
    """
    if not 0 < confidence < 100:
        logger.warning("Confidence %.2f outside (0, 100); VaR set to 0", confidence)
        return 0.0
    z = norm.ppf(confidence / 100.0)
    return position_value * volatility * float(z)


def expected_shortfall(
    position_value: float,
    volatility: float,
    confidence: float = DEFAULT_CONFIDENCE,
) -> float:
    """Normal-distribution expected shortfall: ``φ(z) / (1 − c)`` × σ × value."""
    if not 0 < confidence < 100:
        logger.warning("Confidence %.2f outside (0, 100); ES set to 0", confidence)
        return 0.0
    c = confidence / 100.0
    ratio = norm.pdf(norm.ppf(c)) / (1.0 - c)
    return position_value * volatility * float(ratio)


# ---------------------------------------------------------------------------
# Benchmark-relative
# ---------------------------------------------------------------------------

def _paired(a: Sequence[float], b: Sequence[float]) -> bool:
    return len(a) == len(b) and len(a) > 0


def beta(portfolio_returns: Sequence[float], market_returns: Sequence[float]) -> float:
    """Cov(p, m) / Var(m); 1.0 for mismatched, empty or flat-market input."""
    if not _paired(portfolio_returns, market_returns):
        return 1.0
    p = np.asarray(portfolio_returns, dtype=float)
    m = np.asarray(market_returns, dtype=float)
    m_dev = m - m.mean()
    market_var = float(np.sum(m_dev ** 2))
    if market_var == 0:
        return 1.0
    return float(np.sum((p - p.mean()) * m_dev)) / market_var


def alpha(
    portfolio_returns: Sequence[float],
    market_returns: Sequence[float],
    risk_free_rate: float = 0.0,
) -> float:
    """Jensen's alpha on mean returns: p̄ − (rf + β(m̄ − rf))."""
    if not _paired(portfolio_returns, market_returns):
        return 0.0
    b = beta(portfolio_returns, market_returns)
    expected = risk_free_rate + b * (stats.mean(market_returns) - risk_free_rate)
    return stats.mean(portfolio_returns) - expected


def treynor_ratio(
    portfolio_returns: Sequence[float],
    market_returns: Sequence[float],
    risk_free_rate: float = 0.0,
) -> float:
    """(p̄ − rf) / β; 0 for mismatched input or zero beta."""
    if not _paired(portfolio_returns, market_returns):
        return 0.0
    b = beta(portfolio_returns, market_returns)
    if b == 0:
        return 0.0
    return (stats.mean(portfolio_returns) - risk_free_rate) / b


def information_ratio(portfolio_returns: Sequence[float], benchmark_returns: Sequence[float]) -> float:
    """Mean excess return over the (population) tracking error."""
    if not _paired(portfolio_returns, benchmark_returns):
        return 0.0
    excess = np.asarray(portfolio_returns, dtype=float) - np.asarray(benchmark_returns, dtype=float)
    tracking_error = float(excess.std())
    if tracking_error == 0:
        return 0.0
    return float(excess.mean()) / tracking_error


def correlation(returns_a: Sequence[float], returns_b: Sequence[float]) -> float:
    """Pearson correlation; 0 for mismatched, empty or constant input."""
    if not _paired(returns_a, returns_b):
        return 0.0
    a = np.asarray(returns_a, dtype=float)
    b = np.asarray(returns_b, dtype=float)
    da, db = a - a.mean(), b - b.mean()
    denom = math.sqrt(float(np.sum(da ** 2)) * float(np.sum(db ** 2)))
    if denom == 0:
        return 0.0
    return float(np.sum(da * db)) / denom


# ---------------------------------------------------------------------------
# Trade-level statistics
# ---------------------------------------------------------------------------

def win_rate(returns: Sequence[float]) -> float:
    """Percentage of strictly positive periods."""
    if len(returns) == 0:
        return 0.0
    return sum(1 for r in returns if r > 0) / len(returns) * 100.0


def profit_factor(returns: Sequence[float]) -> float:
    """Gross profit / gross loss; 0 when there are no losses."""
    gross_profit = sum(r for r in returns if r > 0)
    gross_loss = sum(-r for r in returns if r <= 0)
    if gross_loss == 0:
        return 0.0
    return gross_profit / gross_loss


def expectancy(returns: Sequence[float]) -> float:
    """avg_win × win_rate − avg_loss × loss_rate (zero returns count as losses)."""
    n = len(returns)
    if n == 0:
        return 0.0
    wins = [r for r in returns if r > 0]
    losses = [-r for r in returns if r <= 0]
    avg_win = sum(wins) / len(wins) if wins else 0.0
    avg_loss = sum(losses) / len(losses) if losses else 0.0
    return avg_win * len(wins) / n - avg_loss * len(losses) / n


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------

def risk_report(
    returns: Sequence[float],
    values: Optional[Sequence[float]] = None,
    benchmark: Optional[Sequence[float]] = None,
    risk_free_rate: float = 0.0,
    confidence: float = DEFAULT_CONFIDENCE,
) -> Dict:
    """
    One-shot summary for the performance panel.

    ``values`` defaults to a compounded equity curve built from ``returns``
    starting at 100.  Benchmark-relative fields are included only when a
    benchmark is supplied.
    """
    if values is None:
        curve = [100.0]
        for r in returns:
            curve.append(curve[-1] * (1 + r / 100.0))
        values = curve

    mdd = max_drawdown(values)
    report = {
        "periods": len(returns),
        "mean_return": round(stats.mean(returns), 4),
        "volatility": round(stats.sample_std(returns), 4),
        "sharpe_ratio": round(sharpe_ratio(returns, risk_free_rate), 4),
        "sortino_ratio": round(sortino_ratio(returns, risk_free_rate), 4),
        "omega_ratio": round(omega_ratio(returns, risk_free_rate), 4),
        "max_drawdown": round(mdd, 4),
        "recovery_time": recovery_time(values),
        "value_at_risk": round(value_at_risk(returns, confidence), 4),
        "conditional_var": round(conditional_var(returns, confidence), 4),
        "win_rate": round(win_rate(returns), 2),
        "profit_factor": round(profit_factor(returns), 4),
        "expectancy": round(expectancy(returns), 4),
    }
    if benchmark is not None:
        if not _paired(returns, benchmark):
            logger.warning(
                "Benchmark length %d does not match returns length %d; "
                "relative metrics fall back to neutral values",
                len(benchmark), len(returns),
            )
        report.update({
            "beta": round(beta(returns, benchmark), 4),
            "alpha": round(alpha(returns, benchmark, risk_free_rate), 4),
            "treynor_ratio": round(treynor_ratio(returns, benchmark, risk_free_rate), 4),
            "information_ratio": round(information_ratio(returns, benchmark), 4),
            "correlation": round(correlation(returns, benchmark), 4),
        })
    return report
