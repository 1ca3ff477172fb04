"""Kelly criterion fractions, the single source of truth for sizing math.

All functions here are **pure**: no I/O, no logging.
Import from this module; never reimplement Kelly locally in services.

Probabilities in this module are **fractions** in ``[0, 1]``.  The
percentage-based, bankroll-aware wrappers used by the API live in
:mod:`quant_engine.services.kelly_engine` and convert at the boundary with
:func:`~quant_engine.core.odds_math.pct_to_prob`.

Design decisions
----------------
* Invalid inputs (``p <= 0``, ``p >= 1``, ``odds <= 1``) return 0.0 rather
  than raising: "no bet" is the natural neutral answer for a sizing rule.
* Negative Kelly (negative-EV bet) clamps to 0.0.  Every derived quantity
  (half, quarter, fractional) is taken from the clamped value.

Run tests with::

    pytest tests/test_kelly.py -v
"""

from __future__ import annotations

from typing import Final

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: Multiplier for half-Kelly sizing, the default for growth simulations.
HALF_KELLY: Final[float] = 0.5

#: Multiplier for quarter-Kelly sizing.
QUARTER_KELLY: Final[float] = 0.25


# ---------------------------------------------------------------------------
# Full Kelly
# ---------------------------------------------------------------------------


def raw_kelly(win_prob: float, decimal_odds: float) -> float:
    """Unclamped Kelly fraction ``(b·p − q) / b``.

    Negative results mean the bet has negative expected value.  Callers
    must clamp before sizing; :func:`full_kelly` does so.

    Returns 0.0 when ``decimal_odds <= 1`` (``b`` would be ≤ 0).
    """
    if decimal_odds <= 1.0:
        return 0.0
    profit_per_unit = decimal_odds - 1.0
    loss_prob = 1.0 - win_prob
    return (profit_per_unit * win_prob - loss_prob) / profit_per_unit


def full_kelly(win_prob: float, decimal_odds: float) -> float:
    """Compute the full Kelly fraction for a simple win/loss bet.

    The Kelly criterion maximises the expected logarithm of wealth by
    solving::

        max_f  E[log(1 + f · X)]

    where ``X`` pays ``b = decimal_odds − 1`` with probability ``p`` and
    ``−1`` with probability ``q = 1 − p``.  The closed form is::

        f*  =  (b · p − q) / b                                    (1)

    Args:
        win_prob: True probability of winning, as a fraction.
        decimal_odds: Decimal odds offered (stake included).

    Returns:
        Fraction of bankroll in ``[0, 1)``.  0.0 for ``win_prob <= 0``,
        ``win_prob >= 1``, ``decimal_odds <= 1`` or negative edge.

    Examples::

        full_kelly(0.60, 2.00) → 0.20
        full_kelly(0.45, 2.00) → 0.00  (negative EV)

    References:
        Kelly, J. L. (1956). A New Interpretation of Information Rate.
        *Bell System Technical Journal*, 35(4), 917–926.
    """
    if win_prob <= 0.0 or win_prob >= 1.0 or decimal_odds <= 1.0:
        return 0.0
    return max(0.0, raw_kelly(win_prob, decimal_odds))


def half_kelly(win_prob: float, decimal_odds: float) -> float:
    """Half of :func:`full_kelly`."""
    return full_kelly(win_prob, decimal_odds) * HALF_KELLY


def quarter_kelly(win_prob: float, decimal_odds: float) -> float:
    """Quarter of :func:`full_kelly`."""
    return full_kelly(win_prob, decimal_odds) * QUARTER_KELLY


def fractional_kelly(
    win_prob: float,
    decimal_odds: float,
    fraction: float = HALF_KELLY,
    *,
    max_fraction: float = 1.0,
) -> float:
    """Full Kelly scaled by ``fraction`` and capped at ``max_fraction``.

    Fractional Kelly trades a little long-run growth for a large reduction
    in drawdown when the probability estimate itself is uncertain.

    Examples::

        fractional_kelly(0.60, 2.00)                    → 0.10
        fractional_kelly(0.60, 2.00, 1.0, max_fraction=0.05) → 0.05
    """
    if fraction <= 0.0:
        return 0.0
    return min(full_kelly(win_prob, decimal_odds) * fraction, max_fraction)


# ---------------------------------------------------------------------------
# Expected value
# ---------------------------------------------------------------------------


def edge(win_prob: float, decimal_odds: float) -> float:
    """Expected profit per unit staked: ``p · odds − 1`` (fraction).

    Examples::

        edge(0.55, 2.00) → 0.10
    """
    return win_prob * decimal_odds - 1.0
