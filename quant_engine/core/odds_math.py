"""Fundamental odds mathematics: the single source of truth.

Every function here is **pure**: no I/O, no logging, no side effects.
Import from this module; never reimplement locally in services.

The pillars exposed are:

1. **Odds conversion**: decimal ↔ American ↔ implied probability.
2. **Unit adapters**: percentage ↔ fraction conversion at service
   boundaries (``pct_to_prob`` / ``prob_to_pct``).
3. **Margin removal**: proportional overround normalisation for
   multi-outcome markets.
4. **Probability blending**: weighted / ensemble averages and a Bayesian
   update helper.

Design decisions
----------------
* Decimal odds are the canonical price format: odds feeds and the JSON API
  exchange decimal prices, and Kelly sizing is defined on ``b = odds − 1``.
  American odds are converted at the edge with :func:`american_to_decimal`.
* Functions suffixed ``_pct`` take or return percentages in ``[0, 100]``;
  everything else works on fractions in ``[0, 1]``.  Mixing the two
  conventions inside one formula is the bug this split prevents.
* Degenerate prices (``decimal_odds <= 1``) map to a neutral 0 rather than
  raising, matching how the dashboard treats missing quotes.
"""

from __future__ import annotations

from typing import Final, Sequence

# ---------------------------------------------------------------------------
# Module-level constants
# ---------------------------------------------------------------------------

#: American-odds magnitude floor; values below this are not representable.
_MIN_AMERICAN_MAGNITUDE: Final[int] = 100


# ---------------------------------------------------------------------------
# Unit adapters
# ---------------------------------------------------------------------------


def pct_to_prob(probability_pct: float) -> float:
    """Convert a percentage (``55.0``) to a fraction (``0.55``)."""
    return probability_pct / 100.0


def prob_to_pct(probability: float) -> float:
    """Convert a fraction (``0.55``) to a percentage (``55.0``)."""
    return probability * 100.0


# ---------------------------------------------------------------------------
# Odds conversion
# ---------------------------------------------------------------------------


def implied_probability(decimal_odds: float) -> float:
    """Raw implied probability of a decimal price, as a fraction.

    Returns 0.0 for ``decimal_odds <= 1`` (no valid price).

    Examples::

        implied_probability(2.00) → 0.50
        implied_probability(1.25) → 0.80
    """
    if decimal_odds <= 1.0:
        return 0.0
    return 1.0 / decimal_odds


def implied_probability_pct(decimal_odds: float) -> float:
    """Raw implied probability of a decimal price, as a percentage."""
    return prob_to_pct(implied_probability(decimal_odds))


def probability_to_odds(probability_pct: float) -> float:
    """Fair decimal odds for a probability given in percent.

    Returns 0.0 when the probability is outside ``(0, 100)``.

    Examples::

        probability_to_odds(50.0) → 2.0
        probability_to_odds(25.0) → 4.0
    """
    if probability_pct <= 0.0 or probability_pct >= 100.0:
        return 0.0
    return 100.0 / probability_pct


def american_to_decimal(american: int | float) -> float:
    """Convert American odds to decimal (European) format.

    Examples::

        american_to_decimal(-110) → 1.9091   (risk 110 to win 100)
        american_to_decimal(+150) → 2.5000   (risk 100 to win 150)

    Raises:
        ValueError: If ``|american| < 100``, which is not a representable
            American odds value.
    """
    if abs(american) < _MIN_AMERICAN_MAGNITUDE:
        raise ValueError(
            f"Invalid American odds {american!r}: magnitude must be ≥ 100."
        )
    if american > 0:
        return american / 100.0 + 1.0
    return 100.0 / abs(american) + 1.0


def decimal_to_american(decimal_odds: float) -> int:
    """Convert decimal odds to the nearest American integer.

    Raises:
        ValueError: If ``decimal_odds <= 1.0`` (no payout to express).
    """
    if decimal_odds <= 1.0:
        raise ValueError(f"Decimal odds {decimal_odds!r} must be > 1.0.")
    if decimal_odds >= 2.0:
        return round((decimal_odds - 1.0) * 100)
    # Favourite: decimal < 2.0 → negative American
    return round(-100.0 / (decimal_odds - 1.0))


# ---------------------------------------------------------------------------
# Margin removal
# ---------------------------------------------------------------------------


def bookmaker_margin(odds: Sequence[float]) -> float:
    """Bookmaker overround of a complete market, in percent.

    ``(Σ 1/odds − 1) × 100``; negative values indicate an arbitrage.
    Invalid prices (≤ 1) contribute nothing.

    Examples::

        bookmaker_margin([1.91, 1.91]) → 4.71
    """
    total = sum(implied_probability(o) for o in odds)
    return (total - 1.0) * 100.0


def remove_margin(odds: Sequence[float]) -> list[float]:
    """True probabilities (fractions) by proportional overround removal.

    Each implied probability is divided by the market total so the result
    sums to 1.0.  Returns all zeros when no leg has a valid price.

    Examples::

        remove_margin([2.10, 3.40, 3.60]) → [0.4543, 0.2806, 0.2650]
    """
    raw = [implied_probability(o) for o in odds]
    total = sum(raw)
    if total <= 0.0:
        return [0.0 for _ in raw]
    return [r / total for r in raw]


# ---------------------------------------------------------------------------
# Probability blending
# ---------------------------------------------------------------------------


def weighted_probability(
    probabilities: Sequence[float],
    weights: Sequence[float],
) -> float:
    """Weighted average of model probabilities.

    Weights are renormalised to sum to 1.  Mismatched lengths, empty input
    or a non-positive weight total return 0.0.
    """
    if len(probabilities) != len(weights) or not probabilities:
        return 0.0
    total_weight = sum(weights)
    if total_weight <= 0.0:
        return 0.0
    return sum(p * w / total_weight for p, w in zip(probabilities, weights))


def ensemble_probability(
    poisson_prob: float,
    elo_prob: float,
    stat_prob: float,
    xg_prob: float | None = None,
) -> float:
    """Equal-weight blend of the per-model probabilities.

    The xG-model estimate joins the blend only when supplied.  Units are
    whatever the caller passes in (percent in, percent out).
    """
    probs = [poisson_prob, elo_prob, stat_prob]
    if xg_prob is not None:
        probs.append(xg_prob)
    return weighted_probability(probs, [1.0] * len(probs))


def bayesian_update(
    prior: float,
    likelihood: float,
    evidence: float,
) -> float:
    """Posterior ``P(H|E) = P(E|H)·P(H) / P(E)`` on fractions.

    Returns the prior unchanged when ``evidence == 0``.
    """
    if evidence == 0.0:
        return prior
    return likelihood * prior / evidence
