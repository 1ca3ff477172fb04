"""
Bankroll-aware Kelly staking, value-bet detection and arbitrage scanning.

This is the percentage-convention layer that the JSON API talks to:
probabilities arrive as ``55.0`` (percent) and are converted once with
:func:`~quant_engine.core.odds_math.pct_to_prob` before reaching the
fraction-based math in :mod:`quant_engine.core.kelly`.

Staking rules
-------------
* The Kelly fraction is clamped at 0 *before* sizing, so a negative-EV
  selection never produces a negative stake.
* Half and quarter stakes are derived from the clamped, multiplier-scaled
  stake.
* ``edge`` and ``expected_value`` are both ``(p × odds − 1) × 100``: the
  expected return per 100 units staked.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from quant_engine.core.kelly import HALF_KELLY, QUARTER_KELLY, edge as kelly_edge, raw_kelly
from quant_engine.core.odds_math import implied_probability, implied_probability_pct, pct_to_prob

logger = logging.getLogger(__name__)

DEFAULT_VALUE_THRESHOLD = 5.0
STRONG_VALUE_THRESHOLD = 10.0
ARBITRAGE_TOTAL_STAKE = 100.0


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class KellyResult:
    stake: float
    half_stake: float
    quarter_stake: float
    edge: float
    expected_value: float


@dataclass(frozen=True)
class ValueBetResult:
    implied_probability: float   # percent
    value: float                 # percentage points over implied
    is_value_bet: bool
    is_high_value: bool
    expected_value: float        # percent of stake
    recommendation: str          # "skip" | "bet" | "strong_bet"


@dataclass(frozen=True)
class PriceValueResult:
    value: float                 # percent over fair odds
    is_value_bet: bool
    expected_value: float        # percent of stake


@dataclass(frozen=True)
class ValueSelection:
    """A priced selection to scan: model probability vs. bookmaker price."""
    name: str
    true_probability: float  # percent
    odds: float


@dataclass(frozen=True)
class ScannedValueBet:
    name: str
    odds: float
    true_probability: float
    result: ValueBetResult


@dataclass(frozen=True)
class OddsSelection:
    index: int
    odds: float


@dataclass(frozen=True)
class ArbitrageStakes:
    home: float
    draw: float
    away: float


@dataclass(frozen=True)
class ArbitrageResult:
    is_arbitrage: bool
    margin: float
    implied_sum: float
    best_home: Optional[OddsSelection]
    best_draw: Optional[OddsSelection]
    best_away: Optional[OddsSelection]
    stakes: Optional[ArbitrageStakes] = None


@dataclass(frozen=True)
class BetOutcome:
    probability: float  # percent
    odds: float
    won: bool


@dataclass(frozen=True)
class KellyGrowthResult:
    final_bankroll: float
    growth: float
    max_drawdown: float
    peak_bankroll: float
    bankroll_history: List[float] = field(default_factory=list, repr=False)


# ---------------------------------------------------------------------------
# Stake sizing
# ---------------------------------------------------------------------------

def kelly_stake(
    probability: float,
    odds: float,
    bankroll: float,
    fractional_multiplier: float = 1.0,
) -> KellyResult:
    """
    Kelly stake for one selection.

    Args:
        probability: Win probability in percent.
        odds: Decimal odds.
        bankroll: Current bankroll.
        fractional_multiplier: 1.0 = full Kelly, 0.5 = half Kelly, …

    Returns:
        :class:`KellyResult` with non-negative stakes.  Odds ≤ 1 give a zero
        stake.
    """
    p = pct_to_prob(probability)
    fraction = max(0.0, raw_kelly(p, odds))
    stake = max(0.0, fraction * bankroll * fractional_multiplier)
    ev = kelly_edge(p, odds) * 100.0
    return KellyResult(
        stake=stake,
        half_stake=stake * HALF_KELLY,
        quarter_stake=stake * QUARTER_KELLY,
        edge=ev,
        expected_value=ev,
    )


def optimal_stake(
    probability: float,
    odds: float,
    bankroll: float,
    max_stake_pct: float,
) -> float:
    """Half-Kelly stake capped at ``max_stake_pct`` percent of bankroll."""
    half = kelly_stake(probability, odds, bankroll).half_stake
    return min(half, bankroll * max_stake_pct / 100.0)


# ---------------------------------------------------------------------------
# Value detection
# ---------------------------------------------------------------------------

def detect_value_bet(
    true_probability: float,
    bookmaker_odds: float,
    threshold: float = DEFAULT_VALUE_THRESHOLD,
    strong_threshold: float = STRONG_VALUE_THRESHOLD,
) -> ValueBetResult:
    """
    Compare a model probability (percent) with the bookmaker's price.

    ``value`` is the gap in percentage points between the model and the
    implied probability.  A selection is a value bet only when the gap
    strictly exceeds ``threshold``; above ``strong_threshold`` (10 points)
    it is a strong bet.
    """
    implied = implied_probability_pct(bookmaker_odds)
    value = true_probability - implied
    p = pct_to_prob(true_probability)
    ev = (p * (bookmaker_odds - 1) - (1 - p)) * 100.0

    if value > strong_threshold:
        recommendation = "strong_bet"
    elif value > threshold:
        recommendation = "bet"
    else:
        recommendation = "skip"

    return ValueBetResult(
        implied_probability=implied,
        value=value,
        is_value_bet=value > threshold,
        is_high_value=value > strong_threshold,
        expected_value=ev,
        recommendation=recommendation,
    )


def calculate_value(fair_probability: float, bookmaker_odds: float) -> PriceValueResult:
    """
    Price-ratio value of a bookmaker quote against fair odds.

    ``value = (bookmaker_odds / fair_odds − 1) × 100`` where
    ``fair_odds = 100 / fair_probability``.  Returns zeros for a
    non-positive probability.
    """
    if fair_probability <= 0:
        logger.warning("calculate_value called with non-positive probability %s", fair_probability)
        return PriceValueResult(value=0.0, is_value_bet=False, expected_value=0.0)
    fair_odds = 100.0 / fair_probability
    value = (bookmaker_odds / fair_odds - 1) * 100.0
    p = pct_to_prob(fair_probability)
    ev = (p * (bookmaker_odds - 1) - (1 - p)) * 100.0
    return PriceValueResult(value=value, is_value_bet=value > 0, expected_value=ev)


def scan_value_bets(
    selections: Sequence[ValueSelection],
    threshold: float = DEFAULT_VALUE_THRESHOLD,
    strong_threshold: float = STRONG_VALUE_THRESHOLD,
) -> List[ScannedValueBet]:
    """Value bets among ``selections``, largest value first."""
    found = []
    for sel in selections:
        result = detect_value_bet(sel.true_probability, sel.odds, threshold, strong_threshold)
        if result.is_value_bet:
            found.append(ScannedValueBet(sel.name, sel.odds, sel.true_probability, result))
    found.sort(key=lambda b: b.result.value, reverse=True)
    logger.debug("Value scan: %d of %d selections above %.1f%%", len(found), len(selections), threshold)
    return found


# ---------------------------------------------------------------------------
# Arbitrage
# ---------------------------------------------------------------------------

def _best_price(odds: Sequence[float]) -> Optional[OddsSelection]:
    if not odds:
        return None
    best = OddsSelection(0, odds[0])
    for i, o in enumerate(odds):
        if o > best.odds:
            best = OddsSelection(i, o)
    return best


def find_arbitrage(
    home_odds: Sequence[float],
    draw_odds: Sequence[float],
    away_odds: Sequence[float],
) -> ArbitrageResult:
    """
    Cross-book arbitrage check on a three-way market.

    Takes the best (highest) price per outcome across bookmakers.  The
    market is an arbitrage when the best prices' implied probabilities sum
    to less than 1; a 100-unit stake is then split in proportion to each
    leg's implied probability so every outcome returns the same amount.

    An empty leg, or a best price ≤ 1, yields a non-arbitrage result.
    """
    best_home = _best_price(home_odds)
    best_draw = _best_price(draw_odds)
    best_away = _best_price(away_odds)

    legs = (best_home, best_draw, best_away)
    if any(leg is None or leg.odds <= 1 for leg in legs):
        logger.warning("Arbitrage check skipped: missing or invalid price on at least one leg")
        return ArbitrageResult(False, 0.0, 0.0, best_home, best_draw, best_away)

    implied_sum = sum(implied_probability(leg.odds) for leg in legs)
    is_arb = implied_sum < 1.0
    stakes = None
    if is_arb:
        stakes = ArbitrageStakes(
            home=ARBITRAGE_TOTAL_STAKE / best_home.odds / implied_sum,
            draw=ARBITRAGE_TOTAL_STAKE / best_draw.odds / implied_sum,
            away=ARBITRAGE_TOTAL_STAKE / best_away.odds / implied_sum,
        )
        logger.info("Arbitrage found: implied sum %.4f, margin %.2f%%", implied_sum, (1 - implied_sum) * 100)

    return ArbitrageResult(
        is_arbitrage=is_arb,
        margin=(1.0 - implied_sum) * 100.0,
        implied_sum=implied_sum,
        best_home=best_home,
        best_draw=best_draw,
        best_away=best_away,
        stakes=stakes,
    )


# ---------------------------------------------------------------------------
# Growth simulation
# ---------------------------------------------------------------------------

def simulate_kelly_growth(
    initial_bankroll: float,
    bets: Sequence[BetOutcome],
    fraction: float = HALF_KELLY,
) -> KellyGrowthResult:
    """
    Replay a settled bet sequence with fractional-Kelly staking.

    Each bet is sized from its own probability and price against the
    running bankroll.  Tracks the peak bankroll and the largest percentage
    decline from it.
    """
    bankroll = initial_bankroll
    peak = initial_bankroll
    max_dd = 0.0
    history = [bankroll]

    for bet in bets:
        stake = kelly_stake(bet.probability, bet.odds, bankroll, fraction).stake
        if bet.won:
            bankroll += stake * (bet.odds - 1)
        else:
            bankroll -= stake
        history.append(bankroll)

        peak = max(peak, bankroll)
        if peak > 0:
            max_dd = max(max_dd, (peak - bankroll) / peak * 100.0)

    growth = (bankroll - initial_bankroll) / initial_bankroll * 100.0 if initial_bankroll > 0 else 0.0
    return KellyGrowthResult(
        final_bankroll=bankroll,
        growth=growth,
        max_drawdown=max_dd,
        peak_bankroll=peak,
        bankroll_history=history,
    )
