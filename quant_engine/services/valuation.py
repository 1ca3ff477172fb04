"""
Equity valuation models: DCF, dividend discount, Graham, multiples and composites.

All rates are **percentages** (10.0 = 10%).  Two rating schemes coexist and
must not be merged:

* Graham bands on margin of safety (``undervalued`` / ``fair_value`` /
  ``overvalued``), used by :func:`graham_analysis` and
  :func:`valuation_rating`.
* The generic investment bands on upside (``Strong Buy`` … ``Strong Sell``),
  used by the ``*_fair_value`` helpers that feed the fair-value API.

Gordon-growth terminal values are undefined when the discount rate does
not exceed the perpetual growth rate; those configurations raise
:class:`~quant_engine.core.errors.InvalidInputs` instead of returning a
negative or exploding number.  The dividend discount model is the
exception: it reports 0.0 for the same condition.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

from quant_engine.core.errors import InvalidInputs

logger = logging.getLogger(__name__)

DEFAULT_AAA_YIELD = 4.4
GRAHAM_BASE_PE = 8.5
GRAHAM_GROWTH_MULTIPLIER = 2.0
GRAHAM_REFERENCE_YIELD = 4.4
GRAHAM_NUMBER_FACTOR = 22.5

DEFENSIVE_MAX_PE = 15.0
DEFENSIVE_MAX_PB = 1.5
ENTERPRISING_MAX_PE = 20.0
ENTERPRISING_MAX_PB = 2.0

OWNER_EARNINGS_TERMINAL_GROWTH = 3.0
NET_NET_FACTOR = 0.67

REVERSE_DCF_LOW = 0.0
REVERSE_DCF_HIGH = 50.0

COMPOSITE_WEIGHTS: Dict[str, float] = {"dcf": 0.30, "graham": 0.25, "pe": 0.25, "pbv": 0.20}


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CashFlowProjection:
    year: int
    cash_flow: float
    present_value: float


@dataclass(frozen=True)
class DCFResult:
    intrinsic_value: float
    per_share_value: float
    pv_cash_flows: float
    terminal_value: float
    pv_terminal: float
    projected_cash_flows: List[CashFlowProjection] = field(default_factory=list)


@dataclass(frozen=True)
class GrahamResult:
    graham_number: float
    modified_graham_value: float
    intrinsic_value: float
    pe_limit: float
    margin_of_safety: float
    rating: str
    pe_ratio: float
    pb_ratio: float
    peg: Optional[float]
    is_defensive: bool
    is_enterprising: bool


@dataclass(frozen=True)
class ValuationResult:
    """Fair-value record in the shape the fair-value API persists."""
    method: str
    fair_value: float
    current_price: float
    upside_percent: float
    rating: str
    confidence: float


@dataclass(frozen=True)
class NCAVResult:
    ncav: float
    ncav_per_share: float


@dataclass(frozen=True)
class StockForScreening:
    symbol: str
    eps: float
    book_value: float
    price: float


@dataclass(frozen=True)
class DuPontResult:
    roe: float                   # percent
    net_profit_margin: float     # percent
    asset_turnover: float
    equity_multiplier: float


@dataclass(frozen=True)
class CompositeValuation:
    """Weighted blend of several fair values, rated on Graham bands."""
    composite_value: float
    current_price: float
    margin_of_safety: float
    upside_percent: float
    rating: str


# ---------------------------------------------------------------------------
# Time value of money
# ---------------------------------------------------------------------------

def present_value(future_value: float, discount_rate: float, periods: int) -> float:
    return future_value / (1 + discount_rate / 100) ** periods


def future_value(present: float, growth_rate: float, periods: int) -> float:
    return present * (1 + growth_rate / 100) ** periods


def wacc(
    equity_weight: float,
    debt_weight: float,
    cost_of_equity: float,
    cost_of_debt: float,
    tax_rate: float,
) -> float:
    """Weighted average cost of capital, in percent.

    All inputs are percentages; debt cost is taken after tax.
    """
    return (
        equity_weight / 100 * cost_of_equity
        + debt_weight / 100 * cost_of_debt * (1 - tax_rate / 100)
    )


def cost_of_equity(risk_free_rate: float, beta: float, market_return: float) -> float:
    """CAPM required return, in percent."""
    return risk_free_rate + beta * (market_return - risk_free_rate)


def sustainable_growth_rate(roe: float, retention_ratio: float) -> float:
    """ROE × retention ratio, both and result in percent."""
    return roe / 100 * retention_ratio / 100 * 100


# ---------------------------------------------------------------------------
# DCF
# ---------------------------------------------------------------------------

def _check_terminal(discount_rate: float, terminal_growth_rate: float) -> None:
    if discount_rate <= terminal_growth_rate:
        raise InvalidInputs(
            f"discount_rate ({discount_rate}) must exceed terminal growth "
            f"rate ({terminal_growth_rate}) for a finite terminal value",
            field="discount_rate",
        )


def dcf(
    free_cash_flow: float,
    growth_rate: float,
    terminal_growth_rate: float,
    discount_rate: float,
    years: int,
    shares_outstanding: float,
) -> DCFResult:
    """
    Discounted cash-flow valuation with a Gordon-growth terminal value.

    Cash flow compounds at ``growth_rate`` for ``years`` periods; each
    year's flow is discounted at ``discount_rate``.  The terminal value is
    the final flow grown one more period at ``terminal_growth_rate`` and
    capitalised at ``discount_rate − terminal_growth_rate``, then
    discounted back ``years`` periods.

    Raises:
        InvalidInputs: ``discount_rate <= terminal_growth_rate`` or
            ``years < 0``.
    """
    _check_terminal(discount_rate, terminal_growth_rate)
    if years < 0:
        raise InvalidInputs(f"years must be non-negative, got {years}", field="years")

    projections: List[CashFlowProjection] = []
    pv_total = 0.0
    cash_flow = free_cash_flow
    for year in range(1, years + 1):
        cash_flow *= 1 + growth_rate / 100
        pv = present_value(cash_flow, discount_rate, year)
        projections.append(CashFlowProjection(year, cash_flow, pv))
        pv_total += pv

    terminal_cash_flow = cash_flow * (1 + terminal_growth_rate / 100)
    terminal_value = terminal_cash_flow / ((discount_rate - terminal_growth_rate) / 100)
    pv_terminal = present_value(terminal_value, discount_rate, years)

    intrinsic = pv_total + pv_terminal
    per_share = intrinsic / shares_outstanding if shares_outstanding > 0 else 0.0
    if shares_outstanding <= 0:
        logger.warning("DCF with non-positive share count %s; per-share value set to 0", shares_outstanding)

    return DCFResult(
        intrinsic_value=intrinsic,
        per_share_value=per_share,
        pv_cash_flows=pv_total,
        terminal_value=terminal_value,
        pv_terminal=pv_terminal,
        projected_cash_flows=projections,
    )


def reverse_dcf(
    target_per_share: float,
    shares_outstanding: float,
    free_cash_flow: float,
    discount_rate: float,
    terminal_growth_rate: float,
    years: int,
    tolerance: float = 0.01,
    max_iterations: int = 100,
) -> float:
    """
    Growth rate (percent) the market price implies under :func:`dcf`.

    Bisection over ``[0, 50]``: stops once the computed equity value is
    within ``tolerance`` (relative) of ``target_per_share × shares`` and
    returns the midpoint estimate, or the last midpoint after
    ``max_iterations`` steps.  Implied growth outside the bracket pins to
    its nearer edge.

    Raises:
        InvalidInputs: same conditions as :func:`dcf`.
    """
    target_value = target_per_share * shares_outstanding
    low, high = REVERSE_DCF_LOW, REVERSE_DCF_HIGH
    mid = (low + high) / 2

    for i in range(max_iterations):
        result = dcf(
            free_cash_flow, mid, terminal_growth_rate,
            discount_rate, years, shares_outstanding,
        )
        diff = result.intrinsic_value - target_value
        if abs(diff) < abs(target_value) * tolerance:
            logger.debug("Reverse DCF converged in %d iterations at %.3f%%", i + 1, mid)
            return mid
        if diff > 0:
            high = mid
        else:
            low = mid
        mid = (low + high) / 2

    logger.debug("Reverse DCF hit the %d-iteration cap at %.3f%%", max_iterations, mid)
    return mid


def owner_earnings_value(
    owner_earnings: float,
    growth_rate: float,
    discount_rate: float,
    years: int,
) -> float:
    """
    Buffett-style intrinsic value of owner earnings.

    Owner earnings (net income + D&A − capex − working-capital build) grow
    at ``growth_rate`` for ``years`` and then at 3% forever.

    The explicit-growth years are summed directly, so ``growth_rate`` may
    equal or exceed ``discount_rate``.

    Raises:
        InvalidInputs: the discount rate does not exceed the 3% perpetual rate.
    """
    _check_terminal(discount_rate, OWNER_EARNINGS_TERMINAL_GROWTH)

    total = 0.0
    earnings = owner_earnings
    for year in range(1, years + 1):
        earnings *= 1 + growth_rate / 100
        total += present_value(earnings, discount_rate, year)

    terminal = earnings * (1 + OWNER_EARNINGS_TERMINAL_GROWTH / 100)
    terminal /= (discount_rate - OWNER_EARNINGS_TERMINAL_GROWTH) / 100
    return total + present_value(terminal, discount_rate, years)


def dividend_discount_value(dividend: float, growth_rate: float, required_return: float) -> float:
    """
    Gordon growth value of a dividend stream: D₀·(1 + g) / (r − g).

    Returns 0.0 with a warning when ``required_return <= growth_rate``.
    """
    if required_return <= growth_rate:
        logger.warning(
            "DDM undefined: required return %.2f%% does not exceed growth %.2f%%",
            required_return, growth_rate,
        )
        return 0.0
    next_dividend = dividend * (1 + growth_rate / 100)
    return next_dividend / ((required_return - growth_rate) / 100)


# ---------------------------------------------------------------------------
# Graham
# ---------------------------------------------------------------------------

def graham_number(eps: float, book_value: float) -> float:
    """√(22.5 × EPS × BVPS); 0 unless both inputs are positive."""
    if eps <= 0 or book_value <= 0:
        return 0.0
    return math.sqrt(GRAHAM_NUMBER_FACTOR * eps * book_value)


def modified_graham_value(
    eps: float,
    growth_rate: float,
    aaa_yield: float = DEFAULT_AAA_YIELD,
) -> float:
    """
    Graham's revised formula ``V = EPS × (8.5 + 2g) × 4.4 / Y``.

    ``g`` is expected growth in percent, ``Y`` the current AAA corporate
    yield in percent (non-positive → 4.4).  Floored at 0.
    """
    if eps <= 0:
        return 0.0
    if aaa_yield <= 0:
        aaa_yield = DEFAULT_AAA_YIELD
    value = eps * (GRAHAM_BASE_PE + GRAHAM_GROWTH_MULTIPLIER * growth_rate) * GRAHAM_REFERENCE_YIELD / aaa_yield
    return max(0.0, value)


def margin_of_safety(intrinsic_value: float, current_price: float) -> float:
    """(intrinsic − price) / intrinsic × 100; 0 when intrinsic ≤ 0."""
    if intrinsic_value <= 0:
        return 0.0
    return (intrinsic_value - current_price) / intrinsic_value * 100


def valuation_rating(margin: float) -> str:
    if margin >= 30:
        return "undervalued"
    if margin >= -10:
        return "fair_value"
    return "overvalued"


def _meets_defensive(pe: float, pb: float) -> bool:
    return (
        0 < pe <= DEFENSIVE_MAX_PE
        and 0 < pb <= DEFENSIVE_MAX_PB
        and pe * pb <= GRAHAM_NUMBER_FACTOR
    )


def graham_analysis(
    eps: float,
    book_value: float,
    current_price: float,
    growth_rate: float = 0.0,
    aaa_yield: float = DEFAULT_AAA_YIELD,
) -> GrahamResult:
    """
    Graham Number, revised formula and defensive / enterprising screens.

    Intrinsic value is the larger of the two Graham estimates.  P/E and P/B
    are 0 when EPS or book value is non-positive, which fails both screens.
    PEG is reported only for positive growth and positive EPS.
    """
    g_number = graham_number(eps, book_value)
    modified = modified_graham_value(eps, growth_rate, aaa_yield)

    pe = current_price / eps if eps > 0 else 0.0
    pb = current_price / book_value if book_value > 0 else 0.0
    peg = pe / growth_rate if growth_rate > 0 and eps > 0 else None

    intrinsic = max(g_number, modified)
    mos = margin_of_safety(intrinsic, current_price)

    return GrahamResult(
        graham_number=g_number,
        modified_graham_value=modified,
        intrinsic_value=intrinsic,
        pe_limit=GRAHAM_NUMBER_FACTOR,
        margin_of_safety=mos,
        rating=valuation_rating(mos),
        pe_ratio=pe,
        pb_ratio=pb,
        peg=peg,
        is_defensive=_meets_defensive(pe, pb),
        is_enterprising=0 < pe <= ENTERPRISING_MAX_PE and 0 < pb <= ENTERPRISING_MAX_PB,
    )


def screen_defensive_stocks(stocks: Iterable[StockForScreening]) -> List[str]:
    """Symbols meeting Graham's defensive-investor P/E and P/B limits."""
    passed = []
    for stock in stocks:
        if stock.eps <= 0 or stock.book_value <= 0:
            continue
        if _meets_defensive(stock.price / stock.eps, stock.price / stock.book_value):
            passed.append(stock.symbol)
    return passed


def ncav(current_assets: float, total_liabilities: float, shares_outstanding: float) -> NCAVResult:
    """Net current asset value (current assets − total liabilities)."""
    value = current_assets - total_liabilities
    per_share = value / shares_outstanding if shares_outstanding > 0 else 0.0
    return NCAVResult(value, per_share)


def is_net_net(current_assets: float, total_liabilities: float, market_cap: float) -> bool:
    """Graham net-net: market cap below two-thirds of NCAV."""
    return market_cap < (current_assets - total_liabilities) * NET_NET_FACTOR


# ---------------------------------------------------------------------------
# Multiples
# ---------------------------------------------------------------------------

def pe_valuation(eps: float, fair_pe: float) -> float:
    return eps * fair_pe


def pbv_valuation(book_value: float, fair_pb: float) -> float:
    return book_value * fair_pb


def peg_ratio(price: float, eps: float, growth_rate: float) -> float:
    """P/E divided by the growth rate in percent; 0 when EPS or growth is 0."""
    if eps == 0 or growth_rate == 0:
        return 0.0
    return (price / eps) / growth_rate


def dupont_analysis(
    net_income: float,
    revenue: float,
    total_assets: float,
    total_equity: float,
) -> DuPontResult:
    """
    Three-step DuPont breakdown: ROE = margin × asset turnover × leverage.

    Each factor is 0 when its denominator is non-positive, which zeroes ROE.
    """
    margin = net_income / revenue * 100 if revenue > 0 else 0.0
    turnover = revenue / total_assets if total_assets > 0 else 0.0
    multiplier = total_assets / total_equity if total_equity > 0 else 0.0
    return DuPontResult(
        roe=margin * turnover * multiplier,
        net_profit_margin=margin,
        asset_turnover=turnover,
        equity_multiplier=multiplier,
    )


# ---------------------------------------------------------------------------
# Fair-value records (generic investment rating)
# ---------------------------------------------------------------------------

def upside_potential(fair_value: float, current_price: float) -> float:
    """(fair − price) / price × 100; 0 for a non-positive price."""
    if current_price <= 0:
        return 0.0
    return (fair_value - current_price) / current_price * 100


def investment_rating(upside: float) -> str:
    if upside >= 30:
        return "Strong Buy"
    if upside >= 15:
        return "Buy"
    if upside >= -5:
        return "Hold"
    if upside >= -15:
        return "Sell"
    return "Strong Sell"


def valuation_confidence(method: str, volume: float = 0.0, market_cap: float = 0.0) -> float:
    """
    Heuristic 0–95 confidence score for a fair-value estimate.

    Liquid, large-cap names have more reliable inputs; DCF and Graham get a
    small method bonus over plain multiples.
    """
    confidence = 50.0
    if volume > 1_000_000:
        confidence += 10
    if market_cap > 10_000_000_000:
        confidence += 15
    elif market_cap > 1_000_000_000:
        confidence += 10

    method_key = method.upper()
    if method_key == "DCF":
        confidence += 5
    elif method_key == "GRAHAM":
        confidence += 10
    return min(confidence, 95.0)


def _fair_value_record(
    method: str,
    fair_value: float,
    current_price: float,
    volume: float,
    market_cap: float,
) -> ValuationResult:
    upside = upside_potential(fair_value, current_price)
    return ValuationResult(
        method=method,
        fair_value=fair_value,
        current_price=current_price,
        upside_percent=upside,
        rating=investment_rating(upside),
        confidence=valuation_confidence(method, volume, market_cap),
    )


def dcf_fair_value(
    current_price: float,
    free_cash_flow: float,
    growth_rate: float,
    discount_rate: float,
    years: int,
    shares_outstanding: float,
    terminal_growth_rate: float = 3.0,
    volume: float = 0.0,
    market_cap: float = 0.0,
) -> ValuationResult:
    """DCF per-share value as a rated fair-value record."""
    result = dcf(
        free_cash_flow, growth_rate, terminal_growth_rate,
        discount_rate, years, shares_outstanding,
    )
    return _fair_value_record("DCF", result.per_share_value, current_price, volume, market_cap)


def graham_fair_value(
    current_price: float,
    eps: float,
    book_value: float,
    volume: float = 0.0,
    market_cap: float = 0.0,
) -> ValuationResult:
    """Graham Number as a rated fair-value record.

    Raises:
        InvalidInputs: EPS or book value is non-positive (no Graham Number).
    """
    if eps <= 0 or book_value <= 0:
        raise InvalidInputs(
            "EPS and book value must be positive for a Graham fair value",
            field="eps" if eps <= 0 else "book_value",
        )
    return _fair_value_record(
        "Graham", graham_number(eps, book_value), current_price, volume, market_cap,
    )


def pe_fair_value(
    current_price: float,
    eps: float,
    industry_pe: float,
    volume: float = 0.0,
    market_cap: float = 0.0,
) -> ValuationResult:
    """EPS × industry P/E as a rated fair-value record."""
    return _fair_value_record(
        "P/E", pe_valuation(eps, industry_pe), current_price, volume, market_cap,
    )


# ---------------------------------------------------------------------------
# Composite
# ---------------------------------------------------------------------------

def composite_valuation(
    dcf_value: float,
    graham_value: float,
    pe_value: float,
    pbv_value: float,
    current_price: float,
    weights: Optional[Mapping[str, float]] = None,
) -> CompositeValuation:
    """
    Blend four fair values with fixed weights and rate the blend.

    ``weights`` overrides any of the ``dcf`` / ``graham`` / ``pe`` / ``pbv``
    keys of :data:`COMPOSITE_WEIGHTS`; the rest keep their defaults.
    Weights are used as given, not renormalised.

    Example::

        composite_valuation(100, 80, 120, 90, current_price=60)
        → composite 98.0, margin 38.78%, upside 63.33%, "undervalued"
    """
    w = dict(COMPOSITE_WEIGHTS)
    if weights:
        unknown = set(weights) - set(w)
        if unknown:
            raise InvalidInputs(f"Unknown composite weights: {sorted(unknown)}", field="weights")
        w.update(weights)

    value = (
        dcf_value * w["dcf"]
        + graham_value * w["graham"]
        + pe_value * w["pe"]
        + pbv_value * w["pbv"]
    )
    margin = margin_of_safety(value, current_price)
    return CompositeValuation(
        composite_value=value,
        current_price=current_price,
        margin_of_safety=margin,
        upside_percent=upside_potential(value, current_price),
        rating=valuation_rating(margin),
    )
