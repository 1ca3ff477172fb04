"""
Pydantic request/response schemas for the analytics endpoints.

The HTTP layer lives outside this package; these models define the JSON
contract it speaks.  Field names follow the existing API (``fair_value``,
``kelly_stake``, ``expected_value``, ``value_bets``).  Probabilities are
percentages on the wire.
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from quant_engine.core.odds_math import american_to_decimal
from quant_engine.services.kelly_engine import (
    KellyResult,
    ScannedValueBet,
    ValueBetResult,
    ValueSelection,
)
from quant_engine.services.monte_carlo import BettingSimulationResult, SimulationResult
from quant_engine.services.poisson import MatchInputs
from quant_engine.services.valuation import ValuationResult


# ---------------------------------------------------------------------------
# Match prediction
# ---------------------------------------------------------------------------

class MatchInputsRequest(BaseModel):
    """Payload for a Poisson match prediction."""

    home_goals_avg: float = Field(..., ge=0, description="Home goals scored per game")
    home_conceded_avg: float = Field(..., ge=0, description="Home goals conceded per game")
    away_goals_avg: float = Field(..., ge=0, description="Away goals scored per game")
    away_conceded_avg: float = Field(..., ge=0, description="Away goals conceded per game")
    league_avg_goals: Optional[float] = Field(
        None, ge=0, description="League goals per game (both teams); 0 or null → 2.75"
    )

    def to_inputs(self) -> MatchInputs:
        return MatchInputs(
            home_goals_avg=self.home_goals_avg,
            home_conceded_avg=self.home_conceded_avg,
            away_goals_avg=self.away_goals_avg,
            away_conceded_avg=self.away_conceded_avg,
            league_avg_goals=self.league_avg_goals,
        )

    model_config = {
        "json_schema_extra": {
            "example": {
                "home_goals_avg": 1.8,
                "home_conceded_avg": 0.9,
                "away_goals_avg": 1.2,
                "away_conceded_avg": 1.4,
                "league_avg_goals": 2.75,
            }
        }
    }


# ---------------------------------------------------------------------------
# Odds and staking
# ---------------------------------------------------------------------------

class OddsQuote(BaseModel):
    """
    A single bookmaker price.

    Either ``decimal_odds`` or ``american_odds`` may be supplied; American
    prices are converted so ``decimal_odds`` is always populated.
    """

    decimal_odds: Optional[float] = Field(None, gt=1.0)
    american_odds: Optional[float] = Field(None, description="e.g. -110 or +150")
    bookmaker: Optional[str] = Field(None, max_length=80)

    @field_validator("american_odds")
    @classmethod
    def validate_american_odds(cls, v: Optional[float]) -> Optional[float]:
        if v is None:
            return v
        if -100 < v < 100:
            raise ValueError(
                f"american_odds={v} is not valid American odds. "
                "Must be >= +100 or <= -100."
            )
        return v

    @model_validator(mode="after")
    def fill_decimal(self) -> "OddsQuote":
        if self.decimal_odds is None:
            if self.american_odds is None:
                raise ValueError("Provide decimal_odds or american_odds")
            self.decimal_odds = american_to_decimal(self.american_odds)
        return self

    @property
    def implied_probability(self) -> float:
        """Raw implied probability (fraction)."""
        return 1.0 / self.decimal_odds


class KellyRequest(BaseModel):
    """Payload for a Kelly stake calculation."""

    probability: float = Field(..., ge=0, le=100, description="Win probability (%)")
    odds: float = Field(..., gt=1.0, description="Decimal odds")
    bankroll: float = Field(..., gt=0)
    fractional_multiplier: float = Field(1.0, gt=0, le=1.0, description="1.0 = full Kelly")


class KellyResponse(BaseModel):
    kelly_stake: float
    half_kelly: float
    quarter_kelly: float
    edge: float
    expected_value: float

    @classmethod
    def from_result(cls, result: KellyResult) -> "KellyResponse":
        return cls(
            kelly_stake=round(result.stake, 2),
            half_kelly=round(result.half_stake, 2),
            quarter_kelly=round(result.quarter_stake, 2),
            edge=round(result.edge, 4),
            expected_value=round(result.expected_value, 4),
        )


# ---------------------------------------------------------------------------
# Value bets
# ---------------------------------------------------------------------------

class ValueBetRequest(BaseModel):
    true_probability: float = Field(..., ge=0, le=100)
    odds: float = Field(..., gt=1.0)
    threshold: Optional[float] = Field(None, ge=0, le=100)


class ValueBetResponse(BaseModel):
    implied_probability: float
    value: float
    is_value_bet: bool
    is_high_value: bool
    expected_value: float
    recommendation: Literal["skip", "bet", "strong_bet"]

    @classmethod
    def from_result(cls, result: ValueBetResult) -> "ValueBetResponse":
        return cls(
            implied_probability=round(result.implied_probability, 4),
            value=round(result.value, 4),
            is_value_bet=result.is_value_bet,
            is_high_value=result.is_high_value,
            expected_value=round(result.expected_value, 4),
            recommendation=result.recommendation,
        )


class ValueSelectionIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    true_probability: float = Field(..., ge=0, le=100)
    odds: float = Field(..., gt=1.0)

    def to_selection(self) -> ValueSelection:
        return ValueSelection(self.name, self.true_probability, self.odds)


class ValueBetItem(ValueBetResponse):
    name: str
    odds: float
    true_probability: float


class ValueBetScanResponse(BaseModel):
    value_bets: List[ValueBetItem]
    count: int

    @classmethod
    def from_result(cls, bets: List[ScannedValueBet]) -> "ValueBetScanResponse":
        items = [
            ValueBetItem(
                name=b.name,
                odds=b.odds,
                true_probability=b.true_probability,
                **ValueBetResponse.from_result(b.result).model_dump(),
            )
            for b in bets
        ]
        return cls(value_bets=items, count=len(items))


# ---------------------------------------------------------------------------
# Fair value
# ---------------------------------------------------------------------------

class FairValueResponse(BaseModel):
    method: str
    fair_value: float
    current_price: float
    upside_percent: float
    rating: str
    confidence: float

    @classmethod
    def from_result(cls, result: ValuationResult) -> "FairValueResponse":
        return cls(
            method=result.method,
            fair_value=round(result.fair_value, 2),
            current_price=result.current_price,
            upside_percent=round(result.upside_percent, 2),
            rating=result.rating,
            confidence=result.confidence,
        )


# ---------------------------------------------------------------------------
# Simulation
# ---------------------------------------------------------------------------

class SimulationResponse(BaseModel):
    mean: float
    median: float
    std_dev: float
    percentile_5: float
    percentile_25: float
    percentile_75: float
    percentile_95: float
    min_value: float
    max_value: float
    probability_of_loss: float
    probability_of_gain: float
    simulations: int
    distribution: List[float]

    # Betting simulations only
    avg_final_bankroll: Optional[float] = None
    avg_max_drawdown: Optional[float] = None
    ruin_probability: Optional[float] = None
    double_probability: Optional[float] = None

    @classmethod
    def from_result(cls, result: SimulationResult) -> "SimulationResponse":
        data = {
            "mean": result.mean,
            "median": result.median,
            "std_dev": result.std_dev,
            "percentile_5": result.percentile_5,
            "percentile_25": result.percentile_25,
            "percentile_75": result.percentile_75,
            "percentile_95": result.percentile_95,
            "min_value": result.min_value,
            "max_value": result.max_value,
            "probability_of_loss": result.probability_of_loss,
            "probability_of_gain": result.probability_of_gain,
            "simulations": result.simulations,
            "distribution": list(result.distribution),
        }
        if isinstance(result, BettingSimulationResult):
            data.update(
                avg_final_bankroll=result.avg_final_bankroll,
                avg_max_drawdown=result.avg_max_drawdown,
                ruin_probability=result.ruin_probability,
                double_probability=result.double_probability,
            )
        return cls(**data)
