# schemas/portfolio_health_score.py
from __future__ import annotations

import math
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from services.portfolio.asset_classes import (
    AssetClass,
    RiskTolerance,
    normalize_asset_class,
    normalize_risk_tolerance,
)

Language = Literal["en", "es"]


class Holding(BaseModel):
    """One portfolio position. Also accepts the portfolio table column names."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, allow_inf_nan=False)

    asset_class: AssetClass = Field(validation_alias=AliasChoices("asset_class", "type"))
    ticker_symbol: Optional[str] = Field(
        default=None, max_length=20, validation_alias=AliasChoices("ticker_symbol", "ticker")
    )
    quantity_held: float = Field(gt=0, validation_alias=AliasChoices("quantity_held", "quantity"))
    purchase_unit_price: float = Field(
        gt=0, validation_alias=AliasChoices("purchase_unit_price", "purchase_price")
    )
    current_unit_price: Optional[float] = Field(
        default=None, ge=0, validation_alias=AliasChoices("current_unit_price", "current_price")
    )
    dividend_yield_percent: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("dividend_yield_percent", "dividend_yield")
    )
    last_updated_at: datetime = Field(validation_alias=AliasChoices("last_updated_at", "updated_at"))

    @field_validator("asset_class", mode="before")
    @classmethod
    def _normalize_asset_class(cls, v):
        return normalize_asset_class(v)

    @field_validator("ticker_symbol")
    @classmethod
    def _normalize_ticker(cls, v: Optional[str]) -> Optional[str]:
        s = (v or "").strip().upper()
        return s or None

    @model_validator(mode="after")
    def _values_are_finite(self) -> "Holding":
        if not (math.isfinite(self.market_value) and math.isfinite(self.cost_basis)):
            raise ValueError("quantity_held * price overflows")
        return self

    @property
    def unit_price(self) -> float:
        if self.current_unit_price is None:
            return self.purchase_unit_price
        return self.current_unit_price

    @property
    def market_value(self) -> float:
        return self.quantity_held * self.unit_price

    @property
    def cost_basis(self) -> float:
        return self.quantity_held * self.purchase_unit_price


class RiskProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    risk_tolerance: Optional[RiskTolerance] = None
    has_emergency_fund: Optional[bool] = None

    @field_validator("risk_tolerance", mode="before")
    @classmethod
    def _normalize_tolerance(cls, v):
        return normalize_risk_tolerance(v)


# ── Breakdown ───────────────────────────────────────────────────────────

class DiversificationDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    asset_count: int
    asset_count_score: int
    sector_count: int
    sector_diversity_score: int
    asset_type_count: int
    asset_type_diversity_score: int
    max_concentration: float
    concentration_score: int


class RiskManagementDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    volatility_score: int
    risk_alignment_score: int
    has_risk_profile: bool
    avg_volatility: float


class PerformanceDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    positive_assets_count: int
    total_assets_count: int
    positive_returns_ratio: float
    total_return_percentage: float
    total_return_score: int
    avg_dividend_yield: float
    dividend_yield_score: int


class BestPracticesDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    has_emergency_fund: bool
    emergency_fund_score: int
    has_recent_activity: bool
    contribution_score: int
    diversification_meets_target: bool
    rebalancing_score: int


class DiversificationScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=0, le=35)
    details: DiversificationDetails


class RiskManagementScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=0, le=30)
    details: RiskManagementDetails


class PerformanceScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=0, le=20)
    details: PerformanceDetails


class BestPracticesScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=0, le=15)
    details: BestPracticesDetails


class HealthScoreBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    diversification: DiversificationScore
    risk_management: RiskManagementScore
    performance: PerformanceScore
    best_practices: BestPracticesScore


class HealthScoreResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_score: int = Field(..., ge=0, le=100)
    rating: str
    color_tag: Literal["green", "lightgreen", "yellow", "orange", "red"]
    breakdown: HealthScoreBreakdown
    recommendations: List[str] = Field(..., min_length=1, max_length=5)


# ── HTTP ────────────────────────────────────────────────────────────────

class HealthScoreRequest(BaseModel):
    holdings: List[Holding] = Field(default_factory=list, max_length=500)
    risk_profile: Optional[RiskProfile] = None
    as_of: Optional[datetime] = None
    language: Optional[Language] = None


class AssetClassInfo(BaseModel):
    value: AssetClass
    label: str
    tickered: bool
    fixed_income: bool
    alternative: bool
    default_sector: str
    volatility_weight: float
