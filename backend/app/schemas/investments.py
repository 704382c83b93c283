"""Pydantic schemas for investment accounting requests and responses."""

from __future__ import annotations

from datetime import date, datetime, tzinfo
from decimal import Decimal

from pydantic import BaseModel, Field

from portfolio_ledger import AssetCategory, Contribution, PriceSource, Resolution
from portfolio_ledger.evolution import PERIODS


class ContributionSchema(BaseModel):
    contribution_id: str | None = None
    category: AssetCategory = Field(default=AssetCategory.OTHER)
    asset_name: str = Field(..., min_length=1, examples=["PETR4"])
    quantity: Decimal = Field(..., description="Positive for buys, negative for sells")
    contribution_date: date | datetime
    gross_amount: Decimal = Field(..., ge=0, description="Total value of the trade")
    brokerage_fee: Decimal = Field(default=Decimal("0"), ge=0)
    current_price: Decimal | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)

    def to_domain(self, tz: tzinfo | None = None) -> Contribution:
        """Build the engine record, moving aware timestamps into ``tz`` local time."""

        when = self.contribution_date
        if isinstance(when, datetime) and when.tzinfo is not None and tz is not None:
            when = when.astimezone(tz).replace(tzinfo=None)
        return Contribution(
            category=self.category,
            asset_name=self.asset_name,
            quantity=self.quantity,
            contribution_date=when,
            gross_amount=self.gross_amount,
            brokerage_fee=self.brokerage_fee,
            current_price=self.current_price,
            contribution_id=self.contribution_id,
            currency=self.currency.upper() if self.currency else None,
        )


class FXRateSchema(BaseModel):
    rate_date: date
    from_currency: str = Field(..., min_length=3, max_length=3)
    to_currency: str = Field(..., min_length=3, max_length=3)
    rate: Decimal = Field(..., gt=0)


class ContributionsRequest(BaseModel):
    contributions: list[ContributionSchema]
    fx_rates: list[FXRateSchema] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "contributions": [
                    {
                        "category": "STOCK_BR",
                        "asset_name": "PETR4",
                        "quantity": 10,
                        "contribution_date": "2024-01-01",
                        "gross_amount": 100,
                        "current_price": 12.5,
                    },
                    {
                        "category": "STOCK_BR",
                        "asset_name": "PETR4",
                        "quantity": -4,
                        "contribution_date": "2024-03-01",
                        "gross_amount": 60,
                        "brokerage_fee": 0,
                    },
                ],
            }
        }


class EvolutionRequest(ContributionsRequest):
    period: str | None = Field(default=None, pattern="^(" + "|".join(PERIODS) + ")$")
    start_date: date | datetime | None = None
    end_date: date | datetime | None = None
    as_of: datetime | None = Field(default=None, description="Valuation instant; defaults to now")


class UnmatchedSellWarningSchema(BaseModel):
    asset_key: str
    unmatched_quantity: float
    contribution_date: date | datetime
    contribution_id: str | None = None


class HoldingStatsSchema(BaseModel):
    asset_key: str | None = None
    realized_profit: float
    remaining_quantity: float
    remaining_cost_basis: float
    realized_cost_basis: float
    invested_capital: float
    warnings: list[UnmatchedSellWarningSchema] = Field(default_factory=list)


class HoldingGroupSchema(BaseModel):
    asset_key: str
    category: AssetCategory
    asset_name: str
    quantity: float
    average_cost: float
    unit_price: float
    price_source: PriceSource
    invested_value: float
    current_value: float
    invested_capital: float
    realized_profit: float
    unrealized_return: float
    total_return: float
    return_percent: float
    contributions: int


class AllocationSliceSchema(BaseModel):
    category: AssetCategory
    value: float
    weight_percent: float


class PortfolioTotalsSchema(BaseModel):
    total_invested: float
    total_current: float
    realized_profit: float
    total_return: float
    total_return_percent: float


class PortfolioSummaryResponse(BaseModel):
    holdings: list[HoldingGroupSchema]
    closed: list[HoldingGroupSchema]
    allocation: list[AllocationSliceSchema]
    totals: PortfolioTotalsSchema
    warnings: list[UnmatchedSellWarningSchema] = Field(default_factory=list)


class CategorySeriesSchema(BaseModel):
    invested: list[float]
    current: list[float]


class RejectedContributionSchema(BaseModel):
    contribution_id: str | None = None
    field: str
    reason: str


class EvolutionResponse(BaseModel):
    labels: list[str]
    invested: list[float]
    current: list[float]
    categories: dict[AssetCategory, CategorySeriesSchema] = Field(default_factory=dict)
    resolution: Resolution
    points: int
    start: datetime
    end: datetime
    warnings: list[UnmatchedSellWarningSchema] = Field(default_factory=list)
    rejected: list[RejectedContributionSchema] = Field(default_factory=list)


__all__ = [
    "AllocationSliceSchema",
    "CategorySeriesSchema",
    "ContributionSchema",
    "ContributionsRequest",
    "EvolutionRequest",
    "EvolutionResponse",
    "FXRateSchema",
    "HoldingGroupSchema",
    "HoldingStatsSchema",
    "PortfolioSummaryResponse",
    "PortfolioTotalsSchema",
    "RejectedContributionSchema",
    "UnmatchedSellWarningSchema",
]
