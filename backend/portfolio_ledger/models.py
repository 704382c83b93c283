"""Domain models used by the portfolio ledger engines."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Mapping, Optional, Tuple

ZERO = Decimal("0")


class AssetCategory(str, Enum):
    STOCK_BR = "STOCK_BR"
    STOCK_INTL = "STOCK_INTL"
    CRYPTO = "CRYPTO"
    REIT = "REIT"
    FIXED_INCOME = "FIXED_INCOME"
    OTHER = "OTHER"


class PriceSource(str, Enum):
    """Where the unit price used to value an open position came from."""

    MARKET = "MARKET"
    COST_PROXY = "COST_PROXY"


class Resolution(str, Enum):
    TWO_HOURS = "2h"
    DAILY = "1d"


@dataclass(frozen=True, order=True)
class AssetKey:
    """Identity of a holding: category plus free-text asset name."""

    category: AssetCategory
    asset_name: str

    def __str__(self) -> str:
        return f"{self.category.value}_{self.asset_name}"


@dataclass(frozen=True)
class Contribution:
    """A single buy (positive quantity) or sell (negative quantity) event."""

    category: AssetCategory
    asset_name: str
    quantity: Decimal
    contribution_date: date
    gross_amount: Decimal
    brokerage_fee: Decimal = ZERO
    current_price: Optional[Decimal] = None
    contribution_id: Optional[str] = None
    currency: Optional[str] = None

    @property
    def asset_key(self) -> AssetKey:
        return AssetKey(self.category, self.asset_name)

    @property
    def occurred_at(self) -> datetime:
        """Return the contribution date as a ``datetime``.

        Day-precision dates are anchored at midnight so they sort and compare
        against intraday records and grid ticks consistently.
        """

        value = self.contribution_date
        if isinstance(value, datetime):
            return value
        return datetime(value.year, value.month, value.day)

    @property
    def is_buy(self) -> bool:
        return self.quantity > 0

    @property
    def is_sell(self) -> bool:
        return self.quantity < 0


@dataclass(frozen=True)
class UnmatchedSellWarning:
    """A sell that asked for more quantity than the open lots held."""

    asset_key: AssetKey
    unmatched_quantity: Decimal
    contribution_date: date
    contribution_id: Optional[str] = None

    def __str__(self) -> str:
        return (
            f"Sell of {self.asset_key} on {self.contribution_date.isoformat()} "
            f"left {self.unmatched_quantity} units unmatched"
        )


@dataclass(frozen=True)
class HoldingStats:
    """FIFO accounting result for one asset."""

    realized_profit: Decimal = ZERO
    remaining_quantity: Decimal = ZERO
    remaining_cost_basis: Decimal = ZERO
    realized_cost_basis: Decimal = ZERO
    warnings: Tuple[UnmatchedSellWarning, ...] = ()

    @property
    def invested_capital(self) -> Decimal:
        """Capital ever deployed: open cost plus the cost of closed quantity."""

        return self.remaining_cost_basis + self.realized_cost_basis

    @property
    def is_open(self) -> bool:
        return self.remaining_quantity > 0


@dataclass(frozen=True)
class AssetValuation:
    """Mark-to-market view of an open position at one point in time."""

    asset_key: AssetKey
    quantity: Decimal
    cost_basis: Decimal
    unit_price: Decimal
    price_source: PriceSource

    @property
    def market_value(self) -> Decimal:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class CategoryValue:
    invested_value: Decimal = ZERO
    current_value: Decimal = ZERO


@dataclass(frozen=True)
class EvolutionPoint:
    """Aggregate invested cost and market value at one grid tick."""

    timestamp: datetime
    label: str
    invested_value: Decimal
    current_value: Decimal
    by_category: Mapping[AssetCategory, CategoryValue] = field(default_factory=dict)
    price_sources: Mapping[AssetKey, PriceSource] = field(default_factory=dict)


__all__ = [
    "ZERO",
    "AssetCategory",
    "AssetKey",
    "AssetValuation",
    "CategoryValue",
    "Contribution",
    "EvolutionPoint",
    "HoldingStats",
    "PriceSource",
    "Resolution",
    "UnmatchedSellWarning",
]
