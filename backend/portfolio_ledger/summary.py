"""Portfolio aggregation: per-asset holdings and portfolio-level totals."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Sequence, Tuple

from .lots import compute_holding_stats
from .models import (
    AssetCategory,
    AssetKey,
    Contribution,
    HoldingStats,
    PriceSource,
    UnmatchedSellWarning,
    ZERO,
)
from .pricing import latest_market_price, safe_divide, value_position
from .validation import validate_contributions

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class HoldingGroup:
    """Every contribution of one asset plus its derived figures."""

    asset_key: AssetKey
    contributions: Tuple[Contribution, ...]
    stats: HoldingStats
    average_cost: Decimal
    unit_price: Decimal
    price_source: PriceSource
    current_value: Decimal

    @property
    def category(self) -> AssetCategory:
        return self.asset_key.category

    @property
    def asset_name(self) -> str:
        return self.asset_key.asset_name

    @property
    def is_active(self) -> bool:
        return self.stats.remaining_quantity > 0

    @property
    def unrealized_return(self) -> Decimal:
        if not self.is_active:
            return ZERO
        return self.current_value - self.stats.remaining_cost_basis

    @property
    def total_return(self) -> Decimal:
        return self.stats.realized_profit + self.unrealized_return

    @property
    def return_percent(self) -> Decimal:
        """Return relative to lifetime capital, or open cost if that is zero."""

        base = self.stats.invested_capital
        if base <= 0:
            base = self.stats.remaining_cost_basis
        return safe_divide(self.total_return, base) * HUNDRED


@dataclass(frozen=True)
class AllocationSlice:
    category: AssetCategory
    value: Decimal
    weight_percent: Decimal


@dataclass(frozen=True)
class PortfolioTotals:
    """Portfolio-wide figures.

    ``total_invested`` is the open cost of active holdings, i.e. capital
    still at risk. ``total_return_percent`` is measured against it rather
    than against lifetime capital deployed, so fully closed positions add
    their realized profit to the numerator without adding to the base.
    """

    total_invested: Decimal = ZERO
    total_current: Decimal = ZERO
    realized_profit: Decimal = ZERO
    total_return: Decimal = ZERO
    total_return_percent: Decimal = ZERO


@dataclass(frozen=True)
class PortfolioSummary:
    holdings: Tuple[HoldingGroup, ...]
    closed: Tuple[HoldingGroup, ...]
    totals: PortfolioTotals
    allocation: Tuple[AllocationSlice, ...] = ()
    warnings: Tuple[UnmatchedSellWarning, ...] = ()

    def by_category(self) -> Dict[AssetCategory, List[HoldingGroup]]:
        grouped: Dict[AssetCategory, List[HoldingGroup]] = {}
        for group in self.holdings:
            grouped.setdefault(group.category, []).append(group)
        return grouped


def group_by_asset(contributions: Sequence[Contribution]) -> Dict[AssetKey, List[Contribution]]:
    """Bucket contributions by asset key, keeping first-seen order."""

    grouped: Dict[AssetKey, List[Contribution]] = {}
    for contribution in contributions:
        grouped.setdefault(contribution.asset_key, []).append(contribution)
    return grouped


def build_holding_group(asset_key: AssetKey, contributions: Sequence[Contribution]) -> HoldingGroup:
    stats = compute_holding_stats(contributions)
    valuation = value_position(
        asset_key,
        stats.remaining_quantity,
        stats.remaining_cost_basis,
        latest_market_price(contributions),
    )
    return HoldingGroup(
        asset_key=asset_key,
        contributions=tuple(contributions),
        stats=stats,
        average_cost=safe_divide(stats.remaining_cost_basis, stats.remaining_quantity),
        unit_price=valuation.unit_price,
        price_source=valuation.price_source,
        current_value=valuation.market_value,
    )


def _allocation(holdings: Sequence[HoldingGroup], total_current: Decimal) -> Tuple[AllocationSlice, ...]:
    per_category: Dict[AssetCategory, Decimal] = {}
    for group in holdings:
        per_category[group.category] = per_category.get(group.category, ZERO) + group.current_value
    slices = [
        AllocationSlice(category, value, safe_divide(value, total_current) * HUNDRED)
        for category, value in per_category.items()
        if value > 0
    ]
    slices.sort(key=lambda s: s.value, reverse=True)
    return tuple(slices)


def summarize_portfolio(contributions: Sequence[Contribution]) -> PortfolioSummary:
    """Group contributions per asset and roll them up into portfolio totals."""

    validate_contributions(contributions)

    active: List[HoldingGroup] = []
    closed: List[HoldingGroup] = []
    warnings: List[UnmatchedSellWarning] = []
    for asset_key, items in group_by_asset(contributions).items():
        group = build_holding_group(asset_key, items)
        warnings.extend(group.stats.warnings)
        (active if group.is_active else closed).append(group)

    realized = sum((g.stats.realized_profit for g in active + closed), ZERO)
    total_invested = sum((g.stats.remaining_cost_basis for g in active), ZERO)
    total_current = sum((g.current_value for g in active), ZERO)
    total_return = realized + (total_current - total_invested)
    totals = PortfolioTotals(
        total_invested=total_invested,
        total_current=total_current,
        realized_profit=realized,
        total_return=total_return,
        total_return_percent=safe_divide(total_return, total_invested) * HUNDRED,
    )
    logger.debug(
        "Summarised %d active and %d closed holdings", len(active), len(closed)
    )
    return PortfolioSummary(
        holdings=tuple(active),
        closed=tuple(closed),
        totals=totals,
        allocation=_allocation(active, total_current),
        warnings=tuple(warnings),
    )


__all__ = [
    "AllocationSlice",
    "HoldingGroup",
    "PortfolioSummary",
    "PortfolioTotals",
    "build_holding_group",
    "group_by_asset",
    "summarize_portfolio",
]
