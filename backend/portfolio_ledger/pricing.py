"""Valuation helpers shared by the reconstructor and the summary layer."""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional

from .models import AssetKey, AssetValuation, Contribution, PriceSource, ZERO


def safe_divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Divide, returning zero instead of raising when ``denominator`` is zero."""

    if denominator == 0:
        return ZERO
    return numerator / denominator


def has_market_price(contribution: Contribution) -> bool:
    price = contribution.current_price
    return price is not None and price > 0


def latest_market_price(contributions: Iterable[Contribution]) -> Optional[Decimal]:
    """Return the market price attached to the most recent priced record.

    Records are ranked by date; among records on the same date the one that
    appears last in the input wins.
    """

    latest: Optional[Contribution] = None
    for contribution in contributions:
        if not has_market_price(contribution):
            continue
        if latest is None or contribution.occurred_at >= latest.occurred_at:
            latest = contribution
    return latest.current_price if latest is not None else None


def value_position(
    asset_key: AssetKey,
    quantity: Decimal,
    cost_basis: Decimal,
    market_price: Optional[Decimal],
) -> AssetValuation:
    """Value an open position at market, or at its own cost when unpriced."""

    if market_price is not None and market_price > 0:
        return AssetValuation(asset_key, quantity, cost_basis, market_price, PriceSource.MARKET)
    return AssetValuation(
        asset_key,
        quantity,
        cost_basis,
        safe_divide(cost_basis, quantity),
        PriceSource.COST_PROXY,
    )


__all__ = ["has_market_price", "latest_market_price", "safe_divide", "value_position"]
