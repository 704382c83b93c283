"""FIFO lot matching and per-asset holding statistics."""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from decimal import Decimal
from typing import Deque, Iterable, Iterator, List, Sequence

from .models import Contribution, HoldingStats, UnmatchedSellWarning, ZERO
from .pricing import safe_divide
from .validation import validate_contributions

logger = logging.getLogger(__name__)


@dataclass
class Lot:
    """An open batch of acquired quantity at a fixed unit cost."""

    quantity: Decimal
    unit_cost: Decimal

    @property
    def cost_total(self) -> Decimal:
        return self.quantity * self.unit_cost


@dataclass(frozen=True)
class SellMatch:
    """Outcome of drawing a sell down against the open lots."""

    requested_quantity: Decimal
    matched_quantity: Decimal
    cost_basis: Decimal

    @property
    def unmatched_quantity(self) -> Decimal:
        return self.requested_quantity - self.matched_quantity


class LotQueue:
    """Open lots for one asset, consumed oldest first."""

    def __init__(self) -> None:
        self._lots: Deque[Lot] = deque()

    def __len__(self) -> int:
        return len(self._lots)

    def __iter__(self) -> Iterator[Lot]:
        return iter(self._lots)

    @property
    def quantity(self) -> Decimal:
        return sum((lot.quantity for lot in self._lots), ZERO)

    @property
    def cost_basis(self) -> Decimal:
        return sum((lot.cost_total for lot in self._lots), ZERO)

    @property
    def average_cost(self) -> Decimal:
        return safe_divide(self.cost_basis, self.quantity)

    def buy(self, quantity: Decimal, gross_amount: Decimal) -> Lot:
        # Brokerage on buys is already part of gross_amount.
        lot = Lot(quantity=quantity, unit_cost=safe_divide(gross_amount, quantity))
        self._lots.append(lot)
        return lot

    def sell(self, quantity: Decimal) -> SellMatch:
        remaining = abs(quantity)
        cost_basis = ZERO
        while remaining > 0 and self._lots:
            lot = self._lots[0]
            matched = min(remaining, lot.quantity)
            cost_basis += matched * lot.unit_cost
            lot.quantity -= matched
            remaining -= matched
            if lot.quantity == 0:
                self._lots.popleft()
        requested = abs(quantity)
        return SellMatch(
            requested_quantity=requested,
            matched_quantity=requested - remaining,
            cost_basis=cost_basis,
        )


def sort_chronologically(contributions: Iterable[Contribution]) -> List[Contribution]:
    """Return a new list ordered by date; ties keep their input order."""

    return sorted(contributions, key=lambda c: c.occurred_at)


def unmatched_sell_warning(contribution: Contribution, match: SellMatch) -> UnmatchedSellWarning:
    warning = UnmatchedSellWarning(
        asset_key=contribution.asset_key,
        unmatched_quantity=match.unmatched_quantity,
        contribution_date=contribution.contribution_date,
        contribution_id=contribution.contribution_id,
    )
    logger.warning("%s", warning)
    return warning


def compute_holding_stats(contributions: Sequence[Contribution]) -> HoldingStats:
    """Run FIFO matching over every contribution of a single asset.

    Realized profit on a sell is the matched share of its gross proceeds,
    less the full brokerage fee, less the FIFO cost of the matched units.
    Prorating the proceeds by ``matched / |quantity|`` treats the fee as flat
    for the whole sell; this is an approximation, not a tax-lot calculation.
    """

    if not contributions:
        return HoldingStats()

    validate_contributions(contributions)
    keys = {c.asset_key for c in contributions}
    if len(keys) > 1:
        raise ValueError(
            "compute_holding_stats expects a single asset, got "
            + ", ".join(sorted(str(k) for k in keys))
        )

    lots = LotQueue()
    realized_profit = ZERO
    realized_cost_basis = ZERO
    warnings: List[UnmatchedSellWarning] = []

    for contribution in sort_chronologically(contributions):
        if contribution.quantity == 0:
            continue
        if contribution.is_buy:
            lots.buy(contribution.quantity, contribution.gross_amount)
            continue

        match = lots.sell(contribution.quantity)
        if match.unmatched_quantity > 0:
            warnings.append(unmatched_sell_warning(contribution, match))
        if match.matched_quantity > 0:
            revenue = contribution.gross_amount * (match.matched_quantity / match.requested_quantity)
            net_revenue = revenue - contribution.brokerage_fee
            realized_profit += net_revenue - match.cost_basis
            realized_cost_basis += match.cost_basis

    return HoldingStats(
        realized_profit=realized_profit,
        remaining_quantity=lots.quantity,
        remaining_cost_basis=lots.cost_basis,
        realized_cost_basis=realized_cost_basis,
        warnings=tuple(warnings),
    )


__all__ = [
    "Lot",
    "LotQueue",
    "SellMatch",
    "compute_holding_stats",
    "sort_chronologically",
    "unmatched_sell_warning",
]
