"""Reconstruct invested-cost and market-value history from contributions.

The reconstructor replays every contribution in date order against a grid of
ticks. At each tick it values the open lots of every asset, either at the
latest market price seen so far or, when no price is known yet, at the
position's own average cost. Lot matching is the same FIFO logic used by
:func:`portfolio_ledger.lots.compute_holding_stats`, applied incrementally.

The caller injects ``as_of``; nothing in here reads the clock.
"""
from __future__ import annotations

import calendar
import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .lots import LotQueue, sort_chronologically, unmatched_sell_warning
from .models import (
    AssetCategory,
    AssetKey,
    CategoryValue,
    Contribution,
    EvolutionPoint,
    PriceSource,
    Resolution,
    UnmatchedSellWarning,
    ZERO,
)
from .pricing import has_market_price, latest_market_price, value_position
from .validation import InvalidContributionError, validate_contribution

logger = logging.getLogger(__name__)

INTRADAY_WINDOW = timedelta(hours=24)
INTRADAY_STEP = timedelta(hours=2)
LONG_RANGE_DAYS = 365

PERIODS = ("1D", "1W", "1M", "6M", "YTD", "1Y", "5Y", "ALL")
DEFAULT_PERIOD = "1M"

# (largest days-per-point ratio, rounded step in days)
_DAY_STEPS = ((2, 1), (5, 3), (10, 7), (20, 14), (30, 30))
_MAX_DAY_STEP = 60


@dataclass
class _AssetState:
    # Kept after the lots run out so a reopened position reuses the last price.
    lots: LotQueue = field(default_factory=LotQueue)
    last_known_price: Optional[Decimal] = None


@dataclass(frozen=True)
class EvolutionSeries:
    """Chart-ready history: one point per tick plus replay diagnostics."""

    points: Tuple[EvolutionPoint, ...]
    resolution: Resolution
    start: datetime
    end: datetime
    warnings: Tuple[UnmatchedSellWarning, ...] = ()
    rejected: Tuple[InvalidContributionError, ...] = ()

    def __len__(self) -> int:
        return len(self.points)

    @property
    def labels(self) -> List[str]:
        return [p.label for p in self.points]

    @property
    def invested(self) -> List[Decimal]:
        return [p.invested_value for p in self.points]

    @property
    def current(self) -> List[Decimal]:
        return [p.current_value for p in self.points]

    def category_series(self) -> Dict[AssetCategory, Dict[str, List[Decimal]]]:
        """Per-category invested/current arrays aligned with :attr:`labels`.

        Every category that holds a position at any tick gets a full-length
        array; ticks where it held nothing are zero.
        """

        seen: List[AssetCategory] = []
        for point in self.points:
            for category in point.by_category:
                if category not in seen:
                    seen.append(category)
        result: Dict[AssetCategory, Dict[str, List[Decimal]]] = {}
        for category in seen:
            values = [p.by_category.get(category, CategoryValue()) for p in self.points]
            result[category] = {
                "invested": [v.invested_value for v in values],
                "current": [v.current_value for v in values],
            }
        return result


def resolve_resolution(start: datetime, end: datetime) -> Resolution:
    if abs(end - start) <= INTRADAY_WINDOW:
        return Resolution.TWO_HOURS
    return Resolution.DAILY


def downsample_step(total_days: int, max_points: Optional[int]) -> int:
    """Pick a rounded day step so a daily grid stays near ``max_points``."""

    if not max_points or total_days <= max_points:
        return 1
    ratio = math.ceil(total_days / max_points)
    for limit, step in _DAY_STEPS:
        if ratio <= limit:
            return step
    return _MAX_DAY_STEP


def build_grid(
    start: datetime,
    end: datetime,
    resolution: Resolution,
    *,
    day_step: int = 1,
) -> List[datetime]:
    """Return the tick timestamps for ``[start, end]``.

    Intraday grids step two hours from ``start`` and always end on ``end``.
    Daily grids step over calendar days at midnight and always end on
    ``end``'s day.
    """

    ticks: List[datetime] = []
    if resolution == Resolution.TWO_HOURS:
        cursor = start
        while cursor <= end:
            ticks.append(cursor)
            cursor += INTRADAY_STEP
        if ticks[-1] != end:
            ticks.append(end)
        return ticks

    first = datetime(start.year, start.month, start.day)
    last = datetime(end.year, end.month, end.day)
    step = timedelta(days=max(day_step, 1))
    cursor = first
    while cursor <= last:
        ticks.append(cursor)
        cursor += step
    if ticks[-1] != last:
        ticks.append(last)
    return ticks


def format_label(tick: datetime, resolution: Resolution, *, long_range: bool = False) -> str:
    if resolution == Resolution.TWO_HOURS:
        return tick.strftime("%H:%M")
    if long_range:
        return tick.strftime("%d/%m/%Y")
    return tick.strftime("%d/%m")


def _shift_months(value: date, months: int) -> date:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def resolve_period_start(
    period: Optional[str],
    end: date,
    contributions: Iterable[Contribution] = (),
) -> date:
    """Map a chart period preset onto a start date (or datetime) before ``end``.

    ``end`` may be a ``date`` or a ``datetime``; the result has the same type.
    Unknown presets fall back to one month.
    """

    preset = (period or DEFAULT_PERIOD).upper()
    if preset == "1D":
        return end - timedelta(days=1)
    if preset == "1W":
        return end - timedelta(weeks=1)
    if preset == "6M":
        return _shift_months(end, -6)
    if preset == "YTD":
        return end.replace(month=1, day=1)
    if preset == "1Y":
        return _shift_months(end, -12)
    if preset == "5Y":
        return _shift_months(end, -60)
    if preset == "ALL":
        dates = [c.occurred_at for c in contributions]
        if dates:
            earliest = min(dates)
            return earliest if isinstance(end, datetime) else earliest.date()
    return _shift_months(end, -1)


def _coerce_anchor(value, as_of: datetime) -> datetime:
    if value is None:
        return as_of
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            return _coerce_anchor(datetime.fromisoformat(value.strip()), as_of)
        except ValueError:
            pass
    logger.warning("Unusable range bound %r; anchoring to %s", value, as_of.isoformat())
    return as_of


def _partition_valid(
    contributions: Iterable[Contribution],
) -> Tuple[List[Contribution], List[InvalidContributionError]]:
    valid: List[Contribution] = []
    rejected: List[InvalidContributionError] = []
    for contribution in contributions:
        try:
            valid.append(validate_contribution(contribution))
        except InvalidContributionError as exc:
            logger.warning("Skipping contribution in evolution replay: %s", exc)
            rejected.append(exc)
    return valid, rejected


def _apply(
    contribution: Contribution,
    states: Dict[AssetKey, _AssetState],
    warnings: List[UnmatchedSellWarning],
) -> None:
    if contribution.quantity == 0:
        return
    key = contribution.asset_key
    state = states.setdefault(key, _AssetState())
    if has_market_price(contribution):
        state.last_known_price = contribution.current_price

    if contribution.is_buy:
        state.lots.buy(contribution.quantity, contribution.gross_amount)
    else:
        match = state.lots.sell(contribution.quantity)
        if match.unmatched_quantity > 0:
            warnings.append(unmatched_sell_warning(contribution, match))


def build_evolution_series(
    contributions: Sequence[Contribution],
    start_date=None,
    end_date=None,
    *,
    as_of: datetime,
    max_points: Optional[int] = None,
) -> Optional[EvolutionSeries]:
    """Rebuild the invested/current value history over ``[start_date, end_date]``.

    Returns ``None`` when there are no contributions. Records that fail
    validation are left out of the replay and reported on
    :attr:`EvolutionSeries.rejected`; this function does not raise for bad
    records. All timestamps are naive local time: timezone-aware range bounds
    are ignored like any other unusable bound, and an aware ``as_of`` raises
    ``ValueError``.
    """

    if not contributions:
        return None

    if not isinstance(as_of, datetime):
        as_of = datetime(as_of.year, as_of.month, as_of.day)
    if as_of.tzinfo is not None:
        raise ValueError("as_of must be a naive datetime in the portfolio's local time")
    start = _coerce_anchor(start_date, as_of)
    end = _coerce_anchor(end_date, as_of)
    if start > end:
        start, end = end, start

    valid, rejected = _partition_valid(contributions)
    ordered = sort_chronologically(valid)

    latest_prices: Dict[AssetKey, Decimal] = {}
    by_asset: Dict[AssetKey, List[Contribution]] = {}
    for contribution in ordered:
        by_asset.setdefault(contribution.asset_key, []).append(contribution)
    for key, items in by_asset.items():
        price = latest_market_price(items)
        if price is not None:
            latest_prices[key] = price

    resolution = resolve_resolution(start, end)
    total_days = (end.date() - start.date()).days
    day_step = downsample_step(total_days, max_points) if resolution == Resolution.DAILY else 1
    grid = build_grid(start, end, resolution, day_step=day_step)
    long_range = total_days > LONG_RANGE_DAYS
    logger.debug(
        "Replaying %d contributions over %d ticks (%s, step=%d)",
        len(ordered),
        len(grid),
        resolution.value,
        day_step,
    )

    states: Dict[AssetKey, _AssetState] = {}
    warnings: List[UnmatchedSellWarning] = []
    points: List[EvolutionPoint] = []
    cursor = 0

    for index, tick in enumerate(grid):
        while cursor < len(ordered):
            occurred = ordered[cursor].occurred_at
            if resolution == Resolution.DAILY:
                due = occurred.date() <= tick.date()
            else:
                due = occurred <= tick
            if not due:
                break
            _apply(ordered[cursor], states, warnings)
            cursor += 1

        refresh = index == len(grid) - 1 or tick.date() == as_of.date()
        invested = ZERO
        current = ZERO
        by_category: Dict[AssetCategory, CategoryValue] = {}
        sources: Dict[AssetKey, PriceSource] = {}
        for key, state in states.items():
            quantity = state.lots.quantity
            if quantity <= 0:
                continue
            if refresh and key in latest_prices:
                state.last_known_price = latest_prices[key]
            valuation = value_position(key, quantity, state.lots.cost_basis, state.last_known_price)
            invested += valuation.cost_basis
            current += valuation.market_value
            sources[key] = valuation.price_source
            bucket = by_category.get(key.category, CategoryValue())
            by_category[key.category] = CategoryValue(
                invested_value=bucket.invested_value + valuation.cost_basis,
                current_value=bucket.current_value + valuation.market_value,
            )

        points.append(
            EvolutionPoint(
                timestamp=tick,
                label=format_label(tick, resolution, long_range=long_range),
                invested_value=invested,
                current_value=current,
                by_category=by_category,
                price_sources=sources,
            )
        )

    return EvolutionSeries(
        points=tuple(points),
        resolution=resolution,
        start=start,
        end=end,
        warnings=tuple(warnings),
        rejected=tuple(rejected),
    )


__all__ = [
    "DEFAULT_PERIOD",
    "EvolutionSeries",
    "PERIODS",
    "build_evolution_series",
    "build_grid",
    "downsample_step",
    "format_label",
    "resolve_period_start",
    "resolve_resolution",
]
