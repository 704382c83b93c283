"""Glue between the investment API schemas and the accounting engines."""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence
from zoneinfo import ZoneInfo

from opentelemetry import trace

from app.config import AppSettings
from app.schemas.investments import (
    AllocationSliceSchema,
    CategorySeriesSchema,
    ContributionsRequest,
    EvolutionRequest,
    EvolutionResponse,
    HoldingGroupSchema,
    HoldingStatsSchema,
    PortfolioSummaryResponse,
    PortfolioTotalsSchema,
    RejectedContributionSchema,
    UnmatchedSellWarningSchema,
)
from portfolio_ledger import (
    Contribution,
    FXRateProvider,
    UnmatchedSellWarning,
    build_evolution_series,
    compute_holding_stats,
    resolve_period_start,
    summarize_portfolio,
    to_reporting_currency,
)
from portfolio_ledger.summary import HoldingGroup

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class EvolutionRangeError(ValueError):
    """The requested evolution window is longer than the service allows."""


def _money(value: Decimal, places: int) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(value.quantize(quantum, rounding=ROUND_HALF_UP))


def _as_datetime(value: date | datetime, tz: ZoneInfo) -> datetime:
    """Return ``value`` as a naive datetime in the service timezone."""

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(tz)
        return value.replace(tzinfo=None)
    return datetime(value.year, value.month, value.day)


def load_contributions(payload: ContributionsRequest, settings: AppSettings) -> list[Contribution]:
    """Build domain contributions, converting currencies when rates are given."""

    tz = ZoneInfo(settings.timezone)
    contributions = [item.to_domain(tz) for item in payload.contributions]
    if not payload.fx_rates:
        return contributions
    provider = FXRateProvider(
        rates={
            (r.rate_date, r.from_currency.upper(), r.to_currency.upper()): r.rate
            for r in payload.fx_rates
        },
        base_currency=settings.reporting_currency,
    )
    return to_reporting_currency(contributions, provider, settings.reporting_currency)


def _warnings(warnings: Iterable[UnmatchedSellWarning]) -> list[UnmatchedSellWarningSchema]:
    return [
        UnmatchedSellWarningSchema(
            asset_key=str(w.asset_key),
            unmatched_quantity=float(w.unmatched_quantity),
            contribution_date=w.contribution_date,
            contribution_id=w.contribution_id,
        )
        for w in warnings
    ]


def holding_stats(payload: ContributionsRequest, settings: AppSettings) -> HoldingStatsSchema:
    contributions = load_contributions(payload, settings)
    with tracer.start_as_current_span("ledger.holding_stats") as span:
        span.set_attribute("ledger.contributions", len(contributions))
        stats = compute_holding_stats(contributions)
    places = settings.money_decimal_places
    return HoldingStatsSchema(
        asset_key=str(contributions[0].asset_key) if contributions else None,
        realized_profit=_money(stats.realized_profit, places),
        remaining_quantity=float(stats.remaining_quantity),
        remaining_cost_basis=_money(stats.remaining_cost_basis, places),
        realized_cost_basis=_money(stats.realized_cost_basis, places),
        invested_capital=_money(stats.invested_capital, places),
        warnings=_warnings(stats.warnings),
    )


def _group_schema(group: HoldingGroup, places: int) -> HoldingGroupSchema:
    stats = group.stats
    return HoldingGroupSchema(
        asset_key=str(group.asset_key),
        category=group.category,
        asset_name=group.asset_name,
        quantity=float(stats.remaining_quantity),
        average_cost=_money(group.average_cost, places),
        unit_price=_money(group.unit_price, places),
        price_source=group.price_source,
        invested_value=_money(stats.remaining_cost_basis, places),
        current_value=_money(group.current_value, places),
        invested_capital=_money(stats.invested_capital, places),
        realized_profit=_money(stats.realized_profit, places),
        unrealized_return=_money(group.unrealized_return, places),
        total_return=_money(group.total_return, places),
        return_percent=_money(group.return_percent, places),
        contributions=len(group.contributions),
    )


def portfolio_summary(payload: ContributionsRequest, settings: AppSettings) -> PortfolioSummaryResponse:
    contributions = load_contributions(payload, settings)
    with tracer.start_as_current_span("ledger.summarize_portfolio") as span:
        span.set_attribute("ledger.contributions", len(contributions))
        summary = summarize_portfolio(contributions)
    places = settings.money_decimal_places
    totals = summary.totals
    return PortfolioSummaryResponse(
        holdings=[_group_schema(g, places) for g in summary.holdings],
        closed=[_group_schema(g, places) for g in summary.closed],
        allocation=[
            AllocationSliceSchema(
                category=s.category,
                value=_money(s.value, places),
                weight_percent=_money(s.weight_percent, places),
            )
            for s in summary.allocation
        ],
        totals=PortfolioTotalsSchema(
            total_invested=_money(totals.total_invested, places),
            total_current=_money(totals.total_current, places),
            realized_profit=_money(totals.realized_profit, places),
            total_return=_money(totals.total_return, places),
            total_return_percent=_money(totals.total_return_percent, places),
        ),
        warnings=_warnings(summary.warnings),
    )


def resolve_window(
    payload: EvolutionRequest,
    contributions: Sequence[Contribution],
    settings: AppSettings,
    as_of: datetime,
) -> tuple[datetime, datetime]:
    """Work out the evolution range from explicit bounds or a period preset."""

    tz = ZoneInfo(settings.timezone)
    end = _as_datetime(payload.end_date, tz) if payload.end_date else as_of
    if payload.start_date:
        start = _as_datetime(payload.start_date, tz)
    else:
        period = payload.period or settings.evolution_default_period
        start = resolve_period_start(period, end, contributions)
    if start > end:
        start, end = end, start
    if (end - start).days > settings.evolution_max_days:
        raise EvolutionRangeError(
            f"Evolution range of {(end - start).days} days exceeds the "
            f"{settings.evolution_max_days}-day maximum"
        )
    return start, end


def evolution(
    payload: EvolutionRequest,
    settings: AppSettings,
    now: datetime | None = None,
) -> EvolutionResponse | None:
    contributions = load_contributions(payload, settings)
    if not contributions:
        return None

    tz = ZoneInfo(settings.timezone)
    if payload.as_of is not None:
        as_of = _as_datetime(payload.as_of, tz)
    else:
        as_of = _as_datetime(now or datetime.now(tz), tz)
    start, end = resolve_window(payload, contributions, settings, as_of)

    with tracer.start_as_current_span("ledger.build_evolution_series") as span:
        span.set_attribute("ledger.contributions", len(contributions))
        series = build_evolution_series(
            contributions,
            start,
            end,
            as_of=as_of,
            max_points=settings.evolution_max_points,
        )
        span.set_attribute("ledger.points", len(series) if series else 0)
    if series is None:
        return None

    places = settings.money_decimal_places
    if series.rejected:
        logger.info("Evolution replay skipped %d invalid contributions", len(series.rejected))
    return EvolutionResponse(
        labels=series.labels,
        invested=[_money(v, places) for v in series.invested],
        current=[_money(v, places) for v in series.current],
        categories={
            category: CategorySeriesSchema(
                invested=[_money(v, places) for v in values["invested"]],
                current=[_money(v, places) for v in values["current"]],
            )
            for category, values in series.category_series().items()
        },
        resolution=series.resolution,
        points=len(series),
        start=series.start,
        end=series.end,
        warnings=_warnings(series.warnings),
        rejected=[
            RejectedContributionSchema(
                contribution_id=exc.contribution_id,
                field=exc.field,
                reason=exc.reason,
            )
            for exc in series.rejected
        ],
    )


__all__ = [
    "EvolutionRangeError",
    "evolution",
    "holding_stats",
    "load_contributions",
    "portfolio_summary",
    "resolve_window",
]
