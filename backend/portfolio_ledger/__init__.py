"""FIFO investment accounting: holding stats, value history and summaries."""

from .evolution import EvolutionSeries, build_evolution_series, resolve_period_start
from .fx import FXRateProvider, MissingFXRateError, to_reporting_currency
from .lots import compute_holding_stats
from .models import (
    AssetCategory,
    AssetKey,
    Contribution,
    EvolutionPoint,
    HoldingStats,
    PriceSource,
    Resolution,
    UnmatchedSellWarning,
)
from .summary import PortfolioSummary, PortfolioTotals, summarize_portfolio
from .validation import InvalidContributionError, contribution_from_mapping

__all__ = [
    "AssetCategory",
    "AssetKey",
    "Contribution",
    "EvolutionPoint",
    "EvolutionSeries",
    "FXRateProvider",
    "HoldingStats",
    "InvalidContributionError",
    "MissingFXRateError",
    "PortfolioSummary",
    "PortfolioTotals",
    "PriceSource",
    "Resolution",
    "UnmatchedSellWarning",
    "build_evolution_series",
    "compute_holding_stats",
    "contribution_from_mapping",
    "resolve_period_start",
    "summarize_portfolio",
    "to_reporting_currency",
]
