"""Pydantic schema exports."""

from .investments import (
    AllocationSliceSchema,
    CategorySeriesSchema,
    ContributionSchema,
    ContributionsRequest,
    EvolutionRequest,
    EvolutionResponse,
    FXRateSchema,
    HoldingGroupSchema,
    HoldingStatsSchema,
    PortfolioSummaryResponse,
    PortfolioTotalsSchema,
    RejectedContributionSchema,
    UnmatchedSellWarningSchema,
)

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
