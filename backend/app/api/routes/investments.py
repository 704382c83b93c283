"""Investment accounting endpoints: holding stats, summary and evolution."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.dependencies.settings import get_app_settings
from app.config import AppSettings
from app.schemas import (
    ContributionsRequest,
    EvolutionRequest,
    EvolutionResponse,
    HoldingStatsSchema,
    PortfolioSummaryResponse,
)
from app.services import investments as investments_service
from portfolio_ledger import InvalidContributionError, MissingFXRateError

router = APIRouter()


def _unprocessable(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))


@router.post("/holdings", response_model=HoldingStatsSchema)
async def post_holding_stats(
    payload: ContributionsRequest,
    settings: AppSettings = Depends(get_app_settings),
) -> HoldingStatsSchema:
    """FIFO statistics for the contributions of a single asset."""

    try:
        return investments_service.holding_stats(payload, settings)
    except (InvalidContributionError, MissingFXRateError, ValueError) as exc:
        raise _unprocessable(exc) from exc


@router.post("/summary", response_model=PortfolioSummaryResponse)
async def post_summary(
    payload: ContributionsRequest,
    settings: AppSettings = Depends(get_app_settings),
) -> PortfolioSummaryResponse:
    try:
        return investments_service.portfolio_summary(payload, settings)
    except (InvalidContributionError, MissingFXRateError) as exc:
        raise _unprocessable(exc) from exc


@router.post("/evolution", response_model=EvolutionResponse | None)
async def post_evolution(
    payload: EvolutionRequest,
    settings: AppSettings = Depends(get_app_settings),
) -> EvolutionResponse | None:
    """Invested versus current value history; ``null`` when there is nothing to chart."""

    try:
        return investments_service.evolution(payload, settings)
    except investments_service.EvolutionRangeError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except MissingFXRateError as exc:
        raise _unprocessable(exc) from exc


__all__ = ["router"]
