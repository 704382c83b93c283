"""Route registration helpers."""

from __future__ import annotations

from fastapi import APIRouter

from .investments import router as investments_router

api_router = APIRouter()
api_router.include_router(investments_router, prefix="/investments", tags=["investments"])

__all__ = ["api_router"]
