"""Route registration helpers."""

from __future__ import annotations

from fastapi import APIRouter

from .movements import router as movements_router
from .snapshots import router as snapshots_router

api_router = APIRouter()
api_router.include_router(snapshots_router, prefix="/snapshots", tags=["snapshots"])
api_router.include_router(movements_router, prefix="/movements", tags=["movements"])

__all__ = ["api_router"]
