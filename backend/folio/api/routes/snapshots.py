"""Snapshot recalculation and account snapshot endpoints."""

from __future__ import annotations

import datetime as dt

from fastapi import APIRouter, Depends, HTTPException, Query, status

from folio.core.telemetry import record_cascade
from folio.schemas import AccountSnapshotSchema, CascadeResultSchema, RecalculateRequest
from folio.services import SnapshotCascade, SnapshotPersistenceError

from ..dependencies import get_cascade

router = APIRouter()


@router.post(
    "/accounts/{account_id}/currencies/{currency_id}/recalculate",
    response_model=CascadeResultSchema,
)
async def recalculate(
    account_id: int,
    currency_id: int,
    payload: RecalculateRequest,
    cascade: SnapshotCascade = Depends(get_cascade),
) -> CascadeResultSchema:
    try:
        result = await cascade.recalculate_from(account_id, currency_id, payload.date)
    except SnapshotPersistenceError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    record_cascade(result.written, result.unchanged, len(result.warnings))
    return CascadeResultSchema.from_domain(result)


@router.get("/accounts/{account_id}", response_model=AccountSnapshotSchema)
async def get_account_snapshot(
    account_id: int,
    date: dt.date = Query(..., description="Snapshot date (YYYY-MM-DD)."),
    cascade: SnapshotCascade = Depends(get_cascade),
) -> AccountSnapshotSchema:
    try:
        snapshot = await cascade.recalculate_account_snapshot(account_id, date)
    except SnapshotPersistenceError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return AccountSnapshotSchema.from_domain(snapshot)


__all__ = ["router"]
