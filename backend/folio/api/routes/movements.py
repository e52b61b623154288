"""Record a movement and bring its snapshots up to date."""

from __future__ import annotations

import logging
from datetime import timezone

from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from folio.core.telemetry import record_cascade
from folio.schemas import CascadeResultSchema, MovementCreate, MovementRecordedResponse
from folio.services import CashMovement, SnapshotCascade, SnapshotPersistenceError, ValidationError
from folio.services.repository import save_movement

from ..dependencies import get_cascade, get_db_session

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=MovementRecordedResponse, status_code=status.HTTP_201_CREATED)
async def post_movement(
    payload: MovementCreate = Body(...),
    session: AsyncSession = Depends(get_db_session),
    cascade: SnapshotCascade = Depends(get_cascade),
) -> MovementRecordedResponse:
    try:
        movement = await save_movement(session, payload.to_domain())
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    day = movement.timestamp.astimezone(timezone.utc).date()
    logger.info("Movement %s recorded for account %s on %s", movement.id, movement.account_id, day)
    try:
        result = await cascade.recalculate_from(movement.account_id, movement.currency_id, day)
        if isinstance(movement, CashMovement) and movement.from_currency_id is not None:
            # Conversions also move the source currency's snapshots.
            source = await cascade.recalculate_from(movement.account_id, movement.from_currency_id, day)
            record_cascade(source.written, source.unchanged, len(source.warnings))
    except SnapshotPersistenceError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    record_cascade(result.written, result.unchanged, len(result.warnings))
    return MovementRecordedResponse(movement_id=movement.id, cascade=CascadeResultSchema.from_domain(result))


__all__ = ["router"]
