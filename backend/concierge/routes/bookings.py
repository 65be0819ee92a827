from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from concierge.db.database import get_session
from concierge.schemas.booking import BookingCreate, BookingRead
from concierge.services.booking_service import BookingService, get_booking_service

router = APIRouter(prefix="/bookings", tags=["bookings"])
logger = logging.getLogger(__name__)


@router.post("", status_code=201)
async def create_booking(
    payload: BookingCreate,
    db: AsyncSession = Depends(get_session),
    booking_service: BookingService = Depends(get_booking_service),
) -> Dict[str, Any]:
    try:
        booking = await booking_service.create_booking(db, payload)
        await db.commit()
    except Exception as exc:
        await db.rollback()
        logger.exception("Failed to create booking", extra={"session_id": payload.session_id})
        return JSONResponse(status_code=500, content={"message": "Failed to create booking", "error": str(exc)})

    data = BookingRead.model_validate(booking)
    logger.info(
        "session_event",
        extra={"session_id": booking.session_id, "event": "booking.created", "booking_id": booking.id},
    )
    return {"message": "Booking created successfully!", "data": data.model_dump(mode="json", by_alias=True)}
