from __future__ import annotations

from datetime import timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from concierge.models import Booking
from concierge.schemas.actions import CreateBooking
from concierge.schemas.booking import BookingCreate


class BookingService:
    """Persists guest bookings. Callers own the transaction."""

    async def create_booking(self, session: AsyncSession, payload: BookingCreate) -> Booking:
        booking = Booking(
            session_id=payload.session_id,
            user_name=payload.user_name,
            room_number=payload.room_number,
            check_in_date=payload.check_in_date,
            check_out_date=payload.check_out_date,
            number_of_guests=payload.number_of_guests,
            special_requests=payload.special_requests,
            status=payload.status,
        )
        session.add(booking)
        await session.flush()
        return booking

    async def book_stay(self, session: AsyncSession, session_id: str, action: CreateBooking) -> Booking:
        payload = BookingCreate(
            user_name=action.user_name,
            session_id=session_id,
            check_in_date=action.check_in_date,
            check_out_date=action.check_in_date + timedelta(days=action.number_of_nights),
            number_of_guests=action.number_of_guests,
            special_requests=action.room_preference,
        )
        return await self.create_booking(session, payload)

    async def latest_for_session(self, session: AsyncSession, session_id: str) -> Optional[Booking]:
        stmt = (
            select(Booking)
            .where(Booking.session_id == session_id)
            .order_by(Booking.created_at.desc(), Booking.id.desc())
            .limit(1)
        )
        return (await session.execute(stmt)).scalar_one_or_none()


def get_booking_service() -> BookingService:
    return BookingService()
