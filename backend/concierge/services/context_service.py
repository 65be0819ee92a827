from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from concierge.models import Appointment
from concierge.schemas.booking import BookingRead
from concierge.schemas.context import AppointmentRead, GuestContext
from concierge.schemas.service_request import ServiceRequestRead
from concierge.services.booking_service import BookingService
from concierge.services.service_request_service import ServiceRequestService
from concierge.utils.config import get_settings


class ContextService:
    """Builds the per-guest snapshot used to personalise replies."""

    def __init__(
        self,
        booking_service: BookingService | None = None,
        service_request_service: ServiceRequestService | None = None,
        recent_requests_limit: int | None = None,
    ) -> None:
        self.booking_service = booking_service or BookingService()
        self.service_request_service = service_request_service or ServiceRequestService()
        self.recent_requests_limit = recent_requests_limit or get_settings().recent_requests_limit

    async def get_context(
        self, session: AsyncSession, session_id: str, now: Optional[datetime] = None
    ) -> GuestContext:
        latest_booking = await self.booking_service.latest_for_session(session, session_id)
        recent_requests = await self.service_request_service.recent_for_session(
            session, session_id, limit=self.recent_requests_limit
        )
        upcoming_appointment = await self._upcoming_appointment(session, session_id, now)

        return GuestContext(
            latest_booking=BookingRead.model_validate(latest_booking) if latest_booking else None,
            recent_requests=[ServiceRequestRead.model_validate(request) for request in recent_requests],
            upcoming_appointment=(
                AppointmentRead.model_validate(upcoming_appointment) if upcoming_appointment else None
            ),
        )

    async def _upcoming_appointment(
        self, session: AsyncSession, session_id: str, now: Optional[datetime]
    ) -> Optional[Appointment]:
        stmt = (
            select(Appointment)
            .where(
                Appointment.session_id == session_id,
                Appointment.appointment_time >= (now or datetime.now(timezone.utc)),
            )
            .order_by(Appointment.appointment_time.asc())
            .limit(1)
        )
        return (await session.execute(stmt)).scalar_one_or_none()


def get_context_service() -> ContextService:
    return ContextService()
