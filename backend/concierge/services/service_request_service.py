from __future__ import annotations

from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from concierge.models import ServiceRequest, ServiceRequestStatus
from concierge.schemas.service_request import ServiceRequestCreate


class InvalidStatusTransition(ValueError):
    pass


class ServiceRequestService:
    """Service requests raised by guests (through the assistant) or by staff."""

    async def create_request(self, session: AsyncSession, payload: ServiceRequestCreate) -> ServiceRequest:
        request = ServiceRequest(
            session_id=payload.session_id,
            room_number=payload.room_number,
            request_type=payload.request_type,
            details=payload.details,
            status=ServiceRequestStatus.PENDING,
        )
        session.add(request)
        await session.flush()
        return request

    async def list_requests(self, session: AsyncSession) -> Sequence[ServiceRequest]:
        stmt = select(ServiceRequest).order_by(ServiceRequest.created_at.desc(), ServiceRequest.id.desc())
        return (await session.execute(stmt)).scalars().all()

    async def recent_for_session(
        self, session: AsyncSession, session_id: str, limit: int = 3
    ) -> Sequence[ServiceRequest]:
        stmt = (
            select(ServiceRequest)
            .where(ServiceRequest.session_id == session_id)
            .order_by(ServiceRequest.created_at.desc(), ServiceRequest.id.desc())
            .limit(limit)
        )
        return (await session.execute(stmt)).scalars().all()

    async def update_status(
        self, session: AsyncSession, request_id: int, status: ServiceRequestStatus
    ) -> Optional[ServiceRequest]:
        """Move a request forward. Skipping a step is allowed, going back is not."""

        request = await session.get(ServiceRequest, request_id)
        if not request:
            return None
        if status.rank < request.status.rank:
            raise InvalidStatusTransition(
                f"Cannot move request {request_id} from '{request.status.value}' to '{status.value}'"
            )
        request.status = status
        await session.flush()
        return request


def get_service_request_service() -> ServiceRequestService:
    return ServiceRequestService()
