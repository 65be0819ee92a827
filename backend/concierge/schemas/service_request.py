from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from concierge.models.service_request import ServiceRequestStatus

from .base import CamelModel


class ServiceRequestCreate(CamelModel):
    session_id: Optional[str] = None
    room_number: int
    request_type: str = Field(..., min_length=1)
    details: str = Field(..., min_length=1)


class ServiceRequestStatusUpdate(CamelModel):
    status: ServiceRequestStatus


class ServiceRequestRead(CamelModel):
    id: int
    session_id: Optional[str] = None
    room_number: int
    request_type: str
    details: str
    status: ServiceRequestStatus
    created_at: datetime
    updated_at: datetime
