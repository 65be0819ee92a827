from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import Field, model_validator

from .base import CamelModel


class BookingCreate(CamelModel):
    user_name: str = Field(..., min_length=1)
    session_id: Optional[str] = None
    room_number: Optional[int] = None
    check_in_date: date
    check_out_date: date
    number_of_guests: Optional[int] = Field(None, ge=1)
    special_requests: Optional[str] = None
    status: str = "Confirmed"

    @model_validator(mode="after")
    def _check_dates(self) -> "BookingCreate":
        if self.check_out_date < self.check_in_date:
            raise ValueError("checkOutDate must not be before checkInDate")
        return self


class BookingRead(CamelModel):
    id: int
    user_name: str
    session_id: Optional[str] = None
    room_number: Optional[int] = None
    check_in_date: date
    check_out_date: date
    number_of_guests: Optional[int] = None
    special_requests: Optional[str] = None
    status: str
    created_at: datetime
