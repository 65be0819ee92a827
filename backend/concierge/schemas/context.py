from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional
from zoneinfo import ZoneInfo

from pydantic import Field

from concierge.utils.config import get_settings

from .base import CamelModel
from .booking import BookingRead
from .service_request import ServiceRequestRead


class AppointmentRead(CamelModel):
    id: int
    session_id: str
    service_name: str
    appointment_time: datetime
    details: Optional[str] = None


class GuestContext(CamelModel):
    latest_booking: Optional[BookingRead] = None
    recent_requests: List[ServiceRequestRead] = Field(default_factory=list)
    upcoming_appointment: Optional[AppointmentRead] = None

    def is_empty(self) -> bool:
        return self.latest_booking is None and not self.recent_requests and self.upcoming_appointment is None

    def describe(self) -> str:
        """Human readable summary handed to the model alongside the guest message."""

        if self.is_empty():
            return "No current booking or recent requests found for this user."

        if self.latest_booking:
            booking = self.latest_booking
            booking_line = (
                f"User {booking.user_name} is staying until "
                f"{booking.check_out_date.strftime('%a %b %d %Y')}."
            )
        else:
            booking_line = "None."
        requests_line = ", ".join(request.details for request in self.recent_requests) or "None."
        if self.upcoming_appointment:
            appointment = self.upcoming_appointment
            appointment_line = f"{appointment.service_name} at {format_clock(appointment.appointment_time)}."
        else:
            appointment_line = "None."

        return "\n".join(
            [
                f"Current Booking: {booking_line}",
                f"Recent Service Requests: {requests_line}",
                f"Upcoming Appointment: {appointment_line}",
            ]
        )


def format_clock(moment: datetime, timezone_name: Optional[str] = None) -> str:
    """Wall-clock time at the hotel, e.g. "4:00 PM". Naive timestamps are read as UTC."""

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    local = moment.astimezone(ZoneInfo(timezone_name or get_settings().hotel_timezone))
    return local.strftime("%I:%M %p").lstrip("0")
