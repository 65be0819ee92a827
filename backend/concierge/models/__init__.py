from .appointment import Appointment
from .booking import Booking
from .conversation import ConversationTurn, GuestSession
from .faq import HotelFAQ
from .service_request import ServiceRequest, ServiceRequestStatus

__all__ = [
    "Appointment",
    "Booking",
    "ConversationTurn",
    "GuestSession",
    "HotelFAQ",
    "ServiceRequest",
    "ServiceRequestStatus",
]
