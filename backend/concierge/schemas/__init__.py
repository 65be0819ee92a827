from .actions import (
    ActionValidationError,
    ConciergeAction,
    CreateBooking,
    CreateServiceRequest,
    RequestHumanAssistance,
    SearchFaq,
    parse_action,
)
from .booking import BookingCreate, BookingRead
from .context import AppointmentRead, GuestContext
from .conversation import ChatReply, ChatRequest, ModelAnswer, ProactiveMessage, ProactivePing, TurnRead
from .faq import FAQRead
from .service_request import ServiceRequestCreate, ServiceRequestRead, ServiceRequestStatusUpdate

__all__ = [
    "ActionValidationError",
    "AppointmentRead",
    "BookingCreate",
    "BookingRead",
    "ChatReply",
    "ChatRequest",
    "ConciergeAction",
    "CreateBooking",
    "CreateServiceRequest",
    "FAQRead",
    "GuestContext",
    "ModelAnswer",
    "ProactiveMessage",
    "ProactivePing",
    "RequestHumanAssistance",
    "SearchFaq",
    "ServiceRequestCreate",
    "ServiceRequestRead",
    "ServiceRequestStatusUpdate",
    "TurnRead",
    "parse_action",
]
