from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List

from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession

from concierge.schemas.actions import (
    ConciergeAction,
    CreateBooking,
    CreateServiceRequest,
    RequestHumanAssistance,
    SearchFaq,
)
from concierge.schemas.booking import BookingRead
from concierge.schemas.conversation import TurnRead
from concierge.schemas.service_request import ServiceRequestCreate, ServiceRequestRead
from concierge.services.booking_service import BookingService
from concierge.services.conversation_store import ConversationStore
from concierge.services.faq_service import FaqService
from concierge.services.service_request_service import ServiceRequestService
from concierge.stores.notifier import HUMAN_ASSISTANCE_NEEDED, NEW_REQUEST, Event
from concierge.utils.config import get_settings

logger = logging.getLogger(__name__)


CONCIERGE_TOOLS: List[Dict[str, Any]] = [
    {
        "name": "create_booking",
        "description": (
            "Book a hotel room for the guest. The guest's full name, check-in date and number of nights "
            "are required; ask for whichever is missing before calling. Guest count and room "
            "preferences are optional and worth asking about."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "userName": {"type": "string", "description": "Full name of the guest making the booking."},
                "checkInDate": {"type": "string", "description": "Check-in date, formatted YYYY-MM-DD."},
                "numberOfNights": {"type": "number", "description": "How many nights the guest stays."},
                "numberOfGuests": {"type": "number", "description": "How many guests share the room."},
                "roomPreference": {
                    "type": "string",
                    "description": 'Room wishes such as "ocean view" or "quiet floor".',
                },
            },
            "required": ["userName", "checkInDate", "numberOfNights"],
        },
    },
    {
        "name": "create_service_request",
        "description": (
            "Send a service request to hotel staff, e.g. housekeeping or room service, whenever the guest "
            "wants something brought to or fixed in their room."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "roomNumber": {"type": "number", "description": "Room number of the guest."},
                "requestType": {
                    "type": "string",
                    "description": 'Category such as "Room Service", "Housekeeping" or "Maintenance".',
                },
                "details": {
                    "type": "string",
                    "description": 'What exactly is needed, e.g. "2 extra towels".',
                },
            },
            "required": ["roomNumber", "requestType", "details"],
        },
    },
    {
        "name": "search_hotel_faqs",
        "description": (
            "Look up general hotel information such as opening hours, Wi-Fi or breakfast. Use it for any "
            "question that is neither a booking nor a service request."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "The guest's question as a short search query."},
            },
            "required": ["query"],
        },
    },
    {
        "name": "request_human_assistance",
        "description": (
            "Hand the conversation to a staff member when no other tool can answer or the guest is "
            "clearly frustrated."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "reason": {"type": "string", "description": "Short summary of why the guest needs a person."},
            },
            "required": ["reason"],
        },
    },
]


@dataclass
class ActionOutcome:
    name: str
    response: Dict[str, Any]
    events: List[Event] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return bool(self.response.get("success"))


class ActionDispatcher:
    """Executes the side effect behind a model-selected action.

    Writes are flushed on the caller's session but never committed here, and
    realtime events are returned on the outcome so the caller can publish them
    once the surrounding turn has been committed.
    """

    def __init__(
        self,
        booking_service: BookingService | None = None,
        service_request_service: ServiceRequestService | None = None,
        faq_service: FaqService | None = None,
        conversation_store: ConversationStore | None = None,
        assistance_history_window: int | None = None,
    ) -> None:
        self.booking_service = booking_service or BookingService()
        self.service_request_service = service_request_service or ServiceRequestService()
        self.faq_service = faq_service or FaqService()
        self.conversation_store = conversation_store or ConversationStore()
        self.assistance_history_window = assistance_history_window or get_settings().assistance_history_window
        self._handlers: Dict[type, Callable[[AsyncSession, str, Any], Awaitable[ActionOutcome]]] = {
            CreateBooking: self._create_booking,
            CreateServiceRequest: self._create_service_request,
            SearchFaq: self._search_hotel_faqs,
            RequestHumanAssistance: self._request_human_assistance,
        }

    async def dispatch(self, session: AsyncSession, session_id: str, action: ConciergeAction) -> ActionOutcome:
        handler = self._handlers[type(action)]
        logger.info("action.call", extra={"session_id": session_id, "action": action.name})
        outcome = await handler(session, session_id, action)
        logger.info(
            "action.result",
            extra={"session_id": session_id, "action": action.name, "success": outcome.success},
        )
        return outcome

    async def _create_booking(self, session: AsyncSession, session_id: str, action: CreateBooking) -> ActionOutcome:
        booking = await self.booking_service.book_stay(session, session_id, action)
        details = BookingRead.model_validate(booking).model_dump(mode="json", by_alias=True)
        return ActionOutcome(name=action.name, response={"success": True, "details": details})

    async def _create_service_request(
        self, session: AsyncSession, session_id: str, action: CreateServiceRequest
    ) -> ActionOutcome:
        request = await self.service_request_service.create_request(
            session,
            ServiceRequestCreate(
                session_id=session_id,
                room_number=action.room_number,
                request_type=action.request_type,
                details=action.details,
            ),
        )
        details = ServiceRequestRead.model_validate(request).model_dump(mode="json", by_alias=True)
        return ActionOutcome(
            name=action.name,
            response={"success": True, "details": details},
            events=[Event(kind=NEW_REQUEST, data=details)],
        )

    async def _search_hotel_faqs(self, session: AsyncSession, session_id: str, action: SearchFaq) -> ActionOutcome:
        faq = await self.faq_service.search(session, action.query) if action.query.strip() else None
        if faq is None:
            return ActionOutcome(
                name=action.name,
                response={"success": False, "error": "No relevant information found."},
            )
        return ActionOutcome(name=action.name, response={"success": True, "answer": faq.answer})

    async def _request_human_assistance(
        self, session: AsyncSession, session_id: str, action: RequestHumanAssistance
    ) -> ActionOutcome:
        recent = await self.conversation_store.recent_turns(session, session_id, self.assistance_history_window)
        history = [TurnRead.model_validate(turn).model_dump(mode="json", by_alias=True) for turn in recent]
        event = Event(
            kind=HUMAN_ASSISTANCE_NEEDED,
            data=jsonable_encoder({"sessionId": session_id, "reason": action.reason, "history": history}),
        )
        return ActionOutcome(
            name=action.name,
            response={"success": True, "message": "A human agent has been notified."},
            events=[event],
        )
