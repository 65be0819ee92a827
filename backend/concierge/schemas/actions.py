from __future__ import annotations

from datetime import date
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import Field, TypeAdapter, ValidationError

from .base import CamelModel


class ActionValidationError(ValueError):
    """The model asked for an action that does not exist or sent bad arguments."""


class CreateBooking(CamelModel):
    name: Literal["create_booking"] = "create_booking"
    user_name: str = Field(..., min_length=1)
    check_in_date: date
    number_of_nights: int = Field(..., ge=1)
    number_of_guests: Optional[int] = Field(None, ge=1)
    room_preference: Optional[str] = None


class CreateServiceRequest(CamelModel):
    name: Literal["create_service_request"] = "create_service_request"
    room_number: int
    request_type: str = Field(..., min_length=1)
    details: str = Field(..., min_length=1)


class SearchFaq(CamelModel):
    name: Literal["search_hotel_faqs"] = "search_hotel_faqs"
    query: str = Field(..., min_length=1)


class RequestHumanAssistance(CamelModel):
    name: Literal["request_human_assistance"] = "request_human_assistance"
    reason: str = Field(..., min_length=1)


ConciergeAction = Annotated[
    Union[CreateBooking, CreateServiceRequest, SearchFaq, RequestHumanAssistance],
    Field(discriminator="name"),
]

ACTION_NAMES = frozenset(
    {"create_booking", "create_service_request", "search_hotel_faqs", "request_human_assistance"}
)

_action_adapter: TypeAdapter[ConciergeAction] = TypeAdapter(ConciergeAction)


def parse_action(name: str, args: Optional[Dict[str, Any]]) -> ConciergeAction:
    if name not in ACTION_NAMES:
        raise ActionValidationError(f"Unknown action: {name}")
    try:
        return _action_adapter.validate_python({**(args or {}), "name": name})
    except ValidationError as exc:
        fields = ", ".join(".".join(str(loc) for loc in error["loc"]) for error in exc.errors())
        raise ActionValidationError(f"Invalid arguments for {name}: {fields}") from exc
