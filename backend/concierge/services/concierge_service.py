from __future__ import annotations

import asyncio
import json
import logging
import re
import weakref
from datetime import date
from typing import Iterable, List

from fastapi import Depends
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from concierge.schemas.actions import parse_action
from concierge.schemas.context import GuestContext, format_clock
from concierge.schemas.conversation import ChatReply, ModelAnswer, ProactiveMessage, TurnRead
from concierge.services.action_dispatcher import CONCIERGE_TOOLS, ActionDispatcher
from concierge.services.context_service import ContextService
from concierge.services.conversation_store import ConversationStore, NewTurn, to_model_history
from concierge.services.gemini_service import GeminiService, ModelTurn, get_gemini_service
from concierge.stores.notifier import PROACTIVE_MESSAGE, Event, Notifier, get_notifier

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = (
    "You are a helpful hotel concierge AI. Today's date is {today}. You have tools for booking rooms, "
    "creating service requests, searching the hotel FAQs and requesting a human. Use the guest's CONTEXT "
    "and the conversation HISTORY to personalise every answer. If you cannot help, or the guest is "
    "frustrated, use the 'request_human_assistance' tool. Always respond with a JSON object containing "
    "'reply' (string) and 'sentiment' (one of 'positive', 'neutral', 'negative') describing the guest's mood."
)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class ModelFormatError(ValueError):
    """The model's final answer was not the expected {reply, sentiment} JSON."""


class ReminderUnavailable(LookupError):
    pass


class SessionNotFound(LookupError):
    pass


class SessionLocks:
    """One asyncio.Lock per session id; unused locks are garbage collected."""

    def __init__(self) -> None:
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def for_session(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock


def parse_model_answer(text: str) -> ModelAnswer:
    cleaned = _FENCE_RE.sub("", (text or "").strip()).strip()
    try:
        return ModelAnswer.model_validate(json.loads(cleaned))
    except (json.JSONDecodeError, ValidationError, TypeError) as exc:
        raise ModelFormatError(f"Model answer is not valid reply JSON: {cleaned[:200]!r}") from exc


def build_augmented_message(context: GuestContext, message: str) -> str:
    return f"CONTEXT: {context.describe()}\n\nUSER QUESTION: {message}"


class ConciergeService:
    """Handles one guest message end to end: context, model, action, history, events."""

    def __init__(
        self,
        gemini: GeminiService,
        notifier: Notifier,
        locks: SessionLocks,
        context_service: ContextService | None = None,
        conversation_store: ConversationStore | None = None,
        dispatcher: ActionDispatcher | None = None,
    ) -> None:
        self.gemini = gemini
        self.notifier = notifier
        self.locks = locks
        self.context_service = context_service or ContextService()
        self.conversation_store = conversation_store or ConversationStore()
        self.dispatcher = dispatcher or ActionDispatcher(conversation_store=self.conversation_store)

    async def handle_message(self, session: AsyncSession, session_id: str, message: str) -> ChatReply:
        if not (message or "").strip() or not (session_id or "").strip():
            raise ValueError("Message and sessionId are required")

        async with self.locks.for_session(session_id):
            try:
                answer, events = await self._run_turn(session, session_id, message)
                await session.commit()
            except Exception:
                await session.rollback()
                raise

        await self._publish(events)
        logger.info(
            "session_event",
            extra={"session_id": session_id, "event": "chat.turn", "sentiment": answer.sentiment},
        )
        return ChatReply(reply=answer.reply)

    async def _run_turn(self, session: AsyncSession, session_id: str, message: str) -> tuple[ModelAnswer, List[Event]]:
        context = await self.context_service.get_context(session, session_id)
        guest_session = await self.conversation_store.get_or_create(session, session_id)

        chat = self.gemini.start_chat(
            to_model_history(guest_session.turns),
            system_instruction=SYSTEM_INSTRUCTION.format(today=date.today().isoformat()),
            tools=CONCIERGE_TOOLS,
        )
        result: ModelTurn = await chat.send_message(build_augmented_message(context, message))

        events: List[Event] = []
        if result.function_calls:
            call = result.function_calls[0]
            if len(result.function_calls) > 1:
                logger.info(
                    "Ignoring extra function calls",
                    extra={"session_id": session_id, "calls": [c.name for c in result.function_calls]},
                )
            action = parse_action(call.name, call.args)
            outcome = await self.dispatcher.dispatch(session, session_id, action)
            events.extend(outcome.events)
            result = await chat.send_function_response(outcome.name, outcome.response)

        answer = parse_model_answer(result.text)
        await self.conversation_store.append_turns(
            session,
            guest_session,
            [
                NewTurn(role="user", text=message),
                NewTurn(role="model", text=answer.reply, sentiment=answer.sentiment),
            ],
        )
        return answer, events

    async def send_proactive_message(self, session: AsyncSession, session_id: str, prompt_type: str) -> ProactiveMessage:
        context = await self.context_service.get_context(session, session_id)
        prompt = build_reminder_prompt(context, prompt_type)

        async with self.locks.for_session(session_id):
            guest_session = await self.conversation_store.get(session, session_id)
            if guest_session is None:
                raise SessionNotFound("Session not found")

            text = await self.gemini.generate_text(prompt)
            try:
                (turn,) = await self.conversation_store.append_turns(
                    session, guest_session, [NewTurn(role="model", text=text.strip(), sentiment="neutral")]
                )
                await session.commit()
            except Exception:
                await session.rollback()
                raise

        data = TurnRead.model_validate(turn)
        await self.notifier.publish_to_room(session_id, PROACTIVE_MESSAGE, data.model_dump(mode="json"))
        return ProactiveMessage(message="Proactive message sent successfully!", data=data)

    async def _publish(self, events: Iterable[Event]) -> None:
        for event in events:
            await self.notifier.emit(event)


def build_reminder_prompt(context: GuestContext, prompt_type: str) -> str:
    if prompt_type == "checkout_reminder" and context.latest_booking:
        booking = context.latest_booking
        return (
            f"You are an AI Hotel Concierge. A guest named {booking.user_name} is checking out on "
            f"{booking.check_out_date.strftime('%a %b %d %Y')}. Write the exact, single message to send them "
            "as a friendly reminder and ask whether they need help with luggage or a taxi. "
            "Do not offer options or variations."
        )
    if prompt_type == "appointment_reminder" and context.upcoming_appointment:
        appointment = context.upcoming_appointment
        return (
            f"You are an AI Hotel Concierge. A guest has an upcoming '{appointment.service_name}' appointment "
            f"at {format_clock(appointment.appointment_time)}. Write the exact, single message to send them "
            "as a friendly reminder. Do not offer options or variations."
        )
    raise ReminderUnavailable(f"No relevant data found to send a '{prompt_type}' reminder for this guest.")


_session_locks = SessionLocks()


def get_session_locks() -> SessionLocks:
    return _session_locks


def get_concierge_service(
    gemini: GeminiService = Depends(get_gemini_service),
    notifier: Notifier = Depends(get_notifier),
    locks: SessionLocks = Depends(get_session_locks),
) -> ConciergeService:
    return ConciergeService(gemini=gemini, notifier=notifier, locks=locks)
