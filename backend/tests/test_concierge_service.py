import asyncio
from datetime import date

import pytest
from sqlalchemy import func, select

from concierge.models import Booking, GuestSession, ServiceRequest
from concierge.schemas.actions import ActionValidationError
from concierge.services.action_dispatcher import CONCIERGE_TOOLS
from concierge.services.concierge_service import (
    ConciergeService,
    ModelFormatError,
    ReminderUnavailable,
    SessionLocks,
    SessionNotFound,
    parse_model_answer,
)
from concierge.services.conversation_store import ConversationStore
from concierge.stores.notifier import NEW_REQUEST, PROACTIVE_MESSAGE

pytestmark = pytest.mark.anyio


def make_concierge(fake_gemini, notifier, **kwargs):
    return ConciergeService(gemini=fake_gemini, notifier=notifier, locks=SessionLocks(), **kwargs)


async def history_of(session_factory, session_id):
    async with session_factory() as session:
        return await ConversationStore().get_history(session, session_id)


def test_parse_model_answer_handles_fenced_json():
    answer = parse_model_answer('```json\n{"reply": "Hi there", "sentiment": "positive"}\n```')
    assert answer.reply == "Hi there"
    assert answer.sentiment == "positive"


@pytest.mark.parametrize("text", ["", "Sure, here you go!", '{"sentiment": "neutral"}', '["reply"]'])
def test_parse_model_answer_rejects_malformed_output(text):
    with pytest.raises(ModelFormatError):
        parse_model_answer(text)


async def test_plain_reply_records_user_and_model_turns(session_factory, fake_gemini, notifier):
    fake_gemini.queue_answer("Hello! How can I help?", "positive")
    concierge = make_concierge(fake_gemini, notifier)

    async with session_factory() as session:
        reply = await concierge.handle_message(session, "guest-1", "hi")

    assert reply.reply == "Hello! How can I help?"
    chat = fake_gemini.chats[0]
    assert chat.history == []
    assert chat.tools == CONCIERGE_TOOLS
    assert date.today().isoformat() in chat.system_instruction
    assert chat.sent == [
        "CONTEXT: No current booking or recent requests found for this user.\n\nUSER QUESTION: hi"
    ]

    turns = await history_of(session_factory, "guest-1")
    assert [(turn.role, turn.text, turn.sentiment) for turn in turns] == [
        ("user", "hi", None),
        ("model", "Hello! How can I help?", "positive"),
    ]


async def test_follow_up_sends_previous_turns_as_history(session_factory, fake_gemini, notifier):
    fake_gemini.queue_answer("Hello!")
    fake_gemini.queue_answer("Sure thing.", fenced=True)
    concierge = make_concierge(fake_gemini, notifier)

    async with session_factory() as session:
        await concierge.handle_message(session, "guest-1", "hi")
    async with session_factory() as session:
        reply = await concierge.handle_message(session, "guest-1", "thanks")

    assert reply.reply == "Sure thing."
    assert fake_gemini.chats[1].history == [
        {"role": "user", "parts": [{"text": "hi"}]},
        {"role": "model", "parts": [{"text": "Hello!"}]},
    ]
    assert len(await history_of(session_factory, "guest-1")) == 4


async def test_function_call_runs_action_and_publishes_after_commit(session_factory, fake_gemini, notifier):
    dashboard = notifier.subscribe()
    fake_gemini.queue_call("create_service_request", roomNumber=101, requestType="Housekeeping", details="Towels")
    fake_gemini.queue_answer("Towels are on their way.")
    concierge = make_concierge(fake_gemini, notifier)

    async with session_factory() as session:
        reply = await concierge.handle_message(session, "guest-1", "can I get towels")

    assert reply.reply == "Towels are on their way."
    name, response = fake_gemini.chats[0].function_responses[0]
    assert name == "create_service_request"
    assert response["success"] is True

    event = dashboard.queue.get_nowait()
    assert event.kind == NEW_REQUEST
    assert event.data["roomNumber"] == 101

    async with session_factory() as session:
        request = (await session.execute(select(ServiceRequest))).scalar_one()
    assert request.session_id == "guest-1"


async def test_only_the_first_function_call_is_executed(session_factory, fake_gemini, notifier):
    from concierge.services.gemini_service import FunctionCall

    fake_gemini.queue_calls(
        FunctionCall("create_booking", {"userName": "Ana", "checkInDate": "2025-08-02", "numberOfNights": 1}),
        FunctionCall("create_booking", {"userName": "Bo", "checkInDate": "2025-08-02", "numberOfNights": 1}),
    )
    fake_gemini.queue_answer("Booked.")
    concierge = make_concierge(fake_gemini, notifier)

    async with session_factory() as session:
        await concierge.handle_message(session, "guest-1", "book two rooms")

    async with session_factory() as session:
        names = (await session.execute(select(Booking.user_name))).scalars().all()
    assert names == ["Ana"]


async def test_malformed_final_answer_persists_nothing(session_factory, fake_gemini, notifier):
    dashboard = notifier.subscribe()
    fake_gemini.queue_call("create_booking", userName="Ana", checkInDate="2025-08-02", numberOfNights=2)
    fake_gemini.queue_text("Your room is booked!")
    concierge = make_concierge(fake_gemini, notifier)

    async with session_factory() as session:
        with pytest.raises(ModelFormatError):
            await concierge.handle_message(session, "guest-1", "book me a room")

    async with session_factory() as session:
        assert (await session.execute(select(func.count(Booking.id)))).scalar_one() == 0
        assert (await session.execute(select(func.count(GuestSession.id)))).scalar_one() == 0
    assert dashboard.queue.empty()


async def test_invalid_action_arguments_fail_the_turn(session_factory, fake_gemini, notifier):
    fake_gemini.queue_call("create_service_request", roomNumber=101)
    concierge = make_concierge(fake_gemini, notifier)

    async with session_factory() as session:
        with pytest.raises(ActionValidationError):
            await concierge.handle_message(session, "guest-1", "help")

    assert await history_of(session_factory, "guest-1") == []


async def test_blank_message_is_rejected(session_factory, fake_gemini, notifier):
    concierge = make_concierge(fake_gemini, notifier)
    async with session_factory() as session:
        with pytest.raises(ValueError):
            await concierge.handle_message(session, "guest-1", "   ")
    assert fake_gemini.chats == []


async def test_concurrent_turns_on_one_session_are_serialised(session_factory, fake_gemini, notifier):
    fake_gemini.queue_answer("first answer")
    fake_gemini.queue_answer("second answer")
    concierge = make_concierge(fake_gemini, notifier)

    async def send(text):
        async with session_factory() as session:
            return await concierge.handle_message(session, "guest-1", text)

    await asyncio.gather(send("first"), send("second"))

    turns = await history_of(session_factory, "guest-1")
    assert [turn.text for turn in turns] == ["first", "first answer", "second", "second answer"]
    assert [turn.position for turn in turns] == [0, 1, 2, 3]
    assert len(fake_gemini.chats[1].history) == 2


async def test_history_is_trimmed_to_the_configured_limit(session_factory, fake_gemini, notifier):
    for index in range(3):
        fake_gemini.queue_answer(f"answer {index}")
    concierge = make_concierge(fake_gemini, notifier, conversation_store=ConversationStore(history_limit=4))

    for index in range(3):
        async with session_factory() as session:
            await concierge.handle_message(session, "guest-1", f"question {index}")

    turns = await history_of(session_factory, "guest-1")
    assert [turn.text for turn in turns] == ["question 1", "answer 1", "question 2", "answer 2"]


async def test_proactive_message_goes_to_the_guest_room_only(session_factory, fake_gemini, notifier):
    fake_gemini.queue_answer("Hello!")
    concierge = make_concierge(fake_gemini, notifier)
    async with session_factory() as session:
        session.add(
            Booking(
                session_id="guest-1",
                user_name="Ana Lima",
                check_in_date=date(2025, 8, 1),
                check_out_date=date(2025, 8, 5),
            )
        )
        await session.commit()
    async with session_factory() as session:
        await concierge.handle_message(session, "guest-1", "hi")

    dashboard = notifier.subscribe()
    room = notifier.subscribe("guest-1")
    other_room = notifier.subscribe("guest-2")
    fake_gemini.texts.append("  Hi Ana, you check out on Tuesday. Need a taxi?  ")

    async with session_factory() as session:
        result = await concierge.send_proactive_message(session, "guest-1", "checkout_reminder")

    assert result.message == "Proactive message sent successfully!"
    assert result.data.parts[0].text == "Hi Ana, you check out on Tuesday. Need a taxi?"
    assert "Ana Lima" in fake_gemini.prompts[0]
    assert "Tue Aug 05 2025" in fake_gemini.prompts[0]

    event = room.queue.get_nowait()
    assert event.kind == PROACTIVE_MESSAGE
    assert event.data["role"] == "model"
    assert dashboard.queue.empty()
    assert other_room.queue.empty()

    turns = await history_of(session_factory, "guest-1")
    assert turns[-1].role == "model"
    assert turns[-1].sentiment == "neutral"


async def test_proactive_message_needs_relevant_context(session_factory, fake_gemini, notifier):
    concierge = make_concierge(fake_gemini, notifier)
    async with session_factory() as session:
        with pytest.raises(ReminderUnavailable):
            await concierge.send_proactive_message(session, "guest-1", "appointment_reminder")
    assert fake_gemini.prompts == []


async def test_proactive_message_needs_an_existing_session(session_factory, fake_gemini, notifier):
    concierge = make_concierge(fake_gemini, notifier)
    async with session_factory() as session:
        session.add(
            Booking(
                session_id="guest-9",
                user_name="Ana Lima",
                check_in_date=date(2025, 8, 1),
                check_out_date=date(2025, 8, 5),
            )
        )
        await session.commit()

    async with session_factory() as session:
        with pytest.raises(SessionNotFound):
            await concierge.send_proactive_message(session, "guest-9", "checkout_reminder")
    assert fake_gemini.prompts == []
