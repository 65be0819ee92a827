from __future__ import annotations

import logging
from typing import Optional
from xml.sax.saxutils import escape, quoteattr

from fastapi import APIRouter, Depends, Form
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from concierge.db.database import get_session
from concierge.services.concierge_service import ConciergeService, get_concierge_service
from concierge.utils.config import get_settings

router = APIRouter(prefix="/voice", tags=["voice"])
logger = logging.getLogger(__name__)

GREETING = "Welcome to the AI Concierge. Please state your request, then press the hash key."


def _twiml(body: str) -> Response:
    content = f'<?xml version="1.0" encoding="UTF-8"?>\n<Response>{body}</Response>'
    return Response(content=content, media_type="text/xml")


def _say(text: str) -> str:
    return f"<Say>{escape(text)}</Say>"


@router.post("")
async def incoming_call() -> Response:
    action = f"{get_settings().public_backend_url.rstrip('/')}/voice/gather"
    gather = (
        f'<Gather input="speech" action={quoteattr(action)} speechTimeout="3" '
        f'speechModel="phone_call" finishOnKey="#">{_say(GREETING)}</Gather>'
    )
    return _twiml(gather + _say("We didn't receive any input. Goodbye!") + "<Hangup/>")


@router.post("/gather")
async def gather_speech(
    speech_result: Optional[str] = Form(None, alias="SpeechResult"),
    call_sid: Optional[str] = Form(None, alias="CallSid"),
    db: AsyncSession = Depends(get_session),
    concierge: ConciergeService = Depends(get_concierge_service),
) -> Response:
    if not speech_result or not speech_result.strip() or not call_sid:
        return _twiml(_say("I'm sorry, I didn't hear anything. Please call back and try again.") + "<Hangup/>")

    try:
        reply = await concierge.handle_message(db, call_sid, speech_result)
    except Exception:
        logger.exception("Voice turn failed", extra={"session_id": call_sid})
        return _twiml(_say("Sorry, I ran into an error. Please try again later.") + "<Hangup/>")

    return _twiml(_say(reply.reply) + "<Hangup/>")
