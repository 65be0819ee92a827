from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from concierge.db.database import get_session
from concierge.schemas.context import GuestContext
from concierge.schemas.conversation import ProactiveMessage, ProactivePing, TurnRead
from concierge.schemas.faq import FAQRead
from concierge.services.concierge_service import (
    ConciergeService,
    ReminderUnavailable,
    SessionNotFound,
    get_concierge_service,
)
from concierge.services.context_service import ContextService, get_context_service
from concierge.services.conversation_store import ConversationStore
from concierge.services.faq_service import FaqService, get_faq_service

router = APIRouter(tags=["guests"])
logger = logging.getLogger(__name__)


@router.get("/context/{session_id}", response_model=GuestContext)
async def get_guest_context(
    session_id: str,
    db: AsyncSession = Depends(get_session),
    context_service: ContextService = Depends(get_context_service),
) -> GuestContext:
    return await context_service.get_context(db, session_id)


@router.get("/history/{session_id}", response_model=List[TurnRead])
async def get_history(session_id: str, db: AsyncSession = Depends(get_session)) -> List[TurnRead]:
    turns = await ConversationStore().get_history(db, session_id)
    return [TurnRead.model_validate(turn) for turn in turns]


@router.get("/faqs/search", response_model=FAQRead)
async def search_faqs(
    query: Optional[str] = None,
    db: AsyncSession = Depends(get_session),
    faq_service: FaqService = Depends(get_faq_service),
) -> FAQRead:
    if not query or not query.strip():
        raise HTTPException(status_code=400, detail="Query parameter is required.")
    faq = await faq_service.search(db, query)
    if faq is None:
        raise HTTPException(status_code=404, detail="No relevant FAQ found.")
    return FAQRead.model_validate(faq)


@router.post("/proactive-ping", response_model=ProactiveMessage)
async def proactive_ping(
    payload: ProactivePing,
    db: AsyncSession = Depends(get_session),
    concierge: ConciergeService = Depends(get_concierge_service),
) -> ProactiveMessage:
    try:
        return await concierge.send_proactive_message(db, payload.session_id, payload.prompt_type)
    except (ReminderUnavailable, SessionNotFound) as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Failed to send proactive ping", extra={"session_id": payload.session_id})
        raise HTTPException(status_code=500, detail="Failed to send proactive ping") from exc
