from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from concierge.db.database import get_session
from concierge.schemas.conversation import ChatReply, ChatRequest
from concierge.services.concierge_service import ConciergeService, get_concierge_service

router = APIRouter(prefix="/chat", tags=["chat"])
logger = logging.getLogger(__name__)


@router.post("", response_model=ChatReply)
async def chat(
    payload: Dict[str, Any],
    db: AsyncSession = Depends(get_session),
    concierge: ConciergeService = Depends(get_concierge_service),
) -> ChatReply | JSONResponse:
    try:
        request = ChatRequest.model_validate(payload)
    except ValidationError:
        request = None
    if request is None or not request.message.strip() or not request.session_id.strip():
        return JSONResponse(status_code=400, content={"error": "Message and sessionId are required"})

    try:
        return await concierge.handle_message(db, request.session_id, request.message)
    except Exception:
        logger.exception("Chat turn failed", extra={"session_id": request.session_id})
        return JSONResponse(status_code=500, content={"error": "Something went wrong with the AI chat."})
