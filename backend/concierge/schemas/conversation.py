from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .base import CamelModel

Sentiment = Literal["positive", "neutral", "negative"]


class TurnPart(BaseModel):
    text: str


class TurnRead(CamelModel):
    role: Literal["user", "model"]
    parts: List[TurnPart]
    sentiment: Optional[Sentiment] = None


class ChatRequest(CamelModel):
    message: str
    session_id: str


class ChatReply(BaseModel):
    reply: str


class ModelAnswer(BaseModel):
    """Shape the model is instructed to answer with."""

    reply: str
    sentiment: Optional[Sentiment] = None


class ProactivePing(CamelModel):
    session_id: str = Field(..., min_length=1)
    prompt_type: Literal["checkout_reminder", "appointment_reminder"]


class ProactiveMessage(BaseModel):
    message: str
    data: TurnRead
