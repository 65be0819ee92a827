from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from concierge.db.base import Base
from concierge.models.booking import utcnow
from concierge.models.faq import JSONType


class GuestSession(Base):
    __tablename__ = "guest_sessions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(String(128), unique=True, index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )

    turns: Mapped[List["ConversationTurn"]] = relationship(
        back_populates="guest_session",
        cascade="all, delete-orphan",
        order_by="ConversationTurn.position",
        lazy="selectin",
    )


class ConversationTurn(Base):
    __tablename__ = "conversation_turns"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    guest_session_id: Mapped[int] = mapped_column(
        ForeignKey("guest_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    parts: Mapped[List[Dict[str, Any]]] = mapped_column(JSONType, default=list, nullable=False)
    sentiment: Mapped[str | None] = mapped_column(String(16))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    guest_session: Mapped[GuestSession] = relationship(back_populates="turns")

    __table_args__ = (UniqueConstraint("guest_session_id", "position", name="uq_turn_position"),)

    @property
    def text(self) -> str:
        return "".join(part.get("text", "") for part in self.parts or [])

    def to_model_content(self) -> Dict[str, Any]:
        return {"role": self.role, "parts": [{"text": self.text}]}
