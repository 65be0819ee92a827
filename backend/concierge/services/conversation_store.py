from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from concierge.models import ConversationTurn, GuestSession
from concierge.utils.config import get_settings


@dataclass
class NewTurn:
    role: str  # user | model
    text: str
    sentiment: Optional[str] = None


class ConversationStore:
    """Conversation history per guest session, trimmed to a fixed number of turns."""

    def __init__(self, history_limit: int | None = None) -> None:
        self.history_limit = history_limit or get_settings().session_history_limit

    async def get(self, session: AsyncSession, session_id: str) -> Optional[GuestSession]:
        stmt = select(GuestSession).where(GuestSession.session_id == session_id)
        return (await session.execute(stmt)).scalar_one_or_none()

    async def get_or_create(self, session: AsyncSession, session_id: str) -> GuestSession:
        guest_session = await self.get(session, session_id)
        if guest_session is None:
            guest_session = GuestSession(session_id=session_id, turns=[])
            session.add(guest_session)
        return guest_session

    async def get_history(self, session: AsyncSession, session_id: str) -> List[ConversationTurn]:
        guest_session = await self.get(session, session_id)
        return list(guest_session.turns) if guest_session else []

    async def recent_turns(self, session: AsyncSession, session_id: str, limit: int) -> List[ConversationTurn]:
        history = await self.get_history(session, session_id)
        return history[-limit:] if limit > 0 else []

    async def append_turns(
        self, session: AsyncSession, guest_session: GuestSession, turns: Sequence[NewTurn]
    ) -> List[ConversationTurn]:
        next_position = guest_session.turns[-1].position + 1 if guest_session.turns else 0
        appended: List[ConversationTurn] = []
        for offset, turn in enumerate(turns):
            record = ConversationTurn(
                position=next_position + offset,
                role=turn.role,
                parts=[{"text": turn.text}],
                sentiment=turn.sentiment,
            )
            guest_session.turns.append(record)
            appended.append(record)

        overflow = len(guest_session.turns) - self.history_limit
        if overflow > 0:
            # delete-orphan cascade removes the trimmed rows
            del guest_session.turns[:overflow]

        await session.flush()
        return appended


def to_model_history(turns: Sequence[ConversationTurn]) -> List[Dict[str, Any]]:
    return [turn.to_model_content() for turn in turns]
