from __future__ import annotations

from typing import List

from sqlalchemy import JSON, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from concierge.db.base import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


class HotelFAQ(Base):
    __tablename__ = "hotel_faqs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    keywords: Mapped[List[str]] = mapped_column(JSONType, default=list, nullable=False)

    def keyword_set(self) -> set[str]:
        return {keyword.lower() for keyword in self.keywords or []}
