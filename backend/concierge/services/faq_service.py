from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from concierge.models import HotelFAQ


def extract_keywords(query: str) -> set[str]:
    return set(query.lower().split())


class FaqService:
    """Keyword-overlap lookup over the hotel FAQ table."""

    async def search(self, session: AsyncSession, query: str) -> Optional[HotelFAQ]:
        keywords = extract_keywords(query or "")
        if not keywords:
            raise ValueError("Query parameter is required.")

        # the FAQ table is small reference data; overlap scoring needs every row
        faqs = (await session.execute(select(HotelFAQ).order_by(HotelFAQ.id))).scalars().all()

        best_match: Optional[HotelFAQ] = None
        best_score = 0
        for faq in faqs:
            score = len(faq.keyword_set() & keywords)
            # strict comparison keeps the first entry on ties
            if score > best_score:
                best_match, best_score = faq, score
        return best_match


def get_faq_service() -> FaqService:
    return FaqService()
