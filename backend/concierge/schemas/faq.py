from __future__ import annotations

from typing import List

from .base import CamelModel


class FAQRead(CamelModel):
    id: int
    question: str
    answer: str
    keywords: List[str]
