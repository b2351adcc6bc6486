from typing import List

from pydantic import BaseModel


class SeoFields(BaseModel):
    meta_title: str = ""
    meta_description: str = ""
    keywords: List[str] = []
    og_title: str = ""
    og_description: str = ""


class FaqItem(BaseModel):
    question: str
    answer: str


class GeoFields(BaseModel):
    """Generative-engine (AI discovery) fields produced by the GEO action."""

    ai_summary: str = ""
    ai_best_for: List[str] = []
    ai_intents: List[str] = []
    ai_key_points: List[str] = []
    ai_differentiators: List[str] = []
    ai_competitors: List[str] = []
    ai_faq: List[FaqItem] = []
