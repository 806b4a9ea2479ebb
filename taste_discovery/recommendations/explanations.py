from __future__ import annotations

import asyncio
import logging

from ..errors import ProviderFailure
from ..llm.groq_client import GroqTextClient
from .cache import TTLCache, explanation_cache
from .models import Place

logger = logging.getLogger(__name__)

BASIC = "basic"
ENHANCED = "enhanced"

DEFAULT_EXPLANATION = "Great place matching your taste"

_BASIC_SYSTEM_PROMPT = (
    "You are a local expert. In one short sentence, explain why this place "
    "suits the user's request. Do not invent cuisine, amenities or specialties."
)

_ENHANCED_SYSTEM_PROMPT = """\
You are a local expert. Generate a personalized explanation (1-2 sentences) \
for why this place matches the user's query.

CRITICAL ANTI-HALLUCINATION RULES:
1. NEVER claim a business offers services/products that aren't clearly indicated in its name
2. NEVER invent specialties, cuisine types, or amenities not obviously present
3. If the business name doesn't clearly indicate it matches the query, focus on:
   - General atmosphere and ambiance
   - Location and accessibility
   - Likely experience style (casual, upscale, cozy, etc.)
   - Cultural area or neighborhood vibe

EXAMPLES OF WHAT TO AVOID:
- Don't claim "Owl Cafe" serves Vietnamese food
- Don't claim a generic cafe specializes in something specific

BE HONEST about uncertainty. If unclear, focus on atmosphere and general appeal."""


def fallback_explanation(query: str) -> str:
    return f'Perfect for someone seeking "{query}" with its welcoming atmosphere and distinctive style.'


def _user_prompt(query: str, place: Place, variant: str) -> str:
    if variant == BASIC:
        return f'Request: "{query}". Place: "{place.name}" at {place.address}.'
    return (
        f'The user wants "{query}" and you\'re recommending "{place.name}". Explain why '
        "this place might appeal to someone with this preference, being EXTREMELY careful "
        "not to invent connections that aren't clearly supported by the business name. "
        "Focus on atmosphere, location, or general dining experience."
    )


class ExplanationGenerator:
    """Short natural-language justifications, cached per (query, place, variant)."""

    def __init__(self, llm: GroqTextClient, cache: TTLCache = explanation_cache) -> None:
        self.llm = llm
        self.cache = cache

    async def explain(self, query: str, place: Place, variant: str = ENHANCED) -> str:
        if place.explanation and place.explanation.strip():
            return place.explanation

        key = f"{query}-{place.name}-{variant}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        if not self.llm.configured:
            return fallback_explanation(query)

        system_prompt = _BASIC_SYSTEM_PROMPT if variant == BASIC else _ENHANCED_SYSTEM_PROMPT
        try:
            text = await self.llm.complete(
                system_prompt,
                _user_prompt(query, place, variant),
                max_tokens=self.llm.config.explanation_max_tokens,
            )
        except ProviderFailure:
            logger.warning("Explanation for %r failed, using fallback", place.name, exc_info=True)
            return fallback_explanation(query)

        self.cache.set(key, text)
        return text

    async def annotate(
        self,
        query: str,
        places: list[Place],
        top_n: int = 3,
        variant: str = ENHANCED,
    ) -> list[Place]:
        """Fill explanations for the first ``top_n`` places concurrently.

        The remaining places keep what they carried, or a generic sentence.
        """
        head = places[:top_n]
        texts = await asyncio.gather(*(self.explain(query, p, variant) for p in head))
        for place, text in zip(head, texts):
            place.explanation = text
        for place in places[top_n:]:
            place.explanation = place.explanation or DEFAULT_EXPLANATION
        return places
