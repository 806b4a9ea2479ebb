from __future__ import annotations

import asyncio
import logging

from groq import APIError, APITimeoutError, AsyncGroq

from ..errors import ProviderError, ProviderTimeout, ProviderUnauthenticated
from .config import DEFAULT_LLM_CONFIG, LLMConfig

logger = logging.getLogger(__name__)

PROVIDER = "groq"


def build_places_system_prompt(city: str, count: int) -> str:
    return (
        f"You are a local dining and entertainment expert for {city}. "
        f"Generate exactly {count} REAL places that currently exist and operate in {city}.\n\n"
        "CRITICAL REQUIREMENTS:\n"
        "- ONLY restaurants, cafes, bars, themed dining, entertainment venues, "
        "or food-related businesses\n"
        "- NO fictional places, exhibitions, or temporary events\n"
        "- NO schools, hospitals, clinics, churches, temples, government buildings\n"
        "- All places must be actual operating businesses you can verify exist\n"
        "- Focus on places that match the user's specific taste preference\n\n"
        "SPECIAL HANDLING FOR UNIQUE REQUESTS:\n"
        "- Pet-friendly requests: cat cafes, dog-friendly restaurants, animal-themed venues\n"
        "- Interactive dining: game cafes, board game restaurants, entertainment dining\n"
        "- Themed experiences: character cafes, themed restaurants, immersive dining\n"
        "- Cultural experiences: traditional venues, cultural dining experiences\n\n"
        "Return ONLY a valid JSON array with this exact format (no extra text):\n"
        "[\n"
        "  {\n"
        '    "id": "unique-id-1",\n'
        '    "name": "Real Restaurant/Cafe Name",\n'
        f'    "address": "Real street address in {city}",\n'
        '    "rating": 4.5,\n'
        '    "explanation": "Why this venue matches the request (1-2 sentences)"\n'
        "  }\n"
        "]\n\n"
        "NO markdown, NO explanations outside JSON. Real businesses only."
    )


def build_places_user_prompt(query: str, city: str, count: int) -> str:
    return (
        f"Find {count} REAL restaurants, cafes, bars, or entertainment venues in {city} "
        f'that specifically match this request: "{query}". Focus on places that would '
        "genuinely fulfill this exact dining/entertainment need."
    )


class GroqTextClient:
    """
    Chat-completions wrapper used for place synthesis and explanations.

    Returns raw text; parsing the answer is the caller's job.
    """

    def __init__(self, config: LLMConfig = DEFAULT_LLM_CONFIG) -> None:
        self.config = config
        self._client: AsyncGroq | None = None

    @property
    def configured(self) -> bool:
        return self.config.configured

    def _get_client(self) -> AsyncGroq:
        if self._client is None:
            self._client = AsyncGroq(api_key=self.config.api_key, timeout=self.config.timeout)
        return self._client

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> str:
        if not self.configured:
            raise ProviderUnauthenticated(PROVIDER, "API key not configured")

        try:
            response = await asyncio.wait_for(
                self._get_client().chat.completions.create(
                    model=self.config.model,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_prompt},
                    ],
                    max_tokens=max_tokens or self.config.max_tokens,
                    temperature=self.config.temperature if temperature is None else temperature,
                ),
                timeout=self.config.timeout,
            )
        except (asyncio.TimeoutError, APITimeoutError):
            raise ProviderTimeout(PROVIDER, f"no answer within {self.config.timeout}s") from None
        except APIError as exc:
            raise ProviderError(PROVIDER, str(exc)) from exc

        content = (response.choices[0].message.content or "").strip() if response.choices else ""
        if not content:
            raise ProviderError(PROVIDER, "empty completion")
        logger.debug("Groq completion: %s", content[:200])
        return content

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
