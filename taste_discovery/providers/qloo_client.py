from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..errors import ProviderError, ProviderTimeout, ProviderUnauthenticated
from .config import DEFAULT_PROVIDER_CONFIG, ProviderConfig

logger = logging.getLogger(__name__)

PROVIDER = "qloo"

PLACE_ENTITY_TYPES = frozenset({
    "urn:entity:place",
    "urn:entity:destination",
    "urn:entity:locality",
})


@dataclass(frozen=True)
class SearchStrategy:
    template: str
    limit: int

    def render(self, query: str, city: str) -> str:
        return " ".join(self.template.format(query=query, city=city).split())


# Ordered from most to least specific; the first one yielding a relevant
# entity wins.
STRATEGIES: dict[str, tuple[SearchStrategy, ...]] = {
    "taste": (
        SearchStrategy("{city} {query} restaurants cafes bars dining", 15),
        SearchStrategy("{query} in {city} dining venues", 15),
        SearchStrategy("{city} restaurants cafes bars", 10),
    ),
    "similar": (
        SearchStrategy("{query} {city}", 15),
        SearchStrategy("places like {query} in {city}", 15),
        SearchStrategy("{city} restaurants cafes bars", 10),
    ),
}


def _is_relevant_entity(entity: dict[str, Any]) -> bool:
    types = entity.get("types") or []
    properties = entity.get("properties") or {}
    has_address = bool(properties.get("address") or entity.get("disambiguation"))
    return has_address and any(t in PLACE_ENTITY_TYPES for t in types)


class QlooClient:
    """Taste-recommendation search over the Qloo ``/search`` endpoint."""

    def __init__(
        self,
        config: ProviderConfig = DEFAULT_PROVIDER_CONFIG,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self._http = http_client

    @property
    def configured(self) -> bool:
        return bool(self.config.qloo_api_key)

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient()
        return self._http

    async def fetch(self, query: str, city: str, mode: str = "taste") -> list[dict[str, Any]]:
        """
        Return the raw place entities for ``query`` in ``city``.

        An empty list means every strategy answered but none carried a
        usable place; that is a valid outcome, not a failure.
        """
        if not self.configured:
            raise ProviderUnauthenticated(PROVIDER, "API key not configured")

        strategies = STRATEGIES.get(mode, STRATEGIES["taste"])
        try:
            return await asyncio.wait_for(
                self._run_strategies(query, city, strategies),
                timeout=self.config.taste_timeout,
            )
        except asyncio.TimeoutError:
            raise ProviderTimeout(
                PROVIDER, f"no answer within {self.config.taste_timeout}s"
            ) from None

    async def _run_strategies(
        self,
        query: str,
        city: str,
        strategies: tuple[SearchStrategy, ...],
    ) -> list[dict[str, Any]]:
        url = f"{self.config.qloo_api_url.rstrip('/')}/search"
        headers = {"X-Api-Key": self.config.qloo_api_key, "Accept": "application/json"}
        succeeded = 0

        for index, strategy in enumerate(strategies, start=1):
            params = {"query": strategy.render(query, city), "limit": str(strategy.limit)}
            try:
                response = await self._client().get(url, params=params, headers=headers)
            except httpx.HTTPError as exc:
                logger.warning("Qloo strategy %d transport error: %s", index, exc)
                continue

            if not response.is_success:
                logger.warning(
                    "Qloo strategy %d returned %d: %s",
                    index, response.status_code, response.text[:200],
                )
                continue

            try:
                payload = response.json()
            except ValueError:
                logger.warning("Qloo strategy %d returned a non-JSON body", index)
                continue
            succeeded += 1

            entities = (payload.get("results") if isinstance(payload, dict) else None) or []
            relevant = [e for e in entities if isinstance(e, dict) and _is_relevant_entity(e)]
            logger.info(
                "Qloo strategy %d found %d results, %d relevant places",
                index, len(entities), len(relevant),
            )
            if relevant:
                return relevant

        if not succeeded:
            raise ProviderError(PROVIDER, "every search strategy failed")
        return []

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None
