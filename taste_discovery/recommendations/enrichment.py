from __future__ import annotations

import asyncio
import logging

from ..errors import ProviderFailure, ProviderTimeout
from ..providers.maps_client import GoogleMapsClient, MapsCandidate
from .config import DEFAULT_PIPELINE_CONFIG, PipelineConfig
from .models import Place
from .relevance import check_relevance, tokenize
from .sources import stock_image

logger = logging.getLogger(__name__)


def build_search_query(place: Place, city: str) -> str:
    """Candidate name plus up to two salient query words plus the city."""
    context = " ".join(tokenize(place.original_query)[:2]) or "restaurant"
    return f"{place.name} {context} {city}"


def address_in_city(address: str, city: str) -> bool:
    address_lower = address.lower()
    city_lower = city.strip().lower()
    if not city_lower:
        return False
    return city_lower in address_lower or city_lower.replace(" ", "") in address_lower


class Enricher:
    """
    Validates candidates against the mapping provider.

    Each candidate is looked up by text search; the first hit must lie in
    the target city, pass the relevance check and not repeat an already
    accepted ``(name, address)`` pair. Accepted places take the provider's
    name, address, rating, review count and photo.
    """

    def __init__(
        self,
        maps: GoogleMapsClient,
        config: PipelineConfig = DEFAULT_PIPELINE_CONFIG,
    ) -> None:
        self.maps = maps
        self.config = config

    async def enrich(self, candidates: list[Place], city: str, target_count: int) -> list[Place]:
        target = min(target_count, self.config.max_target)
        if not candidates or target <= 0:
            return []
        if not self.maps.configured:
            logger.warning("Mapping provider not configured, using %d candidates as-is", len(candidates))
            return self._passthrough(candidates, target)

        to_check = candidates[: self.config.max_candidates]
        accepted: list[Place] = []
        seen: set[tuple[str, str]] = set()

        for start in range(0, len(to_check), self.config.batch_size):
            if len(accepted) >= target:
                break
            batch = to_check[start:start + self.config.batch_size]
            hits = await asyncio.gather(
                *(self._lookup(place, city) for place in batch)
            )
            # Merge in input order so results stay stable across runs.
            for offset, (place, hit) in enumerate(zip(batch, hits)):
                if len(accepted) >= target:
                    break
                if hit is None:
                    continue
                key = (hit.name.lower(), hit.formatted_address.lower())
                if key in seen:
                    logger.info("Duplicate %r skipped", hit.name)
                    continue
                seen.add(key)
                accepted.append(self._apply(place, hit, start + offset))

        logger.info("Enrichment accepted %d/%d candidates in %s", len(accepted), len(to_check), city)
        return accepted

    async def _lookup(self, place: Place, city: str) -> MapsCandidate | None:
        query = build_search_query(place, city)
        try:
            hit = await self.maps.text_search(query)
        except ProviderTimeout:
            logger.info("Timeout validating %r, skipping", place.name)
            return None
        except ProviderFailure as exc:
            logger.warning("Validation lookup for %r failed: %s", place.name, exc)
            return None

        if hit is None or not hit.name:
            return None
        if not address_in_city(hit.formatted_address, city):
            logger.info("%r is not in %s, skipping", hit.name, city)
            return None
        verdict = check_relevance(hit.name, hit.types, place.original_query or query)
        if not verdict.relevant:
            logger.info("%r rejected for %r: %s", hit.name, place.original_query, verdict.reason)
            return None
        return hit

    def _apply(self, place: Place, hit: MapsCandidate, index: int) -> Place:
        place.id = place.id or f"google-{hit.place_id}"
        place.name = hit.name
        place.address = hit.formatted_address
        place.rating = hit.rating
        place.review_count = hit.review_count
        if hit.photo_reference:
            place.image = self.maps.photo_url(hit.photo_reference)
        else:
            place.image = stock_image(place.original_query, index)
        return place

    def _passthrough(self, candidates: list[Place], target: int) -> list[Place]:
        kept: list[Place] = []
        seen: set[tuple[str, str]] = set()
        for index, place in enumerate(candidates):
            key = (place.name.lower(), place.address.lower())
            if key in seen:
                continue
            seen.add(key)
            place.image = place.image or stock_image(place.original_query, index)
            kept.append(place)
            if len(kept) >= target:
                break
        return kept
