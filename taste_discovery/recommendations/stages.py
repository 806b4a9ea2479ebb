"""
Fallback tiers of the recommendation pipeline.

Each stage answers two questions: does it apply to this request, and what
places can it produce. Provider failures are left to propagate as
``ProviderFailure`` so the pipeline can log them and move on; an empty list
means "nothing usable, try the next tier".
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from ..errors import ParseError, ProviderFailure
from ..llm.groq_client import GroqTextClient, build_places_system_prompt, build_places_user_prompt
from ..providers.maps_client import GoogleMapsClient
from ..providers.qloo_client import QlooClient
from .cache import TTLCache, generated_places_cache
from .config import DEFAULT_PIPELINE_CONFIG, PipelineConfig
from .enrichment import Enricher
from .explanations import BASIC, ExplanationGenerator
from .models import Place, RecommendationRequest, SearchType
from .sources import places_from_generated, places_from_qloo, static_fallback_places
from .synthesis import extract_places_manually, parse_generated_places

logger = logging.getLogger(__name__)


@dataclass
class StageContext:
    request: RecommendationRequest
    city: str
    query: str
    limit: int


class Stage:
    name = "stage"

    def applies(self, ctx: StageContext) -> bool:
        return True

    async def attempt(self, ctx: StageContext) -> list[Place]:
        raise NotImplementedError


class TasteSourceStage(Stage):
    """Qloo lookup followed by enrichment, for one search mode."""

    def __init__(
        self,
        mode: SearchType,
        qloo: QlooClient,
        enricher: Enricher,
        maps: GoogleMapsClient | None = None,
    ) -> None:
        self.mode = mode
        self.name = f"qloo-{mode.value}"
        self.qloo = qloo
        self.enricher = enricher
        self.maps = maps

    def applies(self, ctx: StageContext) -> bool:
        return ctx.request.type == self.mode and bool(ctx.query)

    async def _reference_name(self, ctx: StageContext) -> str:
        # A bare place id says nothing to the taste search; look the name up.
        if self.mode != SearchType.similar or ctx.request.query or self.maps is None:
            return ctx.query
        try:
            details = await self.maps.place_details(ctx.query)
        except ProviderFailure as exc:
            logger.warning("Could not resolve place id %r: %s", ctx.query, exc)
            return ctx.query
        return (details or {}).get("name") or ctx.query

    async def attempt(self, ctx: StageContext) -> list[Place]:
        reference = await self._reference_name(ctx)
        entities = await self.qloo.fetch(reference, ctx.city, self.mode.value)
        candidates = places_from_qloo(entities, reference, ctx.city)
        if not candidates:
            logger.info("Qloo returned no %s results for %r", self.mode.value, reference)
            return []
        logger.info("Qloo returned %d %s candidates", len(candidates), self.mode.value)
        return await self.enricher.enrich(candidates, ctx.city, ctx.limit)


class SynthesisStage(Stage):
    """Ask the generative provider for places, then validate them like any other."""

    name = "synthesis"

    def __init__(
        self,
        llm: GroqTextClient,
        enricher: Enricher,
        explainer: ExplanationGenerator,
        cache: TTLCache = generated_places_cache,
        config: PipelineConfig = DEFAULT_PIPELINE_CONFIG,
    ) -> None:
        self.llm = llm
        self.enricher = enricher
        self.explainer = explainer
        self.cache = cache
        self.config = config

    def applies(self, ctx: StageContext) -> bool:
        return bool(ctx.query)

    async def _generate(self, ctx: StageContext, count: int) -> tuple[list[dict], str]:
        key = f"{ctx.query}-{ctx.city}-{count}"
        cached = self.cache.get(key)
        if cached is not None:
            logger.info("Using cached generated places for %r", ctx.query)
            return cached

        content = await self.llm.complete(
            build_places_system_prompt(ctx.city, count),
            build_places_user_prompt(ctx.query, ctx.city, count),
        )
        try:
            records, prefix = parse_generated_places(content)[:count], "generated"
        except ParseError as exc:
            logger.warning("%s; trying manual extraction", exc)
            records, prefix = extract_places_manually(content, count), "manual"

        if records:
            self.cache.set(key, (records, prefix))
        return records, prefix

    async def attempt(self, ctx: StageContext) -> list[Place]:
        count = min(ctx.limit, self.config.synthesis_max_places)
        records, prefix = await self._generate(ctx, count)
        candidates = places_from_generated(records, ctx.query, ctx.city, id_prefix=prefix)
        if not candidates:
            logger.info("Generated text yielded no places for %r", ctx.query)
            return []

        places = await self.enricher.enrich(candidates, ctx.city, count)
        # Only the head is explained; annotate() gives the rest the default sentence.
        missing = [p for p in places[: self.config.explained_top_n] if not p.explanation]
        texts = await asyncio.gather(
            *(self.explainer.explain(ctx.query, p, BASIC) for p in missing)
        )
        for place, text in zip(missing, texts):
            place.explanation = text
        return places


class StaticFallbackStage(Stage):
    name = "static"

    async def attempt(self, ctx: StageContext) -> list[Place]:
        return static_fallback_places(ctx.city, ctx.query or "restaurants")
