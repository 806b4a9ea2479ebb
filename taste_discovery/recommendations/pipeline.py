from __future__ import annotations

import asyncio
import logging
import time

from ..errors import ClientInputError, PipelineTimeout, ProviderFailure, ProviderTimeout
from ..llm.groq_client import GroqTextClient
from ..providers.maps_client import GoogleMapsClient
from ..providers.qloo_client import QlooClient
from .cache import TTLCache, explanation_cache, generated_places_cache
from .config import DEFAULT_PIPELINE_CONFIG, PipelineConfig
from .enrichment import Enricher
from .explanations import ExplanationGenerator
from .models import Place, Provenance, RecommendationRequest, RecommendationResponse, SearchType
from .stages import (
    Stage,
    StageContext,
    StaticFallbackStage,
    SynthesisStage,
    TasteSourceStage,
)

logger = logging.getLogger(__name__)

SOURCE_PRIMARY = "qloo"
SOURCE_FALLBACK = "openai-fallback"


def _ensure_unique_ids(places: list[Place]) -> None:
    used: set[str] = set()
    for place in places:
        candidate, suffix = place.id, 1
        while candidate in used:
            candidate = f"{place.id}-{suffix}"
            suffix += 1
        place.id = candidate
        used.add(candidate)


def summarize(places: list[Place], source: str, query: str, city: str) -> str:
    if not places:
        return ""
    if source == SOURCE_PRIMARY:
        return (
            f'Based on your taste for "{query}", these places in {city} share similar '
            "cultural vibes, atmospheres, and style preferences."
        )
    return (
        f'These {city} establishments match your preference for "{query}" with similar '
        "ambience, cultural elements, and dining experiences."
    )


class RecommendationPipeline:
    """
    Runs the fallback tiers in order until one yields places.

    Tiers: Qloo taste search, Qloo similar search, generated places, static
    list. The whole sequence, explanations included, races a deadline; losing
    it raises ``PipelineTimeout`` and nothing partial is returned.
    """

    def __init__(
        self,
        stages: list[Stage],
        explainer: ExplanationGenerator,
        config: PipelineConfig = DEFAULT_PIPELINE_CONFIG,
    ) -> None:
        self.stages = stages
        self.explainer = explainer
        self.config = config

    async def run(self, request: RecommendationRequest) -> RecommendationResponse:
        city = (request.city or "").strip()
        if not city:
            raise ClientInputError("City is required")

        ctx = StageContext(
            request=request,
            city=city,
            query=request.search_query,
            limit=min(request.limit, self.config.max_results),
        )
        start_time = time.monotonic()
        try:
            response = await asyncio.wait_for(self._run(ctx), timeout=self.config.deadline)
        except asyncio.TimeoutError:
            logger.warning(
                "Pipeline for %r in %s exceeded %.1fs", ctx.query, city, self.config.deadline
            )
            raise PipelineTimeout(f"exceeded {self.config.deadline}s deadline") from None

        elapsed_ms = round((time.monotonic() - start_time) * 1000, 1)
        logger.info(
            "Returned %d places for %r in %s (source=%s, %.1f ms)",
            len(response.places), ctx.query, city, response.source, elapsed_ms,
        )
        return response

    async def _run(self, ctx: StageContext) -> RecommendationResponse:
        places = await self._first_productive_stage(ctx)
        places = places[: ctx.limit]
        _ensure_unique_ids(places)

        await self.explainer.annotate(ctx.query, places, top_n=self.config.explained_top_n)

        source = (
            SOURCE_PRIMARY
            if any(p.provenance == Provenance.primary for p in places)
            else SOURCE_FALLBACK
        )
        return RecommendationResponse(
            places=places,
            query=ctx.query,
            city=ctx.city,
            source=source,
            explanation=summarize(places, source, ctx.query, ctx.city),
        )

    async def _first_productive_stage(self, ctx: StageContext) -> list[Place]:
        for stage in self.stages:
            if not stage.applies(ctx):
                continue
            try:
                places = await stage.attempt(ctx)
            except ProviderTimeout as exc:
                logger.info("Stage %s timed out (%s), falling through", stage.name, exc)
                continue
            except ProviderFailure:
                logger.warning("Stage %s failed, falling through", stage.name, exc_info=True)
                continue
            if places:
                logger.info("Stage %s produced %d places", stage.name, len(places))
                return places
            logger.info("Stage %s produced nothing, falling through", stage.name)
        return []


def build_pipeline(
    qloo: QlooClient,
    maps: GoogleMapsClient,
    llm: GroqTextClient,
    config: PipelineConfig = DEFAULT_PIPELINE_CONFIG,
    explanations: TTLCache = explanation_cache,
    generated: TTLCache = generated_places_cache,
) -> RecommendationPipeline:
    enricher = Enricher(maps, config)
    explainer = ExplanationGenerator(llm, explanations)
    stages: list[Stage] = [
        TasteSourceStage(SearchType.taste, qloo, enricher),
        TasteSourceStage(SearchType.similar, qloo, enricher, maps=maps),
        SynthesisStage(llm, enricher, explainer, generated, config),
        StaticFallbackStage(),
    ]
    return RecommendationPipeline(stages, explainer, config)
