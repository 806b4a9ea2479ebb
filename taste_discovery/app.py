from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import ClientInputError, PipelineTimeout, ProviderFailure
from .llm.groq_client import GroqTextClient
from .places.models import ParsePlaceRequest
from .places.resolver import PlaceResolver
from .providers.maps_client import GoogleMapsClient
from .providers.qloo_client import QlooClient
from .recommendations.cache import get_cache_stats
from .recommendations.models import RecommendationRequest, RecommendationResponse
from .recommendations.pipeline import RecommendationPipeline, build_pipeline

logger = logging.getLogger(__name__)

_clients: dict[str, object] = {}


def _maps() -> GoogleMapsClient:
    if "maps" not in _clients:
        _clients["maps"] = GoogleMapsClient()
    return _clients["maps"]


def get_pipeline() -> RecommendationPipeline:
    if "pipeline" not in _clients:
        _clients["qloo"] = QlooClient()
        _clients["llm"] = GroqTextClient()
        _clients["pipeline"] = build_pipeline(_clients["qloo"], _maps(), _clients["llm"])
    return _clients["pipeline"]


def get_resolver() -> PlaceResolver:
    if "resolver" not in _clients:
        _clients["resolver"] = PlaceResolver(_maps())
    return _clients["resolver"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    for client in list(_clients.values()):
        aclose = getattr(client, "aclose", None)
        if aclose is not None:
            await aclose()
    _clients.clear()


app = FastAPI(title="Taste Discovery API", version="1.0.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["POST", "OPTIONS", "GET"],
    allow_headers=["Content-Type"],
)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


# ── Error handlers ───────────────────────────────────────────────────────


@app.exception_handler(ClientInputError)
async def client_input_error_handler(request: Request, exc: ClientInputError) -> JSONResponse:
    return _error(400, str(exc))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(400, "Invalid request body")


@app.exception_handler(PipelineTimeout)
async def pipeline_timeout_handler(request: Request, exc: PipelineTimeout) -> JSONResponse:
    return _error(408, "Request timeout - please try again")


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 405:
        return _error(405, "Method not allowed")
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    return _error(500, "Internal server error")


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/recommendations", response_model=RecommendationResponse)
async def recommendations(
    body: RecommendationRequest,
    pipeline: RecommendationPipeline = Depends(get_pipeline),
) -> RecommendationResponse:
    return await pipeline.run(body)


@app.post("/parse-place")
async def parse_place(
    body: ParsePlaceRequest,
    resolver: PlaceResolver = Depends(get_resolver),
):
    if body.type == "autocomplete" and body.input:
        if not resolver.maps.configured:
            return _error(500, "Google Maps API key not configured")
        predictions = await resolver.autocomplete(body.input, body.city)
        return {"predictions": predictions}

    if body.url:
        return await resolver.parse_url(body.url)

    if body.place_id:
        if not resolver.maps.configured:
            return _error(500, "Google Maps API key not configured")
        try:
            details = await resolver.details(body.place_id)
        except ProviderFailure as exc:
            logger.warning("Place details lookup failed: %s", exc)
            return _error(500, "Failed to fetch place details")
        if details is None:
            return _error(404, "Place not found")
        return details

    return _error(400, "Missing required parameters")


# ── Operations ───────────────────────────────────────────────────────────


@app.get("/cache/stats")
def cache_stats() -> dict:
    return get_cache_stats()
