from __future__ import annotations

import asyncio
from typing import Any, Callable

import httpx
import pytest

from taste_discovery.errors import ProviderUnauthenticated
from taste_discovery.llm.config import LLMConfig
from taste_discovery.providers.config import ProviderConfig
from taste_discovery.providers.maps_client import GoogleMapsClient
from taste_discovery.providers.qloo_client import QlooClient
from taste_discovery.recommendations.cache import clear_cache

PROVIDER_CONFIG = ProviderConfig(
    qloo_api_key="qloo-test-key",
    qloo_api_url="https://qloo.test",
    google_maps_api_key="maps-test-key",
    taste_timeout=0.5,
    maps_timeout=0.5,
)


class FakeLLM:
    """Stands in for GroqTextClient: replays canned completions in order."""

    def __init__(self, *responses: str | Exception, configured: bool = True) -> None:
        self.responses = list(responses)
        self.config = LLMConfig(api_key="test-key" if configured else "")
        self.calls: list[tuple[str, str]] = []

    @property
    def configured(self) -> bool:
        return self.config.configured

    async def complete(self, system_prompt: str, user_prompt: str, **kwargs: Any) -> str:
        if not self.configured:
            raise ProviderUnauthenticated("groq", "API key not configured")
        self.calls.append((system_prompt, user_prompt))
        response = self.responses.pop(0) if self.responses else "A lovely spot."
        if isinstance(response, Exception):
            raise response
        return response


def maps_result(
    name: str,
    address: str,
    types: list[str] | None = None,
    rating: float | None = 4.4,
    reviews: int | None = 120,
    photo: str | None = "photo-ref",
    place_id: str | None = None,
) -> dict[str, Any]:
    result: dict[str, Any] = {
        "name": name,
        "formatted_address": address,
        "types": types or ["cafe", "food"],
        "place_id": place_id or name.lower().replace(" ", "-"),
    }
    if rating is not None:
        result["rating"] = rating
    if reviews is not None:
        result["user_ratings_total"] = reviews
    if photo:
        result["photos"] = [{"photo_reference": photo}]
    return result


def make_maps_handler(by_name: dict[str, dict[str, Any]], delay_for: set[str] | None = None):
    """Text search answers with the result registered under the candidate name
    the query starts with; everything else is ZERO_RESULTS."""
    delay_for = delay_for or set()

    async def handler(request: httpx.Request) -> httpx.Response:
        query = request.url.params.get("query", "")
        for name, result in by_name.items():
            if query.startswith(name):
                if name in delay_for:
                    await asyncio.sleep(10)
                return httpx.Response(200, json={"status": "OK", "results": [result]})
        return httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []})

    return handler


@pytest.fixture(autouse=True)
def _fresh_caches():
    clear_cache()
    yield
    clear_cache()


@pytest.fixture
def provider_config() -> ProviderConfig:
    return PROVIDER_CONFIG


@pytest.fixture
def make_maps() -> Callable[..., GoogleMapsClient]:
    def _make(handler, config: ProviderConfig = PROVIDER_CONFIG) -> GoogleMapsClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return GoogleMapsClient(config, http_client=http)

    return _make


@pytest.fixture
def make_qloo() -> Callable[..., QlooClient]:
    def _make(handler, config: ProviderConfig = PROVIDER_CONFIG) -> QlooClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return QlooClient(config, http_client=http)

    return _make


@pytest.fixture
def fake_llm() -> type[FakeLLM]:
    return FakeLLM


@pytest.fixture
def place_result() -> Callable[..., dict[str, Any]]:
    return maps_result


@pytest.fixture
def maps_handler() -> Callable[..., Any]:
    return make_maps_handler
