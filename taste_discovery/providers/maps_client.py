from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

import httpx

from ..errors import ProviderError, ProviderTimeout, ProviderUnauthenticated
from .config import DEFAULT_PROVIDER_CONFIG, ProviderConfig

PROVIDER = "google_maps"

_EMPTY_STATUSES = {"ZERO_RESULTS", "NOT_FOUND"}


@dataclass
class MapsCandidate:
    name: str
    formatted_address: str
    place_id: str | None = None
    rating: float | None = None
    review_count: int | None = None
    types: list[str] = field(default_factory=list)
    photo_reference: str | None = None

    @classmethod
    def from_result(cls, result: dict[str, Any]) -> "MapsCandidate":
        photos = result.get("photos") or []
        return cls(
            name=result.get("name") or "",
            formatted_address=result.get("formatted_address") or "",
            place_id=result.get("place_id"),
            rating=result.get("rating"),
            review_count=result.get("user_ratings_total"),
            types=list(result.get("types") or []),
            photo_reference=photos[0].get("photo_reference") if photos else None,
        )


class GoogleMapsClient:
    """
    Thin async wrapper around the Google Maps web services.

    Every call gets its own time budget, shorter than the taste provider's.
    """

    def __init__(
        self,
        config: ProviderConfig = DEFAULT_PROVIDER_CONFIG,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self._http = http_client

    @property
    def configured(self) -> bool:
        return bool(self.config.google_maps_api_key)

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(headers={"User-Agent": self.config.user_agent})
        return self._http

    def photo_url(self, photo_reference: str, max_width: int | None = None) -> str:
        params = {
            "maxwidth": max_width or self.config.photo_max_width,
            "photoreference": photo_reference,
            "key": self.config.google_maps_api_key,
        }
        return f"{self.config.google_maps_api_url}/place/photo?{urlencode(params)}"

    async def _get_json(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        if not self.configured:
            raise ProviderUnauthenticated(PROVIDER, "API key not configured")

        url = f"{self.config.google_maps_api_url}/{path}"
        params = {**params, "key": self.config.google_maps_api_key}
        try:
            response = await asyncio.wait_for(
                self._client().get(url, params=params),
                timeout=self.config.maps_timeout,
            )
        except asyncio.TimeoutError:
            raise ProviderTimeout(
                PROVIDER, f"{path} took longer than {self.config.maps_timeout}s"
            ) from None
        except httpx.HTTPError as exc:
            raise ProviderError(PROVIDER, f"{path} transport error: {exc}") from exc

        if not response.is_success:
            raise ProviderError(PROVIDER, f"{path} returned {response.status_code}")
        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError(PROVIDER, f"{path} returned a non-JSON body") from exc
        if not isinstance(data, dict):
            raise ProviderError(PROVIDER, f"{path} returned an unexpected payload")

        status = data.get("status", "OK")
        if status != "OK" and status not in _EMPTY_STATUSES:
            raise ProviderError(
                PROVIDER, f"{path} status {status}: {data.get('error_message', '')}".strip()
            )
        return data

    async def text_search(self, query: str) -> MapsCandidate | None:
        """Return the first text-search hit, or ``None`` when there is none."""
        data = await self._get_json("place/textsearch/json", {"query": query})
        results = data.get("results") or []
        if not results:
            return None
        return MapsCandidate.from_result(results[0])

    async def geocode(self, address: str) -> tuple[float, float] | None:
        data = await self._get_json("geocode/json", {"address": address})
        results = data.get("results") or []
        if not results:
            return None
        location = results[0].get("geometry", {}).get("location", {})
        if "lat" not in location or "lng" not in location:
            return None
        return float(location["lat"]), float(location["lng"])

    async def autocomplete(
        self,
        text: str,
        bias: tuple[float, float] | None = None,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"input": text, "types": "establishment"}
        if bias is not None:
            params["location"] = f"{bias[0]},{bias[1]}"
            params["radius"] = str(self.config.autocomplete_bias_radius_m)
        data = await self._get_json("place/autocomplete/json", params)
        return list(data.get("predictions") or [])

    async def place_details(self, place_id: str) -> dict[str, Any] | None:
        data = await self._get_json(
            "place/details/json",
            {"place_id": place_id, "fields": "name,formatted_address,photos,rating"},
        )
        result = data.get("result")
        if not result:
            return None
        photos = result.get("photos") or []
        return {
            "place_id": place_id,
            "name": result.get("name"),
            "address": result.get("formatted_address"),
            "rating": result.get("rating"),
            "photo_reference": photos[0].get("photo_reference") if photos else None,
        }

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None
