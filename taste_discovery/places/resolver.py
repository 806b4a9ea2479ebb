from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import parse_qs, unquote_plus, urlparse

import httpx

from ..errors import ProviderFailure
from ..providers.maps_client import GoogleMapsClient

logger = logging.getLogger(__name__)

SHORT_LINK_HOSTS = ("goo.gl", "maps.app.goo.gl")
GENERIC_MAPS_QUERY = "location from Google Maps"


def is_short_link(url: str) -> bool:
    host = (urlparse(url).hostname or "").lower()
    return any(host == h or host.endswith("." + h) for h in SHORT_LINK_HOSTS)


def parse_maps_url(url: str) -> dict[str, Any]:
    """Extract a place id or search query from a Google Maps URL."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return {"type": "error", "place_id": None, "query": None, "error": "Invalid URL format"}
    if not parsed.scheme or not parsed.netloc:
        return {"type": "error", "place_id": None, "query": None, "error": "Invalid URL format"}

    if is_short_link(url):
        return {
            "type": "shortened",
            "place_id": None,
            "query": GENERIC_MAPS_QUERY,
            "note": "Shortened Google Maps URL detected",
        }

    params = parse_qs(parsed.query)
    place_id = (params.get("place_id") or [None])[0]
    if place_id:
        return {"type": "place_id", "place_id": place_id, "query": None}

    segments = parsed.path.split("/")
    if "place" in segments:
        index = segments.index("place")
        if index + 1 < len(segments) and segments[index + 1]:
            name = segments[index + 1].split("@")[0]
            if name:
                return {"type": "query", "place_id": None, "query": unquote_plus(name)}

    q = (params.get("q") or [None])[0]
    if q:
        return {"type": "query", "place_id": None, "query": q}

    host = (parsed.hostname or "").lower()
    if host.startswith("maps.google.") or (host.endswith("google.com") and parsed.path.startswith("/maps")):
        return {
            "type": "maps_url",
            "place_id": None,
            "query": GENERIC_MAPS_QUERY,
            "note": "Google Maps URL detected but could not extract specific place",
        }

    return {
        "type": "unknown",
        "place_id": None,
        "query": None,
        "error": "Could not parse Google Maps URL",
    }


class PlaceResolver:
    """Turns pasted links or partial input into something searchable."""

    def __init__(
        self,
        maps: GoogleMapsClient,
        http_client: httpx.AsyncClient | None = None,
        redirect_timeout: float = 3.0,
    ) -> None:
        self.maps = maps
        self._http = http_client
        self.redirect_timeout = redirect_timeout

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient()
        return self._http

    async def expand_short_link(self, url: str) -> str | None:
        try:
            response = await asyncio.wait_for(
                self._client().head(url, follow_redirects=True),
                timeout=self.redirect_timeout,
            )
        except (asyncio.TimeoutError, httpx.HTTPError) as exc:
            logger.warning("Could not expand short link %s: %r", url, exc)
            return None
        final = str(response.url)
        return final if final != url else None

    async def parse_url(self, url: str) -> dict[str, Any]:
        if is_short_link(url):
            expanded = await self.expand_short_link(url)
            if expanded and not is_short_link(expanded):
                result = parse_maps_url(expanded)
                if result["type"] not in ("unknown", "error"):
                    return result
        return parse_maps_url(url)

    async def autocomplete(self, text: str, city: str | None = None) -> list[dict[str, Any]]:
        bias = None
        if city:
            try:
                bias = await self.maps.geocode(city)
            except ProviderFailure as exc:
                logger.warning("Geocoding %r for autocomplete bias failed: %s", city, exc)
        try:
            return await self.maps.autocomplete(text, bias)
        except ProviderFailure as exc:
            logger.warning("Autocomplete for %r failed: %s", text, exc)
            return []

    async def details(self, place_id: str) -> dict[str, Any] | None:
        return await self.maps.place_details(place_id)

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None
