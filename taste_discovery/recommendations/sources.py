from __future__ import annotations

from typing import Any

from .models import Place, Provenance

_BASE_IMAGES = (
    "https://images.unsplash.com/photo-1501339847302-ac426a4a7cbb?w=800",
    "https://images.unsplash.com/photo-1554118811-1e0d58224f24?w=800",
    "https://images.unsplash.com/photo-1509042239860-f550ce710b93?w=800",
    "https://images.unsplash.com/photo-1517248135467-4c7edcad34c4?w=800",
    "https://images.unsplash.com/photo-1555396273-367ea4eb4db5?w=800",
)

# (query keywords, images) checked in order
_THEMED_IMAGES: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (
        ("coffee", "cafe"),
        (
            "https://images.unsplash.com/photo-1501339847302-ac426a4a7cbb?w=800",
            "https://images.unsplash.com/photo-1554118811-1e0d58224f24?w=800",
            "https://images.unsplash.com/photo-1506619216599-9d16d0903dfd?w=800",
        ),
    ),
    (
        ("book", "vintage"),
        (
            "https://images.unsplash.com/photo-1481627834876-b7833e8f5570?w=800",
            "https://images.unsplash.com/photo-1507003211169-0a1dd7228f2d?w=800",
            "https://images.unsplash.com/photo-1521587760476-6c12a4b040da?w=800",
        ),
    ),
)


def stock_image(query: str | None, index: int = 0) -> str:
    """Pick a themed stock photo for ``query``; deterministic per index."""
    query_lower = (query or "").lower()
    for keywords, images in _THEMED_IMAGES:
        if any(keyword in query_lower for keyword in keywords):
            return images[index % len(images)]
    return _BASE_IMAGES[index % len(_BASE_IMAGES)]


def _to_float(value: Any) -> float | None:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def places_from_qloo(entities: list[dict[str, Any]], query: str, city: str) -> list[Place]:
    places: list[Place] = []
    for index, entity in enumerate(entities):
        properties = entity.get("properties") or {}
        image_info = properties.get("image")
        image = image_info.get("url") if isinstance(image_info, dict) else None
        places.append(Place(
            id=str(entity.get("entity_id") or f"qloo-{index}"),
            name=entity.get("name") or "Unknown Place",
            address=properties.get("address") or entity.get("disambiguation") or city,
            rating=_to_float(properties.get("business_rating")),
            image=image or stock_image(query, index),
            explanation=properties.get("description") or None,
            original_query=query,
            provenance=Provenance.primary,
        ))
    return places


def places_from_generated(
    items: list[dict[str, Any]],
    query: str,
    city: str,
    id_prefix: str = "generated",
) -> list[Place]:
    """Turn parsed generative-text records into synthesized Places."""
    places: list[Place] = []
    for index, item in enumerate(items):
        name = str(item.get("name") or "").strip()
        if not name:
            continue
        places.append(Place(
            id=f"{id_prefix}-{index}",
            name=name,
            address=str(item.get("address") or "").strip() or city,
            rating=_to_float(item.get("rating")),
            explanation=str(item.get("explanation") or "").strip() or None,
            image=stock_image(query, index),
            original_query=query,
            provenance=Provenance.synthesized,
        ))
    return places


def static_fallback_places(city: str, query: str = "restaurants") -> list[Place]:
    """The terminal fallback tier. Never fails and performs no I/O."""
    names = (
        ("Blue Bottle Coffee", f"Central {city}"),
        ("Local Artisan Cafe", f"Downtown {city}"),
        ("Specialty Coffee Roasters", f"Arts District, {city}"),
    )
    return [
        Place(
            id=f"fallback-{index}",
            name=name,
            address=address,
            image=_BASE_IMAGES[(index - 1) % len(_BASE_IMAGES)],
            original_query=query,
            provenance=Provenance.static,
        )
        for index, (name, address) in enumerate(names, start=1)
    ]
