from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SearchType(str, Enum):
    taste = "taste"
    similar = "similar"


class Provenance(str, Enum):
    primary = "primary"
    synthesized = "synthesized"
    static = "static"


class Place(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = Field(..., min_length=1)
    address: str
    image: str | None = None
    rating: float | None = None
    review_count: int | None = Field(default=None, alias="reviewCount")
    explanation: str | None = None
    distance: float | None = None
    original_query: str = Field(default="", alias="originalQuery")
    provenance: Provenance


class RecommendationRequest(BaseModel):
    type: SearchType = SearchType.taste
    query: str | None = Field(default=None, max_length=500)
    place_id: str | None = Field(default=None, max_length=500)
    city: str | None = Field(default=None, description="Target city, free text")
    limit: int = Field(default=50, ge=1, description="Soft cap on the number of places")

    @property
    def search_query(self) -> str:
        return (self.query or self.place_id or "").strip()


class RecommendationResponse(BaseModel):
    places: list[Place]
    query: str
    city: str
    source: str
    explanation: str

