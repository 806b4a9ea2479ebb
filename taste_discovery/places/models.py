from __future__ import annotations

from pydantic import BaseModel, Field


class ParsePlaceRequest(BaseModel):
    url: str | None = Field(default=None, max_length=2048)
    place_id: str | None = None
    type: str = Field(default="parse", description='"parse" or "autocomplete"')
    input: str | None = None
    city: str | None = None
