"""
Parsing of generated place lists.

The generative provider is asked for a bare JSON array, but answers often
arrive wrapped in a markdown fence or slightly malformed. Parsing is
two-tier: strict JSON after fence stripping, then a regex extractor that
recovers name/address/rating/explanation fields from whatever is left.
"""
from __future__ import annotations

import json
import re
from typing import Any

from ..errors import ParseError

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)\s*(?:```|$)", re.DOTALL)
_NAME_RE = re.compile(r'"name"\s*:\s*"([^"]+)"')
_ADDRESS_RE = re.compile(r'"address"\s*:\s*"([^"]+)"')
_RATING_RE = re.compile(r'"rating"\s*:\s*([0-9]+(?:\.[0-9]+)?)')
_EXPLANATION_RE = re.compile(r'"explanation"\s*:\s*"([^"]+)"')
_OBJECT_RE = re.compile(r"\{[^{}]*\}", re.DOTALL)


def strip_code_fence(content: str) -> str:
    match = _FENCE_RE.search(content)
    if match:
        return match.group(1).strip()
    return content.strip()


def parse_generated_places(content: str) -> list[dict[str, Any]]:
    """Decode a JSON array of place records.

    Raises ``ParseError`` when the text is not valid JSON or not a non-empty
    array.
    """
    try:
        data = json.loads(strip_code_fence(content))
    except json.JSONDecodeError as exc:
        raise ParseError(f"generated text is not valid JSON: {exc}") from exc
    if isinstance(data, dict):
        data = data.get("places") or data.get("results")
    if not isinstance(data, list) or not data:
        raise ParseError("generated text is not a non-empty JSON array")
    return [item for item in data if isinstance(item, dict)]


def _first(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    return match.group(1) if match else None


def extract_places_manually(content: str, limit: int) -> list[dict[str, Any]]:
    """Recover place records field by field from malformed JSON text.

    Works object by object when braces are recognisable, otherwise pairs the
    n-th name with the n-th address across the whole text.
    """
    records: list[dict[str, Any]] = []
    chunks = _OBJECT_RE.findall(content)

    if chunks:
        for chunk in chunks:
            name, address = _first(_NAME_RE, chunk), _first(_ADDRESS_RE, chunk)
            if name and address:
                records.append({
                    "name": name,
                    "address": address,
                    "rating": _first(_RATING_RE, chunk),
                    "explanation": _first(_EXPLANATION_RE, chunk),
                })
    if not records:
        names = _NAME_RE.findall(content)
        addresses = _ADDRESS_RE.findall(content)
        ratings = _RATING_RE.findall(content)
        explanations = _EXPLANATION_RE.findall(content)
        for i, (name, address) in enumerate(zip(names, addresses)):
            records.append({
                "name": name,
                "address": address,
                "rating": ratings[i] if i < len(ratings) else None,
                "explanation": explanations[i] if i < len(explanations) else None,
            })
    return records[:limit]
