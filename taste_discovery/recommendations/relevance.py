"""
Lexical relevance check for mapping-provider hits.

Decides whether a business returned by a text search plausibly matches the
user's free-text query, so that e.g. a hospital is never shown for a
"cozy cafe" search. When nothing clearly contradicts relevance the
candidate is accepted.
"""
from __future__ import annotations

from dataclasses import dataclass

DEFAULT_MAX_EDIT_DISTANCE = 2

# Mapping-provider type tags grouped into coarse query categories.
# Order matters: the first category that matches the query wins.
TYPE_CATEGORIES: dict[str, tuple[str, ...]] = {
    "food": ("restaurant", "cafe", "bar", "food", "meal_takeaway", "bakery", "meal_delivery"),
    "accommodation": ("lodging", "hotel", "hostel", "guest_house"),
    "education": ("school", "university", "library", "educational_institution"),
    "entertainment": ("amusement_park", "movie_theater", "night_club", "casino", "bowling_alley"),
    "shopping": ("shopping_mall", "store", "clothing_store", "book_store", "electronics_store"),
    "health": ("hospital", "doctor", "dentist", "pharmacy", "health", "gym"),
    "culture": ("museum", "art_gallery", "library", "cultural_center"),
    "worship": ("church", "place_of_worship", "temple", "mosque", "synagogue"),
    "transport": ("airport", "bus_station", "subway_station", "train_station"),
    "finance": ("bank", "atm", "insurance_agency", "accounting"),
    "government": ("city_hall", "local_government_office", "embassy", "courthouse"),
}

GENERAL = "general"

# Name keywords that are never a good answer to a leisure query, paired with
# the query terms that make them acceptable after all.
_OBVIOUSLY_WRONG: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (
        ("hospital", "clinic", "medical", "dental", "pharmacy"),
        ("hospital", "clinic", "medical", "doctor", "dental", "dentist", "pharmacy", "health"),
    ),
    (
        ("church", "temple"),
        ("church", "temple", "shrine", "mosque", "worship", "religious", "spiritual"),
    ),
    (
        ("government",),
        ("government", "city hall", "embassy", "office"),
    ),
    (
        ("school", "university"),
        ("school", "university", "college", "campus", "education", "student"),
    ),
)


@dataclass(frozen=True)
class RelevanceVerdict:
    relevant: bool
    reason: str = ""
    category: str = GENERAL


def tokenize(text: str | None) -> list[str]:
    """Lowercase words longer than two characters."""
    return [token for token in (text or "").lower().split() if len(token) > 2]


def levenshtein_distance(a: str, b: str) -> int:
    """Case-insensitive edit distance (insert, delete, substitute)."""
    a, b = a.lower(), b.lower()
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            if char_a == char_b:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j - 1], previous[j], current[j - 1]))
        previous = current
    return previous[-1]


def classify_query(query_tokens: list[str]) -> str:
    for category, keywords in TYPE_CATEGORIES.items():
        if any(
            token in keyword or keyword in token
            for token in query_tokens
            for keyword in keywords
        ):
            return category
    return GENERAL


def _tokens_overlap(a: str, b: str, max_distance: int) -> bool:
    return a in b or b in a or levenshtein_distance(a, b) <= max_distance


def _obviously_wrong(name_lower: str, query_lower: str) -> str | None:
    for keywords, domain_terms in _OBVIOUSLY_WRONG:
        hit = next((k for k in keywords if k in name_lower), None)
        if hit and not any(term in query_lower for term in domain_terms):
            return hit
    return None


def check_relevance(
    candidate_name: str | None,
    candidate_types: list[str] | None,
    original_query: str | None,
    max_edit_distance: int = DEFAULT_MAX_EDIT_DISTANCE,
) -> RelevanceVerdict:
    name_lower = (candidate_name or "").lower()
    query_lower = (original_query or "").lower()
    types = {t.lower() for t in candidate_types or []}

    wrong = _obviously_wrong(name_lower, query_lower)
    if wrong:
        return RelevanceVerdict(False, f"obviously wrong category ({wrong})")

    query_tokens = tokenize(query_lower)
    name_tokens = tokenize(name_lower)
    category = classify_query(query_tokens)

    if category != GENERAL:
        expected = TYPE_CATEGORIES[category]
        matches_type = bool(types.intersection(expected))
        matches_name = any(keyword in name_lower for keyword in expected)
        if not (matches_type or matches_name):
            return RelevanceVerdict(False, "category mismatch", category)

    overlap = any(
        _tokens_overlap(q, n, max_edit_distance) for q in query_tokens for n in name_tokens
    )
    if overlap:
        return RelevanceVerdict(True, "token overlap", category)
    if category == GENERAL:
        return RelevanceVerdict(True, "general query", category)
    # Known over-permissive default: a cuisine-specific query still accepts
    # any venue of the right category.
    return RelevanceVerdict(True, "no contradicting signal", category)


def is_relevant(
    candidate_name: str | None,
    candidate_types: list[str] | None,
    original_query: str | None,
    max_edit_distance: int = DEFAULT_MAX_EDIT_DISTANCE,
) -> bool:
    return check_relevance(
        candidate_name, candidate_types, original_query, max_edit_distance
    ).relevant
