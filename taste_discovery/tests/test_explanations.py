import asyncio

from taste_discovery.errors import ProviderError, ProviderTimeout
from taste_discovery.recommendations.cache import TTLCache
from taste_discovery.recommendations.explanations import (
    BASIC,
    DEFAULT_EXPLANATION,
    ENHANCED,
    ExplanationGenerator,
    fallback_explanation,
)
from taste_discovery.recommendations.models import Place, Provenance


def _place(name: str, explanation: str | None = None) -> Place:
    return Place(
        id=name.lower(), name=name, address="Tokyo", explanation=explanation,
        original_query="quiet jazz bar", provenance=Provenance.primary,
    )


def test_explanation_generated_and_cached(fake_llm):
    llm = fake_llm("Dim lights and a deep vinyl collection.")
    cache = TTLCache()
    explainer = ExplanationGenerator(llm, cache)

    first = asyncio.run(explainer.explain("quiet jazz bar", _place("JBS")))
    second = asyncio.run(explainer.explain("quiet jazz bar", _place("JBS")))

    assert first == second == "Dim lights and a deep vinyl collection."
    assert len(llm.calls) == 1
    assert cache.get(f"quiet jazz bar-JBS-{ENHANCED}") == first


def test_variants_are_cached_separately(fake_llm):
    llm = fake_llm("enhanced text", "basic text")
    explainer = ExplanationGenerator(llm, TTLCache())

    assert asyncio.run(explainer.explain("q", _place("JBS"), ENHANCED)) == "enhanced text"
    assert asyncio.run(explainer.explain("q", _place("JBS"), BASIC)) == "basic text"
    assert len(llm.calls) == 2


def test_existing_explanation_is_kept(fake_llm):
    llm = fake_llm()
    explainer = ExplanationGenerator(llm, TTLCache())

    text = asyncio.run(explainer.explain("q", _place("JBS", "Curated by the owner.")))

    assert text == "Curated by the owner."
    assert llm.calls == []


def test_unconfigured_llm_uses_fallback(fake_llm):
    explainer = ExplanationGenerator(fake_llm(configured=False), TTLCache())
    assert asyncio.run(explainer.explain("quiet jazz bar", _place("JBS"))) == fallback_explanation("quiet jazz bar")


def test_provider_failure_uses_fallback_and_is_not_cached(fake_llm):
    llm = fake_llm(ProviderTimeout("groq", "slow"), "Second try works.")
    cache = TTLCache()
    explainer = ExplanationGenerator(llm, cache)

    assert asyncio.run(explainer.explain("q", _place("JBS"))) == fallback_explanation("q")
    assert len(cache) == 0
    assert asyncio.run(explainer.explain("q", _place("JBS"))) == "Second try works."


def test_annotate_explains_only_the_head(fake_llm):
    llm = fake_llm("one", "two", "three", "four")
    places = [_place(f"Bar {i}") for i in range(5)]
    places[4].explanation = "Already described."

    asyncio.run(ExplanationGenerator(llm, TTLCache()).annotate("q", places, top_n=3))

    assert sorted(p.explanation for p in places[:3]) == ["one", "three", "two"]
    assert places[3].explanation == DEFAULT_EXPLANATION
    assert places[4].explanation == "Already described."
    assert len(llm.calls) == 3


def test_annotate_survives_partial_failure(fake_llm):
    llm = fake_llm("fine", ProviderError("groq", "500"))
    places = [_place("Bar A"), _place("Bar B")]

    asyncio.run(ExplanationGenerator(llm, TTLCache()).annotate("q", places, top_n=3))

    assert {p.explanation for p in places} == {"fine", fallback_explanation("q")}
