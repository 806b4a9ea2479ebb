import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from groq import APIConnectionError, APITimeoutError

from taste_discovery.errors import ProviderError, ProviderTimeout, ProviderUnauthenticated
from taste_discovery.llm.config import LLMConfig
from taste_discovery.llm.groq_client import (
    GroqTextClient,
    build_places_system_prompt,
    build_places_user_prompt,
)

ENABLED_CONFIG = LLMConfig(api_key="test-key", enabled=True, timeout=1.0)
DISABLED_CONFIG = LLMConfig(api_key="test-key", enabled=False)
NO_KEY_CONFIG = LLMConfig(api_key="")

_REQUEST = httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions")


def _mock_groq_response(content: str | None) -> MagicMock:
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


def _mock_client(mock_groq_cls, **create_kwargs) -> AsyncMock:
    create = AsyncMock(**create_kwargs)
    mock_groq_cls.return_value.chat.completions.create = create
    return create


@patch("taste_discovery.llm.groq_client.AsyncGroq")
def test_complete_returns_raw_text(mock_groq_cls):
    payload = json.dumps([{"name": "Fuglen Tokyo", "address": "1-16-11 Tomigaya, Tokyo"}])
    create = _mock_client(mock_groq_cls, return_value=_mock_groq_response(f"  {payload}  "))

    result = asyncio.run(GroqTextClient(ENABLED_CONFIG).complete("system", "user"))

    assert result == payload
    kwargs = create.call_args.kwargs
    assert kwargs["model"] == ENABLED_CONFIG.model
    assert kwargs["messages"][0] == {"role": "system", "content": "system"}
    assert kwargs["messages"][1] == {"role": "user", "content": "user"}


@patch("taste_discovery.llm.groq_client.AsyncGroq")
def test_complete_passes_token_limit(mock_groq_cls):
    create = _mock_client(mock_groq_cls, return_value=_mock_groq_response("ok"))

    asyncio.run(GroqTextClient(ENABLED_CONFIG).complete("s", "u", max_tokens=80))

    assert create.call_args.kwargs["max_tokens"] == 80


def test_complete_without_key_fails_before_network():
    with patch("taste_discovery.llm.groq_client.AsyncGroq") as mock_groq_cls:
        with pytest.raises(ProviderUnauthenticated):
            asyncio.run(GroqTextClient(NO_KEY_CONFIG).complete("s", "u"))
        mock_groq_cls.assert_not_called()


def test_complete_disabled_counts_as_unauthenticated():
    with pytest.raises(ProviderUnauthenticated):
        asyncio.run(GroqTextClient(DISABLED_CONFIG).complete("s", "u"))


@patch("taste_discovery.llm.groq_client.AsyncGroq")
def test_complete_maps_sdk_timeout(mock_groq_cls):
    _mock_client(mock_groq_cls, side_effect=APITimeoutError(request=_REQUEST))

    with pytest.raises(ProviderTimeout):
        asyncio.run(GroqTextClient(ENABLED_CONFIG).complete("s", "u"))


@patch("taste_discovery.llm.groq_client.AsyncGroq")
def test_complete_maps_slow_call_to_timeout(mock_groq_cls):
    async def _hang(**kwargs):
        await asyncio.sleep(10)

    _mock_client(mock_groq_cls, side_effect=_hang)
    config = LLMConfig(api_key="test-key", timeout=0.05)

    with pytest.raises(ProviderTimeout):
        asyncio.run(GroqTextClient(config).complete("s", "u"))


@patch("taste_discovery.llm.groq_client.AsyncGroq")
def test_complete_maps_api_error(mock_groq_cls):
    _mock_client(mock_groq_cls, side_effect=APIConnectionError(request=_REQUEST))

    with pytest.raises(ProviderError):
        asyncio.run(GroqTextClient(ENABLED_CONFIG).complete("s", "u"))


@patch("taste_discovery.llm.groq_client.AsyncGroq")
def test_complete_empty_content_is_error(mock_groq_cls):
    _mock_client(mock_groq_cls, return_value=_mock_groq_response(None))

    with pytest.raises(ProviderError):
        asyncio.run(GroqTextClient(ENABLED_CONFIG).complete("s", "u"))


def test_places_prompts_carry_constraints():
    system = build_places_system_prompt("Tokyo", 5)
    user = build_places_user_prompt("cozy minimalist cafe", "Tokyo", 5)
    assert "exactly 5 REAL places" in system
    assert "hospitals" in system and "churches" in system
    assert "JSON array" in system
    assert '"cozy minimalist cafe"' in user
    assert "Tokyo" in user
