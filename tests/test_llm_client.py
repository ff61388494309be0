"""Tests for the completion client adapter and its factory."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.adapters.llm import OpenAIClient, create_completion_client
from app.adapters.llm.openai_client import EMPTY_REPLY
from app.core.config import LLMSettings
from app.core.errors import ConfigAppError, LLMAppError
from app.schemas.chat import ChatMessage


def _response(content):
    mock_response = MagicMock()
    mock_response.choices = [MagicMock(message=MagicMock(content=content))]
    return mock_response


class TestOpenAIClient:
    """Test the OpenAI-compatible client with mocked API calls."""

    @pytest.mark.asyncio
    async def test_complete_sends_system_history_and_prompt(self) -> None:
        """Validates message ordering and sampling parameters."""
        client = OpenAIClient(
            api_key="test-key-123",
            model="llama-3.1-8b-instant",
            base_url="https://api.groq.com/openai/v1",
        )
        history = [
            ChatMessage(role="user", content="hi"),
            ChatMessage(role="assistant", content="hello, how can I help?"),
        ]

        with patch.object(
            client.client.chat.completions,
            "create",
            new_callable=AsyncMock,
            return_value=_response("  Sure thing.  "),
        ) as mock_create:
            result = await client.complete(
                "User: summarize this",
                system_message="be brief",
                history=history,
            )

        assert result == "Sure thing."
        call_kwargs = mock_create.call_args.kwargs
        assert call_kwargs["model"] == "llama-3.1-8b-instant"
        assert call_kwargs["temperature"] == 0.5
        assert call_kwargs["max_tokens"] == 1024
        assert call_kwargs["messages"] == [
            {"role": "system", "content": "be brief"},
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello, how can I help?"},
            {"role": "user", "content": "User: summarize this"},
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [None, "", "   "])
    async def test_empty_completion_returns_fallback(self, content) -> None:
        client = OpenAIClient(api_key="test-key", model="llama-3.1-8b-instant")

        with patch.object(
            client.client.chat.completions,
            "create",
            new_callable=AsyncMock,
            return_value=_response(content),
        ):
            result = await client.complete("User: hi", system_message="sys")

        assert result == EMPTY_REPLY == "No response generated."

    @pytest.mark.asyncio
    async def test_api_failure_raises_llm_error(self) -> None:
        """API exceptions are wrapped without leaking provider details."""
        client = OpenAIClient(api_key="test-key", model="llama-3.1-8b-instant")

        with patch.object(
            client.client.chat.completions,
            "create",
            new_callable=AsyncMock,
            side_effect=RuntimeError("upstream exploded"),
        ):
            with pytest.raises(LLMAppError) as exc_info:
                await client.complete("User: hi", system_message="sys")

        assert exc_info.value.code == "completion_failed"
        assert exc_info.value.message == "Failed to generate response"
        assert exc_info.value.details["hint"] == "RuntimeError"


class TestCompletionClientFactory:
    """Test provider routing and validation."""

    def test_groq_uses_groq_endpoint(self) -> None:
        client = create_completion_client(LLMSettings(provider="groq", api_key="gsk-test"))

        assert isinstance(client, OpenAIClient)
        assert str(client.client.base_url).startswith("https://api.groq.com/openai/v1")
        assert client.model == "llama-3.1-8b-instant"

    def test_base_url_override(self) -> None:
        client = create_completion_client(
            LLMSettings(provider="openai", api_key="sk-test", base_url="https://llm.internal/v1")
        )

        assert str(client.client.base_url).startswith("https://llm.internal/v1")

    def test_provider_name_is_case_insensitive(self) -> None:
        client = create_completion_client(LLMSettings(provider="GROQ", api_key="gsk-test"))

        assert isinstance(client, OpenAIClient)

    def test_unknown_provider_raises_config_error(self) -> None:
        with pytest.raises(ConfigAppError) as exc_info:
            create_completion_client(LLMSettings(provider="unknown", api_key="k"))

        assert exc_info.value.code == "llm_unknown_provider"
        assert "groq" in exc_info.value.message

    def test_missing_api_key_raises_config_error(self) -> None:
        with pytest.raises(ConfigAppError) as exc_info:
            create_completion_client(LLMSettings(provider="groq", api_key=None))

        assert exc_info.value.code == "llm_missing_api_key"
