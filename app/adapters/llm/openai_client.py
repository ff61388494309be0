"""OpenAI-compatible completion client adapter."""

from typing import Any, Sequence

from openai import AsyncOpenAI

from app.adapters.llm.base import AbstractCompletionClient
from app.core.errors import LLMAppError
from app.schemas.chat import ChatMessage

EMPTY_REPLY = "No response generated."


class OpenAIClient(AbstractCompletionClient):
    """Client for OpenAI-compatible chat completions APIs (OpenAI, Groq).

    Uses the official OpenAI Python SDK with async support.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        timeout_seconds: float = 45.0,
        temperature: float = 0.5,
        max_tokens: int = 1024,
    ) -> None:
        """Initialize OpenAI async client.

        Args:
            api_key: Provider API key for authentication.
            model: Model name (e.g., "llama-3.1-8b-instant", "gpt-4o-mini").
            base_url: Optional custom base URL for the API.
            timeout_seconds: Timeout for requests in seconds.
            temperature: Sampling temperature.
            max_tokens: Maximum tokens in the reply.
        """
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
        )
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def complete(
        self,
        prompt: str,
        *,
        system_message: str,
        history: Sequence[ChatMessage] = (),
    ) -> str:
        """Generate a reply using chat completions.

        Args:
            prompt: Latest user turn.
            system_message: System instructions.
            history: Earlier turns, oldest first.

        Returns:
            str: Reply text, or a fixed fallback when the model returns nothing.

        Raises:
            LLMAppError: If the API call fails.
        """
        messages: list[dict[str, Any]] = [{"role": "system", "content": system_message}]
        messages.extend({"role": m.role, "content": m.content} for m in history)
        messages.append({"role": "user", "content": prompt})

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as exc:
            raise LLMAppError(
                code="completion_failed",
                message="Failed to generate response",
                details={"model": self.model, "hint": type(exc).__name__},
            ) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            return EMPTY_REPLY
        return content.strip()
