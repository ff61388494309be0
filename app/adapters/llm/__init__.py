"""Completion adapter layer - abstracts over OpenAI-compatible providers."""

from app.adapters.llm.base import AbstractCompletionClient
from app.adapters.llm.factory import create_completion_client
from app.adapters.llm.openai_client import OpenAIClient

__all__ = [
    "AbstractCompletionClient",
    "OpenAIClient",
    "create_completion_client",
]
