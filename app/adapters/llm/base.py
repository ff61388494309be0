from abc import ABC, abstractmethod
from typing import Sequence

from app.schemas.chat import ChatMessage


class AbstractCompletionClient(ABC):
	"""Interface for chat completion providers."""

	@abstractmethod
	async def complete(
		self,
		prompt: str,
		*,
		system_message: str,
		history: Sequence[ChatMessage] = (),
	) -> str:
		"""Generate a reply to ``prompt``.

		Args:
			prompt: Latest user turn, possibly enriched with scraped context.
			system_message: Instructions sent as the system turn.
			history: Earlier conversation turns, oldest first.

		Returns:
			str: Reply text.

		Raises:
			LLMAppError: If the provider call fails.
		"""
		...
