from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """One turn of the client-held conversation."""

    role: Literal["user", "assistant", "system"] = Field(
        ..., description="Author of the message"
    )
    content: str = Field(..., description="Message text")


class ChatRequest(BaseModel):
    """Request body for the chat endpoint.

    The whole history travels with every request; nothing is stored server side.
    """

    messages: list[ChatMessage] = Field(
        ...,
        min_length=1,
        description="Conversation so far, oldest first; the last entry is answered",
    )


class ChatResponse(BaseModel):
    response: str = Field(..., description="Assistant reply")
