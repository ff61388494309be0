from typing import Annotated

from fastapi import APIRouter, Depends, Request

from app.schemas.chat import ChatRequest, ChatResponse
from app.services.chat_service import ChatService

router = APIRouter(tags=["Chat"])


def get_chat_service(request: Request) -> ChatService:
    """Return the chat service built by the app factory."""
    return request.app.state.chat_service


@router.post("", response_model=ChatResponse)
async def chat(
    body: ChatRequest,
    service: Annotated[ChatService, Depends(get_chat_service)],
) -> ChatResponse:
    """Answer the last message of the conversation.

    Rate limiting happens before this handler runs; admitted responses carry
    ``X-RateLimit-*`` headers added by the admission middleware.

    Args:
        body: Client-held conversation, oldest message first.

    Returns:
        ChatResponse: The assistant reply.

    Raises:
        LLMAppError: Rendered as 500 by the global exception handlers.
    """
    reply = await service.reply(body.messages)
    return ChatResponse(response=reply)
