"""Streaming chat endpoint."""

from typing import Annotated, AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from brokerdoc.core.auth import get_current_user
from brokerdoc.core.database import get_async_session
from brokerdoc.dependencies import get_chat_service
from brokerdoc.schemas.auth import CurrentUser
from brokerdoc.schemas.chat import ChatRequest
from brokerdoc.services.chat.chat_service import ChatService, ChatTurn
from brokerdoc.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


async def _stream_and_close(
    chat_service: ChatService, turn: ChatTurn, session: AsyncSession
) -> AsyncIterator[str]:
    """Stream a turn, then release the request session.

    The body outlives the dependency scope, so post-stream writes may have
    reopened a connection on the session.
    """
    try:
        async for chunk in chat_service.stream_turn(turn):
            yield chunk
    finally:
        await session.close()


@router.post(
    "",
    summary="Send a chat message",
    description="Stream the assistant reply as server-sent events",
    operation_id="stream_chat",
    response_class=StreamingResponse,
)
async def chat(
    body: ChatRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    chat_service: Annotated[ChatService, Depends(get_chat_service)],
    db_session: Annotated[AsyncSession, Depends(get_async_session)],
) -> StreamingResponse:
    """Send a message and stream the reply.

    Ownership and the user message are handled before the stream opens, so
    a missing conversation is still a plain 404.
    """
    turn = await chat_service.start_turn(current_user.id, body)
    LOGGER.info(
        "Chat turn started",
        extra={"user_id": current_user.id, "conversation_id": str(body.conversation_id)},
    )
    return StreamingResponse(
        _stream_and_close(chat_service, turn, db_session),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
