"""Conversation endpoints."""

from typing import Annotated, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from brokerdoc.core.auth import get_current_user
from brokerdoc.dependencies import get_conversation_service
from brokerdoc.schemas.auth import CurrentUser
from brokerdoc.schemas.conversations import ConversationCreate, ConversationResponse, MessageResponse
from brokerdoc.services.conversation_service import ConversationService

router = APIRouter()


@router.get(
    "",
    response_model=List[ConversationResponse],
    summary="List conversations",
    operation_id="list_conversations",
)
async def list_conversations(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    conversation_service: Annotated[ConversationService, Depends(get_conversation_service)],
) -> List[ConversationResponse]:
    """List the caller's conversations, most recently updated first."""
    conversations = await conversation_service.list_conversations(current_user.id)
    return [ConversationResponse.model_validate(c) for c in conversations]


@router.post(
    "",
    response_model=ConversationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a conversation",
    operation_id="create_conversation",
)
async def create_conversation(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    conversation_service: Annotated[ConversationService, Depends(get_conversation_service)],
    body: Optional[ConversationCreate] = None,
) -> ConversationResponse:
    title = body.title if body else None
    conversation = await conversation_service.create_conversation(current_user.id, title)
    return ConversationResponse.model_validate(conversation)


@router.get(
    "/{conversation_id}",
    response_model=ConversationResponse,
    summary="Get a conversation",
    operation_id="get_conversation",
)
async def get_conversation(
    conversation_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    conversation_service: Annotated[ConversationService, Depends(get_conversation_service)],
) -> ConversationResponse:
    conversation = await conversation_service.get_conversation(current_user.id, conversation_id)
    return ConversationResponse.model_validate(conversation)


@router.delete(
    "/{conversation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a conversation",
    description="Delete a conversation and its messages. Conversations owned by other users are reported as not found.",
    operation_id="delete_conversation",
)
async def delete_conversation(
    conversation_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    conversation_service: Annotated[ConversationService, Depends(get_conversation_service)],
) -> Response:
    await conversation_service.delete_conversation(current_user.id, conversation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{conversation_id}/messages",
    response_model=List[MessageResponse],
    summary="List conversation messages",
    operation_id="list_conversation_messages",
)
async def list_messages(
    conversation_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    conversation_service: Annotated[ConversationService, Depends(get_conversation_service)],
) -> List[MessageResponse]:
    """List a conversation's messages, oldest first."""
    messages = await conversation_service.list_messages(current_user.id, conversation_id)
    return [MessageResponse.model_validate(m) for m in messages]
