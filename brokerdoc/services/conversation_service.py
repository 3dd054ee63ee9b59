"""Conversation management scoped to the calling user."""

from typing import List, Optional
from uuid import UUID

from brokerdoc.core.exceptions import ResourceNotFound
from brokerdoc.database.models import Conversation, Message
from brokerdoc.repositories.conversation_repository import ConversationRepository, MessageRepository
from brokerdoc.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ConversationService:
    def __init__(
        self,
        conversation_repository: ConversationRepository,
        message_repository: MessageRepository,
    ):
        self.conversation_repository = conversation_repository
        self.message_repository = message_repository

    async def list_conversations(self, user_id: str) -> List[Conversation]:
        return await self.conversation_repository.list_for_user(user_id)

    async def create_conversation(self, user_id: str, title: Optional[str] = None) -> Conversation:
        conversation = await self.conversation_repository.create_conversation(user_id, title)
        LOGGER.info(f"Created conversation {conversation.id}", extra={"user_id": user_id})
        return conversation

    async def get_conversation(self, user_id: str, conversation_id: UUID) -> Conversation:
        """Get one of the caller's conversations.

        Raises:
            ResourceNotFound: If missing or owned by someone else
        """
        conversation = await self.conversation_repository.get_owned(conversation_id, user_id)
        if not conversation:
            raise ResourceNotFound("Conversation not found")
        return conversation

    async def delete_conversation(self, user_id: str, conversation_id: UUID) -> None:
        """Delete a conversation and its messages; nothing is deleted unless the caller owns it."""
        deleted = await self.conversation_repository.delete_owned(conversation_id, user_id)
        if not deleted:
            raise ResourceNotFound("Conversation not found")

    async def list_messages(self, user_id: str, conversation_id: UUID) -> List[Message]:
        await self.get_conversation(user_id, conversation_id)
        return await self.message_repository.list_for_conversation(conversation_id)
