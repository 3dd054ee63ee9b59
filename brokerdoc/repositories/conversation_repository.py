from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from brokerdoc.database.models import Conversation, Message
from brokerdoc.repositories.base_repository import BaseRepository
from brokerdoc.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ConversationRepository(BaseRepository[Conversation]):
    """Repository for Conversation records, always scoped by owner."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Conversation)

    async def create_conversation(self, user_id: str, title: Optional[str] = None) -> Conversation:
        return await self.create(user_id=user_id, title=title or "New Conversation")

    async def get_owned(self, conversation_id: UUID, user_id: str) -> Optional[Conversation]:
        """Get a conversation only if it belongs to the caller.

        Args:
            conversation_id: Conversation ID
            user_id: Identity-provider subject of the caller

        Returns:
            The conversation, or None when missing or owned by someone else
        """
        try:
            result = await self.session.execute(
                select(Conversation).where(
                    Conversation.id == conversation_id,
                    Conversation.user_id == user_id,
                )
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise self._fail("retrieving", e) from e

    async def list_for_user(self, user_id: str) -> List[Conversation]:
        """List the caller's conversations, most recently updated first."""
        try:
            result = await self.session.execute(
                select(Conversation)
                .where(Conversation.user_id == user_id)
                .order_by(Conversation.updated_at.desc())
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._fail("listing", e) from e

    async def delete_owned(self, conversation_id: UUID, user_id: str) -> bool:
        """Delete a conversation if the caller owns it.

        Returns:
            True if deleted, False if not found or not owned
        """
        conversation = await self.get_owned(conversation_id, user_id)
        if not conversation:
            return False
        await self.remove(conversation)
        LOGGER.info(f"Deleted conversation {conversation_id}", extra={"user_id": user_id})
        return True

    async def update_title(self, conversation: Conversation, title: str) -> Conversation:
        return await self.save(conversation, title=title)


class MessageRepository(BaseRepository[Message]):
    """Repository for Message records."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Message)

    async def create_message(
        self,
        conversation_id: UUID,
        role: str,
        content: str,
        file_url: Optional[str] = None,
        file_name: Optional[str] = None,
        file_type: Optional[str] = None,
    ) -> Message:
        return await self.create(
            conversation_id=conversation_id,
            role=role,
            content=content,
            file_url=file_url,
            file_name=file_name,
            file_type=file_type,
        )

    async def list_for_conversation(
        self, conversation_id: UUID, limit: Optional[int] = None
    ) -> List[Message]:
        """List messages oldest first.

        Args:
            conversation_id: Conversation ID
            limit: Optional cap on the number of messages returned

        Returns:
            Messages ordered by creation time ascending
        """
        try:
            query = (
                select(Message)
                .where(Message.conversation_id == conversation_id)
                .order_by(Message.created_at.asc())
            )
            if limit:
                query = query.limit(limit)
            result = await self.session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._fail("listing", e) from e

    async def list_recent(self, conversation_id: UUID, limit: int = 20) -> List[Message]:
        """The newest ``limit`` messages, returned oldest first."""
        try:
            result = await self.session.execute(
                select(Message)
                .where(Message.conversation_id == conversation_id)
                .order_by(Message.created_at.desc())
                .limit(limit)
            )
            return list(reversed(result.scalars().all()))
        except SQLAlchemyError as e:
            raise self._fail("listing", e) from e
