from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from brokerdoc.core.exceptions import ResourceNotFound
from brokerdoc.services.conversation_service import ConversationService

USER_ID = "11111111-1111-1111-1111-111111111111"


@pytest.fixture
def repositories():
    return AsyncMock(), AsyncMock()


@pytest.mark.asyncio
async def test_delete_of_foreign_conversation_is_not_found(repositories):
    conversation_repository, message_repository = repositories
    conversation_repository.delete_owned.return_value = False
    service = ConversationService(conversation_repository, message_repository)

    with pytest.raises(ResourceNotFound):
        await service.delete_conversation(USER_ID, uuid4())


@pytest.mark.asyncio
async def test_messages_require_ownership(repositories):
    conversation_repository, message_repository = repositories
    conversation_repository.get_owned.return_value = None
    service = ConversationService(conversation_repository, message_repository)

    with pytest.raises(ResourceNotFound):
        await service.list_messages(USER_ID, uuid4())
    message_repository.list_for_conversation.assert_not_called()


@pytest.mark.asyncio
async def test_messages_of_owned_conversation(repositories, conversation):
    conversation_repository, message_repository = repositories
    conversation_repository.get_owned.return_value = conversation
    message_repository.list_for_conversation.return_value = ["first", "second"]
    service = ConversationService(conversation_repository, message_repository)

    assert await service.list_messages(USER_ID, conversation.id) == ["first", "second"]
    message_repository.list_for_conversation.assert_awaited_once_with(conversation.id)
