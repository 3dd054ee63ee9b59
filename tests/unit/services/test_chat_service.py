import json
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from brokerdoc.core.exceptions import APIClientError, PersistenceFailure, ResourceNotFound
from brokerdoc.schemas.chat import ChatRequest
from brokerdoc.services.chat.chat_service import ChatService, format_sse, make_title, to_llm_messages

USER_ID = "11111111-1111-1111-1111-111111111111"


class FakeLLMClient:
    """Streams preset deltas, optionally failing after them."""

    def __init__(self, deltas, error=None):
        self.deltas = deltas
        self.error = error
        self.received = None

    async def stream_chat(self, messages):
        self.received = messages
        for delta in self.deltas:
            yield delta
        if self.error:
            raise self.error


def _message(role, content, file_name=None):
    message = MagicMock()
    message.role = role
    message.content = content
    message.file_name = file_name
    return message


def _frames(chunks):
    """Decode SSE frames into payloads; [DONE] stays a string."""
    frames = []
    for chunk in chunks:
        assert chunk.startswith("data: ") and chunk.endswith("\n\n")
        body = chunk[len("data: "):-2]
        frames.append(body if body == "[DONE]" else json.loads(body))
    return frames


async def _collect(agen):
    return [chunk async for chunk in agen]


@pytest.fixture
def conversation_repository(conversation):
    repository = AsyncMock()
    repository.get_owned.return_value = conversation
    return repository


@pytest.fixture
def message_repository():
    repository = AsyncMock()
    repository.list_recent.return_value = [_message("user", "Hello")]
    return repository


@pytest.fixture
def generation_service():
    return AsyncMock()


def _service(conversation_repository, message_repository, generation_service, llm_client):
    return ChatService(
        conversation_repository=conversation_repository,
        message_repository=message_repository,
        llm_client=llm_client,
        generation_service=generation_service,
        system_prompt="You are a test assistant.",
    )


def _request(conversation_id, message="Hello", **extra):
    return ChatRequest(conversationId=conversation_id, message=message, **extra)


def test_format_sse():
    assert format_sse({"content": "Hi"}) == 'data: {"content": "Hi"}\n\n'


def test_make_title_truncates_long_messages():
    assert make_title("short") == "short"
    long_message = "x" * 80
    assert make_title(long_message) == "x" * 50 + "..."


def test_history_notes_attached_files():
    messages = to_llm_messages("system", [_message("user", "Check this", file_name="offer.pdf")])
    assert messages[0] == {"role": "system", "content": "system"}
    assert messages[1] == {"role": "user", "content": "Check this [File: offer.pdf]"}


@pytest.mark.asyncio
async def test_start_turn_rejects_foreign_conversation(conversation_repository, message_repository, generation_service):
    conversation_repository.get_owned.return_value = None
    service = _service(conversation_repository, message_repository, generation_service, FakeLLMClient([]))

    with pytest.raises(ResourceNotFound):
        await service.start_turn(USER_ID, _request(uuid4()))
    message_repository.create_message.assert_not_called()


@pytest.mark.asyncio
async def test_stream_emits_deltas_then_done(conversation, conversation_repository, message_repository, generation_service):
    llm = FakeLLMClient(["Hel", "lo", " there"])
    service = _service(conversation_repository, message_repository, generation_service, llm)

    turn = await service.start_turn(USER_ID, _request(conversation.id))
    frames = _frames(await _collect(service.stream_turn(turn)))

    assert frames == [{"content": "Hel"}, {"content": "lo"}, {"content": " there"}, "[DONE]"]
    assert llm.received[0]["role"] == "system"
    saved = message_repository.create_message.call_args_list
    assert saved[0].kwargs["role"] == "user"
    assert saved[1].kwargs == {"conversation_id": conversation.id, "role": "assistant", "content": "Hello there"}
    generation_service.generate_from_request.assert_not_called()


@pytest.mark.asyncio
async def test_first_exchange_sets_title(conversation, conversation_repository, message_repository, generation_service):
    service = _service(conversation_repository, message_repository, generation_service, FakeLLMClient(["ok"]))

    turn = await service.start_turn(USER_ID, _request(conversation.id, message="Draft an offer for 12 Elm St"))
    await _collect(service.stream_turn(turn))

    conversation_repository.update_title.assert_awaited_once_with(conversation, "Draft an offer for 12 Elm St")


@pytest.mark.asyncio
async def test_later_exchange_keeps_title(conversation, conversation_repository, message_repository, generation_service):
    message_repository.list_recent.return_value = [
        _message("user", "Hi"), _message("assistant", "Hello"), _message("user", "Again")
    ]
    service = _service(conversation_repository, message_repository, generation_service, FakeLLMClient(["ok"]))

    turn = await service.start_turn(USER_ID, _request(conversation.id))
    await _collect(service.stream_turn(turn))

    conversation_repository.update_title.assert_not_called()


@pytest.mark.asyncio
async def test_provider_error_ends_stream_without_done(conversation, conversation_repository, message_repository, generation_service):
    llm = FakeLLMClient(["partial"], error=APIClientError("LLM API error 503: unavailable"))
    service = _service(conversation_repository, message_repository, generation_service, llm)

    turn = await service.start_turn(USER_ID, _request(conversation.id))
    frames = _frames(await _collect(service.stream_turn(turn)))

    assert frames == [{"content": "partial"}, {"error": "LLM API error 503: unavailable"}]
    assert message_repository.create_message.await_count == 1


@pytest.mark.asyncio
async def test_assistant_save_failure_does_not_break_stream(conversation, conversation_repository, message_repository, generation_service):
    message_repository.create_message.side_effect = [MagicMock(), PersistenceFailure("db down")]
    service = _service(conversation_repository, message_repository, generation_service, FakeLLMClient(["ok"]))

    turn = await service.start_turn(USER_ID, _request(conversation.id))
    frames = _frames(await _collect(service.stream_turn(turn)))

    assert frames[-1] == "[DONE]"


@pytest.mark.asyncio
async def test_generation_request_emits_events(conversation, conversation_repository, message_repository, generation_service, document_factory):
    reply = (
        'Preparing it now.\n```json\n{"action": "generate_document", '
        '"template": "Ontario Agreement of Purchase and Sale", "data": {"purchase_price": 800000}}\n```'
    )
    document = document_factory(conversation_id=conversation.id)
    generation_service.generate_from_request.return_value = (document, document.pdf_url)
    service = _service(conversation_repository, message_repository, generation_service, FakeLLMClient([reply]))

    turn = await service.start_turn(USER_ID, _request(conversation.id, message="prepare an offer"))
    frames = _frames(await _collect(service.stream_turn(turn)))

    assert frames[1]["action"] == "document_generation"
    assert frames[1]["request"]["data"] == {"purchase_price": 800000}
    assert frames[2]["action"] == "document_generated"
    assert frames[2]["previewUrl"] == document.pdf_url
    assert frames[2]["document"]["id"] == str(document.id)
    assert frames[3] == "[DONE]"
    assert generation_service.generate_from_request.call_args.kwargs["user_input"] == "prepare an offer"


@pytest.mark.asyncio
async def test_generation_failure_is_reported_in_stream(conversation, conversation_repository, message_repository, generation_service):
    reply = '```json\n{"action": "generate_document", "template": "purchase", "data": {}}\n```'
    generation_service.generate_from_request.side_effect = ResourceNotFound("Template not found")
    service = _service(conversation_repository, message_repository, generation_service, FakeLLMClient([reply]))

    turn = await service.start_turn(USER_ID, _request(conversation.id))
    frames = _frames(await _collect(service.stream_turn(turn)))

    assert frames[2] == {"action": "document_generation_failed", "error": "Template not found"}
    assert frames[3] == "[DONE]"
