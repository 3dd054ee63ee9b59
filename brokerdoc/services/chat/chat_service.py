"""Streaming chat with document generation.

A chat turn runs in two phases. ``start_turn`` does everything that can
still fail with a normal HTTP error (ownership, saving the user message,
loading history). ``stream_turn`` then produces the server-sent events:
token deltas, then an optional generation request with its outcome, then
``[DONE]``.
"""

import json
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional
from uuid import UUID

from brokerdoc.core.exceptions import AppError, ResourceNotFound
from brokerdoc.database.models import Message
from brokerdoc.repositories.conversation_repository import ConversationRepository, MessageRepository
from brokerdoc.schemas.chat import ChatRequest
from brokerdoc.schemas.documents import GeneratedDocumentResponse
from brokerdoc.services.chat.prompts import build_system_prompt
from brokerdoc.services.generation.action_parser import DocumentRequestFound, parse_document_request
from brokerdoc.services.generation.document_generation_service import DocumentGenerationService
from brokerdoc.utils.logging import get_logger

LOGGER = get_logger(__name__)

TITLE_MAX_LENGTH = 50
SSE_DONE = "data: [DONE]\n\n"


def format_sse(payload: Dict[str, Any]) -> str:
    """Format a payload as one server-sent event."""
    return f"data: {json.dumps(payload, default=str)}\n\n"


def make_title(message: str) -> str:
    if len(message) > TITLE_MAX_LENGTH:
        return message[:TITLE_MAX_LENGTH] + "..."
    return message


def to_llm_messages(system_prompt: str, history: List[Message]) -> List[Dict[str, str]]:
    """System prompt followed by history; attached files are noted inline."""
    messages = [{"role": "system", "content": system_prompt}]
    for message in history:
        content = message.content or ""
        if message.file_name:
            content += f" [File: {message.file_name}]"
        messages.append({"role": message.role, "content": content})
    return messages


@dataclass
class ChatTurn:
    """State of one in-flight chat turn."""

    user_id: str
    conversation_id: UUID
    user_message: str
    history: List[Message]
    llm_messages: List[Dict[str, str]]
    buffer: List[str] = field(default_factory=list)

    @property
    def is_first_exchange(self) -> bool:
        return len(self.history) <= 1

    @property
    def text(self) -> str:
        return "".join(self.buffer)


class ChatService:
    """Runs chat turns against the configured LLM client."""

    def __init__(
        self,
        conversation_repository: ConversationRepository,
        message_repository: MessageRepository,
        llm_client,
        generation_service: DocumentGenerationService,
        history_limit: int = 20,
        system_prompt: Optional[str] = None,
    ):
        self.conversation_repository = conversation_repository
        self.message_repository = message_repository
        self.llm_client = llm_client
        self.generation_service = generation_service
        self.history_limit = history_limit
        self.system_prompt = system_prompt or build_system_prompt()

    async def start_turn(self, user_id: str, request: ChatRequest) -> ChatTurn:
        """Check ownership, save the user message and load history.

        Raises:
            ResourceNotFound: If the conversation is missing or not owned
            PersistenceFailure: If the user message cannot be saved
        """
        conversation = await self.conversation_repository.get_owned(request.conversation_id, user_id)
        if not conversation:
            raise ResourceNotFound("Conversation not found")

        await self.message_repository.create_message(
            conversation_id=request.conversation_id,
            role="user",
            content=request.message,
            file_url=request.file_url,
            file_name=request.file_name,
            file_type=request.file_type,
        )

        history = await self.message_repository.list_recent(request.conversation_id, self.history_limit)

        return ChatTurn(
            user_id=user_id,
            conversation_id=request.conversation_id,
            user_message=request.message,
            history=history,
            llm_messages=to_llm_messages(self.system_prompt, history),
        )

    async def stream_turn(self, turn: ChatTurn) -> AsyncIterator[str]:
        """Yield SSE frames for a started turn."""
        try:
            async for delta in self.llm_client.stream_chat(turn.llm_messages):
                turn.buffer.append(delta)
                yield format_sse({"content": delta})
        except Exception as e:
            LOGGER.error(
                f"LLM stream failed: {e}",
                exc_info=True,
                extra={"conversation_id": str(turn.conversation_id)},
            )
            message = e.message if isinstance(e, AppError) else "Failed to generate a response"
            yield format_sse({"error": message})
            return

        full_text = turn.text
        detection = parse_document_request(full_text)

        await self._save_assistant_message(turn, full_text)
        if turn.is_first_exchange:
            await self._set_title(turn)

        if isinstance(detection, DocumentRequestFound):
            async for frame in self._generate(turn, detection):
                yield frame

        yield SSE_DONE

    async def _generate(self, turn: ChatTurn, detection: DocumentRequestFound) -> AsyncIterator[str]:
        request = detection.request
        yield format_sse({"action": "document_generation", "request": request.to_dict()})

        try:
            document, preview_url = await self.generation_service.generate_from_request(
                user_id=turn.user_id,
                conversation_id=turn.conversation_id,
                user_input=turn.user_message,
                request=request,
            )
        except Exception as e:
            LOGGER.error(
                f"Document generation failed: {e}",
                exc_info=True,
                extra={"conversation_id": str(turn.conversation_id)},
            )
            error = e.message if isinstance(e, AppError) else "Document generation failed"
            yield format_sse({"action": "document_generation_failed", "error": error})
            return

        yield format_sse({
            "action": "document_generated",
            "document": GeneratedDocumentResponse.model_validate(document).model_dump(mode="json"),
            "previewUrl": preview_url,
        })

    async def _save_assistant_message(self, turn: ChatTurn, content: str) -> None:
        try:
            await self.message_repository.create_message(
                conversation_id=turn.conversation_id, role="assistant", content=content
            )
        except Exception as e:
            LOGGER.error(f"Error saving assistant message: {e}", exc_info=True)

    async def _set_title(self, turn: ChatTurn) -> None:
        try:
            conversation = await self.conversation_repository.get_owned(turn.conversation_id, turn.user_id)
            if conversation:
                await self.conversation_repository.update_title(conversation, make_title(turn.user_message))
        except Exception as e:
            LOGGER.error(f"Error updating conversation title: {e}", exc_info=True)
