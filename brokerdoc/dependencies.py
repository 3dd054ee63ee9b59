"""Centralized dependency injection for the FastAPI application.

Long-lived service handles (JWT verifier, LLM client, storage client) are
built once by the application lifespan and kept on ``app.state``; the
factories below read them from there and combine them with a request
scoped database session.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from brokerdoc.core.config import settings
from brokerdoc.core.database import get_async_session
from brokerdoc.repositories.conversation_repository import ConversationRepository, MessageRepository
from brokerdoc.repositories.document_repository import (
    ExtractionRepository,
    GeneratedDocumentRepository,
    UploadedDocumentRepository,
)
from brokerdoc.repositories.template_repository import TemplateRepository
from brokerdoc.services.chat.chat_service import ChatService
from brokerdoc.services.conversation_service import ConversationService
from brokerdoc.services.generation.document_generation_service import DocumentGenerationService
from brokerdoc.services.storage_service import StorageService
from brokerdoc.services.templates.template_service import TemplateService
from brokerdoc.services.upload_service import UploadService


# Service handles


def get_llm_client(request: Request):
    """Get the chat completion client built at startup."""
    return request.app.state.llm_client


def get_storage_service(request: Request) -> StorageService:
    return request.app.state.storage_service


# Repositories


async def get_conversation_repository(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> ConversationRepository:
    """Get conversation repository instance.

    Args:
        db_session: Database session from dependency injection

    Returns:
        ConversationRepository: Repository for owner-scoped conversation access
    """
    return ConversationRepository(db_session)


async def get_message_repository(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> MessageRepository:
    return MessageRepository(db_session)


async def get_template_repository(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> TemplateRepository:
    return TemplateRepository(db_session)


async def get_extraction_repository(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> ExtractionRepository:
    return ExtractionRepository(db_session)


async def get_generated_document_repository(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> GeneratedDocumentRepository:
    return GeneratedDocumentRepository(db_session)


async def get_uploaded_document_repository(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> UploadedDocumentRepository:
    return UploadedDocumentRepository(db_session)


# Services


async def get_document_generation_service(
    conversation_repository: Annotated[ConversationRepository, Depends(get_conversation_repository)],
    template_repository: Annotated[TemplateRepository, Depends(get_template_repository)],
    extraction_repository: Annotated[ExtractionRepository, Depends(get_extraction_repository)],
    document_repository: Annotated[GeneratedDocumentRepository, Depends(get_generated_document_repository)],
    storage_service: Annotated[StorageService, Depends(get_storage_service)],
) -> DocumentGenerationService:
    """Get document generation service instance.

    Returns:
        DocumentGenerationService: Orchestrates template fill, upload and persistence
    """
    return DocumentGenerationService(
        conversation_repository=conversation_repository,
        template_repository=template_repository,
        extraction_repository=extraction_repository,
        document_repository=document_repository,
        storage_service=storage_service,
        generated_bucket=settings.storage.generated_bucket,
        region=settings.default_region,
    )


async def get_chat_service(
    conversation_repository: Annotated[ConversationRepository, Depends(get_conversation_repository)],
    message_repository: Annotated[MessageRepository, Depends(get_message_repository)],
    generation_service: Annotated[DocumentGenerationService, Depends(get_document_generation_service)],
    llm_client=Depends(get_llm_client),
) -> ChatService:
    """Get chat service instance.

    Returns:
        ChatService: Streams chat turns and triggers document generation
    """
    return ChatService(
        conversation_repository=conversation_repository,
        message_repository=message_repository,
        llm_client=llm_client,
        generation_service=generation_service,
        history_limit=settings.llm.history_limit,
    )


async def get_conversation_service(
    conversation_repository: Annotated[ConversationRepository, Depends(get_conversation_repository)],
    message_repository: Annotated[MessageRepository, Depends(get_message_repository)],
) -> ConversationService:
    return ConversationService(conversation_repository, message_repository)


async def get_upload_service(
    upload_repository: Annotated[UploadedDocumentRepository, Depends(get_uploaded_document_repository)],
    conversation_repository: Annotated[ConversationRepository, Depends(get_conversation_repository)],
    storage_service: Annotated[StorageService, Depends(get_storage_service)],
) -> UploadService:
    return UploadService(
        upload_repository=upload_repository,
        conversation_repository=conversation_repository,
        storage_service=storage_service,
        bucket=settings.storage.uploads_bucket,
        max_bytes=settings.storage.max_upload_bytes,
        allowed_types=settings.storage.allowed_upload_types,
    )


async def get_template_service(
    template_repository: Annotated[TemplateRepository, Depends(get_template_repository)],
) -> TemplateService:
    return TemplateService(template_repository)
