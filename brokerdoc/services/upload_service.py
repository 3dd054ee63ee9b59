"""Upload of source PDFs into a conversation."""

import time
from typing import Iterable, Optional
from uuid import UUID

from fastapi import UploadFile

from brokerdoc.core.exceptions import PersistenceFailure, ResourceNotFound, StorageError, ValidationFailed
from brokerdoc.database.models import UploadedDocument
from brokerdoc.repositories.conversation_repository import ConversationRepository
from brokerdoc.repositories.document_repository import UploadedDocumentRepository
from brokerdoc.services.storage_service import StorageService
from brokerdoc.utils.logging import get_logger

LOGGER = get_logger(__name__)


class UploadService:
    """Validate, store and record uploaded files.

    Files are validated before anything is written; if the record insert
    fails the stored object is removed again.
    """

    def __init__(
        self,
        upload_repository: UploadedDocumentRepository,
        conversation_repository: ConversationRepository,
        storage_service: StorageService,
        bucket: str = "documents",
        max_bytes: int = 10 * 1024 * 1024,
        allowed_types: Iterable[str] = ("application/pdf",),
    ):
        self.upload_repository = upload_repository
        self.conversation_repository = conversation_repository
        self.storage_service = storage_service
        self.bucket = bucket
        self.max_bytes = max_bytes
        self.allowed_types = set(allowed_types)

    async def upload(
        self, user_id: str, file: Optional[UploadFile], conversation_id: Optional[UUID] = None
    ) -> UploadedDocument:
        """Store an uploaded file and record it.

        Raises:
            ValidationFailed: If no file is given, or it has the wrong type or size
            ResourceNotFound: If conversation_id is not one of the caller's
            StorageError: If the storage write fails
            PersistenceFailure: If the record insert fails
        """
        if file is None or not file.filename:
            raise ValidationFailed("No file provided")
        if file.content_type not in self.allowed_types:
            raise ValidationFailed("Only PDF files are supported")

        content = await file.read(self.max_bytes + 1)
        if len(content) > self.max_bytes:
            raise ValidationFailed(f"File size must be less than {self.max_bytes / (1024 * 1024):g}MB")
        if not content:
            raise ValidationFailed("File is empty")

        if conversation_id:
            conversation = await self.conversation_repository.get_owned(conversation_id, user_id)
            if not conversation:
                raise ResourceNotFound("Conversation not found")

        extension = file.filename.rsplit(".", 1)[-1] if "." in file.filename else "pdf"
        folder = f"{user_id}/{conversation_id}" if conversation_id else user_id
        storage_path = f"{folder}/{int(time.time() * 1000)}.{extension}"

        await self.storage_service.upload_bytes(content, self.bucket, storage_path, content_type=file.content_type)
        public_url = self.storage_service.get_public_url(self.bucket, storage_path)

        try:
            record = await self.upload_repository.create_upload(
                user_id=user_id,
                conversation_id=conversation_id,
                name=file.filename,
                content_type=file.content_type,
                file_url=public_url,
                storage_path=storage_path,
                file_size=len(content),
            )
        except PersistenceFailure:
            try:
                await self.storage_service.delete_object(self.bucket, storage_path)
            except StorageError as e:
                LOGGER.error(f"Failed to clean up uploaded file {storage_path}: {e}")
            raise

        LOGGER.info(
            f"Uploaded {file.filename}",
            extra={"user_id": user_id, "bytes": len(content), "path": storage_path},
        )
        return record
