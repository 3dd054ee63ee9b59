from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from brokerdoc.database.models import DocumentExtraction, GeneratedDocument, UploadedDocument
from brokerdoc.repositories.base_repository import BaseRepository
from brokerdoc.utils.logging import get_logger

LOGGER = get_logger(__name__)


class GeneratedDocumentRepository(BaseRepository[GeneratedDocument]):
    """Repository for generated (filled) documents."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, GeneratedDocument)

    async def create_document(
        self,
        user_id: str,
        conversation_id: UUID,
        template_id: UUID,
        document_data: Dict[str, Any],
        pdf_url: str,
        storage_path: Optional[str],
        metadata: Dict[str, Any],
        status: str = "preview",
    ) -> GeneratedDocument:
        """Insert a generated document record.

        Args:
            user_id: Owner of the document
            conversation_id: Conversation the document was generated in
            template_id: Template the PDF was filled from
            document_data: Field values used for the fill
            pdf_url: Public URL of the filled PDF
            storage_path: Object path of the filled PDF in storage
            metadata: Summary data (address, parties, transaction value)
            status: Initial lifecycle status

        Returns:
            Created GeneratedDocument record
        """
        return await self.create(
            user_id=user_id,
            conversation_id=conversation_id,
            template_id=template_id,
            document_data=document_data,
            pdf_url=pdf_url,
            storage_path=storage_path,
            document_metadata=metadata,
            status=status,
            version=1,
        )

    async def get_owned(self, document_id: UUID, user_id: str) -> Optional[GeneratedDocument]:
        try:
            result = await self.session.execute(
                select(GeneratedDocument).where(
                    GeneratedDocument.id == document_id,
                    GeneratedDocument.user_id == user_id,
                )
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise self._fail("retrieving", e) from e

    async def list_for_user(
        self, user_id: str, conversation_id: Optional[UUID] = None
    ) -> List[GeneratedDocument]:
        """List the caller's documents newest first, optionally for one conversation."""
        try:
            query = select(GeneratedDocument).where(GeneratedDocument.user_id == user_id)
            if conversation_id:
                query = query.where(GeneratedDocument.conversation_id == conversation_id)
            result = await self.session.execute(query.order_by(GeneratedDocument.created_at.desc()))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._fail("listing", e) from e


class ExtractionRepository(BaseRepository[DocumentExtraction]):
    """Append-only repository for extraction audit rows.

    Only inserts are exposed; audit rows are never edited or removed.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, DocumentExtraction)

    async def record_extraction(
        self,
        conversation_id: UUID,
        template_id: Optional[UUID],
        user_input: str,
        extracted_fields: Dict[str, Any],
        confidence_scores: Dict[str, float],
        missing_required_fields: List[str],
    ) -> DocumentExtraction:
        """Insert one audit row inside a savepoint.

        A failed insert rolls back only the savepoint, so objects already
        loaded in the session stay usable for the rest of the request.
        """
        instance = DocumentExtraction(
            conversation_id=conversation_id,
            template_id=template_id,
            user_input=user_input,
            extracted_fields=extracted_fields,
            confidence_scores=confidence_scores,
            missing_required_fields=missing_required_fields,
        )
        try:
            async with self.session.begin_nested():
                self.session.add(instance)
            await self.session.commit()
            return instance
        except SQLAlchemyError as e:
            raise self._fail("creating", e) from e


class UploadedDocumentRepository(BaseRepository[UploadedDocument]):
    """Repository for source PDFs uploaded into conversations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, UploadedDocument)

    async def create_upload(
        self,
        user_id: str,
        conversation_id: Optional[UUID],
        name: str,
        content_type: str,
        file_url: str,
        storage_path: str,
        file_size: int,
    ) -> UploadedDocument:
        return await self.create(
            user_id=user_id,
            conversation_id=conversation_id,
            name=name,
            type=content_type,
            file_url=file_url,
            storage_path=storage_path,
            file_size=file_size,
        )
