"""Document generation orchestration.

Turns a detected generation request (or an explicit fill-template call)
into a filled PDF in object storage plus a ``GeneratedDocument`` record,
and manages later field edits and status changes on that record.
"""

import asyncio
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple
from uuid import UUID

from brokerdoc.core.exceptions import (
    InvalidStatusTransition,
    PersistenceFailure,
    ResourceNotFound,
    StorageError,
    ValidationFailed,
)
from brokerdoc.database.models import DocumentTemplate, GeneratedDocument
from brokerdoc.repositories.conversation_repository import ConversationRepository
from brokerdoc.repositories.document_repository import ExtractionRepository, GeneratedDocumentRepository
from brokerdoc.repositories.template_repository import TemplateRepository
from brokerdoc.services.base_service import BaseService
from brokerdoc.services.generation.action_parser import (
    DocumentRequest,
    DocumentRequestFound,
    DocumentRequestMalformed,
    parse_document_request,
)
from brokerdoc.services.pdf.field_mapper import to_number
from brokerdoc.services.pdf.form_filler import fill_pdf
from brokerdoc.services.storage_service import StorageService
from brokerdoc.services.templates.registry import (
    DEFAULT_REGION,
    confidence_scores,
    resolve_template_type,
    validate_document_data,
)
from brokerdoc.utils.logging import get_logger

LOGGER = get_logger(__name__)

STATUS_RANK = {"draft": 0, "preview": 1, "finalized": 2}

PDF_CONTENT_TYPE = "application/pdf"


def build_document_metadata(document_data: Mapping[str, Any], template_name: str) -> Dict[str, Any]:
    """Summary stored alongside a generated document."""
    parties = [
        str(document_data[key])
        for key in ("buyer_full_name", "seller_full_name")
        if document_data.get(key)
    ]
    return {
        "property_address": document_data.get("property_address"),
        "document_title": template_name,
        "parties_involved": parties,
        "transaction_value": _transaction_value(document_data.get("purchase_price")),
    }


def _transaction_value(value: Any) -> Any:
    if value is None or value == "":
        return None
    try:
        number = to_number(value)
    except ValueError:
        return value
    return int(number) if number == number.to_integral_value() else float(number)


def _object_name(template_name: str) -> str:
    timestamp = re.sub(r"[:.+]", "-", datetime.now(timezone.utc).isoformat())
    slug = re.sub(r"[^A-Za-z0-9_-]+", "-", template_name).strip("-") or "document"
    return f"{slug}-{timestamp}.pdf"


class DocumentGenerationService(BaseService):
    """Generate, edit and advance filled template documents."""

    def __init__(
        self,
        conversation_repository: ConversationRepository,
        template_repository: TemplateRepository,
        extraction_repository: ExtractionRepository,
        document_repository: GeneratedDocumentRepository,
        storage_service: StorageService,
        generated_bucket: str = "generated-documents",
        region: str = DEFAULT_REGION,
    ):
        super().__init__()
        self.conversation_repository = conversation_repository
        self.template_repository = template_repository
        self.extraction_repository = extraction_repository
        self.document_repository = document_repository
        self.storage_service = storage_service
        self.generated_bucket = generated_bucket
        self.region = region

    # Public operations

    async def generate_from_message(
        self, user_id: str, conversation_id: UUID, user_input: str, text: str
    ) -> Optional[Tuple[GeneratedDocument, str]]:
        """Generate a document if ``text`` carries a generation request.

        Returns:
            (document, preview_url), or None when the text holds no request

        Raises:
            ValidationFailed: If a request block is present but malformed
        """
        result = parse_document_request(text)
        if isinstance(result, DocumentRequestMalformed):
            raise ValidationFailed(f"Malformed document request: {result.reason}")
        if not isinstance(result, DocumentRequestFound):
            return None
        return await self.generate_from_request(user_id, conversation_id, user_input, result.request)

    async def generate_from_request(
        self, user_id: str, conversation_id: UUID, user_input: str, request: DocumentRequest
    ) -> Tuple[GeneratedDocument, str]:
        return await self.execute(
            action="generate",
            user_id=user_id,
            conversation_id=conversation_id,
            user_input=user_input,
            request=request,
        )

    async def fill_template(
        self,
        user_id: str,
        template_id: UUID,
        document_data: Dict[str, Any],
        conversation_id: UUID,
    ) -> Tuple[GeneratedDocument, str]:
        return await self.execute(
            action="fill_template",
            user_id=user_id,
            template_id=template_id,
            document_data=document_data,
            conversation_id=conversation_id,
        )

    async def update_document_field(
        self, user_id: str, document_id: UUID, field_name: str, value: Any
    ) -> GeneratedDocument:
        return await self.execute(
            action="update_field",
            user_id=user_id,
            document_id=document_id,
            field_name=field_name,
            value=value,
        )

    async def update_document_status(self, user_id: str, document_id: UUID, status: str) -> GeneratedDocument:
        return await self.execute(
            action="update_status", user_id=user_id, document_id=document_id, status=status
        )

    async def get_document(self, user_id: str, document_id: UUID) -> GeneratedDocument:
        return await self._get_owned_document(user_id, document_id)

    async def list_documents(self, user_id: str, conversation_id: Optional[UUID] = None) -> List[GeneratedDocument]:
        return await self.document_repository.list_for_user(user_id, conversation_id)

    # BaseService hooks

    def validate(self, *args, **kwargs):
        action = kwargs.get("action")
        if action == "fill_template":
            missing = [
                name
                for name in ("template_id", "document_data", "conversation_id")
                if kwargs.get(name) in (None, "")
            ]
            if missing:
                raise ValidationFailed(f"Missing required fields: {', '.join(missing)}")
        elif action == "update_field":
            if not kwargs.get("field_name"):
                raise ValidationFailed("fieldName is required")
        elif action == "update_status":
            if kwargs.get("status") not in STATUS_RANK:
                raise ValidationFailed(
                    f"Invalid status '{kwargs.get('status')}'. Expected one of: {', '.join(STATUS_RANK)}"
                )

    async def run(self, *args, **kwargs) -> Any:
        action = kwargs.pop("action", None)
        if action == "generate":
            return await self._generate_logic(**kwargs)
        if action == "fill_template":
            return await self._fill_template_logic(**kwargs)
        if action == "update_field":
            return await self._update_field_logic(**kwargs)
        if action == "update_status":
            return await self._update_status_logic(**kwargs)
        raise ValidationFailed(f"Unknown action: {action}")

    # Logic

    async def _generate_logic(
        self, user_id: str, conversation_id: UUID, user_input: str, request: DocumentRequest
    ) -> Tuple[GeneratedDocument, str]:
        await self._require_conversation(user_id, conversation_id)

        template_type = resolve_template_type(request.template)
        template = await self.template_repository.find_active_by_type(template_type, self.region)
        if not template:
            raise ResourceNotFound(f"No active {template_type} template for region {self.region}")

        await self._record_extraction(conversation_id, template, user_input, request.data)

        return await self._fill_template_logic(
            user_id=user_id,
            template_id=template.id,
            document_data=request.data,
            conversation_id=conversation_id,
            template=template,
        )

    async def _fill_template_logic(
        self,
        user_id: str,
        template_id: UUID,
        document_data: Dict[str, Any],
        conversation_id: UUID,
        template: Optional[DocumentTemplate] = None,
    ) -> Tuple[GeneratedDocument, str]:
        await self._require_conversation(user_id, conversation_id)

        if template is None:
            template = await self.template_repository.get_active(template_id)
            if not template:
                raise ResourceNotFound("Template not found")

        storage_path, preview_url = await self._render_and_upload(user_id, template, document_data)

        try:
            document = await self.document_repository.create_document(
                user_id=user_id,
                conversation_id=conversation_id,
                template_id=template.id,
                document_data=dict(document_data),
                pdf_url=preview_url,
                storage_path=storage_path,
                metadata=build_document_metadata(document_data, template.name),
                status="preview",
            )
        except PersistenceFailure:
            await self._discard_object(storage_path)
            raise

        LOGGER.info(
            f"Generated document {document.id}",
            extra={"user_id": user_id, "template_id": str(template.id), "conversation_id": str(conversation_id)},
        )
        return document, preview_url

    async def _update_field_logic(
        self, user_id: str, document_id: UUID, field_name: str, value: Any
    ) -> GeneratedDocument:
        document = await self._get_owned_document(user_id, document_id)
        if document.status == "finalized":
            raise InvalidStatusTransition("Finalized documents can no longer be edited")

        template = await self.template_repository.get_by_id(document.template_id)
        if not template:
            raise ResourceNotFound("Template not found")

        document_data = {**(document.document_data or {}), field_name: value}
        storage_path, pdf_url = await self._render_and_upload(user_id, template, document_data)

        try:
            document = await self.document_repository.save(
                document,
                document_data=document_data,
                pdf_url=pdf_url,
                storage_path=storage_path,
                version=document.version + 1,
                document_metadata=build_document_metadata(document_data, template.name),
            )
        except PersistenceFailure:
            await self._discard_object(storage_path)
            raise

        LOGGER.info(
            f"Updated field '{field_name}' on document {document_id}",
            extra={"version": document.version},
        )
        return document

    async def _update_status_logic(self, user_id: str, document_id: UUID, status: str) -> GeneratedDocument:
        document = await self._get_owned_document(user_id, document_id)

        current = STATUS_RANK.get(document.status, 0)
        target = STATUS_RANK[status]
        if target == current:
            return document
        if target < current:
            raise InvalidStatusTransition(f"Cannot move document from '{document.status}' to '{status}'")

        document = await self.document_repository.save(document, status=status)
        LOGGER.info(f"Document {document_id} moved to {status}")
        return document

    # Helpers

    async def _require_conversation(self, user_id: str, conversation_id: UUID) -> None:
        conversation = await self.conversation_repository.get_owned(conversation_id, user_id)
        if not conversation:
            raise ResourceNotFound("Conversation not found")

    async def _get_owned_document(self, user_id: str, document_id: UUID) -> GeneratedDocument:
        document = await self.document_repository.get_owned(document_id, user_id)
        if not document:
            raise ResourceNotFound(f"Document with ID {document_id} not found")
        return document

    async def _render_and_upload(
        self, user_id: str, template: DocumentTemplate, document_data: Mapping[str, Any]
    ) -> Tuple[str, str]:
        """Fill the template PDF and upload it; returns (storage_path, public_url)."""
        template_bytes = await self.storage_service.fetch_bytes(template.pdf_form_url)
        filled = await asyncio.to_thread(fill_pdf, template_bytes, document_data, template.type)

        storage_path = f"{user_id}/{_object_name(template.name)}"
        await self.storage_service.upload_bytes(
            filled, self.generated_bucket, storage_path, content_type=PDF_CONTENT_TYPE
        )
        return storage_path, self.storage_service.get_public_url(self.generated_bucket, storage_path)

    async def _discard_object(self, storage_path: str) -> None:
        try:
            await self.storage_service.delete_object(self.generated_bucket, storage_path)
            LOGGER.info(f"Removed orphaned upload {storage_path}")
        except StorageError as e:
            LOGGER.error(f"Failed to remove orphaned upload {storage_path}: {e}")

    async def _record_extraction(
        self,
        conversation_id: UUID,
        template: DocumentTemplate,
        user_input: str,
        data: Mapping[str, Any],
    ) -> None:
        validation = validate_document_data(template, data)
        if not validation.is_valid:
            LOGGER.info(
                "Document request is incomplete",
                extra={
                    "missing_required": validation.missing_required,
                    "validation_errors": [e.model_dump() for e in validation.validation_errors],
                },
            )
        try:
            await self.extraction_repository.record_extraction(
                conversation_id=conversation_id,
                template_id=template.id,
                user_input=user_input,
                extracted_fields=dict(data),
                confidence_scores=confidence_scores(data, validation.missing_required),
                missing_required_fields=validation.missing_required,
            )
        except Exception as e:
            LOGGER.error(f"Failed to record extraction audit row: {e}", exc_info=True)
