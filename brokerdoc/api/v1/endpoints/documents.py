"""Generated document endpoints."""

from typing import Annotated, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from brokerdoc.core.auth import get_current_user
from brokerdoc.core.exceptions import ValidationFailed
from brokerdoc.dependencies import get_document_generation_service
from brokerdoc.schemas.auth import CurrentUser
from brokerdoc.schemas.documents import (
    DocumentUpdateRequest,
    FillTemplateRequest,
    FillTemplateResponse,
    GeneratedDocumentResponse,
)
from brokerdoc.services.generation.document_generation_service import DocumentGenerationService
from brokerdoc.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()


@router.post(
    "/fill-template",
    response_model=FillTemplateResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_200_OK,
    summary="Fill a template",
    description="Fill a published template with document data and store the resulting PDF",
    operation_id="fill_template",
)
async def fill_template(
    body: FillTemplateRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    generation_service: Annotated[DocumentGenerationService, Depends(get_document_generation_service)],
) -> FillTemplateResponse:
    document, preview_url = await generation_service.fill_template(
        user_id=current_user.id,
        template_id=body.template_id,
        document_data=body.document_data,
        conversation_id=body.conversation_id,
    )
    return FillTemplateResponse(
        success=True,
        document=GeneratedDocumentResponse.model_validate(document),
        preview_url=preview_url,
    )


@router.get(
    "",
    response_model=List[GeneratedDocumentResponse],
    summary="List generated documents",
    operation_id="list_generated_documents",
)
async def list_documents(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    generation_service: Annotated[DocumentGenerationService, Depends(get_document_generation_service)],
    conversation_id: Optional[UUID] = Query(None, alias="conversationId"),
) -> List[GeneratedDocumentResponse]:
    """List the caller's generated documents, newest first."""
    documents = await generation_service.list_documents(current_user.id, conversation_id)
    return [GeneratedDocumentResponse.model_validate(document) for document in documents]


@router.get(
    "/{document_id}",
    response_model=GeneratedDocumentResponse,
    summary="Get a generated document",
    operation_id="get_generated_document",
)
async def get_document(
    document_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    generation_service: Annotated[DocumentGenerationService, Depends(get_document_generation_service)],
) -> GeneratedDocumentResponse:
    document = await generation_service.get_document(current_user.id, document_id)
    return GeneratedDocumentResponse.model_validate(document)


@router.patch(
    "/{document_id}",
    response_model=GeneratedDocumentResponse,
    summary="Edit a field or change status",
    description=(
        "Send fieldName and value to change one field and re-render the PDF, "
        "or status to move the document forward (draft, preview, finalized)"
    ),
    operation_id="update_generated_document",
)
async def update_document(
    document_id: UUID,
    body: DocumentUpdateRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    generation_service: Annotated[DocumentGenerationService, Depends(get_document_generation_service)],
) -> GeneratedDocumentResponse:
    if body.status and body.field_name:
        raise ValidationFailed("Send either fieldName or status, not both")

    if body.status:
        document = await generation_service.update_document_status(current_user.id, document_id, body.status)
    elif body.field_name:
        document = await generation_service.update_document_field(
            current_user.id, document_id, body.field_name, body.value
        )
    else:
        raise ValidationFailed("Nothing to update: provide fieldName and value, or status")

    return GeneratedDocumentResponse.model_validate(document)
