"""Source document upload endpoint."""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from brokerdoc.core.auth import get_current_user
from brokerdoc.dependencies import get_upload_service
from brokerdoc.schemas.auth import CurrentUser
from brokerdoc.schemas.documents import UploadResponse
from brokerdoc.services.upload_service import UploadService

router = APIRouter()


@router.post(
    "",
    response_model=UploadResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload a PDF",
    description="Upload a PDF (up to 10MB) to attach to a conversation",
    operation_id="upload_document",
)
async def upload_document(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    upload_service: Annotated[UploadService, Depends(get_upload_service)],
    file: Optional[UploadFile] = File(None, description="PDF document to upload"),
    conversation_id: Optional[UUID] = Form(None, alias="conversationId"),
) -> UploadResponse:
    record = await upload_service.upload(current_user.id, file, conversation_id)
    return UploadResponse(
        id=record.id,
        url=record.file_url,
        name=record.name,
        type=record.type,
        size=record.file_size,
    )
