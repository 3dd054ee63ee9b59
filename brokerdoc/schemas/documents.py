"""Document request and response schemas.

Request bodies use the camelCase keys the web client sends; responses
mirror the table columns.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

DocumentStatus = Literal["draft", "preview", "finalized"]


class DocumentMetadata(BaseModel):
    property_address: Optional[str] = None
    document_title: Optional[str] = None
    parties_involved: List[str] = Field(default_factory=list)
    transaction_value: Optional[Any] = None


class GeneratedDocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str
    conversation_id: UUID
    template_id: UUID
    document_data: Dict[str, Any]
    pdf_url: str
    storage_path: Optional[str] = None
    status: str
    version: int
    # The ORM attribute is document_metadata; "metadata" is the column name
    metadata: Dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("document_metadata", "metadata")
    )
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FillTemplateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    template_id: UUID = Field(..., alias="templateId")
    document_data: Dict[str, Any] = Field(..., alias="documentData")
    conversation_id: UUID = Field(..., alias="conversationId")


class FillTemplateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    document: GeneratedDocumentResponse
    preview_url: str = Field(..., alias="previewUrl")


class DocumentUpdateRequest(BaseModel):
    """Either a single field edit or a status change."""

    model_config = ConfigDict(populate_by_name=True)

    field_name: Optional[str] = Field(None, alias="fieldName")
    value: Optional[Any] = None
    status: Optional[DocumentStatus] = None


class UploadResponse(BaseModel):
    id: UUID
    url: str
    name: str
    type: str
    size: int
