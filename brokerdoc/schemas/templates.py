"""Template schemas."""

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

FieldType = Literal["text", "number", "date", "currency", "email", "phone", "address", "boolean"]


class FieldValidation(BaseModel):
    """Validation rules attached to a template field."""

    required: bool = False
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    pattern: Optional[str] = None


class TemplateField(BaseModel):
    """One fillable field declared by a template."""

    id: Optional[str] = None
    name: str = Field(..., description="Semantic field name used in document_data")
    label: str = Field(..., description="Human-readable label")
    type: FieldType = "text"
    description: Optional[str] = None
    placeholder: Optional[str] = None
    validation: FieldValidation = Field(default_factory=FieldValidation)


class TemplateCreate(BaseModel):
    """Payload for publishing a new template."""

    name: str
    type: str
    region: str
    version: str
    description: Optional[str] = None
    required_fields: List[TemplateField] = Field(default_factory=list)
    optional_fields: List[TemplateField] = Field(default_factory=list)
    pdf_form_url: str
    is_active: bool = True


class TemplateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    type: str
    region: str
    version: str
    description: Optional[str] = None
    required_fields: List[TemplateField]
    optional_fields: List[TemplateField]
    pdf_form_url: str
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FieldError(BaseModel):
    field: str
    message: str


class ValidationResult(BaseModel):
    """Outcome of checking document data against a template."""

    is_valid: bool
    missing_required: List[str] = Field(default_factory=list)
    validation_errors: List[FieldError] = Field(default_factory=list)
