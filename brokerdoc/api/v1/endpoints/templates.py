"""Document template endpoints."""

from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query, status

from brokerdoc.core.auth import get_current_user, require_admin
from brokerdoc.dependencies import get_template_service
from brokerdoc.schemas.auth import CurrentUser
from brokerdoc.schemas.templates import TemplateCreate, TemplateResponse
from brokerdoc.services.templates.template_service import TemplateService

router = APIRouter()


@router.get(
    "",
    response_model=List[TemplateResponse],
    summary="List templates",
    description="List active templates ordered by name, optionally filtered by type and region",
    operation_id="list_templates",
)
async def list_templates(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    template_service: Annotated[TemplateService, Depends(get_template_service)],
    template_type: Optional[str] = Query(None, alias="type"),
    region: Optional[str] = Query(None),
) -> List[TemplateResponse]:
    templates = await template_service.list_templates(template_type, region)
    return [TemplateResponse.model_validate(t) for t in templates]


@router.post(
    "",
    response_model=TemplateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Publish a template",
    description="Admin only",
    operation_id="create_template",
)
async def create_template(
    body: TemplateCreate,
    admin: Annotated[CurrentUser, Depends(require_admin)],
    template_service: Annotated[TemplateService, Depends(get_template_service)],
) -> TemplateResponse:
    template = await template_service.create_template(body, created_by=admin.id)
    return TemplateResponse.model_validate(template)
