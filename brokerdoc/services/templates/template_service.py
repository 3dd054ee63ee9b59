"""Listing and publishing document templates."""

from typing import List, Optional

from brokerdoc.core.exceptions import ValidationFailed
from brokerdoc.database.models import DocumentTemplate
from brokerdoc.repositories.template_repository import TemplateRepository
from brokerdoc.schemas.templates import TemplateCreate
from brokerdoc.utils.logging import get_logger

LOGGER = get_logger(__name__)


class TemplateService:
    def __init__(self, template_repository: TemplateRepository):
        self.template_repository = template_repository

    async def list_templates(
        self, template_type: Optional[str] = None, region: Optional[str] = None
    ) -> List[DocumentTemplate]:
        return await self.template_repository.list_active(template_type=template_type, region=region)

    async def create_template(self, payload: TemplateCreate, created_by: str) -> DocumentTemplate:
        """Publish a template.

        Raises:
            ValidationFailed: If a template with the same name exists in the region
        """
        existing = await self.template_repository.find_by_name(payload.name, payload.region)
        if existing:
            raise ValidationFailed(
                f"Template '{payload.name}' already exists for region '{payload.region}'"
            )

        template = await self.template_repository.create_template(payload.model_dump(mode="json"))
        LOGGER.info(
            f"Template created: {template.name}",
            extra={"template_id": str(template.id), "created_by": created_by},
        )
        return template
