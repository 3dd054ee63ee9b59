from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from brokerdoc.database.models import DocumentTemplate
from brokerdoc.repositories.base_repository import BaseRepository
from brokerdoc.utils.logging import get_logger

LOGGER = get_logger(__name__)


class TemplateRepository(BaseRepository[DocumentTemplate]):
    """Repository for published document templates."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, DocumentTemplate)

    async def list_active(
        self, template_type: Optional[str] = None, region: Optional[str] = None
    ) -> List[DocumentTemplate]:
        """List active templates ordered by name, optionally filtered by type and region."""
        try:
            query = select(DocumentTemplate).where(DocumentTemplate.is_active.is_(True))
            if template_type:
                query = query.where(DocumentTemplate.type == template_type)
            if region:
                query = query.where(DocumentTemplate.region == region)
            result = await self.session.execute(query.order_by(DocumentTemplate.name))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._fail("listing", e) from e

    async def get_active(self, template_id: UUID) -> Optional[DocumentTemplate]:
        """Get a template by ID only if it is active."""
        try:
            result = await self.session.execute(
                select(DocumentTemplate).where(
                    DocumentTemplate.id == template_id,
                    DocumentTemplate.is_active.is_(True),
                )
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise self._fail("retrieving", e) from e

    async def find_active_by_type(self, template_type: str, region: str) -> Optional[DocumentTemplate]:
        """Find the first active template of a type in a region."""
        templates = await self.list_active(template_type=template_type, region=region)
        return templates[0] if templates else None

    async def find_by_name(self, name: str, region: str) -> Optional[DocumentTemplate]:
        try:
            result = await self.session.execute(
                select(DocumentTemplate).where(
                    DocumentTemplate.name == name,
                    DocumentTemplate.region == region,
                )
            )
            return result.scalars().first()
        except SQLAlchemyError as e:
            raise self._fail("retrieving", e) from e

    async def create_template(self, template_data: Dict[str, Any]) -> DocumentTemplate:
        return await self.create(**template_data)
