"""
Educational Resource Service - shared study material library

Handles:
- Required-field and URL checks (400 on failure)
- Resource CRUD with subject / area / grade / phase filters
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from urllib.parse import urlparse
from typing import Optional, List, Dict, Any

from app.core.exceptions import EducationalResourceNotFoundError, ValidationError
from app.core.logging_config import logger
from app.models.educational_resource import EducationalResource, EducationalResourceType
from app.schemas.resource import EducationalResourceCreate, EducationalResourceUpdate

REQUIRED_FIELDS = ("subject", "area", "title", "url")


def is_valid_url(url: Optional[str]) -> bool:
    """Absolute http(s) URL with a host"""
    if not url:
        return False
    parsed = urlparse(url.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_resource_fields(values: Dict[str, Any], partial: bool = False) -> None:
    """
    Raise ValidationError for a missing required field or a bad URL.
    With partial, only the fields present in values are checked.
    """
    for field in REQUIRED_FIELDS:
        if partial and field not in values:
            continue
        value = values.get(field)
        if value is None or not str(value).strip():
            raise ValidationError(f"Field '{field}' is required", field=field)

    if "url" in values and not is_valid_url(values["url"]):
        raise ValidationError("URL must start with http:// or https://", field="url")


class EducationalResourceService:
    """Service for the educational resource library"""

    async def create_resource(
        self,
        db: AsyncSession,
        data: EducationalResourceCreate,
        created_by: Optional[str] = None
    ) -> EducationalResource:
        values = data.model_dump()
        validate_resource_fields(values)

        resource = EducationalResource(**values, created_by=created_by)
        db.add(resource)
        await db.commit()
        await db.refresh(resource)

        logger.info(f"Educational resource created: {resource.title} ({resource.subject}/{resource.area})")
        return resource

    async def get_resource(self, db: AsyncSession, resource_id: str) -> EducationalResource:
        resource = await db.get(EducationalResource, resource_id)
        if not resource:
            raise EducationalResourceNotFoundError(resource_id)
        return resource

    async def list_resources(
        self,
        db: AsyncSession,
        subject: Optional[str] = None,
        area: Optional[str] = None,
        grade_level: Optional[int] = None,
        phase: Optional[int] = None,
        resource_type: Optional[EducationalResourceType] = None
    ) -> List[EducationalResource]:
        query = select(EducationalResource)
        if subject:
            query = query.where(EducationalResource.subject == subject)
        if area:
            query = query.where(EducationalResource.area == area)
        if grade_level is not None:
            query = query.where(EducationalResource.grade_level == grade_level)
        if phase is not None:
            query = query.where(EducationalResource.phase == phase)
        if resource_type:
            query = query.where(EducationalResource.resource_type == resource_type)

        result = await db.execute(
            query.order_by(EducationalResource.subject, EducationalResource.area, EducationalResource.title)
        )
        return list(result.scalars().all())

    async def update_resource(
        self,
        db: AsyncSession,
        resource_id: str,
        data: EducationalResourceUpdate
    ) -> EducationalResource:
        resource = await self.get_resource(db, resource_id)
        changes = data.model_dump(exclude_unset=True)
        validate_resource_fields(changes, partial=True)

        for field, value in changes.items():
            setattr(resource, field, value)
        await db.commit()
        await db.refresh(resource)
        return resource

    async def delete_resource(self, db: AsyncSession, resource_id: str) -> None:
        resource = await self.get_resource(db, resource_id)
        await db.delete(resource)
        await db.commit()
        logger.info(f"Educational resource deleted: {resource_id}")


# Singleton instance
educational_resource_service = EducationalResourceService()
