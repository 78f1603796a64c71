from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List

from app.core.database import get_db
from app.models.user import User
from app.models.educational_resource import EducationalResource, EducationalResourceType
from app.modules.auth.dependencies import get_current_user, get_current_teacher
from app.schemas.resource import (
    EducationalResourceCreate, EducationalResourceUpdate, EducationalResourceResponse,
)
from app.schemas.auth import MessageResponse
from app.services.educational_resource_service import educational_resource_service

router = APIRouter()


def _ensure_creator(current_user: User, resource: EducationalResource) -> None:
    if current_user.is_admin or resource.created_by == current_user.id:
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Only the creator can modify this resource"
    )


@router.get("", response_model=List[EducationalResourceResponse])
async def list_resources(
    subject: Optional[str] = None,
    area: Optional[str] = None,
    grade_level: Optional[int] = Query(None, ge=1, le=11),
    phase: Optional[int] = Query(None, ge=1, le=4),
    resource_type: Optional[EducationalResourceType] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await educational_resource_service.list_resources(
        db, subject=subject, area=area, grade_level=grade_level, phase=phase, resource_type=resource_type,
    )


@router.post("", response_model=EducationalResourceResponse, status_code=status.HTTP_201_CREATED)
async def create_resource(
    data: EducationalResourceCreate,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    """Subject, area, title and an http(s) url are required"""
    return await educational_resource_service.create_resource(db, data, created_by=current_user.id)


@router.get("/{resource_id}", response_model=EducationalResourceResponse)
async def get_resource(
    resource_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await educational_resource_service.get_resource(db, resource_id)


@router.put("/{resource_id}", response_model=EducationalResourceResponse)
async def update_resource(
    resource_id: str,
    data: EducationalResourceUpdate,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    resource = await educational_resource_service.get_resource(db, resource_id)
    _ensure_creator(current_user, resource)
    return await educational_resource_service.update_resource(db, resource_id, data)


@router.delete("/{resource_id}", response_model=MessageResponse)
async def delete_resource(
    resource_id: str,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    resource = await educational_resource_service.get_resource(db, resource_id)
    _ensure_creator(current_user, resource)
    await educational_resource_service.delete_resource(db, resource_id)
    return MessageResponse(message="Recurso educativo eliminado")
