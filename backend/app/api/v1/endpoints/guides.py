"""
Teacher guides: PDFs uploaded by teachers and read by their students.
"""
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import RedirectResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional, List

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import GuideNotFoundError
from app.core.logging_config import logger
from app.models.user import User, UserRole
from app.models.school import Teacher
from app.models.educational_resource import TeacherGuide
from app.modules.auth.dependencies import (
    get_current_user, get_current_teacher_profile, get_teacher_profile_for, get_student_profile_for,
)
from app.schemas.resource import TeacherGuideResponse
from app.schemas.auth import MessageResponse
from app.services.school_service import school_service
from app.services.storage_service import storage_service

router = APIRouter()

PDF_CONTENT_TYPE = "application/pdf"


async def _get_guide_or_404(db: AsyncSession, guide_id: str) -> TeacherGuide:
    guide = await db.get(TeacherGuide, guide_id)
    if not guide:
        raise GuideNotFoundError(guide_id)
    return guide


async def _visible_teacher_ids(db: AsyncSession, current_user: User) -> Optional[List[str]]:
    """Teacher ids whose guides the user can see; None means all"""
    if current_user.is_admin:
        return None
    if current_user.role == UserRole.STUDENT:
        student = await get_student_profile_for(db, current_user)
        if not student:
            return []
        return await school_service.get_student_teacher_ids(db, student.id)
    teacher = await get_teacher_profile_for(db, current_user)
    return [teacher.id] if teacher else []


@router.post("", response_model=TeacherGuideResponse, status_code=status.HTTP_201_CREATED)
async def upload_guide(
    title: str = Form(..., min_length=1, max_length=255),
    description: Optional[str] = Form(None),
    subject: Optional[str] = Form(None),
    grade: Optional[int] = Form(None, ge=1, le=11),
    file: UploadFile = File(...),
    teacher: Teacher = Depends(get_current_teacher_profile),
    db: AsyncSession = Depends(get_db)
):
    """Upload a PDF guide (max 10 MB)"""
    content = await file.read()
    storage_service.validate_upload(file.filename or "", len(content), settings.GUIDE_EXTENSIONS)

    key = storage_service.generate_key("guides", file.filename)
    await storage_service.save(key, content, PDF_CONTENT_TYPE)

    guide = TeacherGuide(
        teacher_id=teacher.id,
        title=title,
        description=description,
        subject=subject or teacher.subject,
        grade=grade,
        file_key=key,
        original_filename=file.filename,
        file_size=len(content),
        content_type=PDF_CONTENT_TYPE,
    )
    db.add(guide)
    await db.commit()
    await db.refresh(guide)

    logger.info(f"Guide uploaded by teacher {teacher.id}: {key} ({len(content)} bytes)")
    return guide


@router.get("", response_model=List[TeacherGuideResponse])
async def list_guides(
    grade: Optional[int] = Query(None, ge=1, le=11),
    subject: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """A teacher sees their own guides; a student those of their assigned teachers"""
    teacher_ids = await _visible_teacher_ids(db, current_user)
    if teacher_ids is not None and not teacher_ids:
        return []

    query = select(TeacherGuide)
    if teacher_ids is not None:
        query = query.where(TeacherGuide.teacher_id.in_(teacher_ids))
    if grade is not None:
        query = query.where(TeacherGuide.grade == grade)
    if subject:
        query = query.where(TeacherGuide.subject == subject)

    result = await db.execute(query.order_by(TeacherGuide.created_at.desc()))
    return result.scalars().all()


@router.get("/{guide_id}/download")
async def download_guide(
    guide_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    guide = await _get_guide_or_404(db, guide_id)
    teacher_ids = await _visible_teacher_ids(db, current_user)
    if teacher_ids is not None and guide.teacher_id not in teacher_ids:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to download this guide")

    if storage_service.is_s3:
        return RedirectResponse(url=storage_service.get_url(guide.file_key))

    content = await storage_service.read(guide.file_key)
    return Response(
        content=content,
        media_type=guide.content_type,
        headers={"Content-Disposition": f'attachment; filename="{guide.original_filename}"'}
    )


@router.delete("/{guide_id}", response_model=MessageResponse)
async def delete_guide(
    guide_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    guide = await _get_guide_or_404(db, guide_id)
    if not current_user.is_admin:
        teacher = await get_teacher_profile_for(db, current_user)
        if not teacher or teacher.id != guide.teacher_id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the owner can delete this guide")

    await storage_service.delete(guide.file_key)
    await db.delete(guide)
    await db.commit()
    return MessageResponse(message="Guía eliminada")
