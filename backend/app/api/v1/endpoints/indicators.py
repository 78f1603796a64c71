from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_, and_
from typing import Optional, List

from app.core.database import get_db
from app.core.exceptions import IndicatorNotFoundError, QuestionnaireNotFoundError
from app.core.logging_config import logger
from app.models.user import User
from app.models.school import Teacher
from app.models.questionnaire import Questionnaire
from app.models.indicator import Indicator
from app.modules.auth.dependencies import (
    get_current_user, get_current_teacher, get_current_teacher_profile, get_teacher_profile_for,
)
from app.schemas.indicator import IndicatorCreate, IndicatorUpdate, IndicatorResponse
from app.schemas.auth import MessageResponse
from app.services.school_service import school_service
from app.api.v1.endpoints.students import ensure_can_view_student

router = APIRouter()


async def get_indicator_or_404(db: AsyncSession, indicator_id: str) -> Indicator:
    indicator = await db.get(Indicator, indicator_id)
    if not indicator:
        raise IndicatorNotFoundError(indicator_id)
    return indicator


async def _ensure_owner(db: AsyncSession, current_user: User, indicator: Indicator) -> None:
    if current_user.is_admin:
        return
    teacher = await get_teacher_profile_for(db, current_user)
    if not teacher or teacher.id != indicator.teacher_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the owner teacher can modify this indicator"
        )


@router.get("", response_model=List[IndicatorResponse])
async def list_indicators(
    subject: Optional[str] = None,
    phase: Optional[int] = Query(None, ge=1, le=4),
    grade: Optional[int] = Query(None, ge=1, le=11),
    student_id: Optional[str] = None,
    questionnaire_id: Optional[str] = None,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    """Indicators; a teacher sees the ones they created"""
    query = select(Indicator)
    if not current_user.is_admin:
        teacher = await get_teacher_profile_for(db, current_user)
        if not teacher:
            return []
        query = query.where(Indicator.teacher_id == teacher.id)

    if subject:
        query = query.where(Indicator.subject == subject)
    if phase is not None:
        query = query.where(Indicator.phase == phase)
    if grade is not None:
        query = query.where(Indicator.grade == grade)
    if student_id:
        query = query.where(Indicator.student_id == student_id)
    if questionnaire_id:
        query = query.where(Indicator.questionnaire_id == questionnaire_id)

    result = await db.execute(query.order_by(Indicator.phase, Indicator.subject, Indicator.created_at))
    return result.scalars().all()


@router.post("", response_model=IndicatorResponse, status_code=status.HTTP_201_CREATED)
async def create_indicator(
    data: IndicatorCreate,
    teacher: Teacher = Depends(get_current_teacher_profile),
    db: AsyncSession = Depends(get_db)
):
    """
    Create an indicator. Without student_id it is global for its grade;
    a student-specific indicator takes the student's grade by default.
    """
    grade = data.grade
    if data.student_id:
        student = await school_service.get_student(db, data.student_id)
        grade = grade or student.grade
    if data.questionnaire_id and not await db.get(Questionnaire, data.questionnaire_id):
        raise QuestionnaireNotFoundError(data.questionnaire_id)

    indicator = Indicator(
        **data.model_dump(exclude={"subject", "grade"}),
        subject=data.subject or teacher.subject,
        grade=grade,
        teacher_id=teacher.id,
    )
    db.add(indicator)
    await db.commit()
    await db.refresh(indicator)

    logger.info(f"Indicator created by teacher {teacher.id} (phase {indicator.phase}, global={indicator.is_global})")
    return indicator


@router.get("/student/{student_id}", response_model=List[IndicatorResponse])
async def get_student_indicators(
    student_id: str,
    phase: Optional[int] = Query(None, ge=1, le=4),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Student-specific indicators plus the global ones of the student's grade"""
    student = await school_service.get_student(db, student_id)
    await ensure_can_view_student(db, current_user, student)

    query = select(Indicator).where(
        or_(
            Indicator.student_id == student_id,
            and_(Indicator.student_id.is_(None), Indicator.grade == student.grade),
        )
    )
    if phase is not None:
        query = query.where(Indicator.phase == phase)
    result = await db.execute(query.order_by(Indicator.phase, Indicator.subject))
    return result.scalars().all()


@router.get("/{indicator_id}", response_model=IndicatorResponse)
async def get_indicator(
    indicator_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await get_indicator_or_404(db, indicator_id)


@router.put("/{indicator_id}", response_model=IndicatorResponse)
async def update_indicator(
    indicator_id: str,
    data: IndicatorUpdate,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    indicator = await get_indicator_or_404(db, indicator_id)
    await _ensure_owner(db, current_user, indicator)

    changes = data.model_dump(exclude_unset=True)
    if changes.get("questionnaire_id") and not await db.get(Questionnaire, changes["questionnaire_id"]):
        raise QuestionnaireNotFoundError(changes["questionnaire_id"])

    for field, value in changes.items():
        setattr(indicator, field, value)
    await db.commit()
    await db.refresh(indicator)
    return indicator


@router.delete("/{indicator_id}", response_model=MessageResponse)
async def delete_indicator(
    indicator_id: str,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    indicator = await get_indicator_or_404(db, indicator_id)
    await _ensure_owner(db, current_user, indicator)
    await db.delete(indicator)
    await db.commit()
    return MessageResponse(message="Indicador eliminado")
