from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional, List, Union

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import QuestionnaireNotFoundError, CourseNotFoundError, InvalidPhaseError
from app.core.logging_config import logger
from app.models.user import User, UserRole
from app.models.school import Course, Teacher
from app.models.questionnaire import Questionnaire, Question
from app.modules.auth.dependencies import (
    get_current_user, get_current_teacher, get_current_teacher_profile,
    get_teacher_profile_for, get_student_profile_for,
)
from app.schemas.questionnaire import (
    QuestionnaireCreate, QuestionnaireUpdate, QuestionnaireResponse,
    QuestionCreate, QuestionForQuiz, QuestionResponse,
)
from app.schemas.auth import MessageResponse

router = APIRouter()


def _validate_phase(phase: int) -> None:
    if phase < 1 or phase > settings.PHASE_COUNT:
        raise InvalidPhaseError(phase, settings.PHASE_COUNT)


async def get_questionnaire_or_404(db: AsyncSession, questionnaire_id: str) -> Questionnaire:
    questionnaire = await db.get(Questionnaire, questionnaire_id)
    if not questionnaire:
        raise QuestionnaireNotFoundError(questionnaire_id)
    return questionnaire


async def ensure_questionnaire_owner(db: AsyncSession, current_user: User, questionnaire: Questionnaire) -> None:
    """Only the teacher who created the questionnaire or an admin may modify it"""
    if current_user.is_admin:
        return
    teacher = await get_teacher_profile_for(db, current_user)
    if not teacher or teacher.id != questionnaire.created_by:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the owner teacher can modify this questionnaire"
        )


@router.get("", response_model=List[QuestionnaireResponse])
async def list_questionnaires(
    phase: Optional[int] = Query(None, ge=1, le=4),
    grade: Optional[int] = Query(None, ge=1, le=11),
    course_id: Optional[str] = None,
    created_by: Optional[str] = None,
    is_prueba_saber: Optional[bool] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List questionnaires; students only see those of their grade"""
    query = select(Questionnaire)

    if current_user.role == UserRole.STUDENT:
        student = await get_student_profile_for(db, current_user)
        if not student:
            return []
        query = query.where(Questionnaire.grade == student.grade)
    elif grade is not None:
        query = query.where(Questionnaire.grade == grade)

    if phase is not None:
        query = query.where(Questionnaire.phase == phase)
    if course_id:
        query = query.where(Questionnaire.course_id == course_id)
    if created_by:
        query = query.where(Questionnaire.created_by == created_by)
    if is_prueba_saber is not None:
        query = query.where(Questionnaire.is_prueba_saber.is_(is_prueba_saber))

    result = await db.execute(query.order_by(Questionnaire.phase, Questionnaire.created_at.desc()))
    return result.scalars().all()


@router.post("", response_model=QuestionnaireResponse, status_code=status.HTTP_201_CREATED)
async def create_questionnaire(
    data: QuestionnaireCreate,
    teacher: Teacher = Depends(get_current_teacher_profile),
    db: AsyncSession = Depends(get_db)
):
    """Create a questionnaire; subject defaults to the teacher's subject"""
    _validate_phase(data.phase)
    if data.course_id and not await db.get(Course, data.course_id):
        raise CourseNotFoundError(data.course_id)

    questionnaire = Questionnaire(
        **data.model_dump(exclude={"subject"}),
        subject=data.subject or teacher.subject,
        created_by=teacher.id,
    )
    db.add(questionnaire)
    await db.commit()
    await db.refresh(questionnaire)

    logger.info(f"Questionnaire created: {questionnaire.title} (phase {questionnaire.phase}) by teacher {teacher.id}")
    return questionnaire


@router.get("/{questionnaire_id}", response_model=QuestionnaireResponse)
async def get_questionnaire(
    questionnaire_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await get_questionnaire_or_404(db, questionnaire_id)


@router.put("/{questionnaire_id}", response_model=QuestionnaireResponse)
async def update_questionnaire(
    questionnaire_id: str,
    data: QuestionnaireUpdate,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    questionnaire = await get_questionnaire_or_404(db, questionnaire_id)
    await ensure_questionnaire_owner(db, current_user, questionnaire)

    changes = data.model_dump(exclude_unset=True)
    if changes.get("phase") is not None:
        _validate_phase(changes["phase"])
    if changes.get("course_id") and not await db.get(Course, changes["course_id"]):
        raise CourseNotFoundError(changes["course_id"])

    for field, value in changes.items():
        setattr(questionnaire, field, value)
    await db.commit()
    await db.refresh(questionnaire)
    return questionnaire


@router.delete("/{questionnaire_id}", response_model=MessageResponse)
async def delete_questionnaire(
    questionnaire_id: str,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    questionnaire = await get_questionnaire_or_404(db, questionnaire_id)
    await ensure_questionnaire_owner(db, current_user, questionnaire)

    await db.delete(questionnaire)
    await db.commit()

    logger.info(f"Questionnaire deleted: {questionnaire_id}")
    return MessageResponse(message="Cuestionario eliminado")


@router.get("/{questionnaire_id}/questions", response_model=List[Union[QuestionResponse, QuestionForQuiz]])
async def list_questions(
    questionnaire_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Questions of a questionnaire; students never receive correct_answer"""
    await get_questionnaire_or_404(db, questionnaire_id)
    result = await db.execute(
        select(Question)
        .where(Question.questionnaire_id == questionnaire_id)
        .order_by(Question.created_at)
    )
    questions = result.scalars().all()

    if current_user.role == UserRole.STUDENT:
        return [QuestionForQuiz.model_validate(q) for q in questions]
    return [QuestionResponse.model_validate(q) for q in questions]


@router.post("/{questionnaire_id}/questions", response_model=QuestionResponse, status_code=status.HTTP_201_CREATED)
async def create_question(
    questionnaire_id: str,
    data: QuestionCreate,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    questionnaire = await get_questionnaire_or_404(db, questionnaire_id)
    await ensure_questionnaire_owner(db, current_user, questionnaire)

    question = Question(questionnaire_id=questionnaire_id, **data.model_dump())
    db.add(question)
    await db.commit()
    await db.refresh(question)
    return question
