from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, Dict, Any

from app.core.database import get_db
from app.models.user import User
from app.modules.auth.dependencies import get_current_user, get_current_teacher
from app.schemas.indicator import StudentEvaluationResponse
from app.services.indicator_evaluation_service import indicator_evaluation_service
from app.services.school_service import school_service
from app.api.v1.endpoints.questionnaires import get_questionnaire_or_404
from app.api.v1.endpoints.students import ensure_can_view_student

router = APIRouter()


@router.post("/evaluate/{student_id}/{questionnaire_id}", response_model=StudentEvaluationResponse)
async def evaluate_student(
    student_id: str,
    questionnaire_id: str,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    """Evaluate the questionnaire's indicators for one student"""
    await school_service.get_student(db, student_id)
    await get_questionnaire_or_404(db, questionnaire_id)
    return await indicator_evaluation_service.evaluate_student_indicators(db, student_id, questionnaire_id)


@router.post("/evaluate-questionnaire/{questionnaire_id}")
async def evaluate_questionnaire(
    questionnaire_id: str,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    """Evaluate every student with a result on the questionnaire"""
    await get_questionnaire_or_404(db, questionnaire_id)
    return await indicator_evaluation_service.evaluate_all_students(db, questionnaire_id)


@router.get("/student/{student_id}/status")
async def get_student_status(
    student_id: str,
    questionnaire_id: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    student = await school_service.get_student(db, student_id)
    await ensure_can_view_student(db, current_user, student)
    return await indicator_evaluation_service.get_student_indicator_status(db, student_id, questionnaire_id)


@router.get("/questionnaire/{questionnaire_id}/statistics")
async def get_questionnaire_statistics(
    questionnaire_id: str,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    return await indicator_evaluation_service.questionnaire_statistics(db, questionnaire_id)
