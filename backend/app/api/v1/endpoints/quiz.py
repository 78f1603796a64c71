from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List

from app.core.database import get_db
from app.models.user import User, UserRole
from app.models.school import Student
from app.modules.auth.dependencies import (
    get_current_user, get_current_teacher, get_current_student_profile, get_student_profile_for,
)
from app.schemas.questionnaire import (
    QuizSubmission, QuizResultResponse, QuizAttemptList, EvaluationResultResponse,
)
from app.services.quiz_service import quiz_service
from app.services.school_service import school_service
from app.api.v1.endpoints.questionnaires import get_questionnaire_or_404
from app.api.v1.endpoints.students import ensure_can_view_student

router = APIRouter()
results_router = APIRouter()


@router.post("/submit", response_model=QuizResultResponse)
async def submit_quiz(
    submission: QuizSubmission,
    student: Student = Depends(get_current_student_profile),
    db: AsyncSession = Depends(get_db)
):
    """Grade a quiz attempt for the current student"""
    return await quiz_service.submit_quiz(db, student.id, submission.questionnaire_id, submission.answers)


@router.get("/attempts/{questionnaire_id}", response_model=QuizAttemptList)
async def get_attempts(
    questionnaire_id: str,
    student_id: Optional[str] = Query(None, description="Required for teachers and admins"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Attempts on a questionnaire; students see their own"""
    await get_questionnaire_or_404(db, questionnaire_id)

    if current_user.role == UserRole.STUDENT:
        student = await get_student_profile_for(db, current_user)
        if not student:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Student profile required")
    else:
        if not student_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="student_id is required")
        student = await school_service.get_student(db, student_id)
        await ensure_can_view_student(db, current_user, student)

    attempts = await quiz_service.get_attempts(db, student.id, questionnaire_id)
    return QuizAttemptList(attempts=attempts, count=len(attempts))


@results_router.get("/student/{student_id}", response_model=List[EvaluationResultResponse])
async def get_student_results(
    student_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    student = await school_service.get_student(db, student_id)
    await ensure_can_view_student(db, current_user, student)
    return await quiz_service.get_results_for_student(db, student_id)


@results_router.get("/questionnaire/{questionnaire_id}", response_model=List[EvaluationResultResponse])
async def get_questionnaire_results(
    questionnaire_id: str,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    await get_questionnaire_or_404(db, questionnaire_id)
    return await quiz_service.get_results_for_questionnaire(db, questionnaire_id)
