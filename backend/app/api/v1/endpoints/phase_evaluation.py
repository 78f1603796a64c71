"""
Phase closing: plans for students below the passing score, result emails
and the downloadable phase and final-grade reports.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.models.user import User
from app.modules.auth.dependencies import get_current_user, get_current_teacher
from app.schemas.grade import PhaseEvaluationResponse, PhaseStatsResponse
from app.services.phase_evaluation_service import phase_evaluation_service
from app.services.school_service import school_service
from app.api.v1.endpoints.students import ensure_can_view_student

router = APIRouter()


def _pdf_response(filename: str, content: bytes) -> Response:
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@router.post("/evaluate-phase/{phase}", response_model=PhaseEvaluationResponse)
async def evaluate_phase(
    phase: int,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    return await phase_evaluation_service.evaluate_phase(db, phase)


@router.get("/phase-stats/{phase}", response_model=PhaseStatsResponse)
async def get_phase_stats(
    phase: int,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    return await phase_evaluation_service.phase_stats(db, phase)


@router.get("/report/{student_id}/{phase}")
async def download_phase_report(
    student_id: str,
    phase: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    student = await school_service.get_student(db, student_id)
    await ensure_can_view_student(db, current_user, student)

    filename, content = await phase_evaluation_service.phase_report(db, student_id, phase)
    return _pdf_response(filename, content)


@router.get("/final-report/{student_id}")
async def download_final_report(
    student_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    student = await school_service.get_student(db, student_id)
    await ensure_can_view_student(db, current_user, student)

    filename, content = await phase_evaluation_service.final_report(db, student_id)
    return _pdf_response(filename, content)
