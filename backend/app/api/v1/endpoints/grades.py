from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List, Dict, Any

from app.core.database import get_db
from app.core.exceptions import ResourceNotFoundError
from app.core.types import current_academic_year
from app.models.user import User
from app.models.school import Teacher, Student
from app.models.grade import Grade
from app.modules.auth.dependencies import (
    get_current_user, get_current_teacher, get_current_teacher_profile, get_teacher_profile_for,
)
from app.schemas.grade import (
    GradeResponse, StudentGradeRow, ManualScoreUpdate, PhaseAverageResponse, RecalculationResponse,
)
from app.services.grade_service import grade_service
from app.services.school_service import school_service
from app.api.v1.endpoints.students import ensure_can_view_student

router = APIRouter()


@router.get("", response_model=List[StudentGradeRow])
async def list_teacher_grades(
    teacher: Teacher = Depends(get_current_teacher_profile),
    db: AsyncSession = Depends(get_db)
):
    """Current-year grades of the teacher's assigned students"""
    year = current_academic_year()
    student_ids = await school_service.get_teacher_student_ids(db, teacher.id, year)
    if not student_ids:
        return []

    result = await db.execute(
        select(Grade, Student)
        .join(Student, Grade.student_id == Student.id)
        .where(Grade.student_id.in_(student_ids), Grade.academic_year == year)
    )
    rows = [
        StudentGradeRow(
            **GradeResponse.model_validate(grade).model_dump(),
            student_name=student.name,
        )
        for grade, student in result.unique().all()
    ]
    return sorted(rows, key=lambda row: row.student_name)


@router.get("/student/{student_id}", response_model=GradeResponse)
async def get_student_grades(
    student_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    student = await school_service.get_student(db, student_id)
    await ensure_can_view_student(db, current_user, student)

    grade = await school_service.get_grade(db, student_id)
    if not grade:
        raise ResourceNotFoundError("Grade", student_id)
    return grade


@router.post("/recalculate/{student_id}", response_model=RecalculationResponse)
async def recalculate_student(
    student_id: str,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    """
    Recalculate one student's phase averages. A teacher recalculates as
    themselves when assigned; otherwise the student's assigned teacher is used.
    """
    await school_service.get_student(db, student_id)

    teacher_id = None
    teacher = await get_teacher_profile_for(db, current_user)
    if teacher and await school_service.is_assigned(db, teacher.id, student_id):
        teacher_id = teacher.id

    return await grade_service.recalculate_phase_averages(db, student_id, teacher_id)


@router.post("/recalculate-teacher")
async def recalculate_teacher(
    teacher: Teacher = Depends(get_current_teacher_profile),
    db: AsyncSession = Depends(get_db)
) -> Dict[str, Any]:
    return await grade_service.recalculate_for_teacher(db, teacher.id)


@router.put("/phase-averages/manual", response_model=RecalculationResponse)
async def set_manual_score(
    data: ManualScoreUpdate,
    teacher: Teacher = Depends(get_current_teacher_profile),
    db: AsyncSession = Depends(get_db)
):
    """Store a manual phase score; the definitive grade becomes (system + manual) / 2"""
    return await grade_service.set_manual_score(
        db, data.student_id, teacher.id, data.phase, data.manual_score
    )


@router.get("/phase-averages/{student_id}", response_model=List[PhaseAverageResponse])
async def get_phase_averages(
    student_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    student = await school_service.get_student(db, student_id)
    await ensure_can_view_student(db, current_user, student)
    return await grade_service.get_phase_averages(db, student_id)
