from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional, List

from app.core.database import get_db
from app.core.types import current_academic_year
from app.models.user import User
from app.models.school import Teacher, Student, TeacherStudent
from app.models.grade import Grade
from app.modules.auth.dependencies import get_current_user, get_current_admin, get_current_teacher
from app.schemas.school import (
    TeacherResponse, AssignStudentRequest, AssignmentResponse, StudentResponse,
    teacher_response, student_response,
)
from app.schemas.auth import MessageResponse
from app.services.school_service import school_service

router = APIRouter()


def _ensure_self_or_admin(current_user: User, teacher: Teacher) -> None:
    if not current_user.is_admin and teacher.user_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only manage your own students"
        )


@router.get("", response_model=List[TeacherResponse])
async def list_teachers(
    subject: Optional[str] = None,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    query = select(Teacher)
    if subject:
        query = query.where(Teacher.subject == subject)
    result = await db.execute(query.order_by(Teacher.created_at))
    return [teacher_response(t) for t in result.unique().scalars().all()]


@router.get("/{teacher_id}", response_model=TeacherResponse)
async def get_teacher(
    teacher_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return teacher_response(await school_service.get_teacher(db, teacher_id))


@router.post("/{teacher_id}/students", response_model=AssignmentResponse, status_code=status.HTTP_201_CREATED)
async def assign_student(
    teacher_id: str,
    body: AssignStudentRequest,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    """Assign a student to the teacher for an academic year (default: current)"""
    teacher = await school_service.get_teacher(db, teacher_id)
    _ensure_self_or_admin(current_user, teacher)
    return await school_service.assign_student(db, teacher_id, body.student_id, body.academic_year)


@router.delete("/{teacher_id}/students/{student_id}", response_model=MessageResponse)
async def unassign_student(
    teacher_id: str,
    student_id: str,
    academic_year: Optional[int] = Query(None, ge=2000, le=2100),
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    teacher = await school_service.get_teacher(db, teacher_id)
    _ensure_self_or_admin(current_user, teacher)
    await school_service.unassign_student(db, teacher_id, student_id, academic_year)
    return MessageResponse(message="Estudiante desasignado")


@router.get("/{teacher_id}/students", response_model=List[StudentResponse])
async def list_teacher_students(
    teacher_id: str,
    academic_year: Optional[int] = Query(None, ge=2000, le=2100),
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    """Students assigned to the teacher, each with the year's grades"""
    teacher = await school_service.get_teacher(db, teacher_id)
    _ensure_self_or_admin(current_user, teacher)
    year = academic_year or current_academic_year()

    result = await db.execute(
        select(Student, Grade)
        .join(TeacherStudent, TeacherStudent.student_id == Student.id)
        .outerjoin(Grade, (Grade.student_id == Student.id) & (Grade.academic_year == year))
        .where(TeacherStudent.teacher_id == teacher_id, TeacherStudent.academic_year == year)
        .order_by(Student.grade)
    )
    return [student_response(student, grade) for student, grade in result.unique().all()]
