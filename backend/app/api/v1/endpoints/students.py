from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional

from app.core.database import get_db
from app.core.exceptions import CourseNotFoundError
from app.core.logging_config import logger
from app.core.types import current_academic_year
from app.models.user import User, UserRole
from app.models.school import Student, Course, TeacherStudent
from app.models.grade import Grade
from app.modules.auth.dependencies import (
    get_current_user, get_current_teacher, get_current_student_profile, get_teacher_profile_for,
)
from app.schemas.school import StudentResponse, StudentListResponse, StudentUpdate, student_response
from app.services.school_service import school_service

router = APIRouter()


async def ensure_can_view_student(db: AsyncSession, current_user: User, student: Student) -> None:
    """Admins see everyone, teachers their assigned students, students themselves"""
    if current_user.is_admin:
        return
    if current_user.role == UserRole.STUDENT:
        if student.user_id != current_user.id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to view this student")
        return
    teacher = await get_teacher_profile_for(db, current_user)
    if not teacher or not await school_service.is_assigned(db, teacher.id, student.id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Student is not assigned to you")


@router.get("", response_model=StudentListResponse)
async def list_students(
    grade: Optional[int] = Query(None, ge=1, le=11),
    course_id: Optional[str] = None,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    """All students for admins; a teacher gets the students assigned this year"""
    year = current_academic_year()
    query = (
        select(Student, Grade)
        .outerjoin(Grade, (Grade.student_id == Student.id) & (Grade.academic_year == year))
    )

    if not current_user.is_admin:
        teacher = await get_teacher_profile_for(db, current_user)
        if not teacher:
            return StudentListResponse(students=[], total=0)
        query = query.join(TeacherStudent, TeacherStudent.student_id == Student.id).where(
            TeacherStudent.teacher_id == teacher.id,
            TeacherStudent.academic_year == year,
        )

    if grade is not None:
        query = query.where(Student.grade == grade)
    if course_id:
        query = query.where(Student.course_id == course_id)

    result = await db.execute(query.order_by(Student.grade, Student.created_at))
    students = [student_response(student, g) for student, g in result.unique().all()]
    return StudentListResponse(students=students, total=len(students))


@router.get("/me", response_model=StudentResponse)
async def get_my_profile(
    student: Student = Depends(get_current_student_profile),
    db: AsyncSession = Depends(get_db)
):
    grade = await school_service.get_grade(db, student.id)
    return student_response(student, grade)


@router.get("/{student_id}", response_model=StudentResponse)
async def get_student(
    student_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    student = await school_service.get_student(db, student_id)
    await ensure_can_view_student(db, current_user, student)
    grade = await school_service.get_grade(db, student_id)
    return student_response(student, grade)


@router.put("/{student_id}", response_model=StudentResponse)
async def update_student(
    student_id: str,
    body: StudentUpdate,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    """Update contact and grade fields"""
    student = await school_service.get_student(db, student_id)
    await ensure_can_view_student(db, current_user, student)

    changes = body.model_dump(exclude_unset=True)
    if changes.get("course_id") and not await db.get(Course, changes["course_id"]):
        raise CourseNotFoundError(changes["course_id"])

    for field, value in changes.items():
        setattr(student, field, value)
    await db.commit()

    await db.refresh(student, ["course"])
    logger.info(f"Student {student_id} updated: {', '.join(changes.keys())}")
    grade = await school_service.get_grade(db, student_id)
    return student_response(student, grade)
