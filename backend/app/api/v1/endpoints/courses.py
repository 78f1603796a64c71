from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional, List

from app.core.database import get_db
from app.core.exceptions import CourseNotFoundError
from app.core.logging_config import logger
from app.models.user import User
from app.models.school import Course
from app.modules.auth.dependencies import get_current_user, get_current_admin
from app.schemas.school import CourseCreate, CourseUpdate, CourseResponse
from app.schemas.auth import MessageResponse

router = APIRouter()


async def _get_course(db: AsyncSession, course_id: str) -> Course:
    course = await db.get(Course, course_id)
    if not course:
        raise CourseNotFoundError(course_id)
    return course


@router.get("", response_model=List[CourseResponse])
async def list_courses(
    grade: Optional[int] = Query(None, ge=1, le=11),
    institution: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    query = select(Course)
    if grade is not None:
        query = query.where(Course.grade == grade)
    if institution:
        query = query.where(Course.institution == institution)
    result = await db.execute(query.order_by(Course.grade, Course.name))
    return result.scalars().all()


@router.get("/{course_id}", response_model=CourseResponse)
async def get_course(
    course_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await _get_course(db, course_id)


@router.post("", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
async def create_course(
    course_data: CourseCreate,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    course = Course(**course_data.model_dump())
    db.add(course)
    await db.commit()
    await db.refresh(course)

    logger.info(f"Course created: {course.name} (grade {course.grade})")
    return course


@router.put("/{course_id}", response_model=CourseResponse)
async def update_course(
    course_id: str,
    course_data: CourseUpdate,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    course = await _get_course(db, course_id)
    for field, value in course_data.model_dump(exclude_unset=True).items():
        setattr(course, field, value)
    await db.commit()
    await db.refresh(course)
    return course


@router.delete("/{course_id}", response_model=MessageResponse)
async def delete_course(
    course_id: str,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    course = await _get_course(db, course_id)
    await db.delete(course)
    await db.commit()

    logger.info(f"Course deleted: {course_id}")
    return MessageResponse(message="Curso eliminado")
