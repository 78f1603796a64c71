"""
School Service - lookups and assignments shared by the academic services

Handles:
- Student / teacher profile lookups
- Teacher-student assignments per academic year
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional, List

from app.core.exceptions import (
    StudentNotFoundError, TeacherNotFoundError, DuplicateEntryError, ResourceNotFoundError,
)
from app.core.logging_config import logger
from app.core.types import current_academic_year
from app.models.school import Student, Teacher, TeacherStudent
from app.models.grade import Grade


class SchoolService:
    """Profile lookups and teacher-student assignments"""

    async def get_student(self, db: AsyncSession, student_id: str) -> Student:
        result = await db.execute(select(Student).where(Student.id == student_id))
        student = result.unique().scalar_one_or_none()
        if not student:
            raise StudentNotFoundError(student_id)
        return student

    async def get_teacher(self, db: AsyncSession, teacher_id: str) -> Teacher:
        result = await db.execute(select(Teacher).where(Teacher.id == teacher_id))
        teacher = result.unique().scalar_one_or_none()
        if not teacher:
            raise TeacherNotFoundError(teacher_id)
        return teacher

    async def get_assigned_teacher(
        self,
        db: AsyncSession,
        student_id: str,
        academic_year: Optional[int] = None
    ) -> Optional[Teacher]:
        """Teacher the student is assigned to for the year, if any"""
        year = academic_year or current_academic_year()
        result = await db.execute(
            select(Teacher)
            .join(TeacherStudent, TeacherStudent.teacher_id == Teacher.id)
            .where(TeacherStudent.student_id == student_id, TeacherStudent.academic_year == year)
            .order_by(TeacherStudent.created_at)
        )
        return result.unique().scalars().first()

    async def get_teacher_student_ids(
        self,
        db: AsyncSession,
        teacher_id: str,
        academic_year: Optional[int] = None
    ) -> List[str]:
        """Ids of the students assigned to a teacher (all years when year is None)"""
        query = select(TeacherStudent.student_id).where(TeacherStudent.teacher_id == teacher_id)
        if academic_year is not None:
            query = query.where(TeacherStudent.academic_year == academic_year)
        result = await db.execute(query.distinct())
        return [row[0] for row in result.all()]

    async def get_student_teacher_ids(self, db: AsyncSession, student_id: str) -> List[str]:
        result = await db.execute(
            select(TeacherStudent.teacher_id).where(TeacherStudent.student_id == student_id).distinct()
        )
        return [row[0] for row in result.all()]

    async def is_assigned(self, db: AsyncSession, teacher_id: str, student_id: str) -> bool:
        result = await db.execute(
            select(TeacherStudent.id).where(
                TeacherStudent.teacher_id == teacher_id,
                TeacherStudent.student_id == student_id,
            )
        )
        return result.first() is not None

    async def assign_student(
        self,
        db: AsyncSession,
        teacher_id: str,
        student_id: str,
        academic_year: Optional[int] = None
    ) -> TeacherStudent:
        await self.get_teacher(db, teacher_id)
        await self.get_student(db, student_id)
        year = academic_year or current_academic_year()

        existing = await db.execute(
            select(TeacherStudent).where(
                TeacherStudent.teacher_id == teacher_id,
                TeacherStudent.student_id == student_id,
                TeacherStudent.academic_year == year,
            )
        )
        if existing.scalar_one_or_none():
            raise DuplicateEntryError("Student is already assigned to this teacher for this year", field="student_id")

        assignment = TeacherStudent(teacher_id=teacher_id, student_id=student_id, academic_year=year)
        db.add(assignment)
        await db.commit()
        await db.refresh(assignment)

        logger.info(f"Assigned student {student_id} to teacher {teacher_id} for {year}")
        return assignment

    async def unassign_student(
        self,
        db: AsyncSession,
        teacher_id: str,
        student_id: str,
        academic_year: Optional[int] = None
    ) -> int:
        """Remove assignments; returns how many rows were removed"""
        query = select(TeacherStudent).where(
            TeacherStudent.teacher_id == teacher_id,
            TeacherStudent.student_id == student_id,
        )
        if academic_year is not None:
            query = query.where(TeacherStudent.academic_year == academic_year)
        result = await db.execute(query)
        assignments = result.scalars().all()
        if not assignments:
            raise ResourceNotFoundError("Assignment", f"{teacher_id}/{student_id}")

        for assignment in assignments:
            await db.delete(assignment)
        await db.commit()

        logger.info(f"Unassigned student {student_id} from teacher {teacher_id}")
        return len(assignments)

    async def get_grade(
        self,
        db: AsyncSession,
        student_id: str,
        academic_year: Optional[int] = None
    ) -> Optional[Grade]:
        result = await db.execute(
            select(Grade).where(
                Grade.student_id == student_id,
                Grade.academic_year == (academic_year or current_academic_year()),
            )
        )
        return result.scalar_one_or_none()


# Singleton instance
school_service = SchoolService()
