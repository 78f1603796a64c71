"""
School Schemas - courses, teacher and student profiles, assignments
"""

from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from datetime import datetime


# ============================================
# Course Schemas
# ============================================

class CourseCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    grade: int = Field(..., ge=1, le=11)
    institution: Optional[str] = None


class CourseUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    grade: Optional[int] = Field(None, ge=1, le=11)
    institution: Optional[str] = None


class CourseResponse(BaseModel):
    id: str
    name: str
    grade: int
    institution: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


# ============================================
# Teacher Schemas
# ============================================

class TeacherResponse(BaseModel):
    id: str
    user_id: str
    name: str
    email: str
    subject: str
    institution: Optional[str] = None
    created_at: datetime


class AssignStudentRequest(BaseModel):
    student_id: str
    academic_year: Optional[int] = Field(None, ge=2000, le=2100)


class AssignmentResponse(BaseModel):
    id: str
    teacher_id: str
    student_id: str
    academic_year: int
    created_at: datetime

    class Config:
        from_attributes = True


# ============================================
# Student Schemas
# ============================================

class StudentUpdate(BaseModel):
    """Fields a teacher or admin may correct on a student profile"""
    grade: Optional[int] = Field(None, ge=1, le=11)
    age: Optional[int] = Field(None, ge=3, le=30)
    course_id: Optional[str] = None
    contact_phone: Optional[str] = Field(None, max_length=20)
    contact_email: Optional[EmailStr] = None


class StudentGrades(BaseModel):
    phase1: Optional[float] = None
    phase2: Optional[float] = None
    phase3: Optional[float] = None
    phase4: Optional[float] = None
    average: Optional[float] = None


class StudentResponse(BaseModel):
    id: str
    user_id: str
    name: str
    email: str
    grade: int
    age: Optional[int] = None
    course_id: Optional[str] = None
    course_name: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    created_at: datetime
    grades: Optional[StudentGrades] = None


class StudentListResponse(BaseModel):
    students: List[StudentResponse]
    total: int


def teacher_response(teacher) -> TeacherResponse:
    return TeacherResponse(
        id=teacher.id,
        user_id=teacher.user_id,
        name=teacher.user.name,
        email=teacher.user.email,
        subject=teacher.subject,
        institution=teacher.institution,
        created_at=teacher.created_at,
    )


def student_response(student, grade=None) -> StudentResponse:
    """Student profile with user fields flattened; grade is the year's Grade row"""
    return StudentResponse(
        id=student.id,
        user_id=student.user_id,
        name=student.name,
        email=student.email,
        grade=student.grade,
        age=student.age,
        course_id=student.course_id,
        course_name=student.course_name,
        contact_phone=student.contact_phone,
        contact_email=student.contact_email,
        created_at=student.created_at,
        grades=StudentGrades(**grade.phase_scores(), average=grade.average) if grade else None,
    )
