"""
School structure models: courses, teacher and student profiles, and the
yearly teacher-student assignment.
"""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from datetime import datetime

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class Course(Base):
    """A class group, e.g. "10A" of grade 10"""
    __tablename__ = "courses"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(100), nullable=False)
    grade = Column(Integer, nullable=False)
    institution = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    students = relationship("Student", back_populates="course")

    def __repr__(self):
        return f"<Course {self.name} (grade {self.grade})>"


class Teacher(Base):
    """Teacher profile (one per docente user)"""
    __tablename__ = "teachers"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    subject = Column(String(100), nullable=False)
    institution = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="teacher_profile", lazy="joined")
    assignments = relationship("TeacherStudent", back_populates="teacher", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Teacher {self.id} ({self.subject})>"


class Student(Base):
    """Student profile (one per estudiante user)"""
    __tablename__ = "students"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    course_id = Column(GUID, ForeignKey("courses.id", ondelete="SET NULL"), nullable=True)
    grade = Column(Integer, nullable=False, index=True)
    age = Column(Integer, nullable=True)

    # Guardian contact; phase results are copied here
    contact_phone = Column(String(20), nullable=True)
    contact_email = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="student_profile", lazy="joined")
    course = relationship("Course", back_populates="students", lazy="joined")
    assignments = relationship("TeacherStudent", back_populates="student", cascade="all, delete-orphan")

    @property
    def name(self) -> str:
        return self.user.name if self.user else ""

    @property
    def email(self) -> str:
        return self.user.email if self.user else ""

    @property
    def course_name(self):
        return self.course.name if self.course else None

    def __repr__(self):
        return f"<Student {self.id} (grade {self.grade})>"


class TeacherStudent(Base):
    """Assignment of a student to a teacher for one academic year"""
    __tablename__ = "teacher_students"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    teacher_id = Column(GUID, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    academic_year = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    teacher = relationship("Teacher", back_populates="assignments")
    student = relationship("Student", back_populates="assignments")

    __table_args__ = (
        UniqueConstraint("teacher_id", "student_id", "academic_year", name="uq_teacher_student_year"),
        Index("ix_teacher_students_student_year", "student_id", "academic_year"),
    )
