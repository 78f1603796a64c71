"""
Improvement plans and their recovery material.

A plan belongs to one student and one teacher. Resources are things to read or
watch, activities are graded tasks, and progress rows record what the student
did with either.
"""
from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, Date, Text, ForeignKey, JSON,
    Enum as SQLEnum, Index,
)
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from app.core.database import Base
from app.core.types import GUID, Score, generate_uuid


class PlanStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


ACTIVE_PLAN_STATUSES = (PlanStatus.PENDING, PlanStatus.IN_PROGRESS)


class ResourceType(str, enum.Enum):
    VIDEO = "video"
    DOCUMENT = "document"
    LINK = "link"
    QUIZ = "quiz"
    EXERCISE = "exercise"


class DifficultyLevel(str, enum.Enum):
    BASIC = "basic"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class ActivityType(str, enum.Enum):
    QUIZ = "quiz"
    ASSIGNMENT = "assignment"
    PROJECT = "project"
    PRESENTATION = "presentation"
    EXERCISE = "exercise"


class RecoveryActivityStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    OVERDUE = "overdue"


class ProgressType(str, enum.Enum):
    RESOURCE_VIEWED = "resource_viewed"
    ACTIVITY_STARTED = "activity_started"
    ACTIVITY_COMPLETED = "activity_completed"
    PLAN_COMPLETED = "plan_completed"


class ImprovementPlan(Base):
    __tablename__ = "improvement_plans"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    teacher_id = Column(GUID, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False)
    # Set on plans generated from a questionnaire's results
    questionnaire_id = Column(GUID, ForeignKey("questionnaires.id", ondelete="SET NULL"), nullable=True)

    title = Column(String(255), nullable=False)
    subject = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    activities = Column(Text, nullable=True)
    deadline = Column(Date, nullable=False)
    file_url = Column(String(500), nullable=True)

    # Bullet lists, one "• ..." line per indicator
    failed_achievements = Column(Text, nullable=True)
    passed_achievements = Column(Text, nullable=True)
    video_urls = Column(Text, nullable=True)
    resource_links = Column(Text, nullable=True)

    activity_status = Column(SQLEnum(PlanStatus), default=PlanStatus.PENDING, nullable=False)
    completion_date = Column(DateTime, nullable=True)
    teacher_notes = Column(Text, nullable=True)
    student_feedback = Column(Text, nullable=True)
    attempts_count = Column(Integer, default=0, nullable=False)
    last_activity_date = Column(DateTime, nullable=True)
    completed = Column(Boolean, default=False, nullable=False)
    email_sent = Column(Boolean, default=False, nullable=False)
    academic_year = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    resources = relationship(
        "RecoveryResource", back_populates="plan",
        cascade="all, delete-orphan", order_by="RecoveryResource.order_index",
    )
    recovery_activities = relationship(
        "RecoveryActivity", back_populates="plan", cascade="all, delete-orphan"
    )
    progress = relationship(
        "RecoveryProgress", back_populates="plan", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_improvement_plans_student", "student_id"),
        Index("ix_improvement_plans_teacher", "teacher_id"),
    )

    @property
    def is_active(self) -> bool:
        return not self.completed and self.activity_status in ACTIVE_PLAN_STATUSES

    def __repr__(self):
        return f"<ImprovementPlan {self.title}>"


class RecoveryResource(Base):
    __tablename__ = "recovery_resources"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    improvement_plan_id = Column(GUID, ForeignKey("improvement_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    resource_type = Column(SQLEnum(ResourceType), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    url = Column(String(500), nullable=True)
    file_path = Column(String(500), nullable=True)
    difficulty_level = Column(SQLEnum(DifficultyLevel), default=DifficultyLevel.BASIC, nullable=False)
    order_index = Column(Integer, default=0, nullable=False)
    is_required = Column(Boolean, default=True, nullable=False)

    viewed = Column(Boolean, default=False, nullable=False)
    viewed_at = Column(DateTime, nullable=True)
    completion_percentage = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    plan = relationship("ImprovementPlan", back_populates="resources")


class RecoveryActivity(Base):
    __tablename__ = "recovery_activities"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    improvement_plan_id = Column(GUID, ForeignKey("improvement_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    indicator_id = Column(GUID, ForeignKey("indicators.id", ondelete="SET NULL"), nullable=True)
    questionnaire_id = Column(GUID, ForeignKey("questionnaires.id", ondelete="SET NULL"), nullable=True)

    activity_type = Column(SQLEnum(ActivityType), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    instructions = Column(Text, nullable=True)
    due_date = Column(Date, nullable=True)
    max_attempts = Column(Integer, default=3, nullable=False)
    passing_score = Column(Score, default=3.5, nullable=False)
    weight = Column(Score, default=1.0, nullable=False)

    status = Column(SQLEnum(RecoveryActivityStatus), default=RecoveryActivityStatus.PENDING, nullable=False)
    student_score = Column(Score, nullable=True)
    attempts_count = Column(Integer, default=0, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    teacher_feedback = Column(Text, nullable=True)
    student_notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    plan = relationship("ImprovementPlan", back_populates="recovery_activities")

    @property
    def attempts_exhausted(self) -> bool:
        return self.attempts_count >= self.max_attempts


class RecoveryProgress(Base):
    __tablename__ = "recovery_progress"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    improvement_plan_id = Column(GUID, ForeignKey("improvement_plans.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    resource_id = Column(GUID, ForeignKey("recovery_resources.id", ondelete="CASCADE"), nullable=True)
    activity_id = Column(GUID, ForeignKey("recovery_activities.id", ondelete="CASCADE"), nullable=True)
    progress_type = Column(SQLEnum(ProgressType), nullable=False)
    progress_data = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    plan = relationship("ImprovementPlan", back_populates="progress")
