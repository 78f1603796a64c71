"""
Improvement Plan Schemas - plans, recovery resources, activities and progress
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime, date

from app.models.improvement_plan import (
    PlanStatus, ResourceType, DifficultyLevel, ActivityType,
    RecoveryActivityStatus, ProgressType,
)


# ============================================
# Plan Schemas
# ============================================

class ImprovementPlanCreate(BaseModel):
    student_id: str
    teacher_id: Optional[str] = None
    title: str = Field(..., min_length=3, max_length=255)
    subject: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    activities: Optional[str] = None
    deadline: date
    file_url: Optional[str] = None
    failed_achievements: Optional[str] = None
    passed_achievements: Optional[str] = None
    video_urls: Optional[str] = None
    resource_links: Optional[str] = None
    teacher_notes: Optional[str] = None
    activity_status: PlanStatus = PlanStatus.PENDING


class ImprovementPlanUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=255)
    subject: Optional[str] = None
    description: Optional[str] = None
    activities: Optional[str] = None
    deadline: Optional[date] = None
    file_url: Optional[str] = None
    failed_achievements: Optional[str] = None
    passed_achievements: Optional[str] = None
    video_urls: Optional[str] = None
    resource_links: Optional[str] = None
    activity_status: Optional[PlanStatus] = None
    teacher_notes: Optional[str] = None
    student_feedback: Optional[str] = None
    completed: Optional[bool] = None


class ImprovementPlanResponse(BaseModel):
    id: str
    student_id: str
    teacher_id: str
    questionnaire_id: Optional[str] = None
    title: str
    subject: str
    description: Optional[str] = None
    activities: Optional[str] = None
    deadline: date
    file_url: Optional[str] = None
    failed_achievements: Optional[str] = None
    passed_achievements: Optional[str] = None
    video_urls: Optional[str] = None
    resource_links: Optional[str] = None
    activity_status: PlanStatus
    completion_date: Optional[datetime] = None
    teacher_notes: Optional[str] = None
    student_feedback: Optional[str] = None
    attempts_count: int
    last_activity_date: Optional[datetime] = None
    completed: bool
    email_sent: bool
    academic_year: int
    created_at: datetime

    class Config:
        from_attributes = True


# ============================================
# Recovery Resource Schemas
# ============================================

class RecoveryResourceCreate(BaseModel):
    resource_type: ResourceType
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    url: Optional[str] = None
    file_path: Optional[str] = None
    difficulty_level: DifficultyLevel = DifficultyLevel.BASIC
    order_index: int = 0
    is_required: bool = True


class RecoveryResourceUpdate(BaseModel):
    resource_type: Optional[ResourceType] = None
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    url: Optional[str] = None
    file_path: Optional[str] = None
    difficulty_level: Optional[DifficultyLevel] = None
    order_index: Optional[int] = None
    is_required: Optional[bool] = None


class RecoveryResourceResponse(BaseModel):
    id: str
    improvement_plan_id: str
    resource_type: ResourceType
    title: str
    description: Optional[str] = None
    url: Optional[str] = None
    file_path: Optional[str] = None
    difficulty_level: DifficultyLevel
    order_index: int
    is_required: bool
    viewed: bool
    viewed_at: Optional[datetime] = None
    completion_percentage: int
    created_at: datetime

    class Config:
        from_attributes = True


class ResourceViewedRequest(BaseModel):
    completion_percentage: int = Field(100, ge=0, le=100)


# ============================================
# Recovery Activity Schemas
# ============================================

class RecoveryActivityCreate(BaseModel):
    activity_type: ActivityType
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    instructions: Optional[str] = None
    indicator_id: Optional[str] = None
    questionnaire_id: Optional[str] = None
    due_date: Optional[date] = None
    max_attempts: int = Field(3, ge=1, le=10)
    passing_score: float = Field(3.5, ge=0, le=5)
    weight: float = Field(1.0, gt=0, le=10)


class RecoveryActivityUpdate(BaseModel):
    activity_type: Optional[ActivityType] = None
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    instructions: Optional[str] = None
    due_date: Optional[date] = None
    max_attempts: Optional[int] = Field(None, ge=1, le=10)
    passing_score: Optional[float] = Field(None, ge=0, le=5)
    weight: Optional[float] = Field(None, gt=0, le=10)
    status: Optional[RecoveryActivityStatus] = None
    teacher_feedback: Optional[str] = None


class RecoveryActivityResponse(BaseModel):
    id: str
    improvement_plan_id: str
    indicator_id: Optional[str] = None
    questionnaire_id: Optional[str] = None
    activity_type: ActivityType
    title: str
    description: Optional[str] = None
    instructions: Optional[str] = None
    due_date: Optional[date] = None
    max_attempts: int
    passing_score: float
    weight: float
    status: RecoveryActivityStatus
    student_score: Optional[float] = None
    attempts_count: int
    completed_at: Optional[datetime] = None
    teacher_feedback: Optional[str] = None
    student_notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ActivityCompletion(BaseModel):
    score: float = Field(..., ge=0, le=5)
    notes: Optional[str] = None


# ============================================
# Progress Schemas
# ============================================

class RecoveryProgressResponse(BaseModel):
    id: str
    improvement_plan_id: str
    student_id: str
    resource_id: Optional[str] = None
    activity_id: Optional[str] = None
    progress_type: ProgressType
    progress_data: Optional[dict] = None
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ProgressStatistics(BaseModel):
    total_resources: int
    viewed_resources: int
    total_activities: int
    completed_activities: int
    average_score: Optional[float] = None


class PlanProgressResponse(BaseModel):
    plan_id: str
    progress: List[RecoveryProgressResponse]
    statistics: ProgressStatistics


# ============================================
# Automatic plans
# ============================================

class AutoPlanSummary(BaseModel):
    plan_id: str
    student_id: str
    student_name: str
    failed_indicators: int


class ProcessQuestionnaireResponse(BaseModel):
    questionnaire_id: str
    students_processed: int
    plans_created: int
    plans: List[AutoPlanSummary] = []


class ProcessStudentResponse(BaseModel):
    success: bool
    message: str
    plan_id: Optional[str] = None
    failed_indicators: int = 0
