from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class GradeResponse(BaseModel):
    id: str
    student_id: str
    phase1: Optional[float] = None
    phase2: Optional[float] = None
    phase3: Optional[float] = None
    phase4: Optional[float] = None
    average: Optional[float] = None
    academic_year: int
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StudentGradeRow(GradeResponse):
    student_name: str


class ManualScoreUpdate(BaseModel):
    student_id: str
    phase: int = Field(..., ge=1, le=4)
    manual_score: float = Field(..., ge=0, le=5)


class PhaseAverageResponse(BaseModel):
    id: str
    student_id: str
    teacher_id: str
    phase: int
    average_score: Optional[float] = None
    average_score_manual: Optional[float] = None
    evaluations_completed: int
    academic_year: int

    class Config:
        from_attributes = True


class RecalculationResponse(BaseModel):
    student_id: str
    teacher_id: str
    academic_year: int
    phases: dict
    average: float


class PhaseStatsResponse(BaseModel):
    phase: int
    total: int
    approved: int
    failed: int
    average_score: float


class PhaseEvaluationResponse(BaseModel):
    phase: int
    students_evaluated: int
    plans_created: int
    failed_subjects: int
    emails_sent: int
    skipped_students: List[str] = []
