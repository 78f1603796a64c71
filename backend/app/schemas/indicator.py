from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from app.models.indicator import DEFAULT_PASSING_SCORE, DEFAULT_WEIGHT


class IndicatorCreate(BaseModel):
    description: str = Field(..., min_length=3)
    subject: Optional[str] = None
    category: Optional[str] = None
    phase: int = Field(..., ge=1, le=4)
    grade: Optional[int] = Field(None, ge=1, le=11)
    student_id: Optional[str] = None
    questionnaire_id: Optional[str] = None


class IndicatorUpdate(BaseModel):
    description: Optional[str] = Field(None, min_length=3)
    subject: Optional[str] = None
    category: Optional[str] = None
    phase: Optional[int] = Field(None, ge=1, le=4)
    grade: Optional[int] = Field(None, ge=1, le=11)
    questionnaire_id: Optional[str] = None
    achieved: Optional[bool] = None


class IndicatorResponse(BaseModel):
    id: str
    teacher_id: str
    student_id: Optional[str] = None
    questionnaire_id: Optional[str] = None
    description: str
    subject: str
    category: Optional[str] = None
    phase: int
    grade: Optional[int] = None
    achieved: bool
    created_at: datetime

    class Config:
        from_attributes = True


# ============================================
# Questionnaire links
# ============================================

class QuestionnaireIndicatorCreate(BaseModel):
    indicator_id: str
    passing_score: float = Field(DEFAULT_PASSING_SCORE, ge=0, le=5)
    weight: float = Field(DEFAULT_WEIGHT, gt=0, le=10)


class QuestionnaireIndicatorUpdate(BaseModel):
    passing_score: Optional[float] = Field(None, ge=0, le=5)
    weight: Optional[float] = Field(None, gt=0, le=10)


class QuestionnaireIndicatorResponse(BaseModel):
    id: str
    questionnaire_id: str
    indicator_id: str
    passing_score: float
    weight: float
    description: Optional[str] = None
    subject: Optional[str] = None
    phase: Optional[int] = None


class LinkedQuestionnaireResponse(BaseModel):
    questionnaire_id: str
    title: str
    phase: int
    subject: Optional[str] = None
    passing_score: float
    weight: float


# ============================================
# Evaluation
# ============================================

class IndicatorEvaluationRow(BaseModel):
    indicator_id: str
    description: str
    passing_score: float
    student_score: float
    achieved: bool


class StudentEvaluationResponse(BaseModel):
    success: bool
    message: str
    student_id: str
    questionnaire_id: str
    best_score: Optional[float] = None
    total_indicators: int = 0
    approved: int = 0
    failed: int = 0
    approval_rate: float = 0.0
    indicators: List[IndicatorEvaluationRow] = []
