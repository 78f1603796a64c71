"""
Questionnaire and Quiz Schemas
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from datetime import datetime


# ============================================
# Questionnaire Schemas
# ============================================

class QuestionnaireCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=255)
    description: Optional[str] = None
    course_id: Optional[str] = None
    phase: int
    grade: int = Field(..., ge=1, le=11)
    category: Optional[str] = None
    subject: Optional[str] = None
    is_prueba_saber: bool = False


class QuestionnaireUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=255)
    description: Optional[str] = None
    course_id: Optional[str] = None
    phase: Optional[int] = None
    grade: Optional[int] = Field(None, ge=1, le=11)
    category: Optional[str] = None
    subject: Optional[str] = None
    is_prueba_saber: Optional[bool] = None


class QuestionnaireResponse(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    course_id: Optional[str] = None
    created_by: str
    phase: int
    grade: int
    category: Optional[str] = None
    subject: Optional[str] = None
    is_prueba_saber: bool
    created_at: datetime

    class Config:
        from_attributes = True


# ============================================
# Question Schemas
# ============================================

class QuestionCreate(BaseModel):
    question_text: str = Field(..., min_length=3)
    option1: str = Field(..., min_length=1, max_length=500)
    option2: str = Field(..., min_length=1, max_length=500)
    option3: Optional[str] = Field(None, max_length=500)
    option4: Optional[str] = Field(None, max_length=500)
    correct_answer: int = Field(..., ge=1, le=4)
    category: Optional[str] = None
    image_url: Optional[str] = None


class QuestionUpdate(BaseModel):
    question_text: Optional[str] = Field(None, min_length=3)
    option1: Optional[str] = Field(None, max_length=500)
    option2: Optional[str] = Field(None, max_length=500)
    option3: Optional[str] = Field(None, max_length=500)
    option4: Optional[str] = Field(None, max_length=500)
    correct_answer: Optional[int] = Field(None, ge=1, le=4)
    category: Optional[str] = None
    image_url: Optional[str] = None


class QuestionForQuiz(BaseModel):
    """Question as a student sees it (without correct answer)"""
    id: str
    questionnaire_id: str
    question_text: str
    option1: str
    option2: str
    option3: Optional[str] = None
    option4: Optional[str] = None
    category: Optional[str] = None
    image_url: Optional[str] = None

    class Config:
        from_attributes = True


class QuestionResponse(QuestionForQuiz):
    """Question response (for teachers)"""
    correct_answer: int
    created_at: datetime


# ============================================
# Quiz Schemas
# ============================================

class QuizSubmission(BaseModel):
    """Answers keyed by question id, values are the chosen option (1-4)"""
    questionnaire_id: str
    answers: Dict[str, int]


class QuizResultResponse(BaseModel):
    attempt_id: str
    questionnaire_id: str
    score: float
    attempt_number: int
    best_score: float
    attempts_remaining: int
    correct_answers: int
    total_questions: int


class QuizAttemptResponse(BaseModel):
    id: str
    student_id: str
    questionnaire_id: str
    attempt_number: int
    score: float
    correct_answers: int
    total_questions: int
    attempted_at: datetime

    class Config:
        from_attributes = True


class QuizAttemptList(BaseModel):
    attempts: List[QuizAttemptResponse]
    count: int


class EvaluationResultResponse(BaseModel):
    id: str
    student_id: str
    questionnaire_id: str
    best_score: float
    min_score: Optional[float] = None
    selected_attempt_id: Optional[str] = None
    phase: int
    academic_year: int
    recorded_at: datetime

    class Config:
        from_attributes = True
