"""
Questionnaire, question, attempt and result models.

A student gets MAX_QUIZ_ATTEMPTS tries per questionnaire. Every try is a
QuizAttempt row; EvaluationResult keeps the best one and is what grades and
indicator evaluation read from.
"""
from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, Text, ForeignKey,
    UniqueConstraint, Index,
)
from sqlalchemy.orm import relationship
from datetime import datetime

from app.core.database import Base
from app.core.types import GUID, Score, generate_uuid


class Questionnaire(Base):
    __tablename__ = "questionnaires"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    course_id = Column(GUID, ForeignKey("courses.id", ondelete="SET NULL"), nullable=True)
    created_by = Column(GUID, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)

    phase = Column(Integer, nullable=False, index=True)
    grade = Column(Integer, nullable=False, index=True)
    category = Column(String(100), nullable=True)
    subject = Column(String(100), nullable=True)

    # Prueba Saber mock exams are graded but never count towards averages
    is_prueba_saber = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    questions = relationship(
        "Question", back_populates="questionnaire",
        cascade="all, delete-orphan", order_by="Question.created_at",
    )

    def __repr__(self):
        return f"<Questionnaire {self.title} (phase {self.phase})>"


class Question(Base):
    __tablename__ = "questions"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    questionnaire_id = Column(GUID, ForeignKey("questionnaires.id", ondelete="CASCADE"), nullable=False, index=True)
    question_text = Column(Text, nullable=False)
    option1 = Column(String(500), nullable=False)
    option2 = Column(String(500), nullable=False)
    option3 = Column(String(500), nullable=True)
    option4 = Column(String(500), nullable=True)
    correct_answer = Column(Integer, nullable=False)  # 1-4
    category = Column(String(100), nullable=True)
    image_url = Column(String(500), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    questionnaire = relationship("Questionnaire", back_populates="questions")


class QuizAttempt(Base):
    __tablename__ = "quiz_attempts"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    questionnaire_id = Column(GUID, ForeignKey("questionnaires.id", ondelete="CASCADE"), nullable=False)
    attempt_number = Column(Integer, nullable=False)
    score = Column(Score, nullable=False)
    correct_answers = Column(Integer, nullable=False, default=0)
    total_questions = Column(Integer, nullable=False, default=0)
    attempted_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("student_id", "questionnaire_id", "attempt_number", name="uq_attempt_number"),
    )


class EvaluationResult(Base):
    """Best attempt per student and questionnaire"""
    __tablename__ = "evaluation_results"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    questionnaire_id = Column(GUID, ForeignKey("questionnaires.id", ondelete="CASCADE"), nullable=False)
    best_score = Column(Score, nullable=False)
    min_score = Column(Score, nullable=True)
    selected_attempt_id = Column(GUID, ForeignKey("quiz_attempts.id", ondelete="SET NULL"), nullable=True)
    phase = Column(Integer, nullable=False)
    academic_year = Column(Integer, nullable=False)
    recorded_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("student_id", "questionnaire_id", name="uq_evaluation_student_questionnaire"),
        Index("ix_evaluation_results_questionnaire", "questionnaire_id"),
    )
