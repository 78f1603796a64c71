"""
Achievement indicators.

An indicator with student_id NULL applies to every student of its grade;
one with student_id set is specific to that student (phase evaluation copies
failed global indicators into student-specific ones).
"""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from app.core.database import Base
from app.core.types import GUID, Score, generate_uuid


DEFAULT_PASSING_SCORE = 3.5
DEFAULT_WEIGHT = 1.0


class Indicator(Base):
    __tablename__ = "indicators"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    teacher_id = Column(GUID, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), nullable=True, index=True)
    questionnaire_id = Column(GUID, ForeignKey("questionnaires.id", ondelete="SET NULL"), nullable=True)

    description = Column(Text, nullable=False)
    subject = Column(String(100), nullable=False)
    category = Column(String(100), nullable=True)
    phase = Column(Integer, nullable=False, index=True)
    grade = Column(Integer, nullable=True, index=True)
    achieved = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    questionnaire_links = relationship(
        "QuestionnaireIndicator", back_populates="indicator", cascade="all, delete-orphan"
    )

    @property
    def is_global(self) -> bool:
        return self.student_id is None

    def __repr__(self):
        return f"<Indicator {self.id} phase {self.phase}>"


class QuestionnaireIndicator(Base):
    """Indicator measured by a questionnaire, with its own passing score"""
    __tablename__ = "questionnaire_indicators"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    questionnaire_id = Column(GUID, ForeignKey("questionnaires.id", ondelete="CASCADE"), nullable=False)
    indicator_id = Column(GUID, ForeignKey("indicators.id", ondelete="CASCADE"), nullable=False)
    passing_score = Column(Score, default=DEFAULT_PASSING_SCORE, nullable=False)
    weight = Column(Score, default=DEFAULT_WEIGHT, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    indicator = relationship("Indicator", back_populates="questionnaire_links")

    __table_args__ = (
        UniqueConstraint("questionnaire_id", "indicator_id", name="uq_questionnaire_indicator"),
    )


class StudentIndicator(Base):
    """Latest evaluation of an indicator for a student"""
    __tablename__ = "student_indicators"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    indicator_id = Column(GUID, ForeignKey("indicators.id", ondelete="CASCADE"), nullable=False)
    questionnaire_id = Column(GUID, ForeignKey("questionnaires.id", ondelete="SET NULL"), nullable=True)
    achieved = Column(Boolean, default=False, nullable=False)
    assigned_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("student_id", "indicator_id", name="uq_student_indicator"),
    )
