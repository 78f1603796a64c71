from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint
from datetime import datetime

from app.core.database import Base
from app.core.types import GUID, Score, generate_uuid


class Grade(Base):
    """Definitive grade per phase and the year average for one student"""
    __tablename__ = "grades"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    phase1 = Column(Score, nullable=True)
    phase2 = Column(Score, nullable=True)
    phase3 = Column(Score, nullable=True)
    phase4 = Column(Score, nullable=True)
    average = Column(Score, nullable=True)
    academic_year = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("student_id", "academic_year", name="uq_grades_student_year"),
    )

    def get_phase(self, phase: int):
        return getattr(self, f"phase{phase}")

    def set_phase(self, phase: int, value) -> None:
        setattr(self, f"phase{phase}", value)

    def phase_scores(self) -> dict:
        return {f"phase{n}": self.get_phase(n) for n in range(1, 5)}


class PhaseAverage(Base):
    """
    System average of a phase (from quiz results) next to the teacher's
    manual score. The definitive grade combines both.
    """
    __tablename__ = "phase_averages"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    teacher_id = Column(GUID, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False)
    phase = Column(Integer, nullable=False)
    average_score = Column(Score, nullable=True)
    average_score_manual = Column(Score, nullable=True)
    evaluations_completed = Column(Integer, default=0, nullable=False)
    academic_year = Column(Integer, nullable=False)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("student_id", "teacher_id", "phase", "academic_year", name="uq_phase_average"),
    )
