from sqlalchemy import Column, String, Integer, DateTime, Text, ForeignKey, Enum as SQLEnum
from datetime import datetime
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class EducationalResourceType(str, enum.Enum):
    VIDEO = "video"
    DOCUMENT = "document"
    LINK = "link"
    INTERACTIVE = "interactive"


class EducationalResource(Base):
    """Shared library of study material, browsable by subject and area"""
    __tablename__ = "educational_resources"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    subject = Column(String(100), nullable=False, index=True)
    area = Column(String(100), nullable=False)
    topic = Column(String(255), nullable=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    url = Column(String(500), nullable=False)
    resource_type = Column(SQLEnum(EducationalResourceType), default=EducationalResourceType.LINK, nullable=False)
    grade_level = Column(Integer, nullable=True)
    phase = Column(Integer, nullable=True)
    difficulty = Column(String(20), nullable=True)
    created_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class TeacherGuide(Base):
    """PDF guide uploaded by a teacher"""
    __tablename__ = "teacher_guides"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    teacher_id = Column(GUID, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    subject = Column(String(100), nullable=True)
    grade = Column(Integer, nullable=True)
    file_key = Column(String(500), nullable=False)
    original_filename = Column(String(255), nullable=False)
    file_size = Column(Integer, nullable=False)
    content_type = Column(String(100), default="application/pdf", nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
