from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from app.models.educational_resource import EducationalResourceType


class EducationalResourceCreate(BaseModel):
    """Required fields and the URL are checked by the service (400 on failure)"""
    subject: Optional[str] = Field(None, max_length=100)
    area: Optional[str] = Field(None, max_length=100)
    topic: Optional[str] = None
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    url: Optional[str] = None
    resource_type: EducationalResourceType = EducationalResourceType.LINK
    grade_level: Optional[int] = Field(None, ge=1, le=11)
    phase: Optional[int] = Field(None, ge=1, le=4)
    difficulty: Optional[str] = None


class EducationalResourceUpdate(BaseModel):
    subject: Optional[str] = Field(None, max_length=100)
    area: Optional[str] = Field(None, max_length=100)
    topic: Optional[str] = None
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    url: Optional[str] = None
    resource_type: Optional[EducationalResourceType] = None
    grade_level: Optional[int] = Field(None, ge=1, le=11)
    phase: Optional[int] = Field(None, ge=1, le=4)
    difficulty: Optional[str] = None


class EducationalResourceResponse(BaseModel):
    id: str
    subject: str
    area: str
    topic: Optional[str] = None
    title: str
    description: Optional[str] = None
    url: str
    resource_type: EducationalResourceType
    grade_level: Optional[int] = None
    phase: Optional[int] = None
    difficulty: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TeacherGuideResponse(BaseModel):
    id: str
    teacher_id: str
    title: str
    description: Optional[str] = None
    subject: Optional[str] = None
    grade: Optional[int] = None
    original_filename: str
    file_size: int
    content_type: str
    created_at: datetime

    class Config:
        from_attributes = True
