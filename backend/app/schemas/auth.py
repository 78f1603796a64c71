from pydantic import BaseModel, EmailStr, Field, model_validator
from typing import Optional
from datetime import datetime

from app.models.user import UserRole


SELF_REGISTER_ROLES = (UserRole.STUDENT, UserRole.TEACHER)


class UserRegister(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    name: str = Field(..., min_length=2, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    role: UserRole = UserRole.STUDENT

    # Student profile
    grade: Optional[int] = Field(None, ge=1, le=11)
    age: Optional[int] = Field(None, ge=3, le=30)
    course_id: Optional[str] = None
    contact_phone: Optional[str] = Field(None, max_length=20)
    contact_email: Optional[EmailStr] = None

    # Teacher profile
    subject: Optional[str] = None
    institution: Optional[str] = None

    @model_validator(mode='after')
    def validate_profile_fields(self):
        """Each self-service role needs the fields of its profile"""
        if self.role not in SELF_REGISTER_ROLES:
            raise ValueError("Only students and teachers can register")
        if self.role == UserRole.STUDENT and self.grade is None:
            raise ValueError("Required fields for students: grade")
        if self.role == UserRole.TEACHER and not (self.subject and self.subject.strip()):
            raise ValueError("Required fields for teachers: subject")
        return self


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    phone: Optional[str] = None
    role: UserRole
    is_active: bool
    created_at: datetime
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserResponse
    student_id: Optional[str] = None
    teacher_id: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str = Field(..., min_length=8)


class MessageResponse(BaseModel):
    message: str
    success: bool = True


# ============================================
# Administration
# ============================================

class RoleUpdate(BaseModel):
    role: UserRole


class StatusUpdate(BaseModel):
    is_active: bool
