from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class UserRole(str, enum.Enum):
    """User roles"""
    SUPER_ADMIN = "super_administrador"
    ADMIN = "administrador"
    TEACHER = "docente"
    STUDENT = "estudiante"


ADMIN_ROLES = (UserRole.SUPER_ADMIN, UserRole.ADMIN)
STAFF_ROLES = (UserRole.SUPER_ADMIN, UserRole.ADMIN, UserRole.TEACHER)


class User(Base):
    """Login account. Teachers and students hang a profile row off it."""
    __tablename__ = "users"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)
    hashed_password = Column(String(255), nullable=False)

    role = Column(SQLEnum(UserRole), default=UserRole.STUDENT, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Password reset
    reset_token_expires = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = Column(DateTime, nullable=True)

    # Relationships
    teacher_profile = relationship(
        "Teacher", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    student_profile = relationship(
        "Student", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    def __repr__(self):
        return f"<User {self.email} ({self.role.value if self.role else '-'})>"
