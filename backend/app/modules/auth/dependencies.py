from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import uuid

from app.core.database import get_db
from app.core.logging_config import set_user_id
from app.core.security import decode_token, ACCESS_TOKEN
from app.models.user import User, UserRole
from app.models.school import Student, Teacher

security = HTTPBearer()


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get current authenticated user"""

    token = credentials.credentials
    payload = decode_token(token)

    if payload.get("type") != ACCESS_TOKEN:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type"
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload"
        )

    # Validate user_id is a valid UUID format
    try:
        uuid.UUID(user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user ID format"
        )

    result = await db.execute(
        select(User).where(User.id == user_id)
    )
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive"
        )

    # Rate limiter and log context key on the user
    request.state.user_id = user.id
    set_user_id(user.id)
    return user


async def get_current_admin(
    current_user: User = Depends(get_current_user)
) -> User:
    """Get current admin user (administrador or super_administrador)"""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user


async def get_current_super_admin(
    current_user: User = Depends(get_current_user)
) -> User:
    if current_user.role != UserRole.SUPER_ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Super administrator access required"
        )
    return current_user


async def get_current_teacher(
    current_user: User = Depends(get_current_user)
) -> User:
    """Get current teacher user; admins pass too"""
    if not current_user.is_staff:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Teacher access required"
        )
    return current_user


async def get_current_teacher_profile(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Teacher:
    """Teacher profile of the current user; 403 for users without one"""
    result = await db.execute(select(Teacher).where(Teacher.user_id == current_user.id))
    teacher = result.unique().scalar_one_or_none()
    if not teacher:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Teacher profile required"
        )
    return teacher


async def get_current_student_profile(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Student:
    """Student profile of the current user; 403 for users without one"""
    result = await db.execute(select(Student).where(Student.user_id == current_user.id))
    student = result.unique().scalar_one_or_none()
    if not student:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Student profile required"
        )
    return student


async def get_teacher_profile_for(db: AsyncSession, user: User):
    """Teacher profile of a user, or None (admins have none)"""
    result = await db.execute(select(Teacher).where(Teacher.user_id == user.id))
    return result.unique().scalar_one_or_none()


async def get_student_profile_for(db: AsyncSession, user: User):
    """Student profile of a user, or None"""
    result = await db.execute(select(Student).where(Student.user_id == user.id))
    return result.unique().scalar_one_or_none()
