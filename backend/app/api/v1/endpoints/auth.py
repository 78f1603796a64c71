from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import datetime, timedelta
import uuid

from app.core.database import get_db
from app.core.config import settings
from app.core.security import (
    verify_password,
    get_password_hash,
    create_password_reset_token,
    build_token_pair,
    decode_token,
    REFRESH_TOKEN,
    PASSWORD_RESET_TOKEN,
)
from app.core.exceptions import CourseNotFoundError
from app.core.logging_config import logger, set_user_id
from app.core.rate_limiter import limiter, LOGIN_LIMIT, REGISTER_LIMIT, PASSWORD_RESET_LIMIT
from app.models.user import User, UserRole
from app.models.school import Course, Student, Teacher
from app.schemas.auth import (
    UserRegister,
    UserLogin,
    Token,
    LoginResponse,
    UserResponse,
    RefreshTokenRequest,
    ForgotPasswordRequest,
    ResetPasswordRequest,
    MessageResponse,
)
from app.modules.auth.dependencies import (
    get_current_user, get_teacher_profile_for, get_student_profile_for,
)
from app.services.email_service import email_service


router = APIRouter()

GENERIC_RESET_MESSAGE = "Si existe una cuenta con ese correo, recibirás instrucciones para restablecer la contraseña."


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(REGISTER_LIMIT)
async def register(
    request: Request,
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db)
):
    """Register a student or teacher together with its profile (rate limited: 5/min)"""
    client_ip = request.client.host if request.client else "unknown"

    result = await db.execute(
        select(User).where(User.email == user_data.email)
    )
    if result.scalar_one_or_none():
        logger.log_auth_event(
            event="register",
            success=False,
            user_email=user_data.email,
            reason="Email already registered",
            client_ip=client_ip
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    if user_data.course_id and not await db.get(Course, user_data.course_id):
        raise CourseNotFoundError(user_data.course_id)

    user = User(
        email=user_data.email,
        hashed_password=get_password_hash(user_data.password),
        name=user_data.name,
        phone=user_data.phone,
        role=user_data.role,
    )
    db.add(user)
    await db.flush()

    if user_data.role == UserRole.STUDENT:
        db.add(Student(
            user_id=user.id,
            grade=user_data.grade,
            age=user_data.age,
            course_id=user_data.course_id,
            contact_phone=user_data.contact_phone,
            contact_email=user_data.contact_email,
        ))
    else:
        db.add(Teacher(
            user_id=user.id,
            subject=user_data.subject.strip(),
            institution=user_data.institution,
        ))

    await db.commit()
    await db.refresh(user)

    logger.log_auth_event(
        event="register",
        success=True,
        user_email=user_data.email,
        client_ip=client_ip,
        user_role=user.role.value
    )
    return user


@router.post("/login", response_model=LoginResponse)
@limiter.limit(LOGIN_LIMIT)
async def login(
    request: Request,
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Login user (rate limited: 10/min)"""
    client_ip = request.client.host if request.client else "unknown"

    result = await db.execute(
        select(User).where(User.email == credentials.email)
    )
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.hashed_password):
        logger.log_auth_event(
            event="login",
            success=False,
            user_email=credentials.email,
            reason="Invalid credentials",
            client_ip=client_ip
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password"
        )

    if not user.is_active:
        logger.log_auth_event(
            event="login",
            success=False,
            user_email=credentials.email,
            reason="Account inactive",
            client_ip=client_ip
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive"
        )

    user.last_login = datetime.utcnow()
    await db.commit()

    set_user_id(str(user.id))

    student = await get_student_profile_for(db, user) if user.role == UserRole.STUDENT else None
    teacher = await get_teacher_profile_for(db, user) if user.role == UserRole.TEACHER else None

    logger.log_auth_event(
        event="login",
        success=True,
        user_email=user.email,
        client_ip=client_ip,
        user_role=user.role.value
    )

    return {
        **build_token_pair(user),
        "user": UserResponse.model_validate(user),
        "student_id": student.id if student else None,
        "teacher_id": teacher.id if teacher else None,
    }


@router.get("/verify", response_model=UserResponse)
async def verify_token(
    current_user: User = Depends(get_current_user)
):
    """Validate the bearer token and return its user"""
    return current_user


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """Get current user info"""
    return current_user


@router.post("/refresh", response_model=Token)
async def refresh_token(
    token_request: RefreshTokenRequest,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """Refresh access token using refresh token"""
    client_ip = request.client.host if request.client else "unknown"

    payload = decode_token(token_request.refresh_token)

    if payload.get("type") != REFRESH_TOKEN:
        logger.log_auth_event(
            event="token_refresh",
            success=False,
            reason="Invalid token type",
            client_ip=client_ip
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type - expected refresh token"
        )

    user_id = payload.get("sub")
    try:
        uuid.UUID(user_id)
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user ID format"
        )

    result = await db.execute(
        select(User).where(User.id == user_id)
    )
    user = result.scalar_one_or_none()

    if not user:
        logger.log_auth_event(
            event="token_refresh",
            success=False,
            reason="User not found",
            client_ip=client_ip
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive"
        )

    logger.log_auth_event(
        event="token_refresh",
        success=True,
        user_email=user.email,
        client_ip=client_ip
    )
    return build_token_pair(user)


@router.post("/forgot-password", response_model=MessageResponse)
@limiter.limit(PASSWORD_RESET_LIMIT)
async def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Request a password reset link.

    The response is the same whether or not the account exists.
    """
    result = await db.execute(
        select(User).where(User.email == body.email)
    )
    user = result.scalar_one_or_none()

    if not user or not user.is_active:
        return MessageResponse(message=GENERIC_RESET_MESSAGE)

    reset_token = create_password_reset_token(str(user.id), user.email)
    user.reset_token_expires = datetime.utcnow() + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
    await db.commit()

    sent = await email_service.send_password_reset_email(user.email, user.name, reset_token)
    logger.log_auth_event(
        event="forgot_password",
        success=sent,
        user_email=user.email
    )
    return MessageResponse(message=GENERIC_RESET_MESSAGE)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db)
):
    """Set a new password using the token from the reset email"""
    payload = decode_token(body.token)

    if payload.get("type") != PASSWORD_RESET_TOKEN:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid reset token"
        )

    result = await db.execute(
        select(User).where(User.id == payload.get("sub"))
    )
    user = result.scalar_one_or_none()

    if not user or user.email != payload.get("email"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid reset token"
        )

    # Single use: cleared once the password changes
    if not user.reset_token_expires or user.reset_token_expires < datetime.utcnow():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Reset token expired or already used"
        )

    user.hashed_password = get_password_hash(body.new_password)
    user.reset_token_expires = None
    await db.commit()

    logger.log_auth_event(
        event="password_reset",
        success=True,
        user_email=user.email
    )
    return MessageResponse(message="Contraseña actualizada correctamente")
