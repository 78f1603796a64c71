"""
Users Management API (administration)

- List with pagination, search and role filter
- Role changes and account deletion (super administrator)
- Activation / deactivation and platform statistics (administrators)
"""
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from pydantic import BaseModel
from typing import Optional, List, Dict

from app.core.database import get_db
from app.core.exceptions import UserNotFoundError
from app.core.logging_config import logger
from app.models.user import User, UserRole
from app.models.questionnaire import Questionnaire
from app.models.improvement_plan import ImprovementPlan
from app.modules.auth.dependencies import get_current_admin, get_current_super_admin
from app.schemas.auth import UserResponse, RoleUpdate, StatusUpdate, MessageResponse
from app.utils.pagination import paginate

router = APIRouter()


class PaginatedUsersResponse(BaseModel):
    items: List[UserResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool


class UserStatsResponse(BaseModel):
    total_users: int
    active_users: int
    users_by_role: Dict[str, int]
    total_questionnaires: int
    total_improvement_plans: int
    active_improvement_plans: int


async def _get_user(db: AsyncSession, user_id: str) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise UserNotFoundError(user_id)
    return user


@router.get("/stats", response_model=UserStatsResponse)
async def get_user_stats(
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Counts per role plus questionnaire and plan totals"""
    by_role_result = await db.execute(select(User.role, func.count(User.id)).group_by(User.role))
    users_by_role = {role.value: 0 for role in UserRole}
    for role, count in by_role_result.all():
        users_by_role[role.value] = count

    active = await db.execute(select(func.count(User.id)).where(User.is_active.is_(True)))
    questionnaires = await db.execute(select(func.count(Questionnaire.id)))
    plans = await db.execute(select(func.count(ImprovementPlan.id)))
    active_plans = await db.execute(
        select(func.count(ImprovementPlan.id)).where(ImprovementPlan.completed.is_(False))
    )

    return UserStatsResponse(
        total_users=sum(users_by_role.values()),
        active_users=active.scalar() or 0,
        users_by_role=users_by_role,
        total_questionnaires=questionnaires.scalar() or 0,
        total_improvement_plans=plans.scalar() or 0,
        active_improvement_plans=active_plans.scalar() or 0,
    )


@router.get("", response_model=PaginatedUsersResponse)
async def list_users(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
    search: Optional[str] = Query(None, description="Search by name or email"),
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    is_active: Optional[bool] = Query(None, description="Filter by active status"),
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """List users with pagination, search and filters"""
    query = select(User)
    if search:
        query = query.where(or_(
            User.name.ilike(f"%{search}%"),
            User.email.ilike(f"%{search}%"),
        ))
    if role:
        query = query.where(User.role == role)
    if is_active is not None:
        query = query.where(User.is_active.is_(is_active))

    return await paginate(db, query.order_by(User.created_at.desc()), page, page_size)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    return await _get_user(db, user_id)


@router.patch("/{user_id}/role", response_model=UserResponse)
async def update_user_role(
    user_id: str,
    body: RoleUpdate,
    current_user: User = Depends(get_current_super_admin),
    db: AsyncSession = Depends(get_db)
):
    """Change a user's role (super administrator only)"""
    user = await _get_user(db, user_id)
    if user.id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot change your own role"
        )

    previous = user.role
    user.role = body.role
    await db.commit()
    await db.refresh(user)

    logger.info(f"[Admin] {current_user.email} changed role of {user.email}: {previous.value} -> {body.role.value}")
    return user


@router.patch("/{user_id}/status", response_model=UserResponse)
async def update_user_status(
    user_id: str,
    body: StatusUpdate,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Activate or deactivate an account"""
    user = await _get_user(db, user_id)
    if user.id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot change the status of your own account"
        )
    if user.role == UserRole.SUPER_ADMIN and current_user.role != UserRole.SUPER_ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only a super administrator can change another super administrator"
        )

    user.is_active = body.is_active
    await db.commit()
    await db.refresh(user)

    logger.info(f"[Admin] {current_user.email} set {user.email} active={body.is_active}")
    return user


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    current_user: User = Depends(get_current_super_admin),
    db: AsyncSession = Depends(get_db)
):
    """Delete a user; the teacher or student profile goes with it"""
    user = await _get_user(db, user_id)
    if user.id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account"
        )

    await db.delete(user)
    await db.commit()

    logger.info(f"[Admin] {current_user.email} deleted user {user_id}")
    return MessageResponse(message="Usuario eliminado")
