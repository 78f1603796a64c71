"""
Improvement plan endpoints: plans, recovery resources and activities,
student progress and the automatic plans built from questionnaire results.

Static paths are declared before /{plan_id}.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List

from app.core.database import get_db
from app.models.user import User, UserRole
from app.models.school import Student
from app.models.improvement_plan import ImprovementPlan, PlanStatus
from app.modules.auth.dependencies import (
    get_current_user, get_current_teacher, get_current_student_profile,
    get_teacher_profile_for, get_student_profile_for,
)
from app.schemas.improvement_plan import (
    ImprovementPlanCreate, ImprovementPlanUpdate, ImprovementPlanResponse,
    RecoveryResourceCreate, RecoveryResourceUpdate, RecoveryResourceResponse, ResourceViewedRequest,
    RecoveryActivityCreate, RecoveryActivityUpdate, RecoveryActivityResponse, ActivityCompletion,
    PlanProgressResponse, ProcessQuestionnaireResponse, ProcessStudentResponse,
)
from app.schemas.auth import MessageResponse
from app.services.improvement_plan_service import improvement_plan_service
from app.services.auto_improvement_plan_service import auto_improvement_plan_service
from app.services.school_service import school_service
from app.api.v1.endpoints.students import ensure_can_view_student
from app.api.v1.endpoints.questionnaires import get_questionnaire_or_404

router = APIRouter()


async def _ensure_plan_teacher(db: AsyncSession, current_user: User, plan: ImprovementPlan) -> None:
    """Only the plan's teacher (or an admin) manages it"""
    if current_user.is_admin:
        return
    teacher = await get_teacher_profile_for(db, current_user)
    if not teacher or teacher.id != plan.teacher_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the plan's teacher can modify it"
        )


async def _ensure_plan_viewer(db: AsyncSession, current_user: User, plan: ImprovementPlan) -> None:
    if current_user.role == UserRole.STUDENT:
        student = await get_student_profile_for(db, current_user)
        if not student or student.id != plan.student_id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to view this plan")
        return
    await _ensure_plan_teacher(db, current_user, plan)


# ==================== LISTINGS ====================

@router.get("", response_model=List[ImprovementPlanResponse])
async def list_plans(
    student_id: Optional[str] = None,
    teacher_id: Optional[str] = None,
    subject: Optional[str] = None,
    activity_status: Optional[PlanStatus] = None,
    completed: Optional[bool] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Students see their own plans and teachers the plans they own"""
    if current_user.role == UserRole.STUDENT:
        student = await get_student_profile_for(db, current_user)
        if not student:
            return []
        student_id = student.id
    elif not current_user.is_admin:
        teacher = await get_teacher_profile_for(db, current_user)
        if not teacher:
            return []
        teacher_id = teacher.id

    return await improvement_plan_service.list_plans(
        db, student_id=student_id, teacher_id=teacher_id, subject=subject,
        activity_status=activity_status, completed=completed,
    )


@router.get("/student/{student_id}", response_model=List[ImprovementPlanResponse])
async def list_student_plans(
    student_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    student = await school_service.get_student(db, student_id)
    await ensure_can_view_student(db, current_user, student)
    return await improvement_plan_service.list_plans(db, student_id=student_id)


@router.get("/teacher/{teacher_id}", response_model=List[ImprovementPlanResponse])
async def list_teacher_plans(
    teacher_id: str,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    await school_service.get_teacher(db, teacher_id)
    if not current_user.is_admin:
        teacher = await get_teacher_profile_for(db, current_user)
        if not teacher or teacher.id != teacher_id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to view these plans")
    return await improvement_plan_service.list_plans(db, teacher_id=teacher_id)


# ==================== RESOURCES ====================

@router.put("/resources/{resource_id}", response_model=RecoveryResourceResponse)
async def update_resource(
    resource_id: str,
    data: RecoveryResourceUpdate,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    resource = await improvement_plan_service.get_resource(db, resource_id)
    plan = await improvement_plan_service.get_plan(db, resource.improvement_plan_id)
    await _ensure_plan_teacher(db, current_user, plan)
    return await improvement_plan_service.update_resource(db, resource_id, data)


@router.delete("/resources/{resource_id}", response_model=MessageResponse)
async def delete_resource(
    resource_id: str,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    resource = await improvement_plan_service.get_resource(db, resource_id)
    plan = await improvement_plan_service.get_plan(db, resource.improvement_plan_id)
    await _ensure_plan_teacher(db, current_user, plan)
    await improvement_plan_service.delete_resource(db, resource_id)
    return MessageResponse(message="Recurso eliminado")


@router.post("/resources/{resource_id}/viewed", response_model=RecoveryResourceResponse)
async def mark_resource_viewed(
    resource_id: str,
    data: Optional[ResourceViewedRequest] = None,
    student: Student = Depends(get_current_student_profile),
    db: AsyncSession = Depends(get_db)
):
    completion = data.completion_percentage if data else 100
    return await improvement_plan_service.mark_resource_viewed(db, resource_id, student.id, completion)


# ==================== ACTIVITIES ====================

@router.put("/activities/{activity_id}", response_model=RecoveryActivityResponse)
async def update_activity(
    activity_id: str,
    data: RecoveryActivityUpdate,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    activity = await improvement_plan_service.get_activity(db, activity_id)
    plan = await improvement_plan_service.get_plan(db, activity.improvement_plan_id)
    await _ensure_plan_teacher(db, current_user, plan)
    return await improvement_plan_service.update_activity(db, activity_id, data)


@router.delete("/activities/{activity_id}", response_model=MessageResponse)
async def delete_activity(
    activity_id: str,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    activity = await improvement_plan_service.get_activity(db, activity_id)
    plan = await improvement_plan_service.get_plan(db, activity.improvement_plan_id)
    await _ensure_plan_teacher(db, current_user, plan)
    await improvement_plan_service.delete_activity(db, activity_id)
    return MessageResponse(message="Actividad eliminada")


@router.post("/activities/{activity_id}/complete", response_model=RecoveryActivityResponse)
async def complete_activity(
    activity_id: str,
    data: ActivityCompletion,
    student: Student = Depends(get_current_student_profile),
    db: AsyncSession = Depends(get_db)
):
    """Record an attempt; the activity passes when score >= its passing score"""
    return await improvement_plan_service.complete_activity(
        db, activity_id, student.id, data.score, data.notes
    )


# ==================== AUTOMATIC PLANS ====================

@router.post("/process-questionnaire/{questionnaire_id}", response_model=ProcessQuestionnaireResponse)
async def process_questionnaire(
    questionnaire_id: str,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    """Create recovery plans for every student who missed an indicator on the questionnaire"""
    await get_questionnaire_or_404(db, questionnaire_id)
    return await auto_improvement_plan_service.process_questionnaire_results(db, questionnaire_id)


@router.post("/process-student/{student_id}/{questionnaire_id}", response_model=ProcessStudentResponse)
async def process_student(
    student_id: str,
    questionnaire_id: str,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    return await auto_improvement_plan_service.process_student(db, student_id, questionnaire_id)


# ==================== PLAN CRUD ====================

@router.post("", response_model=ImprovementPlanResponse, status_code=status.HTTP_201_CREATED)
async def create_plan(
    data: ImprovementPlanCreate,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    """Teachers create plans as themselves; admins must name the teacher"""
    teacher = await get_teacher_profile_for(db, current_user)
    if teacher:
        teacher_id = teacher.id
    elif current_user.is_admin and data.teacher_id:
        teacher_id = data.teacher_id
    else:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="teacher_id is required")

    return await improvement_plan_service.create_plan(db, data, teacher_id)


@router.get("/{plan_id}", response_model=ImprovementPlanResponse)
async def get_plan(
    plan_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    plan = await improvement_plan_service.get_plan(db, plan_id)
    await _ensure_plan_viewer(db, current_user, plan)
    return plan


@router.put("/{plan_id}", response_model=ImprovementPlanResponse)
async def update_plan(
    plan_id: str,
    data: ImprovementPlanUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Teachers edit any field; the owning student may only leave feedback"""
    plan = await improvement_plan_service.get_plan(db, plan_id)
    await _ensure_plan_viewer(db, current_user, plan)
    student_only = current_user.role == UserRole.STUDENT
    return await improvement_plan_service.update_plan(db, plan_id, data, student_only=student_only)


@router.delete("/{plan_id}", response_model=MessageResponse)
async def delete_plan(
    plan_id: str,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    plan = await improvement_plan_service.get_plan(db, plan_id)
    await _ensure_plan_teacher(db, current_user, plan)
    await improvement_plan_service.delete_plan(db, plan_id)
    return MessageResponse(message="Plan de mejoramiento eliminado")


@router.get("/{plan_id}/resources", response_model=List[RecoveryResourceResponse])
async def list_resources(
    plan_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    plan = await improvement_plan_service.get_plan(db, plan_id)
    await _ensure_plan_viewer(db, current_user, plan)
    return await improvement_plan_service.list_resources(db, plan_id)


@router.post("/{plan_id}/resources", response_model=RecoveryResourceResponse, status_code=status.HTTP_201_CREATED)
async def add_resource(
    plan_id: str,
    data: RecoveryResourceCreate,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    plan = await improvement_plan_service.get_plan(db, plan_id)
    await _ensure_plan_teacher(db, current_user, plan)
    return await improvement_plan_service.add_resource(db, plan_id, data)


@router.get("/{plan_id}/activities", response_model=List[RecoveryActivityResponse])
async def list_activities(
    plan_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    plan = await improvement_plan_service.get_plan(db, plan_id)
    await _ensure_plan_viewer(db, current_user, plan)
    return await improvement_plan_service.list_activities(db, plan_id)


@router.post("/{plan_id}/activities", response_model=RecoveryActivityResponse, status_code=status.HTTP_201_CREATED)
async def add_activity(
    plan_id: str,
    data: RecoveryActivityCreate,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    plan = await improvement_plan_service.get_plan(db, plan_id)
    await _ensure_plan_teacher(db, current_user, plan)
    return await improvement_plan_service.add_activity(db, plan_id, data)


@router.get("/{plan_id}/progress", response_model=PlanProgressResponse)
async def get_progress(
    plan_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    plan = await improvement_plan_service.get_plan(db, plan_id)
    await _ensure_plan_viewer(db, current_user, plan)
    return await improvement_plan_service.get_progress(db, plan_id)


@router.post("/{plan_id}/send-email", response_model=MessageResponse)
async def send_plan_email(
    plan_id: str,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    plan = await improvement_plan_service.get_plan(db, plan_id)
    await _ensure_plan_teacher(db, current_user, plan)

    sent = await improvement_plan_service.send_plan_email(db, plan_id)
    if not sent:
        return MessageResponse(success=False, message="No se pudo enviar el correo del plan")
    return MessageResponse(message="Plan enviado por correo")
