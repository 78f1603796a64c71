"""
Improvement Plan Service - Business logic for plans and recovery material

Handles:
- Plan CRUD with the duplicate-active-plan rule
- Recovery resources and activities
- Student progress (resource views, activity completion)
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from datetime import datetime
from typing import Optional, List, Dict, Any

from app.core.exceptions import (
    ImprovementPlanNotFoundError, RecoveryResourceNotFoundError, RecoveryActivityNotFoundError,
    DuplicateImprovementPlanError, AuthorizationError, AttemptLimitExceededError,
)
from app.core.logging_config import logger
from app.core.types import current_academic_year
from app.models.improvement_plan import (
    ImprovementPlan, PlanStatus, ACTIVE_PLAN_STATUSES,
    RecoveryResource, RecoveryActivity, RecoveryActivityStatus,
    RecoveryProgress, ProgressType,
)
from app.schemas.improvement_plan import (
    ImprovementPlanCreate, ImprovementPlanUpdate,
    RecoveryResourceCreate, RecoveryResourceUpdate,
    RecoveryActivityCreate, RecoveryActivityUpdate,
)
from app.services.school_service import school_service
from app.services.email_service import email_service


class ImprovementPlanService:
    """Service for managing improvement plans"""

    # ==================== PLAN CRUD ====================

    async def find_active_duplicate(
        self,
        db: AsyncSession,
        student_id: str,
        teacher_id: str,
        title: str,
        subject: str
    ) -> Optional[ImprovementPlan]:
        result = await db.execute(
            select(ImprovementPlan).where(
                ImprovementPlan.student_id == student_id,
                ImprovementPlan.teacher_id == teacher_id,
                ImprovementPlan.title == title,
                ImprovementPlan.subject == subject,
                ImprovementPlan.completed.is_(False),
                ImprovementPlan.activity_status.in_(ACTIVE_PLAN_STATUSES),
            )
        )
        return result.scalars().first()

    async def create_plan(
        self,
        db: AsyncSession,
        plan_data: ImprovementPlanCreate,
        teacher_id: str
    ) -> ImprovementPlan:
        """
        Create a plan for a student.

        Raises StudentNotFoundError / TeacherNotFoundError for unknown ids and
        DuplicateImprovementPlanError when an equivalent plan is still active.
        """
        await school_service.get_student(db, plan_data.student_id)
        await school_service.get_teacher(db, teacher_id)

        duplicate = await self.find_active_duplicate(
            db, plan_data.student_id, teacher_id, plan_data.title, plan_data.subject
        )
        if duplicate:
            raise DuplicateImprovementPlanError(duplicate.id)

        plan = ImprovementPlan(
            **plan_data.model_dump(exclude={"teacher_id"}),
            teacher_id=teacher_id,
            academic_year=current_academic_year(),
        )
        db.add(plan)
        await db.commit()
        await db.refresh(plan)

        logger.log_evaluation_event("improvement_plan_created", student_id=plan.student_id, plan_id=plan.id)
        return plan

    async def get_plan(self, db: AsyncSession, plan_id: str) -> ImprovementPlan:
        plan = await db.get(ImprovementPlan, plan_id)
        if not plan:
            raise ImprovementPlanNotFoundError(plan_id)
        return plan

    async def list_plans(
        self,
        db: AsyncSession,
        student_id: Optional[str] = None,
        teacher_id: Optional[str] = None,
        subject: Optional[str] = None,
        activity_status: Optional[PlanStatus] = None,
        completed: Optional[bool] = None
    ) -> List[ImprovementPlan]:
        query = select(ImprovementPlan)
        if student_id:
            query = query.where(ImprovementPlan.student_id == student_id)
        if teacher_id:
            query = query.where(ImprovementPlan.teacher_id == teacher_id)
        if subject:
            query = query.where(ImprovementPlan.subject == subject)
        if activity_status:
            query = query.where(ImprovementPlan.activity_status == activity_status)
        if completed is not None:
            query = query.where(ImprovementPlan.completed.is_(completed))
        result = await db.execute(query.order_by(ImprovementPlan.created_at.desc()))
        return list(result.scalars().all())

    async def update_plan(
        self,
        db: AsyncSession,
        plan_id: str,
        update_data: ImprovementPlanUpdate,
        student_only: bool = False
    ) -> ImprovementPlan:
        """
        Apply an update. With student_only, everything but student_feedback
        is ignored.
        """
        plan = await self.get_plan(db, plan_id)

        if student_only:
            changes = {}
            if "student_feedback" in update_data.model_fields_set:
                changes["student_feedback"] = update_data.student_feedback
        else:
            changes = update_data.model_dump(exclude_unset=True)

        for field, value in changes.items():
            setattr(plan, field, value)

        if changes.get("activity_status") == PlanStatus.COMPLETED:
            plan.completed = True
            plan.completion_date = datetime.utcnow()
        elif changes.get("completed") is True and plan.completion_date is None:
            plan.completion_date = datetime.utcnow()

        await db.commit()
        await db.refresh(plan)

        logger.info(f"Updated improvement plan {plan_id}: {', '.join(changes.keys())}")
        return plan

    async def delete_plan(self, db: AsyncSession, plan_id: str) -> None:
        plan = await self.get_plan(db, plan_id)
        await db.delete(plan)
        await db.commit()
        logger.info(f"Deleted improvement plan {plan_id}")

    # ==================== RESOURCES ====================

    async def list_resources(self, db: AsyncSession, plan_id: str) -> List[RecoveryResource]:
        await self.get_plan(db, plan_id)
        result = await db.execute(
            select(RecoveryResource)
            .where(RecoveryResource.improvement_plan_id == plan_id)
            .order_by(RecoveryResource.order_index, RecoveryResource.created_at)
        )
        return list(result.scalars().all())

    async def add_resource(self, db: AsyncSession, plan_id: str, data: RecoveryResourceCreate) -> RecoveryResource:
        await self.get_plan(db, plan_id)
        resource = RecoveryResource(improvement_plan_id=plan_id, **data.model_dump())
        db.add(resource)
        await db.commit()
        await db.refresh(resource)
        return resource

    async def get_resource(self, db: AsyncSession, resource_id: str) -> RecoveryResource:
        resource = await db.get(RecoveryResource, resource_id)
        if not resource:
            raise RecoveryResourceNotFoundError(resource_id)
        return resource

    async def update_resource(self, db: AsyncSession, resource_id: str, data: RecoveryResourceUpdate) -> RecoveryResource:
        resource = await self.get_resource(db, resource_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(resource, field, value)
        await db.commit()
        await db.refresh(resource)
        return resource

    async def delete_resource(self, db: AsyncSession, resource_id: str) -> None:
        resource = await self.get_resource(db, resource_id)
        await db.delete(resource)
        await db.commit()

    async def mark_resource_viewed(
        self,
        db: AsyncSession,
        resource_id: str,
        student_id: str,
        completion_percentage: int = 100
    ) -> RecoveryResource:
        resource = await self.get_resource(db, resource_id)
        plan = await self.get_plan(db, resource.improvement_plan_id)
        if plan.student_id != student_id:
            raise AuthorizationError("This resource belongs to another student's plan")

        now = datetime.utcnow()
        resource.viewed = True
        resource.viewed_at = now
        resource.completion_percentage = completion_percentage

        db.add(RecoveryProgress(
            improvement_plan_id=plan.id,
            student_id=student_id,
            resource_id=resource.id,
            progress_type=ProgressType.RESOURCE_VIEWED,
            progress_data={"completion_percentage": completion_percentage},
        ))
        plan.last_activity_date = now

        await db.commit()
        await db.refresh(resource)
        return resource

    # ==================== ACTIVITIES ====================

    async def list_activities(self, db: AsyncSession, plan_id: str) -> List[RecoveryActivity]:
        await self.get_plan(db, plan_id)
        result = await db.execute(
            select(RecoveryActivity)
            .where(RecoveryActivity.improvement_plan_id == plan_id)
            .order_by(RecoveryActivity.due_date, RecoveryActivity.created_at)
        )
        return list(result.scalars().all())

    async def add_activity(self, db: AsyncSession, plan_id: str, data: RecoveryActivityCreate) -> RecoveryActivity:
        await self.get_plan(db, plan_id)
        activity = RecoveryActivity(improvement_plan_id=plan_id, **data.model_dump())
        db.add(activity)
        await db.commit()
        await db.refresh(activity)
        return activity

    async def get_activity(self, db: AsyncSession, activity_id: str) -> RecoveryActivity:
        activity = await db.get(RecoveryActivity, activity_id)
        if not activity:
            raise RecoveryActivityNotFoundError(activity_id)
        return activity

    async def update_activity(self, db: AsyncSession, activity_id: str, data: RecoveryActivityUpdate) -> RecoveryActivity:
        activity = await self.get_activity(db, activity_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(activity, field, value)
        await db.commit()
        await db.refresh(activity)
        return activity

    async def delete_activity(self, db: AsyncSession, activity_id: str) -> None:
        activity = await self.get_activity(db, activity_id)
        await db.delete(activity)
        await db.commit()

    async def complete_activity(
        self,
        db: AsyncSession,
        activity_id: str,
        student_id: str,
        score: float,
        notes: Optional[str] = None
    ) -> RecoveryActivity:
        """
        Record a student's attempt on a recovery activity.

        Raises AuthorizationError when the plan belongs to someone else and
        AttemptLimitExceededError when no attempts are left.
        """
        activity = await self.get_activity(db, activity_id)
        plan = await self.get_plan(db, activity.improvement_plan_id)

        if plan.student_id != student_id:
            raise AuthorizationError("This activity belongs to another student's plan")
        if activity.attempts_exhausted:
            raise AttemptLimitExceededError(activity.max_attempts)

        now = datetime.utcnow()
        passed = score >= activity.passing_score
        activity.status = RecoveryActivityStatus.COMPLETED if passed else RecoveryActivityStatus.FAILED
        activity.student_score = score
        activity.attempts_count += 1
        activity.completed_at = now
        activity.student_notes = notes

        db.add(RecoveryProgress(
            improvement_plan_id=plan.id,
            student_id=student_id,
            activity_id=activity.id,
            progress_type=ProgressType.ACTIVITY_COMPLETED,
            progress_data={"score": score, "passed": passed, "attempt": activity.attempts_count},
            notes=notes,
        ))

        plan.attempts_count += 1
        plan.last_activity_date = now
        if plan.activity_status == PlanStatus.PENDING:
            plan.activity_status = PlanStatus.IN_PROGRESS

        await db.commit()
        await db.refresh(activity)

        logger.log_evaluation_event(
            "recovery_activity_completed", student_id=student_id, score=score,
            activity_id=activity.id, passed=passed,
        )
        return activity

    # ==================== PROGRESS ====================

    async def get_progress(self, db: AsyncSession, plan_id: str) -> Dict[str, Any]:
        await self.get_plan(db, plan_id)

        progress_result = await db.execute(
            select(RecoveryProgress)
            .where(RecoveryProgress.improvement_plan_id == plan_id)
            .order_by(RecoveryProgress.created_at.desc())
        )
        progress = list(progress_result.scalars().all())

        resources_result = await db.execute(
            select(
                func.count(RecoveryResource.id),
                func.count(RecoveryResource.viewed_at),
            ).where(RecoveryResource.improvement_plan_id == plan_id)
        )
        total_resources, viewed_resources = resources_result.one()

        activities_result = await db.execute(
            select(RecoveryActivity.status, RecoveryActivity.student_score)
            .where(RecoveryActivity.improvement_plan_id == plan_id)
        )
        activities = activities_result.all()
        scores = [s for _, s in activities if s is not None]

        return {
            "plan_id": plan_id,
            "progress": progress,
            "statistics": {
                "total_resources": total_resources,
                "viewed_resources": viewed_resources,
                "total_activities": len(activities),
                "completed_activities": sum(
                    1 for status, _ in activities if status == RecoveryActivityStatus.COMPLETED
                ),
                "average_score": round(sum(scores) / len(scores), 2) if scores else None,
            },
        }

    # ==================== NOTIFICATIONS ====================

    async def send_plan_email(self, db: AsyncSession, plan_id: str) -> bool:
        """Email the plan to the student and guardian; sets email_sent on success"""
        plan = await self.get_plan(db, plan_id)
        student = await school_service.get_student(db, plan.student_id)

        sent = await email_service.send_improvement_plan_email(
            student_email=student.email,
            guardian_email=student.contact_email,
            student_name=student.name,
            plan_title=plan.title,
            subject_name=plan.subject,
            deadline=plan.deadline.isoformat(),
            failed_achievements=plan.failed_achievements,
            activities=plan.activities,
        )
        if sent:
            plan.email_sent = True
            await db.commit()
        return sent


# Singleton instance
improvement_plan_service = ImprovementPlanService()
