"""
Unit Tests for recovery plans generated from unachieved indicators
"""
import pytest
from sqlalchemy import select

from app.core.exceptions import EvaluationResultNotFoundError, QuestionnaireNotFoundError
from app.models.improvement_plan import (
    ImprovementPlan, RecoveryResource, RecoveryActivity, ResourceType, ActivityType,
)
from app.services.auto_improvement_plan_service import (
    auto_improvement_plan_service, SUBJECT_VIDEO_URLS, DEFAULT_VIDEO_URL,
)
from app.services.indicator_evaluation_service import indicator_evaluation_service
from tests.factories import create_indicator, create_student, record_result


async def _evaluated(db_session, student, questionnaire, score: float):
    await record_result(db_session, student, questionnaire, score)
    await indicator_evaluation_service.evaluate_student_indicators(db_session, student.id, questionnaire.id)


class TestFailedIndicators:
    @pytest.mark.asyncio
    async def test_only_unachieved_returned(self, db_session, teacher, student, questionnaire):
        await create_indicator(db_session, teacher, questionnaire, passing_score=3.0, description="Suma")
        await create_indicator(db_session, teacher, questionnaire, passing_score=4.5, description="Divide")
        await _evaluated(db_session, student, questionnaire, 3.5)

        failed = await auto_improvement_plan_service.get_failed_indicators(db_session, student.id, questionnaire.id)

        assert [f["description"] for f in failed] == ["Divide"]
        assert failed[0]["passing_score"] == 4.5


class TestProcessStudent:
    """Single-student plan generation"""

    @pytest.mark.asyncio
    async def test_plan_with_resources_and_activities(self, db_session, teacher, student, questionnaire):
        await create_indicator(db_session, teacher, questionnaire, passing_score=4.0, description="Multiplica")
        await create_indicator(db_session, teacher, questionnaire, passing_score=4.5, description="Divide")
        await _evaluated(db_session, student, questionnaire, 2.5)

        result = await auto_improvement_plan_service.process_student(db_session, student.id, questionnaire.id)

        assert result["success"] is True
        assert result["failed_indicators"] == 2

        plan = await db_session.get(ImprovementPlan, result["plan_id"])
        assert plan.questionnaire_id == questionnaire.id
        assert plan.teacher_id == teacher.id
        assert plan.title == f"Plan de Recuperación - {questionnaire.subject} - {student.name}"
        assert "Multiplica (Nota mínima: 4.0, Obtenida: 2.5)" in plan.failed_achievements

        resources = (await db_session.execute(
            select(RecoveryResource)
            .where(RecoveryResource.improvement_plan_id == plan.id)
            .order_by(RecoveryResource.order_index)
        )).scalars().all()
        assert [r.resource_type for r in resources] == [ResourceType.VIDEO, ResourceType.DOCUMENT, ResourceType.LINK]
        assert [r.order_index for r in resources] == [1, 2, 3]
        assert resources[0].url == SUBJECT_VIDEO_URLS.get(teacher.subject, DEFAULT_VIDEO_URL)

        activities = (await db_session.execute(
            select(RecoveryActivity).where(RecoveryActivity.improvement_plan_id == plan.id)
        )).scalars().all()
        exercises = [a for a in activities if a.activity_type == ActivityType.EXERCISE]
        quizzes = [a for a in activities if a.activity_type == ActivityType.QUIZ]
        assert len(exercises) == 2
        assert {a.passing_score for a in exercises} == {4.0, 4.5}
        assert all(a.max_attempts == 3 for a in exercises)
        assert len(quizzes) == 1
        assert quizzes[0].max_attempts == 2
        assert quizzes[0].weight == 2.0

    @pytest.mark.asyncio
    async def test_existing_plan_not_duplicated(self, db_session, teacher, student, questionnaire):
        await create_indicator(db_session, teacher, questionnaire, passing_score=4.0)
        await _evaluated(db_session, student, questionnaire, 2.0)
        first = await auto_improvement_plan_service.process_student(db_session, student.id, questionnaire.id)

        second = await auto_improvement_plan_service.process_student(db_session, student.id, questionnaire.id)

        assert second["success"] is False
        assert second["plan_id"] == first["plan_id"]

    @pytest.mark.asyncio
    async def test_all_indicators_achieved(self, db_session, teacher, student, questionnaire):
        await create_indicator(db_session, teacher, questionnaire, passing_score=3.0)
        await _evaluated(db_session, student, questionnaire, 4.0)

        result = await auto_improvement_plan_service.process_student(db_session, student.id, questionnaire.id)

        assert result["success"] is False
        assert "alcanzó todos" in result["message"]

    @pytest.mark.asyncio
    async def test_no_result(self, db_session, student, questionnaire):
        with pytest.raises(EvaluationResultNotFoundError):
            await auto_improvement_plan_service.process_student(db_session, student.id, questionnaire.id)

    @pytest.mark.asyncio
    async def test_unknown_questionnaire(self, db_session, student):
        with pytest.raises(QuestionnaireNotFoundError):
            await auto_improvement_plan_service.process_student(
                db_session, student.id, "00000000-0000-0000-0000-000000000000"
            )


class TestProcessQuestionnaire:
    @pytest.mark.asyncio
    async def test_plans_only_for_students_with_failures(self, db_session, teacher, student, questionnaire):
        await create_indicator(db_session, teacher, questionnaire, passing_score=3.5)
        strong = await create_student(db_session, teacher=teacher)
        await _evaluated(db_session, student, questionnaire, 2.0)
        await _evaluated(db_session, strong, questionnaire, 5.0)

        result = await auto_improvement_plan_service.process_questionnaire_results(db_session, questionnaire.id)

        assert result["students_processed"] == 2
        assert result["plans_created"] == 1
        assert result["plans"][0]["student_id"] == student.id
        assert result["plans"][0]["student_name"] == student.name

        again = await auto_improvement_plan_service.process_questionnaire_results(db_session, questionnaire.id)
        assert again["plans_created"] == 0
