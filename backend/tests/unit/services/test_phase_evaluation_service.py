"""
Unit Tests for phase closing: phase plans, habilitación and reports
"""
import pytest
from datetime import date, timedelta
from sqlalchemy import select

from app.core.exceptions import InvalidPhaseError
from app.core.types import current_academic_year
from app.models.grade import Grade
from app.models.indicator import Indicator, StudentIndicator
from app.models.improvement_plan import ImprovementPlan
from app.services.indicator_evaluation_service import indicator_evaluation_service
from app.services.phase_evaluation_service import phase_evaluation_service, validate_phase
from tests.factories import create_indicator, create_questionnaire, create_student, record_result


async def _grade(db_session, student, **phases) -> Grade:
    grade = Grade(student_id=student.id, academic_year=current_academic_year(), **phases)
    db_session.add(grade)
    await db_session.commit()
    return grade


async def _plans(db_session, student):
    result = await db_session.execute(
        select(ImprovementPlan).where(ImprovementPlan.student_id == student.id).order_by(ImprovementPlan.created_at)
    )
    return list(result.scalars().all())


class TestValidatePhase:
    def test_valid_phases(self):
        for phase in (1, 2, 3, 4):
            assert validate_phase(phase) == phase

    @pytest.mark.parametrize("phase", [0, 5, -1])
    def test_invalid_phases(self, phase):
        with pytest.raises(InvalidPhaseError):
            validate_phase(phase)


class TestEvaluatePhase:
    """Phase plans for students below the passing mark"""

    @pytest.mark.asyncio
    async def test_plan_created_below_passing_score(self, db_session, teacher, student):
        questionnaire = await create_questionnaire(db_session, teacher, phase=1, title="Fracciones")
        await record_result(db_session, student, questionnaire, 2.5)
        await create_indicator(db_session, teacher, phase=1, grade=student.grade, description="Suma fracciones")
        await _grade(db_session, student, phase1=2.5, average=2.5)

        result = await phase_evaluation_service.evaluate_phase(db_session, 1)

        assert result["students_evaluated"] == 1
        assert result["plans_created"] == 1
        assert result["failed_subjects"] == 0
        assert result["emails_sent"] == 0
        assert result["skipped_students"] == []

        plans = await _plans(db_session, student)
        assert len(plans) == 1
        plan = plans[0]
        assert plan.title == f"Plan de Mejoramiento - Fase 1 - {teacher.subject}"
        assert plan.subject == teacher.subject
        assert plan.teacher_id == teacher.id
        assert plan.deadline == date.today() + timedelta(days=14)
        assert "• Suma fracciones" in plan.failed_achievements
        assert "Fracciones (Nota: 2.5)" in plan.activities

    @pytest.mark.asyncio
    async def test_failed_global_indicators_copied(self, db_session, teacher, student):
        await create_indicator(db_session, teacher, phase=1, grade=student.grade, description="Lee textos")
        await _grade(db_session, student, phase1=3.0)

        await phase_evaluation_service.evaluate_phase(db_session, 1)

        copies = (await db_session.execute(
            select(Indicator).where(Indicator.student_id == student.id)
        )).scalars().all()
        assert len(copies) == 1
        assert copies[0].description == "Lee textos"
        assert copies[0].achieved is False
        assert copies[0].teacher_id == teacher.id

    @pytest.mark.asyncio
    async def test_achieved_indicator_not_copied(self, db_session, teacher, student):
        indicator = await create_indicator(db_session, teacher, phase=1, grade=student.grade)
        db_session.add(StudentIndicator(student_id=student.id, indicator_id=indicator.id, achieved=True))
        await db_session.commit()
        await _grade(db_session, student, phase1=3.0)

        await phase_evaluation_service.evaluate_phase(db_session, 1)

        plan = (await _plans(db_session, student))[0]
        assert indicator.description in plan.passed_achievements
        copies = (await db_session.execute(
            select(Indicator).where(Indicator.student_id == student.id)
        )).scalars().all()
        assert copies == []

    @pytest.mark.asyncio
    async def test_recovered_indicator_reported_as_passed(self, db_session, teacher, student, smtp_send):
        questionnaire = await create_questionnaire(db_session, teacher, phase=1)
        await create_indicator(
            db_session, teacher, questionnaire, passing_score=3.5, grade=student.grade, description="Suma fracciones"
        )
        evaluation = await record_result(db_session, student, questionnaire, 2.0)
        await indicator_evaluation_service.evaluate_student_indicators(db_session, student.id, questionnaire.id)
        await _grade(db_session, student, phase1=2.0)
        await phase_evaluation_service.evaluate_phase(db_session, 1)

        evaluation.best_score = 5.0
        await db_session.commit()
        await indicator_evaluation_service.evaluate_student_indicators(db_session, student.id, questionnaire.id)
        smtp_send.reset_mock()
        await phase_evaluation_service.evaluate_phase(db_session, 1)

        html = smtp_send.call_args.args[2]
        assert "Indicadores por reforzar" not in html
        assert "Suma fracciones" not in html

    @pytest.mark.asyncio
    async def test_no_plan_when_passing(self, db_session, teacher, student):
        await _grade(db_session, student, phase1=4.2)

        result = await phase_evaluation_service.evaluate_phase(db_session, 1)

        assert result["students_evaluated"] == 1
        assert result["plans_created"] == 0
        assert await _plans(db_session, student) == []

    @pytest.mark.asyncio
    async def test_rerun_does_not_duplicate(self, db_session, teacher, student):
        await create_indicator(db_session, teacher, phase=1, grade=student.grade)
        await _grade(db_session, student, phase1=2.0)

        await phase_evaluation_service.evaluate_phase(db_session, 1)
        second = await phase_evaluation_service.evaluate_phase(db_session, 1)

        assert second["plans_created"] == 0
        assert len(await _plans(db_session, student)) == 1
        copies = (await db_session.execute(
            select(Indicator).where(Indicator.student_id == student.id)
        )).scalars().all()
        assert len(copies) == 1

    @pytest.mark.asyncio
    async def test_students_without_phase_grade_ignored(self, db_session, teacher, student):
        await _grade(db_session, student, phase2=2.0)

        result = await phase_evaluation_service.evaluate_phase(db_session, 1)

        assert result["students_evaluated"] == 0

    @pytest.mark.asyncio
    async def test_student_without_teacher_skipped(self, db_session):
        orphan = await create_student(db_session)
        await _grade(db_session, orphan, phase1=1.0)

        result = await phase_evaluation_service.evaluate_phase(db_session, 1)

        assert result["students_evaluated"] == 1
        assert result["plans_created"] == 0
        assert result["skipped_students"] == [orphan.id]

    @pytest.mark.asyncio
    async def test_invalid_phase(self, db_session):
        with pytest.raises(InvalidPhaseError):
            await phase_evaluation_service.evaluate_phase(db_session, 5)


class TestFinalPhase:
    """Phase 4 closes the year: habilitación below the final threshold"""

    @pytest.mark.asyncio
    async def test_remedial_plan_below_final_score(self, db_session, teacher, student):
        await _grade(db_session, student, phase1=2.0, phase2=3.0, phase3=2.5, phase4=3.6, average=2.78)

        result = await phase_evaluation_service.evaluate_phase(db_session, 4)

        assert result["failed_subjects"] == 1
        assert result["plans_created"] == 1
        plans = await _plans(db_session, student)
        assert [p.title for p in plans] == [f"HABILITACIÓN - {teacher.subject} - Año Escolar"]
        assert plans[0].deadline == date.today() + timedelta(days=30)
        assert "2.78" in plans[0].description

    @pytest.mark.asyncio
    async def test_phase_and_remedial_plans(self, db_session, teacher, student):
        await _grade(db_session, student, phase1=2.0, phase2=2.0, phase3=2.0, phase4=2.0, average=2.0)

        result = await phase_evaluation_service.evaluate_phase(db_session, 4)

        assert result["plans_created"] == 2
        titles = {p.title for p in await _plans(db_session, student)}
        assert titles == {
            f"Plan de Mejoramiento - Fase 4 - {teacher.subject}",
            f"HABILITACIÓN - {teacher.subject} - Año Escolar",
        }

    @pytest.mark.asyncio
    async def test_no_remedial_plan_when_year_passed(self, db_session, teacher, student):
        await _grade(db_session, student, phase1=4.0, phase2=4.0, phase3=4.0, phase4=4.0, average=4.0)

        result = await phase_evaluation_service.evaluate_phase(db_session, 4)

        assert result["failed_subjects"] == 0
        assert result["plans_created"] == 0


class TestPhaseNotifications:
    """Results mail to student and guardian with the PDF attached"""

    @pytest.mark.asyncio
    async def test_results_email_sent(self, db_session, teacher, student, smtp_send):
        await create_indicator(db_session, teacher, phase=1, grade=student.grade, description="Lee textos")
        await _grade(db_session, student, phase1=2.5)

        result = await phase_evaluation_service.evaluate_phase(db_session, 1)

        assert result["emails_sent"] == 1
        smtp_send.assert_awaited_once()
        recipients, subject, html, _, attachments = smtp_send.call_args.args
        assert recipients == [student.email, student.contact_email]
        assert subject == f"Resultados Fase 1 - {student.name} - NO APROBÓ"
        assert "Lee textos" in html
        filename, content, subtype = attachments[0]
        assert filename == f"Resultados_Fase_1_{'_'.join(student.name.split())}.pdf"
        assert content.startswith(b"%PDF")
        assert subtype == "pdf"
        plans = await _plans(db_session, student)
        assert [p.email_sent for p in plans] == [True]

    @pytest.mark.asyncio
    async def test_passing_student_subject(self, db_session, teacher, student, smtp_send):
        await _grade(db_session, student, phase2=4.5)

        result = await phase_evaluation_service.evaluate_phase(db_session, 2)

        assert result["emails_sent"] == 1
        assert result["plans_created"] == 0
        assert smtp_send.call_args.args[1] == f"Resultados Fase 2 - {student.name} - APROBÓ"

    @pytest.mark.asyncio
    async def test_failed_send_leaves_plan_unflagged(self, db_session, teacher, student, smtp_send):
        smtp_send.return_value = False
        await _grade(db_session, student, phase1=2.0)

        result = await phase_evaluation_service.evaluate_phase(db_session, 1)

        assert result["emails_sent"] == 0
        assert [p.email_sent for p in await _plans(db_session, student)] == [False]


class TestStatsAndReports:
    @pytest.mark.asyncio
    async def test_phase_stats(self, db_session, teacher, student):
        other = await create_student(db_session, teacher=teacher)
        await _grade(db_session, student, phase2=4.0)
        await _grade(db_session, other, phase2=3.0)

        stats = await phase_evaluation_service.phase_stats(db_session, 2)

        assert stats == {"phase": 2, "total": 2, "approved": 1, "failed": 1, "average_score": 3.5}

    @pytest.mark.asyncio
    async def test_phase_stats_empty(self, db_session):
        stats = await phase_evaluation_service.phase_stats(db_session, 3)

        assert stats["total"] == 0
        assert stats["average_score"] == 0.0

    @pytest.mark.asyncio
    async def test_phase_report_pdf(self, db_session, teacher, student):
        await _grade(db_session, student, phase1=2.0)
        await phase_evaluation_service.evaluate_phase(db_session, 1)

        filename, content = await phase_evaluation_service.phase_report(db_session, student.id, 1)

        assert filename.endswith(".pdf")
        assert content.startswith(b"%PDF")

    @pytest.mark.asyncio
    async def test_final_report_pdf(self, db_session, student):
        await _grade(db_session, student, phase1=4.0, phase2=3.0, average=3.5)

        filename, content = await phase_evaluation_service.final_report(db_session, student.id)

        assert filename.endswith(".pdf")
        assert content.startswith(b"%PDF")
