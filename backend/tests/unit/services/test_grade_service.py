"""
Unit Tests for the grade service: phase averages and definitive grades
"""
import pytest
from sqlalchemy import select

from app.core.exceptions import TeacherNotAssignedError
from app.models.grade import Grade, PhaseAverage
from app.services.grade_service import grade_service, overall_average
from tests.factories import create_questionnaire, create_student, create_teacher, record_result


class TestOverallAverage:
    """Mean of the phases graded above zero"""

    def test_ignores_missing_and_zero_phases(self):
        grade = Grade(phase1=4.0, phase2=None, phase3=0, phase4=3.0)

        assert overall_average(grade) == 3.5

    def test_no_phases(self):
        assert overall_average(Grade()) == 0.0

    def test_rounding(self):
        grade = Grade(phase1=3.0, phase2=4.0, phase3=4.0)

        assert overall_average(grade) == 3.67


class TestRecalculatePhaseAverages:
    """System averages from quiz results"""

    @pytest.mark.asyncio
    async def test_average_of_phase_questionnaires(self, db_session, teacher, student):
        first = await create_questionnaire(db_session, teacher, phase=1)
        second = await create_questionnaire(db_session, teacher, phase=1)
        third = await create_questionnaire(db_session, teacher, phase=2)
        await record_result(db_session, student, first, 4.0)
        await record_result(db_session, student, second, 3.0)
        await record_result(db_session, student, third, 2.0)

        result = await grade_service.recalculate_phase_averages(db_session, student.id)

        assert result["teacher_id"] == teacher.id
        assert result["phases"]["phase1"]["system_average"] == 3.5
        assert result["phases"]["phase1"]["evaluations_completed"] == 2
        assert result["phases"]["phase2"]["definitive"] == 2.0
        assert result["average"] == 2.75

        grade = (await db_session.execute(select(Grade).where(Grade.student_id == student.id))).scalar_one()
        assert grade.phase1 == 3.5
        assert grade.phase2 == 2.0
        assert grade.phase3 is None
        assert grade.average == 2.75

    @pytest.mark.asyncio
    async def test_prueba_saber_excluded(self, db_session, teacher, student):
        regular = await create_questionnaire(db_session, teacher, phase=1)
        saber = await create_questionnaire(db_session, teacher, phase=1, is_prueba_saber=True)
        await record_result(db_session, student, regular, 4.0)
        await record_result(db_session, student, saber, 1.0)

        result = await grade_service.recalculate_phase_averages(db_session, student.id)

        assert result["phases"]["phase1"]["system_average"] == 4.0
        assert result["phases"]["phase1"]["evaluations_completed"] == 1

    @pytest.mark.asyncio
    async def test_recalculation_updates_existing_rows(self, db_session, teacher, student):
        questionnaire = await create_questionnaire(db_session, teacher, phase=1)
        result = await record_result(db_session, student, questionnaire, 2.0)
        await grade_service.recalculate_phase_averages(db_session, student.id)

        result.best_score = 4.5
        await db_session.commit()
        await grade_service.recalculate_phase_averages(db_session, student.id)

        rows = (await db_session.execute(
            select(PhaseAverage).where(PhaseAverage.student_id == student.id)
        )).scalars().all()
        assert len(rows) == 1
        assert rows[0].average_score == 4.5
        grades = (await db_session.execute(select(Grade).where(Grade.student_id == student.id))).scalars().all()
        assert len(grades) == 1
        assert grades[0].phase1 == 4.5

    @pytest.mark.asyncio
    async def test_no_teacher_assigned(self, db_session):
        orphan = await create_student(db_session)

        with pytest.raises(TeacherNotAssignedError):
            await grade_service.recalculate_phase_averages(db_session, orphan.id)

    @pytest.mark.asyncio
    async def test_explicit_teacher_skips_assignment_lookup(self, db_session, teacher):
        orphan = await create_student(db_session)
        questionnaire = await create_questionnaire(db_session, teacher, phase=3)
        await record_result(db_session, orphan, questionnaire, 3.8)

        result = await grade_service.recalculate_phase_averages(db_session, orphan.id, teacher.id)

        assert result["phases"]["phase3"]["definitive"] == 3.8


class TestManualScores:
    """Teacher's manual score is averaged with the system score"""

    @pytest.mark.asyncio
    async def test_manual_score_averaged(self, db_session, teacher, student):
        questionnaire = await create_questionnaire(db_session, teacher, phase=1)
        await record_result(db_session, student, questionnaire, 3.0)

        result = await grade_service.set_manual_score(db_session, student.id, teacher.id, 1, 4.0)

        assert result["phases"]["phase1"]["system_average"] == 3.0
        assert result["phases"]["phase1"]["definitive"] == 3.5
        row = (await db_session.execute(
            select(PhaseAverage).where(PhaseAverage.student_id == student.id, PhaseAverage.phase == 1)
        )).scalar_one()
        assert row.average_score_manual == 4.0
        assert row.average_score == 3.0

    @pytest.mark.asyncio
    async def test_manual_score_updates_existing(self, db_session, teacher, student):
        questionnaire = await create_questionnaire(db_session, teacher, phase=1)
        await record_result(db_session, student, questionnaire, 3.0)
        await grade_service.set_manual_score(db_session, student.id, teacher.id, 1, 4.0)

        result = await grade_service.set_manual_score(db_session, student.id, teacher.id, 1, 5.0)

        assert result["phases"]["phase1"]["definitive"] == 4.0

    @pytest.mark.asyncio
    async def test_manual_score_without_results_kept_for_later(self, db_session, teacher, student):
        result = await grade_service.set_manual_score(db_session, student.id, teacher.id, 2, 4.0)

        assert result["phases"] == {}
        phase_averages = await grade_service.get_phase_averages(db_session, student.id)
        assert [(p.phase, p.average_score_manual) for p in phase_averages] == [(2, 4.0)]


class TestRecalculateForTeacher:
    @pytest.mark.asyncio
    async def test_all_assigned_students(self, db_session, teacher, student):
        second = await create_student(db_session, teacher=teacher)
        other_teacher = await create_teacher(db_session, subject='Lenguaje')
        await create_student(db_session, teacher=other_teacher)

        result = await grade_service.recalculate_for_teacher(db_session, teacher.id)

        assert result["students_processed"] == 2
        assert {r["student_id"] for r in result["results"]} == {student.id, second.id}
