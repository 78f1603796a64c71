"""
Grade Service - phase averages and definitive grades

The system average of a phase is the mean of the student's best scores on the
phase's questionnaires (Prueba Saber excluded). When the teacher has entered
a manual score for the phase, the definitive grade is the mean of both.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from collections import defaultdict
from typing import Optional, Dict, Any, List

from app.core.exceptions import TeacherNotAssignedError
from app.core.logging_config import logger
from app.core.types import current_academic_year
from app.models.questionnaire import Questionnaire, EvaluationResult
from app.models.grade import Grade, PhaseAverage
from app.services.school_service import school_service


def overall_average(grade: Grade) -> float:
    """Mean of the phases that have a grade above zero, 0 when none do"""
    valid = [v for v in grade.phase_scores().values() if v is not None and v > 0]
    if not valid:
        return 0.0
    return round(sum(valid) / len(valid), 2)


class GradeService:
    """Keeps grades and phase_averages in sync with quiz results"""

    async def _system_averages(self, db: AsyncSession, student_id: str, year: int) -> Dict[int, Dict[str, Any]]:
        result = await db.execute(
            select(Questionnaire.phase, EvaluationResult.best_score)
            .join(EvaluationResult, EvaluationResult.questionnaire_id == Questionnaire.id)
            .where(
                EvaluationResult.student_id == student_id,
                EvaluationResult.academic_year == year,
                Questionnaire.is_prueba_saber.is_(False),
            )
        )
        by_phase: Dict[int, List[float]] = defaultdict(list)
        for phase, best_score in result.all():
            by_phase[phase].append(best_score)

        return {
            phase: {
                "average": round(sum(scores) / len(scores), 2),
                "evaluations": len(scores),
            }
            for phase, scores in sorted(by_phase.items())
        }

    async def recalculate_phase_averages(
        self,
        db: AsyncSession,
        student_id: str,
        teacher_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Recompute the student's phase averages and definitive grades for the
        current academic year.

        Raises TeacherNotAssignedError when no teacher is given and the student
        has no assignment for the year.
        """
        year = current_academic_year()

        if not teacher_id:
            teacher = await school_service.get_assigned_teacher(db, student_id, year)
            if not teacher:
                logger.warning(f"No teacher assigned to student {student_id} for {year}")
                raise TeacherNotAssignedError(student_id, year)
            teacher_id = teacher.id

        system = await self._system_averages(db, student_id, year)

        existing_result = await db.execute(
            select(PhaseAverage).where(
                PhaseAverage.student_id == student_id,
                PhaseAverage.teacher_id == teacher_id,
                PhaseAverage.academic_year == year,
            )
        )
        phase_rows = {row.phase: row for row in existing_result.scalars().all()}

        definitive: Dict[str, float] = {}
        for phase, data in system.items():
            manual = phase_rows[phase].average_score_manual if phase in phase_rows else None
            if manual is not None:
                definitive[f"phase{phase}"] = round((data["average"] + manual) / 2, 2)
            else:
                definitive[f"phase{phase}"] = data["average"]

        grade = await school_service.get_grade(db, student_id, year)
        if grade is None:
            grade = Grade(student_id=student_id, academic_year=year)
            db.add(grade)
        for column, value in definitive.items():
            setattr(grade, column, value)
        grade.average = overall_average(grade)

        for phase, data in system.items():
            row = phase_rows.get(phase)
            if row:
                row.average_score = data["average"]
                row.evaluations_completed = data["evaluations"]
            else:
                db.add(PhaseAverage(
                    student_id=student_id,
                    teacher_id=teacher_id,
                    phase=phase,
                    average_score=data["average"],
                    evaluations_completed=data["evaluations"],
                    academic_year=year,
                ))

        await db.commit()

        logger.log_evaluation_event(
            "phase_averages_recalculated",
            student_id=student_id,
            score=grade.average,
            teacher_id=teacher_id,
            phases=definitive,
        )

        return {
            "student_id": student_id,
            "teacher_id": teacher_id,
            "academic_year": year,
            "phases": {
                f"phase{phase}": {
                    "system_average": data["average"],
                    "evaluations_completed": data["evaluations"],
                    "definitive": definitive[f"phase{phase}"],
                }
                for phase, data in system.items()
            },
            "average": grade.average,
        }

    async def recalculate_for_teacher(self, db: AsyncSession, teacher_id: str) -> Dict[str, Any]:
        """Recalculate every student assigned to the teacher"""
        student_ids = await school_service.get_teacher_student_ids(db, teacher_id)

        results = []
        for student_id in student_ids:
            result = await self.recalculate_phase_averages(db, student_id, teacher_id)
            results.append(result)

        logger.info(f"Recalculated phase averages for {len(results)} students of teacher {teacher_id}")
        return {
            "teacher_id": teacher_id,
            "students_processed": len(results),
            "results": results,
        }

    async def set_manual_score(
        self,
        db: AsyncSession,
        student_id: str,
        teacher_id: str,
        phase: int,
        manual_score: float
    ) -> Dict[str, Any]:
        """Store the teacher's manual score for a phase and recalculate"""
        year = current_academic_year()
        await school_service.get_student(db, student_id)

        result = await db.execute(
            select(PhaseAverage).where(
                PhaseAverage.student_id == student_id,
                PhaseAverage.teacher_id == teacher_id,
                PhaseAverage.phase == phase,
                PhaseAverage.academic_year == year,
            )
        )
        row = result.scalar_one_or_none()
        if row:
            row.average_score_manual = manual_score
        else:
            db.add(PhaseAverage(
                student_id=student_id,
                teacher_id=teacher_id,
                phase=phase,
                average_score_manual=manual_score,
                evaluations_completed=0,
                academic_year=year,
            ))
        await db.commit()

        logger.info(f"Manual score {manual_score} set for student {student_id}, phase {phase}")
        return await self.recalculate_phase_averages(db, student_id, teacher_id)

    async def get_phase_averages(self, db: AsyncSession, student_id: str) -> List[PhaseAverage]:
        result = await db.execute(
            select(PhaseAverage)
            .where(
                PhaseAverage.student_id == student_id,
                PhaseAverage.academic_year == current_academic_year(),
            )
            .order_by(PhaseAverage.phase)
        )
        return list(result.scalars().all())


# Singleton instance
grade_service = GradeService()
