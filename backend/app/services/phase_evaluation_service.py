"""
Phase Evaluation Service

End-of-phase batch: for every student with a grade in the phase, generate an
improvement plan when the phase grade is below the passing mark, a
habilitación plan when the year closes below the final threshold, and send
the phase results (PDF attached) to the student and guardian.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_, and_
from datetime import date, timedelta
from typing import Dict, Any, List, Optional, Tuple

from app.core.config import settings
from app.core.exceptions import InvalidPhaseError, DocumentGenerationError
from app.core.logging_config import logger
from app.core.types import current_academic_year
from app.models.school import Student, Teacher
from app.models.grade import Grade
from app.models.indicator import Indicator, StudentIndicator
from app.models.questionnaire import Questionnaire, EvaluationResult
from app.models.improvement_plan import ImprovementPlan, PlanStatus
from app.services.school_service import school_service
from app.services.improvement_plan_service import improvement_plan_service
from app.services.report_service import report_service
from app.services.email_service import email_service


def validate_phase(phase: int) -> int:
    if not isinstance(phase, int) or phase < 1 or phase > settings.PHASE_COUNT:
        raise InvalidPhaseError(phase, settings.PHASE_COUNT)
    return phase


def _indicator_line(indicator: Indicator, with_phase: bool = False) -> str:
    if with_phase:
        return f"• {indicator.description} ({indicator.subject} - Fase {indicator.phase})"
    return f"• {indicator.description} ({indicator.subject})"


class PhaseEvaluationService:
    """Phase closing: plans, habilitación, reports and notifications"""

    async def _student_indicators(
        self,
        db: AsyncSession,
        student: Student,
        phase: Optional[int] = None
    ) -> Tuple[List[Indicator], List[Indicator]]:
        """
        Failed and passed indicators for the student: student-specific ones
        plus the globals of the student's grade. A student_indicators row
        overrides the indicator's own flag, and a student-specific copy
        hides the global it was copied from.
        """
        query = select(Indicator).where(
            or_(
                Indicator.student_id == student.id,
                and_(Indicator.student_id.is_(None), Indicator.grade == student.grade),
            )
        )
        if phase is not None:
            query = query.where(Indicator.phase == phase)
        result = await db.execute(query.order_by(Indicator.subject, Indicator.created_at))
        indicators = list(result.scalars().all())
        if not indicators:
            return [], []

        records_result = await db.execute(
            select(StudentIndicator.indicator_id, StudentIndicator.achieved).where(
                StudentIndicator.student_id == student.id,
                StudentIndicator.indicator_id.in_([i.id for i in indicators]),
            )
        )
        achieved_by_id = dict(records_result.all())

        own_keys = {
            (i.description, i.subject, i.phase) for i in indicators if i.student_id == student.id
        }
        # evaluation records on a hidden global carry over to its copy
        global_achieved = {
            (i.description, i.subject, i.phase): achieved_by_id[i.id]
            for i in indicators
            if i.student_id is None and i.id in achieved_by_id
        }
        failed, passed = [], []
        for indicator in indicators:
            key = (indicator.description, indicator.subject, indicator.phase)
            if indicator.student_id is None:
                if key in own_keys:
                    continue
                achieved = achieved_by_id.get(indicator.id, indicator.achieved)
            else:
                achieved = achieved_by_id.get(
                    indicator.id, indicator.achieved or global_achieved.get(key, False)
                )
            (passed if achieved else failed).append(indicator)
        return failed, passed

    async def _failed_quizzes(self, db: AsyncSession, student_id: str, phase: int, year: int):
        result = await db.execute(
            select(Questionnaire.title, EvaluationResult.best_score)
            .join(EvaluationResult, EvaluationResult.questionnaire_id == Questionnaire.id)
            .where(
                EvaluationResult.student_id == student_id,
                EvaluationResult.academic_year == year,
                Questionnaire.phase == phase,
                EvaluationResult.best_score < settings.PHASE_PASSING_SCORE,
            )
            .order_by(Questionnaire.title)
        )
        return result.all()

    async def _copy_global_indicators(
        self,
        db: AsyncSession,
        indicators: List[Indicator],
        student_id: str,
        teacher_id: str
    ) -> int:
        copies = 0
        for indicator in indicators:
            if not indicator.is_global:
                continue
            db.add(Indicator(
                teacher_id=teacher_id,
                student_id=student_id,
                questionnaire_id=indicator.questionnaire_id,
                description=indicator.description,
                subject=indicator.subject,
                category=indicator.category,
                phase=indicator.phase,
                grade=indicator.grade,
                achieved=False,
            ))
            copies += 1
        return copies

    async def create_phase_plan(
        self,
        db: AsyncSession,
        student: Student,
        teacher: Teacher,
        phase: int,
        phase_score: float,
        year: int
    ) -> Optional[ImprovementPlan]:
        """Phase improvement plan; None when an equivalent active plan exists"""
        title = f"Plan de Mejoramiento - Fase {phase} - {teacher.subject}"
        if await improvement_plan_service.find_active_duplicate(db, student.id, teacher.id, title, teacher.subject):
            logger.info(f"Student {student.id} already has an active plan '{title}'")
            return None

        failed, passed = await self._student_indicators(db, student, phase)
        failed_quizzes = await self._failed_quizzes(db, student.id, phase, year)

        description = (
            f"El estudiante {student.name} no ha alcanzado la nota mínima aprobatoria "
            f"({settings.PHASE_PASSING_SCORE}) en la fase {phase} de {teacher.subject}.\n"
            "Este plan de mejoramiento tiene como objetivo que el estudiante alcance los logros "
            "pendientes y mejore su desempeño académico.\n\n"
            f"Nota obtenida en la fase {phase}: {phase_score}"
        )
        activities = "\n".join([
            "Para superar las dificultades identificadas, el estudiante deberá:",
            "",
            f"1. Revisar los temas vistos en clase correspondientes a la fase {phase}.",
            "2. Completar los ejercicios adicionales que se adjuntan a este plan.",
            "3. Presentar nuevamente las evaluaciones no aprobadas.",
            "4. Entregar un trabajo escrito sobre los temas principales de la fase.",
            "",
            "Cuestionarios a recuperar:",
            *[f"• {title_} (Nota: {score})" for title_, score in failed_quizzes],
        ])

        plan = ImprovementPlan(
            student_id=student.id,
            teacher_id=teacher.id,
            title=title,
            subject=teacher.subject,
            description=description,
            activities=activities,
            deadline=date.today() + timedelta(days=settings.PHASE_PLAN_DEADLINE_DAYS),
            failed_achievements="\n".join(_indicator_line(i) for i in failed),
            passed_achievements="\n".join(_indicator_line(i) for i in passed),
            activity_status=PlanStatus.PENDING,
            academic_year=year,
        )
        db.add(plan)
        copies = await self._copy_global_indicators(db, failed, student.id, teacher.id)
        await db.commit()
        await db.refresh(plan)

        logger.log_evaluation_event(
            "phase_plan_created", student_id=student.id, score=phase_score,
            phase=phase, plan_id=plan.id, indicators_copied=copies,
        )
        return plan

    async def create_remedial_plan(
        self,
        db: AsyncSession,
        student: Student,
        teacher: Teacher,
        overall_average: float,
        year: int
    ) -> Optional[ImprovementPlan]:
        """Habilitación plan for a student who lost the subject"""
        title = f"HABILITACIÓN - {teacher.subject} - Año Escolar"
        if await improvement_plan_service.find_active_duplicate(db, student.id, teacher.id, title, teacher.subject):
            logger.info(f"Student {student.id} already has an active habilitación plan")
            return None

        failed, _ = await self._student_indicators(db, student)

        description = (
            f"El estudiante {student.name} no ha alcanzado la nota mínima aprobatoria "
            f"({settings.FINAL_PASSING_SCORE}) en el promedio final de {teacher.subject}.\n"
            "Se requiere presentar habilitación para aprobar la materia.\n\n"
            f"Promedio final obtenido: {overall_average}\n\n"
            f"IMPORTANTE: Este estudiante ha PERDIDO la materia {teacher.subject} y debe presentar habilitación."
        )
        activities = "\n".join([
            "Para habilitar la materia, el estudiante deberá:",
            "",
            "1. Presentar un examen final que incluye todos los temas vistos durante el año.",
            "2. Entregar un trabajo escrito sobre los temas principales del curso.",
            "3. Realizar una sustentación oral de los conceptos fundamentales.",
            "",
            "La habilitación debe presentarse en la fecha establecida por la institución.",
        ])

        plan = ImprovementPlan(
            student_id=student.id,
            teacher_id=teacher.id,
            title=title,
            subject=teacher.subject,
            description=description,
            activities=activities,
            deadline=date.today() + timedelta(days=settings.REMEDIAL_PLAN_DEADLINE_DAYS),
            failed_achievements="\n".join(_indicator_line(i, with_phase=True) for i in failed),
            passed_achievements="",
            activity_status=PlanStatus.PENDING,
            academic_year=year,
        )
        db.add(plan)
        await db.commit()
        await db.refresh(plan)

        logger.log_evaluation_event(
            "remedial_plan_created", student_id=student.id, score=overall_average, plan_id=plan.id,
        )
        return plan

    async def _notify(
        self,
        student: Student,
        teacher: Optional[Teacher],
        phase: int,
        phase_score: float,
        failed: List[Indicator],
        passed: List[Indicator],
        plan: Optional[ImprovementPlan]
    ) -> bool:
        """Build the results PDF and email it; failures are logged, never raised"""
        pdf_bytes = None
        try:
            pdf_bytes = report_service.generate_phase_results_pdf(
                self._report_data(student, teacher, phase, phase_score, failed, passed, plan)
            )
        except DocumentGenerationError as e:
            logger.error(f"Phase report for student {student.id} not generated: {e.message}")

        sent = await email_service.send_phase_results_email(
            student_email=student.email,
            guardian_email=student.contact_email,
            student_name=student.name,
            phase=phase,
            score=phase_score,
            failed_indicators=[i.description for i in failed],
            pdf_bytes=pdf_bytes,
        )
        if not sent:
            logger.warning(f"Phase {phase} results email not sent for student {student.id}")
        return sent

    def _report_data(
        self,
        student: Student,
        teacher: Optional[Teacher],
        phase: int,
        phase_score: float,
        failed: List[Indicator],
        passed: List[Indicator],
        plan: Optional[ImprovementPlan]
    ) -> Dict[str, Any]:
        data = {
            "student_name": student.name,
            "student_email": student.email,
            "grade": student.grade,
            "course_name": student.course_name,
            "phase": phase,
            "score": phase_score,
            "subject": teacher.subject if teacher else None,
            "teacher_name": teacher.user.name if teacher and teacher.user else None,
            "failed_indicators": [f"{i.description} ({i.subject})" for i in failed],
            "passed_indicators": [f"{i.description} ({i.subject})" for i in passed],
        }
        if plan:
            data["plan"] = {
                "title": plan.title,
                "deadline": plan.deadline.isoformat(),
                "activities": plan.activities,
            }
        return data

    async def evaluate_phase(self, db: AsyncSession, phase: int) -> Dict[str, Any]:
        """
        Close a phase for every student with a grade in it.

        Students without an assigned teacher get their results email but no
        plan, and are reported in skipped_students.
        """
        validate_phase(phase)
        year = current_academic_year()
        phase_column = getattr(Grade, f"phase{phase}")

        result = await db.execute(
            select(Student, Grade)
            .join(Grade, Grade.student_id == Student.id)
            .where(Grade.academic_year == year, phase_column.isnot(None))
        )
        rows = result.unique().all()
        logger.info(f"Evaluating phase {phase}: {len(rows)} students with grades")

        plans_created = 0
        failed_subjects = 0
        emails_sent = 0
        skipped: List[str] = []

        for student, grade in rows:
            phase_score = grade.get_phase(phase)
            teacher = await school_service.get_assigned_teacher(db, student.id, year)

            plans: List[ImprovementPlan] = []
            if teacher is None:
                if phase_score < settings.PHASE_PASSING_SCORE:
                    logger.warning(f"Student {student.id} has no assigned teacher; no plan generated")
                skipped.append(student.id)
            else:
                if phase_score < settings.PHASE_PASSING_SCORE:
                    plan = await self.create_phase_plan(db, student, teacher, phase, phase_score, year)
                    if plan:
                        plans.append(plan)
                if phase == settings.PHASE_COUNT and (grade.average or 0) < settings.FINAL_PASSING_SCORE:
                    failed_subjects += 1
                    remedial = await self.create_remedial_plan(db, student, teacher, grade.average or 0, year)
                    if remedial:
                        plans.append(remedial)
            plans_created += len(plans)

            failed, passed = await self._student_indicators(db, student, phase)
            sent = await self._notify(
                student, teacher, phase, phase_score, failed, passed, plans[0] if plans else None
            )
            if sent:
                emails_sent += 1
                for plan in plans:
                    plan.email_sent = True
                if plans:
                    await db.commit()

        logger.log_evaluation_event(
            "phase_evaluated", phase=phase, students=len(rows),
            plans_created=plans_created, failed_subjects=failed_subjects, emails_sent=emails_sent,
        )
        return {
            "phase": phase,
            "students_evaluated": len(rows),
            "plans_created": plans_created,
            "failed_subjects": failed_subjects,
            "emails_sent": emails_sent,
            "skipped_students": skipped,
        }

    async def phase_stats(self, db: AsyncSession, phase: int) -> Dict[str, Any]:
        validate_phase(phase)
        phase_column = getattr(Grade, f"phase{phase}")
        result = await db.execute(
            select(phase_column).where(
                Grade.academic_year == current_academic_year(),
                phase_column.isnot(None),
            )
        )
        scores = [s for s in result.scalars().all()]
        approved = sum(1 for s in scores if s >= settings.PHASE_PASSING_SCORE)
        return {
            "phase": phase,
            "total": len(scores),
            "approved": approved,
            "failed": len(scores) - approved,
            "average_score": round(sum(scores) / len(scores), 2) if scores else 0.0,
        }

    async def phase_report(self, db: AsyncSession, student_id: str, phase: int) -> Tuple[str, bytes]:
        """Phase results PDF for one student: (filename, content)"""
        validate_phase(phase)
        student = await school_service.get_student(db, student_id)
        grade = await school_service.get_grade(db, student_id)
        phase_score = (grade.get_phase(phase) if grade else None) or 0.0
        teacher = await school_service.get_assigned_teacher(db, student_id)
        failed, passed = await self._student_indicators(db, student, phase)

        plan = None
        if teacher:
            result = await db.execute(
                select(ImprovementPlan)
                .where(
                    ImprovementPlan.student_id == student_id,
                    ImprovementPlan.title == f"Plan de Mejoramiento - Fase {phase} - {teacher.subject}",
                )
                .order_by(ImprovementPlan.created_at.desc())
            )
            plan = result.scalars().first()

        content = report_service.generate_phase_results_pdf(
            self._report_data(student, teacher, phase, phase_score, failed, passed, plan)
        )
        return report_service.phase_results_filename(student.name, phase), content

    async def final_report(self, db: AsyncSession, student_id: str) -> Tuple[str, bytes]:
        """Final grade PDF for one student: (filename, content)"""
        student = await school_service.get_student(db, student_id)
        year = current_academic_year()
        grade = await school_service.get_grade(db, student_id, year)

        content = report_service.generate_final_grade_pdf({
            "student_name": student.name,
            "student_email": student.email,
            "grade": student.grade,
            "course_name": student.course_name,
            "academic_year": year,
            "phases": grade.phase_scores() if grade else {},
            "average": grade.average if grade else 0,
        })
        return report_service.final_grade_filename(student.name), content


# Singleton instance
phase_evaluation_service = PhaseEvaluationService()
