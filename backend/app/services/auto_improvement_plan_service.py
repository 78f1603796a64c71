"""
Automatic Improvement Plans

When a student leaves indicators of a questionnaire unachieved, a recovery
plan is generated with study resources per subject, one reinforcement
exercise per failed indicator and a final recovery quiz.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from datetime import datetime, date, timedelta
from typing import Dict, Any, List, Optional

from app.core.config import settings
from app.core.exceptions import QuestionnaireNotFoundError, EvaluationResultNotFoundError
from app.core.logging_config import logger
from app.core.types import current_academic_year
from app.models.questionnaire import Questionnaire, EvaluationResult
from app.models.indicator import Indicator, QuestionnaireIndicator, StudentIndicator
from app.models.school import Student
from app.models.improvement_plan import (
    ImprovementPlan, PlanStatus, RecoveryResource, ResourceType, DifficultyLevel,
    RecoveryActivity, ActivityType, RecoveryActivityStatus,
)
from app.services.school_service import school_service


SUBJECT_VIDEO_URLS = {
    "Español": "https://www.youtube.com/results?search_query=gramatica+espa%C3%B1ol",
    "Matemáticas": "https://www.youtube.com/@KhanAcademyEspanol",
    "Física": "https://www.youtube.com/results?search_query=fisica+basica",
    "Química": "https://www.youtube.com/results?search_query=quimica+basica",
    "Biología": "https://www.youtube.com/results?search_query=biologia+basica",
    "Historia": "https://www.youtube.com/results?search_query=historia+universal",
    "Geografía": "https://www.youtube.com/results?search_query=geografia",
}
DEFAULT_VIDEO_URL = "https://www.youtube.com/@KhanAcademyEspanol"

SUBJECT_DOCUMENT_URLS = {
    "Español": "https://www.rae.es/obras-academicas/gramatica",
    "Matemáticas": "https://es.khanacademy.org/math",
    "Física": "https://es.khanacademy.org/science/physics",
    "Química": "https://es.khanacademy.org/science/chemistry",
    "Biología": "https://es.khanacademy.org/science/biology",
    "Historia": "https://es.khanacademy.org/humanities/world-history",
    "Geografía": "https://education.nationalgeographic.org/",
}
DEFAULT_DOCUMENT_URL = "https://es.khanacademy.org/"

SUBJECT_EXTERNAL_URLS = {
    "Español": "https://www.rae.es/",
    "Matemáticas": "https://www.khanacademy.org/math",
    "Física": "https://www.physicsclassroom.com/",
    "Química": "https://www.chemguide.co.uk/",
    "Biología": "https://www.biologycorner.com/",
    "Historia": "https://www.history.com/",
    "Geografía": "https://www.nationalgeographic.com/",
}
DEFAULT_EXTERNAL_URL = "https://www.educacion.gob.es/"

SUBJECT_STEPS = [
    "Revisión de conceptos fundamentales",
    "Ejercicios prácticos específicos",
    "Evaluación de refuerzo",
    "Consulta con el docente",
]

GENERAL_ACTIVITIES = [
    "Lectura y análisis de material de apoyo",
    "Participación en sesiones de refuerzo",
    "Entrega de trabajos complementarios",
    "Evaluación final de recuperación",
]

FINAL_QUIZ_MAX_ATTEMPTS = 2
FINAL_QUIZ_WEIGHT = 2.0
EXERCISE_MAX_ATTEMPTS = 3
EXERCISE_WEIGHT = 1.0


def _unique(values: List[Optional[str]]) -> List[str]:
    """Distinct non-empty values, first-seen order"""
    return list(dict.fromkeys(v for v in values if v))


def build_description(
    student_name: str,
    grade: Any,
    questionnaire: Questionnaire,
    subject: str,
    failed: List[Dict[str, Any]],
    score: float
) -> str:
    subjects = _unique([f["subject"] for f in failed])
    categories = _unique([f["category"] for f in failed])

    lines = [
        f"Plan de recuperación académica para {student_name} del grado {grade}.",
        "",
        "**Situación Actual:**",
        f"• Cuestionario: {questionnaire.title}",
        f"• Materia: {subject}",
        f"• Nota obtenida: {score}",
        f"• Indicadores no alcanzados: {len(failed)}",
        "",
    ]
    if subjects:
        lines.append("**Áreas de Mejora:**")
        lines.extend(f"• {s}" for s in subjects)
        lines.append("")
    if categories:
        lines.append("**Categorías Específicas:**")
        lines.extend(f"• {c}" for c in categories)
        lines.append("")
    lines += [
        "**Objetivo:**",
        "Reforzar los conocimientos en las áreas identificadas para alcanzar los indicadores "
        "de logro requeridos y mejorar el rendimiento académico.",
        "",
        "**Metodología:**",
        "Este plan incluye recursos multimedia, actividades prácticas y evaluaciones específicas "
        "diseñadas para abordar cada indicador no alcanzado.",
    ]
    return "\n".join(lines)


def build_activities(failed: List[Dict[str, Any]]) -> str:
    lines: List[str] = []
    for subject in _unique([f["subject"] for f in failed]):
        lines.append(f"**{subject}:**")
        lines.extend(f"{i}. {step}" for i, step in enumerate(SUBJECT_STEPS, start=1))
        lines.append("")
    lines.append("**Actividades Generales:**")
    lines.extend(f"• {activity}" for activity in GENERAL_ACTIVITIES)
    return "\n".join(lines)


def build_failed_achievements(failed: List[Dict[str, Any]], score: float) -> str:
    return "\n".join(
        f"• {f['description']} (Nota mínima: {f['passing_score']}, Obtenida: {score})"
        for f in failed
    )


class AutoImprovementPlanService:
    """Generates recovery plans from unachieved questionnaire indicators"""

    async def get_failed_indicators(
        self,
        db: AsyncSession,
        student_id: str,
        questionnaire_id: str
    ) -> List[Dict[str, Any]]:
        result = await db.execute(
            select(Indicator, QuestionnaireIndicator.passing_score)
            .join(StudentIndicator, StudentIndicator.indicator_id == Indicator.id)
            .join(
                QuestionnaireIndicator,
                (QuestionnaireIndicator.indicator_id == Indicator.id)
                & (QuestionnaireIndicator.questionnaire_id == questionnaire_id),
            )
            .where(
                StudentIndicator.student_id == student_id,
                StudentIndicator.questionnaire_id == questionnaire_id,
                StudentIndicator.achieved.is_(False),
            )
            .order_by(Indicator.subject, Indicator.category)
        )
        return [
            {
                "indicator_id": indicator.id,
                "description": indicator.description,
                "subject": indicator.subject,
                "category": indicator.category,
                "grade": indicator.grade,
                "phase": indicator.phase,
                "passing_score": passing_score,
            }
            for indicator, passing_score in result.all()
        ]

    async def _get_questionnaire(self, db: AsyncSession, questionnaire_id: str) -> Questionnaire:
        questionnaire = await db.get(Questionnaire, questionnaire_id)
        if not questionnaire:
            raise QuestionnaireNotFoundError(questionnaire_id)
        return questionnaire

    async def _plan_exists(self, db: AsyncSession, student_id: str, questionnaire_id: str) -> Optional[str]:
        result = await db.execute(
            select(ImprovementPlan.id).where(
                ImprovementPlan.student_id == student_id,
                ImprovementPlan.questionnaire_id == questionnaire_id,
            )
        )
        return result.scalars().first()

    async def create_plan(
        self,
        db: AsyncSession,
        student: Student,
        questionnaire: Questionnaire,
        failed: List[Dict[str, Any]],
        score: float
    ) -> ImprovementPlan:
        """Create the plan with its resources and activities in one commit"""
        teacher = await school_service.get_teacher(db, questionnaire.created_by)
        subject = questionnaire.subject or teacher.subject
        today = date.today()

        plan = ImprovementPlan(
            student_id=student.id,
            teacher_id=teacher.id,
            questionnaire_id=questionnaire.id,
            title=f"Plan de Recuperación - {subject} - {student.name}",
            subject=subject,
            description=build_description(student.name, student.grade, questionnaire, subject, failed, score),
            activities=build_activities(failed),
            deadline=today + timedelta(days=settings.PHASE_PLAN_DEADLINE_DAYS),
            failed_achievements=build_failed_achievements(failed, score),
            activity_status=PlanStatus.PENDING,
            teacher_notes=(
                f"Plan generado automáticamente el {datetime.utcnow().strftime('%d/%m/%Y')} debido a "
                f"indicadores no alcanzados en el cuestionario \"{questionnaire.title}\"."
            ),
            academic_year=current_academic_year(),
        )
        db.add(plan)
        await db.flush()

        order_index = 1
        for indicator_subject in _unique([f["subject"] for f in failed]):
            db.add_all([
                RecoveryResource(
                    improvement_plan_id=plan.id,
                    resource_type=ResourceType.VIDEO,
                    title=f"Video educativo - {indicator_subject}",
                    description=f"Recurso multimedia para reforzar conceptos básicos de {indicator_subject}",
                    url=SUBJECT_VIDEO_URLS.get(indicator_subject, DEFAULT_VIDEO_URL),
                    difficulty_level=DifficultyLevel.BASIC,
                    order_index=order_index,
                ),
                RecoveryResource(
                    improvement_plan_id=plan.id,
                    resource_type=ResourceType.DOCUMENT,
                    title=f"Guía de estudio - {indicator_subject}",
                    description="Material de apoyo con ejercicios y explicaciones detalladas",
                    url=SUBJECT_DOCUMENT_URLS.get(indicator_subject, DEFAULT_DOCUMENT_URL),
                    difficulty_level=DifficultyLevel.BASIC,
                    order_index=order_index + 1,
                ),
                RecoveryResource(
                    improvement_plan_id=plan.id,
                    resource_type=ResourceType.LINK,
                    title=f"Recursos adicionales - {indicator_subject}",
                    description="Enlaces a sitios web educativos especializados",
                    url=SUBJECT_EXTERNAL_URLS.get(indicator_subject, DEFAULT_EXTERNAL_URL),
                    difficulty_level=DifficultyLevel.INTERMEDIATE,
                    order_index=order_index + 2,
                ),
            ])
            order_index += 3

        for indicator in failed:
            db.add(RecoveryActivity(
                improvement_plan_id=plan.id,
                indicator_id=indicator["indicator_id"],
                questionnaire_id=questionnaire.id,
                activity_type=ActivityType.EXERCISE,
                title=f"Ejercicio de refuerzo - {indicator['description']}",
                description=f"Actividad específica para alcanzar el indicador: {indicator['description']}",
                instructions=(
                    "Realizar los ejercicios propuestos y demostrar comprensión del tema. "
                    "Consultar con el docente si hay dudas."
                ),
                due_date=today + timedelta(days=settings.ACTIVITY_DUE_DAYS),
                max_attempts=EXERCISE_MAX_ATTEMPTS,
                passing_score=indicator["passing_score"],
                weight=EXERCISE_WEIGHT,
                status=RecoveryActivityStatus.PENDING,
            ))

        db.add(RecoveryActivity(
            improvement_plan_id=plan.id,
            questionnaire_id=questionnaire.id,
            activity_type=ActivityType.QUIZ,
            title=f"Evaluación de recuperación - {questionnaire.title}",
            description="Evaluación final para verificar el logro de los indicadores",
            instructions=(
                "Realizar la evaluación con calma y aplicar los conocimientos reforzados "
                "durante el plan de recuperación."
            ),
            due_date=today + timedelta(days=settings.PHASE_PLAN_DEADLINE_DAYS),
            max_attempts=FINAL_QUIZ_MAX_ATTEMPTS,
            passing_score=settings.PHASE_PASSING_SCORE,
            weight=FINAL_QUIZ_WEIGHT,
            status=RecoveryActivityStatus.PENDING,
        ))

        await db.commit()
        await db.refresh(plan)

        logger.log_evaluation_event(
            "auto_improvement_plan_created",
            student_id=student.id,
            score=score,
            plan_id=plan.id,
            questionnaire_id=questionnaire.id,
            failed_indicators=len(failed),
        )
        return plan

    async def process_questionnaire_results(self, db: AsyncSession, questionnaire_id: str) -> Dict[str, Any]:
        """
        Create plans for every student with unachieved indicators on the
        questionnaire. Students that already have a plan for it are skipped.
        """
        questionnaire = await self._get_questionnaire(db, questionnaire_id)
        logger.info(f"Processing automatic plans for questionnaire {questionnaire_id} ({questionnaire.title})")

        results = await db.execute(
            select(EvaluationResult.student_id, EvaluationResult.best_score)
            .where(EvaluationResult.questionnaire_id == questionnaire_id)
        )
        rows = results.all()

        plans = []
        for student_id, best_score in rows:
            failed = await self.get_failed_indicators(db, student_id, questionnaire_id)
            if not failed:
                continue
            if await self._plan_exists(db, student_id, questionnaire_id):
                logger.info(f"Student {student_id} already has a plan for questionnaire {questionnaire_id}")
                continue

            student = await school_service.get_student(db, student_id)
            plan = await self.create_plan(db, student, questionnaire, failed, best_score)
            plans.append({
                "plan_id": plan.id,
                "student_id": student.id,
                "student_name": student.name,
                "failed_indicators": len(failed),
            })

        logger.info(f"Created {len(plans)} automatic plans for questionnaire {questionnaire_id}")
        return {
            "questionnaire_id": questionnaire_id,
            "students_processed": len(rows),
            "plans_created": len(plans),
            "plans": plans,
        }

    async def process_student(self, db: AsyncSession, student_id: str, questionnaire_id: str) -> Dict[str, Any]:
        existing = await self._plan_exists(db, student_id, questionnaire_id)
        if existing:
            return {
                "success": False,
                "message": "Ya existe un plan de mejoramiento para este estudiante y cuestionario",
                "plan_id": existing,
            }

        student = await school_service.get_student(db, student_id)
        questionnaire = await self._get_questionnaire(db, questionnaire_id)

        result = await db.execute(
            select(EvaluationResult.best_score).where(
                EvaluationResult.student_id == student_id,
                EvaluationResult.questionnaire_id == questionnaire_id,
            )
        )
        best_score = result.scalar_one_or_none()
        if best_score is None:
            raise EvaluationResultNotFoundError(student_id, questionnaire_id)

        failed = await self.get_failed_indicators(db, student_id, questionnaire_id)
        if not failed:
            return {
                "success": False,
                "message": "El estudiante alcanzó todos los indicadores requeridos",
            }

        plan = await self.create_plan(db, student, questionnaire, failed, best_score)
        return {
            "success": True,
            "message": "Plan de mejoramiento creado",
            "plan_id": plan.id,
            "failed_indicators": len(failed),
        }


# Singleton instance
auto_improvement_plan_service = AutoImprovementPlanService()
