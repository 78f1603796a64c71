"""
Indicator Evaluation Service

Marks each indicator linked to a questionnaire as achieved or not for a
student, comparing the student's best score with the link's passing score.
Results live in student_indicators, one row per (student, indicator).
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, case
from datetime import datetime
from typing import Optional, Dict, Any, List

from app.core.config import settings
from app.core.logging_config import logger
from app.models.questionnaire import EvaluationResult, Questionnaire
from app.models.indicator import Indicator, QuestionnaireIndicator, StudentIndicator
from app.core.exceptions import QuestionnaireNotFoundError


class IndicatorEvaluationService:
    """Evaluates questionnaire indicators against quiz results"""

    async def _best_score(self, db: AsyncSession, student_id: str, questionnaire_id: str) -> Optional[float]:
        result = await db.execute(
            select(EvaluationResult.best_score).where(
                EvaluationResult.student_id == student_id,
                EvaluationResult.questionnaire_id == questionnaire_id,
            )
        )
        return result.scalar_one_or_none()

    async def _linked_indicators(self, db: AsyncSession, questionnaire_id: str):
        result = await db.execute(
            select(QuestionnaireIndicator, Indicator)
            .join(Indicator, QuestionnaireIndicator.indicator_id == Indicator.id)
            .where(QuestionnaireIndicator.questionnaire_id == questionnaire_id)
            .order_by(Indicator.subject, Indicator.created_at)
        )
        return result.all()

    async def evaluate_student_indicators(
        self,
        db: AsyncSession,
        student_id: str,
        questionnaire_id: str
    ) -> Dict[str, Any]:
        """
        Evaluate every indicator linked to the questionnaire for one student.

        Returns a summary dict. success is False (with a message) when the
        student has no result yet or the questionnaire has no indicators.
        """
        summary = {
            "student_id": student_id,
            "questionnaire_id": questionnaire_id,
        }

        best_score = await self._best_score(db, student_id, questionnaire_id)
        if best_score is None:
            logger.info(f"No evaluation for student {student_id} on questionnaire {questionnaire_id}")
            return {**summary, "success": False,
                    "message": "No evaluation found for this student and questionnaire"}

        links = await self._linked_indicators(db, questionnaire_id)
        if not links:
            return {**summary, "success": False, "best_score": best_score,
                    "message": "No indicators linked to this questionnaire"}

        existing_result = await db.execute(
            select(StudentIndicator).where(
                StudentIndicator.student_id == student_id,
                StudentIndicator.indicator_id.in_([indicator.id for _, indicator in links]),
            )
        )
        existing = {row.indicator_id: row for row in existing_result.scalars().all()}

        rows: List[Dict[str, Any]] = []
        now = datetime.utcnow()
        for link, indicator in links:
            achieved = best_score >= link.passing_score

            record = existing.get(indicator.id)
            if record:
                record.achieved = achieved
                record.questionnaire_id = questionnaire_id
                record.assigned_at = now
            else:
                db.add(StudentIndicator(
                    student_id=student_id,
                    indicator_id=indicator.id,
                    questionnaire_id=questionnaire_id,
                    achieved=achieved,
                    assigned_at=now,
                ))

            # Student-specific indicators carry their own flag
            if indicator.student_id == student_id:
                indicator.achieved = achieved

            rows.append({
                "indicator_id": indicator.id,
                "description": indicator.description,
                "passing_score": link.passing_score,
                "student_score": best_score,
                "achieved": achieved,
            })

        await db.commit()

        approved = sum(1 for r in rows if r["achieved"])
        total = len(rows)
        approval_rate = round(approved / total * 100, 2) if total else 0.0

        logger.log_evaluation_event(
            "indicators_evaluated",
            student_id=student_id,
            score=best_score,
            questionnaire_id=questionnaire_id,
            approved=approved,
            total=total,
        )

        return {
            **summary,
            "success": True,
            "message": "Indicators evaluated",
            "best_score": best_score,
            "total_indicators": total,
            "approved": approved,
            "failed": total - approved,
            "approval_rate": approval_rate,
            "indicators": rows,
        }

    async def evaluate_all_students(self, db: AsyncSession, questionnaire_id: str) -> Dict[str, Any]:
        """Evaluate every student who has a result for the questionnaire"""
        result = await db.execute(
            select(EvaluationResult.student_id)
            .where(EvaluationResult.questionnaire_id == questionnaire_id)
            .distinct()
        )
        student_ids = [row[0] for row in result.all()]

        results = []
        for student_id in student_ids:
            evaluation = await self.evaluate_student_indicators(db, student_id, questionnaire_id)
            if evaluation["success"]:
                results.append(evaluation)

        logger.info(f"Evaluated indicators for {len(results)} students on questionnaire {questionnaire_id}")
        return {
            "success": True,
            "questionnaire_id": questionnaire_id,
            "total_students": len(results),
            "results": results,
        }

    async def get_student_indicator_status(
        self,
        db: AsyncSession,
        student_id: str,
        questionnaire_id: Optional[str] = None
    ) -> Dict[str, Any]:
        query = (
            select(StudentIndicator, Indicator, QuestionnaireIndicator.passing_score, EvaluationResult.best_score)
            .join(Indicator, StudentIndicator.indicator_id == Indicator.id)
            .outerjoin(
                QuestionnaireIndicator,
                (QuestionnaireIndicator.indicator_id == StudentIndicator.indicator_id)
                & (QuestionnaireIndicator.questionnaire_id == StudentIndicator.questionnaire_id),
            )
            .outerjoin(
                EvaluationResult,
                (EvaluationResult.student_id == StudentIndicator.student_id)
                & (EvaluationResult.questionnaire_id == StudentIndicator.questionnaire_id),
            )
            .where(StudentIndicator.student_id == student_id)
        )
        if questionnaire_id:
            query = query.where(StudentIndicator.questionnaire_id == questionnaire_id)
        query = query.order_by(StudentIndicator.questionnaire_id, Indicator.created_at)

        result = await db.execute(query)
        indicators = [
            {
                "indicator_id": indicator.id,
                "questionnaire_id": record.questionnaire_id,
                "achieved": record.achieved,
                "assigned_at": record.assigned_at,
                "description": indicator.description,
                "subject": indicator.subject,
                "category": indicator.category,
                "grade": indicator.grade,
                "phase": indicator.phase,
                "passing_score": passing_score,
                "student_best_score": best_score,
            }
            for record, indicator, passing_score, best_score in result.all()
        ]
        return {
            "success": True,
            "student_id": student_id,
            "questionnaire_id": questionnaire_id,
            "indicators": indicators,
        }

    async def questionnaire_statistics(self, db: AsyncSession, questionnaire_id: str) -> Dict[str, Any]:
        """Aggregate results and indicator approval for one questionnaire"""
        questionnaire = await db.get(Questionnaire, questionnaire_id)
        if not questionnaire:
            raise QuestionnaireNotFoundError(questionnaire_id)

        scores_result = await db.execute(
            select(EvaluationResult.best_score).where(EvaluationResult.questionnaire_id == questionnaire_id)
        )
        scores = [s for s in scores_result.scalars().all() if s is not None]
        approved = sum(1 for s in scores if s >= settings.PHASE_PASSING_SCORE)

        per_indicator = []
        for link, indicator in await self._linked_indicators(db, questionnaire_id):
            counts = await db.execute(
                select(
                    func.count(StudentIndicator.id),
                    func.coalesce(func.sum(case((StudentIndicator.achieved.is_(True), 1), else_=0)), 0),
                ).where(
                    StudentIndicator.indicator_id == indicator.id,
                    StudentIndicator.questionnaire_id == questionnaire_id,
                )
            )
            evaluated, achieved = counts.one()
            per_indicator.append({
                "indicator_id": indicator.id,
                "description": indicator.description,
                "passing_score": link.passing_score,
                "students_evaluated": evaluated,
                "students_achieved": int(achieved or 0),
                "approval_rate": round(int(achieved or 0) / evaluated * 100, 2) if evaluated else 0.0,
            })

        return {
            "questionnaire_id": questionnaire_id,
            "title": questionnaire.title,
            "total_students": len(scores),
            "approved_students": approved,
            "failed_students": len(scores) - approved,
            "average_score": round(sum(scores) / len(scores), 2) if scores else 0.0,
            "indicators": per_indicator,
        }


# Singleton instance
indicator_evaluation_service = IndicatorEvaluationService()
