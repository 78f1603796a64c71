"""
Quiz Service - grading of questionnaire attempts

A student may attempt each questionnaire MAX_QUIZ_ATTEMPTS times. The score is
the share of correct answers on the 0-5 scale; evaluation_results keeps the
best attempt.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from datetime import datetime
from typing import Dict, Any, List, Optional

from app.core.config import settings
from app.core.exceptions import (
    QuestionnaireNotFoundError, EmptyQuestionnaireError, AttemptLimitExceededError, TeacherNotAssignedError,
)
from app.core.logging_config import logger
from app.core.types import current_academic_year
from app.models.questionnaire import Questionnaire, Question, QuizAttempt, EvaluationResult
from app.services.indicator_evaluation_service import indicator_evaluation_service
from app.services.grade_service import grade_service


def calculate_score(correct: int, total: int) -> float:
    """Score on the 0-5 scale, rounded to two decimals"""
    if total <= 0:
        return 0.0
    return round(correct / total * settings.SCORE_SCALE, 2)


class QuizService:
    """Records attempts and maintains evaluation_results"""

    async def count_attempts(self, db: AsyncSession, student_id: str, questionnaire_id: str) -> int:
        result = await db.execute(
            select(func.count(QuizAttempt.id)).where(
                QuizAttempt.student_id == student_id,
                QuizAttempt.questionnaire_id == questionnaire_id,
            )
        )
        return result.scalar() or 0

    async def submit_quiz(
        self,
        db: AsyncSession,
        student_id: str,
        questionnaire_id: str,
        answers: Dict[str, int]
    ) -> Dict[str, Any]:
        """
        Grade a submission and record it.

        Args:
            student_id: Student profile id
            questionnaire_id: Questionnaire being answered
            answers: Chosen option (1-4) keyed by question id

        Returns:
            Dict with score, attempt_number, best_score, attempts_remaining,
            correct_answers and total_questions
        """
        questionnaire = await db.get(Questionnaire, questionnaire_id)
        if not questionnaire:
            raise QuestionnaireNotFoundError(questionnaire_id)

        questions_result = await db.execute(
            select(Question.id, Question.correct_answer).where(Question.questionnaire_id == questionnaire_id)
        )
        questions = questions_result.all()
        if not questions:
            raise EmptyQuestionnaireError(questionnaire_id)

        previous_attempts = await self.count_attempts(db, student_id, questionnaire_id)
        if previous_attempts >= settings.MAX_QUIZ_ATTEMPTS:
            raise AttemptLimitExceededError(settings.MAX_QUIZ_ATTEMPTS)

        correct = sum(1 for question_id, answer in questions if answers.get(question_id) == answer)
        total = len(questions)
        score = calculate_score(correct, total)

        attempt = QuizAttempt(
            student_id=student_id,
            questionnaire_id=questionnaire_id,
            attempt_number=previous_attempts + 1,
            score=score,
            correct_answers=correct,
            total_questions=total,
        )
        db.add(attempt)
        await db.flush()

        result = await db.execute(
            select(EvaluationResult).where(
                EvaluationResult.student_id == student_id,
                EvaluationResult.questionnaire_id == questionnaire_id,
            )
        )
        evaluation = result.scalar_one_or_none()
        if evaluation is None:
            evaluation = EvaluationResult(
                student_id=student_id,
                questionnaire_id=questionnaire_id,
                best_score=score,
                min_score=score,
                selected_attempt_id=attempt.id,
                phase=questionnaire.phase,
                academic_year=current_academic_year(),
            )
            db.add(evaluation)
        else:
            if score > evaluation.best_score:
                evaluation.best_score = score
                evaluation.selected_attempt_id = attempt.id
                evaluation.recorded_at = datetime.utcnow()
            if evaluation.min_score is None or score < evaluation.min_score:
                evaluation.min_score = score

        await db.commit()
        await db.refresh(attempt)

        logger.log_evaluation_event(
            "quiz_submitted",
            student_id=student_id,
            score=score,
            questionnaire_id=questionnaire_id,
            attempt_number=attempt.attempt_number,
        )

        await indicator_evaluation_service.evaluate_student_indicators(db, student_id, questionnaire_id)
        try:
            await grade_service.recalculate_phase_averages(db, student_id)
        except TeacherNotAssignedError as e:
            logger.warning(f"Phase averages not updated for student {student_id}: {e.message}")

        return {
            "attempt_id": attempt.id,
            "questionnaire_id": questionnaire_id,
            "score": score,
            "attempt_number": attempt.attempt_number,
            "best_score": evaluation.best_score,
            "attempts_remaining": max(settings.MAX_QUIZ_ATTEMPTS - attempt.attempt_number, 0),
            "correct_answers": correct,
            "total_questions": total,
        }

    async def get_attempts(
        self,
        db: AsyncSession,
        student_id: str,
        questionnaire_id: Optional[str] = None
    ) -> List[QuizAttempt]:
        query = select(QuizAttempt).where(QuizAttempt.student_id == student_id)
        if questionnaire_id:
            query = query.where(QuizAttempt.questionnaire_id == questionnaire_id)
        result = await db.execute(query.order_by(QuizAttempt.questionnaire_id, QuizAttempt.attempt_number))
        return list(result.scalars().all())

    async def get_results_for_student(self, db: AsyncSession, student_id: str) -> List[EvaluationResult]:
        result = await db.execute(
            select(EvaluationResult)
            .where(EvaluationResult.student_id == student_id)
            .order_by(EvaluationResult.phase, EvaluationResult.recorded_at)
        )
        return list(result.scalars().all())

    async def get_results_for_questionnaire(self, db: AsyncSession, questionnaire_id: str) -> List[EvaluationResult]:
        result = await db.execute(
            select(EvaluationResult)
            .where(EvaluationResult.questionnaire_id == questionnaire_id)
            .order_by(EvaluationResult.best_score.desc())
        )
        return list(result.scalars().all())


# Singleton instance
quiz_service = QuizService()
