"""
Unit Tests for questionnaire, grade and plan schemas
"""
import pytest
from datetime import date
from pydantic import ValidationError

from app.models.improvement_plan import PlanStatus
from app.schemas.grade import ManualScoreUpdate
from app.schemas.improvement_plan import ImprovementPlanCreate, ActivityCompletion
from app.schemas.questionnaire import QuestionCreate, QuizSubmission


class TestQuestionCreate:
    def test_two_options_enough(self):
        question = QuestionCreate(
            question_text='¿Cuál es la capital de Colombia?',
            option1='Bogotá',
            option2='Medellín',
            correct_answer=1,
        )

        assert question.option3 is None

    @pytest.mark.parametrize('answer', [0, 5])
    def test_correct_answer_bounds(self, answer):
        with pytest.raises(ValidationError):
            QuestionCreate(
                question_text='¿Cuál es la capital de Colombia?',
                option1='Bogotá',
                option2='Medellín',
                correct_answer=answer,
            )


class TestScores:
    @pytest.mark.parametrize('score', [-0.5, 5.1])
    def test_manual_score_range(self, score):
        with pytest.raises(ValidationError):
            ManualScoreUpdate(student_id='s', phase=1, manual_score=score)

    def test_manual_score_phase_range(self):
        with pytest.raises(ValidationError):
            ManualScoreUpdate(student_id='s', phase=5, manual_score=3.0)

    def test_activity_completion_range(self):
        with pytest.raises(ValidationError):
            ActivityCompletion(score=6)


class TestPlanAndQuiz:
    def test_plan_defaults_to_pending(self):
        plan = ImprovementPlanCreate(
            student_id='s', title='Plan de lectura', subject='Lenguaje', deadline=date(2026, 11, 30)
        )

        assert plan.activity_status == PlanStatus.PENDING
        assert plan.teacher_id is None

    def test_quiz_answers_coerced(self):
        submission = QuizSubmission(questionnaire_id='q', answers={'a': '2'})

        assert submission.answers == {'a': 2}
