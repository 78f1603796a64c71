# API endpoints
from . import (
    health, auth, users, courses, teachers, students, questionnaires, questions, quiz,
    indicators, questionnaire_indicators, indicator_evaluation, grades, phase_evaluation,
    improvement_plans, educational_resources, guides,
)

__all__ = [
    "health", "auth", "users", "courses", "teachers", "students", "questionnaires", "questions", "quiz",
    "indicators", "questionnaire_indicators", "indicator_evaluation", "grades", "phase_evaluation",
    "improvement_plans", "educational_resources", "guides",
]
