from fastapi import APIRouter
from app.api.v1.endpoints import (
    health, auth, users, courses, teachers, students, questionnaires, questions, quiz,
    indicators, questionnaire_indicators, indicator_evaluation, grades, phase_evaluation,
    improvement_plans, educational_resources, guides,
)

api_router = APIRouter()

# /health, /health/live, /health/ready, /health/deep
api_router.include_router(health.router)

# Authentication and accounts
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])

# School structure
api_router.include_router(courses.router, prefix="/courses", tags=["Courses"])
api_router.include_router(teachers.router, prefix="/teachers", tags=["Teachers"])
api_router.include_router(students.router, prefix="/students", tags=["Students"])

# Questionnaires and quizzes
api_router.include_router(questionnaires.router, prefix="/questionnaires", tags=["Questionnaires"])
api_router.include_router(questions.router, prefix="/questions", tags=["Questionnaires"])
api_router.include_router(quiz.router, prefix="/quiz", tags=["Quiz"])
api_router.include_router(quiz.results_router, prefix="/evaluation-results", tags=["Quiz"])

# Indicators and grades
api_router.include_router(indicators.router, prefix="/indicators", tags=["Indicators"])
api_router.include_router(questionnaire_indicators.router, prefix="/questionnaire-indicators", tags=["Indicators"])
api_router.include_router(indicator_evaluation.router, prefix="/indicator-evaluation", tags=["Indicator Evaluation"])
api_router.include_router(grades.router, prefix="/grades", tags=["Grades"])
api_router.include_router(phase_evaluation.router, prefix="/phase-evaluation", tags=["Phase Evaluation"])

# Recovery
api_router.include_router(improvement_plans.router, prefix="/improvement-plans", tags=["Improvement Plans"])
api_router.include_router(educational_resources.router, prefix="/educational-resources", tags=["Educational Resources"])
api_router.include_router(guides.router, prefix="/guides", tags=["Guides"])
