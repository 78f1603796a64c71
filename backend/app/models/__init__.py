# Re-export all models for convenient imports
from app.models.user import User, UserRole, ADMIN_ROLES, STAFF_ROLES
from app.models.school import Course, Teacher, Student, TeacherStudent
from app.models.questionnaire import Questionnaire, Question, QuizAttempt, EvaluationResult
from app.models.indicator import Indicator, QuestionnaireIndicator, StudentIndicator
from app.models.grade import Grade, PhaseAverage
from app.models.improvement_plan import (
    ImprovementPlan,
    PlanStatus,
    RecoveryResource,
    ResourceType,
    DifficultyLevel,
    RecoveryActivity,
    ActivityType,
    RecoveryActivityStatus,
    RecoveryProgress,
    ProgressType,
)
from app.models.educational_resource import EducationalResource, EducationalResourceType, TeacherGuide

__all__ = [
    # User
    "User",
    "UserRole",
    "ADMIN_ROLES",
    "STAFF_ROLES",
    # School
    "Course",
    "Teacher",
    "Student",
    "TeacherStudent",
    # Questionnaires
    "Questionnaire",
    "Question",
    "QuizAttempt",
    "EvaluationResult",
    # Indicators
    "Indicator",
    "QuestionnaireIndicator",
    "StudentIndicator",
    # Grades
    "Grade",
    "PhaseAverage",
    # Improvement plans
    "ImprovementPlan",
    "PlanStatus",
    "RecoveryResource",
    "ResourceType",
    "DifficultyLevel",
    "RecoveryActivity",
    "ActivityType",
    "RecoveryActivityStatus",
    "RecoveryProgress",
    "ProgressType",
    # Library
    "EducationalResource",
    "EducationalResourceType",
    "TeacherGuide",
]
