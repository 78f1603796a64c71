# Business services
from app.services.storage_service import StorageService, storage_service
from app.services.email_service import EmailService, email_service
from app.services.report_service import ReportService, report_service
from app.services.school_service import SchoolService, school_service
from app.services.quiz_service import QuizService, quiz_service
from app.services.grade_service import GradeService, grade_service
from app.services.indicator_evaluation_service import IndicatorEvaluationService, indicator_evaluation_service
from app.services.improvement_plan_service import ImprovementPlanService, improvement_plan_service
from app.services.auto_improvement_plan_service import AutoImprovementPlanService, auto_improvement_plan_service
from app.services.phase_evaluation_service import PhaseEvaluationService, phase_evaluation_service
from app.services.educational_resource_service import EducationalResourceService, educational_resource_service

__all__ = [
    # Infrastructure
    "StorageService",
    "storage_service",
    "EmailService",
    "email_service",
    "ReportService",
    "report_service",
    # School
    "SchoolService",
    "school_service",
    # Evaluation
    "QuizService",
    "quiz_service",
    "GradeService",
    "grade_service",
    "IndicatorEvaluationService",
    "indicator_evaluation_service",
    "PhaseEvaluationService",
    "phase_evaluation_service",
    # Recovery
    "ImprovementPlanService",
    "improvement_plan_service",
    "AutoImprovementPlanService",
    "auto_improvement_plan_service",
    "EducationalResourceService",
    "educational_resource_service",
]
