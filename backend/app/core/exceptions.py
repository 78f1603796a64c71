"""
Custom Exceptions for SEIO
==========================

Services raise these instead of generic Exception so the API layer can map
them to HTTP responses in one place (see the SeioError handler in main.py).

Usage:
    from app.core.exceptions import StudentNotFoundError, InvalidPhaseError

    if not student:
        raise StudentNotFoundError(student_id)

    if phase not in range(1, 5):
        raise InvalidPhaseError(phase)
"""

from typing import Optional, Any, Dict


class SeioError(Exception):
    """Base exception for all SEIO errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(SeioError):
    """User authentication failed"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class AuthorizationError(SeioError):
    """User not authorized for this action"""

    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, code="NOT_AUTHORIZED")


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(SeioError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: Any):
        super().__init__(
            f"{resource_type} with ID '{resource_id}' not found",
            code=f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": str(resource_id)}
        )


class UserNotFoundError(ResourceNotFoundError):
    def __init__(self, user_id: str):
        super().__init__("User", user_id)


class StudentNotFoundError(ResourceNotFoundError):
    def __init__(self, student_id: str):
        super().__init__("Student", student_id)


class TeacherNotFoundError(ResourceNotFoundError):
    def __init__(self, teacher_id: str):
        super().__init__("Teacher", teacher_id)


class CourseNotFoundError(ResourceNotFoundError):
    def __init__(self, course_id: str):
        super().__init__("Course", course_id)


class QuestionnaireNotFoundError(ResourceNotFoundError):
    def __init__(self, questionnaire_id: str):
        super().__init__("Questionnaire", questionnaire_id)


class QuestionNotFoundError(ResourceNotFoundError):
    def __init__(self, question_id: str):
        super().__init__("Question", question_id)


class IndicatorNotFoundError(ResourceNotFoundError):
    def __init__(self, indicator_id: str):
        super().__init__("Indicator", indicator_id)


class EvaluationResultNotFoundError(ResourceNotFoundError):
    """No quiz result recorded for the student/questionnaire pair"""

    def __init__(self, student_id: str, questionnaire_id: str):
        super().__init__("Evaluation result", f"{student_id}/{questionnaire_id}")
        self.details.update({"student_id": student_id, "questionnaire_id": questionnaire_id})


class ImprovementPlanNotFoundError(ResourceNotFoundError):
    def __init__(self, plan_id: str):
        super().__init__("Improvement plan", plan_id)


class RecoveryResourceNotFoundError(ResourceNotFoundError):
    def __init__(self, resource_id: str):
        super().__init__("Recovery resource", resource_id)


class RecoveryActivityNotFoundError(ResourceNotFoundError):
    def __init__(self, activity_id: str):
        super().__init__("Recovery activity", activity_id)


class EducationalResourceNotFoundError(ResourceNotFoundError):
    def __init__(self, resource_id: str):
        super().__init__("Educational resource", resource_id)


class GuideNotFoundError(ResourceNotFoundError):
    def __init__(self, guide_id: str):
        super().__init__("Guide", guide_id)


class EmptyQuestionnaireError(ResourceNotFoundError):
    """Questionnaire exists but has no questions to grade"""

    def __init__(self, questionnaire_id: str):
        super().__init__("Questionnaire questions", questionnaire_id)
        self.message = "No questions found for this questionnaire"


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(SeioError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class InvalidPhaseError(ValidationError):
    """Phase outside the academic calendar"""

    def __init__(self, phase: Any, phase_count: int = 4):
        super().__init__(
            f"Invalid phase '{phase}'. Must be a number between 1 and {phase_count}.",
            field="phase"
        )
        self.code = "INVALID_PHASE"


class AttemptLimitExceededError(ValidationError):
    """No attempts left for a quiz or recovery activity"""

    def __init__(self, max_attempts: int):
        super().__init__(f"Maximum of {max_attempts} attempts already used")
        self.code = "ATTEMPT_LIMIT_EXCEEDED"
        self.details["max_attempts"] = max_attempts


class DuplicateImprovementPlanError(ValidationError):
    """An equivalent active plan already exists"""

    def __init__(self, existing_plan_id: str):
        super().__init__("An active improvement plan with the same title and subject already exists for this student")
        self.code = "DUPLICATE_IMPROVEMENT_PLAN"
        self.details["existing_plan_id"] = existing_plan_id


class TeacherNotAssignedError(ValidationError):
    """Student has no teacher for the academic year"""

    def __init__(self, student_id: str, academic_year: int):
        super().__init__(f"No teacher assigned to student {student_id} for {academic_year}")
        self.code = "TEACHER_NOT_ASSIGNED"
        self.details.update({"student_id": student_id, "academic_year": academic_year})


class DuplicateEntryError(ValidationError):
    """Unique record already exists (email, assignment, link)"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, field=field)
        self.code = "DUPLICATE_ENTRY"


class InvalidFileTypeError(ValidationError):
    """File type not allowed"""

    def __init__(self, file_type: str, allowed_types: list):
        super().__init__(
            f"File type '{file_type}' not allowed. Allowed: {', '.join(allowed_types)}"
        )
        self.code = "INVALID_FILE_TYPE"
        self.details = {"file_type": file_type, "allowed_types": allowed_types}


class FileTooLargeError(SeioError):
    """Upload exceeds MAX_UPLOAD_SIZE"""

    status_code = 413

    def __init__(self, size: int, max_size: int):
        super().__init__(
            f"File too large ({size} bytes). Maximum size is {max_size // 1024 // 1024}MB",
            code="FILE_TOO_LARGE",
            details={"size": size, "max_size": max_size}
        )


# ============================================
# Side-effect Errors
# ============================================

class DocumentGenerationError(SeioError):
    """PDF report generation failed"""

    def __init__(self, message: str, doc_type: Optional[str] = None):
        super().__init__(message, code="DOCUMENT_GENERATION_FAILED")
        if doc_type:
            self.details["doc_type"] = doc_type


class StorageError(SeioError):
    """Storage operation failed"""

    def __init__(self, message: str):
        super().__init__(message, code="STORAGE_ERROR")


class S3UploadError(StorageError):
    """S3 upload failed"""

    def __init__(self, key: str, message: str = "Upload failed"):
        super().__init__(f"Failed to upload to S3: {message}")
        self.code = "S3_UPLOAD_FAILED"
        self.details["s3_key"] = key


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: SeioError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "detail": error.message,
        "error": error.to_dict()
    }
