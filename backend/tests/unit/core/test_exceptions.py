"""
Unit Tests for the SEIO exception hierarchy
"""
from app.core.exceptions import (
    SeioError,
    ResourceNotFoundError,
    StudentNotFoundError,
    EvaluationResultNotFoundError,
    EmptyQuestionnaireError,
    ValidationError,
    InvalidPhaseError,
    AttemptLimitExceededError,
    DuplicateImprovementPlanError,
    TeacherNotAssignedError,
    InvalidFileTypeError,
    FileTooLargeError,
    AuthorizationError,
    error_response,
)


class TestStatusCodes:
    """Each family maps to one HTTP status"""

    def test_not_found_errors_are_404(self):
        assert StudentNotFoundError("s1").status_code == 404
        assert EmptyQuestionnaireError("q1").status_code == 404

    def test_validation_errors_are_400(self):
        assert InvalidPhaseError(7).status_code == 400
        assert AttemptLimitExceededError(2).status_code == 400
        assert DuplicateImprovementPlanError("p1").status_code == 400
        assert TeacherNotAssignedError("s1", 2024).status_code == 400

    def test_authorization_error_is_403(self):
        assert AuthorizationError().status_code == 403

    def test_file_too_large_is_413(self):
        assert FileTooLargeError(20 * 1024 * 1024, 10 * 1024 * 1024).status_code == 413

    def test_base_error_is_500(self):
        assert SeioError("boom").status_code == 500


class TestErrorDetails:
    """Codes and details carried by the exceptions"""

    def test_resource_not_found_code(self):
        error = ResourceNotFoundError("Improvement plan", "abc")

        assert error.code == "IMPROVEMENT_PLAN_NOT_FOUND"
        assert error.details == {"resource_type": "Improvement plan", "resource_id": "abc"}
        assert "abc" in error.message

    def test_evaluation_result_not_found_details(self):
        error = EvaluationResultNotFoundError("s1", "q1")

        assert error.details["student_id"] == "s1"
        assert error.details["questionnaire_id"] == "q1"

    def test_empty_questionnaire_message(self):
        assert EmptyQuestionnaireError("q1").message == "No questions found for this questionnaire"

    def test_invalid_phase(self):
        error = InvalidPhaseError(5)

        assert error.code == "INVALID_PHASE"
        assert error.details["field"] == "phase"
        assert "between 1 and 4" in error.message

    def test_duplicate_plan_keeps_existing_id(self):
        error = DuplicateImprovementPlanError("plan-1")

        assert isinstance(error, ValidationError)
        assert error.details["existing_plan_id"] == "plan-1"

    def test_invalid_file_type(self):
        error = InvalidFileTypeError(".exe", [".pdf"])

        assert error.code == "INVALID_FILE_TYPE"
        assert error.details == {"file_type": ".exe", "allowed_types": [".pdf"]}


class TestErrorResponse:
    def test_error_response_format(self):
        response = error_response(AttemptLimitExceededError(2))

        assert response["success"] is False
        assert response["detail"] == "Maximum of 2 attempts already used"
        assert response["error"]["code"] == "ATTEMPT_LIMIT_EXCEEDED"
        assert response["error"]["details"]["max_attempts"] == 2
