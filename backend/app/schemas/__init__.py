# Pydantic schemas
from app.schemas.auth import (
    UserRegister,
    UserLogin,
    Token,
    UserResponse,
    LoginResponse,
)
from app.schemas.questionnaire import (
    QuestionnaireCreate,
    QuestionnaireResponse,
    QuestionCreate,
    QuestionForQuiz,
    QuestionResponse,
    QuizSubmission,
    QuizResultResponse,
)
from app.schemas.improvement_plan import (
    ImprovementPlanCreate,
    ImprovementPlanUpdate,
    ImprovementPlanResponse,
    RecoveryResourceCreate,
    RecoveryActivityCreate,
    ActivityCompletion,
)
