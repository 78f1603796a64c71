"""
Model factories shared by the test modules.

Imported by conftest after the test environment variables are set.
"""
from typing import Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from faker import Faker

from app.core.security import get_password_hash, create_access_token
from app.core.types import current_academic_year
from app.models.user import User, UserRole
from app.models.school import Course, Teacher, Student, TeacherStudent
from app.models.questionnaire import Questionnaire, Question, EvaluationResult
from app.models.indicator import Indicator, QuestionnaireIndicator

fake = Faker()

TEST_PASSWORD = 'testpassword123'

async def create_user(db: AsyncSession, role: UserRole = UserRole.STUDENT, **overrides) -> User:
    user = User(
        email=overrides.pop('email', fake.unique.email()),
        hashed_password=get_password_hash(overrides.pop('password', TEST_PASSWORD)),
        name=overrides.pop('name', fake.name()),
        role=role,
        is_active=overrides.pop('is_active', True),
        **overrides,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def create_teacher(db: AsyncSession, subject: str = 'Matemáticas', **user_fields) -> Teacher:
    user = await create_user(db, UserRole.TEACHER, **user_fields)
    teacher = Teacher(user_id=user.id, subject=subject, institution='Institución Educativa SEIO')
    db.add(teacher)
    await db.commit()
    await db.refresh(teacher, attribute_names=['user'])
    return teacher


async def create_student(
    db: AsyncSession,
    grade: int = 10,
    course: Optional[Course] = None,
    teacher: Optional[Teacher] = None,
    **user_fields
) -> Student:
    """Student profile, optionally assigned to a teacher for the current year"""
    user = await create_user(db, UserRole.STUDENT, **user_fields)
    student = Student(
        user_id=user.id,
        grade=grade,
        age=15,
        course_id=course.id if course else None,
        contact_email=fake.email(),
    )
    db.add(student)
    await db.commit()
    if teacher is not None:
        db.add(TeacherStudent(teacher_id=teacher.id, student_id=student.id, academic_year=current_academic_year()))
        await db.commit()
    await db.refresh(student, attribute_names=['user', 'course'])
    return student


async def create_questionnaire(
    db: AsyncSession,
    teacher: Teacher,
    phase: int = 1,
    grade: int = 10,
    correct_answers: List[int] = (1, 2, 3, 4),
    **fields
) -> Questionnaire:
    """Questionnaire with one question per entry of correct_answers"""
    questionnaire = Questionnaire(
        title=fields.pop('title', f"Evaluación {fake.word()}"),
        created_by=teacher.id,
        phase=phase,
        grade=grade,
        subject=fields.pop('subject', teacher.subject),
        **fields,
    )
    db.add(questionnaire)
    await db.flush()

    for index, answer in enumerate(correct_answers, start=1):
        db.add(Question(
            questionnaire_id=questionnaire.id,
            question_text=f"Pregunta {index}",
            option1='A',
            option2='B',
            option3='C',
            option4='D',
            correct_answer=answer,
        ))
    await db.commit()
    await db.refresh(questionnaire)
    return questionnaire


def auth_headers_for(user: User) -> Dict[str, str]:
    """Bearer headers for a user row"""
    token_data = {
        'sub': str(user.id),
        'email': user.email,
        'role': user.role.value
    }
    token = create_access_token(token_data)
    return {'Authorization': f'Bearer {token}'}



async def create_indicator(
    db: AsyncSession,
    teacher: Teacher,
    questionnaire: Optional[Questionnaire] = None,
    passing_score: float = 3.5,
    student: Optional[Student] = None,
    phase: int = 1,
    grade: int = 10,
    **fields
) -> Indicator:
    """Indicator, linked to the questionnaire when one is given"""
    indicator = Indicator(
        teacher_id=teacher.id,
        student_id=student.id if student else None,
        questionnaire_id=questionnaire.id if questionnaire else None,
        description=fields.pop('description', f"Resuelve problemas de {fake.word()}"),
        subject=fields.pop('subject', teacher.subject),
        phase=phase,
        grade=grade,
        **fields,
    )
    db.add(indicator)
    await db.flush()
    if questionnaire is not None:
        db.add(QuestionnaireIndicator(
            questionnaire_id=questionnaire.id,
            indicator_id=indicator.id,
            passing_score=passing_score,
        ))
    await db.commit()
    await db.refresh(indicator)
    return indicator


async def record_result(db: AsyncSession, student: Student, questionnaire: Questionnaire, best_score: float) -> EvaluationResult:
    """Best-score row as the quiz service would leave it"""
    result = EvaluationResult(
        student_id=student.id,
        questionnaire_id=questionnaire.id,
        best_score=best_score,
        min_score=best_score,
        phase=questionnaire.phase,
        academic_year=current_academic_year(),
    )
    db.add(result)
    await db.commit()
    return result
