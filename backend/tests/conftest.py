"""
SEIO - Test Configuration and Fixtures
"""
import os
import tempfile
from typing import AsyncGenerator
from unittest.mock import AsyncMock, patch
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

_TEST_DIR = tempfile.mkdtemp(prefix="seio-tests-")
TEST_DATABASE_URL = f"sqlite+aiosqlite:///{_TEST_DIR}/test.db"

# Set testing environment
os.environ['TESTING'] = 'true'
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DATABASE_URL'] = TEST_DATABASE_URL
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['LOG_FILE'] = ''
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['SMTP_USER'] = ''
os.environ['SMTP_PASSWORD'] = ''
os.environ['STORAGE_MODE'] = 'local'
os.environ['UPLOAD_ROOT'] = os.path.join(_TEST_DIR, 'uploads')

from app.main import app
from app.core.database import Base, get_db
from app.models.user import User, UserRole
from app.models.school import Course, Teacher, Student
from app.models.questionnaire import Questionnaire
from tests.factories import (
    create_user, create_teacher, create_student, create_questionnaire, auth_headers_for,
)

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)
TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


# ============================================
# Fixtures
# ============================================

@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    """Create an admin test user"""
    return await create_user(db_session, UserRole.ADMIN)


@pytest.fixture
async def course(db_session: AsyncSession) -> Course:
    course = Course(name='Décimo A', grade=10, institution='Institución Educativa SEIO')
    db_session.add(course)
    await db_session.commit()
    await db_session.refresh(course)
    return course


@pytest.fixture
async def teacher(db_session: AsyncSession) -> Teacher:
    """Create a teacher with profile"""
    return await create_teacher(db_session)


@pytest.fixture
async def student(db_session: AsyncSession, teacher: Teacher, course: Course) -> Student:
    """Create a grade 10 student assigned to the teacher for this year"""
    return await create_student(db_session, course=course, teacher=teacher)


@pytest.fixture
async def questionnaire(db_session: AsyncSession, teacher: Teacher) -> Questionnaire:
    """Phase 1 questionnaire with four questions (answers 1, 2, 3, 4)"""
    return await create_questionnaire(db_session, teacher)


@pytest.fixture
def admin_auth_headers(admin_user: User) -> dict:
    return auth_headers_for(admin_user)


@pytest.fixture
def teacher_auth_headers(teacher: Teacher) -> dict:
    return auth_headers_for(teacher.user)


@pytest.fixture
def student_auth_headers(student: Student) -> dict:
    return auth_headers_for(student.user)


@pytest.fixture
def smtp_send():
    """SMTP configured and every send accepted; yields the mocked transport"""
    from app.services.email_service import email_service

    with patch.object(email_service, 'smtp_host', 'smtp.test.local'), \
            patch.object(email_service, 'smtp_user', 'seio@test.local'), \
            patch.object(email_service, 'smtp_password', 'secret'), \
            patch.object(email_service, '_send_via_smtp', new=AsyncMock(return_value=True)) as send:
        yield send
