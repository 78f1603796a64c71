"""
Unit Tests for Authentication API Endpoints
"""
import pytest
from httpx import AsyncClient
from faker import Faker

from app.models.user import User, UserRole
from tests.factories import TEST_PASSWORD

fake = Faker()


class TestRegistration:
    """Self-service registration for students and teachers"""

    @pytest.mark.asyncio
    async def test_register_student(self, client: AsyncClient, course):
        user_data = {
            'email': fake.email(),
            'password': 'claveSegura123',
            'name': fake.name(),
            'role': 'estudiante',
            'grade': 10,
            'course_id': course.id,
        }

        response = await client.post('/api/v1/auth/register', json=user_data)

        assert response.status_code == 201
        data = response.json()
        assert data['email'] == user_data['email']
        assert data['role'] == 'estudiante'
        assert 'hashed_password' not in data

    @pytest.mark.asyncio
    async def test_register_teacher(self, client: AsyncClient):
        user_data = {
            'email': fake.email(),
            'password': 'claveSegura123',
            'name': fake.name(),
            'role': 'docente',
            'subject': 'Ciencias Naturales',
        }

        response = await client.post('/api/v1/auth/register', json=user_data)

        assert response.status_code == 201
        assert response.json()['role'] == 'docente'

    @pytest.mark.asyncio
    async def test_student_requires_grade(self, client: AsyncClient):
        response = await client.post('/api/v1/auth/register', json={
            'email': fake.email(),
            'password': 'claveSegura123',
            'name': fake.name(),
            'role': 'estudiante',
        })

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_teacher_requires_subject(self, client: AsyncClient):
        response = await client.post('/api/v1/auth/register', json={
            'email': fake.email(),
            'password': 'claveSegura123',
            'name': fake.name(),
            'role': 'docente',
        })

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_admin_cannot_self_register(self, client: AsyncClient):
        response = await client.post('/api/v1/auth/register', json={
            'email': fake.email(),
            'password': 'claveSegura123',
            'name': fake.name(),
            'role': 'administrador',
        })

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_duplicate_email(self, client: AsyncClient, student):
        response = await client.post('/api/v1/auth/register', json={
            'email': student.email,
            'password': 'claveSegura123',
            'name': fake.name(),
            'role': 'estudiante',
            'grade': 9,
        })

        assert response.status_code == 400
        assert 'already registered' in response.json()['detail'].lower()

    @pytest.mark.asyncio
    async def test_unknown_course(self, client: AsyncClient):
        response = await client.post('/api/v1/auth/register', json={
            'email': fake.email(),
            'password': 'claveSegura123',
            'name': fake.name(),
            'role': 'estudiante',
            'grade': 9,
            'course_id': '00000000-0000-0000-0000-000000000000',
        })

        assert response.status_code == 404


class TestLogin:
    @pytest.mark.asyncio
    async def test_student_login_returns_profile_id(self, client: AsyncClient, student):
        response = await client.post('/api/v1/auth/login', json={
            'email': student.email,
            'password': TEST_PASSWORD,
        })

        assert response.status_code == 200
        data = response.json()
        assert data['token_type'] == 'bearer'
        assert data['access_token']
        assert data['refresh_token']
        assert data['student_id'] == student.id
        assert data['teacher_id'] is None

    @pytest.mark.asyncio
    async def test_teacher_login_returns_profile_id(self, client: AsyncClient, teacher):
        response = await client.post('/api/v1/auth/login', json={
            'email': teacher.user.email,
            'password': TEST_PASSWORD,
        })

        assert response.status_code == 200
        assert response.json()['teacher_id'] == teacher.id

    @pytest.mark.asyncio
    async def test_wrong_password(self, client: AsyncClient, student):
        response = await client.post('/api/v1/auth/login', json={
            'email': student.email,
            'password': 'incorrecta',
        })

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_email(self, client: AsyncClient):
        response = await client.post('/api/v1/auth/login', json={
            'email': fake.email(),
            'password': TEST_PASSWORD,
        })

        assert response.status_code == 401


class TestTokens:
    @pytest.mark.asyncio
    async def test_me(self, client: AsyncClient, teacher, teacher_auth_headers):
        response = await client.get('/api/v1/auth/me', headers=teacher_auth_headers)

        assert response.status_code == 200
        assert response.json()['id'] == teacher.user_id

    @pytest.mark.asyncio
    async def test_me_without_token(self, client: AsyncClient):
        response = await client.get('/api/v1/auth/me')

        assert response.status_code in (401, 403)

    @pytest.mark.asyncio
    async def test_refresh(self, client: AsyncClient, student):
        login = await client.post('/api/v1/auth/login', json={
            'email': student.email,
            'password': TEST_PASSWORD,
        })

        response = await client.post('/api/v1/auth/refresh', json={
            'refresh_token': login.json()['refresh_token'],
        })

        assert response.status_code == 200
        assert response.json()['access_token']

    @pytest.mark.asyncio
    async def test_access_token_rejected_for_refresh(self, client: AsyncClient, student_auth_headers):
        access_token = student_auth_headers['Authorization'].split(' ', 1)[1]

        response = await client.post('/api/v1/auth/refresh', json={'refresh_token': access_token})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_forgot_password_does_not_reveal_accounts(self, client: AsyncClient):
        response = await client.post('/api/v1/auth/forgot-password', json={'email': fake.email()})

        assert response.status_code == 200
        assert 'Si existe una cuenta' in response.json()['message']


class TestRoleGuards:
    """Admin-only and staff-only routes"""

    @pytest.mark.parametrize("role,is_admin,is_staff", [
        (UserRole.SUPER_ADMIN, True, True),
        (UserRole.ADMIN, True, True),
        (UserRole.TEACHER, False, True),
        (UserRole.STUDENT, False, False),
    ])
    def test_role_properties(self, role, is_admin, is_staff):
        user = User(email='rol@seio.test', name='Rol', role=role)
        assert user.is_admin is is_admin
        assert user.is_staff is is_staff

    @pytest.mark.asyncio
    async def test_user_listing_admin_only(
        self, client: AsyncClient, admin_auth_headers, teacher_auth_headers, student_auth_headers
    ):
        assert (await client.get('/api/v1/users', headers=admin_auth_headers)).status_code == 200
        assert (await client.get('/api/v1/users', headers=teacher_auth_headers)).status_code == 403
        assert (await client.get('/api/v1/users', headers=student_auth_headers)).status_code == 403

    @pytest.mark.asyncio
    async def test_student_blocked_from_staff_route(self, client: AsyncClient, questionnaire, student_auth_headers):
        response = await client.put(
            f'/api/v1/questionnaires/{questionnaire.id}',
            headers=student_auth_headers,
            json={'title': 'Cambiado'},
        )

        assert response.status_code == 403
