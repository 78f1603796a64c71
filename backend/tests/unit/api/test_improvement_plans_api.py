"""
Unit Tests for improvement plan endpoints
"""
import pytest
from datetime import date, timedelta
from httpx import AsyncClient

from tests.factories import auth_headers_for, create_student, create_teacher


def _plan_payload(student, **overrides) -> dict:
    payload = {
        'student_id': student.id,
        'title': 'Plan de refuerzo de álgebra',
        'subject': 'Matemáticas',
        'deadline': (date.today() + timedelta(days=14)).isoformat(),
    }
    payload.update(overrides)
    return payload


async def _create_plan(client, headers, student, **overrides) -> dict:
    response = await client.post('/api/v1/improvement-plans', headers=headers, json=_plan_payload(student, **overrides))
    assert response.status_code == 201
    return response.json()


class TestCreatePlan:
    @pytest.mark.asyncio
    async def test_teacher_creates_as_self(self, client: AsyncClient, db_session, teacher, student, teacher_auth_headers):
        other = await create_teacher(db_session, subject='Matemáticas')
        plan = await _create_plan(client, teacher_auth_headers, student, teacher_id=other.id)

        assert plan['teacher_id'] == teacher.id
        assert plan['activity_status'] == 'pending'

    @pytest.mark.asyncio
    async def test_admin_must_name_teacher(self, client: AsyncClient, student, admin_auth_headers):
        response = await client.post(
            '/api/v1/improvement-plans', headers=admin_auth_headers, json=_plan_payload(student)
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_admin_with_teacher(self, client: AsyncClient, teacher, student, admin_auth_headers):
        plan = await _create_plan(client, admin_auth_headers, student, teacher_id=teacher.id)

        assert plan['teacher_id'] == teacher.id

    @pytest.mark.asyncio
    async def test_duplicate_active_plan(self, client: AsyncClient, student, teacher_auth_headers):
        first = await _create_plan(client, teacher_auth_headers, student)

        response = await client.post(
            '/api/v1/improvement-plans', headers=teacher_auth_headers, json=_plan_payload(student)
        )

        assert response.status_code == 400
        error = response.json()['error']
        assert error['code'] == 'DUPLICATE_IMPROVEMENT_PLAN'
        assert error['details']['existing_plan_id'] == first['id']

    @pytest.mark.asyncio
    async def test_student_cannot_create(self, client: AsyncClient, student, student_auth_headers):
        response = await client.post(
            '/api/v1/improvement-plans', headers=student_auth_headers, json=_plan_payload(student)
        )

        assert response.status_code == 403


class TestPlanAccess:
    """Visibility and edit rights"""

    @pytest.mark.asyncio
    async def test_student_lists_own_plans(
        self, client: AsyncClient, db_session, teacher, student, teacher_auth_headers, student_auth_headers
    ):
        classmate = await create_student(db_session, teacher=teacher)
        await _create_plan(client, teacher_auth_headers, student)
        await _create_plan(client, teacher_auth_headers, classmate)

        response = await client.get('/api/v1/improvement-plans', headers=student_auth_headers)

        assert response.status_code == 200
        assert [p['student_id'] for p in response.json()] == [student.id]

    @pytest.mark.asyncio
    async def test_student_cannot_view_other_plan(
        self, client: AsyncClient, db_session, teacher, student, teacher_auth_headers
    ):
        plan = await _create_plan(client, teacher_auth_headers, student)
        classmate = await create_student(db_session, teacher=teacher)

        response = await client.get(
            f"/api/v1/improvement-plans/{plan['id']}", headers=auth_headers_for(classmate.user)
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_student_feedback_only(
        self, client: AsyncClient, student, teacher_auth_headers, student_auth_headers
    ):
        plan = await _create_plan(client, teacher_auth_headers, student)

        response = await client.put(
            f"/api/v1/improvement-plans/{plan['id']}",
            headers=student_auth_headers,
            json={'title': 'Cambiado por estudiante', 'student_feedback': 'Entregué el taller'},
        )

        assert response.status_code == 200
        data = response.json()
        assert data['title'] == plan['title']
        assert data['student_feedback'] == 'Entregué el taller'

    @pytest.mark.asyncio
    async def test_student_update_without_feedback_keeps_it(
        self, client: AsyncClient, student, teacher_auth_headers, student_auth_headers
    ):
        plan = await _create_plan(client, teacher_auth_headers, student)
        url = f"/api/v1/improvement-plans/{plan['id']}"
        await client.put(url, headers=student_auth_headers, json={'student_feedback': 'Entregué el taller'})

        response = await client.put(url, headers=student_auth_headers, json={'title': 'otro'})

        assert response.status_code == 200
        assert response.json()['student_feedback'] == 'Entregué el taller'
        assert response.json()['title'] == plan['title']

    @pytest.mark.asyncio
    async def test_other_teacher_cannot_delete(self, client: AsyncClient, db_session, student, teacher_auth_headers):
        plan = await _create_plan(client, teacher_auth_headers, student)
        other = await create_teacher(db_session, subject='Lenguaje')

        response = await client.delete(
            f"/api/v1/improvement-plans/{plan['id']}", headers=auth_headers_for(other.user)
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_teacher_listing_route(self, client: AsyncClient, teacher, student, teacher_auth_headers):
        await _create_plan(client, teacher_auth_headers, student)

        response = await client.get(f'/api/v1/improvement-plans/teacher/{teacher.id}', headers=teacher_auth_headers)

        assert response.status_code == 200
        assert len(response.json()) == 1

    @pytest.mark.asyncio
    async def test_unknown_plan(self, client: AsyncClient, teacher_auth_headers):
        response = await client.get(
            '/api/v1/improvement-plans/00000000-0000-0000-0000-000000000000', headers=teacher_auth_headers
        )

        assert response.status_code == 404


class TestRecoveryMaterial:
    @pytest.mark.asyncio
    async def test_activity_flow(
        self, client: AsyncClient, student, teacher_auth_headers, student_auth_headers
    ):
        plan = await _create_plan(client, teacher_auth_headers, student)
        activity = await client.post(
            f"/api/v1/improvement-plans/{plan['id']}/activities",
            headers=teacher_auth_headers,
            json={'activity_type': 'exercise', 'title': 'Taller de ecuaciones', 'passing_score': 3.5, 'max_attempts': 2},
        )
        assert activity.status_code == 201
        activity_id = activity.json()['id']

        response = await client.post(
            f'/api/v1/improvement-plans/activities/{activity_id}/complete',
            headers=student_auth_headers,
            json={'score': 4.0},
        )

        assert response.status_code == 200
        assert response.json()['status'] == 'completed'

        progress = await client.get(
            f"/api/v1/improvement-plans/{plan['id']}/progress", headers=teacher_auth_headers
        )
        assert progress.status_code == 200
        assert progress.json()['statistics']['completed_activities'] == 1

    @pytest.mark.asyncio
    async def test_resource_title_required(self, client: AsyncClient, student, teacher_auth_headers):
        plan = await _create_plan(client, teacher_auth_headers, student)

        response = await client.post(
            f"/api/v1/improvement-plans/{plan['id']}/resources",
            headers=teacher_auth_headers,
            json={'resource_type': 'video', 'url': 'https://www.youtube.com/watch?v=algebra'},
        )

        assert response.status_code == 422
