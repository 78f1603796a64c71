"""
Unit Tests for the educational resource library
"""
import pytest
from httpx import AsyncClient

from tests.factories import auth_headers_for, create_teacher


def _resource(**overrides) -> dict:
    data = {
        'subject': 'Matemáticas',
        'area': 'Álgebra',
        'title': 'Ecuaciones lineales',
        'url': 'https://es.khanacademy.org/math/algebra',
        'resource_type': 'video',
        'grade_level': 9,
    }
    data.update(overrides)
    return data


class TestEducationalResources:
    @pytest.mark.asyncio
    async def test_create_and_filter(self, client: AsyncClient, teacher_auth_headers, student_auth_headers):
        created = await client.post('/api/v1/educational-resources', headers=teacher_auth_headers, json=_resource())
        await client.post(
            '/api/v1/educational-resources',
            headers=teacher_auth_headers,
            json=_resource(subject='Lenguaje', area='Lectura', title='Comprensión lectora'),
        )

        assert created.status_code == 201

        response = await client.get(
            '/api/v1/educational-resources', headers=student_auth_headers, params={'subject': 'Matemáticas'}
        )
        assert response.status_code == 200
        assert [r['title'] for r in response.json()] == ['Ecuaciones lineales']

    @pytest.mark.asyncio
    @pytest.mark.parametrize('url', ['ftp://example.org/file', 'www.example.org', ''])
    async def test_invalid_url(self, client: AsyncClient, teacher_auth_headers, url):
        response = await client.post(
            '/api/v1/educational-resources', headers=teacher_auth_headers, json=_resource(url=url)
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_area(self, client: AsyncClient, teacher_auth_headers):
        response = await client.post(
            '/api/v1/educational-resources', headers=teacher_auth_headers, json=_resource(area=None)
        )

        assert response.status_code == 400
        assert response.json()['error']['details']['field'] == 'area'

    @pytest.mark.asyncio
    async def test_student_cannot_create(self, client: AsyncClient, student_auth_headers):
        response = await client.post('/api/v1/educational-resources', headers=student_auth_headers, json=_resource())

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_only_creator_updates(self, client: AsyncClient, db_session, teacher_auth_headers):
        created = (await client.post(
            '/api/v1/educational-resources', headers=teacher_auth_headers, json=_resource()
        )).json()
        other = await create_teacher(db_session, subject='Matemáticas')

        response = await client.put(
            f"/api/v1/educational-resources/{created['id']}",
            headers=auth_headers_for(other.user),
            json={'title': 'Otro título'},
        )

        assert response.status_code == 403
