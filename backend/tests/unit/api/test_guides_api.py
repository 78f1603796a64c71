"""
Unit Tests for teacher guide uploads and downloads
"""
import pytest
from httpx import AsyncClient

from tests.factories import auth_headers_for, create_student

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n<< /Root 1 0 R >>\n%%EOF\n"


async def _upload(client, headers, filename='guia_fracciones.pdf', content=PDF_BYTES):
    return await client.post(
        '/api/v1/guides',
        headers=headers,
        data={'title': 'Guía de fracciones', 'grade': '10'},
        files={'file': (filename, content, 'application/pdf')},
    )


class TestGuideUpload:
    @pytest.mark.asyncio
    async def test_upload_pdf(self, client: AsyncClient, teacher, teacher_auth_headers):
        response = await _upload(client, teacher_auth_headers)

        assert response.status_code == 201
        data = response.json()
        assert data['teacher_id'] == teacher.id
        assert data['subject'] == teacher.subject
        assert data['file_size'] == len(PDF_BYTES)

    @pytest.mark.asyncio
    async def test_non_pdf_rejected(self, client: AsyncClient, teacher_auth_headers):
        response = await _upload(client, teacher_auth_headers, filename='guia.docx', content=b'not a pdf')

        assert response.status_code == 400
        assert response.json()['error']['code'] == 'INVALID_FILE_TYPE'

    @pytest.mark.asyncio
    async def test_student_cannot_upload(self, client: AsyncClient, student_auth_headers):
        response = await _upload(client, student_auth_headers)

        assert response.status_code == 403


class TestGuideAccess:
    """Students read the guides of their assigned teachers"""

    @pytest.mark.asyncio
    async def test_assigned_student_lists_and_downloads(
        self, client: AsyncClient, teacher_auth_headers, student_auth_headers
    ):
        guide = (await _upload(client, teacher_auth_headers)).json()

        listing = await client.get('/api/v1/guides', headers=student_auth_headers)
        assert [g['id'] for g in listing.json()] == [guide['id']]

        response = await client.get(f"/api/v1/guides/{guide['id']}/download", headers=student_auth_headers)
        assert response.status_code == 200
        assert response.content == PDF_BYTES

    @pytest.mark.asyncio
    async def test_unassigned_student_cannot_download(self, client: AsyncClient, db_session, teacher_auth_headers):
        guide = (await _upload(client, teacher_auth_headers)).json()
        outsider = await create_student(db_session)
        headers = auth_headers_for(outsider.user)

        listing = await client.get('/api/v1/guides', headers=headers)
        assert listing.json() == []

        response = await client.get(f"/api/v1/guides/{guide['id']}/download", headers=headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_owner_deletes_guide(self, client: AsyncClient, teacher_auth_headers):
        guide = (await _upload(client, teacher_auth_headers)).json()

        response = await client.delete(f"/api/v1/guides/{guide['id']}", headers=teacher_auth_headers)

        assert response.status_code == 200
        missing = await client.get(f"/api/v1/guides/{guide['id']}/download", headers=teacher_auth_headers)
        assert missing.status_code == 404
