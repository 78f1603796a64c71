"""
Unit Tests for teacher-student assignments and resource validation
"""
import pytest

from app.core.exceptions import DuplicateEntryError, ValidationError
from app.services.educational_resource_service import is_valid_url, validate_resource_fields
from app.services.school_service import school_service
from tests.factories import create_student, create_teacher


class TestAssignments:
    @pytest.mark.asyncio
    async def test_assign_and_lookup(self, db_session, teacher):
        pupil = await create_student(db_session)

        await school_service.assign_student(db_session, teacher.id, pupil.id)

        assigned = await school_service.get_assigned_teacher(db_session, pupil.id)
        assert assigned.id == teacher.id
        assert await school_service.is_assigned(db_session, teacher.id, pupil.id)
        assert pupil.id in await school_service.get_teacher_student_ids(db_session, teacher.id)

    @pytest.mark.asyncio
    async def test_duplicate_assignment(self, db_session, teacher, student):
        with pytest.raises(DuplicateEntryError):
            await school_service.assign_student(db_session, teacher.id, student.id)

    @pytest.mark.asyncio
    async def test_student_with_two_teachers(self, db_session, teacher, student):
        physics = await create_teacher(db_session, subject='Física')
        await school_service.assign_student(db_session, physics.id, student.id)

        teacher_ids = await school_service.get_student_teacher_ids(db_session, student.id)

        assert set(teacher_ids) == {teacher.id, physics.id}


class TestResourceValidation:
    @pytest.mark.parametrize('url', ['https://es.khanacademy.org', 'http://colegio.edu.co/guia'])
    def test_valid_urls(self, url):
        assert is_valid_url(url)

    @pytest.mark.parametrize('url', [None, '', 'khanacademy.org', 'ftp://files.org/a', 'https://'])
    def test_invalid_urls(self, url):
        assert not is_valid_url(url)

    def test_partial_update_checks_present_fields_only(self):
        validate_resource_fields({'title': 'Nuevo título'}, partial=True)

        with pytest.raises(ValidationError):
            validate_resource_fields({'title': '  '}, partial=True)
