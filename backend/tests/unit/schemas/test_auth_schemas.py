"""
Unit Tests for Auth Schemas
"""
import pytest
from pydantic import ValidationError

from app.models.user import UserRole
from app.schemas.auth import UserRegister, UserLogin


class TestUserRegister:
    """Profile fields required per role"""

    def test_valid_student(self):
        user = UserRegister(
            email='ana.gomez@colegio.edu.co',
            password='claveSegura123',
            name='Ana Gómez',
            grade=7,
        )

        assert user.role == UserRole.STUDENT
        assert user.grade == 7

    def test_valid_teacher(self):
        user = UserRegister(
            email='jorge.diaz@colegio.edu.co',
            password='claveSegura123',
            name='Jorge Díaz',
            role=UserRole.TEACHER,
            subject='Química',
        )

        assert user.subject == 'Química'

    def test_student_without_grade(self):
        with pytest.raises(ValidationError) as exc_info:
            UserRegister(email='a@colegio.edu.co', password='claveSegura123', name='Ana Gómez')

        assert 'grade' in str(exc_info.value)

    def test_teacher_with_blank_subject(self):
        with pytest.raises(ValidationError) as exc_info:
            UserRegister(
                email='j@colegio.edu.co',
                password='claveSegura123',
                name='Jorge Díaz',
                role=UserRole.TEACHER,
                subject='   ',
            )

        assert 'subject' in str(exc_info.value)

    @pytest.mark.parametrize('role', [UserRole.ADMIN, UserRole.SUPER_ADMIN])
    def test_admin_roles_rejected(self, role):
        with pytest.raises(ValidationError):
            UserRegister(email='x@colegio.edu.co', password='claveSegura123', name='Admin', role=role)

    def test_short_password(self):
        with pytest.raises(ValidationError):
            UserRegister(email='a@colegio.edu.co', password='corta', name='Ana Gómez', grade=5)

    @pytest.mark.parametrize('grade', [0, 12])
    def test_grade_out_of_range(self, grade):
        with pytest.raises(ValidationError):
            UserRegister(email='a@colegio.edu.co', password='claveSegura123', name='Ana Gómez', grade=grade)

    def test_invalid_email(self):
        with pytest.raises(ValidationError):
            UserLogin(email='no-es-un-correo', password='claveSegura123')
