# Authentication module

from app.modules.auth.dependencies import (
    get_current_user,
    get_current_admin,
    get_current_super_admin,
    get_current_teacher,
    get_current_teacher_profile,
    get_current_student_profile,
)

__all__ = [
    "get_current_user",
    "get_current_admin",
    "get_current_super_admin",
    "get_current_teacher",
    "get_current_teacher_profile",
    "get_current_student_profile",
]
