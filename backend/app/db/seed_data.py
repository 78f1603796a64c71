"""
Database Seed Data Module

Creates the initial super administrator from SUPERADMIN_* settings and,
with `demo`, a small sample school (courses, one teacher, students).
Run with: seio-seed [demo]   or   python -m app.db.seed_data [demo]
"""
import asyncio
import sys
from typing import List

from faker import Faker
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import AsyncSessionLocal, init_db, close_db
from app.core.security import get_password_hash
from app.core.types import current_academic_year
from app.models.user import User, UserRole
from app.models.school import Course, Teacher, Student, TeacherStudent

DEMO_PASSWORD = "Seio2024!"

SAMPLE_COURSES = [
    {"name": "Sexto A", "grade": 6, "institution": "Institución Educativa SEIO"},
    {"name": "Séptimo A", "grade": 7, "institution": "Institución Educativa SEIO"},
    {"name": "Octavo A", "grade": 8, "institution": "Institución Educativa SEIO"},
]

SAMPLE_TEACHERS = [
    {"email": "docente.matematicas@seio.edu.co", "name": "Laura Gómez", "subject": "Matemáticas"},
    {"email": "docente.lenguaje@seio.edu.co", "name": "Andrés Rojas", "subject": "Lenguaje"},
]

STUDENTS_PER_COURSE = 4


async def _user_exists(db: AsyncSession, email: str) -> bool:
    result = await db.execute(select(User.id).where(User.email == email))
    return result.first() is not None


async def seed_superadmin(db: AsyncSession) -> User:
    """Create the super administrator once"""
    result = await db.execute(select(User).where(User.email == settings.SUPERADMIN_EMAIL))
    existing = result.scalar_one_or_none()
    if existing:
        print(f"Super administrator already exists: {existing.email}")
        return existing

    if not settings.SUPERADMIN_PASSWORD:
        raise RuntimeError("SUPERADMIN_PASSWORD must be set to seed the super administrator")

    admin = User(
        email=settings.SUPERADMIN_EMAIL,
        name=settings.SUPERADMIN_NAME,
        hashed_password=get_password_hash(settings.SUPERADMIN_PASSWORD),
        role=UserRole.SUPER_ADMIN,
        is_active=True,
    )
    db.add(admin)
    await db.flush()
    print(f"Created super administrator: {admin.email}")
    return admin


async def seed_courses(db: AsyncSession) -> List[Course]:
    courses = [Course(**data) for data in SAMPLE_COURSES]
    db.add_all(courses)
    await db.flush()
    print(f"Created {len(courses)} courses")
    return courses


async def seed_teachers(db: AsyncSession) -> List[Teacher]:
    teachers = []
    for data in SAMPLE_TEACHERS:
        if await _user_exists(db, data["email"]):
            continue
        user = User(
            email=data["email"],
            name=data["name"],
            hashed_password=get_password_hash(DEMO_PASSWORD),
            role=UserRole.TEACHER,
        )
        db.add(user)
        await db.flush()

        teacher = Teacher(user_id=user.id, subject=data["subject"], institution=SAMPLE_COURSES[0]["institution"])
        db.add(teacher)
        teachers.append(teacher)

    await db.flush()
    print(f"Created {len(teachers)} teachers")
    return teachers


async def seed_students(db: AsyncSession, courses: List[Course], teachers: List[Teacher]) -> List[Student]:
    """Students per course, each assigned to every demo teacher for the current year"""
    fake = Faker("es_CO")
    year = current_academic_year()
    students = []

    for course in courses:
        for _ in range(STUDENTS_PER_COURSE):
            user = User(
                email=fake.unique.email(),
                name=fake.name(),
                hashed_password=get_password_hash(DEMO_PASSWORD),
                role=UserRole.STUDENT,
            )
            db.add(user)
            await db.flush()

            student = Student(
                user_id=user.id,
                course_id=course.id,
                grade=course.grade,
                age=course.grade + 6,
                contact_email=fake.email(),
                contact_phone=fake.msisdn()[:10],
            )
            db.add(student)
            await db.flush()
            students.append(student)

            for teacher in teachers:
                db.add(TeacherStudent(teacher_id=teacher.id, student_id=student.id, academic_year=year))

    await db.flush()
    print(f"Created {len(students)} students")
    return students


async def seed_all(demo: bool = False):
    """Create tables, then seed"""
    print("Creating database tables...")
    await init_db()

    async with AsyncSessionLocal() as db:
        try:
            await seed_superadmin(db)
            if demo:
                courses = await seed_courses(db)
                teachers = await seed_teachers(db)
                await seed_students(db, courses, teachers)

            await db.commit()
            print("=" * 50)
            print("Database seeding completed successfully!")
            if demo:
                print(f"Demo accounts use the password: {DEMO_PASSWORD}")
            print("=" * 50)

        except Exception as e:
            await db.rollback()
            print(f"Error seeding database: {e}")
            raise

    await close_db()


def main():
    """Entry point for the seio-seed console script"""
    demo = len(sys.argv) > 1 and sys.argv[1] == "demo"
    asyncio.run(seed_all(demo=demo))


if __name__ == "__main__":
    main()
