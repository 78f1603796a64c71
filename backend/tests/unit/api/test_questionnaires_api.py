"""
Unit Tests for questionnaire, question and quiz endpoints
"""
import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.models.questionnaire import Question
from tests.factories import auth_headers_for, create_teacher


async def _question_ids(db_session, questionnaire):
    result = await db_session.execute(
        select(Question).where(Question.questionnaire_id == questionnaire.id).order_by(Question.created_at)
    )
    return list(result.scalars().all())


class TestQuestionnaireCrud:
    @pytest.mark.asyncio
    async def test_teacher_creates_questionnaire(self, client: AsyncClient, teacher, teacher_auth_headers):
        response = await client.post('/api/v1/questionnaires', headers=teacher_auth_headers, json={
            'title': 'Evaluación de fracciones',
            'phase': 2,
            'grade': 10,
        })

        assert response.status_code == 201
        data = response.json()
        assert data['created_by'] == teacher.id
        assert data['subject'] == teacher.subject
        assert data['phase'] == 2

    @pytest.mark.asyncio
    async def test_invalid_phase(self, client: AsyncClient, teacher, teacher_auth_headers):
        response = await client.post('/api/v1/questionnaires', headers=teacher_auth_headers, json={
            'title': 'Evaluación fuera de fase',
            'phase': 5,
            'grade': 10,
        })

        assert response.status_code == 400
        assert response.json()['success'] is False

    @pytest.mark.asyncio
    async def test_student_cannot_create(self, client: AsyncClient, student_auth_headers):
        response = await client.post('/api/v1/questionnaires', headers=student_auth_headers, json={
            'title': 'Intento de estudiante',
            'phase': 1,
            'grade': 10,
        })

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_other_teacher_cannot_delete(self, client: AsyncClient, db_session, questionnaire):
        other = await create_teacher(db_session, subject='Lenguaje')

        response = await client.delete(
            f'/api/v1/questionnaires/{questionnaire.id}', headers=auth_headers_for(other.user)
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_questionnaire(self, client: AsyncClient, teacher_auth_headers):
        response = await client.get(
            '/api/v1/questionnaires/00000000-0000-0000-0000-000000000000', headers=teacher_auth_headers
        )

        assert response.status_code == 404


class TestQuestions:
    @pytest.mark.asyncio
    async def test_teacher_sees_correct_answers(self, client: AsyncClient, questionnaire, teacher_auth_headers):
        response = await client.get(
            f'/api/v1/questionnaires/{questionnaire.id}/questions', headers=teacher_auth_headers
        )

        assert response.status_code == 200
        questions = response.json()
        assert len(questions) == 4
        assert all('correct_answer' in q for q in questions)

    @pytest.mark.asyncio
    async def test_student_never_sees_correct_answers(self, client: AsyncClient, questionnaire, student_auth_headers):
        response = await client.get(
            f'/api/v1/questionnaires/{questionnaire.id}/questions', headers=student_auth_headers
        )

        assert response.status_code == 200
        questions = response.json()
        assert len(questions) == 4
        assert all('correct_answer' not in q for q in questions)

    @pytest.mark.asyncio
    async def test_correct_answer_out_of_range(self, client: AsyncClient, questionnaire, teacher_auth_headers):
        response = await client.post(
            f'/api/v1/questionnaires/{questionnaire.id}/questions',
            headers=teacher_auth_headers,
            json={
                'question_text': '¿Cuánto es 2 + 2?',
                'option1': '3',
                'option2': '4',
                'correct_answer': 5,
            },
        )

        assert response.status_code == 422


class TestQuizSubmission:
    """Students submitting attempts through the API"""

    @pytest.mark.asyncio
    async def test_submit_quiz(self, client: AsyncClient, db_session, questionnaire, student_auth_headers):
        questions = await _question_ids(db_session, questionnaire)
        answers = {q.id: q.correct_answer for q in questions[:3]}
        answers[questions[3].id] = questions[3].correct_answer % 4 + 1

        response = await client.post('/api/v1/quiz/submit', headers=student_auth_headers, json={
            'questionnaire_id': questionnaire.id,
            'answers': answers,
        })

        assert response.status_code == 200
        data = response.json()
        assert data['score'] == 3.75
        assert data['best_score'] == 3.75
        assert data['attempt_number'] == 1
        assert data['attempts_remaining'] == 1
        assert data['correct_answers'] == 3
        assert data['total_questions'] == 4

    @pytest.mark.asyncio
    async def test_third_attempt_rejected(self, client: AsyncClient, questionnaire, student_auth_headers):
        payload = {'questionnaire_id': questionnaire.id, 'answers': {}}
        for _ in range(2):
            response = await client.post('/api/v1/quiz/submit', headers=student_auth_headers, json=payload)
            assert response.status_code == 200

        response = await client.post('/api/v1/quiz/submit', headers=student_auth_headers, json=payload)

        assert response.status_code == 400
        assert response.json()['error']['code'] == 'ATTEMPT_LIMIT_EXCEEDED'

    @pytest.mark.asyncio
    async def test_teacher_cannot_submit(self, client: AsyncClient, questionnaire, teacher_auth_headers):
        response = await client.post('/api/v1/quiz/submit', headers=teacher_auth_headers, json={
            'questionnaire_id': questionnaire.id,
            'answers': {},
        })

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_student_attempts(self, client: AsyncClient, questionnaire, student_auth_headers):
        await client.post('/api/v1/quiz/submit', headers=student_auth_headers, json={
            'questionnaire_id': questionnaire.id,
            'answers': {},
        })

        response = await client.get(f'/api/v1/quiz/attempts/{questionnaire.id}', headers=student_auth_headers)

        assert response.status_code == 200
        assert response.json()['count'] == 1

    @pytest.mark.asyncio
    async def test_teacher_attempts_need_student_id(self, client: AsyncClient, questionnaire, teacher_auth_headers):
        response = await client.get(f'/api/v1/quiz/attempts/{questionnaire.id}', headers=teacher_auth_headers)

        assert response.status_code == 400
