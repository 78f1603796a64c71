from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import QuestionNotFoundError
from app.core.logging_config import logger
from app.models.user import User
from app.models.questionnaire import Question
from app.modules.auth.dependencies import get_current_teacher
from app.schemas.questionnaire import QuestionUpdate, QuestionResponse
from app.schemas.auth import MessageResponse
from app.services.storage_service import storage_service
from app.api.v1.endpoints.questionnaires import get_questionnaire_or_404, ensure_questionnaire_owner

router = APIRouter()


async def _get_owned_question(db: AsyncSession, current_user: User, question_id: str) -> Question:
    question = await db.get(Question, question_id)
    if not question:
        raise QuestionNotFoundError(question_id)
    questionnaire = await get_questionnaire_or_404(db, question.questionnaire_id)
    await ensure_questionnaire_owner(db, current_user, questionnaire)
    return question


@router.put("/{question_id}", response_model=QuestionResponse)
async def update_question(
    question_id: str,
    data: QuestionUpdate,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    question = await _get_owned_question(db, current_user, question_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(question, field, value)
    await db.commit()
    await db.refresh(question)
    return question


@router.delete("/{question_id}", response_model=MessageResponse)
async def delete_question(
    question_id: str,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    question = await _get_owned_question(db, current_user, question_id)
    await db.delete(question)
    await db.commit()
    return MessageResponse(message="Pregunta eliminada")


@router.post("/{question_id}/image", response_model=QuestionResponse)
async def upload_question_image(
    question_id: str,
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    """Attach an image to a question (png, jpg, gif or webp)"""
    question = await _get_owned_question(db, current_user, question_id)

    content = await file.read()
    storage_service.validate_upload(file.filename or "", len(content), settings.IMAGE_EXTENSIONS)

    key = storage_service.generate_key("questions", file.filename)
    await storage_service.save(key, content, file.content_type or "application/octet-stream")

    question.image_url = storage_service.public_url(key)
    await db.commit()
    await db.refresh(question)

    logger.info(f"Image uploaded for question {question_id}: {key}")
    return question
