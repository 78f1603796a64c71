"""
Links between questionnaires and the indicators they measure.
Each link carries its own passing score and weight.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List

from app.core.database import get_db
from app.core.exceptions import DuplicateEntryError, ResourceNotFoundError
from app.core.logging_config import logger
from app.models.user import User
from app.models.questionnaire import Questionnaire
from app.models.indicator import Indicator, QuestionnaireIndicator
from app.modules.auth.dependencies import get_current_user, get_current_teacher
from app.schemas.indicator import (
    QuestionnaireIndicatorCreate, QuestionnaireIndicatorUpdate,
    QuestionnaireIndicatorResponse, LinkedQuestionnaireResponse,
)
from app.schemas.auth import MessageResponse
from app.api.v1.endpoints.questionnaires import get_questionnaire_or_404, ensure_questionnaire_owner
from app.api.v1.endpoints.indicators import get_indicator_or_404

router = APIRouter()


def _link_response(link: QuestionnaireIndicator, indicator: Indicator) -> QuestionnaireIndicatorResponse:
    return QuestionnaireIndicatorResponse(
        id=link.id,
        questionnaire_id=link.questionnaire_id,
        indicator_id=link.indicator_id,
        passing_score=link.passing_score,
        weight=link.weight,
        description=indicator.description,
        subject=indicator.subject,
        phase=indicator.phase,
    )


async def _get_link(db: AsyncSession, questionnaire_id: str, indicator_id: str) -> QuestionnaireIndicator:
    result = await db.execute(
        select(QuestionnaireIndicator).where(
            QuestionnaireIndicator.questionnaire_id == questionnaire_id,
            QuestionnaireIndicator.indicator_id == indicator_id,
        )
    )
    link = result.scalar_one_or_none()
    if not link:
        raise ResourceNotFoundError("Questionnaire indicator", f"{questionnaire_id}/{indicator_id}")
    return link


@router.get("/questionnaire/{questionnaire_id}/indicators", response_model=List[QuestionnaireIndicatorResponse])
async def list_questionnaire_indicators(
    questionnaire_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await get_questionnaire_or_404(db, questionnaire_id)
    result = await db.execute(
        select(QuestionnaireIndicator, Indicator)
        .join(Indicator, QuestionnaireIndicator.indicator_id == Indicator.id)
        .where(QuestionnaireIndicator.questionnaire_id == questionnaire_id)
        .order_by(Indicator.subject, Indicator.created_at)
    )
    return [_link_response(link, indicator) for link, indicator in result.all()]


@router.post(
    "/questionnaire/{questionnaire_id}/indicators",
    response_model=QuestionnaireIndicatorResponse,
    status_code=status.HTTP_201_CREATED,
)
async def link_indicator(
    questionnaire_id: str,
    data: QuestionnaireIndicatorCreate,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    questionnaire = await get_questionnaire_or_404(db, questionnaire_id)
    await ensure_questionnaire_owner(db, current_user, questionnaire)
    indicator = await get_indicator_or_404(db, data.indicator_id)

    existing = await db.execute(
        select(QuestionnaireIndicator.id).where(
            QuestionnaireIndicator.questionnaire_id == questionnaire_id,
            QuestionnaireIndicator.indicator_id == data.indicator_id,
        )
    )
    if existing.first():
        raise DuplicateEntryError("Indicator is already linked to this questionnaire", field="indicator_id")

    link = QuestionnaireIndicator(questionnaire_id=questionnaire_id, **data.model_dump())
    db.add(link)
    await db.commit()
    await db.refresh(link)

    logger.info(f"Indicator {indicator.id} linked to questionnaire {questionnaire_id} (passing {link.passing_score})")
    return _link_response(link, indicator)


@router.put(
    "/questionnaire/{questionnaire_id}/indicators/{indicator_id}",
    response_model=QuestionnaireIndicatorResponse,
)
async def update_link(
    questionnaire_id: str,
    indicator_id: str,
    data: QuestionnaireIndicatorUpdate,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    questionnaire = await get_questionnaire_or_404(db, questionnaire_id)
    await ensure_questionnaire_owner(db, current_user, questionnaire)
    link = await _get_link(db, questionnaire_id, indicator_id)

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(link, field, value)
    await db.commit()
    await db.refresh(link)

    indicator = await get_indicator_or_404(db, indicator_id)
    return _link_response(link, indicator)


@router.delete("/questionnaire/{questionnaire_id}/indicators/{indicator_id}", response_model=MessageResponse)
async def unlink_indicator(
    questionnaire_id: str,
    indicator_id: str,
    current_user: User = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    questionnaire = await get_questionnaire_or_404(db, questionnaire_id)
    await ensure_questionnaire_owner(db, current_user, questionnaire)
    link = await _get_link(db, questionnaire_id, indicator_id)

    await db.delete(link)
    await db.commit()
    return MessageResponse(message="Indicador desvinculado del cuestionario")


@router.get("/indicator/{indicator_id}/questionnaires", response_model=List[LinkedQuestionnaireResponse])
async def list_indicator_questionnaires(
    indicator_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await get_indicator_or_404(db, indicator_id)
    result = await db.execute(
        select(QuestionnaireIndicator, Questionnaire)
        .join(Questionnaire, QuestionnaireIndicator.questionnaire_id == Questionnaire.id)
        .where(QuestionnaireIndicator.indicator_id == indicator_id)
        .order_by(Questionnaire.phase, Questionnaire.title)
    )
    return [
        LinkedQuestionnaireResponse(
            questionnaire_id=questionnaire.id,
            title=questionnaire.title,
            phase=questionnaire.phase,
            subject=questionnaire.subject,
            passing_score=link.passing_score,
            weight=link.weight,
        )
        for link, questionnaire in result.all()
    ]
