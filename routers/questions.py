"""
Router for generated questions.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db_config import get_async_db
from core.exceptions import ResourceNotFoundException
from core.file_utils import LocalObjectStorage, get_storage
from core.security import get_current_user_id
from models.models import GeneratedQuestion, DifficultyEnum
from schemas.question import GeneratedQuestionRead
from services.class_service import ClassService

router = APIRouter(tags=["Questions"])


@router.get("/classes/{class_id}/questions", response_model=List[GeneratedQuestionRead])
async def list_class_questions(
    class_id: int,
    material_id: Optional[int] = Query(None),
    difficulty: Optional[DifficultyEnum] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_db),
    storage: LocalObjectStorage = Depends(get_storage)
):
    """List a class's questions in generation order."""
    await ClassService(db, storage).get_owned_class(user_id, class_id)

    stmt = select(GeneratedQuestion).where(
        GeneratedQuestion.class_id == class_id,
        GeneratedQuestion.user_id == user_id,
    )
    if material_id is not None:
        stmt = stmt.where(GeneratedQuestion.study_material_id == material_id)
    if difficulty is not None:
        stmt = stmt.where(GeneratedQuestion.difficulty == difficulty)
    stmt = stmt.order_by(GeneratedQuestion.question_order, GeneratedQuestion.id)
    if limit:
        stmt = stmt.limit(limit)

    result = await db.execute(stmt)
    return result.scalars().all()


@router.get("/questions/{question_id}", response_model=GeneratedQuestionRead)
async def get_question(
    question_id: int,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_db)
):
    stmt = select(GeneratedQuestion).where(
        GeneratedQuestion.id == question_id,
        GeneratedQuestion.user_id == user_id,
    )
    question = (await db.execute(stmt)).scalar_one_or_none()
    if question is None:
        raise ResourceNotFoundException(f"Question with ID {question_id} not found")
    return question
