"""
Router for study classes.
"""
from typing import List
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db_config import get_async_db
from core.file_utils import LocalObjectStorage, get_storage
from core.logging import get_logger
from core.security import get_current_user_id
from models.models import StudyClass
from schemas.study_class import StudyClassCreate, StudyClassRead, StudyClassUpdate, ClassAccuracyRead
from services.class_service import ClassService
from services.session_service import SessionService

router = APIRouter(prefix="/classes", tags=["Classes"])
logger = get_logger("classes")


@router.post("", response_model=StudyClassRead, status_code=status.HTTP_201_CREATED)
async def create_class(
    study_class: StudyClassCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_db)
):
    """Create a new class."""
    db_class = StudyClass(**study_class.model_dump(), user_id=user_id)
    db.add(db_class)
    await db.commit()
    await db.refresh(db_class)
    logger.info("Class created", user_id=user_id, class_id=db_class.id)
    return db_class


@router.get("", response_model=List[StudyClassRead])
async def list_classes(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_db)
):
    """List the current user's classes, newest first."""
    stmt = (
        select(StudyClass)
        .where(StudyClass.user_id == user_id)
        .order_by(StudyClass.created_at.desc(), StudyClass.id.desc())
        .offset(skip)
        .limit(limit)
    )
    result = await db.execute(stmt)
    return result.scalars().all()


@router.get("/{class_id}", response_model=StudyClassRead)
async def get_class(
    class_id: int,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_db),
    storage: LocalObjectStorage = Depends(get_storage)
):
    return await ClassService(db, storage).get_owned_class(user_id, class_id)


@router.put("/{class_id}", response_model=StudyClassRead)
async def update_class(
    class_id: int,
    class_update: StudyClassUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_db),
    storage: LocalObjectStorage = Depends(get_storage)
):
    """Update the given fields of a class."""
    db_class = await ClassService(db, storage).get_owned_class(user_id, class_id)
    for field, value in class_update.model_dump(exclude_unset=True).items():
        setattr(db_class, field, value)
    await db.commit()
    await db.refresh(db_class)
    return db_class


@router.delete("/{class_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_class(
    class_id: int,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_db),
    storage: LocalObjectStorage = Depends(get_storage)
):
    """Delete a class with its materials, questions and sessions."""
    await ClassService(db, storage).delete_class(user_id, class_id)


@router.get("/{class_id}/accuracy", response_model=ClassAccuracyRead)
async def get_class_accuracy(
    class_id: int,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_db)
):
    """Percent of correct answers over the class's completed sessions."""
    accuracy, sessions = await SessionService(db).class_accuracy(user_id, class_id)
    return ClassAccuracyRead(class_id=class_id, accuracy=accuracy, sessions_counted=sessions)
