"""
Router for study material upload and processing.
"""
from typing import List, Optional
from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db_config import get_async_db
from core.exceptions import ProcessingConflictException
from core.file_utils import (
    LocalObjectStorage, get_storage, build_storage_path, validate_mime_type, validate_file_size
)
from core.logging import get_logger
from core.security import get_current_user_id
from models.models import StudyMaterial, ProcessingStatusEnum
from schemas.material import StudyMaterialRead, MaterialProcessResponse
from services.class_service import ClassService
from services.material_pipeline import MaterialPipeline, get_material_pipeline

router = APIRouter(tags=["Materials"])
logger = get_logger("materials")


@router.post("/classes/{class_id}/materials", response_model=StudyMaterialRead,
             status_code=status.HTTP_201_CREATED)
async def upload_material(
    class_id: int,
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    title: Optional[str] = Form(None),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_db),
    storage: LocalObjectStorage = Depends(get_storage),
    pipeline: MaterialPipeline = Depends(get_material_pipeline)
):
    """
    Upload a study material into a class.

    - Supports PDF, DOCX, plain text, markdown, PNG and JPEG
    - Maximum file size: 50MB (configurable)
    - Question generation starts in the background once the file is stored
    """
    await ClassService(db, storage).get_owned_class(user_id, class_id)

    mime_type = validate_mime_type(file.content_type)
    content = await file.read()
    file_size = validate_file_size(len(content))

    key = build_storage_path(user_id, class_id, file.filename)
    await storage.save(key, content)

    material = StudyMaterial(
        class_id=class_id,
        user_id=user_id,
        title=title or file.filename or key.rsplit("/", 1)[-1],
        file_type=mime_type,
        file_path=key,
        file_size=file_size,
        processing_status=ProcessingStatusEnum.pending,
    )
    try:
        db.add(material)
        await db.commit()
        await db.refresh(material)
    except Exception:
        await db.rollback()
        logger.error("Material insert failed, removing stored file", user_id=user_id, key=key)
        await storage.delete(key)
        raise

    logger.info("Material uploaded", user_id=user_id, class_id=class_id,
                material_id=material.id, file_type=mime_type, file_size=file_size)
    background_tasks.add_task(pipeline.run_in_background, material.id)
    return material


@router.get("/classes/{class_id}/materials", response_model=List[StudyMaterialRead])
async def list_materials(
    class_id: int,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_db),
    storage: LocalObjectStorage = Depends(get_storage)
):
    """List a class's materials, newest first."""
    await ClassService(db, storage).get_owned_class(user_id, class_id)
    stmt = (
        select(StudyMaterial)
        .where(StudyMaterial.class_id == class_id, StudyMaterial.user_id == user_id)
        .order_by(StudyMaterial.created_at.desc(), StudyMaterial.id.desc())
    )
    result = await db.execute(stmt)
    return result.scalars().all()


@router.get("/materials/{material_id}", response_model=StudyMaterialRead)
async def get_material(
    material_id: int,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_db),
    storage: LocalObjectStorage = Depends(get_storage)
):
    return await ClassService(db, storage).get_owned_material(user_id, material_id)


@router.delete("/materials/{material_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_material(
    material_id: int,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_db),
    storage: LocalObjectStorage = Depends(get_storage)
):
    """Delete a material, its generated questions and its stored file."""
    await ClassService(db, storage).delete_material(user_id, material_id)


@router.post("/materials/{material_id}/process", response_model=MaterialProcessResponse,
             status_code=status.HTTP_202_ACCEPTED)
async def process_material(
    material_id: int,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_db),
    storage: LocalObjectStorage = Depends(get_storage),
    pipeline: MaterialPipeline = Depends(get_material_pipeline)
):
    """Re-run question generation for a failed (or never started) material."""
    material = await ClassService(db, storage).get_owned_material(user_id, material_id)
    if material.processing_status not in (ProcessingStatusEnum.pending, ProcessingStatusEnum.failed):
        raise ProcessingConflictException(
            f"Material {material_id} is {material.processing_status.value} and cannot be processed again"
        )

    background_tasks.add_task(pipeline.run_in_background, material_id, True)
    logger.info("Material processing requested", user_id=user_id, material_id=material_id)
    return MaterialProcessResponse(
        material_id=material_id,
        processing_status=material.processing_status,
        message="Processing started",
    )
