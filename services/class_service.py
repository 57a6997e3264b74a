"""
Ownership-checked lookups and deletes for classes and materials.

Rows owned by another user are reported as missing, never as forbidden.
"""
from typing import List
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ResourceNotFoundException
from core.file_utils import LocalObjectStorage
from core.logging import get_logger
from models.models import StudyClass, StudyMaterial, GeneratedQuestion

logger = get_logger("class_service")


class ClassService:
    """Service for classes and the materials inside them."""

    def __init__(self, db: AsyncSession, storage: LocalObjectStorage):
        self.db = db
        self.storage = storage

    async def get_owned_class(self, user_id: str, class_id: int) -> StudyClass:
        stmt = select(StudyClass).where(StudyClass.id == class_id, StudyClass.user_id == user_id)
        study_class = (await self.db.execute(stmt)).scalar_one_or_none()
        if study_class is None:
            logger.warning("Class not found", user_id=user_id, class_id=class_id)
            raise ResourceNotFoundException(f"Class with ID {class_id} not found")
        return study_class

    async def get_owned_material(self, user_id: str, material_id: int) -> StudyMaterial:
        stmt = select(StudyMaterial).where(StudyMaterial.id == material_id, StudyMaterial.user_id == user_id)
        material = (await self.db.execute(stmt)).scalar_one_or_none()
        if material is None:
            logger.warning("Material not found", user_id=user_id, material_id=material_id)
            raise ResourceNotFoundException(f"Material with ID {material_id} not found")
        return material

    async def delete_class(self, user_id: str, class_id: int) -> int:
        """
        Delete a class with everything under it.

        Materials, questions, sessions and responses go with the row via the
        foreign key cascade; stored files are removed here.

        Returns:
            int: Number of stored files removed
        """
        study_class = await self.get_owned_class(user_id, class_id)
        paths: List[str] = list((await self.db.execute(
            select(StudyMaterial.file_path).where(StudyMaterial.class_id == class_id)
        )).scalars())

        await self.db.delete(study_class)
        await self.db.commit()

        removed = 0
        for path in paths:
            if await self.storage.delete(path):
                removed += 1
        logger.info("Class deleted", user_id=user_id, class_id=class_id, files_removed=removed)
        return removed

    async def delete_material(self, user_id: str, material_id: int) -> None:
        """Delete a material, its questions and its stored file."""
        material = await self.get_owned_material(user_id, material_id)
        path = material.file_path

        await self.db.execute(
            delete(GeneratedQuestion).where(GeneratedQuestion.study_material_id == material_id)
        )
        await self.db.delete(material)
        await self.db.commit()

        await self.storage.delete(path)
        logger.info("Material deleted", user_id=user_id, material_id=material_id)
