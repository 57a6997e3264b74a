"""
Pydantic schemas for uploaded study materials.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel
from models.models import ProcessingStatusEnum


class StudyMaterialRead(BaseModel):
    id: int
    class_id: int
    user_id: str
    title: str
    file_type: str
    file_path: str
    file_size: int
    processing_status: ProcessingStatusEnum
    processing_error: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class MaterialProcessResponse(BaseModel):
    material_id: int
    processing_status: ProcessingStatusEnum
    message: str
