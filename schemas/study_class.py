"""
Pydantic schemas for study classes.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class StudyClassBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    color: str = Field("#DA70D6", max_length=20)


class StudyClassCreate(StudyClassBase):
    pass


class StudyClassUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    color: Optional[str] = Field(None, max_length=20)


class StudyClassRead(StudyClassBase):
    id: int
    user_id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ClassAccuracyRead(BaseModel):
    class_id: int
    accuracy: Optional[int] = Field(None, description="Percent correct over completed sessions")
    sessions_counted: int = 0
