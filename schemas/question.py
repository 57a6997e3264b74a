"""
Pydantic schemas for generated questions.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator
from models.models import DifficultyEnum


class GeneratedQuestionDraft(BaseModel):
    """One question as returned by the model, before it is stored."""

    question_text: str
    options: List[str]
    correct_answer: str
    explanation: Optional[str] = None
    difficulty: DifficultyEnum = DifficultyEnum.medium
    question_order: int = 0

    @field_validator("question_text")
    @classmethod
    def question_text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("question_text must not be empty")
        return v

    @field_validator("options")
    @classmethod
    def exactly_four_options(cls, v: List[str]) -> List[str]:
        if len(v) != 4:
            raise ValueError(f"expected exactly 4 options, got {len(v)}")
        if any(not option.strip() for option in v):
            raise ValueError("options must not be empty")
        # compared the way the answer matcher normalises transcripts
        if len({option.strip().lower() for option in v}) != 4:
            raise ValueError("options must be distinct")
        return v

    @field_validator("difficulty", mode="before")
    @classmethod
    def unknown_difficulty_is_medium(cls, v):
        if isinstance(v, DifficultyEnum):
            return v
        if isinstance(v, str) and v.strip().lower() in DifficultyEnum.__members__:
            return DifficultyEnum(v.strip().lower())
        return DifficultyEnum.medium

    @model_validator(mode="after")
    def correct_answer_is_an_option(self):
        if self.correct_answer not in self.options:
            raise ValueError("correct_answer must match one of the options exactly")
        return self


class GeneratedQuestionRead(BaseModel):
    id: int
    class_id: int
    study_material_id: Optional[int] = None
    user_id: str
    question_text: str
    options: List[str]
    correct_answer: str
    explanation: Optional[str] = None
    difficulty: DifficultyEnum
    question_order: int
    created_at: datetime

    class Config:
        from_attributes = True


class QuestionGenerationRequest(BaseModel):
    text: str = Field(..., min_length=1)
    count: Optional[int] = Field(None, ge=1, le=50)


class ImageQuestionGenerationRequest(BaseModel):
    image_url: str = Field(..., min_length=1, description="Data URL or https URL of the image")
    count: Optional[int] = Field(None, ge=1, le=50)


class QuestionGenerationResponse(BaseModel):
    questions: List[GeneratedQuestionDraft]
    rejected_count: int = 0
