"""
Pydantic schemas for commute sessions and their responses.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class CommuteSessionCreate(BaseModel):
    class_id: int
    duration_minutes: int = Field(..., ge=1, le=600)


class CommuteSessionRead(BaseModel):
    id: int
    user_id: str
    class_id: int
    duration_minutes: int
    started_at: datetime
    ended_at: Optional[datetime] = None
    questions_answered: int
    questions_correct: int
    completed: bool
    recommended_question_count: Optional[int] = None

    class Config:
        from_attributes = True


class SessionResponseCreate(BaseModel):
    question_id: int
    user_answer: str = Field(..., min_length=1)
    response_time_seconds: Optional[float] = Field(None, ge=0)


class SessionResponseRead(BaseModel):
    id: int
    session_id: int
    question_id: int
    user_answer: str
    is_correct: bool
    response_time_seconds: Optional[float] = None
    answered_at: datetime

    class Config:
        from_attributes = True


class VoiceAnswerRequest(BaseModel):
    question_id: int
    transcript: str
    response_time_seconds: Optional[float] = Field(None, ge=0)


class VoiceAnswerResponse(BaseModel):
    outcome: str = Field(..., description="matched, no_match, no_speech or help_request")
    option: Optional[str] = None
    score: Optional[float] = None
    response: Optional[SessionResponseRead] = None
    correct_answer: Optional[str] = None
