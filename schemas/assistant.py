"""
Pydantic schemas for the study assistant and the answer matcher.
"""
from typing import List, Literal, Optional
from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class AskRequest(BaseModel):
    question: str = Field(..., min_length=1)
    current_topic: Optional[str] = None
    conversation_history: List[ChatMessage] = []


class SearchResult(BaseModel):
    title: str
    snippet: str = ""
    link: str


class AskResponse(BaseModel):
    answer: str
    search_results: Optional[List[SearchResult]] = None


class MatchRequest(BaseModel):
    transcript: str
    options: List[str] = Field(..., min_length=1)
    allow_letter: bool = True


class MatchResponse(BaseModel):
    outcome: str
    option: Optional[str] = None
    score: Optional[float] = None
    is_help_request: bool = False
