"""
Router for commute sessions.
"""
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from db_config import get_async_db
from core.security import get_current_user_id
from schemas.session import (
    CommuteSessionCreate, CommuteSessionRead,
    SessionResponseCreate, SessionResponseRead,
    VoiceAnswerRequest, VoiceAnswerResponse
)
from services.session_service import SessionService, recommended_question_count

router = APIRouter(tags=["Sessions"])


def _to_read(session) -> CommuteSessionRead:
    result = CommuteSessionRead.model_validate(session)
    result.recommended_question_count = recommended_question_count(session.duration_minutes)
    return result


@router.post("/sessions", response_model=CommuteSessionRead, status_code=status.HTTP_201_CREATED)
async def start_session(
    data: CommuteSessionCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_db)
):
    """Start a commute session for one of the user's classes."""
    session = await SessionService(db).start_session(user_id, data)
    return _to_read(session)


@router.get("/sessions/{session_id}", response_model=CommuteSessionRead)
async def get_session(
    session_id: int,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_db)
):
    return _to_read(await SessionService(db).get_session(user_id, session_id))


@router.get("/classes/{class_id}/sessions", response_model=List[CommuteSessionRead])
async def list_class_sessions(
    class_id: int,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_db)
):
    sessions = await SessionService(db).list_class_sessions(user_id, class_id)
    return [_to_read(s) for s in sessions]


@router.get("/sessions/{session_id}/responses", response_model=List[SessionResponseRead])
async def list_responses(
    session_id: int,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_db)
):
    return await SessionService(db).list_responses(user_id, session_id)


@router.post("/sessions/{session_id}/responses", response_model=SessionResponseRead,
             status_code=status.HTTP_201_CREATED)
async def record_response(
    session_id: int,
    data: SessionResponseCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_db)
):
    """Record an answer given by tapping an option."""
    return await SessionService(db).record_answer(user_id, session_id, data)


@router.post("/sessions/{session_id}/voice-answer", response_model=VoiceAnswerResponse)
async def submit_voice_answer(
    session_id: int,
    data: VoiceAnswerRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_db)
):
    """
    Record a spoken answer.

    The transcript is matched to an option; only a match is stored. A
    transcript that matches nothing but reads like a question comes back
    as ``help_request`` so the client can hand it to the assistant.
    """
    return await SessionService(db).submit_voice_answer(user_id, session_id, data)


@router.post("/sessions/{session_id}/end", response_model=CommuteSessionRead)
async def end_session(
    session_id: int,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_async_db)
):
    return _to_read(await SessionService(db).end_session(user_id, session_id))
