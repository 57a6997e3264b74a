"""
Commute session flow: start, answer, finish, and per-class accuracy.
"""
import math
from typing import List, Optional
from sqlalchemy import select, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ProcessingConflictException, ResourceNotFoundException
from core.logging import get_logger
from models.models import CommuteSession, GeneratedQuestion, SessionResponse, StudyClass, utcnow
from schemas.session import (
    CommuteSessionCreate, SessionResponseCreate, SessionResponseRead,
    VoiceAnswerRequest, VoiceAnswerResponse
)
from services.voice_matching import is_help_request, match_session_answer

logger = get_logger("session_service")

SECONDS_PER_QUESTION = 55  # reading the question, thinking, answering, feedback
MIN_SESSION_QUESTIONS = 3
MAX_SESSION_QUESTIONS = 50
SPEECH_WORDS_PER_MINUTE = 150


def recommended_question_count(duration_minutes: float) -> int:
    """How many questions fit in a drive of the given length."""
    count = math.floor(duration_minutes * 60 / SECONDS_PER_QUESTION)
    return max(MIN_SESSION_QUESTIONS, min(count, MAX_SESSION_QUESTIONS))


def estimate_speech_seconds(text: str) -> float:
    """Rough time to read ``text`` aloud."""
    words = len(text.split())
    return words / SPEECH_WORDS_PER_MINUTE * 60


class SessionService:
    """Service for commute sessions of the current user."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_owned_class(self, user_id: str, class_id: int) -> StudyClass:
        stmt = select(StudyClass).where(StudyClass.id == class_id, StudyClass.user_id == user_id)
        study_class = (await self.db.execute(stmt)).scalar_one_or_none()
        if study_class is None:
            raise ResourceNotFoundException(f"Class with ID {class_id} not found")
        return study_class

    async def get_session(self, user_id: str, session_id: int) -> CommuteSession:
        stmt = select(CommuteSession).where(CommuteSession.id == session_id, CommuteSession.user_id == user_id)
        session = (await self.db.execute(stmt)).scalar_one_or_none()
        if session is None:
            logger.warning("Session not found", user_id=user_id, session_id=session_id)
            raise ResourceNotFoundException(f"Session with ID {session_id} not found")
        return session

    async def _get_session_question(self, session: CommuteSession, question_id: int) -> GeneratedQuestion:
        stmt = select(GeneratedQuestion).where(
            GeneratedQuestion.id == question_id,
            GeneratedQuestion.class_id == session.class_id,
            GeneratedQuestion.user_id == session.user_id,
        )
        question = (await self.db.execute(stmt)).scalar_one_or_none()
        if question is None:
            raise ResourceNotFoundException(f"Question with ID {question_id} not found in this session's class")
        return question

    async def start_session(self, user_id: str, data: CommuteSessionCreate) -> CommuteSession:
        await self._get_owned_class(user_id, data.class_id)
        session = CommuteSession(
            user_id=user_id,
            class_id=data.class_id,
            duration_minutes=data.duration_minutes,
        )
        self.db.add(session)
        await self.db.commit()
        await self.db.refresh(session)
        logger.info("Commute session started", user_id=user_id, session_id=session.id,
                    class_id=data.class_id, duration_minutes=data.duration_minutes)
        return session

    async def list_class_sessions(self, user_id: str, class_id: int) -> List[CommuteSession]:
        await self._get_owned_class(user_id, class_id)
        stmt = (
            select(CommuteSession)
            .where(CommuteSession.class_id == class_id, CommuteSession.user_id == user_id)
            .order_by(CommuteSession.started_at.desc(), CommuteSession.id.desc())
        )
        return list((await self.db.execute(stmt)).scalars())

    async def list_responses(self, user_id: str, session_id: int) -> List[SessionResponse]:
        await self.get_session(user_id, session_id)
        stmt = (
            select(SessionResponse)
            .where(SessionResponse.session_id == session_id)
            .order_by(SessionResponse.answered_at, SessionResponse.id)
        )
        return list((await self.db.execute(stmt)).scalars())

    async def _record(
        self,
        session: CommuteSession,
        question: GeneratedQuestion,
        user_answer: str,
        response_time_seconds: Optional[float],
    ) -> SessionResponse:
        session_id, question_id = session.id, question.id
        if session.completed:
            raise ProcessingConflictException(f"Session {session_id} has already ended")

        existing = (await self.db.execute(
            select(SessionResponse.id).where(
                SessionResponse.session_id == session_id,
                SessionResponse.question_id == question_id,
            )
        )).scalar_one_or_none()
        if existing is not None:
            raise ProcessingConflictException(f"Question {question_id} was already answered in this session")

        is_correct = user_answer == question.correct_answer
        response = SessionResponse(
            session_id=session_id,
            question_id=question_id,
            user_answer=user_answer,
            is_correct=is_correct,
            response_time_seconds=response_time_seconds,
        )
        self.db.add(response)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise ProcessingConflictException(f"Question {question_id} was already answered in this session")

        # counters are incremented in SQL so concurrent answers all count
        result = await self.db.execute(
            update(CommuteSession)
            .where(CommuteSession.id == session_id, CommuteSession.completed.is_(False))
            .values(
                questions_answered=CommuteSession.questions_answered + 1,
                questions_correct=CommuteSession.questions_correct + int(is_correct),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise ProcessingConflictException(f"Session {session_id} has already ended")

        answered = (await self.db.execute(
            select(CommuteSession.questions_answered).where(CommuteSession.id == session_id)
        )).scalar_one()
        total = (await self.db.execute(
            select(func.count(GeneratedQuestion.id)).where(GeneratedQuestion.class_id == session.class_id)
        )).scalar_one()
        if answered >= total:
            await self._finish(session_id)

        await self.db.commit()
        await self.db.refresh(response)
        await self.db.refresh(session)

        logger.info("Answer recorded", session_id=session_id, question_id=question_id,
                    is_correct=is_correct, answered=answered, completed=session.completed)
        return response

    async def _finish(self, session_id: int) -> bool:
        """Mark a session ended unless that already happened; False when it had."""
        result = await self.db.execute(
            update(CommuteSession)
            .where(CommuteSession.id == session_id, CommuteSession.completed.is_(False))
            .values(completed=True, ended_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def record_answer(self, user_id: str, session_id: int, data: SessionResponseCreate) -> SessionResponse:
        """
        Store one answer and update the session counters.

        Raises:
            ResourceNotFoundException: Unknown session, or question outside the session's class
            ProcessingConflictException: Session ended, or question already answered
        """
        session = await self.get_session(user_id, session_id)
        question = await self._get_session_question(session, data.question_id)
        return await self._record(session, question, data.user_answer, data.response_time_seconds)

    async def submit_voice_answer(self, user_id: str, session_id: int, data: VoiceAnswerRequest) -> VoiceAnswerResponse:
        """Match a transcript to an option and record it when it matches."""
        session = await self.get_session(user_id, session_id)
        question = await self._get_session_question(session, data.question_id)

        result = match_session_answer(data.transcript, question.options)
        if not result.matched:
            outcome = result.outcome.value
            if is_help_request(data.transcript):
                outcome = "help_request"
            logger.info("Voice answer not recorded", session_id=session_id,
                        question_id=question.id, outcome=outcome)
            return VoiceAnswerResponse(outcome=outcome, score=result.score)

        response = await self._record(session, question, result.option, data.response_time_seconds)
        return VoiceAnswerResponse(
            outcome=result.outcome.value,
            option=result.option,
            score=result.score,
            response=SessionResponseRead.model_validate(response),
            correct_answer=question.correct_answer,
        )

    async def end_session(self, user_id: str, session_id: int) -> CommuteSession:
        session = await self.get_session(user_id, session_id)
        if session.completed or not await self._finish(session_id):
            await self.db.rollback()
            raise ProcessingConflictException(f"Session {session_id} has already ended")
        await self.db.commit()
        await self.db.refresh(session)
        logger.info("Commute session ended", user_id=user_id, session_id=session_id,
                    answered=session.questions_answered, correct=session.questions_correct)
        return session

    async def class_accuracy(self, user_id: str, class_id: int) -> tuple:
        """
        Percent of correct answers over the class's completed sessions.

        Returns:
            tuple: (accuracy or None, number of completed sessions)
        """
        await self._get_owned_class(user_id, class_id)
        stmt = select(
            func.coalesce(func.sum(CommuteSession.questions_correct), 0),
            func.coalesce(func.sum(CommuteSession.questions_answered), 0),
            func.count(CommuteSession.id),
        ).where(
            CommuteSession.class_id == class_id,
            CommuteSession.user_id == user_id,
            CommuteSession.completed.is_(True),
        )
        correct, answered, sessions = (await self.db.execute(stmt)).one()
        if not answered:
            return None, sessions
        # halves round up, so 2 of 8 correct reads as 25 and 1 of 8 as 13
        return math.floor(100 * correct / answered + 0.5), sessions
