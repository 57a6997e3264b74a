"""
Database models for the application.
"""
import enum
from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, String, DateTime, Boolean, Text, Float, ForeignKey, JSON, Enum as SAEnum,
    UniqueConstraint, Index, CheckConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import JSONB
from db_config import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- ENUM Types ---
class ProcessingStatusEnum(enum.Enum):
    pending = "pending"
    processing = "processing"
    completed = "completed"
    failed = "failed"

class DifficultyEnum(enum.Enum):
    easy = "easy"
    medium = "medium"
    hard = "hard"


# --- Model Definitions ---

class StudyClass(Base):
    __tablename__ = "study_class"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(String(255), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String(20), nullable=False, default="#DA70D6")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships; rows are removed by the database cascade
    materials = relationship("StudyMaterial", back_populates="study_class",
                             cascade="all, delete-orphan", passive_deletes=True)
    questions = relationship("GeneratedQuestion", back_populates="study_class",
                             cascade="all, delete-orphan", passive_deletes=True)
    sessions = relationship("CommuteSession", back_populates="study_class",
                            cascade="all, delete-orphan", passive_deletes=True)


class StudyMaterial(Base):
    __tablename__ = "study_material"
    __table_args__ = (
        Index("ix_study_material_class_status", "class_id", "processing_status"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    class_id = Column(Integer, ForeignKey("study_class.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(255), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    file_type = Column(String(255), nullable=False)
    file_path = Column(String(1024), nullable=False)
    file_size = Column(Integer, nullable=False)
    extracted_text = Column(Text, nullable=True)
    processing_status = Column(
        SAEnum(ProcessingStatusEnum, name="processing_status_enum"),
        nullable=False,
        default=ProcessingStatusEnum.pending,
    )
    processing_error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    study_class = relationship("StudyClass", back_populates="materials")
    questions = relationship("GeneratedQuestion", back_populates="study_material", passive_deletes=True)


class GeneratedQuestion(Base):
    __tablename__ = "generated_question"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    class_id = Column(Integer, ForeignKey("study_class.id", ondelete="CASCADE"), nullable=False, index=True)
    study_material_id = Column(Integer, ForeignKey("study_material.id", ondelete="SET NULL"), nullable=True, index=True)
    user_id = Column(String(255), nullable=False, index=True)
    question_text = Column(Text, nullable=False)
    options = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False)
    correct_answer = Column(Text, nullable=False)
    explanation = Column(Text, nullable=True)
    difficulty = Column(
        SAEnum(DifficultyEnum, name="difficulty_enum"),
        nullable=False,
        default=DifficultyEnum.medium,
    )
    question_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    study_class = relationship("StudyClass", back_populates="questions")
    study_material = relationship("StudyMaterial", back_populates="questions")
    responses = relationship("SessionResponse", back_populates="question",
                             cascade="all, delete-orphan", passive_deletes=True)


class CommuteSession(Base):
    __tablename__ = "commute_session"
    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_commute_session_duration"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(String(255), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("study_class.id", ondelete="CASCADE"), nullable=False, index=True)
    duration_minutes = Column(Integer, nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    questions_answered = Column(Integer, nullable=False, default=0)
    questions_correct = Column(Integer, nullable=False, default=0)
    completed = Column(Boolean, nullable=False, default=False)

    study_class = relationship("StudyClass", back_populates="sessions")
    responses = relationship("SessionResponse", back_populates="session",
                             cascade="all, delete-orphan", passive_deletes=True)


class SessionResponse(Base):
    __tablename__ = "session_response"
    __table_args__ = (
        UniqueConstraint("session_id", "question_id", name="uq_session_response_question"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    session_id = Column(Integer, ForeignKey("commute_session.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("generated_question.id", ondelete="CASCADE"), nullable=False, index=True)
    user_answer = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=False)
    response_time_seconds = Column(Float, nullable=True)
    answered_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    session = relationship("CommuteSession", back_populates="responses")
    question = relationship("GeneratedQuestion", back_populates="responses")
