"""SQLAlchemy database models.

Documents are stored as JSON text and validated on the way out by the
document store.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class QuizDB(Base):
    __tablename__ = "quizzes"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    data: Mapped[str] = mapped_column(Text, nullable=False)  # JSON
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class QuestionDB(Base):
    __tablename__ = "questions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    data: Mapped[str] = mapped_column(Text, nullable=False)  # JSON
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class QuizResultDB(Base):
    """One row per finished attempt. session_id is unique: a result is written once."""

    __tablename__ = "quiz_results"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    session_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    quiz_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    candidate_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    data: Mapped[str] = mapped_column(Text, nullable=False)  # JSON
    completed_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class LanguageDB(Base):
    """Maps a language tag to the execution service's runtime id."""

    __tablename__ = "languages"

    id: Mapped[str] = mapped_column(String(30), primary_key=True)
    judge0_id: Mapped[int] = mapped_column(Integer, nullable=False)


class CheckpointDB(Base):
    """Latest answer map for an in-progress attempt."""

    __tablename__ = "checkpoints"

    session_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    answers: Mapped[str] = mapped_column(Text, default="{}")  # JSON object
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
