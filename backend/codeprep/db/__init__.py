"""Database layer for the CodePrep backend."""

from .database import async_session, init_db
from .models import Base, CheckpointDB, LanguageDB, QuestionDB, QuizDB, QuizResultDB

__all__ = [
    "init_db",
    "async_session",
    "Base",
    "CheckpointDB",
    "LanguageDB",
    "QuestionDB",
    "QuizDB",
    "QuizResultDB",
]
