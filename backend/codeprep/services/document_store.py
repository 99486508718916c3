"""Document store for quizzes, questions, results and languages.

Every document read is validated against its pydantic model before it is
handed to the grading engine or a session controller.
"""

import logging

from pydantic import BaseModel, ValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from codeprep.config import settings
from codeprep.db.models import LanguageDB, QuestionDB, QuizDB, QuizResultDB
from codeprep.exceptions import (
    DocumentNotFoundError,
    MalformedDocumentError,
    ResultAlreadyExistsError,
    StoreError,
)
from codeprep.models.question import Question, Quiz, question_adapter
from codeprep.models.result import QuizResult

logger = logging.getLogger(__name__)


def chunked(ids: list[str], size: int) -> list[list[str]]:
    """Split ids into consecutive batches of at most ``size``."""
    if size < 1:
        raise ValueError("batch size must be positive")
    return [ids[i:i + size] for i in range(0, len(ids), size)]


class DocumentStore:
    """Async store backed by SQLAlchemy.

    Opens a short-lived session per call so it can be shared by controllers
    that outlive a single request.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        batch_limit: int | None = None,
    ):
        self.session_factory = session_factory
        self.batch_limit = batch_limit or settings.store_batch_limit

    @staticmethod
    def _parse_model(model: type[BaseModel], collection: str, doc_id: str, raw: str):
        try:
            return model.model_validate_json(raw)
        except ValidationError as e:
            raise MalformedDocumentError(collection, doc_id, str(e)) from e

    @staticmethod
    def _parse_question(doc_id: str, raw: str) -> Question:
        try:
            return question_adapter.validate_json(raw)
        except ValidationError as e:
            raise MalformedDocumentError("questions", doc_id, str(e)) from e

    # --- Quizzes ---

    async def get_quiz(self, quiz_id: str) -> Quiz:
        async with self.session_factory() as db:
            row = await db.get(QuizDB, quiz_id)
        if row is None:
            raise DocumentNotFoundError("quizzes", quiz_id)
        return self._parse_model(Quiz, "quizzes", quiz_id, row.data)

    async def save_quiz(self, quiz: Quiz) -> None:
        async with self.session_factory() as db:
            await db.merge(QuizDB(id=quiz.id, data=quiz.model_dump_json()))
            await db.commit()

    # --- Questions ---

    async def get_question(self, question_id: str) -> Question:
        async with self.session_factory() as db:
            row = await db.get(QuestionDB, question_id)
        if row is None:
            raise DocumentNotFoundError("questions", question_id)
        return self._parse_question(question_id, row.data)

    async def get_questions(self, question_ids: list[str]) -> list[Question]:
        """Fetch many questions, preserving the order of ``question_ids``.

        Ids are queried in batches of ``batch_limit``; any missing id raises.
        """
        if not question_ids:
            return []

        rows: dict[str, str] = {}
        unique_ids = list(dict.fromkeys(question_ids))
        async with self.session_factory() as db:
            for batch in chunked(unique_ids, self.batch_limit):
                result = await db.execute(
                    select(QuestionDB.id, QuestionDB.data).where(QuestionDB.id.in_(batch))
                )
                rows.update({qid: data for qid, data in result.all()})

        missing = [qid for qid in unique_ids if qid not in rows]
        if missing:
            raise DocumentNotFoundError("questions", ", ".join(missing))

        return [self._parse_question(qid, rows[qid]) for qid in question_ids]

    async def save_question(self, question: Question) -> None:
        async with self.session_factory() as db:
            await db.merge(
                QuestionDB(id=question.id, type=question.type, data=question.model_dump_json())
            )
            await db.commit()

    # --- Results ---

    async def save_result(self, result: QuizResult) -> str:
        """Write a result. A second write for the same session is rejected."""
        row = QuizResultDB(
            id=result.id,
            session_id=result.session_id,
            quiz_id=result.quiz_id,
            candidate_id=result.candidate_id,
            data=result.model_dump_json(),
            completed_at=result.completed_at,
        )
        try:
            async with self.session_factory() as db:
                db.add(row)
                await db.commit()
        except IntegrityError as e:
            raise ResultAlreadyExistsError(
                f"Result for session {result.session_id} already written"
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Failed to write result {result.id}: {e}")
            raise StoreError(str(e)) from e
        logger.info(f"Saved result {result.id} for session {result.session_id}")
        return result.id

    async def get_result(self, result_id: str) -> QuizResult:
        async with self.session_factory() as db:
            row = await db.get(QuizResultDB, result_id)
        if row is None:
            raise DocumentNotFoundError("quiz_results", result_id)
        return self._parse_model(QuizResult, "quiz_results", result_id, row.data)

    async def get_result_for_session(self, session_id: str) -> QuizResult | None:
        async with self.session_factory() as db:
            result = await db.execute(
                select(QuizResultDB).where(QuizResultDB.session_id == session_id)
            )
            row = result.scalar_one_or_none()
        if row is None:
            return None
        return self._parse_model(QuizResult, "quiz_results", row.id, row.data)

    # --- Languages ---

    async def get_languages(self) -> dict[str, int]:
        try:
            async with self.session_factory() as db:
                result = await db.execute(select(LanguageDB.id, LanguageDB.judge0_id))
                return {name.lower(): judge0_id for name, judge0_id in result.all()}
        except SQLAlchemyError as e:
            raise StoreError(f"Could not load languages: {e}") from e

    async def save_language(self, name: str, judge0_id: int) -> None:
        async with self.session_factory() as db:
            await db.merge(LanguageDB(id=name, judge0_id=judge0_id))
            await db.commit()

