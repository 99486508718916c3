"""Process-local registry of live proctored sessions."""

import logging
from uuid import uuid4

from codeprep.exceptions import SessionStateError
from codeprep.models.session import SessionState

from .checkpoint import CheckpointStore
from .document_store import DocumentStore
from .grading import GradingEngine
from .session import ProctoredSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Builds sessions from the document store and keeps them by id."""

    def __init__(
        self,
        store: DocumentStore,
        grader: GradingEngine,
        checkpoints: CheckpointStore,
    ):
        self.store = store
        self.grader = grader
        self.checkpoints = checkpoints
        self._sessions: dict[str, ProctoredSession] = {}

    async def open(
        self,
        quiz_id: str,
        candidate_id: str,
        session_id: str | None = None,
    ) -> ProctoredSession:
        """Return the live session for ``session_id`` or create a new one.

        A reused id that is not live (e.g. after a process restart) gets a
        fresh controller; its checkpoint restores the answers on ``begin``.
        """
        if session_id and session_id in self._sessions:
            session = self._sessions[session_id]
            if session.quiz.id != quiz_id or session.candidate_id != candidate_id:
                raise SessionStateError(f"Session {session_id} belongs to another attempt")
            return session

        if session_id and await self.store.get_result_for_session(session_id):
            raise SessionStateError(f"Session {session_id} has already been submitted")

        quiz = await self.store.get_quiz(quiz_id)
        questions = await self.store.get_questions(quiz.question_ids)
        session = ProctoredSession(
            session_id=session_id or str(uuid4()),
            quiz=quiz,
            questions=questions,
            candidate_id=candidate_id,
            grader=self.grader,
            results=self.store,
            checkpoints=self.checkpoints,
        )
        self._sessions[session.session_id] = session
        logger.info(f"Opened session {session.session_id} for quiz {quiz_id}")
        return session

    def get(self, session_id: str) -> ProctoredSession | None:
        return self._sessions.get(session_id)

    def discard(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def evict_finished(self, session: ProctoredSession) -> bool:
        """Drop a controller once its result is written.

        Later lookups go to the store through ``get_result_for_session``.
        """
        if session.state not in (SessionState.COMPLETED, SessionState.TERMINATED):
            return False
        if self._sessions.get(session.session_id) is session:
            del self._sessions[session.session_id]
            logger.info(f"Evicted finished session {session.session_id}")
        return True

    def __len__(self) -> int:
        return len(self._sessions)
