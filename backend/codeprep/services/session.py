"""Proctored quiz session controller.

One ``ProctoredSession`` owns a candidate's in-progress attempt: the current
question, answers, review flags and the integrity violation counter. It
turns the attempt into an immutable QuizResult exactly once.

State flow: not_started, in_progress, submitting, then completed, or
terminated when the violation limit forces the submission.
"""

import logging
import time
from collections.abc import Callable
from datetime import datetime
from typing import Protocol

from codeprep.config import settings
from codeprep.exceptions import (
    FullscreenRequiredError,
    ResultAlreadyExistsError,
    SessionStateError,
    StoreError,
    SubmissionWriteError,
    UnknownQuestionError,
)
from codeprep.models.question import CodingQuestion, Question, Quiz, total_marks
from codeprep.models.result import QuizResult, ResultStatus
from codeprep.models.session import (
    QuestionMarker,
    SessionSnapshot,
    SessionState,
    SubmitOptions,
    SubmitOutcome,
    SubmitOutcomeKind,
    ViolationKind,
)

from .checkpoint import CheckpointStore
from .grading import GradingEngine
from .notifications import ToastNotifier, WarningNotifier

logger = logging.getLogger(__name__)

TERMINATION_REASON = "Exited fullscreen or switched tabs multiple times."


class ResultWriter(Protocol):
    async def save_result(self, result: QuizResult) -> str: ...


class ProctoredSession:
    """Controller for a single timed, proctored attempt."""

    def __init__(
        self,
        session_id: str,
        quiz: Quiz,
        questions: list[Question],
        candidate_id: str,
        grader: GradingEngine,
        results: ResultWriter,
        checkpoints: CheckpointStore,
        notifier: WarningNotifier | None = None,
        clock: Callable[[], float] = time.monotonic,
        max_violations: int | None = None,
        grace_seconds: float | None = None,
        coalesce_seconds: float | None = None,
    ):
        by_id = {q.id: q for q in questions}
        missing = [qid for qid in quiz.question_ids if qid not in by_id]
        if missing:
            raise ValueError(f"Questions missing for quiz {quiz.id}: {missing}")

        self.session_id = session_id
        self.quiz = quiz
        self.questions: list[Question] = [by_id[qid] for qid in quiz.question_ids]
        self.candidate_id = candidate_id
        self.grader = grader
        self.results = results
        self.checkpoints = checkpoints
        self.notifier = notifier or ToastNotifier()
        self._clock = clock

        self.max_violations = settings.max_violations if max_violations is None else max_violations
        if self.max_violations < 1:
            raise ValueError(f"max_violations must be at least 1, got {self.max_violations}")
        self.grace_seconds = settings.violation_grace_seconds if grace_seconds is None else grace_seconds
        self.coalesce_seconds = (
            settings.violation_coalesce_seconds if coalesce_seconds is None else coalesce_seconds
        )

        self.state = SessionState.NOT_STARTED
        self.current_index = 0
        self.answers: dict[str, str] = {}
        self.flagged: dict[str, bool] = {}
        self.violation_count = 0
        self.fullscreen_overlay = False
        self.started_at: datetime | None = None
        self.completed_at: datetime | None = None
        self.result: QuizResult | None = None

        self._started_clock: float | None = None
        self._last_violation_clock: float | None = None
        self._warning_id: str | None = None
        self._warning_text: str | None = None
        self._submitting = False
        self._pending_result: QuizResult | None = None

    @property
    def question_count(self) -> int:
        return len(self.questions)

    @property
    def submitting(self) -> bool:
        return self._submitting

    def _require_question(self, question_id: str) -> Question:
        for q in self.questions:
            if q.id == question_id:
                return q
        raise UnknownQuestionError(question_id)

    def is_answered(self, question_id: str) -> bool:
        return bool(self.answers.get(question_id, "").strip())

    @property
    def answered_count(self) -> int:
        return sum(1 for q in self.questions if self.is_answered(q.id))

    # --- Lifecycle ---

    async def begin(self, fullscreen_entered: bool) -> None:
        """Start the attempt once the client is in fullscreen.

        Raises FullscreenRequiredError (retry allowed) if it is not, and
        ConfigurationError if a coding question's language cannot run.
        """
        if self.state != SessionState.NOT_STARTED:
            raise SessionStateError(f"Session {self.session_id} already {self.state.value}")
        if not fullscreen_entered:
            raise FullscreenRequiredError(
                "Fullscreen mode is required to start the quiz. Please allow fullscreen and try again."
            )

        for q in self.questions:
            if isinstance(q, CodingQuestion):
                await self.grader.languages.resolve(q.language)

        restored = await self.checkpoints.load(self.session_id)
        self.answers = {qid: ans for qid, ans in restored.items() if qid in self.quiz.question_ids}
        if self.answers:
            logger.info(f"Restored {len(self.answers)} answers for session {self.session_id}")

        self.state = SessionState.IN_PROGRESS
        self.started_at = datetime.utcnow()
        self._started_clock = self._clock()
        logger.info(f"Session {self.session_id} started for candidate {self.candidate_id}")

    def _require_in_progress(self) -> None:
        if self.state != SessionState.IN_PROGRESS or self._submitting:
            raise SessionStateError(f"Session {self.session_id} is {self.state.value}")

    # --- Answers and navigation ---

    async def record_answer(self, question_id: str, answer: str) -> None:
        """Store the answer and checkpoint the whole answer map."""
        self._require_in_progress()
        self._require_question(question_id)
        self.answers[question_id] = answer
        await self.checkpoints.save(self.session_id, self.answers)

    def go_to(self, index: int) -> int:
        """Move to ``index``; out-of-range indexes are ignored."""
        if 0 <= index < self.question_count:
            self.current_index = index
        return self.current_index

    def toggle_flag(self, question_id: str) -> bool:
        self._require_question(question_id)
        self.flagged[question_id] = not self.flagged.get(question_id, False)
        return self.flagged[question_id]

    # --- Integrity monitoring ---

    def _monitoring(self) -> bool:
        if self.state != SessionState.IN_PROGRESS or self._submitting:
            return False
        if self._started_clock is None:
            return False
        return self._clock() - self._started_clock >= self.grace_seconds

    async def on_fullscreen_change(self, is_fullscreen: bool) -> SubmitOutcome | None:
        """Fullscreen lost counts as a violation; regaining it only lifts the overlay."""
        if is_fullscreen:
            self.fullscreen_overlay = False
            return None
        if not self._monitoring():
            return None
        self.fullscreen_overlay = True
        return await self._violation(ViolationKind.FULLSCREEN_EXIT)

    async def on_visibility_change(self, hidden: bool) -> SubmitOutcome | None:
        if not hidden or not self._monitoring():
            return None
        return await self._violation(ViolationKind.TAB_HIDDEN)

    def _dismiss_warning(self) -> None:
        if self._warning_id is not None:
            self.notifier.dismiss(self._warning_id)
        self._warning_id = None
        self._warning_text = None

    async def _violation(self, kind: ViolationKind) -> SubmitOutcome | None:
        now = self._clock()
        if (
            self.coalesce_seconds > 0
            and self._last_violation_clock is not None
            and now - self._last_violation_clock < self.coalesce_seconds
        ):
            logger.debug(f"Coalesced {kind.value} signal for session {self.session_id}")
            return None
        self._last_violation_clock = now

        self.violation_count += 1
        logger.warning(
            f"Session {self.session_id}: {kind.value} violation "
            f"{self.violation_count}/{self.max_violations}"
        )
        self._dismiss_warning()

        if self.violation_count >= self.max_violations:
            logger.warning(f"Session {self.session_id} terminated after {self.violation_count} violations")
            return await self.submit(SubmitOptions(termination_reason=TERMINATION_REASON))

        remaining = self.max_violations - self.violation_count
        self._warning_text = (
            f"You have left the quiz window {self.violation_count} time(s). "
            f"If you leave {remaining} more time(s), your quiz will be terminated automatically."
        )
        self._warning_id = self.notifier.show(self._warning_text)
        return None

    # --- Submission ---

    async def submit(self, options: SubmitOptions | None = None) -> SubmitOutcome:
        """Score every question and write the result once.

        Raises SubmissionWriteError if the store rejects the write; the
        scored result is kept and the next call retries the write only.
        """
        options = options or SubmitOptions()
        answered = self.answered_count

        if self._submitting or self.state in (SessionState.COMPLETED, SessionState.TERMINATED):
            return SubmitOutcome(
                kind=SubmitOutcomeKind.IGNORED,
                answered_count=answered,
                question_count=self.question_count,
                message="Submission already in progress or finished.",
                result=self.result,
            )
        if self.state == SessionState.NOT_STARTED:
            raise SessionStateError(f"Session {self.session_id} has not started")

        forced = options.termination_reason is not None
        if (
            not forced
            and not options.confirm_unanswered
            and self._pending_result is None
            and answered < self.question_count
        ):
            return SubmitOutcome(
                kind=SubmitOutcomeKind.NEEDS_CONFIRMATION,
                answered_count=answered,
                question_count=self.question_count,
                message=(
                    f"You have only answered {answered} out of {self.question_count} questions. "
                    "Are you sure you want to submit?"
                ),
            )

        # Must be set before the first await
        self._submitting = True
        self.state = SessionState.SUBMITTING
        self._dismiss_warning()
        try:
            if self._pending_result is None:
                try:
                    self._pending_result = await self._build_result(options.termination_reason)
                except Exception:
                    # Nothing was written; the attempt stays open for another submit
                    self.state = SessionState.IN_PROGRESS
                    logger.exception(f"Scoring failed for session {self.session_id}")
                    raise
            try:
                await self.results.save_result(self._pending_result)
            except ResultAlreadyExistsError:
                logger.warning(f"Result for session {self.session_id} was already written")
            except StoreError as e:
                logger.error(f"Could not save result for session {self.session_id}: {e}")
                raise SubmissionWriteError(
                    "Your answers were scored but could not be saved. Please try submitting again."
                ) from e
        finally:
            self._submitting = False

        self.result = self._pending_result
        self.completed_at = self.result.completed_at
        self.state = (
            SessionState.TERMINATED
            if self.result.status == ResultStatus.TERMINATED
            else SessionState.COMPLETED
        )
        self.fullscreen_overlay = False

        try:
            await self.checkpoints.clear(self.session_id)
        except StoreError as e:
            logger.error(f"Failed to clear checkpoint for session {self.session_id}: {e}")

        logger.info(
            f"Session {self.session_id} {self.state.value}: "
            f"{self.result.score}/{self.result.total_score}"
        )
        return SubmitOutcome(
            kind=SubmitOutcomeKind.SUBMITTED,
            answered_count=answered,
            question_count=self.question_count,
            result=self.result,
        )

    async def _build_result(self, termination_reason: str | None) -> QuizResult:
        answers = {}
        for q in self.questions:
            answers[q.id] = await self.grader.score_question(q, self.answers.get(q.id))

        completed_at = datetime.utcnow()
        started_at = self.started_at or completed_at
        return QuizResult(
            session_id=self.session_id,
            quiz_id=self.quiz.id,
            quiz_title=self.quiz.title,
            candidate_id=self.candidate_id,
            score=round(sum(r.score for r in answers.values()), settings.score_precision),
            total_score=total_marks(self.questions),
            status=ResultStatus.TERMINATED if termination_reason else ResultStatus.COMPLETED,
            answers=answers,
            started_at=started_at,
            completed_at=completed_at,
            time_taken_seconds=int((completed_at - started_at).total_seconds()),
            violation_count=self.violation_count,
            termination_reason=termination_reason,
        )

    # --- UI state ---

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self.session_id,
            quiz_id=self.quiz.id,
            state=self.state,
            current_index=self.current_index,
            question_count=self.question_count,
            questions=[
                QuestionMarker(
                    question_id=q.id,
                    answered=self.is_answered(q.id),
                    flagged=self.flagged.get(q.id, False),
                )
                for q in self.questions
            ],
            violation_count=self.violation_count,
            max_violations=self.max_violations,
            fullscreen_overlay=self.fullscreen_overlay,
            warning=self._warning_text,
            submitting=self._submitting,
        )
