"""Proctored attempt API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from codeprep.dependencies import get_registry, get_session, get_store
from codeprep.exceptions import (
    ConfigurationError,
    DocumentNotFoundError,
    FullscreenRequiredError,
    MalformedDocumentError,
    SessionStateError,
    StoreError,
    SubmissionWriteError,
    UnknownQuestionError,
)
from codeprep.models.session import (
    AnswerUpdate,
    FullscreenEvent,
    NavigateRequest,
    ProctoringEventResponse,
    SessionSnapshot,
    SessionState,
    StartAttemptRequest,
    SubmitOptions,
    SubmitOutcome,
    SubmitOutcomeKind,
    SubmitRequest,
    VisibilityEvent,
)
from codeprep.models.result import QuizResult
from codeprep.services.document_store import DocumentStore
from codeprep.services.registry import SessionRegistry
from codeprep.services.session import ProctoredSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/attempts", tags=["attempts"])


def _candidate_view(outcome: SubmitOutcome | None) -> SubmitOutcome | None:
    if outcome is None or outcome.result is None:
        return outcome
    return outcome.model_copy(update={"result": outcome.result.for_candidate()})


def _submission_error(e: Exception) -> HTTPException:
    """Map an error raised while submitting to an HTTP error."""
    if isinstance(e, SessionStateError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, ConfigurationError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, SubmissionWriteError):
        return HTTPException(status_code=503, detail=str(e))
    logger.error(f"Store failure during submission: {e}")
    return HTTPException(status_code=503, detail="Storage is unavailable. Please try again.")


SUBMISSION_ERRORS = (SessionStateError, ConfigurationError, SubmissionWriteError, StoreError)


@router.post("/start", response_model=SessionSnapshot)
async def start_attempt(
    request: StartAttemptRequest,
    registry: SessionRegistry = Depends(get_registry),
):
    """Open (or resume) an attempt.

    The client must already be in fullscreen. If it is not, the session is
    kept in ``not_started`` and its id is returned so the client can retry.
    """
    try:
        session = await registry.open(
            quiz_id=request.quiz_id,
            candidate_id=request.candidate_id,
            session_id=request.session_id,
        )
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except MalformedDocumentError as e:
        logger.error(f"Cannot start quiz {request.quiz_id}: {e}")
        raise HTTPException(status_code=422, detail=str(e))
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))

    if session.state == SessionState.NOT_STARTED:
        try:
            await session.begin(request.fullscreen_entered)
        except FullscreenRequiredError as e:
            raise HTTPException(
                status_code=400,
                detail={"message": str(e), "session_id": session.session_id},
            )
        except ConfigurationError as e:
            registry.discard(session.session_id)
            raise HTTPException(status_code=400, detail=str(e))
        except StoreError as e:
            logger.error(f"Cannot start session {session.session_id}: {e}")
            raise HTTPException(status_code=503, detail="Storage is unavailable. Please try again.")
    return session.snapshot()


@router.get("/{session_id}", response_model=SessionSnapshot)
async def get_attempt(session: ProctoredSession = Depends(get_session)):
    return session.snapshot()


@router.put("/{session_id}/answers/{question_id}", response_model=SessionSnapshot)
async def record_answer(
    question_id: str,
    update: AnswerUpdate,
    session: ProctoredSession = Depends(get_session),
):
    """Save an answer (option index as text, or source code)."""
    try:
        await session.record_answer(question_id, update.answer)
    except UnknownQuestionError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StoreError as e:
        logger.error(f"Checkpoint failed for session {session.session_id}: {e}")
        raise HTTPException(status_code=503, detail="Answer could not be saved. Please try again.")
    return session.snapshot()


@router.post("/{session_id}/navigate", response_model=SessionSnapshot)
async def navigate(
    request: NavigateRequest,
    session: ProctoredSession = Depends(get_session),
):
    session.go_to(request.index)
    return session.snapshot()


@router.post("/{session_id}/flags/{question_id}", response_model=SessionSnapshot)
async def toggle_flag(
    question_id: str,
    session: ProctoredSession = Depends(get_session),
):
    try:
        session.toggle_flag(question_id)
    except UnknownQuestionError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return session.snapshot()


@router.post("/{session_id}/fullscreen", response_model=ProctoringEventResponse)
async def fullscreen_changed(
    event: FullscreenEvent,
    session: ProctoredSession = Depends(get_session),
    registry: SessionRegistry = Depends(get_registry),
):
    """Report a fullscreen change from the browser."""
    try:
        outcome = await session.on_fullscreen_change(event.is_fullscreen)
    except SUBMISSION_ERRORS as e:
        raise _submission_error(e)
    snapshot = session.snapshot()
    registry.evict_finished(session)
    return ProctoringEventResponse(snapshot=snapshot, outcome=_candidate_view(outcome))


@router.post("/{session_id}/visibility", response_model=ProctoringEventResponse)
async def visibility_changed(
    event: VisibilityEvent,
    session: ProctoredSession = Depends(get_session),
    registry: SessionRegistry = Depends(get_registry),
):
    """Report a page visibility change from the browser."""
    try:
        outcome = await session.on_visibility_change(event.hidden)
    except SUBMISSION_ERRORS as e:
        raise _submission_error(e)
    snapshot = session.snapshot()
    registry.evict_finished(session)
    return ProctoringEventResponse(snapshot=snapshot, outcome=_candidate_view(outcome))


@router.post("/{session_id}/submit", response_model=SubmitOutcome)
async def submit_attempt(
    request: SubmitRequest,
    session: ProctoredSession = Depends(get_session),
    registry: SessionRegistry = Depends(get_registry),
):
    """Submit the attempt.

    Returns ``needs_confirmation`` while questions are unanswered unless
    ``confirm_unanswered`` is set. A failed write answers 503 and can be
    retried with the same call.
    """
    try:
        outcome = await session.submit(SubmitOptions(confirm_unanswered=request.confirm_unanswered))
    except SUBMISSION_ERRORS as e:
        raise _submission_error(e)
    if outcome.kind == SubmitOutcomeKind.SUBMITTED:
        registry.evict_finished(session)
    return _candidate_view(outcome)


@router.get("/{session_id}/result", response_model=QuizResult)
async def get_attempt_result(
    session_id: str,
    store: DocumentStore = Depends(get_store),
    registry: SessionRegistry = Depends(get_registry),
):
    """Candidate view of the written result."""
    try:
        result = await store.get_result_for_session(session_id)
    except MalformedDocumentError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if result is not None:
        return result.for_candidate()
    if registry.get(session_id) is not None:
        raise HTTPException(status_code=400, detail="Attempt not yet submitted")
    raise HTTPException(status_code=404, detail="Session not found")
