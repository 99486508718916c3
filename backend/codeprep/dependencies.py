"""FastAPI dependencies resolving the services built at startup."""

from fastapi import HTTPException, Request

from codeprep.services.document_store import DocumentStore
from codeprep.services.grading import GradingEngine
from codeprep.services.registry import SessionRegistry
from codeprep.services.session import ProctoredSession


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_grader(request: Request) -> GradingEngine:
    return request.app.state.grader


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


async def get_session(session_id: str, request: Request) -> ProctoredSession:
    """Live controller for ``session_id``.

    Finished attempts are evicted from the registry; they answer 409 so the
    client knows to fetch the result instead.
    """
    session = get_registry(request).get(session_id)
    if session is not None:
        return session
    if await get_store(request).get_result_for_session(session_id) is not None:
        raise HTTPException(status_code=409, detail="Attempt already submitted")
    raise HTTPException(status_code=404, detail="Session not found")
