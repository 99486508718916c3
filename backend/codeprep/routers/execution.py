"""Code execution endpoint backing the candidate's Run button."""

from fastapi import APIRouter, Depends, HTTPException

from codeprep.dependencies import get_grader, get_store
from codeprep.exceptions import ConfigurationError, DocumentNotFoundError, MalformedDocumentError
from codeprep.models.execution import ExecutionResult
from codeprep.models.question import CodingQuestion
from codeprep.models.session import RunCodeRequest
from codeprep.services.document_store import DocumentStore
from codeprep.services.grading import GradingEngine

router = APIRouter(prefix="/api/execute", tags=["execute"])


@router.post("/run", response_model=ExecutionResult)
async def run_code(
    request: RunCodeRequest,
    store: DocumentStore = Depends(get_store),
    grader: GradingEngine = Depends(get_grader),
):
    """Run code against the question's visible test cases only."""
    try:
        question = await store.get_question(request.question_id)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except MalformedDocumentError as e:
        raise HTTPException(status_code=422, detail=str(e))

    if not isinstance(question, CodingQuestion):
        raise HTTPException(status_code=400, detail="Question is not a coding question")

    try:
        return await grader.run_visible(question, request.source_code)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
