"""Exception hierarchy for grading and proctored sessions."""


class CodePrepError(Exception):
    """Base class for all application errors."""


class ConfigurationError(CodePrepError):
    """Setup problem that no retry will fix."""


class UnsupportedLanguageError(ConfigurationError):
    def __init__(self, language: str):
        super().__init__(f"Unsupported language: {language}")
        self.language = language


class ExecutionError(CodePrepError):
    """A call to the execution service did not produce a usable verdict."""


class ExecutionTransportError(ExecutionError):
    """Network failure, non-2xx response or malformed body."""


class ExecutionTimeoutError(ExecutionError):
    """The execution service did not answer within the per-call deadline."""


class StoreError(CodePrepError):
    """Document store failure."""


class DocumentNotFoundError(StoreError):
    def __init__(self, collection: str, document_id: str):
        super().__init__(f"{collection}/{document_id} not found")
        self.collection = collection
        self.document_id = document_id


class MalformedDocumentError(StoreError):
    def __init__(self, collection: str, document_id: str, reason: str):
        super().__init__(f"{collection}/{document_id} is malformed: {reason}")
        self.collection = collection
        self.document_id = document_id


class ResultAlreadyExistsError(StoreError):
    """A result for this session has already been written."""


class SessionStateError(CodePrepError):
    """Operation not allowed in the session's current state."""


class FullscreenRequiredError(SessionStateError):
    """The attempt cannot start until fullscreen mode is entered."""


class SubmissionWriteError(CodePrepError):
    """The assembled result could not be persisted. Safe to retry."""


class UnknownQuestionError(CodePrepError):
    def __init__(self, question_id: str):
        super().__init__(f"Question {question_id} is not part of this quiz")
        self.question_id = question_id
