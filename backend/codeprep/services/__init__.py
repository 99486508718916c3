"""Business logic services."""

from .checkpoint import CheckpointStore, MemoryCheckpointStore, SqlCheckpointStore
from .document_store import DocumentStore
from .grading import GradingEngine
from .judge0 import Judge0Client
from .languages import LanguageRegistry
from .notifications import ToastNotifier, WarningNotifier
from .registry import SessionRegistry
from .session import ProctoredSession

__all__ = [
    "CheckpointStore",
    "DocumentStore",
    "GradingEngine",
    "Judge0Client",
    "LanguageRegistry",
    "MemoryCheckpointStore",
    "ProctoredSession",
    "SessionRegistry",
    "SqlCheckpointStore",
    "ToastNotifier",
    "WarningNotifier",
]
