"""API routers for the CodePrep backend."""

from .attempts import router as attempts_router
from .execution import router as execution_router

__all__ = [
    "attempts_router",
    "execution_router",
]
