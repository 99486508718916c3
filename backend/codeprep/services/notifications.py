"""Transient warning banners shown to the candidate."""

import logging
from abc import ABC, abstractmethod
from uuid import uuid4

logger = logging.getLogger(__name__)


class WarningNotifier(ABC):
    @abstractmethod
    def show(self, message: str) -> str:
        """Display a warning and return its id."""
        pass

    @abstractmethod
    def dismiss(self, warning_id: str) -> None:
        pass


class ToastNotifier(WarningNotifier):
    """Keeps active warnings in memory for the UI to poll."""

    def __init__(self):
        self.active: dict[str, str] = {}
        self.history: list[str] = []

    def show(self, message: str) -> str:
        warning_id = str(uuid4())
        self.active[warning_id] = message
        self.history.append(message)
        logger.debug(f"Warning {warning_id} shown: {message}")
        return warning_id

    def dismiss(self, warning_id: str) -> None:
        self.active.pop(warning_id, None)
