"""Language tag to execution-service runtime id lookup."""

import logging
import time
from collections.abc import Awaitable, Callable

from codeprep.config import settings
from codeprep.exceptions import UnsupportedLanguageError

logger = logging.getLogger(__name__)

# Judge0 CE runtime ids used when the store has no languages table rows
DEFAULT_LANGUAGE_IDS: dict[str, int] = {
    "java": 62,
    "javascript": 63,
    "python": 71,
    "cpp": 54,
}

LanguageLoader = Callable[[], Awaitable[dict[str, int]]]


class LanguageRegistry:
    """Cached language lookup with a time-to-live.

    The loader is called at most once per TTL window. ``invalidate()`` forces
    the next lookup to reload.
    """

    def __init__(
        self,
        loader: LanguageLoader | None = None,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._loader = loader
        self.ttl_seconds = settings.language_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._cache: dict[str, int] | None = None
        self._loaded_at: float = 0.0

    def invalidate(self) -> None:
        self._cache = None

    async def languages(self) -> dict[str, int]:
        if self._cache is not None and self._clock() - self._loaded_at < self.ttl_seconds:
            return self._cache

        loaded: dict[str, int] = {}
        if self._loader is not None:
            loaded = await self._loader()
        if not loaded:
            loaded = dict(DEFAULT_LANGUAGE_IDS)
        logger.debug(f"Loaded {len(loaded)} languages")

        self._cache = loaded
        self._loaded_at = self._clock()
        return loaded

    async def resolve(self, language: str) -> int:
        """Runtime id for ``language``; raises UnsupportedLanguageError."""
        languages = await self.languages()
        language_id = languages.get(language.strip().lower())
        if language_id is None:
            raise UnsupportedLanguageError(language)
        return language_id
