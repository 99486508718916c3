"""Durable per-session answer checkpoints.

A checkpoint holds the latest answer map of an in-progress attempt so a page
reload can resume it. Checkpoints are keyed by session id and cleared once
the result has been written.
"""

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime

from sqlalchemy import delete
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from codeprep.db.models import CheckpointDB
from codeprep.exceptions import StoreError

logger = logging.getLogger(__name__)


class CheckpointStore(ABC):
    @abstractmethod
    async def save(self, session_id: str, answers: dict[str, str]) -> None:
        pass

    @abstractmethod
    async def load(self, session_id: str) -> dict[str, str]:
        """Return the saved answers, or an empty dict."""
        pass

    @abstractmethod
    async def clear(self, session_id: str) -> None:
        pass


class MemoryCheckpointStore(CheckpointStore):
    """Process-local store, mainly for tests."""

    def __init__(self):
        self._data: dict[str, dict[str, str]] = {}

    async def save(self, session_id: str, answers: dict[str, str]) -> None:
        self._data[session_id] = dict(answers)

    async def load(self, session_id: str) -> dict[str, str]:
        return dict(self._data.get(session_id, {}))

    async def clear(self, session_id: str) -> None:
        self._data.pop(session_id, None)


class SqlCheckpointStore(CheckpointStore):
    """Checkpoints in the ``checkpoints`` table. Failures raise StoreError."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def save(self, session_id: str, answers: dict[str, str]) -> None:
        values = {
            "session_id": session_id,
            "answers": json.dumps(answers, ensure_ascii=False),
            "updated_at": datetime.utcnow(),
        }
        # Single-statement upsert; overlapping saves for a new session must not collide
        stmt = sqlite_insert(CheckpointDB).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[CheckpointDB.session_id],
            set_={"answers": stmt.excluded.answers, "updated_at": stmt.excluded.updated_at},
        )
        try:
            async with self.session_factory() as db:
                await db.execute(stmt)
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to save checkpoint for session {session_id}: {e}")
            raise StoreError(f"Checkpoint write failed: {e}") from e

    async def load(self, session_id: str) -> dict[str, str]:
        try:
            async with self.session_factory() as db:
                row = await db.get(CheckpointDB, session_id)
        except SQLAlchemyError as e:
            raise StoreError(f"Checkpoint read failed: {e}") from e
        if row is None:
            return {}
        try:
            data = json.loads(row.answers)
        except json.JSONDecodeError:
            logger.warning(f"Discarding unreadable checkpoint for session {session_id}")
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    async def clear(self, session_id: str) -> None:
        try:
            async with self.session_factory() as db:
                await db.execute(delete(CheckpointDB).where(CheckpointDB.session_id == session_id))
                await db.commit()
        except SQLAlchemyError as e:
            raise StoreError(f"Checkpoint delete failed: {e}") from e
