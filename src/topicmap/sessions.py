"""Bounded in-memory registry of mapping sessions."""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Sequence

from .catalog import DEFAULT_CATALOG, ThemePattern
from .config import Settings
from .documents import Document
from .mapping import MappingSession
from .observability import MetricsRecorder
from .relationships import RelationshipLabeler

_DEFAULT_MAX_SESSIONS = 64


class MappingSessionStore:
    """Keep the most recent sessions; the oldest is evicted once full."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        catalog: Sequence[ThemePattern] = DEFAULT_CATALOG,
        labeler: RelationshipLabeler | None = None,
        metrics: MetricsRecorder | None = None,
        max_sessions: int = _DEFAULT_MAX_SESSIONS,
    ) -> None:
        self._settings = settings or Settings()
        self._catalog = tuple(catalog)
        self._labeler = labeler
        self._metrics = metrics
        self._sessions: dict[str, MappingSession] = {}
        self._order: deque[str] = deque()
        self._max_sessions = max(1, max_sessions)
        self._lock = asyncio.Lock()

    @property
    def catalog(self) -> tuple[ThemePattern, ...]:
        return self._catalog

    async def create(self, document: Document | None) -> MappingSession:
        session = MappingSession(
            document=document,
            settings=self._settings,
            labeler=self._labeler,
            catalog=self._catalog,
            metrics=self._metrics,
        )
        async with self._lock:
            self._sessions[session.id] = session
            self._order.append(session.id)
            while len(self._order) > self._max_sessions:
                stale_id = self._order.popleft()
                if stale_id != session.id:
                    self._sessions.pop(stale_id, None)
        if self._metrics:
            self._metrics.set_gauge("mapping.sessions", float(len(self._sessions)))
        return session

    async def get(self, session_id: str) -> MappingSession | None:
        async with self._lock:
            return self._sessions.get(session_id)

    async def list_sessions(self) -> list[MappingSession]:
        async with self._lock:
            return [self._sessions[session_id] for session_id in self._order if session_id in self._sessions]

    async def discard(self, session_id: str) -> bool:
        async with self._lock:
            removed = self._sessions.pop(session_id, None)
            if removed is None:
                return False
            self._order.remove(session_id)
            return True

    def __len__(self) -> int:
        return len(self._sessions)


__all__ = ["MappingSessionStore"]
