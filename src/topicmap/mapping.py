"""Mapping pipeline runner and the per-upload analysis session."""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import nullcontext
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import ContextManager, Sequence
from uuid import uuid4

from .catalog import DEFAULT_CATALOG, ThemePattern
from .config import Settings
from .documents import (
    Document,
    EmptyInputError,
    document_main_topic,
    document_title,
    normalize_document,
)
from .observability import MetricsRecorder
from .relationships import RelationshipLabeler, build_connections
from .subtopics import generate_subtopics
from .synthesis import MappingResult, synthesize_mapping
from .themes import score_themes

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Failed to analyze document topics"
NOTHING_TO_ANALYZE_MESSAGE = "No document to analyze"


class AnalysisError(RuntimeError):
    """An unexpected failure inside one of the pipeline stages."""

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(f"{stage}: {message}")
        self.stage = stage


class MappingStatus(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    READY = "ready"
    FAILED = "failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _stage_timer(metrics: MetricsRecorder | None, stage: str) -> ContextManager[None]:
    if metrics is None:
        return nullcontext()
    return metrics.track_timing("mapping.stage", stage=stage)


def run_mapping(
    document: Document | None,
    *,
    settings: Settings | None = None,
    labeler: RelationshipLabeler | None = None,
    catalog: Sequence[ThemePattern] | None = None,
    metrics: MetricsRecorder | None = None,
) -> MappingResult:
    """Run normalizer, scorer, subtopics, connections and synthesis in order.

    Raises ``EmptyInputError`` when ``document`` is ``None``; any other failure,
    including an unusable relationship strategy, is re-raised as
    ``AnalysisError`` naming the stage that broke.
    """

    settings = settings or Settings()
    catalog = DEFAULT_CATALOG if catalog is None else catalog

    stage = "normalize"
    start = time.perf_counter()
    try:
        with _stage_timer(metrics, stage):
            corpus = normalize_document(document, row_limit=settings.row_limit)
        stage = "themes"
        with _stage_timer(metrics, stage):
            themes = score_themes(
                corpus,
                catalog=catalog,
                max_themes=settings.max_themes,
                max_key_points=settings.max_key_points,
            )
        stage = "subtopics"
        with _stage_timer(metrics, stage):
            subtopics = generate_subtopics(themes, corpus.text)
        stage = "connections"
        with _stage_timer(metrics, stage):
            connections = build_connections(
                themes,
                labeler=labeler or settings.build_labeler(),
                max_connections=settings.max_connections,
            )
        stage = "synthesis"
        with _stage_timer(metrics, stage):
            result = synthesize_mapping(
                corpus,
                themes,
                subtopics,
                connections,
                title=document_title(document),
                main_topic=document_main_topic(document),
            )
    except EmptyInputError:
        raise
    except Exception as exc:
        if metrics:
            metrics.increment("mapping.failed", stage=stage)
        raise AnalysisError(stage, str(exc) or exc.__class__.__name__) from exc

    elapsed = time.perf_counter() - start
    structural = any(theme.structural for theme in result.themes)
    if metrics:
        metrics.increment("mapping.run", structural=structural)
        metrics.record_timing("mapping.duration", elapsed)
        metrics.set_gauge("mapping.themes", float(len(result.themes)))
        if structural:
            metrics.increment("mapping.fallback")
    logger.info(
        "mapping.complete main_topic=%s themes=%d subtopics=%d connections=%d chars=%d duration_ms=%.2f",
        result.main_topic,
        len(result.themes),
        len(result.subtopics),
        len(result.connections),
        result.stats.corpus_length,
        elapsed * 1000.0,
    )
    return result


@dataclass(slots=True)
class MappingSession:
    """Analysis context for one uploaded document.

    The session owns the current document and at most one published result.
    A new document discards the result; each analysis carries a generation
    number so a run that finishes after the document changed is dropped.
    """

    document: Document | None = None
    settings: Settings = field(default_factory=Settings)
    labeler: RelationshipLabeler | None = None
    catalog: Sequence[ThemePattern] = DEFAULT_CATALOG
    metrics: MetricsRecorder | None = None
    id: str = field(default_factory=lambda: uuid4().hex)
    status: MappingStatus = MappingStatus.IDLE
    result: MappingResult | None = None
    error: str | None = None
    error_detail: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    _generation: int = field(default=0, init=False, repr=False)

    @property
    def nothing_to_analyze(self) -> bool:
        return self.document is None

    @property
    def is_ready(self) -> bool:
        return self.status is MappingStatus.READY and self.result is not None

    def update_document(self, document: Document | None, *, auto_analyze: bool = True) -> MappingResult | None:
        """Replace the document, drop the previous result and optionally re-run."""

        self.document = document
        self._generation += 1
        self._reset()
        logger.info("session.document_updated session=%s generation=%d", self.id, self._generation)
        if auto_analyze:
            return self.analyze()
        return None

    def analyze(self) -> MappingResult | None:
        """Run the pipeline synchronously; never raises for analysis failures."""

        generation = self._begin()
        if generation is None:
            return None
        document = self.document
        try:
            result = self._execute(document)
        except (EmptyInputError, AnalysisError) as exc:
            return self._fail(generation, exc)
        return self._publish(generation, result)

    def reanalyze(self) -> MappingResult | None:
        """Retry entry point: re-enter ``analyzing`` with the same document."""

        logger.info("session.reanalyze session=%s previous_status=%s", self.id, self.status.value)
        return self.analyze()

    async def analyze_async(self) -> MappingResult | None:
        """Async variant honouring ``settings.analysis_delay_seconds``.

        The pipeline runs in a worker thread; its outcome is published back on
        the event loop. If the document changes while this call is in flight,
        the outcome is discarded and ``None`` returned.
        """

        generation = self._begin()
        if generation is None:
            return None
        delay = max(0.0, self.settings.analysis_delay_seconds)
        if delay:
            await asyncio.sleep(delay)
        if generation != self._generation:
            return None
        document = self.document
        try:
            result = await asyncio.to_thread(self._execute, document)
        except (EmptyInputError, AnalysisError) as exc:
            return self._fail(generation, exc)
        return self._publish(generation, result)

    async def reanalyze_async(self) -> MappingResult | None:
        return await self.analyze_async()

    def to_payload(self, *, include_result: bool = True) -> dict[str, object]:
        payload: dict[str, object] = {
            "id": self.id,
            "status": self.status.value,
            "createdAt": self.created_at.isoformat(),
            "nothingToAnalyze": self.nothing_to_analyze,
        }
        if self.started_at:
            payload["startedAt"] = self.started_at.isoformat()
        if self.completed_at:
            payload["completedAt"] = self.completed_at.isoformat()
        if self.error:
            payload["error"] = self.error
        if include_result and self.result is not None:
            payload["result"] = self.result.to_payload()
        return payload

    def _reset(self) -> None:
        self.status = MappingStatus.IDLE
        self.result = None
        self.error = None
        self.error_detail = None
        self.started_at = None
        self.completed_at = None

    def _begin(self) -> int | None:
        if self.document is None:
            self._reset()
            logger.info("session.idle session=%s reason=%s", self.id, NOTHING_TO_ANALYZE_MESSAGE)
            return None
        self._generation += 1
        self.status = MappingStatus.ANALYZING
        self.result = None
        self.error = None
        self.error_detail = None
        self.started_at = _utcnow()
        self.completed_at = None
        return self._generation

    def _execute(self, document: Document | None) -> MappingResult:
        # Pure computation; session state is only written by _publish and _fail.
        return run_mapping(
            document,
            settings=self.settings,
            labeler=self.labeler,
            catalog=self.catalog,
            metrics=self.metrics,
        )

    def _fail(self, generation: int, exc: EmptyInputError | AnalysisError) -> None:
        if generation != self._generation:
            return None
        if isinstance(exc, EmptyInputError):
            self._reset()
            return None
        logger.warning("session.failed session=%s stage=%s error=%s", self.id, exc.stage, exc)
        self.status = MappingStatus.FAILED
        self.error = GENERIC_FAILURE_MESSAGE
        self.error_detail = str(exc)
        self.completed_at = _utcnow()
        return None

    def _publish(self, generation: int, result: MappingResult) -> MappingResult | None:
        if generation != self._generation:
            logger.info("session.stale_result_dropped session=%s generation=%d", self.id, generation)
            return None
        self.result = result
        self.status = MappingStatus.READY
        self.completed_at = _utcnow()
        return result


__all__ = [
    "AnalysisError",
    "GENERIC_FAILURE_MESSAGE",
    "MappingSession",
    "MappingStatus",
    "run_mapping",
]
