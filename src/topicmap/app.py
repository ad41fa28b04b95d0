"""FastAPI application exposing topic mapping sessions."""

from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response

from .catalog import ThemePattern, load_theme_catalog
from .config import Settings
from .documents import Document, parse_document
from .mapping import MappingSession
from .observability import MetricsRecorder, configure_logging
from .relationships import RelationshipLabeler, validate_strategy
from .sessions import MappingSessionStore

logger = logging.getLogger(__name__)


class ApplicationState:
    """Container for runtime dependencies used by the FastAPI app."""

    def __init__(
        self,
        *,
        settings: Settings,
        catalog: tuple[ThemePattern, ...],
        sessions: MappingSessionStore,
        metrics: MetricsRecorder | None,
    ) -> None:
        self.settings = settings
        self.catalog = catalog
        self.sessions = sessions
        self.metrics = metrics


def create_app(
    *,
    settings: Settings | None = None,
    metrics: MetricsRecorder | None = None,
    labeler: RelationshipLabeler | None = None,
    sessions: MappingSessionStore | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = settings or Settings.from_env()
    if labeler is None and sessions is None:
        validate_strategy(settings.relationship_strategy)
    configure_logging(settings.log_level)
    metrics = metrics or settings.build_metrics_recorder()
    catalog = load_theme_catalog(settings.theme_catalog_path)
    sessions = sessions or MappingSessionStore(
        settings=settings,
        catalog=catalog,
        labeler=labeler,
        metrics=metrics,
        max_sessions=settings.session_max_entries,
    )
    logger.info(
        "app.start catalog_entries=%d relationship_strategy=%s max_sessions=%d",
        len(catalog),
        settings.relationship_strategy,
        settings.session_max_entries,
    )

    app = FastAPI(title="Topic Map")
    app.state.services = ApplicationState(
        settings=settings,
        catalog=catalog,
        sessions=sessions,
        metrics=metrics,
    )

    def get_state(request: Request) -> ApplicationState:
        return request.app.state.services

    def get_sessions(request: Request) -> MappingSessionStore:
        return get_state(request).sessions

    def get_metrics(request: Request) -> MetricsRecorder | None:
        return get_state(request).metrics

    async def _read_document(request: Request) -> Document:
        try:
            payload = await request.json()
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="Request body must be JSON") from exc
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="Document payload must be an object")
        document = parse_document(payload)
        if document is None:
            raise HTTPException(
                status_code=400,
                detail="Provide document text (content, text or description) or rows",
            )
        return document

    async def _resolve_session(store: MappingSessionStore, session_id: str) -> MappingSession:
        session = await store.get(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail="Mapping session not found")
        return session

    @app.post("/api/mappings", response_class=JSONResponse)
    async def create_mapping(
        request: Request,
        store: MappingSessionStore = Depends(get_sessions),
    ) -> JSONResponse:
        document = await _read_document(request)
        session = await store.create(document)
        await session.analyze_async()
        return JSONResponse(session.to_payload(), status_code=201)

    @app.get("/api/mappings/{session_id}", response_class=JSONResponse)
    async def get_mapping(
        session_id: str,
        store: MappingSessionStore = Depends(get_sessions),
    ) -> JSONResponse:
        session = await _resolve_session(store, session_id)
        return JSONResponse(session.to_payload())

    @app.post("/api/mappings/{session_id}/reanalyze", response_class=JSONResponse)
    async def reanalyze_mapping(
        session_id: str,
        store: MappingSessionStore = Depends(get_sessions),
    ) -> JSONResponse:
        session = await _resolve_session(store, session_id)
        await session.reanalyze_async()
        return JSONResponse(session.to_payload())

    @app.put("/api/mappings/{session_id}/document", response_class=JSONResponse)
    async def replace_document(
        session_id: str,
        request: Request,
        store: MappingSessionStore = Depends(get_sessions),
    ) -> JSONResponse:
        session = await _resolve_session(store, session_id)
        document = await _read_document(request)
        session.update_document(document, auto_analyze=False)
        await session.analyze_async()
        return JSONResponse(session.to_payload())

    @app.get("/api/mappings/{session_id}/summary", response_class=JSONResponse)
    async def mapping_summary(
        session_id: str,
        store: MappingSessionStore = Depends(get_sessions),
    ) -> JSONResponse:
        session = await _resolve_session(store, session_id)
        if not session.is_ready:
            raise HTTPException(status_code=409, detail=f"Mapping is {session.status.value}")
        return JSONResponse({"id": session.id, **session.result.summary_payload()})

    @app.delete("/api/mappings/{session_id}", response_class=Response)
    async def delete_mapping(
        session_id: str,
        store: MappingSessionStore = Depends(get_sessions),
    ) -> Response:
        removed = await store.discard(session_id)
        if not removed:
            raise HTTPException(status_code=404, detail="Mapping session not found")
        return Response(status_code=204)

    @app.get("/api/catalog", response_class=JSONResponse)
    async def theme_catalog(request: Request) -> JSONResponse:
        entries = [entry.to_payload() for entry in get_state(request).catalog]
        return JSONResponse({"entries": entries})

    @app.get("/metrics")
    async def metrics_endpoint(metrics: MetricsRecorder | None = Depends(get_metrics)) -> Response:
        if metrics is None or not metrics.prometheus_enabled:
            raise HTTPException(status_code=404, detail="Metrics export disabled")
        return Response(content=metrics.render_prometheus(), media_type=metrics.prometheus_content_type)

    return app


__all__ = ["ApplicationState", "create_app"]
