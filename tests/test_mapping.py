from __future__ import annotations

import asyncio
import threading

import pytest

from topicmap.config import Settings
from topicmap.documents import CombinedDocument, EmptyInputError, FreeTextDocument, TabularDocument
from topicmap.mapping import (
    GENERIC_FAILURE_MESSAGE,
    AnalysisError,
    MappingSession,
    MappingStatus,
    run_mapping,
)
from topicmap.observability import MetricsRecorder
from topicmap.relationships import HashLabeler, RelationshipType
from topicmap.themes import Theme


class _ExplodingLabeler:
    def choose(self, source: Theme, target: Theme) -> RelationshipType:
        raise KeyError("no label")


def _assert_invariants(result) -> None:
    names = [theme.name for theme in result.themes]
    relevances = [theme.relevance for theme in result.themes]
    assert len(result.themes) <= 8
    assert relevances == sorted(relevances, reverse=True)
    assert len(set(names)) == len(names)
    for theme in result.themes:
        assert 0 <= theme.relevance <= 10
    relevance_by_name = dict(zip(names, relevances))
    for subtopic in result.subtopics:
        assert subtopic.parent_theme in relevance_by_name
        assert 0 <= subtopic.importance <= relevance_by_name[subtopic.parent_theme] - 1
    pairs = set()
    for connection in result.connections:
        assert connection.source != connection.target
        assert connection.source in relevance_by_name and connection.target in relevance_by_name
        assert 3 <= connection.strength <= 10
        pairs.add(frozenset((connection.source, connection.target)))
    assert len(pairs) == len(result.connections) <= 6
    assert set(result.hierarchy.primary) <= set(names)
    assert set(result.hierarchy.secondary) <= set(names)
    assert not set(result.hierarchy.primary) & set(result.hierarchy.secondary)
    assert set(result.hierarchy.supporting) <= {subtopic.name for subtopic in result.subtopics}


def test_empty_document_uses_defaults(settings: Settings) -> None:
    result = run_mapping(CombinedDocument(text="", rows=()), settings=settings)

    assert result.themes == ()
    assert result.main_topic == "Document Analysis"
    assert result.insights[0] == "Document contains 0 major thematic areas"
    assert result.connections == ()


def test_single_keyword_document(settings: Settings) -> None:
    text = " ".join(["data"] * 5 + ["apple"] * 45)

    result = run_mapping(FreeTextDocument(text=text), settings=settings)

    assert [(theme.name, theme.relevance) for theme in result.themes] == [("Data Analysis", 10)]
    assert result.main_topic == "Apple"
    _assert_invariants(result)


def test_tabular_document_falls_back_to_columns(settings: Settings) -> None:
    document = TabularDocument(rows=({"title": "Alpha"}, {"title": "Beta"}))

    result = run_mapping(document, settings=settings)

    assert [(theme.name, theme.relevance) for theme in result.themes] == [("Title", 8)]
    assert [subtopic.name for subtopic in result.subtopics] == ["Title Framework", "Title Implementation"]
    assert result.stats.record_count == 2
    _assert_invariants(result)


def test_full_pipeline_on_all_domains(all_domains_document: FreeTextDocument, settings: Settings) -> None:
    result = run_mapping(all_domains_document, settings=settings)

    assert len(result.themes) == 8
    assert len(result.subtopics) == 24
    assert len(result.connections) == 6
    assert result.main_topic == "Research & Business & Technology"
    assert result.insights == (
        "Document contains 8 major thematic areas",
        "24 specific subtopics identified for detailed analysis",
        "Cross-topic relationships suggest 6 conceptual connections",
        "Primary focus appears to be on Data Analysis",
        "Concise content with focused thematic structure",
    )
    assert result.hierarchy.primary == ("Data Analysis", "Research", "Business Strategy")
    assert result.hierarchy.secondary == ("Technology", "Education", "Healthcare")
    _assert_invariants(result)


def test_title_overrides_main_topic(settings: Settings) -> None:
    document = FreeTextDocument(text="research findings", title="Lab Notes")

    assert run_mapping(document, settings=settings).main_topic == "Lab Notes"


def test_runs_are_idempotent_apart_from_labels(all_domains_document: FreeTextDocument) -> None:
    first = run_mapping(all_domains_document)
    second = run_mapping(all_domains_document)

    assert first.themes == second.themes
    assert first.subtopics == second.subtopics
    assert first.main_topic == second.main_topic
    assert first.insights == second.insights
    assert [(c.source, c.target, c.strength) for c in first.connections] == [
        (c.source, c.target, c.strength) for c in second.connections
    ]


def test_seeded_settings_reproduce_labels(all_domains_document: FreeTextDocument) -> None:
    settings = Settings(relationship_strategy="random", relationship_seed=11)

    first = run_mapping(all_domains_document, settings=settings)
    second = run_mapping(all_domains_document, settings=settings)

    assert first.connections == second.connections


def test_run_mapping_without_document_raises() -> None:
    with pytest.raises(EmptyInputError):
        run_mapping(None)


def test_run_mapping_wraps_stage_failures(all_domains_document: FreeTextDocument) -> None:
    with pytest.raises(AnalysisError) as excinfo:
        run_mapping(all_domains_document, labeler=_ExplodingLabeler())

    assert excinfo.value.stage == "connections"
    assert isinstance(excinfo.value.__cause__, KeyError)


def test_session_without_document_stays_idle() -> None:
    session = MappingSession()

    assert session.analyze() is None
    assert session.status is MappingStatus.IDLE
    assert session.nothing_to_analyze
    assert session.to_payload()["nothingToAnalyze"] is True


def test_session_transitions_to_ready(all_domains_document: FreeTextDocument, hash_labeler: HashLabeler) -> None:
    session = MappingSession(document=all_domains_document, labeler=hash_labeler)

    result = session.analyze()

    assert result is not None
    assert session.status is MappingStatus.READY
    assert session.is_ready
    payload = session.to_payload()
    assert payload["status"] == "ready"
    assert payload["result"]["mainTopic"] == result.main_topic
    assert "completedAt" in payload


def test_session_failure_then_retry(all_domains_document: FreeTextDocument) -> None:
    session = MappingSession(document=all_domains_document, labeler=_ExplodingLabeler())

    assert session.analyze() is None
    assert session.status is MappingStatus.FAILED
    assert session.error == GENERIC_FAILURE_MESSAGE
    assert "connections" in (session.error_detail or "")
    assert session.result is None

    session.labeler = HashLabeler()
    result = session.reanalyze()

    assert result is not None
    assert session.status is MappingStatus.READY
    assert session.error is None


def test_session_update_document_replaces_result(settings: Settings) -> None:
    session = MappingSession(document=FreeTextDocument(text="research study"), settings=settings)
    first = session.analyze()
    assert first is not None

    assert session.update_document(FreeTextDocument(text="budget cost"), auto_analyze=False) is None
    assert session.status is MappingStatus.IDLE
    assert session.result is None

    second = session.update_document(FreeTextDocument(text="budget cost"))
    assert second is not None
    assert [theme.name for theme in second.themes] == ["Finance"]
    assert session.result is second


@pytest.mark.asyncio
async def test_analyze_async_returns_result(all_domains_document: FreeTextDocument, settings: Settings) -> None:
    session = MappingSession(document=all_domains_document, settings=settings)

    result = await session.analyze_async()

    assert result is not None
    assert session.status is MappingStatus.READY


@pytest.mark.asyncio
async def test_stale_async_result_is_discarded() -> None:
    settings = Settings(relationship_strategy="hash", analysis_delay_seconds=0.05)
    session = MappingSession(document=FreeTextDocument(text="research study"), settings=settings)

    pending = asyncio.create_task(session.analyze_async())
    await asyncio.sleep(0)
    assert session.status is MappingStatus.ANALYZING
    session.update_document(FreeTextDocument(text="budget cost"), auto_analyze=False)

    assert await pending is None
    assert session.status is MappingStatus.IDLE

    latest = await session.reanalyze_async()
    assert latest is not None
    assert [theme.name for theme in latest.themes] == ["Finance"]


def test_run_mapping_times_each_stage(all_domains_document: FreeTextDocument, hash_labeler: HashLabeler) -> None:
    metrics = MetricsRecorder(prometheus_enabled=True)

    run_mapping(all_domains_document, labeler=hash_labeler, metrics=metrics)

    rendered = metrics.render_prometheus().decode("utf-8")
    for stage in ("normalize", "themes", "subtopics", "connections", "synthesis"):
        assert f'topicmap_mapping_stage_count{{stage="{stage}"}} 1.0' in rendered


def test_unknown_strategy_is_reported_as_connection_failure(all_domains_document: FreeTextDocument) -> None:
    with pytest.raises(AnalysisError) as excinfo:
        run_mapping(all_domains_document, settings=Settings(relationship_strategy="bogus"))

    assert excinfo.value.stage == "connections"
    assert isinstance(excinfo.value.__cause__, ValueError)


def test_session_with_unknown_strategy_fails_instead_of_raising(all_domains_document: FreeTextDocument) -> None:
    session = MappingSession(document=all_domains_document, settings=Settings(relationship_strategy="bogus"))

    assert session.analyze() is None
    assert session.status is MappingStatus.FAILED
    assert session.error == GENERIC_FAILURE_MESSAGE
    assert "bogus" in (session.error_detail or "")


@pytest.mark.asyncio
async def test_result_finishing_after_document_change_is_not_published(
    monkeypatch: pytest.MonkeyPatch, settings: Settings
) -> None:
    started = threading.Event()
    release = threading.Event()

    def slow_run_mapping(document, **kwargs):
        started.set()
        release.wait(timeout=5)
        return run_mapping(document, **kwargs)

    monkeypatch.setattr("topicmap.mapping.run_mapping", slow_run_mapping)
    session = MappingSession(document=FreeTextDocument(text="research study"), settings=settings)

    pending = asyncio.create_task(session.analyze_async())
    assert await asyncio.to_thread(started.wait, 5)
    session.update_document(FreeTextDocument(text="budget cost"), auto_analyze=False)
    release.set()

    assert await pending is None
    assert session.status is MappingStatus.IDLE
    assert session.result is None
