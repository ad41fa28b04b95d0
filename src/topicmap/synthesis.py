"""Assemble the final topic map: main topic, insights, hierarchy and stats."""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from typing import List, Sequence

from .documents import Corpus
from .relationships import Connection
from .subtopics import Subtopic
from .themes import Theme, title_case

DEFAULT_MAIN_TOPIC = "Document Analysis"
RICH_CONTENT_THRESHOLD = 1000
_MAIN_TOPIC_WORDS = 3
_MAIN_TOPIC_MIN_WORD_CHARS = 5
_NON_WORD_RE = re.compile(r"\W+")


@dataclass(frozen=True, slots=True)
class TopicHierarchy:
    primary: tuple[str, ...] = ()
    secondary: tuple[str, ...] = ()
    supporting: tuple[str, ...] = ()

    def to_payload(self) -> dict[str, list[str]]:
        return {
            "primary": list(self.primary),
            "secondary": list(self.secondary),
            "supporting": list(self.supporting),
        }


@dataclass(frozen=True, slots=True)
class MappingStats:
    """Headline counts shown next to the topic network."""

    theme_count: int
    subtopic_count: int
    connection_count: int
    insight_count: int
    corpus_length: int
    record_count: int

    def to_payload(self) -> dict[str, int]:
        return {
            "themes": self.theme_count,
            "subtopics": self.subtopic_count,
            "connections": self.connection_count,
            "insights": self.insight_count,
            "corpusLength": self.corpus_length,
            "recordCount": self.record_count,
        }


@dataclass(frozen=True, slots=True)
class MappingResult:
    """Everything one analysis run produced; replaced wholesale on re-analysis."""

    main_topic: str
    themes: tuple[Theme, ...]
    subtopics: tuple[Subtopic, ...]
    connections: tuple[Connection, ...]
    insights: tuple[str, ...]
    hierarchy: TopicHierarchy
    stats: MappingStats

    def summary_payload(self) -> dict[str, object]:
        return {
            "mainTopic": self.main_topic,
            "insights": list(self.insights),
            "topicHierarchy": self.hierarchy.to_payload(),
            "stats": self.stats.to_payload(),
        }

    def to_payload(self) -> dict[str, object]:
        return {
            "mainTopic": self.main_topic,
            "keyThemes": [theme.to_payload() for theme in self.themes],
            "subtopics": [subtopic.to_payload() for subtopic in self.subtopics],
            "connections": [connection.to_payload() for connection in self.connections],
            "documentInsights": list(self.insights),
            "topicHierarchy": self.hierarchy.to_payload(),
            "stats": self.stats.to_payload(),
        }


def resolve_main_topic(
    corpus_text: str,
    *,
    title: str | None = None,
    main_topic: str | None = None,
) -> str:
    """Pick the headline topic: explicit title, explicit topic, then top words."""

    if title:
        return title
    if main_topic:
        return main_topic
    if not corpus_text:
        return DEFAULT_MAIN_TOPIC

    words = [
        word
        for word in _NON_WORD_RE.split(corpus_text.lower())
        if len(word) >= _MAIN_TOPIC_MIN_WORD_CHARS
    ]
    # Counter keeps first-seen order, so most_common breaks ties by appearance.
    top_words = [word for word, _ in Counter(words).most_common(_MAIN_TOPIC_WORDS)]
    if not top_words:
        return DEFAULT_MAIN_TOPIC
    return title_case(" & ".join(top_words))


def build_insights(
    themes: Sequence[Theme],
    subtopics: Sequence[Subtopic],
    connections: Sequence[Connection],
    corpus_length: int,
) -> List[str]:
    focus = themes[0].name if themes else "comprehensive analysis"
    if corpus_length > RICH_CONTENT_THRESHOLD:
        depth = "Rich content suitable for in-depth topic modeling"
    else:
        depth = "Concise content with focused thematic structure"
    return [
        f"Document contains {len(themes)} major thematic areas",
        f"{len(subtopics)} specific subtopics identified for detailed analysis",
        f"Cross-topic relationships suggest {len(connections)} conceptual connections",
        f"Primary focus appears to be on {focus}",
        depth,
    ]


def build_hierarchy(themes: Sequence[Theme], subtopics: Sequence[Subtopic]) -> TopicHierarchy:
    return TopicHierarchy(
        primary=tuple(theme.name for theme in themes[0:3]),
        secondary=tuple(theme.name for theme in themes[3:6]),
        supporting=tuple(subtopic.name for subtopic in subtopics[0:4]),
    )


def synthesize_mapping(
    corpus: Corpus,
    themes: Sequence[Theme],
    subtopics: Sequence[Subtopic],
    connections: Sequence[Connection],
    *,
    title: str | None = None,
    main_topic: str | None = None,
) -> MappingResult:
    insights = build_insights(themes, subtopics, connections, len(corpus.text))
    stats = MappingStats(
        theme_count=len(themes),
        subtopic_count=len(subtopics),
        connection_count=len(connections),
        insight_count=len(insights),
        corpus_length=len(corpus.text),
        record_count=corpus.structure.record_count,
    )
    return MappingResult(
        main_topic=resolve_main_topic(corpus.text, title=title, main_topic=main_topic),
        themes=tuple(themes),
        subtopics=tuple(subtopics),
        connections=tuple(connections),
        insights=tuple(insights),
        hierarchy=build_hierarchy(themes, subtopics),
        stats=stats,
    )


__all__ = [
    "DEFAULT_MAIN_TOPIC",
    "MappingResult",
    "MappingStats",
    "TopicHierarchy",
    "build_hierarchy",
    "build_insights",
    "resolve_main_topic",
    "synthesize_mapping",
]
