"""Theme scoring: keyword density against the catalog plus a structural fallback."""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from typing import List, Sequence

from .catalog import DEFAULT_CATALOG, ThemePattern
from .documents import Corpus, DocumentStructure

logger = logging.getLogger(__name__)

MAX_THEMES = 8
MAX_KEY_POINTS = 3
MAX_RELEVANCE = 10
MIN_MATCH_RELEVANCE = 3
STRUCTURAL_MAX_COLUMNS = 6
STRUCTURAL_BASE_RELEVANCE = 8

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_MIN_SENTENCE_CHARS = 20
_KEY_POINT_MAX_CHARS = 100
_COLUMN_SEPARATOR_RE = re.compile(r"[_-]")
_WORD_START_RE = re.compile(r"\b\w")


def clamp_relevance(value: int) -> int:
    return max(0, min(MAX_RELEVANCE, int(value)))


@dataclass(frozen=True, slots=True)
class Theme:
    """A top-level topic detected in the corpus."""

    name: str
    description: str
    relevance: int
    key_points: tuple[str, ...] = field(default_factory=tuple)
    structural: bool = False

    def to_payload(self) -> dict[str, object]:
        return {
            "name": self.name,
            "description": self.description,
            "relevance": self.relevance,
            "keyPoints": list(self.key_points),
        }


def title_case(value: str) -> str:
    """Upper-case the first character of every word, leaving the rest untouched."""

    return _WORD_START_RE.sub(lambda match: match.group(0).upper(), value)


def count_words(text: str) -> int:
    # Splits on single spaces, so runs of spaces count as extra (empty) words.
    return len(text.split(" "))


def density_relevance(match_count: int, word_count: int) -> int:
    if match_count <= 0 or word_count <= 0:
        return 0
    return clamp_relevance(math.floor(match_count / word_count * 1000) + MIN_MATCH_RELEVANCE)


def split_sentences(text: str) -> List[str]:
    return [piece for piece in _SENTENCE_SPLIT_RE.split(text) if len(piece.strip()) > _MIN_SENTENCE_CHARS]


def truncate_key_point(sentence: str, *, max_chars: int = _KEY_POINT_MAX_CHARS) -> str:
    cleaned = sentence.strip()
    if len(cleaned) <= max_chars:
        return cleaned
    return cleaned[:max_chars] + "..."


def extract_key_points(
    sentences: Sequence[str], entry: ThemePattern, *, limit: int = MAX_KEY_POINTS
) -> List[str]:
    points: List[str] = []
    for sentence in sentences:
        if len(points) >= limit:
            break
        if entry.matches(sentence):
            points.append(truncate_key_point(sentence))
    return points


def structural_themes(structure: DocumentStructure) -> List[Theme]:
    """Derive placeholder themes from column names when no keyword matched."""

    themes: List[Theme] = []
    seen: set[str] = set()
    for index, column in enumerate(structure.columns[:STRUCTURAL_MAX_COLUMNS]):
        name = title_case(_COLUMN_SEPARATOR_RE.sub(" ", column))
        # "first_name" and "first-name" collapse to one theme
        if name in seen:
            continue
        seen.add(name)
        themes.append(
            Theme(
                name=name,
                description=f"Data dimension: {column}",
                relevance=clamp_relevance(STRUCTURAL_BASE_RELEVANCE - index),
                key_points=(
                    f"Contains structured data for {column}",
                    "Available for analysis and visualization",
                ),
                structural=True,
            )
        )
    return themes


def score_themes(
    corpus: Corpus,
    *,
    catalog: Sequence[ThemePattern] = DEFAULT_CATALOG,
    max_themes: int = MAX_THEMES,
    max_key_points: int = MAX_KEY_POINTS,
) -> List[Theme]:
    """Rank catalog themes by keyword density in ``corpus``.

    Every matched entry scores at least 3 and at most 10. Sorting is stable, so
    equal relevance keeps catalog order. When nothing matches, the column names
    of ``corpus.structure`` stand in as themes.
    """

    text = corpus.text
    themes: List[Theme] = []
    if text:
        word_count = count_words(text)
        sentences = split_sentences(text)
        seen: set[str] = set()
        for entry in catalog:
            if entry.name in seen:
                continue
            matches = entry.count(text)
            if not matches:
                continue
            seen.add(entry.name)
            key_points = extract_key_points(sentences, entry, limit=max_key_points)
            if not key_points and max_key_points > 0:
                key_points = [f"Key aspects of {entry.name.lower()} identified in the document"]
            themes.append(
                Theme(
                    name=entry.name,
                    description=entry.description,
                    relevance=density_relevance(matches, word_count),
                    key_points=tuple(key_points),
                )
            )
            logger.debug("theme.matched name=%s matches=%d words=%d", entry.name, matches, word_count)

    if not themes and corpus.structure.columns:
        themes = structural_themes(corpus.structure)
        logger.info("theme.structural_fallback columns=%d", len(themes))

    themes.sort(key=lambda theme: theme.relevance, reverse=True)
    return themes[: max(0, max_themes)]


__all__ = [
    "MAX_THEMES",
    "Theme",
    "clamp_relevance",
    "count_words",
    "density_relevance",
    "extract_key_points",
    "score_themes",
    "split_sentences",
    "structural_themes",
    "title_case",
    "truncate_key_point",
]
