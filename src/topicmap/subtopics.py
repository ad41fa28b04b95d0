"""Template-driven subtopics for each detected theme."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from .themes import Theme

MAX_SUBTOPICS_PER_THEME = 3
SUBTOPIC_TEMPLATES: tuple[str, ...] = (
    "{theme} Framework",
    "{theme} Implementation",
    "{theme} Best Practices",
    "{theme} Methodology",
    "{theme} Guidelines",
    "{theme} Standards",
)


@dataclass(frozen=True, slots=True)
class Subtopic:
    """A finer-grained facet of a theme, referenced by the parent's name."""

    name: str
    parent_theme: str
    importance: int
    summary: str

    def to_payload(self) -> dict[str, object]:
        return {
            "name": self.name,
            "parentTheme": self.parent_theme,
            "importance": self.importance,
            "summary": self.summary,
        }


def subtopic_count(relevance: int) -> int:
    return min(MAX_SUBTOPICS_PER_THEME, max(1, relevance // 3))


def generate_subtopics(themes: Sequence[Theme], corpus_text: str = "") -> List[Subtopic]:
    """Expand every theme into 1-3 subtopics with strictly decreasing importance.

    ``corpus_text`` is accepted so callers can pass the corpus through; summaries
    are currently generic. The output keeps theme order and is not re-sorted.
    """

    subtopics: List[Subtopic] = []
    for theme in themes:
        for index in range(subtopic_count(theme.relevance)):
            template = SUBTOPIC_TEMPLATES[index % len(SUBTOPIC_TEMPLATES)]
            subtopics.append(
                Subtopic(
                    name=template.format(theme=theme.name),
                    parent_theme=theme.name,
                    importance=max(0, theme.relevance - (index + 1)),
                    summary=(
                        f"Specific aspects and applications of {theme.name.lower()} "
                        "covered in the document"
                    ),
                )
            )
    return subtopics


__all__ = ["SUBTOPIC_TEMPLATES", "Subtopic", "generate_subtopics", "subtopic_count"]
