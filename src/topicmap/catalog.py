"""Keyword catalog used to detect themes, with YAML extension support."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Sequence

import yaml


@dataclass(frozen=True, slots=True)
class ThemePattern:
    """One catalog row: the keywords that signal a theme and how to describe it."""

    name: str
    description: str
    keywords: tuple[str, ...]
    pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        alternation = "|".join(re.escape(keyword) for keyword in self.keywords)
        object.__setattr__(self, "pattern", re.compile(rf"\b(?:{alternation})\b", re.IGNORECASE))

    def count(self, text: str) -> int:
        return sum(1 for _ in self.pattern.finditer(text))

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None

    def to_payload(self) -> dict[str, object]:
        return {"name": self.name, "description": self.description, "keywords": list(self.keywords)}


# Order matters: it breaks relevance ties between themes.
DEFAULT_CATALOG: tuple[ThemePattern, ...] = (
    ThemePattern(
        "Data Analysis",
        "Statistical analysis and data interpretation",
        ("data", "analytics", "analysis", "statistics", "metrics"),
    ),
    ThemePattern(
        "Research",
        "Research methodology and findings",
        ("research", "study", "investigation", "findings", "results"),
    ),
    ThemePattern(
        "Business Strategy",
        "Business operations and strategic planning",
        ("business", "management", "strategy", "operations", "performance"),
    ),
    ThemePattern(
        "Technology",
        "Technological systems and digital solutions",
        ("technology", "digital", "software", "system", "platform"),
    ),
    ThemePattern(
        "Education",
        "Educational content and learning methodologies",
        ("education", "learning", "teaching", "academic", "curriculum"),
    ),
    ThemePattern(
        "Healthcare",
        "Medical and healthcare-related topics",
        ("health", "medical", "healthcare", "treatment", "patient"),
    ),
    ThemePattern(
        "Finance",
        "Financial analysis and economic factors",
        ("finance", "financial", "economic", "budget", "cost"),
    ),
    ThemePattern(
        "Marketing",
        "Marketing strategies and customer engagement",
        ("marketing", "customer", "sales", "brand", "campaign"),
    ),
    ThemePattern(
        "Project Management",
        "Project planning and process optimization",
        ("project", "process", "workflow", "implementation", "execution"),
    ),
    ThemePattern(
        "Quality Management",
        "Quality assurance and process improvement",
        ("quality", "improvement", "optimization", "efficiency", "performance"),
    ),
)


class CatalogLoadError(RuntimeError):
    """Raised when a theme catalog file cannot be parsed."""


def _string_list(value: object) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


def extend_catalog(
    base: Sequence[ThemePattern], extra: Iterable[ThemePattern]
) -> tuple[ThemePattern, ...]:
    """Append ``extra`` after ``base``; a name already present is not added twice."""

    seen = {entry.name for entry in base}
    merged = list(base)
    for entry in extra:
        if entry.name in seen:
            continue
        seen.add(entry.name)
        merged.append(entry)
    return tuple(merged)


def load_theme_catalog(
    path: str | Path | None, *, base: Sequence[ThemePattern] = DEFAULT_CATALOG
) -> tuple[ThemePattern, ...]:
    """Load extra catalog rows from YAML; return ``base`` if the file is missing."""

    if not path:
        return tuple(base)
    catalog_path = Path(path)
    if not catalog_path.exists():
        return tuple(base)

    try:
        data = yaml.safe_load(catalog_path.read_text(encoding="utf-8")) or []
    except yaml.YAMLError as exc:
        raise CatalogLoadError(f"Theme catalog {catalog_path} is not valid YAML") from exc
    if not isinstance(data, list):
        raise CatalogLoadError(f"Theme catalog {catalog_path} must contain a list of entries")

    entries: list[ThemePattern] = []
    for item in data:
        if not isinstance(item, dict):
            continue
        name = str(item.get("name", "")).strip()
        keywords = _string_list(item.get("keywords"))
        if not name or not keywords:
            continue
        description = str(item.get("description") or f"Content related to {name.lower()}").strip()
        entries.append(ThemePattern(name, description, tuple(keywords)))
    return extend_catalog(base, entries)


__all__ = [
    "CatalogLoadError",
    "DEFAULT_CATALOG",
    "ThemePattern",
    "extend_catalog",
    "load_theme_catalog",
]
