"""Topic map package: heuristic theme extraction and relationship graphs."""

from __future__ import annotations

from .config import Settings
from .documents import (
    CombinedDocument,
    Corpus,
    DocumentStructure,
    EmptyInputError,
    FreeTextDocument,
    TabularDocument,
    normalize_document,
    parse_document,
)
from .mapping import AnalysisError, MappingSession, MappingStatus, run_mapping
from .synthesis import MappingResult

__all__ = [
    "AnalysisError",
    "CombinedDocument",
    "Corpus",
    "DocumentStructure",
    "EmptyInputError",
    "FreeTextDocument",
    "MappingResult",
    "MappingSession",
    "MappingStatus",
    "Settings",
    "TabularDocument",
    "create_app",
    "normalize_document",
    "parse_document",
    "run_mapping",
]


def __getattr__(name: str):  # pragma: no cover - small helper
    if name == "create_app":
        from .app import create_app

        return create_app
    raise AttributeError(f"module 'topicmap' has no attribute {name}")
