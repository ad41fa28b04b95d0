"""Document shapes accepted by the mapper and the corpus normalizer."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence, Union

logger = logging.getLogger(__name__)

TEXT_COLUMN_KEYWORDS: tuple[str, ...] = ("title", "description", "content", "text", "summary")
FREE_TEXT_FIELDS: tuple[str, ...] = ("content", "text", "description")
DEFAULT_ROW_LIMIT = 20

Row = Mapping[str, Any]


class EmptyInputError(ValueError):
    """Raised when there is no document to analyze at all."""


@dataclass(frozen=True, slots=True)
class FreeTextDocument:
    """A document carrying only prose."""

    text: str
    title: str | None = None
    main_topic: str | None = None


@dataclass(frozen=True, slots=True)
class TabularDocument:
    """Row-oriented data such as a parsed spreadsheet."""

    rows: tuple[Row, ...]
    title: str | None = None
    main_topic: str | None = None


@dataclass(frozen=True, slots=True)
class CombinedDocument:
    """Prose summary accompanied by the rows it describes."""

    text: str
    rows: tuple[Row, ...]
    title: str | None = None
    main_topic: str | None = None


Document = Union[FreeTextDocument, TabularDocument, CombinedDocument]


@dataclass(frozen=True, slots=True)
class DocumentStructure:
    """Column layout detected from tabular rows."""

    columns: tuple[str, ...] = ()
    text_columns: tuple[str, ...] = ()
    record_count: int = 0


@dataclass(frozen=True, slots=True)
class Corpus:
    """Normalized text blob plus the structure it was derived from."""

    text: str
    structure: DocumentStructure = field(default_factory=DocumentStructure)

    def __len__(self) -> int:
        return len(self.text)

    @property
    def is_empty(self) -> bool:
        return not self.text


def _clean_optional(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _coerce_rows(value: object) -> tuple[Row, ...]:
    if value is None or isinstance(value, (str, bytes, Mapping)):
        return ()
    if not isinstance(value, Sequence):
        return ()
    return tuple(row for row in value if isinstance(row, Mapping))


def parse_document(payload: Mapping[str, Any] | None) -> Document | None:
    """Build the matching document variant from a raw payload.

    The first non-empty value among ``content``, ``text`` and ``description``
    becomes the free text; ``rows`` must be a list of mappings. Returns ``None``
    when the payload carries neither a free-text key nor ``rows``.
    """

    if not payload:
        return None

    text: str | None = None
    has_text_field = False
    for key in FREE_TEXT_FIELDS:
        if key not in payload:
            continue
        has_text_field = True
        candidate = payload.get(key)
        if isinstance(candidate, str) and candidate:
            text = candidate
            break

    has_rows = "rows" in payload
    rows = _coerce_rows(payload.get("rows"))
    title = _clean_optional(payload.get("title"))
    main_topic = _clean_optional(payload.get("mainTopic", payload.get("main_topic")))

    if has_text_field and has_rows:
        return CombinedDocument(text=text or "", rows=rows, title=title, main_topic=main_topic)
    if has_rows:
        return TabularDocument(rows=rows, title=title, main_topic=main_topic)
    if has_text_field:
        return FreeTextDocument(text=text or "", title=title, main_topic=main_topic)
    return None


def is_text_column(name: str) -> bool:
    lowered = name.lower()
    return any(keyword in lowered for keyword in TEXT_COLUMN_KEYWORDS)


def detect_structure(rows: Sequence[Row]) -> DocumentStructure:
    """Read column names from the first row and flag the text-bearing ones."""

    if not rows:
        return DocumentStructure()
    columns = tuple(str(column) for column in rows[0].keys())
    text_columns = tuple(column for column in columns if is_text_column(column))
    return DocumentStructure(columns=columns, text_columns=text_columns, record_count=len(rows))


def _row_text(row: Row, columns: Sequence[str]) -> str:
    values = []
    for column in columns:
        value = row.get(column)
        if not value:
            continue
        values.append(str(value))
    return " ".join(values)


def normalize_document(document: Document | None, *, row_limit: int = DEFAULT_ROW_LIMIT) -> Corpus:
    """Merge free text and text-bearing row values into a single corpus."""

    if document is None:
        raise EmptyInputError("No document supplied for analysis")

    text = document.text if isinstance(document, (FreeTextDocument, CombinedDocument)) else ""
    rows: tuple[Row, ...] = ()
    if isinstance(document, (TabularDocument, CombinedDocument)):
        rows = document.rows

    structure = DocumentStructure()
    if rows:
        structure = detect_structure(rows)
        combined = " ".join(_row_text(row, structure.text_columns) for row in rows[: max(0, row_limit)])
        text = f"{text} {combined}"

    corpus = Corpus(text=text.strip(), structure=structure)
    logger.debug(
        "corpus.normalized chars=%d columns=%d text_columns=%d records=%d",
        len(corpus),
        len(structure.columns),
        len(structure.text_columns),
        structure.record_count,
    )
    return corpus


def document_title(document: Document | None) -> str | None:
    return getattr(document, "title", None)


def document_main_topic(document: Document | None) -> str | None:
    return getattr(document, "main_topic", None)


__all__ = [
    "CombinedDocument",
    "Corpus",
    "DEFAULT_ROW_LIMIT",
    "Document",
    "DocumentStructure",
    "EmptyInputError",
    "FreeTextDocument",
    "TabularDocument",
    "detect_structure",
    "document_main_topic",
    "document_title",
    "is_text_column",
    "normalize_document",
    "parse_document",
]
