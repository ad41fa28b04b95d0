from __future__ import annotations

import pytest

from topicmap.config import Settings
from topicmap.documents import FreeTextDocument
from topicmap.relationships import HashLabeler

# One keyword from each built-in catalog entry, ten words in total.
ALL_DOMAINS_TEXT = (
    "data research business technology education health finance marketing project quality"
)

SHORT_REPORT = "Data analytics drives research. Research findings guide the data strategy."


@pytest.fixture()
def settings() -> Settings:
    return Settings(relationship_strategy="hash")


@pytest.fixture()
def hash_labeler() -> HashLabeler:
    return HashLabeler()


@pytest.fixture()
def all_domains_document() -> FreeTextDocument:
    return FreeTextDocument(text=ALL_DOMAINS_TEXT)


@pytest.fixture()
def all_domains_text() -> str:
    return ALL_DOMAINS_TEXT


@pytest.fixture()
def short_report() -> str:
    return SHORT_REPORT
