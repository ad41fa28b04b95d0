from __future__ import annotations

from pathlib import Path

import pytest

from topicmap.catalog import (
    DEFAULT_CATALOG,
    CatalogLoadError,
    ThemePattern,
    extend_catalog,
    load_theme_catalog,
)


def test_default_catalog_order_and_size() -> None:
    names = [entry.name for entry in DEFAULT_CATALOG]

    assert len(names) == 10
    assert len(set(names)) == 10
    assert names[0] == "Data Analysis"
    assert names[-1] == "Quality Management"


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Data, DATA and data.", 3),
        ("database metadata datasets", 0),
        ("analytics-driven analysis", 2),
        ("", 0),
    ],
)
def test_theme_pattern_counts_whole_words(text: str, expected: int) -> None:
    data_analysis = DEFAULT_CATALOG[0]

    assert data_analysis.count(text) == expected


def test_theme_pattern_escapes_keywords() -> None:
    entry = ThemePattern("Languages", "Programming languages", ("c++", "python"))

    assert entry.matches("Written in Python")
    assert entry.count("c+ and cpp") == 0


def test_load_theme_catalog_appends_yaml_entries(tmp_path: Path) -> None:
    catalog_path = tmp_path / "catalog.yaml"
    catalog_path.write_text(
        """
        - name: Sustainability
          description: Environmental impact and climate goals
          keywords: [climate, emissions]
        - name: Legal
          keywords: contract
        - name: Research
          keywords: [duplicate]
        - name: Missing keywords
        - just a string
        """,
        encoding="utf-8",
    )

    catalog = load_theme_catalog(catalog_path)

    assert catalog[: len(DEFAULT_CATALOG)] == DEFAULT_CATALOG
    extra = catalog[len(DEFAULT_CATALOG):]
    assert [entry.name for entry in extra] == ["Sustainability", "Legal"]
    assert extra[1].keywords == ("contract",)
    assert extra[1].description == "Content related to legal"


def test_load_theme_catalog_missing_file_returns_defaults(tmp_path: Path) -> None:
    assert load_theme_catalog(tmp_path / "missing.yaml") == DEFAULT_CATALOG
    assert load_theme_catalog(None) == DEFAULT_CATALOG


def test_load_theme_catalog_rejects_non_list(tmp_path: Path) -> None:
    catalog_path = tmp_path / "catalog.yaml"
    catalog_path.write_text("name: Legal\nkeywords: [contract]\n", encoding="utf-8")

    with pytest.raises(CatalogLoadError):
        load_theme_catalog(catalog_path)


def test_extend_catalog_skips_known_names() -> None:
    extra = [ThemePattern("Finance", "dup", ("money",)), ThemePattern("Travel", "Trips", ("trip",))]

    merged = extend_catalog(DEFAULT_CATALOG, extra)

    assert [entry.name for entry in merged][-1] == "Travel"
    assert len(merged) == len(DEFAULT_CATALOG) + 1
