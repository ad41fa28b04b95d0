"""CLI for mapping the themes of a JSON document payload."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path

from topicmap.catalog import CatalogLoadError, load_theme_catalog
from topicmap.config import Settings
from topicmap.documents import EmptyInputError, parse_document
from topicmap.mapping import AnalysisError, run_mapping
from topicmap.observability import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Map the main themes of a document")
    parser.add_argument(
        "path",
        help="JSON file holding content/text/description and/or rows ('-' reads stdin)",
    )
    parser.add_argument(
        "--strategy",
        choices=("random", "hash"),
        help="Relationship labelling strategy (default: TOPICMAP_RELATIONSHIP_STRATEGY)",
    )
    parser.add_argument("--seed", type=int, help="Seed for the random relationship labeler")
    parser.add_argument("--catalog", help="YAML file with extra theme catalog entries")
    parser.add_argument("--indent", type=int, default=2, help="JSON indent for the output")
    return parser


def _read_payload(path: str) -> object:
    if path == "-":
        return json.load(sys.stdin)
    return json.loads(Path(path).read_text(encoding="utf-8"))


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
    except ValueError as exc:
        parser.error(str(exc))
        return 2
    overrides: dict[str, object] = {}
    if args.strategy:
        overrides["relationship_strategy"] = args.strategy
    if args.seed is not None:
        overrides["relationship_seed"] = args.seed
    if args.catalog:
        overrides["theme_catalog_path"] = args.catalog
    settings = replace(settings, **overrides)
    configure_logging(settings.log_level)

    try:
        payload = _read_payload(args.path)
    except (OSError, ValueError) as exc:
        parser.error(f"Could not read document: {exc}")
        return 2
    if not isinstance(payload, dict):
        parser.error("Document JSON must be an object")
        return 2

    try:
        catalog = load_theme_catalog(settings.theme_catalog_path)
    except CatalogLoadError as exc:
        parser.error(str(exc))
        return 2

    try:
        result = run_mapping(parse_document(payload), settings=settings, catalog=catalog)
    except EmptyInputError:
        print("No document to analyze", file=sys.stderr)
        return 1
    except AnalysisError as exc:
        print(f"Failed to analyze document topics ({exc})", file=sys.stderr)
        return 1

    print(json.dumps(result.to_payload(), indent=args.indent, ensure_ascii=False))
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry
    sys.exit(main())
