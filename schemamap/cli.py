"""
Command line entry point.

Usage:
  python -m schemamap map path/to/sheet.csv --schema-hint test_case
  python -m schemamap submit-feedback --request-hash <hash> --rating 1 \
    --fix "TC Name:notes:title"
  python -m schemamap feedback-stats
  python -m schemamap learn --days 30
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from schemamap.agents.column_mapping.agent import ColumnMapper
from schemamap.agents.column_mapping.example_pool import ExamplePool, default_example_pool
from schemamap.config import AppConfig, get_config
from schemamap.exceptions import SchemaMappingError
from schemamap.feedback.analyzer import PatternAnalyzer
from schemamap.feedback.learner import FeedbackLearner
from schemamap.feedback.model import ColumnCorrection, Feedback
from schemamap.feedback.store import FeedbackStore
from schemamap.pipeline import SchemaMappingPipeline

logger = logging.getLogger(__name__)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _load_example_pool(config: AppConfig) -> ExamplePool:
    pool = default_example_pool()
    if config.examples_path and Path(config.examples_path).exists():
        pool.load_yaml(config.examples_path)
    return pool


def parse_fix(value: str) -> ColumnCorrection:
    """Parse a "header:wrong:correct" correction argument."""
    parts = value.rsplit(":", 2)
    if len(parts) != 3 or not all(p.strip() for p in parts):
        raise argparse.ArgumentTypeError(
            f"Invalid fix '{value}', expected HEADER:WRONG_MAPPING:CORRECT_MAPPING"
        )
    header, wrong, correct = (p.strip() for p in parts)
    return ColumnCorrection(source_header=header, wrong_mapping=wrong, correct_mapping=correct)


def cmd_map(args, config: AppConfig) -> int:
    input_path = Path(args.file)
    if not input_path.exists():
        raise FileNotFoundError(f"Input file not found: {input_path}")

    mapper = ColumnMapper.from_config(config, example_pool=_load_example_pool(config))
    pipeline = SchemaMappingPipeline(mapper=mapper)
    outcome = pipeline.process_text(
        input_path.read_text(encoding="utf-8"),
        format=args.format,
        file_type=args.file_type or input_path.suffix.lstrip("."),
        source_lang=args.source_lang,
        schema_hint=args.schema_hint,
    )
    _print_json(outcome.to_dict())
    return 0


def cmd_submit_feedback(args, config: AppConfig) -> int:
    store = FeedbackStore(config.feedback_database_path)
    stored = store.submit(
        Feedback(
            request_hash=args.request_hash,
            rating=args.rating,
            corrections=args.corrections,
            column_fixes=args.fix or [],
            session_id=args.session_id,
        )
    )
    _print_json(stored.to_dict())
    return 0


def cmd_feedback_stats(args, config: AppConfig) -> int:
    store = FeedbackStore(config.feedback_database_path)
    _print_json(store.get_stats().to_dict())
    return 0


def cmd_learn(args, config: AppConfig) -> int:
    store = FeedbackStore(config.feedback_database_path)
    pool = _load_example_pool(config)
    learner = FeedbackLearner(PatternAnalyzer(store), pool)
    report = learner.learn_from_feedback(days=args.days)
    if config.examples_path and report.examples_generated:
        pool.export_yaml(config.examples_path)
    _print_json(report.to_dict())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schemamap",
        description="Map spreadsheet columns onto canonical specification fields.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    map_parser = subparsers.add_parser("map", help="Map the columns of a CSV/TSV/Markdown file")
    map_parser.add_argument("file", help="Path to the input file")
    map_parser.add_argument("--format", default="spec", choices=["spec", "table"], help="Output format")
    map_parser.add_argument("--schema-hint", default="", help="Document type (test_case, api_spec, ...)")
    map_parser.add_argument("--source-lang", default="", help="Declared header language (e.g. en, ja)")
    map_parser.add_argument("--file-type", default="", help="File type label (defaults to the extension)")
    map_parser.set_defaults(func=cmd_map)

    submit_parser = subparsers.add_parser("submit-feedback", help="Record a rating for a mapping")
    submit_parser.add_argument("--request-hash", required=True, help="request_hash from the map output")
    submit_parser.add_argument("--rating", type=int, required=True, help="1 (thumbs down) or 5 (thumbs up)")
    submit_parser.add_argument("--corrections", default="", help="Free-text notes")
    submit_parser.add_argument(
        "--fix",
        type=parse_fix,
        action="append",
        help="Column fix as HEADER:WRONG_MAPPING:CORRECT_MAPPING (repeatable)",
    )
    submit_parser.add_argument("--session-id", default="", help="Session identifier")
    submit_parser.set_defaults(func=cmd_submit_feedback)

    stats_parser = subparsers.add_parser("feedback-stats", help="Show feedback statistics")
    stats_parser.set_defaults(func=cmd_feedback_stats)

    learn_parser = subparsers.add_parser("learn", help="Learn examples from recent feedback")
    learn_parser.add_argument("--days", type=int, default=30, help="Trailing window in days")
    learn_parser.set_defaults(func=cmd_learn)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    config = get_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    args = build_parser().parse_args(argv)
    try:
        return args.func(args, config)
    except (SchemaMappingError, FileNotFoundError) as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
