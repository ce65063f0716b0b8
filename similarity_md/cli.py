"""Command-line entry point: similarity-md PATH..."""

import argparse
import logging
import sys
from typing import List, Optional

from similarity_md.markdown.discovery import discover_files
from similarity_md.markdown.parser import DEFAULT_HEADING_LEVEL, MarkdownExtractor
from similarity_md.orchestrator.pipeline import DuplicateDetector
from similarity_md.report.reporter import render_json, render_text
from similarity_md.utils.config import get_config, load_config_from_env, reset_config, update_config
from similarity_md.utils.errors import FatalStartupError, PipelineError
from similarity_md.utils.logger import setup_logger

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_DUPLICATES = 1
EXIT_FATAL = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="similarity-md",
        description="Find near-duplicate sections across Markdown documents",
    )
    parser.add_argument("paths", nargs="+", help="Markdown files or directories")

    detection = parser.add_argument_group("detection")
    detection.add_argument("--threshold", type=float, help="Minimum similarity (0-1) for a duplicate pair")
    detection.add_argument("--min-tokens", type=int, dest="min_chunk_tokens", help="Ignore sections with fewer tokens")
    detection.add_argument("--max-tokens", type=int, dest="max_chunk_tokens", help="Truncate sections to this many tokens")
    detection.add_argument("--bucket-tolerance", type=float, help="Length bucket width for pruning (0.3 = 30%%)")
    detection.add_argument("--cross-document-only", action="store_true", default=None,
                           help="Only report clusters spanning more than one document")
    detection.add_argument("--exhaustive", action="store_true", default=None,
                           help="Compare every pair of sections (slow; for auditing)")
    detection.add_argument("--locale", choices=["auto", "ja", "zh", "en"], help="Declared document locale")

    segmentation = parser.add_argument_group("segmentation")
    segmentation.add_argument("--no-morphological", action="store_true",
                              help="Use character tokens instead of Sudachi for Japanese/Chinese")
    segmentation.add_argument("--dictionary", choices=["small", "core", "full"], help="Sudachi dictionary")
    segmentation.add_argument("--split-mode", choices=["A", "B", "C"], help="Sudachi split mode")

    inputs = parser.add_argument_group("input")
    inputs.add_argument("--heading-level", type=int, default=DEFAULT_HEADING_LEVEL,
                        help="Deepest heading level that starts a new section")
    inputs.add_argument("--exclude", action="append", default=[], metavar="GLOB",
                        help="Exclude paths matching this glob (repeatable)")
    inputs.add_argument("--cache", metavar="PATH", help="Token cache file (enables caching)")

    output = parser.add_argument_group("output")
    output.add_argument("--json", action="store_true", help="Print the report as JSON")
    output.add_argument("--fail-on-duplicates", action="store_true",
                        help="Exit with status 1 when duplicates are found")
    output.add_argument("--workers", type=int, dest="MAX_WORKERS", help="Worker threads")
    output.add_argument("--no-progress", action="store_true", help="Hide progress bars")
    output.add_argument("--log-level", dest="LOG_LEVEL", help="DEBUG, INFO, WARNING, ERROR")
    output.add_argument("--json-logs", action="store_true", help="Log as JSON lines")
    return parser


def _apply_arguments(args: argparse.Namespace) -> None:
    updates = {
        key: getattr(args, key)
        for key in (
            "threshold", "min_chunk_tokens", "max_chunk_tokens", "bucket_tolerance",
            "cross_document_only", "exhaustive", "locale", "MAX_WORKERS", "LOG_LEVEL",
        )
        if getattr(args, key) is not None
    }
    if args.no_morphological:
        updates["ENABLED"] = False
    if args.dictionary:
        updates["DICTIONARY"] = args.dictionary
    if args.split_mode:
        updates["SPLIT_MODE"] = args.split_mode
    if args.no_progress:
        updates["SHOW_PROGRESS"] = False
    if args.json_logs:
        updates["JSON_LOGGING"] = True
    if updates:
        update_config(**updates)

    if args.cache:
        cfg = get_config()
        cfg.cache.PATH = args.cache
        cfg.cache.ENABLED = True


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        reset_config()
        load_config_from_env()
        _apply_arguments(args)
        cfg = get_config()
        setup_logger(level=cfg.processing.LOG_LEVEL, json_format=cfg.processing.JSON_LOGGING)
        detector = DuplicateDetector.from_config(cfg)
    except (FatalStartupError, ValueError) as e:
        field = getattr(e, "field", None)
        print(f"error: {e}" + (f" (field: {field})" if field else ""), file=sys.stderr)
        return EXIT_FATAL

    files = discover_files(args.paths, exclude=args.exclude)
    if not files:
        logger.warning("No Markdown files found")

    try:
        report = detector.run(files, MarkdownExtractor(max_heading_level=args.heading_level))
    except PipelineError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_FATAL

    if args.json:
        print(render_json(report))
    else:
        render_text(report, color=sys.stdout.isatty())

    if args.fail_on_duplicates and report.clusters:
        return EXIT_DUPLICATES
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
