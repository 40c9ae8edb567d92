#!/usr/bin/env python3
"""
Command-line entry point for documentation extraction.

Every argument this script does not recognise is handed to the frontend:
flags such as ``-isrc`` or ``-XTemplateHaskell`` configure the compiler
session, everything else names an input file or module.

Usage:
    python run_extract.py -isrc src/Main.hs
    python run_extract.py -isrc src/Main.hs --output-file output/docs.jsonl
    python run_extract.py Data.Foo --strict-setup --log-level DEBUG
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from typing import List, Optional, Sequence, TextIO, Tuple

from core.run_artifacts import build_extraction_report, write_run_report
from core.settings import ConfigValidationError, load_settings
from core.structured_logging import configure_structured_logging, set_run_id
from extraction.models import ModuleDoc
from extraction.pipeline import ExtractError, extract

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INTERRUPTED = 130


def parse_args(argv: Optional[Sequence[str]] = None) -> Tuple[argparse.Namespace, List[str]]:
    """Parse command-line arguments.

    Returns:
        Parsed namespace and the remaining frontend arguments.
    """
    parser = argparse.ArgumentParser(
        description="Extract documentation comments from a module and its local imports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
        epilog=(
            "Examples:\n"
            "  python run_extract.py -isrc src/Main.hs\n"
            "  python run_extract.py -isrc src/Main.hs --output-file output/docs.jsonl\n"
        ),
    )
    parser.add_argument(
        "--output-file",
        default=None,
        help="Write one JSON object per module to this file instead of stdout.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a settings YAML file. Default: $DOCTRACT_CONFIG or ./doctract.yml",
    )
    parser.add_argument(
        "--report-dir",
        default=None,
        help="Directory for the JSON run report. Default: from settings.",
    )
    parser.add_argument(
        "--strict-setup",
        action="store_true",
        default=None,
        help="Fail when a module declares its $setup chunk more than once.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (DEBUG, INFO, WARNING, ...). Default: from settings.",
    )
    return parser.parse_known_args(argv)


def write_module_docs(docs: Sequence[ModuleDoc], out: TextIO) -> int:
    """Write ModuleDocs as JSON lines and return the number written."""
    for doc in docs:
        out.write(json.dumps(doc.to_dict(), ensure_ascii=False) + "\n")
    return len(docs)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args, frontend_args = parse_args(argv)
    try:
        settings = load_settings(args.config)
    except ConfigValidationError as exc:
        configure_structured_logging(level=logging.INFO)
        logger.error("Invalid configuration: %s", exc)
        return EXIT_FAILED

    overrides = {}
    if args.strict_setup:
        overrides["strict_setup"] = True
    if args.log_level:
        overrides["log_level"] = args.log_level
    if overrides:
        settings = replace(settings, **overrides)

    configure_structured_logging(level=settings.log_level)
    run_id = set_run_id()
    report_dir = args.report_dir or settings.report_dir
    run_report = {
        "run_id": run_id,
        "pipeline": "extract",
        "arguments": list(frontend_args),
        "status": "failed",
    }

    try:
        docs = extract(frontend_args, settings)
    except ExtractError as exc:
        run_report["error"] = str(exc.cause)
        report_path = write_run_report(run_report, run_id, report_dir)
        logger.info("Run report written: %s", report_path)
        print(str(exc), file=sys.stderr)
        return EXIT_FAILED
    except KeyboardInterrupt:
        logger.warning("Extraction interrupted")
        return EXIT_INTERRUPTED

    if args.output_file:
        with open(args.output_file, "w", encoding="utf-8") as f:
            count = write_module_docs(docs, f)
        logger.info("Wrote %d module(s) to %s", count, args.output_file)
    else:
        write_module_docs(docs, sys.stdout)

    run_report.update(build_extraction_report(docs))
    run_report["status"] = "success"
    report_path = write_run_report(run_report, run_id, report_dir)
    logger.info("Run report written: %s", report_path)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
