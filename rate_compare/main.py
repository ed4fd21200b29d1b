"""CLI entry point for the section-by-section PDF comparison."""

import argparse
import asyncio
import json
import logging
import os
import sys
import time
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

from rate_compare.errors import RateCompareError
from rate_compare.pipeline.exporter import DEFAULT_REPORT_NAME
from rate_compare.session import NEW, OLD, ComparisonSession

logger = logging.getLogger(__name__)


def _log_failure(exc: RateCompareError) -> None:
    logger.error("%s", json.dumps(exc.to_dict(), ensure_ascii=False, default=str))


def run_pipeline(
    old_path: str,
    new_path: str,
    only_numeric: bool = False,
    deselect: list[str] | None = None,
) -> ComparisonSession:
    """Load both PDFs, apply the selection, compare. Returns the session."""
    session = ComparisonSession(only_numeric=only_numeric)
    session.select_file(OLD, old_path)
    session.select_file(NEW, new_path)

    asyncio.run(session.load())

    for title in deselect or []:
        if title in session.selection:
            session.set_selected(title, False)
        else:
            logger.warning("Unknown section %r, nothing to deselect", title)

    session.compare()
    return session


def main() -> int:
    parser = argparse.ArgumentParser(description="Compare two versions of a PDF section by section.")
    parser.add_argument("old_pdf", help="Path to the old PDF")
    parser.add_argument("new_pdf", help="Path to the new PDF")
    parser.add_argument("--numeric", action="store_true",
                        help="Compare only `key = value` numbers")
    parser.add_argument("--output", "-o",
                        default=os.environ.get("RATE_COMPARE_OUTPUT", f"output/{DEFAULT_REPORT_NAME}"))
    parser.add_argument("--results-json", help="Also dump the comparison results as JSON")
    parser.add_argument("--deselect", action="append", default=[], metavar="TITLE",
                        help="Leave a section out of the comparison (repeatable)")
    parser.add_argument("--list-sections", action="store_true",
                        help="Print the aligned section titles and exit")
    parser.add_argument("--log-level", default=os.environ.get("RATE_COMPARE_LOG_LEVEL", "INFO"),
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    start = time.time()
    logger.info("Comparing %s -> %s", args.old_pdf, args.new_pdf)

    try:
        session = run_pipeline(args.old_pdf, args.new_pdf, args.numeric, args.deselect)
    except RateCompareError as exc:
        _log_failure(exc)
        return 1

    if session.fallback_notice:
        print(session.fallback_notice)

    if args.list_sections:
        for title in session.titles:
            print(title)
        return 0

    if args.results_json:
        results_path = Path(args.results_json)
        results_path.parent.mkdir(parents=True, exist_ok=True)
        with open(results_path, "w", encoding="utf-8") as fh:
            json.dump(session.results, fh, indent=2, ensure_ascii=False)

    try:
        written = session.export(args.output)
    except RateCompareError as exc:
        _log_failure(exc)
        return 1

    if written is None:
        print(session.notice)
    else:
        logger.info("Done: %d sections with differences -> %s (%.1fs)",
                    len(session.results), written, time.time() - start)
    return 0


if __name__ == "__main__":
    sys.exit(main())
