"""Command-line interface for the extraction pipeline."""

import argparse
import logging
import sys
from dataclasses import replace
from typing import List, Optional

__all__ = ["main", "parse_args", "build_settings", "collect_urls"]

from pagesift.config import CLASSIFIER_MODES, CONTENT_MODES, EXAMPLE_URLS, Settings
from pagesift.csv_utils import load_urls, write_records_to_csv
from pagesift.logging_config import get_logger, setup_logging
from pagesift.pipeline import ExtractionPipeline, summarize_records

logger = get_logger("cli")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pagesift",
        description="Classify e-commerce pages and extract product data to CSV",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Extract a single page
  python -m pagesift.cli https://example.com/product/42

  # Extract every URL in a file, 4 at a time, to a custom CSV
  python -m pagesift.cli --url-file urls.txt --workers 4 --output data/products.csv

  # Run the bundled sample pages without the classification step
  python -m pagesift.cli --examples --classifier-mode passthrough
        """,
    )

    # Input
    parser.add_argument("urls", nargs="*", metavar="URL", help="Page URLs to process")
    parser.add_argument(
        "--url-file",
        metavar="PATH",
        help="File with one URL per line ('#' comments and blank lines ignored)",
    )
    parser.add_argument(
        "--examples",
        action="store_true",
        help="Process the bundled sample URLs",
    )

    # Output
    parser.add_argument(
        "--output",
        metavar="PATH",
        help="Output CSV path (default: PAGESIFT_OUTPUT_PATH or products.csv)",
    )

    # Pipeline options
    parser.add_argument(
        "--workers",
        type=int,
        help="URLs processed concurrently (default: 1, sequential)",
    )
    parser.add_argument(
        "--classifier-mode",
        choices=list(CLASSIFIER_MODES),
        help="llm: ask the model; passthrough: treat every page as a product page",
    )
    parser.add_argument(
        "--min-confidence",
        type=float,
        help="Minimum classifier confidence for a product page (0-1)",
    )
    parser.add_argument(
        "--content-mode",
        choices=list(CONTENT_MODES),
        help="html: send raw HTML; condensed: strip scripts/styles first",
    )

    # Browser options
    parser.add_argument(
        "--timeout-ms",
        type=int,
        help="Page load timeout in milliseconds (default: 60000)",
    )
    parser.add_argument(
        "--retries",
        type=int,
        help="Extra render attempts per URL on failure (default: 0)",
    )
    parser.add_argument(
        "--headful",
        action="store_true",
        help="Show the browser window",
    )
    parser.add_argument(
        "--user-agent",
        metavar="UA",
        help="Browser user agent override (default: Chromium's own)",
    )

    # Logging
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Console log level (default: INFO)",
    )
    parser.add_argument(
        "--no-log-file",
        action="store_true",
        help="Don't write the JSONL log file",
    )

    args = parser.parse_args(argv)

    if not (args.urls or args.url_file or args.examples):
        parser.error("no URLs given (pass URLs, --url-file or --examples)")
    if args.workers is not None and args.workers < 1:
        parser.error("--workers must be at least 1")
    if args.retries is not None and args.retries < 0:
        parser.error("--retries cannot be negative")

    return args


def build_settings(args: argparse.Namespace, base: Optional[Settings] = None) -> Settings:
    """Apply command-line overrides on top of environment settings."""
    settings = base or Settings.from_env()

    overrides = {
        "output_path": args.output,
        "workers": args.workers,
        "classifier_mode": args.classifier_mode,
        "classifier_min_confidence": args.min_confidence,
        "content_mode": args.content_mode,
        "render_timeout_ms": args.timeout_ms,
        "render_retries": args.retries,
        "user_agent": args.user_agent,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}
    if args.headful:
        overrides["headless"] = False

    return replace(settings, **overrides)


def collect_urls(args: argparse.Namespace) -> List[str]:
    """Gather input URLs in order: positional, then --url-file, then --examples."""
    urls: List[str] = list(args.urls)
    if args.url_file:
        urls.extend(load_urls(args.url_file))
    if args.examples:
        urls.extend(EXAMPLE_URLS)
    return urls


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI.

    Returns:
        Process exit code (0 on success, 1 on an unexpected failure)
    """
    args = parse_args(argv)
    setup_logging(
        level=getattr(logging, args.log_level),
        log_to_file=not args.no_log_file,
    )

    try:
        settings = build_settings(args)
        urls = collect_urls(args)
        pipeline = ExtractionPipeline.from_settings(settings)

        records = pipeline.run(urls, workers=settings.workers)
        write_records_to_csv(records, settings.output_path)
    except Exception:
        logger.exception("Extraction run failed")
        return 1

    counts = summarize_records(records)
    print(f"\n{'='*50}")
    print(f"Processed {len(records)} URL(s)")
    print(f"  Product pages:     {counts['products']}")
    print(f"  Non-product pages: {counts['not_product']}")
    print(f"  Failures:          {counts['failed']}")
    print(f"Results written to {settings.output_path}")
    print(f"{'='*50}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
