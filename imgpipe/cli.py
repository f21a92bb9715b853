from __future__ import annotations

import argparse
import os
from pathlib import Path

from loguru import logger

from .batch import process_images
from .errors import FatalError
from .logs import setup_logging
from .settings import PipelineSettings


API_KEY_ENV = "IMGPIPE_API_KEY"

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL", "OFF"]


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="imgpipe",
        description="Optimize images into WebP variants and upload them to the media host",
    )

    p.add_argument("--api-key", default=None, help=f"Upload API key (default: ${API_KEY_ENV})")
    p.add_argument("--root", default=".", help="Directory to scan for images (default: .)")

    # State / reports
    p.add_argument("--mappings", default="image-mappings.json", help="Mapping store file, relative to --root")
    p.add_argument("--endpoint", default=None, help="Override the upload endpoint")

    # Retry
    p.add_argument("--max-attempts", type=int, default=None, help="Attempts per step (default 3)")
    p.add_argument("--base-delay-ms", type=int, default=None, help="First retry delay in ms (default 5000)")

    # Logging
    p.add_argument("--log-dir", default="logs", help="Folder for combined.log / errors.log")
    p.add_argument("--log-level", choices=LOG_LEVELS, default="INFO", help="Console log level")
    p.add_argument("--file-log-level", choices=LOG_LEVELS, default="DEBUG", help="File log level")

    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    api_key = args.api_key or os.getenv(API_KEY_ENV)
    if not api_key:
        parser.print_usage()
        print(f"imgpipe: error: an API key is required (--api-key or ${API_KEY_ENV})")
        return 2

    setup_logging(
        console_log_level=args.log_level,
        file_log_level=args.file_log_level,
        log_folder=Path(args.log_dir),
    )

    overrides: dict = {}
    if args.endpoint:
        overrides["upload_endpoint"] = args.endpoint
    if args.max_attempts is not None:
        overrides["max_attempts"] = args.max_attempts
    if args.base_delay_ms is not None:
        overrides["base_delay_ms"] = args.base_delay_ms

    settings = PipelineSettings(
        root_dir=Path(args.root),
        mapping_file=Path(args.mappings),
        **overrides,
    )

    try:
        stats = process_images(api_key, settings)
    except FatalError as exc:
        logger.exception("fatal_error", error=str(exc))
        return 1

    # Print summary
    print("\n=== Batch Summary ===")
    print("Processed  :", stats.processed)
    print("Skipped    :", stats.skipped)
    print("Failed     :", stats.failed)
    print(f"Saved      : {stats.saved_bytes} bytes")
    print("\nReport written:", settings.processing_report_path)
    return 0
