"""Extract every receipt in a directory and print one JSON line per file.

Usage:
  receiptscan <DIR> [--provider gemini|gemini-text] [--max-attempts N]

Requires API_KEY (or GEMINI_API_KEY). Files that fail print ``null`` and the
error goes to stderr; the remaining files are still processed. Ctrl-C stops
before the next file.
"""
import argparse
import dataclasses
import logging
import mimetypes
import os
import signal
import sys
import threading
from typing import TextIO

from dotenv import load_dotenv

from receiptscan.config import get_settings
from receiptscan.logging_config import setup_logging
from receiptscan.receipt import ExtractionError, ReceiptExtractor, get_receipt_extractor
from receiptscan.receipt.factory import PROVIDERS
from receiptscan.receipt.extractor import DEFAULT_MEDIA_TYPE

logger = logging.getLogger("receiptscan")


def _media_type(path: str) -> str:
    guessed, _ = mimetypes.guess_type(path)
    if guessed and guessed.startswith("image/"):
        return guessed
    return DEFAULT_MEDIA_TYPE


def process_directory(
    directory: str,
    extractor: ReceiptExtractor,
    cancel: threading.Event | None = None,
    out: TextIO | None = None,
) -> int:
    """Run *extractor* over the regular files of *directory* in name order.

    Returns the number of files that were extracted successfully. Raises
    ``OSError`` when the directory itself can't be listed.
    """
    out = out or sys.stdout
    cancel = cancel or threading.Event()
    with os.scandir(directory) as it:
        entries = sorted(it, key=lambda e: e.name)

    ok = 0
    for entry in entries:
        if cancel.is_set():
            logger.warning("Interrupted, skipping remaining files")
            break
        if entry.is_dir():
            continue

        line = "null"
        try:
            with open(entry.path, "rb") as f:
                image_bytes = f.read()
            expense = extractor.extract(image_bytes, _media_type(entry.path), filename=entry.name)
            line = expense.model_dump_json()
            ok += 1
        except (OSError, ExtractionError) as e:
            logger.error(f"{entry.name}: {e}", extra={"extra_data": {"filename": entry.name}})
        print(line, file=out, flush=True)
    return ok


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(prog="receiptscan", description="Extract expenses from receipt images")
    parser.add_argument("directory", help="Directory containing receipt images")
    parser.add_argument("--provider", choices=PROVIDERS, help="Extraction provider (default: RECEIPT_PROVIDER or gemini)")
    parser.add_argument("--max-attempts", type=int, help="Model call attempts per receipt (default: 5)")
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
    except ValueError as e:
        print(f"receiptscan: {e}", file=sys.stderr)
        return 2
    overrides = {}
    if args.provider:
        overrides["receipt_provider"] = args.provider
    if args.max_attempts is not None:
        overrides["max_attempts"] = args.max_attempts
    settings = dataclasses.replace(settings, **overrides)
    setup_logging(settings.log_level)

    try:
        extractor = get_receipt_extractor(settings)
    except ValueError as e:
        logger.error(f"Receipt extraction config error: {e}")
        return 2

    cancel = threading.Event()
    previous = signal.signal(signal.SIGINT, lambda signum, frame: cancel.set())
    try:
        process_directory(args.directory, extractor, cancel)
    except OSError as e:
        logger.error(f"readdir: {e}")
        return 2
    finally:
        signal.signal(signal.SIGINT, previous)

    return 130 if cancel.is_set() else 0


if __name__ == "__main__":
    sys.exit(main())
