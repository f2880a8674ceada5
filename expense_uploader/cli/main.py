#!/usr/bin/env python3
"""
Main CLI entrypoint for the expense uploader.
"""

import argparse
import datetime as dt
import os
import sys
from pathlib import Path

from expense_uploader.core.database import SqliteExpenseSink
from expense_uploader.core.errors import InferenceError, ModelLoadError
from expense_uploader.core.inference import ModelHandle
from expense_uploader.core.models import Expense, ExtractionResult
from expense_uploader.core.ocr import perform_ocr
from expense_uploader.core.processor import STRATEGIES, ReceiptProcessor
from expense_uploader.core.reporting import CsvExpenseSink
from expense_uploader.core.utils import (DEFAULT_MODEL_FILE, ERROR_DESCRIPTION,
                                         discover_files, money_fmt)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Extract description and amount from receipt scans and append them as expense rows",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Extract from a folder of receipt photos with the scoring model
  expense-uploader ./receipts --model ./mobilebert-tflite-default-v1.tflite

  # No model: keyword/regex extraction only, append rows to a CSV file
  expense-uploader scan1.jpg scan2.jpg --strategy heuristic --csv expenses.csv

  # Model with heuristic cross-check, show confidence details
  expense-uploader ./receipts --strategy combined --debug
        """
    )
    parser.add_argument("inputs", nargs="+",
                       help="Receipt images/PDFs or directories containing them")
    parser.add_argument("--model",
                       help=f"Scoring model file (default: EXPENSE_MODEL_PATH env var or ./{DEFAULT_MODEL_FILE})")
    parser.add_argument("--strategy", choices=STRATEGIES,
                       help="Extraction strategy (default: model, or EXPENSE_STRATEGY env var)")
    parser.add_argument("--lang",
                       help="Tesseract language(s), e.g. ita+eng (default: TESSERACT_LANG env var)")
    parser.add_argument("--csv", help="Append expense rows to this CSV file")
    parser.add_argument("--sqlite", help="Append expense rows to this SQLite database")
    parser.add_argument("--date", help="Expense date YYYY-MM-DD (default: today)")
    parser.add_argument("--currency", default="EUR", help="Currency column (default: EUR)")
    parser.add_argument("--category", default="", help="Category column")
    parser.add_argument("--method", default="", help="Payment method column")
    parser.add_argument("--debug", action="store_true",
                       help="Print model confidence details for each receipt")
    parser.add_argument("--verbose", "-v", action="store_true",
                       help="Show detailed extraction information for debugging")
    return parser


def main(argv=None):
    """Main CLI entrypoint."""
    args = build_parser().parse_args(argv)

    # Resolve strategy from CLI arg or environment variable
    strategy = args.strategy or os.getenv("EXPENSE_STRATEGY", "model")
    if strategy not in STRATEGIES:
        print(f"[ERROR] Invalid strategy: {strategy}")
        print(f"[ERROR] Must be one of: {', '.join(STRATEGIES)}")
        return 1

    if args.date:
        try:
            dt.datetime.strptime(args.date, "%Y-%m-%d")
        except ValueError:
            print(f"[ERROR] Invalid date: {args.date}")
            print(f"[ERROR] Expected format: YYYY-MM-DD")
            return 1

    model_path = Path(args.model or os.getenv("EXPENSE_MODEL_PATH", DEFAULT_MODEL_FILE))
    handle = None if strategy == "heuristic" else ModelHandle(model_path)

    sinks = []
    if args.csv:
        sinks.append(CsvExpenseSink(Path(args.csv)))
    if args.sqlite:
        sinks.append(SqliteExpenseSink(Path(args.sqlite)))

    files = discover_files(Path(p) for p in args.inputs)
    if not files:
        print("No receipt files found.")
        return 0
    print(f"[INFO] Found {len(files)} receipt file(s)")

    try:
        if handle is not None:
            model = handle.acquire()
            print(f"[INFO] Model: {model_path.name} (sequence length {model.max_sequence_length})")
            if args.verbose:
                for line in model.describe():
                    print(f"  [DEBUG] {line}")

        transcripts = {}

        def ocr(path):
            text = perform_ocr(path, lang=args.lang)
            transcripts[path] = text
            return text

        processor = ReceiptProcessor(handle, strategy=strategy, ocr=ocr,
                                     verbose=args.verbose)

        def progress(done, total):
            print(f"[INFO] Processed {done}/{total}")

        items = processor.process_batch(files, progress_callback=progress)

        failed = 0
        for item in items:
            if item.error is not None:
                failed += 1
                continue
            print(f"[OK] {Path(item.image).name}: {item.description} | "
                  f"{money_fmt(item.amount, args.currency)}")
            if args.debug and handle is not None:
                _print_debug(processor, transcripts.get(item.image, ""))
            if sinks and item.amount:
                expense = Expense.from_result(ExtractionResult(item.description, item.amount),
                                              date=args.date, currency=args.currency,
                                              category=args.category, method=args.method)
                for sink in sinks:
                    sink.append(expense.to_row())
            elif sinks:
                print(f"  [WARN] Skipping {Path(item.image).name}: no amount to save")
    except ModelLoadError as e:
        print(f"[ERROR] {e}")
        return 1
    finally:
        if handle is not None:
            handle.release()

    if failed:
        print(f"[WARN] {failed} of {len(items)} file(s) marked '{ERROR_DESCRIPTION}'")
    print(f"[OK] Processing complete")
    return 0


def _print_debug(processor: ReceiptProcessor, ocr_text: str):
    if not ocr_text.strip():
        return
    try:
        info = processor.debug_info(ocr_text)
    except InferenceError as e:
        print(f"  [WARN] No debug info: {e}")
        return
    print(f"  [DEBUG] Tokenized length: {info.tokenized_length}")
    print(f"  [DEBUG] Description confidence: avg {info.description_confidence_avg:.3f}, "
          f"max {info.max_description_confidence:.3f}")
    print(f"  [DEBUG] Amount confidence: avg {info.amount_confidence_avg:.3f}, "
          f"max {info.max_amount_confidence:.3f}")
    print(f"  [DEBUG] Raw extraction: '{info.extracted_description}' | "
          f"{info.extracted_amount or '(none)'}")
    print(f"  [DEBUG] Reliable: {'yes' if info.reliable else 'no'}")
    if not processor.is_receipt(ocr_text):
        print(f"  [WARN] Text does not look like a receipt")


if __name__ == "__main__":
    sys.exit(main())
