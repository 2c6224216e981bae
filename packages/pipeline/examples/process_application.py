#!/usr/bin/env python3
"""
Run OCR Extraction and the Available-Income Check for One Application

This script reads an application's extraction structure from the JSON data
directory, sends every uploaded file to the document-value service, writes
the updated structure back and regenerates the automatic review items.

Usage:
    python examples/process_application.py app-42 resident-7
    python examples/process_application.py app-42 resident-7 --data-dir ./data --skip-completed
    python examples/process_application.py app-42 resident-7 --outcomes canned.json

Data directory layout:
    data/
    ├── applications/app-42/extraction_structure.json
    ├── applications/app-42/review_data.json
    ├── residents/resident-7/user_data.json
    └── residents/resident-7/user_financials.json
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from foerder_core import format_currency
from foerder_core.exceptions import FoerderError
from foerder_core.models import LineType
from foerder_pipeline import (
    ExtractionOutcome,
    ExtractionStructureProcessor,
    HttpExtractionClient,
    JsonFileApplicationStore,
    JsonFileProfileSource,
    ReviewWorkflow,
    StaticExtractionClient,
    configure_logging,
    load_config,
)
from foerder_pipeline.config import ProcessingConfig


def load_static_client(path: Path) -> StaticExtractionClient:
    """Build a client answering from a JSON file of outcomes keyed by file path."""
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)
    return StaticExtractionClient({
        file_path: ExtractionOutcome.model_validate(outcome)
        for file_path, outcome in raw.items()
    })


def print_item(item, verbose: bool) -> None:
    """Print the calculation lines of a checklist item."""
    print(f"  {item.title}")
    print(f"  Status: {item.system_status.value}")
    data = item.calculation_data
    if data is not None:
        for line in data.calculations:
            if line.type == LineType.PERSON_HEADER:
                print(f"    {line.label}")
                continue
            if line.type in (LineType.INCOME_ITEM, LineType.EXPENSE_ITEM):
                if not verbose:
                    continue
                source = line.value.source.value if line.value else ""
                print(f"      {line.label:<45} {format_currency(line.amount):>14}  ({source})")
                continue
            print(f"    {line.label:<47} {format_currency(line.amount):>14}")
    for error in item.system_errors:
        print(f"  FEHLER:  {error}")
    for warning in item.system_warnings:
        print(f"  HINWEIS: {warning}")


async def run(args: argparse.Namespace) -> int:
    overrides = {"processing": ProcessingConfig(
        skip_completed_files=args.skip_completed,
        debug_mode=args.verbose,
    )}
    if args.data_dir:
        overrides["data_dir"] = args.data_dir
    config = load_config(**overrides)
    configure_logging(config)

    store = JsonFileApplicationStore(config.data_dir)
    profiles = JsonFileProfileSource(config.data_dir)
    if args.outcomes:
        client = load_static_client(Path(args.outcomes).expanduser().resolve())
    else:
        client = HttpExtractionClient(config.ocr)

    print("=" * 70)
    print("FOERDER - Extraktion und Einkommensprüfung")
    print("=" * 70)
    print(f"Antrag:     {args.application_id}")
    print(f"Bewohner:   {args.resident_id}")
    print(f"Daten:      {Path(config.data_dir).resolve()}")
    print(f"OCR:        {'Statische Antworten' if args.outcomes else config.ocr.base_url}")
    print()

    # Step 1: Extraction
    print("Step 1: Extracting uploaded documents...")
    processor = ExtractionStructureProcessor(args.application_id, store, client, config)
    summary = await processor.process_extraction_structure()
    if not summary.success:
        for error in summary.errors:
            print(f"  Error: {error}")
        return 1

    print(f"  Processed: {summary.processed_files} of {summary.total_files}")
    if summary.skipped_files:
        print(f"  Skipped:   {summary.skipped_files}")
    for error in summary.errors:
        print(f"    - {error}")

    progress = await processor.get_extraction_progress()
    print(f"  Progress:  {progress.progress_percentage}% "
          f"({progress.completed_documents}/{progress.total_documents} document types complete)")
    print()

    # Step 2: Review items
    print("Step 2: Calculating available monthly income...")
    workflow = ReviewWorkflow(args.application_id, args.resident_id, store, profiles)
    items = workflow.generate_automatic_items()
    if not items:
        print("  No extraction structure, nothing to check.")
        return 0
    review_data = workflow.save_automatic_items(items)
    for item in items:
        print_item(item, args.verbose)
    print()
    print(f"Saved review record (version {review_data.version})")
    return 0


def main():
    """Main entry point for application processing."""
    parser = argparse.ArgumentParser(
        description="Extract uploaded documents and check the available monthly income",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("application_id", type=str, help="Application id")
    parser.add_argument("resident_id", type=str, help="Resident id of the main applicant")
    parser.add_argument(
        "--data-dir", "-d",
        type=str,
        default=None,
        help="Data directory (default: FOERDER_DATA_DIR or ./data)",
    )
    parser.add_argument(
        "--outcomes",
        type=str,
        default=None,
        help="JSON file of canned extraction outcomes keyed by file path (no OCR calls)",
    )
    parser.add_argument(
        "--skip-completed",
        action="store_true",
        help="Don't re-send files that were already extracted",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show every income and expense line and debug logs",
    )
    args = parser.parse_args()

    try:
        sys.exit(asyncio.run(run(args)))
    except FoerderError as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
