"""
Command-line interface for the content conversion app.

Usage:
    python -m app classify PATH [--json]
    python -m app batch-process [OPTIONS]
    python -m app watch --teacher-id ID
"""

import argparse
import asyncio
import json
import os
import sys
import threading

from pydantic import ValidationError

from app.config import get_settings
from app.db.contents import subscribe_contents, to_json_safe
from app.db.firestore_client import get_firestore_client
from app.models.content import ContentChange, ContentFilters
from app.services.batch_processor import load_document, process_directory
from app.services.content_pipeline import analyze_document
from app.services.text_extractor import DocumentExtractionError, UnsupportedDocumentError
from app.utils.normalizers import DEFAULT_CATEGORY, normalize_category


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="content-converter",
        description="Content Conversion CLI - classify and convert teaching documents locally"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    classify_parser = subparsers.add_parser(
        "classify",
        help="Classify a single document"
    )
    classify_parser.add_argument("path", type=str, help="PDF, DOCX or TXT file")
    classify_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full classification as JSON"
    )

    batch_parser = subparsers.add_parser(
        "batch-process",
        help="Convert every document in a directory into draft content records"
    )
    batch_parser.add_argument(
        "--directory",
        "-d",
        type=str,
        required=True,
        help="Directory containing documents"
    )
    batch_parser.add_argument(
        "--pattern",
        "-p",
        type=str,
        default="*.pdf",
        help="Glob pattern for input files (default: *.pdf)"
    )
    batch_parser.add_argument(
        "--workers",
        "-w",
        type=int,
        default=None,
        help="Number of documents to process in parallel (default: from env or 2)"
    )
    batch_parser.add_argument(
        "--category",
        "-c",
        type=str,
        default=DEFAULT_CATEGORY,
        help=f"Learning category for the drafts (default: {DEFAULT_CATEGORY})"
    )

    watch_parser = subparsers.add_parser(
        "watch",
        help="Print a JSON line for every change to a teacher's contents"
    )
    watch_parser.add_argument(
        "--teacher-id",
        "-t",
        type=str,
        required=True,
        help="Teacher uid to watch"
    )

    return parser


def classify_command(args: argparse.Namespace) -> int:
    """Extract and classify one local file and print the result."""
    if not os.path.isfile(args.path):
        print(f"Error: File not found: {args.path}")
        return 1

    try:
        document = load_document(args.path)
        extracted, classified = analyze_document(document)
    except UnsupportedDocumentError as e:
        print(f"Error: {e}")
        return 1
    except DocumentExtractionError as e:
        print(f"Error: could not read {e.file_name}: {e.reason}")
        return 1

    if args.json:
        print(json.dumps(classified.model_dump(by_alias=True), indent=2, ensure_ascii=False))
        return 0

    print(f"{document.file_name}: {classified.content_type}")
    print(f"  pages: {extracted.page_count}, characters: {len(extracted.full_text)}")
    if classified.headings:
        print("  headings:")
        for heading in classified.headings:
            print(f"    - {heading}")
    print(f"  questions: {len(classified.questions)}")
    for question in classified.questions:
        print(f"    - {question.question_text}")
    return 0


async def batch_process_command(args: argparse.Namespace) -> int:
    """
    Execute batch processing command.

    Args:
        args: Parsed command-line arguments

    Returns:
        int: Exit code (0 if at least one file succeeded, 1 otherwise)
    """
    directory = args.directory
    if not os.path.exists(directory):
        print(f"Error: Directory not found: {directory}")
        return 1

    if not os.path.isdir(directory):
        print(f"Error: Not a directory: {directory}")
        return 1

    if args.workers is not None:
        workers = args.workers
    else:
        try:
            workers = get_settings().batch_workers
        except ValidationError:
            # The store is not needed for local drafts
            workers = 2

    if workers < 1 or workers > 50:
        print("Error: --workers must be between 1 and 50")
        return 1

    try:
        results = await process_directory(
            directory=directory,
            workers=workers,
            pattern=args.pattern,
            category=normalize_category(args.category),
        )
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        return 1

    succeeded = sum(1 for r in results if r["status"] == "ok")
    return 0 if succeeded > 0 else 1


def watch_command(args: argparse.Namespace) -> int:
    """Subscribe to a teacher's contents and print changes until interrupted."""
    try:
        get_settings()
    except ValidationError as e:
        print(f"Configuration error: {e}")
        print("\nMake sure you have a .env file with:")
        print("  FIREBASE_PROJECT_ID=your-project-id")
        print("  FIREBASE_SERVICE_ACCOUNT_JSON=/path/to/service-account.json")
        return 1

    def on_change(change: ContentChange) -> None:
        print(json.dumps(to_json_safe(change.model_dump())), flush=True)

    watch = subscribe_contents(
        get_firestore_client(),
        ContentFilters(created_by=args.teacher_id),
        on_change,
    )
    stop = threading.Event()
    try:
        stop.wait()
    except KeyboardInterrupt:
        print("\nStopped watching", file=sys.stderr)
    finally:
        watch.unsubscribe()
    return 0


def main() -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    if args.command == "classify":
        return classify_command(args)
    if args.command == "batch-process":
        return asyncio.run(batch_process_command(args))
    if args.command == "watch":
        return watch_command(args)

    print(f"Unknown command: {args.command}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
