"""
Local batch document processing service.

Converts every document in a directory into a draft content record with
configurable parallel processing. Separate from the upload endpoint, which
handles one document per request and stores the result.
"""

import asyncio
import glob
import hashlib
import json
import os
import time
import traceback
from typing import Any, Dict, List

from app.db.contents import to_json_safe
from app.models.extraction import RawDocument
from app.services.content_pipeline import convert_document
from app.services.file_validator import resolve_mime_type
from app.services.text_extractor import mime_type_for
from app.utils.normalizers import DEFAULT_CATEGORY

LOCAL_TEACHER_ID = "local"
OUTPUT_SUFFIX = ".content.json"


def load_document(file_path: str) -> RawDocument:
    """Read a local file into a RawDocument.

    The MIME type comes from the extension when it is known, otherwise it is
    sniffed from the content.
    """
    with open(file_path, "rb") as fh:
        content = fh.read()
    file_name = os.path.basename(file_path)
    mime_type = mime_type_for(file_name) or resolve_mime_type(content, file_name)
    return RawDocument(
        file_name=file_name,
        mime_type=mime_type,
        content=content,
        file_hash=hashlib.sha256(content).hexdigest(),
    )


def output_path_for(file_path: str) -> str:
    """Path of the draft written beside a processed document."""
    stem, _ = os.path.splitext(file_path)
    return f"{stem}{OUTPUT_SUFFIX}"


async def process_single_document(
    file_path: str,
    idx: int,
    total: int,
    semaphore: asyncio.Semaphore,
    category: str = DEFAULT_CATEGORY,
    teacher_id: str = LOCAL_TEACHER_ID,
) -> Dict[str, Any]:
    """
    Process a single document through extract -> classify -> convert -> save.

    Args:
        file_path: Path to the document
        idx: Current file index (for progress display)
        total: Total number of files to process
        semaphore: Bounds how many documents are converted at once
        category: Learning category for the drafts
        teacher_id: Value stored as createdBy

    Returns:
        dict: Processing result with status, content_type, output path, timing
    """
    basename = os.path.basename(file_path)
    t0 = time.time()
    info: Dict[str, Any] = {"file": basename, "status": "ok"}

    try:
        async with semaphore:
            document = await asyncio.to_thread(load_document, file_path)
            classified, record = await asyncio.to_thread(
                convert_document, document, category, teacher_id
            )

        info["content_type"] = classified.content_type
        info["questions"] = len(classified.questions)

        json_path = output_path_for(file_path)
        json_str = json.dumps(to_json_safe(record), indent=2, ensure_ascii=False)
        with open(json_path, "w", encoding="utf-8") as f:
            f.write(json_str)
        info["json"] = os.path.basename(json_path)

    except Exception as e:
        info["status"] = "FAILED"
        info["error"] = str(e)
        traceback.print_exc()

    info["elapsed_s"] = round(time.time() - t0, 1)

    tag = "OK" if info["status"] == "ok" else "FAILED"
    print(
        f"[{idx+1}/{total}] {tag} {basename} -> "
        f"type={info.get('content_type', '?')} "
        f"questions={info.get('questions', '?')} "
        f"({info['elapsed_s']}s)"
    )
    if info["status"] == "ok":
        print(f"         -> {info['json']}")

    return info


async def process_directory(
    directory: str,
    workers: int,
    pattern: str = "*.pdf",
    category: str = DEFAULT_CATEGORY,
    teacher_id: str = LOCAL_TEACHER_ID,
) -> List[Dict[str, Any]]:
    """
    Process all documents in a directory matching the given pattern.

    Previously written drafts (``*.content.json``) are never picked up as
    input.

    Args:
        directory: Directory containing documents
        workers: Number of documents to process concurrently (1=sequential)
        pattern: Glob pattern for input files
        category: Learning category for the drafts
        teacher_id: Value stored as createdBy

    Returns:
        List[dict]: Processing results for all files
    """
    paths = sorted(
        p for p in glob.glob(os.path.join(directory, pattern))
        if os.path.isfile(p) and not p.endswith(OUTPUT_SUFFIX)
    )
    total = len(paths)

    if total == 0:
        print(f"No documents found matching pattern: {pattern}")
        return []

    print(f"Found {total} documents to process")
    print(f"Concurrency: {workers} workers\n")

    semaphore = asyncio.Semaphore(workers)
    tasks = [
        process_single_document(path, idx, total, semaphore, category, teacher_id)
        for idx, path in enumerate(paths)
    ]
    gathered = await asyncio.gather(*tasks, return_exceptions=True)

    results: List[Dict[str, Any]] = []
    for idx, result in enumerate(gathered):
        if isinstance(result, BaseException):
            results.append({
                "file": os.path.basename(paths[idx]),
                "status": "FAILED",
                "error": str(result),
                "elapsed_s": 0,
            })
        else:
            results.append(result)

    ok = [r for r in results if r["status"] == "ok"]
    failed = [r for r in results if r["status"] != "ok"]
    by_type: Dict[str, int] = {}
    for r in ok:
        by_type[r["content_type"]] = by_type.get(r["content_type"], 0) + 1

    print(f"\n{'='*60}")
    print(f"DONE: {len(ok)}/{total} succeeded, {len(failed)} failed")
    if by_type:
        print("  " + ", ".join(f"{k}: {v}" for k, v in sorted(by_type.items())))

    if failed:
        print("\nFailed files:")
        for r in failed:
            print(f"  - {r['file']}: {r.get('error', 'unknown')}")

    return results
