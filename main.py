"""
Entry point and facade for the file → PDF conversion engine.

This module exposes a stable API and a CLI.

Packages:
- topdf.docs: Format detection, readers and the single-file pipeline (`convert_file`)
- topdf.fonts: Script detection and font resolution with CJK fallback
- topdf.render: Paginated PDF rendering
- topdf.pipeline: Batch scheduler (`submit`, `subscribe`, `cancel`)
"""

from __future__ import annotations

import logging
import sys
from typing import Dict, List, Optional

from topdf.config import get_settings, load_settings
from topdf.docs.detect import FormatKind, detect_format
from topdf.docs.pipeline import convert_file, load_document
from topdf.fonts.resolver import FontResolver, get_font_resolver
from topdf.pipeline.batch import (
    BatchScheduler,
    BatchSession,
    JobStatus,
    StatusEvent,
    cancel,
    submit,
    subscribe,
)

__all__ = [
    # config
    "get_settings",
    "load_settings",
    # single file
    "FormatKind",
    "detect_format",
    "load_document",
    "convert_file",
    # fonts
    "FontResolver",
    "get_font_resolver",
    # batch
    "BatchScheduler",
    "BatchSession",
    "JobStatus",
    "StatusEvent",
    "submit",
    "subscribe",
    "cancel",
    "print_progress_bar",
]


def print_progress_bar(done_jobs: int, total_jobs: int, failed_jobs: int = 0, width: int = 10) -> None:
    """Render a colored one-line progress bar.

    Doxygen:
    - @param done_jobs: Number of jobs in a terminal state.
    - @param total_jobs: Total jobs in the batch.
    - @param failed_jobs: How many of the finished jobs failed.
    - @param width: Number of bar segments (default 10).
    """
    total_jobs = max(1, total_jobs)
    done = max(0, min(done_jobs, total_jobs))
    segments = max(1, int(width))
    filled = segments if done >= total_jobs else int(done / total_jobs * segments)
    pending = max(0, segments - filled)
    GREEN = "\x1b[32m"
    RED = "\x1b[31m"
    RESET = "\x1b[0m"
    bar = f"{GREEN}{'█'*filled}{RESET}{RED}{'█'*pending}{RESET} [{done}/{total_jobs}]"
    if failed_jobs:
        bar += f" {failed_jobs} failed"
    print(f"\r{bar}", end="", flush=True)


def _format_event(event: StatusEvent, session: BatchSession) -> str:
    job = session.jobs[event.job_id]
    line = f"[{event.job_id}] {event.status.value:<9} {job.source}"
    if event.status is JobStatus.SUCCEEDED:
        line += f" -> {job.output_path}"
    elif event.status is JobStatus.FAILED and event.error:
        line += f": {event.error}"
    return line


def _print_summary(counts: Dict[str, int]) -> None:
    print(
        f"Converted {counts[JobStatus.SUCCEEDED.value]} of {sum(counts.values())} files"
        f" ({counts[JobStatus.FAILED.value]} failed)"
    )


def _cli(argv: Optional[List[str]] = None) -> int:
    """CLI for converting files to PDF.

    FILE...: One or more input files
    --output-dir / -o: Directory for the PDFs (default: beside each source)
    --jobs / -j: Number of worker threads (default: config max_workers or CPU count)
    --config / -c: Path to settings JSON (default: config/settings.json)
    --progress / -p: Show a progress bar instead of one line per event
    --verbose / -v: Debug logging
    """
    import argparse

    parser = argparse.ArgumentParser(description="Convert documents, data files, source code and images to PDF.")
    parser.add_argument("files", nargs="+", metavar="FILE", help="Input files to convert")
    parser.add_argument("--output-dir", "-o", type=str, default=None, help="Directory for the PDFs (default: beside each source)")
    parser.add_argument("--jobs", "-j", type=int, default=None, help="Number of concurrent conversions (default: CPU count)")
    parser.add_argument("--config", "-c", type=str, default=None, help="Path to settings JSON (default: config/settings.json)")
    parser.add_argument("--progress", "-p", action="store_true", help="Show a progress bar instead of per-job lines")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)
    if args.jobs is not None and args.jobs < 1:
        parser.error("--jobs must be at least 1")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = load_settings(args.config) if args.config else get_settings()
    scheduler = BatchScheduler(resolver=FontResolver.from_settings(settings), settings=settings)
    session = scheduler.submit(args.files, output_dir=args.output_dir, concurrency=args.jobs)

    total = len(session.jobs)
    finished = failed = 0
    try:
        for event in scheduler.subscribe(session):
            if event.status.terminal:
                finished += 1
                failed += event.status is JobStatus.FAILED
            if args.progress:
                print_progress_bar(finished, total, failed)
            else:
                print(_format_event(event, session))
    except KeyboardInterrupt:
        scheduler.cancel(session)
        print("\nCancelling; waiting for running conversions to finish...")
        session.wait()
    if args.progress:
        print()

    counts = session.summary()
    _print_summary(counts)
    return 1 if counts[JobStatus.FAILED.value] else 0


if __name__ == "__main__":
    sys.exit(_cli())
