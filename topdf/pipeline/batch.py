"""Batch conversion: a fixed worker pool per session and a status stream.

A session owns its jobs, a cancellation flag and an append-only event log.
Workers push status events into the log under a Condition; subscribers
replay the log from the start and block for new events until every job
has reached a terminal state.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, List, NamedTuple, Optional

from topdf.config import Settings, get_settings
from topdf.docs.detect import FormatKind
from topdf.docs.pipeline import default_output_path, load_document, render_document, write_atomic
from topdf.errors import ConversionError
from topdf.fonts.resolver import FontResolver

logger = logging.getLogger(__name__)

CANCELLED = "cancelled"


class JobStatus(Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED)


_TRANSITIONS = {
    JobStatus.PENDING: (JobStatus.RUNNING, JobStatus.FAILED),
    JobStatus.RUNNING: (JobStatus.SUCCEEDED, JobStatus.FAILED),
    JobStatus.SUCCEEDED: (),
    JobStatus.FAILED: (),
}


@dataclass
class ConversionJob:
    """One source file moving through Pending → Running → Succeeded/Failed."""

    id: int
    source: str
    output_path: str
    kind: Optional[FormatKind] = None
    status: JobStatus = JobStatus.PENDING
    error: Optional[str] = None

    def advance(self, status: JobStatus, error: Optional[str] = None) -> None:
        if status not in _TRANSITIONS[self.status]:
            raise ValueError(f"job {self.id}: illegal transition {self.status.value} -> {status.value}")
        self.status = status
        self.error = error if status is JobStatus.FAILED else None


class StatusEvent(NamedTuple):
    job_id: int
    status: JobStatus
    error: Optional[str] = None


def assign_output_paths(paths: Iterable[str], output_dir: Optional[str] = None) -> List[str]:
    """Default output path per source, suffixed ``-1``, ``-2`` … on collisions."""
    claimed = set()
    outputs: List[str] = []
    for path in paths:
        candidate = default_output_path(path, output_dir)
        base, ext = os.path.splitext(candidate)
        n = 1
        while os.path.normcase(os.path.abspath(candidate)) in claimed:
            candidate = f"{base}-{n}{ext}"
            n += 1
        claimed.add(os.path.normcase(os.path.abspath(candidate)))
        outputs.append(candidate)
    return outputs


class BatchSession:
    """Jobs submitted together, their event log and the cancellation flag."""

    def __init__(self, jobs: List[ConversionJob], concurrency: int, output_dir: Optional[str] = None) -> None:
        self.jobs = jobs
        self.concurrency = concurrency
        self.output_dir = output_dir
        self._cancel = threading.Event()
        self._cond = threading.Condition()
        self._events: List[StatusEvent] = []
        self._terminal = 0
        self._executor: Optional[ThreadPoolExecutor] = None

    def __repr__(self) -> str:
        return f"BatchSession(jobs={len(self.jobs)}, concurrency={self.concurrency}, done={self.done})"

    def _record(self, job: ConversionJob) -> None:
        # caller holds self._cond
        self._events.append(StatusEvent(job.id, job.status, job.error))
        if job.status.terminal:
            self._terminal += 1
        self._cond.notify_all()

    def _emit(self, job: ConversionJob, status: JobStatus, error: Optional[str] = None) -> None:
        with self._cond:
            job.advance(status, error)
            self._record(job)

    def _announce(self) -> None:
        with self._cond:
            for job in self.jobs:
                self._record(job)

    @property
    def done(self) -> bool:
        with self._cond:
            return self._terminal >= len(self.jobs)

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        if not self._cancel.is_set():
            logger.info("Cancellation requested; %d jobs still pending", self.summary()[JobStatus.PENDING.value])
        self._cancel.set()

    def events(self, timeout: Optional[float] = None) -> Iterator[StatusEvent]:
        """Replay the event log, then follow it until every job is terminal.

        Doxygen:
        - @param timeout: Overall seconds to wait for new events; None waits forever.
        - @return: Iterator of StatusEvent in emission order.
        - @throws TimeoutError: When the timeout elapses before the batch finishes.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        index = 0
        while True:
            with self._cond:
                while index >= len(self._events) and self._terminal < len(self.jobs):
                    remaining = None if deadline is None else deadline - time.monotonic()
                    if remaining is not None and remaining <= 0:
                        raise TimeoutError("timed out waiting for batch status events")
                    self._cond.wait(remaining)
                if index >= len(self._events):
                    return
                pending = self._events[index:]
                index = len(self._events)
            # yield outside the lock so slow consumers never block workers
            for event in pending:
                yield event

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until every job is terminal. Returns False on timeout."""
        with self._cond:
            return self._cond.wait_for(lambda: self._terminal >= len(self.jobs), timeout)

    def summary(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in JobStatus}
        with self._cond:
            for job in self.jobs:
                counts[job.status.value] += 1
        return counts


class BatchScheduler:
    """Runs conversion jobs on a thread pool, one pool per session."""

    def __init__(self, resolver: Optional[FontResolver] = None, settings: Optional[Settings] = None) -> None:
        self.resolver = resolver
        self.settings = settings

    def submit(self, paths: Iterable[str], output_dir: Optional[str] = None, concurrency: Optional[int] = None) -> BatchSession:
        """Create one Pending job per path and start converting them.

        Doxygen:
        - @param paths: Source files, converted in submission order.
        - @param output_dir: Directory for the PDFs; beside each source when None.
        - @param concurrency: Worker count; settings.max_workers or the CPU count by default.
        - @return: BatchSession to subscribe to, wait on or cancel.
        """
        settings = self.settings or get_settings()
        sources = [os.fspath(p) for p in paths]
        outputs = assign_output_paths(sources, output_dir)
        jobs = [ConversionJob(id=i, source=src, output_path=out) for i, (src, out) in enumerate(zip(sources, outputs))]

        workers = concurrency if concurrency is not None else settings.worker_count()
        workers = max(1, min(int(workers), len(jobs) or 1))
        session = BatchSession(jobs, workers, output_dir)
        session._announce()
        if not jobs:
            return session

        logger.info("Submitted %d jobs with %d workers", len(jobs), workers)
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="topdf-worker")
        for job in jobs:
            executor.submit(self._run_job, session, job, settings)
        # queued jobs still run; the pool exits once the queue drains
        executor.shutdown(wait=False)
        session._executor = executor
        return session

    def subscribe(self, session: BatchSession, timeout: Optional[float] = None) -> Iterator[StatusEvent]:
        return session.events(timeout)

    def cancel(self, session: BatchSession) -> None:
        session.cancel()

    def _run_job(self, session: BatchSession, job: ConversionJob, settings: Settings) -> None:
        if session.cancelled:
            session._emit(job, JobStatus.FAILED, CANCELLED)
            return
        session._emit(job, JobStatus.RUNNING)
        try:
            kind, doc = load_document(job.source)
            job.kind = kind
            pdf_bytes = render_document(doc, self.resolver, settings, name=os.path.basename(job.source))
            write_atomic(job.output_path, pdf_bytes)
        except ConversionError as exc:
            logger.warning("Job %d (%s) failed: %s", job.id, job.source, exc)
            session._emit(job, JobStatus.FAILED, str(exc))
        except Exception as exc:
            logger.exception("Unexpected failure converting %s", job.source)
            session._emit(job, JobStatus.FAILED, f"{type(exc).__name__}: {exc}")
        else:
            logger.info("Job %d: %s -> %s", job.id, job.source, job.output_path)
            session._emit(job, JobStatus.SUCCEEDED)


_DEFAULT_SCHEDULER: Optional[BatchScheduler] = None
_DEFAULT_LOCK = threading.Lock()


def get_scheduler() -> BatchScheduler:
    global _DEFAULT_SCHEDULER
    with _DEFAULT_LOCK:
        if _DEFAULT_SCHEDULER is None:
            _DEFAULT_SCHEDULER = BatchScheduler()
        return _DEFAULT_SCHEDULER


def submit(paths: Iterable[str], output_dir: Optional[str] = None, concurrency: Optional[int] = None) -> BatchSession:
    return get_scheduler().submit(paths, output_dir=output_dir, concurrency=concurrency)


def subscribe(session: BatchSession, timeout: Optional[float] = None) -> Iterator[StatusEvent]:
    return session.events(timeout)


def cancel(session: BatchSession) -> None:
    session.cancel()
