"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/dispatcher.py
Bounded-concurrency dispatcher.

WORKER MODEL
------------
The pool is an arena of worker threads bound to slot indices 0..K-1 (never
more slots than jobs). Each slot loops:
  • claim the next unclaimed job from a lock-protected shared counter
  • run it to completion through the injected JobRunner
  • hand the JobResult to the OutcomeAggregator
A slot only blocks on the job it runs and on the claim lock, so at most K
jobs are in flight at any instant and every job is claimed exactly once.

FAILURE MODEL
-------------
• A failing job is a JobResult, never an exception: other slots keep going
• An unexpected runner exception is logged and recorded as a launch failure
• Cancellation (stopped_flag or Ctrl+C while waiting) stops claiming, lets the
  runner terminate in-flight processes, and marks the report CANCELLED

Results are reported in enumeration (job position) order.
"""

import logging
import threading
import time
from typing import Any, List, Optional, Sequence

from fanout.core.aggregator import OutcomeAggregator, ResultListener
from fanout.core.interfaces import JobRunner, ProgressCallback, StoppedFlag
from fanout.core.models import FailureKind, JobResult, RunReport, RunStatus, WorkItem

logger = logging.getLogger(__name__)


class BoundedDispatcher:
    """
    Runs a sequence of jobs with at most `concurrency` of them in flight.

    Args:
        concurrency: Number of worker slots, K >= 1
        runner: Executes one job inside a slot
        stopped_flag: Returns True when the caller requests cancellation
        progress_callback: (stage, completed, total), optional instrumentation
    """

    def __init__(
        self,
        concurrency: int,
        runner: JobRunner,
        stopped_flag: Optional[StoppedFlag] = None,
        progress_callback: Optional[ProgressCallback] = None,
        stage_name: str = "dispatch",
    ):
        if concurrency < 1:
            raise ValueError("Concurrency must be at least 1")
        self.concurrency = concurrency
        self.runner = runner
        self.stopped_flag = stopped_flag
        self.progress_callback = progress_callback
        self.stage_name = stage_name
        self._listeners: List[ResultListener] = []

        self._lock = threading.Lock()
        self._cancel = threading.Event()
        self._next = 0
        self._active = 0
        self._peak = 0

    def add_listener(self, listener: ResultListener) -> None:
        self._listeners.append(listener)

    def _stopped(self) -> bool:
        if self._cancel.is_set():
            return True
        if self.stopped_flag is not None and self.stopped_flag():
            self._cancel.set()
            return True
        return False

    def _claim(self, total: int) -> Optional[int]:
        """Claim the next job position, or None when drained or cancelled."""
        if self._stopped():
            return None
        with self._lock:
            if self._next >= total:
                return None
            position = self._next
            self._next += 1
            self._active += 1
            self._peak = max(self._peak, self._active)
            return position

    def _release(self) -> None:
        with self._lock:
            self._active -= 1

    def _worker(self, slot: int, jobs: Sequence[Any], aggregator: OutcomeAggregator) -> None:
        while True:
            position = self._claim(len(jobs))
            if position is None:
                return
            job = jobs[position]
            try:
                result = self.runner.run(job, slot, self._stopped)
            except Exception as e:
                logger.exception(f"[slot {slot}] runner crashed on job #{position}")
                result = _crash_result(job, slot, e)
            finally:
                self._release()
            aggregator.add(position, result)

    def dispatch(self, jobs: Sequence[Any]) -> RunReport:
        """
        Run all jobs and return the report.

        Args:
            jobs: Resolved jobs in enumeration order (Invocations or WorkItems)
        Returns:
            RunReport with results in enumeration order
        """
        total = len(jobs)
        self._next = 0
        self._active = 0
        self._peak = 0
        self._cancel.clear()

        aggregator = OutcomeAggregator(total)
        for listener in self._listeners:
            aggregator.add_listener(listener)
        if self.progress_callback:
            aggregator.add_listener(lambda done, all_, _: self.progress_callback(self.stage_name, done, all_))

        start = time.monotonic()
        if total == 0:
            logger.debug("Nothing to dispatch")
            return aggregator.build_report(elapsed=0.0)

        slots = min(self.concurrency, total)
        logger.info(f"Dispatching {total} jobs over {slots} slots")
        threads = [
            threading.Thread(
                target=self._worker,
                args=(slot, jobs, aggregator),
                name=f"fanout-slot-{slot}",
                daemon=True,
            )
            for slot in range(slots)
        ]
        for thread in threads:
            thread.start()

        for thread in threads:
            while thread.is_alive():
                try:
                    thread.join(timeout=0.1)
                except KeyboardInterrupt:
                    logger.warning("Interrupted, cancelling remaining jobs")
                    self._cancel.set()

        report = aggregator.build_report(
            peak_concurrency=self._peak,
            elapsed=time.monotonic() - start,
        )
        # A flag raised after the last job finished cancels nothing
        if self._cancel.is_set() and (
            report.attempted < total
            or any(r.failure == FailureKind.CANCELLED for r in report.results)
        ):
            report.status = RunStatus.CANCELLED
        logger.info(f"Dispatch finished: {report!r}")
        return report


def _crash_result(job: Any, slot: int, error: Exception) -> JobResult:
    item = job if isinstance(job, WorkItem) else getattr(job, "item", WorkItem(value=repr(job), index=-1))
    return JobResult(
        item=item,
        exit_status=None,
        stderr=f"{type(error).__name__}: {error}".encode("utf-8", errors="replace"),
        failure=FailureKind.LAUNCH_FAILURE,
        slot=slot,
    )
