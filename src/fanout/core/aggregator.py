"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/aggregator.py
Collects JobResults as slots finish them and builds the RunReport.
"""

import logging
import threading
from typing import Callable, List, Tuple

from fanout.core.models import JobResult, RunReport, RunStatus

logger = logging.getLogger(__name__)

# (completed_so_far, total, result)
ResultListener = Callable[[int, int, JobResult], None]


class OutcomeAggregator:
    """
    Append-only, thread-safe result collection.
    Results are re-sorted to enumeration position when the report is built.
    """

    def __init__(self, total: int):
        self.total = total
        self._lock = threading.Lock()
        self._entries: List[Tuple[int, JobResult]] = []
        self._listeners: List[ResultListener] = []

    def add_listener(self, listener: ResultListener) -> None:
        """Adds a listener notified after every completed item."""
        self._listeners.append(listener)

    def add(self, position: int, result: JobResult) -> None:
        with self._lock:
            self._entries.append((position, result))
            completed = len(self._entries)

        if not result.success:
            logger.info(f"{result.failure.value}: {result.item.value} (exit={result.exit_status})")

        # Notify listeners about the update
        for listener in self._listeners:
            try:
                listener(completed, self.total, result)
            except Exception:
                logger.exception("Error in result listener")

    @property
    def completed(self) -> int:
        with self._lock:
            return len(self._entries)

    def build_report(
        self,
        status: RunStatus = RunStatus.COMPLETED,
        peak_concurrency: int = 0,
        elapsed: float = 0.0,
    ) -> RunReport:
        with self._lock:
            ordered = [result for _, result in sorted(self._entries, key=lambda e: e[0])]
        return RunReport(
            total=self.total,
            results=ordered,
            status=status,
            peak_concurrency=peak_concurrency,
            elapsed=elapsed,
        )


def format_summary(report: RunReport, stderr_tail: int = 5) -> str:
    """Human summary with the failure manifest."""
    lines = [
        f"Total: {report.total} | Attempted: {report.attempted} | "
        f"Succeeded: {report.succeeded} | Failed: {len(report.failures)}",
        f"Status: {report.status.value} | Peak concurrency: {report.peak_concurrency} | "
        f"Elapsed: {report.elapsed:.2f}s",
    ]

    if report.failures:
        lines.append("")
        lines.append("Failures:")
        for result in report.failures:
            exit_info = "n/a" if result.exit_status is None else str(result.exit_status)
            lines.append(f"  • {result.item.value} [{result.failure.value}, exit={exit_info}]")
            tail = result.stderr_text().strip().splitlines()[-stderr_tail:]
            for line in tail:
                lines.append(f"      {line}")

    return "\n".join(lines)
