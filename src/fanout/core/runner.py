"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/runner.py
Job runners executed inside dispatcher slots.

SubprocessRunner  : launches one resolved Invocation as a child process (argv list, no shell)
CallableRunner    : runs an in-process operation on one WorkItem (hashing, text operations)

Runners never raise for per-item problems. Every outcome, including launch
errors, timeouts and cancellation, is returned as a JobResult.
"""

import logging
import os
import signal
import subprocess
import threading
import time
from contextlib import ExitStack
from typing import BinaryIO, Callable, List, Optional, Tuple

from fanout.core.interfaces import JobRunner, StoppedFlag
from fanout.core.models import FailureKind, Invocation, JobResult, WorkItem

logger = logging.getLogger(__name__)

DEFAULT_MAX_OUTPUT = 1024 * 1024
READ_CHUNK_SIZE = 64 * 1024


def _bound(data: Optional[bytes], limit: int) -> Tuple[bytes, bool]:
    """Keep the head of captured output, report whether anything was cut."""
    if not data:
        return b"", False
    if len(data) > limit:
        return data[:limit], True
    return data, False


class _PipeDrain(threading.Thread):
    """
    Reads one child pipe until EOF. The first `limit` bytes are kept,
    everything after that is read and dropped so the child never blocks
    on a full pipe.
    """

    def __init__(self, stream: BinaryIO, limit: int):
        super().__init__(daemon=True)
        self.stream = stream
        self.limit = limit
        self.truncated = False
        self._chunks: List[bytes] = []
        self._kept = 0
        self._lock = threading.Lock()

    def run(self) -> None:
        try:
            while True:
                chunk = self.stream.read1(READ_CHUNK_SIZE)
                if not chunk:
                    break
                with self._lock:
                    room = self.limit - self._kept
                    if room > 0:
                        head = chunk[:room]
                        self._chunks.append(head)
                        self._kept += len(head)
                    if len(chunk) > room:
                        self.truncated = True
        except (OSError, ValueError) as e:
            logger.debug(f"Pipe reader stopped: {e}")
        finally:
            self.stream.close()

    def value(self) -> bytes:
        with self._lock:
            return b"".join(self._chunks)


def _signal_group(process: subprocess.Popen, sig: int) -> None:
    """Signal the child's whole process group (the child leads its own session)."""
    try:
        os.killpg(process.pid, sig)
    except ProcessLookupError:
        pass
    except OSError as e:
        logger.debug(f"killpg({process.pid}, {sig}) failed: {e}")
        try:
            process.send_signal(sig)
        except OSError:
            pass


class SubprocessRunner(JobRunner):
    """
    Runs an Invocation with subprocess.Popen in its own session and polls it,
    so per-item timeouts and cancellation are honoured. On timeout or
    cancellation the whole process group is signalled, descendants included.
    Output pipes are drained by reader threads that keep only a bounded head.

    Attributes:
        poll_interval: Seconds between timeout/cancellation checks
        grace_period: Seconds between SIGTERM and SIGKILL, also the longest
                      wait for output pipes to close after the child exits
        max_output_bytes: Upper bound for captured stdout and stderr each
    """

    def __init__(
        self,
        poll_interval: float = 0.05,
        grace_period: float = 2.0,
        max_output_bytes: int = DEFAULT_MAX_OUTPUT,
    ):
        self.poll_interval = poll_interval
        self.grace_period = grace_period
        self.max_output_bytes = max_output_bytes

    def run(self, job: Invocation, slot: int, stopped_flag: Optional[StoppedFlag] = None) -> JobResult:
        start = time.monotonic()
        with ExitStack() as stack:
            try:
                stdin = stack.enter_context(open(job.stdin_path, "rb")) if job.stdin_path else subprocess.DEVNULL
                if job.stdout_path:
                    parent = os.path.dirname(job.stdout_path)
                    if parent:
                        os.makedirs(parent, exist_ok=True)
                    stdout = stack.enter_context(open(job.stdout_path, "wb"))
                else:
                    stdout = subprocess.PIPE
                process = subprocess.Popen(
                    list(job.argv),
                    stdin=stdin,
                    stdout=stdout,
                    stderr=subprocess.PIPE,
                    cwd=job.cwd,
                    start_new_session=True,
                )
            except OSError as e:
                # FileNotFoundError / PermissionError for the program or redirected files
                logger.debug(f"[slot {slot}] launch failed for {job.item.value}: {e}")
                return JobResult(
                    item=job.item,
                    exit_status=None,
                    stderr=f"{job.program}: {e}".encode("utf-8", errors="replace"),
                    duration=time.monotonic() - start,
                    failure=FailureKind.LAUNCH_FAILURE,
                    slot=slot,
                )

            logger.debug(f"[slot {slot}] started pid={process.pid}: {job.argv}")
            out_drain = _PipeDrain(process.stdout, self.max_output_bytes) if process.stdout else None
            err_drain = _PipeDrain(process.stderr, self.max_output_bytes)
            drains = [drain for drain in (out_drain, err_drain) if drain is not None]
            for drain in drains:
                drain.start()

            failure = self._wait(process, job, start, stopped_flag)
            self._join(process, drains)

        duration = time.monotonic() - start
        if failure is None and process.returncode != 0:
            failure = FailureKind.NON_ZERO_EXIT

        return JobResult(
            item=job.item,
            exit_status=process.returncode,
            stdout=out_drain.value() if out_drain else b"",
            stderr=err_drain.value(),
            duration=duration,
            failure=failure,
            slot=slot,
            truncated=any(drain.truncated for drain in drains),
        )

    def _wait(
        self,
        process: subprocess.Popen,
        job: Invocation,
        start: float,
        stopped_flag: Optional[StoppedFlag],
    ) -> Optional[FailureKind]:
        deadline = start + job.timeout if job.timeout else None
        while True:
            try:
                process.wait(timeout=self.poll_interval)
                return None
            except subprocess.TimeoutExpired:
                pass

            if deadline is not None and time.monotonic() >= deadline:
                logger.warning(f"Timeout after {job.timeout}s: {job.item.value}")
                self._terminate(process)
                return FailureKind.TIMEOUT

            if stopped_flag is not None and stopped_flag():
                logger.info(f"Cancelling in-flight job: {job.item.value}")
                self._terminate(process)
                return FailureKind.CANCELLED

    def _terminate(self, process: subprocess.Popen) -> None:
        """SIGTERM the process group, SIGKILL it after the grace period."""
        _signal_group(process, signal.SIGTERM)
        try:
            process.wait(timeout=self.grace_period)
        except subprocess.TimeoutExpired:
            _signal_group(process, signal.SIGKILL)
            process.wait()
        # descendants that ignored SIGTERM
        _signal_group(process, signal.SIGKILL)

    def _join(self, process: subprocess.Popen, drains: List[_PipeDrain]) -> None:
        """Wait for the pipes to close. A descendant that keeps them open is left behind."""
        deadline = time.monotonic() + self.grace_period
        for drain in drains:
            drain.join(timeout=max(0.0, deadline - time.monotonic()))
        if any(drain.is_alive() for drain in drains):
            logger.warning(
                f"pid={process.pid} exited but a descendant still holds its output; "
                f"keeping what was read so far"
            )


class CallableRunner(JobRunner):
    """
    Runs `func(item) -> bytes` inside the worker slot.
    The returned bytes play the role of stdout; an exception is recorded as
    a non-zero exit with the message on stderr.
    """

    def __init__(self, func: Callable[[WorkItem], Optional[bytes]], max_output_bytes: int = DEFAULT_MAX_OUTPUT):
        self.func = func
        self.max_output_bytes = max_output_bytes

    def run(self, job: WorkItem, slot: int, stopped_flag: Optional[StoppedFlag] = None) -> JobResult:
        start = time.monotonic()
        try:
            output = self.func(job) or b""
        except Exception as e:
            logger.debug(f"[slot {slot}] {job.value}: {e}")
            return JobResult(
                item=job,
                exit_status=1,
                stderr=f"{type(e).__name__}: {e}".encode("utf-8", errors="replace"),
                duration=time.monotonic() - start,
                failure=FailureKind.NON_ZERO_EXIT,
                slot=slot,
            )

        out, cut = _bound(output, self.max_output_bytes)
        return JobResult(
            item=job,
            exit_status=0,
            stdout=out,
            duration=time.monotonic() - start,
            slot=slot,
            truncated=cut,
        )
