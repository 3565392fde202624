"""
Tests for BoundedDispatcher: concurrency bound, exactly-once execution,
failure isolation, ordering and cancellation.
"""
import sys
import threading
import time

import pytest

from fanout.core.dispatcher import BoundedDispatcher
from fanout.core.models import FailureKind, Invocation, JobResult, RunStatus, WorkItem
from fanout.core.runner import CallableRunner, SubprocessRunner


def make_items(count: int):
    return [WorkItem(value=f"item-{i}", index=i) for i in range(count)]


class ConcurrencyTracker:
    """In-process job that records how many jobs run at the same time."""

    def __init__(self, delay: float = 0.05):
        self.delay = delay
        self.lock = threading.Lock()
        self.active = 0
        self.max_active = 0
        self.seen = []

    def __call__(self, item: WorkItem) -> bytes:
        with self.lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            self.seen.append(item.index)
        time.sleep(self.delay)
        with self.lock:
            self.active -= 1
        return item.value.encode()


class TestConcurrencyBound:
    """At no instant do more than K jobs run."""

    @pytest.mark.parametrize("concurrency", [1, 3, 8])
    def test_never_more_than_k_in_flight(self, concurrency):
        tracker = ConcurrencyTracker()
        dispatcher = BoundedDispatcher(concurrency, CallableRunner(tracker))

        report = dispatcher.dispatch(make_items(20))

        assert tracker.max_active <= concurrency
        assert report.peak_concurrency <= concurrency
        assert report.succeeded == 20

    def test_slots_are_used_in_parallel(self):
        """With enough slow jobs the pool actually fills up."""
        tracker = ConcurrencyTracker(delay=0.2)
        report = BoundedDispatcher(4, CallableRunner(tracker)).dispatch(make_items(8))

        assert tracker.max_active >= 2
        assert report.peak_concurrency >= 2

    def test_fewer_items_than_slots(self):
        tracker = ConcurrencyTracker()
        report = BoundedDispatcher(16, CallableRunner(tracker)).dispatch(make_items(3))

        assert report.total == 3
        assert report.succeeded == 3
        assert tracker.max_active <= 3
        assert {r.slot for r in report.results} <= {0, 1, 2}

    def test_invalid_concurrency(self):
        with pytest.raises(ValueError):
            BoundedDispatcher(0, CallableRunner(lambda item: b""))


class TestExactlyOnce:
    """Every item is executed exactly once."""

    def test_every_item_runs_once(self):
        tracker = ConcurrencyTracker(delay=0.001)
        report = BoundedDispatcher(5, CallableRunner(tracker)).dispatch(make_items(50))

        assert sorted(tracker.seen) == list(range(50))
        assert report.attempted == 50

    def test_results_in_enumeration_order(self):
        """Later items finish first, results still follow enumeration order."""
        def slow_first(item: WorkItem) -> bytes:
            time.sleep(0.05 * (5 - item.index))
            return str(item.index).encode()

        report = BoundedDispatcher(5, CallableRunner(slow_first)).dispatch(make_items(5))

        assert [r.item.index for r in report.results] == [0, 1, 2, 3, 4]
        assert b"".join(r.stdout for r in report.results) == b"01234"

    def test_empty_job_list(self):
        """No items: nothing runs and the report is empty but successful."""
        calls = []
        report = BoundedDispatcher(4, CallableRunner(calls.append)).dispatch([])

        assert calls == []
        assert report.total == 0
        assert report.results == []
        assert report.status == RunStatus.COMPLETED
        assert report.success


class TestFailureIsolation:
    """One failing item never affects the others."""

    def test_single_failure_reported_others_succeed(self):
        def fail_third(item: WorkItem) -> bytes:
            if item.index == 3:
                raise RuntimeError("broken item")
            return b"ok"

        report = BoundedDispatcher(4, CallableRunner(fail_third)).dispatch(make_items(10))

        assert report.attempted == 10
        assert report.succeeded == 9
        assert len(report.failures) == 1
        failure = report.failures[0]
        assert failure.item.index == 3
        assert failure.failure == FailureKind.NON_ZERO_EXIT
        assert failure.exit_status == 1
        assert b"broken item" in failure.stderr
        assert not report.success

    def test_runner_crash_is_recorded(self):
        """An exception escaping a runner becomes a launch failure, not a crash."""
        class CrashingRunner:
            def run(self, job, slot, stopped_flag=None):
                if job.index == 1:
                    raise RuntimeError("runner bug")
                return JobResult(item=job, exit_status=0, slot=slot)

        report = BoundedDispatcher(2, CrashingRunner()).dispatch(make_items(4))

        assert report.attempted == 4
        assert [r.failure for r in report.results] == [
            None, FailureKind.LAUNCH_FAILURE, None, None]

    def test_missing_program_is_launch_failure(self):
        """A program that does not exist fails its item, the run completes."""
        items = make_items(3)
        jobs = [
            Invocation(item=items[0], argv=(sys.executable, "-c", "print('a')")),
            Invocation(item=items[1], argv=("/nonexistent/fanout-no-such-program",)),
            Invocation(item=items[2], argv=(sys.executable, "-c", "print('c')")),
        ]

        report = BoundedDispatcher(2, SubprocessRunner()).dispatch(jobs)

        assert report.attempted == 3
        assert report.succeeded == 2
        assert report.results[1].failure == FailureKind.LAUNCH_FAILURE
        assert report.results[1].exit_status is None
        assert report.results[0].stdout.strip() == b"a"
        assert report.results[2].stdout.strip() == b"c"


class TestCancellation:
    """A raised stopped flag stops claiming new items."""

    def test_stop_after_third_item(self):
        stop = threading.Event()

        def job(item: WorkItem) -> bytes:
            if item.index == 2:
                stop.set()
            return b""

        dispatcher = BoundedDispatcher(1, CallableRunner(job), stopped_flag=stop.is_set)
        report = dispatcher.dispatch(make_items(10))

        assert report.attempted == 3
        assert report.status == RunStatus.CANCELLED
        assert report.cancelled
        assert not report.success

    def test_flag_set_before_start(self):
        report = BoundedDispatcher(4, CallableRunner(lambda item: b""),
                                   stopped_flag=lambda: True).dispatch(make_items(5))

        assert report.attempted == 0
        assert report.cancelled

    def test_flag_after_last_item_is_not_a_cancellation(self):
        """Nothing was left to cancel, so the run counts as completed."""
        stop = threading.Event()

        def job(item: WorkItem) -> bytes:
            if item.index == 4:
                stop.set()
            return b""

        report = BoundedDispatcher(1, CallableRunner(job), stopped_flag=stop.is_set).dispatch(make_items(5))

        assert report.attempted == 5
        assert report.status == RunStatus.COMPLETED

    def test_in_flight_process_is_terminated(self):
        stop = threading.Event()
        items = make_items(1)
        jobs = [Invocation(item=items[0], argv=(sys.executable, "-c", "import time; time.sleep(30)"))]
        dispatcher = BoundedDispatcher(1, SubprocessRunner(grace_period=5), stopped_flag=stop.is_set)

        timer = threading.Timer(0.3, stop.set)
        timer.start()
        start = time.monotonic()
        try:
            report = dispatcher.dispatch(jobs)
        finally:
            timer.cancel()

        assert time.monotonic() - start < 15
        assert report.results[0].failure == FailureKind.CANCELLED
        assert report.cancelled


class TestListeners:
    def test_progress_callback_reaches_total(self):
        calls = []
        dispatcher = BoundedDispatcher(
            3, CallableRunner(lambda item: b""),
            progress_callback=lambda stage, current, total: calls.append((stage, current, total)),
            stage_name="work",
        )
        dispatcher.dispatch(make_items(6))

        assert len(calls) == 6
        assert {c[0] for c in calls} == {"work"}
        assert all(c[2] == 6 for c in calls)
        assert sorted(c[1] for c in calls) == [1, 2, 3, 4, 5, 6]

    def test_failing_listener_does_not_stop_run(self):
        dispatcher = BoundedDispatcher(2, CallableRunner(lambda item: b""))

        def bad_listener(completed, total, result):
            raise ValueError("listener bug")

        dispatcher.add_listener(bad_listener)
        report = dispatcher.dispatch(make_items(4))

        assert report.succeeded == 4
