"""
Unified command orchestrators.
This is the SINGLE place where enumerator, templater, runners, dispatcher and
the deduplication engine are wired together. Used by the CLI and by library callers.

Fatal problems (SourceUnavailable, TemplateError) are raised before any
item is dispatched; per-item problems come back inside the reports.
"""
import logging
from typing import Callable, List, Optional

from fanout.core.deduplicator import ContentDeduplicatorImpl
from fanout.core.dispatcher import BoundedDispatcher
from fanout.core.enumerator import ItemEnumeratorImpl
from fanout.core.hasher import HasherImpl, get_algorithm
from fanout.core.models import CommandSpec, DedupReport, RunReport, SourceKind, WorkItem
from fanout.core.params import DedupParams, DispatchParams, LocalParams
from fanout.core.runner import CallableRunner, SubprocessRunner
from fanout.core.templater import CommandTemplater
from fanout.core.textops import get_operation
from fanout.services.file_service import FileService

logger = logging.getLogger(__name__)

StoppedFlag = Optional[Callable[[], bool]]
ProgressCallback = Optional[Callable[[str, int, Optional[int]], None]]


class DispatchCommand:
    """
    Orchestrates one external-command run:
    1. Enumerate items from the source
    2. Resolve every invocation (a template error aborts here, nothing has run)
    3. Dispatch under the concurrency cap and return the RunReport

    Usage:
        params = DispatchParams.from_human_readable("./logs", ["gzip", "-k", "{item}"], concurrency=4)
        report = DispatchCommand().execute(params, stopped_flag=cancel_event.is_set)
    """

    def __init__(self, enumerator: Optional[ItemEnumeratorImpl] = None):
        self._enumerator = enumerator or ItemEnumeratorImpl()
        self._items: List[WorkItem] = []

    def execute(
            self,
            params: DispatchParams,
            progress_callback: ProgressCallback = None,
            stopped_flag: StoppedFlag = None,
    ) -> RunReport:
        # Templates are validated before the source is even read
        templater = CommandTemplater(params.spec, params.params)
        self._items = self._enumerator.enumerate(params.source, params.kind, params.pattern)
        invocations = templater.render_all(self._items)

        dispatcher = BoundedDispatcher(
            params.spec.concurrency,
            SubprocessRunner(max_output_bytes=params.spec.max_output_bytes),
            stopped_flag=stopped_flag,
            progress_callback=progress_callback,
        )
        return dispatcher.dispatch(invocations)

    def get_items(self) -> List[WorkItem]:
        """Get enumerated items after execution."""
        return self._items.copy()


class LocalOperationCommand:
    """Runs an in-process text operation once per file under the concurrency cap."""

    def __init__(self, enumerator: Optional[ItemEnumeratorImpl] = None):
        self._enumerator = enumerator or ItemEnumeratorImpl()

    def execute(
            self,
            params: LocalParams,
            progress_callback: ProgressCallback = None,
            stopped_flag: StoppedFlag = None,
    ) -> RunReport:
        operation = get_operation(params.operation)
        items = self._enumerator.enumerate(params.source, params.kind, params.pattern)
        dispatcher = BoundedDispatcher(
            params.concurrency,
            CallableRunner(operation, max_output_bytes=params.max_output_bytes),
            stopped_flag=stopped_flag,
            progress_callback=progress_callback,
            stage_name=params.operation,
        )
        return dispatcher.dispatch(items)


class SortedDedupCommand(LocalOperationCommand):
    """Pre-sorted-text dedup: adjacent duplicate lines removed per *.txt file."""

    def execute_for(
            self,
            directory: str,
            concurrency: int,
            pattern: str = "*.txt",
            progress_callback: ProgressCallback = None,
            stopped_flag: StoppedFlag = None,
    ) -> RunReport:
        params = LocalParams(
            source=directory,
            operation="dedupe-sorted",
            concurrency=concurrency,
            kind=SourceKind.FILES,
            pattern=pattern,
        )
        return self.execute(params, progress_callback=progress_callback, stopped_flag=stopped_flag)


class ContentDedupCommand:
    """
    Orchestrates content-identity deduplication:
    1. Walk the root directory (recursive, regular files, sorted)
    2. Fingerprint candidates in parallel, group, keep the first-enumerated file
    3. Remove the rest (delete or trash), unless dry_run
    """

    def execute(
            self,
            params: DedupParams,
            progress_callback: ProgressCallback = None,
            stopped_flag: StoppedFlag = None,
    ) -> DedupReport:
        if params.hash_command:
            # Fail on a broken hash command before walking the tree
            CommandTemplater(self._spec_for(params))

        enumerator = ItemEnumeratorImpl(
            excluded_dirs=params.excluded_dirs,
            extensions=params.extensions,
        )
        items = enumerator.walk(params.root_dir)
        logger.info(f"Enumerated {len(items)} files under {params.root_dir}")

        deduplicator = ContentDeduplicatorImpl(
            concurrency=params.concurrency,
            hasher=HasherImpl(get_algorithm(params.algorithm)),
            hash_command=params.hash_command or None,
            timeout=params.timeout,
            remove=FileService.remover_for(params.removal),
            stopped_flag=stopped_flag,
            progress_callback=progress_callback,
        )
        return deduplicator.deduplicate(items, dry_run=params.dry_run, index_path=params.index_path)

    @staticmethod
    def _spec_for(params: DedupParams) -> CommandSpec:
        return CommandSpec(argv=params.hash_command, concurrency=params.concurrency, timeout=params.timeout)
