"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

deduplicator.py
Content-identity deduplication built on the bounded dispatcher.

Pipeline:
    - size: group by size, files with a unique size cannot have a duplicate
    - fingerprint: full-content hash per candidate, computed in parallel
      (in-process HasherImpl, or an external hashing command such as sha256sum)
    - group: by fingerprint, in enumeration order
    - remove: single-threaded pass, the first-enumerated item of each group is kept
"""
import logging
import os
import time
from typing import Callable, Dict, List, Optional, Tuple

from fanout.core.dispatcher import BoundedDispatcher
from fanout.core.grouper import ItemGrouperImpl
from fanout.core.hasher import HasherImpl, parse_digest
from fanout.core.interfaces import Deduplicator, ProgressCallback, StoppedFlag
from fanout.core.models import (
    CommandSpec, DedupReport, DuplicateGroup, RunReport, WorkItem, default_concurrency)
from fanout.core.runner import CallableRunner, SubprocessRunner
from fanout.core.templater import CommandTemplater
from fanout.services.duplicate_service import DuplicateService
from fanout.services.file_service import FileService

logger = logging.getLogger(__name__)


class ScratchIndex:
    """
    Fingerprint -> items index used while a pass runs.

    Held in memory. When a path is given the index is also written there as a
    sha256sum-style listing for inspection during long removals; that file is
    removed unconditionally when the context exits, on success, failure or
    interrupt alike.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self.entries: Dict[bytes, List[WorkItem]] = {}

    def __enter__(self) -> "ScratchIndex":
        return self

    def record(self, groups: List[DuplicateGroup]) -> None:
        for group in groups:
            self.entries[group.fingerprint] = list(group.items)
        if self.path:
            with open(self.path, "w", encoding="utf-8", errors="surrogateescape") as f:
                for fingerprint, items in self.entries.items():
                    for item in items:
                        f.write(f"{fingerprint.hex()}  {item.value}\n")
            logger.debug(f"Scratch index written to {self.path}")

    def __exit__(self, exc_type, exc, tb) -> None:
        self.entries.clear()
        if self.path:
            try:
                os.remove(self.path)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.error(f"Could not remove scratch index {self.path}: {e}")


class ContentDeduplicatorImpl(Deduplicator):
    """
    Finds byte-identical files and keeps exactly one per group.

    Args:
        concurrency: Fingerprint jobs running at once
        hasher: In-process hasher (xxh128 by default)
        hash_command: Optional argv template of an external hashing tool, e.g. ["sha256sum", "{item}"]
        timeout: Optional per-item timeout for external hashing
        remove: Callable removing one path (FileService.delete_file by default)
    """

    def __init__(
        self,
        concurrency: Optional[int] = None,
        hasher: Optional[HasherImpl] = None,
        hash_command: Optional[List[str]] = None,
        timeout: Optional[float] = None,
        remove: Optional[Callable[[str], None]] = None,
        stopped_flag: Optional[StoppedFlag] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        self.concurrency = concurrency or default_concurrency()
        self.hasher = hasher or HasherImpl()
        self.hash_command = hash_command
        self.timeout = timeout
        self.remove = remove or FileService.delete_file
        self.stopped_flag = stopped_flag
        self.progress_callback = progress_callback
        self.grouper = ItemGrouperImpl()

    def _fingerprint(self, candidates: List[WorkItem]) -> RunReport:
        """Run one fingerprint job per candidate through the dispatcher."""
        if self.hash_command:
            spec = CommandSpec(argv=self.hash_command, concurrency=self.concurrency, timeout=self.timeout)
            jobs = CommandTemplater(spec).render_all(candidates)
            runner = SubprocessRunner()
        else:
            jobs = candidates
            runner = CallableRunner(self.hasher.hex_digest)

        dispatcher = BoundedDispatcher(
            self.concurrency,
            runner,
            stopped_flag=self.stopped_flag,
            progress_callback=self.progress_callback,
            stage_name="fingerprint",
        )
        return dispatcher.dispatch(jobs)

    def find_duplicates(self, items: List[WorkItem]) -> Tuple[List[DuplicateGroup], RunReport]:
        """
        Fingerprint and group items.
        Args:
            items: Enumerated files, in enumeration order
        Returns:
            Tuple[List[DuplicateGroup], RunReport of the fingerprint jobs]
        """
        start = time.time()
        by_size = self.grouper.group_by_size(items)
        candidates = sorted(
            (item for bucket in by_size.values() for item in bucket),
            key=lambda i: i.index,
        )
        logger.info(f"{len(candidates)} of {len(items)} files share a size with another file")

        report = self._fingerprint(candidates)

        fingerprinted = []
        for result in report.results:
            if not result.success:
                continue
            try:
                fingerprinted.append(result.item.with_fingerprint(parse_digest(result.stdout)))
            except ValueError as e:
                logger.warning(f"Unusable hashing output for {result.item.value}: {e}")

        groups = self.grouper.group_by_fingerprint(fingerprinted)
        logger.info(f"Found {len(groups)} duplicate groups in {time.time() - start:.2f}s")
        return groups, report

    def deduplicate(
        self,
        items: List[WorkItem],
        dry_run: bool = False,
        index_path: Optional[str] = None,
    ) -> DedupReport:
        """
        Removes every duplicate but the first-enumerated one.
        Running it again on the result removes nothing.
        """
        with ScratchIndex(index_path) as index:
            groups, fingerprint_report = self.find_duplicates(items)
            index.record(groups)
            report = DedupReport(
                fingerprint_report=fingerprint_report, groups=groups, dry_run=dry_run, scanned=len(items))

            if fingerprint_report.cancelled:
                logger.warning("Fingerprinting was cancelled, nothing will be removed")
                return report
            if dry_run:
                return report

            report.removed, report.removal_failures = DuplicateService.remove_redundant(groups, self.remove)
            return report
