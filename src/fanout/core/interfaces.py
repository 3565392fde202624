"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

interfaces.py

Defines core interfaces (Protocols) used throughout the dispatch and deduplication system.
These protocols enforce structural typing using Python's `typing.Protocol` so that
enumerators, runners and hash algorithms can be swapped without touching the dispatcher.

Key Components:
---------------
- ItemEnumerator: Turns a source descriptor into an ordered list of work items.
- JobRunner: Runs one job (subprocess or in-process) to completion and reports a JobResult.
- HashAlgorithm: Standardized interface for hash functions (xxHash, SHA-256).
- Hasher: Interface for computing full-content fingerprints of files.
- ItemGrouper: Interface for grouping items by size or fingerprint.
- Deduplicator: Interface for the content-identity deduplication engine.
"""

from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from fanout.core.models import (
    DedupReport,
    DuplicateGroup,
    JobResult,
    RunReport,
    SourceKind,
    WorkItem,
)

StoppedFlag = Callable[[], bool]
ProgressCallback = Callable[[str, int, Optional[int]], None]


class ItemEnumerator(Protocol):
    """Produces a finite, order-stable sequence of work items."""

    def enumerate(
        self,
        source: str,
        kind: SourceKind,
        pattern: Optional[str] = None,
    ) -> List[WorkItem]:
        """
        Read the source and return its items.

        Raises:
            SourceUnavailable: if the source is missing or unreadable.
        """
        ...


class JobRunner(Protocol):
    """Runs one job and never raises for per-item failures."""

    def run(self, job: Any, slot: int, stopped_flag: Optional[StoppedFlag] = None) -> JobResult:
        ...


class HashObject(Protocol):
    def update(self, data: bytes) -> None: ...
    def digest(self) -> bytes: ...


class HashAlgorithm(Protocol):
    """
    Interface for generic hash algorithms.

    Allows plugging in different hashing functions like SHA-256 or xxHash
    without affecting the rest of the deduplication logic.
    """
    name: str
    digest_size: int

    def new(self) -> HashObject:
        """Returns a fresh incremental hash object."""
        ...


class Hasher(Protocol):
    """Interface for full-content fingerprints."""
    def compute_full_hash(self, path: str) -> bytes: ...
    def hex_digest(self, item: WorkItem) -> bytes: ...


class ItemGrouper(Protocol):
    """
    Interface for grouping items by size or fingerprint.
    """
    def group_by_size(self, items: List[WorkItem]) -> Dict[int, List[WorkItem]]:
        """Group items by their size in bytes."""
        ...

    def group_by_fingerprint(self, items: List[WorkItem]) -> List[DuplicateGroup]:
        """Group items by fingerprint, keeping enumeration order inside each group."""
        ...


class Deduplicator(Protocol):
    """
    Interface for the content-identity deduplication engine.
    """
    def find_duplicates(self, items: List[WorkItem]) -> Tuple[List[DuplicateGroup], RunReport]:
        ...

    def deduplicate(
        self,
        items: List[WorkItem],
        dry_run: bool = False,
        index_path: Optional[str] = None,
    ) -> DedupReport:
        ...
