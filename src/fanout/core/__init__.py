"""
Core dispatch engine: enumerator, templater, runners, dispatcher and deduplication.

This package contains the foundation of fanout:
- ItemEnumeratorImpl: directory listing, recursive walk, glob and list files
- CommandTemplater: per-item argument vectors with validated placeholders
- SubprocessRunner / CallableRunner: one job per slot, failures as values
- BoundedDispatcher + OutcomeAggregator: K worker slots, results in enumeration order
- ContentDeduplicatorImpl: size pre-filter, parallel fingerprints, keep-first removal
- Models: WorkItem, CommandSpec, JobResult, RunReport, DuplicateGroup

No GUI dependencies, suitable for CLI and server usage.
"""

from .models import (
    CommandSpec, DedupReport, DuplicateGroup, FailureKind, Invocation, JobResult,
    RemovalStrategy, RunReport, RunStatus, SourceKind, WorkItem)
from .enumerator import ItemEnumeratorImpl
from .templater import CommandTemplater
from .runner import CallableRunner, SubprocessRunner
from .dispatcher import BoundedDispatcher
from .grouper import ItemGrouperImpl
from .hasher import HasherImpl, XXHash64AlgorithmImpl, XXHash128AlgorithmImpl, Sha256AlgorithmImpl
from .deduplicator import ContentDeduplicatorImpl, ScratchIndex

__all__ = [
    "CommandSpec",
    "DedupReport",
    "DuplicateGroup",
    "FailureKind",
    "Invocation",
    "JobResult",
    "RemovalStrategy",
    "RunReport",
    "RunStatus",
    "SourceKind",
    "WorkItem",
    "ItemEnumeratorImpl",
    "CommandTemplater",
    "CallableRunner",
    "SubprocessRunner",
    "BoundedDispatcher",
    "ItemGrouperImpl",
    "HasherImpl",
    "XXHash64AlgorithmImpl",
    "XXHash128AlgorithmImpl",
    "Sha256AlgorithmImpl",
    "ContentDeduplicatorImpl",
    "ScratchIndex",
]
