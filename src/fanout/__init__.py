"""
fanout: run one process per file, host or URL, a bounded number at a time.

Core features:
- Bounded-concurrency dispatcher: at most K jobs in flight, each item run exactly once
- Command templates bound per item as argument vectors (no shell, no injection)
- Per-item failures reported in a final summary instead of aborting the run
- Content-identity deduplication (xxHash / SHA-256) with delete or system trash
- Ready-made verbs: wc, grep, hash, encrypt, resize-images, fetch, scp, ...
"""

# Get version
try:
    from importlib.metadata import version as _version
    __version__ = _version("fanout")
except Exception:
    __version__ = "0.0.0"

# Public API, only what users should import directly
from fanout.commands import ContentDedupCommand, DispatchCommand, LocalOperationCommand, SortedDedupCommand
from fanout.core import (
    BoundedDispatcher, CommandSpec, CommandTemplater, DedupReport, DuplicateGroup, FailureKind,
    JobResult, RunReport, SourceKind, WorkItem)
from fanout.core.errors import FanoutError, SourceUnavailable, TemplateError
from fanout.core.params import DedupParams, DispatchParams, LocalParams
from fanout.utils.convert_utils import ConvertUtils

__all__ = [
    "DispatchCommand",
    "LocalOperationCommand",
    "SortedDedupCommand",
    "ContentDedupCommand",
    "DispatchParams",
    "LocalParams",
    "DedupParams",
    "BoundedDispatcher",
    "CommandSpec",
    "CommandTemplater",
    "WorkItem",
    "JobResult",
    "RunReport",
    "DedupReport",
    "DuplicateGroup",
    "FailureKind",
    "SourceKind",
    "FanoutError",
    "SourceUnavailable",
    "TemplateError",
    "ConvertUtils",
    "__version__",
]
