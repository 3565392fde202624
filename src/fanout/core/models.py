"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/models.py
Data models for item enumeration, command dispatch and deduplication.
"""

import os
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Tuple


def default_concurrency() -> int:
    """Number of worker slots used when the caller does not choose one."""
    return os.cpu_count() or 1


# =============================
# Enums
# =============================

class SourceKind(Enum):
    """
    How the enumerator reads a source descriptor.
    """
    CHILDREN = "children"  # immediate entries of a directory (files and dirs)
    FILES = "files"        # immediate regular files of a directory
    DIRS = "dirs"          # immediate subdirectories of a directory
    WALK = "walk"          # recursive walk, regular files only
    GLOB = "glob"          # shell-style glob pattern
    LINES = "lines"        # newline-delimited list file (hosts, URLs, paths)

    @property
    def display_name(self) -> str:
        """Human-readable name for help text."""
        mapping = {
            SourceKind.CHILDREN: "immediate entries of the directory (files and dirs)",
            SourceKind.FILES: "immediate regular files of the directory",
            SourceKind.DIRS: "immediate subdirectories of the directory",
            SourceKind.WALK: "every regular file below the directory (recursive)",
            SourceKind.GLOB: "SOURCE is a directory and --pattern a glob inside it",
            SourceKind.LINES: "SOURCE is a file with one item per line",
        }
        return mapping.get(self, self.value)


class FailureKind(str, Enum):
    """Per-item failure kinds. None of them aborts a run."""
    LAUNCH_FAILURE = "launch-failure"
    NON_ZERO_EXIT = "non-zero-exit"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    REMOVAL_FAILURE = "removal-failure"


class RunStatus(Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RemovalStrategy(Enum):
    DELETE = "delete"
    TRASH = "trash"


# ======================
#  Core Data Models
# ======================

@dataclass(frozen=True)
class WorkItem:
    """
    A single unit of input processed independently by the dispatcher.
    The value is opaque: a path, a URL or a hostname.
    """
    value: str
    index: int
    size: Optional[int] = None
    fingerprint: Optional[bytes] = None

    @property
    def name(self) -> str:
        return os.path.basename(self.value.rstrip(os.sep)) or self.value

    @property
    def stem(self) -> str:
        return os.path.splitext(self.name)[0]

    @property
    def extension(self) -> str:
        return os.path.splitext(self.name)[1]

    @property
    def parent(self) -> str:
        return os.path.dirname(self.value.rstrip(os.sep))

    def with_fingerprint(self, fingerprint: bytes) -> "WorkItem":
        return replace(self, fingerprint=fingerprint)

    def __repr__(self):
        return f"<WorkItem #{self.index} {self.value}>"


@dataclass
class CommandSpec:
    """
    Argument-vector template plus execution limits.
    Every string may contain placeholders resolved per item by the templater.
    """
    argv: List[str]
    concurrency: int = field(default_factory=default_concurrency)
    timeout: Optional[float] = None
    stdout_path: Optional[str] = None
    stdin_path: Optional[str] = None
    cwd: Optional[str] = None
    require_item: bool = True
    max_output_bytes: int = 1024 * 1024

    def __post_init__(self):
        """Validate limits immediately after creation."""
        if self.concurrency < 1:
            raise ValueError("Concurrency must be at least 1")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("Timeout must be positive")
        if self.max_output_bytes < 0:
            raise ValueError("Output limit cannot be negative")
        self.argv = list(self.argv)


@dataclass(frozen=True)
class Invocation:
    """A fully resolved command for one item."""
    item: WorkItem
    argv: Tuple[str, ...]
    stdout_path: Optional[str] = None
    stdin_path: Optional[str] = None
    cwd: Optional[str] = None
    timeout: Optional[float] = None

    @property
    def program(self) -> str:
        return self.argv[0]


@dataclass(frozen=True)
class JobResult:
    """Outcome of one item. Created by a runner, owned by the aggregator."""
    item: WorkItem
    exit_status: Optional[int]
    stdout: bytes = b""
    stderr: bytes = b""
    duration: float = 0.0
    failure: Optional[FailureKind] = None
    slot: int = -1
    truncated: bool = False

    @property
    def success(self) -> bool:
        return self.failure is None

    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")

    def __repr__(self):
        state = "ok" if self.success else self.failure.value
        return f"<JobResult {self.item.value} {state} exit={self.exit_status}>"


@dataclass
class RunReport:
    """
    Final summary of one dispatch pass.
    Results are kept in enumeration order.
    """
    total: int
    results: List[JobResult] = field(default_factory=list)
    status: RunStatus = RunStatus.COMPLETED
    peak_concurrency: int = 0
    elapsed: float = 0.0

    @property
    def attempted(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failures(self) -> List[JobResult]:
        return [r for r in self.results if not r.success]

    @property
    def cancelled(self) -> bool:
        return self.status == RunStatus.CANCELLED

    @property
    def success(self) -> bool:
        return not self.cancelled and not self.failures

    def __repr__(self):
        return (f"<RunReport total={self.total} ok={self.succeeded} "
                f"failed={len(self.failures)} status={self.status.value}>")


@dataclass
class DuplicateGroup:
    """
    Items sharing one fingerprint, in enumeration order.
    The first item is the keeper, the rest are redundant.
    """
    fingerprint: bytes
    items: List[WorkItem]

    @property
    def keeper(self) -> WorkItem:
        return self.items[0]

    @property
    def redundant(self) -> List[WorkItem]:
        return self.items[1:]

    def is_duplicate(self) -> bool:
        """True if this group contains at least two items."""
        return len(self.items) >= 2

    def __repr__(self):
        return f"<DuplicateGroup {self.fingerprint.hex()[:12]} count={len(self.items)}>"


@dataclass
class DedupReport:
    """Outcome of a content-identity deduplication pass."""
    fingerprint_report: RunReport
    groups: List[DuplicateGroup] = field(default_factory=list)
    removed: List[WorkItem] = field(default_factory=list)
    removal_failures: List[JobResult] = field(default_factory=list)
    dry_run: bool = False
    scanned: int = 0

    @property
    def reclaimed_bytes(self) -> int:
        return sum(item.size or 0 for item in self.removed)

    @property
    def marked(self) -> int:
        return sum(len(g.redundant) for g in self.groups)

    @property
    def success(self) -> bool:
        return self.fingerprint_report.success and not self.removal_failures
