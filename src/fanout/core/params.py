"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/params.py
DTOs for dispatch, local-operation and deduplication runs with built-in validation.
Interface-agnostic: the CLI builds them, commands consume them.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from fanout.core.hasher import HASH_ALGORITHMS
from fanout.core.models import CommandSpec, RemovalStrategy, SourceKind, default_concurrency
from fanout.core.runner import DEFAULT_MAX_OUTPUT
from fanout.core.textops import LOCAL_OPERATIONS
from fanout.utils.convert_utils import ConvertUtils


def _parse_timeout(timeout_str: Optional[str]) -> Optional[float]:
    return ConvertUtils.human_to_seconds(timeout_str) if timeout_str else None


@dataclass
class DispatchParams:
    """Parameters for running an external command once per item."""
    source: str
    spec: CommandSpec
    kind: SourceKind = SourceKind.FILES
    pattern: Optional[str] = None
    params: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        """Validate parameters immediately after creation."""
        if not self.source:
            raise ValueError("Source cannot be empty")

    @staticmethod
    def from_human_readable(
            source: str,
            argv: List[str],
            concurrency: Optional[int] = None,
            kind: SourceKind = SourceKind.FILES,
            pattern: Optional[str] = None,
            params: Optional[Dict[str, str]] = None,
            timeout_str: Optional[str] = None,
            max_output_str: str = "1MB",
            stdout_path: Optional[str] = None,
            stdin_path: Optional[str] = None,
            cwd: Optional[str] = None,
            require_item: bool = True,
    ) -> 'DispatchParams':
        """
        Factory method to create params from human-readable inputs.
        Useful for CLI argument parsing.
        """
        spec = CommandSpec(
            argv=argv,
            concurrency=concurrency or default_concurrency(),
            timeout=_parse_timeout(timeout_str),
            stdout_path=stdout_path,
            stdin_path=stdin_path,
            cwd=cwd,
            require_item=require_item,
            max_output_bytes=ConvertUtils.human_to_bytes(max_output_str),
        )
        return DispatchParams(
            source=source,
            spec=spec,
            kind=kind,
            pattern=pattern,
            params=dict(params or {}),
        )


@dataclass
class LocalParams:
    """Parameters for running an in-process text operation once per file."""
    source: str
    operation: str
    concurrency: int = field(default_factory=default_concurrency)
    kind: SourceKind = SourceKind.FILES
    pattern: Optional[str] = None
    max_output_bytes: int = DEFAULT_MAX_OUTPUT

    def __post_init__(self):
        if not self.source:
            raise ValueError("Source cannot be empty")
        if self.concurrency < 1:
            raise ValueError("Concurrency must be at least 1")
        if self.max_output_bytes < 0:
            raise ValueError("Output limit cannot be negative")
        if self.operation not in LOCAL_OPERATIONS:
            raise ValueError(f"Unknown operation: '{self.operation}'")


@dataclass
class DedupParams:
    """Parameters for content-identity deduplication."""
    root_dir: str
    concurrency: int = field(default_factory=default_concurrency)
    algorithm: str = "xxh128"
    hash_command: List[str] = field(default_factory=list)
    extensions: List[str] = field(default_factory=list)
    excluded_dirs: List[str] = field(default_factory=list)
    removal: RemovalStrategy = RemovalStrategy.DELETE
    dry_run: bool = False
    index_path: Optional[str] = None
    timeout: Optional[float] = None

    def __post_init__(self):
        """Validate parameters immediately after creation."""
        if not self.root_dir:
            raise ValueError("Root directory cannot be empty")

        if self.concurrency < 1:
            raise ValueError("Concurrency must be at least 1")

        if self.timeout is not None and not self.hash_command:
            raise ValueError("Timeout applies only to an external hash command")

        if self.algorithm not in HASH_ALGORITHMS:
            raise ValueError(
                f"Invalid hash algorithm: '{self.algorithm}'. "
                f"Valid options: {', '.join(HASH_ALGORITHMS)}"
            )

        # Normalize extensions: ensure they start with dot and are lowercase
        normalized = []
        for ext in self.extensions:
            ext = ext.strip().lower()
            if ext and not ext.startswith('.'):
                ext = f".{ext}"
            if ext:
                normalized.append(ext)
        self.extensions = normalized
