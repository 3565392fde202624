"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/enumerator.py
Implements work item enumeration using pathlib and os.walk.
Features:
- Immediate-children listing and full recursive walk as distinct operations
- Shell-style glob patterns and newline-delimited list files
- Deterministic order (sorted names) so that enumeration order is reproducible
- Returns a List of WorkItem indexed in enumeration order
"""

import fnmatch
import glob as globmod
import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional

from fanout.core.errors import SourceUnavailable
from fanout.core.interfaces import ItemEnumerator
from fanout.core.models import SourceKind, WorkItem

logger = logging.getLogger(__name__)


def _has_wildcards(text: str) -> bool:
    return any(c in text for c in "*?[")


class ItemEnumeratorImpl(ItemEnumerator):
    """
    Reads directories, glob patterns and list files into work items.

    Attributes:
        excluded_dirs: Directories pruned from recursive walks
        extensions: Allowed file extensions for recursive walks (e.g. [".txt"])
    """

    def __init__(
        self,
        excluded_dirs: Optional[List[str]] = None,
        extensions: Optional[List[str]] = None,
    ):
        self.excluded_dirs = [str(Path(d).resolve()) for d in excluded_dirs] if excluded_dirs else []
        self.extensions = [ext.lower() for ext in extensions] if extensions else []

    def enumerate(
        self,
        source: str,
        kind: SourceKind,
        pattern: Optional[str] = None,
    ) -> List[WorkItem]:
        """Dispatch to the operation matching the source kind."""
        if kind in (SourceKind.CHILDREN, SourceKind.FILES, SourceKind.DIRS):
            return self.list_children(source, kind=kind, pattern=pattern)
        if kind == SourceKind.WALK:
            return self.walk(source, pattern=pattern)
        if kind == SourceKind.GLOB:
            return self.glob(os.path.join(source, pattern) if pattern else source)
        if kind == SourceKind.LINES:
            return self.read_lines(source)
        raise ValueError(f"Unsupported source kind: {kind}")

    def list_children(
        self,
        directory: str,
        kind: SourceKind = SourceKind.CHILDREN,
        pattern: Optional[str] = None,
    ) -> List[WorkItem]:
        """
        Lists the immediate entries of a directory. Never descends.

        Args:
            directory: Directory to list
            kind: CHILDREN (everything), FILES or DIRS
            pattern: Optional fnmatch pattern applied to entry names
        Returns:
            List[WorkItem] sorted by name
        """
        root = self._require_directory(directory)
        try:
            names = sorted(os.listdir(root))
        except OSError as e:
            raise SourceUnavailable(directory, str(e)) from e

        paths = []
        for name in names:
            if pattern and not fnmatch.fnmatch(name, pattern):
                continue
            path = root / name
            if kind == SourceKind.FILES and not path.is_file():
                continue
            if kind == SourceKind.DIRS and not path.is_dir():
                continue
            paths.append(path)

        items = self._to_items(paths)
        logger.debug(f"Listed {len(items)} entries in {directory}")
        return items

    def walk(self, directory: str, pattern: Optional[str] = None) -> List[WorkItem]:
        """
        Recursively collects regular files below a directory.
        Symbolic links are skipped, excluded directories are pruned before descending.
        """
        root = self._require_directory(directory)
        errors = []

        def _on_error(error: OSError):
            # Unreadable subdirectories are skipped, only the root is mandatory
            errors.append(error)
            logger.warning(f"Skipping unreadable directory: {error}")

        paths = []
        for current, dirs, files in os.walk(str(root), onerror=_on_error):
            dirs[:] = sorted(d for d in dirs if not self._is_excluded(Path(current) / d))
            for filename in sorted(files):
                path = Path(current) / filename
                if pattern and not fnmatch.fnmatch(filename, pattern):
                    continue
                if not self._extension_passes(path):
                    continue
                try:
                    if path.is_symlink() or not path.is_file():
                        logger.debug(f"Skipping non-regular file: {path}")
                        continue
                except OSError as e:
                    logger.debug(f"Could not stat {path}: {e}")
                    continue
                paths.append(path)

        if errors and errors[0].filename and Path(errors[0].filename) == root:
            raise SourceUnavailable(directory, errors[0].strerror or str(errors[0]))

        items = self._to_items(paths)
        logger.debug(f"Walk of {directory} found {len(items)} files")
        return items

    def glob(self, pattern: str) -> List[WorkItem]:
        """Expands a shell-style pattern. Recursive only when the pattern contains '**'."""
        matches = sorted(globmod.glob(pattern, recursive="**" in pattern))
        base = os.path.dirname(pattern)
        if not matches and base and not _has_wildcards(base) and not os.path.isdir(base):
            raise SourceUnavailable(pattern, "base directory does not exist")
        return self._to_items(Path(m) for m in matches)

    def read_lines(self, path: str) -> List[WorkItem]:
        """
        Reads one item per line from a list file.
        Blank lines and lines starting with '#' are ignored.
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                lines = f.read().splitlines()
        except (OSError, UnicodeDecodeError) as e:
            raise SourceUnavailable(path, str(e)) from e

        values = []
        for line in lines:
            value = line.strip()
            if value and not value.startswith("#"):
                values.append(value)
        return [WorkItem(value=value, index=index) for index, value in enumerate(values)]

    @staticmethod
    def _require_directory(directory: str) -> Path:
        """Validate that the root directory exists and is accessible."""
        root = Path(directory)
        if not root.exists():
            raise SourceUnavailable(directory, "does not exist")
        if not root.is_dir():
            raise SourceUnavailable(directory, "not a directory")
        if not os.access(root, os.R_OK | os.X_OK):
            raise SourceUnavailable(directory, "permission denied")
        return root

    @staticmethod
    def _to_items(paths: Iterable[Path]) -> List[WorkItem]:
        items = []
        for path in paths:
            size = None
            try:
                if path.is_file():
                    size = path.stat().st_size
            except OSError as e:
                logger.debug(f"Could not get size of {path}: {e}")
            items.append(WorkItem(value=str(path), index=len(items), size=size))
        return items

    def _is_excluded(self, path: Path) -> bool:
        """Check if path is within an excluded directory."""
        if not self.excluded_dirs:
            return False
        try:
            path_str = str(path.resolve(strict=False))
        except (OSError, ValueError):
            return False
        for excluded_dir in self.excluded_dirs:
            if path_str == excluded_dir or path_str.startswith(excluded_dir + os.sep):
                logger.debug(f"Skipping excluded directory: {path}")
                return True
        return False

    def _extension_passes(self, path: Path) -> bool:
        if not self.extensions:
            return True
        return path.suffix.lower() in self.extensions
